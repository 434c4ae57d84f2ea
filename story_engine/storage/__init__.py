"""File-based JSON storage scoped by user.

Data layout:
  data/
    users.json             Accounts (email, name, bcrypt password hash)
    sessions.json          Login sessions keyed by session id
    characters.json        Character library
    locations.json         Location library
    settings.json          World settings library
    personas.json          Player personas
    adventures/
      <id>.json            Adventure metadata and system prompt
      <id>/
        messages.json      Chat log (user / assistant / system)
        characters.json    Character snapshots with state updates
    jobs.json              Background job queue
    job-logs.json          Job processing events (bounded)
    vectors/<name>.json    Embedding collections
    avatars/               Uploaded avatar images

Ownership: every user-authored record carries `user_id`. Lookups for a
record owned by someone else return None (or raise NotFoundError for
operations that must find their target), exactly as for a missing record.
"""

# Re-export all public symbols so `from story_engine import storage` keeps working.

from .core import (  # noqa: F401
    NotFoundError,
    adventures_dir,
    avatars_dir,
    data_dir,
    init_storage,
    new_id,
    now_iso,
    vectors_dir,
)

from .users import (  # noqa: F401
    create_user,
    get_user,
    get_user_by_email,
)

from .sessions import (  # noqa: F401
    DEFAULT_TTL_SECONDS,
    create_session,
    destroy_session,
    get_session,
    purge_expired_sessions,
    refresh_session,
    update_session,
)

from .characters import (  # noqa: F401
    GENDERS,
    create_character,
    delete_character,
    get_character,
    list_characters,
    update_character,
    validate_character,
)

from .locations import (  # noqa: F401
    create_location,
    delete_location,
    get_location,
    list_locations,
    update_location,
)

from .settings import (  # noqa: F401
    create_setting,
    delete_setting,
    get_setting,
    list_settings,
    update_setting,
)

from .personas import (  # noqa: F401
    create_persona,
    delete_persona,
    get_persona,
    list_personas,
    update_persona,
)

from .adventures import (  # noqa: F401
    create_adventure,
    delete_adventure,
    get_adventure,
    list_adventures,
    touch_adventure,
    update_adventure,
    update_system_prompt,
)

from .adventure_characters import (  # noqa: F401
    create_adventure_character,
    current_state,
    get_adventure_character,
    get_adventure_characters,
    update_character_state,
)

from .messages import (  # noqa: F401
    create_message,
    delete_message,
    get_messages,
    update_message,
)

from .jobs import (  # noqa: F401
    cleanup_old_jobs,
    create_job,
    get_job,
    get_job_logs,
    get_job_stats,
    get_next_pending_job,
    list_jobs,
    log_job_event,
    mark_completed,
    mark_failed,
    retry_job,
)

from .vectors import (  # noqa: F401
    MEMORY_COLLECTION,
    TRAIT_COLLECTION,
    count_vectors,
    delete_vector,
    delete_vectors_where,
    search_vectors,
    upsert_vector,
)
