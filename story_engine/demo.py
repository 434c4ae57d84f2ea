"""Create demo data for development/testing."""

import shutil

from story_engine import auth, storage

DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "demo-password"

DEMO_CHARACTER = {
    "name": "Elena Vale",
    "age": 27,
    "gender": "Female",
    "appearance": {"hair": "long auburn, usually braided", "eyes": "green", "build": "slender"},
    "personality": {"traits": "curious, warm, stubborn", "fears": "deep water"},
    "scents_aromas": {"signature": "lavender and woodsmoke"},
    "background": "A village healer who left home to study the old herbals "
    "kept in the mountain monastery.",
    "tags": ["Healer", "Fantasy"],
}

DEMO_LOCATION = {
    "name": "The Lantern Inn",
    "description": "A crooked three-storey inn at the crossroads, lit day and night.",
    "notable_features": ["hearth big enough to stand in", "map-covered walls"],
    "connected_locations": ["Old Mill Road", "Monastery Steps"],
    "tags": ["Tavern"],
}

DEMO_SETTING = {
    "name": "The Ember Vale",
    "description": "A river valley of small villages living in the shadow of an extinct volcano.",
    "world_type": "low fantasy",
    "history": "The volcano last woke three hundred years ago; the monastery was built to watch it.",
    "tags": ["Fantasy"],
}

DEMO_PERSONA = {
    "name": "Rowan",
    "description": "A travelling cartographer with ink-stained fingers.",
    "personality": "patient, observant",
    "tags": ["Traveller"],
}


def create_demo_data() -> dict:
    """Wipe user data and create one demo user with a ready-to-play adventure."""
    root = storage.data_dir()
    for name in ("users", "sessions", "characters", "locations", "settings", "personas", "jobs", "job-logs"):
        path = root / f"{name}.json"
        if path.exists():
            path.unlink()
    if storage.adventures_dir().exists():
        shutil.rmtree(storage.adventures_dir())
    storage.adventures_dir().mkdir(parents=True, exist_ok=True)

    from story_engine.pipeline import system_prompt_for

    user = auth.register_user(DEMO_EMAIL, "Demo", DEMO_PASSWORD)
    character = storage.create_character(user["id"], DEMO_CHARACTER)
    location = storage.create_location(user["id"], DEMO_LOCATION)
    setting = storage.create_setting(user["id"], DEMO_SETTING)
    persona = storage.create_persona(user["id"], DEMO_PERSONA)

    adventure = storage.create_adventure(
        user_id=user["id"],
        title="A Night at the Lantern Inn",
        character=character,
        location_id=location["id"],
        setting_id=setting["id"],
        persona_id=persona["id"],
        user_name="Rowan",
    )
    storage.update_system_prompt(
        adventure["id"], user["id"], system_prompt_for(adventure, user["id"]),
    )
    storage.create_message(adventure["id"], user["id"], "user", "I shake the rain off my cloak and wave at the healer.")
    storage.create_message(
        adventure["id"], user["id"], "assistant",
        "Elena looks up from her herbal, her hair is now loose from its braid. "
        "She felt relieved to see a familiar face.",
        metadata={"model": "demo", "eval_count": None, "total_duration": None},
    )

    print(f"Created demo user {DEMO_EMAIL} (password: {DEMO_PASSWORD}) with 1 adventure.")
    return {"user": user, "adventure": adventure}
