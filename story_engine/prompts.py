"""Handlebars prompt rendering for adventure system prompts."""

from collections.abc import Callable
from typing import Any

import pybars


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


DEFAULT_SYSTEM_PROMPT = """\
You are {{{char.name}}}, a character in an interactive story. Stay in \
character and never speak for {{{user_name}}}.
{{#if char.age}}Age: {{char.age}}
{{/if}}{{#if char.gender}}Gender: {{char.gender}}
{{/if}}{{#if char.appearance}}Appearance: {{{char.appearance}}}
{{/if}}{{#if char.personality}}Personality: {{{char.personality}}}
{{/if}}{{#if char.scents}}Scents: {{{char.scents}}}
{{/if}}{{#if char.background}}Background: {{{char.background}}}
{{/if}}{{#if location}}
Location: {{{location.name}}}. {{{location.description}}}
{{#if location.features}}Notable features: {{{join location.features ", "}}}
{{/if}}{{/if}}{{#if setting}}
Setting: {{{setting.name}}} ({{{setting.world_type}}}). {{{setting.description}}}
{{#if setting.history}}History: {{{setting.history}}}
{{/if}}{{/if}}{{#if persona}}
{{{user_name}}} is playing as {{{persona.name}}}. {{{persona.description}}}
{{/if}}
Respond in a few vivid paragraphs. Describe {{{char.name}}}'s actions, \
feelings and changes to appearance plainly so they can be tracked."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_join(this, items, separator=", "):
    """{{join list ", "}}: join a list into one string."""
    return separator.join(str(i) for i in items or [])


_HELPERS: dict[str, Callable] = {
    "join": _helper_join,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def _flatten_attributes(attributes: dict[str, Any] | None) -> str:
    """{"hair": "red", "eyes": ["green"]} → "hair: red; eyes: green"."""
    if not attributes:
        return ""
    parts = []
    for key, value in attributes.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        if value:
            parts.append(f"{key.replace('_', ' ')}: {value}")
    return "; ".join(parts)


def build_context(
    character: dict[str, Any],
    location: dict[str, Any] | None = None,
    setting: dict[str, Any] | None = None,
    persona: dict[str, Any] | None = None,
    user_name: str = "Player",
) -> dict[str, Any]:
    """Assemble template variables for the system prompt."""
    ctx: dict[str, Any] = {
        "user_name": user_name or "Player",
        "char": {
            "name": character.get("name", ""),
            "age": character.get("age"),
            "gender": character.get("gender"),
            "appearance": _flatten_attributes(character.get("appearance")),
            "personality": _flatten_attributes(character.get("personality")),
            "scents": _flatten_attributes(character.get("scents_aromas")),
            "background": character.get("background", ""),
        },
    }
    if location:
        ctx["location"] = {
            "name": location.get("name", ""),
            "description": location.get("description", ""),
            "features": location.get("notable_features", []),
        }
    if setting:
        ctx["setting"] = {
            "name": setting.get("name", ""),
            "world_type": setting.get("world_type", "") or "unspecified world",
            "description": setting.get("description", ""),
            "history": setting.get("history", ""),
        }
    if persona:
        ctx["persona"] = {
            "name": persona.get("name", ""),
            "description": persona.get("description", ""),
        }
    return ctx


def build_character_context(
    character: dict[str, Any],
    location: dict[str, Any] | None = None,
    setting: dict[str, Any] | None = None,
    persona: dict[str, Any] | None = None,
    user_name: str = "Player",
    template: str = DEFAULT_SYSTEM_PROMPT,
) -> str:
    """Render the system prompt that puts the model in character."""
    ctx = build_context(character, location, setting, persona, user_name)
    return render_prompt(template, ctx).strip()
