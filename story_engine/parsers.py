"""Free-text attribute parsing for character traits and tags.

Authors (and the state extractor) describe characters in loose prose such as
"Hair: long, auburn; eyes: green" or "soft, wavy (hair)". These helpers turn
that text into `{"category.subtype": [values]}` mappings that can be merged,
stored and rendered back to text.
"""

import re
from typing import Any, Literal

FieldType = Literal["appearance", "personality", "scents", "other"]

_FIELD_KEYWORDS: list[tuple[FieldType, tuple[str, ...]]] = [
    ("appearance", ("hair", "eye", "skin", "height", "build", "clothes", "appearance", "looks", "face")),
    ("personality", ("personality", "trait", "behavior", "mood", "emotion", "feel")),
    ("scents", ("smell", "scent", "aroma", "fragrance", "perfume")),
]

_ARTICLES = re.compile(r"^(?:the|a|an|her|his|their|my|its)\s+")
_CATEGORY_SUFFIXES = ("_size", "_style", "_color", "_colour")
_PLURALS = {
    "foot": "feet",
    "tooth": "teeth",
    "eye": "eyes",
    "ear": "ears",
    "hand": "hands",
    "lip": "lips",
    "leg": "legs",
    "arm": "arms",
    "trait": "traits",
    "scent": "scents",
    "emotion": "emotions",
}

_KEY_PATTERN = re.compile(r"\b([a-zA-Z][a-zA-Z ]*[a-zA-Z])\s*(?::|\s-\s)")
_PAREN_PATTERN = re.compile(r"([^()]+?)\s*\(([^)]+)\)")
_SCENT_WORDS = re.compile(
    r"\b(?:smells?|scents?|aromas?|fragrances?)\s+(?:of|like)\s+|\b(?:smells?|scented)\s+",
    re.IGNORECASE,
)

# Categories recognised when the text has no explicit "key:" segments.
_CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "hair": ("hair", "locks", "curls", "braid", "ponytail"),
    "eyes": ("eyes", "gaze"),
    "skin": ("skin", "complexion", "freckles"),
    "body": ("build", "height", "muscular", "slender", "stocky"),
    "clothing": ("dress", "shirt", "jacket", "boots", "cloak", "outfit", "clothes"),
    "scents": ("smell", "scent", "aroma", "fragrance", "perfume"),
}

_PERSONALITY_CATEGORIES = {
    "personality", "traits", "mood", "emotions", "behavior", "quirks",
    "fears", "desires", "motivations", "temperament",
}
_SCENT_CATEGORIES = {"scents", "smell", "aroma", "fragrance", "perfume", "scents_aromas"}

_APPEARANCE_SUBTYPES: list[tuple[str, tuple[str, ...]]] = [
    ("color", ("red", "blue", "green", "black", "white", "brown", "blonde", "blond",
               "golden", "silver", "grey", "gray", "auburn", "pink", "purple",
               "hazel", "amber", "pale", "dark")),
    ("length", ("long", "short", "shoulder-length", "cropped", "waist-length")),
    ("style", ("braided", "curly", "straight", "wavy", "messy", "sleek", "ponytail", "bun")),
    ("texture", ("soft", "rough", "smooth", "silky", "coarse", "glossy")),
    ("size", ("small", "large", "big", "tiny", "petite", "tall", "huge")),
    ("shape", ("round", "oval", "almond", "angular", "square", "heart-shaped")),
]
_PERSONALITY_SUBTYPES: list[tuple[str, tuple[str, ...]]] = [
    ("emotions", ("happy", "sad", "angry", "anxious", "calm", "excited", "nervous",
                  "content", "afraid", "joyful", "lonely")),
    ("quirks", ("quirk", "habit", "hums", "fidgets", "collects")),
    ("fears", ("fear", "fears", "scared", "phobia", "terrified")),
    ("desires", ("wants", "desire", "desires", "longs", "wishes", "craves")),
    ("motivations", ("driven", "motivated", "ambition", "ambitious", "goal", "purpose")),
]
_SCENT_SUBTYPES: list[tuple[str, tuple[str, ...]]] = [
    ("fragrance", ("perfume", "fragrance", "cologne", "floral", "rose", "lavender", "jasmine")),
    ("scents", ("scent", "scents")),
]
_DEFAULT_SUBTYPE = {"appearance": "appearance", "personality": "traits", "scents": "aroma"}
_SUMMARY_SUBTYPES = {"appearance", "traits", "scents"}


# ── Tags ─────────────────────────────────────────────────


def format_tag_name(tag: str) -> str:
    """Title-case each word: "  dark   fantasy " becomes "Dark Fantasy"."""
    return " ".join(word.capitalize() for word in tag.split())


def parse_tags_from_string(text: str) -> list[str]:
    """Split a comma-separated tag string into formatted, unique tags."""
    tags: list[str] = []
    seen: set[str] = set()
    for part in text.split(","):
        tag = format_tag_name(part)
        if tag and tag.lower() not in seen:
            seen.add(tag.lower())
            tags.append(tag)
    return tags


# ── Field types ──────────────────────────────────────────


def get_field_type(field: str) -> FieldType:
    """Classify a field name (or phrase) by keyword."""
    lowered = field.lower()
    for field_type, keywords in _FIELD_KEYWORDS:
        if any(k in lowered for k in keywords):
            return field_type
    return "other"


# ── Categories and values ────────────────────────────────


def normalize_category(raw: str) -> str:
    """Map a raw label to a category key, e.g. "The Eye Color" to "eyes".

    Input with nothing usable left becomes "general".
    """
    text = raw.strip().lower()
    text = _ARTICLES.sub("", text)
    text = re.sub(r"[^a-z0-9\s_]", "", text)
    text = re.sub(r"\s+", "_", text.strip())
    for suffix in _CATEGORY_SUFFIXES:
        if text.endswith(suffix):
            text = text[: -len(suffix)]
            break
    text = _PLURALS.get(text, text)
    return text or "general"


def parse_values(text: str) -> list[str]:
    """Split on commas and semicolons, dropping scent filler words."""
    values = []
    for part in re.split(r"[,;]", text):
        part = _SCENT_WORDS.sub("", part)
        part = part.strip(" .!?\t\n")
        if part:
            values.append(format_tag_name(part))
    return values


def category_domain(category: str, default: str = "appearance") -> str:
    """Which trait family a category belongs to: appearance, personality or scents."""
    if category in _SCENT_CATEGORIES:
        return "scents"
    if category in _PERSONALITY_CATEGORIES:
        return "personality"
    if default in _DEFAULT_SUBTYPE and category == "general":
        return default
    return "appearance"


def infer_subtype(domain: str, values: list[str]) -> str:
    """Pick the subtype whose word list matches the values first."""
    words = set(re.findall(r"[a-z-]+", " ".join(values).lower()))
    tables = {
        "appearance": _APPEARANCE_SUBTYPES,
        "personality": _PERSONALITY_SUBTYPES,
        "scents": _SCENT_SUBTYPES,
    }
    for subtype, vocabulary in tables.get(domain, []):
        if words.intersection(vocabulary):
            return subtype
    return _DEFAULT_SUBTYPE.get(domain, "appearance")


def _add(result: dict[str, list[str]], key: str, values: list[str]) -> None:
    if values:
        result[key] = _union(result.get(key, []), values)


def _union(first: list[str], second: list[str]) -> list[str]:
    merged = list(first)
    seen = {v.lower() for v in first}
    for value in second:
        if value.lower() not in seen:
            seen.add(value.lower())
            merged.append(value)
    return merged


def parse_attribute_text(text: str, field_type: str = "appearance") -> dict[str, list[str]]:
    """Parse free text into {"category.subtype": [values]}.

    Tries, in order: explicit "key: values" segments, parenthetical
    "values (category)" groups, keyword inference, and finally files
    everything under the general key for `field_type`.
    """
    result: dict[str, list[str]] = {}
    text = text.strip()
    if not text:
        return result
    domain_default = field_type if field_type in _DEFAULT_SUBTYPE else "appearance"

    keys = list(_KEY_PATTERN.finditer(text))
    if keys:
        for i, match in enumerate(keys):
            end = keys[i + 1].start() if i + 1 < len(keys) else len(text)
            segment = text[match.end():end]
            category = normalize_category(match.group(1))
            domain = category_domain(category, domain_default)
            values = parse_values(segment)
            _add(result, f"{category}.{infer_subtype(domain, values)}", values)
        if result:
            return result

    for match in _PAREN_PATTERN.finditer(text):
        category = normalize_category(match.group(2))
        domain = category_domain(category, domain_default)
        values = parse_values(match.group(1))
        _add(result, f"{category}.{infer_subtype(domain, values)}", values)
    if result:
        return result

    lowered = text.lower()
    for category, keywords in _CATEGORY_KEYWORDS.items():
        if any(re.search(rf"\b{re.escape(k)}\b", lowered) for k in keywords):
            domain = category_domain(category, domain_default)
            values = parse_values(text)
            _add(result, f"{category}.{infer_subtype(domain, values)}", values)
            return result

    fallback = {
        "appearance": "general.appearance",
        "personality": "personality.traits",
        "scents": "general.scents",
    }[domain_default]
    _add(result, fallback, parse_values(text))
    return result


def attribute_to_text(attributes: dict[str, list[str]]) -> str:
    """{"hair.color": ["Red"]} → "Hair (color): Red"."""
    parts = []
    for key, values in attributes.items():
        if not values:
            continue
        category, _, subtype = key.partition(".")
        label = category.replace("_", " ").title()
        if subtype and subtype not in _SUMMARY_SUBTYPES:
            label = f"{label} ({subtype})"
        parts.append(f"{label}: {', '.join(values)}")
    return "; ".join(parts)


def merge_attributes(
    base: dict[str, list[str]], updates: dict[str, list[str]]
) -> dict[str, list[str]]:
    """Union values per key, case-insensitively, keeping first spellings."""
    merged = {key: list(values) for key, values in base.items()}
    for key, values in updates.items():
        merged[key] = _union(merged.get(key, []), values)
    return merged


# ── Character updates ────────────────────────────────────


def parse_character_update(text: str, field_type: str = "auto") -> dict[str, Any] | None:
    """Parse a described change into structured attributes.

    Returns {field_type, parsed_data, natural_text}, or None for blank text.
    With field_type "auto" the type is guessed from the text itself.
    """
    natural = text.strip()
    if not natural:
        return None
    if field_type == "auto":
        field_type = get_field_type(natural)
    parse_as = field_type if field_type in _DEFAULT_SUBTYPE else "appearance"
    return {
        "field_type": field_type,
        "parsed_data": parse_attribute_text(natural, parse_as),
        "natural_text": natural,
    }
