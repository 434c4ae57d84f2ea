"""Tests for tag and attribute text parsing."""

from story_engine.parsers import (
    attribute_to_text,
    format_tag_name,
    get_field_type,
    merge_attributes,
    normalize_category,
    parse_attribute_text,
    parse_character_update,
    parse_tags_from_string,
    parse_values,
)


# ── Tags ─────────────────────────────────────────────────


def test_format_tag_name():
    assert format_tag_name("  dark   fantasy ") == "Dark Fantasy"


def test_parse_tags_dedupes_case_insensitively():
    assert parse_tags_from_string(" dark fantasy, Romance, dark  Fantasy,, ") == [
        "Dark Fantasy", "Romance",
    ]


# ── Field types and categories ───────────────────────────


def test_get_field_type():
    assert get_field_type("Eye colour") == "appearance"
    assert get_field_type("mood swings") == "personality"
    assert get_field_type("Perfume") == "scents"
    assert get_field_type("weapon") == "other"


def test_normalize_category():
    assert normalize_category("The Eye Color") == "eyes"
    assert normalize_category("Hair Style") == "hair"
    assert normalize_category("Scent") == "scents"
    assert normalize_category("!!!") == "general"


def test_parse_values_strips_scent_filler():
    assert parse_values("smells of lavender; pine.") == ["Lavender", "Pine"]


# ── Attribute text ───────────────────────────────────────


def test_key_value_segments():
    assert parse_attribute_text("Hair: long, auburn; eyes: green") == {
        "hair.color": ["Long", "Auburn"],
        "eyes.color": ["Green"],
    }


def test_parenthetical_category():
    assert parse_attribute_text("soft, wavy (hair)") == {"hair.style": ["Soft", "Wavy"]}


def test_keyword_inference():
    assert parse_attribute_text("curly red locks") == {"hair.color": ["Curly Red Locks"]}


def test_fallback_keys_per_field_type():
    assert parse_attribute_text("gentle and kind", "personality") == {
        "personality.traits": ["Gentle And Kind"],
    }
    assert parse_attribute_text("tall", "appearance") == {"general.appearance": ["Tall"]}
    assert parse_attribute_text("smells of lavender, pine", "scents") == {
        "general.scents": ["Lavender", "Pine"],
    }


def test_scent_key_gets_scent_subtype():
    assert parse_attribute_text("Scent: lavender") == {"scents.fragrance": ["Lavender"]}


def test_blank_text():
    assert parse_attribute_text("   ") == {}


def test_attribute_to_text():
    text = attribute_to_text({
        "hair.color": ["Red", "Gold"],
        "general.appearance": ["Tall"],
        "eyes.color": [],
    })
    assert text == "Hair (color): Red, Gold; General: Tall"


def test_merge_attributes_keeps_first_spelling():
    merged = merge_attributes(
        {"hair.color": ["Red"]},
        {"hair.color": ["red", "Blue"], "eyes.color": ["Green"]},
    )
    assert merged == {"hair.color": ["Red", "Blue"], "eyes.color": ["Green"]}


# ── Character updates ────────────────────────────────────


def test_parse_character_update_auto():
    update = parse_character_update("Her hair: silver")
    assert update == {
        "field_type": "appearance",
        "parsed_data": {"hair.color": ["Silver"]},
        "natural_text": "Her hair: silver",
    }


def test_parse_character_update_blank():
    assert parse_character_update("   ") is None
