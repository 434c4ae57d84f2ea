"""Tests for character state extraction."""

from story_engine.extraction import (
    ExtractionOptions,
    StateExtractor,
    extract_character_state,
    options_for_mode,
)


def _fields(report):
    return [(r.field, r.value, r.confidence) for r in report.results]


def test_state_change_is_high_confidence():
    report = extract_character_state("Her hair is now silver.")
    assert _fields(report) == [("appearance.hair", "silver", "high")]
    [result] = report.results
    assert result.tier == "simple"
    assert result.field_type == "appearance"
    assert result.parsed_data == {"general.appearance": ["Silver"]}


def test_emotion_detected():
    report = extract_character_state("She felt anxious about the storm.")
    assert _fields(report) == [("personality.mood", "anxious about the storm", "medium")]


def test_non_emotion_statement_ignored():
    assert extract_character_state("He was a blacksmith.").results == []


def test_grooming_is_low_confidence():
    text = "She brushed her hair until it shone."
    assert extract_character_state(text).results == []
    report = extract_character_state(text, min_confidence="low")
    assert _fields(report) == [("appearance.hair", "brushed until it shone", "low")]


def test_conservative_skips_descriptive_sentences():
    text = "Her eyes were bright with tears, and she smiled."
    assert extract_character_state(text, mode="conservative").results == []
    report = extract_character_state(text, mode="balanced")
    assert _fields(report) == [("appearance.eyes", "bright with tears", "medium")]
    assert report.results[0].tier == "structured"


def test_scent_phrase():
    report = extract_character_state("The room carried a scent of pine and smoke.", mode="balanced")
    assert _fields(report) == [("scents_aromas.scent", "pine and smoke", "medium")]


def test_state_change_not_repeated_by_descriptive_tier():
    report = extract_character_state("Her hair is now silver.", mode="balanced")
    assert len(report.results) == 1


def test_duplicates_collapsed():
    report = extract_character_state("Her hair is now silver. Her hair is now silver.")
    assert len(report.results) == 1


def test_aggressive_contextual_clues():
    report = extract_character_state(
        "They arrived at the old mill, wearing heavy boots.",
        mode="aggressive", min_confidence="low",
    )
    found = {(r.field, r.value) for r in report.results}
    assert ("location", "old mill") in found
    assert ("appearance.clothing", "heavy boots") in found
    assert all(r.tier == "advanced" for r in report.results)


def test_metadata():
    text = "Her hair is now silver. She felt relieved."
    report = extract_character_state(text)
    assert report.metadata["response_length"] == len(text)
    assert report.metadata["extraction_count"] == 2
    assert report.metadata["high_confidence_count"] == 1
    assert report.metadata["processing_time"] >= 0
    assert report.to_dict()["results"][0]["field"] == "appearance.hair"


def test_options_for_mode():
    conservative = options_for_mode("conservative")
    assert (conservative.enable_structured, conservative.enable_advanced) == (False, False)
    balanced = options_for_mode("balanced")
    assert (balanced.enable_structured, balanced.enable_advanced) == (True, False)
    aggressive = options_for_mode("aggressive", "low")
    assert (aggressive.enable_structured, aggressive.enable_advanced) == (True, True)
    assert aggressive.min_confidence == "low"


def test_disabled_tiers_extract_nothing():
    extractor = StateExtractor(ExtractionOptions(
        enable_simple=False, enable_structured=False, enable_advanced=False,
    ))
    assert extractor.extract("Her hair is now silver.").results == []


def test_state_change_on_non_character_field_ignored():
    report = extract_character_state("Their plan is now ruined. His name is now Bob.")
    assert report.results == []


def test_state_change_mixed_with_non_character_field():
    report = extract_character_state("His plan is now ruined. Her hair is now silver.")
    assert _fields(report) == [("appearance.hair", "silver", "high")]


def test_descriptive_non_character_field_ignored():
    report = extract_character_state("Her voice was soft and low tonight.", mode="balanced")
    assert report.results == []
