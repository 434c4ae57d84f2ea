"""Character state extraction from model responses.

Scans narrative text for statements that change a character ("her hair is
now silver", "she felt anxious", "a scent of pine") and turns them into
field updates with a confidence rating. Three tiers of patterns run in
order of reliability:

    simple      explicit state changes, emotions, grooming actions
    structured  descriptive sentences and scent phrases
    advanced    loose contextual clues (location, habits, clothing)

Modes pick the tiers: conservative = simple, balanced = simple + structured,
aggressive = all three.
"""

import logging
import re
import time
from dataclasses import asdict, dataclass
from dataclasses import field as dataclass_field
from typing import Any, Literal

from story_engine.parsers import get_field_type, parse_character_update

logger = logging.getLogger(__name__)

Confidence = Literal["low", "medium", "high"]
Mode = Literal["conservative", "balanced", "aggressive"]

CONFIDENCE_RANK = {"low": 1, "medium": 2, "high": 3}

_EMOTION_WORDS = {
    "happy", "sad", "angry", "anxious", "calm", "excited", "nervous", "content",
    "afraid", "scared", "joyful", "lonely", "tired", "relieved", "curious",
    "embarrassed", "confident", "shy", "furious", "hopeful", "worried",
}

# ── Patterns ─────────────────────────────────────────────

_STATE_CHANGE = re.compile(
    r"\b(?:my|her|his|their)\s+(\w+)\s+(?:is|are|became?|turned?)\s+now\s+([^.!?;]+)",
    re.IGNORECASE,
)
_EMOTION = re.compile(
    r"\b(?:I|she|he|they)\s+(?:feel|felt|am|is|was|became?)\s+([^.!?;,]+)",
    re.IGNORECASE,
)
_GROOMING = re.compile(
    r"\b(brushed|adjusted|styled|fixed)\s+(?:my|her|his|their)\s+(hair|clothes|makeup|face)\b([^.!?;]*)",
    re.IGNORECASE,
)
_DESCRIPTIVE = re.compile(
    r"\b(?:my|her|his|their)\s+(hair|eyes|skin|lips|voice|clothes|dress|outfit)\s+"
    r"(?:was|were|is|are|looked|seemed|appeared)\s+([^,;]+)",
    re.IGNORECASE,
)
_SCENT = re.compile(
    r"\b(?:smell|scent|aroma|fragrance)s?\s+(?:of|like)?\s*([^,;.!?]+)",
    re.IGNORECASE,
)
_LOCATION_CLUE = re.compile(
    r"\b(?:in|at|inside|near|entered|arrived at)\s+the\s+([a-z]+(?:\s[a-z]+)?)",
    re.IGNORECASE,
)
_HABIT_CLUE = re.compile(
    r"\b(?:always|never|usually|tends to|often)\s+([^,;.!?]+)",
    re.IGNORECASE,
)
_CLOTHING_CLUE = re.compile(
    r"\b(?:wearing|wore|dressed in)\s+([^,;.!?]+)",
    re.IGNORECASE,
)


@dataclass
class Extraction:
    """One proposed update to a character field."""

    field: str
    value: str
    confidence: Confidence
    tier: str
    source: str
    field_type: str = "other"
    parsed_data: dict[str, list[str]] = dataclass_field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ExtractionOptions:
    enable_simple: bool = True
    enable_structured: bool = True
    enable_advanced: bool = False
    min_confidence: Confidence = "low"


@dataclass
class ExtractionReport:
    results: list[Extraction]
    metadata: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "metadata": self.metadata,
        }


def _field_path(field_name: str) -> tuple[str, str]:
    """Return (field_type, storage path) for a bare field name like "hair"."""
    field_type = get_field_type(field_name)
    group = {
        "appearance": "appearance",
        "personality": "personality",
        "scents": "scents_aromas",
    }.get(field_type)
    name = field_name.lower()
    return field_type, f"{group}.{name}" if group else name


def _make(
    field_name: str, value: str, confidence: Confidence, tier: str, source: str,
    field_type: str | None = None,
) -> Extraction:
    value = value.strip()
    if field_type is None:
        field_type, path = _field_path(field_name)
    else:
        path = field_name
    parsed = parse_character_update(value, field_type if field_type != "other" else "auto")
    return Extraction(
        field=path,
        value=value,
        confidence=confidence,
        tier=tier,
        source=source.strip(),
        field_type=field_type,
        parsed_data=parsed["parsed_data"] if parsed else {},
    )


class StateExtractor:
    def __init__(self, options: ExtractionOptions | None = None) -> None:
        self.options = options or ExtractionOptions()

    # ── Tiers ────────────────────────────────────────────

    def _simple(self, text: str) -> list[Extraction]:
        found = []
        for m in _STATE_CHANGE.finditer(text):
            # Only body parts and traits; "his plan is now ruined" is not state
            if get_field_type(m.group(1)) == "other":
                continue
            found.append(_make(m.group(1), m.group(2), "high", "simple", m.group(0)))
        for m in _EMOTION.finditer(text):
            value = m.group(1).strip()
            first_word = value.split()[0].lower() if value else ""
            if get_field_type(value) == "personality" or first_word in _EMOTION_WORDS:
                found.append(_make(
                    "personality.mood", value, "medium", "simple", m.group(0),
                    field_type="personality",
                ))
        for m in _GROOMING.finditer(text):
            verb, target, rest = m.group(1), m.group(2).lower(), m.group(3)
            found.append(_make(
                f"appearance.{target}", f"{verb.lower()}{rest}", "low", "simple", m.group(0),
                field_type="appearance",
            ))
        return found

    def _structured(self, text: str) -> list[Extraction]:
        found = []
        for sentence in re.split(r"(?<=[.!?])\s+", text):
            if len(sentence.strip()) <= 10:
                continue
            for m in _DESCRIPTIVE.finditer(sentence):
                value = m.group(2).strip().rstrip(".!?")
                # "is now ..." is already reported by the simple tier
                if value.lower().startswith("now ") or get_field_type(m.group(1)) == "other":
                    continue
                found.append(_make(m.group(1), value, "medium", "structured", sentence))
            for m in _SCENT.finditer(sentence):
                if m.group(1).strip():
                    found.append(_make(
                        "scents_aromas.scent", m.group(1), "medium", "structured", sentence,
                        field_type="scents",
                    ))
        return found

    def _advanced(self, text: str) -> list[Extraction]:
        found = []
        for m in _LOCATION_CLUE.finditer(text):
            found.append(_make("location", m.group(1), "low", "advanced", m.group(0), field_type="other"))
        for m in _HABIT_CLUE.finditer(text):
            found.append(_make(
                "personality.habits", m.group(1), "low", "advanced", m.group(0),
                field_type="personality",
            ))
        for m in _CLOTHING_CLUE.finditer(text):
            found.append(_make(
                "appearance.clothing", m.group(1), "low", "advanced", m.group(0),
                field_type="appearance",
            ))
        return found

    # ── Entry point ──────────────────────────────────────

    def extract(self, text: str) -> ExtractionReport:
        started = time.perf_counter()
        candidates: list[Extraction] = []
        if self.options.enable_simple:
            candidates.extend(self._simple(text))
        if self.options.enable_structured:
            candidates.extend(self._structured(text))
        if self.options.enable_advanced:
            candidates.extend(self._advanced(text))

        floor = CONFIDENCE_RANK[self.options.min_confidence]
        results: list[Extraction] = []
        seen: set[tuple[str, str]] = set()
        for item in candidates:
            key = (item.field, item.value.lower())
            if key in seen or CONFIDENCE_RANK[item.confidence] < floor:
                continue
            seen.add(key)
            results.append(item)

        metadata = {
            "response_length": len(text),
            "extraction_count": len(results),
            "high_confidence_count": sum(1 for r in results if r.confidence == "high"),
            "processing_time": round((time.perf_counter() - started) * 1000, 3),
        }
        logger.debug("extracted %d state updates from %d chars", len(results), len(text))
        return ExtractionReport(results=results, metadata=metadata)


def options_for_mode(mode: Mode, min_confidence: Confidence = "medium") -> ExtractionOptions:
    return ExtractionOptions(
        enable_simple=True,
        enable_structured=mode in ("balanced", "aggressive"),
        enable_advanced=mode == "aggressive",
        min_confidence=min_confidence,
    )


def extract_character_state(
    text: str, mode: Mode = "conservative", min_confidence: Confidence = "medium"
) -> ExtractionReport:
    """Run the extractor configured for `mode`."""
    return StateExtractor(options_for_mode(mode, min_confidence)).extract(text)
