# docredact/logic/patterns.py

"""Pattern recognizers for structured PII (email, phone, SSN, ...).

Each category is a presidio PatternRecognizer fed from patterns.yaml and
checked by a category validator. Detection is synchronous and total: any
string yields a (possibly empty) list of entities.
"""

import logging
from typing import Dict, List, Optional

import regex
from presidio_analyzer import Pattern, PatternRecognizer, RecognizerResult

from docredact.core.definitions import EntitySource
from docredact.core.domain import Entity
from docredact.core.loader import PatternLoader
from docredact.logic.validators import get_validator

logger = logging.getLogger(__name__)

# Case-sensitivity is expressed per pattern in patterns.yaml
PATTERN_FLAGS = regex.MULTILINE

_PATTERN_CACHE: Dict[str, List[Pattern]] = {}
_RECOGNIZERS: Optional[List["CategoryRecognizer"]] = None


def _get_cached_patterns(entity_type: str) -> List[Pattern]:
    """Retrieves list of Pattern objects from cache or creates them."""
    if entity_type in _PATTERN_CACHE:
        return _PATTERN_CACHE[entity_type]

    loader = PatternLoader.get_instance()
    patterns = [
        Pattern(name=p["name"], regex=p["regex"], score=float(p["score"]))
        for p in loader.get_patterns(entity_type)
    ]

    _PATTERN_CACHE[entity_type] = patterns
    return patterns


class CategoryRecognizer(PatternRecognizer):
    """Pattern recognizer for one PII category with its validator."""

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        self.validator = get_validator(entity_type)

        super().__init__(
            supported_entity=entity_type,
            name=f"Pattern_{entity_type}_Recognizer",
            patterns=_get_cached_patterns(entity_type),
            global_regex_flags=PATTERN_FLAGS,
        )

    def validate_result(self, pattern_text: str) -> Optional[bool]:
        if not self.validator:
            return None
        return self.validator.validate(pattern_text)

    def scan(self, text: str) -> List[RecognizerResult]:
        """Returns non-overlapping matches of this category, by position."""
        results = self.analyze(text=text, entities=[self.entity_type])
        return _drop_overlaps(results)


def _drop_overlaps(results: List[RecognizerResult]) -> List[RecognizerResult]:
    """Keeps the earliest (then longest) of overlapping matches."""
    ordered = sorted(results, key=lambda r: (r.start, -(r.end - r.start)))
    kept: List[RecognizerResult] = []
    for result in ordered:
        if kept and result.start < kept[-1].end:
            continue
        kept.append(result)
    return kept


def create_pattern_recognizers() -> List[CategoryRecognizer]:
    """Create one recognizer per category that has patterns configured."""
    loader = PatternLoader.get_instance()
    recognizers = []

    for entity_type in loader.get_pattern_types():
        if not loader.get_patterns(entity_type):
            logger.warning(
                f"Skipping Pattern Recognizer for {entity_type}: No patterns found."
            )
            continue
        recognizers.append(CategoryRecognizer(entity_type))

    logger.info(f"Initialized {len(recognizers)} pattern recognizers")
    return recognizers


def get_pattern_recognizers() -> List[CategoryRecognizer]:
    """Returns the process-wide recognizer set, building it on first use."""
    global _RECOGNIZERS
    if _RECOGNIZERS is None:
        _RECOGNIZERS = create_pattern_recognizers()
    return _RECOGNIZERS


def detect_pattern_pii(text: str) -> List[Entity]:
    """Detect structured PII with the pattern recognizers.

    Overlaps are removed within a category only; overlaps across categories
    are left for the entity merger to resolve.

    Args:
        text: Text to analyze (never modified)

    Returns:
        Entities ordered by category then position, with confidence 1.0
    """
    if not text or not text.strip():
        return []

    entities: List[Entity] = []
    counter = 0

    for recognizer in get_pattern_recognizers():
        try:
            results = recognizer.scan(text)
        except Exception:
            # A broken pattern must not take detection down with it
            logger.error(
                "Pattern recognizer failed",
                exc_info=True,
                extra={"entity_type": recognizer.entity_type, "text_length": len(text)},
            )
            continue

        for result in results:
            entities.append(
                Entity(
                    id=f"pattern-{recognizer.entity_type}-{counter}",
                    type=recognizer.entity_type,
                    value=text[result.start : result.end],
                    start=result.start,
                    end=result.end,
                    confidence=1.0,
                    redact=True,
                    source=EntitySource.PATTERN,
                )
            )
            counter += 1

    logger.debug(
        "Pattern detection completed",
        extra={"entity_count": len(entities), "text_length": len(text)},
    )
    return entities
