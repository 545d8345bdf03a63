# docredact/logic/export.py

"""Export helpers: applying redactions and summarizing detections."""

import logging
from typing import Any, Dict, List, Sequence

from docredact.core.definitions import EntitySource
from docredact.core.domain import Entity

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.7


def apply_redactions(text: str, entities: Sequence[Entity]) -> str:
    """Replace every entity marked for redaction with its suggested label.

    Spans are replaced from the end of the text backwards so earlier
    offsets stay valid while the text changes length.

    Args:
        text: Source text the entities were detected in
        entities: Non-overlapping entities; those with redact=False are kept

    Returns:
        Redacted copy of text
    """
    if not text:
        return text

    targets = sorted(
        (entity for entity in entities if entity.redact),
        key=lambda e: e.start,
        reverse=True,
    )

    redacted = text
    for entity in targets:
        if entity.start < 0 or entity.end > len(text) or entity.start >= entity.end:
            logger.warning(
                "Skipping entity with invalid span",
                extra={"entity_id": entity.id, "start": entity.start, "end": entity.end},
            )
            continue
        redacted = redacted[: entity.start] + entity.suggested + redacted[entity.end :]

    logger.info(
        "Redactions applied",
        extra={"redaction_count": len(targets), "text_length": len(text)},
    )
    return redacted


def get_detection_stats(entities: Sequence[Entity]) -> Dict[str, Any]:
    """Counts entities by source, type and confidence band."""
    stats: Dict[str, Any] = {
        "total": len(entities),
        "by_source": {EntitySource.PATTERN: 0, EntitySource.ML: 0, EntitySource.CUSTOM: 0},
        "by_type": {},
        "avg_confidence": 0.0,
        "high_confidence": 0,
        "medium_confidence": 0,
        "low_confidence": 0,
    }

    if not entities:
        return stats

    for entity in entities:
        stats["by_source"][entity.source] = stats["by_source"].get(entity.source, 0) + 1
        stats["by_type"][entity.type] = stats["by_type"].get(entity.type, 0) + 1

        if entity.confidence >= HIGH_CONFIDENCE:
            stats["high_confidence"] += 1
        elif entity.confidence >= MEDIUM_CONFIDENCE:
            stats["medium_confidence"] += 1
        else:
            stats["low_confidence"] += 1

    stats["avg_confidence"] = sum(e.confidence for e in entities) / len(entities)
    return stats


def filter_by_confidence(entities: Sequence[Entity], threshold: float = 0.5) -> List[Entity]:
    return [entity for entity in entities if entity.confidence >= threshold]


def group_by_type(entities: Sequence[Entity]) -> Dict[str, List[Entity]]:
    grouped: Dict[str, List[Entity]] = {}
    for entity in entities:
        grouped.setdefault(entity.type, []).append(entity)
    return grouped
