# docredact/logic/merger.py

"""Entity merging: adjacency coalescing and cross-source overlap resolution."""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from docredact.core.definitions import EntityType, priority_rank
from docredact.core.domain import Entity

logger = logging.getLogger(__name__)

NAME_MAX_GAP = 3
DEFAULT_MAX_GAP = 1


def _max_gap(entity_type: str) -> int:
    return NAME_MAX_GAP if entity_type == EntityType.NAME else DEFAULT_MAX_GAP


def coalesce_adjacent(entities: Sequence[Entity], text: Optional[str] = None) -> List[Entity]:
    """Join same-type spans separated by a small gap.

    Names may span a gap of up to 3 characters ("First Middle Last" split by
    spaces or a newline); every other type needs a gap of at most 1.

    Args:
        entities: Spans from a single source
        text: Source text; when given the joined value is the exact slice,
            otherwise the two values are joined by a single space

    Returns:
        Coalesced entities ordered by start
    """
    if not entities:
        return []

    ordered = sorted(entities, key=lambda e: e.start)
    merged: List[Entity] = []
    current = ordered[0]

    for nxt in ordered[1:]:
        gap = nxt.start - current.end
        if nxt.type == current.type and gap <= _max_gap(current.type):
            end = max(current.end, nxt.end)
            if text is not None:
                value = text[current.start : end]
            else:
                value = f"{current.value} {nxt.value.strip()}"
            current = replace(
                current,
                value=value,
                end=end,
                confidence=max(current.confidence, nxt.confidence),
            )
        else:
            merged.append(current)
            current = nxt

    merged.append(current)
    return merged


def resolve_overlaps(entities: Sequence[Entity]) -> List[Entity]:
    """Resolve overlapping spans by type priority.

    Entities are walked in start order (stable, so input order breaks
    ties). An entity that overlaps accepted ones replaces them only when it
    strictly outranks every one of them; otherwise it is dropped.

    Returns:
        Non-overlapping entities ordered by start
    """
    ordered = sorted(entities, key=lambda e: e.start)
    accepted: List[Entity] = []

    for entity in ordered:
        overlapping = [a for a in accepted if a.overlaps(entity)]
        if not overlapping:
            accepted.append(entity)
            continue

        rank = priority_rank(entity.type)
        if all(rank < priority_rank(a.type) for a in overlapping):
            logger.debug(
                "Overlap resolved by priority",
                extra={
                    "winner_type": entity.type,
                    "loser_types": [a.type for a in overlapping],
                },
            )
            accepted = [a for a in accepted if not any(a is o for o in overlapping)]
            accepted.append(entity)

    accepted.sort(key=lambda e: e.start)
    return accepted


def merge_entities(
    pattern_entities: Sequence[Entity],
    ml_entities: Sequence[Entity] = (),
    custom_entities: Sequence[Entity] = (),
) -> List[Entity]:
    """Pool pattern, recognizer and custom entities into one clean list.

    The pooling order (pattern, then recognizer, then custom) decides ties
    between equal-priority overlaps and is part of the contract.

    Returns:
        Non-overlapping entities ordered by start with ids pii-0..n-1
    """
    pooled = [*pattern_entities, *ml_entities, *custom_entities]
    resolved = resolve_overlaps(pooled)

    merged = [replace(entity, id=f"pii-{index}") for index, entity in enumerate(resolved)]

    logger.debug(
        "Entities merged",
        extra={
            "pattern_count": len(pattern_entities),
            "ml_count": len(ml_entities),
            "custom_count": len(custom_entities),
            "merged_count": len(merged),
        },
    )
    return merged
