# docredact/logic/filters.py

"""False-positive suppression for recognizer output.

Only organization spans are examined; the recognizer frequently tags
skills, tools and generic nouns in resumes as organizations.
"""

import logging
import math
from typing import List, Optional

from docredact.core.definitions import EntityType
from docredact.core.domain import Entity
from docredact.core.loader import PatternLoader

logger = logging.getLogger(__name__)

GENERIC_SHARE = 0.7
SHORT_ACRONYM_LENGTH = 4
SHORT_WORD_LENGTH = 8
TINY_WORD_LENGTH = 3


def organization_rejection(
    entity: Entity,
    min_confidence: float = 0.75,
    trusted_confidence: float = 0.9,
) -> Optional[str]:
    """Returns why an organization span is a false positive, or None.

    Lexical checks run first; a multi-word span scored above
    trusted_confidence then skips the confidence floor.
    """
    loader = PatternLoader.get_instance()
    denylist = loader.get_vocabulary_set("org_denylist")
    generic = loader.get_vocabulary_set("generic_words")
    tech = loader.get_vocabulary_set("tech_keywords")

    value = entity.value.strip()
    lower_value = value.lower()
    words = value.split()

    if not words:
        return "empty"

    if lower_value in denylist:
        return "denylisted"

    if any(word.lower() in denylist for word in words):
        return "denylisted_word"

    generic_count = sum(1 for word in words if word.lower() in generic)
    if generic_count >= math.ceil(len(words) * GENERIC_SHARE):
        return "mostly_generic"

    if len(words) == 1 and len(value) < SHORT_ACRONYM_LENGTH:
        return "short_acronym"

    if lower_value in tech:
        return "tech_keyword"

    if len(words) == 1 and len(value) < SHORT_WORD_LENGTH:
        return "short_fragment"

    if len(words) >= 3 and all(
        word.lower() in generic or word.lower() in tech or len(word) <= TINY_WORD_LENGTH
        for word in words
    ):
        return "all_common_words"

    if entity.confidence > trusted_confidence and len(value) >= 3 and len(words) >= 2:
        return None

    if entity.confidence < min_confidence:
        return "low_confidence"

    return None


def filter_false_positives(
    entities: List[Entity],
    min_confidence: float = 0.75,
    trusted_confidence: float = 0.9,
) -> List[Entity]:
    """Drop organization spans that look like generic words or skills.

    Args:
        entities: Recognizer entities (after adjacency coalescing)
        min_confidence: Confidence floor for organizations
        trusted_confidence: Score above which multi-word organizations
            bypass the floor

    Returns:
        Entities that survived, in input order; non-organization entities
        are returned untouched
    """
    kept: List[Entity] = []
    for entity in entities:
        if entity.type != EntityType.ORGANIZATION:
            kept.append(entity)
            continue

        reason = organization_rejection(entity, min_confidence, trusted_confidence)
        if reason:
            logger.debug(
                "Filtered organization false positive",
                extra={"value": entity.value, "filter_reason": reason},
            )
            continue
        kept.append(entity)

    return kept
