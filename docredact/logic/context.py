# docredact/logic/context.py

"""Context-aware redaction decisions.

Decides, per entity, whether it belongs to the document owner (redact) or is
incidental (keep), using the entity type, where it sits in the document and
how close it is to contact details.
"""

import logging
from dataclasses import replace
from functools import lru_cache
from typing import List, Optional, Sequence

import regex

from docredact.core.definitions import CONTACT_TYPES, SENSITIVE_TYPES, EntityType
from docredact.core.domain import DocumentStructure, Entity, RedactionDecision
from docredact.core.loader import PatternLoader
from docredact.logic.structure import analyze_document_structure, is_in_personal_section

logger = logging.getLogger(__name__)

CONTEXT_WINDOW = 200
LABEL_WINDOW = 50

FIRST_LAST_PATTERN = regex.compile(r"^[A-Z][a-z]+\s+[A-Z][a-z]+\s*$")


class Reason:
    """Decision reasons reported alongside every verdict."""

    SENSITIVE_CONTACT = "sensitive_contact"
    URL = "url"
    PERSONAL_NAME = "personal_name"
    REFERENCE_NAME = "reference_name"
    INSTITUTION = "institution"
    UNCLEAR_ORG = "unclear_org"
    PERSONAL_LOCATION = "personal_location"
    LOCATION_PUBLIC = "location_public"
    CUSTOM_RULE = "custom_rule"
    DEFAULT = "default"


@lru_cache(maxsize=1)
def _label_pattern() -> regex.Pattern:
    labels = PatternLoader.get_instance().get_vocabulary("personal_labels")
    alternation = "|".join(regex.escape(label) for label in labels)
    return regex.compile(rf"\b(?:{alternation})\s*:?\s*$", regex.IGNORECASE)


@lru_cache(maxsize=1)
def _institution_pattern() -> regex.Pattern:
    keywords = PatternLoader.get_instance().get_vocabulary("institution_keywords")
    alternation = "|".join(regex.escape(k) for k in keywords)
    return regex.compile(rf"\b(?:{alternation})\b", regex.IGNORECASE)


def is_near_contact_info(
    entity: Entity,
    all_entities: Sequence[Entity],
    window: int = CONTEXT_WINDOW,
) -> bool:
    """True when an email, phone or URL entity sits within window characters.

    Either the contact span intersects [start - window, end + window), or its
    start lies within window characters of this entity's start.
    """
    low = entity.start - window
    high = entity.end + window
    for other in all_entities:
        if other is entity or other.type not in CONTACT_TYPES:
            continue
        if other.start < high and other.end > low:
            return True
        if abs(other.start - entity.start) < window:
            return True
    return False


def has_personal_label(entity: Entity, text: str, window: int = LABEL_WINDOW) -> bool:
    """True when the text just before a name is a label such as 'Name:'."""
    preceding = text[max(0, entity.start - window) : entity.start].strip()
    if not preceding:
        return False
    return bool(_label_pattern().search(preceding) or FIRST_LAST_PATTERN.match(preceding))


def is_proper_institution(value: str, text: str) -> bool:
    """An organization is an institution if its name says so or it recurs."""
    if _institution_pattern().search(value):
        return True
    if not value.strip():
        return False
    occurrences = len(regex.findall(regex.escape(value), text, flags=regex.IGNORECASE))
    return occurrences >= 2


def should_redact_entity(
    entity: Entity,
    full_text: str,
    all_entities: Sequence[Entity],
    structure: Optional[DocumentStructure] = None,
    window: int = CONTEXT_WINDOW,
    label_window: int = LABEL_WINDOW,
) -> RedactionDecision:
    """Decide whether an entity should be redacted by default.

    Rules are evaluated in order and the first match wins. Organizations are
    never auto-redacted; they are only classified for manual review.

    Args:
        entity: Entity to decide on
        full_text: Text the entity was detected in
        all_entities: Every entity detected in the same pass
        structure: Precomputed structure of full_text, computed when omitted
        window: Proximity window for contact information
        label_window: Characters before a name checked for labels

    Returns:
        RedactionDecision with the verdict and its reason
    """
    if entity.type in SENSITIVE_TYPES:
        return RedactionDecision(True, Reason.SENSITIVE_CONTACT)

    if entity.type == EntityType.URL:
        return RedactionDecision(True, Reason.URL)

    if structure is None:
        structure = analyze_document_structure(full_text)

    if entity.type == EntityType.NAME:
        if (
            is_in_personal_section(structure, entity.start)
            or is_near_contact_info(entity, all_entities, window)
            or has_personal_label(entity, full_text, label_window)
        ):
            return RedactionDecision(True, Reason.PERSONAL_NAME)
        return RedactionDecision(False, Reason.REFERENCE_NAME)

    if entity.type == EntityType.ORGANIZATION:
        if is_proper_institution(entity.value, full_text):
            return RedactionDecision(False, Reason.INSTITUTION)
        return RedactionDecision(False, Reason.UNCLEAR_ORG)

    if entity.type == EntityType.LOCATION:
        if is_in_personal_section(structure, entity.start) or is_near_contact_info(
            entity, all_entities, window
        ):
            return RedactionDecision(True, Reason.PERSONAL_LOCATION)
        return RedactionDecision(False, Reason.LOCATION_PUBLIC)

    if entity.type == EntityType.CUSTOM:
        return RedactionDecision(True, Reason.CUSTOM_RULE)

    return RedactionDecision(False, Reason.DEFAULT)


def annotate_entities(
    entities: Sequence[Entity],
    full_text: str,
    structure: Optional[DocumentStructure] = None,
    window: int = CONTEXT_WINDOW,
    label_window: int = LABEL_WINDOW,
) -> List[Entity]:
    """Return copies of every entity with redact and reason set from context."""
    if structure is None:
        structure = analyze_document_structure(full_text)

    annotated = []
    for entity in entities:
        decision = should_redact_entity(
            entity, full_text, entities, structure, window, label_window
        )
        annotated.append(replace(entity, redact=decision.should_redact, reason=decision.reason))
    return annotated


def apply_context_aware_filtering(
    entities: Sequence[Entity],
    full_text: str,
    structure: Optional[DocumentStructure] = None,
    window: int = CONTEXT_WINDOW,
    label_window: int = LABEL_WINDOW,
) -> List[Entity]:
    """Annotate entities and keep only those that should be redacted."""
    annotated = annotate_entities(entities, full_text, structure, window, label_window)
    kept = [entity for entity in annotated if entity.redact]

    logger.debug(
        "Context-aware filtering applied",
        extra={"candidate_count": len(annotated), "redact_count": len(kept)},
    )
    return kept
