# tests/test_context.py

import pytest

from docredact.core.definitions import EntitySource, EntityType
from docredact.logic.context import (
    Reason,
    annotate_entities,
    apply_context_aware_filtering,
    has_personal_label,
    is_near_contact_info,
    is_proper_institution,
    should_redact_entity,
)

from conftest import make_entity

FILLER = (
    "Built data pipelines and reporting dashboards for several internal teams "
    "while mentoring junior engineers and reviewing designs."
)


def _long_document(body_sentence):
    paragraphs = ["Jane Doe\njane@example.com", FILLER, FILLER, FILLER, body_sentence, FILLER]
    return "\n\n".join(paragraphs)


def _find(text, type_, value, occurrence=0, source=EntitySource.ML):
    start = -1
    for _ in range(occurrence + 1):
        start = text.index(value, start + 1)
    return make_entity(type_, start, start + len(value), text, source)


@pytest.mark.parametrize(
    "entity_type",
    [EntityType.EMAIL, EntityType.PHONE, EntityType.SSN, EntityType.ADDRESS, EntityType.AGE],
)
def test_sensitive_types_always_redacted(entity_type):
    text = FILLER
    entity = make_entity(entity_type, 10, 20, text, EntitySource.PATTERN)
    decision = should_redact_entity(entity, text, [entity])
    assert decision.should_redact
    assert decision.reason == Reason.SENSITIVE_CONTACT


def test_url_always_redacted():
    text = FILLER
    entity = make_entity(EntityType.URL, 10, 20, text, EntitySource.PATTERN)
    assert should_redact_entity(entity, text, [entity]).reason == Reason.URL


def test_header_name_redacted_body_name_kept():
    text = _long_document("I collaborated with Jane Doe on the migration project.")
    header_name = _find(text, EntityType.NAME, "Jane Doe", 0)
    body_name = _find(text, EntityType.NAME, "Jane Doe", 1)
    email = _find(text, EntityType.EMAIL, "jane@example.com", source=EntitySource.PATTERN)
    entities = [header_name, email, body_name]

    header_decision = should_redact_entity(header_name, text, entities)
    body_decision = should_redact_entity(body_name, text, entities)

    assert header_decision.should_redact
    assert header_decision.reason == Reason.PERSONAL_NAME
    assert not body_decision.should_redact
    assert body_decision.reason == Reason.REFERENCE_NAME


def test_name_near_contact_info_redacted():
    text = _long_document("Reach Sam Lee at sam.lee@example.org for references.")
    name = _find(text, EntityType.NAME, "Sam Lee")
    email = _find(text, EntityType.EMAIL, "sam.lee@example.org", source=EntitySource.PATTERN)

    assert is_near_contact_info(name, [name, email])
    assert should_redact_entity(name, text, [name, email]).reason == Reason.PERSONAL_NAME


def test_name_far_from_contact_info():
    text = _long_document("I collaborated with Sam Lee on the migration project.")
    name = _find(text, EntityType.NAME, "Sam Lee")
    email = _find(text, EntityType.EMAIL, "jane@example.com", source=EntitySource.PATTERN)
    assert not is_near_contact_info(name, [name, email])


@pytest.mark.parametrize(
    "prefix",
    ["Name: ", "Candidate:\n", "Prepared by ", "Jordan Avery\n"],
)
def test_personal_labels(prefix):
    text = prefix + "Sam Lee"
    name = make_entity(EntityType.NAME, len(prefix), len(text), text, EntitySource.ML)
    assert has_personal_label(name, text)


def test_no_label_before_reference():
    text = "I collaborated with Sam Lee"
    name = make_entity(EntityType.NAME, 20, 27, text, EntitySource.ML)
    assert not has_personal_label(name, text)


def test_institutions():
    assert is_proper_institution("Google Inc.", "Senior Engineer - Google Inc.")
    assert is_proper_institution("Stanford University", "")
    assert is_proper_institution("Globex", "Globex hired me. Later Globex promoted me.")
    assert not is_proper_institution("Globex", "Globex hired me.")


def test_organizations_never_auto_redacted():
    text = "Contact: jane@example.com\nGlobex Globex\nInitech"
    email = _find(text, EntityType.EMAIL, "jane@example.com", source=EntitySource.PATTERN)
    repeated = _find(text, EntityType.ORGANIZATION, "Globex")
    unclear = _find(text, EntityType.ORGANIZATION, "Initech")

    entities = [email, repeated, unclear]
    decisions = [should_redact_entity(e, text, entities) for e in (repeated, unclear)]

    assert [d.should_redact for d in decisions] == [False, False]
    assert [d.reason for d in decisions] == [Reason.INSTITUTION, Reason.UNCLEAR_ORG]


def test_location_personal_vs_public():
    text = _long_document("Presented our results at a conference in Berlin last spring.")
    text = "Austin, TX\n" + text
    near = _find(text, EntityType.LOCATION, "Austin")
    far = _find(text, EntityType.LOCATION, "Berlin")
    email = _find(text, EntityType.EMAIL, "jane@example.com", source=EntitySource.PATTERN)
    entities = [near, email, far]

    assert should_redact_entity(near, text, entities).reason == Reason.PERSONAL_LOCATION
    far_decision = should_redact_entity(far, text, entities)
    assert not far_decision.should_redact
    assert far_decision.reason == Reason.LOCATION_PUBLIC


def test_custom_rule_redacted():
    text = FILLER
    entity = make_entity(EntityType.CUSTOM, 5, 10, text, EntitySource.CUSTOM)
    decision = should_redact_entity(entity, text, [entity])
    assert decision.should_redact
    assert decision.reason == Reason.CUSTOM_RULE


def test_annotate_returns_copies_and_filtering_keeps_redacted():
    text = _long_document("I collaborated with Jane Doe on the migration project.")
    header_name = _find(text, EntityType.NAME, "Jane Doe", 0)
    body_name = _find(text, EntityType.NAME, "Jane Doe", 1)
    email = _find(text, EntityType.EMAIL, "jane@example.com", source=EntitySource.PATTERN)
    entities = [header_name, email, body_name]

    annotated = annotate_entities(entities, text)
    assert [e.redact for e in annotated] == [True, True, False]
    assert all(e.reason for e in annotated)
    assert body_name.reason is None

    kept = apply_context_aware_filtering(entities, text)
    assert [e.value for e in kept] == ["Jane Doe", "jane@example.com"]
    assert kept[0].start == header_name.start
