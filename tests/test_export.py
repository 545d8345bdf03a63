# tests/test_export.py

from dataclasses import replace

from docredact.core.definitions import EntitySource, EntityType
from docredact.logic.export import (
    apply_redactions,
    filter_by_confidence,
    get_detection_stats,
    group_by_type,
)

from conftest import make_entity

TEXT = "Jane Doe, jane@example.com, (555) 123-4567"


def _entities():
    return [
        make_entity(EntityType.NAME, 0, 8, TEXT, EntitySource.ML, 0.85),
        make_entity(EntityType.EMAIL, 10, 26, TEXT),
        make_entity(EntityType.PHONE, 28, 42, TEXT),
    ]


def test_back_to_front_replacement_keeps_offsets_valid():
    redacted = apply_redactions(TEXT, _entities())
    assert redacted == "[Name Redacted], [email redacted], [phone redacted]"


def test_unredacted_entities_left_in_place():
    entities = _entities()
    entities[1] = replace(entities[1], redact=False)
    redacted = apply_redactions(TEXT, entities)
    assert redacted == "[Name Redacted], jane@example.com, [phone redacted]"


def test_input_order_does_not_matter():
    assert apply_redactions(TEXT, list(reversed(_entities()))) == apply_redactions(
        TEXT, _entities()
    )


def test_source_text_not_modified():
    text = TEXT
    apply_redactions(text, _entities())
    assert text == TEXT


def test_stats():
    stats = get_detection_stats(_entities())
    assert stats["total"] == 3
    assert stats["by_source"] == {"pattern": 2, "ml": 1, "custom": 0}
    assert stats["by_type"] == {"name": 1, "email": 1, "phone": 1}
    assert stats["high_confidence"] == 2
    assert stats["medium_confidence"] == 1
    assert stats["low_confidence"] == 0
    assert round(stats["avg_confidence"], 2) == 0.95


def test_stats_empty():
    assert get_detection_stats([])["total"] == 0


def test_filter_and_group():
    entities = _entities()
    assert len(filter_by_confidence(entities, 0.9)) == 2
    grouped = group_by_type(entities)
    assert sorted(grouped) == ["email", "name", "phone"]
    assert grouped["email"][0].value == "jane@example.com"
