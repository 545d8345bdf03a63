# tests/test_custom_rules.py

from docredact.core.definitions import EntitySource, EntityType
from docredact.core.domain import CustomRule
from docredact.logic.custom_rules import apply_custom_rules

TEXT = "Worked on Project Falcon and project falcon v2 at ACME."


def test_matches_case_insensitively_by_default():
    entities = apply_custom_rules(TEXT, [CustomRule(pattern=r"project\s+falcon")])
    assert [e.value for e in entities] == ["Project Falcon", "project falcon"]
    for entity in entities:
        assert entity.type == EntityType.CUSTOM
        assert entity.source == EntitySource.CUSTOM
        assert entity.confidence == 1.0
        assert entity.suggested == "[custom redacted]"
        assert TEXT[entity.start : entity.end] == entity.value


def test_case_sensitive_rule():
    rule = CustomRule(pattern="Project Falcon", case_sensitive=True)
    assert [e.value for e in apply_custom_rules(TEXT, [rule])] == ["Project Falcon"]


def test_disabled_rule_ignored():
    assert apply_custom_rules(TEXT, [CustomRule(pattern="ACME", enabled=False)]) == []


def test_invalid_rule_skipped_without_blocking_others():
    rules = [CustomRule(pattern="([unclosed", name="broken"), CustomRule(pattern="ACME")]
    assert [e.value for e in apply_custom_rules(TEXT, rules)] == ["ACME"]


def test_empty_matches_ignored():
    assert apply_custom_rules(TEXT, [CustomRule(pattern="x*")]) == []


def test_ids_unique():
    rules = [CustomRule(pattern="falcon"), CustomRule(pattern="ACME")]
    ids = [e.id for e in apply_custom_rules(TEXT, rules)]
    assert len(ids) == len(set(ids)) == 3
