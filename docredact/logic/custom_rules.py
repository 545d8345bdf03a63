# docredact/logic/custom_rules.py

"""User-defined detection rules."""

import logging
from typing import Iterable, List

import regex

from docredact.core.definitions import EntitySource, EntityType
from docredact.core.domain import CustomRule, Entity

logger = logging.getLogger(__name__)


def apply_custom_rules(text: str, rules: Iterable[CustomRule]) -> List[Entity]:
    """Match enabled custom rules against text.

    Invalid expressions are logged and skipped, so a bad rule never blocks
    detection. Empty matches are ignored.

    Args:
        text: Text to analyze
        rules: Rules supplied by the user

    Returns:
        Entities with source 'custom' and confidence 1.0
    """
    if not text or not text.strip():
        return []

    entities: List[Entity] = []
    counter = 0

    for rule in rules:
        if not rule.enabled or not rule.pattern:
            continue

        flags = regex.MULTILINE if rule.case_sensitive else regex.MULTILINE | regex.IGNORECASE
        try:
            compiled = regex.compile(rule.pattern, flags)
        except regex.error as e:
            logger.warning(
                f"Skipping invalid custom rule: {e}",
                extra={"rule_name": rule.name, "pattern": rule.pattern},
            )
            continue

        for match in compiled.finditer(text):
            start, end = match.span()
            if start == end:
                continue
            entities.append(
                Entity(
                    id=f"custom-{counter}",
                    type=rule.type or EntityType.CUSTOM,
                    value=text[start:end],
                    start=start,
                    end=end,
                    confidence=1.0,
                    redact=True,
                    source=EntitySource.CUSTOM,
                )
            )
            counter += 1

    return entities
