# docredact/service/session.py

"""Live re-detection session and UI redaction toggles."""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from docredact.core.domain import CustomRule, DetectionResult, Entity
from docredact.service.pipeline import DetectionPipeline

logger = logging.getLogger(__name__)


class LiveDetectionSession:
    """Runs detection for a document that keeps changing.

    Every call to detect() starts a new generation. When a newer call has
    started by the time a pass finishes, the older result is discarded and
    None is returned, so callers only ever apply the latest result.
    """

    def __init__(self, pipeline: DetectionPipeline) -> None:
        self.pipeline = pipeline
        self.generation = 0
        self.latest: Optional[DetectionResult] = None

    async def detect(
        self,
        text: str,
        custom_rules: Optional[Sequence[CustomRule]] = None,
    ) -> Optional[DetectionResult]:
        self.generation += 1
        token = self.generation

        result = await self.pipeline.detect(text, custom_rules)

        if token != self.generation:
            logger.debug(
                "Discarding superseded detection result",
                extra={"generation": token, "current_generation": self.generation},
            )
            return None

        self.latest = result
        return result


def toggle_redact(entities: Sequence[Entity], entity_id: str) -> List[Entity]:
    """Returns a new list with the redact flag of one entity flipped."""
    return [
        replace(entity, redact=not entity.redact) if entity.id == entity_id else entity
        for entity in entities
    ]


def set_all_redact(entities: Sequence[Entity], value: bool) -> List[Entity]:
    """Returns a new list with every entity's redact flag set to value."""
    return [replace(entity, redact=value) for entity in entities]
