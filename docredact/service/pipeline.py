# docredact/service/pipeline.py

"""Main detection and redaction service pipeline."""

import asyncio
import logging
import threading
from typing import List, Optional, Sequence, Tuple

from docredact.core.domain import CustomRule, DetectionResult, Entity
from docredact.core.exceptions import (
    ConfigurationError,
    DetectionTimeoutError,
    InitializationError,
    ModelUnavailableError,
    PipelineError,
    RecognizerError,
    ValidationError,
    WorkerCrashedError,
)
from docredact.engine.adapter import RecognizerAdapter
from docredact.engine.worker import create_worker_handle
from docredact.logic.context import annotate_entities
from docredact.logic.custom_rules import apply_custom_rules
from docredact.logic.export import apply_redactions, get_detection_stats
from docredact.logic.merger import merge_entities
from docredact.logic.patterns import detect_pattern_pii
from docredact.logic.structure import analyze_document_structure
from docredact.service.config import Settings, settings

logger = logging.getLogger(__name__)


class MlStatus:
    """Outcome of the recognizer leg of a detection pass."""

    OK = "ok"
    DISABLED = "disabled"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    CRASHED = "crashed"
    FAILED = "failed"
    SKIPPED = "skipped"


def _ml_status_for(error: Exception) -> str:
    if isinstance(error, DetectionTimeoutError):
        return MlStatus.TIMEOUT
    if isinstance(error, WorkerCrashedError):
        return MlStatus.CRASHED
    if isinstance(error, (ModelUnavailableError, InitializationError)):
        return MlStatus.UNAVAILABLE
    return MlStatus.FAILED


class DetectionPipeline:
    """Runs pattern matching and entity recognition, then merges and decides.

    The recognizer leg is optional: any recognizer failure degrades the
    pass to pattern and custom-rule results, with the reason recorded in
    metadata["ml_status"].
    """

    def __init__(
        self,
        adapter: Optional[RecognizerAdapter] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.adapter = adapter
        self.config = config or settings

    async def start(self) -> bool:
        """Loads the recognizer model if there is one.

        Returns:
            True when the recognizer is ready; failures are logged, not raised
        """
        if self.adapter is None:
            return False
        try:
            await self.adapter.initialize()
        except (InitializationError, RecognizerError):
            logger.warning("Recognizer unavailable; running pattern-only", exc_info=True)
            return False
        except Exception:
            logger.error("Unexpected recognizer startup failure; running pattern-only", exc_info=True)
            return False
        return True

    async def _detect_ml(self, text: str) -> Tuple[List[Entity], str]:
        if self.adapter is None:
            return [], MlStatus.DISABLED
        try:
            return await self.adapter.detect(text), MlStatus.OK
        except (RecognizerError, InitializationError) as e:
            status = _ml_status_for(e)
            logger.warning(
                "Recognizer failed; degrading to pattern-only detection",
                extra={"ml_status": status, "error_type": type(e).__name__},
            )
            return [], status
        except Exception:
            logger.error(
                "Unexpected recognizer failure; degrading to pattern-only detection",
                exc_info=True,
                extra={"ml_status": MlStatus.FAILED},
            )
            return [], MlStatus.FAILED

    async def detect(
        self,
        text: str,
        custom_rules: Optional[Sequence[CustomRule]] = None,
    ) -> DetectionResult:
        """Run one full detection pass over a document.

        Args:
            text: Full document text (never modified)
            custom_rules: User-defined regex rules

        Returns:
            DetectionResult with the redaction list, all annotated
            candidates and processing metadata

        Raises:
            ValidationError: If text is not a string.
            PipelineError: If an unexpected error occurs outside the
                recognizer leg.
        """
        if text is not None and not isinstance(text, str):
            raise ValidationError(f"Text must be a string, got {type(text).__name__}")

        if not text or not text.strip():
            return DetectionResult(
                text=text or "",
                metadata={"ml_status": MlStatus.SKIPPED},
            )

        loop = asyncio.get_running_loop()
        try:
            pattern_entities, (ml_entities, ml_status) = await asyncio.gather(
                loop.run_in_executor(None, detect_pattern_pii, text),
                self._detect_ml(text),
            )

            custom_entities = apply_custom_rules(text, custom_rules or [])
            merged = merge_entities(pattern_entities, ml_entities, custom_entities)

            structure = analyze_document_structure(
                text,
                header_ratio=self.config.header_ratio,
                section_span=self.config.personal_section_span,
            )
            candidates = annotate_entities(
                merged,
                text,
                structure,
                window=self.config.context_window,
                label_window=self.config.label_window,
            )
        except Exception as e:
            logger.error("Detection pipeline step failed", exc_info=True)
            raise PipelineError("Detection pipeline failed") from e

        entities = [entity for entity in candidates if entity.redact]

        logger.info(
            "Detection completed",
            extra={
                "text_length": len(text),
                "pattern_count": len(pattern_entities),
                "ml_count": len(ml_entities),
                "custom_count": len(custom_entities),
                "redact_count": len(entities),
                "ml_status": ml_status,
            },
        )

        return DetectionResult(
            text=text,
            entities=entities,
            candidates=candidates,
            metadata={
                "ml_status": ml_status,
                "pattern_count": len(pattern_entities),
                "ml_count": len(ml_entities),
                "custom_count": len(custom_entities),
                "candidate_count": len(candidates),
                "redact_count": len(entities),
                "stats": get_detection_stats(candidates),
            },
        )


class RedactionService:
    """Singleton service wrapper for the detection pipeline.

    Manages the recognizer lifecycle and provides thread-safe access to
    a single shared pipeline.
    """

    _instance: Optional[DetectionPipeline] = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> DetectionPipeline:
        """Returns singleton detection pipeline instance.

        Returns:
            DetectionPipeline, with a recognizer adapter when enabled

        Raises:
            InitializationError: If the pipeline cannot be built
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    try:
                        logger.info(
                            "Initializing detection pipeline",
                            extra={"use_ml": settings.use_ml, "worker_mode": settings.worker_mode},
                        )
                        adapter = None
                        if settings.use_ml:
                            adapter = RecognizerAdapter(
                                create_worker_handle(settings),
                                detection_timeout=settings.detection_timeout,
                                init_timeout=settings.init_timeout,
                            )
                        cls._instance = DetectionPipeline(adapter=adapter, config=settings)
                        logger.info("Detection pipeline initialized successfully")

                    except Exception as e:
                        logger.error("Failed to initialize detection pipeline", exc_info=True)
                        if isinstance(e, InitializationError):
                            raise
                        raise InitializationError(
                            "Detection pipeline initialization failed"
                        ) from e

        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drops the shared pipeline so the next call builds a fresh one."""
        with cls._lock:
            cls._instance = None


async def _detect(
    pipeline: DetectionPipeline,
    text: str,
    custom_rules: Optional[Sequence[CustomRule]],
) -> DetectionResult:
    await pipeline.start()
    return await pipeline.detect(text, custom_rules)


def redact_text(
    text: str,
    custom_rules: Optional[Sequence[CustomRule]] = None,
    pipeline: Optional[DetectionPipeline] = None,
) -> DetectionResult:
    """Main entry point for document redaction.

    Args:
        text: Input text to redact
        custom_rules: User-defined regex rules
        pipeline: Pipeline to use; defaults to the shared service pipeline

    Returns:
        DetectionResult whose metadata["redacted_text"] holds the text with
        every redact=True entity replaced. On failure, returns a result
        indicating the error safely.
    """
    if not isinstance(text, str):
        logger.error("Invalid input type received", extra={"input_type": type(text).__name__})
        return DetectionResult(
            text=str(text),
            metadata={"error": "Invalid input format", "redacted_text": str(text)},
        )

    if not text.strip():
        logger.warning("Empty text provided for redaction")
        return DetectionResult(
            text=text,
            metadata={"error": "Empty input provided", "redacted_text": text},
        )

    try:
        active = pipeline or RedactionService.get_instance()

        logger.info("Starting redaction request", extra={"text_length": len(text)})

        result = asyncio.run(_detect(active, text, custom_rules))
        result.metadata["redacted_text"] = apply_redactions(text, result.entities)
        return result

    except (ConfigurationError, InitializationError, PipelineError, ValidationError) as e:
        logger.error(
            f"Known error during redaction: {type(e).__name__}",
            exc_info=True,
            extra={"text_length": len(text)},
        )
        return DetectionResult(
            text=text,
            metadata={
                "error": "The redaction service encountered a processing error.",
                "status": "failed",
                "error_type": type(e).__name__,
                "redacted_text": text,
            },
        )

    except Exception:
        logger.error(
            "Unexpected critical error in redaction pipeline",
            exc_info=True,
            extra={"text_length": len(text)},
        )
        return DetectionResult(
            text=text,
            metadata={
                "error": "An unexpected system error occurred.",
                "status": "failed",
                "redacted_text": text,
            },
        )
