# docredact/engine/worker.py

"""Isolated recognizer worker.

The worker owns the entity scorer and serves requests from a queue, posting
typed events back on a second queue. It runs either in a spawned process
(default) or in a thread; both share the same message loop.
"""

import logging
import multiprocessing
import queue
import string
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from docredact.core.definitions import EntitySource
from docredact.core.domain import Entity, ScoredSpan, TextChunk
from docredact.core.exceptions import ChunkProcessingError
from docredact.core.loader import PatternLoader
from docredact.engine.scorer import EntityScorer, PresidioEntityScorer
from docredact.logging_config import configure_logging
from docredact.logic.chunking import split_into_chunks
from docredact.logic.filters import filter_false_positives
from docredact.logic.merger import coalesce_adjacent

logger = logging.getLogger(__name__)

BIO_PREFIXES = ("B-", "I-")
SUBWORD_PREFIX = "##"
MIN_VALUE_LENGTH = 2


class RequestKind:
    """Requests accepted by the worker."""

    INIT_MODEL = "INIT_MODEL"
    DETECT_PII = "DETECT_PII"
    SHUTDOWN = "SHUTDOWN"


class EventKind:
    """Events posted by the worker."""

    MODEL_LOADING = "MODEL_LOADING"
    MODEL_LOADED = "MODEL_LOADED"
    MODEL_ERROR = "MODEL_ERROR"
    DETECTION_COMPLETE = "DETECTION_COMPLETE"
    DETECTION_ERROR = "DETECTION_ERROR"


@dataclass
class WorkerRequest:
    kind: str
    request_id: str = ""
    text: str = ""


@dataclass
class WorkerEvent:
    kind: str
    request_id: str = ""
    progress: int = 0
    entities: List[Entity] = field(default_factory=list)
    error: str = ""


@dataclass
class WorkerConfig:
    """Picklable subset of settings the worker needs."""

    spacy_model: str = "en_core_web_lg"
    auto_download_model: bool = False
    chunk_size: int = 400
    min_entity_confidence: float = 0.7
    org_min_confidence: float = 0.75
    org_trusted_confidence: float = 0.9
    log_level: str = "INFO"

    @classmethod
    def from_settings(cls, settings: Any) -> "WorkerConfig":
        return cls(
            spacy_model=settings.spacy_model,
            auto_download_model=settings.auto_download_model,
            chunk_size=settings.chunk_size,
            min_entity_confidence=settings.min_entity_confidence,
            org_min_confidence=settings.org_min_confidence,
            org_trusted_confidence=settings.org_trusted_confidence,
            log_level=settings.log_level,
        )


ScorerFactory = Callable[[WorkerConfig], EntityScorer]


def build_default_scorer(config: WorkerConfig) -> EntityScorer:
    return PresidioEntityScorer(config.spacy_model, config.auto_download_model)


def map_label(label: str, label_map: Dict[str, str]) -> Optional[str]:
    """Maps a model label (optionally BIO-prefixed) to an entity type."""
    normalized = label.upper()
    for prefix in BIO_PREFIXES:
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix) :]
            break
    return label_map.get(normalized)


def _is_punctuation_only(value: str) -> bool:
    return all(ch in string.punctuation or ch.isspace() for ch in value)


def _score_chunk(scorer: EntityScorer, chunk: TextChunk) -> List[ScoredSpan]:
    try:
        return scorer.score(chunk.text)
    except Exception as e:
        raise ChunkProcessingError(
            f"Scoring failed for chunk at offset {chunk.offset}"
        ) from e


def detect_entities(
    text: str,
    scorer: EntityScorer,
    config: WorkerConfig,
    label_map: Optional[Dict[str, str]] = None,
) -> List[Entity]:
    """Run the scorer over a document and post-process its spans.

    Chunks are scored one after another; a failing chunk is logged and
    skipped. Spans are mapped to entity types, cleaned, shifted to document
    offsets, coalesced with their neighbours and filtered for organization
    false positives.

    Args:
        text: Full document text
        scorer: Loaded entity scorer
        config: Worker thresholds and chunk size
        label_map: Model label to entity type table; defaults to the
            recognizer label map from the rule tables

    Returns:
        Recognizer entities with absolute offsets, ordered by start
    """
    if label_map is None:
        label_map = PatternLoader.get_instance().get_label_map()

    entities: List[Entity] = []
    for chunk in split_into_chunks(text, config.chunk_size):
        try:
            spans = _score_chunk(scorer, chunk)
        except ChunkProcessingError:
            logger.warning(
                "Chunk scoring failed; skipping chunk",
                exc_info=True,
                extra={"chunk_offset": chunk.offset, "chunk_length": len(chunk.text)},
            )
            continue

        for span in spans:
            entity_type = map_label(span.label, label_map)
            if entity_type is None:
                continue

            word = span.word or chunk.text[span.start : span.end]
            if word.startswith(SUBWORD_PREFIX):
                continue

            if span.score < config.min_entity_confidence:
                continue

            start = chunk.offset + span.start
            end = chunk.offset + span.end
            value = text[start:end]
            if len(value.strip()) < MIN_VALUE_LENGTH or _is_punctuation_only(value):
                continue

            entities.append(
                Entity(
                    id=f"ml-{entity_type}-{len(entities)}",
                    type=entity_type,
                    value=value,
                    start=start,
                    end=end,
                    confidence=float(span.score),
                    source=EntitySource.ML,
                )
            )

    coalesced = coalesce_adjacent(entities, text)
    filtered = filter_false_positives(
        coalesced,
        min_confidence=config.org_min_confidence,
        trusted_confidence=config.org_trusted_confidence,
    )

    logger.debug(
        "Recognizer post-processing complete",
        extra={
            "raw_count": len(entities),
            "coalesced_count": len(coalesced),
            "kept_count": len(filtered),
        },
    )
    return filtered


class RecognizerWorker:
    """Request handler holding the scorer for the lifetime of the worker."""

    def __init__(self, config: WorkerConfig, scorer_factory: ScorerFactory) -> None:
        self.config = config
        self._scorer_factory = scorer_factory
        self._scorer: Optional[EntityScorer] = None

    def handle(self, request: WorkerRequest, emit: Callable[[WorkerEvent], None]) -> None:
        if request.kind == RequestKind.INIT_MODEL:
            self._handle_init(request, emit)
        elif request.kind == RequestKind.DETECT_PII:
            self._handle_detect(request, emit)
        else:
            logger.warning("Unknown request kind", extra={"request_kind": request.kind})

    def _handle_init(self, request: WorkerRequest, emit: Callable[[WorkerEvent], None]) -> None:
        if self._scorer is not None:
            emit(WorkerEvent(EventKind.MODEL_LOADED, request.request_id, progress=100))
            return

        def report(percent: int) -> None:
            emit(WorkerEvent(EventKind.MODEL_LOADING, request.request_id, progress=percent))

        try:
            scorer = self._scorer_factory(self.config)
            scorer.load(report)
        except Exception as e:
            logger.error("Model loading failed", exc_info=True)
            emit(WorkerEvent(EventKind.MODEL_ERROR, request.request_id, error=str(e)))
            return

        self._scorer = scorer
        emit(WorkerEvent(EventKind.MODEL_LOADED, request.request_id, progress=100))

    def _handle_detect(self, request: WorkerRequest, emit: Callable[[WorkerEvent], None]) -> None:
        if self._scorer is None:
            emit(
                WorkerEvent(
                    EventKind.DETECTION_ERROR,
                    request.request_id,
                    error="Model not loaded",
                )
            )
            return

        try:
            entities = detect_entities(request.text, self._scorer, self.config)
        except Exception as e:
            logger.error("Detection failed", exc_info=True)
            emit(WorkerEvent(EventKind.DETECTION_ERROR, request.request_id, error=str(e)))
            return

        emit(WorkerEvent(EventKind.DETECTION_COMPLETE, request.request_id, entities=entities))


def run_worker(
    requests: Any,
    events: Any,
    config: WorkerConfig,
    scorer_factory: ScorerFactory = build_default_scorer,
) -> None:
    """Serves requests until SHUTDOWN arrives.

    Exceptions that escape a handler (other than ordinary errors, which are
    reported as events) terminate the worker; the adapter notices through
    its liveness check.
    """
    worker = RecognizerWorker(config, scorer_factory)
    logger.info("Recognizer worker started")

    while True:
        request = requests.get()
        if request.kind == RequestKind.SHUTDOWN:
            break
        worker.handle(request, events.put)

    logger.info("Recognizer worker stopped")


def run_worker_process(
    requests: Any,
    events: Any,
    config: WorkerConfig,
    scorer_factory: ScorerFactory = build_default_scorer,
) -> None:
    """Entry point of a spawned worker process.

    A spawned interpreter starts with no logging handlers, so structured
    logging is installed before serving requests.
    """
    configure_logging(config.log_level)
    run_worker(requests, events, config, scorer_factory)


class WorkerHandle(ABC):
    """Owns a worker and the two queues used to talk to it."""

    requests: Any
    events: Any

    @abstractmethod
    def start(self) -> None:
        """Starts the worker; calling it again is a no-op."""
        pass

    @abstractmethod
    def is_alive(self) -> bool:
        pass

    def send(self, request: WorkerRequest) -> None:
        self.requests.put(request)

    @abstractmethod
    def stop(self, timeout: float = 5.0) -> None:
        """Asks the worker to shut down and waits up to timeout seconds."""
        pass


class ProcessWorkerHandle(WorkerHandle):
    """Runs the worker in a spawned process."""

    def __init__(self, config: WorkerConfig) -> None:
        self.config = config
        self._context = multiprocessing.get_context("spawn")
        self.requests = self._context.Queue()
        self.events = self._context.Queue()
        self._process: Optional[multiprocessing.process.BaseProcess] = None

    def start(self) -> None:
        if self._process is not None:
            return
        self._process = self._context.Process(
            target=run_worker_process,
            args=(self.requests, self.events, self.config),
            name="docredact-recognizer",
            daemon=True,
        )
        self._process.start()
        logger.info("Recognizer process started", extra={"pid": self._process.pid})

    def is_alive(self) -> bool:
        return self._process is not None and self._process.is_alive()

    def stop(self, timeout: float = 5.0) -> None:
        if self._process is None:
            return
        if self._process.is_alive():
            self.send(WorkerRequest(RequestKind.SHUTDOWN))
            self._process.join(timeout)
        if self._process.is_alive():
            logger.warning("Recognizer process did not stop; terminating")
            self._process.terminate()
            self._process.join(timeout)


class ThreadWorkerHandle(WorkerHandle):
    """Runs the worker in a daemon thread of the current process."""

    def __init__(
        self,
        config: WorkerConfig,
        scorer_factory: ScorerFactory = build_default_scorer,
    ) -> None:
        self.config = config
        self.scorer_factory = scorer_factory
        self.requests: "queue.Queue[WorkerRequest]" = queue.Queue()
        self.events: "queue.Queue[WorkerEvent]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=run_worker,
            args=(self.requests, self.events, self.config, self.scorer_factory),
            name="docredact-recognizer",
            daemon=True,
        )
        self._thread.start()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        if self._thread.is_alive():
            self.send(WorkerRequest(RequestKind.SHUTDOWN))
            self._thread.join(timeout)


def create_worker_handle(settings: Any) -> WorkerHandle:
    """Builds the worker handle selected by settings.worker_mode."""
    config = WorkerConfig.from_settings(settings)
    if settings.worker_mode == "thread":
        return ThreadWorkerHandle(config)
    return ProcessWorkerHandle(config)
