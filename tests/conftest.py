# tests/conftest.py

import threading
import time
from typing import Dict, List, Optional, Tuple

import pytest

from docredact.core.definitions import EntitySource
from docredact.core.domain import Entity, ScoredSpan
from docredact.engine.adapter import RecognizerAdapter
from docredact.engine.worker import ThreadWorkerHandle, WorkerConfig
from docredact.service.config import Settings


class FakeScorer:
    """Deterministic scorer: tags every occurrence of known phrases."""

    def __init__(self, phrases: Optional[Dict[str, Tuple[str, float]]] = None):
        self.phrases = phrases or {}
        self.load_calls = 0
        self.score_calls = 0
        self.fail_load: Optional[Exception] = None

    def load(self, progress=None) -> None:
        self.load_calls += 1
        if progress:
            progress(50)
        if self.fail_load is not None:
            raise self.fail_load
        if progress:
            progress(100)

    def score(self, text: str) -> List[ScoredSpan]:
        self.score_calls += 1
        spans = []
        for phrase, (label, score) in self.phrases.items():
            start = text.find(phrase)
            while start >= 0:
                spans.append(ScoredSpan(label, start, start + len(phrase), score, phrase))
                start = text.find(phrase, start + 1)
        return spans


class BlockingScorer(FakeScorer):
    """Blocks inside score() until released."""

    def __init__(self, phrases=None):
        super().__init__(phrases)
        self.release = threading.Event()

    def score(self, text: str) -> List[ScoredSpan]:
        self.release.wait(timeout=5)
        return super().score(text)


class SlowLoadScorer(FakeScorer):
    """Takes a while to load, like a real model."""

    def __init__(self, phrases=None, delay: float = 0.5):
        super().__init__(phrases)
        self.delay = delay

    def load(self, progress=None) -> None:
        time.sleep(self.delay)
        super().load(progress)


class CrashableHandle(ThreadWorkerHandle):
    """Thread handle that can be made to look dead."""

    crashed = False

    def is_alive(self) -> bool:
        return not self.crashed and super().is_alive()


def make_adapter(scorer, detection_timeout: float = 2.0, handle_cls=ThreadWorkerHandle):
    handle = handle_cls(WorkerConfig(), scorer_factory=lambda config: scorer)
    adapter = RecognizerAdapter(
        handle,
        detection_timeout=detection_timeout,
        init_timeout=5.0,
        poll_interval=0.02,
    )
    return adapter, handle


def make_entity(type_, start, end, text=None, source=EntitySource.PATTERN, confidence=1.0, id_=None):
    value = text[start:end] if text is not None else "x" * (end - start)
    return Entity(
        id=id_ or f"{type_}-{start}",
        type=type_,
        value=value,
        start=start,
        end=end,
        confidence=confidence,
        source=source,
    )


@pytest.fixture
def config():
    return Settings()


RESUME = (
    "John Smith\n"
    "Email: john.smith@email.com\n"
    "Phone: (555) 123-4567\n"
    "\n"
    "EXPERIENCE\n"
    "Senior Engineer - Google Inc."
)

RESUME_PHRASES = {
    "John Smith": ("PERSON", 0.95),
    "Google Inc.": ("ORGANIZATION", 0.95),
}
