# docredact/engine/scorer.py

"""Named-entity scorers used inside the recognizer worker.

A scorer turns a chunk of text into labeled spans with a confidence. The
default implementation runs a presidio AnalyzerEngine over a spaCy model;
tests substitute a deterministic scorer with the same interface.
"""

import logging
from typing import Callable, List, Optional, Protocol

import spacy
from presidio_analyzer import AnalyzerEngine
from presidio_analyzer.nlp_engine import NerModelConfiguration, SpacyNlpEngine

from docredact.core.domain import ScoredSpan
from docredact.core.exceptions import InitializationError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

REQUESTED_ENTITIES = ["PERSON", "ORGANIZATION", "LOCATION"]


class EntityScorer(Protocol):
    """Interface every recognizer scorer implements."""

    def load(self, progress: Optional[ProgressCallback] = None) -> None:
        ...

    def score(self, text: str) -> List[ScoredSpan]:
        ...


class PresidioEntityScorer:
    """Scores person, organization and location spans with presidio + spaCy.

    The spaCy model package doubles as the persistent model cache: it is
    downloaded once (when allowed) and loaded from site-packages afterwards.
    """

    def __init__(self, spacy_model_name: str = "en_core_web_lg", auto_download: bool = False) -> None:
        self.spacy_model = spacy_model_name
        self.auto_download = auto_download
        self._analyzer: Optional[AnalyzerEngine] = None

    @property
    def loaded(self) -> bool:
        return self._analyzer is not None

    def _ensure_model(self, progress: ProgressCallback) -> None:
        """Downloads the spaCy model package when missing and allowed.

        Raises:
            InitializationError: If the model is missing and cannot be fetched.
        """
        if spacy.util.is_package(self.spacy_model):
            return

        if not self.auto_download:
            raise InitializationError(
                f"Missing required SpaCy model '{self.spacy_model}'. "
                "Install it or enable auto_download_model."
            )

        logger.info("Downloading spaCy model", extra={"model_name": self.spacy_model})
        progress(10)
        try:
            spacy.cli.download(self.spacy_model)
        except SystemExit as e:
            # spacy.cli reports download failures by exiting
            raise InitializationError(
                f"Download of SpaCy model '{self.spacy_model}' failed"
            ) from e

    def load(self, progress: Optional[ProgressCallback] = None) -> None:
        """Loads the spaCy pipeline and builds the analyzer.

        Args:
            progress: Receives load progress as an integer percentage

        Raises:
            InitializationError: If the model cannot be found or loaded.
        """
        if self.loaded:
            return

        report = progress or (lambda _percent: None)
        report(0)
        self._ensure_model(report)

        ner_mapping = NerModelConfiguration(
            labels_to_ignore=[
                "CARDINAL",
                "ORDINAL",
                "FAC",
                "LAW",
                "PERCENT",
                "QUANTITY",
                "MONEY",
                "WORK_OF_ART",
                "PRODUCT",
                "EVENT",
                "TIME",
                "DATE",
                "NORP",
                "LANGUAGE",
            ],
            model_to_presidio_entity_mapping={
                "PER": "PERSON",
                "PERSON": "PERSON",
                "LOC": "LOCATION",
                "GPE": "LOCATION",
                "ORG": "ORGANIZATION",
            },
            low_score_entity_names=[],
        )

        logger.info("Initializing NLP engine", extra={"model_name": self.spacy_model})
        report(40)

        try:
            nlp_engine = SpacyNlpEngine(
                models=[{"lang_code": "en", "model_name": self.spacy_model}],
                ner_model_configuration=ner_mapping,
            )
            nlp_engine.load()
        except OSError as e:
            logger.critical(
                "SpaCy model could not be loaded",
                extra={"model_name": self.spacy_model},
            )
            raise InitializationError(
                f"Missing required SpaCy model '{self.spacy_model}'."
            ) from e

        report(80)

        try:
            self._analyzer = AnalyzerEngine(nlp_engine=nlp_engine, supported_languages=["en"])
        except Exception as e:
            logger.error("Analyzer initialization failed", exc_info=True)
            raise InitializationError("Failed to initialize presidio analyzer") from e

        report(100)
        logger.info("Entity scorer ready", extra={"model_name": self.spacy_model})

    def score(self, text: str) -> List[ScoredSpan]:
        """Returns person, organization and location spans found in text."""
        if self._analyzer is None:
            raise InitializationError("Scorer used before load()")

        results = self._analyzer.analyze(
            text=text,
            entities=REQUESTED_ENTITIES,
            language="en",
        )
        return [
            ScoredSpan(
                label=r.entity_type,
                start=r.start,
                end=r.end,
                score=r.score,
                word=text[r.start : r.end],
            )
            for r in results
        ]
