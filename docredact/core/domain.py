# docredact/core/domain.py

"""Domain models for detection and redaction results."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from docredact.core.definitions import EntityType, suggested_replacement


@dataclass
class Entity:
    """A single detected PII span.

    Attributes:
        id: Identifier, unique within one detection pass
        type: Entity type (see EntityType)
        value: Exact substring of the source text
        start: Starting character offset in the source text
        end: Ending character offset (exclusive)
        confidence: Confidence score (0.0 to 1.0)
        redact: Whether the span should be replaced on export
        suggested: Replacement label for the span
        source: Subsystem that produced the entity
        reason: Context decision reason, once decided
    """

    id: str
    type: str
    value: str
    start: int
    end: int
    confidence: float = 1.0
    redact: bool = True
    suggested: str = ""
    source: str = ""
    reason: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.suggested:
            self.suggested = suggested_replacement(self.type)

    def overlaps(self, other: "Entity") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass
class ScoredSpan:
    """Raw span emitted by a recognizer scorer, in chunk-local offsets."""

    label: str
    start: int
    end: int
    score: float
    word: str = ""


@dataclass
class TextChunk:
    """A bounded segment of a document and its absolute offset."""

    text: str
    offset: int


@dataclass
class PersonalSection:
    """Line range (inclusive) flagged as likely holding owner contact details."""

    start_line: int
    end_line: int
    type: str = "personal"

    def contains_line(self, line_index: int) -> bool:
        return self.start_line <= line_index <= self.end_line


@dataclass
class DocumentStructure:
    """Header/body split and personal sections of a document.

    Attributes:
        header_text: Text of the header lines
        body_text: Text of the remaining lines
        header_end_line: Index of the first body line
        personal_sections: Line ranges flagged by heading keywords
        total_lines: Number of lines in the document
        line_starts: Character offset of the start of every line
    """

    header_text: str
    body_text: str
    header_end_line: int
    personal_sections: List[PersonalSection] = field(default_factory=list)
    total_lines: int = 0
    line_starts: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class RedactionDecision:
    """Outcome of the context-aware decider for one entity."""

    should_redact: bool
    reason: str


@dataclass
class CustomRule:
    """User-defined detection rule.

    Attributes:
        pattern: Regular expression to match
        type: Entity type assigned to matches
        enabled: Disabled rules are ignored
        name: Optional display name
        case_sensitive: Match case exactly when True
    """

    pattern: str
    type: str = EntityType.CUSTOM
    enabled: bool = True
    name: Optional[str] = None
    case_sensitive: bool = False


@dataclass
class DetectionResult:
    """Result object returned by the detection pipeline.

    Attributes:
        text: Source text the entities refer to
        entities: Redaction candidates after context filtering
        candidates: Every merged entity, annotated with its decision
        metadata: Additional processing information
    """

    text: str
    entities: List[Entity] = field(default_factory=list)
    candidates: List[Entity] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
