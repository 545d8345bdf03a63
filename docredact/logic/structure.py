# docredact/logic/structure.py

"""Document structure analysis: header/body split and personal sections."""

import bisect
import logging
import math
from functools import lru_cache
from typing import List

import regex

from docredact.core.domain import DocumentStructure, PersonalSection
from docredact.core.loader import PatternLoader

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _personal_heading_pattern() -> regex.Pattern:
    """Compiles the line-start heading keyword pattern from vocabulary."""
    keywords = PatternLoader.get_instance().get_vocabulary("personal_section_keywords")
    alternation = "|".join(regex.escape(k) for k in keywords)
    return regex.compile(rf"^(?:{alternation})", regex.IGNORECASE)


def _line_starts(lines: List[str]) -> List[int]:
    starts = []
    position = 0
    for line in lines:
        starts.append(position)
        position += len(line) + 1
    return starts


def analyze_document_structure(
    text: str,
    header_ratio: float = 0.1,
    section_span: int = 5,
) -> DocumentStructure:
    """Split a document into header and body and flag personal sections.

    The header ends at ceil(header_ratio * line_count) or at the first blank
    line after the first line, whichever comes first. Any line starting with
    a personal heading keyword flags itself and the next section_span lines.

    Args:
        text: Full document text (never modified)
        header_ratio: Fraction of lines that may form the header
        section_span: Lines after a heading included in its section

    Returns:
        DocumentStructure for the text
    """
    lines = text.split("\n")
    line_count = len(lines)

    first_blank = next(
        (i for i, line in enumerate(lines) if i > 0 and not line.strip()),
        line_count,
    )
    header_end = min(math.ceil(line_count * header_ratio), first_blank)

    pattern = _personal_heading_pattern()
    sections = [
        PersonalSection(start_line=index, end_line=min(index + section_span, line_count))
        for index, line in enumerate(lines)
        if pattern.match(line.strip())
    ]

    structure = DocumentStructure(
        header_text="\n".join(lines[:header_end]),
        body_text="\n".join(lines[header_end:]),
        header_end_line=header_end,
        personal_sections=sections,
        total_lines=line_count,
        line_starts=_line_starts(lines),
    )

    logger.debug(
        "Document structure analyzed",
        extra={
            "total_lines": line_count,
            "header_end_line": header_end,
            "personal_section_count": len(sections),
        },
    )
    return structure


def line_index_at(structure: DocumentStructure, position: int) -> int:
    """Returns the index of the line containing a character position."""
    if not structure.line_starts:
        return 0
    return max(0, bisect.bisect_right(structure.line_starts, position) - 1)


def is_in_header(structure: DocumentStructure, position: int) -> bool:
    return position < len(structure.header_text)


def is_in_personal_section(structure: DocumentStructure, position: int) -> bool:
    """True when the header or a flagged personal section holds the position."""
    if is_in_header(structure, position):
        return True
    line = line_index_at(structure, position)
    return any(section.contains_line(line) for section in structure.personal_sections)
