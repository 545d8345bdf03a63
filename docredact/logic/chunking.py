# docredact/logic/chunking.py

"""Splits documents into bounded chunks for the entity recognizer.

Chunks break at blank lines first, then line breaks, then spaces, and only
cut words when nothing else fits. Offsets are recovered by locating each
chunk in the source text, searching from the end of the previous chunk.
"""

import logging
from typing import List

from docredact.core.domain import TextChunk

logger = logging.getLogger(__name__)

SEPARATORS = ("\n\n", "\n", " ")


def _split_pieces(text: str, max_chars: int, level: int = 0) -> List[str]:
    """Greedily packs separator-delimited segments into pieces <= max_chars."""
    if len(text) <= max_chars:
        return [text]

    if level >= len(SEPARATORS):
        return [text[i : i + max_chars] for i in range(0, len(text), max_chars)]

    separator = SEPARATORS[level]
    segments = text.split(separator)
    if len(segments) == 1:
        return _split_pieces(text, max_chars, level + 1)

    pieces: List[str] = []
    current = ""
    for segment in segments:
        candidate = f"{current}{separator}{segment}" if current else segment
        if len(candidate) <= max_chars:
            current = candidate
            continue

        if current:
            pieces.append(current)
        if len(segment) > max_chars:
            pieces.extend(_split_pieces(segment, max_chars, level + 1))
            current = ""
        else:
            current = segment

    if current:
        pieces.append(current)
    return pieces


def split_into_chunks(text: str, max_chars: int = 400) -> List[TextChunk]:
    """Split text into chunks no longer than max_chars.

    Args:
        text: Full document text
        max_chars: Character limit per chunk

    Returns:
        Chunks in document order with absolute offsets; whitespace-only
        pieces are dropped
    """
    if not text or not text.strip():
        return []

    if max_chars <= 0:
        raise ValueError("max_chars must be positive")

    if len(text) <= max_chars:
        return [TextChunk(text=text, offset=0)]

    chunks: List[TextChunk] = []
    cursor = 0
    for piece in _split_pieces(text, max_chars):
        if not piece.strip():
            continue
        offset = text.find(piece, cursor)
        if offset < 0:
            logger.warning(
                "Chunk not found in source text; skipping",
                extra={"cursor": cursor, "chunk_length": len(piece)},
            )
            continue
        chunks.append(TextChunk(text=piece, offset=offset))
        cursor = offset + len(piece)

    logger.debug(
        "Text split into chunks",
        extra={"chunk_count": len(chunks), "text_length": len(text)},
    )
    return chunks
