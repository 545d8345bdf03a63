# tests/test_chunking.py

import pytest

from docredact.logic.chunking import split_into_chunks


def test_short_text_is_one_chunk():
    chunks = split_into_chunks("Hello world", max_chars=400)
    assert len(chunks) == 1
    assert chunks[0].offset == 0
    assert chunks[0].text == "Hello world"


def test_empty_text_has_no_chunks():
    assert split_into_chunks("") == []
    assert split_into_chunks("  \n ") == []


def test_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        split_into_chunks("some text", max_chars=0)


def test_prefers_paragraph_breaks():
    first = "a" * 30
    second = "b" * 30
    text = f"{first}\n\n{second}"
    chunks = split_into_chunks(text, max_chars=40)
    assert [c.text for c in chunks] == [first, second]
    assert chunks[1].offset == text.index(second)


def test_chunks_are_bounded_and_offsets_exact():
    text = "\n\n".join(
        " ".join(f"word{i}{j}" for j in range(30)) for i in range(6)
    )
    chunks = split_into_chunks(text, max_chars=100)
    assert len(chunks) > 1
    for chunk in chunks:
        assert len(chunk.text) <= 100
        assert text[chunk.offset : chunk.offset + len(chunk.text)] == chunk.text
    offsets = [c.offset for c in chunks]
    assert offsets == sorted(offsets)


def test_hard_cut_when_no_separator_fits():
    text = "x" * 250
    chunks = split_into_chunks(text, max_chars=100)
    assert [len(c.text) for c in chunks] == [100, 100, 50]
    assert [c.offset for c in chunks] == [0, 100, 200]
