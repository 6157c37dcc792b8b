"""Paragraph-aligned text chunking.

Splits document text into chunks sized for the embedding model (at most
``max_chars`` characters each) without ever breaking a paragraph.

Paragraphs are separated by a blank line (``\\n`` + optional whitespace +
``\\n``).  Each paragraph is stripped and empty ones are dropped.  Chunks
are built greedily: a paragraph joins the current chunk only while the
chunk, a ``"\\n\\n"`` separator, and the paragraph still fit in
``max_chars``; otherwise the chunk is closed and the paragraph starts the
next one.  A single paragraph longer than ``max_chars`` becomes its own
oversized chunk rather than being split mid-thought.

Because chunks are paragraphs joined by ``"\\n\\n"``, joining the chunks
with ``"\\n\\n"`` again yields exactly :func:`normalize_text` of the input.
"""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SEPARATOR = "\n\n"


def split_paragraphs(text: str) -> list[str]:
    """Split *text* on blank lines, strip each paragraph, drop empties."""
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def normalize_text(text: str) -> str:
    """Return the paragraphs of *text* joined by a single blank line."""
    return _SEPARATOR.join(split_paragraphs(text))


class TextChunker:
    """Greedy paragraph accumulator.

    Parameters
    ----------
    max_chars:
        Upper bound on a chunk's length, except for a single paragraph
        that is itself longer (default 2000).
    """

    def __init__(self, max_chars: int = 2000) -> None:
        if max_chars < 1:
            raise ValueError(f"max_chars must be at least 1, got {max_chars}")
        self._max_chars = max_chars

    @property
    def max_chars(self) -> int:
        return self._max_chars

    def chunk(self, text: str) -> list[str]:
        """Split *text* into ordered chunks.

        Returns
        -------
        list[str]
            Empty when *text* has no non-whitespace content.
        """
        chunks: list[str] = []
        buffer: list[str] = []
        buffer_len = 0

        for paragraph in split_paragraphs(text):
            if buffer and buffer_len + len(_SEPARATOR) + len(paragraph) > self._max_chars:
                chunks.append(_SEPARATOR.join(buffer))
                buffer = []
                buffer_len = 0

            if buffer:
                buffer_len += len(_SEPARATOR) + len(paragraph)
            else:
                buffer_len = len(paragraph)
            buffer.append(paragraph)

        if buffer:
            chunks.append(_SEPARATOR.join(buffer))

        oversized = sum(1 for c in chunks if len(c) > self._max_chars)
        logger.debug(
            "text_chunked",
            input_chars=len(text),
            chunk_count=len(chunks),
            oversized_chunks=oversized,
            max_chars=self._max_chars,
        )
        return chunks
