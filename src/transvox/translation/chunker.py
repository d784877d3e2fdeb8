"""
Sentence Chunking for Progressive Playback.

Splits translated text into sentence-bounded chunks so that the client can
request audio one chunk at a time (see the ``speak-chunk`` action).

Rules:
    - Whitespace is normalized first (runs collapse to one space).
    - A sentence ends at a run of ``.``, ``!`` or ``?`` followed by
      whitespace or the end of text; "3.14" and "example.com" stay whole.
    - Sentences are packed greedily, joined by one space, while the chunk
      stays within ``max_chars``. A single sentence longer than
      ``max_chars`` becomes its own oversized chunk; it is never cut.

Guarantees:
    - " ".join(chunks) == normalize_whitespace(text)
    - split_into_sentences(chunk, max_chars) == [chunk] for every chunk

Example:
    >>> split_into_sentences("Hello world. How are you? Fine.", max_chars=20)
    ['Hello world.', 'How are you? Fine.']
"""
from __future__ import annotations

import re
from typing import List

from transvox.core.config import Defaults

_WS = re.compile(r"\s+")
_SENTENCE = re.compile(r".+?(?:[.!?]+(?=\s|$)|$)", re.S)


def normalize_whitespace(text: str) -> str:
    return _WS.sub(" ", text).strip()


def sentences(text: str) -> List[str]:
    """Sentences of the whitespace-normalized text, in order."""
    normalized = normalize_whitespace(text)
    if not normalized:
        return []
    parts = (m.group(0).strip() for m in _SENTENCE.finditer(normalized))
    return [p for p in parts if p]


def split_into_sentences(text: str, max_chars: int = Defaults.CHUNKING_MAX_CHARS) -> List[str]:
    """
    Greedily pack sentences into chunks of at most ``max_chars`` characters.

    Args:
        text: Text to split.
        max_chars: Soft chunk limit; only single long sentences exceed it.

    Returns:
        Ordered list of chunks (empty for blank input).
    """
    chunks: List[str] = []
    current = ""

    for sentence in sentences(text):
        candidate = f"{current} {sentence}" if current else sentence
        if current and len(candidate) > max_chars:
            chunks.append(current)
            current = sentence
        else:
            current = candidate

    if current:
        chunks.append(current)
    return chunks
