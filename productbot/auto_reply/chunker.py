"""
Reply chunking for platform message limits.

Long replies are split at sentence boundaries. A sentence is never cut in
half, so a single sentence longer than the limit is sent as its own
oversized chunk.
"""

import re

DISCORD_MAX_LENGTH = 2000

# Sentence boundary: terminal punctuation followed by whitespace.
# Punctuation inside a token (example.com, v1.2) is not a boundary.
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_PUNCTUATION_ONLY = re.compile(r"^[.!?]+$")


def split_sentences(text: str) -> list[str]:
    """
    Split text into stripped sentence units.

    Each unit keeps the punctuation that ended it. Units made only of
    punctuation are dropped.
    """
    units = []
    for unit in _SENTENCE_BOUNDARY.split(text):
        unit = unit.strip()
        if not unit or _PUNCTUATION_ONLY.match(unit):
            continue
        units.append(unit)
    return units


def split_response(text: str, max_length: int = DISCORD_MAX_LENGTH) -> list[str]:
    """
    Split a reply into chunks that fit the message size limit.

    Args:
        text: Reply text.
        max_length: Maximum characters per chunk.

    Returns:
        Ordered chunks. Empty input yields no chunks; input that already
        fits yields a single chunk equal to the trimmed input.
    """
    text = (text or "").strip()
    if not text:
        return []

    if len(text) <= max_length:
        return [text]

    chunks = []
    current = ""

    for sentence in split_sentences(text):
        candidate = f"{current}{sentence} "

        if len(candidate.strip()) > max_length and current:
            chunks.append(current.strip())
            current = f"{sentence} "
        else:
            current = candidate

    if current.strip():
        chunks.append(current.strip())

    return chunks
