"""Fence scanning over raw message text (core domain).

The scanner only knows about the triple-backtick marker. Splitting a fenced
region into language and content is the job of ``core.codeblocks``.
"""

from __future__ import annotations

from typing import Iterator

FENCE = "```"


def detect_fences(text: str) -> Iterator[str]:
    """Yield the raw text strictly between each matched pair of fences.

    Scanning is left to right. An opening marker is consumed whole, so six
    backticks in a row are an empty fence rather than three overlapping ones.
    A fence that is never closed yields nothing.
    """

    if not text:
        return

    cursor = 0
    while True:
        start = text.find(FENCE, cursor)
        if start == -1:
            return
        start += len(FENCE)

        end = text.find(FENCE, start)
        if end == -1:
            # Dangling fence, the rest of the text is discarded.
            return

        yield text[start:end]
        cursor = end + len(FENCE)


def has_fence(text: str) -> bool:
    """Return True when the text holds at least one complete fence pair."""

    return next(detect_fences(text), None) is not None


def is_exclusively_fenced(text: str) -> bool:
    """Return True when the text is only fenced regions and whitespace.

    Leading/trailing whitespace and whitespace between fences is ignored, but
    there must be at least one complete fence and nothing may be left open.
    """

    source = text.strip() if text else ""
    if not source:
        return False

    cursor = 0
    length = len(source)
    while cursor < length:
        if source[cursor].isspace():
            cursor += 1
            continue

        if not source.startswith(FENCE, cursor):
            return False

        closing = source.find(FENCE, cursor + len(FENCE))
        if closing == -1:
            return False

        cursor = closing + len(FENCE)

    return True
