"""Codeblock value type and fenced-region parsing (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from core.fences import detect_fences


@dataclass(frozen=True)
class Codeblock:
    """A single fenced codeblock with an optional language tag."""

    content: str = ""
    language: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.content or self.content.isspace():
            object.__setattr__(self, "content", "")
        if not self.language or self.language.isspace():
            object.__setattr__(self, "language", None)

    @property
    def line_count(self) -> int:
        """Number of content lines; an empty codeblock has none."""

        if not self.content:
            return 0
        return self.content.count("\n") + 1


def _is_language_tag(candidate: str) -> bool:
    # ASCII letters and digits only: "cs", "py3", "rust".
    return bool(candidate) and candidate.isascii() and candidate.isalnum()


def parse_codeblock(raw: str) -> Codeblock:
    """Split the raw text between two fences into language and content.

    The first line is a language tag only when it is a single run of ASCII
    letters/digits. Anything else (punctuation, spaces, symbols) means the
    code started right after the opening fence and the line belongs to the
    content.
    """

    head, newline, body = raw.partition("\n")

    if _is_language_tag(head):
        language: Optional[str] = head
        content = body if newline else ""
    else:
        language = None
        content = raw

    return Codeblock(
        content=content.strip(),
        language=language.strip() if language else None,
    )


def detect_codeblocks(text: str) -> List[Codeblock]:
    """Return every complete codeblock in the text, in appearance order."""

    if not text or text.isspace():
        return []
    return [parse_codeblock(raw) for raw in detect_fences(text)]
