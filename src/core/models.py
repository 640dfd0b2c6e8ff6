"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Attachment:
    """File metadata attached to a message."""

    filename: str
    mime_type: str
    size: Optional[int] = None
    # Platform handle used by the adapter to download the file.
    media: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class AttachmentText:
    """An attachment whose body has already been downloaded and decoded."""

    filename: str
    mime_type: str
    content: str


@dataclass(frozen=True)
class MessageContext:
    """Minimal message context used by the core processing pipeline."""

    source_key: str
    base_source_key: str
    topic_id: Optional[int]
    chat_id: int
    message_id: int
    date: datetime
    text: str
    permalink: Optional[str]
    sender_id: Optional[int] = None
    sender_name: str = "unknown"
    attachments: Tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class PasteUnit:
    """One file of a paste, as handed to the paste sink."""

    title: str
    language: str
    content: str


@dataclass(frozen=True)
class PasteRecord:
    """Persisted representation of a created paste."""

    url: str
    unit_count: int
    attachment_count: int
    codeblock_count: int
    deleted: bool
    # "auto" for listener pastes, "manual" for /paste requests.
    trigger: str

    @property
    def automatic(self) -> bool:
        return self.trigger == "auto"
