"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, chat, attachment, language and
paste adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from core.models import Attachment, MessageContext, PasteRecord, PasteUnit


class StoragePort(Protocol):
    """Storage operations required by the core pipeline."""

    def get_last_id(self, source_key: str) -> Optional[int]:
        ...

    def set_last_id(self, source_key: str, last_message_id: int) -> None:
        ...

    def save_paste(self, context: MessageContext, record: PasteRecord) -> None:
        ...


class ChatPort(Protocol):
    """Chat operations performed once a paste exists."""

    async def delete_message(self, context: MessageContext) -> None:
        ...

    async def send_confirmation(self, context: MessageContext, record: PasteRecord) -> None:
        ...

    async def can_delete_for(self, context: MessageContext, user_id: int) -> bool:
        ...


class AttachmentSourcePort(Protocol):
    """Downloads attachment bodies; raises AttachmentFetchError on failure."""

    async def fetch_text(self, attachment: Attachment) -> str:
        ...


class LanguageResolverPort(Protocol):
    """Maps extensions and free-text tags to display names.

    Implementations never raise; unknown input maps to the autodetect
    sentinel.
    """

    def by_extension(self, extension: Optional[str]) -> str:
        ...

    def by_name(self, name: Optional[str]) -> str:
        ...


class PasteSinkPort(Protocol):
    """Creates pastes; raises PasteSubmissionError on failure."""

    async def create_paste(self, author: str, title: str, units: Sequence[PasteUnit]) -> str:
        ...
