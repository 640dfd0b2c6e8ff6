"""Telegram chat adapter.

Implements the ChatPort and AttachmentSourcePort contracts on top of a
Telethon client: deleting pasted messages, posting confirmations, checking
moderation rights and downloading text attachments.
"""

from __future__ import annotations

import logging
from typing import Optional

from telethon import errors

from adapters.reply_formatting import format_confirmation
from core.errors import AttachmentFetchError
from core.models import Attachment, MessageContext, PasteRecord

LOGGER = logging.getLogger(__name__)

_PARSE_MODES = {"markdown": "md", "html": "html"}


class TelegramChat:
    """Chat adapter that acts on the chat a message came from."""

    def __init__(self, client, max_attachment_bytes: int, reply_format: str = "markdown") -> None:
        if reply_format not in _PARSE_MODES:
            raise ValueError(f"Unsupported reply format: {reply_format}")
        self._client = client
        self._max_attachment_bytes = max_attachment_bytes
        self._reply_format = reply_format

    async def delete_message(self, context: MessageContext) -> None:
        """Delete the source message for everyone."""

        await self._client.delete_messages(context.chat_id, [context.message_id], revoke=True)

    async def send_confirmation(self, context: MessageContext, record: PasteRecord) -> None:
        """Post the paste link where the message was sent."""

        text = format_confirmation(context, record, mode=self._reply_format)
        reply_to: Optional[int] = context.message_id
        if record.deleted:
            # The message is gone; stay inside the forum topic if there was one.
            reply_to = context.topic_id
        await self._client.send_message(
            context.chat_id,
            text,
            reply_to=reply_to,
            parse_mode=_PARSE_MODES[self._reply_format],
            link_preview=False,
        )

    async def can_delete_for(self, context: MessageContext, user_id: int) -> bool:
        """Return True if the user may delete other members' messages here."""

        try:
            permissions = await self._client.get_permissions(context.chat_id, user_id)
        except (ValueError, errors.RPCError):
            LOGGER.warning("Could not read permissions of %s in %s", user_id, context.source_key)
            return False
        return bool(getattr(permissions, "delete_messages", False))

    async def fetch_text(self, attachment: Attachment) -> str:
        """Download an attachment and decode it as UTF-8 text."""

        if attachment.size is not None and attachment.size > self._max_attachment_bytes:
            raise AttachmentFetchError(
                f"{attachment.filename} is {attachment.size} bytes (limit {self._max_attachment_bytes})"
            )
        if attachment.media is None:
            raise AttachmentFetchError(f"{attachment.filename} has no downloadable media")

        try:
            data = await self._client.download_media(attachment.media, file=bytes)
        except errors.RPCError as exc:
            raise AttachmentFetchError(f"download of {attachment.filename} failed: {exc}") from exc
        if data is None:
            raise AttachmentFetchError(f"download of {attachment.filename} returned nothing")

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise AttachmentFetchError(f"{attachment.filename} is not UTF-8 text") from exc
