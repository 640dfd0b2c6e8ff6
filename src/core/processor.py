"""Core message processing pipeline.

This module is integration-agnostic. It only relies on ports for storage,
chat actions, attachment downloads, language lookup and paste creation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Mapping, Optional, Sequence

from core.batch import build_paste_batch, build_raw_batch
from core.codeblocks import detect_codeblocks
from core.config import DeletionMode, QualificationConfig
from core.errors import AttachmentFetchError, PasteSubmissionError
from core.fences import is_exclusively_fenced
from core.models import Attachment, AttachmentText, MessageContext, PasteRecord, PasteUnit
from core.ports import (
    AttachmentSourcePort,
    ChatPort,
    LanguageResolverPort,
    PasteSinkPort,
    StoragePort,
)
from core.qualification import (
    get_qualifying_attachments,
    get_qualifying_codeblocks,
    is_destination_ignored,
    qualifies_for_deletion,
)

LOGGER = logging.getLogger(__name__)


def paste_title(author: str) -> str:
    return f"Automatic paste by {author}"


class PasteProcessor:
    """Orchestrates qualification, batching, pasting, deletion and replies."""

    def __init__(
        self,
        storage: StoragePort,
        chat: ChatPort,
        attachment_source: AttachmentSourcePort,
        languages: LanguageResolverPort,
        paste_sink: PasteSinkPort,
        chat_configs: Mapping[str, QualificationConfig],
        default_config: Optional[QualificationConfig] = None,
        send_confirmations: bool = True,
    ) -> None:
        self._storage = storage
        self._chat = chat
        self._attachment_source = attachment_source
        self._languages = languages
        self._paste_sink = paste_sink
        self._chat_configs = dict(chat_configs)
        self._default_config = default_config or QualificationConfig()
        self._send_confirmations = send_confirmations

    def config_for(self, context: MessageContext) -> QualificationConfig:
        """Return the chat's config, or the default config when it has none."""

        return self._chat_configs.get(context.base_source_key, self._default_config)

    async def handle(self, context: MessageContext) -> Optional[str]:
        """Auto-paste one incoming message if it qualifies; return the paste URL."""

        config = self.config_for(context)
        if is_destination_ignored(context.source_key, config):
            return None

        # Nothing to inspect: stickers, service messages, media without files.
        if not context.text.strip() and not context.attachments:
            return None

        # Message-level idempotency: Telegram message ids are monotonically increasing
        # per chat, so we can safely skip anything we've already processed.
        last_id = self._storage.get_last_id(context.source_key) or 0
        if context.message_id <= last_id:
            return None

        codeblocks = get_qualifying_codeblocks(context.text, config, context.source_key)
        attachments = get_qualifying_attachments(context.attachments, config, context.source_key)
        if not codeblocks and not attachments:
            self._storage.set_last_id(context.source_key, context.message_id)
            return None

        fetched = await self._fetch_attachments(context, attachments)
        units = await asyncio.to_thread(build_paste_batch, fetched, codeblocks, self._languages)
        if not units:
            LOGGER.info("Nothing to paste for %s/%s", context.source_key, context.message_id)
            self._storage.set_last_id(context.source_key, context.message_id)
            return None

        # Only delete when every attachment made it into the batch; a failed
        # download would otherwise lose the file.
        delete = len(fetched) == len(attachments) and qualifies_for_deletion(
            context.text,
            context.attachments,
            config,
            context.source_key,
            DeletionMode.AUTO,
        )
        record = await self._paste(
            context,
            units,
            attachment_count=len(fetched),
            codeblock_count=len(codeblocks),
            delete=delete,
            trigger="auto",
        )

        # Update the last_message_id after all handling to ensure restart safety.
        self._storage.set_last_id(context.source_key, context.message_id)
        return record.url if record else None

    async def paste_manual(
        self,
        context: MessageContext,
        paster_id: Optional[int],
        mode: DeletionMode = DeletionMode.KEEP,
    ) -> Optional[str]:
        """Paste a message on request, whatever the chat thresholds say.

        Exclusively fenced text pastes its codeblocks, text attachments paste
        as files, and anything else is pasted as one raw unit.
        """

        config = self.config_for(context)
        attachment_count = 0
        codeblock_count = 0
        fetched: List[AttachmentText] = []

        if not context.attachments and is_exclusively_fenced(context.text):
            codeblocks = detect_codeblocks(context.text)
            codeblock_count = len(codeblocks)
            units = await asyncio.to_thread(build_paste_batch, [], codeblocks, self._languages)
        else:
            attachments = get_qualifying_attachments(context.attachments, config)
            fetched = await self._fetch_attachments(context, attachments)
            if fetched:
                attachment_count = len(fetched)
                units = await asyncio.to_thread(build_paste_batch, fetched, [], self._languages)
            else:
                units = build_raw_batch(context.text)

        if not units:
            LOGGER.info("Manual paste of %s/%s had nothing to paste", context.source_key, context.message_id)
            return None

        if mode is DeletionMode.DELETE and len(fetched) < len(context.attachments):
            # A file that was not pasted would be lost with the message.
            LOGGER.info("Keeping %s/%s, not every attachment was pasted", context.source_key, context.message_id)
            mode = DeletionMode.KEEP
        if mode is DeletionMode.DELETE and not await self._may_delete(context, paster_id):
            LOGGER.info("Paster %s may not delete %s/%s, keeping it", paster_id, context.source_key, context.message_id)
            mode = DeletionMode.KEEP

        delete = qualifies_for_deletion(context.text, context.attachments, config, mode=mode)
        record = await self._paste(
            context,
            units,
            attachment_count=attachment_count,
            codeblock_count=codeblock_count,
            delete=delete,
            trigger="manual",
        )
        if record:
            LOGGER.info("Message %s/%s pasted to %s by %s", context.source_key, context.message_id, record.url, paster_id)
        return record.url if record else None

    async def _may_delete(self, context: MessageContext, paster_id: Optional[int]) -> bool:
        if paster_id is None:
            return False
        if context.sender_id is not None and paster_id == context.sender_id:
            return True
        return await self._chat.can_delete_for(context, paster_id)

    async def _fetch_attachments(
        self,
        context: MessageContext,
        attachments: Sequence[Attachment],
    ) -> List[AttachmentText]:
        """Download attachment bodies; a failed file is skipped, not fatal."""

        fetched: List[AttachmentText] = []
        for attachment in attachments:
            try:
                content = await self._attachment_source.fetch_text(attachment)
            except AttachmentFetchError as exc:
                LOGGER.warning(
                    "Skipping attachment %s on %s/%s: %s",
                    attachment.filename,
                    context.source_key,
                    context.message_id,
                    exc,
                )
                continue
            fetched.append(
                AttachmentText(
                    filename=attachment.filename,
                    mime_type=attachment.mime_type,
                    content=content,
                )
            )
        return fetched

    async def _paste(
        self,
        context: MessageContext,
        units: Sequence[PasteUnit],
        *,
        attachment_count: int,
        codeblock_count: int,
        delete: bool,
        trigger: str,
    ) -> Optional[PasteRecord]:
        try:
            url = await self._paste_sink.create_paste(
                context.sender_name,
                paste_title(context.sender_name),
                units,
            )
        except PasteSubmissionError:
            LOGGER.exception("Paste failed for %s/%s", context.source_key, context.message_id)
            return None

        deleted = False
        if delete:
            try:
                await self._chat.delete_message(context)
                deleted = True
            except Exception:
                LOGGER.exception("Failed to delete %s/%s after pasting", context.source_key, context.message_id)

        record = PasteRecord(
            url=url,
            unit_count=len(units),
            attachment_count=attachment_count,
            codeblock_count=codeblock_count,
            deleted=deleted,
            trigger=trigger,
        )

        if self._send_confirmations:
            try:
                await self._chat.send_confirmation(context, record)
            except Exception:
                LOGGER.exception("Failed to confirm paste for %s/%s", context.source_key, context.message_id)

        self._storage.save_paste(context, record)
        LOGGER.info(
            "%s unit(s) from %s/%s pasted to %s (%s)",
            record.unit_count,
            context.source_key,
            context.message_id,
            url,
            trigger,
        )
        return record
