"""Qualification policy: what gets pasted and when the source is deleted.

Every function here is pure. Callers pass the message text, attachment
metadata and a per-chat config snapshot; nothing is fetched or mutated.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from core.codeblocks import Codeblock, detect_codeblocks
from core.config import DeletionMode, QualificationConfig
from core.destinations import split_destination_key
from core.fences import is_exclusively_fenced
from core.models import Attachment

TEXT_MIME_TYPE = "text/plain"
# Name given to long messages converted to a file by some clients.
MESSAGE_FILENAME = "message.txt"


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Drop MIME parameters (``; charset=utf-8``) and normalize case."""

    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def is_destination_ignored(destination: Optional[str], config: QualificationConfig) -> bool:
    """Return True when the destination, or its whole chat, is exempt."""

    if destination is None or not config.ignored_destinations:
        return False
    if destination in config.ignored_destinations:
        return True
    chat_key, _ = split_destination_key(destination)
    return chat_key in config.ignored_destinations


def get_qualifying_codeblocks(
    text: str,
    config: QualificationConfig,
    destination: Optional[str] = None,
) -> List[Codeblock]:
    """Return the codeblocks that should be auto-pasted, in appearance order.

    Rules:
    - Exempt destinations and blank text never qualify.
    - Text outside of fences blocks auto-pasting unless the chat opted in.
    - More codeblocks than ``count_threshold`` means all of them qualify.
    - Otherwise each codeblock longer than ``line_threshold`` qualifies.
    """

    if is_destination_ignored(destination, config):
        return []
    if not text or text.isspace():
        return []
    if not config.auto_paste_if_plain_text and not is_exclusively_fenced(text):
        return []

    codeblocks = detect_codeblocks(text)
    if config.count_threshold >= 0 and len(codeblocks) > config.count_threshold:
        return codeblocks

    if config.line_threshold >= 0:
        return [block for block in codeblocks if block.line_count > config.line_threshold]

    return []


def attachment_is_text(attachment: Attachment) -> bool:
    """Return True for plain-text files, including client-generated message.txt."""

    if attachment.filename == MESSAGE_FILENAME:
        return True
    return normalize_mime_type(attachment.mime_type) == TEXT_MIME_TYPE


def get_qualifying_attachments(
    attachments: Sequence[Attachment],
    config: QualificationConfig,
    destination: Optional[str] = None,
) -> List[Attachment]:
    """Return the attachments that should be pasted, in source order."""

    if is_destination_ignored(destination, config):
        return []
    if not config.paste_attachments or not attachments:
        return []
    return [attachment for attachment in attachments if attachment_is_text(attachment)]


def qualifies_for_deletion(
    text: str,
    attachments: Sequence[Attachment],
    config: QualificationConfig,
    destination: Optional[str] = None,
    mode: DeletionMode = DeletionMode.AUTO,
) -> bool:
    """Decide whether the source message may be deleted after pasting.

    Explicit modes come from a user request and win outright. In AUTO mode a
    message is only deleted when nothing in it would be lost: all text sits
    inside fences, every codeblock qualified, and every attachment is a
    pasted plain-text file.
    """

    if mode is DeletionMode.KEEP:
        return False
    if mode is DeletionMode.DELETE:
        return True

    if is_destination_ignored(destination, config):
        return False

    has_text = bool(text) and not text.isspace()
    if not has_text and not attachments:
        return False

    if has_text:
        if not is_exclusively_fenced(text):
            return False
        detected = detect_codeblocks(text)
        qualifying = get_qualifying_codeblocks(text, config, destination)
        if len(qualifying) != len(detected):
            return False

    if attachments:
        qualifying_attachments = get_qualifying_attachments(attachments, config, destination)
        if len(qualifying_attachments) != len(attachments):
            return False
        for attachment in attachments:
            if not normalize_mime_type(attachment.mime_type).startswith(TEXT_MIME_TYPE):
                return False

    return True
