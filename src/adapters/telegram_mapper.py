"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Optional, Tuple

from telethon.helpers import add_surrogate, del_surrogate
from telethon.tl.custom import Message
from telethon.tl.types import MessageEntityPre, PeerChannel, PeerChat

from core.destinations import build_destination_key
from core.fences import FENCE
from core.models import Attachment, MessageContext


def chat_key_from_message(message: Message) -> str:
    """Normalize a chat key using a single rule enforced across the app."""

    chat = getattr(message, "chat", None)
    username = getattr(chat, "username", None)

    if isinstance(username, str) and username:
        return f"@{username.lower()}"

    # Fallback: always stable and universal
    return f"chat_id:{message.chat_id}"


def _topic_id_from_message(message: Message) -> Optional[int]:
    reply_to = getattr(message, "reply_to", None)
    if not reply_to or not getattr(reply_to, "forum_topic", False):
        return None
    top_id = getattr(reply_to, "reply_to_top_id", None)
    if top_id:
        return top_id
    return getattr(reply_to, "reply_to_msg_id", None)


def message_text(message: Message) -> str:
    """Return the message text with code entities written back as fences.

    Official clients send typed fences as MessageEntityPre and strip the
    backticks from the text. Entity offsets count UTF-16 code units.
    """

    text = message.raw_text or ""
    entities = getattr(message, "entities", None) or []
    blocks = sorted(
        (entity for entity in entities if isinstance(entity, MessageEntityPre)),
        key=lambda entity: entity.offset,
    )
    if not blocks:
        return text

    surrogated = add_surrogate(text)
    parts = []
    cursor = 0
    for block in blocks:
        start = block.offset
        end = start + block.length
        if start < cursor:
            continue
        language = (block.language or "").strip()
        parts.append(surrogated[cursor:start])
        parts.append(f"{FENCE}{language}\n{surrogated[start:end]}{FENCE}")
        cursor = end
    parts.append(surrogated[cursor:])
    return del_surrogate("".join(parts))


def _sender_name(message: Message) -> str:
    sender = getattr(message, "sender", None)
    username = getattr(sender, "username", None)
    if username:
        return f"@{username}"
    first = getattr(sender, "first_name", None)
    last = getattr(sender, "last_name", None)
    if first or last:
        return " ".join(part for part in [first, last] if part)
    title = getattr(sender, "title", None)
    if title:
        return str(title)
    sender_id = getattr(message, "sender_id", None)
    return str(sender_id) if sender_id is not None else "unknown"


def attachments_from_message(message: Message) -> Tuple[Attachment, ...]:
    """Describe the message's file, if any, as core attachments.

    Telegram carries at most one file per message; albums arrive as separate
    messages.
    """

    file = getattr(message, "file", None)
    if file is None:
        return ()
    return (
        Attachment(
            filename=getattr(file, "name", None) or "",
            mime_type=getattr(file, "mime_type", None) or "",
            size=getattr(file, "size", None),
            media=getattr(message, "media", None),
        ),
    )


def _permalink(message: Message) -> Optional[str]:
    # Prefer public usernames for permalinks when available.
    if message.chat and getattr(message.chat, "username", None):
        return f"https://t.me/{message.chat.username}/{message.id}"
    peer_id = message.peer_id
    if not peer_id:
        return None
    # Private groups/supergroups/channels can use the /c/ links.
    if isinstance(peer_id, PeerChannel):
        return f"https://t.me/c/{peer_id.channel_id}/{message.id}"
    if isinstance(peer_id, PeerChat):
        return f"https://t.me/c/{peer_id.chat_id}/{message.id}"
    # PeerUser has no chat/channel id; no permalink is possible.
    return None


def build_context(message: Message) -> MessageContext:
    """Build a core MessageContext from a Telethon Message."""

    base_source_key = chat_key_from_message(message)
    topic_id = _topic_id_from_message(message)

    return MessageContext(
        source_key=build_destination_key(base_source_key, topic_id),
        base_source_key=base_source_key,
        topic_id=topic_id,
        chat_id=message.chat_id,
        message_id=message.id,
        date=message.date,
        text=message_text(message),
        permalink=_permalink(message),
        sender_id=getattr(message, "sender_id", None),
        sender_name=_sender_name(message),
        attachments=attachments_from_message(message),
    )
