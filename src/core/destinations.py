"""Helpers for working with telepaste destination keys.

A destination key names where a message was posted: ``@username`` or
``chat_id:<id>`` for a chat, with ``#topic:<id>`` appended for a forum topic.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

TOPIC_SUFFIX = "#topic:"
CHAT_ID_PREFIX = "chat_id:"


def build_destination_key(chat_key: str, topic_id: Optional[int]) -> str:
    """Return the destination key for a chat, or for a topic inside it."""

    if topic_id is None:
        return chat_key
    return f"{chat_key}{TOPIC_SUFFIX}{topic_id}"


def split_destination_key(destination: str) -> Tuple[str, Optional[int]]:
    """Split a destination key into (chat_key, topic_id)."""

    chat_key, found, topic_part = destination.partition(TOPIC_SUFFIX)
    if not found or not chat_key:
        return destination, None
    try:
        return chat_key, int(topic_part)
    except ValueError:
        return destination, None


def _chat_id_forms(chat_id: int) -> set[int]:
    """Return the peer id, basic chat id and channel id spellings of a chat."""

    forms = {chat_id}
    if chat_id >= 0:
        forms.add(-chat_id)
        forms.add(-1000000000000 - chat_id)
        return forms

    digits = str(chat_id)
    if digits.startswith("-100") and digits[4:].isdigit():
        # -100<channel_id> is how Telethon spells supergroups and channels.
        forms.add(int(digits[4:]))
    else:
        forms.add(-chat_id)
    return forms


def expand_destination_variants(destination: str) -> set[str]:
    """Expand a key to every equivalent ``chat_id`` spelling.

    Username keys are only lower-cased, matching how messages are keyed.
    """

    chat_key, topic_id = split_destination_key(destination)
    if chat_key.startswith("@"):
        return {destination.lower()}
    if not chat_key.startswith(CHAT_ID_PREFIX):
        return {destination}

    try:
        chat_id = int(chat_key[len(CHAT_ID_PREFIX):])
    except ValueError:
        return {destination}

    return {
        build_destination_key(f"{CHAT_ID_PREFIX}{form}", topic_id)
        for form in _chat_id_forms(chat_id)
    }


def expand_all(destinations: Iterable[str]) -> frozenset[str]:
    """Expand a collection of configured keys into one lookup set."""

    expanded: set[str] = set()
    for destination in destinations:
        if destination:
            expanded.update(expand_destination_variants(str(destination).strip()))
    return frozenset(expanded)
