"""Shared paste confirmation formatting helpers.

Keeping formatting here prevents drift between adapters and keeps replies
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html

from core.models import MessageContext, PasteRecord


def describe_paste(record: PasteRecord) -> str:
    """Return the subject and verb, e.g. "codeblocks were" or "attachment was"."""

    kinds = []
    if record.attachment_count:
        kinds.append("attachment" if record.attachment_count == 1 else "attachments")
    if record.codeblock_count:
        kinds.append("codeblock" if record.codeblock_count == 1 else "codeblocks")

    if not kinds:
        return "message was"
    plural = record.unit_count > 1 or len(kinds) > 1
    return f"{' and '.join(kinds)} {'were' if plural else 'was'}"


def _escape_md(value: str) -> str:
    for ch in r"*_[`":
        value = value.replace(ch, f"\\{ch}")
    return value


def _format_markdown(context: MessageContext, record: PasteRecord) -> str:
    """Create the Markdown confirmation used with Telethon's parse_mode="md"."""

    name = _escape_md(context.sender_name)
    if context.sender_id is not None:
        mention = f"[{name}](tg://user?id={context.sender_id})"
    else:
        mention = name
    automatically = " automatically" if record.automatic else ""
    return f"{mention}, your {describe_paste(record)}{automatically} pasted to {record.url}"


def _format_html(context: MessageContext, record: PasteRecord) -> str:
    """Create the HTML confirmation for adapters that send parse_mode="HTML"."""

    name = html.escape(context.sender_name)
    if context.sender_id is not None:
        mention = f"<a href=\"tg://user?id={context.sender_id}\">{name}</a>"
    else:
        mention = name
    automatically = " automatically" if record.automatic else ""
    safe_url = html.escape(record.url)
    return (
        f"{mention}, your {describe_paste(record)}{automatically} pasted to "
        f"<a href=\"{safe_url}\">{safe_url}</a>"
    )


def format_confirmation(context: MessageContext, record: PasteRecord, mode: str) -> str:
    """Return the paste confirmation formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(context, record)
    if mode == "html":
        return _format_html(context, record)
    raise ValueError(f"Unsupported confirmation format: {mode}")
