"""Paste batch assembly (core domain).

Turns qualifying attachments and codeblocks into the ordered list of paste
units handed to the paste sink. Attachments always come first.
"""

from __future__ import annotations

import posixpath
from typing import List, Optional, Sequence

from core.codeblocks import Codeblock
from core.models import AttachmentText, PasteUnit
from core.ports import LanguageResolverPort
from core.qualification import MESSAGE_FILENAME

UNTITLED = "(untitled)"
AUTODETECT = "Autodetect"


def resolve_codeblock_language(tag: Optional[str], languages: LanguageResolverPort) -> str:
    """Resolve a fence language tag, trying it as an extension then as a name."""

    if not tag:
        return AUTODETECT
    language = languages.by_extension(tag)
    if language == AUTODETECT:
        language = languages.by_name(tag)
    return language or AUTODETECT


def _attachment_unit(attachment: AttachmentText, languages: LanguageResolverPort) -> PasteUnit:
    if attachment.filename == MESSAGE_FILENAME:
        return PasteUnit(title=UNTITLED, language=AUTODETECT, content=attachment.content)

    _, extension = posixpath.splitext(attachment.filename)
    language = languages.by_extension(extension) if extension else AUTODETECT
    return PasteUnit(
        title=attachment.filename or UNTITLED,
        language=language or AUTODETECT,
        content=attachment.content,
    )


def build_paste_batch(
    attachments: Sequence[AttachmentText],
    codeblocks: Sequence[Codeblock],
    languages: LanguageResolverPort,
) -> List[PasteUnit]:
    """Return attachment units then codeblock units, each in source order.

    An empty list means there is nothing to paste; callers must not submit it.
    """

    units = [_attachment_unit(attachment, languages) for attachment in attachments]
    for codeblock in codeblocks:
        units.append(
            PasteUnit(
                title=UNTITLED,
                language=resolve_codeblock_language(codeblock.language, languages),
                content=codeblock.content,
            )
        )
    return units


def build_raw_batch(text: str) -> List[PasteUnit]:
    """Wrap a whole message as a single unit for manual pastes."""

    if not text or text.isspace():
        return []
    return [PasteUnit(title=UNTITLED, language=AUTODETECT, content=text)]
