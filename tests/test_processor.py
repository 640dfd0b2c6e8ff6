from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional, Sequence

from core.batch import AUTODETECT
from core.config import DeletionMode, QualificationConfig
from core.errors import AttachmentFetchError, PasteSubmissionError
from core.models import Attachment, MessageContext, PasteRecord, PasteUnit
from core.processor import PasteProcessor


class FakeStorage:
    def __init__(self) -> None:
        self.last_ids: dict[str, int] = {}
        self.saved: list[tuple[MessageContext, PasteRecord]] = []

    def get_last_id(self, source_key: str) -> Optional[int]:
        return self.last_ids.get(source_key)

    def set_last_id(self, source_key: str, last_message_id: int) -> None:
        self.last_ids[source_key] = last_message_id

    def save_paste(self, context: MessageContext, record: PasteRecord) -> None:
        self.saved.append((context, record))


class FakeChat:
    def __init__(self, moderators: Sequence[int] = ()) -> None:
        self.deleted: list[int] = []
        self.confirmed: list[PasteRecord] = []
        self.moderators = set(moderators)
        self.files: dict[str, str] = {}

    async def delete_message(self, context: MessageContext) -> None:
        self.deleted.append(context.message_id)

    async def send_confirmation(self, context: MessageContext, record: PasteRecord) -> None:
        self.confirmed.append(record)

    async def can_delete_for(self, context: MessageContext, user_id: int) -> bool:
        return user_id in self.moderators

    async def fetch_text(self, attachment: Attachment) -> str:
        if attachment.filename not in self.files:
            raise AttachmentFetchError(f"{attachment.filename} unavailable")
        return self.files[attachment.filename]


class FakeLanguages:
    def by_extension(self, extension: Optional[str]) -> str:
        return {"py": "Python", ".py": "Python", "cs": "C#", ".cs": "C#"}.get(extension or "", AUTODETECT)

    def by_name(self, name: Optional[str]) -> str:
        return AUTODETECT


class FakePasteSink:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.pastes: list[tuple[str, str, list[PasteUnit]]] = []

    async def create_paste(self, author: str, title: str, units: Sequence[PasteUnit]) -> str:
        if self.fail:
            raise PasteSubmissionError("service unavailable")
        self.pastes.append((author, title, list(units)))
        return f"https://paste.myst.rs/paste{len(self.pastes)}"


def _context(
    text: str,
    *,
    message_id: int = 1,
    source_key: str = "@group",
    base_source_key: str = "@group",
    topic_id: Optional[int] = None,
    attachments: tuple[Attachment, ...] = (),
    sender_id: int = 42,
) -> MessageContext:
    return MessageContext(
        source_key=source_key,
        base_source_key=base_source_key,
        topic_id=topic_id,
        chat_id=123,
        message_id=message_id,
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        text=text,
        permalink=None,
        sender_id=sender_id,
        sender_name="@alice",
        attachments=attachments,
    )


def _processor(
    config: QualificationConfig,
    *,
    storage: Optional[FakeStorage] = None,
    chat: Optional[FakeChat] = None,
    sink: Optional[FakePasteSink] = None,
) -> tuple[PasteProcessor, FakeStorage, FakeChat, FakePasteSink]:
    storage = storage or FakeStorage()
    chat = chat or FakeChat()
    sink = sink or FakePasteSink()
    processor = PasteProcessor(
        storage=storage,
        chat=chat,
        attachment_source=chat,
        languages=FakeLanguages(),
        paste_sink=sink,
        chat_configs={"@group": config},
    )
    return processor, storage, chat, sink


LONG_BLOCK = "```py\n" + "\n".join(f"print({index})" for index in range(10)) + "\n```"


def test_auto_paste_deletes_exclusively_fenced_message() -> None:
    processor, storage, chat, sink = _processor(QualificationConfig(line_threshold=5))

    url = asyncio.run(processor.handle(_context(LONG_BLOCK)))

    assert url == "https://paste.myst.rs/paste1"
    author, title, units = sink.pastes[0]
    assert author == "@alice"
    assert title == "Automatic paste by @alice"
    assert [unit.language for unit in units] == ["Python"]
    assert chat.deleted == [1]
    assert chat.confirmed[0].automatic
    assert storage.saved[0][1].deleted
    assert storage.last_ids["@group"] == 1


def test_auto_paste_keeps_message_with_plain_text() -> None:
    config = QualificationConfig(line_threshold=5, auto_paste_if_plain_text=True)
    processor, _, chat, sink = _processor(config)

    asyncio.run(processor.handle(_context("Why does this fail?\n" + LONG_BLOCK)))

    assert len(sink.pastes) == 1
    assert chat.deleted == []
    assert chat.confirmed[0].deleted is False


def test_short_codeblock_is_not_pasted() -> None:
    processor, storage, chat, sink = _processor(QualificationConfig(line_threshold=5))

    asyncio.run(processor.handle(_context("```py\nprint(1)\n```")))

    assert sink.pastes == []
    assert chat.confirmed == []
    assert storage.last_ids["@group"] == 1


def test_unconfigured_chat_pastes_nothing() -> None:
    processor, _, _, sink = _processor(QualificationConfig(line_threshold=0))
    context = _context(LONG_BLOCK, source_key="@elsewhere", base_source_key="@elsewhere")

    asyncio.run(processor.handle(context))

    assert sink.pastes == []


def test_ignored_topic_is_skipped_without_touching_state() -> None:
    config = QualificationConfig(line_threshold=0, ignored_destinations=frozenset({"@group#topic:7"}))
    processor, storage, _, sink = _processor(config)
    context = _context(LONG_BLOCK, source_key="@group#topic:7", topic_id=7)

    asyncio.run(processor.handle(context))

    assert sink.pastes == []
    assert storage.last_ids == {}


def test_idempotency_is_per_source_key() -> None:
    processor, storage, _, sink = _processor(QualificationConfig(line_threshold=5))

    asyncio.run(processor.handle(_context(LONG_BLOCK, message_id=5)))
    asyncio.run(processor.handle(_context(LONG_BLOCK, message_id=5)))
    asyncio.run(processor.handle(_context(LONG_BLOCK, message_id=4)))

    assert len(sink.pastes) == 1
    assert storage.last_ids["@group"] == 5


def test_paste_failure_does_not_delete() -> None:
    processor, storage, chat, _ = _processor(
        QualificationConfig(line_threshold=5),
        sink=FakePasteSink(fail=True),
    )

    url = asyncio.run(processor.handle(_context(LONG_BLOCK)))

    assert url is None
    assert chat.deleted == []
    assert chat.confirmed == []
    assert storage.saved == []
    assert storage.last_ids["@group"] == 1


def test_attachments_then_codeblocks_and_failed_download_is_skipped() -> None:
    chat = FakeChat()
    chat.files = {"Program.cs": "class Program {}"}
    config = QualificationConfig(line_threshold=5, paste_attachments=True)
    processor, _, _, sink = _processor(config, chat=chat)
    attachments = (
        Attachment(filename="Program.cs", mime_type="text/plain", size=16),
        Attachment(filename="missing.py", mime_type="text/plain", size=10),
    )

    asyncio.run(processor.handle(_context(LONG_BLOCK, attachments=attachments)))

    _, _, units = sink.pastes[0]
    assert [(unit.title, unit.language) for unit in units] == [
        ("Program.cs", "C#"),
        ("(untitled)", "Python"),
    ]
    # A skipped download means the message still holds unpasted content.
    assert chat.deleted == []
    assert chat.confirmed[0].attachment_count == 1
    assert chat.confirmed[0].codeblock_count == 1


def test_manual_paste_of_plain_text_keeps_message() -> None:
    processor, _, chat, sink = _processor(QualificationConfig())

    url = asyncio.run(processor.paste_manual(_context("just some text"), paster_id=7))

    assert url is not None
    _, _, units = sink.pastes[0]
    assert units == [PasteUnit(title="(untitled)", language=AUTODETECT, content="just some text")]
    assert chat.deleted == []
    assert chat.confirmed[0].automatic is False


def test_manual_delete_by_author_ignores_thresholds() -> None:
    processor, storage, chat, sink = _processor(QualificationConfig())

    asyncio.run(processor.paste_manual(_context("```cs\nx\n``` ```py\ny\n```"), 42, DeletionMode.DELETE))

    _, _, units = sink.pastes[0]
    assert [unit.language for unit in units] == ["C#", "Python"]
    assert chat.deleted == [1]
    assert storage.saved[0][1].trigger == "manual"


def test_manual_delete_requires_permission() -> None:
    processor, _, chat, _ = _processor(QualificationConfig(), chat=FakeChat(moderators=[99]))

    asyncio.run(processor.paste_manual(_context("some text", message_id=1), 7, DeletionMode.DELETE))
    asyncio.run(processor.paste_manual(_context("some text", message_id=2), 99, DeletionMode.DELETE))

    assert chat.deleted == [2]


def test_manual_paste_with_nothing_to_paste() -> None:
    processor, _, _, sink = _processor(QualificationConfig())

    url = asyncio.run(processor.paste_manual(_context("   "), 42, DeletionMode.DELETE))

    assert url is None
    assert sink.pastes == []


def test_manual_delete_keeps_message_when_attachment_is_not_pasted() -> None:
    processor, _, chat, sink = _processor(QualificationConfig(paste_attachments=True))
    too_big = Attachment(filename="dump.log", mime_type="text/plain", size=10_000_000)

    url = asyncio.run(
        processor.paste_manual(_context("see attached", attachments=(too_big,)), 42, DeletionMode.DELETE)
    )

    assert url is not None
    _, _, units = sink.pastes[0]
    assert units == [PasteUnit(title="(untitled)", language=AUTODETECT, content="see attached")]
    assert chat.deleted == []
    assert chat.confirmed[0].deleted is False


def test_manual_delete_removes_message_when_every_attachment_is_pasted() -> None:
    chat = FakeChat()
    chat.files = {"Program.cs": "class Program {}"}
    processor, _, _, sink = _processor(QualificationConfig(paste_attachments=True), chat=chat)
    attachment = Attachment(filename="Program.cs", mime_type="text/plain", size=16)

    asyncio.run(processor.paste_manual(_context("", attachments=(attachment,)), 42, DeletionMode.DELETE))

    _, _, units = sink.pastes[0]
    assert [(unit.title, unit.language) for unit in units] == [("Program.cs", "C#")]
    assert chat.deleted == [1]