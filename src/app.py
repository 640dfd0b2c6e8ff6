"""Application entry point for the telepaste listener."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.pastemyst import PasteMystClient
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_chat import TelegramChat
from adapters.telegram_commands import PASTE_COMMAND, parse_paste_command
from adapters.telegram_mapper import build_context
from client import build_client, login
from core.processor import PasteProcessor

NAME = "TELEPASTE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/telepaste.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_processor(client, storage: SQLiteStorage) -> PasteProcessor:
    load_dotenv()
    pastemyst = PasteMystClient(
        base_url=settings.PASTEMYST_BASE_URL,
        token=os.getenv("PASTEMYST_TOKEN") or None,
        expires_in=settings.PASTEMYST_EXPIRES_IN,
        timeout=settings.PASTEMYST_TIMEOUT,
    )
    chat = TelegramChat(
        client,
        max_attachment_bytes=settings.ATTACHMENT_MAX_BYTES,
        reply_format=settings.REPLY_FORMAT,
    )
    return PasteProcessor(
        storage=storage,
        chat=chat,
        attachment_source=chat,
        languages=pastemyst,
        paste_sink=pastemyst,
        chat_configs=settings.CHAT_QUALIFICATION,
        default_config=settings.DEFAULT_QUALIFICATION,
        send_confirmations=settings.REPLIES_ENABLED,
    )


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting telepaste")

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    logger.info("%s chat configs are loaded", len(settings.CHAT_QUALIFICATION))

    client = build_client()
    client.loop.run_until_complete(login(client))

    processor = _build_processor(client, storage)

    # Commands are handled first and never auto-pasted themselves.
    @client.on(events.NewMessage(pattern=PASTE_COMMAND))
    async def paste_command(event) -> None:
        try:
            mode = parse_paste_command(event.raw_text)
            target = await event.get_reply_message()
            if mode is None or target is None:
                await event.reply("Reply to a message with /paste or /paste delete.")
            elif await processor.paste_manual(build_context(target), event.sender_id, mode) is None:
                await event.reply("Nothing to paste in that message.")
        except Exception:
            logger.exception("Error while handling /paste")
        raise events.StopPropagation

    # Messages from other bots, this one included, are never pasted.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            sender = await event.get_sender()
            if sender and getattr(sender, "bot", False):
                return
            context = build_context(event.message)
            await processor.handle(context)
        except Exception:
            logger.exception("Error while processing message")

    logger.info("Client connected. Listening for incoming messages...")
    client.run_until_disconnected()


def _dialog_type(dialog: Any) -> str:
    if getattr(dialog, "is_channel", False):
        entity = getattr(dialog, "entity", None)
        if getattr(entity, "megagroup", False):
            return "group"
        return "channel"
    if getattr(dialog, "is_group", False):
        return "group"
    if getattr(dialog, "is_user", False):
        return "user"
    return "chat"


def _source_key_from_dialog(dialog: Any) -> str:
    entity = getattr(dialog, "entity", None)
    username = getattr(entity, "username", None)
    if username:
        return f"@{str(username).lower()}"
    dialog_id = getattr(dialog, "id", None) or getattr(entity, "id", None)
    return f"chat_id:{dialog_id}"


async def _list_group_dialogs(client) -> None:
    # Only group contexts can be configured under "chats".
    dialogs = [dialog async for dialog in client.iter_dialogs() if not dialog.is_user]
    if not dialogs:
        print("No groups or channels found for this account.")
        return

    for index, dialog in enumerate(dialogs, start=1):
        configured = "configured" if _source_key_from_dialog(dialog) in settings.CHAT_QUALIFICATION else "default"
        print(f"{index}. {_dialog_type(dialog)} | {dialog.name} | {_source_key_from_dialog(dialog)} | {configured}")


def _discover() -> None:
    _print_banner()
    client = build_client()

    async def _run_discover() -> None:
        # Bots cannot list dialogs, so discovery always uses a user session.
        await login(client, allow_bot=False)
        await _list_group_dialogs(client)
        await client.disconnect()

    client.loop.run_until_complete(_run_discover())


def _history(source_key: Optional[str], limit: int) -> None:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    rows = storage.list_pastes(source_key, limit)
    if not rows:
        print("No pastes recorded yet.")
        return
    for row in rows:
        deleted = "deleted" if row["deleted"] else "kept"
        print(
            f"{row['created_at']} | {row['source_key']}/{row['message_id']} | "
            f"{row['unit_count']} unit(s) | {row['trigger']} | {deleted} | {row['url']}"
        )


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="telepaste")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the listener")
    subparsers.add_parser(
        "discover",
        help="Lists groups and channels with the source keys to use in config.json.",
    )
    history = subparsers.add_parser("history", help="Show recently created pastes")
    history.add_argument("--source", default=None, help="Only show pastes from this source key")
    history.add_argument("--limit", type=int, default=20)

    args = parser.parse_args(argv)
    if args.command == "discover":
        _discover()
        return
    if args.command == "history":
        _history(args.source, args.limit)
        return
    _run()


if __name__ == "__main__":
    main()
