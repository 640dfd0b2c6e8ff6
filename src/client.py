"""Telegram client factory and login for telepaste.

telepaste normally runs as a bot (BOT_TOKEN), which needs admin rights in
each group to delete pasted messages. Without a token it logs in as a user
account by QR code or phone code.
"""

from __future__ import annotations

import asyncio
import logging
import os
from getpass import getpass
from typing import Optional

import qrcode
from dotenv import load_dotenv
from telethon import TelegramClient, errors

LOGGER = logging.getLogger(__name__)

LOGIN_METHODS = ("qr", "phone")
QR_ATTEMPTS = 3


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    API_ID and API_HASH come from .env. The session name defaults to
    "telepaste", which creates a local .session file.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    session_name = os.getenv("SESSION_NAME", "telepaste")

    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    LOGGER.info("Initializing Telegram client")

    return TelegramClient(session_name, int(api_id), api_hash)


def bot_token() -> Optional[str]:
    """Return BOT_TOKEN when the listener should log in as a bot account."""

    load_dotenv()
    token = os.getenv("BOT_TOKEN")
    return token.strip() if token and token.strip() else None


def login_method() -> str:
    """Return LOGIN_METHOD for user accounts, "qr" when unset."""

    load_dotenv()
    method = (os.getenv("LOGIN_METHOD") or "qr").strip().lower()
    if method not in LOGIN_METHODS:
        raise RuntimeError(f"LOGIN_METHOD must be one of {', '.join(LOGIN_METHODS)}")
    return method


def _two_factor_password() -> str:
    return os.getenv("2FA") or getpass("2FA password: ")


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


async def _qr_login(client: TelegramClient) -> None:
    qr = await client.qr_login()
    for _ in range(QR_ATTEMPTS):
        print("Scan this code in Telegram: Settings > Devices > Link Desktop Device")
        _print_qr(qr.url)
        try:
            await qr.wait(timeout=120)
            return
        except asyncio.TimeoutError:
            await qr.recreate()
        except errors.SessionPasswordNeededError:
            await client.sign_in(password=_two_factor_password())
            return
    raise RuntimeError("QR login timed out")


async def login(client: TelegramClient, allow_bot: bool = True) -> None:
    """Connect and log in, as a bot when BOT_TOKEN is set and allowed."""

    token = bot_token() if allow_bot else None
    if token:
        await client.start(bot_token=token)
        LOGGER.info("Logged in as a bot")
        return

    await client.connect()
    if not await client.is_user_authorized():
        if login_method() == "phone":
            await client.start(
                phone=lambda: os.getenv("PHONE") or input("Phone number (international format): ").strip(),
                password=_two_factor_password,
            )
        else:
            await _qr_login(client)

    me = await client.get_me()
    LOGGER.info("Logged in as %s", getattr(me, "username", None) or getattr(me, "first_name", None))
