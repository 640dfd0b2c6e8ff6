from __future__ import annotations

import asyncio

import pytest

import client as client_module
from client import login, login_method


class FakeUser:
    username = "alice"
    first_name = "Alice"


class FakeTelegramClient:
    def __init__(self, authorized: bool = False) -> None:
        self.authorized = authorized
        self.connected = False
        self.start_kwargs: list[dict] = []

    async def start(self, **kwargs) -> None:
        self.start_kwargs.append(kwargs)
        self.authorized = True

    async def connect(self) -> None:
        self.connected = True

    async def is_user_authorized(self) -> bool:
        return self.authorized

    async def get_me(self) -> FakeUser:
        return FakeUser()


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch) -> None:
    monkeypatch.setattr(client_module, "load_dotenv", lambda: None)
    for name in ("BOT_TOKEN", "LOGIN_METHOD", "PHONE"):
        monkeypatch.delenv(name, raising=False)


def test_bot_token_logs_in_as_bot(monkeypatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", " 123:abc ")
    fake = FakeTelegramClient()

    asyncio.run(login(fake))

    assert fake.start_kwargs == [{"bot_token": "123:abc"}]


def test_authorized_user_session_is_reused(monkeypatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    fake = FakeTelegramClient(authorized=True)

    asyncio.run(login(fake, allow_bot=False))

    assert fake.connected
    assert fake.start_kwargs == []


def test_phone_login_uses_phone_from_env(monkeypatch) -> None:
    monkeypatch.setenv("LOGIN_METHOD", "phone")
    monkeypatch.setenv("PHONE", "+10000000000")
    fake = FakeTelegramClient()

    asyncio.run(login(fake))

    (kwargs,) = fake.start_kwargs
    assert kwargs["phone"]() == "+10000000000"
    assert callable(kwargs["password"])


def test_login_method_defaults_to_qr(monkeypatch) -> None:
    assert login_method() == "qr"
    monkeypatch.setenv("LOGIN_METHOD", "Phone")
    assert login_method() == "phone"
    monkeypatch.setenv("LOGIN_METHOD", "sms")
    with pytest.raises(RuntimeError):
        login_method()
