"""Telegram, PasteMyst and SQLite adapters for the telepaste core."""
