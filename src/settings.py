"""Static configuration for telepaste.

All user-editable settings (per-chat thresholds, PasteMyst, replies, logging)
live in a single JSON file for quick edits without touching Python. A missing
file is not an error: every chat then gets the default config, which pastes
nothing automatically.
"""

import json
import os

from core.config import QualificationConfig
from core.destinations import expand_all, expand_destination_variants

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the SQLite database.
DB_PATH = os.getenv("TELEPASTE_DB", os.path.join(os.path.dirname(__file__), "telepaste.db"))

# TELEPASTE_CONFIG can point at a config outside the checkout.
CONFIG_PATH = os.getenv("TELEPASTE_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config(path: str = CONFIG_PATH) -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(path):
        return {}

    with open(path, "r", encoding="utf-8") as handle:
        loaded = json.load(handle)
    if not isinstance(loaded, dict):
        raise ValueError(f"Config root must be an object: {path}")
    return loaded


def build_qualification(entry: dict, paste_attachments_default: bool = True) -> QualificationConfig:
    """Build a QualificationConfig from one ``defaults`` or ``chats`` entry."""

    return QualificationConfig(
        auto_paste_if_plain_text=bool(entry.get("auto_paste_if_plain_text", False)),
        count_threshold=int(entry.get("count_threshold", -1)),
        line_threshold=int(entry.get("line_threshold", -1)),
        ignored_destinations=expand_all(entry.get("ignored_destinations", []) or []),
        paste_attachments=bool(entry.get("paste_attachments", paste_attachments_default)),
    )


def normalize_chats(raw_chats: list[dict]) -> dict[str, QualificationConfig]:
    """Build per-chat configs keyed by every equivalent chat key."""

    configs: dict[str, QualificationConfig] = {}
    for entry in raw_chats:
        source_key = entry.get("source_key")
        if not source_key:
            continue
        if not entry.get("enabled", True):
            continue
        config = build_qualification(entry)
        for key in expand_destination_variants(str(source_key).strip()):
            # The first entry wins when two spellings name the same chat.
            configs.setdefault(key, config)
    return configs


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Chats without an entry fall back to the defaults block, or to the
# do-nothing QualificationConfig() when there is none.
_defaults = _CONFIG.get("defaults")
DEFAULT_QUALIFICATION = (
    build_qualification(_defaults, paste_attachments_default=False)
    if isinstance(_defaults, dict)
    else QualificationConfig()
)
CHAT_QUALIFICATION = normalize_chats(_CONFIG.get("chats", []))

# PasteMyst endpoint and paste lifetime.
_pastemyst = _CONFIG.get("pastemyst", {})
PASTEMYST_BASE_URL = _pastemyst.get("base_url", "https://paste.myst.rs")
PASTEMYST_EXPIRES_IN = _pastemyst.get("expires_in", "never")
PASTEMYST_TIMEOUT = float(_pastemyst.get("timeout", 10))

# Attachments above this size are never downloaded.
_attachments = _CONFIG.get("attachments", {})
ATTACHMENT_MAX_BYTES = int(_attachments.get("max_bytes", 512 * 1024))

# Confirmation replies after a paste ("markdown" or "html").
_replies = _CONFIG.get("replies", {})
REPLIES_ENABLED = bool(_replies.get("enabled", True))
REPLY_FORMAT = _replies.get("format", "markdown")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
