"""Parsing of the /paste chat command.

``/paste`` keeps the replied-to message, ``/paste delete`` removes it after
pasting. Bot usernames (``/paste@telepaste_bot``) are accepted.
"""

from __future__ import annotations

import re
from typing import Optional

from core.config import DeletionMode

PASTE_COMMAND = re.compile(r"^/paste(?:@\w+)?(?:\s+(?P<mode>\w+))?\s*$", re.IGNORECASE)

_MODE_ALIASES = {
    "": DeletionMode.KEEP,
    "keep": DeletionMode.KEEP,
    "delete": DeletionMode.DELETE,
    "del": DeletionMode.DELETE,
    "auto": DeletionMode.AUTO,
}


def parse_paste_command(text: str) -> Optional[DeletionMode]:
    """Return the requested deletion mode, or None if this is not /paste."""

    match = PASTE_COMMAND.match((text or "").strip())
    if not match:
        return None
    return _MODE_ALIASES.get((match.group("mode") or "").lower())
