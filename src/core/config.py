"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet


@dataclass(frozen=True)
class QualificationConfig:
    """Per-chat thresholds deciding what gets auto-pasted.

    The defaults describe a chat with no configuration at all: no thresholds
    and no attachment pasting, so nothing is pasted automatically.
    """

    auto_paste_if_plain_text: bool = False
    # -1 disables a threshold.
    count_threshold: int = -1
    line_threshold: int = -1
    ignored_destinations: FrozenSet[str] = field(default_factory=frozenset)
    paste_attachments: bool = False


class DeletionMode(str, Enum):
    """How the source message is treated once its content was pasted."""

    AUTO = "auto"
    DELETE = "delete"
    KEEP = "keep"
