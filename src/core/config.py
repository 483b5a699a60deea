"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from core.models import SOURCES


@dataclass(frozen=True)
class MatcherConfig:
    """Cross-source matching settings."""

    tracked_stores: Tuple[str, ...] = SOURCES
    high_value_threshold: float = 25


@dataclass(frozen=True)
class NotificationConfig:
    """Notification formatting settings consumed by notifier adapters."""

    format: str
    max_items: int
