"""Ports (interfaces) used at the edge of the core.

The app picks a notifier implementation from configuration and hands it to
the reporting flow, so nothing in the core decides how reports leave the
process.
"""

from __future__ import annotations

from typing import Protocol


class NotifierPort(Protocol):
    """Delivery of an already formatted report."""

    async def send(self, message: str) -> None:
        ...
