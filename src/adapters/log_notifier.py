"""Logging notification adapter.

Used when no delivery channel is configured: reports are written to the log
instead of being sent anywhere.
"""

from __future__ import annotations

import logging

LOGGER = logging.getLogger(__name__)


class LogNotifier:
    """Notifier adapter that logs reports."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send(self, message: str) -> None:
        self.sent.append(message)
        LOGGER.info("Report (not delivered):\n%s", message)
