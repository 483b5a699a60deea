"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so reports can be routed to a bot chat.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

LOGGER = logging.getLogger(__name__)

_PARSE_MODES = {"markdown": "Markdown", "html": "HTML"}

# Telegram rejects messages above 4096 characters.
MAX_MESSAGE_CHARS = 4096


def _truncate(message: str) -> str:
    # Cut on a line boundary so no formatting tag is left open.
    head = message[: MAX_MESSAGE_CHARS - 20]
    cut = head.rfind("\n")
    if cut > 0:
        head = head[:cut]
    return head + "\n... (truncated)"


class TelegramBotNotifier:
    """Notifier adapter that sends reports via the Telegram Bot API."""

    def __init__(self, bot_token: str, chat_id: str, mode: str = "html") -> None:
        if mode not in _PARSE_MODES:
            raise ValueError(f"Unsupported notification format: {mode}")
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._mode = mode

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    def build_payload(self, message: str) -> dict:
        if len(message) > MAX_MESSAGE_CHARS:
            message = _truncate(message)
        return {
            "chat_id": self._chat_id,
            "text": message,
            "parse_mode": _PARSE_MODES[self._mode],
            "disable_web_page_preview": True,
        }

    async def send(self, message: str) -> None:
        """Send the formatted report via the Bot API."""

        data = json.dumps(self.build_payload(message)).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        # Blocking call; reports are sent once per run.
        try:
            with urllib.request.urlopen(request, timeout=10):
                pass
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise RuntimeError(f"Bot API error {e.code}: {body}") from e
        LOGGER.info("Report sent to Telegram chat %s", self._chat_id)
