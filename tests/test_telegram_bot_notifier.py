from __future__ import annotations

import asyncio
import io
import json
import urllib.error
import urllib.request

import pytest

from adapters.log_notifier import LogNotifier
from adapters.telegram_bot_notifier import MAX_MESSAGE_CHARS, TelegramBotNotifier


class _Response:
    def __enter__(self) -> "_Response":
        return self

    def __exit__(self, *exc) -> None:
        return None


def test_build_payload_uses_parse_mode() -> None:
    notifier = TelegramBotNotifier(bot_token="token", chat_id="42", mode="markdown")

    payload = notifier.build_payload("*hello*")

    assert payload["chat_id"] == "42"
    assert payload["text"] == "*hello*"
    assert payload["parse_mode"] == "Markdown"
    assert payload["disable_web_page_preview"] is True


def test_long_messages_are_truncated() -> None:
    notifier = TelegramBotNotifier(bot_token="token", chat_id="42")

    payload = notifier.build_payload("x" * (MAX_MESSAGE_CHARS + 100))

    assert len(payload["text"]) <= MAX_MESSAGE_CHARS
    assert payload["text"].endswith("... (truncated)")
    assert payload["parse_mode"] == "HTML"


def test_unsupported_mode_is_rejected() -> None:
    with pytest.raises(ValueError):
        TelegramBotNotifier(bot_token="token", chat_id="42", mode="plain")


def test_send_posts_to_bot_api(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout):
        captured["url"] = request.full_url
        captured["body"] = json.loads(request.data.decode("utf-8"))
        return _Response()

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    notifier = TelegramBotNotifier(bot_token="token", chat_id="42")

    asyncio.run(notifier.send("<b>report</b>"))

    assert captured["url"] == "https://api.telegram.org/bottoken/sendMessage"
    assert captured["body"]["text"] == "<b>report</b>"


def test_send_raises_on_api_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(request, timeout):
        raise urllib.error.HTTPError(request.full_url, 400, "Bad Request", {}, io.BytesIO(b"bad chat"))

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    notifier = TelegramBotNotifier(bot_token="token", chat_id="42")

    with pytest.raises(RuntimeError, match="Bot API error 400: bad chat"):
        asyncio.run(notifier.send("report"))


def test_log_notifier_keeps_sent_messages() -> None:
    notifier = LogNotifier()

    asyncio.run(notifier.send("report"))

    assert notifier.sent == ["report"]


def test_truncation_keeps_html_tags_balanced() -> None:
    notifier = TelegramBotNotifier(bot_token="token", chat_id="42", mode="html")
    message = "\n".join(f"<b>COTO {index}% off</b>" for index in range(400))

    text = notifier.build_payload(message)["text"]

    assert len(text) <= MAX_MESSAGE_CHARS
    assert text.endswith("\n... (truncated)")
    assert text.count("<b>") == text.count("</b>")
    assert text.splitlines()[-2].endswith("</b>")
