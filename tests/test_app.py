from __future__ import annotations

import json
from pathlib import Path

import pytest

import app
import settings
from adapters.log_notifier import LogNotifier
from adapters.telegram_bot_notifier import TelegramBotNotifier


def _record(
    value: float = 15,
    method: str = "Visa",
    valid_from: str = "2024-01-01",
    valid_until: str = "2024-01-31",
) -> dict:
    return {
        "source": "carrefour",
        "discount": {"type": "porcentaje", "value": value},
        "validFrom": valid_from,
        "validUntil": valid_until,
        "paymentMethods": [[method]],
    }


def _write(path: Path, records: list) -> str:
    path.write_text(json.dumps(records), encoding="utf-8")
    return str(path)


def test_keys_command_suffixes_repeats(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    path = _write(tmp_path / "carrefour.json", [_record(), _record()])

    app.main(["--no-banner", "keys", path])

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("carrefour-porcentaje15-0101-0131-visa-todos-y2024\t")
    assert lines[1].startswith("carrefour-porcentaje15-0101-0131-visa-todos-y2024-1\t")
    assert "CARREFOUR 15% off with Visa" in lines[0]


def test_diff_command_prints_report(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    previous = _write(tmp_path / "old.json", [_record()])
    current = _write(
        tmp_path / "new.json",
        [_record(valid_from="2024-02-01", valid_until="2024-02-29"), _record(20, "Mastercard")],
    )

    app.main(["--no-banner", "diff", previous, current, "--source", "carrefour"])

    out = capsys.readouterr().out
    assert "*Discount changes: CARREFOUR*" in out
    assert "*Added (1):*" in out
    assert "*Validity changed (1):*" in out
    assert "Removed" not in out


def test_diff_command_json(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    previous = _write(tmp_path / "old.json", [_record()])
    current = _write(tmp_path / "new.json", [])

    app.main(["--no-banner", "diff", previous, current, "--json"])

    data = json.loads(capsys.readouterr().out)
    assert data["added"] == []
    assert data["removed"] == ["carrefour-porcentaje15-0101-0131-visa-todos-y2024"]
    assert data["total_old"] == 1
    assert data["total_new"] == 0


def test_diff_notify_sends_only_when_changed(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
) -> None:
    notifier = LogNotifier()
    monkeypatch.setattr(app, "build_notifier", lambda: notifier)
    monkeypatch.setattr(settings, "NOTIFICATION_FORMAT", "html")
    same = _write(tmp_path / "same.json", [_record()])
    changed = _write(tmp_path / "changed.json", [_record(), _record(30, "Modo")])

    app.main(["--no-banner", "diff", same, same, "--notify"])
    assert notifier.sent == []

    app.main(["--no-banner", "diff", same, changed, "--notify"])
    capsys.readouterr()
    (message,) = notifier.sent
    assert message.startswith("<b>Discount changes: CHANGED</b>")
    assert "CARREFOUR 30%" in message


def test_gaps_command_json(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    ours = _write(tmp_path / "carrefour.json", [_record()])
    feed = _write(
        tmp_path / "feed.json",
        [
            {"store": "Carrefour Express", "discount": "15%", "paymentMethod": "Visa"},
            {"store": "Coto", "discount": "35% off", "paymentMethod": "Modo"},
            {"store": "Nowhere", "discount": "10%"},
        ],
    )

    app.main(["--no-banner", "gaps", ours, "--third-party", feed, "--json"])

    data = json.loads(capsys.readouterr().out)
    assert data["skipped"] == 1
    assert data["ours_total"] == 1
    assert data["third_party_total"] == 2
    assert [item["store"] for item in data["high_value_missing"]] == ["coto"]


def test_analyze_command(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    path = _write(tmp_path / "carrefour.json", [_record(), _record(), _record(20)])

    app.main(["--no-banner", "analyze", path])

    out = capsys.readouterr().out
    assert "Discounts: 3" in out
    assert "Unique keys: 2 (66.7%)" in out
    assert "Duplicate x2: carrefour-porcentaje15-0101-0131-visa-todos-y2024" in out
    assert "carrefour: 3 discounts, 2 unique keys" in out


def test_build_notifier_defaults_to_log(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "NOTIFICATION_METHOD", "log")

    assert isinstance(app.build_notifier(), LogNotifier)


def test_build_notifier_bot_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "NOTIFICATION_METHOD", "bot")
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)

    with pytest.raises(RuntimeError, match="TELEGRAM_BOT_TOKEN"):
        app.build_notifier()


def test_build_notifier_bot(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "NOTIFICATION_METHOD", "bot")
    monkeypatch.setattr(settings, "BOT_CHAT_ID", "42")
    monkeypatch.setattr(settings, "NOTIFICATION_FORMAT", "markdown")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "token")

    assert isinstance(app.build_notifier(), TelegramBotNotifier)


def test_unknown_notification_method(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "NOTIFICATION_METHOD", "email")

    with pytest.raises(RuntimeError):
        app.build_notifier()
