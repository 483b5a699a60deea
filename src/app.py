"""Command line entry point for promodiff."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from logging.handlers import RotatingFileHandler
from typing import Any, List, Optional

from art import text2art
from dotenv import load_dotenv

import settings
from adapters.json_records import load_discounts, load_third_party
from adapters.log_notifier import LogNotifier
from adapters.notification_formatting import format_diff_notification, format_gap_notification
from adapters.telegram_bot_notifier import TelegramBotNotifier
from core.analysis import analyze_discount_keys
from core.config import MatcherConfig, NotificationConfig
from core.diff import calculate_discount_diff, format_discount_for_display
from core.discount_keys import generate_unique_discount_keys
from core.matcher import find_discount_gaps
from core.ports import NotifierPort

NAME = "PROMODIFF"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    # Banner goes to stderr so stdout stays machine-readable.
    print(text2art(NAME, font=FONT), file=sys.stderr)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/promodiff.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def build_notifier() -> NotifierPort:
    """Select the notification adapter based on configuration."""

    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("TELEGRAM_BOT_TOKEN")
        if not bot_token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is required when notifications.method=bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        return TelegramBotNotifier(
            bot_token=bot_token,
            chat_id=str(settings.BOT_CHAT_ID),
            mode=settings.NOTIFICATION_FORMAT,
        )
    if settings.NOTIFICATION_METHOD == "log":
        return LogNotifier()
    raise RuntimeError("notifications.method must be 'log' or 'bot'")


def _notification_config() -> NotificationConfig:
    return NotificationConfig(
        format=settings.NOTIFICATION_FORMAT,
        max_items=settings.NOTIFICATION_MAX_ITEMS,
    )


def _dump_json(value: Any) -> None:
    print(json.dumps(asdict(value), default=str, ensure_ascii=False, indent=2))


def _source_label(path: str, explicit: Optional[str]) -> str:
    if explicit:
        return explicit
    return os.path.splitext(os.path.basename(path))[0]


def _keys(args: argparse.Namespace) -> None:
    discounts = load_discounts(args.file)
    for key, discount in zip(generate_unique_discount_keys(discounts), discounts):
        print(f"{key}\t{format_discount_for_display(discount)}")


def _diff(args: argparse.Namespace, notifier: Optional[NotifierPort]) -> None:
    previous = load_discounts(args.previous)
    current = load_discounts(args.current)
    diff = calculate_discount_diff(previous, current)

    config = _notification_config()
    source = _source_label(args.current, args.source)
    if args.json:
        _dump_json(diff)
    else:
        print(format_diff_notification(source, diff, mode="markdown", max_items=config.max_items))

    if notifier is not None and diff.has_changes:
        message = format_diff_notification(source, diff, mode=config.format, max_items=config.max_items)
        asyncio.run(notifier.send(message))


def _gaps(args: argparse.Namespace, notifier: Optional[NotifierPort]) -> None:
    ours = []
    for path in args.ours:
        ours.extend(load_discounts(path))
    third_party = load_third_party(args.third_party)

    matcher_config = MatcherConfig(
        tracked_stores=settings.TRACKED_STORES,
        high_value_threshold=settings.HIGH_VALUE_THRESHOLD,
    )
    report = find_discount_gaps(ours, third_party, matcher_config)

    config = _notification_config()
    if args.json:
        _dump_json(report)
    else:
        print(format_gap_notification(report, mode="markdown", max_items=config.max_items))

    if notifier is not None:
        message = format_gap_notification(report, mode=config.format, max_items=config.max_items)
        asyncio.run(notifier.send(message))


def _analyze(args: argparse.Namespace) -> None:
    analysis = analyze_discount_keys(load_discounts(args.file))
    if args.json:
        _dump_json(analysis)
        return

    print(f"Discounts: {analysis.total_discounts}")
    print(f"Unique keys: {analysis.unique_keys} ({analysis.uniqueness_rate:.1f}%)")
    print(
        f"Key length: min {analysis.min_key_length}, max {analysis.max_key_length}, "
        f"avg {analysis.avg_key_length:.1f}"
    )
    for group in analysis.duplicate_groups:
        print(f"Duplicate x{group.count}: {group.key}")
    for source, stats in analysis.source_breakdown.items():
        print(f"{source}: {stats.discounts} discounts, {stats.unique_keys} unique keys")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="promodiff")
    parser.add_argument("--no-banner", action="store_true", help="Do not print the banner")
    subparsers = parser.add_subparsers(dest="command", required=True)

    keys = subparsers.add_parser("keys", help="Print the key of every discount in a file")
    keys.add_argument("file")

    diff = subparsers.add_parser("diff", help="Compare two scrapes of the same source")
    diff.add_argument("previous")
    diff.add_argument("current")
    diff.add_argument("--source", help="Label used in the report (defaults to the file name)")
    diff.add_argument("--json", action="store_true", help="Print the diff as JSON")
    diff.add_argument("--notify", action="store_true", help="Send the report through the configured notifier")

    gaps = subparsers.add_parser("gaps", help="Find third-party offers missing from our data")
    gaps.add_argument("ours", nargs="+", help="Our discount files")
    gaps.add_argument("--third-party", required=True, help="Third-party feed dump (JSON)")
    gaps.add_argument("--json", action="store_true", help="Print the report as JSON")
    gaps.add_argument("--notify", action="store_true", help="Send the report through the configured notifier")

    analyze = subparsers.add_parser("analyze", help="Report key uniqueness statistics for a file")
    analyze.add_argument("file")
    analyze.add_argument("--json", action="store_true", help="Print the analysis as JSON")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if not args.no_banner:
        _print_banner()
    _configure_logging()

    notifier = build_notifier() if getattr(args, "notify", False) else None

    if args.command == "keys":
        _keys(args)
    elif args.command == "diff":
        _diff(args, notifier)
    elif args.command == "gaps":
        _gaps(args, notifier)
    elif args.command == "analyze":
        _analyze(args)


if __name__ == "__main__":
    main()
