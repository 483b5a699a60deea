"""Static configuration for promodiff.

All user-editable settings (tracked stores, matcher thresholds,
notifications, logging) live in a single JSON file for quick edits without
touching Python.
"""

import json
import os

from dotenv import load_dotenv

from core.models import SOURCES

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

load_dotenv()

# PROMODIFF_CONFIG points at an alternative config.json, e.g. per environment.
CONFIG_PATH = os.getenv("PROMODIFF_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _normalize_sources(raw_sources: list) -> tuple[str, ...]:
    """Keep known store identifiers, lowercased, in configured order."""

    sources: list[str] = []
    for entry in raw_sources:
        if isinstance(entry, dict):
            if not entry.get("enabled", True):
                continue
            entry = entry.get("source")
        if not isinstance(entry, str):
            continue
        source = entry.strip().lower()
        if source in SOURCES and source not in sources:
            sources.append(source)
    return tuple(sources)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Stores compared against third-party feeds; defaults to every known source.
TRACKED_STORES = _normalize_sources(_CONFIG.get("sources", list(SOURCES))) or SOURCES

# Matcher: missing offers at or above this percentage are flagged as high value.
_matcher = _CONFIG.get("matcher", {})
HIGH_VALUE_THRESHOLD = float(_matcher.get("high_value_threshold", 25))

# Notification method switches adapters without changing core logic.
# - "log": write reports to the log only
# - "bot": deliver through the Telegram Bot API (TELEGRAM_BOT_TOKEN required)
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("method", "log")
NOTIFICATION_FORMAT = _notifications.get("format", "html")
NOTIFICATION_MAX_ITEMS = int(_notifications.get("max_items", 10))
# Bot chat id is only required when method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id") or os.getenv("TELEGRAM_CHAT_ID")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
