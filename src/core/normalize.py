"""Text normalization helpers (core domain).

The same store, card, or weekday arrives spelled differently from scraped
HTML, the extraction schema, and third-party feeds. Every function here is
total and idempotent: normalizing an already normalized value returns it
unchanged.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Callable

_STORE_NOISE = re.compile(r"online|express|maxi|\+")
_GENERIC_PAYMENT_WORDS = re.compile(r"tarjeta|card|banco")
_PAYMENT_SYNONYMS = (
    (re.compile(r"mastercard"), "master"),
    (re.compile(r"credito"), "cred"),
    (re.compile(r"debito"), "deb"),
)

_WEEKDAYS = (
    "lunes",
    "martes",
    "miercoles",
    "jueves",
    "viernes",
    "sabado",
    "domingo",
)

_WEEKDAY_ALIASES = {
    "monday": "lunes",
    "tuesday": "martes",
    "wednesday": "miercoles",
    "thursday": "jueves",
    "friday": "viernes",
    "saturday": "sabado",
    "sunday": "domingo",
    "mon": "lunes",
    "tue": "martes",
    "wed": "miercoles",
    "thu": "jueves",
    "fri": "viernes",
    "sat": "sabado",
    "sun": "domingo",
    "lun": "lunes",
    "mie": "miercoles",
    "jue": "jueves",
    "vie": "viernes",
    "sab": "sabado",
    "dom": "domingo",
}
_WEEKDAY_ALIASES.update({day: day for day in _WEEKDAYS})


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def strip_accents(text: str) -> str:
    """Drop combining marks so "Crédito" and "Credito" compare equal."""

    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _until_stable(step: Callable[[str], str], text: str) -> str:
    # Removing one token can expose another, so repeat to a fixed point.
    previous = None
    while previous != text:
        previous = text
        text = step(text)
    return text


def _store_step(text: str) -> str:
    text = strip_accents(text.lower())
    text = re.sub(r"\s+", "", text)
    return _STORE_NOISE.sub("", text)


def normalize_store_name(text: str) -> str:
    """Normalize a store label toward a common prefix for substring matching.

    "Carrefour Express", "Carrefour Online" and "CARREFOUR" all become
    "carrefour".
    """

    return _until_stable(_store_step, text or "")


def _payment_step(text: str) -> str:
    text = strip_accents(text.lower()).replace("\U0001f525", "")
    text = re.sub(r"\s+", "", text)
    for pattern, replacement in _PAYMENT_SYNONYMS:
        text = pattern.sub(replacement, text)
    return _GENERIC_PAYMENT_WORDS.sub("", text)


def normalize_payment_method(text: str) -> str:
    """Normalize a payment method name, e.g. "Tarjeta de Crédito Mastercard" -> "decredmaster"."""

    return _until_stable(_payment_step, text or "")


def _weekday_step(text: str) -> str:
    cleaned = _collapse_whitespace(text).lower()
    return _WEEKDAY_ALIASES.get(strip_accents(cleaned), cleaned)


def normalize_weekday(text: str) -> str:
    """Map English or Spanish weekday names to the canonical Spanish token.

    Unrecognized input is returned lowercased and stripped.
    """

    return _until_stable(_weekday_step, text or "")


def weekday_index(text: str) -> int:
    """Position of a weekday in the week (lunes=0), or 7 for unknown names."""

    normalized = normalize_weekday(text)
    if normalized in _WEEKDAYS:
        return _WEEKDAYS.index(normalized)
    return len(_WEEKDAYS)


def slugify_token(text: str) -> str:
    """Reduce arbitrary text to the [a-z0-9] alphabet used inside keys."""

    return re.sub(r"[^a-z0-9]", "", strip_accents(text.lower()))
