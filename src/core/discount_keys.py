"""Canonical, human-legible keys for discount records.

Two derivations share one token computation:

* base key: ``source-typevalue-<payment>-<weekdays>[-<limits>]``, stable when a
  retailer republishes the same offer with a new date range.
* full key: ``source-typevalue-MMDD-MMDD-<payment>-<weekdays>[-<limits>]-y<year>``,
  which changes whenever the validity window does.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from core.models import Discount, Limits, PaymentMethods
from core.normalize import normalize_weekday, slugify_token, weekday_index

ANY_PAYMENT = "any"
EVERY_DAY = "todos"
NO_LIMIT = "notope"

MIN_KEY_LENGTH = 15
MAX_KEY_LENGTH = 80

_KEY_PATTERN = re.compile(r"^[a-z]+-[a-z]+\d[a-z0-9]*(-[a-z0-9]+)*$")
_DATE_TOKEN = re.compile(r"^\d{4}$")


@dataclass(frozen=True)
class KeyParts:
    """Tokens shared by the base and full key derivations."""

    source: str
    discount: str
    tail: Tuple[str, ...]


@dataclass(frozen=True)
class ParsedKey:
    """Components of a key, for debugging and display."""

    source: str
    discount_token: str
    date_range: str
    additional: Tuple[str, ...]


def _digest(payload: str, length: int) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:length]


def format_number(value: float) -> str:
    """Render 15.0 as "15" and 12.5 as "12p5" so keys stay in [a-z0-9-]."""

    if float(value).is_integer():
        text = str(int(value))
    else:
        text = str(value).replace(".", "p")
    return text.replace("-", "m")


def _discount_token(discount: Discount) -> str:
    kind = slugify_token(discount.discount.type) or "desconocido"
    return f"{kind}{format_number(discount.discount.value)}"


def _payment_tokens(payment_methods: PaymentMethods) -> List[str]:
    combinations = payment_methods.canonical()
    if not combinations:
        return [ANY_PAYMENT]

    primary = combinations[0]
    token = "".join(slugify_token(leg) for leg in primary[:2]) or ANY_PAYMENT
    if len(primary) > 2:
        # Legs past the second only show up in the digest.
        token += f"x{len(primary)}{_digest('+'.join(primary), 4)}"
    tokens = [token]

    if len(combinations) > 1:
        payload = "|".join("+".join(combo) for combo in combinations)
        tokens.append(f"alt{len(combinations)}{_digest(payload, 4)}")
    return tokens


def _weekday_token(weekdays: Iterable[str]) -> str:
    days = sorted(
        {normalize_weekday(day) for day in weekdays if day and day.strip()},
        key=lambda day: (weekday_index(day), day),
    )
    if not days or len(days) >= 7:
        return EVERY_DAY
    return "".join(slugify_token(day)[:3] for day in days) or EVERY_DAY


def _limit_tokens(limits: Limits) -> List[str]:
    tokens: List[str] = []
    if limits.explicitly_has_no_limit:
        tokens.append(NO_LIMIT)
    if limits.max_discount:
        tokens.append(f"max{format_number(limits.max_discount)}")
    return tokens


def build_key_parts(discount: Discount) -> KeyParts:
    """Compute the date-independent tokens of a discount's identity."""

    tail = _payment_tokens(discount.payment_methods)
    tail.append(_weekday_token(discount.weekdays))
    tail.extend(_limit_tokens(discount.limits))
    return KeyParts(
        source=slugify_token(discount.source),
        discount=_discount_token(discount),
        tail=tuple(tail),
    )


def _date_tokens(discount: Discount) -> Tuple[str, str]:
    return (
        discount.valid_from.strftime("%m%d"),
        discount.valid_until.strftime("%m%d"),
    )


def _year_token(discount: Discount) -> str:
    start, end = discount.valid_from.year, discount.valid_until.year
    if start == end:
        return f"y{start}"
    return f"y{start}y{end}"


def _assemble(head: List[str], tail: List[str]) -> str:
    key = "-".join(head + tail)
    if len(key) <= MAX_KEY_LENGTH:
        return key
    # Keep the legible head and fold the rest into a short digest.
    return "-".join(head + [_digest("-".join(tail), 8)])


def generate_base_key(discount: Discount) -> str:
    """Return the identity key of a discount, ignoring its validity window."""

    parts = build_key_parts(discount)
    return _assemble([parts.source, parts.discount], list(parts.tail))


def generate_discount_key(discount: Discount) -> str:
    """Return the full key of a discount, including its validity window."""

    parts = build_key_parts(discount)
    head = [parts.source, parts.discount, *_date_tokens(discount)]
    return _assemble(head, [*parts.tail, _year_token(discount)])


def generate_unique_discount_keys(discounts: Iterable[Discount]) -> List[str]:
    """Return full keys for a generation, suffixing repeats with -1, -2, ..."""

    seen: dict[str, int] = {}
    keys: List[str] = []
    for discount in discounts:
        key = generate_discount_key(discount)
        count = seen.get(key, 0)
        seen[key] = count + 1
        keys.append(key if count == 0 else f"{key}-{count}")
    return keys


def validate_discount_key(key: Optional[str]) -> bool:
    """Check a key against the token pattern and length bounds."""

    if not key:
        return False
    if not MIN_KEY_LENGTH <= len(key) <= MAX_KEY_LENGTH:
        return False
    return bool(_KEY_PATTERN.match(key))


def parse_discount_key(key: str) -> ParsedKey:
    """Split a key into source, discount token, date range and the rest."""

    parts = key.split("-")
    source = parts[0] if parts else ""
    discount = parts[1] if len(parts) > 1 else ""
    rest = parts[2:]
    if len(rest) >= 2 and _DATE_TOKEN.match(rest[0]) and _DATE_TOKEN.match(rest[1]):
        return ParsedKey(source, discount, f"{rest[0]}-{rest[1]}", tuple(rest[2:]))
    return ParsedKey(source, discount, "", tuple(rest))
