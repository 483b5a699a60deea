"""JSON record adapter.

Builds core records from the camelCase JSON written by the extraction step
and from third-party feed dumps. Schema violations are rejected here so the
core only ever sees well-typed records.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from datetime import date
from typing import Any, Iterable, List, Optional

from core.models import (
    DISCOUNT_TYPES,
    SOURCES,
    Discount,
    DiscountValue,
    Limits,
    PaymentMethods,
    ThirdPartyDiscount,
)
from core.normalize import weekday_index

LOGGER = logging.getLogger(__name__)

# Placeholder texts the extraction step emits when nothing is excluded.
_PLACEHOLDER_EXCLUSIONS = {"todo el surtido", "todos los productos", "n/a"}


class RecordError(ValueError):
    """Raised when a raw record does not satisfy the discount schema."""


def _strings(raw: Any, field_name: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise RecordError(f"{field_name} must be a list of strings")
    return tuple(raw)


def _number(raw: Any, field_name: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise RecordError(f"{field_name} must be a number, got {raw!r}")
    return raw


def _optional_text(raw: Any, field_name: str) -> Optional[str]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise RecordError(f"{field_name} must be a string, got {raw!r}")
    return raw or None


def _flag(raw: Any, field_name: str) -> bool:
    if not isinstance(raw, bool):
        raise RecordError(f"{field_name} must be true or false, got {raw!r}")
    return raw


def _date(raw: Any, field_name: str) -> date:
    if not isinstance(raw, str):
        raise RecordError(f"{field_name} must be an ISO date string")
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise RecordError(f"{field_name} is not a valid date: {raw!r}") from exc


def _payment_methods(raw: Any) -> PaymentMethods:
    if raw is None:
        return PaymentMethods()
    if not isinstance(raw, list):
        raise RecordError("paymentMethods must be a list")
    combinations = []
    for combo in raw:
        # A bare string is a single-method combination.
        if isinstance(combo, str):
            combinations.append((combo,))
        else:
            combinations.append(_strings(combo, "paymentMethods[]"))
    return PaymentMethods(tuple(combinations))


def _limits(raw: Any) -> Limits:
    if raw is None:
        return Limits()
    if not isinstance(raw, dict):
        raise RecordError("limits must be an object")
    max_discount = raw.get("maxDiscount")
    return Limits(
        max_discount=_number(max_discount, "limits.maxDiscount") if max_discount is not None else None,
        explicitly_has_no_limit=_flag(raw.get("explicitlyHasNoLimit", False), "limits.explicitlyHasNoLimit"),
    )


def parse_discount(raw: Any, default_source: Optional[str] = None) -> Discount:
    """Build a Discount from one extracted JSON record."""

    if not isinstance(raw, dict):
        raise RecordError("discount record must be an object")

    source = raw.get("source") or default_source
    if source not in SOURCES:
        raise RecordError(f"unknown source: {source!r}")

    value = raw.get("discount")
    if not isinstance(value, dict):
        raise RecordError("discount must be an object with type and value")
    if value.get("type") not in DISCOUNT_TYPES:
        raise RecordError(f"unknown discount type: {value.get('type')!r}")

    valid_from = _date(raw.get("validFrom"), "validFrom")
    valid_until = _date(raw.get("validUntil"), "validUntil")
    if valid_from > valid_until:
        raise RecordError(f"validFrom {valid_from} is after validUntil {valid_until}")

    return Discount(
        source=source,
        discount=DiscountValue(type=value["type"], value=_number(value.get("value"), "discount.value")),
        valid_from=valid_from,
        valid_until=valid_until,
        weekdays=_strings(raw.get("weekdays"), "weekdays"),
        payment_methods=_payment_methods(raw.get("paymentMethods")),
        restrictions=_strings(raw.get("restrictions"), "restrictions"),
        limits=_limits(raw.get("limits")),
        where=_strings(raw.get("where"), "where"),
        url=_optional_text(raw.get("url"), "url"),
        excludes_products=_optional_text(raw.get("excludesProducts"), "excludesProducts"),
    )


def clean_discount(discount: Discount) -> Discount:
    """Return a copy with list fields in a stable order and placeholder exclusions dropped."""

    excludes = discount.excludes_products
    if excludes and excludes.strip().lower() in _PLACEHOLDER_EXCLUSIONS:
        excludes = None

    combinations = sorted(tuple(sorted(combo)) for combo in discount.payment_methods.combinations)
    return replace(
        discount,
        weekdays=tuple(sorted(discount.weekdays, key=lambda day: (weekday_index(day), day))),
        payment_methods=PaymentMethods(tuple(combinations)),
        restrictions=tuple(sorted(discount.restrictions)),
        excludes_products=excludes,
    )


def _records(data: Any) -> List[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("discounts"), list):
        return data["discounts"]
    raise RecordError("expected a list of records or an object with a 'discounts' list")


def parse_discounts(records: Iterable[Any], default_source: Optional[str] = None) -> List[Discount]:
    """Parse and clean a generation, logging and skipping invalid records."""

    discounts: List[Discount] = []
    for position, raw in enumerate(records):
        try:
            discounts.append(clean_discount(parse_discount(raw, default_source)))
        except RecordError as exc:
            LOGGER.warning("Skipping record %s: %s", position, exc)
    return discounts


def _source_from_path(path: str) -> Optional[str]:
    stem = os.path.splitext(os.path.basename(path))[0].lower()
    return stem if stem in SOURCES else None


def load_discounts(path: str) -> List[Discount]:
    """Load one generation from a JSON file.

    A missing file is an empty generation (first run for a source). Records
    without a ``source`` take it from the file name, e.g. ``coto.json``.
    """

    if not os.path.exists(path):
        LOGGER.info("No discount data found at %s", path)
        return []

    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    return parse_discounts(_records(data), default_source=_source_from_path(path))


def parse_third_party(raw: Any) -> ThirdPartyDiscount:
    """Build a ThirdPartyDiscount, keeping only string fields."""

    if not isinstance(raw, dict):
        raise RecordError("third-party record must be an object")

    def text(name: str) -> Optional[str]:
        value = raw.get(name)
        return value if isinstance(value, str) and value.strip() else None

    return ThirdPartyDiscount(
        store=text("store"),
        discount=text("discount"),
        payment_method=text("paymentMethod"),
        day=text("day"),
        conditions=text("conditions"),
    )


def load_third_party(path: str) -> List[ThirdPartyDiscount]:
    """Load a third-party feed dump; rows that are not objects are skipped."""

    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)

    entries: List[ThirdPartyDiscount] = []
    for position, raw in enumerate(_records(data)):
        try:
            entries.append(parse_third_party(raw))
        except RecordError as exc:
            LOGGER.warning("Skipping third-party row %s: %s", position, exc)
    return entries
