"""Generation-to-generation discount diffing (core domain).

A diff compares two scrapes of the same source. Offers whose full key
disappeared and reappeared under the same base key are reported once as a
validity change instead of as an add/remove pair.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from core.discount_keys import generate_base_key, generate_discount_key, parse_discount_key
from core.models import (
    INSTALLMENTS,
    PERCENTAGE,
    Discount,
    DiscountDiff,
    EnhancedDiscountDiff,
    ValidityChange,
)

LOGGER = logging.getLogger(__name__)

_DISCOUNT_TOKEN = re.compile(r"^(\D+)(\d[\dp]*)$")


@dataclass(frozen=True)
class _KeyedDiscount:
    full_key: str
    base_key: str
    period: str


def format_period(discount: Discount) -> str:
    """Return the validity window as "MM/DD-MM/DD"."""

    return f"{discount.valid_from:%m/%d}-{discount.valid_until:%m/%d}"


def _degenerate_key(discount: object) -> str:
    digest = hashlib.sha256(repr(discount).encode("utf-8")).hexdigest()[:12]
    return f"invalid-{digest}"


def _keyed(discount: Discount) -> _KeyedDiscount:
    # A record that cannot be keyed gets a singleton key so the rest of the
    # generation can still be diffed.
    try:
        return _KeyedDiscount(
            full_key=generate_discount_key(discount),
            base_key=generate_base_key(discount),
            period=format_period(discount),
        )
    except (AttributeError, TypeError, ValueError):
        key = _degenerate_key(discount)
        LOGGER.warning("Could not key discount, using %s", key, exc_info=True)
        return _KeyedDiscount(full_key=key, base_key=key, period="")


def _index(discounts: Iterable[Discount]) -> Dict[str, _KeyedDiscount]:
    index: Dict[str, _KeyedDiscount] = {}
    for discount in discounts:
        keyed = _keyed(discount)
        current = index.get(keyed.full_key)
        # Colliding records keep the smallest entry so input order never matters.
        if current is None or (keyed.base_key, keyed.period) < (current.base_key, current.period):
            index[keyed.full_key] = keyed
    return index


def calculate_discount_diff(
    previous: Sequence[Discount],
    current: Sequence[Discount],
) -> DiscountDiff:
    """Classify each discount as added, removed, or validity-changed."""

    previous_index = _index(previous)
    current_index = _index(current)

    added = sorted(current_index.keys() - previous_index.keys())
    removed = sorted(previous_index.keys() - current_index.keys())

    added_by_base: Dict[str, List[str]] = {}
    for key in added:
        added_by_base.setdefault(current_index[key].base_key, []).append(key)

    changes: List[ValidityChange] = []
    paired_old: set[str] = set()
    paired_new: set[str] = set()
    for old_key in removed:
        old = previous_index[old_key]
        candidates = added_by_base.get(old.base_key)
        if not candidates:
            continue
        new_key = candidates.pop(0)
        changes.append(
            ValidityChange(
                base_key=old.base_key,
                old_period=old.period,
                new_period=current_index[new_key].period,
                full_old_key=old_key,
                full_new_key=new_key,
            )
        )
        paired_old.add(old_key)
        paired_new.add(new_key)

    diff = DiscountDiff(
        added=tuple(key for key in added if key not in paired_new),
        removed=tuple(key for key in removed if key not in paired_old),
        validity_changed=tuple(changes),
        total_old=len(previous),
        total_new=len(current),
    )
    LOGGER.info(
        "Diff computed: %s added, %s removed, %s validity changes (%s -> %s records)",
        len(diff.added),
        len(diff.removed),
        len(diff.validity_changed),
        diff.total_old,
        diff.total_new,
    )
    return diff


def _by_full_key(discounts: Iterable[Discount]) -> Dict[str, Discount]:
    mapping: Dict[str, Discount] = {}
    for discount in discounts:
        key = _keyed(discount).full_key
        current = mapping.get(key)
        # Records sharing a key may differ in display fields; keep the smallest.
        if current is None or repr(discount) < repr(current):
            mapping[key] = discount
    return mapping


def calculate_enhanced_discount_diff(
    previous: Sequence[Discount],
    current: Sequence[Discount],
) -> EnhancedDiscountDiff:
    """Return the diff together with the records behind every reported key."""

    diff = calculate_discount_diff(previous, current)
    previous_by_key = _by_full_key(previous)
    current_by_key = _by_full_key(current)

    return EnhancedDiscountDiff(
        diff=diff,
        added_discounts=tuple(current_by_key[key] for key in diff.added),
        removed_discounts=tuple(previous_by_key[key] for key in diff.removed),
        validity_changed_discounts=tuple(
            (change.base_key, previous_by_key[change.full_old_key], current_by_key[change.full_new_key])
            for change in diff.validity_changed
        ),
    )


def _format_date_range(date_range: str) -> str:
    start, _, end = date_range.partition("-")
    formatted = f"{start[:2]}/{start[2:]}"
    if end:
        formatted += f"-{end[:2]}/{end[2:]}"
    return formatted


def format_discount_key(key: str) -> str:
    """Pretty-print a key for notifications, e.g. "CARREFOUR 15% (01/01-01/31) visa".

    Display only: never compare formatted keys.
    """

    parsed = parse_discount_key(key)
    match = _DISCOUNT_TOKEN.match(parsed.discount_token)
    if not parsed.source or not match:
        return key

    kind, value = match.groups()
    value = value.replace("p", ".")
    if kind == "porcentaje":
        amount = f"{value}%"
    elif kind == "cuotassinintereses":
        amount = f"{value} cuotas sin interes"
    else:
        amount = f"{value} {kind}"

    result = f"{parsed.source.upper()} {amount}"
    if parsed.date_range:
        result += f" ({_format_date_range(parsed.date_range)})"
    if parsed.additional:
        result += " " + " ".join(parsed.additional)
    return result


def format_discount_for_display(discount: Discount) -> str:
    """Return one human line describing a discount."""

    result = discount.source.upper()
    value = discount.discount.value
    shown = int(value) if float(value).is_integer() else value
    if discount.discount.type == PERCENTAGE:
        result += f" {shown}% off"
    elif discount.discount.type == INSTALLMENTS:
        result += f" {shown} cuotas sin interes"
    else:
        result += f" {shown} {discount.discount.type}"

    combinations = discount.payment_methods.combinations
    if combinations and combinations[0]:
        result += f" with {' + '.join(combinations[0])}"

    if discount.weekdays and len(discount.weekdays) < 7:
        result += f" on {', '.join(discount.weekdays)}"

    if discount.where and len(discount.where) < 3:
        result += f" at {', '.join(discount.where)}"
    return result
