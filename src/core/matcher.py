"""Cross-source coverage matching (core domain).

Reconciles our discount records against a third-party feed describing the
same promotions and reports the third-party offers we do not have. Matching
is approximate on purpose: store names are compared by substring, and only
store, discount type, value, and payment methods take part in the key.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from core.config import MatcherConfig
from core.models import (
    PERCENTAGE,
    ComparableDiscount,
    Discount,
    GapReport,
    StoreGap,
    ThirdPartyDiscount,
)
from core.normalize import normalize_payment_method, normalize_store_name, normalize_weekday

LOGGER = logging.getLogger(__name__)

_PERCENTAGE = re.compile(r"(\d+)\s*%")

ComparisonKey = Tuple[str, str, float, Tuple[str, ...]]


def extract_percentage(text: Optional[str]) -> Optional[int]:
    """Return the first "NN%" value in free text, or None."""

    if not text:
        return None
    match = _PERCENTAGE.search(text)
    if not match:
        return None
    value = int(match.group(1))
    return value or None


def match_store(name: Optional[str], stores: Iterable[str]) -> Optional[str]:
    """Return the tracked store whose normalized name contains, or is contained in, ``name``."""

    normalized = normalize_store_name(name or "")
    if not normalized:
        return None
    for store in stores:
        candidate = normalize_store_name(store)
        if candidate and (candidate in normalized or normalized in candidate):
            return store
    return None


def _payment_tuple(methods: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted({normalize_payment_method(method) for method in methods} - {""}))


def comparable_from_third_party(
    entry: ThirdPartyDiscount,
    stores: Sequence[str],
) -> Optional[ComparableDiscount]:
    """Build the comparable view of a third-party row, or None when it cannot be matched."""

    if not entry.store or not entry.discount:
        return None
    value = extract_percentage(entry.discount)
    if value is None:
        return None
    store = match_store(entry.store, stores)
    if store is None:
        return None

    payments = _payment_tuple([entry.payment_method] if entry.payment_method else [])
    return ComparableDiscount(
        store=store,
        discount_type=PERCENTAGE,
        discount_value=float(value),
        payment_methods=payments,
        weekday=normalize_weekday(entry.day) if entry.day else None,
        original=entry,
    )


def comparables_from_discount(discount: Discount, store: str) -> List[ComparableDiscount]:
    """Build comparable views for one of our records.

    The flattened method set is always produced; each alternative combination
    also yields its own view because third-party rows usually name a single
    payment method.
    """

    payment_sets = {_payment_tuple(discount.payment_methods.flat())}
    for combo in discount.payment_methods.combinations:
        payment_sets.add(_payment_tuple(combo))

    return [
        ComparableDiscount(
            store=store,
            discount_type=discount.discount.type,
            discount_value=float(discount.discount.value),
            payment_methods=payments,
            original=discount,
        )
        for payments in sorted(payment_sets)
    ]


def comparison_key(discount: ComparableDiscount) -> ComparisonKey:
    return (
        discount.store,
        discount.discount_type,
        discount.discount_value,
        discount.payment_methods,
    )


def _sort_missing(missing: Iterable[ComparableDiscount]) -> Tuple[ComparableDiscount, ...]:
    return tuple(
        sorted(
            missing,
            key=lambda item: (-item.discount_value, item.store, item.payment_methods, item.weekday or ""),
        )
    )


def find_discount_gaps(
    ours: Sequence[Discount],
    third_party: Sequence[ThirdPartyDiscount],
    config: MatcherConfig = MatcherConfig(),
) -> GapReport:
    """Return the third-party offers with no counterpart in our records."""

    stores = config.tracked_stores

    our_keys: Dict[str, Set[ComparisonKey]] = {store: set() for store in stores}
    ours_count: Dict[str, int] = {store: 0 for store in stores}
    for discount in ours:
        store = match_store(getattr(discount, "source", None), stores)
        if store is None:
            continue
        try:
            comparables = comparables_from_discount(discount, store)
        except (AttributeError, TypeError, ValueError):
            LOGGER.warning("Skipping malformed discount from %s", store, exc_info=True)
            continue
        ours_count[store] += 1
        our_keys[store].update(comparison_key(item) for item in comparables)

    theirs: Dict[str, List[ComparableDiscount]] = {store: [] for store in stores}
    skipped = 0
    for entry in third_party:
        try:
            comparable = comparable_from_third_party(entry, stores)
        except (AttributeError, TypeError, ValueError):
            comparable = None
        if comparable is None:
            skipped += 1
            LOGGER.debug("Skipping third-party entry %r", entry)
            continue
        theirs[comparable.store].append(comparable)

    gaps: List[StoreGap] = []
    for store in stores:
        entries = theirs[store]
        missing = [item for item in entries if comparison_key(item) not in our_keys[store]]
        gaps.append(
            StoreGap(
                store=store,
                third_party_count=len(entries),
                ours_count=ours_count[store],
                covered_count=len(entries) - len(missing),
                missing=_sort_missing(missing),
            )
        )

    high_value = _sort_missing(
        item for gap in gaps for item in gap.missing if item.discount_value >= config.high_value_threshold
    )
    report = GapReport(
        stores=tuple(gaps),
        skipped=skipped,
        third_party_total=sum(gap.third_party_count for gap in gaps),
        ours_total=sum(gap.ours_count for gap in gaps),
        high_value_missing=high_value,
    )
    LOGGER.info(
        "Gap analysis: %s missing of %s third-party offers (%s skipped)",
        report.total_missing,
        report.third_party_total,
        report.skipped,
    )
    return report
