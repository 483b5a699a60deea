"""Core domain models.

These dataclasses are shared across the core and adapters so that the key,
diff, and matching logic never depends on the JSON shape produced by the
extraction step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Tuple

from core.normalize import normalize_payment_method

SOURCES = ("carrefour", "coto", "dia", "jumbo", "changomas", "makro")

PERCENTAGE = "porcentaje"
INSTALLMENTS = "cuotas sin intereses"
DISCOUNT_TYPES = (PERCENTAGE, INSTALLMENTS)


@dataclass(frozen=True)
class DiscountValue:
    """Tagged discount amount, e.g. 15 porcentaje or 12 cuotas sin intereses."""

    type: str
    value: float


@dataclass(frozen=True)
class Limits:
    """Cap information attached to a discount."""

    max_discount: Optional[float] = None
    explicitly_has_no_limit: bool = False


@dataclass(frozen=True)
class PaymentMethods:
    """Alternative payment combinations.

    Each inner tuple is a combination whose methods must all be used together
    (AND); separate combinations are alternatives (OR). No combinations means
    any payment method qualifies.
    """

    combinations: Tuple[Tuple[str, ...], ...] = ()

    @classmethod
    def of(cls, *combinations) -> "PaymentMethods":
        return cls(tuple(tuple(combo) for combo in combinations))

    def is_empty(self) -> bool:
        return not any(self.combinations)

    def canonical(self) -> Tuple[Tuple[str, ...], ...]:
        """Return normalized combinations, sorted at both levels and de-duplicated."""

        normalized = set()
        for combo in self.combinations:
            legs = tuple(sorted({normalize_payment_method(method) for method in combo} - {""}))
            if legs:
                normalized.add(legs)
        return tuple(sorted(normalized))

    def flat(self) -> Tuple[str, ...]:
        return tuple(method for combo in self.combinations for method in combo)


@dataclass(frozen=True)
class Discount:
    """One structured promotional offer from one retailer source."""

    source: str
    discount: DiscountValue
    valid_from: date
    valid_until: date
    weekdays: Tuple[str, ...] = ()
    payment_methods: PaymentMethods = field(default_factory=PaymentMethods)
    restrictions: Tuple[str, ...] = ()
    limits: Limits = field(default_factory=Limits)
    where: Tuple[str, ...] = ()
    url: Optional[str] = None
    excludes_products: Optional[str] = None


@dataclass(frozen=True)
class ValidityChange:
    """Same offer (same base key) republished with a different date range."""

    base_key: str
    old_period: str
    new_period: str
    full_old_key: str
    full_new_key: str


@dataclass(frozen=True)
class DiscountDiff:
    """Result of comparing two generations of one source's discounts."""

    added: Tuple[str, ...]
    removed: Tuple[str, ...]
    validity_changed: Tuple[ValidityChange, ...]
    total_old: int
    total_new: int

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.validity_changed)


@dataclass(frozen=True)
class EnhancedDiscountDiff:
    """A DiscountDiff plus the records behind each reported key."""

    diff: DiscountDiff
    added_discounts: Tuple[Discount, ...]
    removed_discounts: Tuple[Discount, ...]
    validity_changed_discounts: Tuple[Tuple[str, Discount, Discount], ...]


@dataclass(frozen=True)
class ThirdPartyDiscount:
    """Loosely structured offer scraped from an independent source."""

    store: Optional[str]
    discount: Optional[str]
    payment_method: Optional[str] = None
    day: Optional[str] = None
    conditions: Optional[str] = None


@dataclass(frozen=True)
class ComparableDiscount:
    """Coarse, side-independent view used for cross-source matching."""

    store: str
    discount_type: str
    discount_value: float
    payment_methods: Tuple[str, ...]
    weekday: Optional[str] = None
    original: object = None


@dataclass(frozen=True)
class StoreGap:
    """Coverage numbers for one tracked store."""

    store: str
    third_party_count: int
    ours_count: int
    covered_count: int
    missing: Tuple[ComparableDiscount, ...]


@dataclass(frozen=True)
class GapReport:
    """Third-party offers with no counterpart in our own dataset."""

    stores: Tuple[StoreGap, ...]
    skipped: int
    third_party_total: int
    ours_total: int
    high_value_missing: Tuple[ComparableDiscount, ...]

    @property
    def total_missing(self) -> int:
        return sum(len(store.missing) for store in self.stores)
