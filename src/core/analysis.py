"""Key quality statistics (core domain).

Used to watch the collision rate of the key scheme on real data and to
measure how stable keys are between two scrapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from core.discount_keys import generate_discount_key
from core.models import Discount


@dataclass(frozen=True)
class DuplicateGroup:
    key: str
    discounts: Tuple[Discount, ...]

    @property
    def count(self) -> int:
        return len(self.discounts)


@dataclass(frozen=True)
class SourceKeyStats:
    discounts: int
    unique_keys: int
    uniqueness_rate: float
    avg_key_length: float
    sample_keys: Tuple[str, ...]


@dataclass(frozen=True)
class DiscountKeyAnalysis:
    total_discounts: int
    unique_keys: int
    duplicate_keys: int
    uniqueness_rate: float
    duplicate_groups: Tuple[DuplicateGroup, ...]
    min_key_length: int
    max_key_length: int
    avg_key_length: float
    source_breakdown: Dict[str, SourceKeyStats]


@dataclass(frozen=True)
class KeyStability:
    total_old: int
    total_new: int
    keys_added: int
    keys_removed: int
    keys_unchanged: int
    stability_rate: float


def _rate(part: int, whole: int) -> float:
    # An empty generation is trivially unique and stable.
    if whole == 0:
        return 100.0
    return part / whole * 100


def analyze_discount_keys(discounts: Sequence[Discount]) -> DiscountKeyAnalysis:
    """Summarize uniqueness and length of the keys of one generation."""

    keys = [generate_discount_key(discount) for discount in discounts]

    groups: Dict[str, List[Discount]] = {}
    by_source: Dict[str, List[str]] = {}
    for key, discount in zip(keys, discounts):
        groups.setdefault(key, []).append(discount)
        by_source.setdefault(discount.source, []).append(key)

    duplicates = sorted(
        (DuplicateGroup(key, tuple(members)) for key, members in groups.items() if len(members) > 1),
        key=lambda group: (-group.count, group.key),
    )

    breakdown = {
        source: SourceKeyStats(
            discounts=len(source_keys),
            unique_keys=len(set(source_keys)),
            uniqueness_rate=_rate(len(set(source_keys)), len(source_keys)),
            avg_key_length=sum(map(len, source_keys)) / len(source_keys),
            sample_keys=tuple(source_keys[:3]),
        )
        for source, source_keys in sorted(by_source.items())
    }

    lengths = [len(key) for key in keys]
    return DiscountKeyAnalysis(
        total_discounts=len(keys),
        unique_keys=len(groups),
        duplicate_keys=len(keys) - len(groups),
        uniqueness_rate=_rate(len(groups), len(keys)),
        duplicate_groups=tuple(duplicates),
        min_key_length=min(lengths, default=0),
        max_key_length=max(lengths, default=0),
        avg_key_length=sum(lengths) / len(lengths) if lengths else 0.0,
        source_breakdown=breakdown,
    )


def compare_discount_keys(old: Sequence[Discount], new: Sequence[Discount]) -> KeyStability:
    """Measure how many keys survive from one generation to the next."""

    old_keys = {generate_discount_key(discount) for discount in old}
    new_keys = {generate_discount_key(discount) for discount in new}
    unchanged = old_keys & new_keys
    return KeyStability(
        total_old=len(old),
        total_new=len(new),
        keys_added=len(new_keys - old_keys),
        keys_removed=len(old_keys - new_keys),
        keys_unchanged=len(unchanged),
        stability_rate=_rate(len(unchanged), len(old_keys)),
    )
