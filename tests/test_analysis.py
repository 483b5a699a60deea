from __future__ import annotations

from datetime import date

from core.analysis import analyze_discount_keys, compare_discount_keys
from core.discount_keys import generate_discount_key
from core.models import PERCENTAGE, Discount, DiscountValue, PaymentMethods


def _discount(source: str = "coto", value: float = 15, method: str = "Visa") -> Discount:
    return Discount(
        source=source,
        discount=DiscountValue(PERCENTAGE, value),
        valid_from=date(2024, 1, 1),
        valid_until=date(2024, 1, 31),
        payment_methods=PaymentMethods.of([method]),
    )


def test_analyze_reports_duplicates() -> None:
    first = _discount()
    analysis = analyze_discount_keys([first, _discount(), _discount("dia", 20)])

    assert analysis.total_discounts == 3
    assert analysis.unique_keys == 2
    assert analysis.duplicate_keys == 1
    assert round(analysis.uniqueness_rate, 2) == 66.67

    (group,) = analysis.duplicate_groups
    assert group.key == generate_discount_key(first)
    assert group.count == 2


def test_analyze_breaks_down_by_source() -> None:
    analysis = analyze_discount_keys([_discount(), _discount(value=20), _discount("dia")])

    assert list(analysis.source_breakdown) == ["coto", "dia"]
    coto = analysis.source_breakdown["coto"]
    assert coto.discounts == 2
    assert coto.unique_keys == 2
    assert coto.uniqueness_rate == 100.0
    assert len(coto.sample_keys) == 2
    assert analysis.min_key_length <= analysis.avg_key_length <= analysis.max_key_length


def test_analyze_empty_generation() -> None:
    analysis = analyze_discount_keys([])

    assert analysis.total_discounts == 0
    assert analysis.uniqueness_rate == 100.0
    assert analysis.min_key_length == 0
    assert analysis.max_key_length == 0
    assert analysis.duplicate_groups == ()


def test_compare_discount_keys() -> None:
    kept = _discount("coto", 15)
    stability = compare_discount_keys([kept, _discount("dia", 10)], [kept, _discount("jumbo", 30)])

    assert stability.keys_unchanged == 1
    assert stability.keys_added == 1
    assert stability.keys_removed == 1
    assert stability.stability_rate == 50.0


def test_compare_empty_generations_is_stable() -> None:
    stability = compare_discount_keys([], [])

    assert stability.stability_rate == 100.0
    assert stability.keys_unchanged == 0
