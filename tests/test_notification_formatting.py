from __future__ import annotations

import pytest

from adapters.notification_formatting import (
    escape_md,
    format_diff_notification,
    format_gap_notification,
)
from core.models import ComparableDiscount, DiscountDiff, GapReport, StoreGap, ValidityChange


def _diff(**overrides) -> DiscountDiff:
    values = dict(added=(), removed=(), validity_changed=(), total_old=1, total_new=1)
    values.update(overrides)
    return DiscountDiff(**values)


def _missing(store: str, value: float, payments: tuple = ("visa",)) -> ComparableDiscount:
    return ComparableDiscount(
        store=store,
        discount_type="porcentaje",
        discount_value=value,
        payment_methods=payments,
    )


def _report(missing: tuple) -> GapReport:
    return GapReport(
        stores=(StoreGap("coto", len(missing) + 1, 3, 1, missing),),
        skipped=2,
        third_party_total=len(missing) + 1,
        ours_total=3,
        high_value_missing=tuple(item for item in missing if item.discount_value >= 25),
    )


def test_escape_md() -> None:
    assert escape_md("a_b*c[d`") == "a\\_b\\*c\\[d\\`"


def test_diff_without_changes() -> None:
    message = format_diff_notification("coto", _diff(), mode="markdown")

    assert message.startswith("*Discount changes: COTO*")
    assert "Previous: 1 | Current: 1" in message
    assert message.endswith("No changes.")


def test_diff_sections_in_html() -> None:
    diff = _diff(
        added=("carrefour-porcentaje20-0101-0131-master-todos-y2024",),
        removed=("carrefour-porcentaje10-0101-0131-modo-todos-y2024",),
        validity_changed=(
            ValidityChange(
                base_key="carrefour-porcentaje15-visa-todos",
                old_period="01/01-01/31",
                new_period="02/01-02/29",
                full_old_key="carrefour-porcentaje15-0101-0131-visa-todos-y2024",
                full_new_key="carrefour-porcentaje15-0201-0229-visa-todos-y2024",
            ),
        ),
    )

    message = format_diff_notification("carrefour", diff, mode="html")

    assert "<b>Discount changes: CARREFOUR</b>" in message
    assert "<b>Added (1):</b>" in message
    assert "+ CARREFOUR 20% (01/01-01/31) master todos y2024" in message
    assert "<b>Removed (1):</b>" in message
    assert "- CARREFOUR 10% (01/01-01/31) modo todos y2024" in message
    assert "<b>Validity changed (1):</b>" in message
    assert "~ CARREFOUR 15% visa todos: 01/01-01/31 -&gt; 02/01-02/29" in message


def test_diff_lists_are_capped() -> None:
    added = tuple(f"coto-porcentaje{value}-0101-0131-any-todos-y2024" for value in range(1, 13))

    message = format_diff_notification("coto", _diff(added=added), mode="markdown", max_items=10)

    assert "*Added (12):*" in message
    assert "...and 2 more" in message
    assert "COTO 11%" not in message


def test_unsupported_mode_raises() -> None:
    with pytest.raises(ValueError):
        format_diff_notification("coto", _diff(), mode="plain")


def test_gap_report_with_full_coverage() -> None:
    message = format_gap_notification(_report(()), mode="markdown")

    assert "Missing: 0" in message
    assert "Skipped rows: 2" in message
    assert "*Excellent coverage!*" in message


def test_gap_report_with_minor_gaps() -> None:
    missing = (_missing("coto", 30, ("modo",)), _missing("coto", 10, ()))

    message = format_gap_notification(_report(missing), mode="html")

    assert "<b>COTO: 2 missing</b>" in message
    assert "• COTO 30% - modo" in message
    assert "• COTO 10% - any payment" in message
    assert "<b>High-value missing:</b>" in message
    assert "1. COTO 30% - modo" in message
    assert "<b>Good coverage</b>" in message


def test_gap_report_with_many_gaps() -> None:
    missing = tuple(_missing("coto", value) for value in range(1, 13))

    message = format_gap_notification(_report(missing), mode="markdown", max_items=5)

    assert "...and 7 more" in message
    assert "*Room for improvement*" in message
