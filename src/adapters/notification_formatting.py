"""Shared notification formatting helpers.

Keeping formatting here prevents drift between notifier adapters and keeps
diff and coverage reports consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from typing import Callable, List, Sequence

from core.diff import format_discount_key
from core.models import ComparableDiscount, DiscountDiff, GapReport

DIVIDER = "──────────────"


def escape_md(value: str) -> str:
    for ch in r"_*[`":
        value = value.replace(ch, f"\\{ch}")
    return value


def _styles(mode: str) -> tuple[Callable[[str], str], Callable[[str], str]]:
    """Return (escape, bold) helpers for the requested mode."""

    if mode == "markdown":
        return escape_md, lambda text: f"*{text}*"
    if mode == "html":
        return html.escape, lambda text: f"<b>{text}</b>"
    raise ValueError(f"Unsupported notification format: {mode}")


def _capped(lines: Sequence[str], max_items: int) -> List[str]:
    shown = list(lines[:max_items])
    if len(lines) > max_items:
        shown.append(f"  ...and {len(lines) - max_items} more")
    return shown


def format_diff_notification(source: str, diff: DiscountDiff, mode: str, max_items: int = 10) -> str:
    """Return the diff summary for one source."""

    escape, bold = _styles(mode)

    lines = [
        bold(f"Discount changes: {escape(source.upper())}"),
        f"Previous: {diff.total_old} | Current: {diff.total_new}",
        DIVIDER,
    ]
    if not diff.has_changes:
        lines.append("No changes.")
        return "\n".join(lines)

    if diff.added:
        lines.extend(["", bold(f"Added ({len(diff.added)}):")])
        lines.extend(_capped([f"+ {escape(format_discount_key(key))}" for key in diff.added], max_items))
    if diff.removed:
        lines.extend(["", bold(f"Removed ({len(diff.removed)}):")])
        lines.extend(_capped([f"- {escape(format_discount_key(key))}" for key in diff.removed], max_items))
    if diff.validity_changed:
        lines.extend(["", bold(f"Validity changed ({len(diff.validity_changed)}):")])
        changed = [
            f"~ {escape(format_discount_key(change.base_key))}: "
            f"{escape(f'{change.old_period} -> {change.new_period}')}"
            for change in diff.validity_changed
        ]
        lines.extend(_capped(changed, max_items))
    return "\n".join(lines)


def _describe_missing(item: ComparableDiscount, escape: Callable[[str], str]) -> str:
    value = item.discount_value
    shown = int(value) if float(value).is_integer() else value
    payment = ", ".join(item.payment_methods) or "any payment"
    line = f"{item.store.upper()} {shown}% - {escape(payment)}"
    if item.weekday:
        line += f" ({escape(item.weekday)})"
    return line


def format_gap_notification(report: GapReport, mode: str, max_items: int = 5) -> str:
    """Return the coverage summary for a third-party comparison."""

    escape, bold = _styles(mode)

    lines = [
        bold("Third-party coverage check"),
        f"Third-party offers: {report.third_party_total}",
        f"Our offers: {report.ours_total}",
        f"Missing: {report.total_missing}",
        f"Skipped rows: {report.skipped}",
        DIVIDER,
    ]

    for gap in report.stores:
        if not gap.missing:
            continue
        lines.extend(["", bold(f"{escape(gap.store.upper())}: {len(gap.missing)} missing")])
        lines.extend(_capped([f"• {_describe_missing(item, escape)}" for item in gap.missing], max_items))

    if report.high_value_missing:
        lines.extend(["", bold("High-value missing:")])
        top = [
            f"{index}. {_describe_missing(item, escape)}"
            for index, item in enumerate(report.high_value_missing, 1)
        ]
        lines.extend(_capped(top, max_items))

    lines.append("")
    if report.total_missing == 0:
        lines.append(bold("Excellent coverage!") + " No missing offers detected.")
    elif report.total_missing <= 10:
        lines.append(bold("Good coverage") + " with minor gaps.")
    else:
        lines.append(bold("Room for improvement") + ", review the missing offers.")
    return "\n".join(lines)
