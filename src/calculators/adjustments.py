"""Offsets and levies applied on top of gross progressive tax.

Each rule is evaluated against income alone, so the totals do not depend
on the order in which rules are listed.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import NamedTuple

from src.db.models import TaxLevy, TaxOffset

_ZERO = Decimal("0")


class Adjustments(NamedTuple):
    """Totals from applying a year's offsets and levies to gross tax."""

    total_offsets: Decimal
    total_levies: Decimal
    net_tax_payable: Decimal  # unrounded, floored at zero


def offset_value(offset: TaxOffset, income: Decimal) -> Decimal:
    """Offset amount for ``income``; zero when not eligible."""
    if offset.lower_threshold is not None and income <= offset.lower_threshold:
        return _ZERO
    if offset.upper_threshold is not None and income > offset.upper_threshold:
        return _ZERO

    taper_start = offset.lower_threshold or _ZERO
    value = offset.amount - (income - taper_start) * offset.taper_rate
    return max(_ZERO, value)


def levy_value(levy: TaxLevy, income: Decimal) -> Decimal:
    """Levy amount for ``income``; zero at or below the threshold."""
    if income <= levy.threshold:
        return _ZERO

    excess = income - levy.threshold
    if levy.shade_in_rate is None:
        value = excess * levy.rate
    else:
        value = min(income * levy.rate, excess * levy.shade_in_rate)

    if levy.cap is not None:
        value = min(value, levy.cap)
    return value


def apply_adjustments(
    gross_tax: Decimal,
    income: Decimal,
    offsets: Iterable[TaxOffset],
    levies: Iterable[TaxLevy],
) -> Adjustments:
    """Sum offsets and levies for ``income`` and derive net tax.

    Args:
        gross_tax: Progressive tax before adjustments.
        income: Taxable income the rules are evaluated against.
        offsets: Offset rules for the year (may be empty).
        levies: Levy rules for the year (may be empty).

    Returns:
        Adjustments with both totals and net tax payable, floored at zero.
    """
    total_offsets = sum((offset_value(o, income) for o in offsets), _ZERO)
    total_levies = sum((levy_value(lv, income) for lv in levies), _ZERO)
    net = max(_ZERO, gross_tax - total_offsets + total_levies)
    return Adjustments(total_offsets, total_levies, net)
