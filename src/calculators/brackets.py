"""Bracket resolver: find the single marginal-rate band an income falls in."""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from src.db.models import TaxBracket
from src.errors import ConfigurationError

# Published tables use whole-dollar boundaries (45000 / 45001), so the next
# bracket may start up to one dollar after the previous one ends.
_MAX_BOUNDARY_STEP = Decimal("1")


def active_brackets(brackets: Iterable[TaxBracket]) -> list[TaxBracket]:
    """Active brackets sorted by bracket order."""
    return sorted((b for b in brackets if b.is_active), key=lambda b: b.bracket_order)


def bracket_max_tax(bracket: TaxBracket) -> Decimal:
    """Tax payable at the top of a bounded bracket."""
    if bracket.max_income is None:
        raise ValueError("Unbounded bracket has no maximum tax")
    return bracket.fixed_amount + (bracket.max_income - bracket.min_income) * bracket.tax_rate


def validate_bracket_table(ordered: Sequence[TaxBracket]) -> None:
    """Check an active, ordered bracket table for gaps and overlaps.

    Raises:
        ConfigurationError: On any integrity problem in the table.
    """
    if not ordered:
        raise ConfigurationError("Bracket table has no active brackets")

    year = ordered[0].financial_year
    if any(b.financial_year != year for b in ordered):
        years = sorted({b.financial_year for b in ordered})
        raise ConfigurationError(f"Bracket table mixes financial years: {', '.join(years)}", value=year)

    unbounded = [b for b in ordered if b.max_income is None]
    if len(unbounded) != 1:
        raise ConfigurationError(
            f"{year}: expected exactly one unbounded bracket, found {len(unbounded)}", value=year
        )
    if ordered[-1].max_income is not None:
        raise ConfigurationError(f"{year}: the unbounded bracket must be the highest", value=year)

    for lower, upper in zip(ordered, ordered[1:]):
        if upper.bracket_order == lower.bracket_order:
            raise ConfigurationError(f"{year}: duplicate bracket order {lower.bracket_order}", value=year)
        if lower.max_income < lower.min_income:
            raise ConfigurationError(
                f"{year}: bracket {lower.bracket_order} ends before it starts", value=year
            )
        step = upper.min_income - lower.max_income
        if step <= 0:
            raise ConfigurationError(
                f"{year}: brackets {lower.bracket_order} and {upper.bracket_order} overlap at {upper.min_income}",
                value=year,
            )
        if step > _MAX_BOUNDARY_STEP:
            raise ConfigurationError(
                f"{year}: gap between {lower.max_income} and {upper.min_income}", value=year
            )
        # fixed amounts are rounded up to whole dollars in published tables;
        # rounding down would make tax fall across the boundary
        if not 0 <= upper.fixed_amount - bracket_max_tax(lower) < _MAX_BOUNDARY_STEP:
            raise ConfigurationError(
                f"{year}: fixed amount {upper.fixed_amount} of bracket {upper.bracket_order} "
                f"does not match tax at the top of bracket {lower.bracket_order}",
                value=year,
            )


def resolve_bracket(income: Decimal, brackets: Iterable[TaxBracket]) -> TaxBracket:
    """Return the bracket that applies to ``income``.

    Income at exactly a bracket's ``max_income`` belongs to that (lower)
    bracket. Fractional income between one bracket's maximum and the next
    bracket's minimum also stays in the lower bracket.

    Raises:
        ConfigurationError: If the table is malformed or no bracket covers the income.
    """
    ordered = active_brackets(brackets)
    validate_bracket_table(ordered)

    successors = [b.min_income for b in ordered[1:]] + [None]
    matches = [
        b
        for b, next_min in zip(ordered, successors)
        if b.min_income <= income and (next_min is None or income < next_min)
    ]
    if len(matches) != 1:
        year = ordered[0].financial_year
        raise ConfigurationError(
            f"{year}: {len(matches)} brackets match income {income}", value=year
        )
    return matches[0]
