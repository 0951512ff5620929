"""Progressive income tax: base tax from a resolved bracket, plus the single-year pipeline."""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from src.calculators.adjustments import apply_adjustments
from src.calculators.brackets import resolve_bracket
from src.db.models import TaxBracket, TaxCalculationResult, TaxLevy, TaxOffset
from src.errors import ValidationError

_CENTS = Decimal("0.01")
_RATE_PLACES = Decimal("0.0001")
_ZERO = Decimal("0")


def validate_income(income: Decimal) -> Decimal:
    """Return ``income`` as a Decimal, rejecting negative or non-finite values."""
    try:
        value = income if isinstance(income, Decimal) else Decimal(str(income))
    except ArithmeticError as exc:
        raise ValidationError(f"Taxable income is not a number: {income!r}", value=income) from exc
    if not value.is_finite():
        raise ValidationError("Taxable income must be a finite amount.", value=str(value))
    if value < 0:
        raise ValidationError("Taxable income must be non-negative.", value=str(value))
    return value


def compute_base_tax(income: Decimal, bracket: TaxBracket) -> Decimal:
    """Gross tax: fixed amount of the bracket plus the marginal rate on the excess.

    No rounding happens here; rounding is applied once to net tax payable.
    """
    if income == 0:
        return _ZERO
    return bracket.fixed_amount + (income - bracket.min_income) * bracket.tax_rate


def calculate_tax(
    income: Decimal,
    financial_year: str,
    brackets: Iterable[TaxBracket],
    offsets: Iterable[TaxOffset] = (),
    levies: Iterable[TaxLevy] = (),
) -> TaxCalculationResult:
    """Run resolve -> base tax -> adjustments for one income and one year.

    Args:
        income: Taxable income (already validated, >= 0).
        financial_year: Year key echoed into the result.
        brackets: The year's bracket table.
        offsets: The year's offset rules.
        levies: The year's levy rules.

    Returns:
        TaxCalculationResult with net tax rounded half-up to cents.
    """
    bracket = resolve_bracket(income, brackets)
    gross_tax = compute_base_tax(income, bracket)
    adjusted = apply_adjustments(gross_tax, income, offsets, levies)

    net = adjusted.net_tax_payable.quantize(_CENTS, rounding=ROUND_HALF_UP)
    effective_rate = (net / income).quantize(_RATE_PLACES, rounding=ROUND_HALF_UP) if income > 0 else _ZERO

    return TaxCalculationResult(
        financial_year=financial_year,
        taxable_income=income,
        gross_tax=gross_tax,
        total_offsets=adjusted.total_offsets,
        total_levies=adjusted.total_levies,
        net_tax_payable=net,
        effective_rate=effective_rate,
    )
