"""Tests for bracket resolution and bracket table validation."""

from decimal import Decimal

import pytest

from src.calculators.brackets import active_brackets, resolve_bracket, validate_bracket_table
from src.db.models import TaxBracket
from src.errors import ConfigurationError
from tests.conftest import make_bracket


@pytest.mark.parametrize(
    ("income", "expected_order"),
    [
        ("0", 1),
        ("18200", 1),
        ("18200.50", 1),
        ("18201", 2),
        ("45000", 2),
        ("45001", 3),
        ("135000", 3),
        ("190000", 4),
        ("190001", 5),
        ("10000000", 5),
    ],
)
def test_resolves_bracket(brackets_2024_25: list[TaxBracket], income: str, expected_order: int) -> None:
    bracket = resolve_bracket(Decimal(income), brackets_2024_25)
    assert bracket.bracket_order == expected_order


def test_boundary_belongs_to_lower_bracket(brackets_2024_25: list[TaxBracket]) -> None:
    """Income at exactly max_income stays in that bracket, not the next."""
    bracket = resolve_bracket(Decimal("45000"), brackets_2024_25)
    assert bracket.max_income == Decimal("45000")


def test_unsorted_input_is_sorted(brackets_2024_25: list[TaxBracket]) -> None:
    shuffled = list(reversed(brackets_2024_25))
    assert resolve_bracket(Decimal("50000"), shuffled).bracket_order == 3


def test_inactive_brackets_are_ignored(brackets_2024_25: list[TaxBracket]) -> None:
    """An inactive row overlapping an active one does not cause an overlap error."""
    stale = make_bracket("2024-25", 3, "45001", "120000", "0.325", "5092", is_active=False)
    bracket = resolve_bracket(Decimal("50000"), brackets_2024_25 + [stale])
    assert bracket.tax_rate == Decimal("0.30")
    assert stale not in active_brackets(brackets_2024_25 + [stale])


def test_gap_raises_configuration_error(brackets_2024_25: list[TaxBracket]) -> None:
    without_third = [b for b in brackets_2024_25 if b.bracket_order != 3]
    with pytest.raises(ConfigurationError, match="gap"):
        resolve_bracket(Decimal("50000"), without_third)


def test_overlap_raises_configuration_error(brackets_2024_25: list[TaxBracket]) -> None:
    overlapping = [
        b.model_copy(update={"min_income": Decimal("44000")}) if b.bracket_order == 3 else b
        for b in brackets_2024_25
    ]
    with pytest.raises(ConfigurationError, match="overlap"):
        resolve_bracket(Decimal("44500"), overlapping)


def test_duplicate_order_raises(brackets_2024_25: list[TaxBracket]) -> None:
    duplicate = brackets_2024_25[2].model_copy(update={"min_income": Decimal("45002")})
    with pytest.raises(ConfigurationError, match="duplicate"):
        resolve_bracket(Decimal("50000"), brackets_2024_25 + [duplicate])


def test_two_unbounded_brackets_raise(brackets_2024_25: list[TaxBracket]) -> None:
    bad = [
        b.model_copy(update={"max_income": None}) if b.bracket_order == 4 else b
        for b in brackets_2024_25
    ]
    with pytest.raises(ConfigurationError, match="unbounded"):
        resolve_bracket(Decimal("50000"), bad)


def test_missing_unbounded_bracket_raises(brackets_2024_25: list[TaxBracket]) -> None:
    capped = brackets_2024_25[:-1]
    with pytest.raises(ConfigurationError):
        resolve_bracket(Decimal("50000"), capped)


def test_inconsistent_fixed_amount_raises(brackets_2024_25: list[TaxBracket]) -> None:
    bad = [
        b.model_copy(update={"fixed_amount": Decimal("5000")}) if b.bracket_order == 3 else b
        for b in brackets_2024_25
    ]
    with pytest.raises(ConfigurationError, match="fixed amount"):
        resolve_bracket(Decimal("50000"), bad)


def test_fixed_amount_rounded_down_raises(brackets_2024_25: list[TaxBracket]) -> None:
    """Tax at the top of bracket 2 is 4287.84; 4287 would make tax drop at 45001."""
    rounded_down = [
        b.model_copy(update={"fixed_amount": Decimal("4287")}) if b.bracket_order == 3 else b
        for b in brackets_2024_25
    ]
    with pytest.raises(ConfigurationError, match="fixed amount 4287"):
        validate_bracket_table(active_brackets(rounded_down))


def test_fixed_amount_rounded_up_is_accepted(brackets_2024_25: list[TaxBracket]) -> None:
    validate_bracket_table(active_brackets(brackets_2024_25))
    assert resolve_bracket(Decimal("45001"), brackets_2024_25).fixed_amount == Decimal("4288")


def test_no_active_brackets_raises(brackets_2024_25: list[TaxBracket]) -> None:
    inactive = [b.model_copy(update={"is_active": False}) for b in brackets_2024_25]
    with pytest.raises(ConfigurationError, match="no active"):
        resolve_bracket(Decimal("50000"), inactive)


def test_income_below_first_bracket_raises() -> None:
    brackets = [
        make_bracket("2024-25", 1, "100", "1000", "0.1"),
        make_bracket("2024-25", 2, "1001", None, "0.2", "90"),
    ]
    with pytest.raises(ConfigurationError, match="0 brackets match"):
        resolve_bracket(Decimal("50"), brackets)


def test_mixed_years_raise(brackets_2024_25: list[TaxBracket], brackets_2023_24: list[TaxBracket]) -> None:
    with pytest.raises(ConfigurationError, match="mixes"):
        validate_bracket_table(active_brackets(brackets_2024_25[:2] + brackets_2023_24[2:]))


def test_cent_boundaries_are_contiguous() -> None:
    """Tables with cent-precision boundaries validate as well as whole-dollar ones."""
    brackets = [
        make_bracket("2030-31", 1, "0", "1000.00", "0"),
        make_bracket("2030-31", 2, "1000.01", None, "0.1"),
    ]
    validate_bracket_table(active_brackets(brackets))
    assert resolve_bracket(Decimal("1000.005"), brackets).bracket_order == 1
