"""Australian resident tax reference data: brackets, LITO, Medicare levy.

Bundled constants used to seed the database and to back the in-memory
reference data source. The engine itself reads reference data through
``ReferenceDataSource``; nothing here is imported by the calculators.
"""

from decimal import Decimal
from typing import NamedTuple

from src.db.models import TaxBracket, TaxLevy, TaxOffset

D = Decimal


class TaxYearData(NamedTuple):
    """All reference data for a single financial year."""

    brackets: tuple[TaxBracket, ...]
    offsets: tuple[TaxOffset, ...]
    levies: tuple[TaxLevy, ...]


# (min_income, max_income, rate, fixed_amount); max None = no cap
_Row = tuple[str, str | None, str, str]

# 2018-19 and 2019-20
_BRACKETS_2018: tuple[_Row, ...] = (
    ("0", "18200", "0", "0"),
    ("18201", "37000", "0.19", "0"),
    ("37001", "90000", "0.325", "3572"),
    ("90001", "180000", "0.37", "20797"),
    ("180001", None, "0.45", "54097"),
)

# 2020-21 to 2023-24
_BRACKETS_2020: tuple[_Row, ...] = (
    ("0", "18200", "0", "0"),
    ("18201", "45000", "0.19", "0"),
    ("45001", "120000", "0.325", "5092"),
    ("120001", "180000", "0.37", "29467"),
    ("180001", None, "0.45", "51667"),
)

# 2024-25 onwards (stage 3 changes)
_BRACKETS_2024: tuple[_Row, ...] = (
    ("0", "18200", "0", "0"),
    ("18201", "45000", "0.16", "0"),
    ("45001", "135000", "0.30", "4288"),
    ("135001", "190000", "0.37", "31288"),
    ("190001", None, "0.45", "51638"),
)

# Low income tax offset as (lower_threshold, upper_threshold, amount, taper_rate)
_LITO_2018 = (
    (None, "37000", "445", "0"),
    ("37000", "66667", "445", "0.015"),
)
_LITO_2020 = (
    (None, "37500", "700", "0"),
    ("37500", "45000", "700", "0.05"),
    ("45000", "66667", "325", "0.015"),
)

# Medicare levy low-income threshold (singles); 2% levy shaded in at 10c per dollar
_MEDICARE_THRESHOLDS: dict[str, str] = {
    "2018-19": "22398",
    "2019-20": "22801",
    "2020-21": "23226",
    "2021-22": "23365",
    "2022-23": "24276",
    "2023-24": "26000",
    "2024-25": "27222",
    "2025-26": "27222",  # carried forward until the indexed figure is legislated
}


def _brackets(year: str, rows: tuple[_Row, ...]) -> tuple[TaxBracket, ...]:
    return tuple(
        TaxBracket(
            financial_year=year,
            min_income=D(lo),
            max_income=D(hi) if hi is not None else None,
            tax_rate=D(rate),
            fixed_amount=D(fixed),
            bracket_order=order,
        )
        for order, (lo, hi, rate, fixed) in enumerate(rows, start=1)
    )


def _lito(year: str, rows: tuple[tuple[str | None, str, str, str], ...]) -> tuple[TaxOffset, ...]:
    return tuple(
        TaxOffset(
            financial_year=year,
            name="Low income tax offset",
            lower_threshold=D(lo) if lo is not None else None,
            upper_threshold=D(hi),
            amount=D(amount),
            taper_rate=D(taper),
        )
        for lo, hi, amount, taper in rows
    )


def _medicare(year: str) -> tuple[TaxLevy, ...]:
    return (
        TaxLevy(
            financial_year=year,
            name="Medicare levy",
            rate=D("0.02"),
            threshold=D(_MEDICARE_THRESHOLDS[year]),
            shade_in_rate=D("0.10"),
        ),
    )


def _year(year: str, brackets: tuple[_Row, ...], lito: tuple) -> TaxYearData:  # type: ignore[type-arg]
    return TaxYearData(
        brackets=_brackets(year, brackets),
        offsets=_lito(year, lito),
        levies=_medicare(year),
    )


TAX_YEARS: dict[str, TaxYearData] = {
    "2018-19": _year("2018-19", _BRACKETS_2018, _LITO_2018),
    "2019-20": _year("2019-20", _BRACKETS_2018, _LITO_2018),
    "2020-21": _year("2020-21", _BRACKETS_2020, _LITO_2020),
    "2021-22": _year("2021-22", _BRACKETS_2020, _LITO_2020),
    "2022-23": _year("2022-23", _BRACKETS_2020, _LITO_2020),
    "2023-24": _year("2023-24", _BRACKETS_2020, _LITO_2020),
    "2024-25": _year("2024-25", _BRACKETS_2024, _LITO_2020),
    "2025-26": _year("2025-26", _BRACKETS_2024, _LITO_2020),
}
