"""Tax service: single-year calculation, multi-year comparison and history."""

import logging
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from config import load_yaml_config
from src.cache import BracketCache
from src.calculators.brackets import active_brackets
from src.calculators.financial_year import (
    current_financial_year,
    format_financial_year,
    parse_financial_year,
)
from src.calculators.income_tax import calculate_tax, validate_income
from src.db.models import (
    TaxBracket,
    TaxCalculationRequest,
    TaxCalculationResult,
    TaxLevy,
    TaxOffset,
)
from src.errors import ConfigurationError, InsufficientDataError, ValidationError

logger = logging.getLogger(__name__)


class _YearTables(NamedTuple):
    financial_year: str
    brackets: tuple[TaxBracket, ...]
    offsets: tuple[TaxOffset, ...]
    levies: tuple[TaxLevy, ...]


class TaxService:
    """Runs the bracket -> base tax -> adjustments pipeline over cached reference data."""

    def __init__(
        self,
        cache: BracketCache,
        max_history_years: int | None = None,
        financial_year_start_month: int | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        config = load_yaml_config("engine.yaml")["engine"]
        self._cache = cache
        self.max_history_years = max_history_years or config["max_history_years"]
        self._start_month = financial_year_start_month or config["financial_year_start_month"]
        self._clock = clock

    async def calculate(self, request: TaxCalculationRequest) -> TaxCalculationResult:
        """Tax payable on one income in one financial year.

        Raises:
            ValidationError: Negative or non-numeric income.
            NotFoundError: Unknown financial year.
        """
        income = validate_income(request.taxable_income)
        tables = await self._load_year(request.financial_year)
        return self._compute(income, tables)

    async def get_brackets(self, financial_year: str) -> tuple[TaxBracket, ...]:
        """Active brackets for a year, lowest first."""
        return tuple(active_brackets(await self._cache.get_brackets_for(financial_year)))

    async def compare_across_years(
        self,
        taxable_income: Decimal,
        financial_years: Sequence[str],
    ) -> list[TaxCalculationResult]:
        """One result per requested year, in the order requested.

        Every year's reference data is loaded before anything is computed, so
        an unknown year fails the whole comparison.
        """
        income = validate_income(taxable_income)
        if not financial_years:
            raise ValidationError("At least one financial year is required for a comparison.", value=[])

        tables = [await self._load_year(year) for year in financial_years]
        logger.info("Comparing income %s across %d years", income, len(tables))
        return [self._compute(income, t) for t in tables]

    async def get_history(self, taxable_income: Decimal, year_count: int) -> list[TaxCalculationResult]:
        """Results for the ``year_count`` most recent known years, most recent first.

        Raises:
            ValidationError: ``year_count`` outside 1..max_history_years, or bad income.
            InsufficientDataError: Fewer contiguous known years than requested.
        """
        if isinstance(year_count, bool) or not isinstance(year_count, int):
            raise ValidationError("Year count must be a whole number.", value=str(year_count))
        if not 1 <= year_count <= self.max_history_years:
            raise ValidationError(
                f"Year count must be between 1 and {self.max_history_years}.", value=year_count
            )
        income = validate_income(taxable_income)

        years = await self._history_span(year_count)
        results = []
        for year in years:
            results.append(self._compute(income, await self._load_year(year)))
        return results

    async def _history_span(self, year_count: int) -> list[str]:
        """Contiguous run of known years ending at the latest one not after today."""
        current = parse_financial_year(current_financial_year(self._clock(), self._start_month))

        known: set[int] = set()
        for key in await self._cache.get_financial_years():
            try:
                known.add(parse_financial_year(key))
            except ValidationError:
                logger.warning("Ignoring malformed financial year in reference data: %r", key)

        eligible = [start for start in known if start <= current]
        if not eligible:
            raise InsufficientDataError(
                f"Requested {year_count} years of history but no financial years are known.",
                requested=year_count,
                available=0,
            )

        latest = max(eligible)
        available = 0
        while available < year_count and latest - available in known:
            available += 1
        if available < year_count:
            raise InsufficientDataError(
                f"Requested {year_count} years of history but only {available} "
                f"contiguous years are known up to {format_financial_year(latest)}.",
                requested=year_count,
                available=available,
            )
        return [format_financial_year(latest - i) for i in range(year_count)]

    async def _load_year(self, financial_year: str) -> _YearTables:
        try:
            brackets = await self._cache.get_brackets_for(financial_year)
            offsets = await self._cache.get_offsets_for(financial_year)
            levies = await self._cache.get_levies_for(financial_year)
        except ConfigurationError as exc:
            logger.error("Data integrity incident in %s reference data: %s", financial_year, exc)
            raise
        return _YearTables(financial_year, brackets, offsets, levies)

    def _compute(self, income: Decimal, tables: _YearTables) -> TaxCalculationResult:
        try:
            return calculate_tax(
                income,
                tables.financial_year,
                tables.brackets,
                tables.offsets,
                tables.levies,
            )
        except ConfigurationError as exc:
            logger.error("Data integrity incident in %s reference data: %s", tables.financial_year, exc)
            raise
