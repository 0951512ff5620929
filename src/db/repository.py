"""Reference data sources for brackets, offsets and levies.

The engine depends only on the ``ReferenceDataSource`` protocol. Two
implementations are provided: PostgreSQL via asyncpg, and an in-memory
source built from the bundled constants in ``src.calculators.tax_data``.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Protocol, TypeVar

import asyncpg
from pydantic import BaseModel
from pydantic import ValidationError as RowValidationError

from src.calculators.tax_data import TAX_YEARS
from src.db.models import TaxBracket, TaxLevy, TaxOffset
from src.errors import ConfigurationError, DataUnavailableError

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)


class ReferenceDataSource(Protocol):
    """Read-only access to per-year tax reference data."""

    async def fetch_brackets(self, financial_year: str) -> Sequence[TaxBracket]: ...

    async def fetch_offsets(self, financial_year: str) -> Sequence[TaxOffset]: ...

    async def fetch_levies(self, financial_year: str) -> Sequence[TaxLevy]: ...

    async def fetch_financial_years(self) -> Sequence[str]: ...


class PostgresReferenceData:
    """Reference data stored in the tax_brackets / tax_offsets / tax_levies tables."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def fetch_brackets(self, financial_year: str) -> list[TaxBracket]:
        rows = await self._fetch(
            """
            SELECT financial_year, min_income, max_income, tax_rate,
                   fixed_amount, bracket_order, is_active
            FROM tax_brackets
            WHERE financial_year = $1
            ORDER BY bracket_order
            """,
            financial_year,
        )
        return _to_models(TaxBracket, rows, financial_year)

    async def fetch_offsets(self, financial_year: str) -> list[TaxOffset]:
        rows = await self._fetch(
            """
            SELECT financial_year, name, lower_threshold, upper_threshold,
                   amount, taper_rate
            FROM tax_offsets
            WHERE financial_year = $1
            ORDER BY name, lower_threshold NULLS FIRST
            """,
            financial_year,
        )
        return _to_models(TaxOffset, rows, financial_year)

    async def fetch_levies(self, financial_year: str) -> list[TaxLevy]:
        rows = await self._fetch(
            """
            SELECT financial_year, name, rate, threshold, cap, shade_in_rate
            FROM tax_levies
            WHERE financial_year = $1
            ORDER BY name
            """,
            financial_year,
        )
        return _to_models(TaxLevy, rows, financial_year)

    async def fetch_financial_years(self) -> list[str]:
        rows = await self._fetch(
            """
            SELECT DISTINCT financial_year
            FROM tax_brackets
            WHERE is_active = TRUE
            ORDER BY financial_year
            """
        )
        return [r["financial_year"] for r in rows]

    async def _fetch(self, sql: str, *args: Any) -> list[asyncpg.Record]:
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetch(sql, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            logger.warning("Reference data query failed: %s", exc)
            raise DataUnavailableError("Tax reference data is unavailable", value=args[0] if args else None) from exc


def _to_models(model: type[_M], rows: Iterable[Any], financial_year: str) -> list[_M]:
    """Map DB rows to models; a row that fails validation is corrupt reference data."""
    try:
        return [model.model_validate(dict(r)) for r in rows]
    except RowValidationError as exc:
        raise ConfigurationError(
            f"{financial_year}: invalid {model.__name__} row: {exc.errors()[0]['msg']}",
            value=financial_year,
        ) from exc


class InMemoryReferenceData:
    """Reference data held in memory, keyed by financial year."""

    def __init__(
        self,
        brackets: Iterable[TaxBracket] = (),
        offsets: Iterable[TaxOffset] = (),
        levies: Iterable[TaxLevy] = (),
    ) -> None:
        self._brackets = _group(brackets)
        self._offsets = _group(offsets)
        self._levies = _group(levies)

    @classmethod
    def from_tax_data(cls) -> "InMemoryReferenceData":
        """Build from the bundled Australian reference data."""
        return cls(
            brackets=[b for data in TAX_YEARS.values() for b in data.brackets],
            offsets=[o for data in TAX_YEARS.values() for o in data.offsets],
            levies=[lv for data in TAX_YEARS.values() for lv in data.levies],
        )

    async def fetch_brackets(self, financial_year: str) -> tuple[TaxBracket, ...]:
        return self._brackets.get(financial_year, ())

    async def fetch_offsets(self, financial_year: str) -> tuple[TaxOffset, ...]:
        return self._offsets.get(financial_year, ())

    async def fetch_levies(self, financial_year: str) -> tuple[TaxLevy, ...]:
        return self._levies.get(financial_year, ())

    async def fetch_financial_years(self) -> list[str]:
        return sorted(year for year, rows in self._brackets.items() if any(b.is_active for b in rows))


def _group(items: Iterable[_M]) -> dict[str, tuple[_M, ...]]:
    grouped: dict[str, list[_M]] = {}
    for item in items:
        grouped.setdefault(item.financial_year, []).append(item)  # type: ignore[attr-defined]
    return {year: tuple(rows) for year, rows in grouped.items()}
