"""Shared test fixtures."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.cache import BracketCache
from src.db.models import TaxBracket
from src.db.repository import InMemoryReferenceData
from src.tax_service import TaxService

# 1 Aug 2025 falls in the 2025-26 financial year
TODAY = date(2025, 8, 1)


def make_bracket(
    year: str,
    order: int,
    lower: str,
    upper: str | None,
    rate: str,
    fixed: str = "0",
    is_active: bool = True,
) -> TaxBracket:
    return TaxBracket(
        financial_year=year,
        bracket_order=order,
        min_income=Decimal(lower),
        max_income=Decimal(upper) if upper is not None else None,
        tax_rate=Decimal(rate),
        fixed_amount=Decimal(fixed),
        is_active=is_active,
    )


@pytest.fixture
def brackets_2024_25() -> list[TaxBracket]:
    return [
        make_bracket("2024-25", 1, "0", "18200", "0"),
        make_bracket("2024-25", 2, "18201", "45000", "0.16"),
        make_bracket("2024-25", 3, "45001", "135000", "0.30", "4288"),
        make_bracket("2024-25", 4, "135001", "190000", "0.37", "31288"),
        make_bracket("2024-25", 5, "190001", None, "0.45", "51638"),
    ]


@pytest.fixture
def brackets_2023_24() -> list[TaxBracket]:
    return [
        make_bracket("2023-24", 1, "0", "18200", "0"),
        make_bracket("2023-24", 2, "18201", "45000", "0.19"),
        make_bracket("2023-24", 3, "45001", "120000", "0.325", "5092"),
        make_bracket("2023-24", 4, "120001", "180000", "0.37", "29467"),
        make_bracket("2023-24", 5, "180001", None, "0.45", "51667"),
    ]


@pytest.fixture
def reference_data(
    brackets_2024_25: list[TaxBracket], brackets_2023_24: list[TaxBracket]
) -> InMemoryReferenceData:
    """Two years of brackets, no offsets or levies configured."""
    return InMemoryReferenceData(brackets=brackets_2024_25 + brackets_2023_24)


@pytest.fixture
def cache(reference_data: InMemoryReferenceData) -> BracketCache:
    return BracketCache(reference_data, fetch_timeout=1.0, retry_backoff=0)


@pytest.fixture
def service(cache: BracketCache) -> TaxService:
    return TaxService(cache, max_history_years=20, clock=lambda: TODAY)


@pytest.fixture
def mock_source(brackets_2024_25: list[TaxBracket]) -> AsyncMock:
    """Async mock of a ReferenceDataSource with one known year."""
    source = AsyncMock()
    source.fetch_brackets.return_value = brackets_2024_25
    source.fetch_offsets.return_value = []
    source.fetch_levies.return_value = []
    source.fetch_financial_years.return_value = ["2024-25"]
    return source


@pytest.fixture
def mock_db_pool() -> MagicMock:
    """Mock of asyncpg.Pool with context-managed acquire().

    asyncpg.Pool.acquire() returns an async context manager (not a coroutine),
    so we use MagicMock for the pool and configure __aenter__/__aexit__ manually.
    """
    conn = AsyncMock()
    conn.fetch.return_value = []

    acm = MagicMock()
    acm.__aenter__ = AsyncMock(return_value=conn)
    acm.__aexit__ = AsyncMock(return_value=False)

    pool = MagicMock()
    pool.acquire.return_value = acm
    return pool
