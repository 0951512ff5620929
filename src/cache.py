"""Process-lifetime cache over tax reference data.

Empty on startup and populated lazily, one fetch per financial year per kind.
Entries never expire; ``refresh()`` is the only way to drop them. The cache
is created once (in the app lifespan) and passed to the service explicitly.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from config import load_yaml_config
from src.db.models import TaxBracket, TaxLevy, TaxOffset
from src.db.repository import ReferenceDataSource
from src.errors import DataUnavailableError, NotFoundError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_YEARS_KEY = "*"


class BracketCache:
    """Memoizes bracket, offset and levy lookups per financial year."""

    def __init__(
        self,
        source: ReferenceDataSource,
        fetch_timeout: float | None = None,
        retry_backoff: float | None = None,
    ) -> None:
        config = load_yaml_config("engine.yaml")["cache"]
        self._source = source
        self._timeout = fetch_timeout if fetch_timeout is not None else config["fetch_timeout_seconds"]
        self._backoff = retry_backoff if retry_backoff is not None else config["fetch_retry_backoff_seconds"]
        self._stores: dict[str, dict[str, tuple[Any, ...]]] = {
            "brackets": {},
            "offsets": {},
            "levies": {},
            "years": {},
        }
        # one lock per (kind, year) so concurrent misses share a single fetch;
        # a lock lives only while some task holds or waits on it
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: dict[tuple[str, str], int] = {}

    async def get_brackets_for(self, financial_year: str) -> tuple[TaxBracket, ...]:
        """Bracket rows for a year.

        Raises:
            NotFoundError: If the data source has no brackets for the year.
        """
        return await self._get("brackets", financial_year, self._source.fetch_brackets)

    async def get_offsets_for(self, financial_year: str) -> tuple[TaxOffset, ...]:
        """Offset rules for a year; empty when none are configured."""
        return await self._get("offsets", financial_year, self._source.fetch_offsets)

    async def get_levies_for(self, financial_year: str) -> tuple[TaxLevy, ...]:
        """Levy rules for a year; empty when none are configured."""
        return await self._get("levies", financial_year, self._source.fetch_levies)

    async def get_financial_years(self) -> tuple[str, ...]:
        """All financial years that have bracket tables."""

        async def fetch(_: str) -> Sequence[str]:
            return await self._source.fetch_financial_years()

        return await self._get("years", _YEARS_KEY, fetch)

    def refresh(self, financial_year: str | None = None) -> None:
        """Drop cached entries for one year, or everything."""
        if financial_year is None:
            for store in self._stores.values():
                store.clear()
            logger.info("Reference data cache cleared")
            return
        for kind in ("brackets", "offsets", "levies"):
            self._stores[kind].pop(financial_year, None)
        self._stores["years"].clear()
        logger.info("Reference data cache cleared for %s", financial_year)

    async def _get(
        self,
        kind: str,
        financial_year: str,
        fetch: Callable[[str], Awaitable[Sequence[_T]]],
    ) -> tuple[_T, ...]:
        store = self._stores[kind]
        if financial_year in store:
            logger.debug("Cache hit: %s %s", kind, financial_year)
            return store[financial_year]

        key = (kind, financial_year)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                if financial_year in store:
                    return store[financial_year]

                rows = tuple(await self._fetch_with_retry(kind, financial_year, fetch))
                if not rows and kind == "brackets":
                    raise NotFoundError(f"No tax brackets for financial year {financial_year}", value=financial_year)
                if not rows and kind == "years":
                    # not cached, so years seeded later show up without a refresh
                    return rows

                store[financial_year] = rows
                logger.info("Cached %d %s for %s", len(rows), kind, financial_year)
                return rows
        finally:
            self._release_lock(key)

    def _release_lock(self, key: tuple[str, str]) -> None:
        """Forget a lock once no task holds or waits on it."""
        self._lock_users[key] -= 1
        if not self._lock_users[key]:
            del self._lock_users[key]
            del self._locks[key]

    async def _fetch_with_retry(
        self,
        kind: str,
        financial_year: str,
        fetch: Callable[[str], Awaitable[Sequence[_T]]],
    ) -> Sequence[_T]:
        """Call the data source with a timeout, retrying once after a short backoff."""
        try:
            return await asyncio.wait_for(fetch(financial_year), timeout=self._timeout)
        except (asyncio.TimeoutError, DataUnavailableError) as exc:
            logger.warning("Fetching %s for %s failed (%s), retrying once", kind, financial_year, str(exc) or "timeout")

        await asyncio.sleep(self._backoff)
        try:
            return await asyncio.wait_for(fetch(financial_year), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise DataUnavailableError(
                f"Timed out fetching {kind} for {financial_year}", value=financial_year
            ) from exc
