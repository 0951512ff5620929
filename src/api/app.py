"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config.settings import settings
from src.api.routes import install_error_handlers, router
from src.cache import BracketCache
from src.db.repository import InMemoryReferenceData, PostgresReferenceData, ReferenceDataSource
from src.db.session import close_pool, get_pool
from src.tax_service import TaxService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup: pick the reference data source, build the cache and service. Shutdown: close pool."""
    logging.basicConfig(level=logging.INFO)
    logger.info("Starting up with %s reference data...", settings.reference_data_source)

    source: ReferenceDataSource
    if settings.reference_data_source == "memory":
        source = InMemoryReferenceData.from_tax_data()
    else:
        pool = await get_pool()
        app.state.pool = pool
        source = PostgresReferenceData(pool)

    app.state.tax_service = TaxService(BracketCache(source))

    yield

    logger.info("Shutting down...")
    await close_pool()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Tax Calculator", lifespan=lifespan)
    install_error_handlers(app)
    app.include_router(router)
    return app
