"""API routes for the tax calculator."""

import logging
from decimal import Decimal

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.db.models import (
    HealthResponse,
    TaxBracket,
    TaxCalculationRequest,
    TaxCalculationResult,
)
from src.errors import (
    ConfigurationError,
    DataUnavailableError,
    InsufficientDataError,
    NotFoundError,
    TaxEngineError,
    ValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

DEFAULT_HISTORY_YEARS = 5

_STATUS_CODES: dict[type[TaxEngineError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    InsufficientDataError: 422,
    ConfigurationError: 500,
    DataUnavailableError: 503,
}


async def tax_engine_error_handler(request: Request, exc: TaxEngineError) -> JSONResponse:
    """Map engine errors to status codes with a structured body."""
    status_code = _STATUS_CODES.get(type(exc), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(exc.to_dict(), status_code=status_code)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are rejected like any other invalid input."""
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse({"error": ValidationError.kind, "message": message, "value": None}, status_code=400)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaxEngineError, tax_engine_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)  # type: ignore[arg-type]


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="OK")


@router.post("/tax/calculate", response_model=TaxCalculationResult)
async def calculate(body: TaxCalculationRequest, request: Request) -> TaxCalculationResult:
    """Calculate tax payable for one income and financial year."""
    return await request.app.state.tax_service.calculate(body)


@router.get("/tax/brackets/{financial_year}", response_model=list[TaxBracket])
async def brackets(financial_year: str, request: Request) -> list[TaxBracket]:
    """Active tax brackets for a financial year."""
    return list(await request.app.state.tax_service.get_brackets(financial_year))


@router.get("/tax/compare", response_model=list[TaxCalculationResult])
async def compare(
    request: Request,
    income: Decimal = Query(...),
    years: list[str] = Query(...),
) -> list[TaxCalculationResult]:
    """Compare tax on one income across financial years, in the order given.

    Years are repeated query parameters: ``?income=75000&years=2023-24&years=2024-25``.
    """
    return await request.app.state.tax_service.compare_across_years(income, years)


@router.get("/tax/history/{income}", response_model=list[TaxCalculationResult])
async def history(
    income: Decimal,
    request: Request,
    years: int = Query(DEFAULT_HISTORY_YEARS),
) -> list[TaxCalculationResult]:
    """Tax on one income over the most recent known financial years."""
    return await request.app.state.tax_service.get_history(income, years)
