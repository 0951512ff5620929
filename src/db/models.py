"""Pydantic models for reference data rows and engine requests/results."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field

# --- Reference data (maps to tax_brackets / tax_offsets / tax_levies tables) ---


class TaxBracket(BaseModel):
    """One marginal-rate band for one financial year."""

    financial_year: str
    min_income: Decimal = Field(ge=0)  # inclusive
    max_income: Decimal | None = None  # inclusive, None = unbounded
    tax_rate: Decimal = Field(ge=0, le=1)
    fixed_amount: Decimal = Field(default=Decimal("0"), ge=0)  # tax on all lower bands
    bracket_order: int = Field(ge=1)
    is_active: bool = True

    model_config = {"frozen": True}


class TaxOffset(BaseModel):
    """A reduction applied after gross tax.

    Eligible when income is above ``lower_threshold`` (exclusive) and at most
    ``upper_threshold`` (inclusive). The amount shrinks by ``taper_rate`` per
    dollar above the lower threshold and never goes below zero.
    """

    financial_year: str
    name: str
    lower_threshold: Decimal | None = Field(default=None, ge=0)
    upper_threshold: Decimal | None = Field(default=None, ge=0)
    amount: Decimal = Field(ge=0)
    taper_rate: Decimal = Field(default=Decimal("0"), ge=0)

    model_config = {"frozen": True}


class TaxLevy(BaseModel):
    """An addition applied after offsets, charged on income above ``threshold``.

    With ``shade_in_rate`` set the levy is phased in: the lesser of the full
    levy on total income and ``shade_in_rate`` on the excess over the threshold.
    """

    financial_year: str
    name: str
    rate: Decimal = Field(ge=0, le=1)
    threshold: Decimal = Field(default=Decimal("0"), ge=0)  # exclusive
    cap: Decimal | None = Field(default=None, ge=0)
    shade_in_rate: Decimal | None = Field(default=None, ge=0, le=1)

    model_config = {"frozen": True}


# --- Engine requests and results ---


class TaxCalculationRequest(BaseModel):
    """Input for a single-year calculation."""

    taxable_income: Decimal
    financial_year: str


class TaxCalculationResult(BaseModel):
    """Tax liability for one income in one financial year."""

    financial_year: str
    taxable_income: Decimal
    gross_tax: Decimal
    total_offsets: Decimal
    total_levies: Decimal
    net_tax_payable: Decimal
    effective_rate: Decimal

    model_config = {"frozen": True}


class HealthResponse(BaseModel):
    """Response from the /api/health endpoint."""

    status: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
