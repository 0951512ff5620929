"""Tests for the API endpoints."""

from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.routes import install_error_handlers, router
from src.errors import ConfigurationError, DataUnavailableError
from src.tax_service import TaxService


@pytest.fixture
def app(service: TaxService) -> FastAPI:
    """Create a test app with the router and in-memory reference data but no lifespan (no DB)."""
    test_app = FastAPI()
    install_error_handlers(test_app)
    test_app.include_router(router)
    test_app.state.tax_service = service
    return test_app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


def test_health(client: TestClient) -> None:
    """GET /api/health returns OK status and a UTC timestamp."""
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert datetime.fromisoformat(data["timestamp"]).utcoffset() == timedelta(0)


def test_calculate(client: TestClient) -> None:
    response = client.post("/api/tax/calculate", json={"taxable_income": 50000, "financial_year": "2024-25"})
    assert response.status_code == 200
    data = response.json()
    assert data["financial_year"] == "2024-25"
    assert Decimal(str(data["net_tax_payable"])) == Decimal("5787.70")


def test_calculate_negative_income_is_bad_request(client: TestClient) -> None:
    response = client.post("/api/tax/calculate", json={"taxable_income": -1000, "financial_year": "2024-25"})
    assert response.status_code == 400
    assert response.json()["error"] == "validation"


def test_calculate_null_body_is_bad_request(client: TestClient) -> None:
    response = client.post(
        "/api/tax/calculate", content="null", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400


def test_calculate_unknown_year_is_not_found(client: TestClient) -> None:
    response = client.post("/api/tax/calculate", json={"taxable_income": 50000, "financial_year": "2099-00"})
    assert response.status_code == 404
    data = response.json()
    assert data["error"] == "not_found"
    assert data["value"] == "2099-00"


def test_brackets(client: TestClient) -> None:
    response = client.get("/api/tax/brackets/2024-25")
    assert response.status_code == 200
    data = response.json()
    assert [b["bracket_order"] for b in data] == [1, 2, 3, 4, 5]
    assert data[-1]["max_income"] is None


def test_compare_preserves_order(client: TestClient) -> None:
    response = client.get("/api/tax/compare?income=75000&years=2023-24&years=2024-25")
    assert response.status_code == 200
    assert [r["financial_year"] for r in response.json()] == ["2023-24", "2024-25"]


def test_compare_unknown_year(client: TestClient) -> None:
    response = client.get("/api/tax/compare", params={"income": 50000, "years": ["2024-25", "1990-91"]})
    assert response.status_code == 404


def test_compare_requires_years(client: TestClient) -> None:
    response = client.get("/api/tax/compare", params={"income": 50000})
    assert response.status_code == 400


def test_compare_is_not_a_post(client: TestClient) -> None:
    response = client.post("/api/tax/compare", json={"taxable_income": 50000, "financial_years": ["2024-25"]})
    assert response.status_code == 405


def test_history(client: TestClient) -> None:
    response = client.get("/api/tax/history/60000", params={"years": 2})
    assert response.status_code == 200
    assert [r["financial_year"] for r in response.json()] == ["2024-25", "2023-24"]


def test_history_negative_income_is_bad_request(client: TestClient) -> None:
    response = client.get("/api/tax/history/-1000")
    assert response.status_code == 400
    assert response.json()["error"] == "validation"


def test_history_defaults_to_five_years(client: TestClient) -> None:
    """Only two years are known in the fixture data, so the default span is too long."""
    response = client.get("/api/tax/history/60000")
    assert response.status_code == 422
    assert response.json()["available"] == 2


def test_history_out_of_bounds(client: TestClient) -> None:
    response = client.get("/api/tax/history/60000?years=25")
    assert response.status_code == 400


def test_history_insufficient_data(client: TestClient) -> None:
    response = client.get("/api/tax/history/60000", params={"years": 3})
    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "insufficient_data"
    assert data["available"] == 2


def test_data_unavailable_is_503(app: FastAPI, client: TestClient) -> None:
    mock_service = AsyncMock()
    mock_service.calculate.side_effect = DataUnavailableError("database down", value="2024-25")
    app.state.tax_service = mock_service

    response = client.post("/api/tax/calculate", json={"taxable_income": 50000, "financial_year": "2024-25"})
    assert response.status_code == 503
    assert response.json()["error"] == "data_unavailable"


def test_configuration_error_is_500(app: FastAPI, client: TestClient) -> None:
    mock_service = AsyncMock()
    mock_service.get_brackets.side_effect = ConfigurationError("gap in table", value="2024-25")
    app.state.tax_service = mock_service

    response = client.get("/api/tax/brackets/2024-25")
    assert response.status_code == 500
    assert response.json()["error"] == "configuration"
