"""
============================================================================
Project Exposure Desk v1.0.0
Integration Test: Exposure API Endpoints
============================================================================

Reliability Level: L4 Supporting
Input Constraints: FastAPI TestClient, dependency overrides
Side Effects: None (repository and price source replaced)

Covers:
- Report from posted legs and from the repository
- DB-001 when the repository cannot read legs (HTTP 503)
- Physical and paper MTM with per-request price overrides
- Formula parse / evaluate / exposures tooling
- Health and Prometheus metrics

============================================================================
"""

import os
import sys
from typing import List

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.api.exposure import get_config, get_leg_repository, get_price_source
from app.api.exposure import router as exposure_router
from app.logic.trade_legs import PaperTradeLeg, PhysicalTradeLeg
from market_prices.price_source import StaticPriceSource
from services.exposure_config import ExposureConfig
from services.leg_repository import LegFetchError


PHYSICAL_LEGS = [
    {
        "id": "l1",
        "trade_reference": "T1",
        "buy_sell": "buy",
        "product": "RME",
        "quantity": 1000,
        "trading_period": "Mar-24",
        "pricing_formula": {
            "tokens": [{"id": "t1", "type": "instrument", "value": "Argus RME"}],
            "exposures": {"physical": {}, "pricing": {"Argus RME": -1000}},
        },
        "calculated_price": 900,
    },
]

PAPER_LEGS = [
    {"id": "p1", "buy_sell": "sell", "product": "RME", "quantity": 300, "price": 950, "period": "Mar-24"},
]


# ============================================================================
# Test Doubles
# ============================================================================

class FakeRepository:

    def __init__(self, physical: List[dict], paper: List[dict]):
        self.physical = physical
        self.paper = paper

    def fetch_physical_legs(self) -> List[PhysicalTradeLeg]:
        return [PhysicalTradeLeg.from_record(r) for r in self.physical]

    def fetch_paper_legs(self) -> List[PaperTradeLeg]:
        return [PaperTradeLeg.from_record(r) for r in self.paper]


class FailingRepository:

    def fetch_physical_legs(self):
        raise LegFetchError("Failed to fetch physical legs: connection refused")

    def fetch_paper_legs(self):
        raise LegFetchError("Failed to fetch paper legs: connection refused")


# ============================================================================
# Test App Setup
# ============================================================================

def create_test_app() -> FastAPI:
    """Create FastAPI test application with the exposure router."""
    app = FastAPI(title="Exposure API Test")
    app.include_router(exposure_router, prefix="/api/exposure")
    return app


@pytest.fixture
def price_source() -> StaticPriceSource:
    return StaticPriceSource(prices={"Argus RME": 1000.0, "Argus UCOME": 1100.0})


def _client(repository, price_source) -> TestClient:
    app = create_test_app()
    app.dependency_overrides[get_config] = lambda: ExposureConfig()
    app.dependency_overrides[get_price_source] = lambda: price_source
    app.dependency_overrides[get_leg_repository] = lambda: repository
    return TestClient(app)


@pytest.fixture
def client(price_source):
    with _client(FakeRepository(PHYSICAL_LEGS, PAPER_LEGS), price_source) as test_client:
        yield test_client


@pytest.fixture
def failing_client(price_source):
    with _client(FailingRepository(), price_source) as test_client:
        yield test_client


# ============================================================================
# Report
# ============================================================================

class TestReportEndpoint:

    def test_report_from_posted_legs(self, client: TestClient) -> None:
        response = client.post("/api/exposure/report", json={
            "physical_legs": PHYSICAL_LEGS,
            "paper_legs": [],
            "periods": ["Mar 24"],
        })
        assert response.status_code == 200
        data = response.json()
        march = data["months"][0]
        assert march["month"] == "Mar-24"
        assert march["products"]["Argus RME"]["physical"] == 1000
        assert march["products"]["Argus RME"]["pricing"] == -1000
        assert data["grandTotal"]["netExposure"] == 0

    def test_report_from_repository(self, client: TestClient) -> None:
        response = client.post("/api/exposure/report", json={})
        assert response.status_code == 200
        rme = response.json()["months"][0]["products"]["Argus RME"]
        assert rme["paper"] == -300
        assert rme["pricing"] == -1300

    def test_report_with_date_range(self, client: TestClient) -> None:
        response = client.post("/api/exposure/report", json={
            "physical_legs": PHYSICAL_LEGS,
            "paper_legs": [],
            "start_date": "2024-04-01",
            "end_date": "2024-05-31",
        })
        assert response.status_code == 200
        assert [m["month"] for m in response.json()["months"]] == ["Apr-24", "May-24"]

    def test_repository_failure_is_503(self, failing_client: TestClient) -> None:
        response = failing_client.post("/api/exposure/report", json={})
        assert response.status_code == 503
        assert response.json()["detail"]["error_code"] == "DB-001"

    def test_invalid_period_is_422(self, client: TestClient) -> None:
        response = client.post("/api/exposure/report", json={"periods": ["someday"]})
        assert response.status_code == 422

    def test_half_open_range_is_422(self, client: TestClient) -> None:
        response = client.post("/api/exposure/report", json={"start_date": "2024-04-01"})
        assert response.status_code == 422


# ============================================================================
# MTM
# ============================================================================

class TestMTMEndpoints:

    def test_physical_mtm(self, client: TestClient) -> None:
        response = client.post("/api/exposure/mtm/physical", json={
            "legs": PHYSICAL_LEGS,
            "as_of": "2024-06-15",
        })
        assert response.status_code == 200
        row = response.json()["calculations"][0]
        assert row["contractPrice"] == 900
        assert row["marketPrice"] == 1000
        assert row["mtmValue"] == 100000
        assert response.json()["summary"]["physicalMtm"] == 100000

    def test_price_override(self, client: TestClient) -> None:
        response = client.post("/api/exposure/mtm/physical", json={
            "legs": PHYSICAL_LEGS,
            "prices": {"Argus RME": 950},
        })
        assert response.json()["calculations"][0]["mtmValue"] == 50000

    def test_paper_mtm_from_repository(self, client: TestClient) -> None:
        response = client.post("/api/exposure/mtm/paper", json={"as_of": "2024-06-15"})
        assert response.status_code == 200
        position = response.json()["positions"][0]
        assert position["periodType"] == "past"
        assert position["mtmCalculatedPrice"] == 1000
        assert position["mtmValue"] == -15000

    def test_mtm_repository_failure(self, failing_client: TestClient) -> None:
        response = failing_client.post("/api/exposure/mtm/physical", json={})
        assert response.status_code == 503


# ============================================================================
# Formula Tools
# ============================================================================

class TestFormulaEndpoints:

    def test_parse_string_formula(self, client: TestClient) -> None:
        stored = '{"tokens": [{"id": "a", "type": "instrument", "value": "Argus UCOME"}]}'
        response = client.post("/api/exposure/formula/parse", json={"formula": stored})
        assert response.status_code == 200
        data = response.json()
        assert data["formula"]["tokens"][0]["id"] == "a"
        assert data["complete"] is True

    def test_parse_garbage(self, client: TestClient) -> None:
        response = client.post("/api/exposure/formula/parse", json={"formula": "{not json"})
        assert response.json()["formula"]["tokens"] == []
        assert response.json()["complete"] is False

    def test_evaluate_tokens(self, client: TestClient) -> None:
        response = client.post("/api/exposure/formula/evaluate", json={
            "tokens": [
                {"id": "1", "type": "fixedValue", "value": 2},
                {"id": "2", "type": "operator", "value": "+"},
                {"id": "3", "type": "fixedValue", "value": 3},
                {"id": "4", "type": "operator", "value": "*"},
                {"id": "5", "type": "fixedValue", "value": 4},
            ],
        })
        assert response.status_code == 200
        assert response.json()["price"] == 20

    def test_evaluate_stored_formula(self, client: TestClient) -> None:
        response = client.post("/api/exposure/formula/evaluate", json={
            "formula": {"tokens": [{"id": "a", "type": "instrument", "value": "Argus UCOME"}]},
        })
        assert response.json()["price"] == 1100

    def test_exposures(self, client: TestClient) -> None:
        response = client.post("/api/exposure/formula/exposures", json={
            "tokens": [{"id": "a", "type": "instrument", "value": "Argus UCOME"}],
            "quantity": 500,
            "buySell": "SELL",
        })
        assert response.status_code == 200
        assert response.json() == {
            "physical": {"Argus UCOME": -500},
            "pricing": {"Argus UCOME": 500},
        }

    def test_negative_quantity_rejected(self, client: TestClient) -> None:
        response = client.post("/api/exposure/formula/exposures", json={
            "tokens": [], "quantity": -1, "buy_sell": "buy",
        })
        assert response.status_code == 422


# ============================================================================
# Health and Metrics
# ============================================================================

class TestHealthAndMetrics:

    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/exposure/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["config"]["default_month"] == "Dec-24"

    def test_metrics_endpoint(self) -> None:
        from app.main import app

        client = TestClient(app)
        client.post("/api/exposure/formula/parse", json={"formula": None})
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "formula_parse_failures_total" in response.text
