"""
Tests for the Dashboard API.

Runs the FastAPI app through TestClient with a service built over
scripted sources; no network and no history file.
"""

import pytest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from ccpi import CCPIConfig, CCPIEngine, Pillar
from dashboard.api import create_app
from dashboard.services import CCPIService
from database import Base, configure_database, create_all_tables, get_engine
from indicator_sources import SourceKind

from tests.helpers import FakeSource, make_catalog, make_indicator, make_registry


# ============================================================
# FIXTURES
# ============================================================

def build_service(persist_runs: bool = False) -> CCPIService:
    indicators = [
        make_indicator("val", Pillar.VALUATION, 1.0, chain=("api_a", "api_b"), baseline=30.0),
        make_indicator("tech", Pillar.TECHNICAL, 1.0, chain=("api_a", "ai_a")),
        make_indicator("macro", Pillar.MACRO, 1.0, chain=("api_b",), baseline=25.0),
    ]
    registry = make_registry(
        indicators,
        {Pillar.VALUATION: 0.5, Pillar.TECHNICAL: 0.3, Pillar.MACRO: 0.2},
    )
    catalog = make_catalog(
        FakeSource("api_a", values={"val": 80.0}),
        FakeSource("api_b", values={"macro": 40.0}),
        FakeSource("api_c"),
        FakeSource("api_d", offered=False),
        FakeSource("ai_a", kind=SourceKind.GENERATIVE_AI, values={"tech": 60.0}),
        FakeSource("ai_b", kind=SourceKind.GENERATIVE_AI),
    )
    config = CCPIConfig()
    return CCPIService(CCPIEngine(catalog, registry, config), config, persist_runs=persist_runs)


@pytest.fixture
def service():
    return build_service()


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as test_client:
        yield test_client


@pytest.fixture
def memory_db():
    configure_database("sqlite://")
    create_all_tables()
    yield
    Base.metadata.drop_all(bind=get_engine())


# ============================================================
# TESTS
# ============================================================

class TestHealth:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "CCPI API"

    def test_health_before_first_run(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["lastRun"] is None
        assert data["uptimeSeconds"] >= 0

    def test_health_after_run(self, client):
        client.get("/ccpi")

        assert client.get("/health").json()["lastRun"] is not None


class TestCCPIEndpoint:
    """GET /ccpi."""

    def test_camel_case_shape(self, client):
        response = client.get("/ccpi")

        assert response.status_code == 200
        data = response.json()
        for key in (
            "timestamp", "ccpiScore", "confidence", "riskBand", "alertLevel",
            "pillars", "indicators", "canaries", "confidenceBreakdown",
            "excludedPillars", "runTimedOut", "regime", "summary",
        ):
            assert key in data
        assert "effectiveWeight" in data["pillars"][0]
        assert "displayTier" in data["indicators"][0]
        assert set(data["canaries"]["severityBreakdown"]) == {"high", "medium", "low"}
        assert data["summary"]["headline"]

    def test_regime_and_playbook(self, client):
        regime = client.get("/ccpi").json()["regime"]

        # ccpiScore 66 falls in the 60-80 band
        assert regime["level"] == 4
        assert regime["name"] == "High Alert"
        assert regime["minScore"] == 60.0
        assert regime["playbook"]["bias"] == "Heavily Defensive / Short Bias"
        assert set(regime["playbook"]["allocation"]) == {"equities", "defensive", "cash", "alternatives"}

    def test_scores(self, client):
        data = client.get("/ccpi").json()

        # 80 * .5 + 60 * .3 + 40 * .2
        assert data["ccpiScore"] == pytest.approx(66.0)
        assert data["riskBand"] == "high"
        assert data["excludedPillars"] == []
        tiers = {i["id"]: i["resolvedTier"] for i in data["indicators"]}
        assert tiers == {"val": "primary", "tech": "aiEstimate", "macro": "primary"}

    def test_cached_between_requests(self, client, service):
        with patch.object(service.engine, "run", wraps=service.engine.run) as run:
            client.get("/ccpi")
            client.get("/ccpi")

        assert run.await_count == 1

    def test_refresh_forces_run(self, client, service):
        with patch.object(service.engine, "run", wraps=service.engine.run) as run:
            client.get("/ccpi")
            client.get("/ccpi", params={"refresh": "true"})

        assert run.await_count == 2

    def test_run_failure_returns_503(self, client, service):
        with patch.object(service.engine, "run", AsyncMock(side_effect=RuntimeError("boom"))):
            response = client.get("/ccpi")

        assert response.status_code == 503


class TestHistoryEndpoint:
    """GET /ccpi/history."""

    def test_empty_without_persistence(self, client):
        data = client.get("/ccpi/history").json()

        assert data == {"count": 0, "runs": []}

    def test_limit_validated(self, client):
        assert client.get("/ccpi/history", params={"limit": 0}).status_code == 422
        assert client.get("/ccpi/history", params={"limit": 501}).status_code == 422

    def test_persisted_runs(self, memory_db):
        service = build_service(persist_runs=True)

        with TestClient(create_app(service)) as client:
            client.get("/ccpi")
            client.get("/ccpi", params={"refresh": "true"})
            data = client.get("/ccpi/history", params={"limit": 1}).json()

        assert data["count"] == 1
        run = data["runs"][0]
        assert run["ccpiScore"] == pytest.approx(66.0)
        assert run["riskBand"] == "high"
        assert run["indicatorCount"] == 3


class TestAuditEndpoint:
    """GET /ccpi/audit."""

    def test_attempts_recorded(self, client):
        data = client.get("/ccpi/audit").json()

        by_id = {i["id"]: i for i in data["indicators"]}
        tech = by_id["tech"]
        assert tech["configuredTiers"] == ["primary", "aiEstimate"]
        assert [a["source"] for a in tech["attempts"]] == ["api_a", "ai_a"]
        assert tech["attempts"][0]["errorKind"] is not None
        assert data["tierDistribution"]["primary"] == 2
        assert "registry" in data


class TestSourcesEndpoint:
    """GET /ccpi/sources."""

    def test_sources_listed(self, client):
        data = client.get("/ccpi/sources").json()

        assert data["totalSources"] == 6
        assert data["offeredSources"] == 5
        assert data["aiOffered"] == 2
        offered = {s["name"]: s["offered"] for s in data["sources"]}
        assert offered["api_d"] is False
