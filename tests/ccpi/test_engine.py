"""
Tests for the CCPI Engine.

============================================================
PURPOSE
============================================================
End-to-end runs with scripted sources, plus the pure compute()
step over the default 23-indicator registry.

TEST PRINCIPLES:
- A run always completes (partial results beat no results)
- The run deadline turns pending indicators unavailable
- compute() is idempotent
- Scores stay within [0, 100] even with no data

============================================================
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import patch

from ccpi import (
    AlertLevel,
    CCPIConfig,
    CCPIEngine,
    Pillar,
    RiskBand,
    load_default_registry,
    run_ccpi,
    summarize,
)
from indicator_sources import SourceKind, SourceTier, build_default_catalog

from tests.helpers import FakeSource, make_catalog, make_indicator, make_registry, resolved


NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def default_engine():
    catalog = build_default_catalog()
    registry = load_default_registry(catalog.source_kinds())
    return CCPIEngine(catalog, registry, CCPIConfig())


@pytest.fixture
def small_setup():
    indicators = [
        make_indicator("val", Pillar.VALUATION, 1.0, chain=("api_a", "api_b")),
        make_indicator("tech", Pillar.TECHNICAL, 1.0, chain=("api_a", "ai_a")),
        make_indicator("macro", Pillar.MACRO, 1.0, chain=("api_b",), baseline=25.0),
    ]
    registry = make_registry(
        indicators,
        {Pillar.VALUATION: 0.5, Pillar.TECHNICAL: 0.3, Pillar.MACRO: 0.2},
    )
    return indicators, registry


# ============================================================
# PURE COMPUTE
# ============================================================

class TestCompute:
    """compute() over the default registry."""

    def test_all_pillars_at_fifty(self, default_engine):
        items = [
            resolved(i, i.baseline_value, sub_score=50.0, fetched_at=NOW)
            for i in default_engine.registry
        ]

        snapshot = default_engine.compute(items, timestamp=NOW)

        assert snapshot.result.ccpi_score == pytest.approx(50.0)
        assert snapshot.result.risk_band == RiskBand.MODERATE
        assert len(snapshot.pillars) == 6
        assert snapshot.result.excluded_pillars == ()
        assert sum(p.effective_weight for p in snapshot.pillars) == pytest.approx(1.0)

    def test_six_single_indicator_pillars_at_fifty(self):
        weights = {
            Pillar.VALUATION: 0.25,
            Pillar.TECHNICAL: 0.20,
            Pillar.MACRO: 0.20,
            Pillar.SENTIMENT: 0.15,
            Pillar.FLOWS: 0.10,
            Pillar.STRUCTURAL: 0.10,
        }
        indicators = [make_indicator(p.value, p, 1.0) for p in weights]
        engine = CCPIEngine(make_catalog(), make_registry(indicators, weights), CCPIConfig())
        items = [
            resolved(i, 50.0, tier=SourceTier.PRIMARY, sub_score=50.0, fetched_at=NOW)
            for i in indicators
        ]

        snapshot = engine.compute(items, timestamp=NOW)

        assert snapshot.result.ccpi_score == pytest.approx(50.0)
        assert snapshot.result.confidence_breakdown.tier_health == pytest.approx(100.0)
        assert snapshot.result.confidence_breakdown.consistency == pytest.approx(100.0)
        assert all(p.live_count == 1 for p in snapshot.pillars)

    def test_all_unavailable_stays_in_bounds(self, default_engine):
        items = [resolved(i, None, fetched_at=NOW) for i in default_engine.registry]

        snapshot = default_engine.compute(items, timestamp=NOW)
        result = snapshot.result

        assert 0.0 <= result.ccpi_score <= 100.0
        assert result.ccpi_score == 50.0
        assert result.confidence == 0.0
        assert set(result.excluded_pillars) == set(Pillar.all_pillars())
        assert result.canary_count == 0
        assert result.alert_level == AlertLevel.NORMAL
        # Baselines still shown for display
        assert all(i.display_tier == SourceTier.BASELINE for i in snapshot.indicators)

    def test_compute_is_idempotent(self, default_engine):
        items = [
            resolved(i, i.baseline_value, fetched_at=NOW)
            for i in default_engine.registry
        ]

        first = default_engine.compute(items, timestamp=NOW)
        second = default_engine.compute(items, timestamp=NOW)

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_tier_distribution(self, default_engine):
        items = [resolved(i, None, fetched_at=NOW) for i in default_engine.registry]

        snapshot = default_engine.compute(items, timestamp=NOW)

        assert snapshot.tier_distribution()["unavailable"] == 23


# ============================================================
# RUNS
# ============================================================

class TestRun:
    """Full runs against scripted sources."""

    @pytest.mark.asyncio
    async def test_run_with_fallbacks(self, small_setup):
        indicators, registry = small_setup
        catalog = make_catalog(
            FakeSource("api_a", values={"val": 80.0}),
            FakeSource("api_b", values={"val": 10.0}),
            FakeSource("ai_a", kind=SourceKind.GENERATIVE_AI, values={"tech": 40.0}),
            FakeSource("api_c"),
            FakeSource("api_d"),
            FakeSource("ai_b", kind=SourceKind.GENERATIVE_AI),
        )
        engine = CCPIEngine(catalog, registry, CCPIConfig())

        snapshot = await engine.run()

        by_id = {i.indicator_id: i for i in snapshot.indicators}
        assert [i.indicator_id for i in snapshot.indicators] == ["val", "tech", "macro"]
        assert by_id["val"].resolved_tier == SourceTier.PRIMARY
        assert by_id["tech"].resolved_tier == SourceTier.AI_ESTIMATE
        assert by_id["macro"].resolved_tier == SourceTier.UNAVAILABLE
        assert snapshot.result.excluded_pillars == (Pillar.MACRO,)
        assert snapshot.result.ccpi_score == pytest.approx(65.0)
        assert not snapshot.result.run_timed_out

    @pytest.mark.asyncio
    async def test_run_deadline_forces_unavailable(self, small_setup):
        indicators, registry = small_setup
        config = CCPIConfig()
        config.timeouts.run_deadline_seconds = 0.1
        catalog = make_catalog(
            FakeSource("api_a", values={"val": 80.0, "tech": 40.0}),
            FakeSource("api_b", values={"macro": 30.0}, delay=5.0),
            FakeSource("api_c"),
            FakeSource("api_d"),
            FakeSource("ai_a", kind=SourceKind.GENERATIVE_AI),
            FakeSource("ai_b", kind=SourceKind.GENERATIVE_AI),
        )
        engine = CCPIEngine(catalog, registry, config)

        snapshot = await engine.run()

        macro = snapshot.get_indicator("macro")
        assert snapshot.result.run_timed_out
        assert macro.resolved_tier == SourceTier.UNAVAILABLE
        assert macro.display_value == 25.0
        assert snapshot.get_indicator("val").raw_value == 80.0
        assert snapshot.get_pillar(Pillar.MACRO) is None

    @pytest.mark.asyncio
    async def test_run_ccpi_closes_catalog(self, small_setup):
        indicators, registry = small_setup
        catalog = make_catalog(
            FakeSource("api_a", values={"val": 50.0, "tech": 50.0}),
            FakeSource("api_b", values={"macro": 50.0}),
            FakeSource("api_c"),
            FakeSource("api_d"),
            FakeSource("ai_a", kind=SourceKind.GENERATIVE_AI),
            FakeSource("ai_b", kind=SourceKind.GENERATIVE_AI),
        )

        with patch("ccpi.engine.build_default_catalog", return_value=catalog), \
                patch("ccpi.engine.load_default_registry", return_value=registry), \
                patch.object(catalog, "close") as close:
            snapshot = await run_ccpi(CCPIConfig())

        assert snapshot.result.ccpi_score == pytest.approx(50.0)
        close.assert_awaited_once()


# ============================================================
# SUMMARY
# ============================================================

class TestSummary:
    """Deterministic headline and bullets."""

    def snapshot_at(self, engine, sub_score, excluded_all_but_one=False):
        items = []
        for i in engine.registry:
            if excluded_all_but_one and i.pillar != Pillar.VALUATION:
                items.append(resolved(i, None, fetched_at=NOW))
            else:
                items.append(resolved(i, i.baseline_value, sub_score=sub_score, fetched_at=NOW))
        return engine.compute(items, timestamp=NOW)

    def test_high_risk_headline(self, default_engine):
        summary = summarize(self.snapshot_at(default_engine, 85.0))

        assert "85 percent crash risk" in summary.headline
        assert any("stress elevated" in b for b in summary.bullets)

    def test_low_risk_headline(self, default_engine):
        summary = summarize(self.snapshot_at(default_engine, 20.0))

        assert "relatively low crash risk" in summary.headline
        assert summary.bullets[0].startswith("Most indicators remain within normal ranges")

    def test_excluded_pillars_mentioned(self, default_engine):
        summary = summarize(self.snapshot_at(default_engine, 50.0, excluded_all_but_one=True))

        assert any(b.startswith("No data for:") for b in summary.bullets)

    def test_deterministic(self, default_engine):
        snapshot = self.snapshot_at(default_engine, 65.0)

        assert summarize(snapshot) == summarize(snapshot)
