"""
Tests for pillar aggregation, the composite, confidence and canaries.

============================================================
PURPOSE
============================================================
Pure scoring over hand-built resolved snapshots:
1. Missing indicators/pillars are excluded and renormalized, never zeroed
2. Composite and confidence stay within [0, 100]
3. Confidence components follow their formulas
4. Canary boundaries are inclusive; alert levels step with the count

============================================================
"""

import pytest
from datetime import datetime, timedelta, timezone

from ccpi import (
    AlertLevel,
    AlertLevelSteps,
    CanaryDetector,
    CanaryDirection,
    CanaryTrigger,
    CCPIConfig,
    CompositeScorer,
    ConfidenceCalculator,
    ConfigurationError,
    ConfidenceWeights,
    Pillar,
    PillarAggregator,
    RiskBand,
    Severity,
)
from indicator_sources import SourceTier

from tests.helpers import make_indicator, make_registry, resolved


NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def three_pillars():
    """Valuation 0.5 / technical 0.3 / macro 0.2, one indicator each."""
    indicators = [
        make_indicator("val", Pillar.VALUATION, 1.0),
        make_indicator("tech", Pillar.TECHNICAL, 1.0),
        make_indicator("macro", Pillar.MACRO, 1.0, baseline=25.0),
    ]
    weights = {Pillar.VALUATION: 0.5, Pillar.TECHNICAL: 0.3, Pillar.MACRO: 0.2}
    return make_registry(indicators, weights)


@pytest.fixture
def two_indicator_pillar():
    indicators = [
        make_indicator("a", Pillar.VALUATION, 0.6),
        make_indicator("b", Pillar.VALUATION, 0.4),
    ]
    return make_registry(indicators, {Pillar.VALUATION: 1.0})


# ============================================================
# PILLAR AGGREGATION
# ============================================================

class TestPillarAggregator:
    """Tests for weighted pillar scores."""

    def test_weighted_average(self, two_indicator_pillar):
        a, b = two_indicator_pillar.indicators
        score = PillarAggregator(two_indicator_pillar).aggregate(
            Pillar.VALUATION, [resolved(a, 80.0), resolved(b, 30.0)],
        )

        assert score.score == pytest.approx(60.0)
        assert score.indicator_count == 2
        assert score.live_count == 2
        assert score.contributing_count == 2

    def test_missing_indicator_is_excluded_not_zeroed(self, two_indicator_pillar):
        a, b = two_indicator_pillar.indicators
        score = PillarAggregator(two_indicator_pillar).aggregate(
            Pillar.VALUATION, [resolved(a, 80.0), resolved(b, None)],
        )

        assert score.score == pytest.approx(80.0)
        assert score.indicator_count == 2
        assert score.contributing_count == 1

    def test_ai_value_contributes_but_is_not_live(self, two_indicator_pillar):
        a, b = two_indicator_pillar.indicators
        score = PillarAggregator(two_indicator_pillar).aggregate(
            Pillar.VALUATION,
            [resolved(a, 80.0), resolved(b, 30.0, tier=SourceTier.AI_ESTIMATE)],
        )

        assert score.contributing_count == 2
        assert score.live_count == 1

    def test_pillar_without_values_is_undefined(self, two_indicator_pillar):
        a, b = two_indicator_pillar.indicators
        score = PillarAggregator(two_indicator_pillar).aggregate(
            Pillar.VALUATION, [resolved(a, None), resolved(b, None)],
        )

        assert score is None

    def test_baseline_never_contributes(self, three_pillars):
        items = [resolved(i, None) for i in three_pillars.indicators]

        scores, excluded = PillarAggregator(three_pillars).aggregate_all(items)

        assert scores == ()
        assert set(excluded) == {Pillar.VALUATION, Pillar.TECHNICAL, Pillar.MACRO}


# ============================================================
# COMPOSITE
# ============================================================

class TestCompositeScorer:
    """Tests for the pillar-weighted composite."""

    def test_fully_unavailable_pillar_is_renormalized(self, three_pillars):
        val, tech, macro = three_pillars.indicators
        items = [resolved(val, 80.0), resolved(tech, 40.0), resolved(macro, None)]

        scores, excluded = PillarAggregator(three_pillars).aggregate_all(items)
        composite = CompositeScorer(CCPIConfig()).score(scores)

        assert excluded == (Pillar.MACRO,)
        assert composite == pytest.approx(65.0)
        effective = {s.pillar: s.effective_weight for s in scores}
        assert effective[Pillar.VALUATION] == pytest.approx(0.625)
        assert effective[Pillar.TECHNICAL] == pytest.approx(0.375)

    def test_no_pillars_gives_no_data_score(self):
        assert CompositeScorer(CCPIConfig()).score([]) == 50.0

    @pytest.mark.parametrize("score,band", [
        (0.0, RiskBand.LOW),
        (30.0, RiskBand.LOW),
        (30.5, RiskBand.MODERATE),
        (60.0, RiskBand.MODERATE),
        (61.0, RiskBand.HIGH),
        (85.0, RiskBand.HIGH),
        (86.0, RiskBand.EXTREME),
        (100.0, RiskBand.EXTREME),
    ])
    def test_bands(self, score, band):
        assert CompositeScorer.band(score) == band

    def test_bounded_for_extreme_values(self, three_pillars):
        val, tech, macro = three_pillars.indicators
        items = [resolved(val, 1000.0), resolved(tech, 999.0), resolved(macro, -1000.0)]

        scores, _ = PillarAggregator(three_pillars).aggregate_all(items)
        composite = CompositeScorer(CCPIConfig()).score(scores)

        assert 0.0 <= composite <= 100.0


# ============================================================
# CONFIDENCE
# ============================================================

class TestConfidenceCalculator:
    """Tests for freshness, tier health and consistency."""

    @pytest.fixture
    def registry(self):
        indicators = [
            make_indicator("a", Pillar.VALUATION, 1.0),
            make_indicator("b", Pillar.TECHNICAL, 1.0),
        ]
        return make_registry(indicators, {Pillar.VALUATION: 0.5, Pillar.TECHNICAL: 0.5})

    def compute(self, registry, items):
        scores, _ = PillarAggregator(registry).aggregate_all(items)
        return ConfidenceCalculator(registry, CCPIConfig()).confidence(items, scores, as_of=NOW)

    def test_components(self, registry):
        a, b = registry.indicators
        items = [
            resolved(a, 80.0, fetched_at=NOW),
            resolved(b, 40.0, tier=SourceTier.AI_ESTIMATE, fetched_at=NOW),
        ]

        breakdown = self.compute(registry, items)

        assert breakdown.freshness == pytest.approx(100.0)
        assert breakdown.tier_health == pytest.approx(70.0)
        assert breakdown.consistency == pytest.approx(50.0)
        assert breakdown.score == pytest.approx(75.5)

    def test_stale_observation(self, registry):
        a, b = registry.indicators
        items = [
            resolved(a, 50.0, fetched_at=NOW),
            resolved(b, 50.0, fetched_at=NOW, as_of=NOW - timedelta(days=10)),
        ]

        breakdown = self.compute(registry, items)

        assert breakdown.freshness == pytest.approx(50.0)
        assert breakdown.consistency == pytest.approx(100.0)

    def test_naive_timestamps_are_utc(self, registry):
        a, b = registry.indicators
        naive = NOW.replace(tzinfo=None)
        items = [resolved(a, 50.0, fetched_at=naive), resolved(b, 50.0, fetched_at=naive)]

        breakdown = self.compute(registry, items)

        assert breakdown.freshness == pytest.approx(100.0)

    def test_single_pillar_has_no_consistency(self, registry):
        a, b = registry.indicators
        breakdown = self.compute(registry, [resolved(a, 50.0, fetched_at=NOW), resolved(b, None)])

        assert breakdown.consistency == 0.0
        assert breakdown.tier_health == pytest.approx(50.0)

    def test_nothing_resolved_is_zero(self, registry):
        a, b = registry.indicators
        breakdown = self.compute(registry, [resolved(a, None), resolved(b, None)])

        assert breakdown.score == 0.0

    def test_weights_are_normalized(self):
        weights = ConfidenceWeights(freshness=2, tier_health=2, consistency=1)

        assert weights.total() == pytest.approx(1.0)
        assert weights.freshness == pytest.approx(0.4)

    def test_negative_weight_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfidenceWeights(freshness=-1)


# ============================================================
# CANARIES
# ============================================================

class TestCanaryDetector:
    """Tests for canary triggers."""

    @pytest.fixture
    def registry(self):
        indicators = [
            make_indicator(
                "vix", Pillar.TECHNICAL, 0.5, baseline=40.0,
                canary=CanaryTrigger(30.0, CanaryDirection.ABOVE, Severity.HIGH, "VIX >= 30"),
            ),
            make_indicator(
                "breadth", Pillar.TECHNICAL, 0.5,
                canary=CanaryTrigger(0.3, CanaryDirection.BELOW, Severity.LOW, "Breadth <= 0.3"),
            ),
            make_indicator(
                "pe", Pillar.VALUATION, 1.0,
                canary=CanaryTrigger(25.0, CanaryDirection.ABOVE, Severity.MEDIUM, "P/E >= 25"),
            ),
        ]
        return make_registry(indicators, {Pillar.VALUATION: 0.6, Pillar.TECHNICAL: 0.4})

    def detect(self, registry, values):
        items = [resolved(i, values.get(i.id)) for i in registry.indicators]
        return CanaryDetector(registry, CCPIConfig()).detect(items)

    def test_boundary_is_inclusive(self, registry):
        report = self.detect(registry, {"vix": 30.0, "breadth": 0.3, "pe": 25.0})

        assert report.count == 3
        assert report.severity_breakdown == {"high": 1, "medium": 1, "low": 1}

    def test_just_inside_does_not_trigger(self, registry):
        report = self.detect(registry, {"vix": 29.99, "breadth": 0.31, "pe": 24.9})

        assert report.count == 0
        assert report.alert_level == AlertLevel.NORMAL

    def test_unavailable_baseline_never_triggers(self, registry):
        # vix baseline is 40, above its threshold
        report = self.detect(registry, {"pe": 10.0})

        assert report.count == 0

    def test_sorted_by_severity_then_impact(self, registry):
        report = self.detect(registry, {"vix": 35.0, "breadth": 0.1, "pe": 30.0})

        assert [s.indicator_id for s in report.signals] == ["vix", "pe", "breadth"]
        assert report.signals[0].impact == pytest.approx(20.0)
        assert report.signals[1].impact == pytest.approx(60.0)

    @pytest.mark.parametrize("count,level", [
        (0, AlertLevel.NORMAL),
        (1, AlertLevel.WATCH),
        (2, AlertLevel.WATCH),
        (3, AlertLevel.ELEVATED),
        (5, AlertLevel.ELEVATED),
        (6, AlertLevel.CRITICAL),
        (20, AlertLevel.CRITICAL),
    ])
    def test_alert_level_steps(self, count, level):
        assert AlertLevelSteps().get_level(count) == level

    def test_alert_level_steps_must_increase(self):
        with pytest.raises(ConfigurationError):
            AlertLevelSteps(watch_at=3, elevated_at=2, critical_at=6)
