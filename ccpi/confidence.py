"""
CCPI Engine - Confidence Calculator.

============================================================
PURPOSE
============================================================
How much the composite should be trusted, independent of its
magnitude. Never feeds back into the composite.

============================================================
COMPONENTS (each 0-100)
============================================================
1. Freshness   - share of indicators whose observation is within
                 their refresh window (no value = stale)
2. Tier health - mean tier weight (primary 1.0 ... ai 0.4,
                 baseline/unavailable 0)
3. Consistency - 100 - stdev(pillar scores) * dispersion_penalty,
                 0 when fewer than two pillars can be compared

score = weighted sum of the three, clipped to [0, 100]

============================================================
"""

import logging
import statistics
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from .config import CCPIConfig, get_config
from .registry import IndicatorRegistry
from .types import ConfidenceBreakdown, PillarScore, ResolvedIndicator


logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ConfidenceCalculator:
    """Derives the confidence breakdown of a run."""

    def __init__(
        self,
        registry: IndicatorRegistry,
        config: Optional[CCPIConfig] = None,
    ) -> None:
        self._registry = registry
        self._config = config or get_config()

    def confidence(
        self,
        resolved: Sequence[ResolvedIndicator],
        pillar_scores: Sequence[PillarScore],
        as_of: Optional[datetime] = None,
    ) -> ConfidenceBreakdown:
        """
        Compute confidence.

        Args:
            resolved: Resolved indicators of the run
            pillar_scores: Included pillar scores
            as_of: Reference time for freshness (default: now)
        """
        now = _as_utc(as_of or datetime.now(timezone.utc))

        freshness = self.freshness(resolved, now)
        tier_health = self.tier_health(resolved)
        consistency = self.consistency(pillar_scores)

        weights = self._config.confidence_weights
        score = (
            freshness * weights.freshness
            + tier_health * weights.tier_health
            + consistency * weights.consistency
        )

        return ConfidenceBreakdown(
            score=max(0.0, min(100.0, score)),
            freshness=freshness,
            tier_health=tier_health,
            consistency=consistency,
        )

    def freshness(self, resolved: Sequence[ResolvedIndicator], now: datetime) -> float:
        """Percent of registry indicators with a fresh value."""
        total = len(self._registry)
        if total == 0:
            return 0.0

        by_id: Dict[str, ResolvedIndicator] = {r.indicator_id: r for r in resolved}
        fresh = 0
        for indicator in self._registry:
            item = by_id.get(indicator.id)
            if item is None or not item.has_value:
                continue
            age = now - _as_utc(item.observed_at)
            if age <= indicator.refresh_window:
                fresh += 1
        return 100.0 * fresh / total

    def tier_health(self, resolved: Sequence[ResolvedIndicator]) -> float:
        """Mean tier weight over registry indicators, as a percent."""
        total = len(self._registry)
        if total == 0:
            return 0.0

        by_id: Dict[str, ResolvedIndicator] = {r.indicator_id: r for r in resolved}
        weights = self._config.tier_weights
        points = 0.0
        for indicator in self._registry:
            item = by_id.get(indicator.id)
            if item is None or not item.has_value:
                continue
            points += weights.get_weight(item.resolved_tier)
        return 100.0 * points / total

    def consistency(self, pillar_scores: Sequence[PillarScore]) -> float:
        """Cross-pillar agreement."""
        if len(pillar_scores) < 2:
            return 0.0
        dispersion = statistics.pstdev(p.score for p in pillar_scores)
        return max(0.0, 100.0 - dispersion * self._config.dispersion_penalty)
