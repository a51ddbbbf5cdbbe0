"""
CCPI Engine - Pillar Aggregator and Composite Scorer.

============================================================
PILLAR SCORE
============================================================
Indicator-weighted average of the sub-scores that have a value.

Missing indicators are excluded, not zeroed: their weight is
redistributed proportionally over the remaining ones. A pillar
with no value at all is undefined (None), never defaulted to 50.

============================================================
COMPOSITE SCORE
============================================================
ccpi = sum(score_i * weight_i) / sum(weight_i over included pillars)

Excluded pillars drop out and the remaining pillar weights are
renormalized. Risk bands are applied afterwards and never alter
the arithmetic.

============================================================
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from .config import CCPIConfig, get_config
from .registry import IndicatorRegistry
from .types import Pillar, PillarScore, ResolvedIndicator, RiskBand


logger = logging.getLogger(__name__)


def _clip(value: float) -> float:
    return max(0.0, min(100.0, value))


class PillarAggregator:
    """Turns resolved indicators into pillar scores."""

    def __init__(self, registry: IndicatorRegistry) -> None:
        self._registry = registry

    def aggregate(
        self,
        pillar: Pillar,
        resolved: Sequence[ResolvedIndicator],
    ) -> Optional[PillarScore]:
        """
        Score one pillar.

        Args:
            pillar: Pillar to score
            resolved: Resolved indicators of the run (any pillar)

        Returns:
            PillarScore, or None when no indicator of the pillar has a value
        """
        by_id: Dict[str, ResolvedIndicator] = {r.indicator_id: r for r in resolved}
        members = self._registry.by_pillar(pillar)

        weighted_sum = 0.0
        weight_total = 0.0
        contributing = 0
        live = 0
        for indicator in members:
            item = by_id.get(indicator.id)
            if item is None or not item.has_value:
                continue
            sub_score = item.sub_score
            if sub_score is None:
                sub_score = indicator.thresholds.score(item.raw_value)
            weighted_sum += sub_score * indicator.weight_in_pillar
            weight_total += indicator.weight_in_pillar
            contributing += 1
            if item.is_live:
                live += 1

        if contributing == 0 or weight_total <= 0:
            logger.warning(f"Pillar {pillar.value}: no indicator has a value, excluded")
            return None

        return PillarScore(
            pillar=pillar,
            score=_clip(weighted_sum / weight_total),
            weight=self._registry.pillar_weight(pillar),
            indicator_count=len(members),
            live_count=live,
            contributing_count=contributing,
        )

    def aggregate_all(
        self,
        resolved: Sequence[ResolvedIndicator],
    ) -> Tuple[Tuple[PillarScore, ...], Tuple[Pillar, ...]]:
        """
        Score every pillar.

        Returns:
            (included pillar scores with effective weights, excluded pillars)
        """
        scores: List[PillarScore] = []
        excluded: List[Pillar] = []
        for pillar in self._registry.pillars:
            score = self.aggregate(pillar, resolved)
            if score is None:
                excluded.append(pillar)
            else:
                scores.append(score)

        included_weight = sum(s.weight for s in scores)
        if included_weight > 0:
            scores = [replace(s, effective_weight=s.weight / included_weight) for s in scores]
        return tuple(scores), tuple(excluded)


class CompositeScorer:
    """Pillar-weighted composite with renormalization over included pillars."""

    def __init__(self, config: Optional[CCPIConfig] = None) -> None:
        self._config = config or get_config()

    def score(self, pillar_scores: Sequence[PillarScore]) -> float:
        """
        Composite 0-100 score.

        With no pillar included the configured no-data score is returned;
        the run's confidence reflects that nothing was measured.
        """
        weight_total = sum(p.weight for p in pillar_scores)
        if not pillar_scores or weight_total <= 0:
            logger.warning(
                f"No pillar has data, composite set to {self._config.no_data_score}"
            )
            return self._config.no_data_score

        weighted = sum(p.score * p.weight for p in pillar_scores)
        return _clip(weighted / weight_total)

    @staticmethod
    def band(score: float) -> RiskBand:
        return RiskBand.from_score(score)
