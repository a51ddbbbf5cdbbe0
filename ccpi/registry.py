"""
CCPI Engine - Indicator Registry.

============================================================
PURPOSE
============================================================
Immutable, validated set of indicator definitions.

All structural checks happen once, at load time. A registry that
loads is safe to run; one that does not raises
RegistryConfigurationError listing every problem found.

============================================================
VALIDATION RULES
============================================================
- Pillar weights sum to 1 (+/- 1e-6), each in (0, 1]
- Indicator weights within each pillar sum to 1 (+/- 1e-6)
- Every weighted pillar has at least one indicator
- Indicator ids are unique
- Adapter chains are non-empty and reference known sources
- At most three market-API tiers, all before any AI tier
- Scoring thresholds are well-formed
- Baselines lie inside the plausible range

============================================================
"""

import logging
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from indicator_sources.models import API_TIER_ORDER, SourceKind, SourceTier

from .exceptions import RegistryConfigurationError
from .types import Indicator, Pillar


logger = logging.getLogger(__name__)


WEIGHT_TOLERANCE = 1e-6


class IndicatorRegistry:
    """
    Validated indicator registry.

    Usage:
        registry = IndicatorRegistry(
            indicators=DEFAULT_INDICATORS,
            pillar_weights=PILLAR_WEIGHTS,
            source_kinds={"fred": SourceKind.MARKET_API, ...},
        )
        for indicator in registry.by_pillar(Pillar.MACRO):
            ...
    """

    def __init__(
        self,
        indicators: Sequence[Indicator],
        pillar_weights: Mapping[Pillar, float],
        source_kinds: Mapping[str, SourceKind],
    ) -> None:
        problems = validate_registry(indicators, pillar_weights, source_kinds)
        if problems:
            for problem in problems:
                logger.error(f"Registry problem: {problem}")
            raise RegistryConfigurationError(problems)

        self._indicators: Tuple[Indicator, ...] = tuple(indicators)
        self._by_id: Dict[str, Indicator] = {i.id: i for i in self._indicators}
        self._pillar_weights: Dict[Pillar, float] = dict(pillar_weights)
        self._tiers: Dict[str, Tuple[SourceTier, ...]] = {
            i.id: assign_tiers(i, source_kinds) for i in self._indicators
        }

        logger.info(
            f"Indicator registry loaded: {len(self._indicators)} indicators "
            f"across {len(self._pillar_weights)} pillars"
        )

    # ---------------------------------------------------------
    # LOOKUP
    # ---------------------------------------------------------

    @property
    def indicators(self) -> Tuple[Indicator, ...]:
        return self._indicators

    @property
    def pillars(self) -> List[Pillar]:
        """Weighted pillars in display order."""
        return [p for p in Pillar.all_pillars() if p in self._pillar_weights]

    def get(self, indicator_id: str) -> Optional[Indicator]:
        return self._by_id.get(indicator_id)

    def by_pillar(self, pillar: Pillar) -> List[Indicator]:
        return [i for i in self._indicators if i.pillar == pillar]

    def pillar_weight(self, pillar: Pillar) -> float:
        return self._pillar_weights.get(pillar, 0.0)

    @property
    def pillar_weights(self) -> Dict[Pillar, float]:
        return dict(self._pillar_weights)

    def tiers_for(self, indicator_id: str) -> Tuple[SourceTier, ...]:
        """Tier of each chain position of an indicator."""
        return self._tiers[indicator_id]

    def __iter__(self) -> Iterator[Indicator]:
        return iter(self._indicators)

    def __len__(self) -> int:
        return len(self._indicators)

    def to_dict(self) -> Dict:
        """Registry configuration for the audit view."""
        return {
            "pillar_weights": {p.value: w for p, w in self._pillar_weights.items()},
            "indicators": [
                dict(
                    i.to_dict(),
                    tiers=[t.value for t in self._tiers[i.id]],
                )
                for i in self._indicators
            ],
        }


# =============================================================
# TIER ASSIGNMENT
# =============================================================


def assign_tiers(
    indicator: Indicator,
    source_kinds: Mapping[str, SourceKind],
) -> Tuple[SourceTier, ...]:
    """
    Tier of each chain position.

    Market-API bindings take primary/secondary/tertiary by position among
    market-API bindings; generative-AI bindings are all ai_estimate.
    Assumes the chain already passed validation.
    """
    tiers: List[SourceTier] = []
    api_position = 0
    for binding in indicator.adapter_chain:
        if source_kinds[binding.source] == SourceKind.GENERATIVE_AI:
            tiers.append(SourceTier.AI_ESTIMATE)
        else:
            tiers.append(API_TIER_ORDER[api_position])
            api_position += 1
    return tuple(tiers)


# =============================================================
# VALIDATION
# =============================================================


def validate_registry(
    indicators: Sequence[Indicator],
    pillar_weights: Mapping[Pillar, float],
    source_kinds: Mapping[str, SourceKind],
) -> List[str]:
    """Collect every structural problem (empty list = valid)."""
    problems: List[str] = []

    # Pillar weights
    for pillar, weight in pillar_weights.items():
        if not 0.0 < weight <= 1.0:
            problems.append(f"pillar {pillar.value}: weight {weight} outside (0, 1]")
    total = sum(pillar_weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        problems.append(f"pillar weights sum to {total:.6f}, expected 1")

    # Unique ids
    seen = set()
    for indicator in indicators:
        if indicator.id in seen:
            problems.append(f"duplicate indicator id {indicator.id!r}")
        seen.add(indicator.id)

    # Indicator weights per pillar
    for pillar in pillar_weights:
        members = [i for i in indicators if i.pillar == pillar]
        if not members:
            problems.append(f"pillar {pillar.value}: no indicators")
            continue
        pillar_total = sum(i.weight_in_pillar for i in members)
        if abs(pillar_total - 1.0) > WEIGHT_TOLERANCE:
            problems.append(
                f"pillar {pillar.value}: indicator weights sum to {pillar_total:.6f}, expected 1"
            )

    for indicator in indicators:
        problems.extend(_indicator_problems(indicator, pillar_weights, source_kinds))

    return problems


def _indicator_problems(
    indicator: Indicator,
    pillar_weights: Mapping[Pillar, float],
    source_kinds: Mapping[str, SourceKind],
) -> List[str]:
    prefix = f"indicator {indicator.id}"
    problems: List[str] = []

    if indicator.pillar not in pillar_weights:
        problems.append(f"{prefix}: pillar {indicator.pillar.value} has no weight")
    if not 0.0 < indicator.weight_in_pillar <= 1.0:
        problems.append(f"{prefix}: weight {indicator.weight_in_pillar} outside (0, 1]")

    # Adapter chain
    if not indicator.adapter_chain:
        problems.append(f"{prefix}: empty adapter chain")
    api_tiers = 0
    seen_ai = False
    for binding in indicator.adapter_chain:
        kind = source_kinds.get(binding.source)
        if kind is None:
            problems.append(f"{prefix}: unknown source {binding.source!r}")
            continue
        if binding.timeout_seconds is not None and binding.timeout_seconds <= 0:
            problems.append(f"{prefix}: non-positive timeout for {binding.source}")
        if kind == SourceKind.GENERATIVE_AI:
            seen_ai = True
            continue
        if seen_ai:
            problems.append(f"{prefix}: market API {binding.source!r} after an AI tier")
        api_tiers += 1
    if api_tiers > len(API_TIER_ORDER):
        problems.append(f"{prefix}: {api_tiers} market-API tiers, at most {len(API_TIER_ORDER)}")

    # Scoring
    for issue in indicator.thresholds.problems():
        problems.append(f"{prefix}: thresholds {issue}")

    # Baseline / refresh window
    if indicator.baseline_value is not None and not indicator.plausible_range.contains(indicator.baseline_value):
        problems.append(f"{prefix}: baseline {indicator.baseline_value} outside plausible range")
    if indicator.refresh_window.total_seconds() <= 0:
        problems.append(f"{prefix}: refresh window must be positive")

    return problems


# =============================================================
# DEFAULT REGISTRY
# =============================================================


def load_default_registry(
    source_kinds: Optional[Mapping[str, SourceKind]] = None,
) -> IndicatorRegistry:
    """
    Load the 23 default indicators.

    Source kinds default to those of the default source catalog.
    """
    from .indicators import DEFAULT_INDICATORS, PILLAR_WEIGHTS

    if source_kinds is None:
        from indicator_sources.catalog import build_default_catalog

        source_kinds = build_default_catalog().source_kinds()

    return IndicatorRegistry(DEFAULT_INDICATORS, PILLAR_WEIGHTS, source_kinds)
