"""
CCPI Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the composite market-risk indicator engine.

Indicator definitions are created once at registry load.
Every aggregation run produces fresh, immutable snapshots:
ResolvedIndicator -> PillarScore -> CompositeResult.

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable (frozen dataclasses)
- Enums for discrete values
- "No value" is None, never 0 or 50
- Scores are RISK scores: 0 = calm, 100 = extreme

============================================================
PILLARS
============================================================
1. VALUATION  - How expensive equities are
2. TECHNICAL  - Volatility and market breadth
3. MACRO      - Rates and credit
4. SENTIMENT  - Positioning and surveys
5. FLOWS      - Fund flows and short interest
6. STRUCTURAL - AI-cycle fundamentals

============================================================
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from indicator_sources.models import (
    FetchErrorKind,
    IndicatorRequest,
    PlausibleRange,
    SourceBinding,
    SourceTier,
)


# ============================================================
# ENUMS
# ============================================================


class Pillar(str, Enum):
    """The six weighted risk pillars."""

    VALUATION = "valuation"
    TECHNICAL = "technical"
    MACRO = "macro"
    SENTIMENT = "sentiment"
    FLOWS = "flows"
    STRUCTURAL = "structural"

    @classmethod
    def all_pillars(cls) -> List["Pillar"]:
        """Return all pillars in display order."""
        return [
            cls.VALUATION,
            cls.TECHNICAL,
            cls.MACRO,
            cls.SENTIMENT,
            cls.FLOWS,
            cls.STRUCTURAL,
        ]

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Severity(str, Enum):
    """Canary severity assigned at registry time."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort key, most severe first."""
        return {"high": 0, "medium": 1, "low": 2}[self.value]


class CanaryDirection(str, Enum):
    """Which side of the threshold is the warning side."""

    ABOVE = "above"
    BELOW = "below"


class AlertLevel(str, Enum):
    """
    Discrete alert level derived from the active canary count.

    Default mapping (configurable):
    - NORMAL:   0
    - WATCH:    1-2
    - ELEVATED: 3-5
    - CRITICAL: 6+
    """

    NORMAL = "normal"
    WATCH = "watch"
    ELEVATED = "elevated"
    CRITICAL = "critical"


class RiskBand(str, Enum):
    """
    Fixed interpretation bands of the composite score.

    Display/alerting only; bands never alter the arithmetic.
    - LOW:      0-30
    - MODERATE: 31-60
    - HIGH:     61-85
    - EXTREME:  86-100
    """

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXTREME = "extreme"

    @classmethod
    def from_score(cls, score: float) -> "RiskBand":
        if score <= 30:
            return cls.LOW
        elif score <= 60:
            return cls.MODERATE
        elif score <= 85:
            return cls.HIGH
        else:
            return cls.EXTREME


# ============================================================
# SCORING THRESHOLDS
# ============================================================


@dataclass(frozen=True)
class Breakpoint:
    """One (raw value, risk sub-score) point of a threshold curve."""

    value: float
    score: float


@dataclass(frozen=True)
class ScoreThresholds:
    """
    Piecewise-linear map from raw value to a 0-100 risk sub-score.

    Breakpoints are ordered by value. Between two breakpoints the score
    is interpolated linearly; beyond the ends it is flat. The result is
    always clipped to [0, 100].

    The curve is valley-shaped: scores never increase while walking
    toward the lowest-risk breakpoints from either side, so moving a
    value toward its healthy band can only lower (or keep) its risk.
    """

    breakpoints: Tuple[Breakpoint, ...]

    @classmethod
    def of(cls, *pairs: Tuple[float, float]) -> "ScoreThresholds":
        """Build from (value, score) pairs."""
        return cls(tuple(Breakpoint(float(v), float(s)) for v, s in pairs))

    def score(self, value: float) -> float:
        """Sub-score for a raw value."""
        points = self.breakpoints
        if value <= points[0].value:
            result = points[0].score
        elif value >= points[-1].value:
            result = points[-1].score
        else:
            result = points[-1].score
            for left, right in zip(points, points[1:]):
                if left.value <= value <= right.value:
                    span = right.value - left.value
                    fraction = (value - left.value) / span
                    result = left.score + fraction * (right.score - left.score)
                    break
        return max(0.0, min(100.0, result))

    @property
    def healthy_band(self) -> Tuple[float, float]:
        """Raw-value range where the sub-score is at its minimum."""
        lowest = min(p.score for p in self.breakpoints)
        values = [p.value for p in self.breakpoints if p.score == lowest]
        return min(values), max(values)

    def problems(self) -> List[str]:
        """Validation problems (empty when well-formed)."""
        points = self.breakpoints
        issues: List[str] = []
        if len(points) < 2:
            return ["needs at least two breakpoints"]

        for p in points:
            if not (math.isfinite(p.value) and math.isfinite(p.score)):
                issues.append(f"non-finite breakpoint {p}")
            elif not 0.0 <= p.score <= 100.0:
                issues.append(f"breakpoint score {p.score} outside [0, 100]")

        for left, right in zip(points, points[1:]):
            if not left.value < right.value:
                issues.append(
                    f"breakpoint values must be strictly increasing ({left.value} >= {right.value})"
                )

        # Valley shape: non-increasing, then non-decreasing
        scores = [p.score for p in points]
        rising = False
        for previous, current in zip(scores, scores[1:]):
            if current > previous:
                rising = True
            elif current < previous and rising:
                issues.append("scores must fall toward a single healthy band (valley shape)")
                break
        return issues

    def to_dict(self) -> Dict[str, Any]:
        return {"breakpoints": [[p.value, p.score] for p in self.breakpoints]}


@dataclass(frozen=True)
class CanaryTrigger:
    """
    Early-warning condition of one indicator.

    The boundary is inclusive: a value exactly at the threshold triggers.
    """

    threshold: float
    direction: CanaryDirection
    severity: Severity
    signal: str

    def is_triggered(self, value: Optional[float]) -> bool:
        if value is None:
            return False
        if self.direction == CanaryDirection.ABOVE:
            return value >= self.threshold
        return value <= self.threshold

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold": self.threshold,
            "direction": self.direction.value,
            "severity": self.severity.value,
            "signal": self.signal,
        }


# ============================================================
# INDICATOR DEFINITION
# ============================================================


@dataclass(frozen=True)
class Indicator:
    """
    Immutable indicator definition.

    Created once at registry load and never mutated.
    """

    id: str
    name: str
    pillar: Pillar
    weight_in_pillar: float
    thresholds: ScoreThresholds
    adapter_chain: Tuple[SourceBinding, ...]
    plausible_range: PlausibleRange
    baseline_value: Optional[float] = None
    canary: Optional[CanaryTrigger] = None
    refresh_window: timedelta = timedelta(days=4)
    unit: str = ""
    description: str = ""

    def request_for(self, binding: SourceBinding) -> IndicatorRequest:
        """Build the adapter request for one chain position."""
        return IndicatorRequest(
            indicator_id=self.id,
            indicator_name=self.name,
            query=dict(binding.query),
            plausible_range=self.plausible_range,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "pillar": self.pillar.value,
            "weight_in_pillar": self.weight_in_pillar,
            "thresholds": self.thresholds.to_dict(),
            "adapter_chain": [b.to_dict() for b in self.adapter_chain],
            "plausible_range": self.plausible_range.to_dict(),
            "baseline_value": self.baseline_value,
            "canary": self.canary.to_dict() if self.canary else None,
            "refresh_window_hours": self.refresh_window.total_seconds() / 3600,
            "unit": self.unit,
        }


# ============================================================
# RESOLUTION OUTPUT
# ============================================================


@dataclass(frozen=True)
class TierAttempt:
    """One adapter call made while resolving an indicator."""

    source: str
    tier: SourceTier
    value: Optional[float] = None
    error_kind: Optional[FetchErrorKind] = None
    error_message: Optional[str] = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error_kind is None and self.value is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "tier": self.tier.value,
            "value": self.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
            "latency_ms": round(self.latency_ms, 1),
        }


@dataclass(frozen=True)
class ResolvedIndicator:
    """
    Per-run snapshot of one indicator.

    raw_value is None when every tier failed. In that case the tier is
    UNAVAILABLE and baseline_value (if any) is carried for display only.
    """

    indicator_id: str
    pillar: Pillar
    raw_value: Optional[float]
    resolved_tier: SourceTier
    fetched_at: datetime
    sub_score: Optional[float]
    as_of: Optional[datetime] = None
    source: Optional[str] = None
    baseline_value: Optional[float] = None
    attempts: Tuple[TierAttempt, ...] = ()

    @property
    def has_value(self) -> bool:
        return self.raw_value is not None

    @property
    def is_live(self) -> bool:
        return self.has_value and self.resolved_tier.is_live

    @property
    def observed_at(self) -> datetime:
        """Observation time reported by the source, else fetch time."""
        return self.as_of or self.fetched_at

    @property
    def display_value(self) -> Optional[float]:
        return self.raw_value if self.raw_value is not None else self.baseline_value

    @property
    def display_tier(self) -> SourceTier:
        if self.raw_value is None and self.baseline_value is not None:
            return SourceTier.BASELINE
        return self.resolved_tier

    def to_dict(self) -> Dict[str, Any]:
        return {
            "indicator_id": self.indicator_id,
            "pillar": self.pillar.value,
            "raw_value": self.raw_value,
            "resolved_tier": self.resolved_tier.value,
            "fetched_at": self.fetched_at.isoformat(),
            "sub_score": self.sub_score,
            "as_of": self.as_of.isoformat() if self.as_of else None,
            "source": self.source,
            "display_value": self.display_value,
            "display_tier": self.display_tier.value,
            "attempts": [a.to_dict() for a in self.attempts],
        }


# ============================================================
# AGGREGATION OUTPUT
# ============================================================


@dataclass(frozen=True)
class PillarScore:
    """
    Score of one pillar.

    weight is the registry weight; effective_weight is the share it got
    in the composite after excluded pillars were renormalized away.
    """

    pillar: Pillar
    score: float
    weight: float
    indicator_count: int
    live_count: int
    contributing_count: int = 0
    effective_weight: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pillar": self.pillar.value,
            "score": self.score,
            "weight": self.weight,
            "effective_weight": self.effective_weight,
            "indicator_count": self.indicator_count,
            "live_count": self.live_count,
            "contributing_count": self.contributing_count,
        }


@dataclass(frozen=True)
class ConfidenceBreakdown:
    """Confidence score and its three components, each 0-100."""

    score: float
    freshness: float
    tier_health: float
    consistency: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "score": self.score,
            "freshness": self.freshness,
            "tier_health": self.tier_health,
            "consistency": self.consistency,
        }


@dataclass(frozen=True)
class CanarySignal:
    """One active canary."""

    indicator_id: str
    indicator_name: str
    pillar: Pillar
    severity: Severity
    value: float
    threshold: float
    direction: CanaryDirection
    signal: str
    impact: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "indicator_id": self.indicator_id,
            "indicator_name": self.indicator_name,
            "pillar": self.pillar.value,
            "severity": self.severity.value,
            "value": self.value,
            "threshold": self.threshold,
            "direction": self.direction.value,
            "signal": self.signal,
            "impact": self.impact,
        }


@dataclass(frozen=True)
class CanaryReport:
    """Active canaries of one run."""

    count: int
    high: int
    medium: int
    low: int
    alert_level: AlertLevel
    signals: Tuple[CanarySignal, ...] = ()

    @property
    def severity_breakdown(self) -> Dict[str, int]:
        return {"high": self.high, "medium": self.medium, "low": self.low}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "severity_breakdown": self.severity_breakdown,
            "alert_level": self.alert_level.value,
            "signals": [s.to_dict() for s in self.signals],
        }


@dataclass(frozen=True)
class Allocation:
    """Suggested portfolio allocation bands (free text, e.g. "40-60%")."""

    equities: str
    defensive: str
    cash: str
    alternatives: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "equities": self.equities,
            "defensive": self.defensive,
            "cash": self.cash,
            "alternatives": self.alternatives,
        }


@dataclass(frozen=True)
class Playbook:
    """Positioning guidance attached to a regime."""

    bias: str
    strategies: Tuple[str, ...]
    allocation: Allocation

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bias": self.bias,
            "strategies": list(self.strategies),
            "allocation": self.allocation.to_dict(),
        }


@dataclass(frozen=True)
class Regime:
    """
    Market regime derived from the composite score.

    Level 1 (Low Risk) to 5 (Crash Watch); min_score is the inclusive
    lower bound of the regime.
    """

    level: int
    name: str
    color: str
    description: str
    min_score: float
    playbook: Playbook

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "name": self.name,
            "color": self.color,
            "description": self.description,
            "min_score": self.min_score,
            "playbook": self.playbook.to_dict(),
        }


@dataclass(frozen=True)
class CompositeResult:
    """
    The single output artifact of one aggregation run.

    Immutable; superseded (never mutated) by the next run.
    """

    ccpi_score: float
    confidence: float
    canary_count: int
    canary_severity_breakdown: Dict[str, int]
    alert_level: AlertLevel
    timestamp: datetime
    risk_band: RiskBand
    confidence_breakdown: ConfidenceBreakdown
    excluded_pillars: Tuple[Pillar, ...] = ()
    run_timed_out: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ccpi_score": self.ccpi_score,
            "confidence": self.confidence,
            "canary_count": self.canary_count,
            "canary_severity_breakdown": dict(self.canary_severity_breakdown),
            "alert_level": self.alert_level.value,
            "timestamp": self.timestamp.isoformat(),
            "risk_band": self.risk_band.value,
            "confidence_breakdown": self.confidence_breakdown.to_dict(),
            "excluded_pillars": [p.value for p in self.excluded_pillars],
            "run_timed_out": self.run_timed_out,
        }


@dataclass(frozen=True)
class CCPISnapshot:
    """Everything one run produced."""

    result: CompositeResult
    pillars: Tuple[PillarScore, ...]
    indicators: Tuple[ResolvedIndicator, ...]
    canaries: CanaryReport
    regime: Regime
    duration_ms: float = 0.0

    @property
    def timestamp(self) -> datetime:
        return self.result.timestamp

    def get_indicator(self, indicator_id: str) -> Optional[ResolvedIndicator]:
        for resolved in self.indicators:
            if resolved.indicator_id == indicator_id:
                return resolved
        return None

    def get_pillar(self, pillar: Pillar) -> Optional[PillarScore]:
        for score in self.pillars:
            if score.pillar == pillar:
                return score
        return None

    def tier_distribution(self) -> Dict[str, int]:
        """Count of indicators per resolved tier."""
        counts: Dict[str, int] = {tier.value: 0 for tier in SourceTier}
        for resolved in self.indicators:
            counts[resolved.resolved_tier.value] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "pillars": [p.to_dict() for p in self.pillars],
            "indicators": [i.to_dict() for i in self.indicators],
            "canaries": self.canaries.to_dict(),
            "regime": self.regime.to_dict(),
            "duration_ms": round(self.duration_ms, 1),
        }
