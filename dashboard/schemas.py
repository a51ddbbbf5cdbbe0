"""
Pydantic schemas for CCPI API responses.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ccpi.registry import IndicatorRegistry
from ccpi.summary import summarize
from ccpi.types import CCPISnapshot, ResolvedIndicator

# =======================
# COMMON
# =======================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
    version: str = "1.0.0"
    uptime_seconds: float = 0
    last_run: Optional[datetime] = None

# =======================
# 1. LATEST SNAPSHOT
# =======================

class PillarOut(CamelModel):
    pillar: str
    score: float
    weight: float
    effective_weight: float
    indicator_count: int
    live_count: int
    contributing_count: int


class IndicatorOut(CamelModel):
    id: str
    name: Optional[str] = None
    pillar: str
    raw_value: Optional[float]
    resolved_tier: str
    sub_score: Optional[float]
    fetched_at: datetime
    as_of: Optional[datetime] = None
    display_value: Optional[float]
    display_tier: str
    source: Optional[str] = None


class SeverityBreakdown(CamelModel):
    high: int
    medium: int
    low: int


class CanarySignalOut(CamelModel):
    indicator_id: str
    indicator_name: str
    pillar: str
    severity: str
    value: float
    threshold: float
    direction: str
    signal: str
    impact: float


class CanariesOut(CamelModel):
    count: int
    severity_breakdown: SeverityBreakdown
    alert_level: str
    signals: List[CanarySignalOut]


class ConfidenceBreakdownOut(CamelModel):
    score: float
    freshness: float
    tier_health: float
    consistency: float


class SummaryOut(CamelModel):
    headline: str
    bullets: List[str]


class AllocationOut(CamelModel):
    equities: str
    defensive: str
    cash: str
    alternatives: str


class PlaybookOut(CamelModel):
    bias: str
    strategies: List[str]
    allocation: AllocationOut


class RegimeOut(CamelModel):
    level: int
    name: str
    color: str
    description: str
    min_score: float
    playbook: PlaybookOut


class CCPIResponse(CamelModel):
    timestamp: datetime
    ccpi_score: float
    confidence: float
    risk_band: str
    alert_level: str
    pillars: List[PillarOut]
    indicators: List[IndicatorOut]
    canaries: CanariesOut
    confidence_breakdown: ConfidenceBreakdownOut
    excluded_pillars: List[str]
    run_timed_out: bool = False
    regime: RegimeOut
    summary: SummaryOut

# =======================
# 2. HISTORY
# =======================

class HistoryEntry(CamelModel):
    run_id: str
    timestamp: datetime
    ccpi_score: float
    confidence: float
    risk_band: str
    alert_level: str
    canary_count: int
    live_count: int
    indicator_count: int
    excluded_pillars: List[str] = Field(default_factory=list)
    run_timed_out: bool = False
    pillar_scores: Dict[str, float] = Field(default_factory=dict)


class HistoryResponse(CamelModel):
    count: int
    runs: List[HistoryEntry]

# =======================
# 3. AUDIT
# =======================

class TierAttemptOut(CamelModel):
    source: str
    tier: str
    value: Optional[float] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    latency_ms: float = 0.0


class IndicatorAudit(CamelModel):
    id: str
    pillar: str
    resolved_tier: str
    source: Optional[str] = None
    configured_tiers: List[str]
    attempts: List[TierAttemptOut]


class AuditResponse(CamelModel):
    timestamp: datetime
    run_timed_out: bool
    duration_ms: float
    tier_distribution: Dict[str, int]
    indicators: List[IndicatorAudit]
    registry: Dict[str, Any]

# =======================
# 4. SOURCES
# =======================

class SourceStatusOut(CamelModel):
    name: str
    display_name: str
    kind: str
    requires_auth: bool
    credential_env: Optional[str] = None
    offered: bool
    max_concurrency: Optional[int] = None


class SourcesResponse(CamelModel):
    total_sources: int
    offered_sources: int
    market_api_offered: int
    ai_offered: int
    sources: List[SourceStatusOut]


# =======================
# CONVERTERS
# =======================

def _indicator_out(item: ResolvedIndicator, registry: Optional[IndicatorRegistry]) -> IndicatorOut:
    definition = registry.get(item.indicator_id) if registry else None
    return IndicatorOut(
        id=item.indicator_id,
        name=definition.name if definition else None,
        pillar=item.pillar.value,
        raw_value=item.raw_value,
        resolved_tier=item.resolved_tier.value,
        sub_score=item.sub_score,
        fetched_at=item.fetched_at,
        as_of=item.as_of,
        display_value=item.display_value,
        display_tier=item.display_tier.value,
        source=item.source,
    )


def build_ccpi_response(
    snapshot: CCPISnapshot,
    registry: Optional[IndicatorRegistry] = None,
) -> CCPIResponse:
    """Snapshot -> wire shape of GET /ccpi."""
    result = snapshot.result
    canaries = snapshot.canaries
    return CCPIResponse(
        timestamp=result.timestamp,
        ccpi_score=result.ccpi_score,
        confidence=result.confidence,
        risk_band=result.risk_band.value,
        alert_level=result.alert_level.value,
        pillars=[
            PillarOut(
                pillar=p.pillar.value,
                score=p.score,
                weight=p.weight,
                effective_weight=p.effective_weight,
                indicator_count=p.indicator_count,
                live_count=p.live_count,
                contributing_count=p.contributing_count,
            )
            for p in snapshot.pillars
        ],
        indicators=[_indicator_out(i, registry) for i in snapshot.indicators],
        canaries=CanariesOut(
            count=canaries.count,
            severity_breakdown=SeverityBreakdown(**canaries.severity_breakdown),
            alert_level=canaries.alert_level.value,
            signals=[CanarySignalOut(**s.to_dict()) for s in canaries.signals],
        ),
        confidence_breakdown=ConfidenceBreakdownOut(**result.confidence_breakdown.to_dict()),
        excluded_pillars=[p.value for p in result.excluded_pillars],
        run_timed_out=result.run_timed_out,
        regime=RegimeOut(**snapshot.regime.to_dict()),
        summary=SummaryOut(**summarize(snapshot).to_dict()),
    )


def build_audit_response(snapshot: CCPISnapshot, registry: IndicatorRegistry) -> AuditResponse:
    """Tier attempts of every indicator plus the registry configuration."""
    indicators = []
    for item in snapshot.indicators:
        indicators.append(IndicatorAudit(
            id=item.indicator_id,
            pillar=item.pillar.value,
            resolved_tier=item.resolved_tier.value,
            source=item.source,
            configured_tiers=[t.value for t in registry.tiers_for(item.indicator_id)],
            attempts=[TierAttemptOut(**a.to_dict()) for a in item.attempts],
        ))
    return AuditResponse(
        timestamp=snapshot.timestamp,
        run_timed_out=snapshot.result.run_timed_out,
        duration_ms=round(snapshot.duration_ms, 1),
        tier_distribution=snapshot.tier_distribution(),
        indicators=indicators,
        registry=registry.to_dict(),
    )


def build_sources_response(stats: Dict[str, Any]) -> SourcesResponse:
    """SourceCatalog.get_stats() -> wire shape of GET /ccpi/sources."""
    return SourcesResponse(
        total_sources=stats["total_sources"],
        offered_sources=stats["offered_sources"],
        market_api_offered=stats["market_api_offered"],
        ai_offered=stats["ai_offered"],
        sources=[
            SourceStatusOut(
                name=status["name"],
                display_name=status["display_name"],
                kind=status["kind"],
                requires_auth=status["requires_auth"],
                credential_env=status.get("credential_env"),
                offered=status["offered"],
                max_concurrency=status.get("max_concurrency"),
            )
            for status in stats["sources"].values()
        ],
    )
