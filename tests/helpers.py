"""
Shared test doubles: scripted sources and small registries.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Sequence, Tuple

from ccpi.config import CCPIConfig
from ccpi.engine import CCPIEngine
from ccpi.registry import IndicatorRegistry
from ccpi.types import (
    CanaryTrigger,
    Indicator,
    Pillar,
    ResolvedIndicator,
    ScoreThresholds,
)
from indicator_sources.base import BaseIndicatorSource
from indicator_sources.catalog import SourceCatalog
from indicator_sources.exceptions import MalformedResponseError
from indicator_sources.models import (
    IndicatorRequest,
    PlausibleRange,
    SourceBinding,
    SourceKind,
    SourceMetadata,
    SourceTier,
)


# Sub-score equals the raw value on [0, 100]
IDENTITY = ScoreThresholds.of((0, 0), (100, 100))


class FakeSource(BaseIndicatorSource):
    """
    Source answering from a script.

    values: indicator id -> value
    errors: indicator id -> exception raised from fetch_raw
    delay:  seconds to sleep before answering
    """

    def __init__(
        self,
        name: str,
        kind: SourceKind = SourceKind.MARKET_API,
        values: Optional[Dict[str, float]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        delay: float = 0.0,
        offered: bool = True,
        as_of: Optional[datetime] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self._name = name
        self.KIND = kind
        if not offered:
            self.CREDENTIAL_ENV = "CCPI_TEST_KEY_NEVER_SET"
        super().__init__(api_key=None)
        self.values = dict(values or {})
        self.errors = dict(errors or {})
        self.delay = delay
        self.as_of = as_of
        self.max_concurrency = max_concurrency
        self.calls = []
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def name(self) -> str:
        return self._name

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self._name,
            display_name=self._name.upper(),
            kind=self.KIND,
            requires_auth=self.requires_auth,
            credential_env=self.CREDENTIAL_ENV,
            max_concurrency=self.max_concurrency,
        )

    async def fetch_raw(self, request: IndicatorRequest) -> Tuple[float, Optional[datetime]]:
        self.calls.append(request.indicator_id)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if request.indicator_id in self.errors:
                raise self.errors[request.indicator_id]
            if request.indicator_id not in self.values:
                raise MalformedResponseError("no scripted value", source_name=self._name)
            return self.values[request.indicator_id], self.as_of
        finally:
            self.in_flight -= 1


def make_catalog(*sources: BaseIndicatorSource) -> SourceCatalog:
    catalog = SourceCatalog()
    for source in sources:
        catalog.register(source)
    return catalog


def make_indicator(
    indicator_id: str,
    pillar: Pillar = Pillar.VALUATION,
    weight: float = 1.0,
    chain: Sequence[str] = ("api_a",),
    thresholds: ScoreThresholds = IDENTITY,
    baseline: Optional[float] = None,
    canary: Optional[CanaryTrigger] = None,
    plausible: Tuple[float, float] = (-1000.0, 1000.0),
    refresh_window: timedelta = timedelta(days=4),
) -> Indicator:
    return Indicator(
        id=indicator_id,
        name=indicator_id.replace("_", " ").title(),
        pillar=pillar,
        weight_in_pillar=weight,
        thresholds=thresholds,
        adapter_chain=tuple(SourceBinding(source=name) for name in chain),
        plausible_range=PlausibleRange(*plausible),
        baseline_value=baseline,
        canary=canary,
        refresh_window=refresh_window,
    )


def make_registry(
    indicators: Sequence[Indicator],
    pillar_weights: Dict[Pillar, float],
    source_kinds: Optional[Dict[str, SourceKind]] = None,
) -> IndicatorRegistry:
    if source_kinds is None:
        source_kinds = {
            "api_a": SourceKind.MARKET_API,
            "api_b": SourceKind.MARKET_API,
            "api_c": SourceKind.MARKET_API,
            "api_d": SourceKind.MARKET_API,
            "ai_a": SourceKind.GENERATIVE_AI,
            "ai_b": SourceKind.GENERATIVE_AI,
        }
    return IndicatorRegistry(indicators, pillar_weights, source_kinds)


def resolved(
    indicator: Indicator,
    value: Optional[float],
    tier: SourceTier = SourceTier.PRIMARY,
    fetched_at: Optional[datetime] = None,
    as_of: Optional[datetime] = None,
    sub_score: Optional[float] = None,
) -> ResolvedIndicator:
    """Hand-built resolution of one indicator."""
    fetched_at = fetched_at or datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
    if value is None:
        return ResolvedIndicator(
            indicator_id=indicator.id,
            pillar=indicator.pillar,
            raw_value=None,
            resolved_tier=SourceTier.UNAVAILABLE,
            fetched_at=fetched_at,
            sub_score=None,
            baseline_value=indicator.baseline_value,
        )
    return ResolvedIndicator(
        indicator_id=indicator.id,
        pillar=indicator.pillar,
        raw_value=value,
        resolved_tier=tier,
        fetched_at=fetched_at,
        sub_score=indicator.thresholds.score(value) if sub_score is None else sub_score,
        as_of=as_of,
        source="api_a",
        baseline_value=indicator.baseline_value,
    )


def make_snapshot(
    value: float = 50.0,
    timestamp: Optional[datetime] = None,
    missing: Sequence[str] = (),
):
    """Computed snapshot over a three-pillar registry."""
    timestamp = timestamp or datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
    indicators = [
        make_indicator("val", Pillar.VALUATION, 1.0, baseline=20.0),
        make_indicator("tech", Pillar.TECHNICAL, 1.0, baseline=20.0),
        make_indicator("macro", Pillar.MACRO, 1.0, baseline=20.0),
    ]
    registry = make_registry(
        indicators,
        {Pillar.VALUATION: 0.5, Pillar.TECHNICAL: 0.3, Pillar.MACRO: 0.2},
    )
    engine = CCPIEngine(SourceCatalog(), registry, CCPIConfig())
    items = [
        resolved(i, None if i.id in missing else value, fetched_at=timestamp)
        for i in indicators
    ]
    return engine.compute(items, timestamp=timestamp, duration_ms=12.0)
