"""
CCPI Engine - Fallback Resolver.

============================================================
PURPOSE
============================================================
Resolves one indicator by walking its adapter chain in order.

- Tiers are tried strictly sequentially
- The first success wins; a later tier is never preferred
- Sources that are not offered are skipped (recorded, not called)
- Exhaustion yields raw_value=None / UNAVAILABLE, with the static
  baseline attached for display only

============================================================
SHARED RATE BUDGET
============================================================
Each source gets its own semaphore, so one indicator's fallback
storm cannot starve another indicator's primary call.
A resolver (and its semaphores) belongs to a single run.

============================================================
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from indicator_sources.base import BaseIndicatorSource
from indicator_sources.catalog import SourceCatalog
from indicator_sources.models import FetchErrorKind, SourceBinding, SourceTier

from .config import CCPIConfig, get_config
from .registry import IndicatorRegistry
from .types import Indicator, ResolvedIndicator, TierAttempt


logger = logging.getLogger(__name__)


def unavailable_indicator(
    indicator: Indicator,
    fetched_at: datetime,
    attempts: Sequence[TierAttempt] = (),
) -> ResolvedIndicator:
    """Snapshot of an indicator whose chain produced nothing."""
    return ResolvedIndicator(
        indicator_id=indicator.id,
        pillar=indicator.pillar,
        raw_value=None,
        resolved_tier=SourceTier.UNAVAILABLE,
        fetched_at=fetched_at,
        sub_score=None,
        baseline_value=indicator.baseline_value,
        attempts=tuple(attempts),
    )


class FallbackResolver:
    """
    Ordered-chain resolver.

    Never raises for adapter failures: every failure becomes a
    TierAttempt and the next tier is tried.
    """

    def __init__(
        self,
        catalog: SourceCatalog,
        registry: IndicatorRegistry,
        config: Optional[CCPIConfig] = None,
    ) -> None:
        self._catalog = catalog
        self._registry = registry
        self._config = config or get_config()
        self._semaphores: Dict[str, asyncio.Semaphore] = {}

    def _semaphore(self, source: BaseIndicatorSource) -> asyncio.Semaphore:
        """Per-source concurrency budget."""
        semaphore = self._semaphores.get(source.name)
        if semaphore is None:
            limit = self._config.source_concurrency
            source_limit = source.metadata().max_concurrency
            if source_limit is not None:
                limit = min(limit, source_limit)
            semaphore = asyncio.Semaphore(limit)
            self._semaphores[source.name] = semaphore
        return semaphore

    def _timeout_for(self, binding: SourceBinding, tier: SourceTier) -> float:
        if binding.timeout_seconds is not None:
            return binding.timeout_seconds
        if tier == SourceTier.AI_ESTIMATE:
            return self._config.timeouts.ai_timeout_seconds
        return self._config.timeouts.api_timeout_seconds

    async def resolve(self, indicator: Indicator) -> ResolvedIndicator:
        """Resolve one indicator through its chain."""
        tiers = self._registry.tiers_for(indicator.id)
        attempts: List[TierAttempt] = []

        for binding, tier in zip(indicator.adapter_chain, tiers):
            source = self._catalog.get_source(binding.source)
            if source is None or not source.is_offered:
                attempts.append(TierAttempt(
                    source=binding.source,
                    tier=tier,
                    error_kind=FetchErrorKind.NOT_OFFERED,
                    error_message="source not offered",
                ))
                continue

            async with self._semaphore(source):
                result = await source.fetch(
                    indicator.request_for(binding),
                    timeout=self._timeout_for(binding, tier),
                )

            attempts.append(TierAttempt(
                source=source.name,
                tier=tier,
                value=result.value,
                error_kind=result.error_kind,
                error_message=result.error_message,
                latency_ms=result.latency_ms,
            ))

            if result.ok:
                if len(attempts) > 1:
                    logger.info(
                        f"[{indicator.id}] Resolved at {tier.value} ({source.name}) "
                        f"after {len(attempts) - 1} failed/skipped tier(s)"
                    )
                return ResolvedIndicator(
                    indicator_id=indicator.id,
                    pillar=indicator.pillar,
                    raw_value=result.value,
                    resolved_tier=tier,
                    fetched_at=datetime.now(timezone.utc),
                    sub_score=indicator.thresholds.score(result.value),
                    as_of=result.as_of,
                    source=source.name,
                    baseline_value=indicator.baseline_value,
                    attempts=tuple(attempts),
                )

            logger.debug(
                f"[{indicator.id}] {tier.value} ({source.name}) failed: "
                f"{result.error_kind.value if result.error_kind else 'no value'}"
            )

        logger.warning(
            f"[{indicator.id}] All {len(attempts)} tier(s) exhausted, "
            f"baseline {indicator.baseline_value} shown for display only"
        )
        return unavailable_indicator(indicator, datetime.now(timezone.utc), attempts)
