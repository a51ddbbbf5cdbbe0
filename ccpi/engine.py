"""
CCPI Engine - Main Orchestrator.

============================================================
PURPOSE
============================================================
One aggregation run:
1. Resolve all indicators concurrently (one task each)
2. Enforce the run deadline (pending -> UNAVAILABLE)
3. Join results by indicator id
4. Pillar scores -> composite
5. Confidence and canaries from the same snapshot
6. Package an immutable CCPISnapshot

============================================================
DESIGN PRINCIPLES
============================================================
- Only step 1 does I/O; steps 3-6 are a pure function of the
  resolved snapshot (see compute())
- Partial results beat no results: a run always completes
- Runs are independent; nothing is shared between them

============================================================
USAGE
============================================================
    from ccpi import CCPIEngine, load_default_registry
    from indicator_sources import build_default_catalog

    catalog = build_default_catalog()
    engine = CCPIEngine(catalog, load_default_registry(catalog.source_kinds()))
    snapshot = await engine.run()

    print(f"CCPI: {snapshot.result.ccpi_score:.1f} ({snapshot.result.risk_band.value})")
    print(f"Confidence: {snapshot.result.confidence:.0f}")

============================================================
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence, Tuple

from indicator_sources.catalog import SourceCatalog, build_default_catalog

from .aggregator import CompositeScorer, PillarAggregator
from .canaries import CanaryDetector
from .confidence import ConfidenceCalculator
from .config import CCPIConfig, get_config
from .registry import IndicatorRegistry, load_default_registry
from .regime import determine_regime
from .resolver import FallbackResolver, unavailable_indicator
from .types import CCPISnapshot, CompositeResult, ResolvedIndicator


logger = logging.getLogger(__name__)


class CCPIEngine:
    """
    Runs aggregation cycles over a registry and a source catalog.
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

        self._aggregator = PillarAggregator(registry)
        self._scorer = CompositeScorer(self._config)
        self._confidence = ConfidenceCalculator(registry, self._config)
        self._canaries = CanaryDetector(registry, self._config)

    @property
    def registry(self) -> IndicatorRegistry:
        return self._registry

    @property
    def catalog(self) -> SourceCatalog:
        return self._catalog

    @property
    def config(self) -> CCPIConfig:
        return self._config

    async def run(self) -> CCPISnapshot:
        """Resolve every indicator and compute the snapshot."""
        start_time = time.monotonic()
        logger.info(f"CCPI run started ({len(self._registry)} indicators)")

        resolved, timed_out = await self.resolve_all()

        duration_ms = (time.monotonic() - start_time) * 1000
        snapshot = self.compute(
            resolved,
            timestamp=datetime.now(timezone.utc),
            run_timed_out=timed_out,
            duration_ms=duration_ms,
        )

        result = snapshot.result
        logger.info(
            f"CCPI run finished in {duration_ms:.0f}ms: score={result.ccpi_score:.1f} "
            f"({result.risk_band.value}), confidence={result.confidence:.1f}, "
            f"canaries={result.canary_count} ({result.alert_level.value})"
            + (", TIMED OUT" if timed_out else "")
        )
        return snapshot

    async def resolve_all(self) -> Tuple[Tuple[ResolvedIndicator, ...], bool]:
        """
        Resolve all indicators concurrently under the run deadline.

        Returns:
            (resolved indicators in registry order, whether the deadline hit)
        """
        resolver = FallbackResolver(self._catalog, self._registry, self._config)
        tasks = {
            asyncio.create_task(resolver.resolve(indicator), name=f"ccpi:{indicator.id}"): indicator
            for indicator in self._registry
        }

        deadline = self._config.timeouts.run_deadline_seconds
        done, pending = await asyncio.wait(tasks.keys(), timeout=deadline)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                f"Run deadline of {deadline:.0f}s hit, forcing {len(pending)} indicator(s) "
                f"to unavailable: {sorted(tasks[t].id for t in pending)}"
            )

        now = datetime.now(timezone.utc)
        results: Dict[str, ResolvedIndicator] = {}
        for task, indicator in tasks.items():
            if task in pending or task.cancelled():
                results[indicator.id] = unavailable_indicator(indicator, now)
                continue
            error = task.exception()
            if error is not None:
                logger.error(f"[{indicator.id}] Resolution crashed: {error}")
                results[indicator.id] = unavailable_indicator(indicator, now)
            else:
                results[indicator.id] = task.result()

        ordered = tuple(results[indicator.id] for indicator in self._registry)
        return ordered, bool(pending)

    def compute(
        self,
        resolved: Sequence[ResolvedIndicator],
        timestamp: Optional[datetime] = None,
        run_timed_out: bool = False,
        duration_ms: float = 0.0,
    ) -> CCPISnapshot:
        """
        Pure scoring of a resolved snapshot.

        Calling it twice on the same input gives identical output.
        """
        timestamp = timestamp or datetime.now(timezone.utc)

        # --------------------------------------------------
        # Step 1: Pillar scores (excluded pillars dropped)
        # --------------------------------------------------
        pillars, excluded = self._aggregator.aggregate_all(resolved)

        # --------------------------------------------------
        # Step 2: Composite
        # --------------------------------------------------
        ccpi_score = self._scorer.score(pillars)

        # --------------------------------------------------
        # Step 3: Confidence
        # --------------------------------------------------
        breakdown = self._confidence.confidence(resolved, pillars, as_of=timestamp)

        # --------------------------------------------------
        # Step 4: Canaries
        # --------------------------------------------------
        canaries = self._canaries.detect(resolved)

        # --------------------------------------------------
        # Step 5: Build output (regime follows the composite)
        # --------------------------------------------------
        result = CompositeResult(
            ccpi_score=ccpi_score,
            confidence=breakdown.score,
            canary_count=canaries.count,
            canary_severity_breakdown=canaries.severity_breakdown,
            alert_level=canaries.alert_level,
            timestamp=timestamp,
            risk_band=self._scorer.band(ccpi_score),
            confidence_breakdown=breakdown,
            excluded_pillars=excluded,
            run_timed_out=run_timed_out,
        )

        return CCPISnapshot(
            result=result,
            pillars=pillars,
            indicators=tuple(resolved),
            canaries=canaries,
            regime=determine_regime(ccpi_score),
            duration_ms=duration_ms,
        )


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


async def run_ccpi(config: Optional[CCPIConfig] = None) -> CCPISnapshot:
    """
    One-shot run with the default catalog and registry.

    Sessions are closed before returning.
    """
    async with build_default_catalog() as catalog:
        registry = load_default_registry(catalog.source_kinds())
        engine = CCPIEngine(catalog, registry, config)
        return await engine.run()
