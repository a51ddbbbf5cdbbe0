"""
CCPI Engine - Canary Detector.

============================================================
PURPOSE
============================================================
Scans every resolved indicator against its own trigger and
counts active canaries by severity.

- Boundary is inclusive (value == threshold triggers)
- Unavailable indicators cannot trigger (baseline never counts)
- Alert level is a step function of the count (configurable)
- Signals are ordered by severity, then impact
  (impact = indicator weight x pillar weight x 100)

============================================================
"""

import logging
from typing import Dict, List, Optional, Sequence

from .config import CCPIConfig, get_config
from .registry import IndicatorRegistry
from .types import CanaryReport, CanarySignal, ResolvedIndicator, Severity


logger = logging.getLogger(__name__)


class CanaryDetector:
    """Evaluates canary triggers."""

    def __init__(
        self,
        registry: IndicatorRegistry,
        config: Optional[CCPIConfig] = None,
    ) -> None:
        self._registry = registry
        self._config = config or get_config()

    def impact(self, indicator_id: str) -> float:
        """Share of the composite an indicator controls, in points."""
        indicator = self._registry.get(indicator_id)
        if indicator is None:
            return 0.0
        return round(
            indicator.weight_in_pillar * self._registry.pillar_weight(indicator.pillar) * 100,
            2,
        )

    def detect(self, resolved: Sequence[ResolvedIndicator]) -> CanaryReport:
        """Detect active canaries."""
        by_id: Dict[str, ResolvedIndicator] = {r.indicator_id: r for r in resolved}
        signals: List[CanarySignal] = []

        for indicator in self._registry:
            trigger = indicator.canary
            item = by_id.get(indicator.id)
            if trigger is None or item is None or not item.has_value:
                continue
            if not trigger.is_triggered(item.raw_value):
                continue

            signals.append(CanarySignal(
                indicator_id=indicator.id,
                indicator_name=indicator.name,
                pillar=indicator.pillar,
                severity=trigger.severity,
                value=item.raw_value,
                threshold=trigger.threshold,
                direction=trigger.direction,
                signal=trigger.signal,
                impact=self.impact(indicator.id),
            ))

        signals.sort(key=lambda s: (s.severity.rank, -s.impact, s.indicator_id))

        counts = {severity: 0 for severity in Severity}
        for signal in signals:
            counts[signal.severity] += 1

        count = len(signals)
        alert_level = self._config.alert_levels.get_level(count)
        if count:
            logger.info(
                f"Canaries active: {count} "
                f"(high={counts[Severity.HIGH]}, medium={counts[Severity.MEDIUM]}, "
                f"low={counts[Severity.LOW]}) -> {alert_level.value}"
            )

        return CanaryReport(
            count=count,
            high=counts[Severity.HIGH],
            medium=counts[Severity.MEDIUM],
            low=counts[Severity.LOW],
            alert_level=alert_level,
            signals=tuple(signals),
        )
