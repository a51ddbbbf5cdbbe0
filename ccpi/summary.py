"""
CCPI Engine - Run Summary.

Deterministic headline and bullet points for a snapshot. Same input,
same text.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .types import CCPISnapshot, Severity


STRESS_THRESHOLD = 60.0
TOP_PILLARS = 3


@dataclass(frozen=True)
class RunSummary:
    """Human-readable digest of one run."""

    headline: str
    bullets: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"headline": self.headline, "bullets": list(self.bullets)}


def summarize(snapshot: CCPISnapshot) -> RunSummary:
    """Build the headline and bullets of a snapshot."""
    result = snapshot.result
    score = round(result.ccpi_score)
    confidence = round(result.confidence)

    if score >= 80:
        headline = (
            f"This week, we see a {score} percent crash risk signal and we are "
            f"{confidence} percent confident in that assessment."
        )
    elif score >= 60:
        headline = (
            f"This week, we observe a {score} percent elevated correction risk and we are "
            f"{confidence} percent confident in this reading."
        )
    elif score >= 40:
        headline = (
            f"This week, the CCPI reads {score}, signaling moderate caution, "
            f"with {confidence} percent confidence."
        )
    else:
        headline = (
            f"This week, the CCPI reads {score}, indicating relatively low crash risk, "
            f"with {confidence} percent confidence."
        )

    bullets: List[str] = []
    top = sorted(snapshot.pillars, key=lambda p: (-p.score, p.pillar.value))[:TOP_PILLARS]
    for pillar in top:
        if pillar.score > STRESS_THRESHOLD:
            bullets.append(
                f"{pillar.pillar.label} stress elevated at {round(pillar.score)}/100, "
                f"indicating concerning conditions in this area."
            )
    if not bullets:
        bullets.append("Most indicators remain within normal ranges with no extreme signals.")

    high_signals = [s for s in snapshot.canaries.signals if s.severity == Severity.HIGH]
    if high_signals:
        bullets.append(
            f"{len(high_signals)} high-severity canary signal(s) active: "
            + "; ".join(s.signal for s in high_signals[:3])
            + "."
        )

    if result.excluded_pillars:
        names = ", ".join(p.label for p in result.excluded_pillars)
        bullets.append(f"No data for: {names}. Remaining pillars were reweighted.")

    if result.run_timed_out:
        bullets.append("Some sources did not answer in time; affected indicators are marked unavailable.")

    return RunSummary(headline=headline, bullets=tuple(bullets))
