"""
CCPI Engine - Market Regime and Playbook.

============================================================
PURPOSE
============================================================
Maps the composite score onto one of five regimes, each with a
positioning playbook (bias, strategies, allocation bands).

============================================================
REGIMES (lower bound inclusive)
============================================================
- 80+    Crash Watch    (level 5)
- 60-80  High Alert     (level 4)
- 40-60  Elevated Risk  (level 3)
- 20-40  Normal         (level 2)
- 0-20   Low Risk       (level 1)

Regimes are interpretation only; they never alter the composite.

============================================================
"""

from typing import Dict, Tuple

from .types import Allocation, Playbook, Regime


# ============================================================
# PLAYBOOKS
# ============================================================

PLAYBOOKS: Dict[int, Playbook] = {
    1: Playbook(
        bias="Risk-On / Bullish",
        strategies=(
            "Maintain or modestly increase exposure to AI leaders and proxies",
            "Use cash-secured puts on quality AI names (30-45 DTE, 0.30 delta)",
            "Sell covered calls above resistance on existing long positions",
            "Minimal index hedges, very small allocation to tail risk protection",
        ),
        allocation=Allocation(
            equities="60-80% (focus on AI, tech, growth)",
            defensive="5-10% (value sectors)",
            cash="10-20%",
            alternatives="5-10% (optional: small gold/BTC allocation)",
        ),
    ),
    2: Playbook(
        bias="Neutral / Watchful",
        strategies=(
            "Keep core AI/tech exposure but avoid large new leverage",
            "Continue income strategies: covered calls and moderate put selling",
            "Wheel strategy on robust AI-adjacent names",
            "Initiate small diagonal call spreads to reduce cost",
            "Small amount of index puts or inverse ETF as low-cost tail hedge",
        ),
        allocation=Allocation(
            equities="50-70% (balanced across sectors)",
            defensive="10-20% (add some defensive sectors)",
            cash="15-25%",
            alternatives="5-10% (gold, BTC for diversification)",
        ),
    ),
    3: Playbook(
        bias="Defensive / Cautious",
        strategies=(
            "Trim oversized AI positions, rotate capital to value sectors and cash",
            "Buy put spreads on AI-heavy indices or key names (30-90 DTE)",
            "Use collars on large long positions (long put + short call)",
            "Increase hedge notional to 20-40% of equity exposure",
            "Reduce use of leverage and margin",
        ),
        allocation=Allocation(
            equities="40-60% (underweight AI/tech)",
            defensive="20-30% (utilities, consumer staples)",
            cash="20-30%",
            alternatives="10-15% (gold, BTC, defensive commodities)",
        ),
    ),
    4: Playbook(
        bias="Heavily Defensive / Short Bias",
        strategies=(
            "Substantially reduce net long AI exposure",
            "Large put spreads on AI names and indices",
            "Ratio put spreads, calendars, diagonals to capture volatility",
            "Strategic short calls or call spreads against extended rallies",
            "Hedge 50-100% of AI equity exposure notionally",
        ),
        allocation=Allocation(
            equities="20-40% (defensive sectors only)",
            defensive="30-40% (gold, bonds, defensive)",
            cash="30-40%",
            alternatives="10-20% (gold, BTC per risk tolerance)",
        ),
    ),
    5: Playbook(
        bias="Maximum Defense / Crisis Mode",
        strategies=(
            "Very light or no net long AI exposure",
            "Deep OTM index puts or put spreads as tail risk",
            "Positions in volatility products via options structures",
            "Short or buy puts on most overextended AI names",
            "Focus on capital preservation and liquidity",
        ),
        allocation=Allocation(
            equities="0-20% (only highest quality defensive)",
            defensive="40-50% (gold, bonds, cash equivalents)",
            cash="40-50%",
            alternatives="5-10% (optional BTC lottery ticket)",
        ),
    ),
}


# ============================================================
# REGIMES
# ============================================================

# Highest first; the first regime whose lower bound the score reaches wins
REGIMES: Tuple[Regime, ...] = (
    Regime(
        level=5,
        name="Crash Watch",
        color="red",
        description="Extreme risk across multiple pillars. Correction or crash increasingly likely.",
        min_score=80.0,
        playbook=PLAYBOOKS[5],
    ),
    Regime(
        level=4,
        name="High Alert",
        color="orange",
        description="Elevated risk signals. Multiple warning indicators flashing.",
        min_score=60.0,
        playbook=PLAYBOOKS[4],
    ),
    Regime(
        level=3,
        name="Elevated Risk",
        color="yellow",
        description="Caution warranted. Some metrics extended, defensive moves prudent.",
        min_score=40.0,
        playbook=PLAYBOOKS[3],
    ),
    Regime(
        level=2,
        name="Normal",
        color="lightgreen",
        description="Market conditions normal but watchful. No major red flags.",
        min_score=20.0,
        playbook=PLAYBOOKS[2],
    ),
    Regime(
        level=1,
        name="Low Risk",
        color="green",
        description="Healthy market conditions. Low crash probability.",
        min_score=0.0,
        playbook=PLAYBOOKS[1],
    ),
)


def determine_regime(ccpi_score: float) -> Regime:
    """Regime for a composite score in [0, 100]."""
    for regime in REGIMES:
        if ccpi_score >= regime.min_score:
            return regime
    return REGIMES[-1]


def get_regime(level: int) -> Regime:
    """Regime by level (1-5)."""
    for regime in REGIMES:
        if regime.level == level:
            return regime
    raise KeyError(f"Unknown regime level {level}")
