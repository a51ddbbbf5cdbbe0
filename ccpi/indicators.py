"""
CCPI Engine - Default Indicator Definitions.

============================================================
PURPOSE
============================================================
The 23 indicators, their pillar weights, scoring curves, canary
triggers and adapter chains. Data only; validated by the registry.

============================================================
ADAPTER CHAINS
============================================================
Market APIs come first (primary, secondary, tertiary by position),
then the generative-AI chain: openai -> anthropic -> groq -> xai.
Indicators no free market API publishes go straight to the AI chain.
Baselines are long-run reference values, shown only when every
tier fails.

============================================================
"""

from datetime import timedelta
from typing import Dict, Tuple

from indicator_sources.models import PlausibleRange, SourceBinding

from .types import (
    CanaryDirection,
    CanaryTrigger,
    Indicator,
    Pillar,
    ScoreThresholds,
    Severity,
)


# ============================================================
# PILLAR WEIGHTS
# ============================================================


PILLAR_WEIGHTS: Dict[Pillar, float] = {
    Pillar.VALUATION: 0.22,
    Pillar.TECHNICAL: 0.20,
    Pillar.MACRO: 0.18,
    Pillar.SENTIMENT: 0.18,
    Pillar.FLOWS: 0.12,
    Pillar.STRUCTURAL: 0.10,
}


# ============================================================
# CHAIN HELPERS
# ============================================================


AI_SOURCES = ("openai", "anthropic", "groq", "xai")

DAILY = timedelta(days=4)       # Covers weekends and holidays
WEEKLY = timedelta(days=8)
MONTHLY = timedelta(days=45)
QUARTERLY = timedelta(days=100)


def _api(source: str, **query) -> SourceBinding:
    return SourceBinding(source=source, query=query)


def _ai(prompt: str, requirement: str = "Current value") -> Tuple[SourceBinding, ...]:
    return tuple(
        SourceBinding(source=name, query={"prompt": prompt, "requirement": requirement})
        for name in AI_SOURCES
    )


def _above(threshold: float, severity: Severity, signal: str) -> CanaryTrigger:
    return CanaryTrigger(threshold, CanaryDirection.ABOVE, severity, signal)


def _below(threshold: float, severity: Severity, signal: str) -> CanaryTrigger:
    return CanaryTrigger(threshold, CanaryDirection.BELOW, severity, signal)


# ============================================================
# VALUATION
# ============================================================


_VALUATION = (
    Indicator(
        id="buffett_indicator",
        name="Buffett Indicator (Market Cap / GDP)",
        pillar=Pillar.VALUATION,
        weight_in_pillar=0.40,
        thresholds=ScoreThresholds.of((80, 0), (120, 25), (160, 60), (200, 100)),
        adapter_chain=_ai(
            "Buffett Indicator (US total stock market capitalization / GDP, percent)",
            "Percent, e.g. 185 for 185%",
        ),
        plausible_range=PlausibleRange(20, 400),
        baseline_value=180.0,
        canary=_above(160, Severity.HIGH, "Market cap above 160% of GDP: historically extreme valuation"),
        refresh_window=QUARTERLY,
        unit="%",
    ),
    Indicator(
        id="spx_forward_pe",
        name="S&P 500 Forward P/E Ratio",
        pillar=Pillar.VALUATION,
        weight_in_pillar=0.35,
        thresholds=ScoreThresholds.of((16, 0), (18, 20), (25, 70), (30, 100)),
        adapter_chain=(_api("fmp", symbol="SPY", field="pe"),) + _ai("S&P 500 forward 12-month P/E ratio"),
        plausible_range=PlausibleRange(5, 100),
        baseline_value=22.5,
        canary=_above(25, Severity.HIGH, "S&P 500 P/E at or above 25x: stretched multiples"),
        refresh_window=DAILY,
        unit="x",
    ),
    Indicator(
        id="spx_price_to_sales",
        name="S&P 500 Price-to-Sales Ratio",
        pillar=Pillar.VALUATION,
        weight_in_pillar=0.25,
        thresholds=ScoreThresholds.of((2.0, 0), (2.5, 30), (3.0, 60), (3.5, 100)),
        adapter_chain=_ai("S&P 500 price-to-sales ratio"),
        plausible_range=PlausibleRange(0.3, 10),
        baseline_value=2.8,
        canary=_above(3.0, Severity.MEDIUM, "Price-to-sales at or above 3.0x: revenue multiples near records"),
        refresh_window=MONTHLY,
        unit="x",
    ),
)


# ============================================================
# TECHNICAL
# ============================================================


_TECHNICAL = (
    Indicator(
        id="vix",
        name="VIX (Volatility Index)",
        pillar=Pillar.TECHNICAL,
        weight_in_pillar=0.25,
        # Very low VIX is complacency, very high is stress
        thresholds=ScoreThresholds.of((11, 35), (14, 15), (17, 20), (20, 40), (25, 65), (35, 100)),
        adapter_chain=(
            _api("fred", series_id="VIXCLS"),
            _api("fmp", symbol="^VIX"),
        ) + _ai("CBOE VIX volatility index close"),
        plausible_range=PlausibleRange(5, 150),
        baseline_value=18.0,
        canary=_above(30, Severity.HIGH, "VIX at or above 30: volatility regime shift"),
        refresh_window=DAILY,
    ),
    Indicator(
        id="vxn",
        name="VXN (Nasdaq Volatility)",
        pillar=Pillar.TECHNICAL,
        weight_in_pillar=0.12,
        thresholds=ScoreThresholds.of((12, 30), (15, 15), (20, 35), (28, 65), (40, 100)),
        adapter_chain=(
            _api("fred", series_id="VXNCLS"),
            _api("fmp", symbol="^VXN"),
        ) + _ai("CBOE Nasdaq-100 volatility index (VXN) close"),
        plausible_range=PlausibleRange(5, 150),
        baseline_value=19.5,
        canary=_above(32, Severity.MEDIUM, "VXN at or above 32: tech volatility spike"),
        refresh_window=DAILY,
    ),
    Indicator(
        id="high_low_index",
        name="High-Low Index (Market Breadth)",
        pillar=Pillar.TECHNICAL,
        weight_in_pillar=0.25,
        thresholds=ScoreThresholds.of((0.2, 100), (0.3, 80), (0.4, 55), (0.5, 35), (0.7, 0)),
        adapter_chain=_ai(
            "NYSE High-Low Index (new highs / (new highs + new lows)) as a ratio between 0 and 1",
        ),
        plausible_range=PlausibleRange(0, 1),
        baseline_value=0.42,
        canary=_below(0.3, Severity.HIGH, "High-Low Index at or below 0.30: breadth deterioration"),
        refresh_window=DAILY,
    ),
    Indicator(
        id="bullish_percent",
        name="Bullish Percent Index",
        pillar=Pillar.TECHNICAL,
        weight_in_pillar=0.15,
        thresholds=ScoreThresholds.of((20, 50), (30, 30), (50, 0), (60, 30), (70, 60), (80, 100)),
        adapter_chain=_ai("NYSE Bullish Percent Index", "Percent between 0 and 100"),
        plausible_range=PlausibleRange(0, 100),
        baseline_value=58.0,
        canary=_above(70, Severity.MEDIUM, "Bullish Percent at or above 70: overbought breadth"),
        refresh_window=DAILY,
        unit="%",
    ),
    Indicator(
        id="atr",
        name="ATR (Average True Range)",
        pillar=Pillar.TECHNICAL,
        weight_in_pillar=0.13,
        thresholds=ScoreThresholds.of((25, 0), (35, 25), (40, 50), (50, 80), (60, 100)),
        adapter_chain=(
            # SPY ATR scaled to S&P 500 index points
            _api("alpha_vantage", function="ATR", symbol="SPY", interval="daily", time_period=14, scale=10.0),
        ) + _ai("S&P 500 14-day Average True Range in index points"),
        plausible_range=PlausibleRange(1, 500),
        baseline_value=42.3,
        canary=_above(50, Severity.MEDIUM, "ATR at or above 50 points: daily ranges expanding"),
        refresh_window=DAILY,
        unit="pts",
    ),
    Indicator(
        id="left_tail_volatility",
        name="Left Tail Volatility (Crash Probability)",
        pillar=Pillar.TECHNICAL,
        weight_in_pillar=0.10,
        thresholds=ScoreThresholds.of((0.06, 0), (0.08, 20), (0.10, 45), (0.15, 80), (0.20, 100)),
        adapter_chain=_ai(
            "Options-implied probability of a large S&P 500 drawdown (left tail), as a fraction between 0 and 1",
        ),
        plausible_range=PlausibleRange(0, 1),
        baseline_value=0.12,
        canary=_above(0.15, Severity.HIGH, "Left-tail probability at or above 15%: crash hedging demand"),
        refresh_window=DAILY,
    ),
)


# ============================================================
# MACRO
# ============================================================


_MACRO = (
    Indicator(
        id="fed_funds_rate",
        name="Fed Funds Rate",
        pillar=Pillar.MACRO,
        weight_in_pillar=0.40,
        thresholds=ScoreThresholds.of((2, 0), (4, 45), (4.5, 60), (5, 75), (5.5, 100)),
        adapter_chain=(
            _api("fred", series_id="DFF"),
            _api("fred", series_id="FEDFUNDS"),
        ) + _ai("Effective federal funds rate", "Percent, e.g. 4.33"),
        plausible_range=PlausibleRange(0, 25),
        baseline_value=4.5,
        canary=_above(5.0, Severity.MEDIUM, "Fed funds at or above 5%: restrictive policy"),
        refresh_window=DAILY,
        unit="%",
    ),
    Indicator(
        id="junk_bond_spread",
        name="Junk Bond Spread (High-Yield Credit)",
        pillar=Pillar.MACRO,
        weight_in_pillar=0.35,
        thresholds=ScoreThresholds.of((3, 0), (4, 30), (5, 50), (6, 70), (8, 100)),
        adapter_chain=(_api("fred", series_id="BAMLH0A0HYM2"),) + _ai(
            "ICE BofA US High Yield option-adjusted spread", "Percentage points",
        ),
        plausible_range=PlausibleRange(0, 30),
        baseline_value=3.8,
        canary=_above(5.0, Severity.HIGH, "High-yield spread at or above 5%: credit stress"),
        refresh_window=DAILY,
        unit="%",
    ),
    Indicator(
        id="yield_curve_10y2y",
        name="Yield Curve (10Y-2Y Spread)",
        pillar=Pillar.MACRO,
        weight_in_pillar=0.25,
        thresholds=ScoreThresholds.of((-1, 100), (-0.5, 85), (-0.2, 60), (0, 40), (0.5, 15), (1, 0)),
        adapter_chain=(_api("fred", series_id="T10Y2Y"),) + _ai(
            "US Treasury 10-year minus 2-year yield spread", "Percentage points, negative when inverted",
        ),
        plausible_range=PlausibleRange(-5, 5),
        baseline_value=0.15,
        canary=_below(0, Severity.HIGH, "Yield curve at or below zero: inversion"),
        refresh_window=DAILY,
        unit="%",
    ),
)


# ============================================================
# SENTIMENT
# ============================================================


_SENTIMENT = (
    Indicator(
        id="aaii_bullish",
        name="AAII Bullish Sentiment",
        pillar=Pillar.SENTIMENT,
        weight_in_pillar=0.22,
        thresholds=ScoreThresholds.of((20, 70), (25, 50), (35, 0), (45, 30), (50, 55), (60, 100)),
        adapter_chain=_ai("AAII Investor Sentiment Survey bullish percentage (latest week)", "Percent"),
        plausible_range=PlausibleRange(0, 100),
        baseline_value=42.0,
        canary=_above(50, Severity.MEDIUM, "AAII bulls at or above 50%: retail euphoria"),
        refresh_window=WEEKLY,
        unit="%",
    ),
    Indicator(
        id="aaii_bearish",
        name="AAII Bearish Sentiment",
        pillar=Pillar.SENTIMENT,
        weight_in_pillar=0.20,
        thresholds=ScoreThresholds.of((15, 100), (20, 80), (25, 55), (30, 30), (35, 0), (50, 40)),
        adapter_chain=_ai("AAII Investor Sentiment Survey bearish percentage (latest week)", "Percent"),
        plausible_range=PlausibleRange(0, 100),
        baseline_value=28.0,
        canary=_below(20, Severity.MEDIUM, "AAII bears at or below 20%: no one left to sell"),
        refresh_window=WEEKLY,
        unit="%",
    ),
    Indicator(
        id="put_call_ratio",
        name="Put/Call Ratio",
        pillar=Pillar.SENTIMENT,
        weight_in_pillar=0.20,
        thresholds=ScoreThresholds.of(
            (0.5, 100), (0.6, 80), (0.7, 55), (0.8, 30), (0.95, 0), (1.2, 60), (1.5, 90),
        ),
        adapter_chain=_ai("CBOE total equity put/call ratio"),
        plausible_range=PlausibleRange(0.1, 5),
        baseline_value=0.72,
        canary=_below(0.7, Severity.MEDIUM, "Put/call at or below 0.70: complacent hedging"),
        refresh_window=DAILY,
    ),
    Indicator(
        id="fear_greed",
        name="Crypto Fear & Greed Index",
        pillar=Pillar.SENTIMENT,
        weight_in_pillar=0.20,
        thresholds=ScoreThresholds.of((10, 70), (25, 50), (45, 0), (55, 0), (65, 40), (75, 70), (90, 100)),
        adapter_chain=(_api("alternative_me"),) + _ai(
            "Alternative.me Crypto Fear & Greed Index (latest daily value)", "0-100",
        ),
        plausible_range=PlausibleRange(0, 100),
        baseline_value=58.0,
        canary=_above(75, Severity.MEDIUM, "Fear & Greed at or above 75: extreme greed"),
        refresh_window=DAILY,
    ),
    Indicator(
        id="risk_appetite",
        name="Risk Appetite Index",
        pillar=Pillar.SENTIMENT,
        weight_in_pillar=0.18,
        thresholds=ScoreThresholds.of((-60, 70), (-30, 50), (0, 10), (20, 0), (40, 40), (60, 75), (80, 100)),
        adapter_chain=_ai("Global risk appetite index", "Scale from -100 (risk-off) to +100 (risk-on)"),
        plausible_range=PlausibleRange(-100, 100),
        baseline_value=35.0,
        canary=_above(60, Severity.LOW, "Risk appetite at or above 60: speculative excess"),
        refresh_window=WEEKLY,
    ),
)


# ============================================================
# FLOWS
# ============================================================


_FLOWS = (
    Indicator(
        id="tech_etf_flows",
        name="Tech ETF Flows (Weekly)",
        pillar=Pillar.FLOWS,
        weight_in_pillar=0.50,
        thresholds=ScoreThresholds.of((-5, 100), (-3, 70), (-2, 50), (-1, 35), (0, 15), (2, 0), (5, 0)),
        adapter_chain=_ai("Net weekly flows into US technology ETFs", "Billions of USD, negative for outflows"),
        plausible_range=PlausibleRange(-100, 100),
        baseline_value=-1.8,
        canary=_below(-2, Severity.MEDIUM, "Tech ETF outflows of $2B or more in a week"),
        refresh_window=WEEKLY,
        unit="$B",
    ),
    Indicator(
        id="short_interest",
        name="Short Interest (% of Float)",
        pillar=Pillar.FLOWS,
        weight_in_pillar=0.50,
        # Very low short interest removes the squeeze cushion
        thresholds=ScoreThresholds.of((8, 100), (12, 65), (15, 45), (18, 20), (20, 0), (25, 35), (30, 60)),
        adapter_chain=_ai("S&P 500 aggregate short interest as percent of float", "Percent"),
        plausible_range=PlausibleRange(0, 100),
        baseline_value=16.5,
        canary=_below(12, Severity.LOW, "Short interest at or below 12%: little bearish positioning"),
        refresh_window=timedelta(days=20),
        unit="%",
    ),
)


# ============================================================
# STRUCTURAL
# ============================================================


_STRUCTURAL = (
    Indicator(
        id="ai_capex_growth",
        name="AI CapEx Growth (YoY)",
        pillar=Pillar.STRUCTURAL,
        weight_in_pillar=0.35,
        thresholds=ScoreThresholds.of((10, 0), (20, 25), (30, 50), (40, 70), (60, 100)),
        adapter_chain=_ai("Year-over-year growth of hyperscaler AI capital expenditure", "Percent"),
        plausible_range=PlausibleRange(-100, 500),
        baseline_value=40.0,
        canary=_above(40, Severity.LOW, "AI capex growth at or above 40%: overbuild risk"),
        refresh_window=QUARTERLY,
        unit="%",
    ),
    Indicator(
        id="ai_revenue_growth",
        name="AI Revenue Growth (YoY)",
        pillar=Pillar.STRUCTURAL,
        weight_in_pillar=0.25,
        thresholds=ScoreThresholds.of((5, 100), (10, 65), (15, 40), (25, 15), (30, 0)),
        adapter_chain=_ai("Year-over-year growth of AI-related revenue at major US tech companies", "Percent"),
        plausible_range=PlausibleRange(-100, 500),
        baseline_value=15.0,
        canary=_below(10, Severity.MEDIUM, "AI revenue growth at or below 10%: monetization lagging spend"),
        refresh_window=QUARTERLY,
        unit="%",
    ),
    Indicator(
        id="gpu_pricing_premium",
        name="GPU Pricing Premium",
        pillar=Pillar.STRUCTURAL,
        weight_in_pillar=0.20,
        thresholds=ScoreThresholds.of((0, 0), (10, 25), (20, 45), (30, 65), (50, 100)),
        adapter_chain=_ai("Premium of data-center GPU street prices over list price", "Percent"),
        plausible_range=PlausibleRange(-100, 1000),
        baseline_value=20.0,
        canary=_above(50, Severity.LOW, "GPU premium at or above 50%: supply squeeze"),
        refresh_window=MONTHLY,
        unit="%",
    ),
    Indicator(
        id="ai_job_postings_growth",
        name="AI Job Postings Growth",
        pillar=Pillar.STRUCTURAL,
        weight_in_pillar=0.20,
        thresholds=ScoreThresholds.of((-15, 100), (-10, 70), (-5, 45), (0, 25), (10, 0)),
        adapter_chain=_ai("Year-over-year growth of AI job postings in the US", "Percent"),
        plausible_range=PlausibleRange(-100, 500),
        baseline_value=-5.0,
        canary=_below(-10, Severity.LOW, "AI job postings down 10% or more: hiring freeze"),
        refresh_window=MONTHLY,
        unit="%",
    ),
)


DEFAULT_INDICATORS: Tuple[Indicator, ...] = (
    _VALUATION + _TECHNICAL + _MACRO + _SENTIMENT + _FLOWS + _STRUCTURAL
)
