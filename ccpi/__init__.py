"""
CCPI Engine Package.

============================================================
PURPOSE
============================================================
Composite market-risk indicator (Crash & Correction Prediction
Index): 23 indicators in 6 weighted pillars, resolved through
ordered fallback chains, scored into one 0-100 composite with a
confidence score and canary early-warning signals.

============================================================
COMPONENTS
============================================================
- IndicatorRegistry    - validated indicator definitions
- FallbackResolver     - ordered adapter chain per indicator
- PillarAggregator     - weighted pillar scores
- CompositeScorer      - pillar-weighted composite
- ConfidenceCalculator - freshness / tier health / consistency
- CanaryDetector       - early-warning triggers
- determine_regime     - regime and positioning playbook
- CCPIEngine           - one aggregation run

============================================================
"""

from .aggregator import CompositeScorer, PillarAggregator
from .canaries import CanaryDetector
from .confidence import ConfidenceCalculator
from .config import (
    AlertLevelSteps,
    CCPIConfig,
    ConfidenceWeights,
    TierWeights,
    TimeoutConfig,
    get_config,
    set_config,
)
from .engine import CCPIEngine, run_ccpi
from .exceptions import CCPIError, ConfigurationError, RegistryConfigurationError
from .indicators import DEFAULT_INDICATORS, PILLAR_WEIGHTS
from .regime import PLAYBOOKS, REGIMES, determine_regime, get_regime
from .registry import IndicatorRegistry, load_default_registry, validate_registry
from .resolver import FallbackResolver
from .summary import RunSummary, summarize
from .types import (
    AlertLevel,
    Allocation,
    Breakpoint,
    CanaryDirection,
    CanaryReport,
    CanarySignal,
    CanaryTrigger,
    CCPISnapshot,
    CompositeResult,
    ConfidenceBreakdown,
    Indicator,
    Pillar,
    PillarScore,
    Playbook,
    Regime,
    ResolvedIndicator,
    RiskBand,
    ScoreThresholds,
    Severity,
    TierAttempt,
)


__version__ = "1.0.0"

__all__ = [
    # Engine
    "CCPIEngine",
    "run_ccpi",

    # Components
    "IndicatorRegistry",
    "load_default_registry",
    "validate_registry",
    "FallbackResolver",
    "PillarAggregator",
    "CompositeScorer",
    "ConfidenceCalculator",
    "CanaryDetector",
    "RunSummary",
    "summarize",
    "determine_regime",
    "get_regime",

    # Data
    "DEFAULT_INDICATORS",
    "PILLAR_WEIGHTS",
    "PLAYBOOKS",
    "REGIMES",

    # Config
    "CCPIConfig",
    "ConfidenceWeights",
    "TierWeights",
    "AlertLevelSteps",
    "TimeoutConfig",
    "get_config",
    "set_config",

    # Types
    "AlertLevel",
    "Allocation",
    "Breakpoint",
    "CanaryDirection",
    "CanaryReport",
    "CanarySignal",
    "CanaryTrigger",
    "CCPISnapshot",
    "CompositeResult",
    "ConfidenceBreakdown",
    "Indicator",
    "Pillar",
    "PillarScore",
    "Playbook",
    "Regime",
    "ResolvedIndicator",
    "RiskBand",
    "ScoreThresholds",
    "Severity",
    "TierAttempt",

    # Exceptions
    "CCPIError",
    "ConfigurationError",
    "RegistryConfigurationError",
]
