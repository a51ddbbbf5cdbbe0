"""
CCPI Engine - Configuration.

============================================================
CONFIGURABLE POLICY
============================================================

Everything below is tunable policy, not derived science:
- Confidence component weights
- Tier health weights
- Canary count -> alert level steps
- Per-tier timeouts and the run deadline
- Per-source concurrency budget
- Cache and history settings

Configuration can be loaded from:
- Default values
- Environment variables (CCPI_*)
- YAML config file

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from indicator_sources.models import SourceTier

from .exceptions import ConfigurationError
from .types import AlertLevel


logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", name)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", name)


# =============================================================
# CONFIDENCE WEIGHTS
# =============================================================


@dataclass
class ConfidenceWeights:
    """
    Weights of the three confidence components.

    Must sum to 1.0; other totals are normalized with a warning.
    """
    freshness: float = 0.35
    tier_health: float = 0.40
    consistency: float = 0.25

    def __post_init__(self) -> None:
        """Validate weights."""
        for name, value in self.to_dict().items():
            if value < 0:
                raise ConfigurationError(f"Confidence weight {name} must be >= 0", name)
        total = self.total()
        if total <= 0:
            raise ConfigurationError("Confidence weights must not all be zero")
        if abs(total - 1.0) > 0.001:
            logger.warning(f"Confidence weights sum to {total}, normalizing to 1.0")
            self._normalize()

    def total(self) -> float:
        """Get sum of all weights."""
        return self.freshness + self.tier_health + self.consistency

    def _normalize(self) -> None:
        """Normalize weights to sum to 1.0."""
        total = self.total()
        if total > 0:
            self.freshness /= total
            self.tier_health /= total
            self.consistency /= total

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "freshness": self.freshness,
            "tier_health": self.tier_health,
            "consistency": self.consistency,
        }


# =============================================================
# TIER WEIGHTS
# =============================================================


@dataclass
class TierWeights:
    """
    Trust weight of each resolution tier (0-1).

    Baseline and unavailable never count as data.
    """
    primary: float = 1.0
    secondary: float = 0.9
    tertiary: float = 0.8
    ai_estimate: float = 0.4

    def __post_init__(self) -> None:
        """Validate weights are within 0-1."""
        for name, value in self.to_dict().items():
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"Tier weight {name} must be 0-1", name)

    def get_weight(self, tier: SourceTier) -> float:
        """Get weight for a specific tier."""
        return {
            SourceTier.PRIMARY: self.primary,
            SourceTier.SECONDARY: self.secondary,
            SourceTier.TERTIARY: self.tertiary,
            SourceTier.AI_ESTIMATE: self.ai_estimate,
        }.get(tier, 0.0)

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "tertiary": self.tertiary,
            "ai_estimate": self.ai_estimate,
        }


# =============================================================
# ALERT LEVEL STEPS
# =============================================================


@dataclass
class AlertLevelSteps:
    """
    Canary count at which each alert level starts.

    - NORMAL:   count < watch_at
    - WATCH:    watch_at <= count < elevated_at
    - ELEVATED: elevated_at <= count < critical_at
    - CRITICAL: count >= critical_at
    """
    watch_at: int = 1
    elevated_at: int = 3
    critical_at: int = 6

    def __post_init__(self) -> None:
        """Validate steps are increasing."""
        if not 0 < self.watch_at < self.elevated_at < self.critical_at:
            raise ConfigurationError(
                "Alert steps must satisfy 0 < watch_at < elevated_at < critical_at"
            )

    def get_level(self, count: int) -> AlertLevel:
        """Determine alert level from active canary count."""
        if count >= self.critical_at:
            return AlertLevel.CRITICAL
        elif count >= self.elevated_at:
            return AlertLevel.ELEVATED
        elif count >= self.watch_at:
            return AlertLevel.WATCH
        else:
            return AlertLevel.NORMAL

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            "watch_at": self.watch_at,
            "elevated_at": self.elevated_at,
            "critical_at": self.critical_at,
        }


# =============================================================
# TIMEOUTS
# =============================================================


@dataclass
class TimeoutConfig:
    """
    Deadlines in seconds.

    AI adapters are inherently slower and get a longer per-tier timeout.
    The run deadline bounds a whole aggregation run.
    """
    api_timeout_seconds: float = 8.0
    ai_timeout_seconds: float = 25.0
    run_deadline_seconds: float = 60.0

    def __post_init__(self) -> None:
        """Validate timeouts are positive."""
        for name, value in self.to_dict().items():
            if value <= 0:
                raise ConfigurationError(f"{name} must be > 0", name)

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "api_timeout_seconds": self.api_timeout_seconds,
            "ai_timeout_seconds": self.ai_timeout_seconds,
            "run_deadline_seconds": self.run_deadline_seconds,
        }


# =============================================================
# MAIN CONFIGURATION
# =============================================================


@dataclass
class CCPIConfig:
    """
    Main configuration for the CCPI engine.

    Combines all sub-configurations.
    """
    confidence_weights: ConfidenceWeights = field(default_factory=ConfidenceWeights)
    tier_weights: TierWeights = field(default_factory=TierWeights)
    alert_levels: AlertLevelSteps = field(default_factory=AlertLevelSteps)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)

    # Consistency = max(0, 100 - stdev(pillar scores) * dispersion_penalty)
    dispersion_penalty: float = 2.5

    # Composite when no pillar has data
    no_data_score: float = 50.0

    # Concurrent calls allowed per source (adapter metadata may lower it)
    source_concurrency: int = 4

    # Serving
    cache_max_age_seconds: int = 300
    refresh_interval_seconds: int = 0  # 0 disables background refresh

    # History
    persist_runs: bool = True
    history_limit: int = 50

    def __post_init__(self) -> None:
        """Validate scalar settings."""
        if self.dispersion_penalty < 0:
            raise ConfigurationError("dispersion_penalty must be >= 0", "dispersion_penalty")
        if not 0.0 <= self.no_data_score <= 100.0:
            raise ConfigurationError("no_data_score must be 0-100", "no_data_score")
        if self.source_concurrency < 1:
            raise ConfigurationError("source_concurrency must be >= 1", "source_concurrency")
        if self.cache_max_age_seconds < 0:
            raise ConfigurationError("cache_max_age_seconds must be >= 0", "cache_max_age_seconds")
        if self.refresh_interval_seconds < 0:
            raise ConfigurationError(
                "refresh_interval_seconds must be >= 0", "refresh_interval_seconds"
            )
        if self.history_limit < 1:
            raise ConfigurationError("history_limit must be >= 1", "history_limit")

    @classmethod
    def from_env(cls) -> "CCPIConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - CCPI_WEIGHT_FRESHNESS
        - CCPI_WEIGHT_TIER_HEALTH
        - CCPI_WEIGHT_CONSISTENCY
        - CCPI_DISPERSION_PENALTY
        - CCPI_API_TIMEOUT
        - CCPI_AI_TIMEOUT
        - CCPI_RUN_DEADLINE
        - CCPI_SOURCE_CONCURRENCY
        - CCPI_CACHE_MAX_AGE
        - CCPI_REFRESH_INTERVAL
        - CCPI_PERSIST_RUNS

        Raises:
            ConfigurationError: If a value is malformed or out of range
        """
        defaults = cls()

        confidence_weights = ConfidenceWeights(
            freshness=_env_float("CCPI_WEIGHT_FRESHNESS", defaults.confidence_weights.freshness),
            tier_health=_env_float("CCPI_WEIGHT_TIER_HEALTH", defaults.confidence_weights.tier_health),
            consistency=_env_float("CCPI_WEIGHT_CONSISTENCY", defaults.confidence_weights.consistency),
        )
        timeouts = TimeoutConfig(
            api_timeout_seconds=_env_float("CCPI_API_TIMEOUT", defaults.timeouts.api_timeout_seconds),
            ai_timeout_seconds=_env_float("CCPI_AI_TIMEOUT", defaults.timeouts.ai_timeout_seconds),
            run_deadline_seconds=_env_float("CCPI_RUN_DEADLINE", defaults.timeouts.run_deadline_seconds),
        )

        persist_runs = defaults.persist_runs
        if os.getenv("CCPI_PERSIST_RUNS"):
            persist_runs = os.getenv("CCPI_PERSIST_RUNS").lower() in ("1", "true", "yes")

        return cls(
            confidence_weights=confidence_weights,
            timeouts=timeouts,
            dispersion_penalty=_env_float("CCPI_DISPERSION_PENALTY", defaults.dispersion_penalty),
            source_concurrency=_env_int("CCPI_SOURCE_CONCURRENCY", defaults.source_concurrency),
            cache_max_age_seconds=_env_int("CCPI_CACHE_MAX_AGE", defaults.cache_max_age_seconds),
            refresh_interval_seconds=_env_int(
                "CCPI_REFRESH_INTERVAL", defaults.refresh_interval_seconds
            ),
            persist_runs=persist_runs,
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "CCPIConfig":
        """
        Load configuration from YAML file.

        An unreadable or unparsable file falls back to defaults.

        Raises:
            ConfigurationError: If the file holds out-of-range values
        """
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load YAML config from {path}: {e}")
            return cls()

        if not isinstance(data, dict):
            raise ConfigurationError(f"YAML config {path} must be a mapping")

        kwargs: Dict[str, Any] = {}

        if 'confidence_weights' in data:
            w = data['confidence_weights']
            kwargs['confidence_weights'] = ConfidenceWeights(
                freshness=w.get('freshness', 0.35),
                tier_health=w.get('tier_health', 0.40),
                consistency=w.get('consistency', 0.25),
            )

        if 'tier_weights' in data:
            t = data['tier_weights']
            kwargs['tier_weights'] = TierWeights(
                primary=t.get('primary', 1.0),
                secondary=t.get('secondary', 0.9),
                tertiary=t.get('tertiary', 0.8),
                ai_estimate=t.get('ai_estimate', 0.4),
            )

        if 'alert_levels' in data:
            a = data['alert_levels']
            kwargs['alert_levels'] = AlertLevelSteps(
                watch_at=a.get('watch_at', 1),
                elevated_at=a.get('elevated_at', 3),
                critical_at=a.get('critical_at', 6),
            )

        if 'timeouts' in data:
            t = data['timeouts']
            kwargs['timeouts'] = TimeoutConfig(
                api_timeout_seconds=t.get('api_timeout_seconds', 8.0),
                ai_timeout_seconds=t.get('ai_timeout_seconds', 25.0),
                run_deadline_seconds=t.get('run_deadline_seconds', 60.0),
            )

        for key in (
            'dispersion_penalty',
            'no_data_score',
            'source_concurrency',
            'cache_max_age_seconds',
            'refresh_interval_seconds',
            'persist_runs',
            'history_limit',
        ):
            if key in data:
                kwargs[key] = data[key]

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "confidence_weights": self.confidence_weights.to_dict(),
            "tier_weights": self.tier_weights.to_dict(),
            "alert_levels": self.alert_levels.to_dict(),
            "timeouts": self.timeouts.to_dict(),
            "dispersion_penalty": self.dispersion_penalty,
            "no_data_score": self.no_data_score,
            "source_concurrency": self.source_concurrency,
            "cache_max_age_seconds": self.cache_max_age_seconds,
            "refresh_interval_seconds": self.refresh_interval_seconds,
            "persist_runs": self.persist_runs,
            "history_limit": self.history_limit,
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[CCPIConfig] = None


def get_config() -> CCPIConfig:
    """Get the global CCPI configuration."""
    global _default_config
    if _default_config is None:
        config_path = os.getenv("CCPI_CONFIG_FILE")
        if config_path:
            _default_config = CCPIConfig.from_yaml(Path(config_path))
        else:
            _default_config = CCPIConfig.from_env()
    return _default_config


def set_config(config: CCPIConfig) -> None:
    """Set the global CCPI configuration."""
    global _default_config
    _default_config = config
