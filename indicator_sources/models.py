"""
Indicator Source Models - Request/result structures shared by all adapters.

Provides strict typing for the adapter contract so that no downstream
module depends on provider-specific payloads.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class SourceKind(Enum):
    """What kind of upstream an adapter talks to."""
    MARKET_API = "market_api"
    GENERATIVE_AI = "generative_ai"


class SourceTier(Enum):
    """Position that satisfied an indicator in its fallback chain."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"
    AI_ESTIMATE = "aiEstimate"
    BASELINE = "baseline"
    UNAVAILABLE = "unavailable"

    @property
    def is_live(self) -> bool:
        """Resolved by a market API (not AI, baseline or nothing)."""
        return self in LIVE_TIERS


LIVE_TIERS = (SourceTier.PRIMARY, SourceTier.SECONDARY, SourceTier.TERTIARY)

# Market API bindings take these tiers by position in the chain
API_TIER_ORDER = LIVE_TIERS


class FetchErrorKind(Enum):
    """Typed failure modes of a single adapter call."""
    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    MALFORMED_RESPONSE = "malformed_response"
    RATE_LIMITED = "rate_limited"
    TRANSPORT = "transport"
    NOT_OFFERED = "not_offered"


@dataclass(frozen=True)
class PlausibleRange:
    """Inclusive range of values an adapter is allowed to return."""
    low: float
    high: float

    def __post_init__(self) -> None:
        if not self.low < self.high:
            raise ValueError(f"Plausible range low ({self.low}) must be < high ({self.high})")

    def contains(self, value: float) -> bool:
        """Check a candidate value (NaN and infinities never pass)."""
        if value is None or not math.isfinite(value):
            return False
        return self.low <= value <= self.high

    def to_dict(self) -> dict[str, float]:
        return {"low": self.low, "high": self.high}


@dataclass(frozen=True)
class SourceBinding:
    """
    Reference from an indicator to one adapter.

    `query` holds the provider-specific parameters (series id, ticker,
    prompt text...). `timeout_seconds` overrides the per-kind default.
    """
    source: str
    query: dict[str, Any] = field(default_factory=dict, hash=False)
    timeout_seconds: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "query": dict(self.query),
            "timeout_seconds": self.timeout_seconds,
        }


@dataclass(frozen=True)
class IndicatorRequest:
    """Request parameters for fetching one indicator value."""
    indicator_id: str
    indicator_name: str
    query: dict[str, Any]
    plausible_range: PlausibleRange

    def param(self, key: str, default: Any = None) -> Any:
        """Get a query parameter."""
        return self.query.get(key, default)


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of one adapter call: either a value or a typed error.

    Adapters never raise out of `fetch()`; callers branch on `ok`.
    """
    source_name: str
    value: Optional[float] = None
    as_of: Optional[datetime] = None
    error_kind: Optional[FetchErrorKind] = None
    error_message: Optional[str] = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error_kind is None and self.value is not None

    @classmethod
    def success(
        cls,
        source_name: str,
        value: float,
        as_of: Optional[datetime] = None,
        latency_ms: float = 0.0,
    ) -> "FetchResult":
        return cls(source_name=source_name, value=value, as_of=as_of, latency_ms=latency_ms)

    @classmethod
    def failure(
        cls,
        source_name: str,
        kind: FetchErrorKind,
        message: str,
        latency_ms: float = 0.0,
    ) -> "FetchResult":
        return cls(
            source_name=source_name,
            error_kind=kind,
            error_message=message,
            latency_ms=latency_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "value": self.value,
            "as_of": self.as_of.isoformat() if self.as_of else None,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
            "latency_ms": round(self.latency_ms, 1),
        }


@dataclass(frozen=True)
class SourceMetadata:
    """Metadata about an indicator source provider."""
    name: str
    display_name: str
    kind: SourceKind
    requires_auth: bool = False
    credential_env: Optional[str] = None
    base_url: str = ""
    documentation_url: str = ""
    max_concurrency: Optional[int] = None
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "kind": self.kind.value,
            "requires_auth": self.requires_auth,
            "credential_env": self.credential_env,
            "base_url": self.base_url,
            "documentation_url": self.documentation_url,
            "max_concurrency": self.max_concurrency,
            "tags": list(self.tags),
        }
