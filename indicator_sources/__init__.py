"""
Indicator Sources Package - Adapter layer for market indicator values.

Every external source (market-data API or generative-AI completion) sits
behind one capability: fetch(request, timeout) -> FetchResult. Adapters
never raise for provider failures; they return a typed error instead.

Features:
- Isolated, replaceable providers
- Credential availability resolved once at construction
- Plausibility range enforced on every value (never clamped)
- No dependency on the scoring layer

Quick Start:
    from indicator_sources import (
        FredIndicatorSource,
        IndicatorRequest,
        PlausibleRange,
    )

    async def main():
        async with FredIndicatorSource() as fred:
            result = await fred.fetch(
                IndicatorRequest(
                    indicator_id="vix",
                    indicator_name="VIX",
                    query={"series_id": "VIXCLS"},
                    plausible_range=PlausibleRange(5, 150),
                ),
                timeout=8.0,
            )
            if result.ok:
                print(result.value)
            else:
                print(result.error_kind, result.error_message)

Adding New Providers:
    1. Create class extending BaseIndicatorSource
    2. Implement: name, fetch_raw(), metadata()
    3. Register it in build_default_catalog()
    4. Reference its name from an indicator's adapter chain
"""

from indicator_sources.base import BaseIndicatorSource, coerce_float
from indicator_sources.catalog import SourceCatalog, build_default_catalog
from indicator_sources.exceptions import (
    ImplausibleValueError,
    MalformedResponseError,
    RateLimitError,
    SourceError,
    SourceTimeoutError,
    TransportError,
    UnauthorizedError,
)
from indicator_sources.models import (
    API_TIER_ORDER,
    LIVE_TIERS,
    FetchErrorKind,
    FetchResult,
    IndicatorRequest,
    PlausibleRange,
    SourceBinding,
    SourceKind,
    SourceMetadata,
    SourceTier,
)
from indicator_sources.providers import (
    AlphaVantageIndicatorSource,
    AlternativeMeIndicatorSource,
    AnthropicEstimateSource,
    FmpIndicatorSource,
    FredIndicatorSource,
    OpenAICompatibleEstimateSource,
    parse_numeric_completion,
)


__version__ = "1.0.0"

__all__ = [
    # Base
    "BaseIndicatorSource",
    "coerce_float",

    # Models
    "API_TIER_ORDER",
    "LIVE_TIERS",
    "FetchErrorKind",
    "FetchResult",
    "IndicatorRequest",
    "PlausibleRange",
    "SourceBinding",
    "SourceKind",
    "SourceMetadata",
    "SourceTier",

    # Exceptions
    "SourceError",
    "SourceTimeoutError",
    "UnauthorizedError",
    "MalformedResponseError",
    "ImplausibleValueError",
    "RateLimitError",
    "TransportError",

    # Providers
    "AlphaVantageIndicatorSource",
    "AlternativeMeIndicatorSource",
    "AnthropicEstimateSource",
    "FmpIndicatorSource",
    "FredIndicatorSource",
    "OpenAICompatibleEstimateSource",
    "parse_numeric_completion",

    # Catalog
    "SourceCatalog",
    "build_default_catalog",
]
