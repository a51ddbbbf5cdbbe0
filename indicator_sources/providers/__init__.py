"""
Providers package - Indicator source implementations.
"""

from indicator_sources.providers.ai_estimate import (
    AnthropicEstimateSource,
    OpenAICompatibleEstimateSource,
    parse_numeric_completion,
)
from indicator_sources.providers.alpha_vantage import AlphaVantageIndicatorSource
from indicator_sources.providers.alternative_me import AlternativeMeIndicatorSource
from indicator_sources.providers.fmp import FmpIndicatorSource
from indicator_sources.providers.fred import FredIndicatorSource


__all__ = [
    "AlphaVantageIndicatorSource",
    "AlternativeMeIndicatorSource",
    "AnthropicEstimateSource",
    "FmpIndicatorSource",
    "FredIndicatorSource",
    "OpenAICompatibleEstimateSource",
    "parse_numeric_completion",
]
