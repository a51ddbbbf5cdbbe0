"""
Source Catalog - Named set of indicator sources.

Provides:
- Source registration and lookup by name
- Availability summary (which sources are offered)
- Shared lifecycle (close all sessions)

Ordering and fallback live with the indicator definitions, not here:
the catalog only answers "which adapter is called X".
"""

import logging
import os
from typing import Any, Optional

import aiohttp

from indicator_sources.base import BaseIndicatorSource
from indicator_sources.models import SourceKind


logger = logging.getLogger(__name__)


class SourceCatalog:
    """
    Central catalog of indicator sources.

    Usage:
        catalog = SourceCatalog()
        catalog.register(FredIndicatorSource())
        source = catalog.get_source("fred")
    """

    def __init__(self) -> None:
        self._sources: dict[str, BaseIndicatorSource] = {}

    def register(self, source: BaseIndicatorSource) -> None:
        """Register a source under its name."""
        name = source.name
        if name in self._sources:
            logger.warning(f"Source '{name}' already registered, replacing")
        self._sources[name] = source
        logger.info(
            f"Registered source '{name}' ({source.kind.value}, "
            f"{'offered' if source.is_offered else 'not offered'})"
        )

    def get_source(self, name: str) -> Optional[BaseIndicatorSource]:
        """Get a specific source by name."""
        return self._sources.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def list_sources(self) -> list[str]:
        """List all registered source names in registration order."""
        return list(self._sources)

    def source_kinds(self) -> dict[str, SourceKind]:
        """Kind of every registered source, by name."""
        return {name: source.kind for name, source in self._sources.items()}

    def get_stats(self) -> dict[str, Any]:
        """Availability summary."""
        offered = [name for name, source in self._sources.items() if source.is_offered]
        return {
            "total_sources": len(self._sources),
            "offered_sources": len(offered),
            "market_api_offered": sum(
                1 for name in offered
                if self._sources[name].kind == SourceKind.MARKET_API
            ),
            "ai_offered": sum(
                1 for name in offered
                if self._sources[name].kind == SourceKind.GENERATIVE_AI
            ),
            "sources": {name: source.status() for name, source in self._sources.items()},
        }

    async def close(self) -> None:
        """Close all resources."""
        for source in self._sources.values():
            try:
                await source.close()
            except Exception as e:
                logger.error(f"Error closing source {source.name}: {e}")
        logger.info("Source catalog closed")

    async def __aenter__(self) -> "SourceCatalog":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def build_default_catalog(
    session: Optional[aiohttp.ClientSession] = None,
) -> SourceCatalog:
    """
    Build the catalog of all known sources.

    Credentials are read from the environment here, once. A missing key
    leaves the source registered but not offered.
    """
    from indicator_sources.providers.ai_estimate import (
        AnthropicEstimateSource,
        OpenAICompatibleEstimateSource,
    )
    from indicator_sources.providers.alpha_vantage import AlphaVantageIndicatorSource
    from indicator_sources.providers.alternative_me import AlternativeMeIndicatorSource
    from indicator_sources.providers.fmp import FmpIndicatorSource
    from indicator_sources.providers.fred import FredIndicatorSource

    catalog = SourceCatalog()

    # Market APIs
    catalog.register(FredIndicatorSource(session=session))
    catalog.register(FmpIndicatorSource(session=session))
    catalog.register(AlphaVantageIndicatorSource(session=session))
    catalog.register(AlternativeMeIndicatorSource(session=session))

    # Generative AI, in fallback order
    catalog.register(OpenAICompatibleEstimateSource(
        name="openai",
        display_name="OpenAI",
        base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        credential_env="OPENAI_API_KEY",
        session=session,
    ))
    catalog.register(AnthropicEstimateSource(
        model=os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-latest"),
        session=session,
    ))
    catalog.register(OpenAICompatibleEstimateSource(
        name="groq",
        display_name="Groq",
        base_url="https://api.groq.com/openai/v1",
        model=os.getenv("GROQ_MODEL", "llama-3.1-8b-instant"),
        credential_env="GROQ_API_KEY",
        session=session,
    ))
    catalog.register(OpenAICompatibleEstimateSource(
        name="xai",
        display_name="xAI Grok",
        base_url="https://api.x.ai/v1",
        model=os.getenv("XAI_MODEL", "grok-2-latest"),
        credential_env="XAI_API_KEY",
        session=session,
    ))

    stats = catalog.get_stats()
    logger.info(
        f"Source catalog ready: {stats['offered_sources']}/{stats['total_sources']} offered"
    )
    return catalog
