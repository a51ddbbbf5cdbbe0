"""
Alternative.me Indicator Source - Public Crypto Fear & Greed index adapter.

No authentication required.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from indicator_sources.base import BaseIndicatorSource, coerce_float
from indicator_sources.exceptions import MalformedResponseError
from indicator_sources.models import IndicatorRequest, SourceKind, SourceMetadata


logger = logging.getLogger(__name__)


class AlternativeMeIndicatorSource(BaseIndicatorSource):
    """Crypto Fear & Greed index (0 = extreme fear, 100 = extreme greed)."""

    BASE_URL = "https://api.alternative.me/fng/"
    KIND = SourceKind.MARKET_API

    def __init__(
        self,
        timeout: float = BaseIndicatorSource.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(None, timeout, session)

    @property
    def name(self) -> str:
        return "alternative_me"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="Alternative.me Crypto Fear & Greed",
            kind=self.KIND,
            requires_auth=False,
            base_url=self.BASE_URL,
            documentation_url="https://alternative.me/crypto/fear-and-greed-index/",
            tags=("sentiment",),
        )

    async def fetch_raw(
        self,
        request: IndicatorRequest,
    ) -> tuple[float, Optional[datetime]]:
        data = await self._make_request("GET", self.BASE_URL, params={"limit": 1})
        return self._read_index(data)

    def _read_index(self, data: Any) -> tuple[float, Optional[datetime]]:
        entries = data.get("data") if isinstance(data, dict) else None
        if not entries:
            raise MalformedResponseError("No index data", source_name=self.name, raw_data=data)

        entry = entries[0]
        value = coerce_float(entry.get("value"), self.name)
        as_of = None
        timestamp = entry.get("timestamp")
        if timestamp is not None:
            try:
                as_of = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
            except (TypeError, ValueError):
                logger.debug(f"[{self.name}] Unparseable timestamp {timestamp!r}")
        return value, as_of
