"""
Financial Modeling Prep Indicator Source - Quote endpoint adapter.

Reads one numeric field of a quote (index level, trailing P/E...).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from indicator_sources.base import BaseIndicatorSource, coerce_float
from indicator_sources.exceptions import MalformedResponseError, UnauthorizedError
from indicator_sources.models import IndicatorRequest, SourceKind, SourceMetadata


logger = logging.getLogger(__name__)


class FmpIndicatorSource(BaseIndicatorSource):
    """
    FMP /quote endpoint.

    Query parameters:
    - symbol: ticker, e.g. "^VIX" or "SPY" (required)
    - field: quote field to read (default "price")
    """

    BASE_URL = "https://financialmodelingprep.com/api/v3"
    CREDENTIAL_ENV = "FMP_API_KEY"
    KIND = SourceKind.MARKET_API

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = BaseIndicatorSource.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(api_key, timeout, session)

    @property
    def name(self) -> str:
        return "fmp"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="Financial Modeling Prep",
            kind=self.KIND,
            requires_auth=True,
            credential_env=self.CREDENTIAL_ENV,
            base_url=self.BASE_URL,
            documentation_url="https://site.financialmodelingprep.com/developer/docs",
            tags=("equities", "valuation", "volatility"),
        )

    async def fetch_raw(
        self,
        request: IndicatorRequest,
    ) -> tuple[float, Optional[datetime]]:
        symbol = request.param("symbol")
        field = request.param("field", "price")
        if not symbol:
            raise MalformedResponseError(
                f"No symbol configured for {request.indicator_id}",
                source_name=self.name,
            )

        data = await self._make_request(
            "GET",
            f"{self.BASE_URL}/quote/{symbol}",
            params={"apikey": self._api_key},
        )
        return self._read_quote(data, symbol, field)

    def _read_quote(
        self,
        data: Any,
        symbol: str,
        field: str,
    ) -> tuple[float, Optional[datetime]]:
        if isinstance(data, dict) and "Error Message" in data:
            message = data["Error Message"]
            if "api key" in message.lower() or "apikey" in message.lower():
                raise UnauthorizedError(message, source_name=self.name)
            raise MalformedResponseError(message, source_name=self.name, raw_data=data)

        if not isinstance(data, list) or not data:
            raise MalformedResponseError(
                f"Empty quote for {symbol}",
                source_name=self.name,
                raw_data=data,
            )

        quote = data[0]
        if field not in quote or quote[field] is None:
            raise MalformedResponseError(
                f"Quote for {symbol} has no {field!r}",
                source_name=self.name,
                raw_data=quote,
            )

        value = coerce_float(quote[field], self.name)
        as_of = None
        timestamp = quote.get("timestamp")
        if isinstance(timestamp, (int, float)) and timestamp > 0:
            as_of = datetime.fromtimestamp(timestamp, tz=timezone.utc)
        return value, as_of
