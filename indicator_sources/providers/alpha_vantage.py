"""
Alpha Vantage Indicator Source - Technical indicator series adapter.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from indicator_sources.base import BaseIndicatorSource, coerce_float
from indicator_sources.exceptions import (
    MalformedResponseError,
    RateLimitError,
    UnauthorizedError,
)
from indicator_sources.models import IndicatorRequest, SourceKind, SourceMetadata


logger = logging.getLogger(__name__)


class AlphaVantageIndicatorSource(BaseIndicatorSource):
    """
    Alpha Vantage technical indicators (ATR, RSI...).

    Query parameters:
    - function: indicator function, e.g. "ATR" (required)
    - symbol: ticker (required)
    - interval: default "daily"
    - time_period: default 14
    - scale: multiplier applied to the value (e.g. 10 to express SPY ATR
      in S&P 500 points), default 1

    Alpha Vantage answers HTTP 200 for throttling and key errors and puts
    the reason under "Note", "Information" or "Error Message".
    """

    BASE_URL = "https://www.alphavantage.co/query"
    CREDENTIAL_ENV = "ALPHA_VANTAGE_API_KEY"
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
        return "alpha_vantage"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="Alpha Vantage",
            kind=self.KIND,
            requires_auth=True,
            credential_env=self.CREDENTIAL_ENV,
            base_url=self.BASE_URL,
            documentation_url="https://www.alphavantage.co/documentation/",
            # Free tier allows very few calls per minute
            max_concurrency=1,
            tags=("technical",),
        )

    async def fetch_raw(
        self,
        request: IndicatorRequest,
    ) -> tuple[float, Optional[datetime]]:
        function = request.param("function")
        symbol = request.param("symbol")
        if not function or not symbol:
            raise MalformedResponseError(
                f"function/symbol not configured for {request.indicator_id}",
                source_name=self.name,
            )

        data = await self._make_request(
            "GET",
            self.BASE_URL,
            params={
                "function": function,
                "symbol": symbol,
                "interval": request.param("interval", "daily"),
                "time_period": request.param("time_period", 14),
                "series_type": request.param("series_type", "close"),
                "apikey": self._api_key,
            },
        )
        value, as_of = self._latest_point(data, function)
        return value * float(request.param("scale", 1.0)), as_of

    def _latest_point(
        self,
        data: Any,
        function: str,
    ) -> tuple[float, Optional[datetime]]:
        if not isinstance(data, dict):
            raise MalformedResponseError("Unexpected payload", source_name=self.name, raw_data=data)

        for key in ("Note", "Information"):
            if key in data:
                message = str(data[key])
                if "apikey" in message.lower() and "invalid" in message.lower():
                    raise UnauthorizedError(message, source_name=self.name)
                raise RateLimitError(message, source_name=self.name)

        if "Error Message" in data:
            raise MalformedResponseError(
                str(data["Error Message"]),
                source_name=self.name,
                raw_data=data,
            )

        series_key = f"Technical Analysis: {function}"
        series = data.get(series_key)
        if not series:
            raise MalformedResponseError(
                f"Missing {series_key!r}",
                source_name=self.name,
                raw_data=data,
            )

        latest_date = max(series)
        point = series[latest_date]
        raw_value = point.get(function) if isinstance(point, dict) else None
        if raw_value is None and isinstance(point, dict) and point:
            raw_value = next(iter(point.values()))
        value = coerce_float(raw_value, self.name)

        try:
            as_of = datetime.strptime(latest_date[:10], "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            as_of = None
        return value, as_of
