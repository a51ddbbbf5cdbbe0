"""
FRED Indicator Source - St. Louis Fed economic data adapter.

Reads the latest valid observation of a series (VIX close, fed funds
rate, high-yield spread, 10Y-2Y curve...).
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from indicator_sources.base import BaseIndicatorSource, coerce_float
from indicator_sources.exceptions import MalformedResponseError, SourceError, UnauthorizedError
from indicator_sources.models import IndicatorRequest, SourceKind, SourceMetadata


logger = logging.getLogger(__name__)


class FredIndicatorSource(BaseIndicatorSource):
    """
    FRED series observations.

    Query parameters:
    - series_id: FRED series identifier (required)

    FRED marks missing observations with "." - those are skipped and the
    most recent numeric observation wins.
    """

    BASE_URL = "https://api.stlouisfed.org/fred"
    CREDENTIAL_ENV = "FRED_API_KEY"
    KIND = SourceKind.MARKET_API
    OBSERVATION_LOOKBACK = 10

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = BaseIndicatorSource.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(api_key, timeout, session)

    @property
    def name(self) -> str:
        return "fred"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="FRED (St. Louis Fed)",
            kind=self.KIND,
            requires_auth=True,
            credential_env=self.CREDENTIAL_ENV,
            base_url=self.BASE_URL,
            documentation_url="https://fred.stlouisfed.org/docs/api/fred/",
            tags=("macro", "volatility", "rates"),
        )

    async def fetch_raw(
        self,
        request: IndicatorRequest,
    ) -> tuple[float, Optional[datetime]]:
        series_id = request.param("series_id")
        if not series_id:
            raise MalformedResponseError(
                f"No series_id configured for {request.indicator_id}",
                source_name=self.name,
            )

        data = await self._make_request(
            "GET",
            f"{self.BASE_URL}/series/observations",
            params={
                "series_id": series_id,
                "api_key": self._api_key,
                "file_type": "json",
                "sort_order": "desc",
                "limit": self.OBSERVATION_LOOKBACK,
            },
        )
        return self._latest_observation(data, series_id)

    def _classify_error(self, status: int, body: str) -> SourceError:
        """FRED answers a bad api_key with HTTP 400 and a JSON error body."""
        try:
            data = json.loads(body)
        except ValueError:
            return super()._classify_error(status, body)
        if not isinstance(data, dict):
            return super()._classify_error(status, body)
        return self._rejection(data) or super()._classify_error(status, body)

    def _rejection(self, data: dict) -> Optional[SourceError]:
        if data.get("error_code") not in (400, 401, 403):
            return None
        message = str(data.get("error_message", "rejected"))
        if "api_key" in message.lower():
            return UnauthorizedError(message, source_name=self.name)
        return MalformedResponseError(message, source_name=self.name, raw_data=data)

    def _latest_observation(
        self,
        data: Any,
        series_id: str,
    ) -> tuple[float, Optional[datetime]]:
        if isinstance(data, dict):
            rejection = self._rejection(data)
            if rejection is not None:
                raise rejection

        observations = data.get("observations") if isinstance(data, dict) else None
        if not observations:
            raise MalformedResponseError(
                f"No observations for {series_id}",
                source_name=self.name,
                raw_data=data,
            )

        for observation in observations:
            raw_value = observation.get("value")
            if raw_value in (None, "", "."):
                continue
            value = coerce_float(raw_value, self.name)
            as_of = self._parse_date(observation.get("date"))
            return value, as_of

        raise MalformedResponseError(
            f"Only missing observations for {series_id}",
            source_name=self.name,
            raw_data=observations[:3],
        )

    @staticmethod
    def _parse_date(text: Optional[str]) -> Optional[datetime]:
        if not text:
            return None
        try:
            return datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            logger.debug(f"[fred] Unparseable observation date {text!r}")
            return None
