"""
Base Indicator Source - Abstract interface for all indicator providers.

All providers MUST implement this interface to ensure:
- Isolation
- Replaceability
- Fail-safety (fetch() never raises, failures come back typed)
"""

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import aiohttp

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
    FetchErrorKind,
    FetchResult,
    IndicatorRequest,
    SourceKind,
    SourceMetadata,
)


logger = logging.getLogger(__name__)


def coerce_float(raw: Any, source_name: Optional[str] = None) -> float:
    """
    Convert a provider payload field into a float.

    Accepts numbers and numeric strings (thousands separators and a
    trailing percent sign are tolerated). Booleans, empty strings and
    placeholders such as "." are rejected.
    """
    if isinstance(raw, bool) or raw is None:
        raise MalformedResponseError(
            f"Expected a number, got {raw!r}",
            source_name=source_name,
            raw_data=raw,
        )
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        text = raw.strip().replace(",", "").rstrip("%").strip()
        try:
            return float(text)
        except ValueError as e:
            raise MalformedResponseError(
                f"Not a numeric value: {raw!r}",
                source_name=source_name,
                raw_data=raw,
                original_error=e,
            )
    raise MalformedResponseError(
        f"Unsupported value type {type(raw).__name__}",
        source_name=source_name,
        raw_data=raw,
    )


class BaseIndicatorSource(ABC):
    """
    Abstract base class for all indicator sources.

    Each source implementation must:
    1. Implement fetch_raw() - Get one numeric value from the provider
    2. Implement metadata() - Return provider metadata

    Features:
    - Credential availability resolved once at construction
    - Per-call deadline
    - Plausibility check (out-of-range values are failures, never clamped)
    - Typed failures instead of exceptions
    """

    # Configuration defaults (can be overridden by subclasses)
    DEFAULT_TIMEOUT = 10.0
    KIND = SourceKind.MARKET_API
    CREDENTIAL_ENV: Optional[str] = None

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if api_key is None and self.CREDENTIAL_ENV:
            api_key = os.getenv(self.CREDENTIAL_ENV)
        self._api_key = api_key or None
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this source (used in adapter chains)."""
        pass

    @abstractmethod
    async def fetch_raw(
        self,
        request: IndicatorRequest,
    ) -> tuple[float, Optional[datetime]]:
        """
        Fetch one value from the provider.

        Args:
            request: Indicator request with provider-specific query

        Returns:
            (value, as_of) where as_of is the observation time reported
            by the provider, or None if it does not report one

        Raises:
            SourceError: Typed failure
        """
        pass

    @abstractmethod
    def metadata(self) -> SourceMetadata:
        """Return provider metadata."""
        pass

    @property
    def kind(self) -> SourceKind:
        return self.KIND

    @property
    def requires_auth(self) -> bool:
        return self.CREDENTIAL_ENV is not None

    @property
    def is_offered(self) -> bool:
        """Whether this source can be called at all (credential present)."""
        return not self.requires_auth or self._api_key is not None

    async def fetch(
        self,
        request: IndicatorRequest,
        timeout: Optional[float] = None,
    ) -> FetchResult:
        """
        Fetch and validate one indicator value (main entry point).

        Note:
            Never raises for provider failures - returns a FetchResult
            carrying the typed error instead. Cancellation propagates.
        """
        start_time = time.monotonic()
        deadline = timeout if timeout is not None else self._timeout

        if not self.is_offered:
            return FetchResult.failure(
                self.name,
                FetchErrorKind.NOT_OFFERED,
                f"{self.CREDENTIAL_ENV} not configured",
            )

        try:
            try:
                value, as_of = await asyncio.wait_for(self.fetch_raw(request), timeout=deadline)
            except asyncio.TimeoutError as e:
                raise SourceTimeoutError(
                    f"No response within {deadline:.1f}s",
                    source_name=self.name,
                    timeout_seconds=deadline,
                    original_error=e,
                )

            if not request.plausible_range.contains(value):
                raise ImplausibleValueError(
                    value,
                    request.plausible_range.low,
                    request.plausible_range.high,
                    source_name=self.name,
                )

            latency_ms = (time.monotonic() - start_time) * 1000
            logger.debug(
                f"[{self.name}] {request.indicator_id}={value} in {latency_ms:.1f}ms"
            )
            return FetchResult.success(self.name, value, as_of, latency_ms)

        except SourceError as e:
            latency_ms = (time.monotonic() - start_time) * 1000
            logger.warning(f"[{self.name}] {request.indicator_id} failed: {e}")
            return FetchResult.failure(self.name, e.kind, e.message, latency_ms)
        except Exception as e:
            latency_ms = (time.monotonic() - start_time) * 1000
            logger.warning(
                f"[{self.name}] {request.indicator_id} unexpected error: {e}"
            )
            return FetchResult.failure(
                self.name,
                FetchErrorKind.TRANSPORT,
                f"Unexpected error: {e}",
                latency_ms,
            )

    async def _get_session(self) -> aiohttp.ClientSession:
        """
        Get or create HTTP session.

        The session carries no total timeout: the per-call deadline
        passed to fetch() is the only one.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "CCPIEngine/1.0",
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Make HTTP request and map failures onto typed errors."""
        session = await self._get_session()

        start_time = time.monotonic()
        try:
            async with session.request(
                method,
                url,
                params=params,
                headers=headers,
                json=json_body,
            ) as response:
                latency_ms = (time.monotonic() - start_time) * 1000

                if response.status in (401, 403):
                    raise UnauthorizedError(
                        f"HTTP {response.status}",
                        source_name=self.name,
                    )

                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        "Rate limit exceeded",
                        source_name=self.name,
                        retry_after_seconds=int(retry_after) if retry_after and retry_after.isdigit() else None,
                    )

                if response.status >= 500:
                    raise TransportError(
                        f"HTTP {response.status}",
                        source_name=self.name,
                        status_code=response.status,
                        request_url=url,
                    )

                if response.status >= 400:
                    body = await response.text()
                    raise self._classify_error(response.status, body)

                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponseError(
                        f"Invalid JSON: {e}",
                        source_name=self.name,
                        original_error=e,
                    )
                logger.debug(f"[{self.name}] Request completed in {latency_ms:.1f}ms")
                return data

        except aiohttp.ClientError as e:
            raise TransportError(
                f"Connection error: {e}",
                source_name=self.name,
                request_url=url,
                original_error=e,
            )

    def _classify_error(self, status: int, body: str) -> SourceError:
        """
        Map a 4xx response (other than 401/403/429) onto a typed error.

        Providers that report credential problems in the body of another
        status override this.
        """
        return MalformedResponseError(
            f"HTTP {status}",
            source_name=self.name,
            raw_data=body[:1000],
        )

    def status(self) -> dict[str, Any]:
        """Availability summary for the sources view."""
        data = self.metadata().to_dict()
        data["offered"] = self.is_offered
        return data

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BaseIndicatorSource":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, offered={self.is_offered})>"
