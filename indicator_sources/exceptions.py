"""
Indicator Source Exceptions - Typed failure modes of a single adapter call.

Adapters raise these from `fetch_raw()`; the base class converts them into
a `FetchResult` so nothing escapes an adapter's public `fetch()`.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from indicator_sources.models import FetchErrorKind


class SourceError(Exception):
    """Base exception for all indicator source errors."""

    kind: FetchErrorKind = FetchErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source_name = source_name
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "source_name": self.source_name,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.source_name:
            parts.append(f"[source={self.source_name}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class SourceTimeoutError(SourceError):
    """Adapter did not answer within its tier deadline."""

    kind = FetchErrorKind.TIMEOUT

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, source_name, original_error)
        self.timeout_seconds = timeout_seconds


class UnauthorizedError(SourceError):
    """Credential missing or rejected by the provider."""

    kind = FetchErrorKind.UNAUTHORIZED


class MalformedResponseError(SourceError):
    """Response parsed but did not contain a usable numeric value."""

    kind = FetchErrorKind.MALFORMED_RESPONSE

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        raw_data: Optional[Any] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, source_name, original_error)
        self.raw_data = raw_data

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["raw_data"] = str(self.raw_data)[:500] if self.raw_data is not None else None
        return data


class ImplausibleValueError(MalformedResponseError):
    """Value outside the indicator's plausible range. Never clamped."""

    def __init__(
        self,
        value: float,
        low: float,
        high: float,
        source_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Value {value} outside plausible range [{low}, {high}]",
            source_name=source_name,
            raw_data=value,
        )
        self.value = value
        self.low = low
        self.high = high


class RateLimitError(SourceError):
    """Provider refused the call because of its rate budget."""

    kind = FetchErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        retry_after_seconds: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, source_name, original_error)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data


class TransportError(SourceError):
    """Connection failure or server-side HTTP error."""

    kind = FetchErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        status_code: Optional[int] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, source_name, original_error)
        self.status_code = status_code
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "request_url": self.request_url,
        })
        return data
