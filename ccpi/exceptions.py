"""
CCPI Engine - Exceptions.

============================================================
CUSTOM EXCEPTIONS
============================================================

- CCPIError: Base exception
- RegistryConfigurationError: Invalid indicator registry (fatal, load time)
- ConfigurationError: Invalid tunable policy

============================================================
FAILURE SAFETY
============================================================

Adapter failures, unavailable indicators, unavailable pillars and run
timeouts are data states, not exceptions. A registry configuration
error is the only fatal condition and is raised before any run starts.

============================================================
"""

from typing import Any, Dict, List, Optional


class CCPIError(Exception):
    """
    Base exception for CCPI engine errors.

    All CCPI exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class RegistryConfigurationError(CCPIError):
    """
    Raised when the indicator registry is invalid.

    This is a programming/configuration defect and must stop startup.
    All problems found are reported together.
    """

    def __init__(self, problems: List[str]) -> None:
        self.problems = list(problems)
        summary = "; ".join(self.problems[:5])
        if len(self.problems) > 5:
            summary += f" (+{len(self.problems) - 5} more)"
        super().__init__(
            f"Invalid indicator registry: {summary}",
            details={"problems": self.problems},
        )


class ConfigurationError(CCPIError, ValueError):
    """Raised when a tunable policy value is invalid."""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(message, details={"field": field_name} if field_name else None)
        self.field_name = field_name
