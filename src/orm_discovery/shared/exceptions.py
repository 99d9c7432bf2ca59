"""
Unified Exception Hierarchy for ORM Discovery MCP.

Exception Hierarchy:
    ORMDiscoveryError (base)
    ├── AuthenticationError
    │   ├── SessionExpiredError
    │   └── LoginTimeoutError
    ├── TransientNetworkError
    ├── APIError
    ├── ContentNotFoundError
    ├── ParseError
    ├── ValidationError
    │   ├── InvalidQueryError
    │   └── InvalidParameterError
    ├── PersistenceError
    └── ConfigurationError
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = auto()      # Recoverable, can continue
    ERROR = auto()        # Failed but can retry
    CRITICAL = auto()     # Cannot continue
    TRANSIENT = auto()    # Temporary, should retry automatically


class ErrorCategory(Enum):
    """Categories for error classification."""
    AUTH = "auth"
    NETWORK = "network"
    API = "api"
    DATA = "data"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    CONFIGURATION = "config"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Rich context attached to an error for agent-facing messages."""
    tool_name: str | None = None
    operation: str | None = None
    input_value: Any = None
    suggestion: str | None = None
    example: str | None = None
    retry_after: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class ORMDiscoveryError(Exception):
    """
    Base exception for all ORM Discovery errors.

    Provides:
    - Structured error context
    - Severity classification
    - Retry guidance
    - Agent-friendly formatting
    """

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.API,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "error": str(self),
            "error_type": type(self).__name__,
            "category": self.category.value,
            "severity": self.severity.name.lower(),
            "retryable": self.retryable,
        }
        if self.context.tool_name:
            result["tool"] = self.context.tool_name
        if self.context.suggestion:
            result["suggestion"] = self.context.suggestion
        if self.context.example:
            result["example"] = self.context.example
        if self.context.retry_after:
            result["retry_after_seconds"] = self.context.retry_after
        return result

    def to_agent_message(self) -> str:
        """Format for Agent consumption (Markdown)."""
        parts = [f"**Error**: {self}"]
        if self.context.suggestion:
            parts.append(f"**Suggestion**: {self.context.suggestion}")
        if self.context.example:
            parts.append(f"**Example**: `{self.context.example}`")
        if self.retryable:
            if self.context.retry_after:
                parts.append(f"Retry after {self.context.retry_after:.1f} seconds")
            else:
                parts.append("This error is retryable")
        return "\n".join(parts)


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthenticationError(ORMDiscoveryError):
    """Raised when a usable session cannot be established."""

    def __init__(
        self,
        message: str = "Authentication failed",
        *,
        url: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext(
            suggestion="Check OREILLY_USER_ID / OREILLY_PASSWORD and try again",
        )
        super().__init__(
            message,
            context=ctx,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.AUTH,
            retryable=False,
        )
        self.url = url


class SessionExpiredError(AuthenticationError):
    """Raised when the platform rejects the current cookies (401/403)."""

    def __init__(
        self,
        message: str = "Session rejected by platform",
        *,
        status_code: int = 401,
        url: str | None = None,
    ) -> None:
        super().__init__(f"{message} (HTTP {status_code})", url=url)
        self.status_code = status_code


class LoginTimeoutError(AuthenticationError):
    """Raised when the interactive login does not reach an authenticated page in time."""

    def __init__(self, timeout: float, *, url: str | None = None) -> None:
        super().__init__(
            f"Login did not complete within {timeout:.0f}s",
            url=url,
        )
        self.timeout = timeout


# =============================================================================
# Network / API Errors
# =============================================================================


class TransientNetworkError(ORMDiscoveryError):
    """Raised for timeouts, connection resets, 429 and 5xx responses."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext(
            suggestion="The platform may be temporarily unavailable; retry shortly",
            retry_after=retry_after,
        )
        super().__init__(
            message,
            context=ctx,
            severity=ErrorSeverity.TRANSIENT,
            category=ErrorCategory.NETWORK,
            retryable=True,
        )
        self.status_code = status_code


class APIError(ORMDiscoveryError):
    """Raised for non-retryable, non-auth HTTP failures (e.g. 400)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context=context, category=ErrorCategory.API)
        self.status_code = status_code


# =============================================================================
# Data Errors
# =============================================================================


class ContentNotFoundError(ORMDiscoveryError):
    """Raised when the platform has no item matching the request."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        ctx = context or ErrorContext(
            input_value=identifier,
            suggestion=f"Verify the {resource} identifier, e.g. via search_content",
        )
        super().__init__(
            f"{resource} not found: {identifier}",
            context=ctx,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.DATA,
        )
        self.resource = resource
        self.identifier = identifier


class ParseError(ORMDiscoveryError):
    """Raised when an upstream payload is not in a usable shape."""

    def __init__(
        self,
        message: str = "Failed to parse response",
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context=context, category=ErrorCategory.DATA)


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ORMDiscoveryError):
    """Base class for caller-input errors; raised before any I/O."""

    def __init__(
        self,
        message: str,
        *,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.VALIDATION,
        )


class InvalidQueryError(ValidationError):
    """Raised for empty or unusable query text."""

    def __init__(self, query: str, reason: str = "Query must not be empty") -> None:
        super().__init__(
            reason,
            context=ErrorContext(
                input_value=query,
                suggestion="Provide a non-empty search query or question",
                example='search_content(query="kubernetes operators")',
            ),
        )


class InvalidParameterError(ValidationError):
    """Raised for out-of-range or malformed parameters."""

    def __init__(
        self,
        parameter: str,
        value: Any,
        reason: str,
        *,
        example: str | None = None,
    ) -> None:
        super().__init__(
            f"Invalid {parameter}: {reason}",
            context=ErrorContext(input_value=value, example=example),
        )
        self.parameter = parameter


# =============================================================================
# Persistence / Configuration
# =============================================================================


class PersistenceError(ORMDiscoveryError):
    """Raised when the cookie cache or history file cannot be read or written."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(
            message,
            severity=ErrorSeverity.WARNING,
            category=ErrorCategory.PERSISTENCE,
        )
        self.path = path


class ConfigurationError(ORMDiscoveryError):
    """Raised for invalid environment configuration."""

    def __init__(self, message: str, *, setting: str | None = None) -> None:
        super().__init__(
            message,
            context=ErrorContext(suggestion=f"Check the {setting} setting" if setting else None),
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
        )
        self.setting = setting


# =============================================================================
# Helpers
# =============================================================================


def is_retryable_error(error: Exception) -> bool:
    """Check if an error should trigger a retry."""
    if isinstance(error, ORMDiscoveryError):
        return error.retryable
    return isinstance(error, (TimeoutError, ConnectionError))


def get_retry_delay(error: Exception, attempt: int, base_delay: float = 1.0) -> float:
    """
    Calculate retry delay with exponential backoff.

    Args:
        error: The exception that occurred
        attempt: Current attempt number (0-based)
        base_delay: Delay for the first retry

    Returns:
        Delay in seconds before next retry
    """
    if isinstance(error, ORMDiscoveryError) and error.context.retry_after:
        base_delay = error.context.retry_after

    delay = base_delay * (2**attempt)
    jitter = random.uniform(0, 0.1 * delay)

    # Cap at 30 seconds
    return min(delay + jitter, 30.0)


__all__ = [
    "APIError",
    "AuthenticationError",
    "ConfigurationError",
    "ContentNotFoundError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "InvalidParameterError",
    "InvalidQueryError",
    "LoginTimeoutError",
    "ORMDiscoveryError",
    "ParseError",
    "PersistenceError",
    "SessionExpiredError",
    "TransientNetworkError",
    "ValidationError",
    "get_retry_delay",
    "is_retryable_error",
]
