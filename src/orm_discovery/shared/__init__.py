"""
Shared Layer - cross-cutting helpers

Contains:
- exceptions: Unified error hierarchy
- async_utils: Retry and deadline polling helpers
"""

from .async_utils import async_retry, poll_until
from .exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    ContentNotFoundError,
    ORMDiscoveryError,
    ParseError,
    PersistenceError,
    SessionExpiredError,
    TransientNetworkError,
    ValidationError,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "ConfigurationError",
    "ContentNotFoundError",
    "ORMDiscoveryError",
    "ParseError",
    "PersistenceError",
    "SessionExpiredError",
    "TransientNetworkError",
    "ValidationError",
    "async_retry",
    "poll_until",
]
