"""Shared enums for the URL shortener application.

This module defines the status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["CacheStatus", "HealthStatus", "RedirectKind", "RequestStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    ERROR = "error"


class CacheStatus(StrEnum):
    """Cache status values for metrics."""

    HIT = "true"
    MISS = "false"


class RedirectKind(StrEnum):
    """Redirect semantics handed back to the HTTP layer.

    Cache hits answer with a permanent redirect, store fallbacks with a
    temporary one; browsers cache the former more aggressively.
    """

    PERMANENT = "permanent"
    TEMPORARY = "temporary"

    @property
    def status_code(self) -> int:
        if self is RedirectKind.PERMANENT:
            return 308
        return 307
