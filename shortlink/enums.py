"""Shared enums for the shortlink service.

Status values used in health responses, metric labels and log records.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "RequestStatus"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RequestStatus(StrEnum):
    """Request outcome values for metrics and logging."""

    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    ERROR = "error"
