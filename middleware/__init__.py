"""Request middleware for the marketplace API."""

from .rate_limiter import (
    limiter,
    setup_rate_limiting,
    get_client_identifier,
    limit_health,
    RATE_LIMITS,
)

__all__ = [
    "limiter",
    "setup_rate_limiting",
    "get_client_identifier",
    "limit_health",
    "RATE_LIMITS",
]
