"""
Rate limiting for the marketplace API (slowapi, in-memory fixed window).

Named limits, each overridable through the environment:
- default: CRUD and lookup endpoints (100/minute)
- health: root and health checks (300/minute)
- calculation: bills, net metering, optimization, compatibility (30/minute)
- sync: rate provider sync, which calls out to a third-party API (5/minute)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
import os
import logging

logger = logging.getLogger(__name__)

RATE_LIMITS = {
    "default": os.getenv("RATE_LIMIT_DEFAULT", "100/minute"),
    "health": os.getenv("RATE_LIMIT_HEALTH", "300/minute"),
    "calculation": os.getenv("RATE_LIMIT_CALCULATION", "30/minute"),
    "sync": os.getenv("RATE_LIMIT_SYNC", "5/minute"),
}

RETRY_AFTER_SECONDS = 60


def get_client_identifier(request: Request) -> str:
    """Client address: X-Real-IP, then the first X-Forwarded-For hop, then the socket peer."""
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[RATE_LIMITS["default"]],
    storage_uri="memory://",
    strategy="fixed-window",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the same {"error", "message", "details"} shape as other API errors."""
    limit = str(exc.detail) if hasattr(exc, "detail") else "unknown"
    logger.warning(f"Rate limit {limit} exceeded by {get_client_identifier(request)} on {request.url.path}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RATE_LIMITED",
            "message": "Too many requests. Please slow down and try again later.",
            "details": {"limit": limit, "retry_after": RETRY_AFTER_SECONDS},
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


def setup_rate_limiting(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    logger.info(
        "Rate limiting configured: "
        + ", ".join(f"{name}={value}" for name, value in RATE_LIMITS.items())
    )


def limit_health(func):
    """Apply the health check limit."""
    return limiter.limit(RATE_LIMITS["health"])(func)
