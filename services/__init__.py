"""
Services for the marketplace, billing and solar calculators.
"""

from .errors import (
    SolarAppError,
    ValidationError,
    NotFoundError,
    ConflictError,
    SolarCalculationError,
    ExternalServiceError,
)
from .marketplace_service import MarketplaceService

__all__ = [
    "SolarAppError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "SolarCalculationError",
    "ExternalServiceError",
    "MarketplaceService",
]
