"""
Utility rate schedules, bill calculation and rate provider sync.
"""

from .rate_catalog import default_rate_schedules
from .utility_rate_engine import UtilityRateEngine, coerce_usage
from .utility_rate_api import UtilityRateAPIService, validate_rate_schedule

__all__ = [
    "default_rate_schedules",
    "UtilityRateEngine",
    "coerce_usage",
    "UtilityRateAPIService",
    "validate_rate_schedule",
]
