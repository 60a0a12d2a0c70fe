"""
Solar billing: monthly bills, billing cycles and annual true-up.
"""

from .solar_billing_calculator import SolarBillingCalculator
from .billing_cycle_manager import BillingCycleManager

__all__ = [
    "SolarBillingCalculator",
    "BillingCycleManager",
]
