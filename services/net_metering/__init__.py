"""
Net energy metering policies and billing.
"""

from .policies import (
    NEM_POLICIES,
    get_policy,
    get_available_policies,
    check_grandfathering_eligibility,
)
from .calculators import (
    BaseNEMCalculator,
    NEM1Calculator,
    NEM2Calculator,
    NEM3Calculator,
    NEM_CALCULATORS,
    get_calculator,
)
from .net_metering_engine import NetMeteringEngine

__all__ = [
    "NEM_POLICIES",
    "get_policy",
    "get_available_policies",
    "check_grandfathering_eligibility",
    "BaseNEMCalculator",
    "NEM1Calculator",
    "NEM2Calculator",
    "NEM3Calculator",
    "NEM_CALCULATORS",
    "get_calculator",
    "NetMeteringEngine",
]
