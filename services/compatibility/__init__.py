"""
Equipment compatibility checks and scoring.
"""

from .checks import (
    COMPATIBILITY_CHECKS,
    BaseCompatibilityCheck,
    ElectricalCheck,
    EnvironmentalCheck,
    PerformanceCheck,
    PhysicalCheck,
    RegulatoryCheck,
)
from .compatibility_engine import CompatibilityEngine, calculate_compatibility_score

__all__ = [
    "COMPATIBILITY_CHECKS",
    "BaseCompatibilityCheck",
    "ElectricalCheck",
    "EnvironmentalCheck",
    "PerformanceCheck",
    "PhysicalCheck",
    "RegulatoryCheck",
    "CompatibilityEngine",
    "calculate_compatibility_score",
]
