"""
Load profiling, rate selection and time-of-use optimization.
"""

from .load_profile import analyze_load_profile, usage_frame
from .rate_optimizer import RateOptimizer
from .tou_optimizer import TOUOptimizer

__all__ = [
    "analyze_load_profile",
    "usage_frame",
    "RateOptimizer",
    "TOUOptimizer",
]
