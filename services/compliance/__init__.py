"""
Regulatory profiles and compliance assessment.
"""

from .profiles import get_regulatory_profile, policy_in_effect
from .regulatory_compliance_engine import RegulatoryComplianceEngine, compliance_status

__all__ = [
    "get_regulatory_profile",
    "policy_in_effect",
    "RegulatoryComplianceEngine",
    "compliance_status",
]
