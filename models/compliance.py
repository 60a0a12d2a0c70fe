"""
Pydantic models for regulatory profiles and compliance assessments.
"""

from datetime import date
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


# =============================================================================
# ENUMS
# =============================================================================

class ComplianceSeverity(str, Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"
    ADVISORY = "advisory"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    CONDITIONAL = "conditional"
    NON_COMPLIANT = "non_compliant"


class ComplianceArea(str, Enum):
    NET_METERING = "net_metering"
    INTERCONNECTION = "interconnection"
    CERTIFICATIONS = "certifications"
    SAFETY = "safety"


# =============================================================================
# REGULATORY PROFILE
# =============================================================================

class NetMeteringProfile(BaseModel):
    available: bool
    policies: List[str] = Field(default_factory=list)
    current_policy: Optional[str] = None
    compensation: Optional[str] = None
    system_size_limit_kw: float = 0.0
    aggregate_cap_percent: float = 0.0
    grandfathering: bool = False


class InterconnectionProfile(BaseModel):
    fast_track: bool = True
    fast_track_limit_kw: float = Field(..., description="Largest system eligible for fast-track review")
    study_required: bool = False
    application_fee: float = 0.0
    timeline_days: int = 0
    requirements: List[str] = Field(default_factory=list, description="Inverter standards required to interconnect")


class IncentiveProfile(BaseModel):
    federal: List[str] = Field(default_factory=list)
    state: List[str] = Field(default_factory=list)
    utility: List[str] = Field(default_factory=list)
    local: List[str] = Field(default_factory=list)


class PermittingProfile(BaseModel):
    authorities: List[str] = Field(default_factory=list)
    average_timeline_days: int = 0
    average_cost: float = 0.0
    streamlined: bool = False


class SafetyRequirements(BaseModel):
    standards: List[str] = Field(default_factory=list)
    inspection_required: bool = True
    certification_required: bool = True
    rapid_shutdown_required: bool = True


class RegulatoryProfile(BaseModel):
    state: str
    utility_company: Optional[str] = None
    net_metering: NetMeteringProfile
    interconnection: InterconnectionProfile
    incentives: IncentiveProfile
    permitting: PermittingProfile
    safety: SafetyRequirements


# =============================================================================
# ASSESSMENT
# =============================================================================

class SystemComplianceInput(BaseModel):
    """The installed (or planned) system being assessed."""

    customer_id: str
    system_id: str
    state: str = Field(..., min_length=2, max_length=2)
    utility_company: Optional[str] = None
    capacity_kw: float = Field(..., gt=0)
    installation_date: date
    nem_policy_id: Optional[str] = Field(None, description="Policy the system enrolled under; inferred from installation_date when absent")
    system_modifications: bool = False
    interconnected: bool = False
    inverter_type: str = "string"
    panel_certifications: List[str] = Field(default_factory=list)
    inverter_certifications: List[str] = Field(default_factory=list)
    rapid_shutdown: bool = False
    final_inspection_passed: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "customer_id": "homeowner-user-001",
                "system_id": "sys-001",
                "state": "CA",
                "utility_company": "PG&E",
                "capacity_kw": 8.4,
                "installation_date": "2024-05-01",
                "interconnected": True,
                "inverter_type": "string",
                "panel_certifications": ["IEC 61215", "IEC 61730", "UL 1703"],
                "inverter_certifications": ["UL 1741 SA", "IEEE 1547"],
                "rapid_shutdown": True,
                "final_inspection_passed": True,
            }
        }
    )


class ComplianceIssue(BaseModel):
    id: str
    area: ComplianceArea
    severity: ComplianceSeverity
    description: str
    requirement: Optional[str] = None
    resolution: Optional[str] = None


class NetMeteringCompliance(BaseModel):
    policy: Optional[str] = None
    compliant: bool
    grandfathered: bool = False
    grandfathering_expires: Optional[date] = None
    issues: List[ComplianceIssue] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class InterconnectionCompliance(BaseModel):
    compliant: bool
    fast_track_eligible: bool
    estimated_timeline_days: int = 0
    estimated_cost: float = 0.0
    issues: List[ComplianceIssue] = Field(default_factory=list)


class CertificationCompliance(BaseModel):
    compliant: bool
    required: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)
    issues: List[ComplianceIssue] = Field(default_factory=list)


class SafetyCompliance(BaseModel):
    compliant: bool
    standards: List[str] = Field(default_factory=list)
    issues: List[ComplianceIssue] = Field(default_factory=list)


class OverallCompliance(BaseModel):
    score: int = Field(..., ge=0, le=100)
    status: ComplianceStatus
    critical_issues: int = 0
    major_issues: int = 0
    minor_issues: int = 0
    next_review_date: date


class ActionItem(BaseModel):
    issue_id: str
    priority: str = Field(..., description="critical, high, medium or low")
    description: str


class ComplianceAssessment(BaseModel):
    customer_id: str
    system_id: str
    assessment_date: date
    jurisdiction: str
    net_metering: NetMeteringCompliance
    interconnection: InterconnectionCompliance
    certifications: CertificationCompliance
    safety: SafetyCompliance
    overall: OverallCompliance
    action_items: List[ActionItem] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
