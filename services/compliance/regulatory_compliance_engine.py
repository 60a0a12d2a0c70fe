"""
Regulatory compliance engine.

Assesses an installed or planned system against its state's regulatory
profile in four areas: net metering eligibility, interconnection,
equipment certifications and safety. Each finding is a ComplianceIssue;
the overall score deducts per issue by severity.
"""

from datetime import date
from typing import Dict, List, Optional
import logging

from models.billing import CompensationMethod
from models.compliance import (
    ActionItem,
    CertificationCompliance,
    ComplianceArea,
    ComplianceAssessment,
    ComplianceIssue,
    ComplianceSeverity,
    ComplianceStatus,
    InterconnectionCompliance,
    NetMeteringCompliance,
    OverallCompliance,
    RegulatoryProfile,
    SafetyCompliance,
    SystemComplianceInput,
)
from services.compatibility.checks import PANEL_CERTIFICATIONS, has_certification
from services.compliance.profiles import get_regulatory_profile, policy_in_effect
from services.net_metering.policies import (
    check_grandfathering_eligibility,
    get_available_policies,
    get_policy,
)
from utils.dates import add_years

logger = logging.getLogger(__name__)

SEVERITY_PENALTIES: Dict[ComplianceSeverity, int] = {
    ComplianceSeverity.CRITICAL: 25,
    ComplianceSeverity.MAJOR: 10,
    ComplianceSeverity.MINOR: 3,
    ComplianceSeverity.ADVISORY: 0,
}

ACTION_PRIORITY: Dict[ComplianceSeverity, str] = {
    ComplianceSeverity.CRITICAL: "critical",
    ComplianceSeverity.MAJOR: "high",
    ComplianceSeverity.MINOR: "medium",
    ComplianceSeverity.ADVISORY: "low",
}

COMPLIANT_SCORE = 95
CONDITIONAL_SCORE = 80

# Added to the base interconnection estimate when a system needs
# supplemental review or still has an application to file
SUPPLEMENTAL_REVIEW_DAYS = 30
SUPPLEMENTAL_REVIEW_COST = 500
APPLICATION_DAYS = 14
APPLICATION_COST = 200

MODULE_LEVEL_INVERTERS = {"micro", "power_optimizer"}


def compliance_status(score: int) -> ComplianceStatus:
    if score >= COMPLIANT_SCORE:
        return ComplianceStatus.COMPLIANT
    if score >= CONDITIONAL_SCORE:
        return ComplianceStatus.CONDITIONAL
    return ComplianceStatus.NON_COMPLIANT


class _IssueLog:
    """Collects issues for one area with sequential ids."""

    def __init__(self, system_id: str, area: ComplianceArea):
        self.system_id = system_id
        self.area = area
        self.issues: List[ComplianceIssue] = []

    def add(
        self,
        severity: ComplianceSeverity,
        description: str,
        requirement: Optional[str] = None,
        resolution: Optional[str] = None,
    ):
        self.issues.append(ComplianceIssue(
            id=f"{self.system_id}-{self.area.value}-{len(self.issues) + 1}",
            area=self.area,
            severity=severity,
            description=description,
            requirement=requirement,
            resolution=resolution,
        ))


class RegulatoryComplianceEngine:
    """
    Usage:
        engine = RegulatoryComplianceEngine()
        profile = engine.get_regulatory_profile("CA")
        assessment = engine.assess_compliance(system)
    """

    def get_regulatory_profile(
        self,
        state: str,
        utility_company: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> RegulatoryProfile:
        return get_regulatory_profile(state, utility_company, as_of)

    def assess_compliance(
        self,
        system: SystemComplianceInput,
        profile: Optional[RegulatoryProfile] = None,
        as_of: Optional[date] = None,
    ) -> ComplianceAssessment:
        """
        Assess a system against its regulatory profile.

        Args:
            system: System and customer details
            profile: Profile to assess against; looked up from system.state
                when omitted
            as_of: Assessment date (defaults to today)

        Returns:
            ComplianceAssessment with per-area results, the overall score
            and status, action items and recommendations

        Raises:
            NotFoundError: If the state has no profile or nem_policy_id is unknown
        """
        as_of = as_of or date.today()
        profile = profile or get_regulatory_profile(system.state, system.utility_company, as_of)

        net_metering = self._assess_net_metering(system, profile, as_of)
        interconnection = self._assess_interconnection(system, profile)
        certifications = self._assess_certifications(system, profile)
        safety = self._assess_safety(system, profile)

        issues = net_metering.issues + interconnection.issues + certifications.issues + safety.issues
        overall = self._overall(issues, as_of)

        recommendations = list(net_metering.recommendations)
        if profile.incentives.federal or profile.incentives.state:
            incentives = ", ".join(profile.incentives.federal + profile.incentives.state)
            recommendations.append(f"Confirm eligibility for available incentives: {incentives}")
        if overall.status != ComplianceStatus.COMPLIANT:
            recommendations.append(
                f"Resolve critical and major issues before the next review on {overall.next_review_date.isoformat()}"
            )

        logger.info(
            f"Compliance assessment for {system.system_id} ({profile.state}): "
            f"score {overall.score}, status {overall.status.value}, {len(issues)} issue(s)"
        )

        return ComplianceAssessment(
            customer_id=system.customer_id,
            system_id=system.system_id,
            assessment_date=as_of,
            jurisdiction=f"{profile.state}-{system.utility_company}" if system.utility_company else profile.state,
            net_metering=net_metering,
            interconnection=interconnection,
            certifications=certifications,
            safety=safety,
            overall=overall,
            action_items=[
                ActionItem(
                    issue_id=i.id,
                    priority=ACTION_PRIORITY[i.severity],
                    description=i.resolution or i.description,
                )
                for i in issues
            ],
            recommendations=recommendations,
        )

    # -------------------------------------------------------------------------
    # Areas
    # -------------------------------------------------------------------------

    def _assess_net_metering(
        self,
        system: SystemComplianceInput,
        profile: RegulatoryProfile,
        as_of: date,
    ) -> NetMeteringCompliance:
        log = _IssueLog(system.system_id, ComplianceArea.NET_METERING)
        if not profile.net_metering.available:
            log.add(
                ComplianceSeverity.MAJOR,
                f"Net metering is not offered in {profile.state}",
                resolution="Size the system for self-consumption",
            )
            return NetMeteringCompliance(compliant=False, issues=log.issues)

        if system.nem_policy_id:
            policy = get_policy(system.nem_policy_id)
        else:
            policies = get_available_policies(profile.state, system.utility_company)
            policy = policy_in_effect(policies, system.installation_date) or get_policy(profile.net_metering.current_policy)

        if system.capacity_kw > policy.system_size_limit_kw:
            log.add(
                ComplianceSeverity.CRITICAL,
                f"System size {system.capacity_kw} kW exceeds the {policy.name} limit of {policy.system_size_limit_kw} kW",
                requirement=f"{policy.id} system size limit",
                resolution="Reduce system size or apply under a commercial interconnection tariff",
            )

        grandfathered = check_grandfathering_eligibility(
            policy, system.installation_date, system.system_modifications, as_of
        )
        expires = None
        if grandfathered and policy.grandfathering_years:
            expires = add_years(system.installation_date, policy.grandfathering_years)

        current_id = profile.net_metering.current_policy
        if policy.expiration_date and policy.expiration_date < as_of and not grandfathered:
            log.add(
                ComplianceSeverity.MAJOR,
                f"{policy.name} enrollment is closed and the system no longer qualifies for grandfathering",
                requirement=f"{policy.id} grandfathering",
                resolution=f"Re-enroll under {current_id}" if current_id else None,
            )

        recommendations = []
        if grandfathered:
            until = f" until {expires.isoformat()}" if expires else ""
            recommendations.append(f"Avoid system modifications that would end grandfathered {policy.name} status{until}")
        if policy.compensation_method == CompensationMethod.NET_BILLING:
            recommendations.append("Consider battery storage to self-consume exports credited at avoided cost")

        return NetMeteringCompliance(
            policy=policy.id,
            compliant=not log.issues,
            grandfathered=grandfathered,
            grandfathering_expires=expires,
            issues=log.issues,
            recommendations=recommendations,
        )

    def _assess_interconnection(
        self,
        system: SystemComplianceInput,
        profile: RegulatoryProfile,
    ) -> InterconnectionCompliance:
        log = _IssueLog(system.system_id, ComplianceArea.INTERCONNECTION)
        rules = profile.interconnection
        fast_track = rules.fast_track and system.capacity_kw <= rules.fast_track_limit_kw

        timeline, cost = 0, 0.0
        if not system.interconnected:
            timeline = rules.timeline_days + APPLICATION_DAYS
            cost = rules.application_fee + APPLICATION_COST
            utility = system.utility_company or "the utility"
            log.add(
                ComplianceSeverity.MAJOR,
                "No executed interconnection agreement on file",
                requirement="Interconnection agreement",
                resolution=f"Submit the interconnection application to {utility}",
            )
            if not fast_track or rules.study_required:
                timeline += SUPPLEMENTAL_REVIEW_DAYS
                cost += SUPPLEMENTAL_REVIEW_COST
                log.add(
                    ComplianceSeverity.MINOR,
                    f"System of {system.capacity_kw} kW exceeds the {rules.fast_track_limit_kw} kW fast-track limit",
                    requirement="Fast-track eligibility",
                    resolution="Budget for supplemental review",
                )

        return InterconnectionCompliance(
            compliant=not log.issues,
            fast_track_eligible=fast_track,
            estimated_timeline_days=timeline,
            estimated_cost=cost,
            issues=log.issues,
        )

    def _assess_certifications(
        self,
        system: SystemComplianceInput,
        profile: RegulatoryProfile,
    ) -> CertificationCompliance:
        log = _IssueLog(system.system_id, ComplianceArea.CERTIFICATIONS)
        if not profile.safety.certification_required:
            return CertificationCompliance(compliant=True)

        missing = []
        for cert in PANEL_CERTIFICATIONS:
            if not has_certification(system.panel_certifications, cert):
                missing.append(cert)
                log.add(
                    ComplianceSeverity.MAJOR,
                    f"Panels are not listed to {cert}",
                    requirement=cert,
                    resolution=f"Provide {cert} listing documentation or replace the modules",
                )
        for cert in profile.interconnection.requirements:
            if not has_certification(system.inverter_certifications, cert):
                missing.append(cert)
                log.add(
                    ComplianceSeverity.CRITICAL,
                    f"Inverter is not certified to {cert}",
                    requirement=cert,
                    resolution=f"Use an inverter certified to {cert}",
                )

        return CertificationCompliance(
            compliant=not log.issues,
            required=PANEL_CERTIFICATIONS + profile.interconnection.requirements,
            missing=missing,
            issues=log.issues,
        )

    def _assess_safety(
        self,
        system: SystemComplianceInput,
        profile: RegulatoryProfile,
    ) -> SafetyCompliance:
        log = _IssueLog(system.system_id, ComplianceArea.SAFETY)
        rules = profile.safety

        module_level = system.inverter_type.lower() in MODULE_LEVEL_INVERTERS
        if rules.rapid_shutdown_required and not module_level and not system.rapid_shutdown:
            log.add(
                ComplianceSeverity.CRITICAL,
                "No rapid shutdown system installed",
                requirement="NEC 690.12",
                resolution="Install module-level rapid shutdown devices",
            )
        if rules.inspection_required and not system.final_inspection_passed:
            log.add(
                ComplianceSeverity.MAJOR,
                "Final inspection has not been passed",
                requirement="Final inspection",
                resolution="Schedule final inspection with the building department",
            )

        return SafetyCompliance(compliant=not log.issues, standards=rules.standards, issues=log.issues)

    def _overall(self, issues: List[ComplianceIssue], as_of: date) -> OverallCompliance:
        score = max(0, 100 - sum(SEVERITY_PENALTIES[i.severity] for i in issues))
        return OverallCompliance(
            score=score,
            status=compliance_status(score),
            critical_issues=sum(1 for i in issues if i.severity == ComplianceSeverity.CRITICAL),
            major_issues=sum(1 for i in issues if i.severity == ComplianceSeverity.MAJOR),
            minor_issues=sum(1 for i in issues if i.severity == ComplianceSeverity.MINOR),
            next_review_date=add_years(as_of, 1),
        )
