"""
Unit tests for regulatory profiles and the compliance engine.
"""

import pytest
from datetime import date

from models.compliance import ComplianceSeverity, ComplianceStatus, SystemComplianceInput
from services.compliance import RegulatoryComplianceEngine, compliance_status, policy_in_effect
from services.errors import NotFoundError
from services.net_metering.policies import get_available_policies


AS_OF = date(2024, 6, 1)


# Test Data Fixtures

@pytest.fixture
def engine():
    return RegulatoryComplianceEngine()


@pytest.fixture
def system_data():
    """An interconnected, inspected 8.4 kW string inverter system installed under NEM 3.0."""
    return {
        "customer_id": "homeowner-user-001",
        "system_id": "sys-001",
        "state": "CA",
        "utility_company": "PG&E",
        "capacity_kw": 8.4,
        "installation_date": date(2024, 5, 1),
        "interconnected": True,
        "inverter_type": "string",
        "panel_certifications": ["IEC 61215", "IEC 61730", "UL 1703"],
        "inverter_certifications": ["UL 1741 SA", "IEEE 1547"],
        "rapid_shutdown": True,
        "final_inspection_passed": True,
    }


def assess(engine, data):
    return engine.assess_compliance(SystemComplianceInput(**data), as_of=AS_OF)


# Tests

def test_california_profile(engine):
    profile = engine.get_regulatory_profile("ca", as_of=AS_OF)

    assert profile.state == "CA"
    assert profile.net_metering.available is True
    assert profile.net_metering.policies == ["CA-NEM1", "CA-NEM2", "CA-NEM3"]
    assert profile.net_metering.current_policy == "CA-NEM3"
    assert profile.net_metering.compensation == "net_billing"
    assert profile.net_metering.grandfathering is True
    assert profile.interconnection.fast_track_limit_kw == 30
    assert profile.interconnection.requirements == ["IEEE 1547", "UL 1741"]
    assert profile.incentives.federal == ["30% ITC"]
    assert profile.safety.rapid_shutdown_required is True


def test_profile_current_policy_follows_date(engine):
    profile = engine.get_regulatory_profile("CA", as_of=date(2020, 1, 1))

    assert profile.net_metering.current_policy == "CA-NEM2"
    assert profile.net_metering.compensation == "net_energy_metering"


def test_profile_unknown_state(engine):
    with pytest.raises(NotFoundError):
        engine.get_regulatory_profile("NV")


def test_policy_in_effect():
    policies = get_available_policies("CA")

    assert policy_in_effect(policies, date(2016, 6, 30)).id == "CA-NEM1"
    assert policy_in_effect(policies, date(2023, 4, 15)).id == "CA-NEM3"
    assert policy_in_effect(policies, date(2000, 1, 1)) is None


def test_compliance_status_thresholds():
    assert compliance_status(95) == ComplianceStatus.COMPLIANT
    assert compliance_status(94) == ComplianceStatus.CONDITIONAL
    assert compliance_status(80) == ComplianceStatus.CONDITIONAL
    assert compliance_status(79) == ComplianceStatus.NON_COMPLIANT


def test_fully_compliant_system(engine, system_data):
    assessment = assess(engine, system_data)

    assert assessment.jurisdiction == "CA-PG&E"
    assert assessment.overall.score == 100
    assert assessment.overall.status == ComplianceStatus.COMPLIANT
    assert assessment.overall.next_review_date == date(2025, 6, 1)
    assert assessment.net_metering.policy == "CA-NEM3"
    assert assessment.net_metering.grandfathered is False
    assert assessment.interconnection.fast_track_eligible is True
    assert assessment.interconnection.estimated_timeline_days == 0
    assert assessment.certifications.missing == []
    assert assessment.action_items == []
    assert assessment.recommendations == [
        "Consider battery storage to self-consume exports credited at avoided cost",
        "Confirm eligibility for available incentives: 30% ITC, SGIP",
    ]


def test_pending_interconnection_estimate(engine, system_data):
    system_data["interconnected"] = False

    assessment = assess(engine, system_data)

    assert assessment.interconnection.compliant is False
    assert assessment.interconnection.estimated_timeline_days == 45 + 14
    assert assessment.interconnection.estimated_cost == pytest.approx(150 + 200)
    assert assessment.overall.score == 90
    assert assessment.overall.status == ComplianceStatus.CONDITIONAL
    assert assessment.action_items[0].priority == "high"
    assert assessment.action_items[0].description == "Submit the interconnection application to PG&E"


def test_large_system_needs_supplemental_review(engine, system_data):
    system_data["interconnected"] = False
    system_data["capacity_kw"] = 40.0

    interconnection = assess(engine, system_data).interconnection

    assert interconnection.fast_track_eligible is False
    assert interconnection.estimated_timeline_days == 45 + 14 + 30
    assert interconnection.estimated_cost == pytest.approx(150 + 200 + 500)
    assert [i.severity for i in interconnection.issues] == [ComplianceSeverity.MAJOR, ComplianceSeverity.MINOR]


def test_grandfathered_nem2_system(engine, system_data):
    system_data["installation_date"] = date(2018, 6, 1)

    net_metering = assess(engine, system_data).net_metering

    assert net_metering.policy == "CA-NEM2"
    assert net_metering.grandfathered is True
    assert net_metering.grandfathering_expires == date(2038, 6, 1)
    assert net_metering.compliant is True
    assert net_metering.recommendations == [
        "Avoid system modifications that would end grandfathered California NEM 2.0 status until 2038-06-01"
    ]


def test_modified_nem2_system_loses_grandfathering(engine, system_data):
    system_data["installation_date"] = date(2018, 6, 1)
    system_data["system_modifications"] = True

    assessment = assess(engine, system_data)
    issue = assessment.net_metering.issues[0]

    assert assessment.net_metering.grandfathered is False
    assert issue.severity == ComplianceSeverity.MAJOR
    assert issue.id == "sys-001-net_metering-1"
    assert issue.resolution == "Re-enroll under CA-NEM3"


def test_system_over_policy_size_limit(engine, system_data):
    system_data["capacity_kw"] = 1200.0
    system_data["interconnected"] = False

    assessment = assess(engine, system_data)

    assert assessment.net_metering.issues[0].severity == ComplianceSeverity.CRITICAL
    assert assessment.overall.critical_issues == 1


def test_missing_inverter_certification(engine, system_data):
    system_data["inverter_certifications"] = ["UL 1741"]

    assessment = assess(engine, system_data)

    assert assessment.certifications.missing == ["IEEE 1547"]
    assert assessment.overall.score == 75
    assert assessment.overall.status == ComplianceStatus.NON_COMPLIANT


def test_safety_findings(engine, system_data):
    system_data["rapid_shutdown"] = False
    system_data["final_inspection_passed"] = False

    assessment = assess(engine, system_data)

    assert [i.id for i in assessment.safety.issues] == ["sys-001-safety-1", "sys-001-safety-2"]
    assert [a.priority for a in assessment.action_items] == ["critical", "high"]
    assert assessment.overall.score == 65
    assert assessment.recommendations[-1] == "Resolve critical and major issues before the next review on 2025-06-01"


def test_module_level_inverters_satisfy_rapid_shutdown(engine, system_data):
    system_data["rapid_shutdown"] = False
    system_data["inverter_type"] = "micro"

    assert assess(engine, system_data).safety.compliant is True


def test_unknown_state_or_policy(engine, system_data):
    with pytest.raises(NotFoundError):
        assess(engine, {**system_data, "state": "NV"})
    with pytest.raises(NotFoundError):
        assess(engine, {**system_data, "nem_policy_id": "XX-NEM9"})
