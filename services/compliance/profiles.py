"""
Regulatory profiles by state.

Interconnection, incentive, permitting and safety requirements are kept
here; the net metering part of a profile is derived from the NEM policy
catalogue so the two never disagree.
"""

from datetime import date
from typing import Dict, List, Optional
import logging

from models.billing import NEMPolicy
from models.compliance import (
    IncentiveProfile,
    InterconnectionProfile,
    NetMeteringProfile,
    PermittingProfile,
    RegulatoryProfile,
    SafetyRequirements,
)
from services.errors import NotFoundError
from services.net_metering.policies import get_available_policies

logger = logging.getLogger(__name__)

STATE_REQUIREMENTS: Dict[str, dict] = {
    "CA": {
        "interconnection": InterconnectionProfile(
            fast_track=True,
            fast_track_limit_kw=30,
            study_required=False,
            application_fee=150,
            timeline_days=45,
            requirements=["IEEE 1547", "UL 1741"],
        ),
        "incentives": IncentiveProfile(
            federal=["30% ITC"],
            state=["SGIP"],
            utility=["Rebate Program"],
        ),
        "permitting": PermittingProfile(
            authorities=["City Building Dept", "Utility"],
            average_timeline_days=30,
            average_cost=500,
            streamlined=True,
        ),
        "safety": SafetyRequirements(
            standards=["NEC 2020", "UL 1741"],
            inspection_required=True,
            certification_required=True,
            rapid_shutdown_required=True,
        ),
    },
}


def policy_in_effect(policies: List[NEMPolicy], on_date: date) -> Optional[NEMPolicy]:
    """The policy open for enrollment on a date (latest effective date wins)."""
    active = [
        p for p in policies
        if p.effective_date <= on_date and (p.expiration_date is None or on_date <= p.expiration_date)
    ]
    return max(active, key=lambda p: p.effective_date) if active else None


def get_regulatory_profile(
    state: str,
    utility_company: Optional[str] = None,
    as_of: Optional[date] = None,
) -> RegulatoryProfile:
    """
    Regulatory summary for a state.

    Raises:
        NotFoundError: If no requirements are on file for the state
    """
    state = state.upper()
    requirements = STATE_REQUIREMENTS.get(state)
    if requirements is None:
        raise NotFoundError("RegulatoryProfile", state)

    policies = get_available_policies(state, utility_company)
    current = policy_in_effect(policies, as_of or date.today())

    net_metering = NetMeteringProfile(
        available=bool(policies),
        policies=[p.id for p in policies],
        current_policy=current.id if current else None,
        compensation=current.compensation_method.value if current else None,
        system_size_limit_kw=current.system_size_limit_kw if current else 0.0,
        aggregate_cap_percent=current.aggregate_cap_percent if current else 0.0,
        grandfathering=any(p.grandfathering_enabled for p in policies),
    )

    logger.debug(f"Regulatory profile for {state}: {len(policies)} NEM policy(ies), current {net_metering.current_policy}")

    return RegulatoryProfile(
        state=state,
        utility_company=utility_company,
        net_metering=net_metering,
        interconnection=requirements["interconnection"].model_copy(deep=True),
        incentives=requirements["incentives"].model_copy(deep=True),
        permitting=requirements["permitting"].model_copy(deep=True),
        safety=requirements["safety"].model_copy(deep=True),
    )
