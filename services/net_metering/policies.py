"""
Net energy metering policy catalogue.

California's three NEM generations. NEM 1.0 and 2.0 credit exports at the
retail rate and grandfather existing customers for 20 years; NEM 3.0
(net billing) credits exports at an avoided-cost rate with no
grandfathering.
"""

from datetime import date
from typing import Dict, List, Optional
import logging

from models.billing import CompensationMethod, NEMPolicy
from services.errors import NotFoundError
from utils.dates import add_years

logger = logging.getLogger(__name__)

GRANDFATHERING_CONDITIONS = ["No system modifications", "Same customer"]

NEM_POLICIES: Dict[str, NEMPolicy] = {
    "CA-NEM1": NEMPolicy(
        id="CA-NEM1",
        name="California NEM 1.0",
        version="1.0",
        state="CA",
        effective_date=date(2009, 1, 1),
        expiration_date=date(2016, 6, 30),
        compensation_method=CompensationMethod.NET_ENERGY_METERING,
        grandfathering_enabled=True,
        grandfathering_years=20,
        grandfathering_conditions=GRANDFATHERING_CONDITIONS,
        monthly_carryover=True,
        annual_true_up=False,
    ),
    "CA-NEM2": NEMPolicy(
        id="CA-NEM2",
        name="California NEM 2.0",
        version="2.0",
        state="CA",
        effective_date=date(2016, 7, 1),
        expiration_date=date(2023, 4, 14),
        compensation_method=CompensationMethod.NET_ENERGY_METERING,
        grandfathering_enabled=True,
        grandfathering_years=20,
        grandfathering_conditions=GRANDFATHERING_CONDITIONS,
    ),
    "CA-NEM3": NEMPolicy(
        id="CA-NEM3",
        name="California NEM 3.0",
        version="3.0",
        state="CA",
        effective_date=date(2023, 4, 15),
        compensation_method=CompensationMethod.NET_BILLING,
    ),
}


def get_policy(policy_id: str) -> NEMPolicy:
    """
    Raises:
        NotFoundError: If the policy id is unknown
    """
    policy = NEM_POLICIES.get(policy_id)
    if policy is None:
        raise NotFoundError("NEMPolicy", policy_id)
    return policy


def get_available_policies(state: str, utility_company: Optional[str] = None) -> List[NEMPolicy]:
    """Policies for a state, optionally limited to those covering a utility."""
    return [
        p for p in NEM_POLICIES.values()
        if p.state == state.upper()
        and (not utility_company or p.utility_company in ("All", utility_company))
    ]


def check_grandfathering_eligibility(
    policy: NEMPolicy,
    installation_date: date,
    system_modifications: bool = False,
    as_of: Optional[date] = None,
) -> bool:
    """
    Whether a system installed on installation_date keeps this policy.

    Requires grandfathering on the policy, an unmodified system, an
    installation on or before the policy's expiration (or as_of for an open
    policy) and an as_of date still inside the grandfathering term.
    """
    as_of = as_of or date.today()
    if not policy.grandfathering_enabled or system_modifications:
        return False

    cutoff = policy.expiration_date or as_of
    if installation_date > cutoff:
        return False

    if policy.grandfathering_years and as_of > add_years(installation_date, policy.grandfathering_years):
        logger.debug(f"Grandfathering on {policy.id} lapsed for system installed {installation_date}")
        return False
    return True
