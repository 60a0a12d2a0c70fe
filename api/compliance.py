"""
API endpoints for regulatory compliance.
"""

from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, HTTPException, Path, Query, Request

from middleware.rate_limiter import limiter, RATE_LIMITS
from models.compliance import ComplianceAssessment, RegulatoryProfile, SystemComplianceInput
from services.compliance import RegulatoryComplianceEngine
from services.errors import SolarAppError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/compliance", tags=["Regulatory Compliance"])

engine = RegulatoryComplianceEngine()


@router.get("/profiles/{state}", response_model=RegulatoryProfile)
@limiter.limit(RATE_LIMITS["default"])
async def get_regulatory_profile(
    request: Request,
    state: str = Path(..., min_length=2, max_length=2, description="Two-letter state code"),
    utility_company: Optional[str] = Query(None, description="Utility serving the site"),
):
    """Net metering, interconnection, incentive, permitting and safety requirements for a state."""
    try:
        return engine.get_regulatory_profile(state, utility_company)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to get regulatory profile for {state}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to get regulatory profile: {str(e)}")


@router.post("/assessments", response_model=ComplianceAssessment)
@limiter.limit(RATE_LIMITS["calculation"])
async def assess_compliance(
    request: Request,
    body: SystemComplianceInput,
    as_of: Optional[date] = Query(None, description="Assessment date (defaults to today)"),
):
    """
    Assess a system for net metering eligibility, interconnection,
    equipment certifications and safety.

    Status is compliant at a score of 95 or more, conditional at 80 or
    more, otherwise non_compliant.
    """
    try:
        return engine.assess_compliance(body, as_of=as_of)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Compliance assessment failed for {body.system_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Compliance assessment failed: {str(e)}")
