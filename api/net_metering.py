"""
API endpoints for net energy metering.

NEM policy lookup, grandfathering eligibility and monthly/annual net
metering calculations.
"""

from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Path, Query, Request
from pydantic import BaseModel, Field

from middleware.rate_limiter import limiter, RATE_LIMITS
from models.billing import EnergyFlow, NEMCalculationResult, NEMPolicy, NEMRateData
from services.errors import SolarAppError
from services.net_metering import NetMeteringEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/net-metering", tags=["Net Metering"])

engine = NetMeteringEngine()


# Request/Response Models

class NetMeteringRequest(BaseModel):
    """Request body for POST /api/net-metering/calculate"""
    policy_id: str = Field(..., description="NEM policy, e.g. CA-NEM2")
    energy_data: List[EnergyFlow] = Field(..., description="Interval production and consumption")
    rates: Optional[NEMRateData] = Field(None, description="Overrides the default NEM rates")
    system_capacity_kw: float = Field(10.0, gt=0)
    include_financial_analysis: bool = False
    discount_rate: float = Field(6.0, ge=0, description="Discount rate (%) for NPV")
    system_lifetime: int = Field(25, ge=1, le=50, description="Years")
    system_cost: Optional[float] = Field(None, ge=0, description="Installed cost, subtracted from NPV and used for payback")


class GrandfatheringResponse(BaseModel):
    """Response model for GET /api/net-metering/policies/{policy_id}/grandfathering"""
    policy_id: str
    installation_date: date
    system_modifications: bool
    eligible: bool


# Endpoints

@router.get("/policies", response_model=List[NEMPolicy])
@limiter.limit(RATE_LIMITS["default"])
async def get_available_policies(
    request: Request,
    state: str = Query(..., min_length=2, max_length=2, description="Two-letter state code"),
    utility_company: Optional[str] = Query(None, description="Utility the policy must cover"),
):
    try:
        return engine.get_available_policies(state, utility_company)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to list NEM policies for {state}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list NEM policies: {str(e)}")


@router.get("/policies/{policy_id}", response_model=NEMPolicy)
@limiter.limit(RATE_LIMITS["default"])
async def get_policy(request: Request, policy_id: str = Path(..., description="NEM policy ID")):
    try:
        return engine.get_policy(policy_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to get NEM policy {policy_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to get NEM policy: {str(e)}")


@router.get("/policies/{policy_id}/grandfathering", response_model=GrandfatheringResponse)
@limiter.limit(RATE_LIMITS["default"])
async def check_grandfathering_eligibility(
    request: Request,
    policy_id: str = Path(..., description="NEM policy ID"),
    installation_date: date = Query(..., description="System installation date"),
    system_modifications: bool = Query(False, description="System was modified after enrollment"),
):
    """Whether a system keeps its original NEM policy."""
    try:
        eligible = engine.check_grandfathering_eligibility(policy_id, installation_date, system_modifications)
        return GrandfatheringResponse(
            policy_id=policy_id,
            installation_date=installation_date,
            system_modifications=system_modifications,
            eligible=eligible,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Grandfathering check failed for {policy_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Grandfathering check failed: {str(e)}")


@router.post("/calculate", response_model=NEMCalculationResult)
@limiter.limit(RATE_LIMITS["calculation"])
async def calculate_net_metering(request: Request, body: NetMeteringRequest):
    """
    Monthly net metering bills, annual true-up and optional financial analysis.

    **Example Request:**
    ```json
    {
      "policy_id": "CA-NEM2",
      "energy_data": [
        {"timestamp": "2024-06-01T12:00:00", "production": 6.0, "consumption": 2.0}
      ],
      "system_capacity_kw": 8.0
    }
    ```
    """
    try:
        return engine.calculate_net_metering(
            body.policy_id,
            body.energy_data,
            rates=body.rates,
            system_capacity_kw=body.system_capacity_kw,
            include_financial_analysis=body.include_financial_analysis,
            discount_rate=body.discount_rate,
            system_lifetime=body.system_lifetime,
            system_cost=body.system_cost,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Net metering calculation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Net metering calculation failed: {str(e)}")
