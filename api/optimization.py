"""
API endpoints for load profiling and rate/TOU optimization.
"""

from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from api.utility_rates import rate_engine
from middleware.rate_limiter import limiter, RATE_LIMITS
from models.optimization import (
    BatteryOptimization,
    LoadProfile,
    LoadShiftingPlan,
    RateOptimizationReport,
    TOUPerformance,
)
from models.rates import CustomerClass, UsageRecord
from services.errors import SolarAppError
from services.optimization import RateOptimizer, TOUOptimizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/optimization", tags=["Optimization"])


# Request Models

class LoadProfileRequest(BaseModel):
    """Request body for POST /api/optimization/load-profile"""
    customer_id: str
    usage_data: List[UsageRecord]


class RateOptimizationRequest(BaseModel):
    """Request body for POST /api/optimization/rates"""
    customer_id: str
    zip_code: str
    usage_data: List[UsageRecord] = Field(..., description="Interval readings, ideally a full year")
    customer_class: Optional[CustomerClass] = Field(None, description="Inferred from peak load when absent")
    current_schedule_id: Optional[str] = None
    on_date: Optional[date] = None


class TOURequest(BaseModel):
    """Request body for POST /api/optimization/tou/performance"""
    schedule_id: str = Field(..., description="TOU rate schedule")
    usage_data: List[UsageRecord]
    customer_id: str = "current"


class LoadShiftingRequest(BaseModel):
    """Request body for POST /api/optimization/tou/load-shifting"""
    schedule_id: str
    usage_data: List[UsageRecord]
    shiftable_fraction: float = Field(0.2, gt=0, le=1, description="Share of each period's kWh that can move")


class BatteryRequest(BaseModel):
    """Request body for POST /api/optimization/tou/battery"""
    schedule_id: str
    usage_data: List[UsageRecord]
    capacity_kwh: float = Field(..., gt=0)
    power_kw: float = Field(..., gt=0)
    round_trip_efficiency: float = Field(0.9, gt=0, le=1)


# Endpoints

@router.post("/load-profile", response_model=LoadProfile)
@limiter.limit(RATE_LIMITS["calculation"])
async def analyze_load_profile(request: Request, body: LoadProfileRequest):
    """Hourly, daily, monthly and seasonal load patterns with demand response potential."""
    try:
        return RateOptimizer(rate_engine=rate_engine).analyze_load_profile(body.customer_id, body.usage_data)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Load profile analysis failed for {body.customer_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Load profile analysis failed: {str(e)}")


@router.post("/rates", response_model=RateOptimizationReport)
@limiter.limit(RATE_LIMITS["calculation"])
async def optimize_rates(request: Request, body: RateOptimizationRequest):
    """Rank schedules for a customer's usage and attach savings strategies."""
    try:
        optimizer = RateOptimizer(rate_engine=rate_engine)
        return optimizer.optimize(
            body.customer_id,
            body.usage_data,
            body.zip_code,
            customer_class=body.customer_class,
            current_schedule_id=body.current_schedule_id,
            on_date=body.on_date,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Rate optimization failed for {body.customer_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Rate optimization failed: {str(e)}")


@router.post("/tou/performance", response_model=TOUPerformance)
@limiter.limit(RATE_LIMITS["calculation"])
async def analyze_current_tou_performance(request: Request, body: TOURequest):
    try:
        optimizer = TOUOptimizer(rate_engine=rate_engine)
        return optimizer.analyze_current_tou_performance(body.schedule_id, body.usage_data, body.customer_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"TOU analysis failed on {body.schedule_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"TOU analysis failed: {str(e)}")


@router.post("/tou/load-shifting", response_model=LoadShiftingPlan)
@limiter.limit(RATE_LIMITS["calculation"])
async def generate_load_shifting_recommendations(request: Request, body: LoadShiftingRequest):
    try:
        optimizer = TOUOptimizer(rate_engine=rate_engine)
        return optimizer.generate_load_shifting_recommendations(
            body.schedule_id, body.usage_data, body.shiftable_fraction
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Load shifting analysis failed on {body.schedule_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Load shifting analysis failed: {str(e)}")


@router.post("/tou/battery", response_model=BatteryOptimization)
@limiter.limit(RATE_LIMITS["calculation"])
async def optimize_battery_tou_operation(request: Request, body: BatteryRequest):
    """Simulate daily battery arbitrage: charge in the cheapest period, discharge at the most expensive."""
    try:
        optimizer = TOUOptimizer(rate_engine=rate_engine)
        return optimizer.optimize_battery_tou_operation(
            body.schedule_id,
            body.usage_data,
            body.capacity_kwh,
            body.power_kw,
            body.round_trip_efficiency,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Battery optimization failed on {body.schedule_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Battery optimization failed: {str(e)}")
