"""
API endpoints for utility rate schedules.

Looks up schedules, calculates bills, compares schedules for a location
and syncs schedules from external rate providers. The rate engine is
shared by every router so synced schedules are visible to billing and
optimization.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, HTTPException, Path, Query, Request
from pydantic import BaseModel, Field

from middleware.rate_limiter import limiter, RATE_LIMITS
from models.rates import (
    BillCalculationResult,
    CustomerClass,
    RateOptimizationResult,
    RateSchedule,
    UsageRecord,
)
from services.errors import SolarAppError
from services.tariff.utility_rate_api import RateValidationResult, SyncStatus, UtilityRateAPIService
from services.tariff.utility_rate_engine import UtilityRateEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/utility-rates", tags=["Utility Rates"])

rate_engine = UtilityRateEngine()
rate_api_service = UtilityRateAPIService(rate_engine=rate_engine)


# Request Models

class CalculateBillRequest(BaseModel):
    """Request body for POST /api/utility-rates/bill"""
    schedule_id: str = Field(..., description="Rate schedule to price against")
    usage_data: List[UsageRecord] = Field(..., description="Interval readings")
    billing_period_start: datetime = Field(..., description="Period start (inclusive, ISO 8601)")
    billing_period_end: datetime = Field(..., description="Period end (inclusive, ISO 8601)")


class OptimizeRatesRequest(BaseModel):
    """Request body for POST /api/utility-rates/optimize"""
    zip_code: str = Field(..., description="Service address zip code")
    usage_data: List[UsageRecord] = Field(..., description="Interval readings, ideally a full year")
    customer_class: CustomerClass = Field(CustomerClass.RESIDENTIAL, description="Customer class")
    current_schedule_id: Optional[str] = Field(None, description="Customer's current schedule")


class SyncRatesRequest(BaseModel):
    """Request body for POST /api/utility-rates/sync"""
    zip_code: str = Field(..., description="Zip code to sync schedules for")
    customer_class: CustomerClass = Field(CustomerClass.RESIDENTIAL, description="Customer class")
    provider_id: str = Field("openei_urdb", description="Rate provider ID (openei_urdb or utility_api)")


# Endpoints

@router.get("/schedules", response_model=List[RateSchedule])
@limiter.limit(RATE_LIMITS["default"])
async def find_rate_schedules(
    request: Request,
    zip_code: Optional[str] = Query(None, description="Only schedules serving this zip code"),
    customer_class: CustomerClass = Query(CustomerClass.RESIDENTIAL, description="Customer class"),
    utility_company: Optional[str] = Query(None, description="Utility name filter"),
    on_date: Optional[date] = Query(None, description="Date schedules must be active on"),
):
    """
    List rate schedules.

    With a zip_code, returns the active schedules serving it for the
    customer class, solar-friendly schedules first; otherwise every
    registered schedule.
    """
    try:
        if zip_code:
            return rate_engine.find_rate_schedules(zip_code, customer_class, utility_company, on_date)
        return rate_engine.list_rate_schedules()
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to list rate schedules: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to list rate schedules: {str(e)}")


@router.get("/schedules/{schedule_id}", response_model=RateSchedule)
@limiter.limit(RATE_LIMITS["default"])
async def get_rate_schedule(request: Request, schedule_id: str = Path(..., description="Rate schedule ID")):
    try:
        return rate_engine.get_rate_schedule(schedule_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to get rate schedule {schedule_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to get rate schedule: {str(e)}")


@router.get("/schedules/{schedule_id}/validation", response_model=RateValidationResult)
@limiter.limit(RATE_LIMITS["default"])
async def validate_rate_schedule(request: Request, schedule_id: str = Path(..., description="Rate schedule ID")):
    """Validate a registered schedule and score its data quality (0-100)."""
    try:
        return rate_api_service.validate_rate_data(schedule_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Failed to validate rate schedule {schedule_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to validate rate schedule: {str(e)}")


@router.post("/bill", response_model=BillCalculationResult)
@limiter.limit(RATE_LIMITS["calculation"])
async def calculate_bill(request: Request, body: CalculateBillRequest):
    """
    Calculate a bill for interval usage on a schedule.

    **Example Request:**
    ```json
    {
      "schedule_id": "pge-e-tou-c",
      "usage_data": [{"timestamp": "2024-06-03T17:00:00", "kwh": 2.5, "kw": 2.5}],
      "billing_period_start": "2024-06-01T00:00:00",
      "billing_period_end": "2024-06-30T23:59:59"
    }
    ```
    """
    try:
        if body.billing_period_start > body.billing_period_end:
            raise HTTPException(
                status_code=400,
                detail="billing_period_start must not be after billing_period_end"
            )
        return rate_engine.calculate_bill(
            body.schedule_id,
            body.usage_data,
            body.billing_period_start,
            body.billing_period_end,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Bill calculation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Bill calculation failed: {str(e)}")


@router.post("/optimize", response_model=RateOptimizationResult)
@limiter.limit(RATE_LIMITS["calculation"])
async def optimize_rates(request: Request, body: OptimizeRatesRequest):
    """Compare every schedule serving a location over the same usage."""
    try:
        return rate_engine.optimize_rates(
            body.zip_code,
            body.usage_data,
            customer_class=body.customer_class,
            current_schedule_id=body.current_schedule_id,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Rate optimization failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Rate optimization failed: {str(e)}")


@router.get("/providers", response_model=List[Dict[str, Any]])
@limiter.limit(RATE_LIMITS["default"])
async def get_api_providers(request: Request):
    """Configured rate providers and whether each is enabled."""
    return rate_api_service.get_api_providers()


@router.post("/sync", response_model=SyncStatus)
@limiter.limit(RATE_LIMITS["sync"])
async def sync_utility_rates(request: Request, body: SyncRatesRequest):
    """
    Fetch schedules for a zip code from a provider and register the valid ones.

    A provider failure is reported as a failed sync status, not an error.
    """
    try:
        return rate_api_service.sync_utility_rates(body.zip_code, body.customer_class, body.provider_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Rate sync for {body.zip_code} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Rate sync failed: {str(e)}")


@router.get("/sync/status", response_model=List[SyncStatus])
@limiter.limit(RATE_LIMITS["default"])
async def get_sync_status(
    request: Request,
    zip_code: Optional[str] = Query(None, description="Only the status for this zip code"),
):
    return rate_api_service.get_sync_status(zip_code)
