"""
API endpoints for solar billing.

Monthly solar bills, pre/post-solar comparisons and projections, and
billing cycles with annual true-up.
"""

from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from api.utility_rates import rate_engine
from middleware.rate_limiter import limiter, RATE_LIMITS
from models.billing import (
    BillingComparison,
    BillingCycle,
    BillingProjection,
    BillingRates,
    EnergyFlow,
    MonthlyBillDetail,
    MonthlyProduction,
    MonthlyUsage,
    TrueUpPeriod,
    YearlyProjection,
)
from services.billing import BillingCycleManager, SolarBillingCalculator
from services.errors import SolarAppError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/billing", tags=["Billing"])


# Request Models

class MonthlyBillRequest(BaseModel):
    """Request body for POST /api/billing/monthly"""
    schedule_id: str = Field(..., description="Rate schedule")
    usage: MonthlyUsage = Field(..., description="Consumption for the month")
    production: Optional[MonthlyProduction] = Field(None, description="Solar production for the month")
    nem_policy_id: Optional[str] = Field(None, description="Net metering policy for export credits")


class BillingComparisonRequest(BaseModel):
    """Request body for POST /api/billing/comparison"""
    customer_id: str
    schedule_id: str
    usage: List[MonthlyUsage]
    production: List[MonthlyProduction]
    nem_policy_id: Optional[str] = None
    projection_years: int = Field(0, ge=0, le=40, description="Years to project forward")
    rate_escalation: float = Field(3.0, description="Annual rate escalation (%)")
    usage_growth: float = Field(0.0, description="Annual usage growth (%)")
    system_degradation: float = Field(0.5, description="Annual production degradation (%)")


class FutureBillingRequest(BaseModel):
    """Request body for POST /api/billing/projection"""
    base_annual_bill: float = Field(..., ge=0, description="First-year annual bill with solar")
    base_annual_kwh: float = Field(..., ge=0)
    years: int = Field(..., ge=1, le=40)
    rate_escalation: float = 3.0
    usage_growth: float = 0.0
    system_degradation: float = 0.0
    annual_production: Optional[float] = None
    annual_solar_savings: float = Field(0.0, ge=0, description="First-year savings from solar")
    start_year: Optional[int] = None


class BillingCycleRequest(BaseModel):
    """Request body for POST /api/billing/cycles"""
    customer_id: str
    energy_data: List[EnergyFlow] = Field(..., description="Interval production and consumption")
    period_start: Optional[date] = Field(None, description="Bill a single month starting here; all months when absent")
    carryover_credit: float = Field(0.0, ge=0, description="Credit carried in from the previous cycle")
    interval_hours: float = Field(0.25, gt=0, description="Length of each reading in hours")
    utility_company: Optional[str] = None
    rate_schedule_id: Optional[str] = None
    nem_policy_id: Optional[str] = None
    rates: Optional[BillingRates] = Field(None, description="Overrides the default cycle rates")


class TrueUpRequest(BaseModel):
    """Request body for POST /api/billing/true-up"""
    customer_id: str
    true_up_year: int = Field(..., description="Year whose true-up month closes the period")
    cycles: List[BillingCycle]
    payments_received: float = Field(0.0, ge=0)
    rates: Optional[BillingRates] = None


class BillingProjectionRequest(BaseModel):
    """Request body for POST /api/billing/cycles/projection"""
    customer_id: str
    usage_history: List[float] = Field(..., description="Monthly consumption history (kWh), oldest first")
    system_capacity_kw: float = Field(..., ge=0)
    months: int = Field(12, ge=1, le=60)
    monthly_production: Optional[List[float]] = Field(None, description="Expected monthly production (kWh)")
    start_date: Optional[date] = None
    carryover_credit: float = Field(0.0, ge=0)
    rates: Optional[BillingRates] = None


# Endpoints

@router.post("/monthly", response_model=MonthlyBillDetail)
@limiter.limit(RATE_LIMITS["calculation"])
async def calculate_monthly_bill(request: Request, body: MonthlyBillRequest):
    """
    Calculate one month's bill with solar.

    Grid import is billed on the schedule; exports are credited under the
    net metering policy (retail rate for NEM, export rate for net billing).
    """
    try:
        calculator = SolarBillingCalculator(rate_engine=rate_engine)
        return calculator.calculate_monthly_bill(body.usage, body.schedule_id, body.production, body.nem_policy_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Monthly bill calculation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Monthly bill calculation failed: {str(e)}")


@router.post("/comparison", response_model=BillingComparison)
@limiter.limit(RATE_LIMITS["calculation"])
async def calculate_billing_comparison(request: Request, body: BillingComparisonRequest):
    """Pre-solar versus post-solar bills month by month, with optional projections."""
    try:
        calculator = SolarBillingCalculator(rate_engine=rate_engine)
        return calculator.calculate_billing_comparison(
            body.customer_id,
            body.schedule_id,
            body.usage,
            body.production,
            nem_policy_id=body.nem_policy_id,
            projection_years=body.projection_years,
            rate_escalation=body.rate_escalation,
            usage_growth=body.usage_growth,
            system_degradation=body.system_degradation,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Billing comparison failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Billing comparison failed: {str(e)}")


@router.post("/projection", response_model=List[YearlyProjection])
@limiter.limit(RATE_LIMITS["calculation"])
async def project_future_billing(request: Request, body: FutureBillingRequest):
    try:
        calculator = SolarBillingCalculator(rate_engine=rate_engine)
        return calculator.project_future_billing(**body.model_dump())
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Billing projection failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Billing projection failed: {str(e)}")


@router.post("/cycles", response_model=List[BillingCycle])
@limiter.limit(RATE_LIMITS["calculation"])
async def create_billing_cycles(request: Request, body: BillingCycleRequest):
    """
    Create billing cycles from interval energy data.

    With period_start, bills that month only; otherwise one cycle per
    month in the data with export credit carried between cycles.
    """
    try:
        manager = BillingCycleManager(rates=body.rates)
        options = dict(
            carryover_credit=body.carryover_credit,
            interval_hours=body.interval_hours,
            utility_company=body.utility_company,
            rate_schedule_id=body.rate_schedule_id,
            nem_policy_id=body.nem_policy_id,
        )
        if body.period_start:
            return [manager.create_billing_cycle(body.customer_id, body.period_start, body.energy_data, **options)]
        return manager.create_billing_cycles(body.customer_id, body.energy_data, **options)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Billing cycle creation failed for {body.customer_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Billing cycle creation failed: {str(e)}")


@router.post("/true-up", response_model=TrueUpPeriod)
@limiter.limit(RATE_LIMITS["calculation"])
async def process_annual_true_up(request: Request, body: TrueUpRequest):
    """Settle a year of billing cycles, cashing out excess generation."""
    try:
        manager = BillingCycleManager(rates=body.rates)
        return manager.process_annual_true_up(
            body.customer_id,
            body.true_up_year,
            body.cycles,
            payments_received=body.payments_received,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"True-up failed for {body.customer_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"True-up failed: {str(e)}")


@router.post("/cycles/projection", response_model=BillingProjection)
@limiter.limit(RATE_LIMITS["calculation"])
async def generate_billing_projections(request: Request, body: BillingProjectionRequest):
    try:
        manager = BillingCycleManager(rates=body.rates)
        return manager.generate_billing_projections(
            body.customer_id,
            body.usage_history,
            body.system_capacity_kw,
            months=body.months,
            monthly_production=body.monthly_production,
            start_date=body.start_date,
            carryover_credit=body.carryover_credit,
        )
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        logger.error(f"Billing projection failed for {body.customer_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Billing projection failed: {str(e)}")
