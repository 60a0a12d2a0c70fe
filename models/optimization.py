"""
Pydantic models for load profile analysis, rate optimization and
time-of-use optimization.
"""

from enum import Enum
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from models.rates import CustomerClass, RateOptimizationResult, TOUPeriodType


# =============================================================================
# ENUMS
# =============================================================================

class LoadShape(str, Enum):
    FLAT = "flat"
    PEAKED = "peaked"
    VARIABLE = "variable"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# =============================================================================
# LOAD PROFILE
# =============================================================================

class HourlyPattern(BaseModel):
    hour: int
    average_load: float
    peak_load: float
    frequency: int = Field(..., description="Readings in this hour")
    variability: float = Field(..., description="Sample standard deviation")


class DailyPattern(BaseModel):
    day_of_week: int = Field(..., description="0=Sunday .. 6=Saturday")
    average_usage: float
    peak_demand: float
    load_shape: LoadShape


class MonthlyPattern(BaseModel):
    month: int
    average_usage: float
    peak_demand: float
    cooling_load: Optional[float] = None
    heating_load: Optional[float] = None


class SeasonalPattern(BaseModel):
    season: Season
    months: List[int]
    average_usage: float
    peak_demand: float
    dominant_load: str = Field(..., description="cooling, heating or baseload")


class LoadCharacteristics(BaseModel):
    average_load: float
    peak_load: float
    minimum_load: float
    load_factor: float
    demand_variability: float = Field(..., description="Coefficient of variation")
    base_load: float
    flexible_load: float


class TOUUsageAnalysis(BaseModel):
    peak_usage: float = Field(..., description="kWh in hours 16-21")
    shoulder_usage: float = Field(..., description="kWh in hours 9-15 and 22-23")
    off_peak_usage: float
    peak_coincidence: float = Field(..., description="% of average load seen in system peak hours 17-19")


class DemandResponsePotential(BaseModel):
    shiftable_load: float
    curtailable_load: float
    responsiveness: Priority


class LoadProfile(BaseModel):
    customer_id: str
    profile_type: CustomerClass
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    total_days: int
    hourly: List[HourlyPattern]
    daily: List[DailyPattern]
    monthly: List[MonthlyPattern]
    seasonal: List[SeasonalPattern]
    characteristics: LoadCharacteristics
    tou_analysis: TOUUsageAnalysis
    demand_response: DemandResponsePotential


class RateOptimizationReport(BaseModel):
    load_profile: LoadProfile
    optimization: RateOptimizationResult


# =============================================================================
# TIME-OF-USE OPTIMIZATION
# =============================================================================

class TOUPeriodPerformance(BaseModel):
    name: str
    period: Optional[TOUPeriodType] = None
    rate: float
    kwh: float
    cost: float
    kwh_share: float = Field(..., description="% of total kWh")
    cost_share: float = Field(..., description="% of total energy cost")


class TOUPerformance(BaseModel):
    schedule_id: str
    total_kwh: float
    total_cost: float
    average_rate: float
    peak_kwh_share: float = Field(..., description="% of kWh in peak and super-peak periods")
    suitability_score: int = Field(..., ge=0, le=100)
    periods: List[TOUPeriodPerformance]


class LoadShiftRecommendation(BaseModel):
    from_period: str
    to_period: str
    shiftable_kwh: float
    rate_difference: float
    savings: float = Field(..., description="$ over the analysed usage")
    annual_savings: float
    priority: Priority
    description: str


class LoadShiftingPlan(BaseModel):
    schedule_id: str
    shiftable_fraction: float
    recommendations: List[LoadShiftRecommendation]
    total_savings: float
    total_annual_savings: float


class BatteryDayOperation(BaseModel):
    day: date
    charge_period: Optional[str] = None
    charged_kwh: float
    discharged_kwh: float
    charge_cost: float
    discharge_value: float
    savings: float


class BatteryOptimization(BaseModel):
    schedule_id: str
    capacity_kwh: float
    power_kw: float
    round_trip_efficiency: float
    days: List[BatteryDayOperation]
    total_charged_kwh: float
    total_discharged_kwh: float
    total_savings: float
    estimated_annual_savings: float
    equivalent_cycles: float
