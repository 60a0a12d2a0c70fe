"""
Pydantic models for utility rate schedules and bill calculation.

A rate schedule combines fixed charges, energy charges (flat, tiered or
time-of-use), demand charges, per-kWh riders and taxes, plus the net
metering terms the utility offers on that schedule.
"""

from enum import Enum
from datetime import date, datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


# =============================================================================
# ENUMS
# =============================================================================

class RateType(str, Enum):
    FLAT = "flat"
    TIERED = "tiered"
    TIME_OF_USE = "time_of_use"
    TIERED_TOU = "tiered_tou"
    DEMAND = "demand"


class CustomerClass(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"
    AGRICULTURAL = "agricultural"


class TOUPeriodType(str, Enum):
    SUPER_OFF_PEAK = "super_off_peak"
    OFF_PEAK = "off_peak"
    SHOULDER = "shoulder"
    PEAK = "peak"
    SUPER_PEAK = "super_peak"


class DemandChargeType(str, Enum):
    FACILITY = "facility"
    TIME_OF_USE = "time_of_use"
    COINCIDENT_PEAK = "coincident_peak"
    NON_COINCIDENT_PEAK = "non_coincident_peak"


class NetMeteringPolicyType(str, Enum):
    NET_ENERGY_METERING = "net_energy_metering"
    NET_BILLING = "net_billing"
    BUY_ALL_SELL_ALL = "buy_all_sell_all"
    AVOIDED_COST = "avoided_cost"


# =============================================================================
# RATE SCHEDULE
# =============================================================================

def _validate_hhmm(value: str) -> str:
    parts = value.split(":")
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    if int(parts[0]) > 23 or int(parts[1]) > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return value


class TimeOfUsePeriod(BaseModel):
    """
    A priced window of the week.

    Days of week use 0 = Sunday. start_time and end_time are inclusive
    HH:MM bounds; a start later than the end wraps past midnight.
    """

    id: str
    name: str
    period: TOUPeriodType
    months: List[int] = Field(default_factory=lambda: list(range(1, 13)), description="Months 1-12")
    days_of_week: List[int] = Field(default_factory=lambda: list(range(7)), description="0=Sunday .. 6=Saturday")
    start_time: str = Field(..., description="Window start, HH:MM inclusive")
    end_time: str = Field(..., description="Window end, HH:MM inclusive")
    rate: float = Field(..., description="$/kWh", ge=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time_format(cls, v: str) -> str:
        return _validate_hhmm(v)


class RateTier(BaseModel):
    tier: int
    name: str
    threshold: float = Field(..., description="kWh per month billed in this tier", gt=0)
    rate: float = Field(..., description="$/kWh", ge=0)


class DemandCharge(BaseModel):
    type: DemandChargeType
    rate: float = Field(..., description="$/kW per month", ge=0)


class FixedCharges(BaseModel):
    connection_fee: float = Field(0.0, description="$ per day of the billing period", ge=0)
    customer_charge: float = Field(0.0, description="$ per month", ge=0)
    facility_charge: float = Field(0.0, description="$ per kW of peak demand", ge=0)
    service_charge: float = Field(0.0, description="$ per month", ge=0)


class EnergyCharges(BaseModel):
    flat_rate: Optional[float] = Field(None, description="$/kWh", ge=0)
    tiered_rates: List[RateTier] = Field(default_factory=list)
    time_of_use_rates: List[TimeOfUsePeriod] = Field(default_factory=list)


class AdditionalCharges(BaseModel):
    public_purpose_programs: float = Field(0.0, description="$/kWh", ge=0)
    state_and_local_taxes: float = Field(0.0, description="% applied to fixed + energy + demand", ge=0)


class NetMeteringTerms(BaseModel):
    available: bool = True
    policy: NetMeteringPolicyType = NetMeteringPolicyType.NET_ENERGY_METERING
    credit_rate: Optional[float] = Field(None, description="$/kWh credited for exports")
    max_system_size_kw: Optional[float] = None


class RateSchedule(BaseModel):
    """A utility tariff for one customer class and service territory."""

    id: str
    utility_company: str
    rate_name: str
    rate_code: str
    description: str = ""
    customer_class: CustomerClass = CustomerClass.RESIDENTIAL
    rate_type: RateType
    zip_codes: List[str] = Field(default_factory=list)
    states: List[str] = Field(default_factory=list)
    fixed_charges: FixedCharges = Field(default_factory=FixedCharges)
    energy_charges: EnergyCharges = Field(default_factory=EnergyCharges)
    demand_charges: List[DemandCharge] = Field(default_factory=list)
    additional_charges: AdditionalCharges = Field(default_factory=AdditionalCharges)
    net_metering: NetMeteringTerms = Field(default_factory=NetMeteringTerms)
    effective_date: date
    expiration_date: Optional[date] = None
    solar_friendly: bool = False
    time_of_use_optimized: bool = False
    last_updated: Optional[datetime] = None

    def is_active(self, on: date) -> bool:
        return self.effective_date <= on and (self.expiration_date is None or on <= self.expiration_date)


class UsageRecord(BaseModel):
    """One metered interval."""

    timestamp: datetime
    kwh: float = Field(..., description="Energy in the interval")
    kw: Optional[float] = Field(None, description="Demand in the interval")


# =============================================================================
# BILL RESULT
# =============================================================================

class BillingPeriod(BaseModel):
    start_date: datetime
    end_date: datetime
    days_in_period: int


class PeriodUsage(BaseModel):
    kwh: float
    rate: float
    cost: float


class UsageBreakdown(BaseModel):
    total_kwh: float
    peak_kw: float
    time_of_use: Dict[str, PeriodUsage] = Field(default_factory=dict)
    tiered: Dict[str, PeriodUsage] = Field(default_factory=dict)


class FixedChargeBreakdown(BaseModel):
    connection_fee: float
    customer_charge: float
    facility_charge: float
    service_charge: float
    total: float


class EnergyChargeBreakdown(BaseModel):
    base: float
    time_of_use: float
    tiered: float
    total: float


class DemandChargeBreakdown(BaseModel):
    facility: float = 0.0
    time_of_use: float = 0.0
    coincident_peak: float = 0.0
    total: float = 0.0


class AdditionalChargeBreakdown(BaseModel):
    public_purpose: float
    taxes: float
    total: float


class BillCharges(BaseModel):
    fixed_charges: FixedChargeBreakdown
    energy_charges: EnergyChargeBreakdown
    demand_charges: DemandChargeBreakdown
    additional_charges: AdditionalChargeBreakdown
    total_bill: float


class RateAnalysis(BaseModel):
    effective_rate: float = Field(..., description="total_bill / total_kwh ($/kWh)")
    marginal_rate: float = Field(..., description="Price of the next kWh")
    savings_opportunities: List[str] = Field(default_factory=list)


class BillCalculationResult(BaseModel):
    schedule_id: str
    billing_period: BillingPeriod
    usage: UsageBreakdown
    charges: BillCharges
    rate_analysis: RateAnalysis

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "schedule_id": "pge-e-tou-c",
                "billing_period": {
                    "start_date": "2024-06-01T00:00:00",
                    "end_date": "2024-06-30T23:59:59",
                    "days_in_period": 30,
                },
                "usage": {"total_kwh": 620.0, "peak_kw": 4.2},
                "charges": {"total_bill": 231.45},
                "rate_analysis": {"effective_rate": 0.373, "marginal_rate": 0.45},
            }
        }
    )


class RateComparison(BaseModel):
    schedule_id: str
    rate_name: str
    annual_cost: float
    potential_savings: float = Field(..., description="Current annual cost minus this schedule's")
    savings_percentage: float
    reason: str


class OptimizationStrategy(BaseModel):
    type: str = Field(..., description="load_shifting, demand_reduction, storage, solar")
    description: str
    potential_savings: float = Field(..., description="$ per year")
    priority: str = Field(..., description="high, medium or low")


class RateOptimizationResult(BaseModel):
    current_rate: RateComparison
    recommended_rates: List[RateComparison] = Field(default_factory=list)
    optimization_strategies: List[OptimizationStrategy] = Field(default_factory=list)
