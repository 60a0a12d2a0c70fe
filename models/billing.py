"""
Pydantic models for solar billing, net metering and billing cycles.

EnergyFlow is the shared input: one interval of production and consumption
from which grid import, grid export and net usage are derived
(net usage is positive for import, negative for export).
"""

from enum import Enum
from datetime import date, datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, computed_field


# =============================================================================
# ENUMS
# =============================================================================

class CompensationMethod(str, Enum):
    NET_ENERGY_METERING = "net_energy_metering"
    NET_BILLING = "net_billing"
    AVOIDED_COST = "avoided_cost"


class PaymentMethod(str, Enum):
    STANDARD_BILLING = "standard_billing"
    CREDIT_MEMO = "credit_memo"


class BillingCycleStatus(str, Enum):
    DRAFT = "draft"
    FINAL = "final"
    PAID = "paid"
    OVERDUE = "overdue"
    DISPUTED = "disputed"


# =============================================================================
# ENERGY INPUT
# =============================================================================

class EnergyFlow(BaseModel):
    """One metered interval of solar production and site consumption."""

    timestamp: datetime
    production: float = Field(0.0, description="kWh produced in the interval", ge=0)
    consumption: float = Field(0.0, description="kWh consumed in the interval", ge=0)

    @computed_field
    @property
    def grid_import(self) -> float:
        return max(0.0, self.consumption - self.production)

    @computed_field
    @property
    def grid_export(self) -> float:
        return max(0.0, self.production - self.consumption)

    @computed_field
    @property
    def net_usage(self) -> float:
        return self.grid_import - self.grid_export


class EnergyTotals(BaseModel):
    production: float = 0.0
    consumption: float = 0.0
    grid_import: float = 0.0
    grid_export: float = 0.0
    net_usage: float = 0.0


# =============================================================================
# NET METERING
# =============================================================================

class NEMPolicy(BaseModel):
    """A net energy metering tariff version."""

    id: str
    name: str
    version: str = Field(..., description="1.0, 2.0 or 3.0")
    state: str
    utility_company: str = "All"
    effective_date: date
    expiration_date: Optional[date] = None
    compensation_method: CompensationMethod
    grandfathering_enabled: bool = False
    grandfathering_years: Optional[int] = None
    grandfathering_conditions: List[str] = Field(default_factory=list)
    system_size_limit_kw: float = 1000.0
    aggregate_cap_percent: float = 5.0
    aggregate_cap_mw: float = 2500.0
    monthly_carryover: bool = Field(False, description="Export credits roll to the next month")
    annual_true_up: bool = Field(True, description="Settled annually with excess generation cash-out")


class NEMRateData(BaseModel):
    """Rates applied by the net metering calculation."""

    energy_rate: float = Field(0.30, description="Retail $/kWh", ge=0)
    fixed_charge: float = Field(0.0, description="$ per month", ge=0)
    non_bypassable_rate: float = Field(0.02, description="$/kWh on consumption (NEM 2.0+)", ge=0)
    grid_benefits_rate: float = Field(10.0, description="$/kW-month of system capacity (NEM 3.0)", ge=0)
    avoided_cost_fraction: float = Field(0.25, description="Export credit as a fraction of retail (NEM 3.0)", ge=0, le=1)
    excess_generation_rate: float = Field(0.04, description="True-up cash-out $/kWh", ge=0)


class NEMCharges(BaseModel):
    energy: float = 0.0
    demand: float = 0.0
    fixed: float = 0.0
    non_bypassable: float = 0.0
    grid_benefits: float = 0.0
    total: float = 0.0


class NEMMonthlyBilling(BaseModel):
    month: int
    year: int
    energy: EnergyTotals
    charges: NEMCharges
    export_credit: float
    carryover_in: float = 0.0
    carryover_out: float = 0.0
    pre_solar_bill: float
    post_solar_bill: float
    monthly_savings: float


class TrueUpCalculation(BaseModel):
    start_date: datetime
    end_date: datetime
    energy: EnergyTotals
    total_charges: float
    total_export_credits: float
    net_amount: float = Field(..., description="Sum of monthly charges minus export credits")
    excess_generation_kwh: float
    excess_generation_rate: float
    excess_generation_compensation: float
    credits_used: float
    remaining_credit: float
    amount_due: float


class NEMAnnualSummary(BaseModel):
    total_production: float
    total_consumption: float
    total_bill_savings: float
    average_monthly_bill: float


class NEMFinancialAnalysis(BaseModel):
    annual_savings: float
    present_value: float
    net_present_value: float
    simple_payback_years: Optional[float] = None


class NEMCalculationResult(BaseModel):
    policy: NEMPolicy
    monthly_billing: List[NEMMonthlyBilling]
    true_up: Optional[TrueUpCalculation] = None
    annual_summary: NEMAnnualSummary
    financial_analysis: Optional[NEMFinancialAnalysis] = None


# =============================================================================
# SOLAR BILLING CALCULATOR
# =============================================================================

class MonthlyUsage(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int
    kwh_used: float = Field(..., ge=0)
    peak_kw: float = Field(0.0, ge=0)
    billing_days: int = Field(30, ge=1, le=31)


class MonthlyProduction(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int
    kwh_produced: float = Field(..., ge=0)


class NetUsage(BaseModel):
    total_kwh: float
    peak_kw: float
    production: float
    self_consumption: float
    grid_import: float
    grid_export: float
    net_usage: float


class TaxBreakdown(BaseModel):
    state_tax: float
    local_tax: float
    sales_tax: float
    total: float


class MonthlyCharges(BaseModel):
    energy_base: float = 0.0
    energy_tiered: Dict[str, float] = Field(default_factory=dict)
    energy_time_of_use: Dict[str, float] = Field(default_factory=dict)
    energy_total: float = 0.0
    demand_facility: float = 0.0
    demand_other: float = 0.0
    demand_total: float = 0.0
    fixed_total: float = 0.0
    additional_total: float = 0.0
    taxes: TaxBreakdown
    total_charges: float


class NetMeteringCredits(BaseModel):
    method: CompensationMethod
    exported_kwh: float
    credit_rate: float
    total_credits: float


class BillMetrics(BaseModel):
    effective_rate: float = Field(..., description="gross bill / kWh used")
    average_daily_usage: float
    average_daily_cost: float
    load_factor: float = Field(..., description="average kW / peak kW")
    self_consumption_ratio: float = Field(..., description="share of production used on site")


class MonthlyBillDetail(BaseModel):
    month: int
    year: int
    billing_days: int
    usage: NetUsage
    charges: MonthlyCharges
    credits: Optional[NetMeteringCredits] = None
    gross_bill: float
    net_bill: float
    amount_due: float
    metrics: BillMetrics


class MonthlySavings(BaseModel):
    month: int
    year: int
    pre_solar_bill: float
    post_solar_bill: float
    savings: float


class YearlyProjection(BaseModel):
    year: int
    total_kwh: float
    total_bill: float
    average_monthly_bill: float
    adjusted_production: Optional[float] = None


class BillingComparison(BaseModel):
    customer_id: str
    schedule_id: str
    nem_policy_id: Optional[str] = None
    pre_solar_bills: List[MonthlyBillDetail]
    post_solar_bills: List[MonthlyBillDetail]
    monthly_savings: List[MonthlySavings]
    pre_solar_annual: float
    post_solar_annual: float
    annual_savings: float
    savings_percent: float
    pre_solar_projections: List[YearlyProjection] = Field(default_factory=list)
    post_solar_projections: List[YearlyProjection] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)


# =============================================================================
# BILLING CYCLES
# =============================================================================

class BillingRates(BaseModel):
    """Tariff assumptions used by the billing cycle manager."""

    energy_rate: float = Field(0.30, description="$/kWh imported")
    demand_rate: float = Field(15.0, description="$/kW of peak demand")
    customer_charge: float = Field(10.0, description="$ per cycle")
    connection_charge: float = Field(0.33, description="$ per cycle")
    export_credit_rate: float = Field(0.25, description="$/kWh exported")
    non_bypassable_rate: float = Field(0.02, description="$/kWh imported")
    pre_solar_rate: float = Field(0.32, description="Average $/kWh without solar")
    cash_out_rate: float = Field(0.04, description="True-up excess generation $/kWh")
    true_up_month: int = Field(3, ge=1, le=12, description="Month the annual true-up settles")


class CycleEnergyData(EnergyTotals):
    peak_demand: float = Field(0.0, description="kW")


class CycleCharges(BaseModel):
    energy: float
    demand: float
    fixed: float
    non_bypassable: float
    export_credits: float
    gross_charges: float
    total_credits: float = Field(..., description="Credits applied this cycle")
    net_amount: float = Field(..., description="gross_charges - total_credits")


class CycleCredits(BaseModel):
    carryover_from_previous: float
    earned_this_cycle: float
    applied_to_charges: float
    carryover_to_next: float


class CycleComparison(BaseModel):
    pre_solar_bill: float
    savings: float
    savings_percent: float


class BillingCycle(BaseModel):
    id: str = Field(..., description="{customer}-{YYYY}-{MM}")
    customer_id: str
    utility_company: Optional[str] = None
    rate_schedule_id: Optional[str] = None
    nem_policy_id: Optional[str] = None
    start_date: date
    end_date: date
    days_in_cycle: int
    cycle_number: int = Field(..., description="Month number 1-12")
    fiscal_year: int
    meter_read_date: date
    bill_generated_date: date
    payment_due_date: date
    energy: CycleEnergyData
    charges: CycleCharges
    credits: CycleCredits
    comparison: CycleComparison
    status: BillingCycleStatus = BillingCycleStatus.DRAFT
    is_true_up_period: bool

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "homeowner-user-001-2024-06",
                "customer_id": "homeowner-user-001",
                "start_date": "2024-06-01",
                "end_date": "2024-06-30",
                "days_in_cycle": 30,
                "cycle_number": 6,
                "fiscal_year": 2024,
                "is_true_up_period": False,
            }
        }
    )


class TrueUpBill(BaseModel):
    bill_date: date
    payment_due_date: date
    unpaid_balance: float
    excess_generation_credit: float
    net_amount: float
    amount_due: float
    payment_method: PaymentMethod


class TrueUpAnalysis(BaseModel):
    self_consumption_rate: float
    export_rate: float
    average_monthly_net_amount: float
    recommendations: List[str] = Field(default_factory=list)


class TrueUpPeriod(BaseModel):
    id: str
    customer_id: str
    period_year: int
    start_date: date
    end_date: date
    total_days: int
    billing_cycles: List[str]
    energy_totals: EnergyTotals
    average_monthly_consumption: float
    total_charges: float
    total_credits: float
    total_payments: float
    net_position: float
    excess_generation_kwh: float
    excess_generation_compensation: float
    true_up_bill: TrueUpBill
    analysis: TrueUpAnalysis


class ProjectedCycle(BaseModel):
    month: int
    year: int
    production: float
    consumption: float
    net_usage: float
    estimated_bill: float
    credits_applied: float
    amount_due: float
    estimated_savings: float
    credit_balance: float


class SensitivityScenario(BaseModel):
    scenario: str
    production_variation: float = Field(..., description="%")
    consumption_variation: float = Field(..., description="%")
    projected_savings: float
    risk_factors: List[str] = Field(default_factory=list)


class BillingProjection(BaseModel):
    customer_id: str
    start_date: date
    end_date: date
    months: int
    projected_cycles: List[ProjectedCycle]
    total_bills: float
    total_savings: float
    savings_percent: float
    final_credit_balance: float
    excess_generation_kwh: float
    excess_compensation: float
    sensitivity: List[SensitivityScenario]
    confidence: int = Field(..., ge=0, le=100)
