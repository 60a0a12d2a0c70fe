"""
Net metering billing engine.

Groups interval energy data into calendar months, prices each month under
a NEM policy version, carries export credits month to month where the
policy allows it, settles the year with an annual true-up for NEM 2.0 and
later, and values the savings stream over the system lifetime.
"""

from datetime import date
from typing import Iterable, List, Optional
import logging

from models.billing import (
    EnergyFlow,
    EnergyTotals,
    NEMAnnualSummary,
    NEMCalculationResult,
    NEMFinancialAnalysis,
    NEMMonthlyBilling,
    NEMPolicy,
    NEMRateData,
    TrueUpCalculation,
)
from services.errors import ValidationError
from services.net_metering.calculators import BaseNEMCalculator, get_calculator
from services.net_metering.policies import (
    check_grandfathering_eligibility,
    get_available_policies,
    get_policy,
)
from utils.energy import FlowInput, coerce_flows, group_by_month, total_energy

logger = logging.getLogger(__name__)

# Annual production loss applied to the savings stream
ANNUAL_DEGRADATION = 0.005
DEFAULT_DISCOUNT_RATE = 6.0
DEFAULT_SYSTEM_LIFETIME = 25


class NetMeteringEngine:
    """
    Usage:
        engine = NetMeteringEngine()
        result = engine.calculate_net_metering(
            "CA-NEM2",
            energy_data,
            NEMRateData(energy_rate=0.30),
            system_capacity_kw=8.0,
            include_financial_analysis=True,
        )
    """

    def calculate_net_metering(
        self,
        policy_id: str,
        energy_data: Iterable[FlowInput],
        rates: Optional[NEMRateData] = None,
        system_capacity_kw: float = 10.0,
        include_financial_analysis: bool = False,
        discount_rate: float = DEFAULT_DISCOUNT_RATE,
        system_lifetime: int = DEFAULT_SYSTEM_LIFETIME,
        system_cost: Optional[float] = None,
    ) -> NEMCalculationResult:
        """
        Price energy data under a NEM policy.

        Args:
            policy_id: NEM policy id (e.g. "CA-NEM3")
            energy_data: Interval production/consumption readings
            rates: Retail and NEM rates (defaults to NEMRateData())
            system_capacity_kw: Installed system size
            include_financial_analysis: Add lifetime NPV of the savings
            discount_rate: Annual discount rate in percent
            system_lifetime: Years of savings to value
            system_cost: Installed cost, subtracted for NPV and payback

        Returns:
            NEMCalculationResult with monthly bills, true-up and summaries

        Raises:
            NotFoundError: If the policy id is unknown
            ValidationError: If there is no energy data or the system
                exceeds the policy size limit
        """
        policy = get_policy(policy_id)
        rates = rates or NEMRateData()
        flows = coerce_flows(energy_data)

        if not flows:
            raise ValidationError("No energy data provided", ["energy_data must not be empty"])
        if system_capacity_kw > policy.system_size_limit_kw:
            raise ValidationError(
                f"System size {system_capacity_kw} kW exceeds the {policy.id} limit",
                [f"system_capacity_kw must be <= {policy.system_size_limit_kw}"],
            )

        calculator = get_calculator(policy.version, rates, system_capacity_kw)

        monthly_billing: List[NEMMonthlyBilling] = []
        carryover = 0.0
        for (year, month), month_flows in group_by_month(flows).items():
            billing = self._calculate_monthly_billing(
                year, month, total_energy(month_flows), calculator, rates, carryover,
                policy.monthly_carryover,
            )
            monthly_billing.append(billing)
            carryover = billing.carryover_out

        true_up = None
        if policy.annual_true_up:
            true_up = self._calculate_true_up(flows, monthly_billing, rates)

        annual_summary = self._calculate_annual_summary(monthly_billing)

        financial_analysis = None
        if include_financial_analysis:
            financial_analysis = self._calculate_financial_analysis(
                annual_summary.total_bill_savings, discount_rate, system_lifetime, system_cost
            )

        logger.info(
            f"NEM calculation on {policy.id}: {len(monthly_billing)} month(s), "
            f"savings {annual_summary.total_bill_savings:.2f}"
        )

        return NEMCalculationResult(
            policy=policy,
            monthly_billing=monthly_billing,
            true_up=true_up,
            annual_summary=annual_summary,
            financial_analysis=financial_analysis,
        )

    def _calculate_monthly_billing(
        self,
        year: int,
        month: int,
        energy: EnergyTotals,
        calculator: BaseNEMCalculator,
        rates: NEMRateData,
        carryover_in: float,
        monthly_carryover: bool,
    ) -> NEMMonthlyBilling:
        charges = calculator.calculate_charges(energy)
        export_credit = calculator.calculate_export_credit(energy)

        pre_solar_bill = energy.consumption * rates.energy_rate + rates.fixed_charge
        post_solar_bill = round(max(0.0, charges.total - export_credit - carryover_in), 2)

        carryover_out = 0.0
        if monthly_carryover:
            carryover_out = max(0.0, export_credit + carryover_in - charges.total)

        return NEMMonthlyBilling(
            month=month,
            year=year,
            energy=energy,
            charges=charges,
            export_credit=export_credit,
            carryover_in=carryover_in,
            carryover_out=carryover_out,
            pre_solar_bill=pre_solar_bill,
            post_solar_bill=post_solar_bill,
            monthly_savings=pre_solar_bill - post_solar_bill,
        )

    def _calculate_true_up(
        self,
        flows: List[EnergyFlow],
        monthly_billing: List[NEMMonthlyBilling],
        rates: NEMRateData,
    ) -> TrueUpCalculation:
        energy = total_energy(flows)
        total_charges = sum(m.charges.total for m in monthly_billing)
        total_export_credits = sum(m.export_credit for m in monthly_billing)
        net_amount = total_charges - total_export_credits

        excess_kwh = max(0.0, -energy.net_usage)
        compensation = excess_kwh * rates.excess_generation_rate

        return TrueUpCalculation(
            start_date=flows[0].timestamp,
            end_date=flows[-1].timestamp,
            energy=energy,
            total_charges=total_charges,
            total_export_credits=total_export_credits,
            net_amount=net_amount,
            excess_generation_kwh=excess_kwh,
            excess_generation_rate=rates.excess_generation_rate,
            excess_generation_compensation=compensation,
            credits_used=min(total_charges, compensation),
            remaining_credit=max(0.0, compensation - total_charges),
            amount_due=round(max(0.0, net_amount - compensation), 2),
        )

    def _calculate_annual_summary(self, monthly_billing: List[NEMMonthlyBilling]) -> NEMAnnualSummary:
        total_post_solar = sum(m.post_solar_bill for m in monthly_billing)
        return NEMAnnualSummary(
            total_production=sum(m.energy.production for m in monthly_billing),
            total_consumption=sum(m.energy.consumption for m in monthly_billing),
            total_bill_savings=sum(m.monthly_savings for m in monthly_billing),
            average_monthly_bill=total_post_solar / len(monthly_billing) if monthly_billing else 0.0,
        )

    def _calculate_financial_analysis(
        self,
        annual_savings: float,
        discount_rate: float,
        system_lifetime: int,
        system_cost: Optional[float],
    ) -> NEMFinancialAnalysis:
        present_value = sum(
            annual_savings * (1 - ANNUAL_DEGRADATION) ** (year - 1) / (1 + discount_rate / 100) ** year
            for year in range(1, system_lifetime + 1)
        )

        payback = None
        if system_cost and annual_savings > 0:
            payback = system_cost / annual_savings

        return NEMFinancialAnalysis(
            annual_savings=annual_savings,
            present_value=present_value,
            net_present_value=present_value - (system_cost or 0.0),
            simple_payback_years=payback,
        )

    # -------------------------------------------------------------------------
    # Policy lookup
    # -------------------------------------------------------------------------

    def get_policy(self, policy_id: str) -> NEMPolicy:
        return get_policy(policy_id)

    def get_available_policies(self, state: str, utility_company: Optional[str] = None) -> List[NEMPolicy]:
        return get_available_policies(state, utility_company)

    def check_grandfathering_eligibility(
        self,
        policy_id: str,
        installation_date: date,
        system_modifications: bool = False,
    ) -> bool:
        return check_grandfathering_eligibility(get_policy(policy_id), installation_date, system_modifications)
