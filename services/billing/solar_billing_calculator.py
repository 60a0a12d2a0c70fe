"""
Solar billing calculator.

Prices a month of usage and solar production against a rate schedule:

    self-consumption = min(used, produced)
    grid import      = max(0, used - produced)
    grid export      = max(0, produced - used)
    net usage        = grid import - grid export

Grid import is billed on the schedule's flat, tiered or time-of-use rates
and grid export is credited under the net metering compensation method.
Monthly totals carry no time stamps, so time-of-use energy is spread over
the periods in proportion to the hours each period covers in that month.
"""

import calendar
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from models.billing import (
    BillingComparison,
    BillMetrics,
    CompensationMethod,
    MonthlyBillDetail,
    MonthlyCharges,
    MonthlyProduction,
    MonthlySavings,
    MonthlyUsage,
    NetMeteringCredits,
    NetUsage,
    TaxBreakdown,
    YearlyProjection,
)
from models.rates import DemandChargeType, NetMeteringPolicyType, RateSchedule
from services.net_metering.policies import get_policy
from services.tariff.utility_rate_engine import UNASSIGNED_PERIOD, UtilityRateEngine

logger = logging.getLogger(__name__)

DEFAULT_RETAIL_CREDIT_RATE = 0.30
DEFAULT_EXPORT_RATE = 0.08

# Share of the total tax reported as state, local and sales tax
TAX_SPLIT = {"state_tax": 0.6, "local_tax": 0.3, "sales_tax": 0.1}


class SolarBillingCalculator:
    """
    Monthly solar bills, pre/post-solar comparison and multi-year projection.

    Usage:
        calculator = SolarBillingCalculator()
        bill = calculator.calculate_monthly_bill(
            MonthlyUsage(month=6, year=2024, kwh_used=800, peak_kw=5),
            "pge-e-1",
            production=MonthlyProduction(month=6, year=2024, kwh_produced=650),
            nem_policy_id="CA-NEM2",
        )
    """

    def __init__(self, rate_engine: Optional[UtilityRateEngine] = None):
        self.rate_engine = rate_engine or UtilityRateEngine()

    # -------------------------------------------------------------------------
    # Monthly bill
    # -------------------------------------------------------------------------

    def calculate_monthly_bill(
        self,
        usage: MonthlyUsage,
        schedule_id: str,
        production: Optional[MonthlyProduction] = None,
        nem_policy_id: Optional[str] = None,
    ) -> MonthlyBillDetail:
        """
        Calculate one month's bill, with or without solar.

        Args:
            usage: Consumption, peak demand and billing days for the month
            schedule_id: Rate schedule to price against
            production: Solar production for the month (None = no solar)
            nem_policy_id: NEM policy deciding export compensation; defaults
                to the schedule's net metering terms

        Returns:
            MonthlyBillDetail with usage split, charges, credits and metrics

        Raises:
            NotFoundError: If the schedule or NEM policy does not exist
        """
        schedule = self.rate_engine.get_rate_schedule(schedule_id)
        net_usage = self.calculate_net_usage(usage, production)

        charges = self._calculate_charges(schedule, usage, net_usage.grid_import)

        credits = None
        if production is not None and net_usage.grid_export > 0:
            credits = self._calculate_credits(schedule, usage, net_usage.grid_export, nem_policy_id)

        gross_bill = charges.total_charges
        net_bill = round(gross_bill - (credits.total_credits if credits else 0.0), 2)
        amount_due = max(0.0, net_bill)

        return MonthlyBillDetail(
            month=usage.month,
            year=usage.year,
            billing_days=usage.billing_days,
            usage=net_usage,
            charges=charges,
            credits=credits,
            gross_bill=gross_bill,
            net_bill=net_bill,
            amount_due=amount_due,
            metrics=self._calculate_metrics(usage, net_usage, gross_bill, amount_due),
        )

    def calculate_net_usage(self, usage: MonthlyUsage, production: Optional[MonthlyProduction]) -> NetUsage:
        produced = production.kwh_produced if production else 0.0
        grid_import = max(0.0, usage.kwh_used - produced)
        grid_export = max(0.0, produced - usage.kwh_used)
        return NetUsage(
            total_kwh=usage.kwh_used,
            peak_kw=usage.peak_kw,
            production=produced,
            self_consumption=min(usage.kwh_used, produced),
            grid_import=grid_import,
            grid_export=grid_export,
            net_usage=grid_import - grid_export,
        )

    def _calculate_charges(self, schedule: RateSchedule, usage: MonthlyUsage, billable_kwh: float) -> MonthlyCharges:
        energy = schedule.energy_charges

        energy_base = billable_kwh * energy.flat_rate if energy.flat_rate else 0.0
        energy_tiered = self._tiered_costs(schedule, billable_kwh)
        energy_tou = {}
        if energy.time_of_use_rates:
            energy_tou = {
                name: billable_kwh * share * rate
                for name, (share, rate) in self.tou_hour_shares(schedule, usage.year, usage.month).items()
            }
        energy_total = energy_base + sum(energy_tiered.values()) + sum(energy_tou.values())

        demand_facility = 0.0
        demand_other = 0.0
        for charge in schedule.demand_charges:
            if charge.type == DemandChargeType.FACILITY:
                demand_facility += usage.peak_kw * charge.rate
            else:
                demand_other += usage.peak_kw * charge.rate
        demand_total = demand_facility + demand_other

        fc = schedule.fixed_charges
        fixed_total = (
            fc.customer_charge
            + fc.connection_fee * usage.billing_days
            + fc.facility_charge * usage.peak_kw
            + fc.service_charge
        )

        additional_total = billable_kwh * schedule.additional_charges.public_purpose_programs

        tax_total = (energy_total + demand_total + fixed_total) * schedule.additional_charges.state_and_local_taxes / 100
        taxes = TaxBreakdown(
            **{name: tax_total * share for name, share in TAX_SPLIT.items()},
            total=tax_total,
        )

        return MonthlyCharges(
            energy_base=energy_base,
            energy_tiered=energy_tiered,
            energy_time_of_use=energy_tou,
            energy_total=energy_total,
            demand_facility=demand_facility,
            demand_other=demand_other,
            demand_total=demand_total,
            fixed_total=fixed_total,
            additional_total=additional_total,
            taxes=taxes,
            total_charges=energy_total + demand_total + fixed_total + additional_total + tax_total,
        )

    def _tiered_costs(self, schedule: RateSchedule, kwh: float) -> Dict[str, float]:
        costs = {}
        tiers = sorted(schedule.energy_charges.tiered_rates, key=lambda t: t.tier)
        remaining = kwh
        for i, tier in enumerate(tiers):
            if remaining <= 0:
                break
            tier_kwh = remaining if i == len(tiers) - 1 else min(remaining, tier.threshold)
            costs[tier.name] = tier_kwh * tier.rate
            remaining -= tier_kwh
        return costs

    def tou_hour_shares(self, schedule: RateSchedule, year: int, month: int) -> Dict[str, Tuple[float, float]]:
        """
        Fraction of the month's hours each TOU period covers.

        Returns:
            {period name: (share of hours, rate)}; hours no period matches
            fall under "Unassigned" at the lowest TOU rate
        """
        tou_rates = schedule.energy_charges.time_of_use_rates
        fallback_rate = min(p.rate for p in tou_rates)
        days = calendar.monthrange(year, month)[1]

        counts: Dict[str, List[float]] = {}
        for day in range(1, days + 1):
            for hour in range(24):
                period = self.rate_engine.calculate_tou_period(datetime(year, month, day, hour), tou_rates)
                name, rate = (period.name, period.rate) if period else (UNASSIGNED_PERIOD, fallback_rate)
                counts.setdefault(name, [0, rate])[0] += 1

        total_hours = days * 24
        return {name: (hours / total_hours, rate) for name, (hours, rate) in counts.items()}

    def _retail_rate(self, schedule: RateSchedule, usage: MonthlyUsage) -> float:
        energy = schedule.energy_charges
        if energy.flat_rate:
            return energy.flat_rate
        if energy.tiered_rates:
            return min(energy.tiered_rates, key=lambda t: t.tier).rate
        if energy.time_of_use_rates:
            shares = self.tou_hour_shares(schedule, usage.year, usage.month)
            return sum(share * rate for share, rate in shares.values())
        return DEFAULT_RETAIL_CREDIT_RATE

    def _calculate_credits(
        self,
        schedule: RateSchedule,
        usage: MonthlyUsage,
        exported_kwh: float,
        nem_policy_id: Optional[str],
    ) -> NetMeteringCredits:
        if nem_policy_id:
            method = get_policy(nem_policy_id).compensation_method
        elif schedule.net_metering.policy == NetMeteringPolicyType.NET_ENERGY_METERING:
            method = CompensationMethod.NET_ENERGY_METERING
        else:
            method = CompensationMethod.NET_BILLING

        if method == CompensationMethod.NET_ENERGY_METERING:
            credit_rate = self._retail_rate(schedule, usage)
        elif (
            schedule.net_metering.policy != NetMeteringPolicyType.NET_ENERGY_METERING
            and schedule.net_metering.credit_rate is not None
        ):
            credit_rate = schedule.net_metering.credit_rate
        else:
            credit_rate = DEFAULT_EXPORT_RATE

        return NetMeteringCredits(
            method=method,
            exported_kwh=exported_kwh,
            credit_rate=credit_rate,
            total_credits=exported_kwh * credit_rate,
        )

    def _calculate_metrics(
        self,
        usage: MonthlyUsage,
        net_usage: NetUsage,
        gross_bill: float,
        amount_due: float,
    ) -> BillMetrics:
        average_kw = usage.kwh_used / (24 * usage.billing_days)
        return BillMetrics(
            effective_rate=gross_bill / usage.kwh_used if usage.kwh_used > 0 else 0.0,
            average_daily_usage=usage.kwh_used / usage.billing_days,
            average_daily_cost=amount_due / usage.billing_days,
            load_factor=average_kw / usage.peak_kw if usage.peak_kw > 0 else 0.0,
            self_consumption_ratio=(
                net_usage.self_consumption / net_usage.production if net_usage.production > 0 else 0.0
            ),
        )

    # -------------------------------------------------------------------------
    # Comparison and projection
    # -------------------------------------------------------------------------

    def calculate_billing_comparison(
        self,
        customer_id: str,
        schedule_id: str,
        usage: Iterable[MonthlyUsage],
        production: Iterable[MonthlyProduction],
        nem_policy_id: Optional[str] = None,
        projection_years: int = 0,
        rate_escalation: float = 3.0,
        usage_growth: float = 0.0,
        system_degradation: float = 0.5,
    ) -> BillingComparison:
        """
        Bills for the same months without and with solar.

        Months with no production record are billed with zero production.

        Args:
            customer_id: Customer the comparison is for
            schedule_id: Rate schedule to price against
            usage: Monthly usage records
            production: Monthly production records, matched by year and month
            nem_policy_id: NEM policy for export compensation
            projection_years: Years to project forward (0 = none)
            rate_escalation: Annual rate increase in percent
            usage_growth: Annual consumption growth in percent
            system_degradation: Annual production loss in percent

        Returns:
            BillingComparison with both bill sets, savings and projections
        """
        usage = sorted(usage, key=lambda u: (u.year, u.month))
        produced = {(p.year, p.month): p for p in production}

        pre_bills, post_bills, monthly_savings = [], [], []
        for month_usage in usage:
            key = (month_usage.year, month_usage.month)
            month_production = produced.get(key) or MonthlyProduction(
                month=month_usage.month, year=month_usage.year, kwh_produced=0.0
            )
            pre = self.calculate_monthly_bill(month_usage, schedule_id)
            post = self.calculate_monthly_bill(month_usage, schedule_id, month_production, nem_policy_id)
            pre_bills.append(pre)
            post_bills.append(post)
            monthly_savings.append(MonthlySavings(
                month=month_usage.month,
                year=month_usage.year,
                pre_solar_bill=pre.amount_due,
                post_solar_bill=post.amount_due,
                savings=pre.amount_due - post.amount_due,
            ))

        pre_annual = sum(b.amount_due for b in pre_bills)
        post_annual = sum(b.amount_due for b in post_bills)
        annual_savings = pre_annual - post_annual
        savings_percent = annual_savings / pre_annual * 100 if pre_annual > 0 else 0.0

        pre_projections, post_projections = [], []
        if projection_years > 0 and usage:
            base_kwh = sum(u.kwh_used for u in usage)
            base_production = sum(b.usage.production for b in post_bills)
            start_year = usage[-1].year
            pre_projections = self.project_future_billing(
                pre_annual, base_kwh, projection_years, rate_escalation, usage_growth,
                start_year=start_year,
            )
            post_projections = self.project_future_billing(
                post_annual, base_kwh, projection_years, rate_escalation, usage_growth,
                system_degradation, annual_production=base_production,
                annual_solar_savings=annual_savings, start_year=start_year,
            )

        logger.info(
            f"Billing comparison for {customer_id} on {schedule_id}: "
            f"{pre_annual:.2f} -> {post_annual:.2f} ({savings_percent:.1f}% saved)"
        )

        return BillingComparison(
            customer_id=customer_id,
            schedule_id=schedule_id,
            nem_policy_id=nem_policy_id,
            pre_solar_bills=pre_bills,
            post_solar_bills=post_bills,
            monthly_savings=monthly_savings,
            pre_solar_annual=pre_annual,
            post_solar_annual=post_annual,
            annual_savings=annual_savings,
            savings_percent=savings_percent,
            pre_solar_projections=pre_projections,
            post_solar_projections=post_projections,
            insights=self._generate_insights(post_bills, annual_savings, savings_percent),
        )

    def project_future_billing(
        self,
        base_annual_bill: float,
        base_annual_kwh: float,
        years: int,
        rate_escalation: float = 3.0,
        usage_growth: float = 0.0,
        system_degradation: float = 0.0,
        annual_production: Optional[float] = None,
        annual_solar_savings: float = 0.0,
        start_year: Optional[int] = None,
    ) -> List[YearlyProjection]:
        """
        Project annual bills forward.

        For year n the pre-solar bill scales by (1 + escalation)^n *
        (1 + growth)^n. Solar savings scale with rates but shrink by
        (1 - degradation)^n, so:

            bill_n = (base + savings) * escalation_n * growth_n
                     - savings * escalation_n * degradation_n

        With annual_solar_savings = 0 this is a plain pre-solar projection.
        """
        start_year = start_year or datetime.now().year
        pre_solar_base = base_annual_bill + annual_solar_savings
        projections = []
        for n in range(1, years + 1):
            escalation = (1 + rate_escalation / 100) ** n
            growth = (1 + usage_growth / 100) ** n
            degradation = (1 - system_degradation / 100) ** n

            total_bill = max(0.0, pre_solar_base * escalation * growth - annual_solar_savings * escalation * degradation)
            projections.append(YearlyProjection(
                year=start_year + n,
                total_kwh=base_annual_kwh * growth,
                total_bill=total_bill,
                average_monthly_bill=total_bill / 12,
                adjusted_production=annual_production * degradation if annual_production is not None else None,
            ))
        return projections

    def _generate_insights(
        self,
        post_bills: List[MonthlyBillDetail],
        annual_savings: float,
        savings_percent: float,
    ) -> List[str]:
        insights = [f"Annual savings of ${annual_savings:,.0f} ({savings_percent:.0f}% bill reduction)"]

        offset_months = sum(1 for b in post_bills if b.usage.grid_import == 0)
        if offset_months:
            insights.append(f"Solar covers all energy use in {offset_months} month(s)")

        export_months = sum(1 for b in post_bills if b.usage.grid_export > 0)
        if export_months:
            insights.append(
                f"Production exceeds usage in {export_months} month(s); battery storage would keep more of it on site"
            )
        return insights
