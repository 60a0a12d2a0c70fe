"""
Billing cycle manager.

Builds monthly billing cycles from interval energy data, settles a
twelve-month net metering year in an annual true-up and projects future
cycles for a customer considering or running a solar system.

A cycle bills grid import and credits grid export:

    energy          = grid import * energy_rate
    demand          = peak kW * demand_rate
    fixed           = customer_charge + connection_charge
    non-bypassable  = grid import * non_bypassable_rate
    export credit   = grid export * export_credit_rate

Export credit plus any carried-over credit offsets energy charges only;
what remains carries to the next cycle until the true-up.
"""

from datetime import date, timedelta
from statistics import mean
from typing import Iterable, List, Optional, Tuple
import calendar
import logging

from models.billing import (
    BillingCycle,
    BillingProjection,
    BillingRates,
    CycleCharges,
    CycleComparison,
    CycleCredits,
    CycleEnergyData,
    EnergyTotals,
    PaymentMethod,
    ProjectedCycle,
    SensitivityScenario,
    TrueUpAnalysis,
    TrueUpBill,
    TrueUpPeriod,
)
from services.errors import ValidationError
from utils.dates import add_months, month_end, to_date
from utils.energy import FlowInput, coerce_flows, total_energy

logger = logging.getLogger(__name__)

BILL_GENERATION_DAYS = 5
PAYMENT_DUE_DAYS = 25

# Production estimate when no monthly forecast is supplied
PEAK_SUN_HOURS = 4.5
PERFORMANCE_RATIO = 0.8

TRUE_UP_RECOMMENDATIONS = [
    "Consider battery storage to increase self-consumption",
    "Monitor system performance for any degradation",
    "Review rate schedule options for potential savings",
]

SENSITIVITY_SCENARIOS = [
    ("conservative", -20.0, ["Lower than expected production", "Weather variability"]),
    ("expected", 0.0, []),
    ("optimistic", 20.0, ["Production above estimate may exceed on-site use"]),
]


class BillingCycleManager:
    """
    Usage:
        manager = BillingCycleManager()
        cycle = manager.create_billing_cycle("homeowner-user-001", date(2024, 6, 1), energy_data)
        true_up = manager.process_annual_true_up("homeowner-user-001", 2025, cycles)
    """

    def __init__(self, rates: Optional[BillingRates] = None):
        self.rates = rates or BillingRates()

    # -------------------------------------------------------------------------
    # Monthly cycle
    # -------------------------------------------------------------------------

    def create_billing_cycle(
        self,
        customer_id: str,
        period_start: date,
        energy_data: Iterable[FlowInput],
        carryover_credit: float = 0.0,
        interval_hours: float = 0.25,
        utility_company: Optional[str] = None,
        rate_schedule_id: Optional[str] = None,
        nem_policy_id: Optional[str] = None,
    ) -> BillingCycle:
        """
        Build the billing cycle running from period_start to the month's end.

        Args:
            customer_id: Customer being billed
            period_start: First day of the cycle
            energy_data: Interval readings; readings outside the cycle are ignored
            carryover_credit: Unused export credit from the previous cycle ($)
            interval_hours: Length of one reading, used to turn kWh into kW
            utility_company: Serving utility, recorded on the cycle
            rate_schedule_id: Rate schedule, recorded on the cycle
            nem_policy_id: NEM policy, recorded on the cycle

        Returns:
            BillingCycle with energy, charges, credits and pre-solar comparison

        Raises:
            ValidationError: If no readings fall within the cycle
        """
        rates = self.rates
        period_start = to_date(period_start)
        period_end = month_end(period_start)

        flows = [
            f for f in coerce_flows(energy_data)
            if period_start <= f.timestamp.date() <= period_end
        ]
        if not flows:
            raise ValidationError(
                f"No energy data between {period_start} and {period_end}",
                ["energy_data must contain readings within the billing cycle"],
            )

        totals = total_energy(flows)
        energy = CycleEnergyData(
            **totals.model_dump(),
            peak_demand=max(f.consumption / interval_hours for f in flows),
        )

        energy_charge = energy.grid_import * rates.energy_rate
        demand_charge = energy.peak_demand * rates.demand_rate
        fixed_charge = rates.customer_charge + rates.connection_charge
        non_bypassable = energy.grid_import * rates.non_bypassable_rate
        export_credits = energy.grid_export * rates.export_credit_rate

        available = carryover_credit + export_credits
        applied = min(available, energy_charge)
        gross = energy_charge + demand_charge + fixed_charge + non_bypassable
        net_amount = round(gross - applied, 2)

        pre_solar_bill = energy.consumption * rates.pre_solar_rate
        savings = pre_solar_bill - net_amount

        cycle = BillingCycle(
            id=f"{customer_id}-{period_start:%Y-%m}",
            customer_id=customer_id,
            utility_company=utility_company,
            rate_schedule_id=rate_schedule_id,
            nem_policy_id=nem_policy_id,
            start_date=period_start,
            end_date=period_end,
            days_in_cycle=(period_end - period_start).days + 1,
            cycle_number=period_start.month,
            fiscal_year=period_start.year,
            meter_read_date=period_end,
            bill_generated_date=period_end + timedelta(days=BILL_GENERATION_DAYS),
            payment_due_date=period_end + timedelta(days=PAYMENT_DUE_DAYS),
            energy=energy,
            charges=CycleCharges(
                energy=energy_charge,
                demand=demand_charge,
                fixed=fixed_charge,
                non_bypassable=non_bypassable,
                export_credits=export_credits,
                gross_charges=gross,
                total_credits=applied,
                net_amount=net_amount,
            ),
            credits=CycleCredits(
                carryover_from_previous=carryover_credit,
                earned_this_cycle=export_credits,
                applied_to_charges=applied,
                carryover_to_next=available - applied,
            ),
            comparison=CycleComparison(
                pre_solar_bill=pre_solar_bill,
                savings=savings,
                savings_percent=savings / pre_solar_bill * 100 if pre_solar_bill > 0 else 0.0,
            ),
            is_true_up_period=period_start.month == rates.true_up_month,
        )

        logger.info(f"Created billing cycle {cycle.id}: net {net_amount:.2f}, carryover {cycle.credits.carryover_to_next:.2f}")
        return cycle

    def create_billing_cycles(
        self,
        customer_id: str,
        energy_data: Iterable[FlowInput],
        **kwargs,
    ) -> List[BillingCycle]:
        """
        One cycle per calendar month in energy_data, threading credit carryover.

        Credit left after the true-up cycle is settled by the annual true-up,
        so the next net metering year starts from zero.
        """
        flows = coerce_flows(energy_data)
        months = sorted({date(f.timestamp.year, f.timestamp.month, 1) for f in flows})

        cycles = []
        carryover = kwargs.pop("carryover_credit", 0.0)
        for start in months:
            cycle = self.create_billing_cycle(customer_id, start, flows, carryover_credit=carryover, **kwargs)
            cycles.append(cycle)
            carryover = 0.0 if cycle.is_true_up_period else cycle.credits.carryover_to_next
        return cycles

    # -------------------------------------------------------------------------
    # Annual true-up
    # -------------------------------------------------------------------------

    def true_up_period(self, true_up_year: int) -> Tuple[date, date]:
        """(start, end) of the twelve months ending in the true-up month of true_up_year."""
        end = month_end(date(true_up_year, self.rates.true_up_month, 1))
        start = add_months(date(true_up_year, self.rates.true_up_month, 1), -11)
        return start, end

    def process_annual_true_up(
        self,
        customer_id: str,
        true_up_year: int,
        cycles: Iterable[BillingCycle],
        payments_received: float = 0.0,
    ) -> TrueUpPeriod:
        """
        Settle the net metering year ending in the true-up month.

        With the default March true-up, true_up_year 2025 covers
        2024-04-01 through 2025-03-31.

        Args:
            customer_id: Customer being settled
            true_up_year: Calendar year the settlement month falls in
            cycles: Billing cycles; cycles outside the period are ignored
            payments_received: Payments already made during the year ($)

        Returns:
            TrueUpPeriod with totals, the settlement bill and analysis

        Raises:
            ValidationError: If no cycle falls within the true-up period
        """
        start, end = self.true_up_period(true_up_year)
        period_cycles = sorted(
            (c for c in cycles if c.start_date >= start and c.end_date <= end),
            key=lambda c: c.start_date,
        )
        if not period_cycles:
            raise ValidationError(
                f"No billing cycles between {start} and {end}",
                ["cycles must include at least one cycle in the true-up period"],
            )

        energy = EnergyTotals()
        for cycle in period_cycles:
            for field in EnergyTotals.model_fields:
                setattr(energy, field, getattr(energy, field) + getattr(cycle.energy, field))

        total_charges = sum(c.charges.gross_charges for c in period_cycles)
        total_credits = sum(c.charges.total_credits for c in period_cycles)
        net_position = sum(c.charges.net_amount for c in period_cycles)

        excess_kwh = max(0.0, -energy.net_usage)
        compensation = excess_kwh * self.rates.cash_out_rate

        unpaid = net_position - payments_received
        net_amount = unpaid - compensation
        bill = TrueUpBill(
            bill_date=end + timedelta(days=BILL_GENERATION_DAYS),
            payment_due_date=end + timedelta(days=PAYMENT_DUE_DAYS),
            unpaid_balance=unpaid,
            excess_generation_credit=compensation,
            net_amount=round(net_amount, 2),
            amount_due=round(max(0.0, net_amount), 2),
            payment_method=PaymentMethod.STANDARD_BILLING if net_amount > 0 else PaymentMethod.CREDIT_MEMO,
        )

        production = energy.production
        analysis = TrueUpAnalysis(
            self_consumption_rate=(production - energy.grid_export) / production * 100 if production > 0 else 0.0,
            export_rate=energy.grid_export / production * 100 if production > 0 else 0.0,
            average_monthly_net_amount=net_position / len(period_cycles),
            recommendations=list(TRUE_UP_RECOMMENDATIONS),
        )

        logger.info(
            f"True-up {customer_id} {true_up_year}: {len(period_cycles)} cycle(s), "
            f"amount due {bill.amount_due:.2f} ({bill.payment_method.value})"
        )

        return TrueUpPeriod(
            id=f"{customer_id}-trueup-{true_up_year}",
            customer_id=customer_id,
            period_year=true_up_year,
            start_date=start,
            end_date=end,
            total_days=(end - start).days + 1,
            billing_cycles=[c.id for c in period_cycles],
            energy_totals=energy,
            average_monthly_consumption=energy.consumption / len(period_cycles),
            total_charges=total_charges,
            total_credits=total_credits,
            total_payments=payments_received,
            net_position=net_position,
            excess_generation_kwh=excess_kwh,
            excess_generation_compensation=compensation,
            true_up_bill=bill,
            analysis=analysis,
        )

    # -------------------------------------------------------------------------
    # Projections
    # -------------------------------------------------------------------------

    def estimate_monthly_production(self, system_capacity_kw: float, year: int, month: int) -> float:
        days = calendar.monthrange(year, month)[1]
        return system_capacity_kw * PEAK_SUN_HOURS * days * PERFORMANCE_RATIO

    def generate_billing_projections(
        self,
        customer_id: str,
        usage_history: List[float],
        system_capacity_kw: float,
        months: int = 12,
        monthly_production: Optional[List[float]] = None,
        start_date: Optional[date] = None,
        carryover_credit: float = 0.0,
    ) -> BillingProjection:
        """
        Project monthly cycles from historical usage.

        Each projected month consumes the historical average. Production
        comes from monthly_production (cycled if shorter than the horizon)
        or an estimate from system capacity.

            bill    = max(0, net kWh * energy_rate + customer_charge)
            savings = max(0, consumption * pre_solar_rate - bill)

        Args:
            customer_id: Customer being projected
            usage_history: Historical monthly consumption (kWh)
            system_capacity_kw: Installed or proposed system size
            months: Number of months to project
            monthly_production: Forecast production per month (kWh)
            start_date: First projected month (defaults to next month)
            carryover_credit: Credit balance at the start ($)

        Raises:
            ValidationError: If usage_history is empty or months < 1
        """
        if not usage_history:
            raise ValidationError("Usage history is required", ["usage_history must not be empty"])
        if months < 1:
            raise ValidationError("Projection horizon too short", ["months must be >= 1"])

        first = start_date or add_months(date.today(), 1)
        start = date(first.year, first.month, 1)
        consumption = mean(usage_history)

        month_starts = [add_months(start, i) for i in range(months)]
        if monthly_production:
            productions = [monthly_production[i % len(monthly_production)] for i in range(months)]
        else:
            productions = [
                self.estimate_monthly_production(system_capacity_kw, d.year, d.month) for d in month_starts
            ]

        cycles = self._project_cycles(month_starts, consumption, productions, carryover_credit)

        total_bills = sum(c.amount_due for c in cycles)
        total_savings = sum(c.estimated_savings for c in cycles)
        pre_solar_total = consumption * self.rates.pre_solar_rate * months
        excess_kwh = max(0.0, -sum(c.net_usage for c in cycles))

        sensitivity = []
        for scenario, variation, risks in SENSITIVITY_SCENARIOS:
            scaled = [p * (1 + variation / 100) for p in productions]
            scenario_cycles = self._project_cycles(month_starts, consumption, scaled, carryover_credit)
            sensitivity.append(SensitivityScenario(
                scenario=scenario,
                production_variation=variation,
                consumption_variation=0.0,
                projected_savings=sum(c.estimated_savings for c in scenario_cycles),
                risk_factors=risks,
            ))

        history_weight = min(len(usage_history) / 12, 1.0)
        confidence = round(history_weight * 40 + (30 if system_capacity_kw > 0 else 0) + 30)

        return BillingProjection(
            customer_id=customer_id,
            start_date=start,
            end_date=month_end(month_starts[-1]),
            months=months,
            projected_cycles=cycles,
            total_bills=total_bills,
            total_savings=total_savings,
            savings_percent=total_savings / pre_solar_total * 100 if pre_solar_total > 0 else 0.0,
            final_credit_balance=cycles[-1].credit_balance,
            excess_generation_kwh=excess_kwh,
            excess_compensation=excess_kwh * self.rates.cash_out_rate,
            sensitivity=sensitivity,
            confidence=confidence,
        )

    def _project_cycles(
        self,
        month_starts: List[date],
        consumption: float,
        productions: List[float],
        carryover_credit: float,
    ) -> List[ProjectedCycle]:
        rates = self.rates
        balance = carryover_credit
        cycles = []
        for month_start, production in zip(month_starts, productions):
            net = consumption - production
            bill = max(0.0, net * rates.energy_rate + rates.customer_charge)
            applied = min(bill, balance)
            amount_due = bill - applied
            balance = balance - applied + max(0.0, -net * rates.export_credit_rate)

            cycles.append(ProjectedCycle(
                month=month_start.month,
                year=month_start.year,
                production=production,
                consumption=consumption,
                net_usage=net,
                estimated_bill=bill,
                credits_applied=applied,
                amount_due=amount_due,
                estimated_savings=max(0.0, consumption * rates.pre_solar_rate - bill),
                credit_balance=balance,
            ))
        return cycles
