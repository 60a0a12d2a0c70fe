"""
Utility rate engine.

Prices metered usage against a rate schedule:

    Fixed      = customer + connection_fee * days + facility * peak_kW + service
    Energy     = flat_rate * kWh + sum(TOU period kWh * rate) + sum(tier kWh * rate)
    Demand     = sum(peak_kW * demand_rate), bucketed by demand charge type
    Additional = public_purpose * kWh + (Fixed + Energy + Demand) * tax% / 100
    Total      = Fixed + Energy + Demand + Additional

Tiers bill min(remaining kWh, threshold) in order; the last tier absorbs
whatever remains. Each usage interval is priced by the first TOU period
that matches its month, weekday (0 = Sunday) and HH:MM time.
"""

import math
from collections import defaultdict
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Tuple, Union
import logging

from models.rates import (
    AdditionalChargeBreakdown,
    BillCalculationResult,
    BillCharges,
    BillingPeriod,
    CustomerClass,
    DemandChargeBreakdown,
    DemandChargeType,
    EnergyChargeBreakdown,
    FixedChargeBreakdown,
    OptimizationStrategy,
    PeriodUsage,
    RateAnalysis,
    RateComparison,
    RateOptimizationResult,
    RateSchedule,
    TimeOfUsePeriod,
    TOUPeriodType,
    UsageBreakdown,
    UsageRecord,
)
from services.errors import NotFoundError, SolarCalculationError
from services.tariff.rate_catalog import default_rate_schedules
from utils.dates import month_end

logger = logging.getLogger(__name__)

UNASSIGNED_PERIOD = "Unassigned"

# Share of peak-priced usage assumed movable when estimating load-shifting savings
DEFAULT_SHIFTABLE_FRACTION = 0.2
# Peak demand reduction assumed when estimating demand-charge savings
DEFAULT_DEMAND_REDUCTION = 0.1

UsageInput = Union[UsageRecord, dict]


def coerce_usage(usage_data: Iterable[UsageInput]) -> List[UsageRecord]:
    """Accept UsageRecord models or plain dicts (timestamp, kwh, kw)."""
    return [u if isinstance(u, UsageRecord) else UsageRecord(**u) for u in usage_data]


def day_of_week(ts: datetime) -> int:
    """Weekday with 0 = Sunday .. 6 = Saturday."""
    return ts.isoweekday() % 7


def is_time_in_range(hhmm: str, start_time: str, end_time: str) -> bool:
    """
    Inclusive HH:MM range check.

    A start later than the end is an overnight window (e.g. 22:00-06:00).
    """
    if start_time > end_time:
        return hhmm >= start_time or hhmm <= end_time
    return start_time <= hhmm <= end_time


class UtilityRateEngine:
    """
    Rate schedule registry and bill calculator.

    Usage:
        engine = UtilityRateEngine()
        bill = engine.calculate_bill(
            "pge-e-tou-c",
            usage_data,
            datetime(2024, 6, 1),
            datetime(2024, 6, 30, 23, 59, 59),
        )
    """

    def __init__(self, schedules: Optional[Iterable[RateSchedule]] = None):
        """
        Initialize engine.

        Args:
            schedules: Rate schedules to register (defaults to the built-in catalogue)
        """
        self._schedules: Dict[str, RateSchedule] = {}
        for schedule in schedules if schedules is not None else default_rate_schedules():
            self.add_rate_schedule(schedule)

    # -------------------------------------------------------------------------
    # Schedule registry
    # -------------------------------------------------------------------------

    def add_rate_schedule(self, schedule: RateSchedule) -> bool:
        """
        Register or replace a schedule.

        Returns:
            True if the schedule is new or differs from the registered one
        """
        existing = self._schedules.get(schedule.id)
        self._schedules[schedule.id] = schedule
        changed = existing is None or existing.model_dump() != schedule.model_dump()
        if changed:
            logger.info(f"Registered rate schedule {schedule.id} ({schedule.rate_code})")
        return changed

    def list_rate_schedules(self) -> List[RateSchedule]:
        return list(self._schedules.values())

    def get_rate_schedule(self, schedule_id: str) -> RateSchedule:
        """
        Raises:
            NotFoundError: If no schedule has this id
        """
        schedule = self._schedules.get(schedule_id)
        if schedule is None:
            raise NotFoundError("RateSchedule", schedule_id)
        return schedule

    def find_rate_schedules(
        self,
        zip_code: str,
        customer_class: CustomerClass = CustomerClass.RESIDENTIAL,
        utility_company: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> List[RateSchedule]:
        """
        Active schedules serving a zip code, solar-friendly schedules first.

        Args:
            zip_code: Service address zip code
            customer_class: Customer class to match
            utility_company: Optional utility name filter (case-insensitive)
            on_date: Date the schedule must be in effect (defaults to today)
        """
        on_date = on_date or date.today()
        customer_class = CustomerClass(customer_class)

        matches = [
            s for s in self._schedules.values()
            if zip_code in s.zip_codes
            and s.customer_class == customer_class
            and s.is_active(on_date)
            and (utility_company is None or s.utility_company.lower() == utility_company.lower())
        ]
        return sorted(matches, key=lambda s: not s.solar_friendly)

    # -------------------------------------------------------------------------
    # TOU lookup
    # -------------------------------------------------------------------------

    def calculate_tou_period(
        self,
        timestamp: datetime,
        tou_rates: List[TimeOfUsePeriod],
    ) -> Optional[TimeOfUsePeriod]:
        """First TOU period whose month, weekday and time window contain timestamp."""
        hhmm = f"{timestamp.hour:02d}:{timestamp.minute:02d}"
        dow = day_of_week(timestamp)

        for period in tou_rates:
            if timestamp.month not in period.months:
                continue
            if dow not in period.days_of_week:
                continue
            if is_time_in_range(hhmm, period.start_time, period.end_time):
                return period
        return None

    # -------------------------------------------------------------------------
    # Bill calculation
    # -------------------------------------------------------------------------

    def calculate_bill(
        self,
        schedule_id: str,
        usage_data: Iterable[UsageInput],
        billing_period_start: datetime,
        billing_period_end: datetime,
    ) -> BillCalculationResult:
        """
        Calculate a bill for usage within [start, end] on a schedule.

        Args:
            schedule_id: Rate schedule to price against
            usage_data: Interval readings; readings outside the period are ignored
            billing_period_start: Period start (inclusive)
            billing_period_end: Period end (inclusive)

        Returns:
            BillCalculationResult with usage breakdown, charges and analysis

        Raises:
            NotFoundError: If the schedule does not exist
            SolarCalculationError: If the period ends before it starts
        """
        if billing_period_end < billing_period_start:
            raise SolarCalculationError("Billing period end must not precede its start")

        schedule = self.get_rate_schedule(schedule_id)
        period_usage = [
            u for u in coerce_usage(usage_data)
            if billing_period_start <= u.timestamp <= billing_period_end
        ]

        elapsed = (billing_period_end - billing_period_start).total_seconds()
        billing_period = BillingPeriod(
            start_date=billing_period_start,
            end_date=billing_period_end,
            days_in_period=math.ceil(elapsed / 86400),
        )

        usage = self._calculate_usage_breakdown(period_usage, schedule)
        charges = self._calculate_charges(usage, schedule, billing_period)
        analysis = self._analyze_rate_structure(usage, charges, schedule)

        logger.debug(
            f"Bill for {schedule_id} {billing_period_start:%Y-%m-%d}..{billing_period_end:%Y-%m-%d}: "
            f"{usage.total_kwh:.1f} kWh, total {charges.total_bill:.2f}"
        )

        return BillCalculationResult(
            schedule_id=schedule_id,
            billing_period=billing_period,
            usage=usage,
            charges=charges,
            rate_analysis=analysis,
        )

    def _calculate_usage_breakdown(
        self,
        usage: List[UsageRecord],
        schedule: RateSchedule,
    ) -> UsageBreakdown:
        total_kwh = sum(u.kwh for u in usage)
        peak_kw = max((u.kw or 0.0 for u in usage), default=0.0)

        tou_rates = schedule.energy_charges.time_of_use_rates
        time_of_use: Dict[str, PeriodUsage] = {}

        if tou_rates:
            fallback_rate = min(p.rate for p in tou_rates)
            buckets: Dict[str, List[float]] = {}
            for record in usage:
                period = self.calculate_tou_period(record.timestamp, tou_rates)
                name, rate = (period.name, period.rate) if period else (UNASSIGNED_PERIOD, fallback_rate)
                buckets.setdefault(name, [0.0, rate])[0] += record.kwh

            for name, (kwh, rate) in buckets.items():
                time_of_use[name] = PeriodUsage(kwh=kwh, rate=rate, cost=kwh * rate)

            if UNASSIGNED_PERIOD in time_of_use:
                logger.warning(
                    f"{time_of_use[UNASSIGNED_PERIOD].kwh:.2f} kWh matched no TOU period on "
                    f"{schedule.id}; billed at {fallback_rate}"
                )

        tiered: Dict[str, PeriodUsage] = {}
        tiers = sorted(schedule.energy_charges.tiered_rates, key=lambda t: t.tier)
        remaining = total_kwh
        for i, tier in enumerate(tiers):
            if remaining <= 0:
                break
            is_last = i == len(tiers) - 1
            tier_kwh = remaining if is_last else min(remaining, tier.threshold)
            tiered[tier.name] = PeriodUsage(kwh=tier_kwh, rate=tier.rate, cost=tier_kwh * tier.rate)
            remaining -= tier_kwh

        return UsageBreakdown(
            total_kwh=total_kwh,
            peak_kw=peak_kw,
            time_of_use=time_of_use,
            tiered=tiered,
        )

    def _calculate_charges(
        self,
        usage: UsageBreakdown,
        schedule: RateSchedule,
        billing_period: BillingPeriod,
    ) -> BillCharges:
        fc = schedule.fixed_charges
        connection_fee = fc.connection_fee * billing_period.days_in_period
        facility_charge = fc.facility_charge * usage.peak_kw
        fixed = FixedChargeBreakdown(
            connection_fee=connection_fee,
            customer_charge=fc.customer_charge,
            facility_charge=facility_charge,
            service_charge=fc.service_charge,
            total=connection_fee + fc.customer_charge + facility_charge + fc.service_charge,
        )

        base = usage.total_kwh * (schedule.energy_charges.flat_rate or 0.0)
        tou_total = sum(p.cost for p in usage.time_of_use.values())
        tiered_total = sum(t.cost for t in usage.tiered.values())
        energy = EnergyChargeBreakdown(
            base=base,
            time_of_use=tou_total,
            tiered=tiered_total,
            total=base + tou_total + tiered_total,
        )

        demand = DemandChargeBreakdown()
        for charge in schedule.demand_charges:
            amount = usage.peak_kw * charge.rate
            if charge.type == DemandChargeType.FACILITY:
                demand.facility += amount
            elif charge.type == DemandChargeType.TIME_OF_USE:
                demand.time_of_use += amount
            else:
                demand.coincident_peak += amount
        demand.total = demand.facility + demand.time_of_use + demand.coincident_peak

        ac = schedule.additional_charges
        public_purpose = usage.total_kwh * ac.public_purpose_programs
        taxes = (fixed.total + energy.total + demand.total) * ac.state_and_local_taxes / 100
        additional = AdditionalChargeBreakdown(
            public_purpose=public_purpose,
            taxes=taxes,
            total=public_purpose + taxes,
        )

        return BillCharges(
            fixed_charges=fixed,
            energy_charges=energy,
            demand_charges=demand,
            additional_charges=additional,
            total_bill=round(fixed.total + energy.total + demand.total + additional.total, 2),
        )

    def _analyze_rate_structure(
        self,
        usage: UsageBreakdown,
        charges: BillCharges,
        schedule: RateSchedule,
    ) -> RateAnalysis:
        effective_rate = charges.total_bill / usage.total_kwh if usage.total_kwh > 0 else 0.0

        energy = schedule.energy_charges
        if energy.flat_rate:
            marginal_rate = energy.flat_rate
        elif usage.tiered:
            # The last tier billed is the one the next kWh lands in
            marginal_rate = list(usage.tiered.values())[-1].rate
        elif energy.time_of_use_rates:
            marginal_rate = max(p.rate for p in energy.time_of_use_rates)
        else:
            marginal_rate = effective_rate

        opportunities = []
        if energy.time_of_use_rates:
            opportunities.append("Shift usage to off-peak hours")
        if schedule.demand_charges:
            opportunities.append("Reduce peak demand usage")

        return RateAnalysis(
            effective_rate=effective_rate,
            marginal_rate=marginal_rate,
            savings_opportunities=opportunities,
        )

    # -------------------------------------------------------------------------
    # Annual cost and rate comparison
    # -------------------------------------------------------------------------

    def calculate_monthly_bills(
        self,
        schedule_id: str,
        usage_data: Iterable[UsageInput],
    ) -> List[BillCalculationResult]:
        """One bill per calendar month that has usage, in date order."""
        by_month: Dict[Tuple[int, int], List[UsageRecord]] = defaultdict(list)
        for record in coerce_usage(usage_data):
            by_month[(record.timestamp.year, record.timestamp.month)].append(record)

        bills = []
        for year, month in sorted(by_month):
            start = datetime(year, month, 1)
            end = datetime.combine(month_end(start), time(23, 59, 59))
            bills.append(self.calculate_bill(schedule_id, by_month[(year, month)], start, end))
        return bills

    def calculate_annual_cost(self, schedule_id: str, usage_data: Iterable[UsageInput]) -> float:
        return sum(b.charges.total_bill for b in self.calculate_monthly_bills(schedule_id, usage_data))

    def optimize_rates(
        self,
        zip_code: str,
        usage_data: Iterable[UsageInput],
        customer_class: CustomerClass = CustomerClass.RESIDENTIAL,
        current_schedule_id: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> RateOptimizationResult:
        """
        Compare every schedule available at a location over the same usage.

        Args:
            zip_code: Service address zip code
            usage_data: Interval readings (ideally a year)
            customer_class: Customer class
            current_schedule_id: The customer's current schedule; defaults to
                the first schedule found for the location
            on_date: Date schedules must be active on

        Returns:
            Current rate, cheaper alternatives sorted by annual cost, and
            strategies for the current rate

        Raises:
            NotFoundError: If no schedule serves the location
        """
        usage = coerce_usage(usage_data)
        schedules = self.find_rate_schedules(zip_code, customer_class, on_date=on_date)
        if not schedules:
            raise NotFoundError("RateSchedule for zip code", zip_code)

        if current_schedule_id:
            current = self.get_rate_schedule(current_schedule_id)
            if current.id not in {s.id for s in schedules}:
                schedules.append(current)
        else:
            current = schedules[0]

        costs = {s.id: self.calculate_annual_cost(s.id, usage) for s in schedules}
        current_cost = costs[current.id]

        def comparison(schedule: RateSchedule) -> RateComparison:
            savings = current_cost - costs[schedule.id]
            return RateComparison(
                schedule_id=schedule.id,
                rate_name=schedule.rate_name,
                annual_cost=costs[schedule.id],
                potential_savings=savings,
                savings_percentage=(savings / current_cost * 100) if current_cost > 0 else 0.0,
                reason=self._optimization_reason(schedule),
            )

        alternatives = sorted(
            (s for s in schedules if s.id != current.id and costs[s.id] < current_cost),
            key=lambda s: costs[s.id],
        )

        logger.info(
            f"Rate comparison for {zip_code}: current {current.id} {current_cost:.2f}/yr, "
            f"{len(alternatives)} cheaper alternative(s)"
        )

        return RateOptimizationResult(
            current_rate=comparison(current),
            recommended_rates=[comparison(s) for s in alternatives],
            optimization_strategies=self.generate_optimization_strategies(current, usage),
        )

    def _optimization_reason(self, schedule: RateSchedule) -> str:
        if schedule.solar_friendly:
            return "Solar-friendly rate with beneficial net metering terms"
        if schedule.time_of_use_optimized:
            return "Time-of-use rate optimal for load shifting"
        return "Lower overall energy costs"

    def generate_optimization_strategies(
        self,
        schedule: RateSchedule,
        usage: List[UsageRecord],
    ) -> List[OptimizationStrategy]:
        """
        Savings estimates for the current schedule.

        Load shifting moves DEFAULT_SHIFTABLE_FRACTION of peak-period kWh to
        the cheapest period; demand reduction trims DEFAULT_DEMAND_REDUCTION
        of each month's peak kW.
        """
        strategies = []
        tou_rates = schedule.energy_charges.time_of_use_rates

        if tou_rates:
            cheapest = min(p.rate for p in tou_rates)
            peak_types = {TOUPeriodType.PEAK, TOUPeriodType.SUPER_PEAK}
            peak_kwh_cost_delta = 0.0
            for record in usage:
                period = self.calculate_tou_period(record.timestamp, tou_rates)
                if period and period.period in peak_types:
                    peak_kwh_cost_delta += record.kwh * (period.rate - cheapest)

            savings = peak_kwh_cost_delta * DEFAULT_SHIFTABLE_FRACTION
            strategies.append(OptimizationStrategy(
                type="load_shifting",
                description="Shift energy usage to off-peak hours",
                potential_savings=savings,
                priority="high" if savings >= 100 else "medium",
            ))

        if schedule.demand_charges:
            demand_rate = sum(c.rate for c in schedule.demand_charges)
            monthly_peaks: Dict[Tuple[int, int], float] = defaultdict(float)
            for record in usage:
                key = (record.timestamp.year, record.timestamp.month)
                monthly_peaks[key] = max(monthly_peaks[key], record.kw or 0.0)

            savings = sum(monthly_peaks.values()) * DEFAULT_DEMAND_REDUCTION * demand_rate
            strategies.append(OptimizationStrategy(
                type="demand_reduction",
                description="Reduce peak demand usage",
                potential_savings=savings,
                priority="medium",
            ))

        return strategies
