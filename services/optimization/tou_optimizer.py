"""
Time-of-use optimization engine.

Works on one TOU rate schedule at a time:
- how the customer's usage currently lands across the TOU periods
- what moving a share of each expensive period's usage into the cheapest
  period would save
- how a battery charged in the cheapest period and discharged against the
  most expensive load would operate, day by day
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple
import logging

import pandas as pd

from models.optimization import (
    BatteryDayOperation,
    BatteryOptimization,
    LoadShiftingPlan,
    LoadShiftRecommendation,
    Priority,
    TOUPerformance,
    TOUPeriodPerformance,
)
from models.rates import CustomerClass, RateSchedule, TimeOfUsePeriod, TOUPeriodType
from services.errors import SolarCalculationError, ValidationError
from services.optimization.load_profile import analyze_load_profile
from services.tariff.utility_rate_engine import (
    UNASSIGNED_PERIOD,
    DEFAULT_SHIFTABLE_FRACTION,
    UsageInput,
    UtilityRateEngine,
    coerce_usage,
)

logger = logging.getLogger(__name__)

PEAK_PERIODS = {TOUPeriodType.PEAK, TOUPeriodType.SUPER_PEAK}
PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class TOUOptimizer:
    """
    Usage:
        optimizer = TOUOptimizer()
        performance = optimizer.analyze_current_tou_performance("pge-e-tou-c", usage_data)
        battery = optimizer.optimize_battery_tou_operation("pge-e-tou-c", usage_data, 13.5, 5.0)
    """

    def __init__(self, rate_engine: Optional[UtilityRateEngine] = None):
        self.rate_engine = rate_engine or UtilityRateEngine()

    def _tou_schedule(self, schedule_id: str) -> RateSchedule:
        schedule = self.rate_engine.get_rate_schedule(schedule_id)
        if not schedule.energy_charges.time_of_use_rates:
            raise SolarCalculationError(
                f"Rate schedule {schedule_id} has no time-of-use periods",
                details={"schedule_id": schedule_id},
            )
        return schedule

    def _period_for(self, record, tou_rates: List[TimeOfUsePeriod]) -> Tuple[str, Optional[TOUPeriodType], float]:
        period = self.rate_engine.calculate_tou_period(record.timestamp, tou_rates)
        if period is None:
            return UNASSIGNED_PERIOD, None, min(p.rate for p in tou_rates)
        return period.name, period.period, period.rate

    def find_tou_rate_schedules(
        self,
        zip_code: str,
        customer_class: CustomerClass = CustomerClass.RESIDENTIAL,
    ) -> List[RateSchedule]:
        return [
            s for s in self.rate_engine.find_rate_schedules(zip_code, customer_class)
            if s.energy_charges.time_of_use_rates
        ]

    # -------------------------------------------------------------------------
    # Current performance
    # -------------------------------------------------------------------------

    def analyze_current_tou_performance(
        self,
        schedule_id: str,
        usage_data: Iterable[UsageInput],
        customer_id: str = "current",
    ) -> TOUPerformance:
        """
        Per-period kWh and energy cost shares on a TOU schedule.

        Raises:
            NotFoundError: If the schedule does not exist
            SolarCalculationError: If the schedule has no TOU periods
            ValidationError: If usage_data is empty
        """
        schedule = self._tou_schedule(schedule_id)
        usage = coerce_usage(usage_data)
        if not usage:
            raise ValidationError("No usage data provided", ["usage_data must not be empty"])

        tou_rates = schedule.energy_charges.time_of_use_rates
        buckets: Dict[str, list] = {}
        for record in usage:
            name, period_type, rate = self._period_for(record, tou_rates)
            buckets.setdefault(name, [period_type, rate, 0.0])[2] += record.kwh

        total_kwh = sum(b[2] for b in buckets.values())
        total_cost = sum(b[1] * b[2] for b in buckets.values())

        periods = [
            TOUPeriodPerformance(
                name=name,
                period=period_type,
                rate=rate,
                kwh=kwh,
                cost=kwh * rate,
                kwh_share=kwh / total_kwh * 100 if total_kwh > 0 else 0.0,
                cost_share=kwh * rate / total_cost * 100 if total_cost > 0 else 0.0,
            )
            for name, (period_type, rate, kwh) in buckets.items()
        ]
        periods.sort(key=lambda p: p.rate, reverse=True)

        return TOUPerformance(
            schedule_id=schedule_id,
            total_kwh=total_kwh,
            total_cost=total_cost,
            average_rate=total_cost / total_kwh if total_kwh > 0 else 0.0,
            peak_kwh_share=sum(p.kwh_share for p in periods if p.period in PEAK_PERIODS),
            suitability_score=self._suitability_score(customer_id, usage),
            periods=periods,
        )

    def _suitability_score(self, customer_id: str, usage) -> int:
        """How much a load profile stands to gain from TOU pricing (0-100)."""
        try:
            profile = analyze_load_profile(customer_id, usage)
        except ValidationError:
            return 0

        score = 50
        if profile.characteristics.demand_variability > 0.3:
            score += 20
        if profile.characteristics.flexible_load > 5:
            score += 15
        if profile.profile_type == CustomerClass.COMMERCIAL:
            score += 15
        return min(score, 100)

    # -------------------------------------------------------------------------
    # Load shifting
    # -------------------------------------------------------------------------

    def generate_load_shifting_recommendations(
        self,
        schedule_id: str,
        usage_data: Iterable[UsageInput],
        shiftable_fraction: float = DEFAULT_SHIFTABLE_FRACTION,
    ) -> LoadShiftingPlan:
        """
        Savings from moving shiftable_fraction of each period's kWh into the
        cheapest period.

        Savings are for the usage supplied and annualized by the number of
        days it covers. Recommendations are ordered high to low priority,
        then by savings.

        Raises:
            ValidationError: If shiftable_fraction is outside (0, 1]
        """
        if not 0 < shiftable_fraction <= 1:
            raise ValidationError(
                "Invalid shiftable fraction",
                ["shiftable_fraction must be greater than 0 and at most 1"],
            )

        usage = coerce_usage(usage_data)
        performance = self.analyze_current_tou_performance(schedule_id, usage)
        days_covered = len({r.timestamp.date() for r in usage})
        annualize = 365 / days_covered

        cheapest = min(performance.periods, key=lambda p: p.rate)
        recommendations = []
        for period in performance.periods:
            rate_difference = period.rate - cheapest.rate
            if period.name == cheapest.name or rate_difference <= 0 or period.kwh <= 0:
                continue

            shiftable_kwh = period.kwh * shiftable_fraction
            savings = shiftable_kwh * rate_difference
            annual_savings = savings * annualize
            if annual_savings >= 100:
                priority = Priority.HIGH
            elif annual_savings >= 25:
                priority = Priority.MEDIUM
            else:
                priority = Priority.LOW

            recommendations.append(LoadShiftRecommendation(
                from_period=period.name,
                to_period=cheapest.name,
                shiftable_kwh=shiftable_kwh,
                rate_difference=rate_difference,
                savings=savings,
                annual_savings=annual_savings,
                priority=priority,
                description=(
                    f"Move {shiftable_kwh:.1f} kWh from {period.name} to {cheapest.name} "
                    f"(saves {rate_difference:.3f} $/kWh)"
                ),
            ))

        recommendations.sort(key=lambda r: (PRIORITY_ORDER[r.priority], -r.annual_savings))

        return LoadShiftingPlan(
            schedule_id=schedule_id,
            shiftable_fraction=shiftable_fraction,
            recommendations=recommendations,
            total_savings=sum(r.savings for r in recommendations),
            total_annual_savings=sum(r.annual_savings for r in recommendations),
        )

    # -------------------------------------------------------------------------
    # Battery arbitrage
    # -------------------------------------------------------------------------

    def optimize_battery_tou_operation(
        self,
        schedule_id: str,
        usage_data: Iterable[UsageInput],
        capacity_kwh: float,
        power_kw: float,
        round_trip_efficiency: float = 0.9,
    ) -> BatteryOptimization:
        """
        Simulate daily battery arbitrage on a TOU schedule.

        Each day the battery discharges into the most expensive intervals
        first, never more than the interval's load or power_kw * interval
        length, and stops where the rate no longer beats the cheapest rate
        grossed up for losses. The energy discharged is bought back in the
        cheapest period at discharged / round_trip_efficiency, bounded by
        capacity and by the charging power over that day's cheapest hours.

        Raises:
            ValidationError: If capacity, power or efficiency is out of range
        """
        errors = []
        if capacity_kwh <= 0:
            errors.append("capacity_kwh must be positive")
        if power_kw <= 0:
            errors.append("power_kw must be positive")
        if not 0 < round_trip_efficiency <= 1:
            errors.append("round_trip_efficiency must be greater than 0 and at most 1")
        if errors:
            raise ValidationError("Invalid battery parameters", errors)

        schedule = self._tou_schedule(schedule_id)
        usage = coerce_usage(usage_data)
        if not usage:
            raise ValidationError("No usage data provided", ["usage_data must not be empty"])

        tou_rates = schedule.energy_charges.time_of_use_rates
        interval_hours = self._interval_hours(usage)
        cheapest_rate = min(p.rate for p in tou_rates)
        break_even_rate = cheapest_rate / round_trip_efficiency

        by_day: Dict[date, list] = defaultdict(list)
        for record in usage:
            name, _, rate = self._period_for(record, tou_rates)
            by_day[record.timestamp.date()].append((rate, name, record.kwh))

        days = []
        for day in sorted(by_day):
            intervals = by_day[day]
            cheap_intervals = [i for i in intervals if i[0] == cheapest_rate]
            charge_limit = min(capacity_kwh, len(cheap_intervals) * interval_hours * power_kw)
            deliverable = charge_limit * round_trip_efficiency

            discharged = 0.0
            discharge_value = 0.0
            for rate, _, kwh in sorted(intervals, key=lambda i: i[0], reverse=True):
                if deliverable - discharged <= 0 or rate <= break_even_rate:
                    break
                amount = min(kwh, power_kw * interval_hours, deliverable - discharged)
                discharged += amount
                discharge_value += amount * rate

            charged = discharged / round_trip_efficiency
            charge_cost = charged * cheapest_rate
            days.append(BatteryDayOperation(
                day=day,
                charge_period=cheap_intervals[0][1] if cheap_intervals and charged > 0 else None,
                charged_kwh=charged,
                discharged_kwh=discharged,
                charge_cost=charge_cost,
                discharge_value=discharge_value,
                savings=discharge_value - charge_cost,
            ))

        total_savings = sum(d.savings for d in days)
        total_discharged = sum(d.discharged_kwh for d in days)

        logger.info(
            f"Battery simulation on {schedule_id}: {len(days)} day(s), "
            f"{total_discharged:.1f} kWh discharged, savings {total_savings:.2f}"
        )

        return BatteryOptimization(
            schedule_id=schedule_id,
            capacity_kwh=capacity_kwh,
            power_kw=power_kw,
            round_trip_efficiency=round_trip_efficiency,
            days=days,
            total_charged_kwh=sum(d.charged_kwh for d in days),
            total_discharged_kwh=total_discharged,
            total_savings=total_savings,
            estimated_annual_savings=total_savings / len(days) * 365,
            equivalent_cycles=total_discharged / capacity_kwh,
        )

    def _interval_hours(self, usage) -> float:
        """Median spacing between readings in hours (1.0 for a single reading)."""
        if len(usage) < 2:
            return 1.0
        stamps = pd.Series(sorted(r.timestamp for r in usage))
        spacing = stamps.diff().dropna().median()
        hours = spacing.total_seconds() / 3600
        return hours if hours > 0 else 1.0
