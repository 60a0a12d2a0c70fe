"""
Rate optimization engine.

Profiles a customer's load, compares every rate schedule serving the
location over the same usage and adds demand response potential to the
rate engine's savings strategies.
"""

from datetime import date
from typing import Iterable, Optional
import logging

from models.optimization import LoadProfile, Priority, RateOptimizationReport
from models.rates import CustomerClass, OptimizationStrategy, RateSchedule
from services.optimization.load_profile import analyze_load_profile
from services.tariff.utility_rate_engine import UsageInput, UtilityRateEngine, coerce_usage

logger = logging.getLogger(__name__)


class RateOptimizer:
    """
    Usage:
        optimizer = RateOptimizer()
        report = optimizer.optimize("homeowner-user-001", usage_data, "94105")
    """

    def __init__(self, rate_engine: Optional[UtilityRateEngine] = None):
        self.rate_engine = rate_engine or UtilityRateEngine()

    def analyze_load_profile(self, customer_id: str, usage_data: Iterable[UsageInput]) -> LoadProfile:
        return analyze_load_profile(customer_id, usage_data)

    def optimize(
        self,
        customer_id: str,
        usage_data: Iterable[UsageInput],
        zip_code: str,
        customer_class: Optional[CustomerClass] = None,
        current_schedule_id: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> RateOptimizationReport:
        """
        Rank the schedules available at zip_code for this customer's usage.

        Args:
            customer_id: Customer being analysed
            usage_data: Interval readings (ideally a year)
            zip_code: Service address zip code
            customer_class: Overrides the class inferred from peak load
            current_schedule_id: Customer's current schedule
            on_date: Date schedules must be active on

        Returns:
            RateOptimizationReport with the load profile and rate comparison

        Raises:
            ValidationError: If usage has no positive load
            NotFoundError: If no schedule serves the location
        """
        usage = coerce_usage(usage_data)
        profile = analyze_load_profile(customer_id, usage)
        customer_class = customer_class or profile.profile_type

        result = self.rate_engine.optimize_rates(
            zip_code,
            usage,
            customer_class=customer_class,
            current_schedule_id=current_schedule_id,
            on_date=on_date,
        )

        current = self.rate_engine.get_rate_schedule(result.current_rate.schedule_id)
        strategy = self._demand_response_strategy(profile, current)
        if strategy:
            result.optimization_strategies.append(strategy)

        logger.info(
            f"Rate optimization for {customer_id} at {zip_code}: "
            f"{len(result.recommended_rates)} cheaper schedule(s), "
            f"{len(result.optimization_strategies)} strategy(ies)"
        )
        return RateOptimizationReport(load_profile=profile, optimization=result)

    def _demand_response_strategy(
        self,
        profile: LoadProfile,
        schedule: RateSchedule,
    ) -> Optional[OptimizationStrategy]:
        """Curtailing flexible load at the monthly peak, valued at the schedule's demand rates."""
        potential = profile.demand_response
        if potential.responsiveness == Priority.LOW or not schedule.demand_charges:
            return None

        months = sum(1 for m in profile.monthly if m.peak_demand > 0)
        demand_rate = sum(c.rate for c in schedule.demand_charges)
        savings = potential.curtailable_load * demand_rate * months

        return OptimizationStrategy(
            type="demand_response",
            description=f"Curtail up to {potential.curtailable_load:.1f} kW during demand response events",
            potential_savings=savings,
            priority=potential.responsiveness.value,
        )
