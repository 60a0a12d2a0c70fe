"""
Unit tests for load profile analysis and the rate optimizer.
"""

import pytest
from datetime import date, datetime

from models.optimization import LoadShape, Priority, Season
from models.rates import CustomerClass
from services.errors import NotFoundError, ValidationError
from services.optimization import RateOptimizer, analyze_load_profile


# Test Data Fixtures

@pytest.fixture
def residential_day():
    """Monday 2024-06-03, hourly: 1 kWh overnight and daytime, 3 kWh 16-21h, 2 kWh 22-23h."""
    def kwh(hour):
        if 16 <= hour <= 21:
            return 3.0
        if hour >= 22:
            return 2.0
        return 1.0

    return [{"timestamp": datetime(2024, 6, 3, hour), "kwh": kwh(hour)} for hour in range(24)]


@pytest.fixture
def commercial_day():
    """Monday 2024-06-03, hourly demand: 20 kW until 16h, then 100 kW."""
    return [
        {"timestamp": datetime(2024, 6, 3, hour), "kwh": kw, "kw": kw}
        for hour, kw in ((h, 20.0 if h < 16 else 100.0) for h in range(24))
    ]


# Tests

def test_load_characteristics(residential_day):
    """Mean 38/24 kWh, peak 3, minimum 1; base load is 80% of the minimum."""
    profile = analyze_load_profile("homeowner-user-001", residential_day)
    c = profile.characteristics

    assert profile.profile_type == CustomerClass.RESIDENTIAL
    assert profile.total_days == 1
    assert c.average_load == pytest.approx(38 / 24)
    assert c.peak_load == pytest.approx(3.0)
    assert c.minimum_load == pytest.approx(1.0)
    assert c.load_factor == pytest.approx(38 / 24 / 3)
    assert c.base_load == pytest.approx(0.8)
    assert c.flexible_load == pytest.approx(2.2)


def test_hourly_daily_monthly_patterns(residential_day):
    profile = analyze_load_profile("homeowner-user-001", residential_day)

    assert len(profile.hourly) == 24
    assert profile.hourly[17].average_load == pytest.approx(3.0)
    assert profile.hourly[17].frequency == 1

    monday = profile.daily[1]
    assert monday.peak_demand == pytest.approx(3.0)
    assert monday.load_shape == LoadShape.VARIABLE
    assert profile.daily[0].average_usage == 0

    june = profile.monthly[5]
    assert june.average_usage == pytest.approx(38 / 24)
    assert june.cooling_load == pytest.approx(38 / 24 * 0.4)
    assert june.heating_load is None
    assert profile.monthly[0].heating_load == 0

    summer = next(s for s in profile.seasonal if s.season == Season.SUMMER)
    assert summer.dominant_load == "cooling"
    assert summer.peak_demand == pytest.approx(3.0)


def test_tou_usage_split(residential_day):
    """Peak 16-21h = 18 kWh, shoulder 9-15h and 22-23h = 11 kWh, the rest 9 kWh."""
    tou = analyze_load_profile("homeowner-user-001", residential_day).tou_analysis

    assert tou.peak_usage == pytest.approx(18.0)
    assert tou.shoulder_usage == pytest.approx(11.0)
    assert tou.off_peak_usage == pytest.approx(9.0)
    # System peak hours average 3 kWh against a 38/24 daily average
    assert tou.peak_coincidence == pytest.approx(3 / (38 / 24) * 100)


def test_small_residential_load_has_low_responsiveness(residential_day):
    dr = analyze_load_profile("homeowner-user-001", residential_day).demand_response

    assert dr.shiftable_load == pytest.approx(0.9)
    assert dr.curtailable_load == pytest.approx(0.6)
    assert dr.responsiveness == Priority.LOW


def test_commercial_load_is_highly_responsive(commercial_day):
    profile = analyze_load_profile("installer-user-001", commercial_day)

    assert profile.profile_type == CustomerClass.COMMERCIAL
    assert profile.demand_response.shiftable_load == pytest.approx(30.0)
    assert profile.demand_response.curtailable_load == pytest.approx(20.0)
    assert profile.demand_response.responsiveness == Priority.HIGH


def test_profile_requires_positive_load():
    with pytest.raises(ValidationError):
        analyze_load_profile("homeowner-user-001", [{"timestamp": datetime(2024, 6, 3), "kwh": 0.0}])


def test_optimizer_recommends_tiered_rate(residential_day):
    """38 kWh costs 12.16 on E-1 against 13.65 on E-TOU-C."""
    report = RateOptimizer().optimize("homeowner-user-001", residential_day, "94105", on_date=date(2024, 6, 1))
    result = report.optimization

    assert result.current_rate.schedule_id == "pge-e-tou-c"
    assert [r.schedule_id for r in result.recommended_rates] == ["pge-e-1"]
    # Bills of 36.46 and 34.85 after fixed charges and tax
    assert result.recommended_rates[0].potential_savings == pytest.approx(1.61)
    assert [s.type for s in result.optimization_strategies] == ["load_shifting"]


def test_optimizer_adds_demand_response_strategy(commercial_day):
    """20 kW curtailable at B-10's $20/kW for one month."""
    report = RateOptimizer().optimize("installer-user-001", commercial_day, "94105", on_date=date(2024, 6, 1))
    strategies = {s.type: s for s in report.optimization.optimization_strategies}

    assert report.optimization.current_rate.schedule_id == "pge-b-10"
    assert strategies["demand_reduction"].potential_savings == pytest.approx(200.0)
    assert strategies["demand_response"].potential_savings == pytest.approx(400.0)
    assert strategies["demand_response"].priority == "high"


def test_optimizer_customer_class_override(residential_day):
    report = RateOptimizer().optimize(
        "homeowner-user-001", residential_day, "94105",
        customer_class=CustomerClass.COMMERCIAL, on_date=date(2024, 6, 1),
    )
    assert report.optimization.current_rate.schedule_id == "pge-b-10"


def test_optimizer_unknown_location(residential_day):
    with pytest.raises(NotFoundError):
        RateOptimizer().optimize("homeowner-user-001", residential_day, "10001", on_date=date(2024, 6, 1))
