"""
Unit tests for the utility rate engine.
"""

import pytest
from datetime import date, datetime

from models.rates import CustomerClass, RateSchedule
from services.errors import NotFoundError, SolarCalculationError
from services.tariff import UtilityRateEngine
from services.tariff.utility_rate_engine import day_of_week, is_time_in_range


JUNE_START = datetime(2024, 6, 1)
JUNE_END = datetime(2024, 6, 30, 23, 59, 59)


# Test Data Fixtures

@pytest.fixture
def engine():
    return UtilityRateEngine()


@pytest.fixture
def weekday_evening_usage():
    """15 kWh at 17:00 on each of June 2024's 20 weekdays (300 kWh, all peak)."""
    return [
        {"timestamp": datetime(2024, 6, day, 17, 0), "kwh": 15.0, "kw": 3.0}
        for day in range(1, 31)
        if datetime(2024, 6, day).weekday() < 5
    ]


# Tests

def test_day_of_week_starts_on_sunday():
    assert day_of_week(datetime(2024, 6, 2)) == 0
    assert day_of_week(datetime(2024, 6, 3)) == 1
    assert day_of_week(datetime(2024, 6, 1)) == 6


def test_time_range_is_inclusive_and_wraps_overnight():
    assert is_time_in_range("16:00", "16:00", "20:59")
    assert is_time_in_range("20:59", "16:00", "20:59")
    assert not is_time_in_range("21:00", "16:00", "20:59")
    assert is_time_in_range("23:30", "22:00", "06:00")
    assert is_time_in_range("05:00", "22:00", "06:00")
    assert not is_time_in_range("12:00", "22:00", "06:00")


def test_tou_period_lookup_is_first_match(engine):
    """Weekday evenings are peak; weekends and late evenings fall through to off-peak."""
    periods = engine.get_rate_schedule("pge-e-tou-c").energy_charges.time_of_use_rates

    assert engine.calculate_tou_period(datetime(2024, 6, 3, 17, 0), periods).id == "peak"
    assert engine.calculate_tou_period(datetime(2024, 6, 2, 17, 0), periods).id == "off_peak"
    assert engine.calculate_tou_period(datetime(2024, 6, 3, 21, 0), periods).id == "off_peak"


def test_tiered_bill(engine):
    """
    500 kWh on E-1 over a 30-day period:
    energy = 300 * 0.32 + 200 * 0.40 = 176
    fixed = 10 + 0.32877 * 30 = 19.8631
    public purpose = 500 * 0.00263 = 1.315
    taxes = (19.8631 + 176) * 8.5% = 16.6483635
    total = 213.8264635, billed as 213.83
    """
    usage = [
        {"timestamp": datetime(2024, 6, 5, 12, 0), "kwh": 250.0},
        {"timestamp": datetime(2024, 6, 20, 12, 0), "kwh": 250.0},
        {"timestamp": datetime(2024, 7, 1, 12, 0), "kwh": 999.0},
    ]

    bill = engine.calculate_bill("pge-e-1", usage, JUNE_START, JUNE_END)

    assert bill.billing_period.days_in_period == 30
    assert bill.usage.total_kwh == pytest.approx(500.0)
    assert bill.usage.tiered["Baseline"].kwh == pytest.approx(300.0)
    assert bill.usage.tiered["Above Baseline"].kwh == pytest.approx(200.0)
    assert bill.charges.energy_charges.tiered == pytest.approx(176.0)
    assert bill.charges.fixed_charges.total == pytest.approx(19.8631)
    assert bill.charges.additional_charges.public_purpose == pytest.approx(1.315)
    assert bill.charges.additional_charges.taxes == pytest.approx(16.6483635)
    assert bill.charges.total_bill == pytest.approx(213.83)
    assert bill.rate_analysis.marginal_rate == pytest.approx(0.40)
    assert bill.rate_analysis.effective_rate == pytest.approx(213.83 / 500)


def test_last_tier_absorbs_remaining_usage(engine):
    usage = [{"timestamp": datetime(2024, 6, 5), "kwh": 1500.0}]

    bill = engine.calculate_bill("pge-e-1", usage, JUNE_START, JUNE_END)

    assert bill.usage.tiered["Above Baseline"].kwh == pytest.approx(1200.0)


def test_tou_bill(engine, weekday_evening_usage):
    bill = engine.calculate_bill("pge-e-tou-c", weekday_evening_usage, JUNE_START, JUNE_END)

    assert bill.usage.time_of_use["Peak"].kwh == pytest.approx(300.0)
    assert "Off-Peak" not in bill.usage.time_of_use
    assert bill.charges.energy_charges.time_of_use == pytest.approx(135.0)
    assert bill.rate_analysis.marginal_rate == pytest.approx(0.45)
    assert "Shift usage to off-peak hours" in bill.rate_analysis.savings_opportunities


def test_unassigned_tou_usage_billed_at_lowest_rate():
    schedule = RateSchedule(
        id="gappy",
        utility_company="Test Utility",
        rate_name="Peak only",
        rate_code="GAP",
        rate_type="time_of_use",
        energy_charges={"time_of_use_rates": [
            {"id": "peak", "name": "Peak", "period": "peak", "start_time": "16:00", "end_time": "20:59", "rate": 0.50},
            {"id": "mid", "name": "Mid", "period": "shoulder", "start_time": "12:00", "end_time": "15:59", "rate": 0.35},
        ]},
        effective_date=date(2024, 1, 1),
    )
    engine = UtilityRateEngine(schedules=[schedule])

    bill = engine.calculate_bill("gappy", [{"timestamp": datetime(2024, 6, 3, 3, 0), "kwh": 10.0}], JUNE_START, JUNE_END)

    assert bill.usage.time_of_use["Unassigned"].rate == pytest.approx(0.35)
    assert bill.charges.energy_charges.time_of_use == pytest.approx(3.5)


def test_demand_bill(engine):
    """Facility demand charge is peak kW * $20."""
    usage = [
        {"timestamp": datetime(2024, 6, 3, 10, 0), "kwh": 400.0, "kw": 40.0},
        {"timestamp": datetime(2024, 6, 4, 14, 0), "kwh": 600.0, "kw": 55.0},
    ]

    bill = engine.calculate_bill("pge-b-10", usage, JUNE_START, JUNE_END)

    assert bill.usage.peak_kw == pytest.approx(55.0)
    assert bill.charges.demand_charges.facility == pytest.approx(1100.0)
    assert bill.charges.energy_charges.base == pytest.approx(180.0)
    # (50 + 180 + 1100) * 1.085
    assert bill.charges.total_bill == pytest.approx(1443.05)
    assert "Reduce peak demand usage" in bill.rate_analysis.savings_opportunities


def test_empty_usage_bills_fixed_charges_only(engine):
    bill = engine.calculate_bill("pge-e-1", [], JUNE_START, JUNE_END)

    assert bill.usage.total_kwh == 0
    assert bill.charges.energy_charges.total == 0
    assert bill.rate_analysis.effective_rate == 0
    # 19.8631 * 1.085 = 21.5514635
    assert bill.charges.total_bill == pytest.approx(21.55)


def test_bill_total_is_rounded_to_cents(engine):
    """19.8631 + 39.50592 + 0.32468928 + 5.04636670 = 64.74007598."""
    bill = engine.calculate_bill(
        "pge-e-1", [{"timestamp": datetime(2024, 6, 5, 12, 0), "kwh": 123.456}], JUNE_START, JUNE_END,
    )
    charges = bill.charges
    unrounded = (
        charges.fixed_charges.total + charges.energy_charges.total
        + charges.demand_charges.total + charges.additional_charges.total
    )

    assert unrounded == pytest.approx(64.74007598)
    assert charges.total_bill == 64.74


def test_invalid_period_and_unknown_schedule(engine):
    with pytest.raises(SolarCalculationError):
        engine.calculate_bill("pge-e-1", [], JUNE_END, JUNE_START)
    with pytest.raises(NotFoundError):
        engine.calculate_bill("no-such-rate", [], JUNE_START, JUNE_END)


def test_find_rate_schedules_solar_friendly_first(engine):
    residential = engine.find_rate_schedules("94105", on_date=date(2024, 6, 1))
    commercial = engine.find_rate_schedules("94105", CustomerClass.COMMERCIAL, on_date=date(2024, 6, 1))

    assert [s.id for s in residential] == ["pge-e-tou-c", "pge-e-1"]
    assert [s.id for s in commercial] == ["pge-b-10"]
    assert engine.find_rate_schedules("10001", on_date=date(2024, 6, 1)) == []
    assert engine.find_rate_schedules("94105", on_date=date(2023, 6, 1)) == []


def test_monthly_bills_split_by_calendar_month(engine):
    usage = [
        {"timestamp": datetime(2024, 1, 15), "kwh": 100.0},
        {"timestamp": datetime(2024, 2, 15), "kwh": 200.0},
        {"timestamp": datetime(2024, 2, 20), "kwh": 50.0},
    ]

    bills = engine.calculate_monthly_bills("pge-e-1", usage)

    assert [b.usage.total_kwh for b in bills] == [100.0, 250.0]
    assert bills[1].billing_period.days_in_period == 29


def test_optimize_rates_recommends_cheaper_schedule(engine, weekday_evening_usage):
    """All-peak usage is cheaper on the tiered rate (300 kWh * 0.32 vs * 0.45)."""
    result = engine.optimize_rates(
        "94105",
        weekday_evening_usage,
        current_schedule_id="pge-e-tou-c",
        on_date=date(2024, 6, 1),
    )

    assert result.current_rate.schedule_id == "pge-e-tou-c"
    assert [r.schedule_id for r in result.recommended_rates] == ["pge-e-1"]
    # Bills of 168.82 and 126.50: energy differs by 39 before tax
    assert result.recommended_rates[0].potential_savings == pytest.approx(42.32)

    shifting = result.optimization_strategies[0]
    assert shifting.type == "load_shifting"
    # 300 kWh * (0.45 - 0.30) * 20%
    assert shifting.potential_savings == pytest.approx(9.0)
    assert shifting.priority == "medium"


def test_optimize_rates_unknown_location(engine):
    with pytest.raises(NotFoundError):
        engine.optimize_rates("10001", [], on_date=date(2024, 6, 1))


def test_add_rate_schedule_reports_changes(engine):
    schedule = engine.get_rate_schedule("pge-e-1")

    assert engine.add_rate_schedule(schedule) is False
    assert engine.add_rate_schedule(schedule.model_copy(update={"rate_name": "Renamed"})) is True
    assert engine.get_rate_schedule("pge-e-1").rate_name == "Renamed"


def test_optimize_rates_omits_more_expensive_schedules(engine, weekday_evening_usage):
    """On E-1 already, the all-peak TOU rate would cost more and is not recommended."""
    result = engine.optimize_rates(
        "94105",
        weekday_evening_usage,
        current_schedule_id="pge-e-1",
        on_date=date(2024, 6, 1),
    )

    assert result.current_rate.schedule_id == "pge-e-1"
    assert result.current_rate.annual_cost == pytest.approx(126.50)
    assert result.current_rate.potential_savings == 0
    assert result.recommended_rates == []
