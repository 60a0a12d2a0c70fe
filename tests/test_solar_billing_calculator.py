"""
Unit tests for the solar billing calculator.
"""

import pytest

from models.billing import CompensationMethod, MonthlyProduction, MonthlyUsage
from services.billing import SolarBillingCalculator
from services.errors import NotFoundError


# E-1: customer charge 10 + connection fee 0.32877/day for 30 days
E1_FIXED = 19.8631
E1_TAX = 0.085


# Test Data Fixtures

@pytest.fixture
def calculator():
    return SolarBillingCalculator()


@pytest.fixture
def june_usage():
    return MonthlyUsage(month=6, year=2024, kwh_used=800, peak_kw=5.0, billing_days=30)


# Tests

def test_net_usage_split(calculator, june_usage):
    net = calculator.calculate_net_usage(june_usage, MonthlyProduction(month=6, year=2024, kwh_produced=650))

    assert net.self_consumption == 650
    assert net.grid_import == 150
    assert net.grid_export == 0
    assert net.net_usage == 150


def test_bill_without_solar(calculator, june_usage):
    """800 kWh: 300 * 0.32 + 500 * 0.40 = 296 energy."""
    bill = calculator.calculate_monthly_bill(june_usage, "pge-e-1")

    assert bill.charges.energy_tiered == pytest.approx({"Baseline": 96.0, "Above Baseline": 200.0})
    assert bill.charges.fixed_total == pytest.approx(E1_FIXED)
    assert bill.charges.additional_total == pytest.approx(800 * 0.00263)
    assert bill.charges.taxes.total == pytest.approx((296 + E1_FIXED) * E1_TAX)
    assert bill.credits is None
    # 296 + 19.8631 + 2.104 + 26.8486135 = 344.8154635
    assert bill.amount_due == pytest.approx(344.82)
    assert bill.metrics.self_consumption_ratio == 0


def test_bill_charges_only_grid_import(calculator, june_usage):
    """650 kWh of production leaves 150 kWh billed in the first tier."""
    production = MonthlyProduction(month=6, year=2024, kwh_produced=650)

    bill = calculator.calculate_monthly_bill(june_usage, "pge-e-1", production, "CA-NEM2")

    assert bill.charges.energy_total == pytest.approx(48.0)
    # 48 + E1_FIXED + 150 * 0.00263 + (48 + E1_FIXED) * E1_TAX = 74.0259635
    assert bill.amount_due == pytest.approx(74.03)
    assert bill.metrics.self_consumption_ratio == pytest.approx(1.0)
    assert bill.metrics.average_daily_usage == pytest.approx(800 / 30)
    # average kW = 800 / 720
    assert bill.metrics.load_factor == pytest.approx((800 / 720) / 5.0)


def test_tax_split(calculator, june_usage):
    taxes = calculator.calculate_monthly_bill(june_usage, "pge-e-1").charges.taxes

    assert taxes.state_tax == pytest.approx(taxes.total * 0.6)
    assert taxes.local_tax == pytest.approx(taxes.total * 0.3)
    assert taxes.sales_tax == pytest.approx(taxes.total * 0.1)


def test_nem_exports_credited_at_retail(calculator):
    """Net metering credits 200 exported kWh at the baseline rate; the bill floors at zero."""
    usage = MonthlyUsage(month=6, year=2024, kwh_used=400, billing_days=30)
    production = MonthlyProduction(month=6, year=2024, kwh_produced=600)

    bill = calculator.calculate_monthly_bill(usage, "pge-e-1", production, "CA-NEM2")

    assert bill.credits.method == CompensationMethod.NET_ENERGY_METERING
    assert bill.credits.credit_rate == pytest.approx(0.32)
    assert bill.credits.total_credits == pytest.approx(64.0)
    assert bill.gross_bill == pytest.approx(E1_FIXED * (1 + E1_TAX))
    assert bill.net_bill == pytest.approx(-42.45)
    assert bill.amount_due == 0


def test_net_billing_exports_credited_at_export_rate(calculator):
    usage = MonthlyUsage(month=6, year=2024, kwh_used=400, billing_days=30)
    production = MonthlyProduction(month=6, year=2024, kwh_produced=600)

    nem3 = calculator.calculate_monthly_bill(usage, "pge-e-1", production, "CA-NEM3")
    b10 = calculator.calculate_monthly_bill(usage, "pge-b-10", production)

    assert nem3.credits.method == CompensationMethod.NET_BILLING
    assert nem3.credits.total_credits == pytest.approx(200 * 0.08)
    assert nem3.amount_due == pytest.approx(5.55)
    # B-10 uses its own net billing credit rate
    assert b10.credits.method == CompensationMethod.NET_BILLING
    assert b10.credits.credit_rate == pytest.approx(0.08)


def test_tou_hour_shares_cover_the_month(calculator):
    """June 2024 has 20 weekdays: 100 peak hours out of 720."""
    schedule = calculator.rate_engine.get_rate_schedule("pge-e-tou-c")

    shares = calculator.tou_hour_shares(schedule, 2024, 6)

    assert shares["Peak"][0] == pytest.approx(100 / 720)
    assert shares["Off-Peak"][0] == pytest.approx(620 / 720)
    assert sum(share for share, _ in shares.values()) == pytest.approx(1.0)


def test_tou_bill_spreads_energy_by_hours(calculator):
    usage = MonthlyUsage(month=6, year=2024, kwh_used=720, billing_days=30)

    bill = calculator.calculate_monthly_bill(usage, "pge-e-tou-c")

    assert bill.charges.energy_time_of_use["Peak"] == pytest.approx(100 * 0.45)
    assert bill.charges.energy_time_of_use["Off-Peak"] == pytest.approx(620 * 0.30)


def test_unknown_schedule_or_policy(calculator, june_usage):
    with pytest.raises(NotFoundError):
        calculator.calculate_monthly_bill(june_usage, "no-such-rate")

    production = MonthlyProduction(month=6, year=2024, kwh_produced=900)
    with pytest.raises(NotFoundError):
        calculator.calculate_monthly_bill(june_usage, "pge-e-1", production, "XX-NEM9")


def test_billing_comparison(calculator, june_usage):
    """July has no production record and is billed as if without solar."""
    july_usage = MonthlyUsage(month=7, year=2024, kwh_used=300, billing_days=31)
    production = [MonthlyProduction(month=6, year=2024, kwh_produced=900)]

    comparison = calculator.calculate_billing_comparison(
        "homeowner-user-001", "pge-e-1", [july_usage, june_usage], production, nem_policy_id="CA-NEM2",
    )

    assert [s.month for s in comparison.monthly_savings] == [6, 7]
    assert comparison.monthly_savings[0].post_solar_bill == 0
    assert comparison.monthly_savings[1].savings == pytest.approx(0.0)
    assert comparison.annual_savings == pytest.approx(comparison.pre_solar_annual - comparison.post_solar_annual)
    assert comparison.insights[0].startswith("Annual savings of $")
    assert "Solar covers all energy use in 1 month(s)" in comparison.insights
    assert comparison.pre_solar_projections == []


def test_comparison_with_projection(calculator, june_usage):
    production = [MonthlyProduction(month=6, year=2024, kwh_produced=650)]

    comparison = calculator.calculate_billing_comparison(
        "homeowner-user-001", "pge-e-1", [june_usage], production, projection_years=3,
    )

    assert [p.year for p in comparison.pre_solar_projections] == [2025, 2026, 2027]
    assert comparison.post_solar_projections[0].adjusted_production == pytest.approx(650 * 0.995)
    assert comparison.post_solar_projections[0].total_bill < comparison.pre_solar_projections[0].total_bill


def test_project_future_billing_escalates():
    projections = SolarBillingCalculator().project_future_billing(1000.0, 6000.0, 2, rate_escalation=3.0, start_year=2024)

    assert [p.year for p in projections] == [2025, 2026]
    assert projections[0].total_bill == pytest.approx(1030.0)
    assert projections[1].total_bill == pytest.approx(1060.9)
    assert projections[1].average_monthly_bill == pytest.approx(1060.9 / 12)
    assert projections[1].adjusted_production is None


def test_project_future_billing_with_solar_savings():
    """Base 400 after 600 savings; year 1 = 1000 * 1.03 - 600 * 1.03 * 0.995."""
    projections = SolarBillingCalculator().project_future_billing(
        400.0, 6000.0, 1, rate_escalation=3.0, system_degradation=0.5,
        annual_production=8000.0, annual_solar_savings=600.0, start_year=2024,
    )

    assert projections[0].total_bill == pytest.approx(1030.0 - 600 * 1.03 * 0.995)
    assert projections[0].adjusted_production == pytest.approx(7960.0)
