"""
Built-in rate schedules.

A small catalogue of California residential and commercial tariffs that
the rate engine starts with. Schedules synced from a rate provider are
added alongside these at runtime.

TOU period order matters: the first period matching a timestamp prices it,
so narrow windows (peak) are listed before catch-all windows (off-peak).
"""

from datetime import date
from typing import List

from models.rates import RateSchedule

BAY_AREA_ZIP_CODES = ["94105", "95110", "94301"]

WEEKDAYS = [1, 2, 3, 4, 5]
ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]

PGE_E_TOU_C = {
    "id": "pge-e-tou-c",
    "utility_company": "Pacific Gas & Electric",
    "rate_name": "Time-of-Use (Peak Pricing 4-9 p.m. Every Day)",
    "rate_code": "E-TOU-C",
    "description": "Residential time-of-use rate with weekday evening peak",
    "customer_class": "residential",
    "rate_type": "time_of_use",
    "zip_codes": BAY_AREA_ZIP_CODES,
    "states": ["CA"],
    "fixed_charges": {
        "connection_fee": 0.32877,
        "customer_charge": 10.0,
    },
    "energy_charges": {
        "time_of_use_rates": [
            {
                "id": "peak",
                "name": "Peak",
                "period": "peak",
                "days_of_week": WEEKDAYS,
                "start_time": "16:00",
                "end_time": "20:59",
                "rate": 0.45,
            },
            {
                "id": "off_peak",
                "name": "Off-Peak",
                "period": "off_peak",
                "days_of_week": ALL_DAYS,
                "start_time": "00:00",
                "end_time": "23:59",
                "rate": 0.30,
            },
        ],
    },
    "additional_charges": {
        "public_purpose_programs": 0.00263,
        "state_and_local_taxes": 8.5,
    },
    "net_metering": {
        "available": True,
        "policy": "net_energy_metering",
        "credit_rate": 0.30,
        "max_system_size_kw": 1000,
    },
    "effective_date": date(2024, 1, 1),
    "solar_friendly": True,
    "time_of_use_optimized": True,
}

PGE_E_1 = {
    "id": "pge-e-1",
    "utility_company": "Pacific Gas & Electric",
    "rate_name": "Residential Tiered Rate",
    "rate_code": "E-1",
    "description": "Residential two-tier rate with a monthly baseline allowance",
    "customer_class": "residential",
    "rate_type": "tiered",
    "zip_codes": BAY_AREA_ZIP_CODES,
    "states": ["CA"],
    "fixed_charges": {
        "connection_fee": 0.32877,
        "customer_charge": 10.0,
    },
    "energy_charges": {
        "tiered_rates": [
            {"tier": 1, "name": "Baseline", "threshold": 300, "rate": 0.32},
            {"tier": 2, "name": "Above Baseline", "threshold": 1000, "rate": 0.40},
        ],
    },
    "additional_charges": {
        "public_purpose_programs": 0.00263,
        "state_and_local_taxes": 8.5,
    },
    "net_metering": {
        "available": True,
        "policy": "net_energy_metering",
        "credit_rate": 0.32,
    },
    "effective_date": date(2024, 1, 1),
}

PGE_B_10 = {
    "id": "pge-b-10",
    "utility_company": "Pacific Gas & Electric",
    "rate_name": "Medium General Demand-Metered Service",
    "rate_code": "B-10",
    "description": "Commercial flat energy rate with a monthly facility demand charge",
    "customer_class": "commercial",
    "rate_type": "demand",
    "zip_codes": BAY_AREA_ZIP_CODES,
    "states": ["CA"],
    "fixed_charges": {
        "customer_charge": 50.0,
    },
    "energy_charges": {
        "flat_rate": 0.18,
    },
    "demand_charges": [
        {"type": "facility", "rate": 20.0},
    ],
    "additional_charges": {
        "state_and_local_taxes": 8.5,
    },
    "net_metering": {
        "available": True,
        "policy": "net_billing",
        "credit_rate": 0.08,
    },
    "effective_date": date(2024, 1, 1),
}


def default_rate_schedules() -> List[RateSchedule]:
    return [RateSchedule(**s) for s in (PGE_E_TOU_C, PGE_E_1, PGE_B_10)]
