"""
Load profile analysis.

Loads interval usage into a pandas DataFrame and derives the hourly,
daily, monthly and seasonal patterns, load characteristics, a simplified
time-of-use split and demand response potential used by the optimizers.

Load for an interval is its kW reading where present, otherwise its kWh.
"""

from typing import Iterable, List
import logging

import numpy as np
import pandas as pd

from models.optimization import (
    DailyPattern,
    DemandResponsePotential,
    HourlyPattern,
    LoadCharacteristics,
    LoadProfile,
    LoadShape,
    MonthlyPattern,
    Priority,
    Season,
    SeasonalPattern,
    TOUUsageAnalysis,
)
from models.rates import CustomerClass
from services.errors import ValidationError
from services.tariff.utility_rate_engine import UsageInput, coerce_usage

logger = logging.getLogger(__name__)

PEAK_HOURS = range(16, 22)
SYSTEM_PEAK_HOURS = range(17, 20)
SHOULDER_HOURS = set(range(9, 16)) | {22, 23}

COOLING_MONTHS = range(6, 10)
HEATING_MONTHS = {1, 2, 3, 11, 12}

SEASONS = {
    Season.SPRING: [3, 4, 5],
    Season.SUMMER: [6, 7, 8],
    Season.FALL: [9, 10, 11],
    Season.WINTER: [12, 1, 2],
}

# Peak kW thresholds separating residential, commercial and industrial loads
RESIDENTIAL_PEAK_LIMIT = 50
COMMERCIAL_PEAK_LIMIT = 500


def usage_frame(usage_data: Iterable[UsageInput]) -> pd.DataFrame:
    """
    Usage as a DataFrame.

    Columns: timestamp, kwh, kw, load, hour, dow (0=Sunday), month, date
    """
    records = coerce_usage(usage_data)
    df = pd.DataFrame(
        [{"timestamp": r.timestamp, "kwh": r.kwh, "kw": r.kw} for r in records],
        columns=["timestamp", "kwh", "kw"],
    )
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    df["kwh"] = pd.to_numeric(df["kwh"], errors="coerce").fillna(0.0)
    df["kw"] = pd.to_numeric(df["kw"], errors="coerce")
    df["load"] = df["kw"].where(df["kw"] > 0, df["kwh"])
    df["hour"] = df["timestamp"].dt.hour
    df["dow"] = (df["timestamp"].dt.dayofweek + 1) % 7
    df["month"] = df["timestamp"].dt.month
    df["date"] = df["timestamp"].dt.date
    return df.sort_values("timestamp").reset_index(drop=True)


def classify_profile(peak_load: float) -> CustomerClass:
    if peak_load < RESIDENTIAL_PEAK_LIMIT:
        return CustomerClass.RESIDENTIAL
    if peak_load < COMMERCIAL_PEAK_LIMIT:
        return CustomerClass.COMMERCIAL
    return CustomerClass.INDUSTRIAL


def analyze_load_profile(customer_id: str, usage_data: Iterable[UsageInput]) -> LoadProfile:
    """
    Build a load profile from interval usage.

    Raises:
        ValidationError: If there are no readings with a positive load
    """
    df = usage_frame(usage_data)
    loads = df.loc[df["load"] > 0, "load"]
    if loads.empty:
        raise ValidationError("No usage with positive load", ["usage_data must contain readings above zero"])

    characteristics = _characteristics(loads)
    start, end = df["timestamp"].iloc[0], df["timestamp"].iloc[-1]

    profile = LoadProfile(
        customer_id=customer_id,
        profile_type=classify_profile(characteristics.peak_load),
        start_date=start.to_pydatetime(),
        end_date=end.to_pydatetime(),
        total_days=int(np.ceil((end - start).total_seconds() / 86400)),
        hourly=_hourly_patterns(df),
        daily=_daily_patterns(df),
        monthly=_monthly_patterns(df),
        seasonal=_seasonal_patterns(df),
        characteristics=characteristics,
        tou_analysis=_tou_analysis(df),
        demand_response=_demand_response(characteristics),
    )

    logger.debug(
        f"Load profile for {customer_id}: {profile.profile_type.value}, "
        f"peak {characteristics.peak_load:.2f}, load factor {characteristics.load_factor:.2f}"
    )
    return profile


def _characteristics(loads: pd.Series) -> LoadCharacteristics:
    average = float(loads.mean())
    peak = float(loads.max())
    minimum = float(loads.min())
    base_load = minimum * 0.8
    return LoadCharacteristics(
        average_load=average,
        peak_load=peak,
        minimum_load=minimum,
        load_factor=average / peak,
        demand_variability=float(loads.std(ddof=0)) / average,
        base_load=base_load,
        flexible_load=peak - base_load,
    )


def _hourly_patterns(df: pd.DataFrame) -> List[HourlyPattern]:
    stats = df.groupby("hour")["load"].agg(["mean", "max", "count", "std"]).reindex(range(24))
    stats = stats.fillna({"mean": 0.0, "max": 0.0, "count": 0, "std": 0.0})
    return [
        HourlyPattern(
            hour=int(hour),
            average_load=float(row["mean"]),
            peak_load=float(row["max"]),
            frequency=int(row["count"]),
            variability=float(row["std"]),
        )
        for hour, row in stats.iterrows()
    ]


def _daily_patterns(df: pd.DataFrame) -> List[DailyPattern]:
    grouped = df.groupby("dow")["load"]
    patterns = []
    for dow in range(7):
        if dow not in grouped.groups:
            patterns.append(DailyPattern(day_of_week=dow, average_usage=0.0, peak_demand=0.0, load_shape=LoadShape.FLAT))
            continue

        values = grouped.get_group(dow)
        average = float(values.mean())
        cv = float(values.std(ddof=0)) / average if average > 0 else 0.0
        if cv < 0.2:
            shape = LoadShape.FLAT
        elif cv < 0.5:
            shape = LoadShape.PEAKED
        else:
            shape = LoadShape.VARIABLE

        patterns.append(DailyPattern(
            day_of_week=dow,
            average_usage=average,
            peak_demand=float(values.max()),
            load_shape=shape,
        ))
    return patterns


def _monthly_patterns(df: pd.DataFrame) -> List[MonthlyPattern]:
    stats = df.groupby("month")["load"].agg(["mean", "max"]).reindex(range(1, 13)).fillna(0.0)
    return [
        MonthlyPattern(
            month=int(month),
            average_usage=float(row["mean"]),
            peak_demand=float(row["max"]),
            cooling_load=float(row["mean"]) * 0.4 if month in COOLING_MONTHS else None,
            heating_load=float(row["mean"]) * 0.3 if month in HEATING_MONTHS else None,
        )
        for month, row in stats.iterrows()
    ]


def _seasonal_patterns(df: pd.DataFrame) -> List[SeasonalPattern]:
    patterns = []
    for season, months in SEASONS.items():
        values = df.loc[df["month"].isin(months), "load"]
        if season == Season.SUMMER:
            dominant = "cooling"
        elif season == Season.WINTER:
            dominant = "heating"
        else:
            dominant = "baseload"
        patterns.append(SeasonalPattern(
            season=season,
            months=months,
            average_usage=float(values.mean()) if not values.empty else 0.0,
            peak_demand=float(values.max()) if not values.empty else 0.0,
            dominant_load=dominant,
        ))
    return patterns


def _tou_analysis(df: pd.DataFrame) -> TOUUsageAnalysis:
    is_peak = df["hour"].isin(PEAK_HOURS)
    is_shoulder = df["hour"].isin(SHOULDER_HOURS)
    is_system_peak = df["hour"].isin(SYSTEM_PEAK_HOURS)

    peak_usage = float(df.loc[is_peak, "kwh"].sum())
    shoulder_usage = float(df.loc[is_shoulder, "kwh"].sum())
    off_peak_usage = float(df.loc[~is_peak & ~is_shoulder, "kwh"].sum())

    system_peak_count = int(is_system_peak.sum())
    average_usage = df["kwh"].sum() / len(df)
    peak_coincidence = 0.0
    if system_peak_count and average_usage > 0:
        peak_coincidence = float(df.loc[is_system_peak, "kwh"].sum() / system_peak_count / average_usage * 100)

    return TOUUsageAnalysis(
        peak_usage=peak_usage,
        shoulder_usage=shoulder_usage,
        off_peak_usage=off_peak_usage,
        peak_coincidence=peak_coincidence,
    )


def _demand_response(characteristics: LoadCharacteristics) -> DemandResponsePotential:
    shiftable = min(characteristics.flexible_load, characteristics.peak_load * 0.3)
    curtailable = min(characteristics.flexible_load * 0.5, characteristics.peak_load * 0.2)

    if characteristics.demand_variability > 0.3 and shiftable > 10:
        responsiveness = Priority.HIGH
    elif characteristics.demand_variability > 0.2 and shiftable > 5:
        responsiveness = Priority.MEDIUM
    else:
        responsiveness = Priority.LOW

    return DemandResponsePotential(
        shiftable_load=shiftable,
        curtailable_load=curtailable,
        responsiveness=responsiveness,
    )
