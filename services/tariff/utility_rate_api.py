"""
Utility rate provider integration.

Fetches tariffs from the OpenEI Utility Rate Database (URDB) or directly
from a utility data platform (UtilityAPI), converts them to RateSchedule
models, validates them and registers the valid ones with the rate engine.
Subscribers are notified of schedules that changed.

URDB reference: https://openei.org/services/doc/rest/util_rates/?version=7
"""

import os
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from models.rates import CustomerClass, RateSchedule, RateType
from services.errors import ExternalServiceError
from services.tariff.utility_rate_engine import UtilityRateEngine

logger = logging.getLogger(__name__)

URDB_SECTORS = {
    CustomerClass.RESIDENTIAL: "Residential",
    CustomerClass.COMMERCIAL: "Commercial",
    CustomerClass.INDUSTRIAL: "Industrial",
    # URDB files agricultural tariffs under the commercial sector
    CustomerClass.AGRICULTURAL: "Commercial",
}

WEEKDAYS = [1, 2, 3, 4, 5]
WEEKEND = [0, 6]

# Plausible retail energy price bounds ($/kWh)
MIN_PLAUSIBLE_RATE = 0.01
MAX_PLAUSIBLE_RATE = 2.0


@dataclass
class RateAPIProvider:
    """A rate data source and its request settings."""

    id: str
    name: str
    base_url: str
    api_key: str = ""
    # "urdb" records, or "schedule" records already shaped like RateSchedule
    record_format: str = "urdb"
    data_quality: str = "verified"
    update_frequency: str = "monthly"
    states: List[str] = field(default_factory=lambda: ["ALL"])

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


def default_providers() -> List[RateAPIProvider]:
    return [
        RateAPIProvider(
            id="openei_urdb",
            name="OpenEI Utility Rate Database",
            base_url=os.getenv("OPENEI_API_BASE", "https://api.openei.org/utility_rates"),
            api_key=os.getenv("OPENEI_API_KEY", ""),
        ),
        RateAPIProvider(
            id="utility_api",
            name="UtilityAPI",
            base_url=os.getenv("UTILITY_API_BASE", "https://utilityapi.com/api/v2"),
            api_key=os.getenv("UTILITY_API_KEY", ""),
            record_format="schedule",
            update_frequency="daily",
            states=["CA", "NY", "FL", "TX", "NC", "SC", "MD", "DC"],
        ),
    ]


class RateValidationResult(BaseModel):
    schedule_id: str
    is_valid: bool
    quality_score: float = Field(..., ge=0, le=100)
    issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class SyncStatus(BaseModel):
    zip_code: str
    provider_id: str
    status: str = Field(..., description="success, partial or failed")
    last_sync: datetime
    rate_schedule_count: int = 0
    updated_rates: int = 0
    rejected_rates: int = 0
    data_quality_score: float = 0.0
    errors: List[str] = Field(default_factory=list)


def validate_rate_schedule(schedule: RateSchedule) -> RateValidationResult:
    """
    Check a schedule for completeness and plausibility.

    Hard issues (invalid): no energy pricing, a rate outside plausible
    bounds, expiration before effective date, TOU periods that leave hours
    of the week unpriced. Soft issues (lower the score only): no zip codes,
    no fixed charges.

    Quality score starts at 100, -25 per hard issue and -10 per soft issue.
    """
    issues: List[str] = []
    soft: List[str] = []
    recommendations: List[str] = []
    energy = schedule.energy_charges

    rates = (
        ([energy.flat_rate] if energy.flat_rate is not None else [])
        + [t.rate for t in energy.tiered_rates]
        + [p.rate for p in energy.time_of_use_rates]
    )
    if not rates:
        issues.append("No energy charges defined")
    for rate in rates:
        if not MIN_PLAUSIBLE_RATE <= rate <= MAX_PLAUSIBLE_RATE:
            issues.append(f"Energy rate {rate} outside plausible range")

    if schedule.expiration_date and schedule.expiration_date < schedule.effective_date:
        issues.append("Expiration date precedes effective date")

    if energy.time_of_use_rates:
        uncovered = _uncovered_hours(schedule)
        if uncovered:
            issues.append(f"{uncovered} hour(s) of the week match no TOU period")
            recommendations.append("Add a catch-all off-peak period")

    if not schedule.zip_codes and not schedule.states:
        soft.append("No service territory")
        recommendations.append("Attach zip codes so the schedule can be found by location")
    fc = schedule.fixed_charges
    if fc.customer_charge == 0 and fc.connection_fee == 0 and fc.service_charge == 0:
        soft.append("No fixed charges")

    score = max(0.0, 100.0 - 25 * len(issues) - 10 * len(soft))
    return RateValidationResult(
        schedule_id=schedule.id,
        is_valid=not issues,
        quality_score=score,
        issues=issues + soft,
        recommendations=recommendations,
    )


def _uncovered_hours(schedule: RateSchedule) -> int:
    """Hours of a representative week (every month) not matched by any TOU period."""
    engine = UtilityRateEngine(schedules=[])
    periods = schedule.energy_charges.time_of_use_rates
    uncovered = 0
    for month in range(1, 13):
        # 2024-{month}-01 onwards covers every weekday within 7 days
        for day in range(7):
            for hour in range(24):
                ts = datetime(2024, month, 1 + day, hour, 30)
                if engine.calculate_tou_period(ts, periods) is None:
                    uncovered += 1
    return uncovered


def convert_urdb_item(item: Dict[str, Any], zip_code: Optional[str] = None) -> RateSchedule:
    """
    Convert one URDB rate record to a RateSchedule.

    URDB prices energy as `energyratestructure[period][tier]` and maps
    each (month, hour) to a period index through 12x24 weekday and weekend
    matrices. A single period becomes a flat or tiered schedule; several
    periods become TOU periods, one per contiguous run of hours.

    Raises:
        ValueError: If the record lacks required fields
    """
    label = item.get("label")
    if not label:
        raise ValueError("URDB record has no label")

    structure = item.get("energyratestructure") or []
    weekday = item.get("energyweekdayschedule") or []
    weekend = item.get("energyweekendschedule") or []

    energy_charges: Dict[str, Any] = {}
    if len(structure) == 1:
        tiers = structure[0]
        if len(tiers) == 1:
            rate_type = RateType.FLAT
            energy_charges["flat_rate"] = _tier_rate(tiers[0])
        else:
            rate_type = RateType.TIERED
            energy_charges["tiered_rates"] = [
                {
                    "tier": i + 1,
                    "name": f"Tier {i + 1}",
                    "threshold": tier.get("max") or 1e9,
                    "rate": _tier_rate(tier),
                }
                for i, tier in enumerate(tiers)
            ]
    elif len(structure) > 1:
        rate_type = RateType.TIME_OF_USE
        energy_charges["time_of_use_rates"] = _tou_periods_from_matrices(structure, weekday, weekend)
    else:
        rate_type = RateType.FLAT

    if item.get("demandratestructure") or item.get("flatdemandstructure"):
        rate_type = RateType.DEMAND if rate_type == RateType.FLAT else rate_type

    demand_charges = [
        {"type": "facility", "rate": _tier_rate(tiers[0])}
        for tiers in item.get("flatdemandstructure") or []
        if tiers
    ]

    sector = (item.get("sector") or "Residential").lower()
    customer_class = sector if sector in {c.value for c in CustomerClass} else CustomerClass.COMMERCIAL.value

    return RateSchedule(
        id=f"urdb-{label}",
        utility_company=item.get("utility") or "Unknown utility",
        rate_name=item.get("name") or label,
        rate_code=label,
        description=item.get("description") or "",
        customer_class=customer_class,
        rate_type=rate_type,
        zip_codes=[zip_code] if zip_code else [],
        fixed_charges={"customer_charge": float(item.get("fixedchargefirstmeter") or 0.0)},
        energy_charges=energy_charges,
        demand_charges=demand_charges,
        effective_date=_epoch_to_date(item.get("startdate")) or date.today(),
        expiration_date=_epoch_to_date(item.get("enddate")),
        last_updated=datetime.now(timezone.utc),
    )


def convert_schedule_item(item: Dict[str, Any], zip_code: Optional[str] = None) -> RateSchedule:
    """
    Convert a utility-direct tariff record, which uses RateSchedule field names.

    The id is namespaced with "utility-" and the synced zip code is added to
    the service territory.

    Raises:
        ValueError: If the record has no id
        pydantic.ValidationError: If the record does not fit RateSchedule
    """
    if not item.get("id"):
        raise ValueError("Utility tariff record has no id")

    zip_codes = list(item.get("zip_codes") or [])
    if zip_code and zip_code not in zip_codes:
        zip_codes.append(zip_code)

    return RateSchedule.model_validate({
        **item,
        "id": f"utility-{item['id']}",
        "rate_code": item.get("rate_code") or item["id"],
        "zip_codes": zip_codes,
        "last_updated": datetime.now(timezone.utc),
    })


RECORD_CONVERTERS: Dict[str, Callable[[Dict[str, Any], Optional[str]], RateSchedule]] = {
    "urdb": convert_urdb_item,
    "schedule": convert_schedule_item,
}


def _tier_rate(tier: Dict[str, Any]) -> float:
    return float(tier.get("rate") or 0.0) + float(tier.get("adj") or 0.0)


def _epoch_to_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).date()


def _tou_periods_from_matrices(
    structure: List[List[Dict[str, Any]]],
    weekday: List[List[int]],
    weekend: List[List[int]],
) -> List[Dict[str, Any]]:
    """Group (month, hour) cells into TOU periods keyed by days, hours and rate."""
    rates = [_tier_rate(tiers[0]) if tiers else 0.0 for tiers in structure]
    cheapest = min(rates)
    grouped: Dict[Tuple[Tuple[int, ...], int, int, int], List[int]] = {}

    for days, matrix in ((WEEKDAYS, weekday), (WEEKEND, weekend)):
        for month_index, hours in enumerate(matrix):
            start = 0
            while start < len(hours):
                end = start
                while end + 1 < len(hours) and hours[end + 1] == hours[start]:
                    end += 1
                key = (tuple(days), start, end, hours[start])
                grouped.setdefault(key, []).append(month_index + 1)
                start = end + 1

    periods = []
    for (days, start, end, period_index), months in sorted(grouped.items()):
        rate = rates[period_index]
        kind = "off_peak" if rate == cheapest else "peak"
        periods.append({
            "id": f"p{period_index}-{'wd' if days == tuple(WEEKDAYS) else 'we'}-{start:02d}",
            "name": f"Period {period_index + 1}",
            "period": kind,
            "months": sorted(months),
            "days_of_week": list(days),
            "start_time": f"{start:02d}:00",
            "end_time": f"{end:02d}:59",
            "rate": rate,
        })
    return periods


class UtilityRateAPIService:
    """
    Sync rate schedules from external providers into the rate engine.

    Usage:
        service = UtilityRateAPIService(rate_engine=engine)
        status = service.sync_utility_rates("94105")
    """

    def __init__(
        self,
        rate_engine: Optional[UtilityRateEngine] = None,
        providers: Optional[List[RateAPIProvider]] = None,
        timeout: int = 30,
    ):
        self.rate_engine = rate_engine or UtilityRateEngine()
        self.providers = {p.id: p for p in (providers if providers is not None else default_providers())}
        self.timeout = timeout
        self._sync_status: Dict[str, SyncStatus] = {}
        self._subscribers: List[Callable[[List[str]], None]] = []

    def get_api_providers(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": p.id,
                "name": p.name,
                "enabled": p.enabled,
                "data_quality": p.data_quality,
                "update_frequency": p.update_frequency,
            }
            for p in self.providers.values()
        ]

    def fetch_rate_schedules(
        self,
        zip_code: str,
        customer_class: CustomerClass = CustomerClass.RESIDENTIAL,
        provider_id: str = "openei_urdb",
    ) -> List[Dict[str, Any]]:
        """
        Fetch raw tariff records for a zip code.

        URDB is queried with its key as a parameter and answers with
        `items`; the utility-direct provider takes a bearer token on
        `{base_url}/tariffs` and answers with `tariffs`.

        Raises:
            ExternalServiceError: If the provider is unconfigured or the request fails
        """
        provider = self.providers.get(provider_id)
        if provider is None or not provider.enabled:
            raise ExternalServiceError(provider_id, "provider not configured (missing API key)")

        customer_class = CustomerClass(customer_class)
        if provider.record_format == "urdb":
            url = provider.base_url
            headers = {}
            params = {
                "version": "latest",
                "format": "json",
                "detail": "full",
                "approved": "true",
                "api_key": provider.api_key,
                "address": zip_code,
                "sector": URDB_SECTORS[customer_class],
            }
            items_key = "items"
        else:
            url = f"{provider.base_url.rstrip('/')}/tariffs"
            headers = {"Authorization": f"Bearer {provider.api_key}"}
            params = {"zip": zip_code, "customer_class": customer_class.value}
            items_key = "tariffs"

        try:
            response = requests.get(url, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Rate fetch from {provider_id} for {zip_code} failed: {e}")
            raise ExternalServiceError(provider_id, str(e)) from e
        except ValueError as e:
            raise ExternalServiceError(provider_id, f"invalid JSON response: {e}") from e

        if "error" in data:
            raise ExternalServiceError(provider_id, str(data["error"]))

        items = data.get(items_key, [])
        logger.info(f"Fetched {len(items)} rate record(s) from {provider_id} for {zip_code}")
        return items

    def validate_rate_data(self, schedule_id: str) -> RateValidationResult:
        """Validate a schedule already registered with the rate engine."""
        return validate_rate_schedule(self.rate_engine.get_rate_schedule(schedule_id))

    def sync_utility_rates(
        self,
        zip_code: str,
        customer_class: CustomerClass = CustomerClass.RESIDENTIAL,
        provider_id: str = "openei_urdb",
    ) -> SyncStatus:
        """
        Fetch, convert, validate and register schedules for a zip code.

        Invalid or unconvertible records are rejected and reported in the
        returned status; a provider failure produces a failed status rather
        than an exception.
        """
        status = SyncStatus(
            zip_code=zip_code,
            provider_id=provider_id,
            status="success",
            last_sync=datetime.now(timezone.utc),
        )

        try:
            items = self.fetch_rate_schedules(zip_code, customer_class, provider_id)
        except ExternalServiceError as e:
            status.status = "failed"
            status.errors.append(e.message)
            self._sync_status[zip_code] = status
            return status

        convert = RECORD_CONVERTERS[self.providers[provider_id].record_format]
        changed: List[str] = []
        scores: List[float] = []

        for item in items:
            try:
                schedule = convert(item, zip_code)
            except (ValueError, PydanticValidationError) as e:
                status.rejected_rates += 1
                status.errors.append(f"{item.get('label') or item.get('id', '?')}: {e}")
                continue

            validation = validate_rate_schedule(schedule)
            scores.append(validation.quality_score)
            if not validation.is_valid:
                status.rejected_rates += 1
                status.errors.append(f"{schedule.id}: {'; '.join(validation.issues)}")
                continue

            status.rate_schedule_count += 1
            if self.rate_engine.add_rate_schedule(schedule):
                changed.append(schedule.id)

        status.updated_rates = len(changed)
        status.data_quality_score = sum(scores) / len(scores) if scores else 0.0
        if status.rejected_rates:
            status.status = "partial"

        self._sync_status[zip_code] = status
        logger.info(
            f"Rate sync for {zip_code}: {status.rate_schedule_count} accepted, "
            f"{status.updated_rates} changed, {status.rejected_rates} rejected"
        )

        if changed:
            self._notify(changed)
        return status

    def get_sync_status(self, zip_code: Optional[str] = None) -> List[SyncStatus]:
        if zip_code:
            return [self._sync_status[zip_code]] if zip_code in self._sync_status else []
        return list(self._sync_status.values())

    def subscribe_to_rate_updates(self, callback: Callable[[List[str]], None]) -> Callable[[], None]:
        """
        Register a callback receiving the ids of changed schedules.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, schedule_ids: List[str]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(schedule_ids)
            except Exception as e:
                logger.error(f"Rate update subscriber failed: {e}", exc_info=True)
