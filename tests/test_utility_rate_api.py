"""
Unit tests for rate provider sync and rate schedule validation.

The URDB HTTP call is patched; no network access is needed.
"""

import pytest
from datetime import date
from unittest.mock import MagicMock, patch

import requests

from models.rates import CustomerClass, RateType
from services.errors import ExternalServiceError
from services.tariff import UtilityRateAPIService, UtilityRateEngine, validate_rate_schedule
from services.tariff.utility_rate_api import RateAPIProvider, convert_schedule_item, convert_urdb_item


# 2024-01-01T00:00:00Z
JAN_2024 = 1704067200


# Test Data Fixtures

@pytest.fixture
def flat_item():
    return {
        "label": "abc123",
        "utility": "Pacific Gas & Electric",
        "name": "E-6 Residential",
        "sector": "Residential",
        "energyratestructure": [[{"rate": 0.22, "adj": 0.03}]],
        "fixedchargefirstmeter": 10.0,
        "startdate": JAN_2024,
    }


@pytest.fixture
def tou_item():
    """Two periods: 0.20 off-peak, 0.50 weekday 16:00-20:59."""
    weekday_hours = [0] * 16 + [1] * 5 + [0] * 3
    return {
        "label": "tou456",
        "utility": "Pacific Gas & Electric",
        "name": "E-TOU-D",
        "sector": "Residential",
        "energyratestructure": [[{"rate": 0.20}], [{"rate": 0.50}]],
        "energyweekdayschedule": [weekday_hours] * 12,
        "energyweekendschedule": [[0] * 24] * 12,
        "fixedchargefirstmeter": 12.0,
        "startdate": JAN_2024,
    }


@pytest.fixture
def service():
    provider = RateAPIProvider(id="openei_urdb", name="OpenEI", base_url="https://urdb.test/rates", api_key="test-key")
    return UtilityRateAPIService(rate_engine=UtilityRateEngine(), providers=[provider])


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


# Tests

def test_convert_flat_record(flat_item):
    schedule = convert_urdb_item(flat_item, "94105")

    assert schedule.id == "urdb-abc123"
    assert schedule.rate_type == RateType.FLAT
    assert schedule.energy_charges.flat_rate == pytest.approx(0.25)
    assert schedule.fixed_charges.customer_charge == 10.0
    assert schedule.zip_codes == ["94105"]
    assert schedule.effective_date == date(2024, 1, 1)


def test_convert_tou_record(tou_item):
    schedule = convert_urdb_item(tou_item, "94105")
    periods = schedule.energy_charges.time_of_use_rates

    assert schedule.rate_type == RateType.TIME_OF_USE
    peak = [p for p in periods if p.rate == 0.50]
    assert len(peak) == 1
    assert (peak[0].start_time, peak[0].end_time) == ("16:00", "20:59")
    assert peak[0].days_of_week == [1, 2, 3, 4, 5]
    assert peak[0].months == list(range(1, 13))
    assert validate_rate_schedule(schedule).is_valid


def test_convert_requires_label(flat_item):
    del flat_item["label"]
    with pytest.raises(ValueError):
        convert_urdb_item(flat_item)


def test_validate_builtin_schedules_are_clean(service):
    for schedule in service.rate_engine.list_rate_schedules():
        result = validate_rate_schedule(schedule)
        assert result.is_valid, result.issues
        assert result.quality_score == 100


def test_validate_flags_implausible_rate_and_missing_territory(flat_item):
    flat_item["energyratestructure"] = [[{"rate": 5.0}]]
    schedule = convert_urdb_item(flat_item)

    result = validate_rate_schedule(schedule)

    assert result.is_valid is False
    # One hard issue (-25) and one soft issue (-10)
    assert result.quality_score == 65
    assert "No service territory" in result.issues


def test_sync_registers_valid_and_rejects_invalid(service, flat_item):
    bad_rate = {**flat_item, "label": "bad789", "energyratestructure": [[{"rate": 5.0}]]}
    no_label = {"utility": "Nowhere Power"}
    received = []
    service.subscribe_to_rate_updates(received.append)

    with patch("services.tariff.utility_rate_api.requests.get", return_value=_response({"items": [flat_item, bad_rate, no_label]})) as mock_get:
        status = service.sync_utility_rates("94105")

    assert mock_get.call_args.kwargs["params"]["address"] == "94105"
    assert mock_get.call_args.kwargs["params"]["sector"] == "Residential"
    assert status.status == "partial"
    assert status.rate_schedule_count == 1
    assert status.updated_rates == 1
    assert status.rejected_rates == 2
    assert status.data_quality_score == pytest.approx(87.5)
    assert received == [["urdb-abc123"]]
    assert service.rate_engine.get_rate_schedule("urdb-abc123").rate_code == "abc123"
    assert service.get_sync_status("94105") == [status]


def test_sync_failure_reports_failed_status(service):
    with patch("services.tariff.utility_rate_api.requests.get", side_effect=requests.ConnectionError("unreachable")):
        status = service.sync_utility_rates("94105")

    assert status.status == "failed"
    assert "unreachable" in status.errors[0]
    assert status.rate_schedule_count == 0


def test_fetch_provider_error_payload(service):
    with patch("services.tariff.utility_rate_api.requests.get", return_value=_response({"error": {"message": "bad key"}})):
        with pytest.raises(ExternalServiceError) as exc_info:
            service.fetch_rate_schedules("94105")

    assert exc_info.value.status_code == 502


def test_unconfigured_provider_is_not_called():
    service = UtilityRateAPIService(providers=[RateAPIProvider(id="openei_urdb", name="OpenEI", base_url="https://urdb.test")])

    with patch("services.tariff.utility_rate_api.requests.get") as mock_get:
        status = service.sync_utility_rates("94105")

    mock_get.assert_not_called()
    assert status.status == "failed"
    assert service.get_api_providers()[0]["enabled"] is False


def test_unsubscribe_stops_notifications(service, flat_item):
    received = []
    unsubscribe = service.subscribe_to_rate_updates(received.append)
    unsubscribe()

    with patch("services.tariff.utility_rate_api.requests.get", return_value=_response({"items": [flat_item]})):
        service.sync_utility_rates("94105")

    assert received == []


def test_failing_subscriber_does_not_break_sync(service, flat_item):
    def broken(_ids):
        raise RuntimeError("subscriber down")

    service.subscribe_to_rate_updates(broken)

    with patch("services.tariff.utility_rate_api.requests.get", return_value=_response({"items": [flat_item]})):
        status = service.sync_utility_rates("94105")

    assert status.status == "success"


def test_default_registry_lists_both_providers(monkeypatch):
    monkeypatch.setenv("UTILITY_API_KEY", "utility-key")
    monkeypatch.delenv("OPENEI_API_KEY", raising=False)

    providers = {p["id"]: p for p in UtilityRateAPIService().get_api_providers()}

    assert set(providers) == {"openei_urdb", "utility_api"}
    assert providers["utility_api"]["enabled"] is True
    assert providers["openei_urdb"]["enabled"] is False


def test_agricultural_class_queries_commercial_sector(service):
    with patch("services.tariff.utility_rate_api.requests.get", return_value=_response({"items": []})) as mock_get:
        service.fetch_rate_schedules("93720", CustomerClass.AGRICULTURAL)

    assert mock_get.call_args.kwargs["params"]["sector"] == "Commercial"


def test_sync_from_utility_direct_provider():
    provider = RateAPIProvider(
        id="utility_api", name="UtilityAPI", base_url="https://utility.test/api/v2/",
        api_key="utility-key", record_format="schedule",
    )
    service = UtilityRateAPIService(rate_engine=UtilityRateEngine(schedules=[]), providers=[provider])
    tariff = {
        "id": "e-tou-d",
        "utility_company": "Pacific Gas & Electric",
        "rate_name": "E-TOU-D",
        "rate_type": "flat",
        "fixed_charges": {"customer_charge": 10.0},
        "energy_charges": {"flat_rate": 0.35},
        "effective_date": "2024-01-01",
    }
    no_id = {"rate_name": "Unnamed"}

    with patch("services.tariff.utility_rate_api.requests.get", return_value=_response({"tariffs": [tariff, no_id]})) as mock_get:
        status = service.sync_utility_rates("94105", provider_id="utility_api")

    assert mock_get.call_args.args[0] == "https://utility.test/api/v2/tariffs"
    assert mock_get.call_args.kwargs["headers"] == {"Authorization": "Bearer utility-key"}
    assert mock_get.call_args.kwargs["params"] == {"zip": "94105", "customer_class": "residential"}
    assert status.status == "partial"
    assert status.rate_schedule_count == 1
    assert status.rejected_rates == 1

    schedule = service.rate_engine.get_rate_schedule("utility-e-tou-d")
    assert schedule.rate_code == "e-tou-d"
    assert schedule.zip_codes == ["94105"]
    assert schedule.energy_charges.flat_rate == pytest.approx(0.35)


def test_convert_schedule_item_rejects_bad_records():
    with pytest.raises(ValueError):
        convert_schedule_item({"rate_name": "No id"})
    with pytest.raises(ValueError):
        convert_schedule_item({"id": "x", "rate_name": "Missing fields"})
