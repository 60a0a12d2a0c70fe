"""
API tests using FastAPI's TestClient against the in-memory mock data store.
"""

import pytest


# Test Data Fixtures

@pytest.fixture
def rfq_body():
    return {
        "homeowner_id": "homeowner-user-001",
        "name": "Jamie Rivera",
        "email": "jamie@example.com",
        "address": "123 Main St, San Francisco, CA 94105",
        "estimated_system_size_kw": 8.0,
        "include_battery_storage": True,
        "selected_installer_ids": ["installer-user-001", "installer-user-002"],
    }


@pytest.fixture
def system_configuration():
    return {
        "panel": {
            "id": "panel-400", "manufacturer": "SunPower", "model": "M400",
            "wattage": 400, "efficiency": 21.0, "voltage_vmp": 34.0, "current_imp": 11.8,
            "certifications": ["IEC 61215", "IEC 61730", "UL 1703"],
        },
        "inverter": {
            "id": "inv-3800", "manufacturer": "Enphase", "model": "IQ8 system", "type": "micro",
            "capacity_w": 3800, "certifications": ["UL 1741", "IEEE 1547"],
        },
        "layout": {"panels_per_string": 1, "total_panels": 10, "total_capacity_kw": 4.0},
        "installation": {
            "roof_type": "composition_shingle", "roof_pitch": 22, "azimuth": 180, "tilt": 35,
            "location": {"latitude": 37.7, "longitude": -122.4},
        },
    }


# Tests

def test_root_and_health(client):
    assert client.get("/").json()["service"] == "Solar Marketplace API"

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"


def test_openapi_lists_routes(client):
    paths = client.get("/openapi.json").json()["paths"]

    for path in (
        "/api/users",
        "/api/marketplace/rfqs",
        "/api/utility-rates/bill",
        "/api/billing/cycles",
        "/api/net-metering/calculate",
        "/api/optimization/tou/battery",
        "/api/equipment/compatibility",
        "/api/compliance/assessments",
    ):
        assert path in paths


def test_users(client):
    users = client.get("/api/users").json()
    installers = client.get("/api/users", params={"role": "installer"}).json()

    assert len(users) == 30
    assert len(installers) == 10
    assert all(u["role"] == "installer" for u in installers)
    assert client.get("/api/users/supplier-user-003").json()["id"] == "supplier-user-003"


def test_not_found_error_format(client):
    response = client.get("/api/users/nobody")

    assert response.status_code == 404
    assert response.json() == {
        "error": "NOT_FOUND",
        "message": "User not found: nobody",
        "details": {"resource": "User", "id": "nobody"},
    }


def test_rfq_quote_flow(client, rfq_body):
    created = client.post("/api/marketplace/rfqs", json=rfq_body)
    assert created.status_code == 201
    rfq = created.json()
    assert rfq["id"] == "rfq-001"
    assert rfq["status"] == "Pending"

    quote_response = client.post("/api/marketplace/quotes", json={
        "rfq_id": rfq["id"],
        "installer_id": "installer-user-001",
        "line_items": [{"description": "Panels", "quantity": 2, "unit_price": 100.0}],
        "tax_rate": 0.1,
    })
    assert quote_response.status_code == 201
    quote = quote_response.json()
    assert quote["status"] == "Draft"
    assert quote["total_amount"] == pytest.approx(220.0)

    submitted = client.patch(f"/api/marketplace/quotes/{quote['id']}/status", json={"status": "Submitted"})
    assert submitted.json()["status"] == "Submitted"
    assert client.get(f"/api/marketplace/rfqs/{rfq['id']}").json()["status"] == "Responded"

    listed = client.get("/api/marketplace/quotes", params={"rfq_id": rfq["id"]}).json()
    assert [q["id"] for q in listed] == [quote["id"]]


def test_rfq_with_unknown_installer(client, rfq_body):
    rfq_body["selected_installer_ids"] = ["installer-user-999"]

    response = client.post("/api/marketplace/rfqs", json=rfq_body)

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"
    assert response.json()["details"]["validation_errors"]


def test_rfq_requires_installers(client, rfq_body):
    rfq_body["selected_installer_ids"] = []

    assert client.post("/api/marketplace/rfqs", json=rfq_body).status_code == 422


def test_closed_rfq_cannot_reopen(client, rfq_body):
    rfq_id = client.post("/api/marketplace/rfqs", json=rfq_body).json()["id"]
    client.patch(f"/api/marketplace/rfqs/{rfq_id}/status", json={"status": "Closed"})

    response = client.patch(f"/api/marketplace/rfqs/{rfq_id}/status", json={"status": "Pending"})

    assert response.status_code == 409
    assert response.json()["error"] == "CONFLICT"


def test_catalogue_endpoints(client):
    promotions = client.get("/api/marketplace/promotions", params={"as_of": "2024-07-16"}).json()
    panels = client.get("/api/marketplace/products", params={"category": "Panels"}).json()

    assert [p["id"] for p in promotions] == ["promo-001"]
    assert [p["id"] for p in panels] == ["prod-001"]
    assert client.get("/api/marketplace/products/prod-999").status_code == 404


def test_utility_rate_bill(client):
    response = client.post("/api/utility-rates/bill", json={
        "schedule_id": "pge-e-1",
        "usage_data": [
            {"timestamp": "2024-06-05T12:00:00", "kwh": 250.0},
            {"timestamp": "2024-06-20T12:00:00", "kwh": 250.0},
        ],
        "billing_period_start": "2024-06-01T00:00:00",
        "billing_period_end": "2024-06-30T23:59:59",
    })

    assert response.status_code == 200
    assert response.json()["charges"]["total_bill"] == pytest.approx(213.83)


def test_utility_rate_bill_rejects_inverted_period(client):
    response = client.post("/api/utility-rates/bill", json={
        "schedule_id": "pge-e-1",
        "usage_data": [],
        "billing_period_start": "2024-07-01T00:00:00",
        "billing_period_end": "2024-06-01T00:00:00",
    })

    assert response.status_code == 400


def test_rate_schedules_by_zip(client):
    schedules = client.get("/api/utility-rates/schedules", params={"zip_code": "94105", "on_date": "2024-06-01"}).json()

    assert {s["id"] for s in schedules} == {"pge-e-tou-c", "pge-e-1"}
    assert client.get("/api/utility-rates/schedules/missing").status_code == 404


def test_net_metering_endpoints(client):
    policies = client.get("/api/net-metering/policies", params={"state": "CA"}).json()
    assert [p["id"] for p in policies] == ["CA-NEM1", "CA-NEM2", "CA-NEM3"]

    grandfathering = client.get(
        "/api/net-metering/policies/CA-NEM2/grandfathering",
        params={"installation_date": "2020-01-01", "system_modifications": "true"},
    ).json()
    assert grandfathering["eligible"] is False

    result = client.post("/api/net-metering/calculate", json={
        "policy_id": "CA-NEM2",
        "energy_data": [{"timestamp": "2024-08-10T20:00:00", "production": 0.0, "consumption": 5.0}],
    }).json()
    assert result["monthly_billing"][0]["post_solar_bill"] == pytest.approx(1.60)


def test_equipment_compatibility(client, system_configuration):
    response = client.post("/api/equipment/compatibility", json=system_configuration)

    assert response.status_code == 200
    assert response.json()["is_compatible"] is True
    assert response.json()["score"] == 100


def test_compliance_endpoints(client):
    profile = client.get("/api/compliance/profiles/CA")
    assert profile.status_code == 200
    assert profile.json()["interconnection"]["fast_track"] is True
    assert client.get("/api/compliance/profiles/NV").status_code == 404

    assessment = client.post(
        "/api/compliance/assessments",
        params={"as_of": "2024-06-01"},
        json={
            "customer_id": "homeowner-user-001",
            "system_id": "sys-001",
            "state": "CA",
            "capacity_kw": 8.4,
            "installation_date": "2024-05-01",
            "interconnected": False,
            "inverter_type": "micro",
            "panel_certifications": ["IEC 61215", "IEC 61730", "UL 1703"],
            "inverter_certifications": ["UL 1741", "IEEE 1547"],
            "final_inspection_passed": True,
        },
    ).json()
    assert assessment["overall"]["score"] == 90
    assert assessment["overall"]["status"] == "conditional"
    assert assessment["interconnection"]["estimated_timeline_days"] == 59
