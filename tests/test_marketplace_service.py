"""
Unit tests for the marketplace service (RFQs, quotes, promotions, maintenance).
"""

import pytest
from datetime import date, datetime

from models.marketplace import (
    MaintenanceFrequency,
    QuoteCreate,
    QuoteLineItem,
    QuoteStatus,
    RFQCreate,
    RFQStatus,
)
from services.errors import ConflictError, NotFoundError, ValidationError
from services.marketplace_service import calculate_next_due_date


# Test Data Fixtures

@pytest.fixture
def rfq_request():
    return RFQCreate(
        homeowner_id="homeowner-user-001",
        name="Priya Rao",
        email="priya@example.com",
        address="101 Main St, Chennai, India",
        estimated_system_size_kw=6.5,
        monthly_consumption_kwh=800,
        include_battery_storage=True,
        selected_installer_ids=["installer-user-001", "installer-user-002"],
    )


@pytest.fixture
def rfq(marketplace_service, rfq_request):
    return marketplace_service.create_rfq(rfq_request, now=datetime(2024, 7, 1, 9, 0))


@pytest.fixture
def quote_request(rfq):
    return QuoteCreate(
        rfq_id=rfq.id,
        installer_id="installer-user-001",
        line_items=[
            QuoteLineItem(description="450W panel", quantity=14, unit_price=250.0),
            QuoteLineItem(description="Installation labour", quantity=1, unit_price=1500.0),
        ],
        tax_rate=0.08,
    )


# Tests

def test_create_rfq_is_pending(rfq):
    assert rfq.id == "rfq-001"
    assert rfq.status == RFQStatus.PENDING
    assert rfq.date_created == datetime(2024, 7, 1, 9, 0)


def test_create_rfq_rejects_unknown_users(marketplace_service, rfq_request):
    """Homeowner and installer ids must exist with the right role."""
    bad = rfq_request.model_copy(update={
        "homeowner_id": "installer-user-001",
        "selected_installer_ids": ["installer-user-001", "installer-user-999"],
    })

    with pytest.raises(ValidationError) as exc_info:
        marketplace_service.create_rfq(bad)

    errors = exc_info.value.details["validation_errors"]
    assert "Unknown homeowner: installer-user-001" in errors
    assert "Unknown installer: installer-user-999" in errors


def test_rfq_requires_an_installer(rfq_request):
    with pytest.raises(ValueError):
        RFQCreate(**{**rfq_request.model_dump(), "selected_installer_ids": []})


def test_rfq_ids_are_sequential(marketplace_service, rfq_request, rfq):
    second = marketplace_service.create_rfq(rfq_request)
    assert second.id == "rfq-002"


def test_list_rfqs_filters(marketplace_service, rfq):
    assert [r.id for r in marketplace_service.list_rfqs(homeowner_id="homeowner-user-001")] == [rfq.id]
    assert [r.id for r in marketplace_service.list_rfqs(installer_id="installer-user-002")] == [rfq.id]
    assert marketplace_service.list_rfqs(installer_id="installer-user-003") == []


def test_rfq_status_transitions(marketplace_service, rfq):
    """Pending -> Closed is allowed; Closed is terminal."""
    closed = marketplace_service.update_rfq_status(rfq.id, RFQStatus.CLOSED)
    assert closed.status == RFQStatus.CLOSED

    with pytest.raises(ConflictError):
        marketplace_service.update_rfq_status(rfq.id, RFQStatus.PENDING)


def test_get_rfq_not_found(marketplace_service):
    with pytest.raises(NotFoundError) as exc_info:
        marketplace_service.get_rfq("rfq-404")
    assert exc_info.value.status_code == 404


def test_create_quote_totals(marketplace_service, quote_request):
    """subtotal = 14*250 + 1500 = 5000; tax 8% = 400."""
    quote = marketplace_service.create_quote(quote_request)

    assert quote.id == "quote-001"
    assert quote.status == QuoteStatus.DRAFT
    assert quote.subtotal == pytest.approx(5000.0)
    assert quote.tax_amount == pytest.approx(400.0)
    assert quote.total_amount == pytest.approx(5400.0)


def test_quote_requires_invited_installer(marketplace_service, quote_request):
    uninvited = quote_request.model_copy(update={"installer_id": "installer-user-003"})
    with pytest.raises(ValidationError):
        marketplace_service.create_quote(uninvited)


def test_quote_rejected_on_closed_rfq(marketplace_service, rfq, quote_request):
    marketplace_service.update_rfq_status(rfq.id, RFQStatus.CLOSED)
    with pytest.raises(ConflictError):
        marketplace_service.create_quote(quote_request)


def test_submit_quote_marks_rfq_responded(marketplace_service, rfq, quote_request):
    quote = marketplace_service.create_quote(quote_request)

    submitted = marketplace_service.submit_quote(quote.id)

    assert submitted.status == QuoteStatus.SUBMITTED
    assert marketplace_service.get_rfq(rfq.id).status == RFQStatus.RESPONDED


def test_accept_quote_closes_rfq(marketplace_service, rfq, quote_request):
    quote = marketplace_service.create_quote(quote_request)
    marketplace_service.submit_quote(quote.id)

    accepted = marketplace_service.update_quote_status(quote.id, QuoteStatus.ACCEPTED)

    assert accepted.status == QuoteStatus.ACCEPTED
    assert marketplace_service.get_rfq(rfq.id).status == RFQStatus.CLOSED
    assert [q.id for q in marketplace_service.list_quotes(rfq_id=rfq.id)] == [quote.id]


def test_accepting_one_quote_expires_the_others(marketplace_service, rfq, quote_request):
    first = marketplace_service.create_quote(quote_request)
    second = marketplace_service.create_quote(quote_request.model_copy(update={"installer_id": "installer-user-002"}))
    marketplace_service.submit_quote(first.id)
    marketplace_service.submit_quote(second.id)

    marketplace_service.update_quote_status(first.id, QuoteStatus.ACCEPTED)

    assert marketplace_service.get_rfq(rfq.id).status == RFQStatus.CLOSED
    assert marketplace_service.get_quote(second.id).status == QuoteStatus.EXPIRED
    with pytest.raises(ConflictError):
        marketplace_service.update_quote_status(second.id, QuoteStatus.ACCEPTED)


def test_quote_on_closed_rfq_cannot_be_submitted(marketplace_service, rfq, quote_request):
    quote = marketplace_service.create_quote(quote_request)
    marketplace_service.update_rfq_status(rfq.id, RFQStatus.CLOSED)

    with pytest.raises(ConflictError):
        marketplace_service.submit_quote(quote.id)

    assert marketplace_service.get_quote(quote.id).status == QuoteStatus.DRAFT


def test_viewed_quote_on_closed_rfq_can_still_be_rejected(marketplace_service, rfq, quote_request):
    quote = marketplace_service.create_quote(quote_request)
    marketplace_service.submit_quote(quote.id)
    marketplace_service.update_quote_status(quote.id, QuoteStatus.VIEWED)
    marketplace_service.update_rfq_status(rfq.id, RFQStatus.CLOSED)

    with pytest.raises(ConflictError):
        marketplace_service.update_quote_status(quote.id, QuoteStatus.ACCEPTED)
    assert marketplace_service.update_quote_status(quote.id, QuoteStatus.REJECTED).status == QuoteStatus.REJECTED


def test_draft_quote_cannot_be_accepted(marketplace_service, quote_request):
    quote = marketplace_service.create_quote(quote_request)
    with pytest.raises(ConflictError):
        marketplace_service.update_quote_status(quote.id, QuoteStatus.ACCEPTED)


def test_active_promotions(marketplace_service):
    """promo-001 runs 2024-07-15 to 2024-08-15; newest first."""
    active = marketplace_service.list_active_promotions(as_of=date(2024, 8, 20))

    assert [p.id for p in active] == ["promo-004", "promo-003", "promo-002"]
    assert [p.id for p in marketplace_service.list_active_promotions(as_of=date(2024, 7, 16))] == ["promo-001"]


def test_products_by_category(marketplace_service):
    panels = marketplace_service.list_products(category="panels")

    assert [p.id for p in panels] == ["prod-001"]
    assert len(marketplace_service.list_products(supplier_id="supplier-user-002")) == 2
    with pytest.raises(NotFoundError):
        marketplace_service.get_product("prod-999")


def test_next_due_date():
    assert calculate_next_due_date(MaintenanceFrequency.QUARTERLY, date(2024, 11, 30)) == date(2025, 2, 28)
    assert calculate_next_due_date(MaintenanceFrequency.ANNUALLY, date(2024, 2, 29)) == date(2025, 2, 28)
    assert calculate_next_due_date(MaintenanceFrequency.AS_NEEDED, date(2024, 1, 1)) is None
    assert calculate_next_due_date(MaintenanceFrequency.MONTHLY, None) is None


def test_maintenance_tasks_sorted_by_due_date(marketplace_service):
    """Quarterly cleaning is due 2024-07-15, the bi-annual check 2024-07-20."""
    tasks = marketplace_service.list_maintenance_tasks("homeowner-user-001")

    assert [t.id for t in tasks] == ["task-001", "task-002"]
    assert tasks[0].next_due_date == date(2024, 7, 15)
    assert tasks[1].next_due_date == date(2024, 7, 20)


def test_complete_maintenance_task(marketplace_service):
    task = marketplace_service.complete_maintenance_task("task-001", completed_on=date(2024, 9, 1))

    assert task.last_completed == date(2024, 9, 1)
    assert task.next_due_date == date(2024, 12, 1)
    assert task.is_completed is False
