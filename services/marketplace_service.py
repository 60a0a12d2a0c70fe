"""
Marketplace workflows: RFQs, quotes, promotions and maintenance schedules.

Validates cross-record references (homeowners, installers) against the user
repository and enforces the RFQ and quote status lifecycles.
"""

from datetime import date, datetime
from typing import List, Optional
import logging

from db.marketplace_repository import MarketplaceRepository
from db.user_repository import MockUserRepository
from models.marketplace import (
    MaintenanceFrequency,
    MaintenanceTask,
    Product,
    PromotionPost,
    Quote,
    QuoteCreate,
    QuoteStatus,
    RFQ,
    RFQCreate,
    RFQStatus,
    UserRole,
)
from services.errors import ConflictError, NotFoundError, ValidationError
from utils.dates import add_months

logger = logging.getLogger(__name__)

# Allowed forward transitions; Closed is terminal
RFQ_TRANSITIONS = {
    RFQStatus.PENDING: {RFQStatus.RESPONDED, RFQStatus.CLOSED},
    RFQStatus.RESPONDED: {RFQStatus.CLOSED},
    RFQStatus.CLOSED: set(),
}

QUOTE_TRANSITIONS = {
    QuoteStatus.DRAFT: {QuoteStatus.SUBMITTED},
    QuoteStatus.SUBMITTED: {QuoteStatus.VIEWED, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.VIEWED: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
    QuoteStatus.ACCEPTED: set(),
    QuoteStatus.REJECTED: set(),
    QuoteStatus.EXPIRED: set(),
}

CLOSED_RFQ_QUOTE_STATUSES = {QuoteStatus.REJECTED, QuoteStatus.EXPIRED}

FREQUENCY_MONTHS = {
    MaintenanceFrequency.MONTHLY: 1,
    MaintenanceFrequency.QUARTERLY: 3,
    MaintenanceFrequency.BI_ANNUALLY: 6,
    MaintenanceFrequency.ANNUALLY: 12,
}


def calculate_next_due_date(frequency: MaintenanceFrequency, last_completed: Optional[date]) -> Optional[date]:
    """
    Next due date for a recurring task.

    Returns None for as-needed tasks and tasks never completed.
    """
    months = FREQUENCY_MONTHS.get(MaintenanceFrequency(frequency))
    if months is None or last_completed is None:
        return None
    return add_months(last_completed, months)


class MarketplaceService:
    """
    RFQ, quote, promotion and maintenance operations.

    Usage:
        service = MarketplaceService()
        rfq = service.create_rfq(RFQCreate(...))
        quote = service.create_quote(QuoteCreate(rfq_id=rfq.id, ...))
        service.submit_quote(quote.id)
    """

    def __init__(
        self,
        repository: Optional[MarketplaceRepository] = None,
        user_repository: Optional[MockUserRepository] = None,
    ):
        self.repository = repository or MarketplaceRepository()
        self.user_repository = user_repository or MockUserRepository()

    # -------------------------------------------------------------------------
    # RFQs
    # -------------------------------------------------------------------------

    def create_rfq(self, request: RFQCreate, now: Optional[datetime] = None) -> RFQ:
        """
        Create a Pending RFQ routed to the selected installers.

        Args:
            request: RFQ fields
            now: Creation timestamp (defaults to the current time)

        Returns:
            Stored RFQ

        Raises:
            ValidationError: If the homeowner or any installer id is unknown
                or has the wrong role
        """
        errors = []

        homeowner = self.user_repository.get_user_by_id(request.homeowner_id)
        if homeowner is None or homeowner.role != UserRole.HOMEOWNER:
            errors.append(f"Unknown homeowner: {request.homeowner_id}")

        for installer_id in request.selected_installer_ids:
            installer = self.user_repository.get_user_by_id(installer_id)
            if installer is None or installer.role != UserRole.INSTALLER:
                errors.append(f"Unknown installer: {installer_id}")

        if errors:
            raise ValidationError("Invalid RFQ", errors)

        rfq = RFQ(
            **request.model_dump(),
            id=self.repository.next_id(MarketplaceRepository.RFQS, "rfq"),
            date_created=now or datetime.now(),
            status=RFQStatus.PENDING,
        )
        rfq = self.repository.save_rfq(rfq)
        logger.info(
            f"Created {rfq.id} for {rfq.homeowner_id} routed to "
            f"{len(rfq.selected_installer_ids)} installer(s)"
        )
        return rfq

    def get_rfq(self, rfq_id: str) -> RFQ:
        rfq = self.repository.get_rfq(rfq_id)
        if rfq is None:
            raise NotFoundError("RFQ", rfq_id)
        return rfq

    def list_rfqs(
        self,
        homeowner_id: Optional[str] = None,
        installer_id: Optional[str] = None,
    ) -> List[RFQ]:
        return self.repository.list_rfqs(homeowner_id=homeowner_id, installer_id=installer_id)

    def update_rfq_status(self, rfq_id: str, status: RFQStatus) -> RFQ:
        """
        Move an RFQ forward in its lifecycle.

        Raises:
            NotFoundError: If the RFQ does not exist
            ConflictError: If the transition is not allowed
        """
        rfq = self.get_rfq(rfq_id)
        status = RFQStatus(status)

        if status == rfq.status:
            return rfq
        if status not in RFQ_TRANSITIONS[rfq.status]:
            raise ConflictError(
                f"Cannot move {rfq_id} from {rfq.status.value} to {status.value}"
            )

        rfq.status = status
        logger.info(f"{rfq_id} status -> {status.value}")
        return self.repository.save_rfq(rfq)

    # -------------------------------------------------------------------------
    # Quotes
    # -------------------------------------------------------------------------

    def create_quote(self, request: QuoteCreate, now: Optional[datetime] = None) -> Quote:
        """
        Create a Draft quote for an RFQ.

        subtotal = sum(quantity * unit_price); tax = subtotal * tax_rate;
        total = subtotal + tax.

        Raises:
            NotFoundError: If the RFQ does not exist
            ValidationError: If the installer was not invited to the RFQ
            ConflictError: If the RFQ is Closed
        """
        rfq = self.get_rfq(request.rfq_id)

        if request.installer_id not in rfq.selected_installer_ids:
            raise ValidationError(
                "Installer was not invited to this RFQ",
                [f"{request.installer_id} not in {rfq.id} selected installers"],
            )
        if rfq.status == RFQStatus.CLOSED:
            raise ConflictError(f"{rfq.id} is closed")

        subtotal = sum(item.total for item in request.line_items)
        tax_amount = subtotal * request.tax_rate

        quote = Quote(
            **request.model_dump(),
            id=self.repository.next_id(MarketplaceRepository.QUOTES, "quote"),
            subtotal=round(subtotal, 2),
            tax_amount=round(tax_amount, 2),
            total_amount=round(subtotal + tax_amount, 2),
            status=QuoteStatus.DRAFT,
            date_created=now or datetime.now(),
        )
        quote = self.repository.save_quote(quote)
        logger.info(f"Created {quote.id} for {rfq.id}: total {quote.total_amount:.2f}")
        return quote

    def get_quote(self, quote_id: str) -> Quote:
        quote = self.repository.get_quote(quote_id)
        if quote is None:
            raise NotFoundError("Quote", quote_id)
        return quote

    def list_quotes(self, rfq_id: Optional[str] = None, installer_id: Optional[str] = None) -> List[Quote]:
        return self.repository.list_quotes(rfq_id=rfq_id, installer_id=installer_id)

    def update_quote_status(self, quote_id: str, status: QuoteStatus) -> Quote:
        """
        Move a quote forward in its lifecycle.

        Submitting a quote marks a Pending RFQ as Responded; accepting one
        closes the RFQ and expires the other open quotes on it. Quotes on a
        Closed RFQ can only be rejected or expired.

        Raises:
            NotFoundError: If the quote or its RFQ does not exist
            ConflictError: If the transition is not allowed or the RFQ is Closed
        """
        quote = self.get_quote(quote_id)
        status = QuoteStatus(status)

        if status == quote.status:
            return quote
        if status not in QUOTE_TRANSITIONS[quote.status]:
            raise ConflictError(
                f"Cannot move {quote_id} from {quote.status.value} to {status.value}"
            )

        rfq = self.get_rfq(quote.rfq_id)
        if rfq.status == RFQStatus.CLOSED and status not in CLOSED_RFQ_QUOTE_STATUSES:
            raise ConflictError(f"{rfq.id} is closed")

        if status == QuoteStatus.SUBMITTED and rfq.status == RFQStatus.PENDING:
            self.update_rfq_status(rfq.id, RFQStatus.RESPONDED)
        elif status == QuoteStatus.ACCEPTED:
            self.update_rfq_status(rfq.id, RFQStatus.CLOSED)

        quote.status = status
        logger.info(f"{quote_id} status -> {status.value}")
        quote = self.repository.save_quote(quote)

        if status == QuoteStatus.ACCEPTED:
            self._expire_open_quotes(rfq.id, exclude=quote.id)
        return quote

    def _expire_open_quotes(self, rfq_id: str, exclude: str) -> None:
        for other in self.repository.list_quotes(rfq_id=rfq_id):
            if other.id != exclude and QuoteStatus.EXPIRED in QUOTE_TRANSITIONS[other.status]:
                other.status = QuoteStatus.EXPIRED
                self.repository.save_quote(other)
                logger.info(f"{other.id} status -> expired ({rfq_id} closed)")

    def submit_quote(self, quote_id: str) -> Quote:
        return self.update_quote_status(quote_id, QuoteStatus.SUBMITTED)

    # -------------------------------------------------------------------------
    # Promotions and products
    # -------------------------------------------------------------------------

    def get_promotion(self, promotion_id: str) -> PromotionPost:
        promotion = self.repository.get_promotion(promotion_id)
        if promotion is None:
            raise NotFoundError("Promotion", promotion_id)
        return promotion

    def list_active_promotions(
        self,
        as_of: Optional[date] = None,
        author_id: Optional[str] = None,
    ) -> List[PromotionPost]:
        """
        Promotions posted on or before `as_of` that have not expired, newest first.
        """
        as_of = as_of or date.today()
        promotions = [
            p for p in self.repository.list_promotions()
            if p.post_date <= as_of and (p.valid_until is None or p.valid_until >= as_of)
        ]
        if author_id:
            promotions = [p for p in promotions if p.author_id == author_id]
        return sorted(promotions, key=lambda p: p.post_date, reverse=True)

    def get_product(self, product_id: str) -> Product:
        product = self.repository.get_product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def list_products(self, supplier_id: Optional[str] = None, category: Optional[str] = None) -> List[Product]:
        return self.repository.list_products(supplier_id=supplier_id, category=category)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def list_maintenance_tasks(self, user_id: str) -> List[MaintenanceTask]:
        """Tasks for a user with next_due_date filled in, soonest first."""
        tasks = []
        for task in self.repository.list_maintenance_tasks(user_id):
            task.next_due_date = calculate_next_due_date(task.frequency, task.last_completed)
            tasks.append(task)
        return sorted(tasks, key=lambda t: (t.next_due_date is None, t.next_due_date or date.max))

    def complete_maintenance_task(self, task_id: str, completed_on: Optional[date] = None) -> MaintenanceTask:
        task = self.repository.get_maintenance_task(task_id)
        if task is None:
            raise NotFoundError("MaintenanceTask", task_id)

        task.last_completed = completed_on or date.today()
        task.next_due_date = calculate_next_due_date(task.frequency, task.last_completed)
        # As-needed tasks stay completed until reopened
        task.is_completed = task.next_due_date is None
        logger.info(f"Completed {task_id}; next due {task.next_due_date}")
        return self.repository.save_maintenance_task(task)
