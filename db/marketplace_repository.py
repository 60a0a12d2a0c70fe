"""
Repository for marketplace records.

Handles RFQ, quote, promotion, product and maintenance task records in the
mock data store.
"""

import logging
from typing import List, Optional

from db.database import MockDataStore, get_data_store
from db.seed_data import sample_maintenance_tasks, sample_products, sample_promotions
from models.marketplace import (
    MaintenanceTask,
    Product,
    PromotionPost,
    Quote,
    RFQ,
)

logger = logging.getLogger(__name__)


class MarketplaceRepository:
    """
    Data store operations for marketplace records.

    Collections: rfqs, quotes, promotions, products, maintenance_tasks.
    """

    RFQS = "rfqs"
    QUOTES = "quotes"
    PROMOTIONS = "promotions"
    PRODUCTS = "products"
    MAINTENANCE = "maintenance_tasks"

    def __init__(self, store: Optional[MockDataStore] = None):
        self.store = store or get_data_store()

    def seed_catalogue(self) -> None:
        """Load sample promotions, products and tasks into empty collections."""
        seeds = {
            self.PROMOTIONS: sample_promotions(),
            self.PRODUCTS: sample_products(),
            self.MAINTENANCE: sample_maintenance_tasks(),
        }
        for name, records in seeds.items():
            if self.store.get(name):
                continue
            self.store.put(name, [r.model_dump(mode="json") for r in records])
            logger.info(f"Seeded {len(records)} records into '{name}'")

    def next_id(self, collection: str, prefix: str) -> str:
        """
        Next sequential id for a collection, e.g. rfq-004.

        Args:
            collection: Collection name
            prefix: Id prefix without the trailing dash

        Returns:
            `{prefix}-{n:03d}` where n is one past the highest existing number
        """
        highest = 0
        for record in self.store.get(collection):
            suffix = str(record.get("id", "")).rsplit("-", 1)[-1]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}-{highest + 1:03d}"

    # RFQs

    def get_rfq(self, rfq_id: str) -> Optional[RFQ]:
        record = self.store.find(self.RFQS, rfq_id)
        return RFQ(**record) if record else None

    def list_rfqs(
        self,
        homeowner_id: Optional[str] = None,
        installer_id: Optional[str] = None,
    ) -> List[RFQ]:
        """
        List RFQs, newest first.

        Args:
            homeowner_id: Only RFQs created by this homeowner
            installer_id: Only RFQs routed to this installer
        """
        rfqs = [RFQ(**r) for r in self.store.get(self.RFQS)]
        if homeowner_id:
            rfqs = [r for r in rfqs if r.homeowner_id == homeowner_id]
        if installer_id:
            rfqs = [r for r in rfqs if installer_id in r.selected_installer_ids]
        return sorted(rfqs, key=lambda r: r.date_created, reverse=True)

    def save_rfq(self, rfq: RFQ) -> RFQ:
        return RFQ(**self.store.upsert(self.RFQS, rfq.model_dump(mode="json")))

    # Quotes

    def get_quote(self, quote_id: str) -> Optional[Quote]:
        record = self.store.find(self.QUOTES, quote_id)
        return Quote(**record) if record else None

    def list_quotes(
        self,
        rfq_id: Optional[str] = None,
        installer_id: Optional[str] = None,
    ) -> List[Quote]:
        quotes = [Quote(**q) for q in self.store.get(self.QUOTES)]
        if rfq_id:
            quotes = [q for q in quotes if q.rfq_id == rfq_id]
        if installer_id:
            quotes = [q for q in quotes if q.installer_id == installer_id]
        return quotes

    def save_quote(self, quote: Quote) -> Quote:
        return Quote(**self.store.upsert(self.QUOTES, quote.model_dump(mode="json")))

    # Promotions and products

    def get_promotion(self, promotion_id: str) -> Optional[PromotionPost]:
        record = self.store.find(self.PROMOTIONS, promotion_id)
        return PromotionPost(**record) if record else None

    def list_promotions(self) -> List[PromotionPost]:
        return [PromotionPost(**p) for p in self.store.get(self.PROMOTIONS)]

    def get_product(self, product_id: str) -> Optional[Product]:
        record = self.store.find(self.PRODUCTS, product_id)
        return Product(**record) if record else None

    def list_products(
        self,
        supplier_id: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Product]:
        products = [Product(**p) for p in self.store.get(self.PRODUCTS)]
        if supplier_id:
            products = [p for p in products if p.supplier_id == supplier_id]
        if category:
            products = [p for p in products if p.category.lower() == category.lower()]
        return products

    # Maintenance

    def get_maintenance_task(self, task_id: str) -> Optional[MaintenanceTask]:
        record = self.store.find(self.MAINTENANCE, task_id)
        return MaintenanceTask(**record) if record else None

    def list_maintenance_tasks(self, user_id: Optional[str] = None) -> List[MaintenanceTask]:
        tasks = [MaintenanceTask(**t) for t in self.store.get(self.MAINTENANCE)]
        if user_id:
            tasks = [t for t in tasks if t.user_id == user_id]
        return tasks

    def save_maintenance_task(self, task: MaintenanceTask) -> MaintenanceTask:
        return MaintenanceTask(**self.store.upsert(self.MAINTENANCE, task.model_dump(mode="json")))
