"""
API endpoints for the marketplace.

RFQs, installer quotes, promotions, the product catalogue and
maintenance schedules.
"""

from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Path, Query, Request
from pydantic import BaseModel, Field

from middleware.rate_limiter import limiter, RATE_LIMITS
from models.marketplace import (
    MaintenanceTask,
    Product,
    PromotionPost,
    Quote,
    QuoteCreate,
    QuoteStatus,
    RFQ,
    RFQCreate,
    RFQStatus,
)
from services.errors import SolarAppError
from services.marketplace_service import MarketplaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/marketplace", tags=["Marketplace"])


# Request Models

class RFQStatusUpdate(BaseModel):
    """Request body for PATCH /api/marketplace/rfqs/{rfq_id}/status"""
    status: RFQStatus = Field(..., description="New status (Responded or Closed)")


class QuoteStatusUpdate(BaseModel):
    """Request body for PATCH /api/marketplace/quotes/{quote_id}/status"""
    status: QuoteStatus = Field(..., description="New quote status")


class MaintenanceCompletion(BaseModel):
    """Request body for POST /api/marketplace/maintenance/{task_id}/complete"""
    completed_on: Optional[date] = Field(None, description="Completion date (defaults to today)")


def _fail(action: str, e: Exception):
    logger.error(f"Failed to {action}: {e}", exc_info=True)
    raise HTTPException(status_code=500, detail=f"Failed to {action}: {str(e)}")


# RFQs

@router.post("/rfqs", response_model=RFQ, status_code=201)
@limiter.limit(RATE_LIMITS["default"])
async def create_rfq(request: Request, body: RFQCreate):
    """
    Create a request for quote routed to the selected installers.

    The homeowner and every selected installer must exist with the right
    role. New RFQs start as Pending.
    """
    try:
        return MarketplaceService().create_rfq(body)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail("create RFQ", e)


@router.get("/rfqs", response_model=List[RFQ])
@limiter.limit(RATE_LIMITS["default"])
async def list_rfqs(
    request: Request,
    homeowner_id: Optional[str] = Query(None, description="Only RFQs created by this homeowner"),
    installer_id: Optional[str] = Query(None, description="Only RFQs routed to this installer"),
):
    """List RFQs, newest first."""
    try:
        return MarketplaceService().list_rfqs(homeowner_id=homeowner_id, installer_id=installer_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail("list RFQs", e)


@router.get("/rfqs/{rfq_id}", response_model=RFQ)
@limiter.limit(RATE_LIMITS["default"])
async def get_rfq(request: Request, rfq_id: str = Path(..., description="RFQ ID")):
    try:
        return MarketplaceService().get_rfq(rfq_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail(f"get RFQ {rfq_id}", e)


@router.patch("/rfqs/{rfq_id}/status", response_model=RFQ)
@limiter.limit(RATE_LIMITS["default"])
async def update_rfq_status(
    request: Request,
    body: RFQStatusUpdate,
    rfq_id: str = Path(..., description="RFQ ID"),
):
    """Move an RFQ forward (Pending -> Responded -> Closed). Returns 409 for backward moves."""
    try:
        return MarketplaceService().update_rfq_status(rfq_id, body.status)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail(f"update RFQ {rfq_id}", e)


# Quotes

@router.post("/quotes", response_model=Quote, status_code=201)
@limiter.limit(RATE_LIMITS["default"])
async def create_quote(request: Request, body: QuoteCreate):
    """
    Create a Draft quote for an RFQ.

    Totals are computed server side: subtotal = sum(quantity * unit_price),
    tax = subtotal * tax_rate, total = subtotal + tax.
    """
    try:
        return MarketplaceService().create_quote(body)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail("create quote", e)


@router.get("/quotes", response_model=List[Quote])
@limiter.limit(RATE_LIMITS["default"])
async def list_quotes(
    request: Request,
    rfq_id: Optional[str] = Query(None, description="Only quotes for this RFQ"),
    installer_id: Optional[str] = Query(None, description="Only quotes from this installer"),
):
    try:
        return MarketplaceService().list_quotes(rfq_id=rfq_id, installer_id=installer_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail("list quotes", e)


@router.get("/quotes/{quote_id}", response_model=Quote)
@limiter.limit(RATE_LIMITS["default"])
async def get_quote(request: Request, quote_id: str = Path(..., description="Quote ID")):
    try:
        return MarketplaceService().get_quote(quote_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail(f"get quote {quote_id}", e)


@router.patch("/quotes/{quote_id}/status", response_model=Quote)
@limiter.limit(RATE_LIMITS["default"])
async def update_quote_status(
    request: Request,
    body: QuoteStatusUpdate,
    quote_id: str = Path(..., description="Quote ID"),
):
    """
    Move a quote forward in its lifecycle.

    Submitting marks a Pending RFQ as Responded; accepting closes the RFQ.
    """
    try:
        return MarketplaceService().update_quote_status(quote_id, body.status)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail(f"update quote {quote_id}", e)


# Promotions and products

@router.get("/promotions", response_model=List[PromotionPost])
@limiter.limit(RATE_LIMITS["default"])
async def list_promotions(
    request: Request,
    author_id: Optional[str] = Query(None, description="Only promotions by this author"),
    as_of: Optional[date] = Query(None, description="Date to evaluate validity on (defaults to today)"),
):
    """Active promotions, newest first."""
    try:
        return MarketplaceService().list_active_promotions(as_of=as_of, author_id=author_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail("list promotions", e)


@router.get("/promotions/{promotion_id}", response_model=PromotionPost)
@limiter.limit(RATE_LIMITS["default"])
async def get_promotion(request: Request, promotion_id: str = Path(..., description="Promotion ID")):
    try:
        return MarketplaceService().get_promotion(promotion_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail(f"get promotion {promotion_id}", e)


@router.get("/products", response_model=List[Product])
@limiter.limit(RATE_LIMITS["default"])
async def list_products(
    request: Request,
    supplier_id: Optional[str] = Query(None, description="Only products from this supplier"),
    category: Optional[str] = Query(None, description="Product category (case-insensitive)"),
):
    try:
        return MarketplaceService().list_products(supplier_id=supplier_id, category=category)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail("list products", e)


@router.get("/products/{product_id}", response_model=Product)
@limiter.limit(RATE_LIMITS["default"])
async def get_product(request: Request, product_id: str = Path(..., description="Product ID")):
    try:
        return MarketplaceService().get_product(product_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail(f"get product {product_id}", e)


# Maintenance

@router.get("/maintenance", response_model=List[MaintenanceTask])
@limiter.limit(RATE_LIMITS["default"])
async def list_maintenance_tasks(
    request: Request,
    user_id: str = Query(..., description="Homeowner user ID"),
):
    """A homeowner's maintenance tasks with next due dates, soonest first."""
    try:
        return MarketplaceService().list_maintenance_tasks(user_id)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail("list maintenance tasks", e)


@router.post("/maintenance/{task_id}/complete", response_model=MaintenanceTask)
@limiter.limit(RATE_LIMITS["default"])
async def complete_maintenance_task(
    request: Request,
    body: MaintenanceCompletion,
    task_id: str = Path(..., description="Maintenance task ID"),
):
    try:
        return MarketplaceService().complete_maintenance_task(task_id, body.completed_on)
    except (HTTPException, SolarAppError):
        raise
    except Exception as e:
        _fail(f"complete maintenance task {task_id}", e)
