"""
Pydantic models for marketplace records.

Users (homeowners, installers, suppliers), requests for quote, quotes,
promotion posts, catalogue products and maintenance tasks. These are the
records held by the mock data store in db/.
"""

from enum import Enum
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, Enum):
    """Marketplace participant roles."""
    HOMEOWNER = "homeowner"
    INSTALLER = "installer"
    SUPPLIER = "supplier"


class RFQStatus(str, Enum):
    """RFQ lifecycle: Pending -> Responded -> Closed."""
    PENDING = "Pending"
    RESPONDED = "Responded"
    CLOSED = "Closed"


class QuoteStatus(str, Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    VIEWED = "Viewed"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    EXPIRED = "Expired"


class MaintenanceTaskType(str, Enum):
    CLEANING = "cleaning"
    INSPECTION = "inspection"
    CHECK = "check"
    PROFESSIONAL_SERVICE = "professional_service"
    DIY = "diy"
    CUSTOM = "custom"


class MaintenanceFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BI_ANNUALLY = "bi-annually"
    ANNUALLY = "annually"
    AS_NEEDED = "as-needed"


# =============================================================================
# USERS
# =============================================================================

class MockUser(BaseModel):
    """A marketplace user. Role-specific fields are None for other roles."""

    id: str = Field(..., description="User ID, e.g. installer-user-003")
    full_name: str = Field(..., description="Display name")
    email: str = Field(..., description="Contact email")
    role: UserRole = Field(..., description="Marketplace role")
    avatar_url: Optional[str] = Field(None, description="Avatar image URL")
    address: Optional[str] = Field(None, description="Postal address")
    phone: Optional[str] = Field(None, description="Phone number")
    company_name: Optional[str] = Field(None, description="Installer or supplier company")
    specialties: Optional[List[str]] = Field(None, description="Installer specialties")
    products_offered: Optional[List[str]] = Field(None, description="Supplier product lines")
    project_count: Optional[int] = Field(None, description="Installer completed projects", ge=0)
    store_rating: Optional[float] = Field(None, description="Supplier store rating (0-5)", ge=0, le=5)
    member_since: Optional[date] = Field(None, description="Date the user joined")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "installer-user-001",
                "full_name": "Arjun Iyer",
                "email": "arjun.iyer1@install.example.com",
                "role": "installer",
                "address": "101 Main St, Bangalore, India",
                "phone": "91-9123456789",
                "company_name": "Iyer Solar Solutions",
                "specialties": ["Commercial Solar", "Solar Maintenance"],
                "project_count": 27,
                "member_since": "2021-06-14",
            }
        }
    )


# =============================================================================
# RFQS AND QUOTES
# =============================================================================

class RFQCreate(BaseModel):
    """Homeowner request for quote."""

    homeowner_id: str = Field(..., description="Requesting homeowner's user ID")
    name: str = Field(..., description="Contact name")
    email: str = Field(..., description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")
    address: str = Field(..., description="Installation address")
    estimated_system_size_kw: Optional[float] = Field(None, description="Desired system size (kW)", gt=0)
    monthly_consumption_kwh: Optional[float] = Field(None, description="Typical monthly consumption (kWh)", ge=0)
    additional_notes: Optional[str] = Field(None, description="Free-form notes")
    include_monitoring: bool = Field(False, description="Request monitoring system")
    include_battery_storage: bool = Field(False, description="Request battery storage")
    selected_installer_ids: List[str] = Field(..., description="Installers to route the RFQ to")

    @field_validator("selected_installer_ids")
    @classmethod
    def at_least_one_installer(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("At least one installer must be selected")
        return v


class RFQ(RFQCreate):
    id: str = Field(..., description="RFQ ID, e.g. rfq-001")
    date_created: datetime = Field(..., description="Creation timestamp")
    status: RFQStatus = Field(RFQStatus.PENDING, description="Lifecycle status")


class QuoteLineItem(BaseModel):
    description: str = Field(..., description="Line item description")
    quantity: float = Field(..., description="Quantity", gt=0)
    unit_price: float = Field(..., description="Price per unit", ge=0)

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


class QuoteCreate(BaseModel):
    """Installer response to an RFQ."""

    rfq_id: str = Field(..., description="RFQ being answered")
    installer_id: str = Field(..., description="Quoting installer's user ID")
    line_items: List[QuoteLineItem] = Field(..., description="Priced line items", min_length=1)
    tax_rate: float = Field(0.0, description="Tax rate as a fraction (0.08 = 8%)", ge=0, le=1)
    valid_until: Optional[date] = Field(None, description="Quote expiry date")
    notes: Optional[str] = Field(None, description="Installer notes")


class Quote(QuoteCreate):
    id: str = Field(..., description="Quote ID")
    subtotal: float = Field(..., description="Sum of line item totals")
    tax_amount: float = Field(..., description="subtotal * tax_rate")
    total_amount: float = Field(..., description="subtotal + tax_amount")
    status: QuoteStatus = Field(QuoteStatus.DRAFT, description="Quote status")
    date_created: datetime = Field(..., description="Creation timestamp")


# =============================================================================
# CATALOGUE
# =============================================================================

class PromotionPost(BaseModel):
    id: str
    author_id: str = Field(..., description="Posting installer or supplier")
    author_name: str
    author_role: UserRole
    title: str
    content: str
    image_url: Optional[str] = None
    discount: Optional[str] = Field(None, description="Discount label, e.g. '15% OFF'")
    tags: List[str] = Field(default_factory=list)
    post_date: date
    valid_until: Optional[date] = None


class Product(BaseModel):
    id: str
    supplier_id: str
    name: str
    description: str
    category: str
    price: float = Field(..., ge=0)
    currency_code: str = "USD"
    stock: int = Field(..., ge=0)
    supplier_name: Optional[str] = None


class MaintenanceTask(BaseModel):
    id: str
    user_id: str = Field(..., description="Owner of the task")
    title: str
    description: str
    task_type: MaintenanceTaskType
    frequency: MaintenanceFrequency
    last_completed: Optional[date] = None
    next_due_date: Optional[date] = Field(None, description="Derived from frequency and last completion")
    estimated_duration_minutes: Optional[int] = Field(None, ge=0)
    is_completed: bool = False
    notes: Optional[str] = None
