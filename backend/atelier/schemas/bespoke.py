"""
Bespoke Workflow Pydantic Schemas

Bespoke orders, status transitions, status history and production tasks.
"""
from pydantic import BaseModel, Field, computed_field, field_validator
from typing import Optional, List, Dict
from datetime import datetime, date
from decimal import Decimal
from enum import Enum


# ============================================================================
# Enums
# ============================================================================

class BespokeOrderStatus(str, Enum):
    """Bespoke order lifecycle, in pipeline order"""
    NEW = "NEW"
    INQUIRY = "INQUIRY"
    QUOTED = "QUOTED"
    CONFIRMED = "CONFIRMED"
    IN_PRODUCTION = "IN_PRODUCTION"
    FITTING = "FITTING"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


BESPOKE_STATUS_ORDER: List[BespokeOrderStatus] = list(BespokeOrderStatus)

BESPOKE_STATUS_LABELS: Dict[BespokeOrderStatus, str] = {
    BespokeOrderStatus.NEW: "New",
    BespokeOrderStatus.INQUIRY: "Inquiry",
    BespokeOrderStatus.QUOTED: "Quoted",
    BespokeOrderStatus.CONFIRMED: "Confirmed",
    BespokeOrderStatus.IN_PRODUCTION: "In Production",
    BespokeOrderStatus.FITTING: "Fitting",
    BespokeOrderStatus.DELIVERED: "Delivered",
    BespokeOrderStatus.CANCELLED: "Cancelled",
}


class ProductionStage(str, Enum):
    """Manufacturing phase a task belongs to"""
    CUTTING = "CUTTING"
    SEWING = "SEWING"
    EMBROIDERY = "EMBROIDERY"
    BEADING = "BEADING"
    FINISHING = "FINISHING"
    QC = "QC"
    PRESSING = "PRESSING"
    OTHER = "OTHER"


STAGE_LABELS: Dict[ProductionStage, str] = {
    ProductionStage.CUTTING: "Cutting",
    ProductionStage.SEWING: "Sewing",
    ProductionStage.EMBROIDERY: "Embroidery",
    ProductionStage.BEADING: "Beading",
    ProductionStage.FINISHING: "Finishing",
    ProductionStage.QC: "Quality Control",
    ProductionStage.PRESSING: "Pressing",
    ProductionStage.OTHER: "Other",
}


class ProductionTaskStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# List filter value that matches every status or stage
ALL_FILTER = "ALL"


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _reject_null(v, info):
    if v is None:
        raise ValueError(f"{info.field_name} cannot be null")
    return v


# ============================================================================
# Bespoke Order Schemas
# ============================================================================

class BespokeOrderCreate(BaseModel):
    """Record a new bespoke inquiry"""
    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: str = Field(..., min_length=7, max_length=20)
    user_id: Optional[int] = None
    measurement_label: Optional[str] = Field(None, max_length=100)

    design_description: Optional[str] = Field(None, max_length=5000)
    fabric_details: Optional[str] = None
    estimated_price: Optional[Decimal] = Field(None, gt=0)
    final_price: Optional[Decimal] = Field(None, gt=0)
    deposit_amount: Optional[Decimal] = Field(None, gt=0)
    estimated_completion_date: Optional[date] = None

    internal_notes: Optional[str] = Field(None, max_length=5000)
    customer_notes: Optional[str] = Field(None, max_length=5000)

    class Config:
        extra = "forbid"

    @field_validator("customer_email", "measurement_label", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)

    @field_validator("customer_email")
    @classmethod
    def looks_like_email(cls, v):
        if v is not None and ("@" not in v or v.startswith("@") or v.endswith("@")):
            raise ValueError("Invalid email")
        return v


class BespokeOrderUpdate(BaseModel):
    """
    Partial update of an order's descriptive fields.

    Status is deliberately absent: it only changes through a status transition.
    """
    customer_name: Optional[str] = Field(None, min_length=2, max_length=100)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, min_length=7, max_length=20)
    user_id: Optional[int] = None
    measurement_label: Optional[str] = Field(None, max_length=100)

    design_description: Optional[str] = Field(None, max_length=5000)
    fabric_details: Optional[str] = None
    estimated_price: Optional[Decimal] = Field(None, gt=0)
    final_price: Optional[Decimal] = Field(None, gt=0)
    deposit_amount: Optional[Decimal] = Field(None, gt=0)
    deposit_paid: Optional[bool] = None
    estimated_completion_date: Optional[date] = None

    internal_notes: Optional[str] = Field(None, max_length=5000)
    customer_notes: Optional[str] = Field(None, max_length=5000)

    class Config:
        extra = "forbid"

    @field_validator("customer_email", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)

    @field_validator("customer_name", "customer_phone", "deposit_paid")
    @classmethod
    def required_not_null(cls, v, info):
        return _reject_null(v, info)


class BespokeStatusUpdate(BaseModel):
    """Request a status transition"""
    status: BespokeOrderStatus
    note: Optional[str] = Field(None, max_length=2000)


class BespokeOrderResponse(BaseModel):
    id: int
    order_number: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: str
    user_id: Optional[int] = None
    measurement_id: Optional[int] = None

    design_description: Optional[str] = None
    fabric_details: Optional[str] = None
    estimated_price: Optional[Decimal] = None
    final_price: Optional[Decimal] = None
    deposit_amount: Optional[Decimal] = None
    deposit_paid: bool = False
    balance_due: Optional[Decimal] = None

    status: BespokeOrderStatus
    estimated_completion_date: Optional[date] = None
    actual_completion_date: Optional[datetime] = None

    customer_notes: Optional[str] = None
    internal_notes: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def status_label(self) -> str:
        return BESPOKE_STATUS_LABELS[self.status]


class BespokeOrderListItem(BespokeOrderResponse):
    task_count: int = 0


class BespokeOrderListResponse(BaseModel):
    orders: List[BespokeOrderListItem]
    total: int
    page: int
    total_pages: int
    status_counts: Dict[str, int]


class StatusLogResponse(BaseModel):
    """One entry of an order's status history"""
    id: int
    bespoke_order_id: int
    old_status: Optional[str] = None
    new_status: str
    note: Optional[str] = None
    changed_by_user_id: int
    changed_by_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MeasurementSummary(BaseModel):
    id: int
    label: str
    chest: Optional[Decimal] = None
    shoulder: Optional[Decimal] = None
    sleeve_length: Optional[Decimal] = None
    neck: Optional[Decimal] = None
    back_length: Optional[Decimal] = None
    waist: Optional[Decimal] = None
    hip: Optional[Decimal] = None
    inseam: Optional[Decimal] = None
    outseam: Optional[Decimal] = None
    thigh: Optional[Decimal] = None
    height: Optional[Decimal] = None
    weight: Optional[Decimal] = None

    class Config:
        from_attributes = True


# ============================================================================
# Production Task Schemas
# ============================================================================

class ProductionTaskCreate(BaseModel):
    """Add a task to an order's production plan"""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    stage: ProductionStage
    assigned_to_id: Optional[int] = None
    priority: int = Field(0, ge=0, le=2)
    estimated_hours: Optional[Decimal] = Field(None, gt=0)
    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)

    class Config:
        extra = "forbid"

    @field_validator("description", "notes", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)


class ProductionTaskUpdate(BaseModel):
    """Any subset of a task's mutable fields"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    stage: Optional[ProductionStage] = None
    status: Optional[ProductionTaskStatus] = None
    assigned_to_id: Optional[int] = None
    priority: Optional[int] = Field(None, ge=0, le=2)
    estimated_hours: Optional[Decimal] = Field(None, gt=0)
    actual_hours: Optional[Decimal] = Field(None, gt=0)
    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)

    class Config:
        extra = "forbid"

    @field_validator("title", "stage", "status", "priority")
    @classmethod
    def required_not_null(cls, v, info):
        return _reject_null(v, info)

    @field_validator("description", "notes", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)


class ProductionTaskResponse(BaseModel):
    id: int
    bespoke_order_id: int
    title: str
    description: Optional[str] = None
    stage: ProductionStage
    status: ProductionTaskStatus
    assigned_to_id: Optional[int] = None
    assigned_to_name: Optional[str] = None
    priority: int
    sort_order: int
    estimated_hours: Optional[Decimal] = None
    actual_hours: Optional[Decimal] = None
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def stage_label(self) -> str:
        return STAGE_LABELS[self.stage]


class ProductionTaskCreated(BaseModel):
    id: int


class ProductionBoardItem(ProductionTaskResponse):
    """Task row on the cross-order production board"""
    order_number: str
    customer_name: str
    order_status: BespokeOrderStatus


class ProductionBoardResponse(BaseModel):
    tasks: List[ProductionBoardItem]
    total: int
    page: int
    total_pages: int
    status_counts: Dict[str, int]


class BespokeOrderDetailResponse(BespokeOrderResponse):
    """Order with its production plan, history and the statuses it can move to"""
    measurement: Optional[MeasurementSummary] = None
    tasks: List[ProductionTaskResponse] = []
    history: List[StatusLogResponse] = []
    status_options: List[BespokeOrderStatus] = []
