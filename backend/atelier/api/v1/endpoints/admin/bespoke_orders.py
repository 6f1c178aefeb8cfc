"""
Admin Bespoke Order Endpoints

Staff-facing management of bespoke orders: listing, intake, edits, status
transitions, history and each order's production plan.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from atelier.api.deps import get_current_actor, get_notification_dispatcher
from atelier.core.permissions import Actor
from atelier.db.session import get_db
from atelier.models.bespoke_order import BespokeOrder
from atelier.schemas.bespoke import (
    BespokeOrderCreate,
    BespokeOrderDetailResponse,
    BespokeOrderListItem,
    BespokeOrderListResponse,
    BespokeOrderResponse,
    BespokeOrderUpdate,
    BespokeStatusUpdate,
    MeasurementSummary,
    ProductionTaskCreate,
    ProductionTaskCreated,
    ProductionTaskResponse,
    StatusLogResponse,
)
from atelier.services import bespoke_workflow, production_tasks, status_log
from atelier.services.notifications import NotificationDispatcher

router = APIRouter(prefix="/bespoke-orders", tags=["Admin - Bespoke Orders"])


def _detail(order: BespokeOrder) -> BespokeOrderDetailResponse:
    base = BespokeOrderResponse.model_validate(order).model_dump()
    return BespokeOrderDetailResponse(
        **base,
        measurement=MeasurementSummary.model_validate(order.measurement) if order.measurement else None,
        tasks=[ProductionTaskResponse.model_validate(t) for t in order.tasks],
        history=[StatusLogResponse.model_validate(entry) for entry in order.status_logs],
        status_options=bespoke_workflow.status_options(order.status),
    )


# ============================================================================
# ENDPOINTS: Orders
# ============================================================================

@router.get("/", response_model=BespokeOrderListResponse)
async def list_bespoke_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    assignee_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=bespoke_workflow.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    List bespoke orders, newest first

    Filters by status (ALL for every status) and task assignee, and searches
    order number, customer name, email and phone. status_counts covers every
    order regardless of filters.
    """
    orders, total, counts = bespoke_workflow.list_orders(
        db, actor, status=status_filter, search=search, page=page, limit=limit,
        assignee_id=assignee_id,
    )
    return BespokeOrderListResponse(
        orders=[BespokeOrderListItem.model_validate(o) for o in orders],
        total=total,
        page=page,
        total_pages=bespoke_workflow.total_pages(total, limit),
        status_counts=counts,
    )


@router.post("/", response_model=BespokeOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_bespoke_order(
    request: BespokeOrderCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Record a new bespoke inquiry (starts in INQUIRY)"""
    return bespoke_workflow.create_order(db, actor, request)


@router.get("/{order_id}", response_model=BespokeOrderDetailResponse)
async def get_bespoke_order(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Order with measurements, production plan, history and status options"""
    return _detail(bespoke_workflow.get_order(db, actor, order_id))


@router.patch("/{order_id}", response_model=BespokeOrderResponse)
async def update_bespoke_order(
    order_id: int,
    request: BespokeOrderUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return bespoke_workflow.update_order(db, actor, order_id, request)


@router.patch("/{order_id}/status", response_model=BespokeOrderResponse)
async def update_bespoke_order_status(
    order_id: int,
    request: BespokeStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Move an order to another status

    Any status other than the current one is accepted. The linked customer is
    notified in the background once the change is saved.
    """
    return bespoke_workflow.advance_status(
        db, actor, order_id, request.status, note=request.note, dispatcher=dispatcher
    )


@router.get("/{order_id}/history", response_model=List[StatusLogResponse])
async def get_bespoke_order_history(
    order_id: int,
    newest_first: bool = False,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    bespoke_workflow.get_order(db, actor, order_id)
    return status_log.history(db, order_id, newest_first=newest_first)


# ============================================================================
# ENDPOINTS: Production Plan
# ============================================================================

@router.get("/{order_id}/tasks", response_model=List[ProductionTaskResponse])
async def list_order_tasks(
    order_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return production_tasks.list_tasks(db, actor, order_id)


@router.post("/{order_id}/tasks", response_model=ProductionTaskCreated, status_code=status.HTTP_201_CREATED)
async def create_order_task(
    order_id: int,
    request: ProductionTaskCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Append a task to the end of the order's production plan"""
    return ProductionTaskCreated(id=production_tasks.create_task(db, actor, order_id, request))
