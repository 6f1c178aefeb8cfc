"""
Bespoke Order Workflow

Owns the bespoke order lifecycle: creating orders, editing their descriptive
fields and moving them between statuses. A status change and its history
entry are committed together; customer notification happens afterwards and
never affects the outcome.
"""
import logging
import math
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from atelier.core.permissions import Actor, require_staff
from atelier.core.settings import settings
from atelier.exceptions import NoOpTransitionError, NotFoundError, ValidationFailedError
from atelier.logging_config import audit_log
from atelier.models.bespoke_order import BespokeOrder
from atelier.models.production_task import ProductionTask
from atelier.schemas.bespoke import (
    ALL_FILTER,
    BESPOKE_STATUS_ORDER,
    BespokeOrderCreate,
    BespokeOrderStatus,
    BespokeOrderUpdate,
    BespokeStatusUpdate,
)
from atelier.schemas.notification import NotificationCategory
from atelier.services import status_log
from atelier.services.measurements import find_measurement_profile
from atelier.services.notifications import (
    NotificationDispatcher,
    bespoke_status_message,
    bespoke_status_title,
)
from atelier.services.validation import validate_payload

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "BSP-"
FIRST_ORDER_NUMBER = 1001
MAX_PAGE_SIZE = 50

# Text columns that may be cleared by sending an empty string
_CLEARABLE_TEXT_FIELDS = frozenset({
    "customer_email",
    "design_description",
    "fabric_details",
    "customer_notes",
    "internal_notes",
})


# ============================================================================
# Helpers
# ============================================================================

def generate_order_number(db: Session) -> str:
    """Next BSP-<n> number, following the most recently created order."""
    last = db.query(BespokeOrder).order_by(BespokeOrder.id.desc()).first()
    if last and last.order_number and last.order_number.startswith(ORDER_NUMBER_PREFIX):
        try:
            return f"{ORDER_NUMBER_PREFIX}{int(last.order_number[len(ORDER_NUMBER_PREFIX):]) + 1}"
        except ValueError:
            logger.warning(
                "Unparseable bespoke order number, restarting sequence",
                extra={"order_number": last.order_number},
            )
    return f"{ORDER_NUMBER_PREFIX}{FIRST_ORDER_NUMBER}"


def status_options(current) -> List[BespokeOrderStatus]:
    """Every status except the current one, in pipeline order"""
    current = getattr(current, "value", current)
    return [s for s in BESPOKE_STATUS_ORDER if s.value != current]


def _load_order(db: Session, order_id: int) -> BespokeOrder:
    order = db.query(BespokeOrder).filter(BespokeOrder.id == order_id).first()
    if not order:
        raise NotFoundError("Bespoke order", order_id)
    return order


def _resolve_measurement_id(db: Session, label: Optional[str], user_id: Optional[int]) -> Optional[int]:
    if not label:
        return None
    profile = find_measurement_profile(db, label, user_id=user_id)
    if not profile:
        raise ValidationFailedError(
            "Measurement profile not found",
            details={"measurement_label": label},
        )
    return profile.id


def _status_counts(db: Session) -> Dict[str, int]:
    counts = {s.value: 0 for s in BESPOKE_STATUS_ORDER}
    rows = db.query(BespokeOrder.status, func.count(BespokeOrder.id)).group_by(BespokeOrder.status).all()
    for status_value, count in rows:
        counts[status_value] = count
    return counts


# ============================================================================
# Orders
# ============================================================================

def create_order(db: Session, actor: Actor, data) -> BespokeOrder:
    """
    Record a new bespoke inquiry.

    The order starts in INQUIRY and its history opens with a creation entry
    written in the same commit.
    """
    actor = require_staff(actor)
    data = validate_payload(BespokeOrderCreate, data)
    measurement_id = _resolve_measurement_id(db, data.measurement_label, data.user_id)

    order = BespokeOrder(
        order_number=generate_order_number(db),
        customer_name=data.customer_name.strip(),
        customer_email=data.customer_email,
        customer_phone=data.customer_phone.strip(),
        user_id=data.user_id,
        measurement_id=measurement_id,
        design_description=data.design_description or None,
        fabric_details=data.fabric_details or None,
        estimated_price=data.estimated_price,
        final_price=data.final_price,
        deposit_amount=data.deposit_amount,
        estimated_completion_date=data.estimated_completion_date,
        internal_notes=data.internal_notes or None,
        customer_notes=data.customer_notes or None,
        status=BespokeOrderStatus.INQUIRY.value,
    )
    try:
        db.add(order)
        db.flush()
        status_log.append(db, order.id, actor, None, BespokeOrderStatus.INQUIRY, "Order created")
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to create bespoke order", exc_info=True)
        raise
    db.refresh(order)

    audit_log(
        "CREATE_BESPOKE_ORDER",
        user_id=actor.user_id,
        resource_type="bespoke_order",
        resource_id=order.id,
        details={"order_number": order.order_number},
    )
    logger.info(
        "Bespoke order created",
        extra={"order_id": order.id, "order_number": order.order_number},
    )
    return order


def update_order(db: Session, actor: Actor, order_id: int, data) -> BespokeOrder:
    """Overwrite any subset of an order's descriptive fields. Never touches status."""
    actor = require_staff(actor)
    data = validate_payload(BespokeOrderUpdate, data)
    order = _load_order(db, order_id)

    fields = data.model_dump(exclude_unset=True)
    if "measurement_label" in fields:
        label = fields.pop("measurement_label")
        user_id = fields.get("user_id", order.user_id)
        fields["measurement_id"] = _resolve_measurement_id(db, label, user_id)

    for field, value in fields.items():
        if field in _CLEARABLE_TEXT_FIELDS and isinstance(value, str) and not value.strip():
            value = None
        setattr(order, field, value)

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to update bespoke order", extra={"order_id": order_id}, exc_info=True)
        raise
    db.refresh(order)

    audit_log(
        "UPDATE_BESPOKE_ORDER",
        user_id=actor.user_id,
        resource_type="bespoke_order",
        resource_id=order.id,
        details={"order_number": order.order_number, "fields": sorted(fields)},
    )
    return order


def get_order(db: Session, actor: Actor, order_id: int) -> BespokeOrder:
    actor = require_staff(actor)
    order = (
        db.query(BespokeOrder)
        .options(
            selectinload(BespokeOrder.tasks),
            selectinload(BespokeOrder.status_logs),
            selectinload(BespokeOrder.measurement),
        )
        .filter(BespokeOrder.id == order_id)
        .first()
    )
    if not order:
        raise NotFoundError("Bespoke order", order_id)
    return order


def list_orders(
    db: Session,
    actor: Actor,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    assignee_id: Optional[int] = None,
) -> Tuple[List[BespokeOrder], int, Dict[str, int]]:
    """
    Orders newest first, filtered by status and free-text search.

    With assignee_id, only orders holding at least one task assigned to that
    user are returned. A status of ALL applies no status filter.

    Returns (orders, total matching, counts per status across all orders).
    """
    actor = require_staff(actor)
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))

    query = db.query(BespokeOrder).options(selectinload(BespokeOrder.tasks))
    if status and status.upper() != ALL_FILTER:
        try:
            status = BespokeOrderStatus(status).value
        except ValueError:
            raise ValidationFailedError("Invalid status", details={"status": status})
        query = query.filter(BespokeOrder.status == status)
    if assignee_id is not None:
        query = query.filter(BespokeOrder.tasks.any(ProductionTask.assigned_to_id == assignee_id))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            BespokeOrder.order_number.ilike(pattern),
            BespokeOrder.customer_name.ilike(pattern),
            BespokeOrder.customer_email.ilike(pattern),
            BespokeOrder.customer_phone.ilike(pattern),
        ))

    total = query.count()
    orders = (
        query.order_by(BespokeOrder.created_at.desc(), BespokeOrder.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return orders, total, _status_counts(db)


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


# ============================================================================
# Status Transitions
# ============================================================================

def advance_status(
    db: Session,
    actor: Actor,
    order_id: int,
    requested_status,
    note: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> BespokeOrder:
    """
    Move an order to another status.

    Any status other than the current one is accepted. The change and its
    history entry commit together; DELIVERED also stamps
    actual_completion_date. Once committed, the linked customer (if any) is
    notified through the dispatcher on a best-effort basis.

    Raises:
        UnauthorizedError: actor below staff tier
        ValidationFailedError: unknown status or note too long
        NotFoundError: no such order
        NoOpTransitionError: order already has the requested status
    """
    actor = require_staff(actor)
    request = validate_payload(BespokeStatusUpdate, {"status": requested_status, "note": note})
    new_status = request.status

    order = _load_order(db, order_id)
    old_status = order.status
    if old_status == new_status.value:
        raise NoOpTransitionError(old_status)

    try:
        order.status = new_status.value
        if new_status == BespokeOrderStatus.DELIVERED:
            order.actual_completion_date = datetime.utcnow()
        status_log.append(db, order.id, actor, old_status, new_status, request.note)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(
            "Failed to update bespoke order status",
            extra={"order_id": order_id, "from_status": old_status, "to_status": new_status.value},
            exc_info=True,
        )
        raise
    db.refresh(order)

    audit_log(
        "UPDATE_BESPOKE_STATUS",
        user_id=actor.user_id,
        resource_type="bespoke_order",
        resource_id=order.id,
        details={
            "order_number": order.order_number,
            "from_status": old_status,
            "to_status": new_status.value,
        },
    )
    logger.info(
        "Bespoke order status changed",
        extra={"order_number": order.order_number, "from_status": old_status, "to_status": new_status.value},
    )

    _notify_customer(order, dispatcher)
    return order


def _notify_customer(order: BespokeOrder, dispatcher: Optional[NotificationDispatcher]) -> None:
    if order.user_id is None or dispatcher is None:
        return
    try:
        dispatcher.notify(
            order.user_id,
            bespoke_status_title(order.order_number),
            bespoke_status_message(order.status, order.order_number),
            NotificationCategory.BESPOKE.value,
            settings.CUSTOMER_ORDERS_PATH,
        )
    except Exception:
        logger.warning(
            "Customer notification failed",
            extra={"order_number": order.order_number, "user_id": order.user_id},
            exc_info=True,
        )
