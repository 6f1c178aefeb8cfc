"""
Production Task Tracker

Per-order manufacturing tasks and the cross-order production board. Task
status is independent of the order status machine; the only rule it carries
is that completed_at is set exactly while a task is COMPLETED.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from atelier.core.permissions import STAFF_ROLES, Actor, require_admin, require_staff
from atelier.exceptions import NotFoundError, ValidationFailedError
from atelier.logging_config import audit_log
from atelier.models.bespoke_order import BespokeOrder
from atelier.models.production_task import ProductionTask
from atelier.models.user import User
from atelier.schemas.bespoke import (
    ALL_FILTER,
    ProductionStage,
    ProductionTaskCreate,
    ProductionTaskStatus,
    ProductionTaskUpdate,
)
from atelier.services.validation import validate_payload

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50


def _load_order(db: Session, order_id: int) -> BespokeOrder:
    order = db.query(BespokeOrder).filter(BespokeOrder.id == order_id).first()
    if not order:
        raise NotFoundError("Bespoke order", order_id)
    return order


def _load_task(db: Session, task_id: int) -> ProductionTask:
    task = db.query(ProductionTask).filter(ProductionTask.id == task_id).first()
    if not task:
        raise NotFoundError("Production task", task_id)
    return task


def _check_assignee(db: Session, assignee_id: Optional[int]) -> None:
    """Tasks may only be assigned to existing staff accounts."""
    if assignee_id is None:
        return
    user = db.query(User).filter(User.id == assignee_id).first()
    if not user or user.role not in STAFF_ROLES:
        raise ValidationFailedError("Assignee not found", details={"assigned_to_id": assignee_id})


def _commit(db: Session, action: str, **context) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Failed to {action} production task", extra=context, exc_info=True)
        raise


def next_sort_order(db: Session, order_id: int) -> int:
    current = (
        db.query(func.max(ProductionTask.sort_order))
        .filter(ProductionTask.bespoke_order_id == order_id)
        .scalar()
    )
    return (current or 0) + 1


# ============================================================================
# Per-Order Tasks
# ============================================================================

def create_task(db: Session, actor: Actor, order_id: int, data) -> int:
    """
    Append a task to an order's production plan.

    New tasks start NOT_STARTED at the end of the plan. Returns the task id.
    """
    actor = require_staff(actor)
    data = validate_payload(ProductionTaskCreate, data)
    order = _load_order(db, order_id)
    _check_assignee(db, data.assigned_to_id)

    task = ProductionTask(
        bespoke_order_id=order.id,
        title=data.title.strip(),
        description=data.description,
        stage=data.stage.value,
        status=ProductionTaskStatus.NOT_STARTED.value,
        assigned_to_id=data.assigned_to_id,
        priority=data.priority,
        sort_order=next_sort_order(db, order.id),
        estimated_hours=data.estimated_hours,
        due_date=data.due_date,
        notes=data.notes,
        completed_at=None,
    )
    db.add(task)
    _commit(db, "create", order_id=order.id)
    db.refresh(task)

    audit_log(
        "CREATE_PRODUCTION_TASK",
        user_id=actor.user_id,
        resource_type="production_task",
        resource_id=task.id,
        details={"order_number": order.order_number, "stage": task.stage, "sort_order": task.sort_order},
    )
    return task.id


def update_task(db: Session, actor: Actor, task_id: int, data) -> ProductionTask:
    """
    Overwrite any subset of a task's fields.

    Moving into COMPLETED stamps completed_at (an already completed task keeps
    its stamp); any other status clears it.
    """
    actor = require_staff(actor)
    data = validate_payload(ProductionTaskUpdate, data)
    task = _load_task(db, task_id)

    fields = data.model_dump(exclude_unset=True)
    old_status = task.status
    if "assigned_to_id" in fields:
        _check_assignee(db, fields["assigned_to_id"])

    for field, value in fields.items():
        if field == "status":
            continue
        setattr(task, field, getattr(value, "value", value))

    if "status" in fields:
        new_status = fields["status"].value
        if new_status == ProductionTaskStatus.COMPLETED.value:
            if old_status != ProductionTaskStatus.COMPLETED.value:
                task.completed_at = datetime.utcnow()
        else:
            task.completed_at = None
        task.status = new_status

    _commit(db, "update", task_id=task_id)
    db.refresh(task)

    details = {"fields": sorted(fields)}
    if task.status != old_status:
        details.update({"from_status": old_status, "to_status": task.status})
    audit_log(
        "UPDATE_PRODUCTION_TASK",
        user_id=actor.user_id,
        resource_type="production_task",
        resource_id=task.id,
        details=details,
    )
    return task


def delete_task(db: Session, actor: Actor, task_id: int) -> None:
    """Hard delete. Admin tier only."""
    actor = require_admin(actor)
    task = _load_task(db, task_id)
    order_id = task.bespoke_order_id

    db.delete(task)
    _commit(db, "delete", task_id=task_id)

    audit_log(
        "DELETE_PRODUCTION_TASK",
        user_id=actor.user_id,
        resource_type="production_task",
        resource_id=task_id,
        details={"bespoke_order_id": order_id},
    )


def list_tasks(db: Session, actor: Actor, order_id: int) -> List[ProductionTask]:
    actor = require_staff(actor)
    _load_order(db, order_id)
    return (
        db.query(ProductionTask)
        .options(joinedload(ProductionTask.assigned_to))
        .filter(ProductionTask.bespoke_order_id == order_id)
        .order_by(ProductionTask.sort_order.asc(), ProductionTask.created_at.asc(), ProductionTask.id.asc())
        .all()
    )


# ============================================================================
# Production Board
# ============================================================================

def _coerce(enum_cls, value, name):
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationFailedError(f"Invalid {name}", details={name: value})


def list_production_board(
    db: Session,
    actor: Actor,
    status: Optional[str] = None,
    stage: Optional[str] = None,
    assignee_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[ProductionTask], int, Dict[str, int]]:
    """
    Tasks across all orders, most urgent first.

    Ordered by priority (high first), due date (undated last) and then
    newest. Returns (tasks, total matching, counts per task status).
    """
    actor = require_staff(actor)
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))

    query = (
        db.query(ProductionTask)
        .join(BespokeOrder, ProductionTask.bespoke_order_id == BespokeOrder.id)
        .options(joinedload(ProductionTask.bespoke_order), joinedload(ProductionTask.assigned_to))
    )
    if status and status.upper() != ALL_FILTER:
        query = query.filter(ProductionTask.status == _coerce(ProductionTaskStatus, status, "status"))
    if stage and stage.upper() != ALL_FILTER:
        query = query.filter(ProductionTask.stage == _coerce(ProductionStage, stage, "stage"))
    if assignee_id is not None:
        query = query.filter(ProductionTask.assigned_to_id == assignee_id)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            ProductionTask.title.ilike(pattern),
            BespokeOrder.order_number.ilike(pattern),
            BespokeOrder.customer_name.ilike(pattern),
        ))

    total = query.count()
    tasks = (
        query.order_by(
            ProductionTask.priority.desc(),
            case((ProductionTask.due_date.is_(None), 1), else_=0),
            ProductionTask.due_date.asc(),
            ProductionTask.created_at.desc(),
            ProductionTask.id.desc(),
        )
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    counts = {s.value: 0 for s in ProductionTaskStatus}
    for status_value, count in (
        db.query(ProductionTask.status, func.count(ProductionTask.id)).group_by(ProductionTask.status).all()
    ):
        counts[status_value] = count
    return tasks, total, counts
