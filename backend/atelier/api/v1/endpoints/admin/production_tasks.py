"""
Admin Production Task Endpoints

Cross-order production board plus edits and deletion of individual tasks.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from atelier.api.deps import get_current_actor
from atelier.core.permissions import Actor
from atelier.db.session import get_db
from atelier.schemas.bespoke import (
    ProductionBoardItem,
    ProductionBoardResponse,
    ProductionTaskResponse,
    ProductionTaskUpdate,
)
from atelier.services import bespoke_workflow, production_tasks

router = APIRouter(prefix="/production-tasks", tags=["Admin - Production"])


@router.get("/", response_model=ProductionBoardResponse)
async def get_production_board(
    status_filter: Optional[str] = Query(None, alias="status"),
    stage: Optional[str] = None,
    assignee_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=production_tasks.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Production board across all bespoke orders

    Most urgent first: priority, then due date (undated last), then newest.
    """
    tasks, total, counts = production_tasks.list_production_board(
        db,
        actor,
        status=status_filter,
        stage=stage,
        assignee_id=assignee_id,
        search=search,
        page=page,
        limit=limit,
    )
    items = [
        ProductionBoardItem(
            **ProductionTaskResponse.model_validate(task).model_dump(),
            order_number=task.bespoke_order.order_number,
            customer_name=task.bespoke_order.customer_name,
            order_status=task.bespoke_order.status,
        )
        for task in tasks
    ]
    return ProductionBoardResponse(
        tasks=items,
        total=total,
        page=page,
        total_pages=bespoke_workflow.total_pages(total, limit),
        status_counts=counts,
    )


@router.patch("/{task_id}", response_model=ProductionTaskResponse)
async def update_production_task(
    task_id: int,
    request: ProductionTaskUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Update any subset of a task's fields

    Completing a task stamps completed_at; moving it back clears the stamp.
    """
    return production_tasks.update_task(db, actor, task_id, request)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_production_task(
    task_id: int,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Delete a task (admin only)"""
    production_tasks.delete_task(db, actor, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
