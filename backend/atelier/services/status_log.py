"""
Bespoke Status Log Service

Append-only history of bespoke order status transitions. Entries are written
from inside the caller's transaction and are never modified afterwards.
"""
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from atelier.core.permissions import Actor
from atelier.models.bespoke_order import BespokeStatusLog


def _status_value(status) -> Optional[str]:
    if status is None:
        return None
    return getattr(status, "value", status)


def append(
    db: Session,
    order_id: int,
    actor: Actor,
    old_status,
    new_status,
    note: Optional[str] = None,
) -> BespokeStatusLog:
    """
    Add a transition entry to the open transaction.

    Flushes so the row gets an id, but never commits: the entry must land in
    the same commit as the status change it describes.
    """
    entry = BespokeStatusLog(
        bespoke_order_id=order_id,
        changed_by_user_id=actor.user_id,
        old_status=_status_value(old_status),
        new_status=_status_value(new_status),
        note=note or None,
    )
    db.add(entry)
    db.flush()
    return entry


def history(db: Session, order_id: int, newest_first: bool = False) -> List[BespokeStatusLog]:
    """Transitions for one order in the order they happened (or reversed)."""
    query = (
        db.query(BespokeStatusLog)
        .options(joinedload(BespokeStatusLog.changed_by))
        .filter(BespokeStatusLog.bespoke_order_id == order_id)
    )
    if newest_first:
        query = query.order_by(BespokeStatusLog.created_at.desc(), BespokeStatusLog.id.desc())
    else:
        query = query.order_by(BespokeStatusLog.created_at.asc(), BespokeStatusLog.id.asc())
    return query.all()
