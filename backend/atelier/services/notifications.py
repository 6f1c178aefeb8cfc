"""
Notification Service

Customer notifications for workflow events, plus the read side of a user's
notification inbox.

Dispatch is fire-and-forget: callers hand a message to a dispatcher and move
on. The dispatchers here log store failures and never raise them back.
"""
import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Protocol, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atelier.core.permissions import Actor, require_authenticated
from atelier.exceptions import ForbiddenError, NotFoundError
from atelier.models.notification import Notification
from atelier.schemas.bespoke import BespokeOrderStatus

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


class NotificationDispatcher(Protocol):
    """Anything that can deliver a notification to a user."""

    def notify(
        self,
        user_id: int,
        title: str,
        message: str,
        category: str,
        link_url: Optional[str] = None,
    ) -> None:
        ...


# ============================================================================
# Dispatchers
# ============================================================================

class DatabaseNotificationDispatcher:
    """Writes a Notification row in its own session and commits it."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def notify(self, user_id, title, message, category, link_url=None) -> None:
        db = self._session_factory()
        try:
            db.add(Notification(
                user_id=user_id,
                title=title,
                message=message,
                category=getattr(category, "value", category),
                link_url=link_url,
            ))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error(
                "Failed to store notification",
                extra={"user_id": user_id, "category": getattr(category, "value", category)},
                exc_info=True,
            )
        finally:
            db.close()


class BackgroundNotificationDispatcher:
    """
    Runs another dispatcher on a worker thread.

    notify() returns as soon as the work is queued; the caller never waits on
    delivery and never sees its errors.
    """

    def __init__(self, delegate: NotificationDispatcher, max_workers: int = 2):
        self._delegate = delegate
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def notify(self, user_id, title, message, category, link_url=None) -> Future:
        future = self._executor.submit(
            self._delegate.notify, user_id, title, message, category, link_url
        )
        future.add_done_callback(_log_delivery_failure)
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class NullNotificationDispatcher:
    """Used when notifications are switched off."""

    def notify(self, user_id, title, message, category, link_url=None) -> None:
        logger.debug("Notifications disabled, dropping message", extra={"user_id": user_id})


def _log_delivery_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error(
            "Background notification failed",
            exc_info=(type(exc), exc, exc.__traceback__),
        )


# ============================================================================
# Message Text
# ============================================================================

_BESPOKE_STATUS_MESSAGES = {
    BespokeOrderStatus.NEW: "We have received your bespoke request {number} and will be in touch shortly.",
    BespokeOrderStatus.INQUIRY: "We have received your bespoke inquiry {number}. Our team will reach out to discuss your requirements.",
    BespokeOrderStatus.QUOTED: "A quote for your bespoke order {number} is ready for your review.",
    BespokeOrderStatus.CONFIRMED: "Your bespoke order {number} is confirmed. We will schedule production and keep you posted.",
    BespokeOrderStatus.IN_PRODUCTION: "Your bespoke order {number} is now in production. Our craftsmen are working on your piece.",
    BespokeOrderStatus.FITTING: "Your bespoke order {number} is ready for fitting. We'll contact you to schedule an appointment.",
    BespokeOrderStatus.DELIVERED: "Your bespoke order {number} has been delivered. We hope you love your custom piece!",
    BespokeOrderStatus.CANCELLED: "Your bespoke order {number} has been cancelled. Please contact us if you have any questions.",
}


def bespoke_status_title(order_number: str) -> str:
    return f"Bespoke Order {order_number} Update"


def bespoke_status_message(status, order_number: str) -> str:
    """Customer-facing sentence describing an order's new status."""
    try:
        status = BespokeOrderStatus(getattr(status, "value", status))
    except ValueError:
        readable = str(status).replace("_", " ").lower()
        return f"Your bespoke order {order_number} is now in the {readable} stage."
    return _BESPOKE_STATUS_MESSAGES[status].format(number=order_number)


# ============================================================================
# Inbox
# ============================================================================

def list_notifications(
    db: Session,
    actor: Actor,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Tuple[List[Notification], int]:
    """The actor's notifications, newest first, with the total count."""
    actor = require_authenticated(actor)
    page = max(1, page)
    query = db.query(Notification).filter(Notification.user_id == actor.user_id)
    total = query.count()
    items = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return items, total


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size else 0


def unread_count(db: Session, actor: Actor) -> int:
    actor = require_authenticated(actor)
    return (
        db.query(Notification)
        .filter(Notification.user_id == actor.user_id, Notification.is_read == False)  # noqa: E712
        .count()
    )


def mark_read(db: Session, actor: Actor, notification_id: int) -> Notification:
    """Mark one notification read. Only its recipient may do this."""
    actor = require_authenticated(actor)
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        raise NotFoundError("Notification", notification_id)
    if notification.user_id != actor.user_id:
        raise ForbiddenError("Notification belongs to another user")

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, actor: Actor) -> int:
    """Mark every unread notification of the actor read; returns how many changed."""
    actor = require_authenticated(actor)
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == actor.user_id, Notification.is_read == False)  # noqa: E712
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return updated
