"""
Unit tests for notification dispatchers, message text and the inbox
"""
import logging

import pytest

from atelier.core.permissions import Actor
from atelier.exceptions import ForbiddenError, NotFoundError, UnauthorizedError
from atelier.models.notification import Notification
from atelier.services import notifications
from atelier.services.notifications import (
    BackgroundNotificationDispatcher,
    DatabaseNotificationDispatcher,
    NullNotificationDispatcher,
)


class TestMessages:

    def test_title(self):
        assert notifications.bespoke_status_title("BSP-1001") == "Bespoke Order BSP-1001 Update"

    @pytest.mark.parametrize("status, fragment", [
        ("QUOTED", "quote"),
        ("IN_PRODUCTION", "in production"),
        ("FITTING", "ready for fitting"),
        ("DELIVERED", "delivered"),
        ("CANCELLED", "cancelled"),
    ])
    def test_status_messages(self, status, fragment):
        message = notifications.bespoke_status_message(status, "BSP-1001")
        assert "BSP-1001" in message
        assert fragment in message

    def test_unknown_status_falls_back(self):
        message = notifications.bespoke_status_message("ON_HOLD", "BSP-1001")
        assert message == "Your bespoke order BSP-1001 is now in the on hold stage."


class TestDispatchers:

    def test_database_dispatcher_writes_row(self, db_session, users, session_factory):
        dispatcher = DatabaseNotificationDispatcher(session_factory)

        dispatcher.notify(users["CUSTOMER"].id, "Title", "Body", "BESPOKE", "/account/orders")

        row = db_session.query(Notification).one()
        assert row.user_id == users["CUSTOMER"].id
        assert row.category == "BESPOKE"
        assert row.link_url == "/account/orders"
        assert row.is_read is False

    def test_background_dispatcher_delegates(self, dispatcher):
        background = BackgroundNotificationDispatcher(dispatcher, max_workers=1)
        try:
            future = background.notify(7, "Title", "Body", "BESPOKE")
            future.result(timeout=5)
        finally:
            background.shutdown()

        assert dispatcher.calls == [{
            "user_id": 7,
            "title": "Title",
            "message": "Body",
            "category": "BESPOKE",
            "link_url": None,
        }]

    def test_background_failure_is_logged_not_raised(self, caplog, failing_dispatcher):
        dispatcher = BackgroundNotificationDispatcher(failing_dispatcher, max_workers=1)
        with caplog.at_level(logging.ERROR, logger="atelier.services.notifications"):
            dispatcher.notify(7, "Title", "Body", "BESPOKE")
            dispatcher.shutdown(wait=True)

        assert "Background notification failed" in caplog.text

    def test_null_dispatcher(self):
        assert NullNotificationDispatcher().notify(1, "t", "m", "SYSTEM") is None


class TestInbox:

    @pytest.fixture
    def inbox(self, db_session, users):
        customer_id = users["CUSTOMER"].id
        for i in range(3):
            db_session.add(Notification(user_id=customer_id, title=f"N{i}", message="m", category="BESPOKE"))
        db_session.add(Notification(user_id=users["STAFF"].id, title="Staff note", message="m"))
        db_session.commit()

    def test_list_newest_first(self, db_session, customer, inbox):
        items, total = notifications.list_notifications(db_session, customer, page=1, page_size=2)
        assert total == 3
        assert [n.title for n in items] == ["N2", "N1"]

    def test_unread_count_and_mark_all(self, db_session, customer, inbox):
        assert notifications.unread_count(db_session, customer) == 3
        assert notifications.mark_all_read(db_session, customer) == 3
        assert notifications.unread_count(db_session, customer) == 0

    def test_mark_read_own(self, db_session, customer, inbox):
        items, _ = notifications.list_notifications(db_session, customer)
        result = notifications.mark_read(db_session, customer, items[0].id)
        assert result.is_read is True
        assert notifications.unread_count(db_session, customer) == 2

    def test_mark_read_other_users_notification(self, db_session, customer, staff, inbox):
        items, _ = notifications.list_notifications(db_session, staff)
        with pytest.raises(ForbiddenError):
            notifications.mark_read(db_session, customer, items[0].id)

    def test_mark_read_missing(self, db_session, customer):
        with pytest.raises(NotFoundError):
            notifications.mark_read(db_session, customer, 999)

    def test_requires_actor(self, db_session):
        with pytest.raises(UnauthorizedError):
            notifications.unread_count(db_session, None)

    def test_total_pages(self):
        assert notifications.total_pages(0, 20) == 0
        assert notifications.total_pages(21, 20) == 2
