"""
Unit tests for the bespoke order workflow

Order intake, edits, listing and status transitions with their history
entries and customer notifications.
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from atelier.core.permissions import Actor
from atelier.exceptions import (
    NoOpTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from atelier.models.bespoke_order import BespokeOrder, BespokeStatusLog
from atelier.schemas.bespoke import BespokeOrderStatus
from atelier.services import bespoke_workflow, production_tasks, status_log


def _log_rows(db, order_id):
    return (
        db.query(BespokeStatusLog)
        .filter(BespokeStatusLog.bespoke_order_id == order_id)
        .order_by(BespokeStatusLog.id)
        .all()
    )


@pytest.fixture
def order(db_session, staff, order_payload):
    return bespoke_workflow.create_order(db_session, staff, order_payload)


@pytest.fixture
def linked_order(db_session, staff, users, order_payload):
    return bespoke_workflow.create_order(
        db_session, staff, {**order_payload, "user_id": users["CUSTOMER"].id}
    )


class TestCreateOrder:
    """create_order: numbering, initial status and creation history"""

    def test_first_order_is_bsp_1001_in_inquiry(self, order):
        assert order.order_number == "BSP-1001"
        assert order.status == "INQUIRY"
        assert order.actual_completion_date is None

    def test_order_numbers_are_sequential(self, db_session, staff, order_payload):
        first = bespoke_workflow.create_order(db_session, staff, order_payload)
        second = bespoke_workflow.create_order(db_session, staff, order_payload)
        assert first.order_number == "BSP-1001"
        assert second.order_number == "BSP-1002"

    def test_creation_writes_opening_history_entry(self, db_session, order, staff):
        rows = _log_rows(db_session, order.id)
        assert len(rows) == 1
        assert rows[0].old_status is None
        assert rows[0].new_status == "INQUIRY"
        assert rows[0].note == "Order created"
        assert rows[0].changed_by_user_id == staff.user_id

    def test_customer_cannot_create(self, db_session, customer, order_payload):
        with pytest.raises(UnauthorizedError):
            bespoke_workflow.create_order(db_session, customer, order_payload)
        assert db_session.query(BespokeOrder).count() == 0

    def test_missing_actor_is_unauthorized(self, db_session, order_payload):
        with pytest.raises(UnauthorizedError):
            bespoke_workflow.create_order(db_session, None, order_payload)

    def test_invalid_payload_rejected(self, db_session, staff, order_payload):
        with pytest.raises(ValidationFailedError) as exc_info:
            bespoke_workflow.create_order(db_session, staff, {**order_payload, "customer_name": "A"})
        fields = [e["field"] for e in exc_info.value.details["errors"]]
        assert "customer_name" in fields
        assert db_session.query(BespokeOrder).count() == 0

    def test_status_cannot_be_set_on_create(self, db_session, staff, order_payload):
        with pytest.raises(ValidationFailedError):
            bespoke_workflow.create_order(db_session, staff, {**order_payload, "status": "CONFIRMED"})

    def test_measurement_label_resolves_profile(self, db_session, staff, users, measurement, order_payload):
        order = bespoke_workflow.create_order(
            db_session,
            staff,
            {**order_payload, "user_id": users["CUSTOMER"].id, "measurement_label": "wedding suit"},
        )
        assert order.measurement_id == measurement.id

    def test_unknown_measurement_label_rejected(self, db_session, staff, order_payload):
        with pytest.raises(ValidationFailedError):
            bespoke_workflow.create_order(db_session, staff, {**order_payload, "measurement_label": "Nope"})
        assert db_session.query(BespokeOrder).count() == 0

    def test_records_audit_event(self, db_session, staff, order_payload, monkeypatch):
        events = []
        monkeypatch.setattr(bespoke_workflow, "audit_log", lambda event, **kw: events.append((event, kw)))

        order = bespoke_workflow.create_order(db_session, staff, order_payload)

        assert events[0][0] == "CREATE_BESPOKE_ORDER"
        assert events[0][1]["resource_id"] == order.id


class TestAdvanceStatus:
    """advance_status: transitions, history, completion stamp, errors"""

    def test_scenario_bsp_1001_inquiry_to_quoted(self, db_session, staff, users):
        order = BespokeOrder(
            order_number="BSP-1001",
            customer_name="Amara Okafor",
            customer_phone="+2348012345678",
            status="INQUIRY",
        )
        db_session.add(order)
        db_session.commit()

        result = bespoke_workflow.advance_status(db_session, staff, order.id, "QUOTED", note="sent quote")

        assert result.status == "QUOTED"
        rows = _log_rows(db_session, order.id)
        assert len(rows) == 1
        assert rows[0].old_status == "INQUIRY"
        assert rows[0].new_status == "QUOTED"
        assert rows[0].note == "sent quote"
        assert rows[0].changed_by_user_id == staff.user_id

    def test_valid_advance_appends_exactly_one_row(self, db_session, staff, order):
        before = len(_log_rows(db_session, order.id))

        bespoke_workflow.advance_status(db_session, staff, order.id, BespokeOrderStatus.CONFIRMED)

        rows = _log_rows(db_session, order.id)
        assert len(rows) == before + 1
        assert rows[-1].old_status == "INQUIRY"
        assert rows[-1].new_status == "CONFIRMED"
        assert rows[-1].note is None

    def test_noop_raises_and_writes_nothing(self, db_session, staff, order):
        before = len(_log_rows(db_session, order.id))

        with pytest.raises(NoOpTransitionError):
            bespoke_workflow.advance_status(db_session, staff, order.id, "INQUIRY")

        assert len(_log_rows(db_session, order.id)) == before
        assert db_session.get(BespokeOrder, order.id).status == "INQUIRY"

    def test_delivered_stamps_completion_date(self, db_session, staff, order):
        start = datetime.utcnow() - timedelta(seconds=1)

        result = bespoke_workflow.advance_status(db_session, staff, order.id, "DELIVERED")

        assert result.actual_completion_date is not None
        assert result.actual_completion_date >= start

    @pytest.mark.parametrize("target", ["QUOTED", "IN_PRODUCTION", "FITTING", "CANCELLED"])
    def test_other_targets_leave_completion_date(self, db_session, staff, order, target):
        result = bespoke_workflow.advance_status(db_session, staff, order.id, target)
        assert result.actual_completion_date is None

    def test_backward_and_out_of_terminal_moves_accepted(self, db_session, staff, order):
        bespoke_workflow.advance_status(db_session, staff, order.id, "DELIVERED")
        delivered_at = db_session.get(BespokeOrder, order.id).actual_completion_date

        result = bespoke_workflow.advance_status(db_session, staff, order.id, "IN_PRODUCTION")

        assert result.status == "IN_PRODUCTION"
        # Leaving DELIVERED keeps the original stamp
        assert result.actual_completion_date == delivered_at

    def test_unknown_status_rejected(self, db_session, staff, order):
        with pytest.raises(ValidationFailedError):
            bespoke_workflow.advance_status(db_session, staff, order.id, "SHIPPED")
        assert db_session.get(BespokeOrder, order.id).status == "INQUIRY"

    def test_note_longer_than_2000_rejected(self, db_session, staff, order):
        with pytest.raises(ValidationFailedError):
            bespoke_workflow.advance_status(db_session, staff, order.id, "QUOTED", note="x" * 2001)
        assert len(_log_rows(db_session, order.id)) == 1

    def test_missing_order(self, db_session, staff):
        with pytest.raises(NotFoundError):
            bespoke_workflow.advance_status(db_session, staff, 999, "QUOTED")

    def test_customer_unauthorized_before_lookup(self, db_session, customer):
        with pytest.raises(UnauthorizedError):
            bespoke_workflow.advance_status(db_session, customer, 999, "QUOTED")

    def test_unknown_role_unauthorized(self, db_session, order):
        with pytest.raises(UnauthorizedError):
            bespoke_workflow.advance_status(db_session, Actor(user_id=1, role="GUEST"), order.id, "QUOTED")

    @pytest.mark.parametrize("role", ["ADMIN", "SUPER_ADMIN"])
    def test_admin_tiers_may_advance(self, db_session, users, order, role):
        actor = Actor(user_id=users[role].id, role=role)
        assert bespoke_workflow.advance_status(db_session, actor, order.id, "QUOTED").status == "QUOTED"

    def test_failed_history_write_rolls_back_status(
        self, db_session, staff, linked_order, dispatcher, monkeypatch
    ):
        real_append = status_log.append
        events = []

        def append_then_fail(*args, **kwargs):
            real_append(*args, **kwargs)
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(status_log, "append", append_then_fail)
        monkeypatch.setattr(bespoke_workflow, "audit_log", lambda event, **kw: events.append(event))

        with pytest.raises(SQLAlchemyError):
            bespoke_workflow.advance_status(
                db_session, staff, linked_order.id, "DELIVERED", dispatcher=dispatcher
            )

        db_session.expire_all()
        stored = db_session.get(BespokeOrder, linked_order.id)
        assert stored.status == "INQUIRY"
        assert stored.actual_completion_date is None
        assert [r.new_status for r in _log_rows(db_session, linked_order.id)] == ["INQUIRY"]
        assert dispatcher.calls == []
        assert events == []


class TestAdvanceStatusNotifications:
    """Customer notification after a committed transition"""

    def test_linked_customer_is_notified(self, db_session, staff, users, linked_order, dispatcher):
        bespoke_workflow.advance_status(
            db_session, staff, linked_order.id, "FITTING", dispatcher=dispatcher
        )

        assert len(dispatcher.calls) == 1
        call = dispatcher.calls[0]
        assert call["user_id"] == users["CUSTOMER"].id
        assert call["title"] == "Bespoke Order BSP-1001 Update"
        assert "ready for fitting" in call["message"]
        assert call["category"] == "BESPOKE"
        assert call["link_url"] == "/account/orders"

    def test_walk_in_order_not_notified(self, db_session, staff, order, dispatcher):
        bespoke_workflow.advance_status(db_session, staff, order.id, "QUOTED", dispatcher=dispatcher)
        assert dispatcher.calls == []

    def test_noop_does_not_notify(self, db_session, staff, linked_order, dispatcher):
        with pytest.raises(NoOpTransitionError):
            bespoke_workflow.advance_status(db_session, staff, linked_order.id, "INQUIRY", dispatcher=dispatcher)
        assert dispatcher.calls == []

    def test_dispatcher_failure_does_not_undo_transition(self, db_session, staff, linked_order, failing_dispatcher):
        result = bespoke_workflow.advance_status(
            db_session, staff, linked_order.id, "CONFIRMED", dispatcher=failing_dispatcher
        )

        assert result.status == "CONFIRMED"
        assert _log_rows(db_session, linked_order.id)[-1].new_status == "CONFIRMED"

    def test_without_dispatcher(self, db_session, staff, linked_order):
        assert bespoke_workflow.advance_status(db_session, staff, linked_order.id, "QUOTED").status == "QUOTED"


class TestStatusOptions:

    def test_excludes_current_in_pipeline_order(self):
        options = bespoke_workflow.status_options("CONFIRMED")
        assert options == [
            BespokeOrderStatus.NEW,
            BespokeOrderStatus.INQUIRY,
            BespokeOrderStatus.QUOTED,
            BespokeOrderStatus.IN_PRODUCTION,
            BespokeOrderStatus.FITTING,
            BespokeOrderStatus.DELIVERED,
            BespokeOrderStatus.CANCELLED,
        ]

    def test_terminal_status_still_has_options(self):
        assert len(bespoke_workflow.status_options(BespokeOrderStatus.DELIVERED)) == 7


class TestUpdateOrder:
    """update_order: partial edits of descriptive fields"""

    def test_partial_update(self, db_session, staff, order):
        result = bespoke_workflow.update_order(
            db_session, staff, order.id, {"final_price": "480.00", "deposit_amount": "100.00", "deposit_paid": True}
        )
        assert result.final_price == Decimal("480.00")
        assert result.deposit_paid is True
        assert result.balance_due == Decimal("380.00")
        assert result.customer_name == "Amara Okafor"

    def test_blank_text_clears_field(self, db_session, staff, order):
        result = bespoke_workflow.update_order(db_session, staff, order.id, {"design_description": "  "})
        assert result.design_description is None

    def test_status_not_accepted(self, db_session, staff, order):
        with pytest.raises(ValidationFailedError):
            bespoke_workflow.update_order(db_session, staff, order.id, {"status": "DELIVERED"})
        assert db_session.get(BespokeOrder, order.id).status == "INQUIRY"

    def test_null_customer_name_rejected(self, db_session, staff, order):
        with pytest.raises(ValidationFailedError):
            bespoke_workflow.update_order(db_session, staff, order.id, {"customer_name": None})

    def test_update_does_not_touch_history(self, db_session, staff, order):
        bespoke_workflow.update_order(db_session, staff, order.id, {"internal_notes": "VIP"})
        assert len(_log_rows(db_session, order.id)) == 1

    def test_missing_order(self, db_session, staff):
        with pytest.raises(NotFoundError):
            bespoke_workflow.update_order(db_session, staff, 42, {"internal_notes": "x"})


class TestListOrders:

    @pytest.fixture
    def orders(self, db_session, staff, order_payload):
        created = []
        for name, phone in [("Amara Okafor", "+2348012345678"), ("Tunde Bello", "+2348098765432"), ("Zainab Musa", "+2348055555555")]:
            created.append(bespoke_workflow.create_order(
                db_session, staff, {**order_payload, "customer_name": name, "customer_phone": phone}
            ))
        bespoke_workflow.advance_status(db_session, staff, created[1].id, "QUOTED")
        return created

    def test_newest_first_with_counts(self, db_session, staff, orders):
        result, total, counts = bespoke_workflow.list_orders(db_session, staff)
        assert total == 3
        assert [o.order_number for o in result] == ["BSP-1003", "BSP-1002", "BSP-1001"]
        assert counts["INQUIRY"] == 2
        assert counts["QUOTED"] == 1
        assert counts["DELIVERED"] == 0

    def test_status_filter(self, db_session, staff, orders):
        result, total, counts = bespoke_workflow.list_orders(db_session, staff, status="QUOTED")
        assert total == 1
        assert result[0].customer_name == "Tunde Bello"
        # Counts ignore the filter
        assert counts["INQUIRY"] == 2

    def test_search_is_case_insensitive(self, db_session, staff, orders):
        result, total, _ = bespoke_workflow.list_orders(db_session, staff, search="zainab")
        assert total == 1
        assert result[0].order_number == "BSP-1003"

    def test_all_status_means_no_filter(self, db_session, staff, orders):
        result, total, _ = bespoke_workflow.list_orders(db_session, staff, status="ALL")
        assert total == 3
        assert len(result) == 3

    def test_assignee_filter(self, db_session, staff, users, orders):
        production_tasks.create_task(
            db_session, staff, orders[0].id,
            {"title": "Cut", "stage": "CUTTING", "assigned_to_id": users["STAFF"].id},
        )
        production_tasks.create_task(
            db_session, staff, orders[0].id,
            {"title": "Sew", "stage": "SEWING", "assigned_to_id": users["STAFF"].id},
        )
        production_tasks.create_task(
            db_session, staff, orders[2].id,
            {"title": "Bead", "stage": "BEADING", "assigned_to_id": users["ADMIN"].id},
        )

        result, total, counts = bespoke_workflow.list_orders(db_session, staff, assignee_id=users["STAFF"].id)

        assert total == 1
        assert [o.order_number for o in result] == ["BSP-1001"]
        assert counts["INQUIRY"] == 2

        _, total, _ = bespoke_workflow.list_orders(
            db_session, staff, status="QUOTED", assignee_id=users["STAFF"].id
        )
        assert total == 0

    def test_invalid_status_filter(self, db_session, staff, orders):
        with pytest.raises(ValidationFailedError):
            bespoke_workflow.list_orders(db_session, staff, status="LOST")

    def test_page_size_capped(self, db_session, staff, orders):
        result, total, _ = bespoke_workflow.list_orders(db_session, staff, limit=500)
        assert total == 3
        assert len(result) == 3

    def test_customer_cannot_list(self, db_session, customer):
        with pytest.raises(UnauthorizedError):
            bespoke_workflow.list_orders(db_session, customer)
