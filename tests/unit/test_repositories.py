"""
Repository tests on a SQLite schema.

Run with: pytest tests/unit/test_repositories.py -v
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from models.delivery import DeliveryLogEntry
from models.order import OrderPass
from models.ticket import EmailDeliveryStatus, TicketStatus
from repositories import schema
from repositories.delivery_log_repo import DeliveryLogRepository
from repositories.order_repo import OrderRepository
from repositories.ticket_repo import FulfillmentLockConflict, TicketRepository
from services.token_service import generate_secure_token
from utils.error_handling import InvalidTicketTransition, NotFoundError, OrderNotFulfillable


def _create(engine, order_id, passes):
    return TicketRepository(engine).create_batch(order_id, passes, generate_secure_token)


class TestOrderRepository:
    def test_loads_order_with_event_ambassador_and_passes(self, engine, seed_order):
        order_id = seed_order(
            passes=(("Standard", 2, "50.00"), ("VIP", 1, "120.00")),
            source="platform_cod",
            status="COMPLETED",
            with_ambassador=True,
        )

        order = OrderRepository(engine).get_order_with_passes(order_id)

        assert order.id == order_id
        assert order.is_fulfillable is True
        assert order.total_price == Decimal("220.00")
        assert order.total_quantity == 3
        assert order.event.name == "Summer Closing Party"
        assert order.event.venue == "Beach Club"
        assert order.ambassador.full_name == "Sami Ben Ali"
        assert {p.pass_type for p in order.passes} == {"Standard", "VIP"}

    def test_order_without_event_or_ambassador(self, engine, seed_order):
        order_id = seed_order(with_event=False)

        order = OrderRepository(engine).get_order_with_passes(order_id)

        assert order.event is None
        assert order.ambassador is None

    def test_missing_order_returns_none(self, engine):
        assert OrderRepository(engine).get_order_with_passes(str(uuid.uuid4())) is None

    @pytest.mark.parametrize(
        "source,status,expected",
        [
            ("platform_cod", "PENDING_CASH", "COMPLETED"),
            ("platform_online", "PENDING_ONLINE", "PAID"),
            ("platform_online", "REDIRECTED", "PAID"),
        ],
    )
    def test_approve_moves_order_to_fulfillable_status(
        self, engine, seed_order, source, status, expected
    ):
        order_id = seed_order(source=source, status=status)

        order = OrderRepository(engine).approve_order(order_id)

        assert order.status == expected
        assert order.is_fulfillable is True

    def test_approve_sets_completed_at_for_cod(self, engine, seed_order):
        order_id = seed_order(source="platform_cod", status="PENDING_CASH")

        OrderRepository(engine).approve_order(order_id)

        with engine.connect() as conn:
            completed_at = conn.execute(
                select(schema.orders.c.completed_at).where(schema.orders.c.id == order_id)
            ).scalar_one()
        assert completed_at is not None

    def test_approve_already_fulfillable_is_noop(self, engine, seed_order):
        order_id = seed_order(status="PAID")

        order = OrderRepository(engine).approve_order(order_id)

        assert order.status == "PAID"

    @pytest.mark.parametrize(
        "source,status",
        [
            ("platform_online", "CANCELLED"),
            ("platform_cod", "REMOVED_BY_ADMIN"),
            ("ambassador_manual", "PENDING_CASH"),
        ],
    )
    def test_approve_rejects_unapprovable_orders(self, engine, seed_order, source, status):
        order_id = seed_order(source=source, status=status)

        with pytest.raises(OrderNotFulfillable):
            OrderRepository(engine).approve_order(order_id)

    def test_approve_missing_order_returns_none(self, engine):
        assert OrderRepository(engine).approve_order(str(uuid.uuid4())) is None


class TestTicketRepository:
    def test_create_batch_inserts_one_pending_ticket_per_unit(self, engine, seed_order):
        order_id = seed_order(passes=(("Standard", 2, "50.00"), ("VIP", 3, "90.00")))
        passes = OrderRepository(engine).list_passes(order_id)

        created = _create(engine, order_id, passes)

        assert len(created) == 5
        stored = TicketRepository(engine).list_for_order(order_id)
        assert {t.id for t in stored} == {t.id for t in created}
        assert {t.status for t in stored} == {TicketStatus.PENDING}
        assert all(t.qr_code_url is None for t in stored)

    def test_second_claim_raises_lock_conflict(self, engine, seed_order):
        order_id = seed_order()
        passes = OrderRepository(engine).list_passes(order_id)
        _create(engine, order_id, passes)

        with pytest.raises(FulfillmentLockConflict):
            _create(engine, order_id, passes)

        assert len(TicketRepository(engine).list_for_order(order_id)) == 2

    def test_pending_to_generated_to_delivered(self, engine, seed_order):
        order_id = seed_order(passes=(("Standard", 1, "10.00"),))
        repo = TicketRepository(engine)
        ticket = _create(engine, order_id, OrderRepository(engine).list_passes(order_id))[0]

        generated = repo.mark_generated(ticket.id, "https://cdn.example.com/a.png")
        assert generated.status == TicketStatus.GENERATED
        assert generated.qr_code_url == "https://cdn.example.com/a.png"
        assert generated.generated_at is not None

        delivered = repo.finalize_delivery([ticket.id], email_sent=True)
        assert delivered[0].status == TicketStatus.DELIVERED
        assert delivered[0].email_delivery_status == EmailDeliveryStatus.SENT
        assert delivered[0].delivered_at is not None

    def test_finalize_skips_tickets_not_generated(self, engine, seed_order):
        order_id = seed_order(passes=(("Standard", 2, "10.00"),))
        repo = TicketRepository(engine)
        first, second = _create(engine, order_id, OrderRepository(engine).list_passes(order_id))
        repo.mark_generated(first.id, "https://cdn.example.com/1.png")
        repo.mark_failed(second.id)

        result = repo.finalize_delivery([first.id, second.id], email_sent=False)

        statuses = {t.id: (t.status, t.email_delivery_status) for t in result}
        assert statuses[first.id] == (TicketStatus.FAILED, EmailDeliveryStatus.FAILED)
        assert statuses[second.id] == (TicketStatus.FAILED, None)

    def test_terminal_tickets_cannot_move(self, engine, seed_order):
        order_id = seed_order(passes=(("Standard", 1, "10.00"),))
        repo = TicketRepository(engine)
        ticket = _create(engine, order_id, OrderRepository(engine).list_passes(order_id))[0]
        repo.mark_failed(ticket.id)

        with pytest.raises(InvalidTicketTransition) as exc_info:
            repo.mark_generated(ticket.id, "https://cdn.example.com/late.png")

        assert exc_info.value.current == "FAILED"
        assert exc_info.value.target == "GENERATED"
        assert repo.get(ticket.id).qr_code_url is None

    def test_unknown_ticket_transition(self, engine):
        with pytest.raises(NotFoundError):
            TicketRepository(engine).mark_failed(str(uuid.uuid4()))

    def test_get_many_preserves_requested_order(self, engine, seed_order):
        order_id = seed_order(passes=(("Standard", 3, "10.00"),))
        created = _create(engine, order_id, OrderRepository(engine).list_passes(order_id))
        ids = [t.id for t in reversed(created)]

        assert [t.id for t in TicketRepository(engine).get_many(ids)] == ids

    def test_create_batch_with_no_units_still_claims_order(self, engine, seed_order):
        order_id = seed_order()
        empty = [OrderPass(id=str(uuid.uuid4()), order_id=order_id, pass_type="Standard", quantity=0)]

        assert _create(engine, order_id, empty) == []
        with pytest.raises(FulfillmentLockConflict):
            _create(engine, order_id, empty)


class TestDeliveryLogRepository:
    def test_append_and_list(self, engine):
        repo = DeliveryLogRepository(engine)
        now = datetime.now(timezone.utc)
        repo.append(
            DeliveryLogEntry(
                id=str(uuid.uuid4()),
                order_id="order-1",
                recipient_email="buyer@example.com",
                recipient_name="Lina",
                subject="Your tickets",
                status=EmailDeliveryStatus.FAILED,
                error_message="throttled",
                created_at=now,
            )
        )

        logs = repo.list_for_order("order-1")

        assert len(logs) == 1
        assert logs[0].status == EmailDeliveryStatus.FAILED
        assert logs[0].email_type == "ticket_delivery"
        assert logs[0].error_message == "throttled"
        assert repo.list_for_order("order-2") == []
