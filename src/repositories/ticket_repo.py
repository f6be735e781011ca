"""Ticket persistence with guarded status transitions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from models.order import OrderPass
from models.ticket import EmailDeliveryStatus, Ticket, TicketStatus, sources_for
from repositories import schema
from repositories.postgres_repo import PostgresRepository
from utils.error_handling import InvalidTicketTransition, NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class FulfillmentLockConflict(Exception):
    """Another invocation already claimed ticket creation for the order."""

    def __init__(self, order_id: str):
        super().__init__(f"Fulfillment already claimed for order {order_id}")
        self.order_id = order_id


class TicketRepository(PostgresRepository):
    """Create tickets and move them through the status state machine."""

    def list_for_order(self, order_id: str) -> List[Ticket]:
        t = schema.tickets
        rows = self.fetch_all(
            select(t).where(t.c.order_id == order_id).order_by(t.c.created_at, t.c.id)
        )
        return [Ticket.model_validate(r) for r in rows]

    def get(self, ticket_id: str) -> Optional[Ticket]:
        t = schema.tickets
        row = self.fetch_one(select(t).where(t.c.id == ticket_id))
        return Ticket.model_validate(row) if row else None

    def get_many(self, ticket_ids: Iterable[str]) -> List[Ticket]:
        ids = list(ticket_ids)
        if not ids:
            return []
        t = schema.tickets
        rows = self.fetch_all(select(t).where(t.c.id.in_(ids)))
        by_id = {r["id"]: Ticket.model_validate(r) for r in rows}
        return [by_id[i] for i in ids if i in by_id]

    def create_batch(
        self,
        order_id: str,
        passes: List[OrderPass],
        token_factory: Callable[[], str],
    ) -> List[Ticket]:
        """
        Claim the order and insert one PENDING ticket per unit of quantity.

        The lock row and every ticket row commit together or not at all.
        Raises FulfillmentLockConflict when the order was already claimed.
        """
        now = datetime.now(timezone.utc)
        rows = [
            {
                "id": str(uuid.uuid4()),
                "order_id": order_id,
                "order_pass_id": p.id,
                "secure_token": token_factory(),
                "qr_code_url": None,
                "status": TicketStatus.PENDING.value,
                "email_delivery_status": None,
                "generated_at": None,
                "delivered_at": None,
                "created_at": now,
            }
            for p in passes
            for _ in range(p.quantity)
        ]

        with self.engine.begin() as conn:
            try:
                conn.execute(
                    insert(schema.fulfillment_locks).values(order_id=order_id, claimed_at=now)
                )
            except IntegrityError as exc:
                raise FulfillmentLockConflict(order_id) from exc
            if rows:
                conn.execute(insert(schema.tickets), rows)

        logger.info("Tickets created", extra={"order_id": order_id, "count": len(rows)})
        return [Ticket.model_validate(r) for r in rows]

    def mark_generated(self, ticket_id: str, qr_code_url: str) -> Ticket:
        return self._transition(
            ticket_id,
            TicketStatus.GENERATED,
            qr_code_url=qr_code_url,
            generated_at=datetime.now(timezone.utc),
        )

    def mark_failed(self, ticket_id: str) -> Ticket:
        return self._transition(ticket_id, TicketStatus.FAILED)

    def finalize_delivery(self, ticket_ids: List[str], email_sent: bool) -> List[Ticket]:
        """Fan the email outcome out to every GENERATED ticket of the run."""
        if not ticket_ids:
            return []
        target = TicketStatus.DELIVERED if email_sent else TicketStatus.FAILED
        email_status = EmailDeliveryStatus.SENT if email_sent else EmailDeliveryStatus.FAILED
        t = schema.tickets
        stmt = (
            update(t)
            .where(t.c.id.in_(ticket_ids), t.c.status == TicketStatus.GENERATED.value)
            .values(
                status=target.value,
                email_delivery_status=email_status.value,
                delivered_at=datetime.now(timezone.utc) if email_sent else None,
            )
        )
        with self.engine.begin() as conn:
            updated = conn.execute(stmt).rowcount
        if updated != len(ticket_ids):
            logger.warning(
                "Some tickets were not in GENERATED state at delivery fan-out",
                extra={"expected": len(ticket_ids), "updated": updated},
            )
        return self.get_many(ticket_ids)

    def _transition(self, ticket_id: str, target: TicketStatus, **values) -> Ticket:
        t = schema.tickets
        allowed = [s.value for s in sources_for(target)]
        stmt = (
            update(t)
            .where(t.c.id == ticket_id, t.c.status.in_(allowed))
            .values(status=target.value, **values)
        )
        with self.engine.begin() as conn:
            updated = conn.execute(stmt).rowcount

        if not updated:
            current = self.get(ticket_id)
            if current is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            raise InvalidTicketTransition(ticket_id, current.status.value, target.value)

        return self.get(ticket_id)
