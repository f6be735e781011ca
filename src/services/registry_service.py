"""
Best-effort population of the gate-lookup registry.

The registry is a read-optimized copy used by gate validation; the tickets table
stays the source of truth. Nothing here may fail a fulfillment run: every error
is logged and kept in ``failures`` instead of being raised.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Deque, Sequence

from models.order import Order, OrderPass
from models.registry import RegistryEntry
from models.ticket import Ticket
from repositories.registry_repo import RegistryRepository
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Most recent dropped writes; older ones survive only in the logs.
MAX_TRACKED_FAILURES = 100


@dataclass
class RegistryFailure:
    """A registry write that was dropped."""

    secure_token: str
    ticket_id: str
    error: str


def build_registry_entry(ticket: Ticket, order: Order, passes: Sequence[OrderPass]) -> RegistryEntry:
    """Flatten ticket, buyer, event and ambassador fields into one row."""
    order_pass = next((p for p in passes if p.id == ticket.order_pass_id), None)
    event = order.event
    ambassador = order.ambassador

    return RegistryEntry(
        secure_token=ticket.secure_token,
        ticket_id=ticket.id,
        order_id=order.id,
        source=order.source,
        payment_method=order.payment_method or "online",
        ambassador_id=order.ambassador_id,
        ambassador_name=ambassador.full_name if ambassador else None,
        ambassador_phone=ambassador.phone if ambassador else None,
        buyer_name=order.user_name,
        buyer_phone=order.user_phone,
        buyer_email=order.user_email,
        buyer_city=order.city,
        buyer_ville=order.ville,
        event_id=order.event_id,
        event_name=event.name if event else None,
        event_date=event.date if event else None,
        event_venue=event.venue if event else None,
        event_city=event.city if event else None,
        order_pass_id=order_pass.id if order_pass else ticket.order_pass_id,
        pass_type=order_pass.pass_type if order_pass else "Standard",
        pass_price=order_pass.price if order_pass else Decimal("0"),
        qr_code_url=ticket.qr_code_url,
        generated_at=ticket.generated_at or datetime.now(timezone.utc),
    )


class RegistryPopulator:
    """Sink-only writer whose errors never reach the caller."""

    def __init__(self, repository: RegistryRepository, max_failures: int = MAX_TRACKED_FAILURES):
        self.repository = repository
        self.failures: Deque[RegistryFailure] = deque(maxlen=max_failures)

    def populate(self, ticket: Ticket, order: Order, passes: Sequence[OrderPass]) -> bool:
        """Insert the registry row for a generated ticket. Returns False if it was dropped."""
        try:
            entry = build_registry_entry(ticket, order, passes)
            self.repository.insert(entry)
        except Exception as exc:  # registry is never allowed to fail fulfillment
            self.failures.append(
                RegistryFailure(
                    secure_token=ticket.secure_token, ticket_id=ticket.id, error=str(exc)
                )
            )
            logger.warning(
                "QR registry insert failed",
                extra={
                    "order_id": order.id,
                    "ticket_id": ticket.id,
                    "secure_token": ticket.secure_token,
                    "error": str(exc),
                },
            )
            return False

        logger.info(
            "QR registry populated",
            extra={"order_id": order.id, "secure_token": ticket.secure_token},
        )
        return True
