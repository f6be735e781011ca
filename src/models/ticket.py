"""Ticket models and the ticket status state machine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, Field


class TicketStatus(str, Enum):
    """
    Ticket lifecycle.

    PENDING -> GENERATED -> DELIVERED | FAILED, and PENDING -> FAILED when the
    QR code cannot be rendered or stored. DELIVERED and FAILED are terminal.
    """

    PENDING = "PENDING"
    GENERATED = "GENERATED"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"

    def allowed_targets(self) -> FrozenSet["TicketStatus"]:
        return _TRANSITIONS[self]

    def can_transition_to(self, target: "TicketStatus") -> bool:
        return target in _TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]


_TRANSITIONS = {
    TicketStatus.PENDING: frozenset({TicketStatus.GENERATED, TicketStatus.FAILED}),
    TicketStatus.GENERATED: frozenset({TicketStatus.DELIVERED, TicketStatus.FAILED}),
    TicketStatus.DELIVERED: frozenset(),
    TicketStatus.FAILED: frozenset(),
}


def sources_for(target: TicketStatus) -> List[TicketStatus]:
    """Statuses from which ``target`` may be reached."""
    return [status for status, targets in _TRANSITIONS.items() if target in targets]


class EmailDeliveryStatus(str, Enum):
    """Outcome of the confirmation email, stored on tickets and delivery logs."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    PENDING_RETRY = "pending_retry"


class Ticket(BaseModel):
    """One unit of admission."""

    id: str
    order_id: str
    order_pass_id: str
    secure_token: str
    qr_code_url: Optional[str] = None
    status: TicketStatus = TicketStatus.PENDING
    email_delivery_status: Optional[EmailDeliveryStatus] = None
    generated_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TicketOutcome(BaseModel):
    """Result of generating and storing the QR code for a single ticket."""

    ticket: Ticket
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class TicketGenerationResult(BaseModel):
    """What a fulfillment run reports back to its trigger."""

    success: bool
    tickets: List[Ticket] = Field(default_factory=list)
    email_sent: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None
