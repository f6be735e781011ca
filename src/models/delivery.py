"""Email delivery audit models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from models.ticket import EmailDeliveryStatus


class DeliveryLogEntry(BaseModel):
    """Immutable record of one confirmation email attempt."""

    id: str
    order_id: str
    email_type: str = "ticket_delivery"
    recipient_email: str
    recipient_name: Optional[str] = None
    subject: str
    status: EmailDeliveryStatus
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    retry_count: int = 0
    created_at: datetime


class EmailSendResult(BaseModel):
    """Transport outcome returned by the email dispatcher."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class ComposedEmail(BaseModel):
    """Rendered confirmation document."""

    subject: str
    html: str
