"""Denormalized gate-lookup record."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class RegistryEntry(BaseModel):
    """Flat copy of a ticket plus buyer/event/ambassador context, keyed by token."""

    secure_token: str
    ticket_id: str
    order_id: str
    source: str
    payment_method: str = "online"

    ambassador_id: Optional[str] = None
    ambassador_name: Optional[str] = None
    ambassador_phone: Optional[str] = None

    buyer_name: Optional[str] = None
    buyer_phone: Optional[str] = None
    buyer_email: Optional[str] = None
    buyer_city: Optional[str] = None
    buyer_ville: Optional[str] = None

    event_id: Optional[str] = None
    event_name: Optional[str] = None
    event_date: Optional[datetime] = None
    event_venue: Optional[str] = None
    event_city: Optional[str] = None

    order_pass_id: str
    pass_type: str = "Standard"
    pass_price: Decimal = Decimal("0")

    ticket_status: str = "VALID"
    qr_code_url: Optional[str] = None
    generated_at: datetime
