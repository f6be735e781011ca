"""Order models read by the fulfillment pipeline."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class OrderSource(str, Enum):
    """Channel through which the order was placed."""

    PLATFORM_COD = "platform_cod"
    PLATFORM_ONLINE = "platform_online"
    AMBASSADOR_MANUAL = "ambassador_manual"


class OrderStatus(str, Enum):
    """Order lifecycle states owned by the order-management subsystem."""

    PENDING_ONLINE = "PENDING_ONLINE"
    REDIRECTED = "REDIRECTED"
    PENDING_CASH = "PENDING_CASH"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REMOVED_BY_ADMIN = "REMOVED_BY_ADMIN"


# Source -> the status that confirms payment (online) or cash delivery (COD).
FULFILLABLE_STATUS = {
    OrderSource.PLATFORM_COD.value: OrderStatus.COMPLETED.value,
    OrderSource.PLATFORM_ONLINE.value: OrderStatus.PAID.value,
}


def is_fulfillable(source: Optional[str], status: Optional[str]) -> bool:
    """Return True when the source/status pair makes the order eligible for tickets."""
    if source is None or status is None:
        return False
    source = getattr(source, "value", source)
    status = getattr(status, "value", status)
    return FULFILLABLE_STATUS.get(source) == status


class EventInfo(BaseModel):
    """Event display data joined onto the order."""

    id: str
    name: Optional[str] = None
    date: Optional[datetime] = None
    venue: Optional[str] = None
    city: Optional[str] = None


class AmbassadorInfo(BaseModel):
    """Ambassador display data joined onto COD orders."""

    id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None


class OrderPass(BaseModel):
    """One purchased pass type (order line item)."""

    id: str
    order_id: str
    pass_type: str
    quantity: int = Field(ge=0)
    price: Decimal = Decimal("0")


class Order(BaseModel):
    """Customer purchase with the joined data needed for fulfillment."""

    id: str
    source: str
    status: str
    payment_method: Optional[str] = None
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    user_email: Optional[str] = None
    city: Optional[str] = None
    ville: Optional[str] = None
    total_price: Decimal = Decimal("0")
    event_id: Optional[str] = None
    ambassador_id: Optional[str] = None
    event: Optional[EventInfo] = None
    ambassador: Optional[AmbassadorInfo] = None
    passes: List[OrderPass] = Field(default_factory=list)

    @property
    def is_fulfillable(self) -> bool:
        return is_fulfillable(self.source, self.status)

    @property
    def total_quantity(self) -> int:
        """Number of tickets a successful run must produce."""
        return sum(p.quantity for p in self.passes)
