"""Change-feed payloads delivered to the order status monitor."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from models.order import is_fulfillable


class OrderChangeNotification(BaseModel):
    """One row change published by the database for the ``orders`` table."""

    table: str
    type: str = Field(description="INSERT|UPDATE|DELETE")
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None

    @property
    def order_id(self) -> Optional[str]:
        row = self.record or self.old_record or {}
        value = row.get("id")
        return str(value) if value is not None else None

    def signals_fulfillment(self) -> bool:
        """True when the new row of an order insert/update is in a fulfillable state."""
        if self.table != "orders" or self.type.upper() not in ("INSERT", "UPDATE"):
            return False
        if not self.record:
            return False
        return is_fulfillable(self.record.get("source"), self.record.get("status"))
