"""Order reads (plus the admin approve transition) for fulfillment."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update

from models.order import (
    FULFILLABLE_STATUS,
    AmbassadorInfo,
    EventInfo,
    Order,
    OrderPass,
    OrderSource,
    OrderStatus,
)
from repositories import schema
from repositories.postgres_repo import PostgresRepository
from utils.error_handling import OrderNotFulfillable
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Statuses an admin may approve from, per source.
APPROVABLE_STATUSES = {
    OrderSource.PLATFORM_COD.value: {OrderStatus.PENDING_CASH.value},
    OrderSource.PLATFORM_ONLINE.value: {
        OrderStatus.PENDING_ONLINE.value,
        OrderStatus.REDIRECTED.value,
    },
}


class OrderRepository(PostgresRepository):
    """Load orders with their passes and joined display data."""

    def get_order_with_passes(self, order_id: str) -> Optional[Order]:
        o, e, a = schema.orders, schema.events, schema.ambassadors
        query = (
            select(
                o,
                e.c.name.label("event_name"),
                e.c.date.label("event_date"),
                e.c.venue.label("event_venue"),
                e.c.city.label("event_city"),
                a.c.full_name.label("ambassador_full_name"),
                a.c.phone.label("ambassador_phone"),
            )
            .select_from(o.outerjoin(e, o.c.event_id == e.c.id).outerjoin(a, o.c.ambassador_id == a.c.id))
            .where(o.c.id == order_id)
        )
        row = self.fetch_one(query)
        if not row:
            return None

        event = None
        if row.get("event_id"):
            event = EventInfo(
                id=row["event_id"],
                name=row.get("event_name"),
                date=row.get("event_date"),
                venue=row.get("event_venue"),
                city=row.get("event_city"),
            )
        ambassador = None
        if row.get("ambassador_id"):
            ambassador = AmbassadorInfo(
                id=row["ambassador_id"],
                full_name=row.get("ambassador_full_name"),
                phone=row.get("ambassador_phone"),
            )

        return Order(
            id=row["id"],
            source=row["source"],
            status=row["status"],
            payment_method=row.get("payment_method"),
            user_name=row.get("user_name"),
            user_phone=row.get("user_phone"),
            user_email=row.get("user_email"),
            city=row.get("city"),
            ville=row.get("ville"),
            total_price=row.get("total_price") or 0,
            event_id=row.get("event_id"),
            ambassador_id=row.get("ambassador_id"),
            event=event,
            ambassador=ambassador,
            passes=self.list_passes(order_id),
        )

    def list_passes(self, order_id: str) -> List[OrderPass]:
        p = schema.order_passes
        rows = self.fetch_all(select(p).where(p.c.order_id == order_id).order_by(p.c.id))
        return [OrderPass.model_validate(r) for r in rows]

    def approve_order(self, order_id: str) -> Optional[Order]:
        """
        Move a pending order to the status that makes it fulfillable.

        Returns None for a missing order and the order unchanged when it is
        already fulfillable. Raises OrderNotFulfillable for cancelled/removed
        orders and sources with no fulfillable status.
        """
        order = self.get_order_with_passes(order_id)
        if order is None or order.is_fulfillable:
            return order

        target = FULFILLABLE_STATUS.get(order.source)
        if target is None or order.status not in APPROVABLE_STATUSES.get(order.source, set()):
            raise OrderNotFulfillable(
                f"Order cannot be approved. Current status: {order.status}, Source: {order.source}"
            )

        now = datetime.now(timezone.utc)
        values = {"status": target, "updated_at": now}
        if target == OrderStatus.COMPLETED.value:
            values["completed_at"] = now
        o = schema.orders
        with self.engine.begin() as conn:
            result = conn.execute(
                update(o).where(o.c.id == order_id, o.c.status == order.status).values(**values)
            )
            changed = result.rowcount
        if not changed:
            logger.info("Order changed concurrently during approve", extra={"order_id": order_id})
        else:
            logger.info(
                "Order approved",
                extra={"order_id": order_id, "from_status": order.status, "to_status": target},
            )
        return self.get_order_with_passes(order_id)
