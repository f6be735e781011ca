"""Append-only email delivery audit log."""

from typing import List

from sqlalchemy import insert, select

from models.delivery import DeliveryLogEntry
from repositories import schema
from repositories.postgres_repo import PostgresRepository


class DeliveryLogRepository(PostgresRepository):
    """Insert and read delivery log rows. Rows are never updated."""

    def append(self, entry: DeliveryLogEntry) -> None:
        values = entry.model_dump()
        values["status"] = entry.status.value
        self.execute(insert(schema.email_delivery_logs).values(**values))

    def list_for_order(self, order_id: str) -> List[DeliveryLogEntry]:
        logs = schema.email_delivery_logs
        rows = self.fetch_all(
            select(logs).where(logs.c.order_id == order_id).order_by(logs.c.created_at)
        )
        return [DeliveryLogEntry.model_validate(r) for r in rows]
