"""Sink-only writes to the gate-lookup registry (qr_tickets)."""

from typing import Optional

from sqlalchemy import insert, select

from models.registry import RegistryEntry
from repositories import schema
from repositories.postgres_repo import PostgresRepository


class RegistryRepository(PostgresRepository):
    """Insert registry rows; reads exist for the gate path and tests."""

    def insert(self, entry: RegistryEntry) -> None:
        self.execute(insert(schema.qr_tickets).values(**entry.model_dump()))

    def get_by_token(self, secure_token: str) -> Optional[dict]:
        q = schema.qr_tickets
        return self.fetch_one(select(q).where(q.c.secure_token == secure_token))
