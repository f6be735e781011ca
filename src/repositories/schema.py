"""
Table definitions shared by the repositories.

Declared with SQLAlchemy Core so the same schema runs on PostgreSQL (RDS) and on
SQLite in the unit tests. Identifiers are stored as strings.
"""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)

metadata = MetaData()

events = Table(
    "events",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255)),
    Column("date", DateTime(timezone=True)),
    Column("venue", String(255)),
    Column("city", String(120)),
)

ambassadors = Table(
    "ambassadors",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("full_name", String(255)),
    Column("phone", String(40)),
)

orders = Table(
    "orders",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("source", String(40), nullable=False),
    Column("status", String(40), nullable=False),
    Column("payment_method", String(40)),
    Column("user_name", String(255)),
    Column("user_phone", String(40)),
    Column("user_email", String(255)),
    Column("city", String(120)),
    Column("ville", String(120)),
    Column("total_price", Numeric(10, 2), nullable=False, default=0),
    Column("event_id", String(36), ForeignKey("events.id")),
    Column("ambassador_id", String(36), ForeignKey("ambassadors.id")),
    Column("completed_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

order_passes = Table(
    "order_passes",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("order_id", String(36), ForeignKey("orders.id"), nullable=False, index=True),
    Column("pass_type", String(120), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("price", Numeric(10, 2), nullable=False, default=0),
)

tickets = Table(
    "tickets",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("order_id", String(36), ForeignKey("orders.id"), nullable=False, index=True),
    Column("order_pass_id", String(36), ForeignKey("order_passes.id"), nullable=False),
    Column("secure_token", String(64), nullable=False, unique=True),
    Column("qr_code_url", Text),
    Column("status", String(20), nullable=False),
    Column("email_delivery_status", String(20)),
    Column("generated_at", DateTime(timezone=True)),
    Column("delivered_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

# One row per order, inserted in the same transaction as the ticket batch.
fulfillment_locks = Table(
    "fulfillment_locks",
    metadata,
    Column("order_id", String(36), primary_key=True),
    Column("claimed_at", DateTime(timezone=True), nullable=False),
)

qr_tickets = Table(
    "qr_tickets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("secure_token", String(64), nullable=False, unique=True),
    Column("ticket_id", String(36), nullable=False),
    Column("order_id", String(36), nullable=False, index=True),
    Column("source", String(40)),
    Column("payment_method", String(40)),
    Column("ambassador_id", String(36)),
    Column("ambassador_name", String(255)),
    Column("ambassador_phone", String(40)),
    Column("buyer_name", String(255)),
    Column("buyer_phone", String(40)),
    Column("buyer_email", String(255)),
    Column("buyer_city", String(120)),
    Column("buyer_ville", String(120)),
    Column("event_id", String(36)),
    Column("event_name", String(255)),
    Column("event_date", DateTime(timezone=True)),
    Column("event_venue", String(255)),
    Column("event_city", String(120)),
    Column("order_pass_id", String(36)),
    Column("pass_type", String(120)),
    Column("pass_price", Numeric(10, 2)),
    Column("ticket_status", String(20), nullable=False),
    Column("qr_code_url", Text),
    Column("generated_at", DateTime(timezone=True)),
)

email_delivery_logs = Table(
    "email_delivery_logs",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("order_id", String(36), nullable=False, index=True),
    Column("email_type", String(40), nullable=False),
    Column("recipient_email", String(255), nullable=False),
    Column("recipient_name", String(255)),
    Column("subject", String(255), nullable=False),
    Column("status", String(20), nullable=False),
    Column("error_message", Text),
    Column("sent_at", DateTime(timezone=True)),
    Column("retry_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


def create_all(engine) -> None:
    """Create any missing tables (local runs and tests)."""
    metadata.create_all(engine)
