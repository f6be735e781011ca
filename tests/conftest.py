"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from handlers import main` to work when running
tests, simulating the Lambda environment where code is deployed from the src/
directory. Also provides a SQLite-backed schema and in-memory fakes for the
S3/SES/QR collaborators so the fulfillment pipeline runs fully offline.
"""

import os
import sys
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing.

    The src/ directory is added to simulate Lambda's import behavior,
    where Code.from_asset("src") makes src/ the root of the package.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    # Add repo root first (for imports like infrastructure.*)
    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    # Add src/ for Lambda-style imports (from handlers import ...)
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

# Lambda environment variables used by handlers
os.environ.setdefault("TICKETS_BUCKET", "test-ticket-images")
os.environ.setdefault("EMAIL_SENDER", "tickets@example.com")

# Create a default boto3 session so resources/clients do not error during import.
boto3.setup_default_session(region_name="eu-west-2")


from sqlalchemy import create_engine, insert  # noqa: E402

from models.delivery import EmailSendResult  # noqa: E402
from repositories import schema  # noqa: E402
from repositories.delivery_log_repo import DeliveryLogRepository  # noqa: E402
from repositories.order_repo import OrderRepository  # noqa: E402
from repositories.registry_repo import RegistryRepository  # noqa: E402
from repositories.ticket_repo import TicketRepository  # noqa: E402
from services.delivery_logger import DeliveryLogger  # noqa: E402
from services.fulfillment_service import FulfillmentOrchestrator  # noqa: E402
from services.registry_service import RegistryPopulator  # noqa: E402


class FakeQrRenderer:
    """Returns a stub PNG; raises for tokens listed in ``fail_tokens``."""

    def __init__(self):
        self.fail_tokens = set()
        self.fail_all = False
        self.rendered = []

    def render(self, token: str) -> bytes:
        if self.fail_all or token in self.fail_tokens:
            raise RuntimeError(f"QR render failed for {token}")
        self.rendered.append(token)
        return b"\x89PNG-" + token.encode()


class FakeImageStore:
    """Records uploads in memory and returns deterministic URLs."""

    def __init__(self):
        self.uploads = {}
        self.fail_on_call = None
        self.calls = 0

    def upload(self, order_id: str, token: str, content: bytes) -> str:
        self.calls += 1
        if self.fail_on_call is not None and self.calls == self.fail_on_call:
            raise ConnectionError("S3 upload timed out")
        key = f"tickets/{order_id}/{token}.png"
        self.uploads[key] = content
        return f"https://cdn.example.com/{key}"


class FakeEmailDispatcher:
    """Captures sent emails; ``fail_with`` makes every send fail."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send(self, to: str, subject: str, html: str) -> EmailSendResult:
        self.sent.append({"to": to, "subject": subject, "html": html})
        if self.fail_with:
            return EmailSendResult(success=False, error=self.fail_with)
        return EmailSendResult(success=True, message_id=f"msg-{len(self.sent)}")


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite engine with the full schema."""
    db_engine = create_engine(
        f"sqlite:///{tmp_path / 'fulfillment.db'}",
        connect_args={"timeout": 30, "check_same_thread": False},
    )
    schema.create_all(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def seed_order(engine):
    """Insert an order (with event, ambassador and passes) and return its id."""

    def _seed(
        passes=(("Standard", 2, "50.00"),),
        source="platform_online",
        status="PAID",
        user_email="buyer@example.com",
        with_ambassador=False,
        with_event=True,
    ) -> str:
        order_id = str(uuid.uuid4())
        event_id = str(uuid.uuid4()) if with_event else None
        ambassador_id = str(uuid.uuid4()) if with_ambassador else None
        total = sum(Decimal(price) * qty for _, qty, price in passes)
        with engine.begin() as conn:
            if event_id:
                conn.execute(
                    insert(schema.events).values(
                        id=event_id,
                        name="Summer Closing Party",
                        date=datetime(2026, 8, 14, 22, 0, tzinfo=timezone.utc),
                        venue="Beach Club",
                        city="Hammamet",
                    )
                )
            if ambassador_id:
                conn.execute(
                    insert(schema.ambassadors).values(
                        id=ambassador_id, full_name="Sami Ben Ali", phone="+21620000000"
                    )
                )
            conn.execute(
                insert(schema.orders).values(
                    id=order_id,
                    source=source,
                    status=status,
                    payment_method="ambassador_cash" if source == "platform_cod" else "online",
                    user_name="Lina Trabelsi",
                    user_phone="+21655000000",
                    user_email=user_email,
                    city="Tunis",
                    ville="La Marsa",
                    total_price=total,
                    event_id=event_id,
                    ambassador_id=ambassador_id,
                )
            )
            for pass_type, quantity, price in passes:
                conn.execute(
                    insert(schema.order_passes).values(
                        id=str(uuid.uuid4()),
                        order_id=order_id,
                        pass_type=pass_type,
                        quantity=quantity,
                        price=Decimal(price),
                    )
                )
        return order_id

    return _seed


@pytest.fixture
def qr_renderer():
    return FakeQrRenderer()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def email_dispatcher():
    return FakeEmailDispatcher()


@pytest.fixture
def build_orchestrator(engine, qr_renderer, image_store, email_dispatcher):
    """Factory for an orchestrator on the SQLite engine with fake collaborators."""

    def _build(registry_repository=None, tickets=None, **overrides) -> FulfillmentOrchestrator:
        kwargs = dict(
            orders=OrderRepository(engine),
            tickets=tickets or TicketRepository(engine),
            registry=RegistryPopulator(registry_repository or RegistryRepository(engine)),
            delivery_logger=DeliveryLogger(DeliveryLogRepository(engine)),
            qr_renderer=qr_renderer,
            image_store=image_store,
            email_dispatcher=email_dispatcher,
            max_concurrency=4,
        )
        kwargs.update(overrides)
        return FulfillmentOrchestrator(**kwargs)

    return _build
