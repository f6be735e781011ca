from datetime import datetime, timezone
from decimal import Decimal

from models.order import AmbassadorInfo, EventInfo, Order, OrderPass
from models.ticket import Ticket, TicketStatus
from repositories.registry_repo import RegistryRepository
from services.registry_service import RegistryPopulator, build_registry_entry

GENERATED_AT = datetime(2026, 8, 1, 12, 0, tzinfo=timezone.utc)


def _order(**overrides):
    data = dict(
        id="order-1",
        source="platform_cod",
        status="COMPLETED",
        payment_method="ambassador_cash",
        user_name="Lina Trabelsi",
        user_phone="+21655000000",
        user_email="buyer@example.com",
        city="Tunis",
        ville="La Marsa",
        total_price=Decimal("120.00"),
        event_id="event-1",
        ambassador_id="amb-1",
        event=EventInfo(id="event-1", name="Summer Closing Party", venue="Beach Club", city="Hammamet"),
        ambassador=AmbassadorInfo(id="amb-1", full_name="Sami Ben Ali", phone="+21620000000"),
    )
    data.update(overrides)
    return Order(**data)


def _ticket(token="token-1"):
    return Ticket(
        id=f"ticket-{token}",
        order_id="order-1",
        order_pass_id="pass-vip",
        secure_token=token,
        qr_code_url=f"https://cdn.example.com/{token}.png",
        status=TicketStatus.GENERATED,
        generated_at=GENERATED_AT,
    )


PASSES = [OrderPass(id="pass-vip", order_id="order-1", pass_type="VIP", quantity=1, price=Decimal("120.00"))]


def test_entry_flattens_buyer_event_ambassador_and_pass():
    entry = build_registry_entry(_ticket(), _order(), PASSES)

    assert entry.secure_token == "token-1"
    assert entry.ticket_id == "ticket-token-1"
    assert entry.payment_method == "ambassador_cash"
    assert entry.ambassador_name == "Sami Ben Ali"
    assert entry.buyer_ville == "La Marsa"
    assert entry.event_name == "Summer Closing Party"
    assert entry.pass_type == "VIP"
    assert entry.pass_price == Decimal("120.00")
    assert entry.ticket_status == "VALID"
    assert entry.generated_at == GENERATED_AT


def test_entry_defaults_when_context_missing():
    order = _order(payment_method=None, ambassador=None, ambassador_id=None, event=None, event_id=None)

    entry = build_registry_entry(_ticket(), order, [])

    assert entry.payment_method == "online"
    assert entry.ambassador_name is None
    assert entry.event_name is None
    assert entry.pass_type == "Standard"
    assert entry.pass_price == Decimal("0")


def test_populate_writes_row(engine):
    repo = RegistryRepository(engine)
    populator = RegistryPopulator(repo)

    assert populator.populate(_ticket(), _order(), PASSES) is True

    row = repo.get_by_token("token-1")
    assert row["ticket_id"] == "ticket-token-1"
    assert row["buyer_email"] == "buyer@example.com"
    assert list(populator.failures) == []


def test_populate_swallows_duplicate_token(engine):
    populator = RegistryPopulator(RegistryRepository(engine))
    populator.populate(_ticket(), _order(), PASSES)

    assert populator.populate(_ticket(), _order(), PASSES) is False

    assert len(populator.failures) == 1
    assert populator.failures[0].secure_token == "token-1"


def test_populate_swallows_any_sink_error():
    class Unreachable:
        def insert(self, entry):
            raise ConnectionError("connection refused")

    populator = RegistryPopulator(Unreachable())

    assert populator.populate(_ticket("a"), _order(), PASSES) is False
    assert populator.populate(_ticket("b"), _order(), PASSES) is False
    assert [f.error for f in populator.failures] == ["connection refused"] * 2


def test_failure_history_is_bounded():
    class Unreachable:
        def insert(self, entry):
            raise ConnectionError(f"refused {entry.secure_token}")

    populator = RegistryPopulator(Unreachable(), max_failures=3)

    for token in ("a", "b", "c", "d", "e"):
        populator.populate(_ticket(token), _order(), PASSES)

    assert [f.secure_token for f in populator.failures] == ["c", "d", "e"]
