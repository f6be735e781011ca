"""Pydantic models for the fulfillment pipeline."""

from models.delivery import ComposedEmail, DeliveryLogEntry, EmailSendResult  # noqa: F401
from models.notification import OrderChangeNotification  # noqa: F401
from models.order import (  # noqa: F401
    AmbassadorInfo,
    EventInfo,
    Order,
    OrderPass,
    OrderSource,
    OrderStatus,
    is_fulfillable,
)
from models.registry import RegistryEntry  # noqa: F401
from models.ticket import (  # noqa: F401
    EmailDeliveryStatus,
    Ticket,
    TicketGenerationResult,
    TicketOutcome,
    TicketStatus,
)
