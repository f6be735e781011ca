"""
Order-to-ticket fulfillment.

Once an order is paid (online) or completed (cash on delivery) this produces
one QR ticket per purchased unit, populates the gate registry, emails the buyer
and records the delivery outcome. Both the change-feed monitor and the admin
trigger call ``generate_tickets_for_order``; a second call for the same order
returns the tickets of the first without side effects.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from models.delivery import EmailSendResult
from models.order import Order, OrderPass
from models.ticket import (
    EmailDeliveryStatus,
    Ticket,
    TicketGenerationResult,
    TicketOutcome,
    TicketStatus,
)
from repositories.delivery_log_repo import DeliveryLogRepository
from repositories.order_repo import OrderRepository
from repositories.postgres_repo import get_db_engine
from repositories.registry_repo import RegistryRepository
from repositories.s3_repo import S3Repository
from repositories.ticket_repo import FulfillmentLockConflict, TicketRepository
from services.delivery_logger import DeliveryLogger
from services.email_composer import EmailBranding, compose_confirmation_email
from services.email_service import SesEmailDispatcher
from services.qr_service import QrCodeRenderer
from services.registry_service import RegistryPopulator
from services.storage_service import TicketImageStore
from services.token_service import generate_secure_token
from utils.config import FulfillmentConfig
from utils.error_handling import (
    FulfillmentError,
    FulfillmentInProgress,
    MissingContact,
    NoLineItems,
    NoTicketsGenerated,
    OrderNotFound,
    OrderNotFulfillable,
    TicketCreationFailed,
)
from utils.logging_config import get_logger
from utils.validators import is_present

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class FulfillmentOrchestrator:
    """Sequence ticket creation, QR storage, registry, email and delivery logging."""

    def __init__(
        self,
        orders: OrderRepository,
        tickets: TicketRepository,
        registry: RegistryPopulator,
        delivery_logger: DeliveryLogger,
        qr_renderer: QrCodeRenderer,
        image_store: TicketImageStore,
        email_dispatcher: SesEmailDispatcher,
        branding: EmailBranding = EmailBranding(),
        max_concurrency: int = 4,
        token_factory: Callable[[], str] = generate_secure_token,
    ) -> None:
        self.orders = orders
        self.tickets = tickets
        self.registry = registry
        self.delivery_logger = delivery_logger
        self.qr_renderer = qr_renderer
        self.image_store = image_store
        self.email_dispatcher = email_dispatcher
        self.branding = branding
        self.max_concurrency = max(1, max_concurrency)
        self.token_factory = token_factory

    @classmethod
    def from_config(cls, config: FulfillmentConfig) -> "FulfillmentOrchestrator":
        """Wire the production adapters (RDS, S3, SES) from runtime config."""
        engine = get_db_engine(config.database_url, config.db_secret_arn)
        if engine is None:
            raise RuntimeError("Database is not configured (DATABASE_URL or DB_SECRET_ARN)")

        return cls(
            orders=OrderRepository(engine),
            tickets=TicketRepository(engine),
            registry=RegistryPopulator(RegistryRepository(engine)),
            delivery_logger=DeliveryLogger(DeliveryLogRepository(engine)),
            qr_renderer=QrCodeRenderer(box_size=config.qr_box_size, border=config.qr_border),
            image_store=TicketImageStore(
                S3Repository(config.tickets_bucket, region=config.aws_region),
                public_base_url=config.public_asset_base_url,
            ),
            email_dispatcher=SesEmailDispatcher(config.email_sender, region=config.aws_region),
            branding=EmailBranding(
                brand_name=config.brand_name,
                support_url=config.support_url,
                currency=config.currency,
                subject=config.email_subject,
            ),
            max_concurrency=config.max_concurrency,
        )

    async def generate_tickets_for_order(self, order_id: str) -> TicketGenerationResult:
        """Fulfill an order. Expected failures are reported in the result, never raised."""
        logger.info("Ticket generation started", extra={"order_id": order_id})
        try:
            result = await self._fulfill(order_id)
        except FulfillmentError as exc:
            logger.warning(
                "Ticket generation aborted",
                extra={"order_id": order_id, "error_code": exc.code, "error": str(exc)},
            )
            return TicketGenerationResult(
                success=False, tickets=[], email_sent=False, error=str(exc), error_code=exc.code
            )

        logger.info(
            "Ticket generation finished",
            extra={
                "order_id": order_id,
                "tickets": len(result.tickets),
                "email_sent": result.email_sent,
                "error": result.error,
            },
        )
        return result

    async def _fulfill(self, order_id: str) -> TicketGenerationResult:
        order = await asyncio.to_thread(self.orders.get_order_with_passes, order_id)
        if order is None:
            raise OrderNotFound(f"Order not found: {order_id}")

        # The trigger may be stale; re-check against the row just loaded.
        if not order.is_fulfillable:
            raise OrderNotFulfillable(
                f"Order is not in a paid status. Current status: {order.status}, Source: {order.source}"
            )

        existing = await asyncio.to_thread(self.tickets.list_for_order, order_id)
        if existing:
            logger.info(
                "Tickets already exist, skipping generation",
                extra={"order_id": order_id, "count": len(existing)},
            )
            return TicketGenerationResult(success=True, tickets=existing, email_sent=False)

        if not is_present(order.user_email):
            raise MissingContact("Customer email is required to send confirmation email")

        passes = [p for p in order.passes if p.quantity > 0]
        if not passes:
            raise NoLineItems("No passes found for this order")

        try:
            created = await self._create_tickets(order_id, passes)
        except FulfillmentLockConflict:
            return await self._concurrent_run_result(order_id)

        outcomes = await self._bounded_map(
            lambda ticket: self._generate_qr(order_id, ticket), created
        )
        generated = [o.ticket for o in outcomes if o.succeeded]
        failed = [o for o in outcomes if not o.succeeded]
        if not generated:
            raise NoTicketsGenerated("Failed to generate QR codes for any tickets")

        await self._bounded_map(
            lambda ticket: asyncio.to_thread(self.registry.populate, ticket, order, passes),
            generated,
        )

        email_sent, email_error = await self._send_confirmation(order, generated, passes)

        delivered, finalize_error = await self._finalize(order_id, generated, email_sent)

        final_by_id = {t.id: t for t in delivered}
        final_by_id.update({o.ticket.id: o.ticket for o in failed})
        final = [final_by_id.get(t.id, t) for t in created]

        problems: List[str] = []
        if failed:
            problems.append(f"{len(failed)} of {len(created)} tickets failed QR generation")
        if not email_sent:
            problems.append(f"Email delivery failed: {email_error or 'unknown error'}")
        if finalize_error:
            problems.append(f"Ticket status update failed: {finalize_error}")

        return TicketGenerationResult(
            success=True,
            tickets=final,
            email_sent=email_sent,
            error="; ".join(problems) or None,
        )

    async def _create_tickets(self, order_id: str, passes: List[OrderPass]) -> List[Ticket]:
        """All-or-nothing batch insert. FulfillmentLockConflict passes through."""
        try:
            return await asyncio.to_thread(
                self.tickets.create_batch, order_id, passes, self.token_factory
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Ticket batch insert failed", extra={"order_id": order_id, "error": str(exc)}
            )
            raise TicketCreationFailed(f"Failed to create ticket: {exc}") from exc

    async def _concurrent_run_result(self, order_id: str) -> TicketGenerationResult:
        """Report the tickets of the run that won the fulfillment lock."""
        winner = await asyncio.to_thread(self.tickets.list_for_order, order_id)
        if not winner:
            raise FulfillmentInProgress(
                f"Ticket creation for order {order_id} is claimed by another run"
            )
        logger.info(
            "Concurrent fulfillment already created tickets",
            extra={"order_id": order_id, "count": len(winner)},
        )
        return TicketGenerationResult(success=True, tickets=winner, email_sent=False)

    async def _generate_qr(self, order_id: str, ticket: Ticket) -> TicketOutcome:
        """Render, upload and mark one ticket GENERATED; any error fails only this ticket."""
        try:
            png = await asyncio.to_thread(self.qr_renderer.render, ticket.secure_token)
            url = await asyncio.to_thread(
                self.image_store.upload, order_id, ticket.secure_token, png
            )
            updated = await asyncio.to_thread(self.tickets.mark_generated, ticket.id, url)
            return TicketOutcome(ticket=updated)
        except Exception as exc:
            logger.error(
                "QR generation failed for ticket",
                extra={"order_id": order_id, "ticket_id": ticket.id, "error": str(exc)},
            )
            return TicketOutcome(ticket=await self._mark_failed(ticket), error=str(exc))

    async def _mark_failed(self, ticket: Ticket) -> Ticket:
        try:
            return await asyncio.to_thread(self.tickets.mark_failed, ticket.id)
        except Exception as exc:
            logger.error(
                "Could not mark ticket FAILED",
                extra={"ticket_id": ticket.id, "error": str(exc)},
            )
            return ticket

    async def _send_confirmation(
        self, order: Order, generated: List[Ticket], passes: List[OrderPass]
    ) -> Tuple[bool, Optional[str]]:
        email = compose_confirmation_email(order, generated, passes, self.branding)
        try:
            result = await asyncio.to_thread(
                self.email_dispatcher.send, order.user_email, email.subject, email.html
            )
        except Exception as exc:
            logger.error(
                "Email dispatch raised", extra={"order_id": order.id, "error": str(exc)}
            )
            result = EmailSendResult(success=False, error=str(exc) or type(exc).__name__)
        status = EmailDeliveryStatus.SENT if result.success else EmailDeliveryStatus.FAILED
        try:
            await asyncio.to_thread(
                self.delivery_logger.record, order, email.subject, status, result.error
            )
        except Exception as exc:
            logger.error(
                "Error logging email delivery",
                extra={"order_id": order.id, "error": str(exc)},
            )
        return result.success, result.error

    async def _finalize(
        self, order_id: str, generated: List[Ticket], email_sent: bool
    ) -> Tuple[List[Ticket], Optional[str]]:
        """Fan the email outcome out to the generated tickets; a DB error is reported, not raised."""
        try:
            delivered = await asyncio.to_thread(
                self.tickets.finalize_delivery, [t.id for t in generated], email_sent
            )
        except SQLAlchemyError as exc:
            logger.error(
                "Final ticket status update failed",
                extra={"order_id": order_id, "email_sent": email_sent, "error": str(exc)},
            )
            return generated, str(exc)
        return delivered, None

    async def _bounded_map(
        self, func: Callable[[T], Awaitable[R]], items: Sequence[T]
    ) -> List[R]:
        """Run ``func`` over items with at most ``max_concurrency`` in flight, keeping order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(item: T) -> R:
            async with semaphore:
                return await func(item)

        return list(await asyncio.gather(*(run(item) for item in items)))


# Lazily built for Lambda reuse.
_orchestrator: Optional[FulfillmentOrchestrator] = None


def get_orchestrator() -> FulfillmentOrchestrator:
    """Get or create the orchestrator wired from the environment."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = FulfillmentOrchestrator.from_config(FulfillmentConfig.from_environment())
    return _orchestrator


async def generate_tickets_for_order(order_id: str) -> TicketGenerationResult:
    """Single entry point shared by the order monitor and admin triggers."""
    return await get_orchestrator().generate_tickets_for_order(order_id)
