"""Audit trail of confirmation email attempts."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from models.delivery import DeliveryLogEntry
from models.order import Order
from models.ticket import EmailDeliveryStatus
from repositories.delivery_log_repo import DeliveryLogRepository
from utils.logging_config import get_logger

logger = get_logger(__name__)


class DeliveryLogger:
    """Record exactly one entry per fulfillment email attempt."""

    def __init__(self, repository: DeliveryLogRepository):
        self.repository = repository

    def record(
        self,
        order: Order,
        subject: str,
        status: EmailDeliveryStatus,
        error: Optional[str] = None,
    ) -> DeliveryLogEntry:
        now = datetime.now(timezone.utc)
        entry = DeliveryLogEntry(
            id=str(uuid.uuid4()),
            order_id=order.id,
            recipient_email=order.user_email or "",
            recipient_name=order.user_name,
            subject=subject,
            status=status,
            error_message=error,
            sent_at=now if status == EmailDeliveryStatus.SENT else None,
            retry_count=1 if status == EmailDeliveryStatus.PENDING_RETRY else 0,
            created_at=now,
        )
        self.repository.append(entry)
        logger.info(
            "Email delivery logged",
            extra={"order_id": order.id, "status": status.value},
        )
        return entry
