"""
Order status monitor fed by the orders change stream (SQS).

Each SQS message carries one row change for the ``orders`` table. Changes that
put an order into a fulfillable state (COD + COMPLETED, online + PAID) trigger
ticket generation. Delivery is at-least-once; fulfillment is idempotent, so
redelivered or duplicated notifications are harmless. Messages whose processing
raised are returned as batch item failures so only they are retried.
"""

from __future__ import annotations

import asyncio
import json
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from models.notification import OrderChangeNotification
from models.ticket import TicketGenerationResult
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _get_orchestrator():
    """Shared orchestrator, imported lazily to avoid import-time DB connections."""
    from services.fulfillment_service import get_orchestrator

    return get_orchestrator()


def parse_notification(record: Dict) -> Optional[OrderChangeNotification]:
    """Parse one SQS record body; returns None for malformed payloads."""
    try:
        payload = json.loads(record.get("body") or "{}")
        return OrderChangeNotification.model_validate(payload)
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        logger.warning(
            "Dropping malformed order change notification",
            extra={"message_id": record.get("messageId"), "error": str(exc)},
        )
        return None


async def process_records(records: List[Dict]) -> Dict:
    """Trigger fulfillment once per fulfillable order in the batch."""
    message_ids_by_order: Dict[str, List[str]] = {}
    for record in records:
        notification = parse_notification(record)
        if notification is None or not notification.signals_fulfillment():
            continue
        order_id = notification.order_id
        if not order_id:
            continue
        message_ids_by_order.setdefault(order_id, []).append(record.get("messageId", ""))

    failures: List[Dict[str, str]] = []
    for order_id, message_ids in message_ids_by_order.items():
        try:
            result: TicketGenerationResult = await _get_orchestrator().generate_tickets_for_order(
                order_id
            )
        except Exception as exc:
            logger.exception(
                "Ticket generation crashed", extra={"order_id": order_id, "error": str(exc)}
            )
            failures.extend({"itemIdentifier": mid} for mid in message_ids if mid)
            continue

        logger.info(
            "Order change processed",
            extra={
                "order_id": order_id,
                "success": result.success,
                "tickets": len(result.tickets),
                "email_sent": result.email_sent,
                "error_code": result.error_code,
            },
        )

    return {"batchItemFailures": failures}


def lambda_handler(event, context):
    """Entry point for the SQS event source (partial batch responses enabled)."""
    records = event.get("Records", [])
    return asyncio.run(process_records(records))
