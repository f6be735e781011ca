"""
Manual administrative triggers for ticket generation.

POST /orders/{order_id}/tickets runs fulfillment for an order that is already
paid/completed. POST /orders/{order_id}/approve marks a pending order as
completed (cash on delivery) or paid (online) and then runs the same idempotent
fulfillment the change-feed monitor uses.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Dict

from models.ticket import TicketGenerationResult
from utils.error_handling import (
    AppError,
    FulfillmentError,
    NotFoundError,
    ValidationError,
    to_response,
)
from utils.logging_config import get_logger
from utils.validators import ensure_present

logger = get_logger(__name__)


def _get_orchestrator():
    """Shared orchestrator, imported lazily to avoid import-time DB connections."""
    from services.fulfillment_service import get_orchestrator

    return get_orchestrator()


def _error_status_codes() -> Dict[str, int]:
    return {cls.code: cls.default_status for cls in FulfillmentError.__subclasses__()}


def _order_id_from(event) -> str:
    order_id = (event.get("pathParameters") or {}).get("order_id")
    if not order_id:
        # /orders/{order_id}/<action>
        path = event.get("requestContext", {}).get("http", {}).get("path", "")
        parts = [p for p in path.split("/") if p]
        if len(parts) >= 3 and parts[0] == "orders":
            order_id = parts[1]
    try:
        ensure_present(order_id, "order_id")
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return order_id


def _server_error(exc: Exception, correlation_id: str) -> Dict:
    return {
        "statusCode": 500,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(
            {
                "message": "Ticket generation failed",
                "error": str(exc),
                "correlation_id": correlation_id,
            }
        ),
    }


def _result_response(result: TicketGenerationResult, correlation_id: str) -> Dict:
    status = 200
    if not result.success:
        status = _error_status_codes().get(result.error_code, 400)
    body = result.model_dump(mode="json")
    body["correlation_id"] = correlation_id
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def lambda_handler(event, context):
    """Handle POST /orders/{order_id}/tickets."""
    correlation_id = str(uuid.uuid4())
    try:
        order_id = _order_id_from(event)
        result = asyncio.run(_get_orchestrator().generate_tickets_for_order(order_id))
        logger.info(
            "Manual ticket generation complete",
            extra={
                "correlation_id": correlation_id,
                "order_id": order_id,
                "success": result.success,
                "error_code": result.error_code,
            },
        )
        return _result_response(result, correlation_id)
    except AppError as exc:
        logger.warning(
            "Manual ticket generation rejected",
            extra={"correlation_id": correlation_id, "error": str(exc)},
        )
        return to_response(exc)
    except Exception as exc:
        logger.exception("Ticket generation request failed", extra={"correlation_id": correlation_id})
        return _server_error(exc, correlation_id)


def approve_handler(event, context):
    """Handle POST /orders/{order_id}/approve."""
    correlation_id = str(uuid.uuid4())
    try:
        order_id = _order_id_from(event)
        orchestrator = _get_orchestrator()
        order = orchestrator.orders.approve_order(order_id)
        if order is None:
            raise NotFoundError(f"Order not found: {order_id}")

        result = asyncio.run(orchestrator.generate_tickets_for_order(order_id))
        logger.info(
            "Order approved and fulfilled",
            extra={
                "correlation_id": correlation_id,
                "order_id": order_id,
                "status": order.status,
                "success": result.success,
            },
        )
        return _result_response(result, correlation_id)
    except AppError as exc:
        logger.warning(
            "Order approval rejected",
            extra={"correlation_id": correlation_id, "error": str(exc)},
        )
        return to_response(exc)
    except Exception as exc:
        logger.exception("Ticket generation request failed", extra={"correlation_id": correlation_id})
        return _server_error(exc, correlation_id)
