"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=422)


class FulfillmentError(AppError):
    """
    Expected failure of a fulfillment run.

    ``code`` is the stable name reported to callers in the run result; the
    message carries the human-readable detail.
    """

    code = "FulfillmentError"
    default_status = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code or self.default_status)


class OrderNotFound(FulfillmentError):
    code = "OrderNotFound"
    default_status = 404


class OrderNotFulfillable(FulfillmentError):
    """Order source/status no longer signals payment or delivery confirmation."""

    code = "OrderNotFulfillable"
    default_status = 409


class MissingContact(FulfillmentError):
    code = "MissingContact"
    default_status = 422


class NoLineItems(FulfillmentError):
    code = "NoLineItems"
    default_status = 422


class TicketCreationFailed(FulfillmentError):
    """Ticket batch insert failed; nothing was persisted and the order may be retried."""

    code = "TicketCreationFailed"
    default_status = 500


class FulfillmentInProgress(FulfillmentError):
    """Another invocation holds the fulfillment lock for this order."""

    code = "FulfillmentInProgress"
    default_status = 409


class NoTicketsGenerated(FulfillmentError):
    code = "NoTicketsGenerated"
    default_status = 502


class InvalidTicketTransition(AppError):
    """Raised when a ticket status change is not allowed by the state machine."""

    def __init__(self, ticket_id: str, current: str, target: str):
        super().__init__(
            f"Ticket {ticket_id} cannot move from {current} to {target}",
            status_code=409,
        )
        self.ticket_id = ticket_id
        self.current = current
        self.target = target


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    body: Dict[str, Any] = {"message": str(error), "status": "error"}
    code = getattr(error, "code", None)
    if code:
        body["error_code"] = code
    return {
        "statusCode": error.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }
