"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

Admin triggers and the health check share one warm Lambda; the order change
feed has its own SQS-driven function (handlers.order_status_monitor).
"""

from typing import Callable, Dict, Tuple
import json

from . import health_check, ticket_generation


def _response(status: int, body: Dict) -> Dict:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event contains the HTTP method and path; we route it to the correct
    handler while keeping shared setup (logging, error handling) centralized.
    """
    method = event.get("requestContext", {}).get("http", {}).get("method", "")
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    route_key = f"{method.upper()} {path.rstrip('/')}"

    # (method + path prefix, path suffix, handler); more specific routes first.
    route_table: Tuple[Tuple[str, str, Callable], ...] = (
        ("GET /health", "", health_check.lambda_handler),
        ("POST /orders/", "/approve", ticket_generation.approve_handler),
        ("POST /orders/", "/tickets", ticket_generation.lambda_handler),
    )

    for prefix, suffix, handler in route_table:
        if route_key.startswith(prefix) and route_key.endswith(suffix):
            return handler(event, context)

    return _response(404, {"message": "Route not found", "route": route_key})
