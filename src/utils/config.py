"""
Runtime configuration for the fulfillment Lambdas.

Values come from the Lambda environment (set by the CDK constructs) with
defaults that keep local runs and tests working offline.
"""

from dataclasses import dataclass
import os
from typing import Optional


@dataclass
class FulfillmentConfig:
    """Settings consumed by the orchestrator and its adapters."""

    environment: str = "dev"
    aws_region: str = "eu-west-2"

    # Database
    database_url: Optional[str] = None
    db_secret_arn: Optional[str] = None

    # Ticket images
    tickets_bucket: str = "ticket-qr-codes"
    public_asset_base_url: Optional[str] = None
    qr_box_size: int = 10
    qr_border: int = 4

    # Email
    email_sender: str = "tickets@andiamo-events.tn"
    email_subject: str = "Order Confirmation - Your Digital Tickets Are Ready!"
    brand_name: str = "Andiamo Events"
    support_url: str = "https://andiamo-events.tn/contact"
    currency: str = "TND"

    # Per-ticket QR/upload fan-out
    max_concurrency: int = 4

    @classmethod
    def from_environment(cls) -> "FulfillmentConfig":
        """Load settings from environment variables."""
        defaults = cls()
        return cls(
            environment=os.environ.get("ENVIRONMENT", defaults.environment),
            aws_region=os.environ.get("AWS_REGION", defaults.aws_region),
            database_url=os.environ.get("DATABASE_URL") or None,
            db_secret_arn=os.environ.get("DB_SECRET_ARN") or None,
            tickets_bucket=os.environ.get("TICKETS_BUCKET", defaults.tickets_bucket),
            public_asset_base_url=os.environ.get("PUBLIC_ASSET_BASE_URL") or None,
            qr_box_size=int(os.environ.get("QR_BOX_SIZE", defaults.qr_box_size)),
            qr_border=int(os.environ.get("QR_BORDER", defaults.qr_border)),
            email_sender=os.environ.get("EMAIL_SENDER", defaults.email_sender),
            email_subject=os.environ.get("EMAIL_SUBJECT", defaults.email_subject),
            brand_name=os.environ.get("BRAND_NAME", defaults.brand_name),
            support_url=os.environ.get("SUPPORT_URL", defaults.support_url),
            currency=os.environ.get("CURRENCY", defaults.currency),
            max_concurrency=max(
                1,
                int(os.environ.get("FULFILLMENT_MAX_CONCURRENCY", defaults.max_concurrency)),
            ),
        )
