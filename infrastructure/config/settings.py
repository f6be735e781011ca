"""
Environment-specific configuration settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Email (SES identity must be verified in the account)
    email_sender: str = "tickets@andiamo-events.tn"
    brand_name: str = "Andiamo Events"
    support_url: str = "https://andiamo-events.tn/contact"

    # Database Configuration (Cost-optimized)
    db_instance_class: str = "t3.micro"  # Free tier eligible
    db_allocated_storage: int = 20  # Minimum GB

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30
    monitor_timeout_seconds: int = 120  # one batch may fulfill several orders

    # Fulfillment
    fulfillment_max_concurrency: int = 4
    order_changes_batch_size: int = 5
    order_changes_max_receive_count: int = 5

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        email_sender = os.environ.get("EMAIL_SENDER", cls.email_sender)

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                email_sender=email_sender,
                db_instance_class="t3.small",  # Upgrade for prod
                db_allocated_storage=50,
                lambda_memory_mb=1024,
                lambda_timeout_seconds=60,
                fulfillment_max_concurrency=8,
            )

        return cls(environment=env, email_sender=email_sender)
