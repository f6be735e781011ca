"""
Amazon SES transport for confirmation emails.

Transport errors are reported in the result rather than raised so the caller
can record the outcome and fan it out to the tickets.
"""

from __future__ import annotations

from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from models.delivery import EmailSendResult
from utils.logging_config import get_logger

logger = get_logger(__name__)


class SesEmailDispatcher:
    """Send HTML email through SES."""

    def __init__(self, sender: str, region: Optional[str] = None, client=None):
        self.sender = sender
        self.client = client or boto3.client(
            "ses",
            region_name=region,
            config=Config(connect_timeout=5, read_timeout=15, retries={"max_attempts": 2}),
        )

    def send(self, to: str, subject: str, html: str) -> EmailSendResult:
        try:
            resp = self.client.send_email(
                Source=self.sender,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Html": {"Data": html, "Charset": "UTF-8"}},
                },
            )
        except ClientError as exc:
            message = exc.response.get("Error", {}).get("Message") or str(exc)
            logger.error("SES send failed", extra={"error": message})
            return EmailSendResult(success=False, error=message)
        except BotoCoreError as exc:
            logger.error("SES transport error", extra={"error": str(exc)})
            return EmailSendResult(success=False, error=str(exc))

        message_id = resp.get("MessageId")
        logger.info("Confirmation email sent", extra={"message_id": message_id})
        return EmailSendResult(success=True, message_id=message_id)
