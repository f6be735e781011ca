"""Durable, publicly retrievable storage for ticket QR images."""

from typing import Optional

from repositories.s3_repo import S3Repository
from utils.logging_config import get_logger

logger = get_logger(__name__)

QR_CONTENT_TYPE = "image/png"


def ticket_image_key(order_id: str, token: str) -> str:
    """Object key for a ticket image, namespaced by order and token."""
    return f"tickets/{order_id}/{token}.png"


class TicketImageStore:
    """Upload QR images and resolve their public URLs."""

    def __init__(self, s3_repo: S3Repository, public_base_url: Optional[str] = None):
        self.s3_repo = s3_repo
        self.public_base_url = public_base_url

    def upload(self, order_id: str, token: str, content: bytes) -> str:
        """Store the image (overwriting any previous upload) and return its public URL."""
        key = ticket_image_key(order_id, token)
        self.s3_repo.upload_bytes(key, content, QR_CONTENT_TYPE)
        url = self.s3_repo.public_url(key, self.public_base_url)
        if not url:
            raise RuntimeError(f"No public URL for {key}")
        logger.debug("QR image uploaded", extra={"order_id": order_id, "key": key})
        return url
