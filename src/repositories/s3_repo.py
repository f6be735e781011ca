"""S3 repository for ticket QR images."""

from typing import Optional

import boto3
from botocore.config import Config


class S3Repository:
    """Minimal helper around S3 for uploads and public URLs."""

    def __init__(self, bucket_name: str, region: Optional[str] = None, client=None):
        self.bucket_name = bucket_name
        self.region = region
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(connect_timeout=5, read_timeout=10, retries={"max_attempts": 3}),
        )

    def upload_bytes(
        self,
        key: str,
        content: bytes,
        content_type: str,
        cache_control: str = "public, max-age=31536000",
    ) -> None:
        """Upload binary content. Writing an existing key overwrites it."""
        self.client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=content,
            ContentType=content_type,
            CacheControl=cache_control,
        )

    def public_url(self, key: str, base_url: Optional[str] = None) -> str:
        """Public URL of an object, via a CDN/custom domain when configured."""
        if base_url:
            return f"{base_url.rstrip('/')}/{key}"
        if self.region:
            return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{self.bucket_name}.s3.amazonaws.com/{key}"
