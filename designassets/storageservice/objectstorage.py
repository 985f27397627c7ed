"""S3-compatible object storage (Cloudflare R2) access.

Keeps boto3 details out of the persistence and delivery code.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config

from ..config import Settings

logger = logging.getLogger(__name__)


class ObjectStorage:
    def __init__(
        self,
        *,
        bucket: str,
        public_domain: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self._bucket = bucket
        self._public_domain = (public_domain or "").strip().rstrip("/") or None
        self._s3 = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStorage":
        client = boto3.client(
            "s3",
            endpoint_url=settings.r2_endpoint,
            region_name=settings.r2_region,
            aws_access_key_id=settings.r2_access_key_id.get_secret_value(),
            aws_secret_access_key=settings.r2_secret_access_key.get_secret_value(),
            config=Config(
                signature_version="s3v4",
                connect_timeout=settings.http_timeout_seconds,
                read_timeout=settings.http_timeout_seconds,
                retries={"total_max_attempts": 1},
            ),
        )
        return cls(
            bucket=settings.r2_bucket_name,
            public_domain=settings.r2_public_domain,
            client=client,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    def public_url(self, key: str) -> Optional[str]:
        if not self._public_domain:
            return None
        domain = self._public_domain
        if not domain.startswith(("http://", "https://")):
            domain = f"https://{domain}"
        return f"{domain}/{key.lstrip('/')}"

    def upload(self, key: str, data: bytes, content_type: str = "image/png") -> Optional[str]:
        """Store ``data`` under ``key``; return its public URL when one exists."""
        self._s3.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            CacheControl="public, max-age=31536000",
        )
        logger.info("Uploaded object (bucket=%s key=%s bytes=%s)", self._bucket, key, len(data))
        return self.public_url(key)

    def sign(self, key: str, ttl_seconds: int) -> str:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        url = self._s3.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self._bucket, "Key": key},
            ExpiresIn=ttl_seconds,
        )
        logger.info("Generated presigned URL (bucket=%s key=%s ttl=%s)", self._bucket, key, ttl_seconds)
        return url
