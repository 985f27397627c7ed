"""Best-effort durable storage of generated images."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

import httpx

from .schemas import PersistedAssetRecord, PersistOutcome, PersistStatus
from .signedurlcache import SignedURLCache
from .storageservice.objectstorage import ObjectStorage
from .utils import fetch_image, signed_delivery_pointer

logger = logging.getLogger(__name__)

TEMP_IMAGE_PREFIX = "temp-images"


class MetadataStore(Protocol):
    def upsert(self, record: PersistedAssetRecord) -> None: ...

    def get_by_id(self, asset_id: str) -> Optional[PersistedAssetRecord]: ...


def object_key_for(asset_id: str) -> str:
    return f"{TEMP_IMAGE_PREFIX}/{asset_id}.png"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssetPersistence:
    """Copies generated images into object storage and records where they live.

    Storage problems never surface to the caller. When the image cannot be
    copied, the record points at the original provider URL instead and the
    outcome is flagged as degraded. Only a failing metadata write yields
    ``success=False``.
    """

    def __init__(
        self,
        metadata: MetadataStore,
        http_client: httpx.Client,
        object_storage: Optional[ObjectStorage] = None,
        signed_urls: Optional[SignedURLCache] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._metadata = metadata
        self._http = http_client
        self._storage = object_storage
        self._signed_urls = signed_urls
        self._clock = clock

    def persist(self, asset_id: str, source_url: str) -> PersistOutcome:
        degraded = False
        try:
            canonical_url = self._store_durably(asset_id, source_url)
        except Exception as exc:
            logger.warning("Storage upload failed for %s, falling back to original URL: %s", asset_id, exc)
            canonical_url = source_url
            degraded = True

        record = PersistedAssetRecord(
            id=asset_id,
            canonical_url=canonical_url,
            original_url=source_url,
            created_at=self._clock(),
            degraded=degraded,
        )
        try:
            self._metadata.upsert(record)
        except Exception:
            logger.exception("Metadata write failed for %s", asset_id)
            return PersistOutcome(
                id=asset_id,
                success=False,
                canonical_url=canonical_url,
                degraded=degraded,
                status=PersistStatus.not_recorded,
            )

        status = PersistStatus.degraded if degraded else PersistStatus.persisted
        logger.info("Saved image %s (%s)", asset_id, status.value)
        return PersistOutcome(
            id=asset_id,
            success=True,
            canonical_url=canonical_url,
            degraded=degraded,
            status=status,
        )

    def lookup(self, asset_id: str) -> Optional[PersistedAssetRecord]:
        return self._metadata.get_by_id(asset_id)

    def _store_durably(self, asset_id: str, source_url: str) -> str:
        if self._storage is None:
            raise RuntimeError("object storage is not configured")

        image = fetch_image(self._http, source_url)
        key = object_key_for(asset_id)
        url = self._storage.upload(key, image.content, image.content_type)
        if url:
            return url
        if self._signed_urls is None:
            raise RuntimeError(f"no delivery URL available for '{key}'")
        # Records hold a stable pointer; delivery signs it again on each cache miss.
        self._signed_urls.resolve(key)
        return signed_delivery_pointer(key)
