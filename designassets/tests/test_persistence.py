"""Tests for :mod:`designassets.persistence`."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from designassets.persistence import AssetPersistence, object_key_for
from designassets.schemas import PersistStatus
from designassets.signedurlcache import SignedURLCache
from designassets.storageservice.objectstorage import ObjectStorage

SOURCE_URL = "https://provider.example.com/generated/fox.png"
FIXED_NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


class BrokenMetadataStore:
    def upsert(self, record):
        raise RuntimeError("database is locked")

    def get_by_id(self, asset_id):
        return None


@pytest.fixture
def public_storage(fake_s3) -> ObjectStorage:
    return ObjectStorage(bucket="designs", public_domain="images.example.com", client=fake_s3)


def _persistence(storage_service, http_client, object_storage=None, signed_urls=None) -> AssetPersistence:
    return AssetPersistence(storage_service, http_client, object_storage, signed_urls, clock=lambda: FIXED_NOW)


def test_object_key_is_derived_from_id() -> None:
    assert object_key_for("temp-123") == "temp-images/temp-123.png"


def test_persist_uploads_and_records_public_url(storage_service, http_client, upstream, fake_s3, public_storage) -> None:
    upstream.add(SOURCE_URL, content=b"fox-bytes", content_type="image/png")
    persistence = _persistence(storage_service, http_client, public_storage)

    outcome = persistence.persist("temp-1", SOURCE_URL)

    assert outcome.success is True
    assert outcome.degraded is False
    assert outcome.status is PersistStatus.persisted
    assert outcome.canonical_url == "https://images.example.com/temp-images/temp-1.png"
    assert fake_s3.objects["temp-images/temp-1.png"]["body"] == b"fox-bytes"

    record = storage_service.get_by_id("temp-1")
    assert record.canonical_url == outcome.canonical_url
    assert record.original_url == SOURCE_URL
    assert record.created_at == FIXED_NOW
    assert record.degraded is False


def test_persist_records_signing_pointer_without_public_domain(
    storage_service, http_client, upstream, fake_s3, object_storage, clock
) -> None:
    upstream.add(SOURCE_URL)
    signed_urls = SignedURLCache(object_storage, cache_ttl=300, sign_ttl=86400, clock=clock)
    persistence = _persistence(storage_service, http_client, object_storage, signed_urls)

    outcome = persistence.persist("temp-1", SOURCE_URL)

    assert outcome.status is PersistStatus.persisted
    assert outcome.canonical_url == "/r2-public?key=temp-images/temp-1.png"
    assert "X-Amz-Expires" not in storage_service.get_by_id("temp-1").canonical_url
    assert fake_s3.sign_calls == [("temp-images/temp-1.png", 86400)]


def test_fetch_failure_degrades_to_original_url(storage_service, http_client, upstream, fake_s3, public_storage) -> None:
    upstream.add(SOURCE_URL, status=403, content=b"expired", content_type="text/plain")
    persistence = _persistence(storage_service, http_client, public_storage)

    outcome = persistence.persist("temp-1", SOURCE_URL)

    assert outcome.success is True
    assert outcome.degraded is True
    assert outcome.status is PersistStatus.degraded
    assert outcome.canonical_url == SOURCE_URL
    assert fake_s3.objects == {}
    record = storage_service.get_by_id("temp-1")
    assert record.canonical_url == SOURCE_URL
    assert record.degraded is True


def test_network_error_degrades_to_original_url(storage_service, http_client, upstream, public_storage) -> None:
    upstream.break_url(SOURCE_URL)

    outcome = _persistence(storage_service, http_client, public_storage).persist("temp-1", SOURCE_URL)

    assert outcome.status is PersistStatus.degraded
    assert storage_service.get_by_id("temp-1").canonical_url == SOURCE_URL


def test_upload_failure_degrades_to_original_url(storage_service, http_client, upstream, fake_s3, public_storage) -> None:
    upstream.add(SOURCE_URL)
    fake_s3.fail_uploads = True

    outcome = _persistence(storage_service, http_client, public_storage).persist("temp-1", SOURCE_URL)

    assert outcome.success is True
    assert outcome.degraded is True
    assert storage_service.get_by_id("temp-1").canonical_url == SOURCE_URL


def test_signing_failure_degrades_to_original_url(
    storage_service, http_client, upstream, fake_s3, object_storage, clock
) -> None:
    upstream.add(SOURCE_URL)
    fake_s3.fail_signing = True
    signed_urls = SignedURLCache(object_storage, clock=clock)

    outcome = _persistence(storage_service, http_client, object_storage, signed_urls).persist("temp-1", SOURCE_URL)

    assert outcome.status is PersistStatus.degraded
    assert outcome.canonical_url == SOURCE_URL


def test_missing_object_storage_degrades_without_fetching(storage_service, http_client, upstream) -> None:
    upstream.add(SOURCE_URL)

    outcome = _persistence(storage_service, http_client).persist("temp-1", SOURCE_URL)

    assert outcome.status is PersistStatus.degraded
    assert upstream.requests == []
    assert storage_service.get_by_id("temp-1").canonical_url == SOURCE_URL


def test_metadata_failure_reports_not_recorded(http_client, upstream) -> None:
    outcome = _persistence(BrokenMetadataStore(), http_client).persist("temp-1", SOURCE_URL)

    assert outcome.success is False
    assert outcome.degraded is True
    assert outcome.status is PersistStatus.not_recorded
    assert outcome.canonical_url == SOURCE_URL


def test_metadata_failure_after_upload_reports_not_recorded(http_client, upstream, public_storage) -> None:
    upstream.add(SOURCE_URL)

    outcome = _persistence(BrokenMetadataStore(), http_client, public_storage).persist("temp-1", SOURCE_URL)

    assert outcome.success is False
    assert outcome.degraded is False
    assert outcome.status is PersistStatus.not_recorded


def test_persisting_same_id_twice_keeps_one_record(storage_service, http_client, upstream, public_storage) -> None:
    upstream.add(SOURCE_URL)
    persistence = _persistence(storage_service, http_client, public_storage)

    persistence.persist("temp-1", SOURCE_URL)
    upstream.break_url(SOURCE_URL)
    second = persistence.persist("temp-1", SOURCE_URL)

    assert storage_service.count_records("temp-1") == 1
    assert persistence.lookup("temp-1").canonical_url == second.canonical_url == SOURCE_URL


def test_lookup_returns_none_for_unknown_id(storage_service, http_client) -> None:
    assert _persistence(storage_service, http_client).lookup("temp-missing") is None
