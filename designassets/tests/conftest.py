"""Shared fixtures for the design asset tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Tuple

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from designassets.config import Settings
from designassets.storageservice.objectstorage import ObjectStorage
from designassets.storageservice.storageservice import StorageService


class FakeS3:
    """Records boto3 calls made by :class:`ObjectStorage`."""

    def __init__(self) -> None:
        self.objects: Dict[str, dict] = {}
        self.sign_calls: List[Tuple[str, int]] = []
        self.fail_uploads = False
        self.fail_signing = False

    def put_object(self, *, Bucket, Key, Body, ContentType, CacheControl):
        if self.fail_uploads:
            raise RuntimeError("bucket unavailable")
        self.objects[Key] = {"bucket": Bucket, "body": Body, "content_type": ContentType}
        return {"ETag": '"stub"'}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        if self.fail_signing:
            raise RuntimeError("signing unavailable")
        self.sign_calls.append((Params["Key"], ExpiresIn))
        return f"https://signed.example.com/{Params['Bucket']}/{Params['Key']}?X-Amz-Expires={ExpiresIn}&n={len(self.sign_calls)}"


class FakeUpstream:
    """URL -> canned response map served through :class:`httpx.MockTransport`."""

    def __init__(self) -> None:
        self.responses: Dict[str, Tuple[int, bytes, str]] = {}
        self.broken: set[str] = set()
        self.requests: List[httpx.Request] = []

    def add(self, url: str, content: bytes = b"\x89PNG-bytes", content_type: str = "image/png", status: int = 200) -> None:
        self.responses[url] = (status, content, content_type)

    def break_url(self, url: str) -> None:
        self.broken.add(url)

    def requested_urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.broken:
            raise httpx.ConnectError("connection refused", request=request)
        status, content, content_type = self.responses.get(url, (404, b"missing", "text/plain"))
        return httpx.Response(status, content=content, headers={"content-type": content_type})


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(_env_file=None, database_path=str(tmp_path / "designassets.db"))  # type: ignore[call-arg]


@pytest.fixture
def storage_service(tmp_path) -> StorageService:
    service = StorageService(str(tmp_path / "storage.db"))
    try:
        yield service
    finally:
        service.close()


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def object_storage(fake_s3) -> ObjectStorage:
    return ObjectStorage(bucket="designs", public_domain=None, client=fake_s3)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def http_client(upstream) -> httpx.Client:
    client = httpx.Client(transport=httpx.MockTransport(upstream.handler))
    try:
        yield client
    finally:
        client.close()


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
