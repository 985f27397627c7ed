"""Resolves opaque image identifiers to image bytes."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Pattern, Union

import httpx

from .errors import ProxyUpstreamError, SigningError
from .persistence import AssetPersistence
from .schemas import ProxyResult
from .signedurlcache import SignedURLCache
from .utils import fetch_image, pointer_object_key, url_host

logger = logging.getLogger(__name__)

DEFAULT_ID_PATTERN = r"^(temp|asset)-[A-Za-z0-9_-]+$"


class ImageProxyResolver:
    """Looks up the record for an identifier and relays its bytes.

    Identifiers outside the temporary-asset namespace are never looked up.
    Records that point at a private object are signed through ``signed_urls``
    at fetch time.
    """

    def __init__(
        self,
        persistence: AssetPersistence,
        http_client: httpx.Client,
        *,
        user_agent: str,
        id_pattern: Union[str, Pattern[str]] = DEFAULT_ID_PATTERN,
        allowed_hosts: Iterable[str] = (),
        signed_urls: Optional[SignedURLCache] = None,
    ) -> None:
        self._persistence = persistence
        self._http = http_client
        self._headers = {"User-Agent": user_agent}
        self._id_pattern = re.compile(id_pattern) if isinstance(id_pattern, str) else id_pattern
        self._allowed_hosts = frozenset(host.lower() for host in allowed_hosts)
        self._signed_urls = signed_urls

    def is_recognised(self, asset_id: str) -> bool:
        return bool(self._id_pattern.match(asset_id))

    def resolve(self, asset_id: str) -> ProxyResult:
        if not self.is_recognised(asset_id):
            return ProxyResult(status=404)

        record = self._persistence.lookup(asset_id)
        if record is None:
            logger.info("No record for image %s", asset_id)
            return ProxyResult(status=404)

        object_key = pointer_object_key(record.canonical_url)
        if object_key is None:
            return self._relay(record.canonical_url)

        if self._signed_urls is None:
            logger.error("Image %s is stored privately but object storage is not configured", asset_id)
            return ProxyResult(status=502)
        try:
            url = self._signed_urls.resolve(object_key)
        except SigningError:
            return ProxyResult(status=502)
        return self._relay(url)

    def is_allowed_host(self, url: str) -> bool:
        return url_host(url) in self._allowed_hosts

    def relay_external(self, url: str) -> Optional[ProxyResult]:
        """Relay a provider URL; ``None`` means the host is not allowed."""
        if not self.is_allowed_host(url):
            return None
        return self._relay(url)

    def _relay(self, url: str) -> ProxyResult:
        try:
            image = fetch_image(self._http, url, headers=self._headers)
        except ProxyUpstreamError as exc:
            logger.warning("Upstream fetch failed (%s): %s", exc.status, url)
            return ProxyResult(status=exc.status)
        return ProxyResult(status=200, content=image.content, content_type=image.content_type)
