"""Short-lived in-process cache in front of URL signing."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from .errors import SigningError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 5 * 60
DEFAULT_SIGN_TTL_SECONDS = 24 * 60 * 60


class URLSigner(Protocol):
    def sign(self, key: str, ttl_seconds: int) -> str: ...


@dataclass(frozen=True)
class SignedURLCacheEntry:
    object_key: str
    url: str
    issued_at: float


class SignedURLCache:
    """Reuses a signed URL for ``cache_ttl`` seconds after it was issued.

    Signatures are requested with the much longer ``sign_ttl``. The mapping is
    shared between request threads without a lock: two threads missing on the
    same key both sign, and either URL is valid.
    """

    def __init__(
        self,
        signer: URLSigner,
        *,
        cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        sign_ttl: int = DEFAULT_SIGN_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._signer = signer
        self._cache_ttl = cache_ttl
        self._sign_ttl = sign_ttl
        self._clock = clock
        self._entries: Dict[str, SignedURLCacheEntry] = {}

    def peek(self, object_key: str) -> Optional[SignedURLCacheEntry]:
        entry = self._entries.get(object_key)
        if entry is not None and self._clock() - entry.issued_at < self._cache_ttl:
            return entry
        return None

    def resolve(self, object_key: str) -> str:
        entry = self.peek(object_key)
        if entry is not None:
            return entry.url

        try:
            url = self._signer.sign(object_key, self._sign_ttl)
        except Exception as exc:
            logger.exception("Signing failed for key %s", object_key)
            raise SigningError(f"failed to sign URL for '{object_key}'") from exc

        self._entries[object_key] = SignedURLCacheEntry(
            object_key=object_key,
            url=url,
            issued_at=self._clock(),
        )
        return url
