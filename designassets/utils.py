from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import parse_qs, unquote, urlencode, urlsplit

import httpx

from .errors import ProxyUpstreamError

DEFAULT_CONTENT_TYPE = "image/png"
SIGNED_DELIVERY_PATH = "/r2-public"


@dataclass
class FetchedImage:
    content: bytes
    content_type: str


def fetch_image(
    client: httpx.Client,
    url: str,
    headers: Optional[Mapping[str, str]] = None,
) -> FetchedImage:
    """
    Download ``url`` and return its bytes and content type.

    Raises:
        ProxyUpstreamError: with the upstream status for non-2xx responses,
            or 502 when no response arrived (connection error, timeout).
    """
    try:
        response = client.get(url, headers=dict(headers or {}), follow_redirects=True)
    except httpx.HTTPError as exc:
        raise ProxyUpstreamError(f"Failed to fetch image: {exc}") from exc

    if not response.is_success:
        raise ProxyUpstreamError(
            f"Failed to fetch image: {response.status_code}",
            status=response.status_code,
        )

    content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    return FetchedImage(content=response.content, content_type=content_type)


def normalise_object_key(raw_key: str) -> str:
    """
    Decode a key that may arrive URL-encoded (sometimes twice) and drop any
    query string left over from a previously signed URL.
    """
    key = unquote(raw_key.strip())
    if "%" in key:
        key = unquote(key)
    if "?" in key:
        key = key.split("?", 1)[0]
    return key.lstrip("/")


def url_host(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def signed_delivery_pointer(object_key: str) -> str:
    """Stable reference to a private object, served by the signed redirect route."""
    return f"{SIGNED_DELIVERY_PATH}?{urlencode({'key': object_key}, safe='/')}"


def pointer_object_key(url: str) -> Optional[str]:
    """Return the object key behind a signed delivery pointer, else ``None``."""
    parts = urlsplit(url)
    if parts.scheme or parts.netloc or parts.path != SIGNED_DELIVERY_PATH:
        return None
    keys = parse_qs(parts.query).get("key")
    if not keys:
        return None
    return normalise_object_key(keys[0]) or None
