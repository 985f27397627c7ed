"""Error taxonomy shared by the services and the HTTP layer."""

from __future__ import annotations

from typing import Optional


class DesignAssetsError(Exception):
    """Base class for every error raised by the design asset services."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DesignAssetsError):
    """A required field is missing or malformed."""

    status_code = 400


class UpstreamProviderError(DesignAssetsError):
    """The real image provider failed to produce an image."""

    status_code = 500


class NotFoundError(DesignAssetsError):
    status_code = 404


class ProxyUpstreamError(DesignAssetsError):
    """Fetching bytes from an upstream URL failed.

    ``status`` carries the upstream HTTP status, or 502 when no response
    was received at all.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status or 502

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return self.status


class SigningError(DesignAssetsError):
    status_code = 500


class ConfigurationError(DesignAssetsError):
    """Raised at startup when required configuration is missing."""
