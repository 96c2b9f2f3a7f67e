"""Discovery error taxonomy."""

from enum import Enum


class DiscoveryError(Exception):
    """Base class for discovery errors."""


class FetchErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    EXHAUSTED = "exhausted"


class FetchError(DiscoveryError):
    """A single source could not be fetched."""

    def __init__(self, kind: FetchErrorKind, url: str, message: str = ""):
        self.kind = kind
        self.url = url
        self.message = message
        super().__init__(f"{kind.value}: {url}" + (f" ({message})" if message else ""))

    @property
    def retryable(self) -> bool:
        return self.kind in (FetchErrorKind.RATE_LIMITED, FetchErrorKind.NETWORK)


class ExtractionError(DiscoveryError):
    """Payload could not be decoded at all."""


class RunTimeoutError(DiscoveryError):
    """The discovery run deadline has passed."""


class CatalogError(DiscoveryError):
    """The source catalog is malformed."""
