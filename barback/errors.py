"""Exception taxonomy shared by the cache, providers, and catalog stores."""

from __future__ import annotations


class BarbackError(RuntimeError):
    """Base error for the barback core."""


class RateLimitExceeded(BarbackError):
    """A provider's call budget is exhausted for the current window."""

    def __init__(self, provider: str, retry_after_ms: int) -> None:
        super().__init__(f"Rate limit exceeded for provider '{provider}'; retry in {retry_after_ms} ms")
        self.provider = provider
        self.retry_after_ms = retry_after_ms

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds to wait, rounded up, for a Retry-After header."""
        return max(1, -(-self.retry_after_ms // 1000))


class ProviderUnavailable(BarbackError):
    """Network failure or non-success HTTP status from an upstream provider."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class MalformedUpstreamResponse(ProviderUnavailable):
    """Upstream returned invalid JSON or a payload of the wrong shape."""


class WeatherProviderError(ProviderUnavailable):
    """The weather provider could not produce an observation."""


class CatalogConflict(BarbackError):
    """A unique barcode already exists but the existing row could not be read back."""


__all__ = [
    "BarbackError",
    "RateLimitExceeded",
    "ProviderUnavailable",
    "MalformedUpstreamResponse",
    "WeatherProviderError",
    "CatalogConflict",
]
