"""Typed exception hierarchy for price provider errors.

Provides structured exceptions for differentiated error handling
(transient network errors vs HTTP errors vs unparseable payloads), plus
the aggregate failure raised when no provider could be reached at all.
"""


class ProviderError(Exception):
    """Base exception for all provider-related errors.

    Carries the provider name so callers can identify which provider failed.
    """

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(message)


class ProviderConnectionError(ProviderError):
    """Transport failures such as timeouts or refused connections.

    Retriable by default.
    """

    def __init__(self, message: str, provider_name: str = "", retriable: bool = True):
        self.retriable = retriable
        super().__init__(message, provider_name)


class ProviderAPIError(ProviderError):
    """HTTP 4xx/5xx responses from the provider API."""

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, provider_name)

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class ProviderDataError(ProviderError):
    """Malformed or unparseable response from the provider."""

    pass


class AllProvidersFailed(Exception):
    """Every provider invoked for a refresh failed.

    ``errors`` maps provider name to the exception it raised. ``statuses``
    optionally carries the aggregator's per-provider status records. Raised
    only when at least one provider was actually invoked.
    """

    def __init__(self, errors: dict[str, Exception], statuses: list | None = None):
        self.errors = dict(errors)
        self.statuses = list(statuses or [])
        names = ", ".join(sorted(self.errors)) or "none"
        super().__init__(f"All price providers failed: {names}")
