"""Typed exception hierarchy for provider errors.

Provides structured exceptions for differentiated error handling
(auth errors vs transient network errors vs malformed feed data).
"""


class ProviderError(Exception):
    """Base exception for all provider-related errors.

    Carries the provider name so callers can identify which provider failed.
    """

    retriable = False

    def __init__(self, message: str, provider_name: str = "", error_code: str = ""):
        self.provider_name = provider_name
        self.error_code = error_code
        super().__init__(message)


class ProviderAuthError(ProviderError):
    """The Item's own access is broken (ITEM_LOGIN_REQUIRED, revoked or invalid access token).

    Marks the Item errored until a sync succeeds again.
    """

    pass


class ProviderConfigError(ProviderError):
    """The deployment's API keys were rejected (INVALID_API_KEYS, HTTP 401/403).

    Fails every Item alike, so no Item is marked errored for it.
    """

    pass


class TransientProviderError(ProviderError):
    """Failures expected to clear on their own: network trouble, rate limits, 5xx.

    Not retried within a sync run; the next externally triggered sync
    resumes from the last checkpoint.
    """

    retriable = True


class ProviderConnectionError(TransientProviderError):
    """Network failures: timeouts, DNS resolution, connection refused."""

    pass


class ProviderRateLimitError(TransientProviderError):
    """HTTP 429 / RATE_LIMIT_EXCEEDED from the provider."""

    pass


class ProviderAPIError(ProviderError):
    """HTTP 4xx/5xx responses from the provider API."""

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        error_code: str = "",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, provider_name, error_code)

    @property
    def retriable(self) -> bool:
        """5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code >= 500


class ProviderDataError(ProviderError):
    """Malformed or unparseable response from the provider."""

    pass


class SyncPageValidationError(ProviderDataError):
    """A transactions sync page (or its cursor) failed schema validation.

    Aborts the current sync run only; the Item is not marked errored.
    """

    pass
