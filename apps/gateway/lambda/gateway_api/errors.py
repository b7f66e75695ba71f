"""Domain-level exceptions for the provider gateway."""

from .constants import DEFAULT_RETRY_AFTER_MS, ErrorKind


class GatewayError(Exception):
    """Base class for failures that the dispatcher normalizes into results."""

    error_kind: ErrorKind = "unknown"


class BadRequestError(GatewayError, ValueError):
    """Raised for client-side invalid requests at the domain layer."""

    error_kind: ErrorKind = "invalid_request"


class ConfigurationError(GatewayError):
    """Vendor credentials are missing or invalid for one provider."""

    error_kind: ErrorKind = "configuration"


class VendorError(GatewayError):
    """The vendor returned a non-2xx status, timed out, or sent a malformed body."""

    error_kind: ErrorKind = "vendor"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(VendorError):
    """The vendor throttled the call."""

    error_kind: ErrorKind = "rate_limited"

    def __init__(
        self,
        message: str,
        retry_after_ms: int = DEFAULT_RETRY_AFTER_MS,
        status_code: int | None = 429,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after_ms = retry_after_ms


class AuthError(VendorError):
    """The vendor rejected the configured credentials."""

    error_kind: ErrorKind = "auth"


class ProviderNotFoundError(GatewayError, LookupError):
    """No registered provider matches the requested id or capability."""

    error_kind: ErrorKind = "unknown_provider"


class QuotaExceededError(GatewayError):
    """A caller-side quota or request window is exhausted."""

    error_kind: ErrorKind = "rate_limited"

    def __init__(self, message: str, limit: int, retry_after_ms: int) -> None:
        super().__init__(message)
        self.limit = limit
        self.retry_after_ms = retry_after_ms
