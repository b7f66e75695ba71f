"""Provider adapter interface, shared response model, and vendor error normalization."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from gateway_api.constants import DEFAULT_RETRY_AFTER_MS
from gateway_api.errors import (
    AuthError,
    BadRequestError,
    ConfigurationError,
    GatewayError,
    RateLimitedError,
    VendorError,
)
from gateway_api.schemas import ChatRequest, PaymentChargeRequest, PushSendRequest

AdapterRequest = ChatRequest | PaymentChargeRequest | PushSendRequest
RequestT = TypeVar("RequestT", ChatRequest, PaymentChargeRequest, PushSendRequest)

THROTTLE_CODES = frozenset(
    {
        "rate_limit",
        "rate_limit_error",
        "rate_limit_exceeded",
        "resource_exhausted",
        "quota-exceeded",
        "messagerateexceeded",
        "too_many_requests",
        "throttlingexception",
        "servicequotaexceededexception",
    }
)
AUTH_CODES = frozenset(
    {
        "authentication_error",
        "permission_error",
        "unauthenticated",
        "permission_denied",
        "invalidcredentials",
        "invalid_client",
        "accessdeniedexception",
        "unrecognizedclientexception",
        "expiredtokenexception",
    }
)


@dataclass(frozen=True)
class ProviderResponse:
    payload: dict[str, Any]
    input_units: int = 0
    output_units: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


class ProviderAdapter(Protocol):
    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        """Translate a canonical request into one vendor call and normalize the response."""
        ...


def vendor_status_code(exc: BaseException) -> int | None:
    for attr in ("status_code", "http_status", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    # botocore ClientError keeps the parsed error response as a dict.
    if isinstance(response, Mapping):
        value = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    else:
        value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code
    return None


def _vendor_code(exc: BaseException) -> str:
    code = getattr(exc, "code", None)
    if isinstance(code, str):
        return code.lower()
    response = getattr(exc, "response", None)
    if isinstance(response, Mapping):
        return str(response.get("Error", {}).get("Code") or "").lower()
    body = getattr(exc, "body", None)
    if isinstance(body, Mapping):
        error = body.get("error")
        if isinstance(error, Mapping):
            return str(error.get("type") or error.get("code") or "").lower()
    return ""


def _headers(exc: BaseException) -> Mapping[str, Any]:
    response = getattr(exc, "response", None)
    if isinstance(response, Mapping):
        headers = response.get("ResponseMetadata", {}).get("HTTPHeaders")
    else:
        headers = getattr(response, "headers", None) or getattr(exc, "headers", None)
    if not headers:
        return {}
    return {str(key).lower(): value for key, value in dict(headers).items()}


def parse_retry_after_ms(headers: Mapping[str, Any]) -> int:
    """Read ``retry-after-ms`` or ``retry-after`` (seconds); HTTP dates fall back to the default."""
    raw_ms = headers.get("retry-after-ms")
    if raw_ms is not None:
        try:
            return max(0, int(float(raw_ms)))
        except (TypeError, ValueError):
            pass
    raw_seconds = headers.get("retry-after")
    if raw_seconds is not None:
        try:
            return max(0, int(float(raw_seconds) * 1000))
        except (TypeError, ValueError):
            pass
    return DEFAULT_RETRY_AFTER_MS


def normalize_vendor_error(exc: BaseException, vendor: str) -> GatewayError:
    """Collapse SDK-specific exceptions into the gateway error taxonomy."""
    if isinstance(exc, GatewayError):
        return exc

    status_code = vendor_status_code(exc)
    code = _vendor_code(exc)
    message = f"{vendor} request failed: {exc}"

    if status_code == 429 or code in THROTTLE_CODES:
        return RateLimitedError(
            message, retry_after_ms=parse_retry_after_ms(_headers(exc)), status_code=status_code
        )
    if status_code in (401, 403) or code in AUTH_CODES:
        return AuthError(message, status_code=status_code)
    return VendorError(message, status_code=status_code)


def require_credential(value: str | None, name: str, vendor: str) -> str:
    if not value:
        raise ConfigurationError(f"{vendor} credential {name} is not configured")
    return value


def expect_request(request: AdapterRequest, request_type: type[RequestT], vendor: str) -> RequestT:
    if not isinstance(request, request_type):
        raise BadRequestError(f"{vendor} adapter cannot handle {request.kind} requests")
    return request


def json_object(response: Any, vendor: str) -> dict[str, Any]:
    """Decoded JSON body of an httpx response; anything but an object is a vendor fault."""
    body = response.json()
    if not isinstance(body, dict):
        raise VendorError(f"{vendor} returned an unexpected response body")
    return body
