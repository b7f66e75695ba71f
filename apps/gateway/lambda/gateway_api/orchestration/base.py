"""Dispatcher interface and helpers shared by the dispatch strategies."""

import logging
import time
from typing import Protocol

from gateway_api.constants import Capability
from gateway_api.errors import BadRequestError, GatewayError, ProviderNotFoundError
from gateway_api.provider_registry import ProviderDescriptor, ProviderRegistry
from gateway_api.providers.base import AdapterRequest, ProviderAdapter, ProviderResponse
from gateway_api.schemas import CanonicalResult
from gateway_api.usage import build_usage

logger = logging.getLogger(__name__)


class Dispatcher(Protocol):
    def dispatch(
        self,
        capability: Capability,
        request: AdapterRequest,
        preferred_provider_id: str | None = None,
    ) -> CanonicalResult:
        """Route a canonical request to one provider and return a canonical result."""
        ...


def ensure_request_matches(capability: str, request: AdapterRequest) -> None:
    if request.kind != capability:
        raise BadRequestError(f"{request.kind} request cannot be dispatched as {capability}")


def select_provider(
    registry: ProviderRegistry, capability: str, preferred_provider_id: str | None
) -> ProviderDescriptor:
    """Preferred provider when registered for the capability, else the first registered one."""
    if preferred_provider_id is not None:
        descriptor = registry.get_provider(preferred_provider_id)
        if not descriptor.supports(capability):
            raise ProviderNotFoundError(
                f"Provider {preferred_provider_id} does not support {capability}"
            )
        return descriptor

    candidates = registry.list_providers(capability)
    if not candidates:
        raise ProviderNotFoundError(f"No provider registered for {capability}")
    return candidates[0]


def timed_invoke(
    adapter: ProviderAdapter, request: AdapterRequest
) -> tuple[ProviderResponse | None, BaseException | None, int]:
    """Single attempt; the adapter's exception is returned, never raised."""
    start = time.perf_counter()
    try:
        response = adapter.invoke(request)
    except Exception as exc:
        return None, exc, int((time.perf_counter() - start) * 1000)
    return response, None, int((time.perf_counter() - start) * 1000)


def success_result(
    response: ProviderResponse, descriptor: ProviderDescriptor, duration_ms: int
) -> CanonicalResult:
    usage = build_usage(response.input_units, response.output_units, descriptor)
    logger.info(
        "Dispatch succeeded",
        extra={
            "provider_id": descriptor.id,
            "duration_ms": duration_ms,
            "input_units": usage.input_units,
            "output_units": usage.output_units,
            "cost": usage.cost,
        },
    )
    return CanonicalResult(
        success=True,
        payload=response.payload,
        usage=usage,
        provider_id=descriptor.id,
        duration_ms=duration_ms,
    )


def failure_result(
    exc: BaseException,
    provider_id: str | None = None,
    duration_ms: int | None = None,
) -> CanonicalResult:
    if isinstance(exc, GatewayError):
        error_kind = exc.error_kind
        logger.warning(
            "Dispatch failed",
            extra={
                "provider_id": provider_id,
                "error_kind": error_kind,
                "duration_ms": duration_ms,
                "error": str(exc),
            },
        )
    else:
        error_kind = "unknown"
        logger.error(
            "Dispatch failed with unexpected error",
            extra={"provider_id": provider_id, "duration_ms": duration_ms},
            exc_info=exc,
        )

    return CanonicalResult(
        success=False,
        provider_id=provider_id,
        duration_ms=duration_ms,
        error_kind=error_kind,
        message=str(exc) or type(exc).__name__,
        retry_after_ms=getattr(exc, "retry_after_ms", None),
    )
