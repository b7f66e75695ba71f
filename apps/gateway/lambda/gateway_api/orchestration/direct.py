"""Direct provider dispatch."""

import logging
from typing import cast

from gateway_api.constants import Capability
from gateway_api.errors import GatewayError
from gateway_api.provider_registry import ProviderRegistry
from gateway_api.providers.base import AdapterRequest, ProviderResponse
from gateway_api.schemas import CanonicalResult

from .base import (
    Dispatcher,
    ensure_request_matches,
    failure_result,
    select_provider,
    success_result,
    timed_invoke,
)

logger = logging.getLogger(__name__)


class DirectDispatcher(Dispatcher):
    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    def dispatch(
        self,
        capability: Capability,
        request: AdapterRequest,
        preferred_provider_id: str | None = None,
    ) -> CanonicalResult:
        try:
            ensure_request_matches(capability, request)
            descriptor = select_provider(self._registry, capability, preferred_provider_id)
        except GatewayError as exc:
            return failure_result(exc)

        logger.info(
            "Dispatching request",
            extra={"capability": capability, "provider_id": descriptor.id},
        )
        adapter = self._registry.get_adapter(descriptor.id)
        response, error, duration_ms = timed_invoke(adapter, request)
        if error is not None:
            return failure_result(error, descriptor.id, duration_ms)
        return success_result(cast(ProviderResponse, response), descriptor, duration_ms)
