"""Provider registry: descriptors and adapters keyed by provider id."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .constants import Capability
from .errors import ProviderNotFoundError
from .schemas import ProviderMetadata, RequestLimitWindowMetadata

if TYPE_CHECKING:
    from .providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestLimitWindow:
    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class ProviderDescriptor:
    id: str
    vendor_name: str
    capabilities: frozenset[Capability]
    cost_per_unit: float
    request_limit_window: RequestLimitWindow
    display_name: str = ""
    model: str | None = None
    max_tokens: int | None = None
    context_window: int | None = None
    tags: tuple[str, ...] = ()

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    def to_metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            id=self.id,
            vendor_name=self.vendor_name,
            display_name=self.display_name or self.id,
            capabilities=sorted(self.capabilities),
            cost_per_unit=self.cost_per_unit,
            request_limit_window=RequestLimitWindowMetadata(
                max_requests=self.request_limit_window.max_requests,
                window_seconds=self.request_limit_window.window_seconds,
            ),
            model=self.model,
            max_tokens=self.max_tokens,
            context_window=self.context_window,
            tags=list(self.tags),
        )


@dataclass(frozen=True)
class RegisteredProvider:
    descriptor: ProviderDescriptor
    adapter: "ProviderAdapter" = field(compare=False, repr=False)


class ProviderRegistry:
    """Read-only lookup table populated once at process start.

    Iteration order is registration order; the dispatcher relies on it to pick
    the default provider for a capability.
    """

    def __init__(self, entries: Iterable[RegisteredProvider]) -> None:
        self._entries: dict[str, RegisteredProvider] = {}
        for entry in entries:
            provider_id = entry.descriptor.id
            if provider_id in self._entries:
                raise ValueError(f"Duplicate provider id: {provider_id}")
            self._entries[provider_id] = entry

        logger.info(
            "Provider registry initialized",
            extra={"provider_ids": list(self._entries)},
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._entries

    def list_providers(self, capability: str | None = None) -> list[ProviderDescriptor]:
        return [
            entry.descriptor
            for entry in self._entries.values()
            if capability is None or entry.descriptor.supports(capability)
        ]

    def get_provider(self, provider_id: str) -> ProviderDescriptor:
        return self._get_entry(provider_id).descriptor

    def get_adapter(self, provider_id: str) -> "ProviderAdapter":
        return self._get_entry(provider_id).adapter

    def capabilities(self) -> set[str]:
        return {
            capability
            for entry in self._entries.values()
            for capability in entry.descriptor.capabilities
        }

    def status(self) -> dict[str, object]:
        per_capability = {
            capability: [descriptor.id for descriptor in self.list_providers(capability)]
            for capability in sorted(self.capabilities())
        }
        return {
            "totalProviders": len(self._entries),
            "vendors": sorted({e.descriptor.vendor_name for e in self._entries.values()}),
            "providersByCapability": per_capability,
        }

    def _get_entry(self, provider_id: str) -> RegisteredProvider:
        entry = self._entries.get(provider_id)
        if entry is None:
            raise ProviderNotFoundError(f"Unknown provider: {provider_id}")
        return entry
