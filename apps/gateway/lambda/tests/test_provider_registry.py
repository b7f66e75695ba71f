import unittest

from gateway_api.errors import ProviderNotFoundError
from gateway_api.provider_registry import (
    ProviderDescriptor,
    ProviderRegistry,
    RegisteredProvider,
    RequestLimitWindow,
)
from gateway_api.providers.null_provider import NullAdapter

WINDOW = RequestLimitWindow(max_requests=50, window_seconds=3600)


def make_descriptor(provider_id: str, *capabilities: str) -> ProviderDescriptor:
    return ProviderDescriptor(
        id=provider_id,
        vendor_name=provider_id.split("-")[0],
        capabilities=frozenset(capabilities),
        cost_per_unit=0.001,
        request_limit_window=WINDOW,
    )


class ProviderRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.descriptors = [
            make_descriptor("openai-gpt", "chat"),
            make_descriptor("stripe-default", "payment"),
            make_descriptor("anthropic-claude", "chat"),
            make_descriptor("expo-push", "push"),
        ]
        self.registry = ProviderRegistry(
            RegisteredProvider(descriptor, NullAdapter()) for descriptor in self.descriptors
        )

    def test_get_provider_round_trips_registered_descriptor(self) -> None:
        for descriptor in self.descriptors:
            self.assertIs(self.registry.get_provider(descriptor.id), descriptor)

    def test_list_providers_filters_by_capability_in_registration_order(self) -> None:
        chat_ids = [d.id for d in self.registry.list_providers("chat")]

        self.assertEqual(chat_ids, ["openai-gpt", "anthropic-claude"])
        self.assertEqual(len(self.registry.list_providers()), 4)
        self.assertEqual(self.registry.list_providers("video"), [])

    def test_get_provider_raises_for_unknown_id(self) -> None:
        with self.assertRaisesRegex(ProviderNotFoundError, "Unknown provider: missing"):
            self.registry.get_provider("missing")

    def test_duplicate_ids_are_rejected(self) -> None:
        descriptor = make_descriptor("dup", "chat")

        with self.assertRaisesRegex(ValueError, "Duplicate provider id: dup"):
            ProviderRegistry(
                [
                    RegisteredProvider(descriptor, NullAdapter()),
                    RegisteredProvider(descriptor, NullAdapter()),
                ]
            )

    def test_status_summarizes_capabilities_and_vendors(self) -> None:
        status = self.registry.status()

        self.assertEqual(status["totalProviders"], 4)
        self.assertEqual(status["vendors"], ["anthropic", "expo", "openai", "stripe"])
        self.assertEqual(
            status["providersByCapability"],
            {
                "chat": ["openai-gpt", "anthropic-claude"],
                "payment": ["stripe-default"],
                "push": ["expo-push"],
            },
        )
        self.assertIn("openai-gpt", self.registry)
        self.assertNotIn("missing", self.registry)

    def test_metadata_uses_camel_case_aliases(self) -> None:
        metadata = self.descriptors[0].to_metadata().model_dump(by_alias=True)

        self.assertEqual(metadata["vendorName"], "openai")
        self.assertEqual(metadata["displayName"], "openai-gpt")
        self.assertEqual(metadata["costPerUnit"], 0.001)
        self.assertEqual(
            metadata["requestLimitWindow"], {"maxRequests": 50, "windowSeconds": 3600}
        )


if __name__ == "__main__":
    unittest.main()
