import os
import unittest
from unittest.mock import Mock, patch

from gateway_api.infra import runtime
from gateway_api.orchestration.direct import DirectDispatcher
from gateway_api.orchestration.langgraph_flow import LangGraphDispatcher
from gateway_api.schemas import ChatRequest, PushSendRequest


class SettingsTests(unittest.TestCase):
    def test_defaults_without_environment(self) -> None:
        settings = runtime.load_settings({})

        self.assertEqual(settings.environment, "production")
        self.assertFalse(settings.is_development)
        self.assertEqual(settings.orchestrator, "direct")
        self.assertEqual(settings.null_provider_capabilities, frozenset({"chat"}))
        self.assertIsNone(settings.openai_api_key)

    def test_environment_values_are_read(self) -> None:
        settings = runtime.load_settings(
            {
                "GATEWAY_ENV": "development",
                "GATEWAY_ORCHESTRATOR": "LangGraph",
                "GATEWAY_NULL_PROVIDER_CAPABILITIES": "chat, push",
                "OPENAI_API_KEY": "sk-env",
                "PAYPAL_API_URL": "https://api-m.paypal.com",
            }
        )

        self.assertTrue(settings.is_development)
        self.assertEqual(settings.orchestrator, "langgraph")
        self.assertEqual(settings.null_provider_capabilities, frozenset({"chat", "push"}))
        self.assertEqual(settings.openai_api_key, "sk-env")
        self.assertEqual(settings.paypal_api_url, "https://api-m.paypal.com")

    def test_secrets_fall_back_to_ssm_under_prefix(self) -> None:
        ssm_client = Mock()

        def get_parameter(Name: str, WithDecryption: bool) -> dict:
            if Name == "/gateway/OPENAI_API_KEY":
                return {"Parameter": {"Value": "sk-from-ssm"}}
            raise RuntimeError("ParameterNotFound")

        ssm_client.get_parameter.side_effect = get_parameter
        with patch.object(runtime.boto3, "client", return_value=ssm_client) as client_mock:
            settings = runtime.load_settings(
                {"GATEWAY_SSM_PREFIX": "/gateway/", "STRIPE_SECRET_KEY": "sk_env"}
            )

        client_mock.assert_called_once_with("ssm", region_name=runtime.AWS_REGION)
        self.assertEqual(settings.openai_api_key, "sk-from-ssm")
        self.assertEqual(settings.stripe_secret_key, "sk_env")
        self.assertIsNone(settings.anthropic_api_key)


class BuildRegistryTests(unittest.TestCase):
    def test_null_provider_registered_for_chat_only_by_default(self) -> None:
        registry = runtime.build_registry(runtime.GatewaySettings())

        self.assertEqual([d.id for d in registry.list_providers()], ["null"])
        self.assertEqual(registry.capabilities(), {"chat"})

        dispatcher = DirectDispatcher(registry)
        chat = dispatcher.dispatch(
            "chat", ChatRequest(messages=[{"role": "user", "content": "hello"}])
        )
        push = dispatcher.dispatch(
            "push", PushSendRequest(title="t", body="b", target_token="ExponentPushToken[x]")
        )
        self.assertTrue(chat.success)
        self.assertIn("OmniMind", chat.payload["content"])
        self.assertEqual(push.error_kind, "unknown_provider")

    def test_configured_credentials_enable_providers_in_order(self) -> None:
        settings = runtime.GatewaySettings(
            openai_api_key="sk-test",
            anthropic_api_key="sk-ant",
            stripe_secret_key="sk_stripe",
            expo_access_token="expo-token",
            vapid_private_key="vapid",
            vapid_subject="mailto:ops@example.com",
        )

        registry = runtime.build_registry(settings)

        self.assertEqual(
            [d.id for d in registry.list_providers("chat")],
            ["gpt-3.5-turbo", "gpt-4", "claude-3-sonnet", "claude-3-haiku"],
        )
        self.assertEqual([d.id for d in registry.list_providers("payment")], ["stripe"])
        self.assertEqual([d.id for d in registry.list_providers("push")], ["web-push", "expo"])
        self.assertNotIn("null", registry)
        self.assertEqual(registry.get_provider("gpt-3.5-turbo").cost_per_unit, 0.0015)
        self.assertEqual(registry.get_provider("expo").tags, ("expo",))

    def test_paypal_requires_both_client_id_and_secret(self) -> None:
        registry = runtime.build_registry(runtime.GatewaySettings(paypal_client_id="id"))

        self.assertNotIn("paypal", registry)

    def test_null_provider_covers_every_listed_missing_capability(self) -> None:
        settings = runtime.GatewaySettings(
            stripe_secret_key="sk_stripe",
            null_provider_capabilities=frozenset({"chat", "payment", "push"}),
        )

        registry = runtime.build_registry(settings)

        self.assertEqual(registry.get_provider("null").capabilities, frozenset({"chat", "push"}))
        self.assertEqual([d.id for d in registry.list_providers("payment")], ["stripe"])


class BuildDispatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = runtime.build_registry(runtime.GatewaySettings())

    def test_langgraph_orchestrator_is_selectable(self) -> None:
        dispatcher = runtime.build_dispatcher(
            runtime.GatewaySettings(orchestrator="langgraph"), self.registry
        )

        self.assertIsInstance(dispatcher, LangGraphDispatcher)

    def test_unknown_orchestrator_falls_back_to_direct(self) -> None:
        dispatcher = runtime.build_dispatcher(
            runtime.GatewaySettings(orchestrator="bogus"), self.registry
        )

        self.assertIsInstance(dispatcher, DirectDispatcher)


class FirebaseAppTests(unittest.TestCase):
    def setUp(self) -> None:
        runtime.get_firebase_app.cache_clear()
        self.addCleanup(runtime.get_firebase_app.cache_clear)

    def test_existing_named_app_is_reused(self) -> None:
        existing = Mock()
        with patch.object(runtime.firebase_admin, "get_app", return_value=existing) as get_app:
            with patch.object(runtime.firebase_admin, "initialize_app") as initialize_app:
                first = runtime.get_firebase_app('{"project_id": "one"}')
                second = runtime.get_firebase_app('{"project_id": "two"}')

        self.assertIs(first, existing)
        self.assertIs(second, existing)
        get_app.assert_called_with(runtime.FIREBASE_APP_NAME)
        initialize_app.assert_not_called()

    def test_missing_app_is_initialized_under_gateway_name(self) -> None:
        with patch.object(runtime.firebase_admin, "get_app", side_effect=ValueError("no app")):
            with patch.object(runtime.firebase_credentials, "Certificate") as certificate:
                with patch.object(runtime.firebase_admin, "initialize_app") as initialize_app:
                    app = runtime.get_firebase_app('{"project_id": "one"}')

        certificate.assert_called_once_with({"project_id": "one"})
        initialize_app.assert_called_once_with(
            certificate.return_value, name=runtime.FIREBASE_APP_NAME
        )
        self.assertIs(app, initialize_app.return_value)


class LangSmithConfigurationTests(unittest.TestCase):
    def test_configure_langsmith_sets_and_clears_environment(self) -> None:
        with patch.dict(os.environ, {}, clear=False):
            runtime._configure_langsmith("ls-key")
            self.assertEqual(os.environ["LANGSMITH_TRACING"], "true")
            self.assertEqual(os.environ["LANGSMITH_API_KEY"], "ls-key")
            self.assertIn("LANGSMITH_PROJECT", os.environ)

            runtime._configure_langsmith(None)
            self.assertNotIn("LANGSMITH_TRACING", os.environ)
            self.assertNotIn("LANGSMITH_API_KEY", os.environ)

    def test_flush_is_skipped_when_tracing_disabled(self) -> None:
        with patch.dict(os.environ, {"LANGSMITH_TRACING": "false"}):
            with patch.object(runtime, "get_cached_client") as client_mock:
                runtime.flush_langsmith_traces()

        client_mock.assert_not_called()


if __name__ == "__main__":
    unittest.main()
