"""Runtime infrastructure: settings, credentials, tracing, vendor clients, and the registry."""

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import boto3
import firebase_admin
import stripe
from anthropic import Anthropic
from firebase_admin import credentials as firebase_credentials
from google import genai
from langchain_aws import ChatBedrockConverse
from langchain_core.messages import AIMessage
from langchain_core.runnables import Runnable, RunnableLambda
from langsmith.run_trees import get_cached_client
from openai import OpenAI

from gateway_api.constants import (
    ANTHROPIC_API_KEY_NAME,
    AWS_REGION,
    BEDROCK_MODEL_ID_NAME,
    BEDROCK_REGION_NAME,
    CAPABILITIES,
    DEFAULT_BEDROCK_MODEL_ID,
    DEFAULT_PAYPAL_API_URL,
    EXPO_ACCESS_TOKEN_NAME,
    FIREBASE_SERVICE_ACCOUNT_NAME,
    GATEWAY_ENV_NAME,
    GOOGLE_AI_API_KEY_NAME,
    LANGSMITH_API_KEY_NAME,
    LANGSMITH_PROJECT,
    NULL_PROVIDER_CAPABILITIES_NAME,
    OPENAI_API_KEY_NAME,
    ORCHESTRATOR_NAME,
    PAYPAL_API_URL_NAME,
    PAYPAL_CLIENT_ID_NAME,
    PAYPAL_CLIENT_SECRET_NAME,
    SSM_PREFIX_NAME,
    STRIPE_SECRET_KEY_NAME,
    VAPID_PRIVATE_KEY_NAME,
    VAPID_SUBJECT_NAME,
    Capability,
)
from gateway_api.orchestration.base import Dispatcher
from gateway_api.orchestration.direct import DirectDispatcher
from gateway_api.orchestration.langgraph_flow import LangGraphDispatcher
from gateway_api.provider_registry import (
    ProviderDescriptor,
    ProviderRegistry,
    RegisteredProvider,
    RequestLimitWindow,
)
from gateway_api.providers.anthropic_provider import AnthropicChatAdapter
from gateway_api.providers.bedrock_provider import BedrockChatAdapter
from gateway_api.providers.expo_provider import ExpoPushAdapter
from gateway_api.providers.fcm_provider import FcmPushAdapter
from gateway_api.providers.gemini_provider import GeminiChatAdapter
from gateway_api.providers.null_provider import NullAdapter
from gateway_api.providers.openai_provider import OpenAIChatAdapter
from gateway_api.providers.paypal_provider import PayPalPaymentAdapter
from gateway_api.providers.stripe_provider import StripePaymentAdapter
from gateway_api.providers.webpush_provider import WebPushAdapter

logger = logging.getLogger(__name__)

AI_REQUEST_WINDOW = RequestLimitWindow(max_requests=50, window_seconds=60 * 60)
API_REQUEST_WINDOW = RequestLimitWindow(max_requests=100, window_seconds=15 * 60)
PUSH_REQUEST_WINDOW = RequestLimitWindow(max_requests=1000, window_seconds=60 * 60)

FIREBASE_APP_NAME = "provider-gateway"


@dataclass(frozen=True)
class GatewaySettings:
    environment: str = "production"
    orchestrator: str = "direct"
    null_provider_capabilities: frozenset[str] = frozenset({"chat"})
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    google_ai_api_key: str | None = None
    bedrock_region: str | None = None
    bedrock_model_id: str = DEFAULT_BEDROCK_MODEL_ID
    stripe_secret_key: str | None = None
    paypal_client_id: str | None = None
    paypal_client_secret: str | None = None
    paypal_api_url: str = DEFAULT_PAYPAL_API_URL
    vapid_private_key: str | None = None
    vapid_subject: str | None = None
    firebase_service_account: str | None = None
    expo_access_token: str | None = None
    langsmith_api_key: str | None = None

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def _get_secure_parameter(ssm_client: Any, parameter_name: str) -> str:
    result = ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)
    value = result["Parameter"].get("Value")
    if not value:
        raise RuntimeError(f"SSM parameter {parameter_name} has no value")
    return value


def _get_optional_secure_parameter(ssm_client: Any, parameter_name: str) -> str | None:
    try:
        return _get_secure_parameter(ssm_client, parameter_name)
    except Exception:
        logger.warning(
            "Optional SSM parameter is unavailable; disabling dependent provider",
            extra={"parameter_name": parameter_name},
            exc_info=True,
        )
        return None


class _SecretSource:
    """Environment first, then SSM Parameter Store under ``<prefix>/<name>``."""

    def __init__(self, environ: dict[str, str]) -> None:
        self._environ = environ
        self._prefix = environ.get(SSM_PREFIX_NAME, "").rstrip("/")
        self._ssm_client: Any = None

    def get(self, name: str) -> str | None:
        value = self._environ.get(name)
        if value:
            return value
        if not self._prefix:
            return None
        if self._ssm_client is None:
            self._ssm_client = boto3.client("ssm", region_name=AWS_REGION)
        return _get_optional_secure_parameter(self._ssm_client, f"{self._prefix}/{name}")


def load_settings(environ: dict[str, str]) -> GatewaySettings:
    secrets = _SecretSource(environ)
    null_capabilities = environ.get(NULL_PROVIDER_CAPABILITIES_NAME, "chat")
    return GatewaySettings(
        environment=environ.get(GATEWAY_ENV_NAME, "production"),
        orchestrator=environ.get(ORCHESTRATOR_NAME, "direct").lower(),
        null_provider_capabilities=frozenset(
            part.strip() for part in null_capabilities.split(",") if part.strip()
        ),
        openai_api_key=secrets.get(OPENAI_API_KEY_NAME),
        anthropic_api_key=secrets.get(ANTHROPIC_API_KEY_NAME),
        google_ai_api_key=secrets.get(GOOGLE_AI_API_KEY_NAME),
        bedrock_region=environ.get(BEDROCK_REGION_NAME) or None,
        bedrock_model_id=environ.get(BEDROCK_MODEL_ID_NAME) or DEFAULT_BEDROCK_MODEL_ID,
        stripe_secret_key=secrets.get(STRIPE_SECRET_KEY_NAME),
        paypal_client_id=secrets.get(PAYPAL_CLIENT_ID_NAME),
        paypal_client_secret=secrets.get(PAYPAL_CLIENT_SECRET_NAME),
        paypal_api_url=environ.get(PAYPAL_API_URL_NAME) or DEFAULT_PAYPAL_API_URL,
        vapid_private_key=secrets.get(VAPID_PRIVATE_KEY_NAME),
        vapid_subject=environ.get(VAPID_SUBJECT_NAME) or None,
        firebase_service_account=secrets.get(FIREBASE_SERVICE_ACCOUNT_NAME),
        expo_access_token=secrets.get(EXPO_ACCESS_TOKEN_NAME),
        langsmith_api_key=secrets.get(LANGSMITH_API_KEY_NAME),
    )


@lru_cache(maxsize=1)
def get_settings() -> GatewaySettings:
    return load_settings(dict(os.environ))


def _configure_langsmith(langsmith_api_key: str | None) -> None:
    if not langsmith_api_key:
        os.environ.pop("LANGSMITH_TRACING", None)
        os.environ.pop("LANGSMITH_API_KEY", None)
        logger.info("LangSmith tracing disabled because API key is unavailable")
        return

    os.environ["LANGSMITH_TRACING"] = "true"
    os.environ["LANGSMITH_API_KEY"] = langsmith_api_key
    os.environ.setdefault("LANGSMITH_PROJECT", LANGSMITH_PROJECT)


@lru_cache(maxsize=1)
def ensure_langsmith_configured() -> None:
    """Configure LangSmith environment variables (called once via lru_cache)."""
    _configure_langsmith(get_settings().langsmith_api_key)


def flush_langsmith_traces() -> None:
    if os.environ.get("LANGSMITH_TRACING", "").lower() != "true":
        return
    if not os.environ.get("LANGSMITH_API_KEY"):
        return
    try:
        get_cached_client().flush()
    except Exception:
        logger.warning("Failed to flush LangSmith traces", exc_info=True)


@lru_cache(maxsize=4)
def get_openai_client(api_key: str) -> OpenAI:
    ensure_langsmith_configured()
    return OpenAI(api_key=api_key)


@lru_cache(maxsize=4)
def get_anthropic_client(api_key: str) -> Anthropic:
    return Anthropic(api_key=api_key)


@lru_cache(maxsize=4)
def get_gemini_client(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


@lru_cache(maxsize=4)
def get_stripe_client(api_key: str) -> stripe.StripeClient:
    return stripe.StripeClient(api_key)


@lru_cache(maxsize=4)
def get_firebase_app(service_account: str) -> firebase_admin.App:
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        certificate = firebase_credentials.Certificate(json.loads(service_account))
        return firebase_admin.initialize_app(certificate, name=FIREBASE_APP_NAME)


def _invoke_bedrock_converse(params: dict[str, Any]) -> AIMessage:
    model = ChatBedrockConverse(
        model=params["model_id"],
        region_name=params["region_name"],
        max_tokens=params["max_tokens"],
        **({"temperature": params["temperature"]} if "temperature" in params else {}),
    )
    return model.invoke(params["messages"])


@lru_cache(maxsize=1)
def get_bedrock_runnable() -> Runnable[dict[str, Any], AIMessage]:
    ensure_langsmith_configured()
    return RunnableLambda(_invoke_bedrock_converse).with_config(
        {"run_name": "gateway_bedrock_converse"}
    )


def _chat_descriptor(
    provider_id: str,
    vendor_name: str,
    display_name: str,
    model: str,
    cost_per_unit: float,
    max_tokens: int,
    context_window: int,
    tags: tuple[str, ...],
) -> ProviderDescriptor:
    return ProviderDescriptor(
        id=provider_id,
        vendor_name=vendor_name,
        capabilities=frozenset({"chat"}),
        cost_per_unit=cost_per_unit,
        request_limit_window=AI_REQUEST_WINDOW,
        display_name=display_name,
        model=model,
        max_tokens=max_tokens,
        context_window=context_window,
        tags=tags,
    )


def _chat_providers(settings: GatewaySettings) -> list[RegisteredProvider]:
    entries: list[RegisteredProvider] = []
    if settings.openai_api_key:
        for descriptor in (
            _chat_descriptor(
                "gpt-3.5-turbo", "openai", "GPT-3.5 Turbo", "gpt-3.5-turbo",
                0.0015, 4096, 16385, ("completion", "fast"),
            ),
            _chat_descriptor(
                "gpt-4", "openai", "GPT-4", "gpt-4",
                0.03, 8192, 128000, ("completion", "reasoning", "code"),
            ),
        ):
            adapter = OpenAIChatAdapter(
                descriptor.model or descriptor.id, settings.openai_api_key, get_openai_client
            )
            entries.append(RegisteredProvider(descriptor, adapter))

    if settings.google_ai_api_key:
        descriptor = _chat_descriptor(
            "gemini-pro", "gemini", "Gemini Pro", "gemini-pro",
            0.0005, 32768, 32768, ("completion", "reasoning"),
        )
        adapter = GeminiChatAdapter(
            descriptor.model or descriptor.id, settings.google_ai_api_key, get_gemini_client
        )
        entries.append(RegisteredProvider(descriptor, adapter))

    if settings.anthropic_api_key:
        for descriptor in (
            _chat_descriptor(
                "claude-3-sonnet", "anthropic", "Claude 3 Sonnet", "claude-3-sonnet-20240229",
                0.003, 4096, 200000, ("reasoning", "balanced"),
            ),
            _chat_descriptor(
                "claude-3-haiku", "anthropic", "Claude 3 Haiku", "claude-3-haiku-20240307",
                0.00025, 4096, 200000, ("fast", "efficient"),
            ),
        ):
            adapter = AnthropicChatAdapter(
                descriptor.model or descriptor.id,
                settings.anthropic_api_key,
                get_anthropic_client,
            )
            entries.append(RegisteredProvider(descriptor, adapter))

    if settings.bedrock_region:
        descriptor = _chat_descriptor(
            "bedrock-claude", "bedrock", "Claude on Bedrock", settings.bedrock_model_id,
            0.001, 4096, 200000, ("aws",),
        )
        adapter = BedrockChatAdapter(
            settings.bedrock_model_id, settings.bedrock_region, get_bedrock_runnable
        )
        entries.append(RegisteredProvider(descriptor, adapter))
    return entries


def _payment_providers(settings: GatewaySettings) -> list[RegisteredProvider]:
    entries: list[RegisteredProvider] = []
    # Payment units are minor currency units; cost is the per-1000-unit fee.
    if settings.stripe_secret_key:
        entries.append(
            RegisteredProvider(
                ProviderDescriptor(
                    id="stripe",
                    vendor_name="stripe",
                    capabilities=frozenset({"payment"}),
                    cost_per_unit=0.29,
                    request_limit_window=API_REQUEST_WINDOW,
                    display_name="Stripe",
                ),
                StripePaymentAdapter(settings.stripe_secret_key, get_stripe_client),
            )
        )
    if settings.paypal_client_id and settings.paypal_client_secret:
        entries.append(
            RegisteredProvider(
                ProviderDescriptor(
                    id="paypal",
                    vendor_name="paypal",
                    capabilities=frozenset({"payment"}),
                    cost_per_unit=0.349,
                    request_limit_window=API_REQUEST_WINDOW,
                    display_name="PayPal",
                ),
                PayPalPaymentAdapter(
                    settings.paypal_client_id,
                    settings.paypal_client_secret,
                    settings.paypal_api_url,
                ),
            )
        )
    return entries


def _push_descriptor(
    provider_id: str, vendor_name: str, display_name: str, platform: str
) -> ProviderDescriptor:
    return ProviderDescriptor(
        id=provider_id,
        vendor_name=vendor_name,
        capabilities=frozenset({"push"}),
        cost_per_unit=0.0,
        request_limit_window=PUSH_REQUEST_WINDOW,
        display_name=display_name,
        tags=(platform,),
    )


def _push_providers(settings: GatewaySettings) -> list[RegisteredProvider]:
    entries: list[RegisteredProvider] = []
    if settings.vapid_private_key and settings.vapid_subject:
        entries.append(
            RegisteredProvider(
                _push_descriptor("web-push", "webpush", "Web Push", "web"),
                WebPushAdapter(settings.vapid_private_key, settings.vapid_subject),
            )
        )
    if settings.firebase_service_account:
        entries.append(
            RegisteredProvider(
                _push_descriptor("fcm", "firebase", "Firebase Cloud Messaging", "fcm"),
                FcmPushAdapter(settings.firebase_service_account, get_firebase_app),
            )
        )
    if settings.expo_access_token:
        entries.append(
            RegisteredProvider(
                _push_descriptor("expo", "expo", "Expo Push", "expo"),
                ExpoPushAdapter(settings.expo_access_token),
            )
        )
    return entries


def build_registry(settings: GatewaySettings) -> ProviderRegistry:
    entries = [
        *_chat_providers(settings),
        *_payment_providers(settings),
        *_push_providers(settings),
    ]
    configured = {capability for entry in entries for capability in entry.descriptor.capabilities}
    missing: frozenset[Capability] = frozenset(
        capability
        for capability in CAPABILITIES
        if capability not in configured and capability in settings.null_provider_capabilities
    )
    if missing:
        logger.warning(
            "No vendor configured; registering null provider",
            extra={"capabilities": sorted(missing)},
        )
        entries.append(
            RegisteredProvider(
                ProviderDescriptor(
                    id="null",
                    vendor_name="null",
                    capabilities=missing,
                    cost_per_unit=0.0,
                    request_limit_window=AI_REQUEST_WINDOW,
                    display_name="Offline assistant",
                    tags=("offline",),
                ),
                NullAdapter(),
            )
        )
    return ProviderRegistry(entries)


def build_dispatcher(settings: GatewaySettings, registry: ProviderRegistry) -> Dispatcher:
    if settings.orchestrator == "langgraph":
        return LangGraphDispatcher(registry)
    if settings.orchestrator != "direct":
        logger.warning(
            "Unknown orchestrator; falling back to direct dispatch",
            extra={"orchestrator": settings.orchestrator},
        )
    return DirectDispatcher(registry)
