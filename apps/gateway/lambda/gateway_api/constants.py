"""Shared constants and literal types for the provider gateway Lambda."""

from typing import Literal

AWS_REGION = "ap-northeast-1"
LANGSMITH_PROJECT = "provider-gateway"

Capability = Literal["chat", "payment", "push"]
CAPABILITIES: tuple[Capability, ...] = ("chat", "payment", "push")

ErrorKind = Literal[
    "configuration",
    "vendor",
    "rate_limited",
    "auth",
    "unknown",
    "unknown_provider",
    "invalid_request",
]

SubscriptionTier = Literal["free", "pro", "business", "enterprise"]
DAILY_AI_REQUEST_LIMITS: dict[str, int] = {
    "free": 50,
    "pro": 1000,
    "business": 10000,
    "enterprise": 100000,
}
DAILY_QUOTA_WINDOW_SECONDS = 24 * 60 * 60

DEFAULT_RETRY_AFTER_MS = 60_000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000
CHARS_PER_TOKEN = 4
CONTEXT_TURNS = 5

# Env var names; a provider is enabled only when its credentials resolve.
OPENAI_API_KEY_NAME = "OPENAI_API_KEY"
ANTHROPIC_API_KEY_NAME = "ANTHROPIC_API_KEY"
GOOGLE_AI_API_KEY_NAME = "GOOGLE_AI_API_KEY"
BEDROCK_REGION_NAME = "BEDROCK_REGION"
BEDROCK_MODEL_ID_NAME = "BEDROCK_MODEL_ID"
STRIPE_SECRET_KEY_NAME = "STRIPE_SECRET_KEY"
PAYPAL_CLIENT_ID_NAME = "PAYPAL_CLIENT_ID"
PAYPAL_CLIENT_SECRET_NAME = "PAYPAL_CLIENT_SECRET"
PAYPAL_API_URL_NAME = "PAYPAL_API_URL"
VAPID_PRIVATE_KEY_NAME = "VAPID_PRIVATE_KEY"
VAPID_SUBJECT_NAME = "VAPID_SUBJECT"
FIREBASE_SERVICE_ACCOUNT_NAME = "FIREBASE_SERVICE_ACCOUNT"
EXPO_ACCESS_TOKEN_NAME = "EXPO_ACCESS_TOKEN"
LANGSMITH_API_KEY_NAME = "LANGSMITH_API_KEY"
SSM_PREFIX_NAME = "GATEWAY_SSM_PREFIX"
GATEWAY_ENV_NAME = "GATEWAY_ENV"
ORCHESTRATOR_NAME = "GATEWAY_ORCHESTRATOR"
NULL_PROVIDER_CAPABILITIES_NAME = "GATEWAY_NULL_PROVIDER_CAPABILITIES"

DEFAULT_BEDROCK_MODEL_ID = "global.anthropic.claude-haiku-4-5-20251001-v1:0"
DEFAULT_PAYPAL_API_URL = "https://api-m.sandbox.paypal.com"
EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"
PAYPAL_TIMEOUT_SECONDS = 30
EXPO_TIMEOUT_SECONDS = 30
WEB_PUSH_TTL_SECONDS = 24 * 60 * 60

PLAN_MONTHLY_PRICES: dict[str, float] = {
    "pro": 14.99,
    "business": 29.00,
}
DEFAULT_CURRENCY = "usd"
