"""Helpers shared by the push adapters."""

import re
from typing import Literal

from .base import ProviderResponse

PushPlatform = Literal["fcm", "expo", "web"]

# Push services answer 404/410 once a subscription or device token is gone.
EXPIRED_STATUS_CODES = frozenset({404, 410})

FCM_ENDPOINT_PATTERN = re.compile(r"fcm/send/(?P<token>.+)$")
EXPO_ENDPOINT_PATTERN = re.compile(r"/push/v2/exponent/push/(?P<token>.+)$")
EXPO_TOKEN_PATTERN = re.compile(r"^Expo(nent)?PushToken\[.+\]$")


def detect_push_platform(target: str) -> PushPlatform:
    if "fcm.googleapis.com" in target:
        return "fcm"
    if "exp.host" in target or "expo.io" in target or EXPO_TOKEN_PATTERN.match(target):
        return "expo"
    if target.startswith(("http://", "https://")):
        return "web"
    # Bare registration tokens come from the native FCM SDKs.
    return "fcm"


def extract_fcm_token(target: str) -> str:
    match = FCM_ENDPOINT_PATTERN.search(target)
    return match.group("token") if match else target


def extract_expo_token(target: str) -> str:
    match = EXPO_ENDPOINT_PATTERN.search(target)
    return match.group("token") if match else target


def delivered_response(
    platform: PushPlatform, message_id: str | None, status: str
) -> ProviderResponse:
    return ProviderResponse(
        payload={
            "delivered": True,
            "platform": platform,
            "messageId": message_id,
            "status": status,
            "shouldRemove": False,
        },
        input_units=1,
    )


def expired_target_response(platform: PushPlatform, reason: str) -> ProviderResponse:
    return ProviderResponse(
        payload={
            "delivered": False,
            "platform": platform,
            "messageId": None,
            "status": "expired",
            "shouldRemove": True,
            "reason": reason,
        },
        input_units=1,
    )
