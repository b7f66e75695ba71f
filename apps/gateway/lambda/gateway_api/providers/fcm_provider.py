"""Firebase Cloud Messaging provider for push sends."""

import logging
from collections.abc import Callable
from typing import Any

import firebase_admin
from firebase_admin import messaging

from gateway_api.constants import FIREBASE_SERVICE_ACCOUNT_NAME
from gateway_api.schemas import PushSendRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    normalize_vendor_error,
    require_credential,
)
from .push_common import delivered_response, expired_target_response, extract_fcm_token

logger = logging.getLogger(__name__)


def build_fcm_message(push: PushSendRequest) -> messaging.Message:
    return messaging.Message(
        token=extract_fcm_token(push.target_token),
        notification=messaging.Notification(title=push.title, body=push.body),
        data=dict(push.data),
        android=messaging.AndroidConfig(
            priority="high",
            notification=messaging.AndroidNotification(sound="default"),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(aps=messaging.Aps(sound="default")),
        ),
    )


class FcmPushAdapter:
    vendor = "fcm"

    def __init__(
        self,
        service_account: str | None,
        get_firebase_app: Callable[[str], firebase_admin.App],
        send: Callable[..., Any] = messaging.send,
    ) -> None:
        self._service_account = service_account
        self._get_firebase_app = get_firebase_app
        self._send = send

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        push = expect_request(request, PushSendRequest, self.vendor)
        service_account = require_credential(
            self._service_account, FIREBASE_SERVICE_ACCOUNT_NAME, "Firebase"
        )

        message = build_fcm_message(push)
        try:
            message_id = self._send(message, app=self._get_firebase_app(service_account))
        except messaging.UnregisteredError:
            logger.info("FCM registration token is no longer valid", extra={"vendor": self.vendor})
            return expired_target_response("fcm", "registration_token_not_registered")
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        logger.info("FCM message sent", extra={"vendor": self.vendor, "message_id": message_id})
        return delivered_response("fcm", message_id, "success")
