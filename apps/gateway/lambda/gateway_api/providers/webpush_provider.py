"""Browser Web Push (VAPID) provider for push sends."""

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from pywebpush import WebPushException, webpush

from gateway_api.constants import VAPID_PRIVATE_KEY_NAME, VAPID_SUBJECT_NAME, WEB_PUSH_TTL_SECONDS
from gateway_api.errors import BadRequestError
from gateway_api.schemas import PushSendRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    normalize_vendor_error,
    require_credential,
    vendor_status_code,
)
from .push_common import EXPIRED_STATUS_CODES, delivered_response, expired_target_response

logger = logging.getLogger(__name__)


class WebPushAdapter:
    vendor = "webpush"

    def __init__(
        self,
        vapid_private_key: str | None,
        vapid_subject: str | None,
        send: Callable[..., Any] = webpush,
        ttl_seconds: int = WEB_PUSH_TTL_SECONDS,
    ) -> None:
        self._vapid_private_key = vapid_private_key
        self._vapid_subject = vapid_subject
        self._send = send
        self._ttl_seconds = ttl_seconds

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        push = expect_request(request, PushSendRequest, self.vendor)
        private_key = require_credential(
            self._vapid_private_key, VAPID_PRIVATE_KEY_NAME, "Web Push"
        )
        subject = require_credential(self._vapid_subject, VAPID_SUBJECT_NAME, "Web Push")

        keys = push.target_keys or {}
        if not keys.get("p256dh") or not keys.get("auth"):
            raise BadRequestError("Web push subscriptions require p256dh and auth keys")

        data = json.dumps(
            {
                "title": push.title,
                "body": push.body,
                "data": push.data,
                "timestamp": int(time.time() * 1000),
            }
        )
        try:
            response = self._send(
                subscription_info={
                    "endpoint": push.target_token,
                    "keys": {"p256dh": keys["p256dh"], "auth": keys["auth"]},
                },
                data=data,
                vapid_private_key=private_key,
                vapid_claims={"sub": subject},
                ttl=self._ttl_seconds,
            )
        except WebPushException as exc:
            if vendor_status_code(exc) in EXPIRED_STATUS_CODES:
                logger.info("Web push subscription expired", extra={"vendor": self.vendor})
                return expired_target_response("web", "subscription_expired")
            raise normalize_vendor_error(exc, self.vendor) from exc
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        headers = getattr(response, "headers", None) or {}
        status_code = getattr(response, "status_code", None)
        logger.info(
            "Web push sent",
            extra={"vendor": self.vendor, "status_code": status_code},
        )
        return delivered_response("web", headers.get("location"), str(status_code or "sent"))
