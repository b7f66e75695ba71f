"""Expo push service provider for push sends."""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from gateway_api.constants import EXPO_ACCESS_TOKEN_NAME, EXPO_PUSH_URL, EXPO_TIMEOUT_SECONDS
from gateway_api.errors import BadRequestError, VendorError
from gateway_api.schemas import PushSendRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    json_object,
    normalize_vendor_error,
    require_credential,
)
from .push_common import (
    EXPO_TOKEN_PATTERN,
    delivered_response,
    expired_target_response,
    extract_expo_token,
)

logger = logging.getLogger(__name__)


def _default_http_client() -> httpx.Client:
    return httpx.Client(timeout=EXPO_TIMEOUT_SECONDS)


class _ExpoTicketError(Exception):
    def __init__(self, message: str, details: dict[str, Any]) -> None:
        super().__init__(message)
        self.code = str(details.get("error", ""))


class ExpoPushAdapter:
    vendor = "expo"

    def __init__(
        self,
        access_token: str | None,
        http_client_factory: Callable[[], httpx.Client] = _default_http_client,
        push_url: str = EXPO_PUSH_URL,
    ) -> None:
        self._access_token = access_token
        self._http_client_factory = http_client_factory
        self._push_url = push_url

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        push = expect_request(request, PushSendRequest, self.vendor)
        access_token = require_credential(self._access_token, EXPO_ACCESS_TOKEN_NAME, "Expo")

        token = extract_expo_token(push.target_token)
        if not EXPO_TOKEN_PATTERN.match(token):
            raise BadRequestError("Invalid Expo push token")

        message: dict[str, Any] = {
            "to": token,
            "title": push.title,
            "body": push.body,
            "data": push.data,
            "sound": "default",
            "priority": "high",
        }
        try:
            with self._http_client_factory() as client:
                response = client.post(
                    self._push_url,
                    json=[message],
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
                response.raise_for_status()
                body = json_object(response, self.vendor)
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        tickets = body.get("data") or []
        if isinstance(tickets, dict):
            tickets = [tickets]
        if not isinstance(tickets, list) or not tickets or not isinstance(tickets[0], dict):
            raise VendorError("expo push response did not include a ticket")
        ticket = tickets[0]

        if ticket.get("status") == "error":
            details = ticket.get("details") or {}
            if details.get("error") == "DeviceNotRegistered":
                logger.info("Expo device is no longer registered", extra={"vendor": self.vendor})
                return expired_target_response("expo", "device_not_registered")
            raise normalize_vendor_error(
                _ExpoTicketError(ticket.get("message", "push ticket error"), details),
                self.vendor,
            )

        logger.info("Expo push sent", extra={"vendor": self.vendor, "ticket_id": ticket.get("id")})
        return delivered_response("expo", ticket.get("id"), ticket.get("status", "ok"))
