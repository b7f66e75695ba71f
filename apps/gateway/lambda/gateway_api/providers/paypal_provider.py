"""PayPal Orders API provider for payment charges."""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from gateway_api.constants import (
    PAYPAL_CLIENT_ID_NAME,
    PAYPAL_CLIENT_SECRET_NAME,
    PAYPAL_TIMEOUT_SECONDS,
)
from gateway_api.errors import VendorError
from gateway_api.schemas import PaymentChargeRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    json_object,
    normalize_vendor_error,
    require_credential,
)

logger = logging.getLogger(__name__)


def _default_http_client() -> httpx.Client:
    return httpx.Client(timeout=PAYPAL_TIMEOUT_SECONDS)


class PayPalPaymentAdapter:
    vendor = "paypal"

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        api_url: str,
        http_client_factory: Callable[[], httpx.Client] = _default_http_client,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._api_url = api_url.rstrip("/")
        self._http_client_factory = http_client_factory

    def _access_token(self, client: httpx.Client, client_id: str, client_secret: str) -> str:
        response = client.post(
            f"{self._api_url}/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(client_id, client_secret),
        )
        response.raise_for_status()
        token = json_object(response, self.vendor).get("access_token")
        if not token:
            raise VendorError("paypal token response did not include access_token")
        return token

    def _create_order(
        self, client: httpx.Client, token: str, charge: PaymentChargeRequest
    ) -> dict[str, Any]:
        purchase_unit: dict[str, Any] = {
            "reference_id": charge.customer_ref,
            "amount": {
                "currency_code": charge.currency.upper(),
                "value": f"{charge.amount:.2f}",
            },
        }
        if charge.description:
            purchase_unit["description"] = charge.description
        if charge.metadata:
            purchase_unit["custom_id"] = ",".join(
                f"{key}={value}" for key, value in sorted(charge.metadata.items())
            )[:127]

        response = client.post(
            f"{self._api_url}/v2/checkout/orders",
            json={"intent": "CAPTURE", "purchase_units": [purchase_unit]},
            headers={"Authorization": f"Bearer {token}"},
        )
        response.raise_for_status()
        return json_object(response, self.vendor)

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        charge = expect_request(request, PaymentChargeRequest, self.vendor)
        client_id = require_credential(self._client_id, PAYPAL_CLIENT_ID_NAME, "PayPal")
        client_secret = require_credential(
            self._client_secret, PAYPAL_CLIENT_SECRET_NAME, "PayPal"
        )

        try:
            with self._http_client_factory() as client:
                token = self._access_token(client, client_id, client_secret)
                order = self._create_order(client, token, charge)
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        order_id = order.get("id")
        if not order_id:
            raise VendorError("paypal order response did not include an id")
        approval_url = next(
            (
                link.get("href")
                for link in order.get("links") or []
                if isinstance(link, dict) and link.get("rel") == "approve"
            ),
            None,
        )
        status = str(order.get("status", "")).lower()

        logger.info(
            "PayPal order created",
            extra={"vendor": self.vendor, "order_id": order_id, "status": status},
        )
        return ProviderResponse(
            payload={
                "chargeId": order_id,
                "status": status,
                "amount": charge.amount,
                "currency": charge.currency,
                "approvalUrl": approval_url,
            },
            input_units=charge.amount_minor_units(),
        )
