"""Stripe PaymentIntent provider for payment charges."""

import logging
from collections.abc import Callable
from typing import Any

import stripe

from gateway_api.constants import STRIPE_SECRET_KEY_NAME
from gateway_api.schemas import PaymentChargeRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    normalize_vendor_error,
    require_credential,
)

logger = logging.getLogger(__name__)


class StripePaymentAdapter:
    vendor = "stripe"

    def __init__(
        self,
        api_key: str | None,
        get_stripe_client: Callable[[str], stripe.StripeClient],
    ) -> None:
        self._api_key = api_key
        self._get_stripe_client = get_stripe_client

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        charge = expect_request(request, PaymentChargeRequest, self.vendor)
        api_key = require_credential(self._api_key, STRIPE_SECRET_KEY_NAME, "Stripe")

        amount_minor = charge.amount_minor_units()
        params: dict[str, Any] = {
            "amount": amount_minor,
            "currency": charge.currency,
            "customer": charge.customer_ref,
            "automatic_payment_methods": {"enabled": True},
            "metadata": dict(charge.metadata),
        }
        if charge.description:
            params["description"] = charge.description

        try:
            intent = self._get_stripe_client(api_key).payment_intents.create(params=params)
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        logger.info(
            "Payment intent created",
            extra={
                "vendor": self.vendor,
                "payment_intent_id": intent.id,
                "status": intent.status,
                "amount_minor": intent.amount,
                "currency": intent.currency,
            },
        )
        return ProviderResponse(
            payload={
                "chargeId": intent.id,
                "status": intent.status,
                "amount": intent.amount / 100,
                "currency": intent.currency,
                "clientSecret": intent.client_secret,
            },
            input_units=amount_minor,
        )
