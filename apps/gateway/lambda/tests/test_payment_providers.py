import json
import unittest
from types import SimpleNamespace
from unittest.mock import Mock

import httpx
import stripe

from gateway_api.errors import AuthError, ConfigurationError, RateLimitedError, VendorError
from gateway_api.providers.paypal_provider import PayPalPaymentAdapter
from gateway_api.providers.stripe_provider import StripePaymentAdapter
from gateway_api.schemas import PaymentChargeRequest

PAYPAL_URL = "https://api-m.sandbox.paypal.com"


class StripePaymentAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.request = PaymentChargeRequest(
            amount=29.99,
            currency="USD",
            customerRef="cus_123",
            description="Pro plan",
            metadata={"plan": "pro"},
        )
        self.client = Mock()
        self.get_client = Mock(return_value=self.client)

    def test_invoke_creates_payment_intent_in_minor_units(self) -> None:
        self.client.payment_intents.create.return_value = SimpleNamespace(
            id="pi_1",
            status="requires_payment_method",
            amount=2999,
            currency="usd",
            client_secret="pi_1_secret",
        )
        adapter = StripePaymentAdapter("sk_test", self.get_client)

        response = adapter.invoke(self.request)

        self.get_client.assert_called_once_with("sk_test")
        params = self.client.payment_intents.create.call_args.kwargs["params"]
        self.assertEqual(params["amount"], 2999)
        self.assertEqual(params["currency"], "usd")
        self.assertEqual(params["customer"], "cus_123")
        self.assertEqual(params["description"], "Pro plan")
        self.assertEqual(params["metadata"], {"plan": "pro"})
        self.assertEqual(response.payload["chargeId"], "pi_1")
        self.assertEqual(response.payload["amount"], 29.99)
        self.assertEqual(response.payload["clientSecret"], "pi_1_secret")
        self.assertEqual(response.input_units, 2999)

    def test_missing_secret_key_raises_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            StripePaymentAdapter(None, self.get_client).invoke(self.request)

    def test_stripe_rate_limit_maps_to_rate_limited_error(self) -> None:
        self.client.payment_intents.create.side_effect = stripe.RateLimitError(
            "Too many requests", http_status=429, headers={"Retry-After": "2"}
        )

        with self.assertRaises(RateLimitedError) as context:
            StripePaymentAdapter("sk_test", self.get_client).invoke(self.request)

        self.assertEqual(context.exception.retry_after_ms, 2000)

    def test_stripe_authentication_error_maps_to_auth_error(self) -> None:
        self.client.payment_intents.create.side_effect = stripe.AuthenticationError(
            "Invalid API Key provided", http_status=401
        )

        with self.assertRaises(AuthError):
            StripePaymentAdapter("sk_test", self.get_client).invoke(self.request)


class PayPalPaymentAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.request = PaymentChargeRequest(amount=14.99, customerRef="user-1", description="Pro")
        self.requests: list[httpx.Request] = []

    def _adapter(self, handler) -> PayPalPaymentAdapter:
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        return PayPalPaymentAdapter(
            "client-id",
            "client-secret",
            PAYPAL_URL,
            http_client_factory=lambda: httpx.Client(transport=httpx.MockTransport(record)),
        )

    def test_invoke_fetches_token_then_creates_order(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/oauth2/token":
                return httpx.Response(200, json={"access_token": "A21AA"})
            return httpx.Response(
                201,
                json={
                    "id": "ORDER-1",
                    "status": "CREATED",
                    "links": [
                        {"rel": "self", "href": f"{PAYPAL_URL}/v2/checkout/orders/ORDER-1"},
                        {"rel": "approve", "href": "https://www.paypal.com/checkoutnow?token=1"},
                    ],
                },
            )

        response = self._adapter(handler).invoke(self.request)

        token_request, order_request = self.requests
        self.assertTrue(token_request.headers["Authorization"].startswith("Basic "))
        self.assertEqual(order_request.headers["Authorization"], "Bearer A21AA")
        order_body = json.loads(order_request.content)
        self.assertEqual(order_body["intent"], "CAPTURE")
        self.assertEqual(
            order_body["purchase_units"][0]["amount"], {"currency_code": "USD", "value": "14.99"}
        )
        self.assertEqual(response.payload["chargeId"], "ORDER-1")
        self.assertEqual(response.payload["status"], "created")
        self.assertEqual(
            response.payload["approvalUrl"], "https://www.paypal.com/checkoutnow?token=1"
        )
        self.assertEqual(response.input_units, 1499)

    def test_throttled_token_request_maps_to_rate_limited_error(self) -> None:
        adapter = self._adapter(
            lambda request: httpx.Response(429, headers={"Retry-After": "5"}, json={})
        )

        with self.assertRaises(RateLimitedError) as context:
            adapter.invoke(self.request)

        self.assertEqual(context.exception.retry_after_ms, 5000)
        self.assertEqual(len(self.requests), 1)

    def test_server_error_maps_to_vendor_error(self) -> None:
        adapter = self._adapter(lambda request: httpx.Response(503, json={}))

        with self.assertRaises(VendorError) as context:
            adapter.invoke(self.request)

        self.assertEqual(context.exception.error_kind, "vendor")
        self.assertEqual(context.exception.status_code, 503)

    def test_non_object_order_body_maps_to_vendor_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/oauth2/token":
                return httpx.Response(200, json={"access_token": "A21AA"})
            return httpx.Response(201, json=["ORDER-1"])

        with self.assertRaises(VendorError) as context:
            self._adapter(handler).invoke(self.request)

        self.assertIn("unexpected response body", str(context.exception))

    def test_missing_credentials_raise_before_any_request(self) -> None:
        adapter = PayPalPaymentAdapter(None, "secret", PAYPAL_URL)

        with self.assertRaises(ConfigurationError):
            adapter.invoke(self.request)


if __name__ == "__main__":
    unittest.main()
