"""Application service for subscription charges."""

import logging

from gateway_api.constants import PLAN_MONTHLY_PRICES
from gateway_api.orchestration.base import Dispatcher
from gateway_api.schemas import (
    CallerIdentity,
    CanonicalResult,
    PaymentChargeRequest,
    SubscriptionBody,
)

logger = logging.getLogger(__name__)


def plan_amount(plan: str, seats: int) -> float:
    return round(PLAN_MONTHLY_PRICES[plan] * seats, 2)


class BillingService:
    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    def subscribe(self, caller: CallerIdentity, body: SubscriptionBody) -> CanonicalResult:
        amount = plan_amount(body.plan, body.seats)
        logger.info(
            "Subscription charge requested",
            extra={"user_id": caller.user_id, "plan": body.plan, "seats": body.seats},
        )
        request = PaymentChargeRequest(
            amount=amount,
            currency=body.currency,
            customer_ref=body.customer_ref,
            description=f"{body.plan.capitalize()} plan x{body.seats} (monthly)",
            metadata={"userId": caller.user_id, "plan": body.plan, "seats": str(body.seats)},
        )
        return self._dispatcher.dispatch("payment", request, body.provider_id)
