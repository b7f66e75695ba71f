"""Credential-free stand-in adapter with deterministic, side-effect-free results.

Registered for a capability only when no real vendor is configured for it, so
local development and tests exercise the same dispatch path as production.
"""

import hashlib
import logging
import re

from gateway_api.schemas import ChatRequest, PaymentChargeRequest, PushSendRequest
from gateway_api.usage import estimate_tokens

from .base import AdapterRequest, ProviderResponse

logger = logging.getLogger(__name__)

ASSISTANT_NAME = "OmniMind"
GREETING_PATTERN = re.compile(r"\b(hello|hi|hey)\b")


def _fingerprint(request: AdapterRequest) -> str:
    return hashlib.sha256(request.model_dump_json().encode("utf-8")).hexdigest()[:24]


def canned_chat_reply(message: str) -> str:
    lower = message.lower()
    if GREETING_PATTERN.search(lower):
        return (
            f"Hello! I'm {ASSISTANT_NAME}, your AI productivity assistant. "
            "How can I help you today?"
        )
    if "analy" in lower or "risk" in lower:
        return (
            "Project analysis summary: review overdue and unassigned tasks first, confirm the "
            "due date is still realistic, and rebalance high-priority work across the team."
        )
    if "project" in lower and "create" in lower:
        return (
            "I can help you create a new project! Go to the Projects page and click "
            '"New Project". You will need a title, an optional description, start and due '
            "dates, and a priority level."
        )
    if "task" in lower:
        return (
            "To stay on top of your tasks, break large items into smaller steps, give each "
            "one an owner and a due date, and review overdue work first."
        )
    if "schedule" in lower or "calendar" in lower:
        return (
            "For a productive schedule, block focus time in the morning, group meetings "
            "together, and leave short breaks between deep-work sessions."
        )
    return (
        f"I'm {ASSISTANT_NAME}. I can help with projects, tasks, and schedules. "
        "Could you tell me a bit more about what you need?"
    )


class NullAdapter:
    vendor = "null"

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        fingerprint = _fingerprint(request)
        logger.info(
            "Null provider invoked",
            extra={"vendor": self.vendor, "request_kind": request.kind},
        )

        if isinstance(request, ChatRequest):
            last_user_message = next(
                (m.content for m in reversed(request.messages) if m.role == "user"), ""
            )
            content = canned_chat_reply(last_user_message)
            prompt = "".join(message.content for message in request.messages)
            return ProviderResponse(
                payload={
                    "content": content,
                    "role": "assistant",
                    "finishReason": "stop",
                    "model": "null",
                    "responseId": f"null_{fingerprint}",
                },
                input_units=estimate_tokens(prompt),
                output_units=estimate_tokens(content),
            )

        if isinstance(request, PaymentChargeRequest):
            return ProviderResponse(
                payload={
                    "chargeId": f"null_{fingerprint}",
                    "status": "requires_payment_method",
                    "amount": request.amount,
                    "currency": request.currency,
                    "clientSecret": None,
                },
                input_units=request.amount_minor_units(),
            )

        if isinstance(request, PushSendRequest):
            return ProviderResponse(
                payload={
                    "delivered": True,
                    "platform": "null",
                    "messageId": f"null_{fingerprint}",
                    "status": "accepted",
                    "shouldRemove": False,
                },
                input_units=1,
            )

        raise TypeError(f"Unsupported request type: {type(request).__name__}")
