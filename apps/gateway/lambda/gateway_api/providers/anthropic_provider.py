"""Anthropic Messages API provider for chat requests."""

import logging
from collections.abc import Callable
from typing import Any

from anthropic import Anthropic
from langsmith import traceable

from gateway_api.constants import ANTHROPIC_API_KEY_NAME
from gateway_api.message_mappers import build_anthropic_messages
from gateway_api.schemas import ChatRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    normalize_vendor_error,
    require_credential,
)

logger = logging.getLogger(__name__)


@traceable(run_type="llm", name="anthropic.messages.create")
def _create_message(client: Anthropic, request_params: dict[str, Any]) -> Any:
    return client.messages.create(**request_params)


class AnthropicChatAdapter:
    vendor = "anthropic"

    def __init__(
        self,
        model: str,
        api_key: str | None,
        get_anthropic_client: Callable[[str], Anthropic],
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._get_anthropic_client = get_anthropic_client

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        chat_request = expect_request(request, ChatRequest, self.vendor)
        api_key = require_credential(self._api_key, ANTHROPIC_API_KEY_NAME, "Anthropic")

        system_prompt, messages = build_anthropic_messages(chat_request.messages)
        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "temperature": chat_request.temperature,
            "max_tokens": chat_request.max_tokens,
        }
        if system_prompt:
            request_params["system"] = system_prompt

        try:
            message = _create_message(self._get_anthropic_client(api_key), request_params)
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        # Content is a list of blocks; only text blocks carry the reply.
        content = "".join(
            getattr(block, "text", "") or "" for block in (getattr(message, "content", None) or [])
        )
        usage = getattr(message, "usage", None)
        input_tokens = int(getattr(usage, "input_tokens", 0) or 0) if usage else 0
        output_tokens = int(getattr(usage, "output_tokens", 0) or 0) if usage else 0

        logger.info(
            "Chat response generated",
            extra={
                "vendor": self.vendor,
                "model": self._model,
                "usage_prompt_tokens": input_tokens,
                "usage_completion_tokens": output_tokens,
                "response_length": len(content),
                "response_id": getattr(message, "id", None),
            },
        )
        return ProviderResponse(
            payload={
                "content": content,
                "role": "assistant",
                "finishReason": getattr(message, "stop_reason", None),
                "model": self._model,
                "responseId": getattr(message, "id", None),
            },
            input_units=input_tokens,
            output_units=output_tokens,
        )
