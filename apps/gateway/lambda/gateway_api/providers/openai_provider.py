"""OpenAI provider implementation for chat requests."""

import logging
from collections.abc import Callable
from typing import Any

from langsmith import traceable
from openai import OpenAI

from gateway_api.constants import OPENAI_API_KEY_NAME
from gateway_api.errors import VendorError
from gateway_api.message_mappers import build_openai_messages
from gateway_api.schemas import ChatRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    normalize_vendor_error,
    require_credential,
)

logger = logging.getLogger(__name__)


@traceable(run_type="llm", name="openai.chat.completions.create")
def _create_chat_completion(client: OpenAI, request_params: dict[str, Any]) -> Any:
    return client.chat.completions.create(**request_params)


class OpenAIChatAdapter:
    vendor = "openai"

    def __init__(
        self,
        model: str,
        api_key: str | None,
        get_openai_client: Callable[[str], OpenAI],
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._get_openai_client = get_openai_client

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        chat_request = expect_request(request, ChatRequest, self.vendor)
        api_key = require_credential(self._api_key, OPENAI_API_KEY_NAME, "OpenAI")

        request_params: dict[str, Any] = {
            "model": self._model,
            "messages": build_openai_messages(chat_request.messages),
            "temperature": chat_request.temperature,
            "max_tokens": chat_request.max_tokens,
        }
        try:
            completion = _create_chat_completion(self._get_openai_client(api_key), request_params)
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        if not completion.choices:
            raise VendorError("openai response did not include any choices")
        choice = completion.choices[0]
        content = choice.message.content or ""
        usage = completion.usage
        input_tokens = (usage.prompt_tokens or 0) if usage else 0
        output_tokens = (usage.completion_tokens or 0) if usage else 0

        logger.info(
            "Chat response generated",
            extra={
                "vendor": self.vendor,
                "model": completion.model,
                "usage_prompt_tokens": input_tokens,
                "usage_completion_tokens": output_tokens,
                "response_length": len(content),
                "response_id": completion.id,
            },
        )
        return ProviderResponse(
            payload={
                "content": content,
                "role": choice.message.role or "assistant",
                "finishReason": choice.finish_reason,
                "model": completion.model,
                "responseId": completion.id,
            },
            input_units=input_tokens,
            output_units=output_tokens,
        )
