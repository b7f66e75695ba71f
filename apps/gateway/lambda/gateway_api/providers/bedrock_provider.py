"""Bedrock provider implementation for chat requests."""

import logging
from collections.abc import Callable
from typing import Any

from langchain_core.messages import AIMessage
from langchain_core.runnables import Runnable

from gateway_api.constants import BEDROCK_REGION_NAME
from gateway_api.message_mappers import build_bedrock_messages
from gateway_api.schemas import ChatRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    normalize_vendor_error,
    require_credential,
)

logger = logging.getLogger(__name__)


class BedrockChatAdapter:
    vendor = "bedrock"

    def __init__(
        self,
        model: str,
        region: str | None,
        get_bedrock_runnable: Callable[[], Runnable[dict[str, Any], AIMessage]],
    ) -> None:
        self._model = model
        self._region = region
        self._get_bedrock_runnable = get_bedrock_runnable

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        chat_request = expect_request(request, ChatRequest, self.vendor)
        region = require_credential(self._region, BEDROCK_REGION_NAME, "Bedrock")

        params: dict[str, Any] = {
            "model_id": self._model,
            "region_name": region,
            "messages": build_bedrock_messages(chat_request.messages),
            "max_tokens": chat_request.max_tokens,
            "temperature": chat_request.temperature,
        }
        try:
            response = self._get_bedrock_runnable().invoke(
                params,
                config={
                    "run_name": "gateway_chat_request",
                    "tags": ["provider-gateway", self._model],
                    "metadata": {"message_count": len(chat_request.messages)},
                },
            )
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        content = ""
        if isinstance(response.content, str):
            content = response.content
        elif isinstance(response.content, list):
            content = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in response.content
            )

        usage = response.usage_metadata
        input_tokens = usage.get("input_tokens", 0) if usage else 0
        output_tokens = usage.get("output_tokens", 0) if usage else 0

        response_metadata = response.response_metadata or {}
        request_id = (
            response_metadata.get("ResponseMetadata", {}).get("RequestId", "") or response.id or ""
        )

        logger.info(
            "Chat response generated",
            extra={
                "vendor": self.vendor,
                "model": self._model,
                "usage_prompt_tokens": input_tokens,
                "usage_completion_tokens": output_tokens,
                "response_length": len(content),
                "response_id": request_id,
            },
        )
        return ProviderResponse(
            payload={
                "content": content,
                "role": "assistant",
                "finishReason": response_metadata.get("stopReason"),
                "model": self._model,
                "responseId": request_id,
            },
            input_units=input_tokens,
            output_units=output_tokens,
        )
