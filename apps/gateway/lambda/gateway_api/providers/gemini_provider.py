"""Google Gemini provider (google-genai SDK) for chat requests."""

import logging
from collections.abc import Callable
from typing import Any

from google import genai
from langsmith import traceable

from gateway_api.constants import GOOGLE_AI_API_KEY_NAME
from gateway_api.message_mappers import build_gemini_contents
from gateway_api.schemas import ChatRequest

from .base import (
    AdapterRequest,
    ProviderResponse,
    expect_request,
    normalize_vendor_error,
    require_credential,
)

logger = logging.getLogger(__name__)


@traceable(run_type="llm", name="gemini.models.generate_content")
def _generate_content(client: genai.Client, request_params: dict[str, Any]) -> Any:
    return client.models.generate_content(**request_params)


def _finish_reason(response: Any) -> str | None:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    reason = getattr(candidates[0], "finish_reason", None)
    if reason is None:
        return None
    return str(getattr(reason, "value", reason)).lower()


class GeminiChatAdapter:
    vendor = "gemini"

    def __init__(
        self,
        model: str,
        api_key: str | None,
        get_gemini_client: Callable[[str], genai.Client],
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._get_gemini_client = get_gemini_client

    def invoke(self, request: AdapterRequest) -> ProviderResponse:
        chat_request = expect_request(request, ChatRequest, self.vendor)
        api_key = require_credential(self._api_key, GOOGLE_AI_API_KEY_NAME, "Gemini")

        system_prompt, contents = build_gemini_contents(chat_request.messages)
        config: dict[str, Any] = {
            "temperature": chat_request.temperature,
            "max_output_tokens": chat_request.max_tokens,
        }
        if system_prompt:
            config["system_instruction"] = system_prompt

        try:
            response = _generate_content(
                self._get_gemini_client(api_key),
                {"model": self._model, "contents": contents, "config": config},
            )
        except Exception as exc:
            raise normalize_vendor_error(exc, self.vendor) from exc

        content = getattr(response, "text", "") or ""
        usage = getattr(response, "usage_metadata", None)
        input_tokens = int(getattr(usage, "prompt_token_count", 0) or 0) if usage else 0
        output_tokens = int(getattr(usage, "candidates_token_count", 0) or 0) if usage else 0

        logger.info(
            "Chat response generated",
            extra={
                "vendor": self.vendor,
                "model": self._model,
                "usage_prompt_tokens": input_tokens,
                "usage_completion_tokens": output_tokens,
                "response_length": len(content),
            },
        )
        return ProviderResponse(
            payload={
                "content": content,
                "role": "assistant",
                "finishReason": _finish_reason(response) or "stop",
                "model": self._model,
                "responseId": getattr(response, "response_id", None),
            },
            input_units=input_tokens,
            output_units=output_tokens,
        )
