import unittest
from types import SimpleNamespace
from unittest.mock import Mock

import anthropic
import httpx
import openai
from botocore.exceptions import ClientError
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from gateway_api.errors import (
    AuthError,
    BadRequestError,
    ConfigurationError,
    RateLimitedError,
    VendorError,
)
from gateway_api.message_mappers import (
    build_anthropic_messages,
    build_bedrock_messages,
    build_gemini_contents,
)
from gateway_api.providers.anthropic_provider import AnthropicChatAdapter
from gateway_api.providers.bedrock_provider import BedrockChatAdapter
from gateway_api.providers.gemini_provider import GeminiChatAdapter
from gateway_api.providers.openai_provider import OpenAIChatAdapter
from gateway_api.schemas import ChatMessage, ChatRequest, PaymentChargeRequest


def _http_response(status_code: int, headers: dict[str, str] | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers=headers,
        request=httpx.Request("POST", "https://vendor.example.com/v1/chat"),
    )


class MessageMapperTests(unittest.TestCase):
    def setUp(self) -> None:
        self.messages = [
            ChatMessage(role="system", content="be brief"),
            ChatMessage(role="user", content="hi"),
            ChatMessage(role="assistant", content="hello"),
            ChatMessage(role="user", content="plan my day"),
        ]

    def test_anthropic_mapping_moves_system_prompt_out_of_messages(self) -> None:
        system_prompt, messages = build_anthropic_messages(self.messages)

        self.assertEqual(system_prompt, "be brief")
        self.assertEqual([m["role"] for m in messages], ["user", "assistant", "user"])

    def test_gemini_mapping_renames_assistant_to_model(self) -> None:
        system_prompt, contents = build_gemini_contents(self.messages)

        self.assertEqual(system_prompt, "be brief")
        self.assertEqual([c["role"] for c in contents], ["user", "model", "user"])
        self.assertEqual(contents[2]["parts"], [{"text": "plan my day"}])

    def test_bedrock_mapping_uses_langchain_message_types(self) -> None:
        converted = build_bedrock_messages(self.messages)

        self.assertIsInstance(converted[0], SystemMessage)
        self.assertIsInstance(converted[1], HumanMessage)
        self.assertIsInstance(converted[2], AIMessage)
        self.assertEqual(len(converted), 4)


class OpenAIChatAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.request = ChatRequest(
            messages=[
                {"role": "system", "content": "be brief"},
                {"role": "user", "content": "hello"},
            ],
            temperature=0.2,
            maxTokens=256,
        )
        self.client = Mock()
        self.get_client = Mock(return_value=self.client)

    def test_invoke_maps_request_and_normalizes_usage(self) -> None:
        self.client.chat.completions.create.return_value = SimpleNamespace(
            id="chatcmpl_1",
            model="gpt-3.5-turbo",
            choices=[
                SimpleNamespace(
                    message=SimpleNamespace(content="hi there", role="assistant"),
                    finish_reason="stop",
                )
            ],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
        )
        adapter = OpenAIChatAdapter("gpt-3.5-turbo", "sk-test", self.get_client)

        response = adapter.invoke(self.request)

        self.get_client.assert_called_once_with("sk-test")
        params = self.client.chat.completions.create.call_args.kwargs
        self.assertEqual(params["model"], "gpt-3.5-turbo")
        self.assertEqual(params["max_tokens"], 256)
        self.assertEqual(params["temperature"], 0.2)
        self.assertEqual(params["messages"][0], {"role": "system", "content": "be brief"})
        self.assertEqual(response.payload["content"], "hi there")
        self.assertEqual(response.payload["responseId"], "chatcmpl_1")
        self.assertEqual((response.input_units, response.output_units), (12, 3))

    def test_missing_api_key_raises_configuration_error(self) -> None:
        adapter = OpenAIChatAdapter("gpt-3.5-turbo", None, self.get_client)

        with self.assertRaises(ConfigurationError):
            adapter.invoke(self.request)
        self.get_client.assert_not_called()

    def test_wrong_request_kind_raises_bad_request(self) -> None:
        adapter = OpenAIChatAdapter("gpt-3.5-turbo", "sk-test", self.get_client)

        with self.assertRaises(BadRequestError):
            adapter.invoke(PaymentChargeRequest(amount=5, customer_ref="cus_1"))

    def test_rate_limit_error_uses_retry_after_ms_header(self) -> None:
        self.client.chat.completions.create.side_effect = openai.RateLimitError(
            "Too many requests",
            response=_http_response(429, {"retry-after-ms": "1500"}),
            body=None,
        )
        adapter = OpenAIChatAdapter("gpt-3.5-turbo", "sk-test", self.get_client)

        with self.assertRaises(RateLimitedError) as context:
            adapter.invoke(self.request)

        self.assertEqual(context.exception.retry_after_ms, 1500)
        self.assertEqual(context.exception.status_code, 429)

    def test_empty_choices_raise_vendor_error(self) -> None:
        self.client.chat.completions.create.return_value = SimpleNamespace(
            id="chatcmpl_2", model="gpt-4", choices=[], usage=None
        )
        adapter = OpenAIChatAdapter("gpt-4", "sk-test", self.get_client)

        with self.assertRaises(VendorError) as context:
            adapter.invoke(self.request)

        self.assertEqual(context.exception.error_kind, "vendor")


class AnthropicChatAdapterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.request = ChatRequest(
            messages=[
                {"role": "system", "content": "be brief"},
                {"role": "user", "content": "hello"},
            ]
        )
        self.client = Mock()

    def test_invoke_sends_system_separately_and_joins_text_blocks(self) -> None:
        self.client.messages.create.return_value = SimpleNamespace(
            id="msg_1",
            stop_reason="end_turn",
            content=[SimpleNamespace(text="Hello"), SimpleNamespace(text=" world")],
            usage=SimpleNamespace(input_tokens=9, output_tokens=2),
        )
        adapter = AnthropicChatAdapter(
            "claude-3-haiku-20240307", "sk-ant", Mock(return_value=self.client)
        )

        response = adapter.invoke(self.request)

        params = self.client.messages.create.call_args.kwargs
        self.assertEqual(params["system"], "be brief")
        self.assertEqual(params["messages"], [{"role": "user", "content": "hello"}])
        self.assertEqual(response.payload["content"], "Hello world")
        self.assertEqual(response.payload["finishReason"], "end_turn")
        self.assertEqual((response.input_units, response.output_units), (9, 2))

    def test_authentication_error_maps_to_auth_error(self) -> None:
        self.client.messages.create.side_effect = anthropic.AuthenticationError(
            "invalid x-api-key", response=_http_response(401), body=None
        )
        adapter = AnthropicChatAdapter(
            "claude-3-haiku-20240307", "sk-ant", Mock(return_value=self.client)
        )

        with self.assertRaises(AuthError) as context:
            adapter.invoke(self.request)

        self.assertEqual(context.exception.status_code, 401)


class GeminiChatAdapterTests(unittest.TestCase):
    def test_invoke_builds_contents_and_config(self) -> None:
        client = Mock()
        client.models.generate_content.return_value = SimpleNamespace(
            text="Sure.",
            response_id="gem_1",
            candidates=[SimpleNamespace(finish_reason=SimpleNamespace(value="STOP"))],
            usage_metadata=SimpleNamespace(prompt_token_count=7, candidates_token_count=2),
        )
        adapter = GeminiChatAdapter("gemini-pro", "g-key", Mock(return_value=client))
        request = ChatRequest(
            messages=[
                {"role": "system", "content": "be brief"},
                {"role": "user", "content": "hello"},
            ],
            maxTokens=64,
        )

        response = adapter.invoke(request)

        params = client.models.generate_content.call_args.kwargs
        self.assertEqual(params["model"], "gemini-pro")
        self.assertEqual(params["contents"], [{"role": "user", "parts": [{"text": "hello"}]}])
        self.assertEqual(params["config"]["system_instruction"], "be brief")
        self.assertEqual(params["config"]["max_output_tokens"], 64)
        self.assertEqual(response.payload["content"], "Sure.")
        self.assertEqual(response.payload["finishReason"], "stop")
        self.assertEqual((response.input_units, response.output_units), (7, 2))


class BedrockChatAdapterTests(unittest.TestCase):
    def test_invoke_reads_langchain_usage_metadata(self) -> None:
        runnable = Mock()
        runnable.invoke.return_value = AIMessage(
            content=[{"type": "text", "text": "from bedrock"}],
            id="run-1",
            usage_metadata={"input_tokens": 4, "output_tokens": 6, "total_tokens": 10},
            response_metadata={
                "stopReason": "end_turn",
                "ResponseMetadata": {"RequestId": "req-123"},
            },
        )
        adapter = BedrockChatAdapter("model-id", "us-east-1", Mock(return_value=runnable))

        response = adapter.invoke(ChatRequest(messages=[{"role": "user", "content": "hi"}]))

        params = runnable.invoke.call_args.args[0]
        self.assertEqual(params["model_id"], "model-id")
        self.assertEqual(params["region_name"], "us-east-1")
        self.assertEqual(response.payload["content"], "from bedrock")
        self.assertEqual(response.payload["responseId"], "req-123")
        self.assertEqual((response.input_units, response.output_units), (4, 6))

    def test_missing_region_raises_configuration_error(self) -> None:
        adapter = BedrockChatAdapter("model-id", None, Mock())

        with self.assertRaises(ConfigurationError):
            adapter.invoke(ChatRequest(messages=[{"role": "user", "content": "hi"}]))

    def _adapter_raising(
        self, code: str, status: int, headers: dict[str, str]
    ) -> BedrockChatAdapter:
        runnable = Mock()
        runnable.invoke.side_effect = ClientError(
            {
                "Error": {"Code": code, "Message": "denied"},
                "ResponseMetadata": {"HTTPStatusCode": status, "HTTPHeaders": headers},
            },
            "Converse",
        )
        return BedrockChatAdapter("model-id", "us-east-1", Mock(return_value=runnable))

    def test_throttling_client_error_maps_to_rate_limited(self) -> None:
        adapter = self._adapter_raising("ThrottlingException", 429, {"Retry-After": "4"})

        with self.assertRaises(RateLimitedError) as context:
            adapter.invoke(ChatRequest(messages=[{"role": "user", "content": "hi"}]))

        self.assertEqual(context.exception.error_kind, "rate_limited")
        self.assertEqual(context.exception.retry_after_ms, 4000)

    def test_throttling_code_without_status_still_maps_to_rate_limited(self) -> None:
        adapter = self._adapter_raising("ServiceQuotaExceededException", 400, {})

        with self.assertRaises(RateLimitedError) as context:
            adapter.invoke(ChatRequest(messages=[{"role": "user", "content": "hi"}]))

        self.assertEqual(context.exception.retry_after_ms, 60_000)

    def test_access_denied_client_error_maps_to_auth(self) -> None:
        adapter = self._adapter_raising("AccessDeniedException", 403, {})

        with self.assertRaises(AuthError) as context:
            adapter.invoke(ChatRequest(messages=[{"role": "user", "content": "hi"}]))

        self.assertEqual(context.exception.status_code, 403)


if __name__ == "__main__":
    unittest.main()
