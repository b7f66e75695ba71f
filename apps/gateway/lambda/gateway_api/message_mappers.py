"""Conversion helpers between canonical chat messages and vendor-specific formats."""

from typing import Any

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from .schemas import ChatMessage


def split_system_prompt(messages: list[ChatMessage]) -> tuple[str | None, list[ChatMessage]]:
    """Pull system messages out for vendors that take the prompt as a separate field."""
    system_parts = [message.content for message in messages if message.role == "system"]
    conversation = [message for message in messages if message.role != "system"]
    system_prompt = "\n\n".join(part for part in system_parts if part.strip()) or None
    return system_prompt, conversation


def build_openai_messages(messages: list[ChatMessage]) -> list[dict[str, str]]:
    return [{"role": message.role, "content": message.content} for message in messages]


def build_anthropic_messages(
    messages: list[ChatMessage],
) -> tuple[str | None, list[dict[str, str]]]:
    system_prompt, conversation = split_system_prompt(messages)
    return system_prompt, [
        {"role": "assistant" if message.role == "assistant" else "user", "content": message.content}
        for message in conversation
    ]


def build_gemini_contents(
    messages: list[ChatMessage],
) -> tuple[str | None, list[dict[str, Any]]]:
    """Gemini names the assistant role ``model`` and wraps text in ``parts``."""
    system_prompt, conversation = split_system_prompt(messages)
    contents = [
        {
            "role": "model" if message.role == "assistant" else "user",
            "parts": [{"text": message.content}],
        }
        for message in conversation
    ]
    return system_prompt, contents


def build_bedrock_messages(
    messages: list[ChatMessage],
) -> list[SystemMessage | HumanMessage | AIMessage]:
    """Convert canonical messages to LangChain message format for Bedrock."""
    system_prompt, conversation = split_system_prompt(messages)
    lc_messages: list[SystemMessage | HumanMessage | AIMessage] = []

    if system_prompt:
        lc_messages.append(SystemMessage(content=system_prompt))

    for message in conversation:
        if message.role == "assistant":
            lc_messages.append(AIMessage(content=message.content))
        else:
            lc_messages.append(HumanMessage(content=message.content))

    return lc_messages
