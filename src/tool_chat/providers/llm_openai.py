from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import openai
from openai import OpenAI

from tool_chat.core.errors import ConfigError, TransportError
from tool_chat.core.interfaces import LLMProvider
from tool_chat.core.messages import FinalAnswer, Message, ModelResponse, Role, ToolCallRequest
from tool_chat.tools.definitions import ToolDefinition

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {408, 409, 429, 500, 502, 503, 504}


class OpenAIProviderError(TransportError):
    def __init__(self, message: str, retryable: bool = False, status_code: Optional[int] = None) -> None:
        super().__init__(message, retryable=retryable, status_code=status_code, provider="openai")


@dataclass(frozen=True)
class OpenAILLMConfig:
    api_key: str
    model: str = "gpt-4o-mini"
    temperature: float = 0.7

    @staticmethod
    def from_env() -> "OpenAILLMConfig":
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise ConfigError("Missing OPENAI_API_KEY in environment.")

        model = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
        raw_temperature = os.getenv("OPENAI_TEMPERATURE", "0.7").strip()
        try:
            temperature = float(raw_temperature)
        except ValueError as e:
            raise ConfigError(f"OPENAI_TEMPERATURE must be a number, got {raw_temperature!r}.") from e
        return OpenAILLMConfig(api_key=api_key, model=model, temperature=temperature)


def tool_schemas(tools: Sequence[ToolDefinition]) -> list[dict]:
    """Convert tool definitions to OpenAI-format function tool schemas."""
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.parameters,
            },
        }
        for t in tools
    ]


def to_wire_message(message: Message) -> dict[str, Any]:
    if message.role is Role.ASSISTANT and message.tool_call is not None:
        call = message.tool_call
        return {
            "role": "assistant",
            "content": message.content or None,
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.raw_arguments},
                }
            ],
        }
    if message.role is Role.TOOL:
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "content": message.content,
        }
    return {"role": message.role.value, "content": message.content}


class OpenAILLM(LLMProvider):
    """
    OpenAI chat completions binding implementing LLMProvider.

    The SDK's own retries are turned off; retry policy belongs to the
    conversation loop, which relies on TransportError.retryable.
    """

    def __init__(
        self,
        config: OpenAILLMConfig,
        timeout_s: float = 30.0,
        client: Optional[Any] = None,
    ) -> None:
        self._cfg = config
        self._client = client or OpenAI(api_key=config.api_key, timeout=timeout_s, max_retries=0)

    def generate(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] = (),
        tool_choice: str = "auto",
    ) -> ModelResponse:
        if not messages:
            raise ValueError("OpenAILLM.generate received no messages.")

        request: dict[str, Any] = {
            "model": self._cfg.model,
            "messages": [to_wire_message(m) for m in messages],
            "temperature": self._cfg.temperature,
        }
        if tools and tool_choice != "none":
            request["tools"] = tool_schemas(tools)
            request["tool_choice"] = tool_choice
            request["parallel_tool_calls"] = False

        logger.debug("OpenAI request: model=%s messages=%d", self._cfg.model, len(messages))
        try:
            resp = self._client.chat.completions.create(**request)
        except openai.APIStatusError as e:
            raise OpenAIProviderError(
                f"OpenAI API error {e.status_code}: {e.message}",
                retryable=e.status_code in _RETRYABLE_STATUS_CODES,
                status_code=e.status_code,
            ) from e
        except openai.APIConnectionError as e:
            raise OpenAIProviderError(f"Failed to reach OpenAI: {e}", retryable=True) from e
        except openai.OpenAIError as e:
            raise OpenAIProviderError(f"OpenAI client error: {e}") from e

        if not resp.choices:
            raise OpenAIProviderError("OpenAI returned no choices.")
        message = resp.choices[0].message

        if message.tool_calls:
            if len(message.tool_calls) > 1:
                logger.warning(
                    "OpenAI returned %d tool calls, dispatching only the first",
                    len(message.tool_calls),
                )
            tc = message.tool_calls[0]
            return ToolCallRequest(
                id=tc.id,
                name=tc.function.name,
                raw_arguments=tc.function.arguments or "",
                content=message.content or "",
            )

        text = (message.content or "").strip()
        if not text:
            raise OpenAIProviderError("OpenAI returned empty response text.")
        return FinalAnswer(text=text)
