from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import requests

from tool_chat.core.errors import TransportError
from tool_chat.core.interfaces import LLMProvider
from tool_chat.core.messages import FinalAnswer, Message, ModelResponse, Role, ToolCallRequest
from tool_chat.providers.llm_openai import tool_schemas
from tool_chat.tools.definitions import ToolDefinition

logger = logging.getLogger(__name__)


class OllamaProviderError(TransportError):
    def __init__(self, message: str, retryable: bool = False, status_code: Optional[int] = None) -> None:
        super().__init__(message, retryable=retryable, status_code=status_code, provider="ollama")


@dataclass(frozen=True)
class OllamaLLMConfig:
    base_url: str = "http://localhost:11434"
    model: str = "llama3.2:3b"

    @staticmethod
    def from_env() -> "OllamaLLMConfig":
        base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip()
        model = os.getenv("OLLAMA_MODEL", "llama3.2:3b").strip()
        return OllamaLLMConfig(base_url=base_url, model=model)


def _arguments_object(raw_arguments: str) -> dict[str, Any]:
    # Ollama wants tool-call arguments as an object, not JSON text.
    if not (raw_arguments or "").strip():
        return {}
    try:
        args = json.loads(raw_arguments)
    except json.JSONDecodeError:
        args = None
    if isinstance(args, dict):
        return args
    logger.debug("Replaying malformed tool arguments under _raw: %r", raw_arguments)
    return {"_raw": raw_arguments}


def to_wire_message(message: Message) -> dict[str, Any]:
    if message.role is Role.ASSISTANT and message.tool_call is not None:
        call = message.tool_call
        return {
            "role": "assistant",
            "content": message.content,
            "tool_calls": [
                {"function": {"name": call.name, "arguments": _arguments_object(call.raw_arguments)}}
            ],
        }
    if message.role is Role.TOOL:
        return {"role": "tool", "tool_name": message.name, "content": message.content}
    return {"role": message.role.value, "content": message.content}


class OllamaLLM(LLMProvider):
    """
    Ollama chat binding implementing LLMProvider.
    Uses Ollama /api/chat endpoint with the `tools` field.
    """

    def __init__(self, config: OllamaLLMConfig, timeout_s: float = 120.0) -> None:
        self._cfg = config
        self._timeout_s = timeout_s

    def generate(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] = (),
        tool_choice: str = "auto",
    ) -> ModelResponse:
        if not messages:
            raise ValueError("OllamaLLM.generate received no messages.")

        url = f"{self._cfg.base_url.rstrip('/')}/api/chat"

        payload: dict[str, Any] = {
            "model": self._cfg.model,
            "messages": [to_wire_message(m) for m in messages],
            "stream": False,
        }
        # Ollama has no tool_choice; "none" is expressed by not sending tools.
        if tools and tool_choice != "none":
            payload["tools"] = tool_schemas(tools)

        try:
            resp = requests.post(url, json=payload, timeout=self._timeout_s)
        except requests.RequestException as e:
            raise OllamaProviderError(
                f"Failed to reach Ollama at {self._cfg.base_url}. Is `ollama serve` running? ({e})",
                retryable=True,
            ) from e

        if resp.status_code >= 400:
            raise OllamaProviderError(
                f"Ollama error {resp.status_code}: {resp.text[:500]}",
                retryable=resp.status_code >= 500 or resp.status_code == 429,
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise OllamaProviderError(f"Ollama returned invalid JSON: {resp.text[:200]}") from e

        message = data.get("message", {}) or {}
        tool_calls = message.get("tool_calls") or []
        if tool_calls:
            if len(tool_calls) > 1:
                logger.warning("Ollama returned %d tool calls, dispatching only the first", len(tool_calls))
            tc = tool_calls[0]
            function = tc.get("function", {}) or {}
            arguments = function.get("arguments", {})
            raw_arguments = arguments if isinstance(arguments, str) else json.dumps(arguments)
            return ToolCallRequest(
                id=tc.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                name=function.get("name", ""),
                raw_arguments=raw_arguments,
                content=message.get("content") or "",
            )

        text = (message.get("content") or "").strip()
        if not text:
            raise OllamaProviderError("Ollama returned empty response text.")
        return FinalAnswer(text=text)
