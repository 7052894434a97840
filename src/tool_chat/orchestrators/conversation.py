from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

import tenacity

from tool_chat.core.errors import (
    ArgumentParseError,
    ConfigError,
    ToolExecutionError,
    ToolLoopExceededError,
    TransportError,
    UnknownToolError,
)
from tool_chat.core.interfaces import LLMProvider
from tool_chat.core.messages import FinalAnswer, Message, ModelResponse, ToolCallRequest, Transcript
from tool_chat.core.metrics import Timer
from tool_chat.tools.definitions import ToolTrace
from tool_chat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant. You can tell jokes about the weather."
TOOL_CHOICE = "auto"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}.") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}.") from e


@dataclass(frozen=True)
class ConversationConfig:
    system_prompt: Optional[str] = DEFAULT_SYSTEM_PROMPT
    max_tool_calls: int = 10  # chained tool calls allowed per turn
    max_retries: int = 3  # retries after the first failed LLM call
    retry_backoff_s: float = 1.0  # base of the exponential backoff

    def __post_init__(self) -> None:
        if self.max_tool_calls < 0:
            raise ConfigError("max_tool_calls must be >= 0.")
        if self.max_retries < 0:
            raise ConfigError("max_retries must be >= 0.")
        if self.retry_backoff_s < 0:
            raise ConfigError("retry_backoff_s must be >= 0.")

    @staticmethod
    def from_env() -> "ConversationConfig":
        system_prompt = os.getenv("TOOL_CHAT_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT).strip() or None
        return ConversationConfig(
            system_prompt=system_prompt,
            max_tool_calls=_env_int("TOOL_CHAT_MAX_TOOL_CALLS", 10),
            max_retries=_env_int("TOOL_CHAT_MAX_RETRIES", 3),
            retry_backoff_s=_env_float("TOOL_CHAT_RETRY_BACKOFF_S", 1.0),
        )


@dataclass(frozen=True)
class TurnResult:
    answer_text: str
    metrics: dict[str, float]
    tool_traces: list[ToolTrace] = field(default_factory=list)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, TransportError) and exc.retryable


def _tool_error_payload(exc: Exception) -> str:
    return json.dumps({"error": f"{type(exc).__name__}: {exc}"})


class Conversation:
    """
    One conversation: the transcript plus the tool-resolution loop.

    Each turn sends the whole transcript and the tool catalog to the LLM,
    runs any requested tool through the registry, feeds the result back and
    repeats until the model answers with plain text. Messages produced during
    a turn are only committed to the transcript when the turn succeeds, so a
    failed turn leaves the history exactly as it was.
    """

    def __init__(
        self,
        llm: LLMProvider,
        registry: Optional[ToolRegistry] = None,
        config: Optional[ConversationConfig] = None,
        transcript: Optional[Transcript] = None,
    ) -> None:
        self._llm = llm
        self._registry = registry if registry is not None else ToolRegistry()
        self._cfg = config or ConversationConfig()
        if transcript is None:
            transcript = Transcript()
            if self._cfg.system_prompt:
                transcript.append(Message.system(self._cfg.system_prompt))
        self._transcript = transcript

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def config(self) -> ConversationConfig:
        return self._cfg

    def _call_llm(self, messages: Sequence[Message]) -> ModelResponse:
        """Single LLM round-trip with bounded exponential backoff on retryable errors."""
        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_exception(_is_retryable),
            wait=tenacity.wait_exponential(multiplier=self._cfg.retry_backoff_s, max=30),
            stop=tenacity.stop_after_attempt(self._cfg.max_retries + 1),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retryer(
            self._llm.generate,
            messages,
            self._registry.catalog(),
            tool_choice=TOOL_CHOICE,
        )

    def _dispatch(self, call: ToolCallRequest, timer: Timer) -> tuple[str, ToolTrace]:
        start = time.perf_counter()
        error: Optional[str] = None
        try:
            result = timer.measure(
                "tools_ms",
                lambda: self._registry.invoke(call.name, call.raw_arguments),
            )
        except (UnknownToolError, ArgumentParseError) as e:
            result = _tool_error_payload(e)
            error = str(e)
        except ToolExecutionError as e:
            if not e.retryable:
                raise
            result = _tool_error_payload(e)
            error = str(e)
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        if error:
            logger.warning("Tool call %s failed, returning error to model: %s", call.name, error)
        else:
            logger.info("Tool call %s(%s) -> %s", call.name, call.raw_arguments, result)

        trace = ToolTrace(
            tool_name=call.name,
            arguments=call.raw_arguments,
            result=result,
            elapsed_ms=elapsed_ms,
            error=error,
        )
        return result, trace

    def run_turn(self, user_text: str) -> TurnResult:
        """
        Run one user turn to completion and return the final answer.

        Raises:
            TransportError: the LLM call failed (after retries, when retryable).
            ToolLoopExceededError: the model chained more than max_tool_calls tools.
            ToolExecutionError: a tool failed in a way the model cannot recover from.
        """
        timer = Timer()
        traces: list[ToolTrace] = []
        pending: list[Message] = [Message.user(user_text)]
        tool_calls = 0

        while True:
            history = [*self._transcript.messages, *pending]
            response = timer.measure("llm_ms", lambda: self._call_llm(history))

            if isinstance(response, FinalAnswer):
                break

            tool_calls += 1
            if tool_calls > self._cfg.max_tool_calls:
                raise ToolLoopExceededError(self._cfg.max_tool_calls)

            pending.append(Message.tool_request(response))
            result, trace = self._dispatch(response, timer)
            traces.append(trace)
            pending.append(Message.tool_result(response, result))

        pending.append(Message.assistant(response.text))
        self._transcript.extend(pending)

        return TurnResult(answer_text=response.text, metrics=timer.summary(), tool_traces=traces)
