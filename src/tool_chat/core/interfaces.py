from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from tool_chat.core.messages import Message, ModelResponse

if TYPE_CHECKING:
    from tool_chat.tools.definitions import ToolDefinition


class LLMProvider(Protocol):
    """Large Language Model provider interface."""

    def generate(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] = (),
        tool_choice: str = "auto",
    ) -> ModelResponse:
        """
        Send the whole transcript plus the tool catalog and return either a
        ToolCallRequest or a FinalAnswer. Raises TransportError on failure.
        """
        ...


class LineInput(Protocol):
    """Source of operator-typed lines."""

    def read_line(self, prompt: str) -> Optional[str]:
        """
        Return one line without its trailing newline, or None at end of input.
        """
        ...
