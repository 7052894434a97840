from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional, Union


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCallRequest:
    """A single tool invocation requested by the LLM."""

    id: str
    name: str
    raw_arguments: str  # JSON text exactly as the model produced it
    content: str = ""  # assistant text sent alongside the call, if any


@dataclass(frozen=True)
class FinalAnswer:
    """Plain text answer; ends the tool loop for the current turn."""

    text: str


ModelResponse = Union[ToolCallRequest, FinalAnswer]


@dataclass(frozen=True)
class Message:
    """
    One entry of the conversation history.

    An assistant message that asks for a tool carries ``tool_call``; the
    tool-role message answering it carries the tool ``name`` and the
    request's ``tool_call_id``.
    """

    role: Role
    content: str
    name: Optional[str] = None
    tool_call: Optional[ToolCallRequest] = None
    tool_call_id: Optional[str] = None

    @staticmethod
    def system(content: str) -> "Message":
        return Message(role=Role.SYSTEM, content=content)

    @staticmethod
    def user(content: str) -> "Message":
        return Message(role=Role.USER, content=content)

    @staticmethod
    def assistant(content: str) -> "Message":
        return Message(role=Role.ASSISTANT, content=content)

    @staticmethod
    def tool_request(call: ToolCallRequest) -> "Message":
        return Message(role=Role.ASSISTANT, content=call.content, tool_call=call)

    @staticmethod
    def tool_result(call: ToolCallRequest, content: str) -> "Message":
        return Message(role=Role.TOOL, content=content, name=call.name, tool_call_id=call.id)


class Transcript:
    """Append-only message history. Insertion order is the order the model sees."""

    def __init__(self, messages: Optional[Iterable[Message]] = None) -> None:
        self._messages: list[Message] = []
        if messages:
            self.extend(messages)

    def append(self, message: Message) -> None:
        if not isinstance(message, Message):
            raise TypeError(f"Transcript only holds Message values, got {type(message).__name__}")
        self._messages.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        for m in messages:
            self.append(m)

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __getitem__(self, idx: int) -> Message:
        return self._messages[idx]
