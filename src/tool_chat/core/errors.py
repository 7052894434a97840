from __future__ import annotations

from typing import Optional


class ToolChatError(RuntimeError):
    pass


class ConfigError(ToolChatError):
    """Missing or invalid configuration (e.g. no API key in the environment)."""


class DuplicateNameError(ToolChatError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class UnknownToolError(ToolChatError):
    """The model named a tool that is not in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ArgumentParseError(ToolChatError):
    """Tool-call arguments from the model are malformed or fail the schema."""

    def __init__(self, tool_name: str, detail: str) -> None:
        self.tool_name = tool_name
        self.detail = detail
        super().__init__(f"Invalid arguments for {tool_name}: {detail}")


class FatalToolError(ToolChatError):
    """
    Raised by a tool handler when retrying cannot help (bad credentials,
    revoked access). The current turn is aborted instead of letting the
    model try again.
    """


class ToolExecutionError(ToolChatError):
    """A tool handler failed. The original exception is kept as __cause__."""

    def __init__(self, tool_name: str, cause: BaseException, retryable: bool = True) -> None:
        self.tool_name = tool_name
        self.retryable = retryable
        super().__init__(f"Tool {tool_name} failed: {type(cause).__name__}: {cause}")


class TransportError(ToolChatError):
    """
    Network or API failure while calling the LLM.

    Providers set ``retryable`` so the conversation loop can decide between
    backing off and failing the turn without inspecting message strings.
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code
        self.provider = provider


class ToolLoopExceededError(ToolChatError):
    """The model kept requesting tools past the per-turn ceiling."""

    def __init__(self, max_tool_calls: int) -> None:
        self.max_tool_calls = max_tool_calls
        super().__init__(
            f"Model requested more than {max_tool_calls} chained tool calls in one turn."
        )
