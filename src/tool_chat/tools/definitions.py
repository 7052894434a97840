from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool the LLM can invoke."""

    name: str
    description: str
    parameters: dict[str, Any]  # JSON Schema for the function parameters
    handler: Callable[..., str]  # Called with the parsed arguments as keywords


@dataclass(frozen=True)
class ToolTrace:
    """Record of a tool execution for display and logging."""

    tool_name: str
    arguments: str
    result: str
    elapsed_ms: float
    error: Optional[str] = None
