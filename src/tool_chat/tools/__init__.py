from tool_chat.tools.definitions import ToolDefinition, ToolTrace
from tool_chat.tools.registry import ToolRegistry, parse_arguments
from tool_chat.tools.weather import WEATHER_TOOL
from tool_chat.tools.joke import JOKE_TOOL, make_llm_joke_tool

__all__ = [
    "ToolDefinition",
    "ToolTrace",
    "ToolRegistry",
    "parse_arguments",
    "WEATHER_TOOL",
    "JOKE_TOOL",
    "make_llm_joke_tool",
]
