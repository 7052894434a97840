from __future__ import annotations

from tool_chat.tools.definitions import ToolDefinition


def get_weather(location: str) -> str:
    """Stubbed weather lookup. Always sunny."""
    location = location.strip()
    if not location:
        raise ValueError("location must not be empty")
    return f"The weather in {location} is sunny."


WEATHER_TOOL = ToolDefinition(
    name="get_weather",
    description="Get the current weather for a location.",
    parameters={
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "The location to get the weather for, e.g. 'Tokyo'",
            }
        },
        "required": ["location"],
    },
    handler=get_weather,
)
