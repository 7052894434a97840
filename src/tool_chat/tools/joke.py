from __future__ import annotations

from tool_chat.core.interfaces import LLMProvider
from tool_chat.core.messages import FinalAnswer, Message
from tool_chat.tools.definitions import ToolDefinition

_JOKE_WRITER_PROMPT = "You are a comedian. Reply with one short, clean joke and nothing else."


def get_joke(weather: str) -> str:
    """Canned joke built around a weather description."""
    return f"Why don't {weather} clouds ever break up? Because they always stick together!"


JOKE_TOOL = ToolDefinition(
    name="get_joke",
    description="Tell a joke based on the weather.",
    parameters={
        "type": "object",
        "properties": {
            "weather": {
                "type": "string",
                "description": "Weather description, e.g. 'sunny'",
            }
        },
        "required": ["weather"],
    },
    handler=get_joke,
)


def make_llm_joke_tool(llm: LLMProvider) -> ToolDefinition:
    """Factory for a joke tool whose handler asks the LLM itself for the joke."""

    def write_joke(topic: str) -> str:
        response = llm.generate(
            [Message.system(_JOKE_WRITER_PROMPT), Message.user(f"Tell me a joke about {topic}.")],
            tools=(),
            tool_choice="none",
        )
        if not isinstance(response, FinalAnswer):
            raise RuntimeError("Joke writer asked for a tool instead of answering.")
        return response.text

    return ToolDefinition(
        name="write_joke",
        description="Useful when you need a fresh joke about any topic.",
        parameters={
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": "What the joke should be about",
                }
            },
            "required": ["topic"],
        },
        handler=write_joke,
    )
