from __future__ import annotations

from tool_chat.core.errors import ConfigError
from tool_chat.core.interfaces import LLMProvider
from tool_chat.providers.llm_ollama import OllamaLLM, OllamaLLMConfig
from tool_chat.providers.llm_openai import OpenAILLM, OpenAILLMConfig
from tool_chat.tools import JOKE_TOOL, WEATHER_TOOL, make_llm_joke_tool
from tool_chat.tools.registry import ToolRegistry

PROVIDERS = ("openai", "ollama")


def get_llm_provider(name: str) -> LLMProvider:
    key = (name or "").strip().lower()

    if key in {"openai", "gpt"}:
        cfg = OpenAILLMConfig.from_env()
        return OpenAILLM(cfg)

    if key in {"ollama"}:
        cfg = OllamaLLMConfig.from_env()
        return OllamaLLM(cfg)

    raise ConfigError(f"Unknown LLM provider: {name}")


def get_registry(llm: LLMProvider, llm_jokes: bool = False) -> ToolRegistry:
    """Build the default tool catalog. ``llm_jokes`` adds the LLM-backed joke writer."""
    tools = [WEATHER_TOOL, JOKE_TOOL]
    if llm_jokes:
        tools.append(make_llm_joke_tool(llm))
    return ToolRegistry.from_definitions(tools)
