from __future__ import annotations

import sys

from dotenv import load_dotenv

from tool_chat.core.factory import get_llm_provider, get_registry
from tool_chat.orchestrators.conversation import Conversation, ConversationConfig


def main() -> None:
    load_dotenv()  # loads .env from repo root (current working dir)

    provider = sys.argv[1] if len(sys.argv) > 1 else "openai"
    llm = get_llm_provider(provider)
    conversation = Conversation(
        llm=llm,
        registry=get_registry(llm, llm_jokes=True),
        config=ConversationConfig.from_env(),
    )

    result = conversation.run_turn("Tell me a joke about the current weather in Tokyo.")

    for trace in result.tool_traces:
        print(f"Tool: {trace.tool_name}({trace.arguments}) -> {trace.result}")
    print("Assistant:", result.answer_text)
    print("Metrics:", result.metrics)


if __name__ == "__main__":
    main()
