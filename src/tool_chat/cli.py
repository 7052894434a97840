from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from tool_chat.core.errors import ToolChatError
from tool_chat.core.factory import PROVIDERS, get_llm_provider, get_registry
from tool_chat.orchestrators.chat_loop import ConsoleLineInput, run_chat_loop
from tool_chat.orchestrators.conversation import Conversation, ConversationConfig

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tool-chat",
        description="Chat with an LLM that can call local tools. Type 'end' to quit.",
    )
    parser.add_argument(
        "--provider",
        choices=PROVIDERS,
        default=os.getenv("TOOL_CHAT_PROVIDER", "openai").strip().lower() or "openai",
        help="LLM binding to use (env: TOOL_CHAT_PROVIDER).",
    )
    parser.add_argument(
        "--llm-jokes",
        action="store_true",
        help="Also register write_joke, a tool that asks the LLM for a joke.",
    )
    parser.add_argument(
        "--exit-word",
        default=os.getenv("TOOL_CHAT_EXIT_WORD", "end"),
        help="Word that ends the chat (case-insensitive).",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.getenv("TOOL_CHAT_LOG_LEVEL", "WARNING"),
        help="Logging level, e.g. DEBUG or INFO (env: TOOL_CHAT_LOG_LEVEL).",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    # argparse does not check choices against an env-provided default.
    log_level = args.log_level.strip().upper()
    if log_level not in LOG_LEVELS:
        print(
            f"Configuration error: invalid log level {args.log_level!r}, expected one of {', '.join(LOG_LEVELS)}.",
            file=sys.stderr,
        )
        return 2

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ConversationConfig.from_env()
        llm = get_llm_provider(args.provider)
        registry = get_registry(llm, llm_jokes=args.llm_jokes)
    except ToolChatError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logger.info("Starting chat with %s, tools: %s", args.provider, ", ".join(registry.names()))
    conversation = Conversation(llm=llm, registry=registry, config=config)
    try:
        run_chat_loop(conversation, ConsoleLineInput(), exit_word=args.exit_word)
    except KeyboardInterrupt:
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
