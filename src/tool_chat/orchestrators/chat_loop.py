from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from tool_chat.core.errors import ToolExecutionError, ToolLoopExceededError, TransportError
from tool_chat.core.interfaces import LineInput
from tool_chat.orchestrators.conversation import Conversation

logger = logging.getLogger(__name__)

USER_PROMPT = "You: "
ASSISTANT_PREFIX = "Assistant: "
GOODBYE_MESSAGE = "Ending the chat. Goodbye!"
DEFAULT_EXIT_WORD = "end"


class ChatState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    PROCESSING = "processing"
    TERMINATED = "terminated"


class ConsoleLineInput:
    """LineInput over the builtin input(); EOF and Ctrl-D end the chat."""

    def read_line(self, prompt: str) -> Optional[str]:
        try:
            return input(prompt)
        except EOFError:
            return None


def is_exit_command(text: str, exit_word: str = DEFAULT_EXIT_WORD) -> bool:
    return text.strip().lower() == exit_word.strip().lower()


def run_chat_loop(
    conversation: Conversation,
    line_input: LineInput,
    output: Callable[[str], None] = print,
    exit_word: str = DEFAULT_EXIT_WORD,
) -> ChatState:
    """
    Interactive loop: read a line, run the turn, print the answer.

    Typing the exit word (any case) stops without touching the transcript.
    A failed turn is reported and the operator can type again.
    """
    state = ChatState.AWAITING_INPUT

    while state is not ChatState.TERMINATED:
        line = line_input.read_line(USER_PROMPT)
        if line is None:
            logger.debug("End of input, stopping chat loop")
            state = ChatState.TERMINATED
            break

        if is_exit_command(line, exit_word):
            output(GOODBYE_MESSAGE)
            state = ChatState.TERMINATED
            break

        state = ChatState.PROCESSING
        try:
            result = conversation.run_turn(line)
        except (TransportError, ToolLoopExceededError, ToolExecutionError) as e:
            logger.error("Turn failed: %s", e)
            output(f"Error: {e}")
        else:
            output(f"{ASSISTANT_PREFIX}{result.answer_text}")
        state = ChatState.AWAITING_INPUT

    return state
