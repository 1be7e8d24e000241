"""
Message history trimming.

Keeps the most recent messages that fit a cost budget before the history is
handed to the model. The cost function is pluggable: counting messages is the
default, counting tokens with tiktoken is available for tighter budgets.
"""

import logging
from typing import Callable, List, Optional, Sequence

import tiktoken

from models.conversation import Message, Role

logger = logging.getLogger(__name__)

TokenCounter = Callable[[Sequence[Message]], int]


def count_messages(messages: Sequence[Message]) -> int:
    """Each message costs one unit."""
    return len(messages)


def tiktoken_counter(encoding_name: str = "o200k_base") -> TokenCounter:
    """
    Build a counter that costs messages by their token length.

    Args:
        encoding_name: tiktoken encoding (o200k_base approximates Llama 3 tokenisation)
    """
    encoder = tiktoken.get_encoding(encoding_name)

    def count_tokens(messages: Sequence[Message]) -> int:
        return sum(len(encoder.encode(message.content)) for message in messages)

    return count_tokens


class MessageTrimmer:
    """
    Trims a conversation to the most recent messages within a budget.

    Rules, in order:
    - Histories already within budget are returned unchanged.
    - A leading system message is kept when include_system is set.
    - The newest messages are kept while their summed cost fits what is left.
    - A truncated window is advanced until it starts on a start_on message.
    - The window never ends up empty: at minimum it holds the most recent
      user message and anything after it.
    """

    def __init__(
        self,
        max_tokens: int = 4000,
        token_counter: Optional[TokenCounter] = None,
        include_system: bool = True,
        start_on: Optional[str] = Role.USER,
    ):
        if max_tokens < 1:
            raise ValueError("max_tokens must be at least 1")
        self.max_tokens = max_tokens
        self.token_counter = token_counter or count_messages
        self.include_system = include_system
        self.start_on = start_on

    def trim(self, messages: Sequence[Message]) -> List[Message]:
        """
        Return the model-visible window for a history.

        Args:
            messages: Full history in arrival order

        Returns:
            New list with relative order preserved
        """
        messages = list(messages)
        if not messages or self.token_counter(messages) <= self.max_tokens:
            return messages

        head: List[Message] = []
        rest = messages
        if self.include_system and messages[0].role == Role.SYSTEM:
            head, rest = messages[:1], messages[1:]

        remaining = self.max_tokens - self.token_counter(head)
        window: List[Message] = []
        for message in reversed(rest):
            cost = self.token_counter([message])
            if cost > remaining:
                break
            window.insert(0, message)
            remaining -= cost

        if self.start_on:
            while window and window[0].role != self.start_on:
                window.pop(0)

        if not window:
            window = self._floor(rest)

        logger.debug(f"Trimmed history from {len(messages)} to {len(head) + len(window)} messages")
        return head + window

    @staticmethod
    def _floor(messages: List[Message]) -> List[Message]:
        """Most recent user message onwards, or the last message if there is no user turn."""
        for index in range(len(messages) - 1, -1, -1):
            if messages[index].role == Role.USER:
                return messages[index:]
        return messages[-1:]
