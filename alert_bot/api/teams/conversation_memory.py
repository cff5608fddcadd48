"""
Conversation history helpers for Teams Bot.
Keeps a bounded message list in ConversationData and renders it for /history
and for planner context.
"""
import logging
from typing import List

from .conversation_state import (
    ConversationData,
    ConversationMessage,
    MAX_CONVERSATION_HISTORY
)

logger = logging.getLogger(__name__)


def add_message(data: ConversationData, role: str, content: str) -> None:
    """Append a message, dropping the oldest beyond MAX_CONVERSATION_HISTORY."""
    if not content:
        return
    history = data.setdefault("history", [])
    history.append({"role": role, "content": content})
    if len(history) > MAX_CONVERSATION_HISTORY:
        del history[:len(history) - MAX_CONVERSATION_HISTORY]


def format_history(
    history: List[ConversationMessage],
    max_chars: int = 2000,
    separator: str = "\n\n"
) -> str:
    """
    Render history as plain text bounded by max_chars.

    Walks back from the newest message and keeps whole lines while they fit,
    so the output is the most recent slice of the conversation in
    chronological order. A single message longer than the budget is dropped
    rather than cut.

    Args:
        history: Messages, oldest first
        max_chars: Character budget for the returned text
        separator: Text placed between messages

    Returns:
        Formatted text ("" when nothing fits)
    """
    lines: List[str] = []
    used = 0
    for message in reversed(history):
        line = f"{message['role']}: {message['content']}"
        cost = len(line) + (len(separator) if lines else 0)
        if used + cost > max_chars:
            break
        lines.append(line)
        used += cost

    return separator.join(reversed(lines))
