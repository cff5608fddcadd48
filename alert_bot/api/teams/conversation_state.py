"""
Conversation state management for Teams Bot.
One ConversationData record per conversation, persisted through botbuilder's
ConversationState.
"""
from typing import Any, Dict, List, Optional, TypedDict


class ConversationMessage(TypedDict):
    """Individual message in conversation history."""
    role: str  # 'user' or 'assistant'
    content: str


class ConversationData(TypedDict):
    """State the bot keeps for one Teams conversation."""
    # Last user whose alerts were looked up
    risky_user: Optional[str]

    # Most recent lookup result, as JSON-ready dicts with source field names
    alerts_list: List[Dict[str, Any]]

    # Last generated summary
    summary: Optional[str]

    # Conversation history (oldest first)
    history: List[ConversationMessage]


CONVERSATION_DATA_PROPERTY = "ConversationData"

# Conversation memory limits
MAX_CONVERSATION_HISTORY = 50


def new_conversation_data() -> ConversationData:
    return {
        "risky_user": None,
        "alerts_list": [],
        "summary": None,
        "history": [],
    }
