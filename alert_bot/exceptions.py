"""
Error kinds raised by the Risk Alert Bot.

Domain errors (NotSubscribed, PlannerRejected) are turned into replies by the
bot; infrastructure errors (SourceUnavailable, DeliveryFailure) are logged and
degrade gracefully.
"""
from typing import Optional


class AlertBotError(Exception):
    """Base class for all bot errors."""
    pass


class SourceUnavailable(AlertBotError):
    """Alert source file is missing, unreadable or malformed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Alert source {path} unavailable: {reason}")


class NotSubscribed(AlertBotError):
    """Unsubscribe requested for a user that is not in the registry."""

    def __init__(self, user: str):
        self.user = user
        super().__init__(f"{user} is not subscribed")


class PlannerRejected(AlertBotError):
    """
    The language model service refused the turn (rate limit or content filter).

    Carries the reserved action name the dispatcher should run instead.
    """

    def __init__(self, action_name: str, detail: Optional[str] = None):
        self.action_name = action_name
        self.detail = detail
        super().__init__(f"Planner rejected turn: {action_name}" + (f" ({detail})" if detail else ""))


class DeliveryFailure(AlertBotError):
    """Sending a proactive message to one conversation failed."""

    def __init__(self, conversation_id: str, cause: Exception):
        self.conversation_id = conversation_id
        self.cause = cause
        super().__init__(f"Delivery to {conversation_id} failed: {cause}")


class EmptyAlertBatch(AlertBotError, ValueError):
    """Notification received with no alert records."""
    pass
