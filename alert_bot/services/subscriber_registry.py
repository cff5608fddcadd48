"""Reminder subscriber registry."""
import logging
from typing import List

from alert_bot.exceptions import NotSubscribed

logger = logging.getLogger(__name__)


class SubscriberRegistry:
    """Ordered list of users subscribed to alert reminders. Duplicates are allowed."""

    def __init__(self):
        self._subscribers: List[str] = []

    def subscribe(self, user: str) -> None:
        self._subscribers.append(user)
        logger.info(f"Subscribed {user} to alert reminders ({len(self._subscribers)} total)")

    def unsubscribe(self, user: str) -> None:
        """
        Remove the first exact match.

        Raises:
            NotSubscribed: user is not in the registry
        """
        try:
            self._subscribers.remove(user)
        except ValueError:
            raise NotSubscribed(user) from None
        logger.info(f"Unsubscribed {user} from alert reminders")

    def list_subscribers(self) -> List[str]:
        return list(self._subscribers)

    def __len__(self) -> int:
        return len(self._subscribers)
