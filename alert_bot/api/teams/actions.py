"""
Action Dispatcher for Teams Bot.

Executes the action chosen by the planner (or by a card submission) against
the alert store and subscriber registry. Each handler either sends a reply and
ends the turn, or returns the name of the next chained step.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from botbuilder.core import MessageFactory, TurnContext

from alert_bot.exceptions import NotSubscribed, SourceUnavailable
from alert_bot.services.alert_store import AlertStore
from alert_bot.services.subscriber_registry import SubscriberRegistry
from .adaptive_cards import create_alert_summary_card, to_attachment
from .conversation_state import ConversationData

logger = logging.getLogger(__name__)

# Domain actions
RETRIEVE_ALERTS = "RetrieveAlerts"
SUMMARIZE_ALERT = "SummarizeAlert"
SETUP_USER_REMINDER = "SetupUserReminder"
REMOVE_USER_REMINDER = "RemoveUserReminder"
DISPLAY_REMINDER_USER_LIST = "DisplayReminderUserList"
DISPLAY_ADAPTIVE_CARD_WITH_SUMMARY = "DisplayAdaptiveCardWithSummary"

# Reserved actions run when the model service rejects a turn
RATE_LIMITED = "___RateLimited___"
FLAGGED_INPUT = "___FlaggedInput___"
FLAGGED_OUTPUT = "___FlaggedOutput___"

# Chained step names
CHAIN_SUMMARIZE = "summarize"

DOMAIN_ACTIONS = frozenset({
    RETRIEVE_ALERTS,
    SUMMARIZE_ALERT,
    SETUP_USER_REMINDER,
    REMOVE_USER_REMINDER,
    DISPLAY_REMINDER_USER_LIST,
    DISPLAY_ADAPTIVE_CARD_WITH_SUMMARY,
})
RESERVED_ACTIONS = frozenset({RATE_LIMITED, FLAGGED_INPUT, FLAGGED_OUTPUT})

RESERVED_REPLIES = {
    RATE_LIMITED: "I'm getting a lot of requests right now. Please try again in a moment.",
    FLAGGED_INPUT: "I'm sorry, I can't help with that request.",
    FLAGGED_OUTPUT: "I'm not allowed to talk about such things.",
}

SOURCE_UNAVAILABLE_REPLY = "Alert data is unavailable right now. Please try again later."
UNKNOWN_ACTION_REPLY = "I'm not sure how to help with that. Try asking about alerts for a user."
MISSING_USER_REPLY = "Which user should I look up alerts for?"
MISSING_SUBSCRIBER_REPLY = "Which user should receive alert reminders?"

Handler = Callable[..., Awaitable[Optional[str]]]


class ActionDispatcher:
    """Runs named actions for one conversation turn."""

    def __init__(self, alert_store: AlertStore, subscribers: SubscriberRegistry):
        self.alert_store = alert_store
        self.subscribers = subscribers
        self._handlers: Dict[str, Handler] = {
            RETRIEVE_ALERTS: self._retrieve_alerts,
            SUMMARIZE_ALERT: self._summarize_alert,
            SETUP_USER_REMINDER: self._setup_user_reminder,
            REMOVE_USER_REMINDER: self._remove_user_reminder,
            DISPLAY_REMINDER_USER_LIST: self._display_reminder_user_list,
            DISPLAY_ADAPTIVE_CARD_WITH_SUMMARY: self._display_adaptive_card_with_summary,
        }
        for reserved in RESERVED_ACTIONS:
            self._handlers[reserved] = self._reserved_reply

    def is_known(self, action_name: Optional[str]) -> bool:
        return action_name in self._handlers

    async def dispatch(
        self,
        turn_context: TurnContext,
        data: ConversationData,
        action_name: str,
        entities: Optional[Dict[str, Any]] = None
    ) -> Optional[str]:
        """
        Run one action.

        Args:
            turn_context: Current turn, used to send replies
            data: Conversation state for this turn
            action_name: Action to run
            entities: Arguments extracted by the planner or carried by a card

        Returns:
            Name of the chained step to run next, or None when the turn is done
        """
        handler = self._handlers.get(action_name)
        if handler is None:
            logger.warning(f"Unknown action requested: {action_name}")
            await turn_context.send_activity(UNKNOWN_ACTION_REPLY)
            return None

        logger.info(f"Dispatching action {action_name} with entities {entities or {}}")
        return await handler(turn_context, data, dict(entities or {}), action_name=action_name)

    # ── Alert lookup ──────────────────────────────────────────────────

    async def _retrieve_alerts(self, turn_context, data, entities, action_name=None):
        return await self._lookup_and_stage(
            turn_context, data, entities.get("riskyUser"), "Retrieving alerts for user"
        )

    async def _summarize_alert(self, turn_context, data, entities, action_name=None):
        return await self._lookup_and_stage(
            turn_context, data, entities.get("riskyUser"), "Summarizing alerts for user"
        )

    async def _lookup_and_stage(
        self,
        turn_context: TurnContext,
        data: ConversationData,
        risky_user: Optional[str],
        progress_text: str
    ) -> Optional[str]:
        """Shared path for RetrieveAlerts and SummarizeAlert: chain when alerts exist, reply otherwise."""
        risky_user = (risky_user or "").strip()
        if not risky_user:
            await turn_context.send_activity(MISSING_USER_REPLY)
            return None

        data["risky_user"] = risky_user
        await turn_context.send_activity(f"{progress_text}: {risky_user}")

        try:
            await self.alert_store.ensure_loaded()
        except SourceUnavailable as e:
            logger.error(f"Alert lookup for {risky_user} failed: {e}", exc_info=True)
            data["alerts_list"] = []
            await turn_context.send_activity(SOURCE_UNAVAILABLE_REPLY)
            return None

        alerts = self.alert_store.lookup(risky_user)
        data["alerts_list"] = [alert.to_json_dict() for alert in alerts]

        if not alerts:
            await turn_context.send_activity(f"No alerts found for user: {risky_user}")
            return None

        logger.info(f"Staged {len(alerts)} alerts for {risky_user}")
        return CHAIN_SUMMARIZE

    # ── Reminders ─────────────────────────────────────────────────────

    async def _setup_user_reminder(self, turn_context, data, entities, action_name=None):
        user = (entities.get("subscribedUser") or "").strip()
        if not user:
            await turn_context.send_activity(MISSING_SUBSCRIBER_REPLY)
            return None

        self.subscribers.subscribe(user)
        await turn_context.send_activity(f"{user} will now receive alert reminders.")
        return None

    async def _remove_user_reminder(self, turn_context, data, entities, action_name=None):
        user = (entities.get("subscribedUser") or "").strip()
        if not user:
            await turn_context.send_activity(MISSING_SUBSCRIBER_REPLY)
            return None

        try:
            self.subscribers.unsubscribe(user)
        except NotSubscribed:
            await turn_context.send_activity(f"{user} is not subscribed to alert reminders.")
            return None

        await turn_context.send_activity(f"{user} will no longer receive alert reminders.")
        return None

    async def _display_reminder_user_list(self, turn_context, data, entities, action_name=None):
        subscribers = self.subscribers.list_subscribers()
        if not subscribers:
            await turn_context.send_activity("There are no subscribed users.")
        else:
            await turn_context.send_activity("Subscribed users: " + ", ".join(subscribers))
        return None

    # ── Presentation ──────────────────────────────────────────────────

    async def _display_adaptive_card_with_summary(self, turn_context, data, entities, action_name=None):
        card = create_alert_summary_card(
            risky_user=data.get("risky_user") or "unknown user",
            summary=entities.get("summary") or "",
            alerts=data.get("alerts_list") or []
        )
        await turn_context.send_activity(MessageFactory.attachment(to_attachment(card)))
        return None

    # ── Reserved ──────────────────────────────────────────────────────

    async def _reserved_reply(self, turn_context, data, entities, action_name=None):
        logger.warning(f"Turn ended by reserved action {action_name}")
        await turn_context.send_activity(RESERVED_REPLIES[action_name])
        return None
