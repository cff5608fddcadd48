"""
Risk Alert Bot turn handler.

Every inbound activity records its conversation reference for proactive
messages. Message turns load the conversation's state, then run the
/history command, a card submission, or the planner-chosen action.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from botbuilder.core import ConversationState, TurnContext
from botbuilder.schema import Activity, ActivityTypes

from alert_bot.exceptions import PlannerRejected
from alert_bot.services.conversation_registry import ConversationRegistry
from .actions import (
    CHAIN_SUMMARIZE,
    DISPLAY_ADAPTIVE_CARD_WITH_SUMMARY,
    DOMAIN_ACTIONS,
    ActionDispatcher
)
from .adaptive_cards import create_welcome_card, to_attachment
from .conversation_memory import add_message, format_history
from .conversation_state import (
    CONVERSATION_DATA_PROPERTY,
    ConversationData,
    new_conversation_data
)
from .planner import ActionPlanner

logger = logging.getLogger(__name__)

HISTORY_COMMAND = "/history"
EMPTY_HISTORY_REPLY = "No conversation history yet."
EMPTY_MESSAGE_REPLY = "Please tell me which user's alerts you'd like to review. For example: 'Show me alerts for diego'"


def remove_mention_text(text: Optional[str]) -> str:
    """Strip <at>BotName</at> mention tags and collapse whitespace."""
    if not text:
        return ""
    cleaned = re.sub(r'<at>.*?</at>', '', text, flags=re.IGNORECASE)
    return ' '.join(cleaned.split()).strip()


class AlertBot:
    """Handles Teams turns for the risk alert assistant."""

    def __init__(
        self,
        conversation_state: ConversationState,
        dispatcher: ActionDispatcher,
        planner: ActionPlanner,
        conversations: ConversationRegistry,
        history_max_chars: int = 2000
    ):
        self.conversation_state = conversation_state
        self.dispatcher = dispatcher
        self.planner = planner
        self.conversations = conversations
        self.history_max_chars = history_max_chars
        self.data_accessor = conversation_state.create_property(CONVERSATION_DATA_PROPERTY)

    async def on_turn(self, turn_context: TurnContext):
        activity = turn_context.activity
        self._record_reference(activity)

        if activity.type == ActivityTypes.message:
            data = await self.data_accessor.get(turn_context, new_conversation_data)
            try:
                await self._handle_message(turn_context, data)
            finally:
                await self.conversation_state.save_changes(turn_context)
        elif activity.type == ActivityTypes.conversation_update:
            await self._handle_members_added(turn_context)
        else:
            logger.debug(f"Ignoring activity type: {activity.type}")

    def _record_reference(self, activity: Activity) -> None:
        if not activity.conversation or not activity.conversation.id:
            logger.warning("Activity without conversation ID; reference not recorded")
            return
        reference = TurnContext.get_conversation_reference(activity)
        self.conversations.record(activity.conversation.id, reference)

    async def _handle_members_added(self, turn_context: TurnContext) -> None:
        activity = turn_context.activity
        bot_id = activity.recipient.id if activity.recipient else None
        for member in activity.members_added or []:
            if member.id == bot_id:
                continue
            logger.info(f"Welcoming member {member.id} to {activity.conversation.id}")
            card = create_welcome_card(member.name or "there")
            await turn_context.send_activity(Activity(
                type=ActivityTypes.message,
                attachments=[to_attachment(card)]
            ))

    async def _handle_message(self, turn_context: TurnContext, data: ConversationData) -> None:
        activity = turn_context.activity
        text = remove_mention_text(activity.text)

        if text.lower() == HISTORY_COMMAND:
            history = format_history(data.get("history") or [], max_chars=self.history_max_chars)
            await turn_context.send_activity(history or EMPTY_HISTORY_REPLY)
            return

        self._track_replies(turn_context, data)

        submitted = activity.value if isinstance(activity.value, dict) else None
        if submitted and submitted.get("action") in DOMAIN_ACTIONS:
            logger.info(f"Card submission for action {submitted['action']}")
            await self._run_action(turn_context, data, submitted["action"], submitted)
            return

        if not text:
            await turn_context.send_activity(EMPTY_MESSAGE_REPLY)
            return

        add_message(data, "user", text)

        try:
            planned = await self.planner.plan(text, data.get("history")[:-1])
        except PlannerRejected as e:
            await self.dispatcher.dispatch(turn_context, data, e.action_name)
            return

        if planned.name:
            await self._run_action(turn_context, data, planned.name, planned.entities)
        else:
            await turn_context.send_activity(planned.reply)

    async def _run_action(
        self,
        turn_context: TurnContext,
        data: ConversationData,
        action_name: str,
        entities: Dict[str, Any]
    ) -> None:
        """Dispatch an action and follow a summarize chain to the summary card."""
        try:
            next_step = await self.dispatcher.dispatch(turn_context, data, action_name, entities)
            if next_step != CHAIN_SUMMARIZE:
                return

            summary = await self.planner.summarize(data["risky_user"], data["alerts_list"])
            data["summary"] = summary
            add_message(data, "assistant", summary)
            await self.dispatcher.dispatch(
                turn_context, data, DISPLAY_ADAPTIVE_CARD_WITH_SUMMARY, {"summary": summary}
            )
        except PlannerRejected as e:
            await self.dispatcher.dispatch(turn_context, data, e.action_name)

    def _track_replies(self, turn_context: TurnContext, data: ConversationData) -> None:
        """Append outgoing text replies of this turn to the conversation history."""

        async def record_replies(context: TurnContext, activities: List[Activity], next_send):
            for outgoing in activities:
                if outgoing.type == ActivityTypes.message and outgoing.text:
                    add_message(data, "assistant", outgoing.text)
            return await next_send()

        turn_context.on_send_activities(record_replies)
