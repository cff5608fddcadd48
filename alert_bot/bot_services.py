"""
Wiring for the Risk Alert Bot: one BotServices container per process holds
the adapter, state, stores and handlers, and is shared by the HTTP routes.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from botbuilder.core import (
    BotFrameworkAdapter,
    BotFrameworkAdapterSettings,
    ConversationState,
    MemoryStorage,
    TurnContext
)

from alert_bot import config
from alert_bot.api.teams.actions import ActionDispatcher
from alert_bot.api.teams.bot import AlertBot
from alert_bot.api.teams.planner import ActionPlanner
from alert_bot.services.alert_store import AlertStore
from alert_bot.services.conversation_registry import ConversationRegistry
from alert_bot.services.proactive_messaging import (
    ProactiveMessagingService,
    create_proactive_messaging_service
)
from alert_bot.services.subscriber_registry import SubscriberRegistry

logger = logging.getLogger(__name__)

TURN_ERROR_REPLY = "Sorry, something went wrong while handling your message. Please try again."


@dataclass
class BotServices:
    adapter: BotFrameworkAdapter
    bot: AlertBot
    alert_store: AlertStore
    subscribers: SubscriberRegistry
    conversations: ConversationRegistry
    proactive: ProactiveMessagingService


async def on_turn_error(turn_context: TurnContext, error: Exception):
    """Catch-all for errors escaping a turn: log the details, send a generic reply."""
    logger.error(f"Unhandled error in turn: {error}", exc_info=error)
    try:
        await turn_context.send_activity(TURN_ERROR_REPLY)
    except Exception as send_error:
        logger.error(f"Failed to send turn error reply: {send_error}", exc_info=True)


def create_adapter(
    app_id: Optional[str] = None,
    app_password: Optional[str] = None,
    tenant_id: Optional[str] = None
) -> BotFrameworkAdapter:
    settings = BotFrameworkAdapterSettings(
        app_id=app_id if app_id is not None else config.BOT_ID,
        app_password=app_password if app_password is not None else config.BOT_PASSWORD,
        channel_auth_tenant=tenant_id or config.BOT_TENANT_ID  # For single-tenant apps
    )
    adapter = BotFrameworkAdapter(settings)
    adapter.on_turn_error = on_turn_error
    return adapter


def create_bot_services(
    adapter: Optional[BotFrameworkAdapter] = None,
    planner: Optional[ActionPlanner] = None,
    alert_store: Optional[AlertStore] = None,
    max_attempts: Optional[int] = None
) -> BotServices:
    """
    Build the process-wide services, defaulting every collaborator from config.

    Args:
        adapter: Bot Framework adapter (default: from BOT_ID/BOT_PASSWORD)
        planner: Action planner (default: Azure OpenAI from config)
        alert_store: Alert store (default: ALERTS_FILE)
        max_attempts: Proactive send attempts (default: PROACTIVE_MAX_ATTEMPTS)
    """
    adapter = adapter or create_adapter()
    alert_store = alert_store or AlertStore(config.ALERTS_FILE)
    subscribers = SubscriberRegistry()
    conversations = ConversationRegistry()

    bot = AlertBot(
        conversation_state=ConversationState(MemoryStorage()),
        dispatcher=ActionDispatcher(alert_store, subscribers),
        planner=planner or ActionPlanner(),
        conversations=conversations,
        history_max_chars=config.HISTORY_MAX_CHARS
    )

    proactive = create_proactive_messaging_service(
        adapter=adapter,
        conversations=conversations,
        alert_store=alert_store,
        max_attempts=max_attempts
    )

    logger.info(f"Bot services created (alerts source: {alert_store.source_path})")
    return BotServices(
        adapter=adapter,
        bot=bot,
        alert_store=alert_store,
        subscribers=subscribers,
        conversations=conversations,
        proactive=proactive
    )
