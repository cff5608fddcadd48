"""
Proactive Messaging Service for Teams Bot Framework

Sends new-alert notifications to every conversation the bot has seen, without
an incoming request, using the conversation references captured on earlier
turns.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

# Bot Framework imports
from botbuilder.core import BotAdapter, MessageFactory, TurnContext
from botbuilder.schema import ConversationReference

# Error handling
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential
)

from alert_bot.api.teams.adaptive_cards import create_new_alert_card, to_attachment
from alert_bot.exceptions import EmptyAlertBatch
from alert_bot.models import AlertRecord
from alert_bot.services.alert_store import AlertStore
from alert_bot.services.conversation_registry import ConversationRegistry

logger = logging.getLogger(__name__)


@dataclass
class FanOutResult:
    """Outcome of one notification fan-out."""
    delivered: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class ProactiveMessagingService:
    """
    Service for sending proactive messages to Teams conversations.

    Features:
    - Ingest pushed alerts into the alert store
    - Send new-alert adaptive cards to every known conversation
    - Retry logic for failed deliveries
    - Per-conversation failure isolation
    - Correlation ID tracking for debugging
    """

    def __init__(
        self,
        adapter: BotAdapter,
        app_id: str,
        conversations: ConversationRegistry,
        alert_store: AlertStore,
        max_attempts: int = 3
    ):
        """
        Initialize the proactive messaging service.

        Args:
            adapter: Bot Framework adapter used to resume conversations
            app_id: Microsoft App ID for the bot
            conversations: Registry of captured conversation references
            alert_store: Store that receives pushed alerts
            max_attempts: Send attempts per conversation before giving up
        """
        self.adapter = adapter
        self.app_id = app_id
        self.conversations = conversations
        self.alert_store = alert_store
        self.max_attempts = max(1, max_attempts)

        logger.info(f"ProactiveMessagingService initialized for app_id: {app_id or '<unset>'}")

    async def send_card_to_reference(
        self,
        reference: ConversationReference,
        card: Dict[str, Any],
        correlation_id: Optional[str] = None
    ) -> None:
        """
        Send an adaptive card to a conversation, retrying on failure.

        Args:
            reference: Conversation reference captured from an earlier turn
            card: Adaptive card built by adaptive_cards
            correlation_id: Optional correlation ID for tracking

        Raises:
            Exception: the last send error once all attempts are used
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        conversation_id = reference.conversation.id if reference.conversation else None
        logger.info(
            f"[{correlation_id}] Sending card to conversation {conversation_id} "
            f"via {reference.service_url}"
        )

        async def send_activity_callback(turn_context: TurnContext):
            """Callback to send the card within the conversation context."""
            message = MessageFactory.attachment(to_attachment(card))
            response = await turn_context.send_activity(message)
            logger.info(
                f"[{correlation_id}] Card sent successfully. "
                f"Response ID: {response.id if response else 'None'}"
            )

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(Exception),
            reraise=True
        ):
            with attempt:
                await self.adapter.continue_conversation(
                    reference,
                    send_activity_callback,
                    self.app_id
                )

    async def notify(self, batch: Sequence[AlertRecord]) -> FanOutResult:
        """
        Ingest new alerts and notify every known conversation.

        The card names the first alert's principal name. Conversations are
        sent to concurrently, so one slow or dead conversation only delays the
        result by its own retries. A failed delivery is logged and does not
        stop the others or undo the ingest.

        Args:
            batch: Newly pushed alerts

        Returns:
            FanOutResult with delivered and failed conversation IDs

        Raises:
            EmptyAlertBatch: batch has no records
        """
        if not batch:
            raise EmptyAlertBatch("Notification batch contains no alerts")

        self.alert_store.ingest(batch)

        headline_user = batch[0].user_principal_name
        card = create_new_alert_card(headline_user, alert_count=len(batch))
        correlation_id = str(uuid.uuid4())
        result = FanOutResult()

        logger.info(
            f"[{correlation_id}] Fanning out alert for {headline_user} "
            f"to {len(self.conversations)} conversations"
        )

        async def deliver(conversation_id: str, reference: ConversationReference):
            await self.send_card_to_reference(reference, card, correlation_id)

        # Same snapshot for_each takes: no await between the two
        targets = self.conversations.conversation_ids()
        failures = await self.conversations.for_each(deliver)
        result.failed = [failure.conversation_id for failure in failures]
        failed = set(result.failed)
        result.delivered = [conversation_id for conversation_id in targets if conversation_id not in failed]

        logger.info(
            f"[{correlation_id}] Fan-out complete: {len(result.delivered)} delivered, "
            f"{len(result.failed)} failed"
        )
        return result


# Factory function for creating service instances
def create_proactive_messaging_service(
    adapter: BotAdapter,
    conversations: ConversationRegistry,
    alert_store: AlertStore,
    app_id: Optional[str] = None,
    max_attempts: Optional[int] = None
) -> ProactiveMessagingService:
    """
    Factory function to create a ProactiveMessagingService instance.

    Args:
        adapter: Bot Framework adapter
        conversations: Conversation reference registry
        alert_store: Alert store receiving pushed alerts
        app_id: Microsoft App ID (defaults to BOT_ID)
        max_attempts: Send attempts per conversation (defaults to PROACTIVE_MAX_ATTEMPTS)

    Returns:
        Configured ProactiveMessagingService instance
    """
    from alert_bot import config

    return ProactiveMessagingService(
        adapter=adapter,
        app_id=app_id if app_id is not None else config.BOT_ID,
        conversations=conversations,
        alert_store=alert_store,
        max_attempts=max_attempts if max_attempts is not None else config.PROACTIVE_MAX_ATTEMPTS
    )


# Export main classes and functions
__all__ = [
    'FanOutResult',
    'ProactiveMessagingService',
    'create_proactive_messaging_service'
]
