"""
Conversation Registry - conversation references captured from inbound turns.

References are kept in memory for the life of the process and are used to
resume conversations for proactive messages.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from botbuilder.schema import ConversationReference

from alert_bot.exceptions import DeliveryFailure

logger = logging.getLogger(__name__)

DeliveryCallback = Callable[[str, ConversationReference], Awaitable[None]]


class ConversationRegistry:
    """Maps conversation ID to the latest ConversationReference seen for it."""

    def __init__(self):
        self._references: Dict[str, ConversationReference] = {}

    def record(self, conversation_id: str, reference: ConversationReference) -> None:
        """Insert or refresh the reference for a conversation."""
        is_new = conversation_id not in self._references
        self._references[conversation_id] = reference
        if is_new:
            logger.info(f"Recorded conversation reference for {conversation_id}")

    def get(self, conversation_id: str) -> Optional[ConversationReference]:
        return self._references.get(conversation_id)

    def conversation_ids(self) -> List[str]:
        return list(self._references)

    def __len__(self) -> int:
        return len(self._references)

    async def for_each(self, callback: DeliveryCallback) -> List[DeliveryFailure]:
        """
        Await the callback for every known conversation concurrently.

        Iterates a snapshot, so conversations recorded while sends are in
        flight are not visited. A failing callback is logged and collected;
        the remaining conversations are still visited.

        Returns:
            One DeliveryFailure per conversation whose callback raised, in
            snapshot order
        """
        async def visit(conversation_id: str, reference: ConversationReference) -> Optional[DeliveryFailure]:
            try:
                await callback(conversation_id, reference)
            except Exception as e:
                logger.error(
                    f"Delivery to conversation {conversation_id} failed: {e}",
                    exc_info=True
                )
                return DeliveryFailure(conversation_id, e)
            return None

        outcomes = await asyncio.gather(*(
            visit(conversation_id, reference)
            for conversation_id, reference in list(self._references.items())
        ))
        return [failure for failure in outcomes if failure is not None]
