"""
End-to-end turn tests for AlertBot using the Bot Framework TestAdapter.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from botbuilder.core import ConversationState, MemoryStorage
from botbuilder.core.adapters import TestAdapter as BotTestAdapter
from botbuilder.schema import Activity, ActivityTypes, ChannelAccount

from alert_bot.api.teams.actions import FLAGGED_OUTPUT, RATE_LIMITED, RESERVED_REPLIES, ActionDispatcher
from alert_bot.api.teams.bot import (
    EMPTY_HISTORY_REPLY,
    EMPTY_MESSAGE_REPLY,
    AlertBot,
    remove_mention_text
)
from alert_bot.api.teams.planner import PlannedAction
from alert_bot.exceptions import PlannerRejected
from alert_bot.services.conversation_registry import ConversationRegistry
from alert_bot.services.subscriber_registry import SubscriberRegistry

SUMMARY = "Diego downloaded 412 files, far above his daily average."


@pytest.fixture
def planner():
    planner = MagicMock()
    planner.plan = AsyncMock(return_value=PlannedAction(name="RetrieveAlerts", entities={"riskyUser": "diego"}))
    planner.summarize = AsyncMock(return_value=SUMMARY)
    return planner


@pytest.fixture
def conversations():
    return ConversationRegistry()


@pytest.fixture
def bot(alert_store, planner, conversations):
    return AlertBot(
        conversation_state=ConversationState(MemoryStorage()),
        dispatcher=ActionDispatcher(alert_store, SubscriberRegistry()),
        planner=planner,
        conversations=conversations
    )


@pytest.fixture
def adapter(bot):
    return BotTestAdapter(bot.on_turn)


def _texts(adapter):
    return [a.text for a in adapter.activity_buffer if a.text]


def _cards(adapter):
    return [a.attachments[0].content for a in adapter.activity_buffer if a.attachments]


class TestRemoveMentionText:

    def test_strips_mention_and_whitespace(self):
        assert remove_mention_text("<at>Alert Bot</at>  show   alerts ") == "show alerts"

    def test_none(self):
        assert remove_mention_text(None) == ""


class TestMessageTurns:

    @pytest.mark.asyncio
    async def test_every_turn_records_conversation_reference(self, adapter, conversations):
        await adapter.receive_activity("/history")

        reference = conversations.get("Convo1")
        assert reference is not None
        assert reference.service_url == "https://test.com"

    @pytest.mark.asyncio
    async def test_retrieve_chains_into_summary_card(self, adapter, planner):
        await adapter.receive_activity("<at>AlertBot</at> show alerts for diego")

        planner.plan.assert_awaited_once_with("show alerts for diego", [])
        planner.summarize.assert_awaited_once()
        risky_user, alerts = planner.summarize.await_args.args
        assert risky_user == "diego"
        assert [a["UserPrincipalName"] for a in alerts] == ["diego@contoso.com"]

        assert _texts(adapter) == ["Retrieving alerts for user: diego"]
        cards = _cards(adapter)
        assert len(cards) == 1
        assert cards[0]["body"][1]["text"] == SUMMARY

    @pytest.mark.asyncio
    async def test_no_alerts_skips_summary(self, adapter, planner):
        planner.plan.return_value = PlannedAction(name="RetrieveAlerts", entities={"riskyUser": "nobody"})

        await adapter.receive_activity("alerts for nobody")

        planner.summarize.assert_not_awaited()
        assert _texts(adapter) == [
            "Retrieving alerts for user: nobody",
            "No alerts found for user: nobody",
        ]
        assert _cards(adapter) == []

    @pytest.mark.asyncio
    async def test_plain_reply(self, adapter, planner):
        planner.plan.return_value = PlannedAction(reply="Hi! Ask me about risk alerts for a user.")

        await adapter.receive_activity("hello")

        assert _texts(adapter) == ["Hi! Ask me about risk alerts for a user."]

    @pytest.mark.asyncio
    async def test_empty_message_after_mention(self, adapter, planner):
        await adapter.receive_activity("<at>AlertBot</at>")

        planner.plan.assert_not_awaited()
        assert _texts(adapter) == [EMPTY_MESSAGE_REPLY]

    @pytest.mark.asyncio
    async def test_rejected_plan_sends_reserved_reply(self, adapter, planner):
        planner.plan.side_effect = PlannerRejected(RATE_LIMITED)

        await adapter.receive_activity("alerts for diego")

        assert _texts(adapter) == [RESERVED_REPLIES[RATE_LIMITED]]

    @pytest.mark.asyncio
    async def test_rejected_summary_sends_reserved_reply(self, adapter, planner):
        planner.summarize.side_effect = PlannerRejected(FLAGGED_OUTPUT)

        await adapter.receive_activity("alerts for diego")

        assert _texts(adapter) == [
            "Retrieving alerts for user: diego",
            RESERVED_REPLIES[FLAGGED_OUTPUT],
        ]
        assert _cards(adapter) == []

    @pytest.mark.asyncio
    async def test_card_submit_skips_planner(self, adapter, planner):
        await adapter.receive_activity(Activity(
            type=ActivityTypes.message,
            value={"action": "SummarizeAlert", "riskyUser": "diego@contoso.com"}
        ))

        planner.plan.assert_not_awaited()
        planner.summarize.assert_awaited_once()
        assert _texts(adapter) == ["Summarizing alerts for user: diego@contoso.com"]
        assert len(_cards(adapter)) == 1


class TestHistoryCommand:

    @pytest.mark.asyncio
    async def test_empty_history(self, adapter):
        await adapter.receive_activity("/history")
        await adapter.receive_activity("/HISTORY")

        assert _texts(adapter) == [EMPTY_HISTORY_REPLY, EMPTY_HISTORY_REPLY]

    @pytest.mark.asyncio
    async def test_history_after_lookup(self, adapter, planner):
        await adapter.receive_activity("show alerts for diego")
        adapter.activity_buffer.clear()

        await adapter.receive_activity("/history")

        assert _texts(adapter) == [
            "user: show alerts for diego\n\n"
            "assistant: Retrieving alerts for user: diego\n\n"
            f"assistant: {SUMMARY}"
        ]

    @pytest.mark.asyncio
    async def test_planner_sees_earlier_turns(self, adapter, planner):
        planner.plan.return_value = PlannedAction(reply="Hello!")

        await adapter.receive_activity("hi")
        await adapter.receive_activity("again")

        history = planner.plan.await_args.args[1]
        assert history == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Hello!"},
        ]


class TestConversationUpdate:

    @pytest.mark.asyncio
    async def test_welcome_card_for_new_members_only(self, adapter, conversations):
        await adapter.receive_activity(Activity(
            type=ActivityTypes.conversation_update,
            recipient=ChannelAccount(id="bot", name="Bot"),
            members_added=[
                ChannelAccount(id="user-1", name="Megan"),
                ChannelAccount(id="bot", name="Bot"),
            ]
        ))

        cards = _cards(adapter)
        assert len(cards) == 1
        assert cards[0]["body"][0]["text"] == "👋 Hi Megan!"
        assert conversations.get("Convo1") is not None
