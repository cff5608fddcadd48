"""
Action Planner for Teams Bot.

Maps a user message to one named action plus extracted entities using an
Azure OpenAI chat completion in JSON mode, and writes alert summaries for the
summarize step. Rate limits and content-filter hits from the model service
are raised as PlannerRejected carrying the matching reserved action.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncAzureOpenAI

from alert_bot import config
from alert_bot.exceptions import PlannerRejected
from .actions import DOMAIN_ACTIONS, FLAGGED_INPUT, FLAGGED_OUTPUT, RATE_LIMITED
from .conversation_memory import format_history
from .conversation_state import ConversationMessage

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I didn't catch that. You can ask me about alerts for a user."
PLANNER_CONTEXT_CHARS = 1500

SYSTEM_PROMPT = """You are a security assistant in Microsoft Teams that helps analysts review risk alerts for users.

Pick exactly ONE action for the user's latest message and respond with a JSON object.

ACTIONS:
- RetrieveAlerts: look up alerts for a user. entities: {"riskyUser": "<user name or principal name>"}
- SummarizeAlert: look up and summarize alerts for a user. entities: {"riskyUser": "<user>"}
- SetupUserReminder: subscribe a user to alert reminders. entities: {"subscribedUser": "<user>"}
- RemoveUserReminder: unsubscribe a user from alert reminders. entities: {"subscribedUser": "<user>"}
- DisplayReminderUserList: list users subscribed to reminders. entities: {}
- Reply: answer directly without an action. Use "text" for the answer.

RESPONSE FORMAT:
{"action": "<ActionName>", "entities": {...}}
or
{"action": "Reply", "text": "<answer>"}

EXAMPLES:
- "any alerts for diego?" → {"action": "RetrieveAlerts", "entities": {"riskyUser": "diego"}}
- "summarize tasmiha's alerts" → {"action": "SummarizeAlert", "entities": {"riskyUser": "tasmiha"}}
- "remind alice about new alerts" → {"action": "SetupUserReminder", "entities": {"subscribedUser": "alice"}}
- "stop reminding alice" → {"action": "RemoveUserReminder", "entities": {"subscribedUser": "alice"}}
- "who gets reminders?" → {"action": "DisplayReminderUserList", "entities": {}}
- "hello" → {"action": "Reply", "text": "Hi! Ask me about risk alerts for a user."}

Use the recent conversation to resolve references like "him" or "that user"."""

SUMMARY_PROMPT = """You are a security analyst. Summarize the risk alerts below for the user {risky_user}.
Write 3-5 plain sentences: what activity was observed, how it compares with the user's normal
behavior, and what the reviewer should check next. Do not invent details that are not in the data.

ALERTS (JSON):
{alerts}"""


@dataclass
class PlannedAction:
    """Planner decision: an action to dispatch, or a plain reply."""
    name: Optional[str] = None
    entities: Dict[str, Any] = field(default_factory=dict)
    reply: Optional[str] = None


class ActionPlanner:
    """Thin Azure OpenAI client for action selection and summaries."""

    def __init__(self, client: Optional[AsyncAzureOpenAI] = None, model: Optional[str] = None):
        self.client = client or AsyncAzureOpenAI(
            api_key=config.AZURE_OPENAI_KEY,
            api_version=config.AZURE_OPENAI_API_VERSION,
            azure_endpoint=config.AZURE_OPENAI_ENDPOINT
        )
        self.model = model or config.AZURE_OPENAI_DEPLOYMENT

    async def plan(self, text: str, history: Optional[List[ConversationMessage]] = None) -> PlannedAction:
        """
        Choose the action for a user message.

        Raises:
            PlannerRejected: rate limited, or input/output blocked by the content filter
        """
        context_text = ""
        if history:
            recent = format_history(history, max_chars=PLANNER_CONTEXT_CHARS, separator="\n")
            context_text = f"Recent conversation:\n{recent}\n\n"

        content = await self._complete(
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"{context_text}Latest message: \"{text}\""}
            ],
            response_format={"type": "json_object"}
        )

        try:
            decision = json.loads(content or "")
        except json.JSONDecodeError:
            logger.warning(f"Planner returned non-JSON output: {content!r}")
            return PlannedAction(reply=FALLBACK_REPLY)

        if not isinstance(decision, dict):
            logger.warning(f"Planner returned unexpected JSON: {decision!r}")
            return PlannedAction(reply=FALLBACK_REPLY)

        action = decision.get("action")
        if action in DOMAIN_ACTIONS:
            entities = decision.get("entities") or {}
            if not isinstance(entities, dict):
                entities = {}
            logger.info(f"Planner chose {action} with entities {entities}")
            return PlannedAction(name=action, entities=entities)

        reply = decision.get("text")
        if action == "Reply" and reply:
            return PlannedAction(reply=str(reply))

        logger.warning(f"Planner chose unsupported action: {action!r}")
        return PlannedAction(reply=FALLBACK_REPLY)

    async def summarize(self, risky_user: str, alerts: List[Dict[str, Any]]) -> str:
        """
        Produce a plain-text summary of staged alerts.

        Raises:
            PlannerRejected: rate limited, or blocked by the content filter
        """
        prompt = SUMMARY_PROMPT.format(
            risky_user=risky_user,
            alerts=json.dumps(alerts, indent=2, default=str)
        )
        content = await self._complete(messages=[{"role": "user", "content": prompt}])
        summary = (content or "").strip()
        if not summary:
            return f"Found {len(alerts)} alert(s) for {risky_user}, but no summary could be generated."
        return summary

    async def _complete(self, messages: List[Dict[str, str]], **kwargs) -> Optional[str]:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                **kwargs
            )
        except openai.RateLimitError as e:
            logger.warning(f"Model service rate limited the request: {e}")
            raise PlannerRejected(RATE_LIMITED, str(e)) from e
        except openai.BadRequestError as e:
            if getattr(e, "code", None) == "content_filter":
                logger.warning("Input blocked by content filter")
                raise PlannerRejected(FLAGGED_INPUT, str(e)) from e
            raise

        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            logger.warning("Output blocked by content filter")
            raise PlannerRejected(FLAGGED_OUTPUT)

        return choice.message.content
