"""
Adaptive Cards for Microsoft Teams Bot
Creates cards for alert summaries, new-alert notifications and welcome messages.
"""
from typing import Any, Dict, List, Optional

from botbuilder.core import CardFactory
from botbuilder.schema import Attachment

ADAPTIVE_CARD_SCHEMA = "http://adaptivecards.io/schemas/adaptive-card.json"
ADAPTIVE_CARD_VERSION = "1.4"


def _card(body: List[Dict[str, Any]], actions: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    content: Dict[str, Any] = {
        "$schema": ADAPTIVE_CARD_SCHEMA,
        "type": "AdaptiveCard",
        "version": ADAPTIVE_CARD_VERSION,
        "body": body,
    }
    if actions:
        content["actions"] = actions
    return {
        "contentType": "application/vnd.microsoft.card.adaptive",
        "content": content,
    }


def to_attachment(card: Dict[str, Any]) -> Attachment:
    """Convert a card built here into a Bot Framework attachment."""
    return CardFactory.adaptive_card(card["content"])


def create_alert_summary_card(
    risky_user: str,
    summary: str,
    alerts: List[Dict[str, Any]]
) -> Dict[str, Any]:
    """
    Create the card shown after alerts were summarized for a user.

    Args:
        risky_user: User the alerts were retrieved for
        summary: Model-generated summary text
        alerts: Staged alert dicts (source field names)
    """
    sequential = sum(len(a.get("SequentialActivities") or []) for a in alerts)
    comparative = sum(len(a.get("ComparativeActivities") or []) for a in alerts)
    principals = sorted({a.get("UserPrincipalName", "") for a in alerts if a.get("UserPrincipalName")})

    body: List[Dict[str, Any]] = [
        {
            "type": "TextBlock",
            "text": f"🚨 Risk alerts for {risky_user}",
            "size": "Large",
            "weight": "Bolder",
            "color": "Attention",
            "wrap": True
        },
        {
            "type": "TextBlock",
            "text": summary,
            "wrap": True,
            "spacing": "Medium"
        },
        {
            "type": "FactSet",
            "separator": True,
            "spacing": "Medium",
            "facts": [
                {"title": "Alerts", "value": str(len(alerts))},
                {"title": "Sequential activities", "value": str(sequential)},
                {"title": "Comparative activities", "value": str(comparative)},
            ]
        }
    ]

    if principals:
        body.append({
            "type": "TextBlock",
            "text": "Accounts: " + ", ".join(principals),
            "wrap": True,
            "isSubtle": True,
            "size": "Small"
        })

    return _card(body)


def create_new_alert_card(user_principal_name: str, alert_count: int = 1) -> Dict[str, Any]:
    """
    Create the proactive notification card for newly pushed alerts.

    The submit action asks the bot to summarize alerts for the same user.
    """
    detail = "A new risk alert was raised" if alert_count == 1 else f"{alert_count} new risk alerts were raised"
    return _card(
        body=[
            {
                "type": "TextBlock",
                "text": "🔔 New risk alert",
                "size": "Large",
                "weight": "Bolder",
                "color": "Warning"
            },
            {
                "type": "TextBlock",
                "text": f"{detail} for **{user_principal_name}**.",
                "wrap": True
            }
        ],
        actions=[
            {
                "type": "Action.Submit",
                "title": "Summarize alerts",
                "data": {
                    "action": "SummarizeAlert",
                    "riskyUser": user_principal_name
                }
            }
        ]
    )


def create_welcome_card(user_name: str = "there") -> Dict[str, Any]:
    """Create welcome card shown when the bot is added to a conversation."""
    return _card(
        body=[
            {
                "type": "TextBlock",
                "text": f"👋 Hi {user_name}!",
                "size": "ExtraLarge",
                "weight": "Bolder",
                "color": "Accent"
            },
            {
                "type": "TextBlock",
                "text": "I'm your risk alert assistant. I can help you:",
                "wrap": True,
                "spacing": "Small"
            },
            {
                "type": "FactSet",
                "facts": [
                    {"title": "🔍 Alerts", "value": "\"Show me alerts for diego\""},
                    {"title": "📝 Summaries", "value": "\"Summarize alerts for tasmiha\""},
                    {"title": "⏰ Reminders", "value": "\"Remind alice about new alerts\""},
                    {"title": "📜 History", "value": "/history"}
                ]
            }
        ]
    )
