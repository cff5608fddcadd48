"""
Risk Alert Bot - Microsoft Teams integration for user risk alerts.

Provides:
- Bot Framework activity handling (message, card submit, conversationUpdate)
- Alert lookup by user principal name from a local JSON source
- Azure OpenAI action planning and alert summaries
- Reminder subscriptions
- Proactive new-alert notifications to every known conversation
"""
