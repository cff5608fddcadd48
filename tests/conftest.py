"""
Shared pytest configuration and fixtures for Risk Alert Bot tests.
"""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from alert_bot.services.alert_store import AlertStore


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


SAMPLE_ALERTS = [
    {
        "UserPrincipalName": "diego@contoso.com",
        "AlertId": "1",
        "Severity": "high",
        "SequentialActivities": [{"Activity": "FileDownloaded", "Count": 412}],
        "ComparativeActivities": [{"Activity": "FileDownloaded", "UserDailyAverage": 12}]
    },
    {
        "UserPrincipalName": "tasmiha@contoso.com",
        "AlertId": "2",
        "Severity": "medium",
        "SequentialActivities": [{"Activity": "SensitivityLabelDowngraded", "Count": 8}]
    },
    {
        "UserPrincipalName": "moise@fabrikam.com",
        "AlertId": "3",
        "Severity": "low"
    }
]


@pytest.fixture
def alerts_file(tmp_path):
    """Alert source file with three alerts."""
    path = tmp_path / "alerts.json"
    path.write_text(json.dumps(SAMPLE_ALERTS), encoding="utf-8")
    return path


@pytest.fixture
def alert_store(alerts_file):
    return AlertStore(alerts_file)


@pytest.fixture
def mock_turn_context():
    """Mock Teams Bot Framework turn context."""
    context = MagicMock()
    context.activity = MagicMock()
    context.activity.conversation.id = "conv-test"
    context.send_activity = AsyncMock()
    return context
