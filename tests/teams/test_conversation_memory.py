"""
Tests for conversation history recording and rendering.
"""
from alert_bot.api.teams.conversation_memory import add_message, format_history
from alert_bot.api.teams.conversation_state import MAX_CONVERSATION_HISTORY, new_conversation_data


def test_add_message_appends_in_order():
    data = new_conversation_data()
    add_message(data, "user", "show alerts for diego")
    add_message(data, "assistant", "Retrieving alerts for user: diego")

    assert data["history"] == [
        {"role": "user", "content": "show alerts for diego"},
        {"role": "assistant", "content": "Retrieving alerts for user: diego"},
    ]


def test_add_message_skips_empty_content():
    data = new_conversation_data()
    add_message(data, "assistant", "")

    assert data["history"] == []


def test_history_is_capped_to_most_recent():
    data = new_conversation_data()
    for i in range(MAX_CONVERSATION_HISTORY + 5):
        add_message(data, "user", f"message {i}")

    assert len(data["history"]) == MAX_CONVERSATION_HISTORY
    assert data["history"][0]["content"] == "message 5"


def test_format_history_empty():
    assert format_history([]) == ""


def test_format_history_renders_chronologically():
    history = [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
    ]

    assert format_history(history) == "user: hi\n\nassistant: hello"


def test_format_history_keeps_newest_whole_lines_within_budget():
    history = [
        {"role": "user", "content": "a" * 20},
        {"role": "user", "content": "b" * 20},
        {"role": "user", "content": "c" * 20},
    ]
    # Each line is 26 chars; two lines plus one separator is 54
    text = format_history(history, max_chars=60)

    assert text == f"user: {'b' * 20}\n\nuser: {'c' * 20}"
    assert len(text) <= 60


def test_format_history_drops_message_longer_than_budget():
    history = [{"role": "user", "content": "x" * 100}]

    assert format_history(history, max_chars=50) == ""


def test_format_history_custom_separator():
    history = [
        {"role": "user", "content": "one"},
        {"role": "assistant", "content": "two"},
    ]

    assert format_history(history, separator="\n") == "user: one\nassistant: two"
