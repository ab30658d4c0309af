"""Tests for the chat aggregate store."""

from datetime import timedelta

import pytest

from nexchat.chat.store import ChatAggregateStore


def test_fifo_eviction_keeps_last_three(make_message):
    store = ChatAggregateStore(max_messages=3)
    store.start()
    for i in range(4):
        store.add_message(make_message(text=f"msg {i}"))

    assert [m.text for m in store.messages] == ["msg 1", "msg 2", "msg 3"]
    assert len(store) == 3
    assert store.total_messages == 4


def test_buffer_never_exceeds_bound(make_message):
    store = ChatAggregateStore(max_messages=5)
    for i in range(50):
        store.add_message(make_message(text=str(i)))
        assert len(store) <= 5
    assert store.messages[0].text == "45"


def test_user_counts_cover_whole_session(make_message):
    store = ChatAggregateStore(max_messages=2)
    for name in ["alice", "bob", "alice", "alice"]:
        store.add_message(make_message(username=name))

    assert store.user_counts == {"alice": 3, "bob": 1}
    assert store.top_chatters() == [("alice", 3), ("bob", 1)]


def test_top_chatters_limit(make_message):
    store = ChatAggregateStore()
    for i in range(10):
        for _ in range(i + 1):
            store.add_message(make_message(username=f"user{i}"))

    top = store.top_chatters()
    assert len(top) == 5
    assert top[0] == ("user9", 10)
    assert top[-1] == ("user5", 6)


def test_start_resets_state(make_message, received_at):
    store = ChatAggregateStore()
    store.add_message(make_message())
    store.start(now=received_at)

    assert store.messages == []
    assert store.total_messages == 0
    assert store.user_counts == {}
    assert store.start_time == received_at


def test_stop_clears_start_time_only(make_message):
    store = ChatAggregateStore()
    store.start()
    store.add_message(make_message())
    store.stop()

    assert store.start_time is None
    assert store.total_messages == 1
    assert store.messages_per_minute() == 0


def test_alert_trigger_case_insensitive(make_message):
    store = ChatAggregateStore(alert_words=["pog"])
    assert store.add_message(make_message(text="That was POGGERS")) is True
    assert store.add_message(make_message(text="nothing here")) is False


def test_set_alert_words_from_string(make_message):
    store = ChatAggregateStore()
    store.set_alert_words(" pog, , OMG ,hype ")
    assert store.alert_words == ["pog", "OMG", "hype"]
    assert store.is_alert(make_message(text="omg what"))


def test_no_alert_words_never_alerts(make_message):
    store = ChatAggregateStore()
    assert store.add_message(make_message(text="pog")) is False


def test_set_max_messages_evicts_oldest(make_message):
    store = ChatAggregateStore(max_messages=10)
    for i in range(6):
        store.add_message(make_message(text=str(i)))
    store.set_max_messages(2)

    assert [m.text for m in store.messages] == ["4", "5"]
    assert store.total_messages == 6


def test_invalid_max_messages():
    with pytest.raises(ValueError):
        ChatAggregateStore(max_messages=0)


def test_filtered_messages(make_message):
    store = ChatAggregateStore()
    store.add_message(make_message(text="Hello there", username="alice"))
    store.add_message(make_message(text="hello again", username="bob"))
    store.add_message(make_message(text="bye", username="alice"))

    assert [m.text for m in store.filtered_messages(user="alice")] == ["Hello there", "bye"]
    assert [m.text for m in store.filtered_messages(query="HELLO")] == [
        "Hello there",
        "hello again",
    ]
    assert [m.text for m in store.filtered_messages(user="bob", query="hello")] == [
        "hello again"
    ]
    assert len(store.filtered_messages()) == 3


def test_messages_per_minute(make_message, received_at):
    store = ChatAggregateStore()
    store.start(now=received_at)
    for _ in range(30):
        store.add_message(make_message())

    assert store.messages_per_minute(now=received_at + timedelta(minutes=2)) == 15


def test_messages_per_minute_floors_elapsed_time(make_message, received_at):
    store = ChatAggregateStore()
    store.start(now=received_at)
    store.add_message(make_message())

    # 1 message in under 6 seconds counts as 1 per 0.1 minute
    assert store.messages_per_minute(now=received_at + timedelta(seconds=1)) == 10


def test_uptime_str(received_at):
    store = ChatAggregateStore()
    assert store.uptime_str() == "00:00:00"
    store.start(now=received_at)
    later = received_at + timedelta(hours=1, minutes=2, seconds=3)
    assert store.uptime_str(now=later) == "01:02:03"
