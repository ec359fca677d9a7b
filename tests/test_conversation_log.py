import re

from pairchat.core.conversation_log import ConversationLog, LogEntry, conversation_key, utc_timestamp


def test_key_is_order_independent():
    assert conversation_key("bob", "alice") == conversation_key("alice", "bob") == ("alice", "bob")


def test_history_is_shared_by_both_sides():
    log = ConversationLog()
    log.append("alice", "bob", "hi bob", "t1")
    log.append("bob", "alice", "hi alice", "t2")

    expected = [LogEntry("alice", "hi bob", "t1"), LogEntry("bob", "hi alice", "t2")]
    assert log.history("alice", "bob") == expected
    assert log.history("bob", "alice") == expected
    assert len(log) == 1


def test_unknown_conversation_is_empty_and_not_created():
    log = ConversationLog()
    assert log.history("alice", "carol") == []
    assert len(log) == 0


def test_history_is_a_snapshot():
    log = ConversationLog()
    log.append("alice", "bob", "one", "t1")
    snapshot = log.history("alice", "bob")
    log.append("alice", "bob", "two", "t2")
    assert len(snapshot) == 1


def test_entry_wire_shape():
    entry = LogEntry("alice", "hello", "2024-05-01T12:00:00.000Z")
    assert entry.to_wire() == {"sender": "alice", "message": "hello", "timestamp": "2024-05-01T12:00:00.000Z"}


def test_timestamp_format():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())
