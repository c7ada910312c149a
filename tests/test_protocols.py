from datetime import datetime, timezone

from vibebot.protocols import CompleteRequest, EmbeddingRow, Message, Role


def test_message_equality():
    assert Message(Role.USER, "hi") == Message(Role.USER, "hi")
    assert Message(Role.USER, "hi") != Message(Role.USER, "bye")


def test_complete_request_messages_not_shared():
    first = CompleteRequest()
    first.messages.append(Message(Role.USER, "x"))
    assert CompleteRequest().messages == []
    assert len(first.messages) == 1


def test_complete_request_holds_values():
    req = CompleteRequest(
        system="sys",
        messages=[Message(role=Role.USER, content="content")],
        max_tokens=120,
        temperature=0.7,
    )
    assert req.messages[0].content == "content"
    assert req.messages[0].role is Role.USER
    assert req.max_tokens == 120
    assert req.temperature == 0.7


def test_embedding_row_equality():
    ts = datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
    a = EmbeddingRow(owner="alice", model_id="m", event_id=1, embedding=[0.1, 0.2], recorded=ts)
    b = EmbeddingRow(owner="alice", model_id="m", event_id=1, embedding=[0.1, 0.2], recorded=ts)
    c = EmbeddingRow(owner="alice", model_id="m", event_id=2, embedding=[0.1, 0.2], recorded=ts)
    assert a == b
    assert a != c