import json
from datetime import UTC, datetime

import pytest

from walkin.shared.business_hours import BusinessStatus
from walkin.shared.protocol import (
    AiChatMessage,
    AuthMessage,
    QueueUpdateMessage,
    encode,
    parse_client_message,
    parse_server_message,
)
from walkin.shared.snapshot import QueueSnapshot


def test_parse_auth():
    msg = parse_client_message('{"type": "auth", "userId": "u1"}')
    assert isinstance(msg, AuthMessage)
    assert msg.user_id == "u1"


def test_parse_ignores_unknown_fields():
    msg = parse_client_message('{"type": "auth", "userId": "u1", "extra": [1, 2]}')
    assert isinstance(msg, AuthMessage)


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '"auth"',
        "{}",
        '{"type": "subscribe"}',
        '{"type": ["auth"]}',
        '{"type": "auth"}',
        '{"type": "auth", "userId": ""}',
        '{"type": "auth", "userId": 42}',
    ],
)
def test_parse_rejects_bad_client_frames(raw):
    assert parse_client_message(raw) is None


def test_server_types_are_not_client_types():
    assert parse_client_message('{"type": "ai_chat", "message": "x", "isFromUser": true}') is None
    assert parse_server_message('{"type": "auth", "userId": "u1"}') is None


def test_encode_uses_wire_names_and_omits_unset():
    snapshot = QueueSnapshot(
        count=2,
        estimated_wait="30-35 minutes",
        business_status=BusinessStatus(is_open=True, message="Open until 7 PM"),
        last_update=datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
    )
    data = json.loads(encode(snapshot.to_message()))
    assert data["type"] == "queue_update"
    assert data["count"] == 2
    assert data["estimatedWait"] == "30-35 minutes"
    assert data["businessStatus"] == {"isOpen": True, "message": "Open until 7 PM"}
    assert "lastUpdate" in data


def test_server_frames_decode():
    update = parse_server_message(
        '{"type": "queue_update", "count": 1, "estimatedWait": "15-20 minutes",'
        ' "businessStatus": {"isOpen": false, "message": "Closed - Opens 10:00 AM",'
        ' "nextOpenTime": "10:00 AM"}}'
    )
    assert isinstance(update, QueueUpdateMessage)
    assert update.business_status.next_open_time == "10:00 AM"

    chat = parse_server_message(encode(AiChatMessage(message="hi", is_from_user=False)))
    assert isinstance(chat, AiChatMessage)
    assert chat.message == "hi"
    assert chat.is_from_user is False
