"""Unit tests for action-log entry classification."""

from __future__ import annotations

import json
from datetime import UTC, datetime

from chatpull.messenger.decoding.actions import decode_action, millis_to_datetime
from chatpull.messenger.models import (
    ActionType,
    GenericAction,
    ImageAttachment,
    MessageAction,
    StickerAttachment,
)


def _user_message(**overrides: object) -> dict:
    raw = {
        "__typename": "UserMessage",
        "message_id": "mid.$abc",
        "timestamp_precise": "1477432416123",
        "message_sender": {"id": "200", "email": "200@facebook.com"},
        "message": {"text": "hello there", "ranges": []},
        "blob_attachments": [],
        "sticker": None,
    }
    raw.update(overrides)
    return raw


def test_millis_to_datetime() -> None:
    expected = datetime(2016, 10, 25, 21, 53, 36, 123000, tzinfo=UTC)
    assert millis_to_datetime("1477432416123") == expected
    assert millis_to_datetime(1477432416123) == expected
    assert millis_to_datetime(1477432416123.0) == expected
    assert millis_to_datetime("soon") is None
    assert millis_to_datetime(0) is None
    assert millis_to_datetime(True) is None
    assert millis_to_datetime(None) is None
    assert millis_to_datetime("99999999999999999999") is None
    assert millis_to_datetime(float("inf")) is None
    assert millis_to_datetime(float("nan")) is None


def test_user_message_decodes_to_message_action() -> None:
    raw = _user_message()
    action = decode_action(raw)
    assert isinstance(action, MessageAction)
    assert action.action_type == ActionType.USER_MESSAGE
    assert action.body == "hello there"
    assert action.message_id == "mid.$abc"
    assert action.author_id == "200"
    assert action.timestamp == datetime(2016, 10, 25, 21, 53, 36, 123000, tzinfo=UTC)
    assert action.attachments == []
    assert action.raw_data is raw


def test_user_message_attachments_and_sticker() -> None:
    raw = _user_message(
        message={"text": ""},
        blob_attachments=[
            {"__typename": "MessageImage", "legacy_attachment_id": "1", "large_preview": {"uri": "https://cdn/l"}},
            "junk",
        ],
        sticker={"id": "369239263222822", "url": "https://cdn/s.png", "pack": {"id": "2"}},
    )
    action = decode_action(raw)
    assert isinstance(action, MessageAction)
    assert action.body == ""
    assert [type(a) for a in action.attachments] == [ImageAttachment, StickerAttachment]
    assert action.attachments[0].url == "https://cdn/l"
    assert action.attachments[1].url == "https://cdn/s.png"


def test_other_typename_is_generic() -> None:
    raw = {
        "__typename": "ThreadNameMessage",
        "message_id": "mid.$rename",
        "timestamp_precise": "1477432416000",
        "message_sender": {"id": "fbid:300"},
        "thread_name": "Weekend",
    }
    action = decode_action(raw)
    assert type(action) is GenericAction
    assert action.action_type == "ThreadNameMessage"
    assert action.author_id == "300"
    assert action.raw_data is raw


def test_malformed_entries_never_raise() -> None:
    missing_sender = decode_action({"__typename": "UserMessage", "message_sender": "nobody"})
    assert type(missing_sender) is GenericAction
    assert missing_sender.action_type == "UserMessage"

    not_an_object = decode_action(["not", "an", "object"])
    assert type(not_an_object) is GenericAction
    assert not_an_object.action_type == ""
    assert not_an_object.timestamp is None

    far_future = decode_action(_user_message(timestamp_precise="99999999999999999999"))
    assert isinstance(far_future, MessageAction)
    assert far_future.timestamp is None
    assert far_future.body == "hello there"

    overflow = decode_action(json.loads('{"__typename": "UserMessage", "timestamp_precise": 1e400}'))
    assert isinstance(overflow, MessageAction)
    assert overflow.timestamp is None
