"""Frame routing -- turns message frames into typed events.

Each frame carries a ``type`` tag.  Known tags map to a handler returning
zero or more events; unknown tags are ignored.  A frame whose body does not
fit the handler's shape is dropped (logged at debug), never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import Field, ValidationError

from chatpull.messenger.decoding.attachments import decode_attachments
from chatpull.messenger.decoding.ids import CanonicalId, canonical_id
from chatpull.messenger.decoding.variant import LaxInt, LaxStr, Shape
from chatpull.messenger.models.enums import FrameType
from chatpull.messenger.models.events import (
    BuddyEvent,
    DeleteMessageEvent,
    Event,
    MessageEvent,
    TypingEvent,
)
from chatpull.messenger.models.threads import ThreadInfo

logger = logging.getLogger(__name__)

DELETE_MESSAGES_EVENT = "delete_messages"

# ---------------------------------------------------------------------------
# delta
# ---------------------------------------------------------------------------


class _ThreadKey(Shape):
    thread_fbid: CanonicalId = Field("", alias="threadFbId")
    other_user_fbid: CanonicalId = Field("", alias="otherUserFbId")


class _MessageMetadata(Shape):
    actor_fbid: CanonicalId = Field("", alias="actorFbId")
    message_id: LaxStr = Field("", alias="messageId")
    thread_key: _ThreadKey = Field(default_factory=_ThreadKey, alias="threadKey")


class _Delta(Shape):
    body: LaxStr = ""
    attachments: list[Any] = Field(default_factory=list)
    message_metadata: _MessageMetadata = Field(default_factory=_MessageMetadata, alias="messageMetadata")


class _DeltaFrame(Shape):
    delta: _Delta


def _route_delta(frame: dict[str, Any]) -> list[Event]:
    delta = _DeltaFrame.model_validate(frame).delta
    if not delta.body and not delta.attachments:
        return []
    meta = delta.message_metadata
    group_thread = meta.thread_key.thread_fbid
    other_user = "" if group_thread else meta.thread_key.other_user_fbid
    if not group_thread and not other_user:
        logger.debug("Dropping delta %r from %r: no thread key", meta.message_id, meta.actor_fbid)
        return []
    return [
        MessageEvent(
            message_id=meta.message_id,
            body=delta.body,
            attachments=decode_attachments(delta.attachments),
            sender_id=meta.actor_fbid,
            group_thread=group_thread,
            other_user=other_user,
        )
    ]


# ---------------------------------------------------------------------------
# buddylist_overlay
# ---------------------------------------------------------------------------


class _Presence(Shape):
    la: float = 0


class _OverlayFrame(Shape):
    overlay: dict[str, _Presence] = Field(default_factory=dict)


def _route_buddylist(frame: dict[str, Any]) -> list[Event]:
    overlay = _OverlayFrame.model_validate(frame).overlay
    return [
        BuddyEvent(
            user_id=canonical_id(user),
            last_active=datetime.fromtimestamp(int(presence.la), tz=UTC),
        )
        for user, presence in overlay.items()
    ]


# ---------------------------------------------------------------------------
# ttyp / typ
# ---------------------------------------------------------------------------


class _TypingFrame(Shape):
    type: Literal["ttyp", "typ"]
    st: LaxInt = 0
    sender: CanonicalId = Field("", alias="from")
    thread_fbid: CanonicalId = ""


def _route_typing(frame: dict[str, Any]) -> list[Event]:
    typing = _TypingFrame.model_validate(frame)
    return [
        TypingEvent(
            sender_id=typing.sender,
            typing=typing.st == 1,
            group_thread=typing.thread_fbid if typing.type == FrameType.GROUP_TYPING else "",
        )
    ]


# ---------------------------------------------------------------------------
# messaging / delete_messages
# ---------------------------------------------------------------------------


class _DeleteFrame(Shape):
    event: Literal["delete_messages"]
    mids: list[LaxStr] = Field(default_factory=list)
    updated_thread: ThreadInfo


def _route_messaging(frame: dict[str, Any]) -> list[Event]:
    if frame.get("event") != DELETE_MESSAGES_EVENT:
        return []
    deleted = _DeleteFrame.model_validate(frame)
    return [DeleteMessageEvent(message_ids=deleted.mids, updated_thread=deleted.updated_thread)]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

FrameHandler = Callable[[dict[str, Any]], list[Event]]

FRAME_HANDLERS: dict[str, FrameHandler] = {
    FrameType.DELTA: _route_delta,
    FrameType.BUDDYLIST_OVERLAY: _route_buddylist,
    FrameType.GROUP_TYPING: _route_typing,
    FrameType.TYPING: _route_typing,
    FrameType.MESSAGING: _route_messaging,
}


def route_frame(frame: Any) -> list[Event]:
    """Return the events described by one message frame (possibly none)."""
    if not isinstance(frame, dict):
        return []
    frame_type = frame.get("type")
    handler = FRAME_HANDLERS.get(frame_type) if isinstance(frame_type, str) else None
    if handler is None:
        logger.debug("Ignoring frame of type %r", frame_type)
        return []
    try:
        return handler(frame)
    except (ValidationError, ValueError, OverflowError, OSError) as e:
        logger.debug("Dropping malformed %s frame: %s", frame_type, e)
        return []
