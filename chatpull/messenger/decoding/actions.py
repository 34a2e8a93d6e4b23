"""Action-log entry classification.

Entries come from the GraphQL message-thread query.  Only user messages get
a dedicated variant; everything else is a ``GenericAction`` that still
exposes the common fields and the raw payload.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BeforeValidator, Field, field_validator

from chatpull.messenger.decoding.attachments import decode_attachment, decode_attachments
from chatpull.messenger.decoding.ids import CanonicalId
from chatpull.messenger.decoding.variant import UNMATCHED, LaxStr, Shape, Variant, decode_variant
from chatpull.messenger.models.actions import Action, GenericAction, MessageAction
from chatpull.messenger.models.attachments import Attachment
from chatpull.messenger.models.enums import ActionType


def millis_to_datetime(value: Any) -> datetime | None:
    """Parse a millisecond epoch (string or number) into an aware UTC datetime.

    Returns ``None`` for anything that is not a usable timestamp.
    """
    if isinstance(value, bool) or not isinstance(value, str | int | float):
        return None
    try:
        millis = int(value)
        if millis <= 0:
            return None
        seconds, remainder = divmod(millis, 1000)
        return datetime.fromtimestamp(seconds, tz=UTC).replace(microsecond=remainder * 1000)
    except (ValueError, OverflowError, OSError):
        # Not a number, not finite, or outside the platform's datetime range.
        return None


MillisTimestamp = Annotated[datetime | None, BeforeValidator(millis_to_datetime)]


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


class _Sender(Shape):
    id: CanonicalId = ""


class _Text(Shape):
    text: LaxStr = ""


class _ActionEntry(Shape):
    """Fields common to every action-log entry."""

    typename: LaxStr = Field("", alias="__typename")
    timestamp_precise: MillisTimestamp = None
    message_id: LaxStr = ""
    message_sender: _Sender = Field(default_factory=_Sender)


class _UserMessage(_ActionEntry):
    typename: LaxStr = Field(alias="__typename")
    message: _Text = Field(default_factory=_Text)
    blob_attachments: list[Any] = Field(default_factory=list)
    sticker: Any = None

    @field_validator("typename")
    @classmethod
    def _is_user_message(cls, value: str) -> str:
        if value != ActionType.USER_MESSAGE:
            msg = f"not a user message: {value!r}"
            raise ValueError(msg)
        return value


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _common_fields(shape: _ActionEntry, raw: Any) -> dict[str, Any]:
    return {
        "action_type": shape.typename,
        "timestamp": shape.timestamp_precise,
        "message_id": shape.message_id,
        "author_id": shape.message_sender.id,
        "raw_data": raw,
    }


def _sticker_attachment(sticker: Any) -> list[Attachment]:
    if not isinstance(sticker, dict) or not sticker:
        return []
    if "__typename" not in sticker:
        sticker = {"__typename": "Sticker", **sticker}
    return [decode_attachment(sticker)]


def _variants(raw: Any) -> tuple[Variant[Action], ...]:
    def build_message(shape: _UserMessage) -> MessageAction:
        attachments = decode_attachments(shape.blob_attachments)
        attachments.extend(_sticker_attachment(shape.sticker))
        return MessageAction(
            **_common_fields(shape, raw),
            body=shape.message.text,
            attachments=attachments,
        )

    def build_generic(shape: _ActionEntry) -> GenericAction:
        return GenericAction(**_common_fields(shape, raw))

    return (
        Variant(_UserMessage, build_message),
        Variant(_ActionEntry, build_generic),
    )


def decode_action(raw: Any) -> Action:
    """Decode one action-log entry.

    Never raises.  An entry too malformed for even the generic shape still
    yields a ``GenericAction`` carrying the raw payload.
    """
    result = decode_variant(raw, _variants(raw))
    if result is UNMATCHED:
        typename = raw.get("__typename") if isinstance(raw, dict) else None
        return GenericAction(action_type=typename if isinstance(typename, str) else "", raw_data=raw)
    return result  # type: ignore[return-value]
