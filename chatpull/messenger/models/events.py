"""Event models published by an event stream.

Each event carries a literal ``kind`` so consumers can ``match`` on it, and
``Event`` is the discriminated union of all of them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from chatpull.messenger.models.attachments import Attachment
from chatpull.messenger.models.enums import EventKind
from chatpull.messenger.models.threads import ThreadInfo


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class MessageEvent(_EventBase):
    """A new message.

    Exactly one of ``group_thread`` / ``other_user`` is non-empty.  The
    sender may be the current user when the message was sent from another
    device.
    """

    kind: Literal[EventKind.MESSAGE] = EventKind.MESSAGE
    message_id: str = ""
    body: str = ""
    attachments: list[Attachment] = Field(default_factory=list)
    sender_id: str = ""
    group_thread: str = ""
    other_user: str = ""

    @model_validator(mode="after")
    def _one_thread_key(self) -> MessageEvent:
        if bool(self.group_thread) == bool(self.other_user):
            msg = "exactly one of group_thread / other_user must be set"
            raise ValueError(msg)
        return self

    @property
    def is_group(self) -> bool:
        return bool(self.group_thread)

    @property
    def thread_key(self) -> str:
        """The id to reply to: the group thread, or the other user."""
        return self.group_thread or self.other_user


class BuddyEvent(_EventBase):
    """A buddy's presence changed."""

    kind: Literal[EventKind.BUDDY] = EventKind.BUDDY
    user_id: str
    last_active: datetime


class TypingEvent(_EventBase):
    """A user started or stopped typing.

    ``group_thread`` is empty for one-on-one chats.
    """

    kind: Literal[EventKind.TYPING] = EventKind.TYPING
    sender_id: str = ""
    typing: bool = False
    group_thread: str = ""


class DeleteMessageEvent(_EventBase):
    """Messages were deleted by the current user."""

    kind: Literal[EventKind.DELETE_MESSAGE] = EventKind.DELETE_MESSAGE
    message_ids: list[str] = Field(default_factory=list)
    updated_thread: ThreadInfo


Event = Annotated[
    MessageEvent | BuddyEvent | TypingEvent | DeleteMessageEvent,
    Field(discriminator="kind"),
]
