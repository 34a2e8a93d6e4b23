"""Thread (conversation) and participant records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from chatpull.messenger.decoding.ids import CanonicalId, canonical_id
from chatpull.messenger.decoding.variant import LaxInt, drop_nulls


class _WireModel(BaseModel):
    """Base for records validated straight from backend JSON."""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        return drop_nulls(data)


class ThreadInfo(_WireModel):
    """Summary of a chat thread (a group chat or a one-on-one chat).

    Identifier fields are canonicalized on validation, so ``"fbid:12"`` and
    ``12.0`` both become ``"12"``.
    """

    thread_id: str = ""
    thread_fbid: CanonicalId = ""
    name: str = ""

    other_user_fbid: str | None = None
    """``None`` for group chats."""

    participants: list[CanonicalId] = Field(default_factory=list)

    snippet: str = ""
    snippet_sender: CanonicalId = ""

    unread_count: LaxInt = 0
    message_count: LaxInt = 0

    timestamp: LaxInt = 0
    server_timestamp: LaxInt = 0

    @field_validator("other_user_fbid", mode="before")
    @classmethod
    def _absent_other_user(cls, value: Any) -> Any:
        # An explicit zero / empty id is a group chat too.
        return canonical_id(value) or None

    @property
    def is_group(self) -> bool:
        return self.other_user_fbid is None


class ParticipantInfo(_WireModel):
    """A user appearing in a thread listing.  ``id`` is typically ``fbid:...``."""

    id: str = ""
    fbid: CanonicalId = ""
    gender: LaxInt = 0
    href: str = ""
    image_src: str = ""
    big_image_src: str = ""
    name: str = ""
    short_name: str = ""


class ThreadListResult(_WireModel):
    """One page of the user's thread list."""

    threads: list[ThreadInfo] = Field(default_factory=list)
    participants: list[ParticipantInfo] = Field(default_factory=list)
