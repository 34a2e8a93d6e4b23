"""Thread action-log records.

An action is something that happened in a thread.  User messages decode to
``MessageAction``; every other entry (renames, calls, admin changes, ...)
is kept as a ``GenericAction`` with its raw payload.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SkipValidation

from chatpull.messenger.models.attachments import Attachment


class GenericAction(BaseModel):
    """An action with no action-specific fields.

    Attributes
    ----------
    action_type:
        The backend's ``__typename`` for the entry (possibly ``""``).
    timestamp:
        When the action happened, or ``None`` if the entry carried no
        usable timestamp.
    message_id:
        Message id of the entry (possibly ``""``).
    author_id:
        Canonical id of the sender (possibly ``""``).
    raw_data:
        The entry exactly as received.
    """

    model_config = ConfigDict(frozen=True)

    action_type: str = ""
    timestamp: datetime | None = None
    message_id: str = ""
    author_id: str = ""
    raw_data: SkipValidation[Any] = None


class MessageAction(GenericAction):
    """A user-sent message."""

    body: str = ""
    attachments: list[Attachment] = Field(default_factory=list)


Action = MessageAction | GenericAction
