"""Shared enumerations used across the messenger client."""

from __future__ import annotations

from enum import StrEnum

# -- Events ------------------------------------------------------------------


class EventKind(StrEnum):
    """Tag of each event published by an event stream."""

    MESSAGE = "message"
    BUDDY = "buddy"
    TYPING = "typing"
    DELETE_MESSAGE = "delete_message"


class FrameType(StrEnum):
    """Routing tag of a message frame inside a ``msg`` poll object."""

    DELTA = "delta"
    BUDDYLIST_OVERLAY = "buddylist_overlay"
    GROUP_TYPING = "ttyp"
    TYPING = "typ"
    MESSAGING = "messaging"


# -- Stream lifecycle ----------------------------------------------------------


class StreamState(StrEnum):
    """Externally observable state of an event stream.

    A failed handshake does not have its own state: the stream goes straight
    to ``CLOSED`` with the error recorded.
    """

    INITIALIZING = "initializing"
    STREAMING = "streaming"
    CLOSED = "closed"


# -- Attachments -------------------------------------------------------------


class AttachmentType(StrEnum):
    """Canonical attachment type tags (the inline envelope's ``attach_type``)."""

    AUDIO = "audio"
    IMAGE = "photo"
    ANIMATED_IMAGE = "animated_image"
    STICKER = "sticker"
    FILE = "file"
    VIDEO = "video"


# -- Actions -----------------------------------------------------------------


class ActionType(StrEnum):
    """Known ``__typename`` values of action-log entries."""

    USER_MESSAGE = "UserMessage"
