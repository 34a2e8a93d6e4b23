"""Data models for the messenger client."""

from chatpull.messenger.models.actions import Action, GenericAction, MessageAction
from chatpull.messenger.models.attachments import (
    Attachment,
    AudioAttachment,
    FileAttachment,
    ImageAttachment,
    StickerAttachment,
    UnknownAttachment,
    VideoAttachment,
)
from chatpull.messenger.models.enums import (
    ActionType,
    AttachmentType,
    EventKind,
    FrameType,
    StreamState,
)
from chatpull.messenger.models.events import (
    BuddyEvent,
    DeleteMessageEvent,
    Event,
    MessageEvent,
    TypingEvent,
)
from chatpull.messenger.models.threads import ParticipantInfo, ThreadInfo, ThreadListResult

__all__ = [
    # Actions
    "Action",
    "ActionType",
    # Attachments
    "Attachment",
    "AttachmentType",
    "AudioAttachment",
    # Events
    "BuddyEvent",
    "DeleteMessageEvent",
    "Event",
    "EventKind",
    "FileAttachment",
    "FrameType",
    "GenericAction",
    "ImageAttachment",
    "MessageAction",
    "MessageEvent",
    # Threads
    "ParticipantInfo",
    "StickerAttachment",
    "StreamState",
    "ThreadInfo",
    "ThreadListResult",
    "TypingEvent",
    "UnknownAttachment",
    "VideoAttachment",
]
