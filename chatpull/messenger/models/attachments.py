"""Attachment records.

An attachment is one of a closed set of variants.  Every variant exposes a
``type`` tag and a primary ``url`` (possibly empty).  ``UnknownAttachment``
keeps the undecoded payload so nothing the backend sent is lost.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, SkipValidation, computed_field

from chatpull.messenger.models.enums import AttachmentType


class _AttachmentBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class AudioAttachment(_AttachmentBase):
    """A voice clip or audio file."""

    type: Literal[AttachmentType.AUDIO] = AttachmentType.AUDIO
    fbid: str = ""
    filename: str = ""
    mime_type: str = ""
    audio_url: str = ""
    duration_ms: int | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        return self.audio_url


class ImageAttachment(_AttachmentBase):
    """A photo, or an animated image (GIF) when ``type`` is ``animated_image``."""

    type: Literal[AttachmentType.IMAGE, AttachmentType.ANIMATED_IMAGE] = AttachmentType.IMAGE
    fbid: str = ""
    filename: str = ""
    mime_type: str = ""

    width: int = 0
    height: int = 0

    preview_url: str = ""
    preview_width: int = 0
    preview_height: int = 0

    large_preview_url: str = ""
    large_preview_width: int = 0
    large_preview_height: int = 0

    thumbnail_url: str = ""
    hires_url: str = ""
    animated_url: str = ""

    @property
    def animated(self) -> bool:
        return self.type == AttachmentType.ANIMATED_IMAGE

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        """The best available full-size URL."""
        if self.animated and self.animated_url:
            return self.animated_url
        return self.hires_url or self.large_preview_url or self.preview_url


class StickerAttachment(_AttachmentBase):
    """A sticker, possibly animated through a sprite sheet."""

    type: Literal[AttachmentType.STICKER] = AttachmentType.STICKER
    raw_url: str = ""

    sticker_id: str = ""
    pack_id: str = ""

    sprite_uri: str = ""
    sprite_uri_2x: str = ""
    padded_sprite_uri: str = ""
    padded_sprite_uri_2x: str = ""
    frame_count: int = 0
    frame_rate: int = 0
    frames_per_row: int = 0
    frames_per_col: int = 0

    width: int = 0
    height: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        return self.raw_url


class FileAttachment(_AttachmentBase):
    """A generic file upload."""

    type: Literal[AttachmentType.FILE] = AttachmentType.FILE
    fbid: str = ""
    filename: str = ""
    mime_type: str = ""
    file_url: str = ""
    size: int | None = None
    is_malicious: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        return self.file_url


class VideoAttachment(_AttachmentBase):
    """A video clip."""

    type: Literal[AttachmentType.VIDEO] = AttachmentType.VIDEO
    fbid: str = ""
    filename: str = ""
    mime_type: str = ""
    video_url: str = ""
    preview_url: str = ""
    width: int = 0
    height: int = 0
    duration_ms: int | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        return self.video_url


class UnknownAttachment(_AttachmentBase):
    """An attachment matching none of the known shapes.

    ``type`` is whatever discriminant the payload carried (``attach_type`` or
    ``__typename``), or ``""``.  ``raw_data`` is the payload as received.
    """

    type: str = ""
    raw_data: SkipValidation[Any] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        return ""


Attachment = (
    AudioAttachment | ImageAttachment | StickerAttachment | FileAttachment | VideoAttachment | UnknownAttachment
)
