"""Attachment classification.

Two envelopes have been observed for the same attachment kinds:

**inline** (event deltas)::

    {"fbid": "...", "filename": "...", "mimeType": "...",
     "imageMetadata": {...},
     "mercury": {"attach_type": "photo", "hires_url": "...", ...}}

  Older deltas carry ``mercury`` as a JSON string under ``mercuryJSON``;
  it is unpacked before trial.

**blob** (GraphQL ``blob_attachments``)::

    {"__typename": "MessageImage", "legacy_attachment_id": "...",
     "large_preview": {"uri": "..."}, "original_dimensions": {...}}

Every kind is tried inline first, then blob.  The animated image shapes come
before the still image ones.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import Field

from chatpull.messenger.decoding.ids import CanonicalId
from chatpull.messenger.decoding.variant import UNMATCHED, LaxBool, LaxInt, LaxStr, Shape, Variant, decode_variant
from chatpull.messenger.models.attachments import (
    Attachment,
    AudioAttachment,
    FileAttachment,
    ImageAttachment,
    StickerAttachment,
    UnknownAttachment,
    VideoAttachment,
)
from chatpull.messenger.models.enums import AttachmentType

# ---------------------------------------------------------------------------
# Shared nested shapes
# ---------------------------------------------------------------------------


class _Dimensions(Shape):
    width: LaxInt = 0
    height: LaxInt = 0


class _XY(Shape):
    x: LaxInt = 0
    y: LaxInt = 0


class _Image(Shape):
    uri: LaxStr = ""
    width: LaxInt = 0
    height: LaxInt = 0


class _Ref(Shape):
    id: CanonicalId = ""


class _InlineEnvelope(Shape):
    """Top-level fields shared by every inline attachment."""

    fbid: CanonicalId = ""
    filename: LaxStr = ""
    mime_type: LaxStr = Field("", alias="mimeType")


def _mime_from_extension(extension: str, family: str) -> str:
    return f"{family}/{extension.lower()}" if extension else ""


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


class _InlineImageMercury(Shape):
    attach_type: Literal["photo"]
    preview_url: LaxStr = ""
    preview_width: LaxInt = 0
    preview_height: LaxInt = 0
    large_preview_url: LaxStr = ""
    large_preview_width: LaxInt = 0
    large_preview_height: LaxInt = 0
    thumbnail_url: LaxStr = ""
    hires_url: LaxStr = ""


class _InlineAnimatedMercury(_InlineImageMercury):
    attach_type: Literal["animated_image"]  # type: ignore[assignment]
    url: LaxStr = ""


class _InlineImage(_InlineEnvelope):
    image_metadata: _Dimensions = Field(default_factory=_Dimensions, alias="imageMetadata")
    mercury: _InlineImageMercury


class _InlineAnimatedImage(_InlineEnvelope):
    image_metadata: _Dimensions = Field(default_factory=_Dimensions, alias="imageMetadata")
    mercury: _InlineAnimatedMercury


def _build_inline_image(shape: _InlineImage | _InlineAnimatedImage) -> ImageAttachment:
    mercury = shape.mercury
    animated = isinstance(mercury, _InlineAnimatedMercury)
    return ImageAttachment(
        type=AttachmentType.ANIMATED_IMAGE if animated else AttachmentType.IMAGE,
        fbid=shape.fbid,
        filename=shape.filename,
        mime_type=shape.mime_type,
        width=shape.image_metadata.width,
        height=shape.image_metadata.height,
        preview_url=mercury.preview_url,
        preview_width=mercury.preview_width,
        preview_height=mercury.preview_height,
        large_preview_url=mercury.large_preview_url,
        large_preview_width=mercury.large_preview_width,
        large_preview_height=mercury.large_preview_height,
        thumbnail_url=mercury.thumbnail_url,
        hires_url=mercury.hires_url,
        animated_url=mercury.url if isinstance(mercury, _InlineAnimatedMercury) else "",
    )


class _BlobImage(Shape):
    typename: Literal["MessageImage"] = Field(alias="__typename")
    legacy_attachment_id: CanonicalId = ""
    filename: LaxStr = ""
    original_extension: LaxStr = ""
    original_dimensions: _XY = Field(default_factory=_XY)
    preview: _Image = Field(default_factory=_Image)
    large_preview: _Image = Field(default_factory=_Image)
    thumbnail: _Image = Field(default_factory=_Image)


def _build_blob_image(shape: _BlobImage) -> ImageAttachment:
    return ImageAttachment(
        type=AttachmentType.IMAGE,
        fbid=shape.legacy_attachment_id,
        filename=shape.filename,
        mime_type=_mime_from_extension(shape.original_extension, "image"),
        width=shape.original_dimensions.x,
        height=shape.original_dimensions.y,
        preview_url=shape.preview.uri,
        preview_width=shape.preview.width,
        preview_height=shape.preview.height,
        large_preview_url=shape.large_preview.uri,
        large_preview_width=shape.large_preview.width,
        large_preview_height=shape.large_preview.height,
        thumbnail_url=shape.thumbnail.uri,
    )


class _BlobAnimatedImage(Shape):
    typename: Literal["MessageAnimatedImage"] = Field(alias="__typename")
    legacy_attachment_id: CanonicalId = ""
    filename: LaxStr = ""
    original_dimensions: _XY = Field(default_factory=_XY)
    animated_image: _Image = Field(default_factory=_Image)
    preview_image: _Image = Field(default_factory=_Image)


def _build_blob_animated(shape: _BlobAnimatedImage) -> ImageAttachment:
    return ImageAttachment(
        type=AttachmentType.ANIMATED_IMAGE,
        fbid=shape.legacy_attachment_id,
        filename=shape.filename,
        mime_type="image/gif",
        width=shape.original_dimensions.x,
        height=shape.original_dimensions.y,
        preview_url=shape.preview_image.uri,
        preview_width=shape.preview_image.width,
        preview_height=shape.preview_image.height,
        animated_url=shape.animated_image.uri,
    )


# ---------------------------------------------------------------------------
# Stickers
# ---------------------------------------------------------------------------


class _InlineStickerMeta(Shape):
    sticker_id: CanonicalId = Field("", alias="stickerID")
    pack_id: CanonicalId = Field("", alias="packID")
    frame_count: LaxInt = Field(0, alias="frameCount")
    frame_rate: LaxInt = Field(0, alias="frameRate")
    frames_per_row: LaxInt = Field(0, alias="framesPerRow")
    frames_per_col: LaxInt = Field(0, alias="framesPerCol")
    width: LaxInt = 0
    height: LaxInt = 0
    sprite_uri: LaxStr = Field("", alias="spriteURI")
    sprite_uri_2x: LaxStr = Field("", alias="spriteURI2x")
    padded_sprite_uri: LaxStr = Field("", alias="paddedSpriteURI")
    padded_sprite_uri_2x: LaxStr = Field("", alias="paddedSpriteURI2x")


class _InlineStickerMercury(Shape):
    attach_type: Literal["sticker"]
    url: LaxStr = ""
    metadata: _InlineStickerMeta = Field(default_factory=_InlineStickerMeta)


class _InlineSticker(Shape):
    mercury: _InlineStickerMercury


def _build_inline_sticker(shape: _InlineSticker) -> StickerAttachment:
    meta = shape.mercury.metadata
    return StickerAttachment(
        raw_url=shape.mercury.url,
        sticker_id=meta.sticker_id,
        pack_id=meta.pack_id,
        sprite_uri=meta.sprite_uri,
        sprite_uri_2x=meta.sprite_uri_2x,
        padded_sprite_uri=meta.padded_sprite_uri,
        padded_sprite_uri_2x=meta.padded_sprite_uri_2x,
        frame_count=meta.frame_count,
        frame_rate=meta.frame_rate,
        frames_per_row=meta.frames_per_row,
        frames_per_col=meta.frames_per_col,
        width=meta.width,
        height=meta.height,
    )


class _BlobSticker(Shape):
    typename: Literal["Sticker"] = Field(alias="__typename")
    id: CanonicalId = ""
    url: LaxStr = ""
    pack: _Ref = Field(default_factory=_Ref)
    width: LaxInt = 0
    height: LaxInt = 0
    frame_count: LaxInt = 0
    frame_rate: LaxInt = 0
    frames_per_row: LaxInt = 0
    frames_per_column: LaxInt = 0
    sprite_image: _Image = Field(default_factory=_Image)
    sprite_image_2x: _Image = Field(default_factory=_Image)
    padded_sprite_image: _Image = Field(default_factory=_Image)
    padded_sprite_image_2x: _Image = Field(default_factory=_Image)


def _build_blob_sticker(shape: _BlobSticker) -> StickerAttachment:
    return StickerAttachment(
        raw_url=shape.url,
        sticker_id=shape.id,
        pack_id=shape.pack.id,
        sprite_uri=shape.sprite_image.uri,
        sprite_uri_2x=shape.sprite_image_2x.uri,
        padded_sprite_uri=shape.padded_sprite_image.uri,
        padded_sprite_uri_2x=shape.padded_sprite_image_2x.uri,
        frame_count=shape.frame_count,
        frame_rate=shape.frame_rate,
        frames_per_row=shape.frames_per_row,
        frames_per_col=shape.frames_per_column,
        width=shape.width,
        height=shape.height,
    )


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------


class _MediaMeta(Shape):
    duration: LaxInt | None = None
    dimensions: _Dimensions = Field(default_factory=_Dimensions)


class _InlineAudioMercury(Shape):
    attach_type: Literal["audio"]
    url: LaxStr = ""
    metadata: _MediaMeta = Field(default_factory=_MediaMeta)


class _InlineAudio(_InlineEnvelope):
    mercury: _InlineAudioMercury


def _build_inline_audio(shape: _InlineAudio) -> AudioAttachment:
    return AudioAttachment(
        fbid=shape.fbid,
        filename=shape.filename,
        mime_type=shape.mime_type,
        audio_url=shape.mercury.url,
        duration_ms=shape.mercury.metadata.duration,
    )


class _BlobAudio(Shape):
    typename: Literal["MessageAudio"] = Field(alias="__typename")
    legacy_attachment_id: CanonicalId = ""
    filename: LaxStr = ""
    playable_url: LaxStr = ""
    playable_duration_in_ms: LaxInt | None = None


def _build_blob_audio(shape: _BlobAudio) -> AudioAttachment:
    return AudioAttachment(
        fbid=shape.legacy_attachment_id,
        filename=shape.filename,
        audio_url=shape.playable_url,
        duration_ms=shape.playable_duration_in_ms,
    )


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class _InlineFileMercury(Shape):
    attach_type: Literal["file"]
    url: LaxStr = ""
    name: LaxStr = ""


class _InlineFile(_InlineEnvelope):
    file_size: LaxInt | None = Field(None, alias="fileSize")
    mercury: _InlineFileMercury


def _build_inline_file(shape: _InlineFile) -> FileAttachment:
    return FileAttachment(
        fbid=shape.fbid,
        filename=shape.filename or shape.mercury.name,
        mime_type=shape.mime_type,
        file_url=shape.mercury.url,
        size=shape.file_size,
    )


class _BlobFile(Shape):
    typename: Literal["MessageFile"] = Field(alias="__typename")
    message_file_fbid: CanonicalId = ""
    filename: LaxStr = ""
    content_type: LaxStr = ""
    url: LaxStr = ""
    is_malicious: LaxBool = False


def _build_blob_file(shape: _BlobFile) -> FileAttachment:
    return FileAttachment(
        fbid=shape.message_file_fbid,
        filename=shape.filename,
        mime_type=shape.content_type,
        file_url=shape.url,
        is_malicious=shape.is_malicious,
    )


# ---------------------------------------------------------------------------
# Video
# ---------------------------------------------------------------------------


class _InlineVideoMercury(Shape):
    attach_type: Literal["video"]
    url: LaxStr = ""
    preview_url: LaxStr = ""
    metadata: _MediaMeta = Field(default_factory=_MediaMeta)


class _InlineVideo(_InlineEnvelope):
    mercury: _InlineVideoMercury


def _build_inline_video(shape: _InlineVideo) -> VideoAttachment:
    meta = shape.mercury.metadata
    return VideoAttachment(
        fbid=shape.fbid,
        filename=shape.filename,
        mime_type=shape.mime_type,
        video_url=shape.mercury.url,
        preview_url=shape.mercury.preview_url,
        width=meta.dimensions.width,
        height=meta.dimensions.height,
        duration_ms=meta.duration,
    )


class _BlobVideo(Shape):
    typename: Literal["MessageVideo"] = Field(alias="__typename")
    legacy_attachment_id: CanonicalId = ""
    filename: LaxStr = ""
    playable_url: LaxStr = ""
    playable_duration_in_ms: LaxInt | None = None
    chat_image: _Image = Field(default_factory=_Image)
    large_image: _Image = Field(default_factory=_Image)
    original_dimensions: _XY = Field(default_factory=_XY)


def _build_blob_video(shape: _BlobVideo) -> VideoAttachment:
    return VideoAttachment(
        fbid=shape.legacy_attachment_id,
        filename=shape.filename,
        video_url=shape.playable_url,
        preview_url=shape.large_image.uri or shape.chat_image.uri,
        width=shape.original_dimensions.x,
        height=shape.original_dimensions.y,
        duration_ms=shape.playable_duration_in_ms,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

ATTACHMENT_VARIANTS: tuple[Variant[Attachment], ...] = (
    Variant(_InlineAnimatedImage, _build_inline_image),
    Variant(_BlobAnimatedImage, _build_blob_animated),
    Variant(_InlineImage, _build_inline_image),
    Variant(_BlobImage, _build_blob_image),
    Variant(_InlineSticker, _build_inline_sticker),
    Variant(_BlobSticker, _build_blob_sticker),
    Variant(_InlineAudio, _build_inline_audio),
    Variant(_BlobAudio, _build_blob_audio),
    Variant(_InlineFile, _build_inline_file),
    Variant(_BlobFile, _build_blob_file),
    Variant(_InlineVideo, _build_inline_video),
    Variant(_BlobVideo, _build_blob_video),
)


def _unpack_mercury_json(raw: Any) -> Any:
    """Return *raw* with a string ``mercuryJSON`` unpacked into ``mercury``.

    The input is never mutated; a shallow copy is returned when unpacking
    happens.
    """
    if not isinstance(raw, dict) or isinstance(raw.get("mercury"), dict):
        return raw
    encoded = raw.get("mercuryJSON")
    if not isinstance(encoded, str):
        return raw
    try:
        mercury = json.loads(encoded)
    except ValueError:
        return raw
    if not isinstance(mercury, dict):
        return raw
    return {**raw, "mercury": mercury}


def _type_hint(raw: Any) -> str:
    """Best-effort discriminant of an unrecognized payload."""
    if not isinstance(raw, dict):
        return ""
    mercury = raw.get("mercury")
    if isinstance(mercury, dict) and isinstance(mercury.get("attach_type"), str):
        return mercury["attach_type"]
    typename = raw.get("__typename")
    return typename if isinstance(typename, str) else ""


def decode_attachment(raw: Any) -> Attachment:
    """Decode one attachment payload into its typed variant.

    Never raises: payloads matching no known shape become an
    ``UnknownAttachment`` holding *raw* unchanged.
    """
    normalized = _unpack_mercury_json(raw)
    result = decode_variant(normalized, ATTACHMENT_VARIANTS)
    if result is UNMATCHED:
        return UnknownAttachment(type=_type_hint(normalized), raw_data=raw)
    return result  # type: ignore[return-value]


def decode_attachments(raw_list: Any) -> list[Attachment]:
    """Decode a list of attachment payloads, skipping non-object entries."""
    if not isinstance(raw_list, list):
        return []
    return [decode_attachment(item) for item in raw_list if isinstance(item, dict)]
