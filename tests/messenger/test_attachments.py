"""Unit tests for attachment classification (inline and blob envelopes)."""

from __future__ import annotations

import json

from chatpull.messenger.decoding.attachments import decode_attachment, decode_attachments
from chatpull.messenger.models import (
    AttachmentType,
    AudioAttachment,
    FileAttachment,
    ImageAttachment,
    StickerAttachment,
    UnknownAttachment,
    VideoAttachment,
)

# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def test_inline_image() -> None:
    raw = {
        "fbid": "fbid:555",
        "filename": "image-555.png",
        "mimeType": "image/png",
        "imageMetadata": {"width": 640, "height": 480},
        "mercury": {
            "attach_type": "photo",
            "preview_url": "https://cdn/p.png",
            "preview_width": 320,
            "preview_height": 240,
            "large_preview_url": "https://cdn/l.png",
            "thumbnail_url": "https://cdn/t.png",
            "hires_url": "https://cdn/h.png",
        },
    }
    att = decode_attachment(raw)
    assert isinstance(att, ImageAttachment)
    assert att.type == AttachmentType.IMAGE
    assert not att.animated
    assert att.fbid == "555"
    assert (att.width, att.height) == (640, 480)
    assert att.preview_width == 320
    assert att.url == "https://cdn/h.png"


def test_blob_image() -> None:
    raw = {
        "__typename": "MessageImage",
        "legacy_attachment_id": "777",
        "filename": "image-777",
        "original_extension": "JPG",
        "original_dimensions": {"x": 1024, "y": 768},
        "preview": {"uri": "https://cdn/p.jpg", "width": 200, "height": 150},
        "large_preview": {"uri": "https://cdn/l.jpg", "width": 800, "height": 600},
        "thumbnail": {"uri": "https://cdn/t.jpg"},
    }
    att = decode_attachment(raw)
    assert isinstance(att, ImageAttachment)
    assert att.type == AttachmentType.IMAGE
    assert att.fbid == "777"
    assert att.mime_type == "image/jpg"
    assert (att.width, att.height) == (1024, 768)
    assert att.large_preview_width == 800
    assert att.url == "https://cdn/l.jpg"


def test_inline_animated_image_is_not_a_plain_image() -> None:
    raw = {
        "fbid": "9",
        "mercury": {
            "attach_type": "animated_image",
            "url": "https://cdn/a.gif",
            "preview_url": "https://cdn/a.png",
        },
    }
    att = decode_attachment(raw)
    assert isinstance(att, ImageAttachment)
    assert att.animated
    assert att.type == "animated_image"
    assert att.url == "https://cdn/a.gif"


def test_blob_animated_image() -> None:
    raw = {
        "__typename": "MessageAnimatedImage",
        "legacy_attachment_id": "10",
        "animated_image": {"uri": "https://cdn/b.gif", "width": 100, "height": 80},
        "preview_image": {"uri": "https://cdn/b.png"},
        "original_dimensions": {"x": 100, "y": 80},
    }
    att = decode_attachment(raw)
    assert isinstance(att, ImageAttachment)
    assert att.animated
    assert att.mime_type == "image/gif"
    assert att.url == "https://cdn/b.gif"


# ---------------------------------------------------------------------------
# Stickers, audio, files, video
# ---------------------------------------------------------------------------


def test_inline_sticker() -> None:
    raw = {
        "mercury": {
            "attach_type": "sticker",
            "url": "https://cdn/s.png",
            "metadata": {
                "stickerID": 369239263222822,
                "packID": "227877430692340",
                "frameCount": 8,
                "frameRate": 83,
                "framesPerRow": 4,
                "framesPerCol": 2,
                "spriteURI": "https://cdn/sprite.png",
                "spriteURI2x": None,
                "width": 120,
                "height": 120,
            },
        },
    }
    att = decode_attachment(raw)
    assert isinstance(att, StickerAttachment)
    assert att.sticker_id == "369239263222822"
    assert att.pack_id == "227877430692340"
    assert att.frame_count == 8
    assert att.sprite_uri == "https://cdn/sprite.png"
    assert att.sprite_uri_2x == ""
    assert att.url == "https://cdn/s.png"


def test_blob_sticker() -> None:
    raw = {
        "__typename": "Sticker",
        "id": "369239263222822",
        "url": "https://cdn/s.png",
        "pack": {"id": "227877430692340"},
        "frame_count": 1,
        "frames_per_column": 1,
        "sprite_image": None,
        "width": 60,
        "height": 60,
    }
    att = decode_attachment(raw)
    assert isinstance(att, StickerAttachment)
    assert att.type == AttachmentType.STICKER
    assert att.pack_id == "227877430692340"
    assert att.frames_per_col == 1
    assert att.sprite_uri == ""


def test_inline_and_blob_audio() -> None:
    inline = decode_attachment(
        {
            "fbid": "21",
            "filename": "audioclip.mp4",
            "mimeType": "audio/mpeg",
            "mercury": {"attach_type": "audio", "url": "https://cdn/a.mp4", "metadata": {"duration": 4200}},
        }
    )
    blob = decode_attachment(
        {
            "__typename": "MessageAudio",
            "legacy_attachment_id": "22",
            "playable_url": "https://cdn/b.mp4",
            "playable_duration_in_ms": 3100,
        }
    )
    assert isinstance(inline, AudioAttachment)
    assert (inline.fbid, inline.url, inline.duration_ms) == ("21", "https://cdn/a.mp4", 4200)
    assert isinstance(blob, AudioAttachment)
    assert (blob.fbid, blob.url, blob.duration_ms) == ("22", "https://cdn/b.mp4", 3100)


def test_inline_and_blob_file() -> None:
    inline = decode_attachment(
        {
            "fbid": 31.0,
            "mimeType": "application/pdf",
            "fileSize": 2048,
            "mercury": {"attach_type": "file", "url": "https://cdn/f.pdf", "name": "report.pdf"},
        }
    )
    blob = decode_attachment(
        {
            "__typename": "MessageFile",
            "message_file_fbid": "32",
            "filename": "notes.txt",
            "content_type": "text/plain",
            "url": "https://cdn/n.txt",
            "is_malicious": False,
        }
    )
    assert isinstance(inline, FileAttachment)
    assert (inline.fbid, inline.filename, inline.size) == ("31", "report.pdf", 2048)
    assert inline.url == "https://cdn/f.pdf"
    assert isinstance(blob, FileAttachment)
    assert (blob.fbid, blob.mime_type, blob.url) == ("32", "text/plain", "https://cdn/n.txt")
    assert blob.is_malicious is False


def test_inline_and_blob_video() -> None:
    inline = decode_attachment(
        {
            "fbid": "41",
            "mimeType": "video/mp4",
            "mercury": {
                "attach_type": "video",
                "url": "https://cdn/v.mp4",
                "preview_url": "https://cdn/v.jpg",
                "metadata": {"duration": 9000, "dimensions": {"width": 1280, "height": 720}},
            },
        }
    )
    blob = decode_attachment(
        {
            "__typename": "MessageVideo",
            "legacy_attachment_id": "42",
            "playable_url": "https://cdn/w.mp4",
            "playable_duration_in_ms": 5000,
            "chat_image": {"uri": "https://cdn/chat.jpg"},
            "original_dimensions": {"x": 640, "y": 360},
        }
    )
    assert isinstance(inline, VideoAttachment)
    assert (inline.width, inline.height, inline.duration_ms) == (1280, 720, 9000)
    assert inline.url == "https://cdn/v.mp4"
    assert isinstance(blob, VideoAttachment)
    assert blob.preview_url == "https://cdn/chat.jpg"
    assert (blob.width, blob.height) == (640, 360)


# ---------------------------------------------------------------------------
# Legacy and unknown payloads
# ---------------------------------------------------------------------------


def test_mercury_json_string_is_unpacked() -> None:
    raw = {
        "fbid": "51",
        "mercuryJSON": json.dumps({"attach_type": "photo", "hires_url": "https://cdn/legacy.png"}),
    }
    att = decode_attachment(raw)
    assert isinstance(att, ImageAttachment)
    assert att.url == "https://cdn/legacy.png"
    assert "mercury" not in raw


def test_unknown_attachment_keeps_raw_payload() -> None:
    raw = {"mercury": {"attach_type": "share", "share": {"uri": "https://example.com"}}}
    att = decode_attachment(raw)
    assert isinstance(att, UnknownAttachment)
    assert att.type == "share"
    assert att.raw_data is raw
    assert att.url == ""


def test_unknown_blob_typename_and_garbage() -> None:
    blob = decode_attachment({"__typename": "ExternalUrl", "url": "https://example.com"})
    assert isinstance(blob, UnknownAttachment)
    assert blob.type == "ExternalUrl"

    garbage = decode_attachment({"mercury": "not-an-object"})
    assert isinstance(garbage, UnknownAttachment)
    assert garbage.type == ""


def test_decode_attachments_skips_non_objects() -> None:
    result = decode_attachments([{"__typename": "MessageAudio"}, "junk", None, 3])
    assert len(result) == 1
    assert isinstance(result[0], AudioAttachment)
    assert decode_attachments(None) == []


def test_overflowing_numbers_never_raise() -> None:
    inline = json.loads('{"imageMetadata": {"width": 1e400}, "mercury": {"attach_type": "photo"}}')
    att = decode_attachment(inline)
    assert isinstance(att, UnknownAttachment)
    assert att.raw_data is inline

    blob = json.loads('{"__typename": "MessageImage", "original_dimensions": {"x": NaN, "y": 10}}')
    assert isinstance(decode_attachment(blob), UnknownAttachment)
