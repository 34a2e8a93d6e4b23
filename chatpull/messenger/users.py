"""User lookups."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from chatpull.messenger.errors import ParseError
from chatpull.messenger.transport import strip_json_guard

if TYPE_CHECKING:
    from chatpull.messenger.session import Session

IMAGE_SOURCE_PATH = "/ajax/image_source.php?dpr=1"
PROFILE_PICTURE_SIZE = 50


class _ImageSource(BaseModel):
    uri: str = ""


class _ImageSourceResponse(BaseModel):
    payload: list[_ImageSource] | None = None


async def profile_picture(session: Session, fbid: str, size: int = PROFILE_PICTURE_SIZE) -> str:
    """Return the URL of a user's square profile picture, *size* pixels wide.

    Raises ``ParseError`` unless the backend answers with exactly one image.
    """
    params = await session.common_params()
    params["requests[0][fbid]"] = fbid
    params["requests[0][type]"] = "profile_picture"
    params["requests[0][width]"] = str(size)
    params["requests[0][height]"] = str(size)
    params["requests[0][resize_mode]"] = "p"
    body = await session.port.post(session.settings.base_url + IMAGE_SOURCE_PATH, params)

    try:
        response = _ImageSourceResponse.model_validate_json(strip_json_guard(body))
    except ValidationError as e:
        msg = f"profile picture: unexpected response: {e.error_count()} validation errors"
        raise ParseError(msg) from e

    images = response.payload or []
    if len(images) != 1:
        msg = f"profile picture: expected one result, got {len(images)}"
        raise ParseError(msg)
    if not images[0].uri:
        msg = "profile picture: result carries no uri"
        raise ParseError(msg)
    return images[0].uri
