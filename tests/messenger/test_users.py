"""Tests for user lookups."""

from __future__ import annotations

import pytest

from chatpull.messenger.errors import ParseError
from chatpull.messenger.users import profile_picture
from tests.messenger.fakes import FakeRequestPort, guarded


async def test_profile_picture(make_session) -> None:
    port = FakeRequestPort(posts=[guarded({"payload": [{"uri": "https://cdn/p50x50.jpg", "width": 50}]})])
    session = make_session(port)

    assert await session.profile_picture("2001") == "https://cdn/p50x50.jpg"

    [(url, data)] = port.post_calls
    assert url.endswith("/ajax/image_source.php?dpr=1")
    assert data["requests[0][fbid]"] == "2001"
    assert data["requests[0][type]"] == "profile_picture"
    assert (data["requests[0][width]"], data["requests[0][height]"]) == ("50", "50")
    assert data["requests[0][resize_mode]"] == "p"
    assert data["fb_dtsg"] == "dtsg-token"


async def test_profile_picture_custom_size(make_session) -> None:
    port = FakeRequestPort(posts=[guarded({"payload": [{"uri": "https://cdn/big.jpg"}]})])
    assert await profile_picture(make_session(port), "2001", size=200) == "https://cdn/big.jpg"
    [(_, data)] = port.post_calls
    assert data["requests[0][width]"] == "200"


@pytest.mark.parametrize(
    "payload",
    [
        {"payload": []},
        {"payload": None},
        {},
        {"payload": [{"uri": "https://cdn/a.jpg"}, {"uri": "https://cdn/b.jpg"}]},
        {"payload": [{"width": 50}]},
        {"payload": "nope"},
    ],
)
async def test_profile_picture_requires_exactly_one_image(make_session, payload) -> None:
    port = FakeRequestPort(posts=[guarded(payload)])
    with pytest.raises(ParseError):
        await profile_picture(make_session(port), "2001")
