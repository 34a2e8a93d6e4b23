"""Session -- collaborator state shared by every stream and paginator.

A ``Session`` bundles what the workers need from the outside world: the
user id, the ``RequestPort``, the provider of common request parameters and
the random generator used for ``cb`` cache-busters.  Any number of event
streams and paginators may run concurrently against one session.
"""

from __future__ import annotations

import asyncio
import random
import string
import threading
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING

from loguru import logger

from chatpull.messenger.errors import StreamClosed
from chatpull.messenger.history import fetch_action_page, list_threads
from chatpull.messenger.settings import ChatpullSettings, get_settings
from chatpull.messenger.streaming.paginator import Cursor, CursorPaginator
from chatpull.messenger.streaming.stream import EventStream
from chatpull.messenger.users import profile_picture

if TYPE_CHECKING:
    from chatpull.messenger.models.actions import Action
    from chatpull.messenger.models.events import Event
    from chatpull.messenger.models.threads import ThreadListResult
    from chatpull.messenger.transport import RequestPort

CommonParams = Callable[[], Awaitable[Mapping[str, str]]]
"""Async provider of the parameters sent with every AJAX/GraphQL request."""

CALLBACK_LENGTH = 4

# Observed values of the web client's common request fields.
_STATIC_FIELDS = {
    "__a": "1",
    "__af": "o",
    "__be": "-1",
    "__pc": "EXP1:messengerdotcom_pkg",
    "__req": "14",
    "__rev": "2643465",
    "__srp_t": "1477432416",
    "client": "mercury",
}


class StaticCommonParams:
    """``CommonParams`` provider with a fixed ``fb_dtsg`` token.

    Refreshing the token (scraping it from the homepage) belongs to whoever
    owns the authenticated browser session.
    """

    def __init__(self, user_id: str, dtsg: str) -> None:
        self._params = {**_STATIC_FIELDS, "__user": user_id, "fb_dtsg": dtsg}

    async def __call__(self) -> Mapping[str, str]:
        return self._params


class Session:
    """Authenticated client session.

    Parameters
    ----------
    user_id:
        Numeric id of the logged-in user.
    port:
        Performs every HTTP call made on behalf of this session.
    common_params:
        Async provider of the common request parameters.  Defaults to a
        ``StaticCommonParams`` built from ``settings.dtsg``.
    settings:
        Defaults to ``get_settings()``.
    rng:
        Source of ``cb`` values; mainly useful for deterministic tests.
    """

    def __init__(
        self,
        user_id: str,
        port: RequestPort,
        common_params: CommonParams | None = None,
        *,
        settings: ChatpullSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.user_id = user_id
        self.port = port
        self.settings = settings or get_settings()
        if common_params is None:
            dtsg = self.settings.dtsg.get_secret_value() if self.settings.dtsg else ""
            common_params = StaticCommonParams(user_id, dtsg)
        self._common_params = common_params

        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()

        self._default_stream: EventStream | None = None
        self._default_stream_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    def from_settings(cls, port: RequestPort, settings: ChatpullSettings | None = None) -> Session:
        settings = settings or get_settings()
        if not settings.user_id:
            msg = "CHATPULL_USER_ID is not set"
            raise ValueError(msg)
        return cls(settings.user_id, port, settings=settings)

    # -- Shared helpers --------------------------------------------------------

    async def common_params(self) -> dict[str, str]:
        """Return a fresh, mutable copy of the common request parameters."""
        return dict(await self._common_params())

    def random_callback(self) -> str:
        """Return a random four-letter ``cb`` value."""
        with self._rng_lock:
            return "".join(self._rng.choice(string.ascii_lowercase) for _ in range(CALLBACK_LENGTH))

    # -- Events ----------------------------------------------------------------

    def event_stream(self, *, buffer_size: int | None = None) -> EventStream:
        """Open a new, independent event stream (already started)."""
        return EventStream(self, buffer_size=buffer_size).start()

    async def read_event(self) -> Event:
        """Read the next event from the session's default stream.

        The default stream is opened on first use.  Raises ``EOFError`` once
        it has been closed cleanly, or the recorded error if it failed.
        """
        async with self._default_stream_lock:
            if self._default_stream is None:
                if self._closed:
                    msg = "session closed"
                    raise EOFError(msg)
                self._default_stream = self.event_stream()
            stream = self._default_stream

        try:
            return await stream.receive()
        except StreamClosed as e:
            if stream.error is not None:
                raise stream.error from None
            msg = "event stream closed"
            raise EOFError(msg) from e

    # -- History ---------------------------------------------------------------

    def action_log(self, thread_id: str, page_size: int | None = None) -> CursorPaginator[Action]:
        """Return a paginator over a thread's actions, newest first.

        The paginator is not started; iterate it (after ``start()`` or inside
        ``async with``) or call ``collect()``.
        """

        async def fetch(cursor: Cursor, limit: int) -> list[Action]:
            return await fetch_action_page(self, thread_id, cursor, limit)

        return CursorPaginator(
            fetch,
            page_size or self.settings.page_size,
            name=f"action-log[{thread_id}]",
        )

    async def threads(self, offset: int = 0, limit: int = 20) -> ThreadListResult:
        return await list_threads(self, offset, limit)

    # -- Users -----------------------------------------------------------------

    async def profile_picture(self, fbid: str) -> str:
        """URL of the profile picture of user *fbid*."""
        return await profile_picture(self, fbid)

    # -- Lifecycle -------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the default event stream, if one was opened.

        The closed stream stays in place, so later ``read_event()`` calls
        raise ``EOFError`` instead of opening a new one.
        """
        async with self._default_stream_lock:
            self._closed = True
            stream = self._default_stream
        if stream is not None:
            logger.debug("Closing default event stream of {}", self.user_id)
            await stream.aclose()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
