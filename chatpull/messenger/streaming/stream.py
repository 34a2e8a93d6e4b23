"""Event stream -- a long-poll client publishing typed events.

Lifecycle::

    INITIALIZING --handshake ok--> STREAMING --close()--> CLOSED
         |                                                  ^
         +--------handshake failed (error recorded)---------+

**Initializing** performs a one-shot handshake: ``reconnect.php`` yields the
edge host, then a discovery poll against that host yields the sticky pool
and token (``{"t": "lb", "lb_info": {...}}``).  Neither step is retried;
a failure is recorded as ``InitializationError`` and the stream closes.

**Streaming** polls forever.  Transport and parse failures are absorbed: the
worker sleeps a fixed delay and retries with the sequence number unchanged.
Successful polls advance the sequence number to the highest ``seq`` seen
(never backwards) and every message frame is routed to typed events, which
are delivered to the sink in arrival order.

Closing cancels the worker's scope, which aborts whatever it is waiting on
(the poll, the backoff sleep, or a send into a full sink) without recording
an error.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import anyio

from chatpull.messenger.errors import InitializationError, ParseError, TransportError
from chatpull.messenger.models.enums import StreamState
from chatpull.messenger.streaming.frames import parse_frames, parse_lb_info, parse_reconnect_host
from chatpull.messenger.streaming.producer import Producer
from chatpull.messenger.streaming.router import route_frame
from chatpull.messenger.transport import strip_json_guard

if TYPE_CHECKING:
    from chatpull.messenger.models.events import Event
    from chatpull.messenger.session import Session

RECONNECT_PATH = "/ajax/presence/reconnect.php"
RECONNECT_REASON = "6"

# Observed constants of the web client's pull requests.
_CAPABILITY = "8"
_PARTITION = "-2"
_REGION = "FRC"
_ISQ = "243"


@dataclass
class PollSession:
    """Mutable long-poll state of one event stream."""

    sticky_pool: str = ""
    sticky_token: str = ""
    seq: int = 0
    started_at: float = field(default_factory=time.time)
    host: str = ""

    def advance(self, seq: int) -> int:
        """Move ``seq`` forward to *seq*; lower values are ignored."""
        if seq > self.seq:
            self.seq = seq
        return self.seq

    def idle_seconds(self) -> int:
        return max(0, int(time.time() - self.started_at))


class EventStream(Producer["Event"]):
    """A live stream of events for one session.

    Create streams with ``Session.event_stream()``; several may run
    concurrently against the same session.  Consume with ``async for``
    or ``receive()``, and close with ``close()`` / ``aclose()`` or by using
    the stream as an async context manager.
    """

    def __init__(
        self,
        session: Session,
        *,
        buffer_size: int | None = None,
        error_delay: float | None = None,
    ) -> None:
        settings = session.settings
        super().__init__(
            buffer_size=settings.sink_buffer_size if buffer_size is None else buffer_size,
            name=f"event-stream[{session.user_id}]",
        )
        self._session = session
        self._error_delay = settings.poll_error_delay if error_delay is None else error_delay
        self._state = StreamState.INITIALIZING
        self.poll = PollSession()

    # -- State -----------------------------------------------------------------

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def seq(self) -> int:
        """Sequence number sent with the next poll."""
        return self.poll.seq

    def _on_closed(self) -> None:
        self._state = StreamState.CLOSED

    # -- Worker ----------------------------------------------------------------

    async def _produce(self) -> None:
        try:
            await self._initialize()
        except InitializationError as e:
            self._log.warning("Handshake failed: {}", e)
            self._fail(e)
            return

        self._state = StreamState.STREAMING
        self._log.info("Streaming from {} (pool={})", self.poll.host, self.poll.sticky_pool)
        await self._stream()

    async def _initialize(self) -> None:
        session = self._session
        try:
            params = await session.common_params()
            params["reason"] = RECONNECT_REASON
            body = await session.port.get(session.settings.base_url + RECONNECT_PATH, params)
            host = parse_reconnect_host(strip_json_guard(body))
        except (TransportError, ParseError) as e:
            msg = f"reconnect: {e}"
            raise InitializationError(msg) from e

        self.poll.host = host
        try:
            body = await session.port.get(self._pull_url(), self._discovery_params())
            pool, token = parse_lb_info(strip_json_guard(body))
        except (TransportError, ParseError) as e:
            msg = f"fetch polling info: {e}"
            raise InitializationError(msg) from e

        self.poll.sticky_pool = pool
        self.poll.sticky_token = token
        self.poll.started_at = time.time()

    async def _stream(self) -> None:
        session = self._session
        while True:
            try:
                body = await session.port.get(self._pull_url(), self._poll_params())
            except TransportError as e:
                self._log.warning("Poll failed, retrying in {}s: {}", self._error_delay, e)
                await anyio.sleep(self._error_delay)
                continue

            try:
                batch = parse_frames(strip_json_guard(body))
            except ParseError as e:
                self._log.warning("Bad poll body, retrying in {}s: {}", self._error_delay, e)
                await anyio.sleep(self._error_delay)
                continue

            self.poll.advance(batch.seq)
            for frame in batch.frames:
                for event in route_frame(frame):
                    await self._emit(event)

    # -- Request building ------------------------------------------------------

    def _pull_url(self) -> str:
        return self._session.settings.pull_host_template.format(host=self.poll.host)

    def _base_params(self) -> dict[str, str]:
        session = self._session
        user_id = session.user_id
        return {
            "cap": _CAPABILITY,
            "cb": session.random_callback(),
            "channel": f"p_{user_id}",
            "clientid": session.settings.client_id,
            "msgr_region": _REGION,
            "partition": _PARTITION,
            "pws": "fresh",
            "qp": "y",
            "state": "offline",
            "uid": user_id,
            "viewer_uid": user_id,
        }

    def _discovery_params(self) -> dict[str, str]:
        params = self._base_params()
        params.update({"idle": "0", "msgs_recv": "0", "seq": "0"})
        return params

    def _poll_params(self) -> dict[str, str]:
        seq = str(self.poll.seq)
        params = self._base_params()
        params.update(
            {
                "idle": str(self.poll.idle_seconds()),
                "isq": _ISQ,
                "msgs_recv": seq,
                "seq": seq,
                "sticky_pool": self.poll.sticky_pool,
                "sticky_token": self.poll.sticky_token,
            }
        )
        return params
