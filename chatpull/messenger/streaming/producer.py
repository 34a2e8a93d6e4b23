"""Background producer -- one worker task feeding one bounded sink.

Both the event stream and the cursor paginator follow the same lifecycle:

1. ``start()`` spawns exactly one worker task.
2. The worker runs inside an ``anyio.CancelScope`` which acts as the
   cancellation token: it aborts the pending network call, the backoff
   sleep and a blocked ``send`` alike.
3. When the worker returns (finished, failed or cancelled) the send side of
   the sink is closed; consumers drain what is buffered and then see the end
   of the stream.
4. ``close()`` may be called any number of times, from any task.  It never
   records an error: cancellation is not a failure.

Consumers tell "closed cleanly" from "closed due to failure" by reading
``error`` after the sink has ended.
"""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Generic, Self, TypeVar

import anyio
from loguru import logger

from chatpull.messenger.errors import StreamClosed

if TYPE_CHECKING:
    from types import TracebackType

T = TypeVar("T")


class Producer(Generic[T]):
    """Base class for objects owning a worker task and a bounded sink."""

    def __init__(self, *, buffer_size: int = 0, name: str = "producer") -> None:
        self.name = name
        self._log = logger.bind(producer=name)
        self._send, self._receive = anyio.create_memory_object_stream(max_buffer_size=buffer_size)
        self._scope = anyio.CancelScope()
        self._lock = threading.Lock()
        self._error: BaseException | None = None
        self._closed = False
        self._task: asyncio.Task[None] | None = None

    # -- Worker ----------------------------------------------------------------

    async def _produce(self) -> None:
        """Worker body.  Subclasses publish items with ``_emit``."""
        raise NotImplementedError

    def start(self) -> Self:
        """Spawn the worker task.  Must be called from a running event loop."""
        if self._task is None and not self.closed:
            self._task = asyncio.create_task(self._run(), name=self.name)
        return self

    async def _run(self) -> None:
        try:
            with self._scope:
                await self._produce()
        except Exception as e:
            self._log.exception("Worker failed")
            self._fail(e)
        finally:
            with self._lock:
                self._closed = True
            self._on_closed()
            self._send.close()
            self._log.debug("Worker closed (error={!r})", self._error)

    def _on_closed(self) -> None:
        """Hook run by the worker right before the sink is closed."""

    async def _emit(self, item: T) -> None:
        """Deliver *item* to the sink, blocking while it is full.

        Cancellable: a concurrent ``close()`` aborts a blocked send.
        """
        await self._send.send(item)

    def _fail(self, error: BaseException) -> None:
        """Record *error* unless an earlier one is already recorded."""
        with self._lock:
            if self._error is None:
                self._error = error

    # -- State -----------------------------------------------------------------

    @property
    def error(self) -> BaseException | None:
        """The first error that stopped the worker, if any."""
        with self._lock:
            return self._error

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    # -- Lifecycle -------------------------------------------------------------

    def close(self) -> None:
        """Signal the worker to stop.  Idempotent and never blocks.

        The sink is closed by the worker once it has unwound; use
        ``aclose()`` to wait for that.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._log.debug("Close requested")
        self._scope.cancel()
        if self._task is None:
            # Never started: nothing will close the sink for us.
            self._on_closed()
            self._send.close()

    async def aclose(self) -> None:
        """Close and wait until the worker has released the sink."""
        self.close()
        if self._task is not None:
            await asyncio.wait([self._task])
        self._receive.close()

    async def __aenter__(self) -> Self:
        return self.start()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # -- Consumer API ----------------------------------------------------------

    async def receive(self) -> T:
        """Return the next item, waiting for the worker if needed.

        Raises ``StreamClosed`` once the sink has ended; the recorded error
        (if any) is chained as its cause.
        """
        try:
            return await self._receive.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            msg = f"{self.name} is closed"
            raise StreamClosed(msg) from self.error

    def __aiter__(self) -> Self:
        return self.start()

    async def __anext__(self) -> T:
        try:
            return await self._receive.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            raise StopAsyncIteration from None
