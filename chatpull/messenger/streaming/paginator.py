"""Cursor paginator -- turns a page fetch into one ordered, cancellable sequence.

The backend serves history pages newest-first, addressed by a "before"
timestamp.  The boundary record is served twice: the oldest record of page
*n* reappears as the newest record of page *n + 1*.  The paginator removes
that duplicate, so the delivered sequence runs strictly newest -> oldest
with every record exactly once.
"""

from __future__ import annotations

import operator
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from chatpull.messenger.streaming.producer import Producer

T = TypeVar("T")


@dataclass(frozen=True)
class Cursor:
    """Position in a newest-first history.

    Attributes:
        timestamp: Fetch records at or before this instant; ``None`` means
            "start from the most recent record".
        offset: Number of records consumed so far (including duplicates).
    """

    timestamp: datetime | None = None
    offset: int = 0

    def before_param(self) -> str | None:
        """Millisecond epoch string for the ``before`` query field."""
        if self.timestamp is None:
            return None
        return str(int(self.timestamp.timestamp() * 1000))


PageFetch = Callable[[Cursor, int], Awaitable[Sequence[T]]]

_timestamp_attr = operator.attrgetter("timestamp")


class CursorPaginator(Producer[T]):
    """Deliver every record of a paged history, newest first.

    Parameters
    ----------
    fetch:
        ``await fetch(cursor, limit)`` returns one newest-first page.  Any
        exception it raises stops the paginator and is recorded in ``error``.
    page_size:
        Requested page length.  A shorter page is the last one.
    timestamp_of:
        Extracts the timestamp of a record; defaults to ``record.timestamp``.
    """

    def __init__(
        self,
        fetch: PageFetch[T],
        page_size: int,
        *,
        timestamp_of: Callable[[T], datetime | None] = _timestamp_attr,
        buffer_size: int = 0,
        name: str = "paginator",
    ) -> None:
        if page_size < 1:
            msg = f"page_size must be positive, got {page_size}"
            raise ValueError(msg)
        super().__init__(buffer_size=buffer_size, name=name)
        self._fetch = fetch
        self._page_size = page_size
        self._timestamp_of = timestamp_of
        self.cursor = Cursor()

    async def _produce(self) -> None:
        first = True
        while True:
            try:
                page = list(await self._fetch(self.cursor, self._page_size))
            except Exception as e:
                self._log.warning("Page fetch at {} failed: {}", self.cursor, e)
                self._fail(e)
                return

            trimmed = page if first else page[1:]
            first = False
            if not trimmed:
                return

            for record in trimmed:
                await self._emit(record)

            if len(page) < self._page_size:
                return
            oldest = self._timestamp_of(page[-1])
            if oldest is None:
                # Without a timestamp the next request would restart at the top.
                self._log.warning("Oldest record has no timestamp, stopping")
                return
            self.cursor = Cursor(timestamp=oldest, offset=self.cursor.offset + len(page))

    async def collect(self, *, oldest_first: bool = True) -> list[T]:
        """Drain the paginator into a list.

        Starts the worker if needed.  Raises the recorded error, if any,
        once the sequence has ended.
        """
        self.start()
        records: list[Any] = [record async for record in self]
        if self.error is not None:
            raise self.error
        if oldest_first:
            records.reverse()
        return records
