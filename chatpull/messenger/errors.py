"""Error taxonomy for the messenger client.

Transient failures (``TransportError``, ``ParseError``) are retried locally by
the event stream and never reach the consumer while the stream is open.
``InitializationError`` is fatal: the stream never starts streaming and the
error is recorded on it.  Cancellation is plain asyncio/anyio cancellation and
is never recorded as an error.
"""

from __future__ import annotations


class MessengerError(RuntimeError):
    """Base class for all errors raised by chatpull."""


class TransportError(MessengerError):
    """Network or HTTP level failure while talking to the backend."""


class ParseError(MessengerError):
    """The backend answered with a malformed or unexpected body."""


class GraphQLError(ParseError):
    """A GraphQL batch response carried an error message."""


class InitializationError(MessengerError):
    """The reconnect / discovery handshake failed before streaming began."""


class StreamClosed(MessengerError):
    """Raised by ``receive()`` once a stream or paginator has been closed.

    When the producer failed, the recorded error is attached as ``__cause__``.
    """
