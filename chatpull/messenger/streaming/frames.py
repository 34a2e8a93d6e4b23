"""Poll response parsing.

A long-poll response is a concatenation of independent JSON objects (no
enclosing array)::

    {"t": "heartbeat", "seq": 4}
    {"t": "msg", "seq": 5, "ms": [{"type": "delta", ...}, ...]}

Each object carries a type tag ``t`` and a sequence number ``seq``; objects
of type ``msg`` carry the message frames to route in ``ms``.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from pydantic import Field, ValidationError

from chatpull.messenger.decoding.variant import LaxInt, LaxStr, Shape
from chatpull.messenger.errors import ParseError

MESSAGE_OBJECT_TYPE = "msg"
LB_INFO_TYPE = "lb"

_decoder = json.JSONDecoder()


def iter_json_objects(body: bytes | str) -> Iterator[Any]:
    """Yield every JSON value of a whitespace-separated concatenation.

    Raises ``ParseError`` on the first undecodable value.
    """
    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            msg = f"poll body is not UTF-8: {e}"
            raise ParseError(msg) from e
    else:
        text = body

    pos = 0
    end = len(text)
    while True:
        while pos < end and text[pos].isspace():
            pos += 1
        if pos >= end:
            return
        try:
            value, pos = _decoder.raw_decode(text, pos)
        except json.JSONDecodeError as e:
            msg = f"invalid JSON in poll body: {e}"
            raise ParseError(msg) from e
        yield value


class _PollObject(Shape):
    type: LaxStr = Field("", alias="t")
    seq: LaxInt = 0
    messages: list[dict[str, Any]] = Field(default_factory=list, alias="ms")


@dataclass
class PollBatch:
    """Everything extracted from one poll response."""

    frames: list[dict[str, Any]] = field(default_factory=list)
    seq: int = 0
    """Highest sequence number observed (0 if none)."""


def parse_frames(body: bytes | str) -> PollBatch:
    """Parse a poll body into its message frames and highest ``seq``.

    The whole body is rejected with ``ParseError`` if any object is
    malformed, so a partially parsed body never advances the sequence.
    """
    batch = PollBatch()
    for value in iter_json_objects(body):
        try:
            obj = _PollObject.model_validate(value)
        except ValidationError as e:
            msg = f"unexpected poll object: {e.error_count()} validation errors"
            raise ParseError(msg) from e
        except (ValueError, ArithmeticError) as e:
            msg = f"unexpected poll object: {e}"
            raise ParseError(msg) from e
        batch.seq = max(batch.seq, obj.seq)
        if obj.type == MESSAGE_OBJECT_TYPE:
            batch.frames.extend(obj.messages)
    return batch


# ---------------------------------------------------------------------------
# Handshake payloads
# ---------------------------------------------------------------------------


class _ReconnectPayload(Shape):
    host: LaxStr = ""


class _Reconnect(Shape):
    payload: _ReconnectPayload


class _LbInfo(Shape):
    sticky: LaxStr = ""
    pool: LaxStr = ""


class _LbObject(Shape):
    type: LaxStr = Field("", alias="t")
    lb_info: _LbInfo | None = None


def _first_object(body: bytes | str, what: str) -> Any:
    for value in iter_json_objects(body):
        return value
    msg = f"empty {what} response"
    raise ParseError(msg)


def parse_reconnect_host(body: bytes | str) -> str:
    """Extract ``payload.host`` from a reconnect response."""
    try:
        reconnect = _Reconnect.model_validate(_first_object(body, "reconnect"))
    except ValidationError as e:
        msg = "unexpected reconnect response"
        raise ParseError(msg) from e
    if not reconnect.payload.host:
        msg = "reconnect response carries no host"
        raise ParseError(msg)
    return reconnect.payload.host


def parse_lb_info(body: bytes | str) -> tuple[str, str]:
    """Extract ``(sticky_pool, sticky_token)`` from a discovery response."""
    try:
        obj = _LbObject.model_validate(_first_object(body, "discovery"))
    except ValidationError as e:
        msg = "unexpected initial polling response"
        raise ParseError(msg) from e
    if obj.type != LB_INFO_TYPE or obj.lb_info is None:
        msg = f"unexpected initial polling response (t={obj.type!r})"
        raise ParseError(msg)
    return obj.lb_info.pool, obj.lb_info.sticky
