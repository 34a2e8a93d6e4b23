"""Ordered-trial decoding of semi-structured payloads.

The backend never tells us reliably which shape a payload has: the
discriminant moves between protocol versions and is sometimes missing.
Instead of probing dictionaries by hand, each known shape is described as a
lax pydantic model and the shapes are tried in a caller-chosen order::

    result = decode_variant(raw, [
        Variant(AnimatedImageShape, build_animated),
        Variant(ImageShape, build_image),
    ])
    if result is UNMATCHED:
        ...  # fall back to an Unknown record

Shapes fail only on *structural* mismatch (wrong discriminant, wrong nesting,
wrong field types).  The ``Lax*`` field types below absorb the harmless noise
the backend produces (``null`` strings, float counters) so that such noise
never turns a known payload into an unknown one.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Annotated, Any, Final, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError, model_validator

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Lax field types
# ---------------------------------------------------------------------------


def _none_to_empty(value: Any) -> Any:
    return "" if value is None else value


def _lax_int(value: Any) -> Any:
    if value is None:
        return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            msg = f"not a finite number: {value!r}"
            raise ValueError(msg)
        return int(value)
    return value


LaxStr = Annotated[str, BeforeValidator(_none_to_empty)]
"""``str`` that treats ``null`` as ``""``."""

LaxInt = Annotated[int, BeforeValidator(_lax_int)]
"""``int`` that treats ``null`` as ``0`` and truncates floats.

``inf`` and ``nan`` (JSON overflow such as ``1e400``) fail validation.
"""

LaxBool = Annotated[bool, BeforeValidator(bool)]
"""``bool`` from any truthy / falsy value."""


def drop_nulls(data: Any) -> Any:
    """Treat ``null`` values of a mapping as absent keys."""
    if isinstance(data, dict):
        return {key: value for key, value in data.items() if value is not None}
    return data


class Shape(BaseModel):
    """Base class for wire shapes.

    Unknown keys are ignored and ``null`` values fall back to the field
    default, so only a missing or wrong discriminant (or a genuinely
    mistyped field) rejects a payload.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        return drop_nulls(data)


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


class _Unmatched:
    """Sentinel type returned when no variant accepts a payload."""

    _instance: _Unmatched | None = None

    def __new__(cls) -> _Unmatched:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNMATCHED"

    def __bool__(self) -> bool:
        return False


UNMATCHED: Final = _Unmatched()


@dataclass(frozen=True)
class Variant(Generic[T]):
    """One candidate shape and the constructor for its typed value."""

    shape: type[Shape]
    build: Callable[[Any], T]


def decode_variant(raw: Any, variants: Sequence[Variant[T]]) -> T | _Unmatched:
    """Return the value built by the first variant whose shape accepts *raw*.

    Variants are tried strictly in the given order, so more specific shapes
    must come before generic ones.  Returns ``UNMATCHED`` (never raises) when
    nothing fits.
    """
    for variant in variants:
        try:
            shape = variant.shape.model_validate(raw)
        except ValidationError:
            continue
        return variant.build(shape)
    logger.debug("No variant matched payload (tried %d shapes)", len(variants))
    return UNMATCHED
