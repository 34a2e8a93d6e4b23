"""Identifier canonicalization.

The backend sends the same identifier as ``"fbid:123"``, ``"123"`` or
``123.0`` depending on the endpoint.  Everything is normalized to plain
decimal text; a numeric zero means "absent" and maps to ``""``.
"""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import BeforeValidator

_FBID_PREFIX = "fbid:"


def canonical_id(value: Any) -> str:
    """Convert a string or numeric identifier into canonical text.

    >>> canonical_id("fbid:12")
    '12'
    >>> canonical_id(1234567890.0)
    '1234567890'
    >>> canonical_id(0)
    ''
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.removeprefix(_FBID_PREFIX)
    if isinstance(value, int):
        return "" if value == 0 else str(value)
    if isinstance(value, float):
        if value == 0 or not math.isfinite(value):
            return ""
        return str(int(value))
    return ""


CanonicalId = Annotated[str, BeforeValidator(canonical_id)]
"""``str`` field type that accepts any identifier representation."""
