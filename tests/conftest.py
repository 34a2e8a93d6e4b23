"""Shared test fixtures.

No network access is required: every test talks to a scripted
``FakeRequestPort`` (see ``tests/messenger/conftest.py``).  Settings are
isolated from the developer's environment and ``.env`` file.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

from chatpull.messenger.settings import _get_settings_cached


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop CHATPULL_* env vars and invalidate the settings cache."""
    for key in list(os.environ):
        if key.startswith("CHATPULL_"):
            monkeypatch.delenv(key)
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()
