"""Fixtures for messenger tests: a scripted request port and a session."""

from __future__ import annotations

import random

import pytest

from chatpull.messenger.session import Session
from chatpull.messenger.settings import ChatpullSettings
from tests.messenger.fakes import USER_ID, FakeRequestPort


@pytest.fixture
def settings() -> ChatpullSettings:
    return ChatpullSettings(
        _env_file=None,
        user_id=USER_ID,
        dtsg="dtsg-token",
        poll_error_delay=0.01,
        sink_buffer_size=16,
        page_size=2,
    )


@pytest.fixture
def port() -> FakeRequestPort:
    return FakeRequestPort()


@pytest.fixture
def make_session(settings: ChatpullSettings):
    """Build a session around a given port."""

    def _make(port: FakeRequestPort) -> Session:
        return Session(USER_ID, port, settings=settings, rng=random.Random(0))

    return _make


@pytest.fixture
def session(port: FakeRequestPort, make_session) -> Session:
    return make_session(port)
