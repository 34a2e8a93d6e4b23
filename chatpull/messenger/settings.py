"""Client configuration loaded from CHATPULL_* environment variables."""

from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatpullSettings(BaseSettings):
    """chatpull client settings.

    All fields are read from environment variables with the ``CHATPULL_``
    prefix.  For example, ``CHATPULL_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    Obtaining the cookie and the ``fb_dtsg`` token (logging in, scraping the
    homepage) is **not** handled here -- both are supplied by whoever owns the
    authenticated browser session.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHATPULL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False
    """Write log records to stderr as JSON objects."""

    # -- Identity --------------------------------------------------------------
    user_id: str = ""
    """Numeric id of the logged-in user (used for the ``p_<uid>`` channel)."""

    cookie: SecretStr | None = None
    """Raw ``Cookie`` header of an authenticated session."""

    dtsg: SecretStr | None = None
    """``fb_dtsg`` token sent with AJAX and GraphQL requests."""

    # -- Endpoints -------------------------------------------------------------
    base_url: str = "https://www.messenger.com"
    pull_host_template: str = "https://0-{host}.messenger.com/pull"
    """Long-poll endpoint; ``{host}`` comes from the reconnect handshake."""

    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_12_1) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/54.0.2840.71 Safari/537.36"
    )

    # -- Long-poll -------------------------------------------------------------
    client_id: str = "3342de8f"
    poll_error_delay: float = 5.0
    """Fixed delay (seconds) before retrying a failed or unparseable poll."""

    request_timeout: float = 90.0
    """Per-request timeout.  Must exceed the server's long-poll hold time."""

    sink_buffer_size: int = 16
    """Events buffered between the stream worker and its consumer."""

    # -- History ---------------------------------------------------------------
    page_size: int = 50
    action_log_doc_id: str = "1475048592613093"
    """GraphQL document id of the message-thread query."""


def get_settings() -> ChatpullSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> ChatpullSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return ChatpullSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
