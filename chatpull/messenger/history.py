"""Thread history: the GraphQL action log and the AJAX thread list."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from chatpull.messenger.decoding.actions import decode_action
from chatpull.messenger.errors import GraphQLError, ParseError
from chatpull.messenger.models.threads import ThreadListResult
from chatpull.messenger.transport import strip_json_guard

if TYPE_CHECKING:
    from chatpull.messenger.models.actions import Action
    from chatpull.messenger.session import Session
    from chatpull.messenger.streaming.paginator import Cursor

GRAPHQL_PATH = "/api/graphqlbatch"
THREAD_LIST_PATH = "/ajax/mercury/threadlist_info.php?dpr=1"

# ---------------------------------------------------------------------------
# GraphQL batch
# ---------------------------------------------------------------------------


class _GraphQLMessage(BaseModel):
    message: str = ""


class _GraphQLResult(BaseModel):
    data: Any = None
    errors: list[_GraphQLMessage] | None = None


class _GraphQLFailure(BaseModel):
    description: str = ""


class _GraphQLBatch(BaseModel):
    o0: _GraphQLResult = Field(default_factory=_GraphQLResult)
    error: _GraphQLFailure | None = None


async def graphql_query(session: Session, doc_id: str, query_params: dict[str, Any]) -> Any:
    """Run one persisted GraphQL document and return its ``data`` object.

    Raises ``GraphQLError`` when the batch reports an error and
    ``ParseError`` when the body is not a batch response.
    """
    params = await session.common_params()
    params["queries"] = json.dumps({"o0": {"doc_id": doc_id, "query_params": query_params}})
    body = await session.port.post(session.settings.base_url + GRAPHQL_PATH, params)

    try:
        # The batch endpoint may append a trailing status object; only the first matters.
        first, _ = json.JSONDecoder().raw_decode(body.decode("utf-8").lstrip())
        batch = _GraphQLBatch.model_validate(first)
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        msg = f"graphql: unexpected response: {e}"
        raise ParseError(msg) from e

    if batch.o0.errors:
        msg = f"GraphQL error: {batch.o0.errors[0].message}"
        raise GraphQLError(msg)
    if batch.error is not None and batch.error.description:
        msg = f"GraphQL error: {batch.error.description}"
        raise GraphQLError(msg)
    return batch.o0.data


# ---------------------------------------------------------------------------
# Action log
# ---------------------------------------------------------------------------


class _Messages(BaseModel):
    nodes: list[Any] = Field(default_factory=list)


class _MessageThread(BaseModel):
    messages: _Messages = Field(default_factory=_Messages)


class _ActionLogData(BaseModel):
    message_thread: _MessageThread | None = None


async def fetch_action_page(session: Session, thread_id: str, cursor: Cursor, limit: int) -> list[Action]:
    """Fetch one page of a thread's action log, newest first.

    The page holds the *limit* most recent actions at or before
    ``cursor.timestamp`` (or the most recent ones when it is unset).
    """
    query_params = {
        "id": thread_id,
        "message_limit": limit,
        "load_messages": 1,
        "load_read_receipts": False,
        "before": cursor.before_param(),
    }
    data = await graphql_query(session, session.settings.action_log_doc_id, query_params)
    try:
        parsed = _ActionLogData.model_validate(data or {})
    except ValidationError as e:
        msg = f"action log: unexpected data for thread {thread_id}"
        raise ParseError(msg) from e
    if parsed.message_thread is None:
        msg = f"action log: thread {thread_id} not found"
        raise ParseError(msg)

    # The backend lists oldest first.
    nodes = parsed.message_thread.messages.nodes
    logger.debug("action log {}: {} entries before {}", thread_id, len(nodes), cursor.before_param())
    return [decode_action(node) for node in reversed(nodes)]


# ---------------------------------------------------------------------------
# Thread list
# ---------------------------------------------------------------------------


class _ThreadListResponse(BaseModel):
    payload: ThreadListResult = Field(default_factory=ThreadListResult)


async def list_threads(session: Session, offset: int = 0, limit: int = 20) -> ThreadListResult:
    """Read a range of the user's threads, starting at index *offset*."""
    params = await session.common_params()
    params["inbox[filter]"] = ""
    params["inbox[offset]"] = str(offset)
    params["inbox[limit]"] = str(limit)
    body = await session.port.post(session.settings.base_url + THREAD_LIST_PATH, params)
    try:
        return _ThreadListResponse.model_validate_json(strip_json_guard(body)).payload
    except ValidationError as e:
        msg = f"thread list: unexpected response: {e.error_count()} validation errors"
        raise ParseError(msg) from e


async def iter_threads(session: Session, page_size: int = 20) -> AsyncIterator[ThreadListResult]:
    """Yield successive thread-list pages until a short page is returned."""
    offset = 0
    while True:
        page = await list_threads(session, offset, page_size)
        yield page
        if len(page.threads) < page_size:
            return
        offset += len(page.threads)
