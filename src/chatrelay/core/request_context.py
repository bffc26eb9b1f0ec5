"""Request correlation identifier carried through logs for one webhook call."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_REQUEST_ID: ContextVar[str | None] = ContextVar("chatrelay_request_id", default=None)
MAX_REQUEST_ID_LENGTH = 64


def current_request_id() -> str | None:
    """Return the correlation identifier of the active request, if any."""
    return _REQUEST_ID.get()


def new_request_id(candidate: str | None = None) -> str:
    """Accept a caller-supplied identifier when usable, otherwise mint one."""
    if candidate:
        cleaned = candidate.strip()[:MAX_REQUEST_ID_LENGTH]
        if cleaned and cleaned.isprintable():
            return cleaned
    return uuid.uuid4().hex


@contextmanager
def bound_request_id(request_id: str) -> Iterator[str]:
    """Bind ``request_id`` for the duration of the block."""
    token = _REQUEST_ID.set(request_id)
    try:
        yield request_id
    finally:
        _REQUEST_ID.reset(token)
