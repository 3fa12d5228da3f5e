"""
Per-request trace ids.

The HTTP middleware binds the id of the incoming request; services and
clients read it with current_trace_id() and pass it to their log calls.
Work that runs outside a request (background schema fetches, scripts)
opens its own scope with trace_context().
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional

trace_id_var: ContextVar[Optional[str]] = ContextVar('trace_id', default=None)


def generate_trace_id() -> str:
    return str(uuid.uuid4())


def set_trace_id(trace_id: Optional[str]) -> Token:
    """Bind a trace id to the current context; returns the token to undo it."""
    return trace_id_var.set(trace_id)


def current_trace_id() -> Optional[str]:
    """Trace id bound to the current context, or None outside a request."""
    return trace_id_var.get()


def get_trace_id() -> str:
    """Current trace id, minting and binding one when none is set."""
    trace_id = current_trace_id()
    if trace_id is None:
        trace_id = generate_trace_id()
        set_trace_id(trace_id)
    return trace_id


@contextmanager
def trace_context(trace_id: Optional[str] = None) -> Iterator[str]:
    """
    Run a block under a trace id and restore the previous one afterwards.

    Without an argument the current id is kept when there is one, otherwise
    a new id is minted.

    Example:
        with trace_context() as trace_id:
            await schema_browser.fetch_schemas(connection_id)
    """
    resolved = trace_id or current_trace_id() or generate_trace_id()
    token = set_trace_id(resolved)
    try:
        yield resolved
    finally:
        trace_id_var.reset(token)
