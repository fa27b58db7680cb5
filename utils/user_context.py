"""Propagate the acting user's identity through the call stack using contextvars.

The finance core has no authentication of its own. The calling layer sets the
user once per request; activity-log entries and overdue notifications read it
from here.
"""

from contextvars import ContextVar
from uuid import UUID
from contextlib import contextmanager

_current_user_id: ContextVar[UUID | None] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> UUID:
    """
    Get current user ID from context.

    Raises RuntimeError if no user context is set. Use this in code paths
    that cannot proceed without knowing who is acting.
    """
    user_id = _current_user_id.get()
    if user_id is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "user-scoped code outside of a request."
        )
    return user_id


def peek_current_user_id() -> UUID | None:
    """Current user ID, or None when running outside a user context (jobs, scripts)."""
    return _current_user_id.get()


def set_current_user_id(user_id: UUID) -> None:
    """Set current user ID in context."""
    _current_user_id.set(user_id)


def clear_current_user_id() -> None:
    """
    Clear user context.

    Must be called in a finally block to prevent context leakage between
    requests served by the same worker.
    """
    _current_user_id.set(None)


@contextmanager
def user_context(user_id: UUID):
    """
    Context manager for temporarily setting user context.

    Example:
        with user_context(some_user_id):
            invoice_service.sync_overdue()  # notifications go to some_user_id
    """
    previous = _current_user_id.get()
    set_current_user_id(user_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_user_id()
        else:
            set_current_user_id(previous)
