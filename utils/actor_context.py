"""Propagate the acting user and their Lead Store credential using contextvars."""

from contextlib import contextmanager
from contextvars import ContextVar

from core.models.actor import Actor

_current_actor: ContextVar[Actor | None] = ContextVar("current_actor", default=None)
_current_credential: ContextVar[str | None] = ContextVar("current_credential", default=None)


def get_current_actor() -> Actor:
    """
    Get the acting user from context.

    Raises RuntimeError if no actor is set: code that needs an actor is
    being called outside of an authenticated request.
    """
    actor = _current_actor.get()
    if actor is None:
        raise RuntimeError(
            "No actor context set. This usually means you're calling "
            "lead operations outside of an authenticated request."
        )
    return actor


def get_current_credential() -> str | None:
    """Lead Store bearer credential of the current request, if any."""
    return _current_credential.get()


def set_current_actor(actor: Actor, credential: str | None = None) -> None:
    """
    Set the acting user and credential.

    Called by auth middleware after validating the session.
    """
    _current_actor.set(actor)
    _current_credential.set(credential)


def clear_current_actor() -> None:
    """
    Clear actor context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_actor.set(None)
    _current_credential.set(None)


@contextmanager
def actor_context(actor: Actor, credential: str | None = None):
    """
    Temporarily act as `actor`.

    Example:
        with actor_context(builder, token):
            leads = lead_service.list_leads(builder)
    """
    previous_actor = _current_actor.get()
    previous_credential = _current_credential.get()
    set_current_actor(actor, credential)
    try:
        yield actor
    finally:
        if previous_actor is None:
            clear_current_actor()
        else:
            set_current_actor(previous_actor, previous_credential)
