"""Current-user identity used to stamp ownership on created documents."""

from __future__ import annotations

import contextlib
from contextvars import ContextVar
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator

# ContextVar so each request/task in an async server carries its own user.
_current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> str | None:
    """Get the signed-in user id from context."""
    return _current_user_id.get()


def set_current_user_id(user_id: str | None) -> None:
    """Set the signed-in user id in context."""
    _current_user_id.set(user_id)


@contextlib.contextmanager
def current_user(user_id: str | None) -> Iterator[None]:
    """Run a block as ``user_id``, restoring the previous user afterwards."""
    token = _current_user_id.set(user_id)
    try:
        yield
    finally:
        _current_user_id.reset(token)


@runtime_checkable
class CurrentUserProvider(Protocol):
    """Supplies the identity of the signed-in user, or None."""

    def current_user_id(self) -> str | None: ...


class ContextUserProvider:
    """Reads the user id set with :func:`set_current_user_id` / :func:`current_user`."""

    def current_user_id(self) -> str | None:
        return get_current_user_id()


class StaticUserProvider:
    """Always reports the same user; handy for scripts and tests."""

    def __init__(self, user_id: str | None) -> None:
        self._user_id = user_id

    def current_user_id(self) -> str | None:
        return self._user_id
