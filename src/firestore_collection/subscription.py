"""
Realtime subscriptions over Firestore snapshot listeners.

Every snapshot fully replaces the subscriber's view of the matched documents;
no incremental diffs are delivered. The first failure is delivered once as
``SnapshotResult.failure`` and the subscription stops; resubscribing is up to
the caller.

Only errors raised while handling a snapshot (decoding, listener
callbacks) are delivered as failures. When the backend stream itself dies,
the Firestore ``Watch`` closes on its own thread without invoking the
callback; no failure is delivered then and ``active`` turns False once the
watch reports it is no longer active.

Firestore invokes listeners on its own watch thread. When the subscription
is started from a running asyncio loop, deliveries are handed to that loop
with ``call_soon_threadsafe`` so list mutations and callbacks happen on the
loop thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from .model_mapper import FirestoreModelMapper

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SnapshotResult(Generic[T]):
    """Either the full current document set or the error that ended the stream."""

    documents: list[T] | None = None
    error: BaseException | None = None

    @classmethod
    def success(cls, documents: list[T]) -> SnapshotResult[T]:
        return cls(documents=list(documents))

    @classmethod
    def failure(cls, error: BaseException) -> SnapshotResult[T]:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


class Subscription(Generic[T]):
    """Handle for one realtime listener.

    Args:
        mapper: Decodes snapshots; undecodable documents are skipped.
        on_change: Called with every ``SnapshotResult``.
        on_documents: Called with the decoded documents before ``on_change``
            (the collection uses it to refresh its list).
        on_close: Called with this subscription once it stops, whether
            unsubscribed or ended by a failure.
        loop: Loop to deliver on; defaults to the running loop, if any.
    """

    def __init__(
        self,
        mapper: FirestoreModelMapper[Any],
        on_change: Callable[[SnapshotResult[T]], None],
        *,
        on_documents: Callable[[list[T]], None] | None = None,
        on_close: Callable[[Subscription[T]], None] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        path: str = "",
    ) -> None:
        self._mapper = mapper
        self._on_change = on_change
        self._on_documents = on_documents
        self._on_close = on_close
        self._path = path
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        self._loop = loop
        self._watch: Any | None = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        if self._closed:
            return False
        watch = self._watch
        return watch is None or bool(getattr(watch, "is_active", True))

    def start(self, query: Any) -> Subscription[T]:
        """Register the snapshot listener on ``query``."""
        watch = query.on_snapshot(self._on_snapshot)
        with self._lock:
            if self._closed:
                # Failed (or was unsubscribed) during the initial snapshot.
                watch.unsubscribe()
                return self
            self._watch = watch
        logger.debug("Subscribed to %s", self._path)
        return self

    def unsubscribe(self) -> None:
        """Stop listening. Calling it again is a no-op."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            watch, self._watch = self._watch, None
        if watch is not None:
            watch.unsubscribe()
        logger.debug("Unsubscribed from %s", self._path)
        if self._on_close is not None:
            self._on_close(self)

    # -- delivery -------------------------------------------------------------

    def _on_snapshot(self, snapshots: Any, changes: Any, read_time: Any) -> None:
        if self._closed:
            return
        try:
            result: SnapshotResult[T] = SnapshotResult.success(
                self._mapper.decode_many(snapshots)
            )
        except Exception as e:
            logger.exception("Snapshot listener on %s failed", self._path)
            result = SnapshotResult.failure(e)
        self._deliver(result)

    def _deliver(self, result: SnapshotResult[T]) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._dispatch, result)
        else:
            self._dispatch(result)

    def _dispatch(self, result: SnapshotResult[T]) -> None:
        if self._closed:
            return
        if not result.ok:
            self.unsubscribe()
            self._on_change(result)
            return
        if self._on_documents is not None and result.documents is not None:
            self._on_documents(result.documents)
        self._on_change(result)
