"""
Observable in-memory document list.

``DocumentList`` is what a UI layer watches. Every mutation publishes a
``CollectionChange`` to the registered listeners; an adapter bridges these
plain events to whatever reactivity model the host toolkit uses. The
``hint`` carried by each change is opaque (e.g. an animation spec) and is
passed through untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .model import FirestoreModel

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=FirestoreModel)


class ChangeKind(str, Enum):
    REPLACED = "replaced"
    APPENDED = "appended"
    UPDATED = "updated"
    REMOVED = "removed"
    CLEARED = "cleared"


@dataclass(frozen=True)
class CollectionChange(Generic[T]):
    """One mutation of a ``DocumentList``; ``items`` are the affected documents."""

    kind: ChangeKind
    items: list[T] = field(default_factory=list)
    hint: Any = None


class DocumentList(Generic[T]):
    """Ordered list of documents that notifies listeners on every change."""

    def __init__(self) -> None:
        self._items: list[T] = []
        self._listeners: list[Callable[[CollectionChange[T]], None]] = []

    # -- reading --------------------------------------------------------------

    @property
    def items(self) -> list[T]:
        """A copy of the current documents."""
        return list(self._items)

    def get(self, doc_id: str | None) -> T | None:
        if doc_id is None:
            return None
        for item in self._items:
            if item.id == doc_id:
                return item
        return None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    # -- listeners ------------------------------------------------------------

    def add_listener(
        self, listener: Callable[[CollectionChange[T]], None]
    ) -> Callable[[], None]:
        """Register ``listener``; returns a callable that removes it again."""
        if listener not in self._listeners:
            self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _publish(self, change: CollectionChange[T]) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(
                    "Error in collection listener %s for %s change",
                    getattr(listener, "__name__", type(listener).__name__),
                    change.kind.value,
                )
                raise

    # -- mutations ------------------------------------------------------------

    def replace(self, items: Iterable[T], *, hint: Any = None) -> None:
        """Replace the whole list."""
        self._items = list(items)
        self._publish(CollectionChange(ChangeKind.REPLACED, list(self._items), hint))

    def append(self, items: Iterable[T], *, hint: Any = None) -> None:
        """Append documents at the end (next page of a pagination)."""
        added = list(items)
        if not added:
            return
        self._items.extend(added)
        self._publish(CollectionChange(ChangeKind.APPENDED, added, hint))

    def update(self, item: T, *, hint: Any = None) -> bool:
        """Replace the document with the same id; False if it is not listed."""
        for index, existing in enumerate(self._items):
            if existing.id is not None and existing.id == item.id:
                self._items[index] = item
                self._publish(CollectionChange(ChangeKind.UPDATED, [item], hint))
                return True
        return False

    def remove(self, doc_id: str | None, *, hint: Any = None) -> bool:
        """Remove the document with ``doc_id``; False if it is not listed."""
        for index, existing in enumerate(self._items):
            if existing.id is not None and existing.id == doc_id:
                removed = self._items.pop(index)
                self._publish(CollectionChange(ChangeKind.REMOVED, [removed], hint))
                return True
        return False

    def clear(self, *, hint: Any = None) -> None:
        """Drop every document."""
        if not self._items:
            return
        removed = self._items
        self._items = []
        self._publish(CollectionChange(ChangeKind.CLEARED, removed, hint))
