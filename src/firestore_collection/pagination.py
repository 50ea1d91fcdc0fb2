"""
Cursor-based pagination over a Firestore collection.

``PaginatedFetchController`` remembers the last document snapshot of the
previous page and continues strictly after it::

    controller = PaginatedFetchController(lambda: client.collection("tasks"), mapper)
    options = PaginationOptions(limit=20, order_by="createdAt")

    outcome = await controller.fetch_first(options, [Predicate.equals("owner", "u1")])
    while outcome.state is FetchState.FETCHED:
        render(outcome.items)
        outcome = await controller.fetch_next(options, [Predicate.equals("owner", "u1")])

Outcomes are returned, never raised: an empty first page is ``EMPTY``, an
empty continuation is ``EXHAUSTED`` and a continuation without a first page
is ``NO_CURSOR``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .exceptions import PaginationConflictError
from .predicates import structural_predicates
from .query_builder import FirestoreQueryBuilder

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .model_mapper import FirestoreModelMapper
    from .predicates import Predicate

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PaginationOptions:
    """
    Page shape for paginated fetches.

    Attributes:
        limit: Page size; must be positive.
        order_by: Field the pages are ordered by.
        descending: Order direction; newest-first by default.
    """

    limit: int
    order_by: str
    descending: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.limit, bool) or not isinstance(self.limit, int):
            raise ValueError("limit must be an integer")
        if self.limit < 1:
            raise ValueError("limit must be positive")
        if not self.order_by:
            raise ValueError("order_by must name a field")


class FetchState(str, Enum):
    """State of a collection after a paginated fetch."""

    EMPTY = "empty"
    FETCHED = "fetched"
    EXHAUSTED = "exhausted"
    NO_CURSOR = "no_cursor"


@dataclass(frozen=True)
class FetchOutcome(Generic[T]):
    """Result of one paginated fetch; ``items`` is only filled for FETCHED."""

    state: FetchState
    items: list[T] = field(default_factory=list)

    @classmethod
    def empty(cls) -> FetchOutcome[T]:
        return cls(FetchState.EMPTY)

    @classmethod
    def fetched(cls, items: list[T]) -> FetchOutcome[T]:
        return cls(FetchState.FETCHED, list(items))

    @classmethod
    def exhausted(cls) -> FetchOutcome[T]:
        return cls(FetchState.EXHAUSTED)

    @classmethod
    def no_cursor(cls) -> FetchOutcome[T]:
        return cls(FetchState.NO_CURSOR)

    @property
    def is_fetched(self) -> bool:
        return self.state is FetchState.FETCHED


def ensure_no_conflicts(predicates: Sequence[Predicate]) -> None:
    """Reject ordering/limit predicates next to pagination options."""
    clashing = [p.kind.value for p in structural_predicates(predicates)]
    if clashing:
        raise PaginationConflictError(clashing)


class PaginatedFetchController(Generic[T]):
    """Forward-only pagination cursor for one listing session.

    The controller holds no lock: run at most one ``fetch_*`` call at a time
    per instance. The cursor is assigned only once the page came back and
    was decoded, so a cancelled fetch leaves it where it was.

    Args:
        query_source: Zero-argument callable returning the base query
            (typically ``client.collection(path)``).
        mapper: Decodes snapshots into models; undecodable documents are
            dropped from the page.
        query_builder: Compiler used for predicates and page clauses.
        path: Collection path, used in log messages only.
    """

    def __init__(
        self,
        query_source: Callable[[], Any],
        mapper: FirestoreModelMapper[Any],
        *,
        query_builder: FirestoreQueryBuilder | None = None,
        path: str = "",
    ) -> None:
        self._query_source = query_source
        self._mapper = mapper
        self._query_builder = query_builder or FirestoreQueryBuilder()
        self._path = path
        self._cursor: Any | None = None

    @property
    def cursor(self) -> Any | None:
        """Last snapshot of the previous non-empty page, if any."""
        return self._cursor

    def reset(self) -> None:
        """Forget the cursor without fetching."""
        self._cursor = None

    async def fetch_first(
        self,
        options: PaginationOptions,
        predicates: Sequence[Predicate] = (),
    ) -> FetchOutcome[T]:
        """Fetch the first page, discarding any previous cursor."""
        ensure_no_conflicts(predicates)
        self._cursor = None
        return await self._fetch(options, predicates, cursor=None)

    async def fetch_next(
        self,
        options: PaginationOptions,
        predicates: Sequence[Predicate] = (),
    ) -> FetchOutcome[T]:
        """Fetch the page after the cursor.

        Returns NO_CURSOR, without touching the store, when no page has been
        fetched yet.
        """
        ensure_no_conflicts(predicates)
        if self._cursor is None:
            logger.debug("fetch_next on %s before fetch_first", self._path)
            return FetchOutcome.no_cursor()
        return await self._fetch(options, predicates, cursor=self._cursor)

    async def _fetch(
        self,
        options: PaginationOptions,
        predicates: Sequence[Predicate],
        *,
        cursor: Any | None,
    ) -> FetchOutcome[T]:
        query = self._query_builder.compile(self._query_source(), predicates)
        query = self._query_builder.paginate(query, options, cursor)
        snapshots = list(await query.get())

        if not snapshots:
            outcome: FetchOutcome[T] = (
                FetchOutcome.empty() if cursor is None else FetchOutcome.exhausted()
            )
            logger.debug("Page of %s: %s", self._path, outcome.state.value)
            return outcome

        items: list[T] = self._mapper.decode_many(snapshots)
        self._cursor = snapshots[-1]
        logger.debug(
            "Page of %s: fetched %d of %d document(s)",
            self._path,
            len(items),
            len(snapshots),
        )
        return FetchOutcome.fetched(items)
