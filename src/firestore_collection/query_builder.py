"""Firestore query compiler from ordered predicate lists."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .exceptions import FirestoreQueryError
from .operators import apply_filter, apply_limit, apply_order_by
from .predicates import Predicate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .pagination import PaginationOptions

logger = logging.getLogger(__name__)

_APPLIERS = [
    apply_filter,
    apply_order_by,
    apply_limit,
]


def _apply_predicate(query: Any, predicate: Predicate) -> Any:
    """Apply one predicate to the accumulator query."""
    for applier in _APPLIERS:
        result = applier(query, predicate)
        if result is not None:
            return result
    raise FirestoreQueryError(f"No applier for predicate kind {predicate.kind!r}")


class FirestoreQueryBuilder:
    """Compiles ordered predicate lists onto a Firestore query.

    The builder never touches the network: it only chains ``where`` /
    ``order_by`` / ``limit`` calls onto the query it is given. Predicates are
    applied in the order supplied and no conflict detection is done, so two
    ``order_by`` clauses both end up in the query and a second ``limit``
    replaces the first.
    """

    def compile(self, base: Any, predicates: Iterable[Predicate] = ()) -> Any:
        """Apply ``predicates`` in order to ``base`` (usually a collection ref)."""
        query = base
        applied = 0
        for predicate in predicates:
            query = _apply_predicate(query, predicate)
            applied += 1
        logger.debug("Compiled %d predicate(s)", applied)
        return query

    def paginate(
        self,
        query: Any,
        options: PaginationOptions,
        cursor: Any | None = None,
    ) -> Any:
        """Append page ordering, page size and (optionally) a start-after cursor."""
        query = self.compile(
            query,
            [
                Predicate.order_by(options.order_by, descending=options.descending),
                Predicate.limit(options.limit),
            ],
        )
        if cursor is not None:
            query = query.start_after(cursor)
        return query

    def limit_one(self, query: Any) -> Any:
        """Cap ``query`` to a single document."""
        return self.compile(query, [Predicate.limit(1)])
