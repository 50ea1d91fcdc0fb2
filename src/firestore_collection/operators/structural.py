"""Ordering and limit predicates -> ``order_by`` / ``limit`` / ``limit_to_last``."""

from __future__ import annotations

from typing import Any

from google.cloud.firestore_v1.base_query import BaseQuery

from ..predicates import Predicate, PredicateKind


def apply_order_by(query: Any, predicate: Predicate) -> Any | None:
    """Apply an ``order_by`` predicate. Returns None for other kinds."""
    if predicate.kind != PredicateKind.ORDER_BY:
        return None
    direction = BaseQuery.DESCENDING if predicate.operand else BaseQuery.ASCENDING
    return query.order_by(predicate.field, direction=direction)


def apply_limit(query: Any, predicate: Predicate) -> Any | None:
    """Apply ``limit`` / ``limit_to_last``. Returns None for other kinds."""
    if predicate.kind == PredicateKind.LIMIT:
        return query.limit(int(predicate.operand))
    if predicate.kind == PredicateKind.LIMIT_TO_LAST:
        return query.limit_to_last(int(predicate.operand))
    return None
