"""Field filter predicates -> ``where(filter=FieldFilter(...))``."""

from __future__ import annotations

from typing import Any

from google.cloud.firestore_v1.base_query import FieldFilter

from ..predicates import Predicate, PredicateKind

_FIRESTORE_OP_MAP: dict[PredicateKind, str] = {
    PredicateKind.EQUALS: "==",
    PredicateKind.LESS_THAN: "<",
    PredicateKind.GREATER_THAN: ">",
    PredicateKind.LESS_OR_EQUAL: "<=",
    PredicateKind.GREATER_OR_EQUAL: ">=",
    PredicateKind.IN: "in",
    PredicateKind.NOT_IN: "not-in",
    PredicateKind.ARRAY_CONTAINS: "array_contains",
    PredicateKind.ARRAY_CONTAINS_ANY: "array_contains_any",
}

_LIST_OPERAND_KINDS = frozenset(
    {PredicateKind.IN, PredicateKind.NOT_IN, PredicateKind.ARRAY_CONTAINS_ANY}
)


def apply_filter(query: Any, predicate: Predicate) -> Any | None:
    """Apply a field filter predicate. Returns None if not a filter kind."""
    op_string = _FIRESTORE_OP_MAP.get(predicate.kind)
    if op_string is None:
        return None
    value = predicate.operand
    if predicate.kind in _LIST_OPERAND_KINDS:
        value = list(value) if isinstance(value, list | tuple) else [value]
    return query.where(filter=FieldFilter(predicate.field, op_string, value))
