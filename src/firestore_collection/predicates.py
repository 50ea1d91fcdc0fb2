"""
Declarative query predicates.

A ``Predicate`` is one filter, sort or limit clause. Predicates are immutable
and are applied to a query in the order they are supplied::

    predicates = [
        Predicate.equals("owner", "u1"),
        Predicate.order_by("createdAt", descending=True),
        Predicate.limit(20),
    ]

``to_dict()`` / ``from_dict()`` let predicate lists cross an API boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .exceptions import PredicateValidationError, UnknownPredicateError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class PredicateKind(str, Enum):
    """Supported predicate kinds."""

    # Field filters
    EQUALS = "equals"
    IN = "in"
    NOT_IN = "not_in"
    ARRAY_CONTAINS = "array_contains"
    ARRAY_CONTAINS_ANY = "array_contains_any"
    LESS_THAN = "less_than"
    GREATER_THAN = "greater_than"
    LESS_OR_EQUAL = "less_or_equal"
    GREATER_OR_EQUAL = "greater_or_equal"

    # Structural clauses
    ORDER_BY = "order_by"
    LIMIT = "limit"
    LIMIT_TO_LAST = "limit_to_last"

    @property
    def is_structural(self) -> bool:
        return self in _STRUCTURAL_KINDS

    @property
    def is_filter(self) -> bool:
        return self not in _STRUCTURAL_KINDS


_STRUCTURAL_KINDS: frozenset[PredicateKind] = frozenset(
    {PredicateKind.ORDER_BY, PredicateKind.LIMIT, PredicateKind.LIMIT_TO_LAST}
)
_LIMIT_KINDS: frozenset[PredicateKind] = frozenset(
    {PredicateKind.LIMIT, PredicateKind.LIMIT_TO_LAST}
)
_LIST_KINDS: frozenset[PredicateKind] = frozenset(
    {PredicateKind.IN, PredicateKind.NOT_IN, PredicateKind.ARRAY_CONTAINS_ANY}
)
_VALID_KINDS: list[str] = [k.value for k in PredicateKind]


@dataclass(frozen=True)
class Predicate:
    """
    One declarative filter/sort/limit clause.

    Attributes:
        kind: What the clause does.
        field: Document field path; empty for ``limit`` / ``limit_to_last``.
        operand: The comparison value, the list of values for ``in``-style
            kinds, the descending flag for ``order_by`` or the count for
            limits.
    """

    kind: PredicateKind
    field: str = ""
    operand: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, PredicateKind):
            object.__setattr__(self, "kind", PredicateKind(self.kind))
        # Keep list operands hashable; the compiler turns them back into lists.
        if self.kind in _LIST_KINDS and isinstance(
            self.operand, list | set | frozenset
        ):
            object.__setattr__(self, "operand", tuple(self.operand))

    # -- constructors ---------------------------------------------------------

    @classmethod
    def equals(cls, field: str, value: Any) -> Predicate:
        return cls(PredicateKind.EQUALS, field, value)

    @classmethod
    def is_in(cls, field: str, values: Iterable[Any]) -> Predicate:
        return cls(PredicateKind.IN, field, tuple(values))

    @classmethod
    def not_in(cls, field: str, values: Iterable[Any]) -> Predicate:
        return cls(PredicateKind.NOT_IN, field, tuple(values))

    @classmethod
    def array_contains(cls, field: str, value: Any) -> Predicate:
        return cls(PredicateKind.ARRAY_CONTAINS, field, value)

    @classmethod
    def array_contains_any(cls, field: str, values: Iterable[Any]) -> Predicate:
        return cls(PredicateKind.ARRAY_CONTAINS_ANY, field, tuple(values))

    @classmethod
    def less_than(cls, field: str, value: Any) -> Predicate:
        return cls(PredicateKind.LESS_THAN, field, value)

    @classmethod
    def greater_than(cls, field: str, value: Any) -> Predicate:
        return cls(PredicateKind.GREATER_THAN, field, value)

    @classmethod
    def less_or_equal(cls, field: str, value: Any) -> Predicate:
        return cls(PredicateKind.LESS_OR_EQUAL, field, value)

    @classmethod
    def greater_or_equal(cls, field: str, value: Any) -> Predicate:
        return cls(PredicateKind.GREATER_OR_EQUAL, field, value)

    @classmethod
    def order_by(cls, field: str, *, descending: bool = False) -> Predicate:
        return cls(PredicateKind.ORDER_BY, field, descending)

    @classmethod
    def limit(cls, count: int) -> Predicate:
        return cls(PredicateKind.LIMIT, "", count)

    @classmethod
    def limit_to_last(cls, count: int) -> Predicate:
        return cls(PredicateKind.LIMIT_TO_LAST, "", count)

    # -- serialisation --------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        operand = list(self.operand) if self.kind in _LIST_KINDS else self.operand
        data: dict[str, Any] = {"kind": self.kind.value, "operand": operand}
        if self.field:
            data["field"] = self.field
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, path: str = "<root>") -> Predicate:
        """Build a predicate from its dict form.

        Raises:
            UnknownPredicateError: If ``kind`` is not a known predicate kind.
            PredicateValidationError: If the dict is structurally invalid.
        """
        if not isinstance(data, dict):
            raise PredicateValidationError("Predicate must be an object", path=path)
        raw_kind = data.get("kind")
        if not isinstance(raw_kind, str) or not raw_kind:
            raise PredicateValidationError("Predicate is missing 'kind'", path=path)
        try:
            kind = PredicateKind(raw_kind.lower())
        except ValueError:
            raise UnknownPredicateError(raw_kind, _VALID_KINDS) from None

        field = data.get("field", "")
        operand = data.get("operand")

        if kind in _LIMIT_KINDS:
            if isinstance(operand, bool) or not isinstance(operand, int) or operand < 1:
                raise PredicateValidationError(
                    f"'{kind.value}' needs a positive integer operand", path=path
                )
            return cls(kind, "", operand)

        if not isinstance(field, str) or not field:
            raise PredicateValidationError(
                f"'{kind.value}' needs a non-empty 'field'", path=path
            )
        if kind == PredicateKind.ORDER_BY:
            return cls(kind, field, bool(operand))
        if kind in _LIST_KINDS:
            if not isinstance(operand, list | tuple):
                raise PredicateValidationError(
                    f"'{kind.value}' needs a list operand", path=path
                )
            return cls(kind, field, tuple(operand))
        return cls(kind, field, operand)


def predicates_from_dicts(items: Sequence[dict[str, Any]]) -> list[Predicate]:
    """Parse an ordered list of predicate dicts, keeping their order."""
    if not isinstance(items, list | tuple):
        raise PredicateValidationError("Predicates must be a list", path="<root>")
    return [
        Predicate.from_dict(item, path=f"<root>[{index}]")
        for index, item in enumerate(items)
    ]


def structural_predicates(predicates: Iterable[Predicate]) -> list[Predicate]:
    """Return the ordering and limit clauses among ``predicates``."""
    return [p for p in predicates if p.kind.is_structural]
