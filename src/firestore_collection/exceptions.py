"""
Exception hierarchy for firestore-collection.

Predicate errors provide ``to_dict()`` for API-friendly error responses and
fuzzy-matched suggestions for misspelled predicate kinds. Backend failures
raised by ``google-cloud-firestore`` are never wrapped; they reach the
caller unchanged.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class FirestoreCollectionError(Exception):
    """Root exception for the entire firestore-collection library."""


# -- predicates ---------------------------------------------------------------


class PredicateError(FirestoreCollectionError):
    """Base exception for all predicate errors."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class PredicateValidationError(PredicateError):
    """Predicate structure validation failed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "PREDICATE_VALIDATION_ERROR",
            "message": self.message,
            "path": self.path,
        }


class UnknownPredicateError(PredicateError):
    """
    Unknown predicate kind specified.

    Provides fuzzy-matched suggestions for likely intended kinds.
    """

    def __init__(self, kind: str, valid_kinds: list[str]) -> None:
        self.kind = kind
        self.valid_kinds = valid_kinds
        self.suggestions = get_close_matches(kind, valid_kinds, n=3, cutoff=0.6)

        message = f"Unknown predicate kind: '{kind}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        message += f" Valid kinds: {', '.join(sorted(valid_kinds))}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "UNKNOWN_PREDICATE",
            "kind": self.kind,
            "suggestions": self.suggestions,
            "valid_kinds": sorted(self.valid_kinds),
        }


# -- persistence --------------------------------------------------------------


class FirestorePersistenceError(FirestoreCollectionError):
    """Base for Firestore persistence errors."""


class FirestoreConnectionError(FirestorePersistenceError):
    """Raised when the Firestore client cannot be created or is missing."""


class FirestoreQueryError(FirestorePersistenceError):
    """Raised when a query cannot be compiled."""


class PaginationConflictError(FirestoreQueryError):
    """Raised when predicates clash with the pagination options.

    Paginated fetches own ordering and page size; ``order_by``, ``limit``
    and ``limit_to_last`` predicates must not be passed alongside them.
    """

    def __init__(self, kinds: list[str]) -> None:
        self.kinds = kinds
        super().__init__(
            "Pagination options already define ordering and page size; "
            f"remove these predicates: {', '.join(kinds)}"
        )


class DocumentDecodeError(FirestorePersistenceError):
    """Raised when a stored document does not fit the model."""

    def __init__(self, document_id: str | None, model_name: str, reason: str) -> None:
        self.document_id = document_id
        self.model_name = model_name
        self.reason = reason
        super().__init__(
            f"Document {document_id!r} cannot be decoded as {model_name}: {reason}"
        )


class MissingDocumentIdError(FirestorePersistenceError):
    """Raised when a write needs a document id the model does not carry."""

    def __init__(self, operation: str, model_name: str) -> None:
        self.operation = operation
        self.model_name = model_name
        super().__init__(f"Cannot {operation} {model_name} without an id")


class UnauthenticatedError(FirestorePersistenceError):
    """Raised when a batch creates documents but no user is signed in."""
