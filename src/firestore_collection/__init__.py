"""Observable, typed collections over Google Cloud Firestore.

Includes the predicate-to-query compiler, the cursor pagination controller
and the ``FirestoreCollection`` façade built on them.
"""

from __future__ import annotations

from .auth import (
    ContextUserProvider,
    CurrentUserProvider,
    StaticUserProvider,
    current_user,
    get_current_user_id,
    set_current_user_id,
)
from .batch import BatchedWrite, BatchedWriteType
from .collection import FirestoreCollection, UpdateStrategy
from .connection import FirestoreConnectionManager
from .exceptions import (
    DocumentDecodeError,
    FirestoreCollectionError,
    FirestoreConnectionError,
    FirestorePersistenceError,
    FirestoreQueryError,
    MissingDocumentIdError,
    PaginationConflictError,
    PredicateError,
    PredicateValidationError,
    UnauthenticatedError,
    UnknownPredicateError,
)
from .model import FirestoreModel
from .model_mapper import FirestoreModelMapper
from .observable import ChangeKind, CollectionChange, DocumentList
from .pagination import (
    FetchOutcome,
    FetchState,
    PaginatedFetchController,
    PaginationOptions,
)
from .predicates import Predicate, PredicateKind, predicates_from_dicts
from .query_builder import FirestoreQueryBuilder
from .subscription import SnapshotResult, Subscription

__all__ = [
    # Core
    "FirestoreCollection",
    "FirestoreConnectionManager",
    "FirestoreModel",
    "UpdateStrategy",
    # Querying
    "Predicate",
    "PredicateKind",
    "predicates_from_dicts",
    "FirestoreQueryBuilder",
    # Pagination
    "PaginatedFetchController",
    "PaginationOptions",
    "FetchOutcome",
    "FetchState",
    # Observation
    "DocumentList",
    "CollectionChange",
    "ChangeKind",
    "Subscription",
    "SnapshotResult",
    # Writes
    "BatchedWrite",
    "BatchedWriteType",
    # Identity
    "CurrentUserProvider",
    "ContextUserProvider",
    "StaticUserProvider",
    "current_user",
    "get_current_user_id",
    "set_current_user_id",
    # Utilities
    "FirestoreModelMapper",
    # Exceptions
    "FirestoreCollectionError",
    "PredicateError",
    "PredicateValidationError",
    "UnknownPredicateError",
    "FirestorePersistenceError",
    "FirestoreConnectionError",
    "FirestoreQueryError",
    "PaginationConflictError",
    "DocumentDecodeError",
    "MissingDocumentIdError",
    "UnauthenticatedError",
]
