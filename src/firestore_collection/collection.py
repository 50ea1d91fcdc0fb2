"""FirestoreCollection[T]: observable, typed access to one Firestore collection."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from google.cloud import firestore

from .auth import ContextUserProvider
from .batch import BatchedWrite, BatchedWriteType
from .exceptions import MissingDocumentIdError, UnauthenticatedError
from .model import (
    CREATED_AT_FIELD,
    UPDATED_AT_FIELD,
    USER_ID_FIELD,
    FirestoreModel,
)
from .model_mapper import FirestoreModelMapper
from .observable import DocumentList
from .pagination import FetchOutcome, PaginatedFetchController, PaginationOptions
from .query_builder import FirestoreQueryBuilder
from .subscription import SnapshotResult, Subscription

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .auth import CurrentUserProvider
    from .connection import FirestoreConnectionManager
    from .predicates import Predicate

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=FirestoreModel)


class UpdateStrategy(str, Enum):
    """How ``update`` settles the new ``updatedAt`` of the in-memory copy."""

    LOCAL = "local"
    SERVER_CONFIRMED = "server_confirmed"


class FirestoreCollection(Generic[T]):
    """
    Typed, observable access to the collection at ``path``.

    Reads land in :attr:`documents`, a :class:`DocumentList` a UI layer can
    listen to. Every method that changes the list accepts an opaque ``hint``
    (e.g. an animation) that is forwarded to the listeners untouched.

    Usage::

        tasks = FirestoreCollection(connection, "tasks", Task)
        await tasks.get_many([Predicate.equals("owner", "u1")])
        outcome = await tasks.get_page(PaginationOptions(20, "createdAt"))
        more = await tasks.get_page(PaginationOptions(20, "createdAt"), continuation=True)

    Backend errors from ``google-cloud-firestore`` propagate unchanged;
    "nothing found" is reported as ``None`` / an empty outcome.
    """

    count_alias = "count"

    def __init__(
        self,
        connection: FirestoreConnectionManager,
        path: str,
        model_cls: type[T],
        *,
        user_provider: CurrentUserProvider | None = None,
        query_builder: FirestoreQueryBuilder | None = None,
    ) -> None:
        self._connection = connection
        self._path = path
        self._model_cls = model_cls
        self._user_provider = user_provider or ContextUserProvider()
        self._query_builder = query_builder or FirestoreQueryBuilder()
        self._mapper: FirestoreModelMapper[T] = FirestoreModelMapper(model_cls)
        self._pager: PaginatedFetchController[T] = PaginatedFetchController(
            self._collection,
            self._mapper,
            query_builder=self._query_builder,
            path=path,
        )
        self._subscriptions: set[Subscription[T]] = set()
        self.documents: DocumentList[T] = DocumentList()

    @property
    def path(self) -> str:
        return self._path

    def _collection(self) -> Any:
        return self._connection.client.collection(self._path)

    def _require_id(self, document: T, operation: str) -> str:
        if not document.id:
            raise MissingDocumentIdError(operation, self._model_cls.__name__)
        return document.id

    # -- reads ----------------------------------------------------------------

    async def get_one(self, doc_id: str, *, hint: Any = None) -> T | None:
        """Fetch one document by id; the list becomes ``[document]`` or empty."""
        snapshot = await self._collection().document(doc_id).get()
        document = self._mapper.decode(snapshot) if snapshot.exists else None
        self._show_single(document, hint)
        return document

    async def find_one(
        self, predicates: Sequence[Predicate], *, hint: Any = None
    ) -> T | None:
        """Fetch the first document matching ``predicates`` (implicit limit 1)."""
        query = self._query_builder.compile(self._collection(), predicates)
        snapshots = await self._query_builder.limit_one(query).get()
        documents = self._mapper.decode_many(snapshots)
        document = documents[0] if documents else None
        self._show_single(document, hint)
        return document

    def _show_single(self, document: T | None, hint: Any) -> None:
        if document is None:
            self.documents.clear(hint=hint)
        else:
            self.documents.replace([document], hint=hint)

    async def get_many(
        self, predicates: Sequence[Predicate] = (), *, hint: Any = None
    ) -> list[T]:
        """Fetch every matching document; replaces the list."""
        query = self._query_builder.compile(self._collection(), predicates)
        documents = self._mapper.decode_many(await query.get())
        logger.debug("Fetched %d document(s) from %s", len(documents), self._path)
        self.documents.replace(documents, hint=hint)
        return documents

    async def get_page(
        self,
        options: PaginationOptions,
        predicates: Sequence[Predicate] = (),
        *,
        continuation: bool = False,
        hint: Any = None,
    ) -> FetchOutcome[T]:
        """Fetch the first page (clearing the list) or the next one (appending).

        Do not pass ``order_by`` / ``limit`` predicates here; ``options`` owns
        them.
        """
        if continuation:
            outcome = await self._pager.fetch_next(options, predicates)
        else:
            outcome = await self._pager.fetch_first(options, predicates)
            self.documents.clear(hint=hint)
        if outcome.is_fetched:
            self.documents.append(outcome.items, hint=hint)
        return outcome

    async def count(self, predicates: Sequence[Predicate] = ()) -> int:
        """Count matching documents with a server-side aggregation."""
        query = self._query_builder.compile(self._collection(), predicates)
        results = await query.count(alias=self.count_alias).get()
        for result in results:
            for aggregate in result:
                if aggregate.alias == self.count_alias:
                    return int(aggregate.value)
        return 0

    def reset(self, *, hint: Any = None) -> None:
        """Clear the list and the pagination cursor."""
        self._pager.reset()
        self.documents.clear(hint=hint)

    # -- writes ---------------------------------------------------------------

    def _creation_data(self, document: T, user_id: str) -> dict[str, Any]:
        data = self._mapper.to_doc(document.model_copy(update={"user_id": user_id}))
        data[CREATED_AT_FIELD] = firestore.SERVER_TIMESTAMP
        data[UPDATED_AT_FIELD] = firestore.SERVER_TIMESTAMP
        return data

    def _update_data(self, document: T) -> dict[str, Any]:
        # Merge payload: the owner stays as stored, unset fields are left alone.
        data = self._mapper.to_doc(document, exclude_none=True)
        data.pop(USER_ID_FIELD, None)
        data[UPDATED_AT_FIELD] = firestore.SERVER_TIMESTAMP
        return data

    def _with_stored_owner(self, document: T) -> T:
        """Carry the listed copy's owner and creation time onto ``document``."""
        listed = self.documents.get(document.id)
        if listed is None:
            return document
        return document.model_copy(
            update={"user_id": listed.user_id, "created_at": listed.created_at}
        )

    async def create(self, document: T) -> str | None:
        """Create ``document`` owned by the signed-in user.

        Returns the new document id, or None (nothing written) when no user
        is signed in. The list is left alone; subscriptions pick the new
        document up.
        """
        user_id = self._user_provider.current_user_id()
        if not user_id:
            logger.warning("Skipping create in %s: no signed-in user", self._path)
            return None
        _, ref = await self._collection().add(self._creation_data(document, user_id))
        logger.debug("Created %s/%s", self._path, ref.id)
        return str(ref.id)

    async def update(
        self,
        document: T,
        *,
        strategy: UpdateStrategy = UpdateStrategy.LOCAL,
        hint: Any = None,
    ) -> T:
        """Merge ``document`` into the store and refresh it in the list.

        ``LOCAL`` stamps ``updated_at`` with the local clock and never reads
        back; ``SERVER_CONFIRMED`` reads the stored document once after the
        write. Returns the version placed in the list.
        """
        doc_id = self._require_id(document, "update")
        ref = self._collection().document(doc_id)
        await ref.set(self._update_data(document), merge=True)

        stored: T | None
        if strategy is UpdateStrategy.SERVER_CONFIRMED:
            snapshot = await ref.get()
            stored = self._mapper.decode(snapshot) if snapshot.exists else None
        else:
            stored = self._with_stored_owner(document).model_copy(
                update={"updated_at": datetime.now(timezone.utc)}
            )
        if stored is None:
            stored = self._with_stored_owner(document)
        self.documents.update(stored, hint=hint)
        logger.debug("Updated %s/%s (%s)", self._path, doc_id, strategy.value)
        return stored

    async def delete(self, document: T, *, hint: Any = None) -> None:
        """Delete ``document`` from the store and the list."""
        doc_id = self._require_id(document, "delete")
        await self._collection().document(doc_id).delete()
        self.documents.remove(doc_id, hint=hint)
        logger.debug("Deleted %s/%s", self._path, doc_id)

    async def increment_field(
        self, field: str, amount: float, document: T, *, hint: Any = None
    ) -> bool:
        """Atomically add ``amount`` to ``field``; non-positive amounts are no-ops."""
        if amount <= 0:
            return False
        return await self._change_field(field, amount, document, hint)

    async def decrement_field(
        self, field: str, amount: float, document: T, *, hint: Any = None
    ) -> bool:
        """Atomically subtract ``amount`` from ``field``; non-positive amounts are no-ops."""
        if amount <= 0:
            return False
        return await self._change_field(field, -amount, document, hint)

    async def _change_field(
        self, field: str, delta: float, document: T, hint: Any
    ) -> bool:
        doc_id = self._require_id(document, "update")
        await self._collection().document(doc_id).update(
            {
                field: firestore.Increment(delta),
                UPDATED_AT_FIELD: firestore.SERVER_TIMESTAMP,
            }
        )
        current = self.documents.get(doc_id) or document
        attr = self._mapper.attribute_for(field)
        value = getattr(current, attr, None) if attr else None
        if attr and isinstance(value, int | float) and not isinstance(value, bool):
            self.documents.update(
                current.model_copy(update={attr: value + delta}), hint=hint
            )
        return True

    async def apply_batch(
        self, writes: Sequence[BatchedWrite[T]], *, hint: Any = None
    ) -> list[str]:
        """Apply ``writes`` atomically; returns the affected ids in order.

        Creates get a fresh id and stamped managed fields, updates merge and
        deletes remove. If the commit fails nothing is written and the list
        is untouched.
        """
        if not writes:
            return []
        user_id: str | None = None
        if any(w.type is BatchedWriteType.CREATE for w in writes):
            user_id = self._user_provider.current_user_id()
            if not user_id:
                raise UnauthenticatedError(
                    f"Batch for {self._path} creates documents but no user is signed in"
                )

        collection = self._collection()
        batch = self._connection.client.batch()
        ids: list[str] = []
        for write in writes:
            if write.type is BatchedWriteType.CREATE:
                ref = collection.document()
                batch.set(ref, self._creation_data(write.document, user_id or ""))
            elif write.type is BatchedWriteType.UPDATE:
                ref = collection.document(self._require_id(write.document, "update"))
                batch.set(ref, self._update_data(write.document), merge=True)
            else:
                ref = collection.document(self._require_id(write.document, "delete"))
                batch.delete(ref)
            ids.append(str(ref.id))

        await batch.commit()
        logger.debug("Committed batch of %d write(s) to %s", len(writes), self._path)

        for write in writes:
            if write.type is BatchedWriteType.UPDATE:
                self.documents.update(
                    self._with_stored_owner(write.document), hint=hint
                )
            elif write.type is BatchedWriteType.DELETE:
                self.documents.remove(write.document.id, hint=hint)
        return ids

    # -- realtime -------------------------------------------------------------

    def subscribe(
        self,
        predicates: Sequence[Predicate],
        on_change: Callable[[SnapshotResult[T]], None],
    ) -> Subscription[T]:
        """Listen to the documents matching ``predicates``.

        Each delivery replaces the list with the full current result set.
        """
        query = self._query_builder.compile(
            self._connection.sync_client.collection(self._path), predicates
        )
        subscription: Subscription[T] = Subscription(
            self._mapper,
            on_change,
            on_documents=self.documents.replace,
            on_close=self._subscriptions.discard,
            path=self._path,
        )
        self._subscriptions.add(subscription)
        return subscription.start(query)

    def unsubscribe(self, subscription: Subscription[T]) -> None:
        """Stop ``subscription``; a second call is a no-op."""
        subscription.unsubscribe()
        self._subscriptions.discard(subscription)

    def unsubscribe_all(self) -> None:
        for subscription in list(self._subscriptions):
            self.unsubscribe(subscription)
