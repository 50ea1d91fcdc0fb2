"""Base model for documents stored in a Firestore collection."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

USER_ID_FIELD = "userId"
CREATED_AT_FIELD = "createdAt"
UPDATED_AT_FIELD = "updatedAt"

MANAGED_TIMESTAMP_FIELDS: frozenset[str] = frozenset(
    {CREATED_AT_FIELD, UPDATED_AT_FIELD}
)


class FirestoreModel(BaseModel):
    """Base class for all collection documents.

    ``id`` is the Firestore document id and is never written into the
    document body. ``user_id``, ``created_at`` and ``updated_at`` are managed
    fields: the collection stamps the owner on create and lets the server
    assign both timestamps, whatever the caller put in them.

    Stored field names are camelCase (``userId``, ``createdAt``, ...); both
    the alias and the attribute name are accepted on construction::

        class Task(FirestoreModel):
            title: str
            done: bool = False

        Task(title="Write docs", userId="u1")
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str | None = None
    user_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
