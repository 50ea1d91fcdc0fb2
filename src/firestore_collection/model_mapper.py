"""Firestore ModelMapper: pydantic model <-> Firestore document body."""

from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from uuid import UUID

from pydantic import ValidationError

from .exceptions import DocumentDecodeError
from .model import MANAGED_TIMESTAMP_FIELDS, FirestoreModel

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

T_Model = TypeVar("T_Model", bound=FirestoreModel)


class FirestoreModelMapper(Generic[T_Model]):
    """
    Firestore-specific model <-> document mapper.

    Uses ``model_dump(mode="python", by_alias=True)`` so datetimes reach the
    client untouched (Firestore stores them as timestamps). Values Firestore
    has no type for are converted: ``Decimal`` -> ``str``, ``UUID`` -> ``str``,
    ``Enum`` -> its value, tuples and sets -> lists.

    The document id lives on the snapshot, not in the body: ``to_doc`` drops
    ``id`` and ``from_snapshot`` puts ``snapshot.id`` back.
    """

    def __init__(self, model_cls: type[T_Model]) -> None:
        self.model_cls = model_cls

    # -- encode ---------------------------------------------------------------

    def to_doc(
        self,
        entity: T_Model,
        *,
        strip_managed: bool = True,
        exclude_none: bool = False,
    ) -> dict[str, Any]:
        """Convert a model to a Firestore document body.

        With ``strip_managed`` (the default) caller-supplied ``createdAt`` /
        ``updatedAt`` are removed so the store assigns them. ``exclude_none``
        drops unset fields, so a merge never overwrites stored values with
        null.
        """
        data = entity.model_dump(
            mode="python", by_alias=True, exclude={"id"}, exclude_none=exclude_none
        )
        if strip_managed:
            data = {k: v for k, v in data.items() if k not in MANAGED_TIMESTAMP_FIELDS}
        return self._serialize_custom_types(data)

    def _serialize_custom_types(self, data: dict[str, Any]) -> dict[str, Any]:
        return {key: self._serialize_value(value) for key, value in data.items()}

    def _serialize_value(self, value: Any) -> Any:
        if isinstance(value, Enum):
            return self._serialize_value(value.value)
        if isinstance(value, Decimal | UUID):
            return str(value)
        if isinstance(value, dict):
            return self._serialize_custom_types(value)
        if isinstance(value, list | tuple | set | frozenset):
            return [self._serialize_value(v) for v in value]
        return value

    # -- decode ---------------------------------------------------------------

    def from_snapshot(self, snapshot: Any) -> T_Model:
        """Convert a document snapshot to a model.

        Raises:
            DocumentDecodeError: If the stored data does not validate.
        """
        data = dict(snapshot.to_dict() or {})
        data["id"] = snapshot.id
        try:
            return self.model_cls.model_validate(data)
        except ValidationError as e:
            raise DocumentDecodeError(
                snapshot.id, self.model_cls.__name__, str(e)
            ) from e

    def decode(self, snapshot: Any) -> T_Model | None:
        """Convert a snapshot, returning None (and logging) if it does not fit."""
        try:
            return self.from_snapshot(snapshot)
        except DocumentDecodeError as e:
            logger.warning("Dropping undecodable document: %s", e)
            return None

    def decode_many(self, snapshots: Iterable[Any]) -> list[T_Model]:
        """Convert snapshots, silently skipping the ones that do not fit."""
        results: list[T_Model] = []
        for snapshot in snapshots:
            model = self.decode(snapshot)
            if model is not None:
                results.append(model)
        return results

    # -- field names ----------------------------------------------------------

    def attribute_for(self, field: str) -> str | None:
        """Map a stored field name (alias) to the model attribute name."""
        for name, info in self.model_cls.model_fields.items():
            if field in (name, info.alias):
                return name
        return None
