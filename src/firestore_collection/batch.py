"""Entries of an atomic batched write."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from .model import FirestoreModel

T = TypeVar("T", bound=FirestoreModel)


class BatchedWriteType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class BatchedWrite(Generic[T]):
    """One write of a batch: create, merge-update or delete ``document``."""

    type: BatchedWriteType
    document: T

    @classmethod
    def create(cls, document: T) -> BatchedWrite[T]:
        return cls(BatchedWriteType.CREATE, document)

    @classmethod
    def update(cls, document: T) -> BatchedWrite[T]:
        return cls(BatchedWriteType.UPDATE, document)

    @classmethod
    def delete(cls, document: T) -> BatchedWrite[T]:
        return cls(BatchedWriteType.DELETE, document)
