"""Shared fixtures: a connection wired to the in-memory Firestore fake."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from firestore_collection import (
    FirestoreCollection,
    FirestoreConnectionManager,
    FirestoreModel,
    StaticUserProvider,
)
from tests.fake_firestore import FakeFirestoreClient

pytest_plugins = ["pytest_asyncio"]

BASE_TIME = datetime(2024, 6, 1, tzinfo=timezone.utc)


class Task(FirestoreModel):
    """Sample document model used across the unit tests."""

    title: str = ""
    owner: str = ""
    priority: int = 0
    tags: list[str] = []
    due: datetime | None = None


def task_doc(title: str, *, minutes: int = 0, **fields) -> dict:
    """Stored form of a task created ``minutes`` after ``BASE_TIME``."""
    stamp = BASE_TIME + timedelta(minutes=minutes)
    return {
        "title": title,
        "userId": "u1",
        "createdAt": stamp,
        "updatedAt": stamp,
        **fields,
    }


@pytest.fixture
def fake_client() -> FakeFirestoreClient:
    return FakeFirestoreClient()


@pytest.fixture
def connection(fake_client: FakeFirestoreClient) -> FirestoreConnectionManager:
    """A connection manager that is already 'connected' to the fake."""
    connection = FirestoreConnectionManager(project="test")
    connection._client = fake_client
    connection._sync_client = fake_client
    return connection


@pytest.fixture
def tasks(connection: FirestoreConnectionManager) -> FirestoreCollection[Task]:
    return FirestoreCollection(
        connection, "tasks", Task, user_provider=StaticUserProvider("u1")
    )


@pytest.fixture
def seeded(fake_client: FakeFirestoreClient) -> FakeFirestoreClient:
    """Five tasks owned by u1 (t1 oldest .. t5 newest) and one owned by u2."""
    for i in range(1, 6):
        fake_client.seed(
            "tasks", f"t{i}", task_doc(f"Task {i}", minutes=i, owner="u1", priority=i)
        )
    fake_client.seed("tasks", "x1", task_doc("Other", minutes=10, owner="u2"))
    return fake_client
