"""Unit tests for FirestoreCollection against the in-memory Firestore fake."""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from firestore_collection import (
    BatchedWrite,
    ChangeKind,
    ContextUserProvider,
    FetchState,
    FirestoreCollection,
    MissingDocumentIdError,
    PaginationOptions,
    Predicate,
    StaticUserProvider,
    UnauthenticatedError,
    UpdateStrategy,
    current_user,
)
from tests.conftest import BASE_TIME, Task


@pytest.fixture
def changes(tasks):
    received = []
    tasks.documents.add_listener(received.append)
    return received


class TestReads:
    @pytest.mark.asyncio
    async def test_get_one_shows_single_document(self, tasks, seeded, changes):
        task = await tasks.get_one("t2", hint="pop")
        assert task.id == "t2"
        assert task.title == "Task 2"
        assert task.created_at == BASE_TIME.replace(minute=2)
        assert [t.id for t in tasks.documents] == ["t2"]
        assert changes[-1].hint == "pop"

    @pytest.mark.asyncio
    async def test_get_one_missing_clears_list(self, tasks, seeded):
        await tasks.get_many()
        assert await tasks.get_one("missing") is None
        assert len(tasks.documents) == 0

    @pytest.mark.asyncio
    async def test_find_one_limits_to_one(self, tasks, seeded):
        task = await tasks.find_one(
            [Predicate.equals("owner", "u1"), Predicate.order_by("priority", descending=True)]
        )
        assert task.id == "t5"
        assert [t.id for t in tasks.documents] == ["t5"]

    @pytest.mark.asyncio
    async def test_find_one_without_match(self, tasks, seeded):
        assert await tasks.find_one([Predicate.equals("owner", "nobody")]) is None

    @pytest.mark.asyncio
    async def test_get_many_replaces_list(self, tasks, seeded, changes):
        found = await tasks.get_many([Predicate.equals("owner", "u2")])
        assert [t.id for t in found] == ["x1"]
        assert tasks.documents.items == found
        assert changes[-1].kind is ChangeKind.REPLACED

    @pytest.mark.asyncio
    async def test_count_uses_aggregation(self, tasks, seeded):
        assert await tasks.count([Predicate.greater_or_equal("priority", 3)]) == 3
        assert await tasks.count() == 6
        assert seeded.calls_of("query") == []
        assert len(seeded.calls_of("count")) == 2


class TestPages:
    @pytest.mark.asyncio
    async def test_first_page_then_continuation(self, tasks, seeded):
        options = PaginationOptions(limit=2, order_by="createdAt")
        owner = [Predicate.equals("owner", "u1")]

        first = await tasks.get_page(options, owner)
        assert first.state is FetchState.FETCHED
        assert [t.id for t in tasks.documents] == ["t5", "t4"]

        await tasks.get_page(options, owner, continuation=True)
        assert [t.id for t in tasks.documents] == ["t5", "t4", "t3", "t2"]

        await tasks.get_page(options, owner, continuation=True)
        last = await tasks.get_page(options, owner, continuation=True)
        assert last.state is FetchState.EXHAUSTED
        assert len(tasks.documents) == 5

    @pytest.mark.asyncio
    async def test_first_page_starts_over(self, tasks, seeded):
        options = PaginationOptions(limit=3, order_by="createdAt")
        await tasks.get_page(options)
        await tasks.get_page(options, continuation=True)
        await tasks.get_page(options)
        assert [t.id for t in tasks.documents] == ["x1", "t5", "t4"]

    @pytest.mark.asyncio
    async def test_reset(self, tasks, seeded):
        options = PaginationOptions(limit=2, order_by="createdAt")
        await tasks.get_page(options)
        tasks.reset()
        assert len(tasks.documents) == 0
        outcome = await tasks.get_page(options, continuation=True)
        assert outcome.state is FetchState.NO_CURSOR


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_stamps_owner_and_timestamps(self, tasks, fake_client):
        supplied = datetime(1999, 1, 1)
        doc_id = await tasks.create(
            Task(id="ignored", title="Write docs", user_id="someone", created_at=supplied)
        )
        stored = fake_client.store[f"tasks/{doc_id}"]
        assert doc_id != "ignored"
        assert "id" not in stored
        assert stored["userId"] == "u1"
        assert stored["title"] == "Write docs"
        assert isinstance(stored["createdAt"], datetime)
        assert stored["createdAt"] != supplied
        assert isinstance(stored["updatedAt"], datetime)
        assert len(tasks.documents) == 0

    @pytest.mark.asyncio
    async def test_create_without_user_writes_nothing(self, connection, fake_client, caplog):
        anonymous = FirestoreCollection(
            connection, "tasks", Task, user_provider=StaticUserProvider(None)
        )
        assert await anonymous.create(Task(title="x")) is None
        assert fake_client.calls == []
        assert "no signed-in user" in caplog.text

    @pytest.mark.asyncio
    async def test_create_uses_context_user_by_default(self, connection, fake_client):
        scoped = FirestoreCollection(connection, "tasks", Task)
        assert isinstance(scoped._user_provider, ContextUserProvider)
        with current_user("u7"):
            doc_id = await scoped.create(Task(title="x"))
        assert fake_client.store[f"tasks/{doc_id}"]["userId"] == "u7"


class TestUpdate:
    @pytest.mark.asyncio
    async def test_local_strategy_never_reads_back(self, tasks, seeded):
        await tasks.get_many([Predicate.equals("owner", "u1")])
        seeded.calls.clear()
        edited = tasks.documents.get("t3").model_copy(update={"title": "Renamed"})

        stored = await tasks.update(edited)

        assert seeded.calls_of("get") == []
        assert seeded.calls_of("set") == [("set", "tasks/t3")]
        assert seeded.store["tasks/t3"]["title"] == "Renamed"
        assert tasks.documents.get("t3").title == "Renamed"
        assert stored.updated_at > BASE_TIME.replace(minute=3)

    @pytest.mark.asyncio
    async def test_server_confirmed_reads_back_once(self, tasks, seeded):
        await tasks.get_many()
        seeded.calls.clear()
        edited = tasks.documents.get("t1").model_copy(update={"priority": 9})

        stored = await tasks.update(edited, strategy=UpdateStrategy.SERVER_CONFIRMED)

        assert seeded.calls_of("get") == [("get", "tasks/t1")]
        assert stored.updated_at == seeded.store["tasks/t1"]["updatedAt"]
        assert tasks.documents.get("t1") == stored

    @pytest.mark.asyncio
    async def test_update_keeps_created_at(self, tasks, seeded):
        await tasks.update(Task(id="t1", title="x", created_at=datetime(1999, 1, 1)))
        assert seeded.store["tasks/t1"]["createdAt"] == BASE_TIME.replace(minute=1)

    @pytest.mark.asyncio
    async def test_update_keeps_stored_owner(self, tasks, seeded):
        await tasks.get_many()
        stored = await tasks.update(Task(id="t1", title="x", owner="u1", priority=1))
        assert seeded.store["tasks/t1"]["userId"] == "u1"
        assert stored.user_id == "u1"
        assert tasks.documents.get("t1").user_id == "u1"

    @pytest.mark.asyncio
    async def test_update_never_nulls_stored_fields(self, tasks, seeded):
        due = datetime(2030, 1, 1, tzinfo=BASE_TIME.tzinfo)
        seeded.store["tasks/t1"]["due"] = due
        await tasks.update(Task(id="t1", title="b"))
        assert seeded.store["tasks/t1"]["due"] == due
        assert seeded.store["tasks/t1"]["title"] == "b"

    @pytest.mark.asyncio
    async def test_update_requires_id(self, tasks, fake_client):
        with pytest.raises(MissingDocumentIdError, match="update Task"):
            await tasks.update(Task(title="no id"))
        assert fake_client.calls == []


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_removes_from_store_and_list(self, tasks, seeded, changes):
        await tasks.get_many()
        await tasks.delete(tasks.documents.get("t4"), hint="swipe")
        assert "tasks/t4" not in seeded.store
        assert tasks.documents.get("t4") is None
        assert changes[-1].kind is ChangeKind.REMOVED
        assert changes[-1].hint == "swipe"

    @pytest.mark.asyncio
    async def test_delete_requires_id(self, tasks):
        with pytest.raises(MissingDocumentIdError):
            await tasks.delete(Task())


class TestFieldIncrements:
    @pytest.mark.asyncio
    async def test_increment_updates_store_and_list(self, tasks, seeded):
        await tasks.get_many()
        assert await tasks.increment_field("priority", 3, tasks.documents.get("t2"))
        assert seeded.store["tasks/t2"]["priority"] == 5
        assert tasks.documents.get("t2").priority == 5

    @pytest.mark.asyncio
    async def test_decrement(self, tasks, seeded):
        await tasks.get_many()
        assert await tasks.decrement_field("priority", 1, tasks.documents.get("t4"))
        assert seeded.store["tasks/t4"]["priority"] == 3
        assert tasks.documents.get("t4").priority == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1, -0.5])
    async def test_non_positive_amount_is_a_no_op(self, tasks, seeded, amount):
        await tasks.get_many()
        seeded.calls.clear()
        before = dict(seeded.store["tasks/t2"])
        document = tasks.documents.get("t2")

        assert await tasks.increment_field("priority", amount, document) is False
        assert await tasks.decrement_field("priority", amount, document) is False

        assert seeded.calls == []
        assert seeded.store["tasks/t2"] == before
        assert tasks.documents.get("t2").priority == 2

    @pytest.mark.asyncio
    async def test_unmapped_field_only_changes_store(self, tasks, seeded):
        await tasks.get_many()
        assert await tasks.increment_field("views", 1, tasks.documents.get("t1"))
        assert seeded.store["tasks/t1"]["views"] == 1


class TestBatch:
    @pytest.mark.asyncio
    async def test_batch_applies_every_write(self, tasks, seeded):
        await tasks.get_many()
        updated = tasks.documents.get("t2").model_copy(update={"title": "Merged"})
        removed = tasks.documents.get("t3")

        ids = await tasks.apply_batch(
            [
                BatchedWrite.create(Task(title="Fresh", user_id="spoofed")),
                BatchedWrite.update(updated),
                BatchedWrite.delete(removed),
            ]
        )

        new_id = ids[0]
        assert ids[1:] == ["t2", "t3"]
        assert seeded.store[f"tasks/{new_id}"]["userId"] == "u1"
        assert isinstance(seeded.store[f"tasks/{new_id}"]["createdAt"], datetime)
        assert seeded.store["tasks/t2"]["title"] == "Merged"
        assert seeded.store["tasks/t2"]["priority"] == 2
        assert "tasks/t3" not in seeded.store
        assert tasks.documents.get("t2").title == "Merged"
        assert tasks.documents.get("t3") is None
        assert len(seeded.calls_of("commit")) == 1

    @pytest.mark.asyncio
    async def test_failed_commit_changes_nothing(self, tasks, seeded):
        await tasks.get_many()
        store_before = {k: dict(v) for k, v in seeded.store.items()}
        list_before = tasks.documents.items
        seeded.fail_next_commit = RuntimeError("aborted")

        with pytest.raises(RuntimeError, match="aborted"):
            await tasks.apply_batch(
                [
                    BatchedWrite.create(Task(title="Fresh")),
                    BatchedWrite.update(Task(id="t2", title="Merged")),
                    BatchedWrite.delete(Task(id="t3")),
                ]
            )

        assert seeded.store == store_before
        assert tasks.documents.items == list_before

    @pytest.mark.asyncio
    async def test_create_in_batch_needs_a_user(self, connection, fake_client):
        anonymous = FirestoreCollection(
            connection, "tasks", Task, user_provider=StaticUserProvider(None)
        )
        with pytest.raises(UnauthenticatedError):
            await anonymous.apply_batch([BatchedWrite.create(Task(title="x"))])
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_empty_batch(self, tasks, fake_client):
        assert await tasks.apply_batch([]) == []
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_batch_update_merges_without_owner_or_nulls(self, tasks, seeded):
        due = datetime(2030, 1, 1, tzinfo=BASE_TIME.tzinfo)
        seeded.store["tasks/t2"]["due"] = due
        await tasks.get_many()

        await tasks.apply_batch([BatchedWrite.update(Task(id="t2", title="Merged"))])

        assert seeded.store["tasks/t2"]["userId"] == "u1"
        assert seeded.store["tasks/t2"]["due"] == due
        assert seeded.store["tasks/t2"]["title"] == "Merged"
        assert tasks.documents.get("t2").user_id == "u1"


class TestSubscriptions:
    def test_initial_snapshot_replaces_list(self, tasks, seeded):
        results = []
        subscription = tasks.subscribe([Predicate.equals("owner", "u1")], results.append)
        assert subscription.active
        assert results[0].ok
        assert sorted(t.id for t in results[0].documents) == ["t1", "t2", "t3", "t4", "t5"]
        assert len(tasks.documents) == 5

    @pytest.mark.asyncio
    async def test_writes_are_delivered_on_the_loop(self, tasks, seeded):
        results = []
        tasks.subscribe([Predicate.equals("owner", "u2")], results.append)
        await asyncio.sleep(0)
        assert [t.id for t in results[-1].documents] == ["x1"]

        await tasks.create(Task(title="New", owner="u2"))
        await asyncio.sleep(0)

        assert len(results[-1].documents) == 2
        assert len(tasks.documents) == 2

    def test_error_is_delivered_once_and_stops(self, tasks, seeded):
        seeded.poison("tasks", "t1", RuntimeError("permission denied"))
        results = []
        subscription = tasks.subscribe([], results.append)

        seeded.seed("tasks", "t9", {"title": "later"})
        seeded._notify()

        assert len(results) == 1
        assert not results[0].ok
        assert str(results[0].error) == "permission denied"
        assert not subscription.active
        assert all(not w.is_active for w in seeded.watches)
        assert subscription not in tasks._subscriptions

    def test_unsubscribe_twice_is_harmless(self, tasks, seeded):
        results = []
        subscription = tasks.subscribe([], results.append)
        tasks.unsubscribe(subscription)
        tasks.unsubscribe(subscription)

        seeded.seed("tasks", "t9", {"title": "later"})
        seeded._notify()

        assert len(results) == 1
        assert seeded.watches[0].unsubscribe_calls == 1

    def test_unsubscribe_all(self, tasks, seeded):
        first = tasks.subscribe([], lambda result: None)
        second = tasks.subscribe([Predicate.limit(1)], lambda result: None)
        tasks.unsubscribe_all()
        assert not first.active
        assert not second.active
        assert tasks._subscriptions == set()

    def test_closed_stream_is_not_active(self, tasks, seeded):
        results = []
        subscription = tasks.subscribe([], results.append)
        assert subscription.active

        seeded.watches[0].close(reason="stream reset")

        assert not subscription.active
        assert len(results) == 1
