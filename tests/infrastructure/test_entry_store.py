"""SQL Entry Store - append, scoped queries, and live ordered subscriptions.

Tests cover:
    - append assigns id and created_at, trims text, rejects blank text
    - Entries are scoped by (app_id, author_id)
    - Live queries: initial snapshot, snapshot after append, cancellation
    - Unsupported order fields and query failures
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from echo_journal.core.domain_types import SortDirection, UserId
from echo_journal.core.entries import NewEntryRecord
from echo_journal.core.errors import PersistenceError, SubscriptionError
from echo_journal.infrastructure.database import DatabaseSessionManager
from echo_journal.infrastructure.entry_store import SqlEntryStore

ALICE = UserId("alice")
BOB = UserId("bob")
T0 = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


class StepClock:
    def __init__(self, step=timedelta(minutes=1)):
        self.now = T0
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
async def db(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'journal.db'}")
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture
def store(db):
    return SqlEntryStore(db, "app-1", clock=StepClock())


async def _next(queue: asyncio.Queue, timeout: float = 2.0):
    return await asyncio.wait_for(queue.get(), timeout)


def _subscribe(store, scope, direction=SortDirection.DESCENDING):
    snapshots: asyncio.Queue = asyncio.Queue()
    errors: asyncio.Queue = asyncio.Queue()
    sub = store.subscribe_ordered(
        scope, "created_at", direction, snapshots.put_nowait, errors.put_nowait,
    )
    return sub, snapshots, errors


# --- append -------------------------------------------------------------------

async def test_append_assigns_id_and_server_timestamp(store):
    entry_id = await store.append(NewEntryRecord(author_id=ALICE, text="  first  "))
    entries = await store.query_scope(ALICE)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.id == entry_id
    assert entry.text == "first"
    assert entry.created_at == T0
    assert entry.author_id == ALICE


async def test_append_rejects_blank_text(store):
    with pytest.raises(PersistenceError):
        await store.append(NewEntryRecord(author_id=ALICE, text="   "))
    assert await store.query_scope(ALICE) == []


async def test_ids_are_unique(store):
    ids = {
        await store.append(NewEntryRecord(author_id=ALICE, text=f"entry {i}"))
        for i in range(5)
    }
    assert len(ids) == 5


# --- Scoping and ordering -----------------------------------------------------

async def test_query_is_scoped_by_author(store):
    await store.append(NewEntryRecord(author_id=ALICE, text="alice"))
    await store.append(NewEntryRecord(author_id=BOB, text="bob"))
    assert [e.text for e in await store.query_scope(ALICE)] == ["alice"]
    assert [e.text for e in await store.query_scope(BOB)] == ["bob"]


async def test_query_is_scoped_by_app(db):
    clock = StepClock()
    mine = SqlEntryStore(db, "app-1", clock=clock)
    other = SqlEntryStore(db, "app-2", clock=clock)
    await mine.append(NewEntryRecord(author_id=ALICE, text="mine"))
    await other.append(NewEntryRecord(author_id=ALICE, text="other"))
    assert [e.text for e in await mine.query_scope(ALICE)] == ["mine"]


async def test_query_orders_newest_first(store):
    for text in ("one", "two", "three"):
        await store.append(NewEntryRecord(author_id=ALICE, text=text))
    assert [e.text for e in await store.query_scope(ALICE)] == ["three", "two", "one"]
    ascending = await store.query_scope(ALICE, SortDirection.ASCENDING)
    assert [e.text for e in ascending] == ["one", "two", "three"]


async def test_equal_timestamps_break_ties_by_insertion(db):
    store = SqlEntryStore(db, "app-1", clock=lambda: T0)
    for text in ("one", "two", "three"):
        await store.append(NewEntryRecord(author_id=ALICE, text=text))
    assert [e.text for e in await store.query_scope(ALICE)] == ["three", "two", "one"]


# --- Live queries -------------------------------------------------------------

async def test_live_query_delivers_initial_snapshot(store):
    await store.append(NewEntryRecord(author_id=ALICE, text="existing"))
    sub, snapshots, _ = _subscribe(store, ALICE)
    try:
        first = await _next(snapshots)
        assert [e.text for e in first] == ["existing"]
    finally:
        sub.cancel()


async def test_live_query_delivers_snapshot_after_append(store):
    sub, snapshots, _ = _subscribe(store, ALICE)
    try:
        assert await _next(snapshots) == []
        await store.append(NewEntryRecord(author_id=ALICE, text="new"))
        second = await _next(snapshots)
        assert [e.text for e in second] == ["new"]
    finally:
        sub.cancel()


async def test_other_scope_append_does_not_wake_query(store):
    sub, snapshots, _ = _subscribe(store, ALICE)
    try:
        await _next(snapshots)
        await store.append(NewEntryRecord(author_id=BOB, text="bob"))
        await asyncio.sleep(0.05)
        assert snapshots.empty()
    finally:
        sub.cancel()


async def test_cancelled_query_receives_nothing(store):
    sub, snapshots, _ = _subscribe(store, ALICE)
    await _next(snapshots)
    sub.cancel()
    sub.cancel()
    assert store.live_query_count == 0
    await store.append(NewEntryRecord(author_id=ALICE, text="after"))
    await asyncio.sleep(0.05)
    assert snapshots.empty()


async def test_unsupported_order_field(store):
    with pytest.raises(ValueError):
        store.subscribe_ordered(
            ALICE, "text", SortDirection.DESCENDING, lambda e: None, lambda e: None,
        )
    assert store.live_query_count == 0


async def test_query_failure_reported_as_subscription_error(store, monkeypatch):
    async def _broken(scope_key, direction=SortDirection.DESCENDING):
        raise PersistenceError("connection lost", "query")

    monkeypatch.setattr(store, "query_scope", _broken)
    sub, snapshots, errors = _subscribe(store, ALICE)
    try:
        error = await _next(errors)
        assert isinstance(error, SubscriptionError)
        assert error.context.user_id == ALICE
        assert snapshots.empty()
    finally:
        sub.cancel()


async def test_health_check(db):
    assert await db.health_check() is True
