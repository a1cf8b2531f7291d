"""SQL Entry Store - append-only entry persistence with live ordered queries.

Invariants:
    - Entries are scoped by (app_id, author_id); one store instance serves one app_id
    - created_at is assigned here at insert time (the client only sends SERVER_TIMESTAMP)
    - Every live query delivers an initial snapshot, then a fresh full snapshot
      after each append to its scope
    - Snapshots for one live query are delivered in order by a single worker task
    - Query failures reach on_error as SubscriptionError; the live query stays open

Design Decisions:
    - Change fan-out is in-process: appends made through this store wake the
      matching live queries. Writes from other processes are not observed
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import select

from echo_journal.core.domain_types import (
    CREATED_AT_FIELD, EntryId, SortDirection, UserId,
)
from echo_journal.core.entries import JournalEntry, NewEntryRecord, normalize_entry_text
from echo_journal.core.errors import ErrorContext, PersistenceError, SubscriptionError
from echo_journal.core.repository_protocols import EntriesListener, ErrorListener
from echo_journal.core.subscriptions import Subscription
from echo_journal.infrastructure.database import DatabaseSessionManager
from echo_journal.models.entry import JournalEntryRow

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _LiveQuery:
    """One subscriber's ordered view of a scope."""

    def __init__(
        self,
        store: "SqlEntryStore",
        scope_key: UserId,
        direction: SortDirection,
        on_next: EntriesListener,
        on_error: ErrorListener,
    ):
        self.scope_key = scope_key
        self._store = store
        self._direction = direction
        self._on_next = on_next
        self._on_error = on_error
        self._dirty = asyncio.Event()
        self._dirty.set()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def mark_dirty(self) -> None:
        self._dirty.set()

    def cancel(self) -> None:
        self._task.cancel()

    async def _run(self) -> None:
        while True:
            await self._dirty.wait()
            self._dirty.clear()
            try:
                entries = await self._store.query_scope(self.scope_key, self._direction)
            except Exception as e:
                logger.error(
                    f"Live query failed: {e}", extra={"user_id": self.scope_key},
                )
                self._on_error(SubscriptionError(
                    f"Live query failed: {e}", ErrorContext(user_id=self.scope_key),
                ))
                continue
            self._on_next(entries)


class SqlEntryStore:
    """EntryStore backed by SQLAlchemy."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        app_id: str,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._db = db
        self.app_id = app_id
        self._clock = clock
        self._live: dict[UserId, list[_LiveQuery]] = {}

    async def append(self, record: NewEntryRecord) -> EntryId:
        text = normalize_entry_text(record.text)
        if text is None:
            raise PersistenceError(
                "Entry text is empty", "append",
                ErrorContext(user_id=record.author_id),
            )
        row = JournalEntryRow(
            id=str(uuid.uuid4()),
            app_id=self.app_id,
            author_id=record.author_id,
            text=text,
            created_at=self._clock(),
        )
        async with self._db.session() as db:
            db.add(row)
            await db.commit()
        logger.info(
            "Entry appended", extra={"entry_id": row.id, "user_id": record.author_id},
        )
        for live in self._live.get(record.author_id, []):
            live.mark_dirty()
        return EntryId(row.id)

    async def query_scope(
        self, scope_key: UserId, direction: SortDirection = SortDirection.DESCENDING,
    ) -> list[JournalEntry]:
        if direction == SortDirection.DESCENDING:
            order = (JournalEntryRow.created_at.desc(), JournalEntryRow.sequence.desc())
        else:
            order = (JournalEntryRow.created_at.asc(), JournalEntryRow.sequence.asc())
        query = (
            select(JournalEntryRow)
            .where(
                JournalEntryRow.app_id == self.app_id,
                JournalEntryRow.author_id == scope_key,
            )
            .order_by(*order)
        )
        async with self._db.session() as db:
            result = await db.execute(query)
            rows = result.scalars().all()
        return [row.to_entry() for row in rows]

    def subscribe_ordered(
        self,
        scope_key: UserId,
        order_field: str,
        direction: SortDirection,
        on_next: EntriesListener,
        on_error: ErrorListener,
    ) -> Subscription:
        if order_field != CREATED_AT_FIELD:
            raise ValueError(f"Unsupported order field: {order_field}")
        live = _LiveQuery(self, scope_key, direction, on_next, on_error)
        self._live.setdefault(scope_key, []).append(live)

        def _release():
            live.cancel()
            queries = self._live.get(scope_key, [])
            if live in queries:
                queries.remove(live)
            if not queries:
                self._live.pop(scope_key, None)

        return Subscription(_release)

    @property
    def live_query_count(self) -> int:
        return sum(len(q) for q in self._live.values())
