"""Collaborator Fakes - scripted identity provider, entry store, and generative transport.

Invariants:
    - FakeIdentityProvider delivers the current identity synchronously on subscribe
    - Scripted results are UserId / TransportResponse values or Exceptions to raise
    - FakeEntryStore only notifies live queries on push() (or on append when auto_push)
    - RecordingSleep never waits; it records the requested delays in seconds

Design Decisions:
    - Flat fake classes (no inheritance): simple, explicit, easy to debug
    - Optional asyncio.Event gates let tests hold a call "in flight"
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from echo_journal.core.domain_types import EntryId, ProviderKind, SortDirection, UserId
from echo_journal.core.entries import JournalEntry, NewEntryRecord
from echo_journal.core.repository_protocols import TransportResponse
from echo_journal.core.subscriptions import Subscription
from echo_journal.infrastructure.generative_client import ResilientGenerativeClient
from echo_journal.services.auth_session import AuthSessionManager
from echo_journal.services.collection_sync import CollectionSynchronizer
from echo_journal.services.entry_save_workflow import EntrySaveWorkflow
from echo_journal.services.journal_client import JournalClient


# -- Identity provider ---------------------------------------------------------


class FakeIdentityProvider:
    """Scripted IdentityProvider. calls records every sign-in method used."""

    def __init__(
        self,
        anonymous=UserId("anon-user"),
        credential=UserId("token-user"),
        interactive=UserId("google-user"),
        initial: UserId | None = None,
        gate: asyncio.Event | None = None,
    ):
        self.anonymous = anonymous
        self.credential = credential
        self.interactive = interactive
        self.current = initial
        self.gate = gate
        self.calls: list[tuple] = []
        self._listeners = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, on_change):
        self._listeners.append(on_change)
        on_change(self.current)

        def _release():
            if on_change in self._listeners:
                self._listeners.remove(on_change)

        return Subscription(_release)

    def emit(self, identity: UserId | None) -> None:
        self.current = identity
        for listener in list(self._listeners):
            listener(identity)

    async def sign_in_anonymous(self) -> UserId:
        self.calls.append(("anonymous",))
        return await self._respond(self.anonymous)

    async def sign_in_with_credential(self, token: str) -> UserId:
        self.calls.append(("credential", token))
        return await self._respond(self.credential)

    async def sign_in_interactive(self, provider_kind: ProviderKind) -> UserId:
        self.calls.append(("interactive", provider_kind))
        return await self._respond(self.interactive)

    async def sign_out(self) -> None:
        self.emit(None)

    async def _respond(self, result):
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(result, Exception):
            raise result
        self.emit(result)
        return result


# -- Entry store ---------------------------------------------------------------


_EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


class _FakeLiveQuery:
    def __init__(self, scope_key, on_next, on_error):
        self.scope_key = scope_key
        self.on_next = on_next
        self.on_error = on_error
        self.active = True

    def cancel(self):
        self.active = False


class FakeEntryStore:
    """In-memory EntryStore with explicit notification control."""

    def __init__(self, fail_append: Exception | None = None, auto_push: bool = False):
        self.fail_append = fail_append
        self.auto_push = auto_push
        self.append_calls: list[NewEntryRecord] = []
        self.entries: dict[UserId, list[JournalEntry]] = {}
        self.live: list[_FakeLiveQuery] = []
        self._sequence = 0

    @property
    def active_queries(self) -> list[_FakeLiveQuery]:
        return [q for q in self.live if q.active]

    async def append(self, record: NewEntryRecord) -> EntryId:
        self.append_calls.append(record)
        if self.fail_append is not None:
            raise self.fail_append
        self._sequence += 1
        entry = JournalEntry(
            id=EntryId(f"entry-{self._sequence}"),
            author_id=record.author_id,
            text=record.text,
            created_at=_EPOCH + timedelta(minutes=self._sequence),
            sequence=self._sequence,
        )
        self.entries.setdefault(record.author_id, []).append(entry)
        if self.auto_push:
            self.push(record.author_id)
        return entry.id

    def subscribe_ordered(self, scope_key, order_field, direction, on_next, on_error):
        assert direction == SortDirection.DESCENDING
        query = _FakeLiveQuery(scope_key, on_next, on_error)
        self.live.append(query)
        return Subscription(query.cancel)

    def push(self, scope_key: UserId, entries: list[JournalEntry] | None = None) -> None:
        """Deliver a snapshot (default: stored entries, newest first) to live queries."""
        if entries is None:
            entries = sorted(
                self.entries.get(scope_key, []), key=lambda e: e.sequence, reverse=True,
            )
        for query in self.active_queries:
            if query.scope_key == scope_key:
                query.on_next(list(entries))

    def fail(self, scope_key: UserId, error: Exception) -> None:
        for query in self.active_queries:
            if query.scope_key == scope_key:
                query.on_error(error)


# -- Generative transport ------------------------------------------------------


def envelope_response(prompts, status_code: int = 200) -> TransportResponse:
    body = {"candidates": [{"content": {"parts": [{"text": json.dumps(prompts)}]}}]}
    return TransportResponse(status_code, json.dumps(body).encode())


def status_response(status_code: int, body: bytes = b"{}") -> TransportResponse:
    return TransportResponse(status_code, body)


class ScriptedTransport:
    """GenerativeTransport that replays responses in order."""

    def __init__(self, responses, gate: asyncio.Event | None = None):
        self._responses = list(responses)
        self._idx = 0
        self.gate = gate
        self.payloads: list[dict] = []

    async def post(self, payload: dict) -> TransportResponse:
        self.payloads.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self._idx >= len(self._responses):
            raise RuntimeError(
                f"ScriptedTransport: no response at index {self._idx} "
                f"(configured {len(self._responses)})",
            )
        result = self._responses[self._idx]
        self._idx += 1
        if isinstance(result, Exception):
            raise result
        return result


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# -- Assembled client ----------------------------------------------------------


@dataclass
class JournalHarness:
    client: JournalClient
    provider: FakeIdentityProvider
    store: FakeEntryStore
    transport: ScriptedTransport
    sleep: RecordingSleep


def build_harness(
    provider: FakeIdentityProvider | None = None,
    store: FakeEntryStore | None = None,
    transport: ScriptedTransport | None = None,
    bootstrap_credential: str | None = None,
) -> JournalHarness:
    provider = provider or FakeIdentityProvider()
    store = store or FakeEntryStore(auto_push=True)
    transport = transport or ScriptedTransport([])
    sleep = RecordingSleep()
    client = JournalClient(
        auth=AuthSessionManager(provider, bootstrap_credential),
        sync=CollectionSynchronizer(store),
        workflow=EntrySaveWorkflow(store, ResilientGenerativeClient(transport, sleep=sleep)),
    )
    return JournalHarness(client, provider, store, transport, sleep)
