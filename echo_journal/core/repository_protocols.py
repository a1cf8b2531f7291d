"""Boundary Protocols - contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - Every live callback registration returns a Subscription handle
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Callbacks are plain sync callables invoked on the event loop thread;
      any IO they trigger is scheduled as a task by the receiver
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, Sequence

from echo_journal.core.domain_types import EntryId, ProviderKind, SortDirection, UserId
from echo_journal.core.entries import JournalEntry, NewEntryRecord
from echo_journal.core.subscriptions import Subscription


IdentityListener = Callable[[UserId | None], None]
EntriesListener = Callable[[Sequence[JournalEntry]], None]
ErrorListener = Callable[[Exception], None]
Sleeper = Callable[[float], Awaitable[None]]


class IdentityProvider(Protocol):
    """Contract for identity acquisition - implemented by shell."""
    def subscribe(self, on_change: IdentityListener) -> Subscription: ...
    async def sign_in_anonymous(self) -> UserId: ...
    async def sign_in_with_credential(self, token: str) -> UserId: ...
    async def sign_in_interactive(self, provider_kind: ProviderKind) -> UserId: ...
    async def sign_out(self) -> None: ...


class EntryStore(Protocol):
    """Contract for entry persistence and live queries - implemented by shell."""
    async def append(self, record: NewEntryRecord) -> EntryId: ...
    def subscribe_ordered(
        self,
        scope_key: UserId,
        order_field: str,
        direction: SortDirection,
        on_next: EntriesListener,
        on_error: ErrorListener,
    ) -> Subscription: ...


@dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP outcome of one generative request."""
    status_code: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class GenerativeTransport(Protocol):
    """Contract for one POST to the generative endpoint - implemented by shell."""
    async def post(self, payload: dict) -> TransportResponse: ...
