"""Collection Synchronizer - live local mirror of the current identity's entries.

Invariants:
    - At most one live subscription, scoped to exactly one identity
    - open() for the active identity is a no-op; open() for another identity closes
      the previous subscription and empties the mirror first
    - Every store notification replaces the whole mirror, re-sorted by created_at desc
    - A notification failure keeps the last mirror and publishes a SubscriptionError;
      reopening is left to the caller
    - close() is idempotent
"""

import logging
from typing import Callable, Sequence

from echo_journal.core.domain_types import CREATED_AT_FIELD, SortDirection, UserId
from echo_journal.core.entries import JournalEntry, order_mirror
from echo_journal.core.errors import ErrorContext, SubscriptionError
from echo_journal.core.repository_protocols import EntryStore
from echo_journal.core.subscriptions import Observable, Subscription

logger = logging.getLogger(__name__)

Mirror = tuple[JournalEntry, ...]


class CollectionSynchronizer:
    """Single owner of the Mirror."""

    def __init__(self, store: EntryStore):
        self._store = store
        self._mirror: Observable[Mirror] = Observable(())
        self._error: Observable[SubscriptionError | None] = Observable(None)
        self._subscription: Subscription | None = None
        self._identity: UserId | None = None

    @property
    def mirror(self) -> Mirror:
        return self._mirror.value

    @property
    def error(self) -> SubscriptionError | None:
        return self._error.value

    @property
    def identity(self) -> UserId | None:
        return self._identity

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def subscribe(self, listener: Callable[[Mirror], None]) -> Subscription:
        return self._mirror.subscribe(listener)

    def subscribe_errors(
        self, listener: Callable[[SubscriptionError | None], None],
    ) -> Subscription:
        return self._error.subscribe(listener)

    def open(self, identity: UserId) -> None:
        if self.is_open and identity == self._identity:
            return
        self.close()
        self._identity = identity
        self._subscription = self._store.subscribe_ordered(
            identity,
            CREATED_AT_FIELD,
            SortDirection.DESCENDING,
            self._make_on_next(identity),
            self._make_on_error(identity),
        )
        logger.info("Mirror subscription opened", extra={"user_id": identity})

    def close(self) -> None:
        if self._subscription is None:
            return
        self._subscription.cancel()
        self._subscription = None
        logger.info("Mirror subscription closed", extra={"user_id": self._identity})
        self._identity = None
        if self._error.value is not None:
            self._error.set(None)
        if self._mirror.value:
            self._mirror.set(())

    def _make_on_next(self, identity: UserId) -> Callable[[Sequence[JournalEntry]], None]:
        def _on_next(entries: Sequence[JournalEntry]) -> None:
            if identity != self._identity:
                return
            self._mirror.set(order_mirror(entries))
            if self._error.value is not None:
                self._error.set(None)
        return _on_next

    def _make_on_error(self, identity: UserId) -> Callable[[Exception], None]:
        def _on_error(exc: Exception) -> None:
            if identity != self._identity:
                return
            error = exc if isinstance(exc, SubscriptionError) else SubscriptionError(
                f"Failed to fetch entries: {exc}", ErrorContext(user_id=identity),
            )
            logger.warning(
                f"Failed to fetch entries: {error.message}",
                extra={"user_id": identity, "error_code": error.code},
            )
            self._error.set(error)
        return _on_error
