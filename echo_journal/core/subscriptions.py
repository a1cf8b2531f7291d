"""Subscriptions - cancellation handles and read-only observables.

Invariants:
    - Subscription.cancel() runs the release callback at most once
    - Observable listeners are called in registration order, on the caller's thread
    - A failing listener never prevents the value update or later listeners

Design Decisions:
    - One handle type for identity-provider, store and observable subscriptions,
      so every live resource is released the same way (cancel / context manager)
"""

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by every subscribe call."""

    def __init__(self, release: Callable[[], None] | None = None):
        self._release = release
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        release, self._release = self._release, None
        if release is not None:
            release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()


class Observable(Generic[T]):
    """Current value plus change notifications. Only the owner calls set()."""

    def __init__(self, initial: T):
        self._value = initial
        self._listeners: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.error("Observable listener failed", exc_info=True)

    def subscribe(self, listener: Callable[[T], None]) -> Subscription:
        self._listeners.append(listener)

        def _release():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(_release)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
