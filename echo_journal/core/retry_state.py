"""Retry State - pure backoff transitions for the generative client.

Invariants:
    - First wait equals policy.initial_delay_ms; each later wait is multiplied by
      policy.backoff_multiplier (strict doubling with the default multiplier)
    - attempt counts retries already scheduled; a call makes at most
      max_retries + 1 requests
    - No clock, no sleep: the caller decides how to wait for `delay_ms`
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff configuration for one client."""
    max_retries: int = 5
    initial_delay_ms: int = 1000
    backoff_multiplier: float = 2

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")


@dataclass(frozen=True)
class RetryState:
    """Per-call retry bookkeeping. Never shared between calls."""
    attempt: int
    delay_ms: int

    @classmethod
    def initial(cls, policy: RetryPolicy) -> "RetryState":
        return cls(attempt=0, delay_ms=policy.initial_delay_ms)


def can_retry(state: RetryState, policy: RetryPolicy) -> bool:
    return state.attempt < policy.max_retries


def advance(state: RetryState, policy: RetryPolicy) -> RetryState:
    """State after waiting `state.delay_ms` for one rate-limited attempt."""
    return RetryState(
        attempt=state.attempt + 1,
        delay_ms=int(state.delay_ms * policy.backoff_multiplier),
    )


def delay_schedule(policy: RetryPolicy) -> list[int]:
    """Every wait a fully rate-limited call would perform, in order."""
    delays = []
    state = RetryState.initial(policy)
    while can_retry(state, policy):
        delays.append(state.delay_ms)
        state = advance(state, policy)
    return delays
