"""Retry State - pure tests for backoff transitions.

Tests cover:
    - Initial delay and strict doubling
    - Retry budget (max_retries retries, max_retries + 1 attempts)
    - Policy validation
"""

import pytest

from echo_journal.core.retry_state import (
    RetryPolicy,
    RetryState,
    advance,
    can_retry,
    delay_schedule,
)


def test_initial_state_uses_policy_delay():
    state = RetryState.initial(RetryPolicy(initial_delay_ms=250))
    assert state.attempt == 0
    assert state.delay_ms == 250


def test_default_policy_matches_documented_defaults():
    policy = RetryPolicy()
    assert policy.max_retries == 5
    assert policy.initial_delay_ms == 1000
    assert policy.backoff_multiplier == 2


def test_advance_doubles_delay_and_counts_attempt():
    policy = RetryPolicy()
    state = advance(RetryState.initial(policy), policy)
    assert state == RetryState(attempt=1, delay_ms=2000)
    state = advance(state, policy)
    assert state == RetryState(attempt=2, delay_ms=4000)


def test_advance_is_pure():
    policy = RetryPolicy()
    state = RetryState.initial(policy)
    advance(state, policy)
    assert state == RetryState(attempt=0, delay_ms=1000)


def test_default_schedule_strictly_doubles():
    assert delay_schedule(RetryPolicy()) == [1000, 2000, 4000, 8000, 16000]


def test_schedule_length_equals_max_retries():
    assert len(delay_schedule(RetryPolicy(max_retries=3))) == 3
    assert delay_schedule(RetryPolicy(max_retries=0)) == []


def test_custom_multiplier():
    policy = RetryPolicy(max_retries=3, initial_delay_ms=100, backoff_multiplier=3)
    assert delay_schedule(policy) == [100, 300, 900]


def test_can_retry_stops_at_budget():
    policy = RetryPolicy(max_retries=2)
    state = RetryState.initial(policy)
    assert can_retry(state, policy)
    state = advance(state, policy)
    assert can_retry(state, policy)
    state = advance(state, policy)
    assert not can_retry(state, policy)


@pytest.mark.parametrize("kwargs", [
    {"max_retries": -1},
    {"initial_delay_ms": -5},
    {"backoff_multiplier": 0.5},
])
def test_invalid_policy_rejected(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
