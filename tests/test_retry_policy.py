"""Retry policy tests."""

from __future__ import annotations

import pytest

from executor.retry import RetryPolicy


def test_delays_double_per_attempt_up_to_cap() -> None:
    policy = RetryPolicy(max_attempts=5, backoff_base=0.5, backoff_max=3.0)

    assert [policy.delay_for(n) for n in range(1, 5)] == [1.0, 2.0, 3.0, 3.0]


def test_policy_reads_retry_section() -> None:
    policy = RetryPolicy.from_config(
        {"retry": {"max_attempts": 2, "backoff_base_seconds": 0.1, "backoff_max_seconds": 1}}
    )

    assert policy == RetryPolicy(max_attempts=2, backoff_base=0.1, backoff_max=1.0)
    assert RetryPolicy.from_config({}) == RetryPolicy()


def test_invalid_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(backoff_base=-1)
