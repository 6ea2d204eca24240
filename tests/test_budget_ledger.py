"""Budget ledger accounting tests."""

from __future__ import annotations

import threading

import pytest

from core.errors import InsufficientResourceError
from governance.budget_ledger import InMemoryBudgetLedger


def test_consume_tracks_spent_and_remaining() -> None:
    ledger = InMemoryBudgetLedger({"alice": 50})

    ledger.consume("alice", 20)

    assert ledger.spent("alice") == 20
    assert ledger.remaining("alice") == 30
    assert ledger.has_budget("alice", 30)
    assert not ledger.has_budget("alice", 30.01)


def test_consume_refuses_overdraft_without_charging() -> None:
    ledger = InMemoryBudgetLedger({"alice": 10})

    with pytest.raises(InsufficientResourceError) as excinfo:
        ledger.consume("alice", 11)

    assert excinfo.value.available == 10
    assert ledger.spent("alice") == 0


def test_unknown_owner_gets_default_grant() -> None:
    ledger = InMemoryBudgetLedger(default_grant=5)

    assert ledger.remaining("bob") == 5
    ledger.grant("bob", 10)
    assert ledger.granted("bob") == 15


def test_negative_amounts_are_rejected() -> None:
    ledger = InMemoryBudgetLedger({"alice": 10})

    with pytest.raises(ValueError):
        ledger.consume("alice", -1)
    with pytest.raises(ValueError):
        ledger.grant("alice", -1)


def test_concurrent_consumers_never_overspend() -> None:
    ledger = InMemoryBudgetLedger({"alice": 100})
    accepted: list[int] = []
    refused: list[int] = []
    start = threading.Barrier(50)

    def worker(index: int) -> None:
        start.wait(timeout=5)
        try:
            ledger.consume("alice", 5)
        except InsufficientResourceError:
            refused.append(index)
        else:
            accepted.append(index)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(accepted) == 20
    assert len(refused) == 30
    assert ledger.spent("alice") == 100
    assert ledger.remaining("alice") == 0
