"""Per-owner budget gating and accounting."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping

from core.errors import InsufficientResourceError


class BudgetLedger(ABC):
    """Tracks each owner's spendable resource units."""

    @abstractmethod
    def has_budget(self, owner_id: str, amount: float) -> bool:
        """Return whether ``amount`` still fits in the owner's budget."""

    @abstractmethod
    def consume(self, owner_id: str, amount: float) -> None:
        """Atomically charge ``amount`` or raise ``InsufficientResourceError``."""


class InMemoryBudgetLedger(BudgetLedger):
    """Thread-safe ledger with fixed grants per owner."""

    def __init__(
        self,
        grants: Mapping[str, float] | None = None,
        default_grant: float = 0.0,
    ) -> None:
        self._grants = {owner: float(amount) for owner, amount in (grants or {}).items()}
        self._spent: dict[str, float] = {}
        self.default_grant = float(default_grant)
        self._lock = threading.Lock()

    def grant(self, owner_id: str, amount: float) -> None:
        """Add ``amount`` to the owner's granted budget."""
        if amount < 0:
            raise ValueError("Grant amount must be non-negative.")
        with self._lock:
            self._grants[owner_id] = self._granted(owner_id) + float(amount)

    def granted(self, owner_id: str) -> float:
        with self._lock:
            return self._granted(owner_id)

    def spent(self, owner_id: str) -> float:
        with self._lock:
            return self._spent.get(owner_id, 0.0)

    def remaining(self, owner_id: str) -> float:
        with self._lock:
            return self._remaining(owner_id)

    def has_budget(self, owner_id: str, amount: float) -> bool:
        with self._lock:
            return amount <= self._remaining(owner_id)

    def consume(self, owner_id: str, amount: float) -> None:
        if amount < 0:
            raise ValueError("Consumed amount must be non-negative.")
        with self._lock:
            available = self._remaining(owner_id)
            if amount > available:
                raise InsufficientResourceError(owner_id, amount, available)
            self._spent[owner_id] = self._spent.get(owner_id, 0.0) + amount

    def _granted(self, owner_id: str) -> float:
        return self._grants.get(owner_id, self.default_grant)

    def _remaining(self, owner_id: str) -> float:
        return self._granted(owner_id) - self._spent.get(owner_id, 0.0)
