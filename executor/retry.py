"""Retry policy for transient executor failures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: the delay after failed attempt n is ``base * 2**n``."""

    max_attempts: int = 3
    backoff_base: float = 1.0
    backoff_max: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if self.backoff_base < 0 or self.backoff_max < 0:
            raise ValueError("Backoff values must be non-negative.")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after ``attempt`` (1-based) failed."""
        return min(self.backoff_base * (2**attempt), self.backoff_max)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> RetryPolicy:
        retry_cfg = config.get("retry", {})
        return cls(
            max_attempts=int(retry_cfg.get("max_attempts", 3)),
            backoff_base=float(retry_cfg.get("backoff_base_seconds", 1.0)),
            backoff_max=float(retry_cfg.get("backoff_max_seconds", 30.0)),
        )
