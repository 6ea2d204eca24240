"""Simple in-process event bus for plan lifecycle events."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any

EventHandler = Callable[[dict[str, Any]], None]

PLAN_CREATED = "plan_created"
TASK_STARTED = "task_started"
TASK_COMPLETED = "task_completed"
PLAN_COMPLETED = "plan_completed"

logger = logging.getLogger("conductor.event_bus")


class EventBus:
    """Dispatches events to subscribers by event name.

    A subscription may be scoped to a single plan; it then only sees events
    whose payload carries that ``plan_id``. A handler that raises is logged
    and skipped so one bad subscriber cannot stop a running plan.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[tuple[str | None, EventHandler]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(
        self, event_name: str, handler: EventHandler, plan_id: str | None = None
    ) -> None:
        """Register a callback for an event."""
        with self._lock:
            self._handlers[event_name].append((plan_id, handler))

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        with self._lock:
            self._handlers[event_name] = [
                (scope, h) for scope, h in self._handlers.get(event_name, []) if h is not handler
            ]

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Emit an event to all matching subscribers."""
        with self._lock:
            handlers = list(self._handlers.get(event_name, []))
        for scope, handler in handlers:
            if scope is not None and scope != payload.get("plan_id"):
                continue
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler for %s event failed", event_name)
