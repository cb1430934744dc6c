# EventBus for monitoring events and control commands
"""
In-process pub/sub for monitoring.

- Subscribers receive MonitoringEvent objects (dashboard, JSONL logger).
- Command handlers receive ControlCommand objects (MacroController).

Publishing happens on the tick thread; the dashboard may read from
another thread, so the subscriber lists are guarded by a Lock.

While a macro runs, `correlation_id` holds its run id; log_event stamps
it on every event that does not carry its own, so one macro run (and the
features it drives) can be filtered out of a JSONL log.
"""

from __future__ import annotations

import logging
import uuid
from threading import Lock
from typing import Callable, List, Optional

from .events import ControlCommand, MonitoringEvent

log = logging.getLogger(__name__)


SubscriberFn = Callable[[MonitoringEvent], None]
CommandHandlerFn = Callable[[ControlCommand], None]


class EventBus:
    """Simple in-process event bus for monitoring events and control commands."""

    def __init__(self) -> None:
        self._subscribers: List[SubscriberFn] = []
        self._cmd_handlers: List[CommandHandlerFn] = []
        self._lock = Lock()
        self.correlation_id: Optional[str] = None

    # --------------------------------------------------------
    # Macro runs
    # --------------------------------------------------------

    def begin_run(self, name: str) -> str:
        """Start a new run id for `name`; replaces any previous one."""
        self.correlation_id = f"{name}-{uuid.uuid4().hex[:8]}"
        return self.correlation_id

    def end_run(self) -> None:
        self.correlation_id = None

    # --------------------------------------------------------
    # Subscription API
    # --------------------------------------------------------

    def subscribe(self, fn: SubscriberFn) -> None:
        with self._lock:
            self._subscribers.append(fn)

    def unsubscribe(self, fn: SubscriberFn) -> None:
        """Safe to call even if `fn` is not present."""
        with self._lock:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

    def subscribe_commands(self, fn: CommandHandlerFn) -> None:
        with self._lock:
            self._cmd_handlers.append(fn)

    def unsubscribe_commands(self, fn: CommandHandlerFn) -> None:
        with self._lock:
            if fn in self._cmd_handlers:
                self._cmd_handlers.remove(fn)

    # --------------------------------------------------------
    # Publish API
    # --------------------------------------------------------

    def publish(self, event: MonitoringEvent) -> None:
        """
        Deliver `event` to every subscriber.

        Iterates over a snapshot so subscribers may call back into the bus.
        A failing subscriber is logged and skipped; it never reaches the
        feature or macro that published.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        for fn in subscribers:
            try:
                fn(event)
            except Exception:
                log.exception("Monitoring subscriber %r failed", fn)

    def publish_command(self, cmd: ControlCommand) -> None:
        with self._lock:
            handlers = list(self._cmd_handlers)

        for fn in handlers:
            try:
                fn(cmd)
            except Exception:
                log.exception("Command handler %r failed on %s", fn, cmd.cmd.name)

    def clear(self) -> None:
        """Drop all subscribers and handlers. Mostly useful for tests."""
        with self._lock:
            self._subscribers.clear()
            self._cmd_handlers.clear()


# Process-wide bus for code that does not receive one through BotContext.
default_bus = EventBus()
