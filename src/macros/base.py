# src/macros/base.py
"""
Shared pieces for macros.

A Macro holds a MacroCore (enabled/paused flags, the tick-gate clock, the
uptime stopwatch, last error) and implements the small Macro protocol that
MacroManager drives. Macros never raise across the tick: a fatal problem
is recorded with MacroCore.disable(reason) and the manager tears the macro
down afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from bot_core.clock import Clock, Stopwatch, TimeFn
from bot_core.snapshot import WorldSnapshot
from features.base import Feature, prefixed_logger
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event


@dataclass
class MacroStatus:
    """Snapshot of the macro layer for the control surface and dashboard."""

    running: bool = False
    paused: bool = False
    macro: Optional[str] = None
    state: Optional[str] = None
    uptime_ms: float = 0.0
    last_error: Optional[str] = None
    counters: Dict[str, int] = field(default_factory=dict)


class Macro(Protocol):
    """What MacroManager expects from a registered macro."""

    name: str
    core: "MacroCore"

    def on_enable(self) -> None:
        ...

    def on_disable(self) -> None:
        ...

    def on_tick(self, world: WorldSnapshot) -> None:
        ...

    def owned_features(self) -> List[Feature]:
        ...

    def counters(self) -> Dict[str, int]:
        ...

    def current_state(self) -> Optional[str]:
        ...


class MacroCore:
    def __init__(
        self,
        name: str,
        time_fn: TimeFn,
        bus: Optional[EventBus] = None,
        logger_name: Optional[str] = None,
    ) -> None:
        self.name = name
        self.bus = bus
        # Minimum delay between two macro ticks.
        self.timer = Clock(time_fn)
        self.uptime = Stopwatch(time_fn)
        self.enabled = False
        self.paused = False
        self.last_error: Optional[str] = None
        self.log = prefixed_logger(logger_name or __name__, name)

    def enable(self) -> None:
        self.enabled = True
        self.paused = False
        self.last_error = None
        self.timer.reset()
        self.uptime.start(reset=True)
        if self.bus is not None:
            self.bus.begin_run(self.name)
        self.log.info("Enabled")
        self.emit(EventType.MACRO_STARTED, "Macro enabled")

    def disable(self, reason: Optional[str] = None) -> None:
        """
        Turn the macro off. A reason marks a fatal stop and is kept as
        last_error for the front end.
        """
        if not self.enabled:
            return
        self.enabled = False
        self.paused = False
        self.timer.reset()
        self.uptime.stop()
        if reason:
            self.last_error = reason
            self.log.error("Disabled: %s", reason)
            self.emit(EventType.MACRO_DISABLED, reason, {"reason": reason})
        else:
            self.log.info("Disabled")
            self.emit(EventType.MACRO_STOPPED, "Macro stopped")
        if self.bus is not None:
            self.bus.end_run()

    def pause(self) -> None:
        if not self.enabled or self.paused:
            return
        self.paused = True
        self.timer.pause()
        self.uptime.stop()
        self.log.info("Paused")
        self.emit(EventType.MACRO_PAUSED, "Macro paused")

    def resume(self) -> None:
        if not self.paused:
            return
        self.paused = False
        self.timer.resume()
        self.uptime.start()
        self.log.info("Resumed")
        self.emit(EventType.MACRO_RESUMED, "Macro resumed")

    def is_running(self) -> bool:
        return self.enabled and not self.paused

    def delay(self, ms: float) -> None:
        """Skip macro ticks for the next `ms` milliseconds."""
        if ms > 0:
            self.timer.schedule(ms)

    def gate_open(self) -> bool:
        return not self.timer.is_scheduled() or self.timer.passed()

    def emit(self, event_type: EventType, message: str, payload: Optional[Dict[str, Any]] = None) -> None:
        log_event(self.bus, self.name, event_type, message, payload)


__all__ = ["Macro", "MacroCore", "MacroStatus"]
