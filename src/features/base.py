# src/features/base.py
"""
Building blocks every Feature is composed from.

- Feature: the capability interface FeatureManager talks to.
- FeatureCore: enabled/paused flags, the feature timer, the failsafe
  ignore-set, prefixed logging and monitoring events. Each Feature owns one.
- StateMachine: one Enum state at a time, a handler per state that returns
  the next state, and an explicit transition step with enter/exit hooks.

Features do not inherit from a base class; they hold a FeatureCore and a
StateMachine and expose the small Feature protocol.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    Mapping,
    MutableMapping,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
)

from bot_core.clock import Clock, TimeFn
from bot_core.snapshot import WorldSnapshot
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event

log = logging.getLogger(__name__)

S = TypeVar("S", bound=Enum)


class Feature(Protocol):
    """
    What FeatureManager expects from a registered feature.

    Optional event hooks, looked up by name when present:
    on_chat(message), on_packet(event), on_block_change(event),
    on_window(event), on_entity(event), on_world_load(event),
    on_world_unload(event).
    """

    name: str
    core: "FeatureCore"

    def on_tick(self, world: WorldSnapshot) -> None:
        ...

    def stop(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def resume(self) -> None:
        ...


class PrefixAdapter(logging.LoggerAdapter):
    """Prefix every message with "[Owner] "."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['owner']}] {msg}", kwargs


def prefixed_logger(name: str, owner: str) -> PrefixAdapter:
    return PrefixAdapter(logging.getLogger(name), {"owner": owner})


class FeatureCore:
    """
    Lifecycle helper composed into each Feature.

    `enabled` is the start/stop flag; `paused` suspends ticking without
    losing progress. A feature is running when enabled and not paused.
    """

    def __init__(
        self,
        name: str,
        time_fn: TimeFn,
        bus: Optional[EventBus] = None,
        failsafes_to_ignore: Iterable[str] = (),
        logger_name: Optional[str] = None,
    ) -> None:
        self.name = name
        self.timer = Clock(time_fn)
        self.time_fn = time_fn
        self.bus = bus
        self.failsafes_to_ignore: FrozenSet[str] = frozenset(failsafes_to_ignore)
        self.enabled: bool = False
        self.paused: bool = False
        self.log = prefixed_logger(logger_name or __name__, name)
        # Clocks paused/resumed together with the feature.
        self._clocks: Dict[str, Clock] = {"timer": self.timer}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def clock(self, key: str) -> Clock:
        """Named clock that follows the feature's pause/resume."""
        clock = self._clocks.get(key)
        if clock is None:
            clock = Clock(self.time_fn)
            self._clocks[key] = clock
        return clock

    def is_running(self) -> bool:
        return self.enabled and not self.paused

    def enable(self, **payload: Any) -> None:
        self.enabled = True
        self.paused = False
        self.log.info("Enabled")
        self.emit(EventType.FEATURE_STARTED, "Feature enabled", payload)

    def disable(self, error: Optional[Enum] = None) -> None:
        """Stop and clear every clock so a later start begins clean."""
        was_enabled = self.enabled
        self.enabled = False
        self.paused = False
        for clock in self._clocks.values():
            clock.reset()
        if error is not None and error.name != "NONE":
            self.log.warning("Stopped with error %s", error.name)
            self.emit(EventType.FEATURE_ERROR, f"Error {error.name}", {"error": error.name})
        if was_enabled:
            self.log.info("Disabled")
            self.emit(EventType.FEATURE_STOPPED, "Feature disabled", {})

    def pause(self) -> None:
        if not self.enabled or self.paused:
            return
        self.paused = True
        for clock in self._clocks.values():
            clock.pause()
        self.log.info("Paused")

    def resume(self) -> None:
        if not self.paused:
            return
        self.paused = False
        for clock in self._clocks.values():
            clock.resume()
        self.log.info("Resumed")

    # ------------------------------------------------------------------
    # Timer helpers
    # ------------------------------------------------------------------

    def is_timer_running(self) -> bool:
        return self.timer.is_scheduled() and not self.timer.passed()

    def has_timer_ended(self) -> bool:
        return self.timer.is_scheduled() and self.timer.passed()

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def emit(self, event_type: EventType, message: str, payload: Optional[Dict[str, Any]] = None) -> None:
        log_event(self.bus, self.name, event_type, message, payload)


Handler = Callable[[WorldSnapshot], S]


class StateMachine(Generic[S]):
    """
    Closed Enum state machine.

    `handlers` must cover every member of the state Enum; a handler returns
    the state to be in after this tick (itself to stay). Transitions run the
    exit hook of the old state, then the enter hook of the new one, then the
    optional `on_transition(old, new)` observer.

    `core` is anything with `name`, `log` and `emit()`: a FeatureCore, or a
    MacroCore together with event_type=MACRO_STATE_CHANGE.
    """

    def __init__(
        self,
        core: Any,
        initial: S,
        handlers: Mapping[S, Handler],
        on_enter: Optional[Mapping[S, Callable[[], None]]] = None,
        on_exit: Optional[Mapping[S, Callable[[], None]]] = None,
        on_transition: Optional[Callable[[S, S], None]] = None,
        event_type: EventType = EventType.FEATURE_STATE_CHANGE,
    ) -> None:
        missing = [s for s in type(initial) if s not in handlers]
        if missing:
            raise ValueError(f"{core.name}: no handler for states {missing}")
        self._core = core
        self._initial = initial
        self._handlers = dict(handlers)
        self._on_enter = dict(on_enter or {})
        self._on_exit = dict(on_exit or {})
        self._on_transition = on_transition
        self._event_type = event_type
        self.state: S = initial

    def reset(self, state: Optional[S] = None) -> None:
        """Jump to `state` (default: the initial one) without running hooks."""
        self.state = state if state is not None else self._initial

    def step(self, world: WorldSnapshot) -> S:
        next_state = self._handlers[self.state](world)
        if next_state is not self.state:
            self.transition(next_state)
        return self.state

    def transition(self, new_state: S) -> None:
        old_state = self.state
        exit_hook = self._on_exit.get(old_state)
        if exit_hook is not None:
            exit_hook()
        self.state = new_state
        self._core.log.debug("%s -> %s", old_state.name, new_state.name)
        self._core.emit(
            self._event_type,
            f"{old_state.name} -> {new_state.name}",
            {"from": old_state.name, "to": new_state.name},
        )
        enter_hook = self._on_enter.get(new_state)
        if enter_hook is not None:
            enter_hook()
        if self._on_transition is not None:
            self._on_transition(old_state, new_state)


__all__ = ["Feature", "FeatureCore", "PrefixAdapter", "StateMachine", "prefixed_logger"]
