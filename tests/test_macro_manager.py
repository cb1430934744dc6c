# tests/test_macro_manager.py
"""
Unit tests for macros.manager.MacroManager and macros.base.MacroCore.

Covers:
- Single active macro, start replaces the previous one
- Tick gate (delay) and paused macros
- Pause and resume reach only the features the macro owns
- Crash isolation: a raising macro is stopped with a reason
- Teardown stops owned features
- status() after a fatal stop keeps last_error
- One correlation id per macro run
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from bot_core.snapshot import WorldSnapshot
from bot_core.testing import ManualTime
from features.base import FeatureCore
from features.manager import FeatureManager
from macros.base import MacroCore, MacroStatus
from macros.manager import MacroManager
from monitoring.bus import EventBus
from monitoring.events import EventType, MonitoringEvent


class _Owned:
    def __init__(self, name: str, now: ManualTime) -> None:
        self.name = name
        self.core = FeatureCore(name, now)

    def on_tick(self, world: WorldSnapshot) -> None:
        pass

    def stop(self) -> None:
        self.core.disable()

    def pause(self) -> None:
        self.core.pause()

    def resume(self) -> None:
        self.core.resume()


class _Macro:
    def __init__(self, name: str, now: ManualTime, bus: Optional[EventBus] = None,
                 owned: Optional[List[_Owned]] = None, crash: bool = False) -> None:
        self.name = name
        self.core = MacroCore(name, now, bus)
        self.owned = owned or []
        self.crash = crash
        self.ticks = 0
        self.disabled_calls = 0

    def on_enable(self) -> None:
        for feature in self.owned:
            feature.core.enable()

    def on_disable(self) -> None:
        self.disabled_calls += 1

    def on_tick(self, world: WorldSnapshot) -> None:
        self.ticks += 1
        if self.crash:
            raise RuntimeError("boom")

    def owned_features(self) -> List[_Owned]:
        return self.owned

    def counters(self) -> Dict[str, int]:
        return {"ticks": self.ticks}

    def current_state(self) -> Optional[str]:
        return "RUNNING"


def _setup():
    now = ManualTime()
    bus = EventBus()
    events: List[MonitoringEvent] = []
    bus.subscribe(events.append)
    features = FeatureManager(bus=bus)
    return MacroManager(), features, now, bus, events


def test_start_replaces_active_macro() -> None:
    manager, _, now, bus, _ = _setup()
    first = manager.register(_Macro("First", now, bus))
    second = manager.register(_Macro("Second", now, bus))

    manager.start("First")
    manager.start("Second")

    assert manager.active is second
    assert not first.core.enabled
    assert first.disabled_calls == 1
    with pytest.raises(KeyError):
        manager.start("Missing")


def test_tick_gate_delays_macro_ticks() -> None:
    manager, _, now, bus, _ = _setup()
    macro = manager.register(_Macro("Gate", now, bus))
    manager.start("Gate")

    manager.on_tick(WorldSnapshot())
    macro.core.delay(200)
    manager.on_tick(WorldSnapshot())
    now.advance(199)
    manager.on_tick(WorldSnapshot())
    assert macro.ticks == 1

    now.advance(1)
    manager.on_tick(WorldSnapshot())
    assert macro.ticks == 2


def test_crashing_macro_is_stopped_with_reason() -> None:
    manager, features, now, bus, events = _setup()
    owned = _Owned("Helper", now)
    features.register(owned)
    manager.register(_Macro("Crashy", now, bus, owned=[owned], crash=True))
    manager.start("Crashy")
    assert owned.core.enabled

    manager.on_tick(WorldSnapshot())

    assert not manager.is_running()
    assert manager.active is None
    assert not owned.core.enabled
    status = manager.status()
    assert status.macro == "Crashy"
    assert not status.running
    assert status.last_error == "Macro crashed: boom"
    assert any(e.event_type is EventType.MACRO_DISABLED for e in events)


def test_pause_and_resume_cover_features() -> None:
    manager, features, now, bus, events = _setup()
    owned = _Owned("Helper", now)
    features.register(owned)
    macro = manager.register(_Macro("Pausable", now, bus, owned=[owned]))
    manager.start("Pausable")

    manager.pause()
    manager.on_tick(WorldSnapshot())
    assert macro.ticks == 0
    assert owned.core.paused

    manager.resume()
    manager.on_tick(WorldSnapshot())
    assert macro.ticks == 1
    assert not owned.core.paused
    types = [e.event_type for e in events]
    assert EventType.MACRO_PAUSED in types and EventType.MACRO_RESUMED in types


def test_pause_leaves_features_the_macro_does_not_own() -> None:
    manager, features, now, bus, _ = _setup()
    owned = features.register(_Owned("Owned", now))
    ad_hoc = features.register(_Owned("AdHoc", now))
    manager.register(_Macro("Owner", now, bus, owned=[owned]))
    ad_hoc.core.enable()
    manager.start("Owner")

    manager.pause()
    assert owned.core.paused
    assert not ad_hoc.core.paused

    ad_hoc.core.pause()
    manager.resume()
    assert not owned.core.paused
    assert ad_hoc.core.paused


def test_plain_stop_has_no_error() -> None:
    manager, _, now, bus, _ = _setup()
    manager.register(_Macro("Quiet", now, bus))
    manager.start("Quiet")
    now.advance(1500)

    manager.stop()

    status = manager.status()
    assert status.last_error is None
    assert status.uptime_ms == 1500
    assert status.counters == {"ticks": 0}


def test_status_without_macros() -> None:
    manager, _, _, _, _ = _setup()
    assert manager.status() == MacroStatus()


def test_each_run_gets_its_own_correlation_id() -> None:
    manager, _, now, bus, events = _setup()
    manager.register(_Macro("Runner", now, bus))

    manager.start("Runner")
    first_run = bus.correlation_id
    manager.stop()
    assert bus.correlation_id is None
    manager.start("Runner")

    started = [e for e in events if e.event_type is EventType.MACRO_STARTED]
    stopped = [e for e in events if e.event_type is EventType.MACRO_STOPPED]
    assert started[0].correlation_id == first_run == stopped[0].correlation_id
    assert started[1].correlation_id not in (None, first_run)
