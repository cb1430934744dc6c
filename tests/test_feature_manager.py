# tests/test_feature_manager.py
"""
Unit tests for features.manager.FeatureManager and features.base.

Covers:
- Registration order and duplicate names
- Exception isolation during fan-out (tick, chat)
- Running-only delivery vs world load/unload to everyone
- Bulk stop and failsafe ignore-set union
- FeatureCore clocks pause with the feature; StateMachine hooks
"""

from __future__ import annotations

from enum import Enum, auto
from typing import List

import pytest

from bot_core.snapshot import WorldSnapshot
from bot_core.testing import ManualTime
from features.base import FeatureCore, StateMachine
from features.manager import FeatureManager
from monitoring.bus import EventBus
from monitoring.events import EventType, MonitoringEvent


class _Recorder:
    def __init__(self, name: str, now: ManualTime, calls: List[str], fail: bool = False,
                 failsafes=()) -> None:
        self.name = name
        self.core = FeatureCore(name, now, failsafes_to_ignore=failsafes)
        self.calls = calls
        self.fail = fail

    def on_tick(self, world: WorldSnapshot) -> None:
        if self.fail:
            raise RuntimeError(f"{self.name} exploded")
        self.calls.append(f"{self.name}.tick")

    def on_chat(self, message: str) -> None:
        if self.fail:
            raise ValueError("bad chat")
        self.calls.append(f"{self.name}.chat:{message}")

    def on_world_unload(self, event) -> None:
        self.calls.append(f"{self.name}.unload")

    def stop(self) -> None:
        self.core.disable()

    def pause(self) -> None:
        self.core.pause()

    def resume(self) -> None:
        self.core.resume()


def _manager():
    now = ManualTime()
    bus = EventBus()
    events: List[MonitoringEvent] = []
    bus.subscribe(events.append)
    return FeatureManager(bus=bus), now, events


def test_failing_feature_does_not_block_later_features() -> None:
    manager, now, events = _manager()
    calls: List[str] = []
    a = manager.register(_Recorder("A", now, calls, fail=True))
    b = manager.register(_Recorder("B", now, calls))
    a.core.enable()
    b.core.enable()

    manager.on_tick(WorldSnapshot())
    manager.on_chat("hello")

    assert calls == ["B.tick", "B.chat:hello"]
    errors = [e for e in events if e.event_type is EventType.FEATURE_ERROR]
    assert [e.module for e in errors] == ["A", "A"]
    assert errors[0].payload["hook"] == "on_tick"


def test_duplicate_registration_rejected() -> None:
    manager, now, _ = _manager()
    manager.register(_Recorder("A", now, []))
    with pytest.raises(ValueError):
        manager.register(_Recorder("A", now, []))
    with pytest.raises(KeyError):
        manager.get("missing")


def test_only_running_features_receive_ticks() -> None:
    manager, now, _ = _manager()
    calls: List[str] = []
    a = manager.register(_Recorder("A", now, calls))
    b = manager.register(_Recorder("B", now, calls))
    a.core.enable()
    b.core.enable()
    b.pause()

    manager.on_tick(WorldSnapshot())
    manager.on_world_unload(object())

    assert calls == ["A.tick", "A.unload", "B.unload"]
    assert [f.name for f in manager.running()] == ["A"]


def test_bulk_lifecycle_and_failsafes() -> None:
    manager, now, _ = _manager()
    a = manager.register(_Recorder("A", now, [], failsafes={"teleport"}))
    b = manager.register(_Recorder("B", now, [], failsafes={"rotation", "teleport"}))
    a.core.enable()
    b.core.enable()

    assert manager.failsafes_to_ignore() == frozenset({"teleport", "rotation"})

    manager.stop_all()
    assert not a.core.enabled and not b.core.enabled


def test_feature_core_clocks_follow_pause() -> None:
    now = ManualTime()
    core = FeatureCore("Core", now)
    core.enable()
    core.timer.schedule(1000)
    core.clock("extra").schedule(500)

    now.advance(400)
    core.pause()
    now.advance(10_000)
    assert not core.has_timer_ended()
    core.resume()

    assert core.is_timer_running()
    now.advance(100)
    assert core.clock("extra").passed()
    now.advance(500)
    assert core.has_timer_ended()

    core.disable()
    assert not core.timer.is_scheduled()
    assert not core.clock("extra").is_scheduled()


class _Light(Enum):
    RED = auto()
    GREEN = auto()


def test_state_machine_hooks_and_events() -> None:
    now = ManualTime()
    bus = EventBus()
    events: List[MonitoringEvent] = []
    bus.subscribe(events.append)
    core = FeatureCore("Light", now, bus)
    order: List[str] = []

    machine = StateMachine(
        core,
        _Light.RED,
        handlers={_Light.RED: lambda w: _Light.GREEN, _Light.GREEN: lambda w: _Light.GREEN},
        on_enter={_Light.GREEN: lambda: order.append("enter GREEN")},
        on_exit={_Light.RED: lambda: order.append("exit RED")},
        on_transition=lambda old, new: order.append(f"{old.name}->{new.name}"),
    )

    assert machine.step(WorldSnapshot()) is _Light.GREEN
    assert machine.step(WorldSnapshot()) is _Light.GREEN
    assert order == ["exit RED", "enter GREEN", "RED->GREEN"]
    changes = [e for e in events if e.event_type is EventType.FEATURE_STATE_CHANGE]
    assert [c.payload for c in changes] == [{"from": "RED", "to": "GREEN"}]

    machine.reset()
    assert machine.state is _Light.RED
    assert len(order) == 3


def test_state_machine_requires_every_handler() -> None:
    core = FeatureCore("Light", ManualTime())
    with pytest.raises(ValueError):
        StateMachine(core, _Light.RED, handlers={_Light.RED: lambda w: _Light.RED})
