# tests/test_rotation.py
"""
Unit tests for bot_core.rotation.RotationController.

Covers:
- Timed smooth rotation: starts near the origin, lands exactly on target
- Linear (non-smooth) interpolation
- Priority ordering of queued requests
- Follow mode and stop()
- Invalid targets are dropped
"""

from __future__ import annotations

import random

import pytest

from bot_core.angles import Angle
from bot_core.rotation import RotationController, ease_in_out_cubic
from bot_core.target import AngleTarget, EntityTarget
from bot_core.testing import FakeWorldAdapter, ManualTime, WorldBuilder


def _controller(yaw: float = 0.0):
    world = WorldBuilder().at(0.5, 64, 0.5).facing(yaw).build()
    adapter = FakeWorldAdapter(world)
    now = ManualTime()
    rotation = RotationController(adapter, now, rng=random.Random(7))
    return rotation, adapter, now


def test_ease_curve_endpoints() -> None:
    assert ease_in_out_cubic(0.0) == 0.0
    assert ease_in_out_cubic(0.5) == pytest.approx(0.5)
    assert ease_in_out_cubic(1.0) == 1.0
    assert ease_in_out_cubic(2.0) == 1.0


def test_smooth_rotation_starts_at_origin_and_ends_exactly_on_target() -> None:
    rotation, adapter, now = _controller()

    rotation.rotate_to(AngleTarget(Angle(90.0, 0.0)), 1000, smooth=True)

    first = rotation.on_tick(adapter.world)
    assert first is not None
    assert first.yaw == pytest.approx(0.0, abs=0.5)

    now.advance(500)
    middle = rotation.on_tick(adapter.world)
    assert middle is not None
    assert 30.0 < middle.yaw < 60.0

    now.advance(500)
    final = rotation.on_tick(adapter.world)
    assert final == Angle(90.0, 0.0)
    assert adapter.last_look() == (90.0, 0.0)
    assert not rotation.is_rotating()


def test_linear_rotation_without_jitter() -> None:
    rotation, adapter, now = _controller()
    rotation.rotate_to(AngleTarget(Angle(-40.0, 20.0)), 400, smooth=False)

    now.advance(100)
    angle = rotation.on_tick(adapter.world)
    assert angle == Angle(-10.0, 5.0)


def test_higher_priority_request_runs_first() -> None:
    rotation, adapter, now = _controller()

    rotation.rotate_to(AngleTarget(Angle(10.0, 0.0)), 0)  # becomes active immediately
    rotation.rotate_to(AngleTarget(Angle(20.0, 0.0)), 0, priority=1)
    rotation.rotate_to(AngleTarget(Angle(30.0, 0.0)), 0, priority=5)
    assert rotation.queue_size() == 2

    assert rotation.on_tick(adapter.world) == Angle(10.0, 0.0)
    assert rotation.on_tick(adapter.world) == Angle(30.0, 0.0)
    assert rotation.on_tick(adapter.world) == Angle(20.0, 0.0)
    assert rotation.on_tick(adapter.world) is None


def test_following_moves_a_fraction_each_tick() -> None:
    rotation, adapter, _ = _controller()
    rotation.start_following(AngleTarget(Angle(100.0, 0.0)))

    angle = rotation.on_tick(adapter.world)
    assert angle is not None
    assert angle.yaw == pytest.approx(10.0)

    angle = rotation.on_tick(adapter.world)
    assert angle.yaw == pytest.approx(19.0)

    rotation.stop()
    assert not rotation.is_following()
    assert rotation.on_tick(adapter.world) is None


def test_missing_entity_target_is_dropped() -> None:
    rotation, adapter, _ = _controller()
    rotation.rotate_to(EntityTarget(999), 1000)

    assert rotation.on_tick(adapter.world) is None
    assert not rotation.is_rotating()


def test_idle_controller_adopts_reported_facing() -> None:
    rotation, adapter, _ = _controller(yaw=45.0)
    rotation.on_tick(adapter.world)
    assert rotation.current_angle == Angle(45.0, 0.0)
