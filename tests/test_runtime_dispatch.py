# tests/test_runtime_dispatch.py
"""
Tests for bot_core.runtime.CoreRuntime.

Covers:
- Tick order: snapshot stored, macros, features, path executor, rotation
- Chat is stripped of formatting codes before the macro and features see it
- Each event kind reaches the expected manager hook
- Unknown events raise BotCoreError("unknown_event")
- shutdown() stops macros, features and released keys
"""

from __future__ import annotations

from typing import List

import pytest

from bot_core.adapter import (
    BlockChangeEvent,
    EntityEvent,
    PacketEvent,
    TickEvent,
    WindowEvent,
    WorldLoadEvent,
    WorldUnloadEvent,
)
from bot_core.errors import BotCoreError
from bot_core.snapshot import AIR, EntityInfo, Vec3, WorldSnapshot
from bot_core.testing import STONE, WorldBuilder
from tests.fakes.fake_runtime import FakeBot, make_bot


def _bot() -> FakeBot:
    return make_bot(WorldBuilder().at(0.5, 64, 0.5).floor(63).build())


def _record(monkeypatch, calls: List[str], owner, method: str, label: str) -> None:
    monkeypatch.setattr(owner, method, lambda *args: calls.append(label))


def test_tick_order(monkeypatch) -> None:
    bot = _bot()
    calls: List[str] = []
    _record(monkeypatch, calls, bot.ctx.macros, "on_tick", "macros")
    _record(monkeypatch, calls, bot.ctx.features, "on_tick", "features")
    _record(monkeypatch, calls, bot.ctx.path_executor, "on_tick", "path")
    _record(monkeypatch, calls, bot.ctx.rotation, "on_tick", "rotation")

    fresh = WorldSnapshot()
    bot.runtime.dispatch(TickEvent(fresh))

    assert calls == ["macros", "features", "path", "rotation"]
    assert bot.ctx.world is fresh
    assert bot.runtime.ticks == 1


def test_chat_is_stripped_and_macro_goes_first(monkeypatch) -> None:
    bot = _bot()
    seen: List[str] = []
    monkeypatch.setattr(bot.ctx.macros, "on_chat", lambda msg: seen.append(f"macro:{msg}"))
    monkeypatch.setattr(bot.ctx.features, "on_chat", lambda msg: seen.append(f"features:{msg}"))

    bot.chat("§6§lCHEST LOCKPICKED")

    assert seen == ["macro:CHEST LOCKPICKED", "features:CHEST LOCKPICKED"]


@pytest.mark.parametrize(
    "event, hooks",
    [
        (PacketEvent("particle"), ["macros.on_packet", "features.on_packet"]),
        (BlockChangeEvent((0, 64, 0), AIR, STONE), ["features.on_block_change"]),
        (WindowEvent(None), ["features.on_window"]),
        (
            EntityEvent("spawn", EntityInfo(entity_id=1, kind="zombie", name="Goblin", position=Vec3(0, 64, 0))),
            ["features.on_entity"],
        ),
        (WorldLoadEvent("mines"), ["features.on_world_load"]),
        (WorldUnloadEvent("mines"), ["features.on_world_unload"]),
    ],
)
def test_event_routing(monkeypatch, event, hooks) -> None:
    bot = _bot()
    calls: List[str] = []
    for owner_name in ("macros", "features"):
        owner = getattr(bot.ctx, owner_name)
        for method in (
            "on_packet",
            "on_block_change",
            "on_window",
            "on_entity",
            "on_world_load",
            "on_world_unload",
        ):
            if hasattr(owner, method):
                _record(monkeypatch, calls, owner, method, f"{owner_name}.{method}")

    bot.dispatch(event)

    assert calls == hooks


def test_unknown_event_raises() -> None:
    bot = _bot()

    with pytest.raises(BotCoreError) as excinfo:
        bot.dispatch("not an event")  # type: ignore[arg-type]

    assert excinfo.value.code == "unknown_event"
    assert excinfo.value.details == {"event_type": "str"}


def test_shutdown_stops_everything() -> None:
    bot = _bot()
    bot.ctx.macros.start("MiningMacro")
    bot.feature("AutoSell").start()
    bot.adapter.set_control_state("forward", True)

    bot.runtime.shutdown()

    assert not bot.ctx.macros.is_running()
    assert bot.ctx.features.running() == []
    assert not any(bot.adapter.controls.values())
