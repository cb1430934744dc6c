# src/app/runtime.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from bot_core.adapter import TickEvent, WorldAdapter
from bot_core.clock import TimeFn
from bot_core.context import BotContext, set_context
from bot_core.runtime import CoreRuntime
from env.loader import load_config
from env.schema import MinerConfig
from features import (
    AutoChestUnlocker,
    AutoCommissionClaim,
    AutoDrillRefuel,
    AutoInventory,
    AutoMobKiller,
    AutoSell,
    AutoWarp,
    BlockMiner,
    RouteNavigator,
)
from macros import CommissionMacro, MiningMacro
from monitoring.bus import EventBus
from monitoring.controller import MacroController

from .error_handling import safe_tick_with_logging
from .logging_config import configure_logging

log = logging.getLogger(__name__)

# general.macro_type -> registered macro name
MACRO_TYPES = {"mining": MiningMacro.name, "commission": CommissionMacro.name}


@dataclass
class MinerRuntime:
    """Everything build_runtime() wires together."""

    ctx: BotContext
    runtime: CoreRuntime
    bus: EventBus
    controller: MacroController


def build_runtime(
    adapter: WorldAdapter,
    config: Optional[MinerConfig] = None,
    *,
    time_fn: Optional[TimeFn] = None,
    bus: Optional[EventBus] = None,
    install: bool = False,
) -> MinerRuntime:
    """
    Build the context, register every feature and macro, attach the
    control surface.

    With install=True the context also becomes the process-wide one.
    """
    config = config or MinerConfig.default()
    bus = bus or EventBus()
    ctx = BotContext.create(adapter, config, time_fn=time_fn, bus=bus)

    for feature in (
        BlockMiner(ctx),
        AutoInventory(ctx),
        AutoCommissionClaim(ctx),
        AutoMobKiller(ctx),
        AutoChestUnlocker(ctx),
        RouteNavigator(ctx),
        AutoDrillRefuel(ctx),
        AutoWarp(ctx),
        AutoSell(ctx),
    ):
        ctx.features.register(feature)
    ctx.macros.register(MiningMacro(ctx))
    ctx.macros.register(CommissionMacro(ctx))

    if install:
        set_context(ctx)

    log.info(
        "Runtime ready: features=%s macros=%s",
        ctx.features.names(),
        ctx.macros.names(),
    )
    return MinerRuntime(ctx=ctx, runtime=CoreRuntime(ctx), bus=bus, controller=MacroController(ctx, bus))


def main(ticks: int = 20) -> None:
    """Offline dry run: the configured macro on a fake world for a few ticks."""
    from bot_core.testing.fakes import FakeWorldAdapter, ManualTime, WorldBuilder

    configure_logging()
    config = load_config()

    world = WorldBuilder().at(0.5, 65.0, 0.5).floor(64).build()
    adapter = FakeWorldAdapter(world, instant_dig=True)
    clock = ManualTime()
    app = build_runtime(adapter, config, time_fn=clock)

    app.ctx.macros.start(MACRO_TYPES[config.general.macro_type])
    try:
        for _ in range(ticks):
            clock.advance(50)
            safe_tick_with_logging(app.runtime, TickEvent(adapter.world), app.bus)
        log.info("status = %s", app.controller.status())
    finally:
        app.runtime.shutdown()


if __name__ == "__main__":
    main()
