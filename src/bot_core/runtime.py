# src/bot_core/runtime.py
"""
CoreRuntime: the single entry point the world/actor adapter feeds.

The adapter turns whatever its client library reports into the event
dataclasses of bot_core.adapter and hands each one to dispatch(). Nothing
else in the core subscribes to the adapter, so delivery order is fixed:

TickEvent:
    store the snapshot in the context, then
    MacroManager -> FeatureManager -> PathExecutor -> RotationController.
    The macro decides first which features run this tick; rotation goes
    last so the look sent reflects every request made during the tick.

ChatEvent / PacketEvent:
    active macro, then running features.

BlockChangeEvent / WindowEvent / EntityEvent:
    running features.

WorldLoadEvent / WorldUnloadEvent:
    every registered feature.
"""

from __future__ import annotations

import logging

from .adapter import (
    BlockChangeEvent,
    ChatEvent,
    EntityEvent,
    PacketEvent,
    TickEvent,
    WindowEvent,
    WorldEvent,
    WorldLoadEvent,
    WorldUnloadEvent,
    release_all_keys,
)
from .context import BotContext
from .errors import BotCoreError
from .queries.text import strip_control_codes

log = logging.getLogger(__name__)


class CoreRuntime:
    def __init__(self, ctx: BotContext) -> None:
        self.ctx = ctx
        self.ticks: int = 0

    def dispatch(self, event: WorldEvent) -> None:
        ctx = self.ctx

        if isinstance(event, TickEvent):
            self.ticks += 1
            ctx.world = event.snapshot
            ctx.macros.on_tick(event.snapshot)
            ctx.features.on_tick(event.snapshot)
            ctx.path_executor.on_tick(event.snapshot)
            ctx.rotation.on_tick(event.snapshot)
        elif isinstance(event, ChatEvent):
            message = strip_control_codes(event.message)
            ctx.macros.on_chat(message)
            ctx.features.on_chat(message)
        elif isinstance(event, PacketEvent):
            ctx.macros.on_packet(event)
            ctx.features.on_packet(event)
        elif isinstance(event, BlockChangeEvent):
            ctx.features.on_block_change(event)
        elif isinstance(event, WindowEvent):
            ctx.features.on_window(event)
        elif isinstance(event, EntityEvent):
            ctx.features.on_entity(event)
        elif isinstance(event, WorldLoadEvent):
            ctx.features.on_world_load(event)
        elif isinstance(event, WorldUnloadEvent):
            ctx.features.on_world_unload(event)
        else:
            raise BotCoreError(
                code="unknown_event",
                details={"event_type": type(event).__name__},
            )

    def shutdown(self) -> None:
        """Stop everything that could still press keys or aim."""
        log.info("Shutting down runtime after %d ticks", self.ticks)
        self.ctx.macros.stop()
        self.ctx.features.stop_all()
        self.ctx.path_executor.stop()
        self.ctx.rotation.stop()
        release_all_keys(self.ctx.adapter)


__all__ = ["CoreRuntime"]
