# src/bot_core/__init__.py
"""
bot_core package.

Exports:
    - BotContext / get_context / set_context: shared services for features
    - CoreRuntime: dispatch(event) entry point for the world adapter
    - WorldSnapshot and the adapter events
    - BotCoreError / PathContractError: contract errors outside the tick
"""

from __future__ import annotations

from .adapter import (
    BlockChangeEvent,
    ChatEvent,
    EntityEvent,
    PacketEvent,
    TickEvent,
    WindowEvent,
    WorldAdapter,
    WorldLoadEvent,
    WorldUnloadEvent,
)
from .context import BotContext, get_context, has_context, set_context
from .errors import BotCoreError, PathContractError
from .runtime import CoreRuntime
from .snapshot import WorldSnapshot

__all__ = [
    "BlockChangeEvent",
    "BotContext",
    "BotCoreError",
    "ChatEvent",
    "CoreRuntime",
    "EntityEvent",
    "PacketEvent",
    "PathContractError",
    "TickEvent",
    "WindowEvent",
    "WorldAdapter",
    "WorldLoadEvent",
    "WorldSnapshot",
    "WorldUnloadEvent",
    "get_context",
    "has_context",
    "set_context",
]
