# src/bot_core/context.py
"""
Dependency-injected context shared by every feature and macro.

One BotContext is built at process start and handed to whatever needs the
adapter, the clocks' time source, the shared aim/walk controllers or the
registries. Tests build their own isolated contexts.

Usage:

    ctx = BotContext.create(adapter, MinerConfig.default(), time_fn=ManualTime())
    set_context(ctx)        # optional: install the process-wide instance
    get_context()           # later, where passing it around is awkward
"""

from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Deque, Optional

from .adapter import WorldAdapter
from .clock import TimeFn, monotonic_ms
from .errors import BotCoreError
from .nav.executor import PathExecutor, PathExecutorConfig
from .rotation import RotationController
from .snapshot import Coord, WorldSnapshot

if TYPE_CHECKING:
    from env.schema import MinerConfig
    from features.manager import FeatureManager
    from macros.manager import MacroManager
    from monitoring.bus import EventBus


@dataclass
class BotContext:
    adapter: WorldAdapter
    time_fn: TimeFn
    rng: random.Random
    config: "MinerConfig"
    rotation: RotationController
    path_executor: PathExecutor
    features: "FeatureManager"
    macros: "MacroManager"
    bus: Optional["EventBus"] = None
    # Chests waiting to be opened, shared by every chest-unlocking user.
    chest_queue: Deque[Coord] = field(default_factory=deque)
    # Entity ids already claimed by a mob killer.
    mob_queue: Deque[int] = field(default_factory=deque)
    # Latest snapshot seen by the runtime.
    world: WorldSnapshot = field(default_factory=WorldSnapshot)

    @classmethod
    def create(
        cls,
        adapter: WorldAdapter,
        config: Optional["MinerConfig"] = None,
        *,
        time_fn: Optional[TimeFn] = None,
        rng: Optional[random.Random] = None,
        bus: Optional["EventBus"] = None,
    ) -> "BotContext":
        """Wire the shared services; features and macros are registered later."""
        # Imported here: features/macros import bot_core themselves.
        from env.schema import MinerConfig
        from features.manager import FeatureManager
        from macros.manager import MacroManager

        config = config or MinerConfig.default()
        time_fn = time_fn or monotonic_ms
        if rng is None:
            rng = random.Random(config.humanization.seed)

        rotation = RotationController(
            adapter,
            time_fn,
            rng=rng,
            default_randomness=config.humanization.rotation_randomness,
        )
        path_executor = PathExecutor(
            adapter,
            rotation,
            time_fn,
            rng=rng,
            config=PathExecutorConfig(allow_sprint=config.general.sprint),
        )
        features = FeatureManager(bus=bus)
        return cls(
            adapter=adapter,
            time_fn=time_fn,
            rng=rng,
            config=config,
            rotation=rotation,
            path_executor=path_executor,
            features=features,
            macros=MacroManager(),
            bus=bus,
        )

    def now(self) -> float:
        return self.time_fn()

    def feature(self, name: str) -> Any:
        """Registered feature by name (KeyError if unknown)."""
        return self.features.get(name)


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_context: Optional[BotContext] = None


def get_context() -> BotContext:
    """
    Return the installed process-wide context.

    Raises BotCoreError(code="context_not_initialized") before set_context().
    """
    if _context is None:
        raise BotCoreError(code="context_not_initialized")
    return _context


def set_context(context: BotContext) -> BotContext:
    """
    Install the process-wide context once.

    Installing the same instance again is a no-op; replacing it mid-run
    raises BotCoreError(code="context_already_initialized").
    """
    global _context
    if _context is not None and _context is not context:
        raise BotCoreError(code="context_already_initialized")
    _context = context
    return _context


def has_context() -> bool:
    return _context is not None


def _reset_context_for_tests() -> None:
    """
    Internal helper used by tests to drop the installed context.

    Do not use this in normal code; it's only meant for test isolation.
    """
    global _context
    _context = None


__all__ = [
    "BotContext",
    "get_context",
    "has_context",
    "set_context",
]
