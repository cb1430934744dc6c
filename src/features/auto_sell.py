# src/features/auto_sell.py
"""
AutoSell feature.

    IDLE -> OPENING -> SELLING -> CLOSING -> IDLE

While running, IDLE watches the inventory. Once at least `threshold`
stacks are sellable (and the cooldown is over) it sends `/sell`, waits
for the menu, clicks every sellable stack shown in it, then closes the
menu. A menu that never opens counts as a failed attempt; after
`max_attempts` failures in a row the feature stops with SELL_FAILED.

An item is sellable when its name matches an entry of the sellable list
and none of the protected list.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import TYPE_CHECKING, Iterable, List, Optional

from bot_core.clock import Clock
from bot_core.queries.inventory import item_label, window_slots_matching
from bot_core.snapshot import ItemStack, WorldSnapshot

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext


class SellState(Enum):
    IDLE = auto()
    OPENING = auto()
    SELLING = auto()
    CLOSING = auto()


class SellError(Enum):
    NONE = auto()
    SELL_FAILED = auto()


SELL_COMMAND = "/sell"
OPEN_TIMEOUT_MS = 3000.0
CLICK_DELAY_MS = 250.0


def is_sellable(stack: Optional[ItemStack], sellable: Iterable[str], protected: Iterable[str]) -> bool:
    if stack is None:
        return False
    names = (stack.name.lower(), item_label(stack).lower())
    if any(p.lower() in n for p in protected for n in names):
        return False
    return any(s.lower() in n for s in sellable for n in names)


class AutoSell:
    name = "AutoSell"

    def __init__(self, ctx: "BotContext", max_attempts: int = 3) -> None:
        self.ctx = ctx
        settings = ctx.config.sell
        self.threshold = settings.threshold
        self.cooldown_ms = settings.cooldown_ms
        self.sellable_items: List[str] = list(settings.sellable_items)
        self.protected_items: List[str] = list(settings.protected_items)
        self.max_attempts = max_attempts

        self.core = FeatureCore(self.name, ctx.time_fn, ctx.bus, logger_name=__name__)
        self.machine: StateMachine[SellState] = StateMachine(
            self.core,
            SellState.IDLE,
            handlers={
                SellState.IDLE: self._tick_idle,
                SellState.OPENING: self._tick_opening,
                SellState.SELLING: self._tick_selling,
                SellState.CLOSING: self._tick_closing,
            },
            on_enter={
                SellState.OPENING: lambda: self.core.clock("open").schedule(OPEN_TIMEOUT_MS),
                SellState.SELLING: self._enter_selling,
            },
        )
        self.cooldown = Clock(ctx.time_fn)
        self.error = SellError.NONE
        self.attempts = 0
        self.items_sold = 0
        self.sells = 0
        self._clicks_left = 0

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def is_sellable(self, stack: Optional[ItemStack]) -> bool:
        return is_sellable(stack, self.sellable_items, self.protected_items)

    def sellable_count(self, world: WorldSnapshot) -> int:
        return sum(1 for stack in world.inventory if self.is_sellable(stack))

    def should_sell(self, world: WorldSnapshot) -> bool:
        if self.cooldown.is_scheduled() and not self.cooldown.passed():
            return False
        return self.sellable_count(world) >= self.threshold

    def add_sellable_item(self, name: str) -> None:
        if name not in self.sellable_items:
            self.sellable_items.append(name)

    def remove_sellable_item(self, name: str) -> None:
        if name in self.sellable_items:
            self.sellable_items.remove(name)

    def add_protected_item(self, name: str) -> None:
        if name not in self.protected_items:
            self.protected_items.append(name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self.error = SellError.NONE
        self.attempts = 0
        self.core.enable(threshold=self.threshold)
        self.machine.reset(SellState.IDLE)

    def stop(self) -> None:
        if self.core.enabled and self.machine.state is not SellState.IDLE and self.ctx.world.open_window is not None:
            self.ctx.adapter.close_window()
        self.core.disable(self.error)
        self.machine.reset(SellState.IDLE)

    def pause(self) -> None:
        self.core.pause()

    def resume(self) -> None:
        self.core.resume()

    def succeeded(self) -> bool:
        return not self.core.enabled and self.error is SellError.NONE

    @property
    def state(self) -> SellState:
        return self.machine.state

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return
        self.machine.step(world)

    def _tick_idle(self, world: WorldSnapshot) -> SellState:
        if not self.should_sell(world):
            return SellState.IDLE
        self.core.log.info("%d sellable stacks, selling", self.sellable_count(world))
        self.ctx.adapter.chat(SELL_COMMAND)
        return SellState.OPENING

    def _tick_opening(self, world: WorldSnapshot) -> SellState:
        if world.open_window is not None:
            return SellState.SELLING
        if not self.core.clock("open").passed():
            return SellState.OPENING

        self.attempts += 1
        self.cooldown.schedule(self.cooldown_ms)
        if self.attempts >= self.max_attempts:
            self.core.log.error("Sell menu did not open after %d attempts", self.attempts)
            self.error = SellError.SELL_FAILED
            self.stop()
            return SellState.IDLE
        self.core.log.warning("Sell attempt %d failed", self.attempts)
        return SellState.IDLE

    def _enter_selling(self) -> None:
        window = self.ctx.world.open_window
        self._clicks_left = len(window.slots) if window is not None else 0
        self.core.timer.schedule(CLICK_DELAY_MS)

    def _tick_selling(self, world: WorldSnapshot) -> SellState:
        if self.core.is_timer_running():
            return SellState.SELLING
        if world.open_window is None:
            self.core.log.warning("Sell menu closed early")
            return SellState.CLOSING

        slots = window_slots_matching(world.open_window, self.is_sellable)
        if not slots or self._clicks_left <= 0:
            return SellState.CLOSING

        self.ctx.adapter.click_window(slots[0])
        self.items_sold += 1
        self._clicks_left -= 1
        self.core.timer.schedule(CLICK_DELAY_MS)
        return SellState.SELLING

    def _tick_closing(self, world: WorldSnapshot) -> SellState:
        if world.open_window is not None:
            self.ctx.adapter.close_window()
        self.attempts = 0
        self.sells += 1
        self.cooldown.schedule(self.cooldown_ms)
        self.core.log.info("Sold, %d stacks so far", self.items_sold)
        return SellState.IDLE


__all__ = ["AutoSell", "SellError", "SellState", "is_sellable"]
