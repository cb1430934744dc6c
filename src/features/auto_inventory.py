# src/features/auto_inventory.py
"""
AutoInventory feature.

    CHECKING_TOOLS -> RETRIEVING_STATS -> ORGANIZING_INVENTORY -> COMPLETED

Stats come from the profile menu: the menu is opened with a command, the
stats entry is clicked, and the lore of the stat items is parsed for mining
speed, HOTM level, powder and commission slots. Opening the menu is retried
up to `max_attempts` times before the feature stops with STATS_UNAVAILABLE.
"""

from __future__ import annotations

import re
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from bot_core.queries.inventory import (
    HOTBAR_SLOTS,
    find_item,
    item_label,
    lore_lines,
    matches,
    missing_items_in_hotbar,
    window_slot_of,
)
from bot_core.snapshot import WorldSnapshot

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext


class InventoryState(Enum):
    CHECKING_TOOLS = auto()
    RETRIEVING_STATS = auto()
    ORGANIZING_INVENTORY = auto()
    COMPLETED = auto()


class InventoryError(Enum):
    NONE = auto()
    STATS_UNAVAILABLE = auto()
    TIMEOUT = auto()


MENU_COMMAND = "/sbmenu"
STATS_ENTRY = "Stats"
JUNK_ITEMS = ("Cobblestone", "Stone", "Andesite", "Granite", "Diorite", "Flint", "Gravel")

MINING_SPEED_RE = re.compile(r"Mining Speed\D*([\d,]+)")
LEVEL_RE = re.compile(r"Level: (\d+)")
POWDER_RE = re.compile(r"(\w+) Powder: ([\d,]+)")
SLOTS_RE = re.compile(r"(\d+)/(\d+)")

MENU_WAIT_MS = 2000.0
STATE_TIMEOUT_MS = 15000.0


def _to_int(text: str) -> int:
    return int(text.replace(",", ""))


class AutoInventory:
    name = "AutoInventory"

    def __init__(self, ctx: "BotContext", max_attempts: int = 3) -> None:
        self.ctx = ctx
        self.max_attempts = max_attempts
        self.core = FeatureCore(self.name, ctx.time_fn, ctx.bus, logger_name=__name__)
        self.machine: StateMachine[InventoryState] = StateMachine(
            self.core,
            InventoryState.CHECKING_TOOLS,
            handlers={
                InventoryState.CHECKING_TOOLS: self._tick_checking_tools,
                InventoryState.RETRIEVING_STATS: self._tick_retrieving_stats,
                InventoryState.ORGANIZING_INVENTORY: self._tick_organizing,
                InventoryState.COMPLETED: self._tick_completed,
            },
            on_enter={
                InventoryState.RETRIEVING_STATS: self._enter_retrieving_stats,
            },
            on_transition=lambda old, new: self.core.timer.schedule(STATE_TIMEOUT_MS),
        )
        self.error = InventoryError.NONE
        self.succeeded = False
        self.required_items: List[str] = []
        self.junk_items: Tuple[str, ...] = JUNK_ITEMS
        self._retrieve = True
        self._organize = False
        self._attempts = 0
        self._clicked_stats = False

        self.mining_speed: int = 0
        self.hotm_level: int = 0
        self.powder: Dict[str, int] = {}
        self.commission_slots: Tuple[int, int] = (0, 0)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        retrieve_stats: bool = True,
        organize: bool = False,
        required_items: Sequence[str] = (),
    ) -> None:
        self.required_items = list(required_items)
        self._retrieve = retrieve_stats
        self._organize = organize
        self._attempts = 0
        self.error = InventoryError.NONE
        self.succeeded = False
        self.core.enable(retrieve_stats=retrieve_stats, organize=organize)
        self.machine.reset(InventoryState.CHECKING_TOOLS)
        self.core.timer.schedule(STATE_TIMEOUT_MS)

    def retrieve_stats(self) -> None:
        self.start(retrieve_stats=True, organize=False)

    def stop(self) -> None:
        self.core.disable(self.error)

    def pause(self) -> None:
        self.core.pause()

    def resume(self) -> None:
        self.core.resume()

    @property
    def state(self) -> InventoryState:
        return self.machine.state

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return
        if self.core.has_timer_ended():
            self.core.log.error("%s timed out", self.machine.state.name)
            self.error = InventoryError.TIMEOUT
            self.stop()
            return
        self.machine.step(world)

    def _tick_checking_tools(self, world: WorldSnapshot) -> InventoryState:
        for name in missing_items_in_hotbar(world, self.required_items):
            stack = find_item(world, name)
            if stack is None:
                self.core.log.warning("%s not in inventory", name)
                continue
            free = self._free_hotbar_slot(world)
            if free is None:
                self.core.log.warning("No free hotbar slot for %s", name)
                break
            # mode 2: swap the clicked slot with hotbar slot `button`
            self.ctx.adapter.click_window(stack.slot, button=free, mode=2)
            self.core.log.info("Moved %s to hotbar slot %d", name, free)
        if self._retrieve:
            return InventoryState.RETRIEVING_STATS
        if self._organize:
            return InventoryState.ORGANIZING_INVENTORY
        return InventoryState.COMPLETED

    def _enter_retrieving_stats(self) -> None:
        self._clicked_stats = False
        self._open_menu()

    def _open_menu(self) -> None:
        self._attempts += 1
        self.ctx.adapter.chat(MENU_COMMAND)
        self.core.clock("menu").schedule(MENU_WAIT_MS)

    def _tick_retrieving_stats(self, world: WorldSnapshot) -> InventoryState:
        window = world.open_window
        if window is not None:
            if self.parse_stats(s for s in window.slots if s is not None):
                self.ctx.adapter.close_window()
                self.core.log.info(
                    "Mining speed %d, HOTM %d", self.mining_speed, self.hotm_level
                )
                return InventoryState.ORGANIZING_INVENTORY if self._organize else InventoryState.COMPLETED
            if not self._clicked_stats:
                slot = window_slot_of(window, STATS_ENTRY)
                if slot >= 0:
                    self.ctx.adapter.click_window(slot)
                    self._clicked_stats = True
                    self.core.clock("menu").schedule(MENU_WAIT_MS)
                    return InventoryState.RETRIEVING_STATS

        if self.core.clock("menu").passed():
            if self._attempts >= self.max_attempts:
                self.core.log.error("Could not read stats after %d attempts", self._attempts)
                self.error = InventoryError.STATS_UNAVAILABLE
                self.stop()
                return InventoryState.RETRIEVING_STATS
            if window is not None:
                self.ctx.adapter.close_window()
            self._clicked_stats = False
            self._open_menu()
        return InventoryState.RETRIEVING_STATS

    def _tick_organizing(self, world: WorldSnapshot) -> InventoryState:
        for stack in list(world.inventory):
            if any(matches(stack, junk, exact=True) for junk in self.junk_items):
                self.ctx.adapter.drop_slot(stack.slot)
                self.core.log.info("Dropped %s", item_label(stack))
        return InventoryState.COMPLETED

    def _tick_completed(self, world: WorldSnapshot) -> InventoryState:
        self.succeeded = True
        self.stop()
        return InventoryState.COMPLETED

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_stats(self, stacks: Iterable) -> bool:
        """Read stats from item lore; True once mining speed was found."""
        found_speed = False
        for stack in stacks:
            label = item_label(stack)
            for line in [label] + lore_lines(stack):
                speed = MINING_SPEED_RE.search(line)
                if speed:
                    self.mining_speed = _to_int(speed.group(1))
                    found_speed = True
                if "Mining" in label or "Heart of the Mountain" in label:
                    level = LEVEL_RE.search(line)
                    if level:
                        self.hotm_level = int(level.group(1))
                powder = POWDER_RE.search(line)
                if powder:
                    self.powder[powder.group(1)] = _to_int(powder.group(2))
                if "Commission Slots" in line:
                    slots = SLOTS_RE.search(line)
                    if slots:
                        self.commission_slots = (int(slots.group(1)), int(slots.group(2)))
        return found_speed

    @staticmethod
    def _free_hotbar_slot(world: WorldSnapshot) -> Optional[int]:
        used = {s.slot for s in world.hotbar()}
        for slot in HOTBAR_SLOTS:
            if slot not in used:
                return slot
        return None


__all__ = ["AutoInventory", "InventoryError", "InventoryState"]
