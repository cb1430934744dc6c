# src/features/auto_drill_refuel.py
"""
AutoDrillRefuel feature.

    STARTING -> ABIPHONE -> GREATFORGE -> REFUELING -> COMPLETED

Uses the Abiphone from the hotbar, calls the Greatforge contact, puts the
drill and the fuel into the drill anvil and combines them. Every GUI step
is bounded by a state timeout; a failed or timed out attempt starts over
from STARTING, at most `max_retries` times, then the feature stops with
the last error.

The fuel level is read from the drill lore ("Fuel: 2,500/3,000").
"""

from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

from bot_core.clock import Clock
from bot_core.queries.inventory import (
    find_item,
    hold_item,
    hotbar_slot_of,
    item_label,
    lore_lines,
    matches,
    window_slot_of,
    window_title,
)
from bot_core.queries.text import strip_control_codes
from bot_core.snapshot import ItemStack, WorldSnapshot

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext


class RefuelState(Enum):
    STARTING = "STARTING"
    ABIPHONE = "ABIPHONE"
    GREATFORGE = "GREATFORGE"
    REFUELING = "REFUELING"
    COMPLETED = "COMPLETED"


class RefuelError(Enum):
    NONE = "NONE"
    NO_DRILL = "NO_DRILL"
    NO_FUEL = "NO_FUEL"
    NO_ABIPHONE = "NO_ABIPHONE"
    NO_GREATFORGE_CONTACT = "NO_GREATFORGE_CONTACT"
    TIMEOUT = "TIMEOUT"


class FuelType(Enum):
    """Display name plus the search terms that identify the item."""
    VOLTA = ("Volta", ("volta",))
    OIL_BARREL = ("Oil Barrel", ("oil barrel",))
    BIOFUEL = ("Biofuel", ("biofuel", "bio fuel"))

    @property
    def display_name(self) -> str:
        return self.value[0]

    @property
    def search_terms(self) -> Tuple[str, ...]:
        return self.value[1]

    @classmethod
    def by_name(cls, name: str) -> Optional["FuelType"]:
        for fuel in cls:
            if fuel.display_name.lower() == name.strip().lower():
                return fuel
        return None


ABIPHONE = "Abiphone"
GREATFORGE_CONTACT = "Greatforge"
ANVIL_TITLE = "Drill Anvil"
COMBINE_BUTTON = "Drill Anvil"
DRILL_NAME = "drill"

ABIPHONE_TIMEOUT_MS = 5000.0
GREATFORGE_TIMEOUT_MS = 10000.0
REFUELING_TIMEOUT_MS = 10000.0
RETRY_DELAY_MS = 2000.0
CLICK_DELAY_MS = 500.0
REFUEL_COOLDOWN_MS = 30000.0

_FUEL_RE = re.compile(r"Fuel:\s*([\d,]+)\s*/\s*([\d,]+k?)", re.IGNORECASE)


def _parse_amount(raw: str) -> float:
    raw = raw.replace(",", "").lower()
    if raw.endswith("k"):
        return float(raw[:-1]) * 1000
    return float(raw)


def drill_fuel_percent(stack: Optional[ItemStack]) -> Optional[float]:
    """Fuel left in percent, or None when the lore has no fuel line."""
    for line in lore_lines(stack):
        match = _FUEL_RE.search(strip_control_codes(line))
        if match is None:
            continue
        current, maximum = _parse_amount(match.group(1)), _parse_amount(match.group(2))
        if maximum <= 0:
            return None
        return current / maximum * 100.0
    return None


def find_drill(world: WorldSnapshot) -> Optional[ItemStack]:
    held = world.held_item()
    if matches(held, DRILL_NAME):
        return held
    return find_item(world, DRILL_NAME)


def best_fuel(world: WorldSnapshot, preferred: Optional[FuelType] = None) -> Optional[FuelType]:
    order: List[FuelType] = [FuelType.VOLTA, FuelType.BIOFUEL, FuelType.OIL_BARREL]
    if preferred is not None:
        order.remove(preferred)
        order.insert(0, preferred)
    for fuel in order:
        if any(find_item(world, term) is not None for term in fuel.search_terms):
            return fuel
    return None


class AutoDrillRefuel:
    name = "AutoDrillRefuel"

    def __init__(self, ctx: "BotContext", max_retries: int = 3) -> None:
        self.ctx = ctx
        self.max_retries = max_retries
        self.core = FeatureCore(self.name, ctx.time_fn, ctx.bus, logger_name=__name__)
        self.machine: StateMachine[RefuelState] = StateMachine(
            self.core,
            RefuelState.STARTING,
            handlers={
                RefuelState.STARTING: self._tick_starting,
                RefuelState.ABIPHONE: self._tick_abiphone,
                RefuelState.GREATFORGE: self._tick_greatforge,
                RefuelState.REFUELING: self._tick_refueling,
                RefuelState.COMPLETED: self._tick_completed,
            },
            on_enter={
                RefuelState.ABIPHONE: lambda: self.core.clock("state").schedule(ABIPHONE_TIMEOUT_MS),
                RefuelState.GREATFORGE: lambda: self.core.clock("state").schedule(GREATFORGE_TIMEOUT_MS),
                RefuelState.REFUELING: self._enter_refueling,
                RefuelState.STARTING: lambda: self.core.clock("state").reset(),
            },
        )
        # Outlives stop(): FeatureCore.disable resets its own clocks.
        self.cooldown = Clock(ctx.time_fn)

        self.error = RefuelError.NONE
        self.fuel: Optional[FuelType] = None
        self.drill_name = ""
        self.retries = 0
        self._refuel_step = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def needs_refuel(self, world: Optional[WorldSnapshot] = None) -> bool:
        world = world or self.ctx.world
        drill = find_drill(world)
        if drill is None:
            self.error = RefuelError.NO_DRILL
            return False
        level = drill_fuel_percent(drill)
        return level is not None and level < self.ctx.config.refuel.min_fuel_level

    def start(self, world: Optional[WorldSnapshot] = None, force: bool = False) -> bool:
        """
        Check the preconditions and start refueling.

        Returns False (with `error` set when a requirement is missing) if
        the refuel is on cooldown, not needed, or cannot be done.
        """
        world = world or self.ctx.world
        if self.cooldown.is_scheduled() and not self.cooldown.passed():
            self.core.log.warning("Refuel on cooldown")
            return False

        drill = find_drill(world)
        if drill is None:
            return self._refuse(RefuelError.NO_DRILL, "No drill found")
        if not force and not self.needs_refuel(world):
            return False

        fuel = best_fuel(world, FuelType.by_name(self.ctx.config.refuel.machine_fuel))
        if fuel is None:
            return self._refuse(RefuelError.NO_FUEL, "No suitable fuel found")
        if hotbar_slot_of(world, [ABIPHONE]) < 0:
            return self._refuse(RefuelError.NO_ABIPHONE, "Abiphone not in hotbar")

        self.drill_name = item_label(drill)
        self.fuel = fuel
        self.retries = 0
        self.error = RefuelError.NONE
        self.core.enable(fuel=fuel.display_name, drill=self.drill_name)
        self.machine.reset(RefuelState.STARTING)
        self.core.log.info("Refueling %s with %s", self.drill_name, fuel.display_name)
        return True

    def stop(self) -> None:
        if self.core.enabled and self.ctx.world.open_window is not None:
            self.ctx.adapter.close_window()
        self.core.disable(self.error)

    def pause(self) -> None:
        self.core.pause()

    def resume(self) -> None:
        self.core.resume()

    def succeeded(self) -> bool:
        return not self.core.enabled and self.error is RefuelError.NONE

    def _refuse(self, error: RefuelError, message: str) -> bool:
        self.core.log.warning(message)
        self.error = error
        return False

    @property
    def state(self) -> RefuelState:
        return self.machine.state

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return
        deadline = self.core.clock("state")
        if deadline.is_scheduled() and deadline.passed():
            self.core.log.warning("Timed out in %s", self.machine.state.name)
            self._attempt_failed(RefuelError.TIMEOUT)
            return
        self.machine.step(world)

    def _attempt_failed(self, error: RefuelError) -> None:
        """Start over after a short delay or give up at the retry ceiling."""
        self.error = error
        self.retries += 1
        if self.ctx.world.open_window is not None:
            self.ctx.adapter.close_window()
        if self.retries >= self.max_retries:
            self.core.log.error("Max retries reached, giving up")
            self.stop()
            return
        self.core.log.warning("Retry %d/%d", self.retries, self.max_retries)
        self.machine.transition(RefuelState.STARTING)
        self.core.timer.schedule(RETRY_DELAY_MS)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _tick_starting(self, world: WorldSnapshot) -> RefuelState:
        if self.core.is_timer_running():
            return RefuelState.STARTING
        if not hold_item(self.ctx.adapter, world, [ABIPHONE]):
            self._attempt_failed(RefuelError.NO_ABIPHONE)
            return self.machine.state
        self.ctx.adapter.activate_item()
        self.core.log.info("Using Abiphone")
        return RefuelState.ABIPHONE

    def _tick_abiphone(self, world: WorldSnapshot) -> RefuelState:
        window = world.open_window
        if ABIPHONE not in window_title(window):
            return RefuelState.ABIPHONE
        slot = window_slot_of(window, GREATFORGE_CONTACT)
        if slot < 0:
            self._attempt_failed(RefuelError.NO_GREATFORGE_CONTACT)
            return self.machine.state
        self.ctx.adapter.click_window(slot)
        self.core.log.info("Calling Greatforge")
        return RefuelState.GREATFORGE

    def _tick_greatforge(self, world: WorldSnapshot) -> RefuelState:
        window = world.open_window
        if ANVIL_TITLE not in window_title(window):
            return RefuelState.GREATFORGE
        slot = window_slot_of(window, self.drill_name or DRILL_NAME)
        if slot < 0:
            self._attempt_failed(RefuelError.NO_DRILL)
            return self.machine.state
        # shift click moves the drill into the anvil
        self.ctx.adapter.click_window(slot, button=0, mode=1)
        self.core.timer.schedule(CLICK_DELAY_MS)
        return RefuelState.REFUELING

    def _enter_refueling(self) -> None:
        self._refuel_step = 0
        self.core.clock("state").schedule(REFUELING_TIMEOUT_MS)

    def _fuel_slot(self, world: WorldSnapshot) -> int:
        assert self.fuel is not None
        for term in self.fuel.search_terms:
            slot = window_slot_of(world.open_window, term)
            if slot >= 0:
                return slot
        return -1

    def _tick_refueling(self, world: WorldSnapshot) -> RefuelState:
        if self.core.is_timer_running():
            return RefuelState.REFUELING

        if self._refuel_step == 0:
            slot = self._fuel_slot(world)
            if slot < 0:
                self._attempt_failed(RefuelError.NO_FUEL)
                return self.machine.state
            self.ctx.adapter.click_window(slot, button=0, mode=1)
        elif self._refuel_step == 1:
            slot = window_slot_of(world.open_window, COMBINE_BUTTON)
            if slot < 0:
                return RefuelState.REFUELING
            self.ctx.adapter.click_window(slot)
        else:
            self.ctx.adapter.close_window()
            return RefuelState.COMPLETED

        self._refuel_step += 1
        self.core.timer.schedule(CLICK_DELAY_MS)
        return RefuelState.REFUELING

    def _tick_completed(self, world: WorldSnapshot) -> RefuelState:
        self.error = RefuelError.NONE
        self.cooldown.schedule(REFUEL_COOLDOWN_MS)
        self.core.log.info("Refueled with %s", self.fuel.display_name if self.fuel else "?")
        self.stop()
        return RefuelState.COMPLETED


__all__ = [
    "AutoDrillRefuel",
    "FuelType",
    "RefuelError",
    "RefuelState",
    "best_fuel",
    "drill_fuel_percent",
    "find_drill",
]
