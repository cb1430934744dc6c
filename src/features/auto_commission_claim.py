# src/features/auto_commission_claim.py
"""
AutoCommissionClaim feature.

    STARTING -> ROTATING -> OPENING -> VERIFYING_GUI -> CLAIMING -> NEXT_COMM -> ENDING

Two claim methods:
- "emissary": aim at the closest emissary NPC (must be within 4 blocks)
  and click it.
- "pigeon": hold the Royal Pigeon and use it.

Each state sets the feature timer as its delay; VERIFYING_GUI treats the
timer as its deadline. The pigeon cooldown message bumps a retry counter;
more than `max_retries` retries stops the feature with INACCESSIBLE_NPC.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import TYPE_CHECKING, List, Optional

from bot_core.queries.entities import is_npc
from bot_core.queries.inventory import hold_item, item_label, lore_lines, window_title
from bot_core.queries.text import strip_control_codes
from bot_core.snapshot import EntityInfo, Vec3, WindowInfo, WorldSnapshot
from bot_core.target import EntityTarget

from .base import FeatureCore, StateMachine

if TYPE_CHECKING:
    from bot_core.context import BotContext


class ClaimState(Enum):
    STARTING = auto()
    ROTATING = auto()
    OPENING = auto()
    VERIFYING_GUI = auto()
    CLAIMING = auto()
    NEXT_COMM = auto()
    ENDING = auto()


class ClaimError(Enum):
    NONE = auto()
    INACCESSIBLE_NPC = auto()
    NO_ITEMS = auto()
    TIMEOUT = auto()
    NPC_NOT_UNLOCKED = auto()


EMISSARIES = {
    "Ceanna": Vec3(42.5, 134.5, 22.5),
    "Carlton": Vec3(-72.5, 153.0, -10.5),
    "Wilson": Vec3(171.5, 150.0, 31.5),
    "Lilith": Vec3(58.5, 198.0, -8.5),
    "Fraiser": Vec3(-132.5, 174.0, -50.5),
}

PIGEON = "Royal Pigeon"
MENU_TITLE = "Commissions"
CLAIM_LORE = "Click to claim rewards"
PIGEON_COOLDOWN = "This ability is on cooldown for "

MAX_REACH = 4.0
OPEN_TIMEOUT_MS = 5000.0
PIGEON_COOLDOWN_MS = 5000.0
GUI_DELAY_MS = (250.0, 500.0)


def closest_emissary(world: WorldSnapshot) -> Optional[EntityInfo]:
    """NPC standing on the known emissary spot closest to the player."""
    spot = min(EMISSARIES.values(), key=lambda p: p.distance_sq(world.player_pos))
    for entity in world.entities:
        if "Sentry" in entity.name or not is_npc(entity):
            continue
        if entity.position.distance_sq(spot) < 0.25:
            return entity
    return None


def claimable_slot(window: Optional[WindowInfo]) -> int:
    if window is None:
        return -1
    for index, stack in enumerate(window.slots):
        if any(CLAIM_LORE in line for line in lore_lines(stack)):
            return index
    return -1


def commissions_in_window(window: Optional[WindowInfo]) -> List[str]:
    """Commission names shown in the menu (first lore line of each entry)."""
    names: List[str] = []
    if window is None:
        return names
    for stack in window.slots:
        if stack is None or not item_label(stack).startswith("Commission #"):
            continue
        lines = [line.strip() for line in lore_lines(stack) if line.strip()]
        if lines:
            names.append(lines[0])
    return names


class AutoCommissionClaim:
    name = "AutoCommissionClaim"

    def __init__(self, ctx: "BotContext", max_retries: int = 3) -> None:
        self.ctx = ctx
        self.max_retries = max_retries
        self.core = FeatureCore(
            self.name,
            ctx.time_fn,
            ctx.bus,
            failsafes_to_ignore=("rotation", "item_change"),
            logger_name=__name__,
        )
        self.machine: StateMachine[ClaimState] = StateMachine(
            self.core,
            ClaimState.STARTING,
            handlers={
                ClaimState.STARTING: self._tick_starting,
                ClaimState.ROTATING: self._tick_rotating,
                ClaimState.OPENING: self._tick_opening,
                ClaimState.VERIFYING_GUI: self._tick_verifying_gui,
                ClaimState.CLAIMING: self._tick_claiming,
                ClaimState.NEXT_COMM: self._tick_next_comm,
                ClaimState.ENDING: self._tick_ending,
            },
            on_enter={ClaimState.OPENING: self._enter_opening},
        )
        self.error = ClaimError.NONE
        self.method = ctx.config.commission.claim_method
        self.emissary: Optional[EntityInfo] = None
        self.next_comm: List[str] = []
        self.retry = 0
        self.claimed = 0
        self.commissions_claimed = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, method: Optional[str] = None) -> None:
        self.method = method or self.ctx.config.commission.claim_method
        self.error = ClaimError.NONE
        self.emissary = None
        self.next_comm = []
        self.retry = 0
        self.claimed = 0
        self.core.enable(method=self.method)
        self.machine.reset(ClaimState.STARTING)

    def stop(self) -> None:
        self.emissary = None
        self.core.disable(self.error)
        self.retry = 0

    def pause(self) -> None:
        self.core.pause()

    def resume(self) -> None:
        self.core.resume()

    def succeeded(self) -> bool:
        return not self.core.enabled and self.error is ClaimError.NONE

    @property
    def state(self) -> ClaimState:
        return self.machine.state

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        if not self.core.is_running():
            return
        if self.retry > self.max_retries:
            self.core.log.error("Tried too many times, stopping")
            self._fail(ClaimError.INACCESSIBLE_NPC)
            return
        self.machine.step(world)

    def on_chat(self, message: str) -> None:
        if self.machine.state is not ClaimState.CLAIMING:
            return
        if strip_control_codes(message).startswith(PIGEON_COOLDOWN):
            self.retry += 1
            self.core.log.info("Pigeon on cooldown, waiting")
            self.core.timer.schedule(PIGEON_COOLDOWN_MS)
            self.machine.transition(ClaimState.OPENING)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _wait(self, state: ClaimState, ms: float) -> ClaimState:
        if ms <= 0:
            self.core.timer.reset()
        else:
            self.core.timer.schedule(ms)
        return state

    def _tick_starting(self, world: WorldSnapshot) -> ClaimState:
        if self.method == "pigeon":
            if not hold_item(self.ctx.adapter, world, [PIGEON]):
                self.core.log.error("No %s in hotbar", PIGEON)
                self._fail(ClaimError.NO_ITEMS)
                return ClaimState.STARTING
            return self._wait(ClaimState.ROTATING, 400)
        return self._wait(ClaimState.ROTATING, 0)

    def _tick_rotating(self, world: WorldSnapshot) -> ClaimState:
        if self.core.is_timer_running():
            return ClaimState.ROTATING

        if self.method != "pigeon":
            emissary = closest_emissary(world)
            if emissary is None:
                self.core.log.error("No emissary near %s", world.player_pos)
                self._fail(ClaimError.NPC_NOT_UNLOCKED)
                return ClaimState.ROTATING
            distance = world.player_pos.distance_to(emissary.position)
            if distance > MAX_REACH:
                self.core.log.error("Emissary too far away: %.1f", distance)
                self._fail(ClaimError.INACCESSIBLE_NPC)
                return ClaimState.ROTATING
            self.emissary = emissary
            self.core.log.info("Rotating to %s", emissary.name)
            self.ctx.rotation.rotate_to(EntityTarget(emissary.entity_id), 500)

        return self._wait(ClaimState.OPENING, 2000)

    def _enter_opening(self) -> None:
        self.core.clock("opening").schedule(OPEN_TIMEOUT_MS + self.core.timer.remaining_ms())

    def _tick_opening(self, world: WorldSnapshot) -> ClaimState:
        if self.core.clock("opening").passed():
            self.core.log.error("Could not interact in time")
            self._fail(ClaimError.TIMEOUT)
            return ClaimState.OPENING
        if self.core.is_timer_running():
            return ClaimState.OPENING

        if self.method == "pigeon":
            self.ctx.adapter.activate_item()
        else:
            if self.ctx.rotation.is_rotating() or self.emissary is None:
                return ClaimState.OPENING
            self.ctx.adapter.attack(self.emissary.entity_id)

        return self._wait(ClaimState.VERIFYING_GUI, OPEN_TIMEOUT_MS)

    def _tick_verifying_gui(self, world: WorldSnapshot) -> ClaimState:
        if self.core.has_timer_ended():
            self.core.log.error("Opened a different inventory: %s", window_title(world.open_window))
            self._fail(ClaimError.INACCESSIBLE_NPC)
            return ClaimState.VERIFYING_GUI
        if MENU_TITLE not in window_title(world.open_window):
            return ClaimState.VERIFYING_GUI
        self.claimed = 0
        return self._wait(ClaimState.CLAIMING, 500)

    def _tick_claiming(self, world: WorldSnapshot) -> ClaimState:
        if self.core.is_timer_running():
            return ClaimState.CLAIMING

        window = world.open_window
        slot = claimable_slot(window)
        size = len(window.slots) if window is not None else 0
        if slot >= 0 and self.claimed < size:
            self.ctx.adapter.click_window(slot)
            self.claimed += 1
            self.commissions_claimed += 1
            next_state = ClaimState.CLAIMING
        else:
            self.core.log.info("No commission to claim")
            next_state = ClaimState.NEXT_COMM
        return self._wait(next_state, self.ctx.rng.uniform(*GUI_DELAY_MS))

    def _tick_next_comm(self, world: WorldSnapshot) -> ClaimState:
        if self.core.is_timer_running():
            return ClaimState.NEXT_COMM
        self.next_comm = commissions_in_window(world.open_window)
        return self._wait(ClaimState.ENDING, 0)

    def _tick_ending(self, world: WorldSnapshot) -> ClaimState:
        if world.open_window is not None:
            self.ctx.adapter.close_window()
        self.stop()
        return ClaimState.ENDING

    def _fail(self, error: ClaimError) -> None:
        self.error = error
        self.stop()


__all__ = [
    "AutoCommissionClaim",
    "ClaimError",
    "ClaimState",
    "EMISSARIES",
    "claimable_slot",
    "closest_emissary",
    "commissions_in_window",
]
