# src/bot_core/queries/inventory.py
"""
Inventory and container lookups.

Item matching is by case-insensitive substring of the item's display label
with formatting codes removed, which is how players name tools in config
("Drill", "Pickaxe", "Royal Pigeon").
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from ..adapter import WorldAdapter
from ..snapshot import ItemStack, WindowInfo, WorldSnapshot
from .text import strip_control_codes

MINING_TOOLS = ("pickaxe", "drill", "gauntlet", "shovel")

PLAYER_INVENTORY_SIZE = 36
HOTBAR_SLOTS = range(0, 9)


def item_label(stack: Optional[ItemStack]) -> str:
    if stack is None:
        return ""
    return strip_control_codes(stack.label)


def matches(stack: Optional[ItemStack], name: str, exact: bool = False) -> bool:
    if stack is None or not name:
        return False
    needle = name.lower()
    for candidate in (item_label(stack).lower(), stack.name.lower()):
        if (candidate == needle) if exact else (needle in candidate):
            return True
    return False


def lore_lines(stack: Optional[ItemStack]) -> List[str]:
    if stack is None:
        return []
    return [strip_control_codes(line) for line in stack.lore]


# ---------------------------------------------------------------------------
# Hotbar
# ---------------------------------------------------------------------------


def hotbar_slot_of(world: WorldSnapshot, names: Sequence[str]) -> int:
    """
    Hotbar slot of the first of `names` (in the given order) present in the
    hotbar, or -1.
    """
    hotbar = sorted(world.hotbar(), key=lambda s: s.slot)
    for name in names:
        for stack in hotbar:
            if matches(stack, name):
                return stack.slot
    return -1


def hold_item(adapter: WorldAdapter, world: WorldSnapshot, names: Sequence[str]) -> bool:
    """Select the hotbar slot holding one of `names`; False if none found."""
    slot = hotbar_slot_of(world, names)
    if slot < 0:
        return False
    if slot != world.held_slot:
        adapter.select_hotbar_slot(slot)
    return True


def is_holding(world: WorldSnapshot, names: Sequence[str]) -> bool:
    held = world.held_item()
    return any(matches(held, name) for name in names)


def missing_items_in_hotbar(world: WorldSnapshot, required: Iterable[str]) -> List[str]:
    return [name for name in required if hotbar_slot_of(world, [name]) < 0]


# ---------------------------------------------------------------------------
# Whole inventory
# ---------------------------------------------------------------------------


def find_item(world: WorldSnapshot, name: str, exact: bool = False) -> Optional[ItemStack]:
    for stack in sorted(world.inventory, key=lambda s: s.slot):
        if matches(stack, name, exact):
            return stack
    return None


def find_all_items(world: WorldSnapshot, name: str, exact: bool = False) -> List[ItemStack]:
    return [s for s in sorted(world.inventory, key=lambda s: s.slot) if matches(s, name, exact)]


def count_items(world: WorldSnapshot, name: str, exact: bool = False) -> int:
    return sum(s.count for s in find_all_items(world, name, exact))


def missing_items_in_inventory(world: WorldSnapshot, required: Iterable[str]) -> List[str]:
    return [name for name in required if find_item(world, name) is None]


def empty_slots(world: WorldSnapshot, size: int = PLAYER_INVENTORY_SIZE) -> List[int]:
    used = {s.slot for s in world.inventory}
    return [slot for slot in range(size) if slot not in used]


def is_inventory_full(world: WorldSnapshot, size: int = PLAYER_INVENTORY_SIZE) -> bool:
    return not empty_slots(world, size)


# ---------------------------------------------------------------------------
# Open containers
# ---------------------------------------------------------------------------


def window_title(window: Optional[WindowInfo]) -> str:
    if window is None:
        return ""
    return strip_control_codes(window.title)


def window_slot_of(window: Optional[WindowInfo], name: str, exact: bool = False) -> int:
    if window is None:
        return -1
    for index, stack in enumerate(window.slots):
        if matches(stack, name, exact):
            return index
    return -1


def window_slots_matching(window: Optional[WindowInfo], predicate) -> List[int]:
    if window is None:
        return []
    return [i for i, stack in enumerate(window.slots) if stack is not None and predicate(stack)]


__all__ = [
    "HOTBAR_SLOTS",
    "MINING_TOOLS",
    "count_items",
    "empty_slots",
    "find_all_items",
    "find_item",
    "hold_item",
    "hotbar_slot_of",
    "is_holding",
    "is_inventory_full",
    "item_label",
    "lore_lines",
    "matches",
    "missing_items_in_hotbar",
    "missing_items_in_inventory",
    "window_slot_of",
    "window_slots_matching",
    "window_title",
]
