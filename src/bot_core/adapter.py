# src/bot_core/adapter.py
"""
Adapter boundary for bot_core.

Defines:
- WorldAdapter: the command surface a client-protocol wrapper must provide.
- World events: the typed messages the adapter hands to CoreRuntime.dispatch().

The core never talks to the network. Commands are fire-and-forget: the
state machines poll the next snapshots to observe their effect instead of
waiting on a call to finish.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Union

from .snapshot import BlockState, Coord, EntityInfo, WindowInfo, WorldSnapshot

# Movement keys understood by set_control_state().
CONTROL_KEYS = ("forward", "back", "left", "right", "jump", "sprint", "sneak")

# Block faces accepted by start_digging().
FACES = ("down", "up", "north", "south", "west", "east")


class WorldAdapter(Protocol):
    """
    Command surface of the world/actor adapter.

    Implementations wrap a real client-protocol library. Tests use
    bot_core.testing.fakes.FakeWorldAdapter.
    """

    def set_control_state(self, key: str, pressed: bool) -> None:
        """Press or release a movement key (see CONTROL_KEYS)."""
        ...

    def look(self, yaw: float, pitch: float) -> None:
        """Set the player's facing in degrees."""
        ...

    def start_digging(self, coord: Coord, face: str) -> None:
        """Begin breaking the block at `coord` from `face`."""
        ...

    def stop_digging(self) -> None:
        ...

    def activate_item(self) -> None:
        """Use the held item (right click)."""
        ...

    def attack(self, entity_id: Optional[int] = None) -> None:
        """Swing / left click, optionally at a specific entity."""
        ...

    def interact_entity(self, entity_id: int) -> None:
        """Right click an entity (NPC menus)."""
        ...

    def click_window(self, slot: int, button: int = 0, mode: int = 0) -> None:
        """Click a slot in the currently open container."""
        ...

    def close_window(self) -> None:
        ...

    def drop_slot(self, slot: int) -> None:
        """Throw away the whole stack in an inventory slot."""
        ...

    def chat(self, message: str) -> None:
        """Send a chat line or slash command."""
        ...

    def select_hotbar_slot(self, slot: int) -> None:
        """Equip the hotbar slot 0..8 to the hand."""
        ...


def release_all_keys(adapter: WorldAdapter) -> None:
    """Release every movement key."""
    for key in CONTROL_KEYS:
        adapter.set_control_state(key, False)


# ---------------------------------------------------------------------------
# Events delivered to CoreRuntime.dispatch()
# ---------------------------------------------------------------------------


@dataclass
class TickEvent:
    """One world update with the freshly assembled snapshot."""

    snapshot: WorldSnapshot


@dataclass
class ChatEvent:
    message: str


@dataclass
class BlockChangeEvent:
    coord: Coord
    old: BlockState
    new: BlockState


@dataclass
class WindowEvent:
    """A container was opened, updated or closed (window is None)."""

    window: Optional[WindowInfo]


@dataclass
class EntityEvent:
    """Entity spawn/despawn/move; action is "spawn", "despawn" or "move"."""

    action: str
    entity: EntityInfo


@dataclass
class PacketEvent:
    """Raw packet surfaced by the adapter for features that need it."""

    packet_type: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WorldLoadEvent:
    name: str = ""


@dataclass
class WorldUnloadEvent:
    name: str = ""


WorldEvent = Union[
    TickEvent,
    ChatEvent,
    BlockChangeEvent,
    WindowEvent,
    EntityEvent,
    PacketEvent,
    WorldLoadEvent,
    WorldUnloadEvent,
]


__all__ = [
    "BlockChangeEvent",
    "CONTROL_KEYS",
    "ChatEvent",
    "EntityEvent",
    "FACES",
    "PacketEvent",
    "TickEvent",
    "WindowEvent",
    "WorldAdapter",
    "WorldEvent",
    "WorldLoadEvent",
    "WorldUnloadEvent",
    "release_all_keys",
]
