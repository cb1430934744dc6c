# src/routes/handler.py
"""
GraphHandler: named waypoint graphs plus the edit/record workflow.

Graphs are read at any time by navigation code; they are only changed
while editing. Recording (inside edit mode) drops a waypoint whenever the
player has moved at least `record_distance` from the last one, and the
recorded chain is added to the active graph when recording stops.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from bot_core.snapshot import Vec3, WorldSnapshot

from .graph import Route, Waypoint, WaypointAction, WaypointGraph
from .store import GraphStore

log = logging.getLogger(__name__)


class GraphHandler:
    def __init__(
        self,
        store: Optional[GraphStore] = None,
        record_distance: float = 3.0,
        active: str = "default",
    ) -> None:
        self.store = store
        self.record_distance = record_distance
        self.graphs: Dict[str, WaypointGraph] = {}
        self.active_key = active
        self.editing = False
        self.recording = False
        self.dirty = False
        self.last_waypoint: Optional[Waypoint] = None
        self.current_path: List[Vec3] = []
        self.active_graph()

    # ------------------------------------------------------------------
    # Graph selection
    # ------------------------------------------------------------------

    def active_graph(self) -> WaypointGraph:
        if self.active_key not in self.graphs:
            self.graphs[self.active_key] = WaypointGraph()
        return self.graphs[self.active_key]

    def names(self) -> List[str]:
        names = set(self.graphs)
        if self.store is not None:
            names.update(self.store.list_names())
        return sorted(names)

    def switch_graph(self, name: str) -> WaypointGraph:
        self.active_key = name
        log.info("Switched to graph %r", name)
        return self.active_graph()

    def toggle_edit(self, name: str) -> bool:
        """Enter or leave edit mode on `name`; returns the new editing flag."""
        if name not in self.graphs:
            log.warning("Graph %r does not exist", name)
            return self.editing
        self.active_key = name
        if self.editing:
            self.stop_editing()
        else:
            self.start_editing()
        return self.editing

    def start_editing(self) -> None:
        self.editing = True
        self.recording = False
        self.current_path = []
        self.last_waypoint = None
        log.info("Editing graph %r", self.active_key)

    def stop_editing(self) -> None:
        if self.recording:
            self.stop_recording()
        self.editing = False
        if self.dirty and self.store is not None:
            self.save_graph(self.active_key)
        log.info("Stopped editing graph %r", self.active_key)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _require_editing(self, what: str) -> bool:
        if not self.editing:
            log.warning("Must be in edit mode to %s", what)
        return self.editing

    def add_waypoint(self, position: Vec3, action: WaypointAction = WaypointAction.MOVE) -> Optional[Waypoint]:
        """Add a waypoint and chain it to the previous one added."""
        if not self._require_editing("add waypoints"):
            return None
        graph = self.active_graph()
        waypoint = graph.add(position, action)
        if self.last_waypoint is not None and self.last_waypoint.waypoint_id in graph:
            graph.add_edge(self.last_waypoint.waypoint_id, waypoint.waypoint_id)
        self.last_waypoint = waypoint
        self.dirty = True
        log.info("Added waypoint %d at %s", waypoint.waypoint_id, position)
        return waypoint

    def remove_nearest_waypoint(self, position: Vec3, max_distance: float = 5.0) -> Optional[Waypoint]:
        if not self._require_editing("remove waypoints"):
            return None
        removed = self.active_graph().remove_nearest(position, max_distance)
        if removed is None:
            log.warning("No waypoint within %.1f blocks", max_distance)
            return None
        if self.last_waypoint is not None and self.last_waypoint.waypoint_id == removed.waypoint_id:
            self.last_waypoint = None
        self.dirty = True
        log.info("Removed waypoint %d", removed.waypoint_id)
        return removed

    def connect(
        self,
        source: int,
        target: int,
        bidirectional: bool = True,
        transport: Optional[WaypointAction] = None,
    ) -> bool:
        if not self._require_editing("connect waypoints"):
            return False
        self.active_graph().add_edge(source, target, bidirectional, transport)
        self.dirty = True
        return True

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def start_recording(self, position: Vec3) -> bool:
        if not self._require_editing("record"):
            return False
        self.recording = True
        self.current_path = [position]
        log.info("Recording started at %s", position)
        return True

    def update_recording(self, position: Vec3) -> None:
        if not self.recording:
            return
        if not self.current_path or position.distance_to(self.current_path[-1]) >= self.record_distance:
            self.current_path.append(position)

    def on_tick(self, world: WorldSnapshot) -> None:
        self.update_recording(world.player_pos)

    def stop_recording(self) -> List[Waypoint]:
        """Add the recorded chain to the active graph; short chains are dropped."""
        if not self.recording:
            return []
        self.recording = False
        path, self.current_path = self.current_path, []
        if len(path) < 2:
            log.warning("Recorded path too short, not added")
            return []

        graph = self.active_graph()
        added = [graph.add(position) for position in path]
        for first, second in zip(added, added[1:]):
            graph.add_edge(first.waypoint_id, second.waypoint_id)
        self.last_waypoint = added[-1]
        self.dirty = True
        log.info("Added recorded path with %d waypoints", len(added))
        return added

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_path(self, start: Vec3, end: Vec3) -> List[Waypoint]:
        return self.active_graph().find_path(start, end)

    def route_to(self, start: Vec3, end: Vec3) -> Route:
        """Route for RouteNavigator between the waypoints nearest two positions."""
        graph = self.active_graph()
        first = graph.nearest(start)
        last = graph.nearest(end)
        if first is None or last is None:
            return Route(self.active_key)
        return graph.route(self.active_key, first.waypoint_id, last.waypoint_id)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_graph(self, name: str) -> bool:
        if self.store is None or name not in self.graphs:
            log.warning("Cannot save graph %r", name)
            return False
        self.store.save(name, self.graphs[name])
        if name == self.active_key:
            self.dirty = False
        return True

    def load_graph(self, name: str) -> bool:
        """
        Load `name` from the store.

        A missing or invalid file leaves the in-memory graphs untouched and
        returns False.
        """
        if self.store is None:
            return False
        try:
            graph = self.store.load(name)
        except FileNotFoundError:
            log.warning("Graph file for %r does not exist", name)
            return False
        except ValueError:
            log.exception("Graph %r failed validation", name)
            return False
        self.graphs[name] = graph
        return True


__all__ = ["GraphHandler"]
