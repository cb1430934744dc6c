# src/routes/graph.py

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import networkx as nx

from bot_core.snapshot import Vec3


class WaypointAction(Enum):
    """How the navigator reaches a waypoint."""
    MOVE = "MOVE"
    WALK = "WALK"
    AOTV = "AOTV"
    ETHERWARP = "ETHERWARP"

    @classmethod
    def parse(cls, raw: Any) -> "WaypointAction":
        if isinstance(raw, WaypointAction):
            return raw
        try:
            return cls(str(raw).upper())
        except ValueError:
            return cls.MOVE

    @property
    def is_transport(self) -> bool:
        return self in (WaypointAction.AOTV, WaypointAction.ETHERWARP)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Waypoint:
    """
    A named position plus the action used to get there.

    - waypoint_id: unique within its graph
    - position: world position (block center for recorded points)
    - action: MOVE/WALK walk there, AOTV/ETHERWARP teleport there
    - delay_ms: pause after reaching it before heading to the next one
    """
    waypoint_id: int
    position: Vec3
    action: WaypointAction = WaypointAction.MOVE
    delay_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.waypoint_id,
            "position": [self.position.x, self.position.y, self.position.z],
            "action": self.action.value,
            "delay_ms": self.delay_ms,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Waypoint":
        x, y, z = data["position"]
        return Waypoint(
            waypoint_id=int(data["id"]),
            position=Vec3(float(x), float(y), float(z)),
            action=WaypointAction.parse(data.get("action", "MOVE")),
            delay_ms=float(data.get("delay_ms", 0.0)),
        )


@dataclass(frozen=True)
class Edge:
    source: int
    target: int
    bidirectional: bool = False
    transport: Optional[WaypointAction] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "from": self.source,
            "to": self.target,
            "bidirectional": self.bidirectional,
        }
        if self.transport is not None:
            data["transport"] = self.transport.value
        return data


@dataclass
class Route:
    """Ordered waypoints handed to RouteNavigator."""
    name: str
    waypoints: List[Waypoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.waypoints)

    @staticmethod
    def from_positions(
        name: str,
        positions: Iterable[Vec3],
        action: WaypointAction = WaypointAction.MOVE,
    ) -> "Route":
        return Route(name, [Waypoint(i, p, action) for i, p in enumerate(positions)])


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------

class WaypointGraph:
    """
    Waypoints and the edges between them, backed by a networkx DiGraph.

    A bidirectional edge is stored as two directed edges that both carry
    bidirectional=True. Removing a waypoint drops every edge touching it,
    so edges only ever reference existing waypoints.
    """

    def __init__(self) -> None:
        self._graph = nx.DiGraph()
        self._next_id = 0

    # ---------------------- waypoints -------------------------

    def add(
        self,
        position: Vec3,
        action: WaypointAction = WaypointAction.MOVE,
        delay_ms: float = 0.0,
    ) -> Waypoint:
        waypoint = Waypoint(self._next_id, position, action, delay_ms)
        self.add_waypoint(waypoint)
        return waypoint

    def add_waypoint(self, waypoint: Waypoint) -> None:
        if waypoint.waypoint_id in self._graph:
            raise ValueError(f"Waypoint {waypoint.waypoint_id} already exists")
        self._graph.add_node(waypoint.waypoint_id, waypoint=waypoint)
        self._next_id = max(self._next_id, waypoint.waypoint_id + 1)

    def get(self, waypoint_id: int) -> Waypoint:
        if waypoint_id not in self._graph:
            raise KeyError(waypoint_id)
        return self._graph.nodes[waypoint_id]["waypoint"]

    def __contains__(self, waypoint_id: object) -> bool:
        return waypoint_id in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def waypoints(self) -> List[Waypoint]:
        return [data["waypoint"] for _, data in self._graph.nodes(data=True)]

    def update(
        self,
        waypoint_id: int,
        position: Optional[Vec3] = None,
        action: Optional[WaypointAction] = None,
        delay_ms: Optional[float] = None,
    ) -> Waypoint:
        current = self.get(waypoint_id)
        changes: Dict[str, Any] = {}
        if position is not None:
            changes["position"] = position
        if action is not None:
            changes["action"] = action
        if delay_ms is not None:
            changes["delay_ms"] = delay_ms
        updated = replace(current, **changes)
        self._graph.nodes[waypoint_id]["waypoint"] = updated
        return updated

    def remove(self, waypoint_id: int) -> Waypoint:
        waypoint = self.get(waypoint_id)
        self._graph.remove_node(waypoint_id)
        return waypoint

    def nearest(self, position: Vec3, max_distance: float = math.inf) -> Optional[Waypoint]:
        best: Optional[Waypoint] = None
        best_distance = max_distance
        for waypoint in self.waypoints():
            distance = waypoint.position.distance_to(position)
            if distance < best_distance:
                best, best_distance = waypoint, distance
        return best

    def remove_nearest(self, position: Vec3, max_distance: float = 5.0) -> Optional[Waypoint]:
        waypoint = self.nearest(position, max_distance)
        if waypoint is not None:
            self.remove(waypoint.waypoint_id)
        return waypoint

    # ---------------------- edges -------------------------

    def add_edge(
        self,
        source: int,
        target: int,
        bidirectional: bool = False,
        transport: Optional[WaypointAction] = None,
    ) -> Edge:
        for waypoint_id in (source, target):
            if waypoint_id not in self._graph:
                raise KeyError(waypoint_id)
        attrs = {"bidirectional": bidirectional, "transport": transport}
        self._graph.add_edge(source, target, **attrs)
        if bidirectional:
            self._graph.add_edge(target, source, **attrs)
        return Edge(source, target, bidirectional, transport)

    def remove_edge(self, source: int, target: int) -> None:
        if not self._graph.has_edge(source, target):
            return
        bidirectional = self._graph.edges[source, target]["bidirectional"]
        self._graph.remove_edge(source, target)
        if bidirectional and self._graph.has_edge(target, source):
            self._graph.remove_edge(target, source)

    def has_edge(self, source: int, target: int) -> bool:
        return self._graph.has_edge(source, target)

    def neighbors(self, waypoint_id: int) -> List[Waypoint]:
        return [self.get(n) for n in self._graph.successors(waypoint_id)]

    def edges(self) -> List[Edge]:
        """Each bidirectional pair is listed once."""
        result: List[Edge] = []
        seen = set()
        for source, target, data in self._graph.edges(data=True):
            if data["bidirectional"]:
                key = frozenset((source, target))
                if key in seen:
                    continue
                seen.add(key)
            result.append(Edge(source, target, data["bidirectional"], data["transport"]))
        return result

    # ---------------------- paths -------------------------

    def shortest_path(self, start_id: int, end_id: int) -> List[Waypoint]:
        """Fewest-hops path (breadth first); [] when unreachable."""
        if start_id not in self._graph or end_id not in self._graph:
            return []
        try:
            ids = nx.shortest_path(self._graph, start_id, end_id)
        except nx.NetworkXNoPath:
            return []
        return [self.get(i) for i in ids]

    def find_path(self, start: Vec3, end: Vec3) -> List[Waypoint]:
        """Path between the waypoints nearest to two positions."""
        first = self.nearest(start)
        last = self.nearest(end)
        if first is None or last is None:
            return []
        return self.shortest_path(first.waypoint_id, last.waypoint_id)

    def route(self, name: str, start_id: int, end_id: int) -> Route:
        """
        Route along the shortest path.

        A transport tag on the edge leading into a waypoint overrides that
        waypoint's own action.
        """
        path = self.shortest_path(start_id, end_id)
        waypoints: List[Waypoint] = []
        previous: Optional[Waypoint] = None
        for waypoint in path:
            if previous is not None:
                transport = self._graph.edges[previous.waypoint_id, waypoint.waypoint_id]["transport"]
                if transport is not None:
                    waypoint = replace(waypoint, action=transport)
            waypoints.append(waypoint)
            previous = waypoint
        return Route(name, waypoints)

    # ---------------------- (de)serialisation -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "waypoints": [w.to_dict() for w in self.waypoints()],
            "edges": [e.to_dict() for e in self.edges()],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "WaypointGraph":
        problems = validate_graph_data(data)
        if problems:
            raise ValueError("Invalid graph data: " + "; ".join(problems))

        graph = WaypointGraph()
        for raw in data.get("waypoints", []) or []:
            graph.add_waypoint(Waypoint.from_dict(raw))
        for raw in data.get("edges", []) or []:
            transport = raw.get("transport")
            graph.add_edge(
                int(raw["from"]),
                int(raw["to"]),
                bidirectional=bool(raw.get("bidirectional", False)),
                transport=WaypointAction.parse(transport) if transport else None,
            )
        return graph


def validate_graph_data(data: Any) -> List[str]:
    """List the problems in loaded graph data; empty when it is usable."""
    if not isinstance(data, dict):
        return ["graph data must be a mapping"]

    problems: List[str] = []
    ids = set()
    for raw in data.get("waypoints", []) or []:
        if not isinstance(raw, dict) or "id" not in raw or "position" not in raw:
            problems.append(f"malformed waypoint {raw!r}")
            continue
        position = raw["position"]
        if not isinstance(position, (list, tuple)) or len(position) != 3:
            problems.append(f"waypoint {raw['id']} has a bad position")
        if raw["id"] in ids:
            problems.append(f"duplicate waypoint id {raw['id']}")
        ids.add(raw["id"])

    for raw in data.get("edges", []) or []:
        if not isinstance(raw, dict) or "from" not in raw or "to" not in raw:
            problems.append(f"malformed edge {raw!r}")
            continue
        for end in ("from", "to"):
            if raw[end] not in ids:
                problems.append(f"edge references unknown waypoint {raw[end]}")
    return problems


__all__ = [
    "Edge",
    "Route",
    "Waypoint",
    "WaypointAction",
    "WaypointGraph",
    "validate_graph_data",
]
