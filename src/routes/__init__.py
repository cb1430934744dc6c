# src/routes/__init__.py
"""
Waypoint graphs and routes used by navigation features.
"""

from .graph import Edge, Route, Waypoint, WaypointAction, WaypointGraph, validate_graph_data
from .handler import GraphHandler
from .store import GraphStore

__all__ = [
    "Edge",
    "GraphHandler",
    "GraphStore",
    "Route",
    "Waypoint",
    "WaypointAction",
    "WaypointGraph",
    "validate_graph_data",
]
