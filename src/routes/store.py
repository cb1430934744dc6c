# src/routes/store.py
"""
On-disk persistence for named waypoint graphs.

One file per graph in a directory: `<name>.yaml` (default) or `<name>.json`.
Both hold the same mapping: {"name": ..., "waypoints": [...], "edges": [...]}.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from .graph import WaypointGraph

log = logging.getLogger(__name__)

SUFFIXES = (".yaml", ".yml", ".json")


class GraphStore:
    def __init__(self, directory: Union[str, Path], fmt: str = "yaml") -> None:
        if fmt not in ("yaml", "json"):
            raise ValueError(f"Unsupported graph format: {fmt}")
        self.directory = Path(directory)
        self.fmt = fmt

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}.{self.fmt}"

    def list_names(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(p.stem for p in self.directory.iterdir() if p.suffix in SUFFIXES)

    def exists(self, name: str) -> bool:
        return self._find(name) is not None

    def save(self, name: str, graph: WaypointGraph) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        data: Dict[str, Any] = {"name": name}
        data.update(graph.to_dict())

        path = self.path_for(name)
        with path.open("w", encoding="utf-8") as f:
            if self.fmt == "json":
                json.dump(data, f, indent=2)
            else:
                yaml.safe_dump(data, f, sort_keys=False)
        log.info("Saved graph %r to %s", name, path)
        return path

    def load(self, name: str) -> WaypointGraph:
        """
        Load a graph by name.

        Raises FileNotFoundError when no file exists and ValueError when the
        data is malformed or edges reference missing waypoints.
        """
        path = self._find(name)
        if path is None:
            raise FileNotFoundError(f"No graph named {name!r} in {self.directory}")

        with path.open("r", encoding="utf-8") as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        if data is None:
            data = {}
        graph = WaypointGraph.from_dict(data)
        log.info("Loaded graph %r from %s (%d waypoints)", name, path, len(graph))
        return graph

    def _find(self, name: str) -> Union[Path, None]:
        for suffix in SUFFIXES:
            path = self.directory / f"{name}{suffix}"
            if path.is_file():
                return path
        return None


__all__ = ["GraphStore"]
