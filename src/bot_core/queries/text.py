# src/bot_core/queries/text.py
"""
Tablist / scoreboard text helpers.

The server renders most game state as formatted text lines. These helpers
strip the "§x" formatting codes and pull out the few values the features
need: current area, commission progress, cold, powder counts.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from ..snapshot import WorldSnapshot

_CONTROL_CODE_RE = re.compile(r"§[0-9a-fk-or]", re.IGNORECASE)
_COMMISSION_RE = re.compile(r"^\s*([A-Za-z][A-Za-z' ]+?):\s*(DONE|[\d.]+%)\s*$")
_AREA_RE = re.compile(r"^\s*(?:Area|Dungeon):\s*(.+?)\s*$")
_SCOREBOARD_AREA_RE = re.compile(r"^\s*[⏣ф]\s*(.+?)\s*$")
_COLD_RE = re.compile(r"Cold:\s*(-?\d+)")
_POWDER_RE = re.compile(r"^\s*(Mithril|Gemstone|Glacite)(?: Powder)?:\s*([\d,]+)\s*$")


def strip_control_codes(text: Optional[str]) -> str:
    if not text:
        return ""
    return _CONTROL_CODE_RE.sub("", text)


def clean_lines(lines: Iterable[str]) -> List[str]:
    return [strip_control_codes(line) for line in lines]


def find_line(lines: Iterable[str], needle: str) -> Optional[str]:
    """First cleaned line containing `needle`."""
    for line in clean_lines(lines):
        if needle in line:
            return line
    return None


def lines_containing(lines: Iterable[str], needle: str) -> List[str]:
    return [line for line in clean_lines(lines) if needle in line]


def commission_progress(tablist: Iterable[str]) -> Dict[str, float]:
    """
    Commission name -> completion in [0, 1].

    Lines look like " Goblin Slayer: 45%" or " Mithril Miner: DONE".
    """
    progress: Dict[str, float] = {}
    in_section = False
    for line in clean_lines(tablist):
        stripped = line.strip()
        if stripped.startswith("Commissions"):
            in_section = True
            continue
        if in_section and not stripped:
            break
        match = _COMMISSION_RE.match(line)
        if not in_section or match is None:
            continue
        name, value = match.group(1).strip(), match.group(2)
        if value == "DONE":
            progress[name] = 1.0
        else:
            try:
                progress[name] = float(value.rstrip("%")) / 100.0
            except ValueError:
                continue
    return progress


def completed_commissions(tablist: Iterable[str]) -> List[str]:
    return [name for name, value in commission_progress(tablist).items() if value >= 1.0]


def current_area(world: WorldSnapshot) -> Optional[str]:
    """Area from the tablist ("Area: X") or the scoreboard ("⏣ X")."""
    for line in clean_lines(world.tablist):
        match = _AREA_RE.match(line)
        if match:
            return match.group(1)
    for line in clean_lines(world.scoreboard):
        match = _SCOREBOARD_AREA_RE.match(line)
        if match:
            return match.group(1)
    return None


def is_in_location(world: WorldSnapshot, name: str) -> bool:
    needle = name.lower()
    area = current_area(world)
    if area is not None and needle in area.lower():
        return True
    return any(needle in line.lower() for line in clean_lines(world.scoreboard))


def cold_level(world: WorldSnapshot) -> int:
    for line in clean_lines(world.scoreboard):
        match = _COLD_RE.search(line)
        if match:
            return int(match.group(1))
    return 0


def powder_counts(world: WorldSnapshot) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for line in clean_lines(world.tablist) + clean_lines(world.scoreboard):
        match = _POWDER_RE.match(line)
        if match:
            counts[match.group(1)] = int(match.group(2).replace(",", ""))
    return counts


__all__ = [
    "clean_lines",
    "cold_level",
    "commission_progress",
    "completed_commissions",
    "current_area",
    "find_line",
    "is_in_location",
    "lines_containing",
    "powder_counts",
    "strip_control_codes",
]
