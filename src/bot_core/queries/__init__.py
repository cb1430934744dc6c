# src/bot_core/queries/__init__.py
"""
Read-only world query helpers.

- blocks: scanning, ranking, dig faces, standing spots
- entities: mobs, NPCs, name-tag health
- inventory: hotbar/inventory/container item lookups
- text: tablist and scoreboard parsing
"""

from __future__ import annotations

from . import blocks, entities, inventory, text

__all__ = ["blocks", "entities", "inventory", "text"]
