# src/bot_core/testing/__init__.py
"""Fakes for exercising features without a game client."""

from .fakes import STONE, FakeWorldAdapter, ManualTime, SentCommand, WorldBuilder

__all__ = ["FakeWorldAdapter", "ManualTime", "STONE", "SentCommand", "WorldBuilder"]
