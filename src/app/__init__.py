# src/app/__init__.py
"""
Application entrypoints for the miner.

- build_runtime: context + features + macros + control surface
- configure_logging: root logger setup
- safe_tick_with_logging: guarded dispatch for the tick loop
- main: offline dry run on a fake world
"""

from __future__ import annotations

from .error_handling import safe_tick_with_logging
from .logging_config import configure_logging
from .runtime import MinerRuntime, build_runtime, main

__all__ = [
    "MinerRuntime",
    "build_runtime",
    "configure_logging",
    "main",
    "safe_tick_with_logging",
]
