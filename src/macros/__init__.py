# src/macros/__init__.py
"""
Macros: orchestrators that start, watch and stop features.
"""

from .base import Macro, MacroCore, MacroStatus
from .commission_macro import CommissionMacro, CommissionMacroState
from .manager import MacroManager
from .mining_macro import MiningMacro, MiningMacroState

__all__ = [
    "CommissionMacro",
    "CommissionMacroState",
    "Macro",
    "MacroCore",
    "MacroManager",
    "MacroStatus",
    "MiningMacro",
    "MiningMacroState",
]
