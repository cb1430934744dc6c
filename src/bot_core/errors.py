# src/bot_core/errors.py
"""
Exceptions raised by bot_core outside the tick loop.

Tick-level failures are never raised; features and macros store typed
error enums instead. These exceptions are for contract violations made by
calling code (planning bugs, misconfiguration).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class BotCoreError(RuntimeError):
    """
    Domain-level error with a stable code and structured details.

    Examples:
        - a path segment that does not continue the previous one
        - a second process-wide context being installed
    """

    code: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"BotCoreError(code={self.code!r}, details={self.details!r})"


class PathContractError(BotCoreError):
    """Queued path segment does not start at the previous goal."""


__all__ = ["BotCoreError", "PathContractError"]
