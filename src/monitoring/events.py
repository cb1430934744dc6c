# path: src/monitoring/events.py
"""
Event and command schemas for monitoring.

This module defines:
- MonitoringEvent (structured runtime events)
- EventType enum
- ControlCommandType enum
- ControlCommand for human/system-issued controls

All events are JSON-serializable via `.to_dict()` and are intended
for use with monitoring.bus.EventBus and monitoring.logger.JsonFileLogger.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional


# ============================================================
# Event Types
# ============================================================

class EventType(Enum):
    """Typed monitoring events emitted by features, macros and the runtime."""

    # Feature lifecycle
    FEATURE_STARTED = auto()
    FEATURE_STOPPED = auto()
    FEATURE_STATE_CHANGE = auto()
    FEATURE_ERROR = auto()      # typed error recorded, or tick exception isolated

    # Macro lifecycle
    MACRO_STARTED = auto()
    MACRO_STOPPED = auto()
    MACRO_PAUSED = auto()
    MACRO_RESUMED = auto()
    MACRO_STATE_CHANGE = auto()
    MACRO_DISABLED = auto()     # disabled with a user-facing reason

    # Navigation
    PATH_STARTED = auto()
    PATH_FINISHED = auto()
    PATH_FAILED = auto()

    # Full status snapshot (on request)
    SNAPSHOT = auto()

    # Control surface events
    CONTROL_COMMAND = auto()

    # Generic log messages
    LOG = auto()


# ============================================================
# Monitoring Event Structure
# ============================================================

@dataclass
class MonitoringEvent:
    """
    Runtime event emitted by a feature, a macro, the path executor or the
    control surface.

    All fields must be JSON-safe.
    """

    ts: float                   # UNIX timestamp (seconds)
    module: str                 # Source name ("BlockMiner", "MiningMacro", "runtime")
    event_type: EventType
    message: str                # Short human-readable description
    payload: Dict[str, Any]
    correlation_id: Optional[str] = None  # Groups events of one macro run

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dict for loggers."""
        data = asdict(self)
        data["event_type"] = self.event_type.name
        return data


# ============================================================
# Control Commands
# ============================================================

class ControlCommandType(Enum):
    """Commands that humans or tools can send to the running bot."""

    START_MACRO = auto()
    STOP_MACRO = auto()
    PAUSE = auto()
    RESUME = auto()
    START_FEATURE = auto()
    STOP_FEATURE = auto()
    DUMP_STATUS = auto()    # Emit a SNAPSHOT event with macro/feature status


@dataclass
class ControlCommand:
    """
    External command for the bot.

    Sent through EventBus.publish_command(), then interpreted by
    monitoring.controller.MacroController.
    """

    cmd: ControlCommandType
    args: Dict[str, Any]

    @staticmethod
    def start_macro(name: str) -> "ControlCommand":
        return ControlCommand(ControlCommandType.START_MACRO, {"name": name})

    @staticmethod
    def stop_macro() -> "ControlCommand":
        return ControlCommand(ControlCommandType.STOP_MACRO, {})

    @staticmethod
    def pause() -> "ControlCommand":
        return ControlCommand(ControlCommandType.PAUSE, {})

    @staticmethod
    def resume() -> "ControlCommand":
        return ControlCommand(ControlCommandType.RESUME, {})

    @staticmethod
    def start_feature(name: str) -> "ControlCommand":
        return ControlCommand(ControlCommandType.START_FEATURE, {"name": name})

    @staticmethod
    def stop_feature(name: str) -> "ControlCommand":
        return ControlCommand(ControlCommandType.STOP_FEATURE, {"name": name})

    @staticmethod
    def dump_status() -> "ControlCommand":
        return ControlCommand(ControlCommandType.DUMP_STATUS, {})
