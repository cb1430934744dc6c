# src/monitoring/controller.py
"""
Control surface for the running bot.

MacroController subscribes to ControlCommand messages on the EventBus and
forwards them to the MacroManager / FeatureManager held by the context.

Supported commands (ControlCommandType):
- START_MACRO    -> args {"name": <macro>}
- STOP_MACRO     -> stop the active macro (its owned features too)
- PAUSE / RESUME -> pause or resume the active macro and its features
- START_FEATURE  -> args {"name": <feature>, "kwargs": {...}} for start()
- STOP_FEATURE   -> args {"name": <feature>}
- DUMP_STATUS    -> emit a SNAPSHOT event with status()

Unknown macro or feature names raise KeyError from handle(); when the
command arrives through the bus the bus logs it and carries on.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Any, Dict, List

from .bus import EventBus
from .events import ControlCommand, ControlCommandType, EventType
from .logger import log_event

if TYPE_CHECKING:
    from bot_core.context import BotContext


class MacroController:
    def __init__(self, ctx: "BotContext", bus: EventBus) -> None:
        self._ctx = ctx
        self._bus = bus
        self._bus.subscribe_commands(self.handle)

    def close(self) -> None:
        self._bus.unsubscribe_commands(self.handle)

    # --------------------------------------------------------
    # Command handling
    # --------------------------------------------------------

    def handle(self, cmd: ControlCommand) -> None:
        macros = self._ctx.macros
        features = self._ctx.features

        if cmd.cmd == ControlCommandType.START_MACRO:
            name = cmd.args["name"]
            macros.start(name)
            self._log_control("START_MACRO", {"name": name})

        elif cmd.cmd == ControlCommandType.STOP_MACRO:
            macros.stop()
            self._log_control("STOP_MACRO", {})

        elif cmd.cmd == ControlCommandType.PAUSE:
            macros.pause()
            self._log_control("PAUSE", {"paused": True})

        elif cmd.cmd == ControlCommandType.RESUME:
            macros.resume()
            self._log_control("RESUME", {"paused": False})

        elif cmd.cmd == ControlCommandType.START_FEATURE:
            name = cmd.args["name"]
            feature: Any = features.get(name)
            feature.start(**dict(cmd.args.get("kwargs") or {}))
            self._log_control("START_FEATURE", {"name": name})

        elif cmd.cmd == ControlCommandType.STOP_FEATURE:
            name = cmd.args["name"]
            features.get(name).stop()
            self._log_control("STOP_FEATURE", {"name": name})

        elif cmd.cmd == ControlCommandType.DUMP_STATUS:
            self._log_snapshot(self.status())

    # --------------------------------------------------------
    # Introspection
    # --------------------------------------------------------

    def running_features(self) -> List[str]:
        return [f.name for f in self._ctx.features.running()]

    def status(self) -> Dict[str, Any]:
        """JSON-safe status of the macro layer plus running features."""
        state = asdict(self._ctx.macros.status())
        state["features"] = self.running_features()
        return state

    # --------------------------------------------------------
    # Logging helpers
    # --------------------------------------------------------

    def _log_control(self, cmd_name: str, payload: Dict[str, Any]) -> None:
        log_event(
            bus=self._bus,
            module="controller",
            event_type=EventType.CONTROL_COMMAND,
            message=f"Control command: {cmd_name}",
            payload={"cmd": cmd_name, **payload},
        )

    def _log_snapshot(self, state: Dict[str, Any]) -> None:
        log_event(
            bus=self._bus,
            module="controller",
            event_type=EventType.SNAPSHOT,
            message="Macro status snapshot",
            payload={"state": state},
        )


__all__ = ["MacroController"]
