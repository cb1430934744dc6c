# src/macros/manager.py
"""
Registry of macros with at most one active at a time.

on_tick runs the active macro (when its tick gate is open) before the
FeatureManager ticks, so the macro decides which features run this tick.
A macro that disabled itself, or raised, is torn down here: its owned
features are stopped so nothing keeps running without an owner.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from bot_core.snapshot import WorldSnapshot
from features.base import Feature

from .base import Macro, MacroStatus

log = logging.getLogger(__name__)


class MacroManager:
    def __init__(self) -> None:
        self._macros: Dict[str, Macro] = {}
        self._active: Optional[Macro] = None
        # Kept after a stop so status() can still report the last error.
        self._last: Optional[Macro] = None
        self._paused_features: List[Feature] = []

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, macro: Macro) -> Macro:
        if macro.name in self._macros:
            raise ValueError(f"Macro already registered: {macro.name}")
        self._macros[macro.name] = macro
        return macro

    def get(self, name: str) -> Macro:
        """Registered macro by name; KeyError if unknown."""
        return self._macros[name]

    def names(self) -> List[str]:
        return list(self._macros)

    def __contains__(self, name: str) -> bool:
        return name in self._macros

    @property
    def active(self) -> Optional[Macro]:
        return self._active

    def is_running(self) -> bool:
        return self._active is not None and self._active.core.enabled

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self, name: str) -> Macro:
        macro = self.get(name)
        if self._active is not None:
            self.stop()
        log.info("Starting macro %s", name)
        self._active = macro
        self._last = macro
        macro.core.enable()
        macro.on_enable()
        return macro

    def stop(self, reason: Optional[str] = None) -> None:
        macro = self._active
        if macro is None:
            return
        macro.core.disable(reason)
        self._teardown(macro)

    def pause(self) -> None:
        """Pause the macro and the owned features that are running."""
        macro = self._active
        if macro is None or not macro.core.is_running():
            return
        macro.core.pause()
        self._paused_features = [f for f in macro.owned_features() if f.core.is_running()]
        for feature in self._paused_features:
            feature.pause()

    def resume(self) -> None:
        """Resume the macro and only the features pause() suspended."""
        macro = self._active
        if macro is None or not macro.core.paused:
            return
        macro.core.resume()
        paused, self._paused_features = self._paused_features, []
        for feature in paused:
            if feature.core.paused:
                feature.resume()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        macro = self._active
        if macro is None:
            return
        if not macro.core.enabled:
            self._teardown(macro)
            return
        if macro.core.paused or not macro.core.gate_open():
            return

        try:
            macro.on_tick(world)
        except Exception as exc:
            log.exception("Macro %s crashed", macro.name)
            self.stop(f"Macro crashed: {exc}")
            return

        if not macro.core.enabled:
            self._teardown(macro)

    def on_chat(self, message: str) -> None:
        self._forward("on_chat", message)

    def on_packet(self, event: Any) -> None:
        self._forward("on_packet", event)

    def _forward(self, hook: str, payload: Any) -> None:
        macro = self._active
        if macro is None or not macro.core.is_running():
            return
        handler = getattr(macro, hook, None)
        if handler is None:
            return
        try:
            handler(payload)
        except Exception as exc:
            log.exception("Macro %s failed in %s", macro.name, hook)
            self.stop(f"Macro crashed: {exc}")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> MacroStatus:
        macro = self._active or self._last
        if macro is None:
            return MacroStatus()
        return MacroStatus(
            running=macro.core.enabled,
            paused=macro.core.paused,
            macro=macro.name,
            state=macro.current_state(),
            uptime_ms=macro.core.uptime.time_passed(),
            last_error=macro.core.last_error,
            counters=dict(macro.counters()),
        )

    def _teardown(self, macro: Macro) -> None:
        try:
            macro.on_disable()
        finally:
            for feature in macro.owned_features():
                if feature.core.enabled:
                    feature.stop()
            if self._active is macro:
                self._active = None


__all__ = ["MacroManager"]
