# src/features/manager.py
"""
Registry of every Feature and the fan-out of world events to them.

Delivery follows registration order. Tick, chat and packet events go to
running features only; world load/unload goes to every feature. A feature
that raises is logged and reported on the bus; the remaining features still
receive the event.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Iterator, List, Optional

from bot_core.snapshot import WorldSnapshot
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event

from .base import Feature

log = logging.getLogger(__name__)


class FeatureManager:
    def __init__(self, bus: Optional[EventBus] = None) -> None:
        self._features: Dict[str, Feature] = {}
        self._bus = bus

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, feature: Feature) -> Feature:
        if feature.name in self._features:
            raise ValueError(f"Feature already registered: {feature.name}")
        self._features[feature.name] = feature
        log.debug("Registered feature %s", feature.name)
        return feature

    def unregister(self, name: str) -> None:
        self._features.pop(name, None)

    def get(self, name: str) -> Feature:
        """Registered feature by name; KeyError if unknown."""
        return self._features[name]

    def __contains__(self, name: str) -> bool:
        return name in self._features

    def __iter__(self) -> Iterator[Feature]:
        return iter(list(self._features.values()))

    def names(self) -> List[str]:
        return list(self._features)

    def running(self) -> List[Feature]:
        return [f for f in self._features.values() if f.core.is_running()]

    # ------------------------------------------------------------------
    # Bulk lifecycle
    # ------------------------------------------------------------------

    def stop_all(self) -> None:
        for feature in self:
            if feature.core.enabled:
                feature.stop()

    def failsafes_to_ignore(self) -> FrozenSet[str]:
        """Union of the ignore-sets of all running features."""
        ignored: set = set()
        for feature in self.running():
            ignored |= feature.core.failsafes_to_ignore
        return frozenset(ignored)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def on_tick(self, world: WorldSnapshot) -> None:
        for feature in self.running():
            self._deliver(feature, "on_tick", world)

    def on_chat(self, message: str) -> None:
        self._fan_out("on_chat", message)

    def on_packet(self, event: Any) -> None:
        self._fan_out("on_packet", event)

    def on_block_change(self, event: Any) -> None:
        self._fan_out("on_block_change", event)

    def on_window(self, event: Any) -> None:
        self._fan_out("on_window", event)

    def on_entity(self, event: Any) -> None:
        self._fan_out("on_entity", event)

    def on_world_load(self, event: Any) -> None:
        self._fan_out("on_world_load", event, running_only=False)

    def on_world_unload(self, event: Any) -> None:
        self._fan_out("on_world_unload", event, running_only=False)

    def _fan_out(self, hook: str, payload: Any, running_only: bool = True) -> None:
        targets = self.running() if running_only else list(self)
        for feature in targets:
            if getattr(feature, hook, None) is not None:
                self._deliver(feature, hook, payload)

    def _deliver(self, feature: Feature, hook: str, payload: Any) -> None:
        try:
            getattr(feature, hook)(payload)
        except Exception as exc:
            log.exception("Feature %s failed in %s", feature.name, hook)
            log_event(
                self._bus,
                feature.name,
                EventType.FEATURE_ERROR,
                f"Exception in {hook}",
                {"hook": hook, "exception_repr": repr(exc)},
            )


__all__ = ["FeatureManager"]
