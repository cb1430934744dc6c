# JSON logger subscribing to EventBus
"""
Structured event logging.

Provides:
- JsonFileLogger: subscribes to an EventBus and writes MonitoringEvents as JSONL.
- log_event: convenience helper for publishing MonitoringEvents.

    bus = EventBus()
    JsonFileLogger(Path("logs/monitoring/events.log"), bus)
    log_event(bus, "BlockMiner", EventType.FEATURE_STARTED, "Enabled", {"blocks": 3})
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .bus import EventBus
from .events import EventType, MonitoringEvent

log = logging.getLogger(__name__)


class JsonFileLogger:
    """
    JSON-lines logger for MonitoringEvent instances.

    One JSON object per line, UTF-8, parent directory created on demand.
    """

    def __init__(self, path: Path, bus: EventBus) -> None:
        self._path = path
        self._bus = bus
        path.parent.mkdir(parents=True, exist_ok=True)
        self._file = path.open("a", encoding="utf-8")
        bus.subscribe(self._on_event)

    @property
    def path(self) -> Path:
        return self._path

    def _on_event(self, event: MonitoringEvent) -> None:
        line = json.dumps(event.to_dict(), ensure_ascii=False, default=str)
        try:
            self._file.write(line + "\n")
            self._file.flush()
        except (OSError, ValueError):
            # Disk full or handle closed: drop the line, keep ticking.
            log.warning("Could not write monitoring event to %s", self._path)

    def close(self) -> None:
        """Unsubscribe and close the file. Call at graceful shutdown."""
        self._bus.unsubscribe(self._on_event)
        if not self._file.closed:
            self._file.close()


def log_event(
    bus: Optional[EventBus],
    module: str,
    event_type: EventType,
    message: str,
    payload: Optional[Dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> None:
    """
    Create and publish a MonitoringEvent.

    `bus` may be None, in which case nothing is published; features built
    without a context use this. Without an explicit correlation_id the
    bus's current run id is used.
    """
    if bus is None:
        return
    event = MonitoringEvent(
        ts=time.time(),
        module=module,
        event_type=event_type,
        message=message,
        payload=payload or {},
        correlation_id=correlation_id or bus.correlation_id,
    )
    bus.publish(event)
