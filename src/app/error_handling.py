# src/app/error_handling.py

"""
Error handling helpers for the tick loop.

Features and macros already isolate their own failures; what reaches this
layer is a contract error (BotCoreError) or a bug in the runtime itself.
"""

from __future__ import annotations

from typing import Optional

from bot_core.adapter import WorldEvent
from bot_core.runtime import CoreRuntime
from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import log_event


def safe_tick_with_logging(
    runtime: CoreRuntime,
    event: WorldEvent,
    bus: Optional[EventBus],
    correlation_id: Optional[str] = None,
) -> None:
    """
    Call runtime.dispatch(event) inside a try/except block.

    If dispatch throws, we:
    - Emit a LOG event with subtype "TICK_EXCEPTION".
    - Re-raise the exception so the caller decides whether to abort
      or continue.
    """
    try:
        runtime.dispatch(event)
    except Exception as exc:
        log_event(
            bus=bus,
            module="runtime.safe_tick",
            event_type=EventType.LOG,
            message="Event dispatch raised an exception",
            payload={
                "subtype": "TICK_EXCEPTION",
                "event": type(event).__name__,
                "tick": runtime.ticks,
                "exception_repr": repr(exc),
            },
            correlation_id=correlation_id,
        )
        raise
