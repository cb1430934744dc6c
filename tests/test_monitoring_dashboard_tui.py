#tests/test_monitoring_dashboard_tui.py
"""
Smoke tests for monitoring.dashboard_tui.StatusDashboard.

Covers:
- Feature lifecycle events patch the feature table
- Errors are kept up to max_errors
- Layout builds cleanly with and without a status source
"""

from __future__ import annotations

from rich.console import Console

from monitoring.bus import EventBus
from monitoring.dashboard_tui import StatusDashboard, _format_uptime
from monitoring.events import EventType, MonitoringEvent


def make_event(event_type: EventType, module: str = "BlockMiner", message: str = "", payload=None) -> MonitoringEvent:
    return MonitoringEvent(
        ts=0.0,
        module=module,
        event_type=event_type,
        message=message,
        payload=payload or {},
        correlation_id=None,
    )


def test_feature_events_update_table():
    bus = EventBus()
    dashboard = StatusDashboard(bus)

    bus.publish(make_event(EventType.FEATURE_STARTED))
    assert dashboard.feature_states == {"BlockMiner": "STARTED"}

    bus.publish(make_event(EventType.FEATURE_STATE_CHANGE, payload={"from": "STARTING", "to": "BREAKING"}))
    assert dashboard.feature_states["BlockMiner"] == "BREAKING"

    bus.publish(make_event(EventType.FEATURE_STOPPED))
    assert dashboard.feature_states == {}


def test_errors_are_bounded():
    bus = EventBus()
    dashboard = StatusDashboard(bus, max_errors=2)

    bus.publish(make_event(EventType.FEATURE_ERROR, message="NO_TOOLS_AVAILABLE"))
    bus.publish(make_event(EventType.FEATURE_ERROR, module="AutoWarp", message="WARP_FAILED"))
    bus.publish(make_event(EventType.MACRO_DISABLED, module="MiningMacro", message="Not enough blocks"))

    assert list(dashboard.errors) == ["AutoWarp: WARP_FAILED", "MiningMacro: Not enough blocks"]


def test_layout_renders_with_status():
    bus = EventBus()
    status = {
        "running": True,
        "paused": True,
        "macro": "MiningMacro",
        "state": "MINING",
        "uptime_ms": 3_725_000.0,
        "last_error": None,
        "counters": {"blocks_mined": 12},
        "features": ["BlockMiner"],
    }
    dashboard = StatusDashboard(bus, status_fn=lambda: status)
    bus.publish(make_event(EventType.FEATURE_STARTED))

    layout = dashboard.build_layout()
    assert layout is not None

    console = Console(record=True, width=100)
    console.print(dashboard.render_macro_panel())
    text = console.export_text()
    assert "MiningMacro" in text
    assert "(paused)" in text
    assert "01:02:05" in text
    assert "blocks_mined=12" in text


def test_layout_renders_without_status():
    bus = EventBus()
    dashboard = StatusDashboard(bus)

    assert dashboard.build_layout() is not None

    dashboard.close()
    bus.publish(make_event(EventType.FEATURE_STARTED))
    assert dashboard.feature_states == {}


def test_format_uptime():
    assert _format_uptime(0) == "00:00:00"
    assert _format_uptime(61_999) == "00:01:01"
