#tests/test_monitoring_logger.py
"""
Tests for monitoring.logger.JsonFileLogger and log_event.

Covers:
- JSON structure validity
- Correct field encoding (enum names, payloads)
- Parent directory creation
- log_event with no bus is a no-op
- The bus run id is stamped on events without their own
"""

from __future__ import annotations

import json
from pathlib import Path

from monitoring.bus import EventBus
from monitoring.events import EventType
from monitoring.logger import JsonFileLogger, log_event


def test_json_file_logger_writes_valid_json(tmp_path: Path):
    bus = EventBus()
    log_path = tmp_path / "events.log"

    logger = JsonFileLogger(log_path, bus)
    assert logger.path == log_path

    log_event(
        bus=bus,
        module="BlockMiner",
        event_type=EventType.FEATURE_STATE_CHANGE,
        message="STARTING -> BREAKING",
        payload={"from": "STARTING", "to": "BREAKING"},
        correlation_id="run-123",
    )
    log_event(bus, "BlockMiner", EventType.FEATURE_ERROR, "NOT_ENOUGH_BLOCKS")

    logger.close()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2

    data = json.loads(lines[0])
    assert data["module"] == "BlockMiner"
    assert data["event_type"] == "FEATURE_STATE_CHANGE"
    assert data["payload"] == {"from": "STARTING", "to": "BREAKING"}
    assert data["correlation_id"] == "run-123"
    assert isinstance(data["ts"], (int, float))

    second = json.loads(lines[1])
    assert second["payload"] == {}
    assert second["correlation_id"] is None


def test_logger_parent_dir_created(tmp_path: Path):
    log_path = tmp_path / "nested" / "logs" / "events.log"

    bus = EventBus()
    logger = JsonFileLogger(log_path, bus)
    log_event(bus=bus, module="AutoWarp", event_type=EventType.LOG, message="hello")
    logger.close()

    assert log_path.exists()
    assert log_path.read_text(encoding="utf-8").strip()


def test_closed_logger_stops_writing(tmp_path: Path):
    bus = EventBus()
    log_path = tmp_path / "events.log"
    logger = JsonFileLogger(log_path, bus)
    logger.close()
    logger.close()

    log_event(bus, "runtime", EventType.LOG, "after close")

    assert log_path.read_text(encoding="utf-8") == ""


def test_log_event_without_bus_is_noop():
    log_event(None, "BlockMiner", EventType.LOG, "nobody listens")


def test_log_event_uses_current_run_id():
    bus = EventBus()
    seen = []
    bus.subscribe(seen.append)

    run_id = bus.begin_run("MiningMacro")
    log_event(bus, "BlockMiner", EventType.FEATURE_STARTED, "Enabled")
    log_event(bus, "BlockMiner", EventType.LOG, "explicit", correlation_id="manual")
    bus.end_run()
    log_event(bus, "BlockMiner", EventType.FEATURE_STOPPED, "Disabled")

    assert run_id.startswith("MiningMacro-")
    assert [e.correlation_id for e in seen] == [run_id, "manual", None]
