#tests/test_monitoring_event_bus.py
"""
Tests for monitoring.bus.EventBus

Covers:
- Publish/subscribe ordering
- Unsubscribe (also for unknown callables)
- A failing subscriber or command handler does not reach the publisher
- Control commands reach every handler
- Basic thread-safety smoke check
"""

from __future__ import annotations

import threading
from typing import List

from monitoring.bus import EventBus
from monitoring.events import ControlCommand, ControlCommandType, EventType, MonitoringEvent


def make_event(ts: float, module: str = "BlockMiner", msg: str = "msg") -> MonitoringEvent:
    return MonitoringEvent(
        ts=ts,
        module=module,
        event_type=EventType.FEATURE_STATE_CHANGE,
        message=msg,
        payload={"from": "STARTING", "to": "BREAKING"},
        correlation_id=None,
    )


def test_event_bus_publish_in_order():
    bus = EventBus()
    seen: List[int] = []
    bus.subscribe(lambda evt: seen.append(int(evt.ts)))

    for ts in [1, 2, 3, 4, 5]:
        bus.publish(make_event(float(ts)))

    assert seen == [1, 2, 3, 4, 5]


def test_event_bus_unsubscribe():
    bus = EventBus()
    received: List[MonitoringEvent] = []

    def subscriber(evt: MonitoringEvent) -> None:
        received.append(evt)

    bus.subscribe(subscriber)
    bus.unsubscribe(subscriber)
    bus.unsubscribe(subscriber)

    bus.publish(make_event(1.0))

    assert received == []


def test_failing_subscriber_is_isolated():
    bus = EventBus()
    received: List[MonitoringEvent] = []

    def broken(evt: MonitoringEvent) -> None:
        raise RuntimeError("dashboard crashed")

    bus.subscribe(broken)
    bus.subscribe(received.append)

    bus.publish(make_event(1.0))

    assert len(received) == 1


def test_commands_reach_every_handler():
    bus = EventBus()
    seen: List[ControlCommandType] = []

    def broken(cmd: ControlCommand) -> None:
        raise KeyError(cmd.args["name"])

    bus.subscribe_commands(broken)
    bus.subscribe_commands(lambda cmd: seen.append(cmd.cmd))

    bus.publish_command(ControlCommand(cmd=ControlCommandType.STOP_FEATURE, args={"name": "Missing"}))
    assert seen == [ControlCommandType.STOP_FEATURE]

    bus.clear()
    bus.publish_command(ControlCommand(cmd=ControlCommandType.PAUSE, args={}))
    assert seen == [ControlCommandType.STOP_FEATURE]


def test_event_bus_thread_safety_smoke():
    """
    Smoke test: multiple threads publishing simultaneously should not crash
    and subscribers should receive the correct number of events.
    """
    bus = EventBus()
    count = 100

    received: List[MonitoringEvent] = []
    lock = threading.Lock()

    def subscriber(evt: MonitoringEvent) -> None:
        with lock:
            received.append(evt)

    bus.subscribe(subscriber)

    def publisher_thread(start: int) -> None:
        for i in range(start, start + count):
            bus.publish(make_event(float(i)))

    threads = [
        threading.Thread(target=publisher_thread, args=(0,)),
        threading.Thread(target=publisher_thread, args=(1000,)),
    ]

    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(received) == 2 * count
