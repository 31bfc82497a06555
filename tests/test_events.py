"""Tests for event system (dispatcher, event model and event types)."""

import asyncio
import json
from datetime import datetime
from typing import List

import pytest
from pydantic import ValidationError

from mcp_monitor.events import EventDispatcher, EventType, LogEvent, Severity


def make_event(
    event_type: EventType = EventType.CREATED_CLIENT, message: str = "Handling CreateClient action"
) -> LogEvent:
    return LogEvent(
        event_type=event_type,
        timestamp=datetime(2025, 3, 2, 12, 26, 34, 698000),
        client_id="a602",
        message=message,
        file_path="/logs/20250302T120000/window1/Cursor MCP.log",
    )


class TestEventDispatcher:
    """Test event dispatcher functionality."""

    @pytest.mark.asyncio
    async def test_dispatch_to_async_handler(self):
        """Test dispatching an event to a registered async handler."""
        dispatcher = EventDispatcher()
        received_events: List[LogEvent] = []

        async def async_handler(event: LogEvent) -> None:
            received_events.append(event)

        dispatcher.on_event(async_handler)

        await dispatcher.dispatch(make_event())

        assert len(received_events) == 1
        assert received_events[0].client_id == "a602"

    @pytest.mark.asyncio
    async def test_dispatch_with_multiple_handlers(self):
        """Test dispatching event to async and sync handlers."""
        dispatcher = EventDispatcher()
        handler1_calls = []
        handler2_calls = []

        async def handler1(event: LogEvent) -> None:
            handler1_calls.append(event)

        def handler2(event: LogEvent) -> None:
            handler2_calls.append(event)

        dispatcher.on_event(handler1)
        dispatcher.on_event(handler2)

        await dispatcher.dispatch(make_event())

        # dispatch waits for every handler, sync ones included
        assert len(handler1_calls) == 1
        assert len(handler2_calls) == 1

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, caplog):
        """Test one handler raising does not prevent delivery to the others."""
        dispatcher = EventDispatcher()
        delivered = asyncio.Event()

        async def broken(event: LogEvent) -> None:
            raise RuntimeError("sink exploded")

        async def working(event: LogEvent) -> None:
            delivered.set()

        dispatcher.on_event(broken)
        dispatcher.on_event(working)

        await dispatcher.dispatch(make_event())

        assert delivered.is_set()
        assert "sink exploded" in caplog.text
        assert "failed for event CreateClient" in caplog.text

    @pytest.mark.asyncio
    async def test_bound_async_method_handler(self):
        """Test async methods (like a hub's broadcast) are awaited, not threaded."""

        class Sink:
            def __init__(self):
                self.events = []

            async def receive(self, event: LogEvent) -> None:
                self.events.append(event)

        sink = Sink()
        dispatcher = EventDispatcher()
        dispatcher.on_event(sink.receive)

        await dispatcher.dispatch(make_event())

        assert len(sink.events) == 1

    @pytest.mark.asyncio
    async def test_no_handlers(self, caplog):
        """Test dispatching with no handlers registered is a no-op."""
        dispatcher = EventDispatcher()

        await dispatcher.dispatch(make_event())

        assert "No handlers registered" in caplog.text


class TestLogEvent:
    """Test the event model and its wire payload."""

    def test_wire_payload(self):
        event = make_event()

        assert event.to_wire() == {
            "type": "CreateClient",
            "timestamp": "2025-03-02 12:26:34.698",
            "clientId": "a602",
            "message": "Handling CreateClient action",
            "fileName": "Cursor MCP.log",
        }

    def test_json_is_compact_and_keeps_unicode(self):
        event = make_event(EventType.RAW, "naïve → log")

        payload = event.to_json()

        assert payload.startswith('{"type":"Raw",')
        assert "naïve → log" in payload
        assert json.loads(payload)["message"] == "naïve → log"

    def test_events_are_immutable(self):
        event = make_event()

        with pytest.raises(ValidationError):
            event.message = "changed"


class TestEventTypes:
    def test_structured_flag(self):
        assert EventType.CREATED_CLIENT.is_structured
        assert EventType.GENERIC_WARNING.is_structured
        assert not EventType.NO_WORKSPACE.is_structured
        assert not EventType.RAW.is_structured

    @pytest.mark.parametrize(
        "severity,minimum,expected",
        [
            (Severity.ERROR, "warning", True),
            (Severity.WARNING, "warning", True),
            (Severity.INFO, "warning", False),
            (Severity.DEBUG, "info", False),
            (Severity.DEBUG, Severity.DEBUG, True),
        ],
    )
    def test_severity_threshold(self, severity, minimum, expected):
        assert severity.at_least(minimum) is expected
