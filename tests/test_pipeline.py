"""Tests for the pipeline wiring discovery, classification and fan-out."""

import asyncio

import pytest

from mcp_monitor.config import Settings
from mcp_monitor.events import EventType, LogEvent
from mcp_monitor.log_monitor.models import RawLine
from mcp_monitor.pipeline import Pipeline

LOG_NAME = "Cursor MCP.log"


def make_settings(logs_root, **overrides) -> Settings:
    values = dict(
        logs_root=logs_root,
        poll_interval_ms=50,
        reconcile_interval_ms=100,
        console=False,
    )
    values.update(overrides)
    return Settings(**values)


def line(level: str, message: str, client: str = "a602") -> str:
    return f"2025-03-02 12:26:34.698 [{level}] {client}: {message}"


class Collector:
    def __init__(self):
        self.events: list[LogEvent] = []

    async def collect(self, event: LogEvent) -> None:
        self.events.append(event)

    async def wait_for(self, count: int, timeout: float = 5.0) -> list[LogEvent]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while len(self.events) < count and loop.time() < deadline:
            await asyncio.sleep(0.02)
        return self.events


@pytest.fixture
def logs_root(tmp_path):
    root = tmp_path / "logs"
    root.mkdir()
    return root


@pytest.fixture
def collector():
    return Collector()


class TestProcessLine:
    @pytest.mark.asyncio
    async def test_text_filter_is_case_insensitive(self, logs_root, collector):
        pipeline = Pipeline(make_settings(logs_root, filter="NPX"))
        pipeline.dispatcher.on_event(collector.collect)

        kept = await pipeline.process_line(
            RawLine("/logs/s1/Cursor MCP.log", line("info", "Client closed for command npx foo"))
        )
        dropped = await pipeline.process_line(
            RawLine("/logs/s1/Cursor MCP.log", line("info", "Handling CreateClient action"))
        )

        assert kept.event_type == EventType.CLIENT_CLOSED
        assert dropped is None
        assert [e.event_type for e in collector.events] == [EventType.CLIENT_CLOSED]

    @pytest.mark.asyncio
    async def test_verbosity_threshold(self, logs_root, collector):
        pipeline = Pipeline(make_settings(logs_root, verbosity="warning"))
        pipeline.dispatcher.on_event(collector.collect)

        for text in (
            line("info", "Handling CreateClient action"),
            line("debug", "chatter"),
            line("warning", "disk almost full"),
            line("info", "Error in MCP: spawn failed"),
            "No workspace folders found",
        ):
            await pipeline.process_line(RawLine("/logs/s1/Cursor MCP.log", text))

        assert [e.event_type for e in collector.events] == [
            EventType.GENERIC_WARNING,
            EventType.MCP_ERROR,
            EventType.NO_WORKSPACE,
        ]

    @pytest.mark.asyncio
    async def test_debug_verbosity_keeps_everything(self, logs_root, collector):
        pipeline = Pipeline(make_settings(logs_root, verbosity="debug"))
        pipeline.dispatcher.on_event(collector.collect)

        await pipeline.process_line(RawLine("/logs/s1/Cursor MCP.log", line("debug", "chatter")))

        assert [e.event_type for e in collector.events] == [EventType.GENERIC_INFO]

    @pytest.mark.asyncio
    async def test_blank_lines_produce_nothing(self, logs_root, collector):
        pipeline = Pipeline(make_settings(logs_root))
        pipeline.dispatcher.on_event(collector.collect)

        assert await pipeline.process_line(RawLine("/logs/s1/Cursor MCP.log", "  ")) is None
        assert collector.events == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_lines_become_events_in_order(self, logs_root, collector):
        session = logs_root / "20250302T120000" / "window1"
        session.mkdir(parents=True)
        log_file = session / LOG_NAME
        log_file.write_text("")

        pipeline = Pipeline(make_settings(logs_root))
        pipeline.dispatcher.on_event(collector.collect)
        assert await pipeline.start() is True
        try:
            with open(log_file, "a", encoding="utf-8") as f:
                for i in range(5):
                    f.write(line("info", f"step {i}") + "\n")

            events = await collector.wait_for(5)

            assert [e.message for e in events] == [f"step {i}" for i in range(5)]
            assert all(e.file_name == LOG_NAME for e in events)
        finally:
            await pipeline.stop()

        assert pipeline.discovery.tailers == {}
        assert not pipeline.running

    @pytest.mark.asyncio
    async def test_missing_root(self, tmp_path):
        pipeline = Pipeline(make_settings(tmp_path / "missing"))

        assert await pipeline.start() is False
        assert pipeline.running

        await pipeline.stop()
        assert not pipeline.running

    @pytest.mark.asyncio
    async def test_status(self, logs_root):
        session = logs_root / "20250302T120000"
        session.mkdir()
        (session / LOG_NAME).write_text("")

        pipeline = Pipeline(make_settings(logs_root, reconcile_interval_ms=0))
        await pipeline.start()
        try:
            status = pipeline.status()
        finally:
            await pipeline.stop()

        assert status["logsRoot"] == str(logs_root)
        assert status["logPattern"] == LOG_NAME
        assert status["directories"] == [{"path": str(session), "active": True}]
        assert [t["path"] for t in status["tailers"]] == [str(session / LOG_NAME)]
        assert status["tailers"][0]["errorCount"] == 0
        assert status["subscribers"] == 0

    @pytest.mark.asyncio
    async def test_second_start_keeps_running_tasks(self, logs_root, caplog):
        pipeline = Pipeline(make_settings(logs_root))
        await pipeline.start()
        consumer = pipeline._consumer
        root_task = pipeline.discovery._root_task
        reconcile_task = pipeline.discovery._reconcile_task
        try:
            assert await pipeline.start() is True

            assert pipeline._consumer is consumer
            assert pipeline.discovery._root_task is root_task
            assert pipeline.discovery._reconcile_task is reconcile_task
            assert "already running" in caplog.text
        finally:
            await pipeline.stop()

        assert root_task.done()
        assert reconcile_task.done()
