"""Wires discovery, tailing, classification and fan-out together."""

import asyncio
from typing import Optional

from .config import Settings
from .events.base import LogEvent
from .events.dispatcher import EventDispatcher
from .events.types import Severity
from .log_monitor.discovery import DiscoveryCascade
from .log_monitor.models import RawLine
from .log_monitor.parser import LogClassifier
from .log_monitor.tailer import LogTailer
from .logger import logger
from .websocket.hub import BroadcastHub


class Pipeline:
    """Owns every moving part of one monitor instance.

    Tailers push raw lines onto a single channel; one consumer task filters,
    classifies and dispatches them, so events from a given file reach the
    sinks in file order.
    """

    def __init__(
        self,
        settings: Settings,
        hub: Optional[BroadcastHub] = None,
        dispatcher: Optional[EventDispatcher] = None,
        classifier: Optional[LogClassifier] = None,
    ):
        self.settings = settings
        self.hub = hub or BroadcastHub(
            send_timeout=settings.broadcast.send_timeout_ms / 1000,
            close_timeout=settings.broadcast.close_timeout_ms / 1000,
        )
        self.dispatcher = dispatcher or EventDispatcher()
        self.classifier = classifier or LogClassifier()

        self.lines: asyncio.Queue[RawLine] = asyncio.Queue()
        self.discovery = DiscoveryCascade(
            settings.logs_root,
            settings.log_pattern,
            self._create_tailer,
            reconcile_interval=settings.reconcile_interval_ms / 1000,
            stop_grace=settings.tailer.stop_grace_ms / 1000,
        )

        self._text_filter = settings.filter.casefold() if settings.filter else None
        self._min_severity = Severity(settings.verbosity)
        self._consumer: Optional[asyncio.Task] = None
        self.dispatcher.on_event(self.hub.broadcast)

    def _create_tailer(self, path: str) -> LogTailer:
        return LogTailer.from_settings(
            path, self.lines, self.settings.poll_interval_ms, self.settings.tailer
        )

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> bool:
        """Start consuming lines and discovering files.

        Returns False if the logs root does not exist; the consumer and
        broadcast hub keep running so subscribers can still connect.
        """
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume(), name="pipeline:consume")
        started = await self.discovery.start()
        if started:
            logger.info(
                f"Monitoring {self.settings.logs_root} for '{self.settings.log_pattern}'"
            )
        return started

    async def stop(self) -> None:
        """Stop discovery and all tailers, drain the channel and close subscribers."""
        await self.discovery.stop()

        consumer = self._consumer
        self._consumer = None
        if consumer is not None:
            grace = self.settings.tailer.stop_grace_ms / 1000
            try:
                await asyncio.wait_for(self.lines.join(), timeout=grace)
            except TimeoutError:
                logger.warning("Timed out draining pending log lines")
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)

        await self.hub.dispose()
        logger.info("Pipeline stopped")

    def accepts_line(self, text: str) -> bool:
        return self._text_filter is None or self._text_filter in text.casefold()

    def accepts_event(self, event: LogEvent) -> bool:
        return event.severity.at_least(self._min_severity)

    async def process_line(self, line: RawLine) -> Optional[LogEvent]:
        """Filter, classify and dispatch one raw line."""
        if not self.accepts_line(line.text):
            return None
        event = self.classifier.classify(line.file_path, line.text)
        if event is None or not self.accepts_event(event):
            return None
        await self.dispatcher.dispatch(event)
        return event

    async def _consume(self) -> None:
        while True:
            line = await self.lines.get()
            try:
                await self.process_line(line)
            except Exception as e:
                logger.error(f"Failed to process line from {line.file_path}: {e}", exc_info=True)
            finally:
                self.lines.task_done()

    def status(self) -> dict:
        return {
            "logsRoot": str(self.settings.logs_root),
            "logPattern": self.settings.log_pattern,
            "directories": [
                {"path": d.path, "active": d.active}
                for d in self.discovery.directories.values()
            ],
            "tailers": [
                {
                    "path": t.path,
                    "state": t.state.value,
                    "offset": t.watched.offset,
                    "errorCount": t.watched.error_count,
                }
                for t in self.discovery.tailers.values()
            ],
            "subscribers": self.hub.client_count,
            "pendingLines": self.lines.qsize(),
        }
