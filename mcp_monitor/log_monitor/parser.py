"""Classifier turning Cursor MCP log lines into events."""

import re
from datetime import datetime
from typing import Optional

from ..events.base import TIMESTAMP_FORMAT, LogEvent
from ..events.types import EventType, Severity

# 2025-03-02 12:26:34.698 [info] a602: Handling CreateClient action
LOG_LINE_PATTERN = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}) "
    r"\[(?P<level>\w+)\]\s+(?P<client_id>\w+):\s+(?P<message>.*)$"
)

# First match wins
STRUCTURED_KEYWORDS: list[tuple[str, EventType, Severity]] = [
    ("CreateClient action", EventType.CREATED_CLIENT, Severity.INFO),
    ("ListOfferings action", EventType.LISTED_OFFERINGS, Severity.INFO),
    ("Error in MCP:", EventType.MCP_ERROR, Severity.ERROR),
    ("Client closed for command", EventType.CLIENT_CLOSED, Severity.WARNING),
    ("Successfully connected to stdio server", EventType.CONNECTED, Severity.INFO),
]

UNSTRUCTURED_KEYWORDS: list[tuple[str, EventType, Severity]] = [
    ("No server info found", EventType.NO_SERVER_INFO, Severity.ERROR),
    ("unrecognized_keys", EventType.UNRECOGNIZED_KEYS, Severity.ERROR),
    ("No workspace folders found", EventType.NO_WORKSPACE, Severity.WARNING),
]


def _contains(text: str, keyword: str) -> bool:
    return keyword.casefold() in text.casefold()


class LogClassifier:
    """Parses Cursor MCP log lines into LogEvents.

    Stateless: the same line always yields the same category.
    """

    def classify(self, file_path: str, line: str) -> Optional[LogEvent]:
        """Classify a raw log line.

        Args:
            file_path: Path of the file the line came from
            line: Raw line without its terminator

        Returns:
            LogEvent, or None for blank lines
        """
        if not line or not line.strip():
            return None

        match = LOG_LINE_PATTERN.match(line)
        if not match:
            return self._classify_unstructured(file_path, line)

        level = match.group("level")
        message = match.group("message")
        event_type, severity = self._structured_category(level, message)

        return LogEvent(
            event_type=event_type,
            severity=severity,
            timestamp=self._parse_timestamp(match.group("timestamp")),
            client_id=match.group("client_id"),
            level=level,
            message=message,
            file_path=file_path,
        )

    def _structured_category(
        self, level: str, message: str
    ) -> tuple[EventType, Severity]:
        for keyword, event_type, severity in STRUCTURED_KEYWORDS:
            if _contains(message, keyword):
                return event_type, severity

        match level.lower():
            case "error":
                return EventType.GENERIC_ERROR, Severity.ERROR
            case "warning" | "warn":
                return EventType.GENERIC_WARNING, Severity.WARNING
            case "debug" | "trace":
                return EventType.GENERIC_INFO, Severity.DEBUG
            case _:
                return EventType.GENERIC_INFO, Severity.INFO

    def _classify_unstructured(self, file_path: str, line: str) -> LogEvent:
        event_type, severity = EventType.RAW, Severity.INFO
        for keyword, candidate, candidate_severity in UNSTRUCTURED_KEYWORDS:
            if _contains(line, keyword):
                event_type, severity = candidate, candidate_severity
                break

        return LogEvent(
            event_type=event_type,
            severity=severity,
            message=line,
            file_path=file_path,
        )

    @staticmethod
    def _parse_timestamp(value: str) -> datetime:
        try:
            return datetime.strptime(value, TIMESTAMP_FORMAT)
        except ValueError:
            # Shape matched but the date itself is invalid, e.g. month 13
            return datetime.now()
