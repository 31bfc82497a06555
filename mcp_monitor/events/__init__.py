"""
Event types for MCP Monitor.

Classified log lines become immutable ``LogEvent`` values which the
dispatcher hands to every registered sink.
"""

from .base import LogEvent
from .dispatcher import EventDispatcher
from .types import EventType, Severity

__all__ = [
    "EventDispatcher",
    "EventType",
    "LogEvent",
    "Severity",
]
