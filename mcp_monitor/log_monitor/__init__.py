"""
Log monitoring for MCP Monitor.

Discovers Cursor MCP log files, tails them and classifies their lines.
"""

from .discovery import DiscoveryCascade
from .matching import matches_log_pattern
from .parser import LogClassifier
from .tailer import LogTailer

__all__ = [
    "DiscoveryCascade",
    "LogClassifier",
    "LogTailer",
    "matches_log_pattern",
]
