"""Real-time monitor for Cursor MCP log files."""

__version__ = "0.3.0"
