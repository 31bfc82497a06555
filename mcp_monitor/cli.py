import argparse
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from . import __version__
from .config import Settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-monitor",
        description="Cursor MCP Monitor - Real-time monitoring of Model Context Protocol interactions",
    )
    parser.add_argument(
        "--version", action="version", version=f"mcp-monitor {__version__}"
    )
    parser.add_argument(
        "--logs-root", "-l", dest="logs_root", help="Root directory containing Cursor logs"
    )
    parser.add_argument(
        "--poll-interval",
        "-p",
        dest="poll_interval_ms",
        type=int,
        help="Polling interval in milliseconds",
    )
    parser.add_argument(
        "--verbosity",
        "-v",
        dest="verbosity",
        help="Log verbosity level (debug, info, warning, error)",
    )
    parser.add_argument(
        "--log-pattern", "-f", dest="log_pattern", help="Log file pattern to monitor"
    )
    parser.add_argument(
        "--filter", dest="filter", help="Filter log messages containing specific text"
    )
    parser.add_argument("--host", dest="host", help="Address for the web UI and /ws")
    parser.add_argument("--port", dest="port", type=int, help="Port for the web UI and /ws")
    parser.add_argument(
        "--no-console",
        dest="console",
        action="store_false",
        default=None,
        help="Do not print events to the terminal",
    )
    return parser


def parse_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """Parse command line arguments on top of env/config file settings.

    ``--help`` and ``--version`` exit here, before anything starts.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    overrides: dict[str, Any] = {
        key: value for key, value in vars(args).items() if value is not None
    }
    try:
        return Settings(**overrides)
    except ValidationError as e:
        parser.error(str(e))


def main(argv: Optional[Sequence[str]] = None) -> int:
    app_settings = parse_settings(argv)

    import uvicorn

    from .main import create_app

    uvicorn.run(
        create_app(app_settings),
        host=app_settings.host,
        port=app_settings.port,
        reload=False,
        log_level="warning",
    )
    return 0
