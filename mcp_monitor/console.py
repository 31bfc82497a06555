"""Color-coded console output of classified events."""

from typing import Optional

from rich.console import Console
from rich.text import Text

from .config import Settings
from .events.base import LogEvent, format_timestamp
from .events.types import EventType

STYLE_SUCCESS = "green"
STYLE_HIGHLIGHT = "cyan"
STYLE_ERROR = "red"
STYLE_WARNING = "yellow"
STYLE_INFO = "grey70"

EVENT_STYLES: dict[EventType, str] = {
    EventType.CREATED_CLIENT: STYLE_SUCCESS,
    EventType.CONNECTED: STYLE_SUCCESS,
    EventType.LISTED_OFFERINGS: STYLE_HIGHLIGHT,
    EventType.MCP_ERROR: STYLE_ERROR,
    EventType.CLIENT_CLOSED: STYLE_ERROR,
    EventType.GENERIC_ERROR: STYLE_ERROR,
    EventType.NO_SERVER_INFO: STYLE_ERROR,
    EventType.UNRECOGNIZED_KEYS: STYLE_ERROR,
    EventType.GENERIC_WARNING: STYLE_WARNING,
    EventType.NO_WORKSPACE: STYLE_WARNING,
    EventType.GENERIC_INFO: STYLE_INFO,
}

# Terminal labels differing from the wire type
EVENT_LABELS: dict[EventType, str] = {
    EventType.MCP_ERROR: "Error",
    EventType.NO_WORKSPACE: "Warning",
}

_LEVEL_LABELLED = frozenset(
    {EventType.GENERIC_INFO, EventType.GENERIC_WARNING, EventType.GENERIC_ERROR}
)


def event_label(event: LogEvent) -> str:
    """Bracketed name shown in the terminal; generic events show the line's own level."""
    if event.event_type in _LEVEL_LABELLED and event.level:
        return event.level
    return EVENT_LABELS.get(event.event_type, event.event_type.value)


class ConsoleRenderer:
    """Prints events to the terminal, one line each."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(highlight=False)

    def format_event(self, event: LogEvent) -> Text:
        style = EVENT_STYLES.get(event.event_type, "")
        label = event_label(event)
        if event.event_type.is_structured:
            prefix = f"[{format_timestamp(event.timestamp)}]"
            body = (
                f"[{label}] [Client: {event.client_id}] "
                f"=> {event.message}"
            )
        else:
            prefix = f"[{label}]"
            body = event.message
        return Text.assemble((prefix, style), " ", (body, style))

    def render(self, event: LogEvent) -> None:
        self.console.print(self.format_event(event), soft_wrap=True)

    def banner(self, settings: Settings) -> None:
        self.console.print(Text("=== Cursor AI MCP Log Monitor ===", style=STYLE_HIGHLIGHT))
        rows = [
            ("Logs root", str(settings.logs_root)),
            ("Verbosity level", settings.verbosity),
            ("Poll interval", f"{settings.poll_interval_ms}ms"),
            ("Log file pattern", settings.log_pattern),
        ]
        if settings.filter:
            rows.append(("Filter", settings.filter))
        rows.append(("Web UI", f"http://{settings.host}:{settings.port}/"))
        for label, value in rows:
            self.console.print(Text.assemble(("Configuration: ", STYLE_INFO), f"{label}: {value}"))
