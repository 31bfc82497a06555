"""Event type definitions."""

from enum import Enum


class EventType(str, Enum):
    """Categories a log line can be classified into.

    Values are the ``type`` field sent to subscribers.
    """

    # Structured lines, keyword matches
    CREATED_CLIENT = "CreateClient"
    LISTED_OFFERINGS = "ListOfferings"
    MCP_ERROR = "MCPError"
    CLIENT_CLOSED = "ClientClosed"
    CONNECTED = "Connected"

    # Structured lines, fallback on the line's own level
    GENERIC_INFO = "GenericInfo"
    GENERIC_WARNING = "GenericWarning"
    GENERIC_ERROR = "GenericError"

    # Unstructured lines
    NO_SERVER_INFO = "NoServerInfo"
    UNRECOGNIZED_KEYS = "UnrecognizedKeys"
    NO_WORKSPACE = "NoWorkspace"
    RAW = "Raw"

    @property
    def is_structured(self) -> bool:
        return self not in _UNSTRUCTURED


_UNSTRUCTURED = frozenset(
    {
        EventType.NO_SERVER_INFO,
        EventType.UNRECOGNIZED_KEYS,
        EventType.NO_WORKSPACE,
        EventType.RAW,
    }
)


class Severity(str, Enum):
    """Verbosity level of an event, compared against the configured minimum."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, minimum: "Severity | str") -> bool:
        return self.rank >= Severity(minimum).rank


_SEVERITY_RANK = {
    Severity.DEBUG: 10,
    Severity.INFO: 20,
    Severity.WARNING: 30,
    Severity.ERROR: 40,
}
