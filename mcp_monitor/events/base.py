"""Event model produced by the classifier and pushed to subscribers."""

import json
from datetime import datetime
from pathlib import PurePath
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import EventType, Severity

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way the source log writes it (millisecond precision)."""
    return value.strftime(TIMESTAMP_FORMAT)[:-3]


class LogEvent(BaseModel):
    """One classified log line. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    severity: Severity = Severity.INFO
    timestamp: datetime = Field(default_factory=datetime.now)
    client_id: Optional[str] = Field(default=None, description="Correlation id")
    level: Optional[str] = Field(default=None, description="Level written on the source line")
    message: str
    file_path: str = Field(..., description="Absolute path of the source log file")

    @property
    def file_name(self) -> str:
        return PurePath(self.file_path).name

    def to_wire(self) -> dict:
        """Payload sent to subscribers."""
        return {
            "type": self.event_type.value,
            "timestamp": format_timestamp(self.timestamp),
            "clientId": self.client_id,
            "message": self.message,
            "fileName": self.file_name,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False, separators=(",", ":"))
