from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel


class TailState(str, Enum):
    IDLE = "idle"
    READING = "reading"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class WatchedFile(BaseModel):
    """Read position and health of one tailed file.

    Owned by a single LogTailer and only mutated from its poll loop.
    """

    path: str
    offset: int = 0
    # -1 until the first successful read observes a size
    last_size: int = -1
    error_count: int = 0
    first_read: bool = True

    def reset(self) -> None:
        """Forget everything read so far; the next cycle starts at byte 0."""
        self.offset = 0
        self.last_size = -1
        self.first_read = True


class WatchedDirectory(BaseModel):
    path: str
    active: bool = True


class RawLine(NamedTuple):
    """A complete line read from a tailed file."""

    file_path: str
    text: str
