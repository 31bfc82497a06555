"""Incremental line reading from an append-only file."""

from typing import NamedTuple

import aiofiles

LINE_TERMINATOR = b"\n"


class ReadResult(NamedTuple):
    lines: list[str]
    offset: int


def split_complete_lines(data: bytes) -> tuple[list[str], int]:
    """Split ``data`` into complete lines.

    Returns the decoded lines and the number of bytes they consumed. A trailing
    fragment without a terminator is not consumed, so the caller can pick it up
    once the writer finishes the line.
    """
    end = data.rfind(LINE_TERMINATOR)
    if end == -1:
        return [], 0

    consumed = end + len(LINE_TERMINATOR)
    lines = []
    for raw in data[:end].split(LINE_TERMINATOR):
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        lines.append(raw.decode("utf-8", errors="replace"))
    return lines, consumed


async def read_new_lines(path: str, offset: int) -> ReadResult:
    """Read the complete lines appended to ``path`` since ``offset``.

    Errors opening or reading the file propagate to the caller.
    """
    async with aiofiles.open(path, "rb") as f:
        await f.seek(offset)
        data = await f.read()

    lines, consumed = split_complete_lines(data)
    return ReadResult(lines=lines, offset=offset + consumed)
