"""Matching discovered files against the configured log pattern."""

from fnmatch import fnmatchcase
from pathlib import Path, PurePath


def _match(candidate: str, pattern: str) -> bool:
    candidate = candidate.lower()
    pattern = pattern.lower()
    return candidate == pattern or fnmatchcase(candidate, pattern)


def matches_log_pattern(
    file_path: str | Path, pattern: str, base_dir: str | Path | None = None
) -> bool:
    """Check whether ``file_path`` is a log file we should tail.

    ``pattern`` is an exact file name or a glob (``*.log``), compared
    case-insensitively against the file name. Patterns containing a path
    separator are compared against the path relative to ``base_dir`` with
    ``/`` separators, either in full or against its trailing components.
    """
    pattern = pattern.replace("\\", "/").strip("/")
    if not pattern:
        return False

    path = PurePath(file_path)
    if "/" not in pattern:
        return _match(path.name, pattern)

    if base_dir is not None:
        try:
            parts = path.relative_to(base_dir).parts
        except ValueError:
            parts = path.parts
    else:
        parts = path.parts

    depth = pattern.count("/") + 1
    if len(parts) < depth:
        return False
    if _match("/".join(parts), pattern):
        return True
    return _match("/".join(parts[-depth:]), pattern)
