"""File sources for event logs and world snapshots.

Logs are read incrementally, one line at a time. Snapshots are read and
parsed whole. Failure to open or read either is fatal to the call and is
raised as SourceUnreadableError; a snapshot that is not a JSON object is
raised as SnapshotDecodeError.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any

from simlog_inspector.errors import LogPathError, SnapshotDecodeError, SourceUnreadableError
from simlog_inspector.observability import get_logger

logger = get_logger(__name__)


def iter_log_lines(path: str | Path) -> Iterator[str]:
    """Open a log file and return a lazy iterator over its lines.

    The file is opened eagerly so that an unreadable path fails here rather
    than on first iteration. Line terminators are stripped. Bytes that are
    not valid UTF-8 are replaced, so a corrupt line fails to decode as JSON
    and is skipped instead of ending the read.

    Args:
        path: Path to a JSONL event log.

    Returns:
        Iterator over the file's lines. The handle closes on exhaustion.

    Raises:
        SourceUnreadableError: If the file cannot be opened.
    """
    try:
        handle = open(path, encoding="utf-8", errors="replace")
    except OSError as exc:
        raise SourceUnreadableError(str(path), exc.strerror or str(exc)) from exc
    logger.debug("Opened event log", path=str(path))
    return _read_lines(handle, str(path))


def _read_lines(handle: IO[str], path: str) -> Iterator[str]:
    with handle:
        try:
            for line in handle:
                yield line.rstrip("\r\n")
        except OSError as exc:
            raise SourceUnreadableError(path, str(exc)) from exc


def parse_snapshot(text: str, source: str = "<document>") -> dict[str, Any]:
    """Parse a snapshot document.

    Args:
        text: The full JSON text.
        source: Name used in error messages.

    Returns:
        The parsed top-level object.

    Raises:
        SnapshotDecodeError: If the text is not JSON or not a JSON object.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotDecodeError(source, str(exc)) from exc
    if not isinstance(document, dict):
        raise SnapshotDecodeError(source, f"expected an object, got {type(document).__name__}")
    return document


def load_snapshot(path: str | Path) -> dict[str, Any]:
    """Read and parse a snapshot file in full.

    Args:
        path: Path to a JSON snapshot.

    Returns:
        The parsed snapshot document.

    Raises:
        SourceUnreadableError: If the file cannot be read.
        SnapshotDecodeError: If the content is not a JSON object.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceUnreadableError(str(path), str(exc)) from exc
    return parse_snapshot(text, source=str(path))


def find_latest_log(log_dir: str | Path, pattern: str = "events-*.jsonl") -> Path | None:
    """Return the most recently modified log in ``log_dir`` matching ``pattern``.

    Args:
        log_dir: Directory to search (not recursive).
        pattern: Glob pattern for event log file names.

    Returns:
        Path of the newest matching file, or None if there is none.
    """
    directory = Path(log_dir)
    if not directory.is_dir():
        return None
    candidates = [p for p in directory.glob(pattern) if p.is_file()]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def resolve_log_path(log_dir: str | Path, requested: str) -> Path:
    """Resolve a caller-supplied log name inside ``log_dir``.

    Args:
        log_dir: The directory all API-served logs must live in.
        requested: Relative file name or path supplied by the caller.

    Returns:
        The resolved absolute path.

    Raises:
        LogPathError: If the path resolves outside ``log_dir``.
    """
    root = Path(log_dir).resolve()
    candidate = (root / requested).resolve()
    if not candidate.is_relative_to(root):
        raise LogPathError(requested)
    return candidate
