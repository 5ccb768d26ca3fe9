"""Typed errors raised by simlog-inspector.

Only conditions that are fatal to a single inspection call are raised:
an unreadable log or snapshot source, a snapshot that is not a JSON object,
and (under the strict tick-order policy) a log whose ticks go backwards.
Malformed log lines, referential gaps and validation findings are never
raised; they are skipped or collected instead.
"""

from __future__ import annotations

from typing import Any


class InspectorError(Exception):
    """Base class for all simlog-inspector errors.

    Args:
        message: Human-readable description of the failure.
        **context: Structured key/value context for logging and API payloads.
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context


class SourceUnreadableError(InspectorError):
    """Raised when a log or snapshot file cannot be opened or read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read {path}: {reason}", path=path, reason=reason)
        self.path = path


class SnapshotDecodeError(InspectorError):
    """Raised when a snapshot document is not a parseable JSON object."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Malformed snapshot {source}: {reason}", source=source, reason=reason)
        self.source = source


class TickOrderError(InspectorError):
    """Raised under the strict tick-order policy when a tick regresses."""

    def __init__(self, previous_tick: int, tick: int, kind: str) -> None:
        super().__init__(
            f"Tick regressed from {previous_tick} to {tick} at {kind}",
            previous_tick=previous_tick,
            tick=tick,
            kind=kind,
        )
        self.previous_tick = previous_tick
        self.tick = tick


class LogPathError(InspectorError):
    """Raised when a requested log path resolves outside the log directory."""

    def __init__(self, requested: str) -> None:
        super().__init__(f"Log path escapes the log directory: {requested}", requested=requested)
        self.requested = requested
