"""Event log decoding and file sources.

Turns raw JSONL lines into immutable EventRecord instances, skipping
anything that cannot be decoded, and opens logs and snapshots on disk.
"""

from __future__ import annotations

from simlog_inspector.stream.decoder import decode_line, decode_lines
from simlog_inspector.stream.events import EventRecord
from simlog_inspector.stream.source import (
    find_latest_log,
    iter_log_lines,
    load_snapshot,
    parse_snapshot,
)

__all__ = [
    "EventRecord",
    "decode_line",
    "decode_lines",
    "find_latest_log",
    "iter_log_lines",
    "load_snapshot",
    "parse_snapshot",
]
