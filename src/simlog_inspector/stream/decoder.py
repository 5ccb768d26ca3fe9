"""Record decoder: raw JSONL lines to EventRecord instances.

Malformed input never aborts a fold. Blank lines, lines that are not JSON
objects and objects lacking an integer ``tick`` or a string ``kind`` are
skipped without surfacing an error.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Literal

from pydantic import ValidationError

from simlog_inspector.errors import TickOrderError
from simlog_inspector.observability import get_logger
from simlog_inspector.stream.events import EventRecord

logger = get_logger(__name__)

TickOrderPolicy = Literal["best_effort", "strict"]


def decode_line(line: str) -> EventRecord | None:
    """Decode one raw log line.

    Args:
        line: A single line of the log, with or without its newline.

    Returns:
        The decoded record, or None when the line must be skipped.
    """
    if not line or line.isspace():
        return None
    try:
        return EventRecord.model_validate_json(line)
    except ValidationError:
        return None


def decode_lines(
    lines: Iterable[str],
    tick_order: TickOrderPolicy = "best_effort",
) -> Iterator[EventRecord]:
    """Lazily decode a stream of log lines, skipping unparseable ones.

    Under ``best_effort`` records are yielded in file order even when a tick
    goes backwards; regressions are counted and reported in one warning once
    the stream is exhausted. Under ``strict`` the first regression raises.

    Args:
        lines: Raw log lines, consumed one at a time.
        tick_order: Policy for ticks that go backwards.

    Yields:
        Decoded EventRecord instances in stream order.

    Raises:
        TickOrderError: Under the strict policy, on the first regression.
    """
    skipped = 0
    regressions = 0
    last_tick: int | None = None

    for line in lines:
        record = decode_line(line)
        if record is None:
            if line and not line.isspace():
                skipped += 1
            continue

        if last_tick is not None and record.tick < last_tick:
            if tick_order == "strict":
                raise TickOrderError(last_tick, record.tick, record.kind)
            regressions += 1
        else:
            last_tick = record.tick

        yield record

    if skipped:
        logger.debug("Skipped unparseable log lines", skipped=skipped)
    if regressions:
        logger.warning(
            "Log ticks went backwards; reconstruction is best-effort",
            regressions=regressions,
        )
