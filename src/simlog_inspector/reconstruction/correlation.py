"""Phase-actor correlation between operation lifecycles and attempts.

Faction operations and individual attempts are logged by independent parts
of the simulation, so nothing in the log ties a phase to the actors who
carried it out. This module guesses: for a phase event at tick ``t`` whose
next lifecycle event is at ``t_next``, every attempt of the phase's expected
kind within ``[t, t_next)`` (and at the operation's site, when known) is
assumed to belong to the phase. The actors of those attempts are reported
as *likely* actors. The result is advisory and never feeds back into the
operation's recorded state.

All functions here are pure and work on plain attempt lists.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

# Width of the window after the last lifecycle event of an operation.
# 72 ticks is three simulated days.
DEFAULT_PHASE_WINDOW_TICKS = 72

# Maximum number of likely actors reported for a phase
DEFAULT_LIKELY_ACTOR_CAP = 8

# Attempt kinds expected per phase index, by operation type. Types not
# listed expect attempts of their own name in every phase.
PHASE_KINDS_BY_OPERATION_TYPE: dict[str, tuple[str, ...]] = {
    "kidnap": ("kidnap", "forced_eclipse"),
    "forced_eclipse": ("forced_eclipse",),
}


@dataclass(frozen=True)
class AttemptRecord:
    """An attempt extracted from an ``attempt.recorded`` event."""

    tick: int
    site_id: str | None = None
    actor_id: str | None = None
    target_id: str | None = None
    kind: str | None = None


@dataclass(frozen=True)
class TickWindow:
    """Half-open tick interval ``[start, end)``."""

    start: int
    end: int

    def __contains__(self, tick: int) -> bool:
        return self.start <= tick < self.end


@dataclass(frozen=True)
class PhaseCorrelation:
    """Likely actors for one phase event.

    Attributes:
        phase_index: The phase event's index (0-based).
        label: Attempt kind expected during the phase.
        window: Tick window the attempts were drawn from.
        attempt_count: Number of attempts matching window, site and kind.
        actors: Distinct actor ids among them, sorted and capped.
    """

    phase_index: int
    label: str
    window: TickWindow
    attempt_count: int
    actors: tuple[str, ...]


def phase_labels(operation_type: str | None) -> tuple[str, ...]:
    """Return the ordered attempt kinds expected for an operation type."""
    if not operation_type:
        return ()
    return PHASE_KINDS_BY_OPERATION_TYPE.get(operation_type, (operation_type,))


def phase_label(operation_type: str | None, phase_index: int) -> str | None:
    """Return the attempt kind expected for phase ``phase_index``.

    Indices past the end of the type's list (or negative) fall back to the
    first label. Returns None for an operation with no known type.
    """
    labels = phase_labels(operation_type)
    if not labels:
        return None
    if 0 <= phase_index < len(labels):
        return labels[phase_index]
    return labels[0]


def phase_window(
    tick: int,
    next_tick: int | None,
    default_width: int = DEFAULT_PHASE_WINDOW_TICKS,
) -> TickWindow:
    """Return the window for a lifecycle event at ``tick``.

    Args:
        tick: Tick of the phase event.
        next_tick: Tick of the next lifecycle event of the same operation,
            or None if the phase event is the last one.
        default_width: Width used when there is no next event.
    """
    end = next_tick if next_tick is not None else tick + default_width
    return TickWindow(start=tick, end=end)


def select_attempts(
    attempts: Iterable[AttemptRecord],
    window: TickWindow,
    site_id: str | None,
    kind: str,
) -> list[AttemptRecord]:
    """Return attempts inside ``window`` of ``kind``, scoped to ``site_id`` if given."""
    return [
        attempt
        for attempt in attempts
        if attempt.tick in window
        and (not site_id or attempt.site_id == site_id)
        and attempt.kind == kind
    ]


def likely_actors(
    attempts: Iterable[AttemptRecord],
    window: TickWindow,
    site_id: str | None,
    kind: str,
    cap: int = DEFAULT_LIKELY_ACTOR_CAP,
) -> tuple[int, tuple[str, ...]]:
    """Join attempts against a phase window.

    Args:
        attempts: Candidate attempts, in any order.
        window: Half-open window the attempt tick must fall in.
        site_id: Restrict to attempts at this site; None or empty means any site.
        kind: Attempt kind expected during the phase.
        cap: Maximum number of actor ids returned.

    Returns:
        ``(attempt_count, actors)`` where ``attempt_count`` counts every
        matching attempt and ``actors`` are the distinct actor ids among
        them, sorted lexicographically and truncated to ``cap``.
    """
    matched = select_attempts(attempts, window, site_id, kind)
    actor_ids = {attempt.actor_id for attempt in matched if attempt.actor_id}
    return len(matched), tuple(sorted(actor_ids)[: max(cap, 0)])


def correlate_phases(
    operation_type: str | None,
    site_id: str | None,
    lifecycle: Sequence[tuple[int, str, int | None]],
    attempts: Sequence[AttemptRecord],
    window_ticks: int = DEFAULT_PHASE_WINDOW_TICKS,
    cap: int = DEFAULT_LIKELY_ACTOR_CAP,
) -> list[PhaseCorrelation]:
    """Correlate every phase event of one operation with attempts.

    Args:
        operation_type: The operation's type, used to pick phase labels.
        site_id: The operation's site, used to scope attempts.
        lifecycle: Tick-ordered ``(tick, event_type, phase_index)`` tuples for
            all lifecycle events of the operation.
        attempts: Every buffered attempt of the run.
        window_ticks: Window width after the last lifecycle event.
        cap: Maximum actors per phase.

    Returns:
        One PhaseCorrelation per phase event that has a label, in lifecycle
        order. Phases with zero matching attempts are included with a zero
        count so callers can tell "no attempts" from "not correlated".
    """
    results: list[PhaseCorrelation] = []
    for position, (tick, event_type, phase_index) in enumerate(lifecycle):
        if event_type != "phase":
            continue
        index = phase_index if phase_index is not None else 0
        label = phase_label(operation_type, index)
        if label is None:
            continue
        next_tick = lifecycle[position + 1][0] if position + 1 < len(lifecycle) else None
        window = phase_window(tick, next_tick, window_ticks)
        count, actors = likely_actors(attempts, window, site_id, label, cap)
        results.append(
            PhaseCorrelation(
                phase_index=index,
                label=label,
                window=window,
                attempt_count=count,
                actors=actors,
            )
        )
    return results
