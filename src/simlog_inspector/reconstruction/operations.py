"""Faction operation lifecycle reconstruction.

Each operation moves through ``planning -> active -> completed | aborted``:
``faction.operation.created`` puts it in planning, any
``faction.operation.phase`` makes it active, and ``completed``/``aborted``
end it. Terminal states are sticky. An operation first seen through a
non-``created`` event starts in planning rather than failing.

Logs carry lightweight payloads rather than full operation objects, so the
identity of an operation (faction, type, site, target NPC) is assembled from
whichever events happen to carry each field: the first non-empty value
wins and later events never overwrite it.

Faction decisions and ``attempt.recorded`` attempts are collected alongside;
the attempts feed phase-actor correlation at presentation time.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from simlog_inspector.observability import get_logger
from simlog_inspector.reconstruction.common import tail
from simlog_inspector.reconstruction.correlation import (
    DEFAULT_LIKELY_ACTOR_CAP,
    DEFAULT_PHASE_WINDOW_TICKS,
    AttemptRecord,
    PhaseCorrelation,
    correlate_phases,
)
from simlog_inspector.stream.events import EventRecord, as_int, as_mapping, as_text

logger = get_logger(__name__)

OPERATION_CREATED = "faction.operation.created"
OPERATION_PHASE = "faction.operation.phase"
OPERATION_COMPLETED = "faction.operation.completed"
OPERATION_ABORTED = "faction.operation.aborted"
FACTION_DECISION = "faction.decision"
ATTEMPT_RECORDED = "attempt.recorded"

_LIFECYCLE_TYPES: dict[str, str] = {
    OPERATION_CREATED: "created",
    OPERATION_PHASE: "phase",
    OPERATION_COMPLETED: "completed",
    OPERATION_ABORTED: "aborted",
}

STATUS_PLANNING = "planning"
STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUS_ABORTED = "aborted"
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_ABORTED})


@dataclass(frozen=True)
class OperationIdentity:
    """Identity fields of an operation, each filled at most once."""

    faction_id: str | None = None
    type: str | None = None
    site_id: str | None = None
    target_npc_id: str | None = None


def merge_identity(current: OperationIdentity, update: OperationIdentity) -> OperationIdentity:
    """Fill the empty fields of ``current`` from ``update``.

    A field already holding a non-empty value is kept; an empty one takes
    the update's value. Empty means None or the empty string.

    Args:
        current: Identity assembled so far.
        update: Identity fields carried by the next event.

    Returns:
        The merged identity.
    """
    return replace(
        current,
        faction_id=current.faction_id or update.faction_id,
        type=current.type or update.type,
        site_id=current.site_id or update.site_id,
        target_npc_id=current.target_npc_id or update.target_npc_id,
    )


@dataclass(frozen=True)
class OperationEvent:
    """One lifecycle event of an operation.

    Attributes:
        tick: Tick of the event.
        type: ``created``, ``phase``, ``completed`` or ``aborted``.
        phase_index: 0-based phase index, for phase events.
        outcome: Outcome text, for completed and aborted events.
        reason: Abort reason, when logged.
    """

    tick: int
    type: str
    phase_index: int | None = None
    outcome: str | None = None
    reason: str | None = None


@dataclass
class OperationTimeline:
    """Reconstructed faction operation.

    Attributes:
        operation_id: The operation's id.
        identity: Faction, type, site and target NPC, first non-empty wins.
        status: Current lifecycle status.
        created_tick: Tick of the ``created`` event, if seen.
        events: Lifecycle events in stream order.
    """

    operation_id: str
    identity: OperationIdentity = field(default_factory=OperationIdentity)
    status: str = STATUS_PLANNING
    created_tick: int | None = None
    events: list[OperationEvent] = field(default_factory=list)

    def ordered_events(self) -> list[OperationEvent]:
        """Lifecycle events stably sorted by tick."""
        return sorted(self.events, key=lambda event: event.tick)

    def advance(self, event: OperationEvent) -> None:
        """Append ``event`` and move the status along the state machine."""
        self.events.append(event)
        if event.type == "created" and self.created_tick is None:
            self.created_tick = event.tick
        if self.status in TERMINAL_STATUSES:
            return
        if event.type == "phase":
            self.status = STATUS_ACTIVE
        elif event.type == "completed":
            self.status = STATUS_COMPLETED
        elif event.type == "aborted":
            self.status = STATUS_ABORTED


@dataclass(frozen=True)
class FactionDecision:
    """A faction-level decision, not tied to any operation."""

    tick: int
    faction_id: str | None = None
    type: str | None = None
    details: Any = None


@dataclass
class OperationsReport:
    """Result of an operation reconstruction run.

    Attributes:
        faction_id: The faction filter applied, if any.
        operations: Operations keyed by id in first-seen order.
        decisions: Faction decisions in stream order.
        attempts: Every attempt seen, for phase-actor correlation.
        decision_tail: Length of ``recent_decisions``.
        window_ticks: Window width after an operation's last lifecycle event.
        actor_cap: Maximum likely actors reported per phase.
    """

    faction_id: str | None = None
    operations: dict[str, OperationTimeline] = field(default_factory=dict)
    decisions: list[FactionDecision] = field(default_factory=list)
    attempts: list[AttemptRecord] = field(default_factory=list)
    decision_tail: int = 20
    window_ticks: int = DEFAULT_PHASE_WINDOW_TICKS
    actor_cap: int = DEFAULT_LIKELY_ACTOR_CAP

    def recent_decisions(self) -> list[FactionDecision]:
        return tail(self.decisions, self.decision_tail)

    def correlate(self, operation: OperationTimeline) -> list[PhaseCorrelation]:
        """Guess likely actors for each phase of ``operation``.

        Computed on every call from the buffered attempts; nothing is cached
        and the operation itself is left untouched.
        """
        lifecycle = [
            (event.tick, event.type, event.phase_index) for event in operation.ordered_events()
        ]
        return correlate_phases(
            operation.identity.type,
            operation.identity.site_id,
            lifecycle,
            self.attempts,
            window_ticks=self.window_ticks,
            cap=self.actor_cap,
        )


class OperationReconstructor:
    """Builds an OperationsReport from an event stream.

    Args:
        faction_id: When given, records whose ``data.factionId`` differs are
            skipped entirely, attempts and decisions included.
        decision_tail: Decisions exposed by the recent view.
        window_ticks: Correlation window after an operation's last event.
        actor_cap: Maximum likely actors per phase.
    """

    def __init__(
        self,
        faction_id: str | None = None,
        decision_tail: int = 20,
        window_ticks: int = DEFAULT_PHASE_WINDOW_TICKS,
        actor_cap: int = DEFAULT_LIKELY_ACTOR_CAP,
    ) -> None:
        self._faction_id = faction_id
        self._decision_tail = decision_tail
        self._window_ticks = window_ticks
        self._actor_cap = actor_cap

    def reconstruct(self, records: Iterable[EventRecord]) -> OperationsReport:
        """Fold ``records`` into a fresh OperationsReport.

        Args:
            records: Decoded records in stream order.

        Returns:
            Operations, decisions and buffered attempts.
        """
        report = OperationsReport(
            faction_id=self._faction_id,
            decision_tail=self._decision_tail,
            window_ticks=self._window_ticks,
            actor_cap=self._actor_cap,
        )
        for record in records:
            if self._faction_id and as_text(record.data.get("factionId")) != self._faction_id:
                continue
            self._apply(report, record)

        logger.info(
            "Operations reconstructed",
            faction_id=self._faction_id,
            operations=len(report.operations),
            decisions=len(report.decisions),
            attempts=len(report.attempts),
        )
        return report

    def _apply(self, report: OperationsReport, record: EventRecord) -> None:
        data = record.data
        kind = record.kind

        if kind in _LIFECYCLE_TYPES:
            operation_id = data.get("operationId")
            if operation_id is None:
                operation_id = as_mapping(data.get("operation")).get("id")
            if operation_id is None or operation_id == "":
                return
            key = str(operation_id)
            operation = report.operations.get(key)
            if operation is None:
                operation = OperationTimeline(operation_id=key)
                report.operations[key] = operation

            operation.identity = merge_identity(
                operation.identity,
                OperationIdentity(
                    faction_id=as_text(data.get("factionId")),
                    type=as_text(data.get("type")),
                    site_id=as_text(data.get("siteId")),
                    target_npc_id=as_text(data.get("targetNpcId")),
                ),
            )

            event_type = _LIFECYCLE_TYPES[kind]
            operation.advance(
                OperationEvent(
                    tick=record.tick,
                    type=event_type,
                    phase_index=as_int(data.get("phaseIndex")) if event_type == "phase" else None,
                    outcome=as_text(data.get("outcome"))
                    if event_type in ("completed", "aborted")
                    else None,
                    reason=as_text(data.get("reason")) if event_type == "aborted" else None,
                )
            )
        elif kind == FACTION_DECISION:
            report.decisions.append(
                FactionDecision(
                    tick=record.tick,
                    faction_id=as_text(data.get("factionId")),
                    type=as_text(data.get("type")),
                    details=data.get("details"),
                )
            )
        elif kind == ATTEMPT_RECORDED:
            attempt = record.attempt
            report.attempts.append(
                AttemptRecord(
                    tick=record.tick,
                    site_id=as_text(attempt.get("siteId")) or record.site_id,
                    actor_id=as_text(attempt.get("actorId")),
                    target_id=as_text(attempt.get("targetId")),
                    kind=as_text(attempt.get("kind")),
                )
            )
