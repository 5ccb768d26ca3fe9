"""Pydantic response schemas for the inspection API and JSON CLI output.

Reports produced by the reconstructors are plain dataclasses; these schemas
flatten them into the presentation shape: totals per section plus the
bounded "recent" tails, with phase-actor correlation computed at build time.

Resources:
- EntityHistory: one entity's memories, goals, plans, relationships, actions
- Narratives: narrative timelines, chronicle entries, story beats
- Operations: faction operation lifecycles and decisions
- LogSummary: event counts, crisis milestones and sampled day snapshots
- Validation: snapshot findings and counts
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from simlog_inspector.reconstruction.correlation import PhaseCorrelation
from simlog_inspector.reconstruction.entity import (
    ActionInvolvement,
    EntityHistory,
    GoalEvent,
    MemoryRecord,
    PlanEvent,
    RelationshipSummary,
)
from simlog_inspector.reconstruction.narrative import (
    ChronicleEntry,
    NarrativeReport,
    NarrativeTimeline,
    StoryBeat,
)
from simlog_inspector.reconstruction.operations import (
    FactionDecision,
    OperationEvent,
    OperationsReport,
    OperationTimeline,
)
from simlog_inspector.reconstruction.summary import DaySnapshot, LogSummary, SiteMilestones
from simlog_inspector.validation.validator import ValidationFinding, ValidationReport

PRE_ATTEMPT_PAYLOAD_NOTE = (
    "This log appears to predate embedding attempt payloads in events; "
    "action history may be incomplete."
)


# ---------------------------------------------------------------------------
# Entity history
# ---------------------------------------------------------------------------


class SectionTotals(BaseModel):
    """Full accumulated counts per entity history section."""

    model_config = ConfigDict(frozen=True)

    memories: int
    goals: int
    plans: int
    relationships: int
    actions: int


class EntityHistoryResponse(BaseModel):
    """One entity's reconstructed history, tails bounded by ``limit``."""

    model_config = ConfigDict(frozen=True)

    entity_id: str = Field(description="The requested entity id")
    name: str | None = Field(default=None, description="Last display name seen for the entity")
    limit: int = Field(description="Maximum items per section")
    totals: SectionTotals
    memories: list[MemoryRecord]
    goals: list[GoalEvent]
    plans: list[PlanEvent]
    relationships: list[RelationshipSummary]
    actions: list[ActionInvolvement]
    note: str | None = Field(default=None, description="Caveat about the log, if any")

    @classmethod
    def from_history(cls, history: EntityHistory) -> EntityHistoryResponse:
        return cls(
            entity_id=history.entity_id,
            name=history.name,
            limit=history.limit,
            totals=SectionTotals(
                memories=len(history.memories),
                goals=len(history.goals),
                plans=len(history.plans),
                relationships=len(history.relationships),
                actions=len(history.actions),
            ),
            memories=history.recent_memories(),
            goals=history.recent_goals(),
            plans=history.recent_plans(),
            relationships=list(history.relationships.values()),
            actions=history.recent_actions(),
            note=None if history.saw_attempt_payloads else PRE_ATTEMPT_PAYLOAD_NOTE,
        )


# ---------------------------------------------------------------------------
# Narratives
# ---------------------------------------------------------------------------


class NarrativesResponse(BaseModel):
    """Narrative timelines with recent chronicle entries and story beats."""

    model_config = ConfigDict(frozen=True)

    narrative_id: str | None = Field(default=None, description="Narrative filter, if any")
    narratives: list[NarrativeTimeline]
    chronicle_total: int
    chronicle_entries: list[ChronicleEntry]
    story_beat_total: int
    story_beats: list[StoryBeat]

    @classmethod
    def from_report(
        cls,
        report: NarrativeReport,
        narrative_id: str | None = None,
    ) -> NarrativesResponse:
        return cls(
            narrative_id=narrative_id,
            narratives=list(report.select(narrative_id).values()),
            chronicle_total=len(report.chronicle_entries),
            chronicle_entries=report.recent_chronicle_entries(),
            story_beat_total=len(report.story_beats),
            story_beats=report.recent_story_beats(),
        )


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class OperationView(BaseModel):
    """One operation with tick-ordered events and likely actors per phase."""

    model_config = ConfigDict(frozen=True)

    operation_id: str
    faction_id: str | None = None
    type: str | None = None
    site_id: str | None = None
    target_npc_id: str | None = None
    status: str
    created_tick: int | None = None
    events: list[OperationEvent]
    phases: list[PhaseCorrelation]

    @classmethod
    def from_operation(
        cls,
        operation: OperationTimeline,
        report: OperationsReport,
    ) -> OperationView:
        identity = operation.identity
        return cls(
            operation_id=operation.operation_id,
            faction_id=identity.faction_id,
            type=identity.type,
            site_id=identity.site_id,
            target_npc_id=identity.target_npc_id,
            status=operation.status,
            created_tick=operation.created_tick,
            events=operation.ordered_events(),
            phases=report.correlate(operation),
        )


class OperationsResponse(BaseModel):
    """Faction operations and recent faction decisions."""

    model_config = ConfigDict(frozen=True)

    faction_id: str | None = Field(default=None, description="Faction filter, if any")
    operations: list[OperationView]
    decision_total: int
    decisions: list[FactionDecision]
    attempt_total: int

    @classmethod
    def from_report(cls, report: OperationsReport) -> OperationsResponse:
        return cls(
            faction_id=report.faction_id,
            operations=[
                OperationView.from_operation(operation, report)
                for operation in report.operations.values()
            ],
            decision_total=len(report.decisions),
            decisions=report.recent_decisions(),
            attempt_total=len(report.attempts),
        )


# ---------------------------------------------------------------------------
# Log summary
# ---------------------------------------------------------------------------


class CountEntry(BaseModel):
    """A counted key, such as an event kind or an actor id."""

    model_config = ConfigDict(frozen=True)

    name: str
    count: int


def _counts(pairs: list[tuple[str, int]]) -> list[CountEntry]:
    return [CountEntry(name=name, count=count) for name, count in pairs]


class LogSummaryResponse(BaseModel):
    """Whole-log statistics, crisis milestones and sampled day snapshots."""

    model_config = ConfigDict(frozen=True)

    line_count: int | None = Field(default=None, description="Non-empty lines read")
    record_count: int = Field(description="Records decoded")
    seed: int | float | None = Field(default=None, description="Seed from sim.started")
    last_tick: int
    last_day: int | None = Field(default=None, description="Last day with a day summary")
    top_event_kinds: list[CountEntry]
    incidents_by_type: list[CountEntry]
    travel_encounters_by_type: list[CountEntry]
    top_attempt_kinds: list[CountEntry]
    top_actors: list[CountEntry]
    milestones: list[SiteMilestones]
    samples: list[DaySnapshot]
    last_day_snapshot: DaySnapshot | None = None

    @classmethod
    def from_summary(cls, summary: LogSummary) -> LogSummaryResponse:
        return cls(
            line_count=summary.line_count,
            record_count=summary.record_count,
            seed=summary.seed,
            last_tick=summary.last_tick,
            last_day=summary.last_day if summary.last_day >= 0 else None,
            top_event_kinds=_counts(summary.top_kinds()),
            incidents_by_type=_counts(summary.incidents_by_type.most_common()),
            travel_encounters_by_type=_counts(summary.encounters_by_type.most_common()),
            top_attempt_kinds=_counts(summary.top_attempt_kinds()),
            top_actors=_counts(summary.top_actors()),
            milestones=summary.ordered_milestones(),
            samples=summary.sample_snapshots(),
            last_day_snapshot=summary.last_day_snapshot(),
        )


# ---------------------------------------------------------------------------
# Snapshot validation
# ---------------------------------------------------------------------------


class ValidationResponse(BaseModel):
    """Snapshot validation findings."""

    model_config = ConfigDict(frozen=True)

    valid: bool = Field(description="True when no errors were found")
    errors: list[str]
    warnings: list[str]
    findings: list[ValidationFinding]
    entity_count: int
    site_count: int
    faction_count: int

    @classmethod
    def from_report(cls, report: ValidationReport) -> ValidationResponse:
        return cls(
            valid=report.is_valid,
            errors=report.errors,
            warnings=report.warnings,
            findings=list(report.findings),
            entity_count=report.entity_count,
            site_count=report.site_count,
            faction_count=report.faction_count,
        )


class SnapshotValidateRequest(BaseModel):
    """Request body wrapping a snapshot document to validate."""

    document: dict[str, Any] = Field(description="The full snapshot document")
