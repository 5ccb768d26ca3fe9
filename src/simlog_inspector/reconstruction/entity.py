"""Entity history reconstruction.

Folds an event stream into the memory, goal, plan, relationship and action
history of one entity. All matching events are retained; the configured
limit only bounds the ``recent_*`` views handed to presentation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from simlog_inspector.observability import get_logger
from simlog_inspector.reconstruction.common import tail
from simlog_inspector.stream.events import EventRecord, as_int, as_mapping, as_text

logger = get_logger(__name__)

MEMORY_FORMED = "entity.memory.formed"
GOAL_PREFIX = "entity.goal."
PLAN_PREFIX = "entity.plan."
RELATIONSHIP_PREFIX = "entity.relationship."
WORLD_INCIDENT = "world.incident"

RELATIONSHIP_DIMENSIONS: tuple[str, ...] = ("trust", "respect", "fear", "loyalty", "affinity")

# Payload keys that name an entity taking part in a non-attempt record
INVOLVEMENT_KEYS: tuple[str, ...] = ("byNpcId", "actorId", "targetId")


@dataclass(frozen=True)
class MemoryRecord:
    """A memory formed by the entity."""

    tick: int
    event_type: str | None
    description: str | None
    vividness: Any = None
    importance: Any = None
    participants: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class GoalEvent:
    """A goal lifecycle event; ``kind`` is the suffix after ``entity.goal.``."""

    tick: int
    kind: str
    goal_type: str | None = None
    goal_id: str | None = None
    target: Any = None
    why: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class PlanEvent:
    """A plan lifecycle event; ``kind`` is the suffix after ``entity.plan.``."""

    tick: int
    kind: str
    plan_id: str | None = None
    goal_id: str | None = None
    status: str | None = None
    steps: list[str | None] | None = None
    step_index: int | None = None


@dataclass(frozen=True)
class RelationshipChange:
    """The most recent recorded change of a relationship."""

    tick: int
    dimension: str | None = None
    old_value: Any = None
    new_value: Any = None
    reason: str | None = None


@dataclass
class RelationshipSummary:
    """Per-target relationship state, last write wins per key.

    Dimension values are kept exactly as logged. Keys of the relationship
    payload other than the five dimensions land in ``attributes``.
    """

    target_id: str
    trust: Any = None
    respect: Any = None
    fear: Any = None
    loyalty: Any = None
    affinity: Any = None
    attributes: dict[str, Any] = field(default_factory=dict)
    last_change: RelationshipChange | None = None

    def dimensions(self) -> dict[str, Any]:
        """Return the dimensions that have a recorded value."""
        values = {name: getattr(self, name) for name in RELATIONSHIP_DIMENSIONS}
        return {name: value for name, value in values.items() if value is not None}


@dataclass(frozen=True)
class ActionInvolvement:
    """A record in which the entity took part.

    ``role`` is one of ``actor``, ``target``, ``victim`` or ``involved``.
    ``action_kind``, ``why`` and ``outcome`` come from an attempt payload
    and are None for other records.
    """

    tick: int
    record_kind: str
    role: str
    action_kind: str | None = None
    why: str | None = None
    outcome: str | None = None
    site_id: str | None = None
    message: str | None = None


@dataclass
class EntityHistory:
    """Reconstructed history of a single entity.

    Attributes:
        entity_id: The requested entity id.
        limit: Length of the ``recent_*`` views.
        name: Display name, taken from the last attempt naming the entity as actor.
        memories: Every memory formed, in stream order.
        goals: Every goal event, in stream order.
        plans: Every plan event, in stream order.
        relationships: Relationship summary per target id, first-seen order.
        actions: Every record involving the entity, in stream order.
        saw_attempt_payloads: Whether any record carried an attempt payload.
    """

    entity_id: str
    limit: int
    name: str | None = None
    memories: list[MemoryRecord] = field(default_factory=list)
    goals: list[GoalEvent] = field(default_factory=list)
    plans: list[PlanEvent] = field(default_factory=list)
    relationships: dict[str, RelationshipSummary] = field(default_factory=dict)
    actions: list[ActionInvolvement] = field(default_factory=list)
    saw_attempt_payloads: bool = False

    def recent_memories(self) -> list[MemoryRecord]:
        return tail(self.memories, self.limit)

    def recent_goals(self) -> list[GoalEvent]:
        return tail(self.goals, self.limit)

    def recent_plans(self) -> list[PlanEvent]:
        return tail(self.plans, self.limit)

    def recent_actions(self) -> list[ActionInvolvement]:
        return tail(self.actions, self.limit)

    @property
    def is_empty(self) -> bool:
        return not (
            self.memories or self.goals or self.plans or self.relationships or self.actions
        )


def merge_relationship(
    current: RelationshipSummary | None,
    target_id: str,
    tick: int,
    relationship: dict[str, Any],
    change: dict[str, Any],
) -> RelationshipSummary:
    """Fold one relationship event into the summary for ``target_id``.

    Each key present in ``relationship`` with a non-null value overwrites
    the stored one; absent or null keys keep theirs. ``last_change`` is
    replaced outright.

    Args:
        current: The existing summary, or None on first sight of the target.
        target_id: The relationship target.
        tick: Tick of the relationship event.
        relationship: The event's ``data.relationship`` payload.
        change: The event's ``data.change`` payload.

    Returns:
        The updated summary (``current`` mutated in place when given).
    """
    summary = current if current is not None else RelationshipSummary(target_id=target_id)
    for key, value in relationship.items():
        if value is None:
            continue
        if key in RELATIONSHIP_DIMENSIONS:
            setattr(summary, key, value)
        else:
            summary.attributes[key] = value
    summary.last_change = RelationshipChange(
        tick=tick,
        dimension=as_text(change.get("dimension")),
        old_value=change.get("oldValue"),
        new_value=change.get("newValue"),
        reason=as_text(change.get("reason")),
    )
    return summary


class EntityReconstructor:
    """Builds an EntityHistory for one entity from an event stream.

    Args:
        entity_id: The entity to reconstruct.
        limit: Length of the ``recent_*`` views on the result.
    """

    def __init__(self, entity_id: str, limit: int = 50) -> None:
        self._entity_id = entity_id
        self._limit = max(limit, 0)

    def reconstruct(self, records: Iterable[EventRecord]) -> EntityHistory:
        """Fold ``records`` into a fresh EntityHistory.

        Args:
            records: Decoded records in stream order.

        Returns:
            The reconstructed history; empty if the entity never appears.
        """
        history = EntityHistory(entity_id=self._entity_id, limit=self._limit)
        for record in records:
            self._apply(history, record)

        logger.info(
            "Entity history reconstructed",
            entity_id=self._entity_id,
            memories=len(history.memories),
            goals=len(history.goals),
            plans=len(history.plans),
            relationships=len(history.relationships),
            actions=len(history.actions),
        )
        return history

    def _apply(self, history: EntityHistory, record: EventRecord) -> None:
        data = record.data
        kind = record.kind
        attempt = record.attempt
        if attempt:
            history.saw_attempt_payloads = True

        actor_id = as_text(attempt.get("actorId"))
        if actor_id == self._entity_id and as_text(attempt.get("actorName")):
            history.name = as_text(attempt["actorName"])

        owned = as_text(data.get("entityId")) == self._entity_id

        if owned and kind == MEMORY_FORMED:
            memory = as_mapping(data.get("memory"))
            participants = memory.get("participants")
            history.memories.append(
                MemoryRecord(
                    tick=record.tick,
                    event_type=as_text(memory.get("eventType")),
                    description=as_text(memory.get("description")),
                    vividness=memory.get("vividness"),
                    importance=memory.get("importance"),
                    participants=[as_mapping(p) for p in participants]
                    if isinstance(participants, list)
                    else [],
                )
            )
        elif owned and kind.startswith(GOAL_PREFIX):
            goal = as_mapping(data.get("goal"))
            history.goals.append(
                GoalEvent(
                    tick=record.tick,
                    kind=kind.removeprefix(GOAL_PREFIX),
                    goal_type=as_text(goal.get("type")),
                    goal_id=as_text(goal.get("id")),
                    target=goal.get("target"),
                    why=as_text(goal.get("why")),
                    status=as_text(goal.get("status")),
                )
            )
        elif owned and kind.startswith(PLAN_PREFIX):
            plan = as_mapping(data.get("plan"))
            steps = plan.get("steps")
            history.plans.append(
                PlanEvent(
                    tick=record.tick,
                    kind=kind.removeprefix(PLAN_PREFIX),
                    plan_id=as_text(plan.get("id")),
                    goal_id=as_text(plan.get("goalId")),
                    status=as_text(plan.get("status")),
                    steps=[as_text(as_mapping(step).get("actionType")) for step in steps]
                    if isinstance(steps, list)
                    else None,
                    step_index=as_int(data.get("stepIndex")),
                )
            )
        elif owned and kind.startswith(RELATIONSHIP_PREFIX):
            target_id = as_text(data.get("targetId"))
            if target_id is not None:
                history.relationships[target_id] = merge_relationship(
                    history.relationships.get(target_id),
                    target_id,
                    record.tick,
                    as_mapping(data.get("relationship")),
                    as_mapping(data.get("change")),
                )

        role = self._role(kind, data, attempt)
        if role is not None:
            history.actions.append(
                ActionInvolvement(
                    tick=record.tick,
                    record_kind=kind,
                    role=role,
                    action_kind=as_text(attempt.get("kind")),
                    why=as_text(as_mapping(attempt.get("why")).get("text")),
                    outcome=as_text(attempt.get("outcome")),
                    site_id=record.site_id or as_text(attempt.get("siteId")),
                    message=record.message,
                )
            )

    def _role(self, kind: str, data: dict[str, Any], attempt: dict[str, Any]) -> str | None:
        """Return the entity's role in a record, or None when it takes no part.

        Attempt actor wins over attempt target, which wins over incident
        victim. Any other record naming the entity under one of
        INVOLVEMENT_KEYS marks it as involved.
        """
        if as_text(attempt.get("actorId")) == self._entity_id:
            return "actor"
        if as_text(attempt.get("targetId")) == self._entity_id:
            return "target"
        if kind == WORLD_INCIDENT and as_text(data.get("victimNpcId")) == self._entity_id:
            return "victim"
        if any(as_text(data.get(key)) == self._entity_id for key in INVOLVEMENT_KEYS):
            return "involved"
        return None
