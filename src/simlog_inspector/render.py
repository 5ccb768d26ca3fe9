"""Plain-text reports for the CLI.

Each ``render_*`` function takes the same response model the HTTP API
returns and produces the console report for it, so the text and JSON
outputs of the CLI always describe the same data.
"""

from __future__ import annotations

import json
from typing import Any

from simlog_inspector.api.schemas import (
    CountEntry,
    EntityHistoryResponse,
    LogSummaryResponse,
    NarrativesResponse,
    OperationsResponse,
    ValidationResponse,
)
from simlog_inspector.reconstruction.entity import RELATIONSHIP_DIMENSIONS
from simlog_inspector.reconstruction.summary import DaySnapshot

HEAVY_RULE = "=" * 63
LIGHT_RULE = "-" * 63


def _banner(title: str, source: str) -> list[str]:
    return ["", HEAVY_RULE, title, f"File: {source}", HEAVY_RULE, ""]


def _section(title: str) -> list[str]:
    return ["", title, LIGHT_RULE]


def _text(value: Any) -> str:
    if value is None:
        return "?"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


# ---------------------------------------------------------------------------
# Entity history
# ---------------------------------------------------------------------------


def render_entity(response: EntityHistoryResponse, source: str) -> str:
    """Render an entity history report."""
    name = f" ({response.name})" if response.name else ""
    lines = _banner(f"ENTITY: {response.entity_id}{name}", source)
    totals = response.totals

    lines += _section(
        f"MEMORIES ({totals.memories} total, showing last {len(response.memories)}):"
    )
    if not response.memories:
        lines.append("  (no memories recorded)")
    for memory in response.memories:
        lines.append(f"  [t{memory.tick}] {_text(memory.event_type)}: {_text(memory.description)}")
        lines.append(
            f"          vividness={_text(memory.vividness)} importance={_text(memory.importance)}"
        )
        if memory.participants:
            names = ", ".join(
                f"{_text(p.get('name'))}({_text(p.get('role'))})" for p in memory.participants
            )
            lines.append(f"          participants: {names}")

    lines += _section(f"GOALS ({totals.goals} events, showing last {len(response.goals)}):")
    if not response.goals:
        lines.append("  (no goal events)")
    for goal in response.goals:
        target = f" -> {_text(goal.target)}" if goal.target else ""
        lines.append(f"  [t{goal.tick}] {goal.kind}: {_text(goal.goal_type)}{target}")
        if goal.why:
            lines.append(f"          why: {goal.why}")

    lines += _section(f"PLANS ({totals.plans} events, showing last {len(response.plans)}):")
    if not response.plans:
        lines.append("  (no plan events)")
    for plan in response.plans:
        lines.append(
            f"  [t{plan.tick}] {plan.kind}: plan={_text(plan.plan_id)} goal={_text(plan.goal_id)}"
        )
        if plan.steps:
            lines.append(f"          steps: {' -> '.join(_text(step) for step in plan.steps)}")
        if plan.step_index is not None:
            lines.append(f"          stepIndex={plan.step_index}")

    lines += _section(f"RELATIONSHIPS ({totals.relationships} tracked):")
    if not response.relationships:
        lines.append("  (no relationships tracked)")
    for relationship in response.relationships:
        lines.append(f"  {relationship.target_id}:")
        parts = [
            f"{dimension}={getattr(relationship, dimension)}"
            for dimension in RELATIONSHIP_DIMENSIONS
            if getattr(relationship, dimension) is not None
        ]
        if parts:
            lines.append(f"    {' '.join(parts)}")
        if relationship.attributes:
            extras = (f"{key}={_text(value)}" for key, value in relationship.attributes.items())
            lines.append(f"    {' '.join(extras)}")
        change = relationship.last_change
        if change is not None:
            lines.append(
                f"    last change [t{change.tick}]: {_text(change.dimension)} "
                f"{_text(change.old_value)}->{_text(change.new_value)} ({_text(change.reason)})"
            )

    lines += _section(f"ACTIONS (last {len(response.actions)} of {totals.actions}):")
    if not response.actions:
        lines.append("  (no actions recorded)")
    for action in response.actions:
        site = f"@{action.site_id}" if action.site_id else ""
        lines.append(
            f"  [t{action.tick}] {action.action_kind or action.record_kind}{site} "
            f"({action.role}) - {action.why or action.message or 'no reason'}"
        )
        if action.outcome:
            lines.append(f"          outcome: {action.outcome}")

    if response.note:
        lines += ["", f"Note: {response.note}"]
    lines += ["", HEAVY_RULE, ""]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Narratives
# ---------------------------------------------------------------------------


def render_narratives(response: NarrativesResponse, source: str) -> str:
    """Render narrative timelines, chronicle entries and story beats."""
    title = f"NARRATIVE: {response.narrative_id}" if response.narrative_id else "NARRATIVES"
    lines = _banner(title, source)

    lines += _section(f"NARRATIVES ({len(response.narratives)} total):")
    if not response.narratives:
        lines.append("  (no narratives detected)")
    for narrative in response.narratives:
        lines.append("")
        lines.append(
            f'  {_text(narrative.type)}: "{_text(narrative.title)}" '
            f"[{narrative.status or 'unknown'}]"
        )
        lines.append(f"    ID: {narrative.narrative_id}")
        lines.append(f"    Protagonists: {', '.join(narrative.protagonist_ids) or 'none'}")
        lines.append(f"    Antagonists: {', '.join(narrative.antagonist_ids) or 'none'}")
        lines.append(
            f"    Tension: {narrative.tension or 0}/100 (peak: {narrative.peak_tension or 0})"
        )
        lines.append("    Events:")
        for transition in narrative.transitions:
            act = f" (act {transition.act_index})" if transition.act_index is not None else ""
            reason = f" - {transition.reason}" if transition.reason else ""
            lines.append(f"      [t{transition.tick}] {transition.type}{act}{reason}")

    lines += _section(
        f"CHRONICLE ENTRIES ({response.chronicle_total} total, "
        f"showing last {len(response.chronicle_entries)}):"
    )
    if not response.chronicle_entries:
        lines.append("  (no chronicle entries)")
    for entry in response.chronicle_entries:
        lines.append(
            f"  [t{entry.tick}] {_text(entry.type)} ({_text(entry.significance)}): "
            f"{_text(entry.headline)}"
        )
        if entry.description:
            lines.append(f"          {entry.description}")

    lines += _section(
        f"STORY BEATS ({response.story_beat_total} total, "
        f"showing last {len(response.story_beats)}):"
    )
    if not response.story_beats:
        lines.append("  (no story beats detected)")
    for beat in response.story_beats:
        lines.append(
            f"  [t{beat.tick}] {_text(beat.type)} ({_text(beat.significance)}): "
            f"{_text(beat.description)}"
        )
        if beat.could_start:
            lines.append(f"          -> Could start: {beat.could_start}")

    lines += ["", HEAVY_RULE, ""]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def render_operations(response: OperationsResponse, source: str) -> str:
    """Render faction operations with likely phase actors and decisions."""
    title = f"OPERATIONS for {response.faction_id}" if response.faction_id else "OPERATIONS"
    lines = _banner(title, source)

    lines += _section(f"OPERATIONS ({len(response.operations)} total):")
    if not response.operations:
        lines.append("  (no operations recorded)")
    for operation in response.operations:
        lines.append("")
        lines.append(
            f"  {_text(operation.faction_id)}:{_text(operation.type)} [{operation.status}]"
        )
        lines.append(f"    ID: {operation.operation_id}")
        if operation.site_id:
            lines.append(f"    Site: {operation.site_id}")
        if operation.target_npc_id:
            lines.append(f"    Target NPC: {operation.target_npc_id}")
        lines.append("    Events:")
        phases = iter(operation.phases)
        for event in operation.events:
            extra = ""
            if event.phase_index is not None:
                extra = f" -> phase {event.phase_index + 1}"
            if event.outcome:
                extra = f" -> {event.outcome}"
            if event.reason:
                extra = f" -> {event.reason}"
            lines.append(f"      [t{event.tick}] {event.type}{extra}")
            if event.type != "phase":
                continue
            phase = next(phases, None)
            if phase is not None and phase.attempt_count:
                actors = ", ".join(phase.actors) or "(unknown)"
                lines.append(
                    f'        likely actors for "{phase.label}": '
                    f"{phase.attempt_count} attempts by {actors}"
                )

    lines += _section(
        f"FACTION DECISIONS ({response.decision_total} total, "
        f"showing last {len(response.decisions)}):"
    )
    if not response.decisions:
        lines.append("  (no decisions recorded)")
    for decision in response.decisions:
        lines.append(f"  [t{decision.tick}] {_text(decision.faction_id)}: {_text(decision.type)}")
        if decision.details:
            lines.append(f"          {_text(decision.details)}")

    lines += ["", HEAVY_RULE, ""]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Log summary
# ---------------------------------------------------------------------------

POPULATION_NOTE = (
    "pop is cohort population; aliveNpcs/deadNpcs/cultMembers are tracked NPCs "
    "and may be far smaller."
)


def _counted(title: str, entries: list[CountEntry], empty: str = "(none)") -> list[str]:
    lines = ["", f"{title}:"]
    if not entries:
        lines.append(f"- {empty}")
    lines += [f"- {entry.name}: {entry.count}" for entry in entries]
    return lines


def _day(snapshot: DaySnapshot) -> list[str]:
    lines = [f"  day {snapshot.day} (tick {_text(snapshot.tick)}):"]
    for change in snapshot.key_changes:
        lines.append(f"    * {_text(change)}")
    for site in snapshot.sites:
        lines.append(f"    {_text(site.site_id)} {_text(site.name)}:")
        lines.append(
            f"      pop={site.population} foodTot={_text(site.food_total)} "
            f"unrest={_text(site.unrest)} morale={_text(site.morale)} "
            f"sickness={_text(site.sickness)} hunger={_text(site.hunger)} "
            f"cult={_text(site.cult)} press={_text(site.pressure)} anchor={_text(site.anchor)}"
        )
        lines.append(
            f"      aliveNpcs={_text(site.alive_npcs)} deadNpcs={_text(site.dead_npcs)} "
            f"cultMembers={_text(site.cult_members)} avgTrauma={_text(site.avg_trauma)} "
            f"namedToCohortPct={_text(site.named_to_cohort_pct)} "
            f"deathsToday={_text(site.deaths_today)}"
        )
    return lines


def render_summary(response: LogSummaryResponse, source: str) -> str:
    """Render whole-log statistics, milestones and day snapshots."""
    lines = _banner("LOG SUMMARY", source)
    last_day = response.last_day if response.last_day is not None else -1
    lines += [
        f"Lines: {_text(response.line_count)}  Records: {response.record_count}",
        f"Seed: {response.seed if response.seed is not None else 'unknown'}  "
        f"LastTick: {response.last_tick}  LastDay: {last_day}",
        f"Note: {POPULATION_NOTE}",
    ]

    lines += _counted("Top event kinds", response.top_event_kinds)
    lines += _counted("Incidents by type", response.incidents_by_type)
    lines += _counted("Travel encounters by type", response.travel_encounters_by_type)
    lines += _counted("Top attempt kinds", response.top_attempt_kinds, "(none parsed)")
    lines += _counted("Top actors by attempt count", response.top_actors, "(none parsed)")

    lines += ["", "Milestones (first day): food=0 / unrest=100 / cult=100 / sickness=100"]
    for milestone in response.milestones:
        days = (
            milestone.food_zero,
            milestone.unrest_max,
            milestone.cult_max,
            milestone.sickness_max,
        )
        food, unrest, cult, sickness = ("-" if day is None else str(day) for day in days)
        lines.append(
            f"- {milestone.site_id}: food0={food} unrest100={unrest} "
            f"cult100={cult} sickness100={sickness}"
        )

    lines += _section("Sample day snapshots:")
    if not response.samples:
        lines.append("  (no sampled days in this log)")
    for snapshot in response.samples:
        lines += _day(snapshot)

    if response.last_day_snapshot is not None:
        lines += _section("Last day snapshot:")
        lines += _day(response.last_day_snapshot)

    lines += ["", HEAVY_RULE, ""]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Snapshot validation
# ---------------------------------------------------------------------------


def render_validation(response: ValidationResponse, source: str) -> str:
    """Render snapshot validation results."""
    lines = _banner("VALIDATE WORLD", source)
    lines += [
        f"Entities: {response.entity_count}",
        f"Sites: {response.site_count}",
        f"Factions: {response.faction_count}",
    ]
    lines += _section("Validation Results:")
    if not response.errors and not response.warnings:
        lines.append("OK: no issues found")
    if response.errors:
        lines += ["", f"ERRORS ({len(response.errors)}):"]
        lines += [f"  x {error}" for error in response.errors]
    if response.warnings:
        lines += ["", f"WARNINGS ({len(response.warnings)}):"]
        lines += [f"  ! {warning}" for warning in response.warnings]

    lines += ["", HEAVY_RULE, ""]
    return "\n".join(lines)
