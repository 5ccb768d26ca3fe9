"""Whole-log summary reconstruction.

Folds an event stream into log-wide statistics: event kind counts, incident
and travel-encounter breakdowns, attempt counts per kind and per actor, the
first day each settlement hit a crisis milestone, and the end-of-day
summaries for a chosen set of sample days plus the last day seen.

Day summaries are kept raw during the fold and compacted into DaySnapshot
views only when presented.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from simlog_inspector.observability import get_logger
from simlog_inspector.stream.events import EventRecord, as_int, as_mapping, as_number, as_text

logger = get_logger(__name__)

SIM_STARTED = "sim.started"
DAY_ENDED = "sim.day.ended"
WORLD_INCIDENT = "world.incident"
TRAVEL_ENCOUNTER = "travel.encounter"
ATTEMPT_RECORDED = "attempt.recorded"

DEFAULT_SAMPLE_DAYS: tuple[int, ...] = (0, 7, 30, 60, 90)

TOP_EVENT_KINDS = 12
TOP_ATTEMPT_KINDS = 12
TOP_ACTORS = 10
KEY_CHANGE_LIMIT = 20

# Keys tried in order for the type of a travel encounter
_ENCOUNTER_TYPE_KEYS: tuple[str, ...] = ("encounterKind", "kind", "encounter", "type")

# Saturation value of the unrest, cult influence and sickness meters
METER_MAX = 100


def _half_up(value: float | None) -> int | None:
    return None if value is None else math.floor(value + 0.5)


def _food_total(food_totals: dict[str, Any]) -> int | float | None:
    amounts = [as_number(food_totals.get(key)) for key in ("grain", "fish", "meat")]
    return None if None in amounts else sum(amounts)


@dataclass
class SiteMilestones:
    """First day a settlement ran out of food or saturated a meter."""

    site_id: str
    food_zero: int | None = None
    unrest_max: int | None = None
    cult_max: int | None = None
    sickness_max: int | None = None


@dataclass(frozen=True)
class SiteDigest:
    """Compact view of one settlement in an end-of-day summary.

    ``population`` is the cohort population; ``alive_npcs``, ``dead_npcs``
    and ``cult_members`` count tracked named NPCs only and are usually far
    smaller.
    """

    site_id: str | None
    name: str | None
    population: int | float
    food_total: int | float | None
    unrest: int | float | None = None
    morale: int | float | None = None
    sickness: int | float | None = None
    hunger: int | float | None = None
    cult: int | float | None = None
    pressure: int | None = None
    anchor: int | None = None
    alive_npcs: int | float | None = None
    dead_npcs: int | float | None = None
    cult_members: int | float | None = None
    avg_trauma: int | None = None
    named_to_cohort_pct: int | None = None
    deaths_today: int | float | None = None

    @classmethod
    def from_site(cls, site: dict[str, Any]) -> SiteDigest:
        cohorts = as_mapping(site.get("cohorts"))
        population = sum(
            as_number(cohorts.get(key)) or 0 for key in ("children", "adults", "elders")
        )
        alive = as_number(site.get("aliveNpcs"))
        ratio = None
        if alive is not None and population > 0:
            ratio = _half_up(alive / population * 100)
        return cls(
            site_id=as_text(site.get("siteId")),
            name=as_text(site.get("name")),
            population=population,
            food_total=_food_total(as_mapping(site.get("foodTotals"))),
            unrest=as_number(site.get("unrest")),
            morale=as_number(site.get("morale")),
            sickness=as_number(site.get("sickness")),
            hunger=as_number(site.get("hunger")),
            cult=as_number(site.get("cultInfluence")),
            pressure=_half_up(as_number(site.get("eclipsingPressure"))),
            anchor=_half_up(as_number(site.get("anchoringStrength"))),
            alive_npcs=alive,
            dead_npcs=as_number(site.get("deadNpcs")),
            cult_members=as_number(site.get("cultMembers")),
            avg_trauma=_half_up(as_number(site.get("avgTrauma"))),
            named_to_cohort_pct=ratio,
            deaths_today=as_number(site.get("deathsToday")),
        )


@dataclass(frozen=True)
class DaySnapshot:
    """Compacted end-of-day summary: settlements only, key changes capped."""

    day: int
    tick: int | None
    key_changes: list[Any]
    sites: list[SiteDigest]


def settlement_sites(day_summary: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the sites of a day summary that carry food totals (settlements)."""
    sites = day_summary.get("sites")
    if not isinstance(sites, list):
        return []
    return [site for site in sites if isinstance(site, dict) and site.get("foodTotals")]


def compact_day(
    day: int,
    day_summary: dict[str, Any],
    show_sites: Sequence[str] | None = None,
) -> DaySnapshot:
    """Build the DaySnapshot for one raw ``sim.day.ended`` summary.

    Args:
        day: The summary's day number.
        day_summary: The raw ``data.summary`` payload.
        show_sites: When given, only these settlement ids are kept.

    Returns:
        The compacted snapshot.
    """
    sites = settlement_sites(day_summary)
    if show_sites is not None:
        sites = [site for site in sites if as_text(site.get("siteId")) in show_sites]
    key_changes = day_summary.get("keyChanges")
    return DaySnapshot(
        day=day,
        tick=as_int(day_summary.get("tick")),
        key_changes=list(key_changes[:KEY_CHANGE_LIMIT]) if isinstance(key_changes, list) else [],
        sites=[SiteDigest.from_site(site) for site in sites],
    )


@dataclass
class LogSummary:
    """Result of a log summary run.

    Attributes:
        record_count: Records decoded from the log.
        line_count: Non-empty lines read, parseable or not; set by the caller
            that owns the line source.
        seed: Seed from ``sim.started``, if logged.
        last_tick: Highest tick seen (0 for an empty log).
        last_day: Highest day with an end-of-day summary, or -1.
        kind_counts: Records per event kind.
        incidents_by_type: ``world.incident`` records per incident type.
        encounters_by_type: ``travel.encounter`` records per encounter type.
        attempts_by_kind: Attempts per attempt kind.
        attempts_by_actor: Attempts per actor id.
        milestones: First-day crisis milestones per settlement id.
        samples: Raw day summaries for the requested sample days.
        last_day_summary: Raw summary of ``last_day``.
        show_sites: Settlement filter applied to snapshots.
    """

    record_count: int = 0
    line_count: int | None = None
    seed: int | float | None = None
    last_tick: int = 0
    last_day: int = -1
    kind_counts: Counter[str] = field(default_factory=Counter)
    incidents_by_type: Counter[str] = field(default_factory=Counter)
    encounters_by_type: Counter[str] = field(default_factory=Counter)
    attempts_by_kind: Counter[str] = field(default_factory=Counter)
    attempts_by_actor: Counter[str] = field(default_factory=Counter)
    milestones: dict[str, SiteMilestones] = field(default_factory=dict)
    samples: dict[int, dict[str, Any]] = field(default_factory=dict)
    last_day_summary: dict[str, Any] | None = None
    show_sites: list[str] | None = None

    def top_kinds(self) -> list[tuple[str, int]]:
        return self.kind_counts.most_common(TOP_EVENT_KINDS)

    def top_attempt_kinds(self) -> list[tuple[str, int]]:
        return self.attempts_by_kind.most_common(TOP_ATTEMPT_KINDS)

    def top_actors(self) -> list[tuple[str, int]]:
        return self.attempts_by_actor.most_common(TOP_ACTORS)

    def ordered_milestones(self) -> list[SiteMilestones]:
        return [self.milestones[site_id] for site_id in sorted(self.milestones)]

    def sample_snapshots(self) -> list[DaySnapshot]:
        return [
            compact_day(day, self.samples[day], self.show_sites) for day in sorted(self.samples)
        ]

    def last_day_snapshot(self) -> DaySnapshot | None:
        if self.last_day_summary is None:
            return None
        return compact_day(self.last_day, self.last_day_summary, self.show_sites)


class LogSummaryReconstructor:
    """Builds a LogSummary from an event stream.

    Args:
        sample_days: Days whose end-of-day summary is kept as a sample.
        show_sites: Restrict day snapshots to these settlement ids.
    """

    def __init__(
        self,
        sample_days: Iterable[int] = DEFAULT_SAMPLE_DAYS,
        show_sites: Sequence[str] | None = None,
    ) -> None:
        self._sample_days = frozenset(sample_days)
        self._show_sites = list(show_sites) if show_sites is not None else None

    def reconstruct(self, records: Iterable[EventRecord]) -> LogSummary:
        """Fold ``records`` into a fresh LogSummary."""
        summary = LogSummary(show_sites=self._show_sites)
        for record in records:
            self._apply(summary, record)

        logger.info(
            "Log summarised",
            records=summary.record_count,
            kinds=len(summary.kind_counts),
            last_tick=summary.last_tick,
            last_day=summary.last_day,
        )
        return summary

    def _apply(self, summary: LogSummary, record: EventRecord) -> None:
        data = record.data
        kind = record.kind
        summary.record_count += 1
        summary.last_tick = max(summary.last_tick, record.tick)
        if kind:
            summary.kind_counts[kind] += 1

        if kind == SIM_STARTED and as_number(data.get("seed")) is not None:
            summary.seed = data["seed"]
        elif kind == WORLD_INCIDENT:
            summary.incidents_by_type[as_text(data.get("type")) or "unknown"] += 1
        elif kind == TRAVEL_ENCOUNTER:
            encounter = next(
                (data[key] for key in _ENCOUNTER_TYPE_KEYS if data.get(key) is not None),
                "unknown",
            )
            summary.encounters_by_type[str(encounter)] += 1
        elif kind == ATTEMPT_RECORDED:
            attempt = record.attempt
            if isinstance(attempt.get("kind"), str):
                summary.attempts_by_kind[attempt["kind"]] += 1
            if isinstance(attempt.get("actorId"), str):
                summary.attempts_by_actor[attempt["actorId"]] += 1
        elif kind == DAY_ENDED:
            self._apply_day(summary, as_mapping(data.get("summary")))

    def _apply_day(self, summary: LogSummary, day_summary: dict[str, Any]) -> None:
        raw_day = day_summary.get("day")
        day = as_int(raw_day) if as_number(raw_day) is not None else None
        if day is None:
            return
        if day >= summary.last_day:
            summary.last_day = day
            summary.last_day_summary = day_summary
        if day in self._sample_days:
            summary.samples[day] = day_summary

        for site in settlement_sites(day_summary):
            site_id = as_text(site.get("siteId"))
            if site_id is None:
                continue
            reached = {
                "food_zero": _food_total(as_mapping(site.get("foodTotals"))) == 0,
                "unrest_max": site.get("unrest") == METER_MAX,
                "cult_max": site.get("cultInfluence") == METER_MAX,
                "sickness_max": site.get("sickness") == METER_MAX,
            }
            for milestone, hit in reached.items():
                if not hit:
                    continue
                entry = summary.milestones.setdefault(site_id, SiteMilestones(site_id=site_id))
                if getattr(entry, milestone) is None:
                    setattr(entry, milestone, day)
