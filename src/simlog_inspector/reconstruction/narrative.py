"""Narrative timeline reconstruction.

Narratives are created by ``narrative.started`` and then move through
``advanced``, ``climax`` and ``concluded``. Progress events for a narrative
that was never seen starting are dropped: the log may have been rotated or
truncated, and no phantom narrative is invented for them.

Chronicle entries and story beats are collected into two global
chronological lists regardless of which narrative (if any) they concern.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from simlog_inspector.observability import get_logger
from simlog_inspector.reconstruction.common import tail
from simlog_inspector.stream.events import EventRecord, as_int, as_mapping, as_number, as_text

logger = get_logger(__name__)

NARRATIVE_STARTED = "narrative.started"
NARRATIVE_ADVANCED = "narrative.advanced"
NARRATIVE_CLIMAX = "narrative.climax"
NARRATIVE_CONCLUDED = "narrative.concluded"
CHRONICLE_ENTRY = "chronicle.entry"
STORY_BEAT_DETECTED = "story.beat.detected"

# Transition type and resulting status for each progress event kind
_PROGRESS_KINDS: dict[str, tuple[str, str]] = {
    NARRATIVE_ADVANCED: ("advanced", "advancing"),
    NARRATIVE_CLIMAX: ("climax", "climax"),
    NARRATIVE_CONCLUDED: ("concluded", "concluded"),
}


@dataclass(frozen=True)
class NarrativeTransition:
    """One lifecycle step of a narrative."""

    tick: int
    type: str
    act_index: int | None = None
    reason: str | None = None


@dataclass
class NarrativeTimeline:
    """Reconstructed narrative.

    Metadata is captured from the ``narrative.started`` descriptor and is
    never updated afterwards; only ``status`` and ``transitions`` change.

    Attributes:
        narrative_id: The narrative's id.
        type: Narrative type, e.g. ``revenge``.
        title: Display title.
        protagonist_ids: Protagonist entity ids.
        antagonist_ids: Antagonist entity ids.
        tension: Tension at start.
        peak_tension: Peak tension at start.
        status: Latest lifecycle status; the descriptor's own status until
            a progress event arrives.
        transitions: Lifecycle transitions in stream order.
    """

    narrative_id: str
    type: str | None = None
    title: str | None = None
    protagonist_ids: list[str] = field(default_factory=list)
    antagonist_ids: list[str] = field(default_factory=list)
    tension: float | None = None
    peak_tension: float | None = None
    status: str | None = None
    transitions: list[NarrativeTransition] = field(default_factory=list)

    @classmethod
    def from_descriptor(cls, narrative_id: str, descriptor: dict[str, Any]) -> NarrativeTimeline:
        protagonists = descriptor.get("protagonistIds")
        antagonists = descriptor.get("antagonistIds")
        if not isinstance(protagonists, list):
            protagonists = []
        if not isinstance(antagonists, list):
            antagonists = []
        return cls(
            narrative_id=narrative_id,
            type=as_text(descriptor.get("type")),
            title=as_text(descriptor.get("title")),
            protagonist_ids=[str(p) for p in protagonists],
            antagonist_ids=[str(a) for a in antagonists],
            tension=as_number(descriptor.get("tension")),
            peak_tension=as_number(descriptor.get("peakTension")),
            status=as_text(descriptor.get("status")),
        )


@dataclass(frozen=True)
class ChronicleEntry:
    """A chronicle entry, tagged with the tick it was logged at."""

    tick: int
    type: str | None = None
    significance: Any = None
    headline: str | None = None
    description: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StoryBeat:
    """A detected story beat, tagged with the tick it was logged at."""

    tick: int
    type: str | None = None
    significance: Any = None
    description: str | None = None
    narrative_potential: dict[str, Any] = field(default_factory=dict)
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def could_start(self) -> str | None:
        """Narrative type this beat could start, if flagged as a starter."""
        if self.narrative_potential.get("startsNarrative"):
            return as_text(self.narrative_potential.get("narrativeType"))
        return None


@dataclass
class NarrativeReport:
    """Result of a narrative reconstruction run.

    Attributes:
        narratives: Every narrative seen starting, keyed by id in first-seen order.
        chronicle_entries: All chronicle entries, in stream order.
        story_beats: All story beats, in stream order.
        chronicle_tail: Length of ``recent_chronicle_entries``.
        story_beat_tail: Length of ``recent_story_beats``.
    """

    narratives: dict[str, NarrativeTimeline] = field(default_factory=dict)
    chronicle_entries: list[ChronicleEntry] = field(default_factory=list)
    story_beats: list[StoryBeat] = field(default_factory=list)
    chronicle_tail: int = 20
    story_beat_tail: int = 30

    def select(self, narrative_id: str | None = None) -> dict[str, NarrativeTimeline]:
        """Return all narratives, or only ``narrative_id`` when given."""
        if narrative_id is None:
            return dict(self.narratives)
        found = self.narratives.get(narrative_id)
        return {narrative_id: found} if found is not None else {}

    def recent_chronicle_entries(self) -> list[ChronicleEntry]:
        return tail(self.chronicle_entries, self.chronicle_tail)

    def recent_story_beats(self) -> list[StoryBeat]:
        return tail(self.story_beats, self.story_beat_tail)


class NarrativeReconstructor:
    """Builds a NarrativeReport from an event stream.

    Args:
        chronicle_tail: Chronicle entries exposed by the recent view.
        story_beat_tail: Story beats exposed by the recent view.
    """

    def __init__(self, chronicle_tail: int = 20, story_beat_tail: int = 30) -> None:
        self._chronicle_tail = chronicle_tail
        self._story_beat_tail = story_beat_tail

    def reconstruct(self, records: Iterable[EventRecord]) -> NarrativeReport:
        """Fold ``records`` into a fresh NarrativeReport.

        Args:
            records: Decoded records in stream order.

        Returns:
            The reconstructed narratives and global chronicle/beat logs.
        """
        report = NarrativeReport(
            chronicle_tail=self._chronicle_tail,
            story_beat_tail=self._story_beat_tail,
        )
        dropped = 0
        for record in records:
            if not self._apply(report, record):
                dropped += 1

        logger.info(
            "Narratives reconstructed",
            narratives=len(report.narratives),
            chronicle_entries=len(report.chronicle_entries),
            story_beats=len(report.story_beats),
        )
        if dropped:
            logger.debug("Dropped progress events for unknown narratives", dropped=dropped)
        return report

    def _apply(self, report: NarrativeReport, record: EventRecord) -> bool:
        """Apply one record; returns False only when a progress event is dropped."""
        data = record.data
        kind = record.kind

        if kind == NARRATIVE_STARTED:
            descriptor = as_mapping(data.get("narrative"))
            narrative_id = as_text(descriptor.get("id"))
            if narrative_id is None:
                return True
            timeline = report.narratives.get(narrative_id)
            if timeline is None:
                timeline = NarrativeTimeline.from_descriptor(narrative_id, descriptor)
                report.narratives[narrative_id] = timeline
            timeline.transitions.append(NarrativeTransition(tick=record.tick, type="started"))
            return True

        if kind in _PROGRESS_KINDS:
            narrative_id = as_text(data.get("narrativeId"))
            if narrative_id is None:
                return True
            timeline = report.narratives.get(narrative_id)
            if timeline is None:
                return False
            transition_type, status = _PROGRESS_KINDS[kind]
            timeline.transitions.append(
                NarrativeTransition(
                    tick=record.tick,
                    type=transition_type,
                    act_index=as_int(data.get("actIndex")) if kind == NARRATIVE_ADVANCED else None,
                    reason=as_text(data.get("reason")) if kind == NARRATIVE_CONCLUDED else None,
                )
            )
            timeline.status = status
            return True

        if kind == CHRONICLE_ENTRY and isinstance(data.get("chronicleEntry"), dict):
            entry = data["chronicleEntry"]
            report.chronicle_entries.append(
                ChronicleEntry(
                    tick=record.tick,
                    type=as_text(entry.get("type")),
                    significance=entry.get("significance"),
                    headline=as_text(entry.get("headline")),
                    description=as_text(entry.get("description")),
                    payload=dict(entry),
                )
            )
        elif kind == STORY_BEAT_DETECTED and isinstance(data.get("storyBeat"), dict):
            beat = data["storyBeat"]
            report.story_beats.append(
                StoryBeat(
                    tick=record.tick,
                    type=as_text(beat.get("type")),
                    significance=beat.get("significance"),
                    description=as_text(beat.get("description")),
                    narrative_potential=as_mapping(beat.get("narrativePotential")),
                    payload=dict(beat),
                )
            )
        return True
