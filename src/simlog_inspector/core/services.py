"""Inspection service: wires sources, decoder and reconstructors together.

One service class:
- InspectionService: entity history, narratives, operations, whole-log
  summaries and snapshot validation over files on disk (or an
  already-parsed snapshot)

Every call opens its own handle and owns its own aggregates, so concurrent
calls over the same file are independent. The service contains no
framework code; the CLI and the HTTP router both call into it.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from simlog_inspector.observability import get_logger
from simlog_inspector.reconstruction.entity import EntityHistory, EntityReconstructor
from simlog_inspector.reconstruction.narrative import NarrativeReconstructor, NarrativeReport
from simlog_inspector.reconstruction.operations import OperationReconstructor, OperationsReport
from simlog_inspector.reconstruction.summary import LogSummary, LogSummaryReconstructor
from simlog_inspector.settings import Settings
from simlog_inspector.stream.decoder import decode_lines
from simlog_inspector.stream.events import EventRecord
from simlog_inspector.stream.source import iter_log_lines, load_snapshot
from simlog_inspector.validation.validator import SnapshotValidator, ValidationReport

logger = get_logger(__name__)


class InspectionService:
    """Runs one reconstruction or validation per call.

    Args:
        settings: Tails, correlation parameters and tick-order policy.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    def records(self, log_path: str | Path) -> Iterator[EventRecord]:
        """Return a lazy stream of decoded records from ``log_path``.

        Raises:
            SourceUnreadableError: If the log cannot be opened.
        """
        return decode_lines(iter_log_lines(log_path), tick_order=self._settings.tick_order)

    def entity_history(
        self,
        log_path: str | Path,
        entity_id: str,
        limit: int | None = None,
    ) -> EntityHistory:
        """Reconstruct the history of ``entity_id``.

        Args:
            log_path: Event log to read.
            entity_id: Entity to reconstruct.
            limit: Length of the recent views; defaults to settings.entity_limit.

        Returns:
            The entity's history. Empty if the entity never appears.
        """
        logger.debug("Reconstructing entity history", path=str(log_path), entity_id=entity_id)
        reconstructor = EntityReconstructor(
            entity_id,
            limit=self._settings.entity_limit if limit is None else limit,
        )
        return reconstructor.reconstruct(self.records(log_path))

    def narratives(self, log_path: str | Path) -> NarrativeReport:
        """Reconstruct every narrative plus chronicle entries and story beats."""
        logger.debug("Reconstructing narratives", path=str(log_path))
        reconstructor = NarrativeReconstructor(
            chronicle_tail=self._settings.chronicle_tail,
            story_beat_tail=self._settings.story_beat_tail,
        )
        return reconstructor.reconstruct(self.records(log_path))

    def operations(self, log_path: str | Path, faction_id: str | None = None) -> OperationsReport:
        """Reconstruct faction operations, optionally for one faction only."""
        logger.debug("Reconstructing operations", path=str(log_path), faction_id=faction_id)
        reconstructor = OperationReconstructor(
            faction_id=faction_id,
            decision_tail=self._settings.decision_tail,
            window_ticks=self._settings.phase_window_ticks,
            actor_cap=self._settings.likely_actor_cap,
        )
        return reconstructor.reconstruct(self.records(log_path))

    def summary(
        self,
        log_path: str | Path,
        sample_days: Sequence[int] | None = None,
        show_sites: Sequence[str] | None = None,
    ) -> LogSummary:
        """Summarise a whole log.

        Args:
            log_path: Event log to read.
            sample_days: Days whose end-of-day summary is sampled; defaults
                to settings.summary_sample_days.
            show_sites: Only show these settlement ids in day snapshots.

        Returns:
            The log summary, including the count of non-empty lines read.
        """
        logger.debug("Summarising log", path=str(log_path))
        lines = iter_log_lines(log_path)
        line_count = 0

        def counted() -> Iterator[str]:
            nonlocal line_count
            for line in lines:
                if line:
                    line_count += 1
                yield line

        reconstructor = LogSummaryReconstructor(
            sample_days=self._settings.summary_sample_days if sample_days is None else sample_days,
            show_sites=show_sites,
        )
        summary = reconstructor.reconstruct(
            decode_lines(counted(), tick_order=self._settings.tick_order)
        )
        summary.line_count = line_count
        return summary

    def validate_snapshot_file(self, snapshot_path: str | Path) -> ValidationReport:
        """Read, parse and validate a snapshot file.

        Raises:
            SourceUnreadableError: If the file cannot be read.
            SnapshotDecodeError: If the file is not a JSON object.
        """
        return self.validate_snapshot(load_snapshot(snapshot_path))

    def validate_snapshot(self, document: dict[str, Any]) -> ValidationReport:
        """Validate an already-parsed snapshot document."""
        return SnapshotValidator().validate(document)
