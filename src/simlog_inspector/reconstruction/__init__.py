"""Single-pass reconstructors over a decoded event stream.

Each reconstructor owns its aggregates for the duration of one call and
folds records additively: aggregates are created on first sight and never
removed. Records a reconstructor does not recognise are ignored.

Modules:
- entity: memory, goal, plan, relationship and action history of one entity
- narrative: narrative lifecycles plus chronicle entries and story beats
- operations: faction operation state machines and faction decisions
- correlation: phase-actor correlation between operations and attempts
- summary: whole-log counts, settlement milestones and sampled day summaries
"""

from __future__ import annotations

from simlog_inspector.reconstruction.entity import EntityHistory, EntityReconstructor
from simlog_inspector.reconstruction.narrative import NarrativeReconstructor, NarrativeReport
from simlog_inspector.reconstruction.operations import OperationReconstructor, OperationsReport
from simlog_inspector.reconstruction.summary import LogSummary, LogSummaryReconstructor

__all__ = [
    "EntityHistory",
    "EntityReconstructor",
    "LogSummary",
    "LogSummaryReconstructor",
    "NarrativeReconstructor",
    "NarrativeReport",
    "OperationReconstructor",
    "OperationsReport",
]
