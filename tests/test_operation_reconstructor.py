"""Tests for OperationReconstructor and phase-actor correlation.

Covers: the operation state machine, identity merging, faction filtering,
decisions, attempt buffering, phase labels, half-open correlation windows,
site scoping and the likely-actor cap.
"""

from __future__ import annotations

from typing import Any

import pytest

from simlog_inspector.reconstruction.correlation import (
    AttemptRecord,
    TickWindow,
    correlate_phases,
    likely_actors,
    phase_label,
    phase_window,
)
from simlog_inspector.reconstruction.operations import (
    OperationIdentity,
    OperationReconstructor,
    OperationsReport,
    merge_identity,
)
from simlog_inspector.stream.events import EventRecord


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_record(kind: str, tick: int = 1, site_id: str | None = None, **data: Any) -> EventRecord:
    """Build an EventRecord with keyword arguments as its payload."""
    return EventRecord(tick=tick, kind=kind, data=data, site_id=site_id)


def op_event(suffix: str, tick: int, operation_id: str = "op-1", **data: Any) -> EventRecord:
    return make_record(f"faction.operation.{suffix}", tick=tick, operationId=operation_id, **data)


def attempt(
    tick: int,
    actor: str,
    kind: str = "kidnap",
    site: str | None = "site-1",
    **data: Any,
) -> EventRecord:
    payload: dict[str, Any] = {"actorId": actor, "kind": kind}
    if site is not None:
        payload["siteId"] = site
    return make_record("attempt.recorded", tick=tick, attempt=payload, **data)


def reconstruct(records: list[EventRecord], **kwargs: Any) -> OperationsReport:
    return OperationReconstructor(**kwargs).reconstruct(records)


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


def test_created_phase_completed_sequence() -> None:
    report = reconstruct([op_event("created", 1, factionId="f-1", type="raid")])
    assert report.operations["op-1"].status == "planning"
    assert report.operations["op-1"].created_tick == 1

    report = reconstruct(
        [op_event("created", 1), op_event("phase", 4, phaseIndex=0), op_event("completed", 9)]
    )
    operation = report.operations["op-1"]
    assert operation.status == "completed"
    assert [e.type for e in operation.events] == ["created", "phase", "completed"]


def test_operation_first_seen_mid_lifecycle_is_promoted_from_planning() -> None:
    report = reconstruct([op_event("phase", 5, phaseIndex=1)])

    operation = report.operations["op-1"]
    assert operation.status == "active"
    assert operation.created_tick is None
    assert operation.events[0].phase_index == 1


@pytest.mark.parametrize(
    ("suffixes", "expected"),
    [
        (["created", "completed", "phase"], "completed"),
        (["created", "aborted", "completed"], "aborted"),
        (["phase", "completed", "aborted"], "completed"),
    ],
)
def test_terminal_statuses_are_sticky(suffixes: list[str], expected: str) -> None:
    records = [op_event(suffix, tick) for tick, suffix in enumerate(suffixes, start=1)]

    operation = reconstruct(records).operations["op-1"]

    assert operation.status == expected
    assert len(operation.events) == len(suffixes)


def test_completed_and_aborted_carry_outcome_and_reason() -> None:
    report = reconstruct(
        [
            op_event("completed", 3, operation_id="a", outcome="captured"),
            op_event("aborted", 4, operation_id="b", outcome="failed", reason="guards"),
        ]
    )

    assert report.operations["a"].events[0].outcome == "captured"
    assert report.operations["a"].events[0].reason is None
    assert report.operations["b"].events[0].reason == "guards"


def test_operation_id_falls_back_to_nested_operation_object() -> None:
    report = reconstruct(
        [
            make_record("faction.operation.created", tick=1, operation={"id": 17}),
            make_record("faction.operation.phase", tick=2, operationId=""),
            make_record("faction.operation.phase", tick=3),
        ]
    )

    assert list(report.operations) == ["17"]


def test_ordered_events_sort_by_tick_stably() -> None:
    report = reconstruct(
        [
            op_event("phase", 10, phaseIndex=1),
            op_event("created", 2),
            op_event("phase", 10, phaseIndex=2),
        ]
    )

    ordered = report.operations["op-1"].ordered_events()
    assert [(e.tick, e.type, e.phase_index) for e in ordered] == [
        (2, "created", None),
        (10, "phase", 1),
        (10, "phase", 2),
    ]


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def test_identity_first_non_empty_value_wins() -> None:
    report = reconstruct(
        [
            op_event("created", 1, factionId="f-1", type=""),
            op_event("phase", 2, factionId="f-2", type="kidnap", siteId="site-1"),
            op_event("phase", 3, type="raid", targetNpcId="npc-9"),
        ]
    )

    assert report.operations["op-1"].identity == OperationIdentity(
        faction_id="f-1", type="kidnap", site_id="site-1", target_npc_id="npc-9"
    )


def test_merge_identity_only_fills_empty_fields() -> None:
    current = OperationIdentity(faction_id="f-1", type=None, site_id="", target_npc_id="npc-1")
    update = OperationIdentity(faction_id="f-2", type="raid", site_id="s-2", target_npc_id=None)

    assert merge_identity(current, update) == OperationIdentity(
        faction_id="f-1", type="raid", site_id="s-2", target_npc_id="npc-1"
    )


# ---------------------------------------------------------------------------
# Faction filter, decisions and attempts
# ---------------------------------------------------------------------------


def test_faction_filter_skips_other_records_entirely() -> None:
    report = reconstruct(
        [
            op_event("created", 1, operation_id="mine", factionId="f-1"),
            op_event("created", 1, operation_id="theirs", factionId="f-2"),
            make_record("faction.decision", tick=2, factionId="f-2", type="war"),
            make_record("faction.decision", tick=3, factionId="f-1", type="peace"),
            attempt(4, "npc-1"),
            attempt(5, "npc-2", factionId="f-1"),
        ],
        faction_id="f-1",
    )

    assert list(report.operations) == ["mine"]
    assert [d.type for d in report.decisions] == ["peace"]
    assert [a.actor_id for a in report.attempts] == ["npc-2"]


def test_decisions_are_collected_with_tail() -> None:
    records = [
        make_record("faction.decision", tick=t, factionId="f-1", type=f"d{t}", details={"n": t})
        for t in range(25)
    ]

    report = reconstruct(records)

    assert len(report.decisions) == 25
    recent = report.recent_decisions()
    assert len(recent) == 20
    assert recent[-1].details == {"n": 24}


def test_attempt_site_falls_back_to_record_site() -> None:
    report = reconstruct(
        [
            make_record("attempt.recorded", tick=1, site_id="site-9", attempt={"actorId": "a"}),
            make_record(
                "attempt.recorded", tick=2, site_id="site-9", attempt={"siteId": "s-1"}
            ),
        ]
    )

    assert [a.site_id for a in report.attempts] == ["site-9", "s-1"]


# ---------------------------------------------------------------------------
# Phase labels and windows
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("operation_type", "index", "expected"),
    [
        ("kidnap", 0, "kidnap"),
        ("kidnap", 1, "forced_eclipse"),
        ("kidnap", 5, "kidnap"),
        ("kidnap", -1, "kidnap"),
        ("forced_eclipse", 0, "forced_eclipse"),
        ("raid", 3, "raid"),
        (None, 0, None),
        ("", 0, None),
    ],
)
def test_phase_label(operation_type: str | None, index: int, expected: str | None) -> None:
    assert phase_label(operation_type, index) == expected


def test_phase_window_uses_next_tick_or_default_width() -> None:
    assert phase_window(10, 40) == TickWindow(10, 40)
    assert phase_window(10, None) == TickWindow(10, 82)
    assert phase_window(10, None, default_width=5) == TickWindow(10, 15)


def test_window_membership_is_half_open() -> None:
    window = TickWindow(10, 40)

    assert 10 in window
    assert 39 in window
    assert 40 not in window
    assert 9 not in window


def test_likely_actors_are_distinct_sorted_and_capped() -> None:
    attempts = [
        AttemptRecord(tick=1, site_id="s", actor_id=f"npc-{n}", kind="kidnap")
        for n in (9, 3, 7, 1, 5, 2, 8, 4, 6, 0)
    ] + [AttemptRecord(tick=2, site_id="s", actor_id="npc-3", kind="kidnap")]

    count, actors = likely_actors(attempts, TickWindow(0, 10), "s", "kidnap")

    assert count == 11
    assert actors == tuple(f"npc-{n}" for n in range(8))


def test_likely_actors_respect_site_and_kind() -> None:
    attempts = [
        AttemptRecord(tick=1, site_id="s-1", actor_id="a", kind="kidnap"),
        AttemptRecord(tick=1, site_id="s-2", actor_id="b", kind="kidnap"),
        AttemptRecord(tick=1, site_id="s-1", actor_id="c", kind="assault"),
        AttemptRecord(tick=1, site_id="s-1", actor_id=None, kind="kidnap"),
    ]

    assert likely_actors(attempts, TickWindow(0, 5), "s-1", "kidnap") == (2, ("a",))
    assert likely_actors(attempts, TickWindow(0, 5), None, "kidnap") == (3, ("a", "b"))


# ---------------------------------------------------------------------------
# Correlation through the report
# ---------------------------------------------------------------------------


def test_correlation_window_ends_before_next_lifecycle_event() -> None:
    report = reconstruct(
        [
            op_event("created", 1, type="kidnap", siteId="site-1"),
            op_event("phase", 10, phaseIndex=0),
            attempt(10, "npc-a"),
            attempt(39, "npc-b"),
            attempt(40, "npc-c"),
            op_event("completed", 40),
        ]
    )

    (phase,) = report.correlate(report.operations["op-1"])
    assert phase.label == "kidnap"
    assert phase.window == TickWindow(10, 40)
    assert phase.attempt_count == 2
    assert phase.actors == ("npc-a", "npc-b")


def test_last_phase_uses_default_window() -> None:
    report = reconstruct(
        [
            op_event("phase", 100, type="kidnap", siteId="site-1", phaseIndex=1),
            attempt(171, "npc-a", kind="forced_eclipse"),
            attempt(172, "npc-b", kind="forced_eclipse"),
        ]
    )

    (phase,) = report.correlate(report.operations["op-1"])
    assert phase.label == "forced_eclipse"
    assert phase.window == TickWindow(100, 172)
    assert phase.actors == ("npc-a",)


def test_window_width_and_actor_cap_are_configurable() -> None:
    report = reconstruct(
        [
            op_event("phase", 0, type="raid", phaseIndex=0),
            attempt(3, "npc-b", kind="raid", site="anywhere"),
            attempt(4, "npc-a", kind="raid", site="elsewhere"),
            attempt(6, "npc-c", kind="raid"),
        ],
        window_ticks=5,
        actor_cap=1,
    )

    (phase,) = report.correlate(report.operations["op-1"])
    assert phase.window == TickWindow(0, 5)
    assert phase.attempt_count == 2
    assert phase.actors == ("npc-a",)


def test_phases_without_attempts_report_zero_count() -> None:
    report = reconstruct([op_event("phase", 5, type="kidnap", phaseIndex=0)])

    (phase,) = report.correlate(report.operations["op-1"])
    assert phase.attempt_count == 0
    assert phase.actors == ()


def test_operation_without_type_has_no_correlation() -> None:
    report = reconstruct([op_event("phase", 5, phaseIndex=0), attempt(6, "npc-a")])

    assert report.correlate(report.operations["op-1"]) == []


def test_correlation_does_not_change_operation_state() -> None:
    report = reconstruct(
        [op_event("phase", 5, type="kidnap", siteId="site-1"), attempt(6, "npc-a")]
    )
    operation = report.operations["op-1"]
    before = (operation.status, list(operation.events), operation.identity)

    report.correlate(operation)
    report.correlate(operation)

    assert (operation.status, operation.events, operation.identity) == before


def test_correlate_phases_skips_non_phase_events() -> None:
    lifecycle = [(1, "created", None), (5, "phase", None), (9, "completed", None)]
    attempts = [AttemptRecord(tick=6, actor_id="a", kind="raid")]

    (phase,) = correlate_phases("raid", None, lifecycle, attempts)

    assert phase.phase_index == 0
    assert phase.window == TickWindow(5, 9)
    assert phase.actors == ("a",)
