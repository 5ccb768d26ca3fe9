"""Tests for InspectionService and the file sources it reads through.

Covers: reading logs from disk, unreadable sources, snapshot decoding
failures, newest-log discovery, log path confinement, settings-driven
tails and windows, and the strict tick-order policy.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from pathlib import Path

import pytest

from simlog_inspector.core.services import InspectionService
from simlog_inspector.errors import (
    LogPathError,
    SnapshotDecodeError,
    SourceUnreadableError,
    TickOrderError,
)
from simlog_inspector.settings import Settings
from simlog_inspector.stream.source import (
    find_latest_log,
    iter_log_lines,
    parse_snapshot,
    resolve_log_path,
)

WriteLog = Callable[..., Path]

MEMORY_EVENTS = [
    {
        "tick": tick,
        "kind": "entity.memory.formed",
        "data": {"entityId": "npc-1", "memory": {"description": f"m{tick}"}},
    }
    for tick in range(1, 6)
]


def attempt_line(tick: int, actor: str, kind: str = "raid") -> dict:
    """Build an attempt.recorded log record."""
    return {
        "tick": tick,
        "kind": "attempt.recorded",
        "data": {"attempt": {"actorId": actor, "kind": kind}},
    }


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def test_iter_log_lines_strips_line_terminators(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    path.write_bytes(b'{"tick":1,"kind":"a"}\r\n\n{"tick":2,"kind":"b"}\n')

    assert list(iter_log_lines(path)) == ['{"tick":1,"kind":"a"}', "", '{"tick":2,"kind":"b"}']


def test_iter_log_lines_fails_fast_on_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SourceUnreadableError) as exc_info:
        iter_log_lines(tmp_path / "absent.jsonl")

    assert exc_info.value.context["path"].endswith("absent.jsonl")


@pytest.mark.parametrize("text", ["{broken", "[]", "42", '"world"'])
def test_parse_snapshot_rejects_non_objects(text: str) -> None:
    with pytest.raises(SnapshotDecodeError):
        parse_snapshot(text, source="snap.json")


def test_find_latest_log_picks_newest_by_mtime(log_dir: Path, write_log: WriteLog) -> None:
    older = write_log([], name="events-1.jsonl")
    newer = write_log([], name="events-2.jsonl")
    write_log([], name="other.jsonl")
    os.utime(older, (2_000_000_000, 2_000_000_000))
    os.utime(newer, (1_000_000_000, 1_000_000_000))

    assert find_latest_log(log_dir) == older


def test_find_latest_log_returns_none_without_logs(tmp_path: Path) -> None:
    assert find_latest_log(tmp_path) is None
    assert find_latest_log(tmp_path / "missing") is None


def test_resolve_log_path_stays_inside_log_dir(log_dir: Path) -> None:
    assert resolve_log_path(log_dir, "events-1.jsonl") == (log_dir / "events-1.jsonl").resolve()

    with pytest.raises(LogPathError):
        resolve_log_path(log_dir, "../secrets.jsonl")
    with pytest.raises(LogPathError):
        resolve_log_path(log_dir, "/etc/passwd")


# ---------------------------------------------------------------------------
# InspectionService
# ---------------------------------------------------------------------------


def test_entity_history_uses_settings_limit(write_log: WriteLog, log_dir: Path) -> None:
    path = write_log(MEMORY_EVENTS)
    service = InspectionService(Settings(log_dir=log_dir, entity_limit=2))

    history = service.entity_history(path, "npc-1")

    assert len(history.memories) == 5
    assert [m.description for m in history.recent_memories()] == ["m4", "m5"]
    assert service.entity_history(path, "npc-1", limit=4).limit == 4


def test_malformed_lines_in_file_are_skipped(write_log: WriteLog, settings: Settings) -> None:
    path = write_log(["", "not json", *[json.dumps(e) for e in MEMORY_EVENTS[:2]], "{}"])

    history = InspectionService(settings).entity_history(path, "npc-1")

    assert [m.tick for m in history.memories] == [1, 2]


def test_invalid_utf8_line_is_skipped_and_fold_continues(
    log_dir: Path, settings: Settings
) -> None:
    first, _, third = (json.dumps(event).encode() for event in MEMORY_EVENTS[:3])
    corrupt = b'{"tick":2,\xff\xfe"kind":"entity.memory.formed"}'
    path = log_dir / "events-corrupt.jsonl"
    path.write_bytes(b"\n".join([first, corrupt, third]) + b"\n")

    history = InspectionService(settings).entity_history(path, "npc-1")

    assert [m.tick for m in history.memories] == [1, 3]


def test_unreadable_log_raises(settings: Settings, log_dir: Path) -> None:
    with pytest.raises(SourceUnreadableError):
        InspectionService(settings).narratives(log_dir / "missing.jsonl")


def test_strict_tick_order_aborts_reconstruction(write_log: WriteLog, log_dir: Path) -> None:
    path = write_log([{"tick": 5, "kind": "a"}, {"tick": 2, "kind": "b"}])

    with pytest.raises(TickOrderError):
        InspectionService(Settings(log_dir=log_dir, tick_order="strict")).operations(path)

    report = InspectionService(Settings(log_dir=log_dir)).operations(path)
    assert report.operations == {}


def test_operations_use_settings_window(write_log: WriteLog, log_dir: Path) -> None:
    path = write_log(
        [
            {
                "tick": 10,
                "kind": "faction.operation.phase",
                "data": {"operationId": "op-1", "type": "raid", "phaseIndex": 0},
            },
            attempt_line(14, "a"),
            attempt_line(16, "b"),
        ]
    )
    service = InspectionService(Settings(log_dir=log_dir, phase_window_ticks=5))

    report = service.operations(path)

    (phase,) = report.correlate(report.operations["op-1"])
    assert phase.window.end == 15
    assert phase.actors == ("a",)


def test_operations_faction_filter(write_log: WriteLog, settings: Settings) -> None:
    path = write_log(
        [
            {"tick": 1, "kind": "faction.decision", "data": {"factionId": "f-1", "type": "x"}},
            {"tick": 2, "kind": "faction.decision", "data": {"factionId": "f-2", "type": "y"}},
        ]
    )

    report = InspectionService(settings).operations(path, faction_id="f-2")

    assert report.faction_id == "f-2"
    assert [d.type for d in report.decisions] == ["y"]


def test_summary_counts_lines_and_uses_settings_sample_days(
    write_log: WriteLog, log_dir: Path
) -> None:
    days = [
        {"tick": day * 24, "kind": "sim.day.ended", "data": {"summary": {"day": day}}}
        for day in range(4)
    ]
    path = write_log(["not json", "", *days, attempt_line(99, "npc-1")])
    service = InspectionService(Settings(log_dir=log_dir, summary_sample_days=[2]))

    summary = service.summary(path)

    assert summary.line_count == 6
    assert summary.record_count == 5
    assert sorted(summary.samples) == [2]
    assert sorted(service.summary(path, sample_days=[0, 3]).samples) == [0, 3]
    assert summary.top_actors() == [("npc-1", 1)]


def test_validate_snapshot_file(tmp_path: Path, settings: Settings) -> None:
    snapshot = tmp_path / "snap.json"
    snapshot.write_text(json.dumps({"world": {"tick": 0, "seed": None}}), encoding="utf-8")

    report = InspectionService(settings).validate_snapshot_file(snapshot)

    assert report.errors == ["Missing seed"]


def test_validate_snapshot_file_errors(tmp_path: Path, settings: Settings) -> None:
    service = InspectionService(settings)
    malformed = tmp_path / "bad.json"
    malformed.write_text("{nope", encoding="utf-8")

    with pytest.raises(SnapshotDecodeError):
        service.validate_snapshot_file(malformed)
    with pytest.raises(SourceUnreadableError):
        service.validate_snapshot_file(tmp_path / "absent.json")


def test_default_settings() -> None:
    settings = Settings()

    assert settings.log_dir == Path("logs")
    assert settings.entity_limit == 50
    assert settings.phase_window_ticks == 72
    assert settings.likely_actor_cap == 8
    assert settings.tick_order == "best_effort"
    assert settings.summary_sample_days == [0, 7, 30, 60, 90]


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SIMLOG_TICK_ORDER", "strict")
    monkeypatch.setenv("SIMLOG_CHRONICLE_TAIL", "5")

    settings = Settings()

    assert settings.tick_order == "strict"
    assert settings.chronicle_tail == 5
