"""Tests for the simlog-inspect command line and its text reports.

Covers: each subcommand's text and JSON output, summary sample days and
site filters, newest-log discovery, and exit codes for usage errors,
unreadable sources and invalid snapshots.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from simlog_inspector.cli import EXIT_FAILURE, EXIT_INVALID_SNAPSHOT, EXIT_OK, main

WriteLog = Callable[..., Path]


@pytest.fixture()
def events_log(write_log: WriteLog) -> Path:
    """Write a small log touching every reconstructor."""
    return write_log(
        [
            {
                "tick": 1,
                "kind": "entity.memory.formed",
                "data": {
                    "entityId": "npc-1",
                    "memory": {
                        "eventType": "witnessed",
                        "description": "a raid",
                        "participants": [{"name": "Oren", "role": "attacker"}],
                    },
                },
            },
            {
                "tick": 2,
                "kind": "entity.relationship.changed",
                "data": {
                    "entityId": "npc-1",
                    "targetId": "npc-2",
                    "relationship": {"fear": 40},
                    "change": {"dimension": "fear", "oldValue": 10, "newValue": 40},
                },
            },
            {
                "tick": 10,
                "kind": "faction.operation.phase",
                "data": {
                    "operationId": "op-1",
                    "factionId": "f-1",
                    "type": "kidnap",
                    "phaseIndex": 0,
                },
            },
            {
                "tick": 12,
                "kind": "attempt.recorded",
                "data": {
                    "attempt": {
                        "actorId": "npc-1",
                        "actorName": "Mara",
                        "targetId": "npc-2",
                        "kind": "kidnap",
                    }
                },
            },
            {
                "tick": 20,
                "kind": "narrative.started",
                "data": {"narrative": {"id": "n-1", "type": "revenge", "title": "Debts"}},
            },
            {
                "tick": 21,
                "kind": "story.beat.detected",
                "data": {
                    "storyBeat": {
                        "type": "betrayal",
                        "description": "Oathbreaking",
                        "narrativePotential": {"startsNarrative": True, "narrativeType": "revenge"},
                    }
                },
            },
        ]
    )


def write_snapshot(tmp_path: Path, document: object) -> Path:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Log subcommands
# ---------------------------------------------------------------------------


def test_entity_text_report(events_log: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["entity", "npc-1", "--file", str(events_log)])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "ENTITY: npc-1 (Mara)" in out
    assert "[t1] witnessed: a raid" in out
    assert "participants: Oren(attacker)" in out
    assert "fear=40" in out
    assert "last change [t2]: fear 10->40" in out
    assert "[t12] kidnap (actor) - no reason" in out


def test_entity_json_output(events_log: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["entity", "npc-2", "--file", str(events_log), "--json", "--limit", "5"])

    body = json.loads(capsys.readouterr().out)
    assert code == EXIT_OK
    assert body["entity_id"] == "npc-2"
    assert body["limit"] == 5
    assert [a["role"] for a in body["actions"]] == ["involved", "target"]


def test_narrative_report(events_log: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["narrative", "--file", str(events_log), "--id", "n-1"])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "NARRATIVE: n-1" in out
    assert 'revenge: "Debts" [unknown]' in out
    assert "-> Could start: revenge" in out


def test_operations_report_lists_likely_actors(
    events_log: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["operations", "--file", str(events_log)])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "f-1:kidnap [active]" in out
    assert "[t10] phase -> phase 1" in out
    assert 'likely actors for "kidnap": 1 attempts by npc-1' in out


def test_operations_faction_filter_json(
    events_log: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["operations", "--file", str(events_log), "--faction", "f-2", "--json"])

    body = json.loads(capsys.readouterr().out)
    assert code == EXIT_OK
    assert body["operations"] == []


def test_summary_text_report(events_log: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["summary", "--file", str(events_log)])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "LOG SUMMARY" in out
    assert "Lines: 6  Records: 6" in out
    assert "Seed: unknown  LastTick: 21  LastDay: -1" in out
    assert "Note: pop is cohort population" in out
    assert "Incidents by type:\n- (none)" in out
    assert "Top actors by attempt count:\n- npc-1: 1" in out
    assert "(no sampled days in this log)" in out


def test_summary_json_with_sample_days_and_sites(
    write_log: WriteLog, capsys: pytest.CaptureFixture[str]
) -> None:
    sites = [
        {"siteId": site_id, "foodTotals": {"grain": 1, "fish": 1, "meat": 1}, "unrest": 100}
        for site_id in ("harbor", "mill")
    ]
    path = write_log(
        [
            {"tick": 0, "kind": "sim.started", "data": {"seed": 9}},
            *[
                {
                    "tick": day,
                    "kind": "sim.day.ended",
                    "data": {"summary": {"day": day, "sites": sites}},
                }
                for day in range(1, 4)
            ],
        ]
    )

    code = main(
        ["summary", "--file", str(path), "--json", "--sample-days", "1,3", "--show-sites", "harbor"]
    )

    body = json.loads(capsys.readouterr().out)
    assert code == EXIT_OK
    assert body["seed"] == 9
    assert body["last_day"] == 3
    assert [sample["day"] for sample in body["samples"]] == [1, 3]
    assert [site["site_id"] for site in body["samples"][0]["sites"]] == ["harbor"]
    assert {m["site_id"]: m["unrest_max"] for m in body["milestones"]} == {"harbor": 1, "mill": 1}


def test_summary_rejects_non_integer_sample_days(events_log: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["summary", "--file", str(events_log), "--sample-days", "1,x"])

    assert exc_info.value.code == EXIT_FAILURE


def test_newest_log_is_used_without_file(
    events_log: Path, log_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["--log-dir", str(log_dir), "narrative"])

    assert code == EXIT_OK
    assert f"File: {events_log}" in capsys.readouterr().out


def test_no_logs_found_exits_with_failure(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["--log-dir", str(tmp_path / "empty"), "entity", "npc-1"])

    assert code == EXIT_FAILURE
    assert "error:" in capsys.readouterr().err


def test_unreadable_file_exits_with_failure(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["operations", "--file", str(tmp_path / "missing.jsonl")])

    assert code == EXIT_FAILURE
    assert "Cannot read" in capsys.readouterr().err


def test_negative_limit_exits_with_failure(events_log: Path) -> None:
    assert main(["entity", "npc-1", "--file", str(events_log), "--limit", "-1"]) == EXIT_FAILURE


@pytest.mark.parametrize("argv", [[], ["bogus"], ["entity"]])
def test_usage_errors_exit_with_one(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)

    assert exc_info.value.code == EXIT_FAILURE


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


def test_valid_snapshot_exits_zero(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = write_snapshot(tmp_path, {"world": {"tick": 0, "seed": 7, "entities": {}}})

    code = main(["validate", str(path)])

    out = capsys.readouterr().out
    assert code == EXIT_OK
    assert "OK: no issues found" in out
    assert "Entities: 0" in out


def test_invalid_snapshot_exits_two(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = write_snapshot(tmp_path, {"tick": 3})

    code = main(["validate", str(path)])

    out = capsys.readouterr().out
    assert code == EXIT_INVALID_SNAPSHOT
    assert "ERRORS (1):" in out
    assert "x Missing seed" in out


def test_warnings_alone_keep_snapshot_valid(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = write_snapshot(tmp_path, {"tick": 1, "seed": 1, "npcs": [{"id": "a"}]})

    code = main(["validate", str(path), "--json"])

    body = json.loads(capsys.readouterr().out)
    assert code == EXIT_OK
    assert body["valid"] is True
    assert body["warnings"] == ["Entity 0: missing name"]


def test_malformed_snapshot_exits_with_failure(tmp_path: Path) -> None:
    path = tmp_path / "snapshot.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert main(["validate", str(path)]) == EXIT_FAILURE
