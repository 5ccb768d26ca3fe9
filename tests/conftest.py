"""Test fixtures for simlog-inspector.

Provides:
- isolated_environment: strips SIMLOG_ variables so Settings() sees defaults
- log_dir: an empty directory standing in for the simulation's log directory
- write_log: writes records (dicts or raw lines) as a JSONL log into log_dir
- settings: Settings pointing at log_dir
"""

import json
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import pytest

from simlog_inspector.observability import configure_logging
from simlog_inspector.settings import Settings


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove SIMLOG_ environment overrides and keep log output quiet."""
    for name in list(os.environ):
        if name.startswith("SIMLOG_"):
            monkeypatch.delenv(name)
    configure_logging("WARNING")


@pytest.fixture()
def log_dir(tmp_path: Path) -> Path:
    """Return an empty log directory under tmp_path."""
    directory = tmp_path / "logs"
    directory.mkdir()
    return directory


@pytest.fixture()
def write_log(log_dir: Path) -> Callable[..., Path]:
    """Return a function that writes a JSONL event log into log_dir.

    Dict records are serialised with json.dumps; strings are written as-is,
    which lets tests inject blank or malformed lines.

    Returns:
        ``write(records, name="events-test.jsonl") -> Path``
    """

    def write(records: Iterable[dict[str, Any] | str], name: str = "events-test.jsonl") -> Path:
        path = log_dir / name
        lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return write


@pytest.fixture()
def settings(log_dir: Path) -> Settings:
    """Return default Settings with log_dir pointing at the test log directory."""
    return Settings(log_dir=log_dir)
