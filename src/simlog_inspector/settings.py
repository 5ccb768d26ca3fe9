"""Settings for simlog-inspector.

All settings use the SIMLOG_ environment prefix and cover:
- Where event logs live and how the newest one is discovered
- Presentation tails for each report section and log summary sample days
- Phase-actor correlation window and cap
- Tick-order policy for log streams
- Logging
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from simlog_inspector.reconstruction.correlation import (
    DEFAULT_LIKELY_ACTOR_CAP,
    DEFAULT_PHASE_WINDOW_TICKS,
)
from simlog_inspector.reconstruction.summary import DEFAULT_SAMPLE_DAYS


class Settings(BaseSettings):
    """Settings for simlog-inspector.

    Environment variable prefix: SIMLOG_
    """

    service_name: str = "simlog-inspector"

    # -------------------------------------------------------------------------
    # Log discovery
    # -------------------------------------------------------------------------

    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory holding simulation event logs. API log paths resolve "
        "relative to it and may not escape it.",
    )
    log_glob: str = Field(
        default="events-*.jsonl",
        description="Glob used to pick the newest event log when no file is given.",
    )

    # -------------------------------------------------------------------------
    # Presentation tails
    # -------------------------------------------------------------------------

    entity_limit: int = Field(
        default=50,
        ge=0,
        description="Default number of most recent items shown per entity history section.",
    )
    chronicle_tail: int = Field(default=20, ge=0, description="Chronicle entries shown.")
    story_beat_tail: int = Field(default=30, ge=0, description="Story beats shown.")
    decision_tail: int = Field(default=20, ge=0, description="Faction decisions shown.")
    summary_sample_days: list[int] = Field(
        default_factory=lambda: list(DEFAULT_SAMPLE_DAYS),
        description="Days whose end-of-day summary a log summary samples.",
    )

    # -------------------------------------------------------------------------
    # Phase-actor correlation
    # -------------------------------------------------------------------------

    phase_window_ticks: int = Field(
        default=DEFAULT_PHASE_WINDOW_TICKS,
        gt=0,
        description="Window width for the last lifecycle event of an operation "
        "(72 ticks is three simulated days).",
    )
    likely_actor_cap: int = Field(
        default=DEFAULT_LIKELY_ACTOR_CAP,
        ge=0,
        description="Maximum number of likely actors reported per phase.",
    )

    # -------------------------------------------------------------------------
    # Stream policy and logging
    # -------------------------------------------------------------------------

    tick_order: Literal["best_effort", "strict"] = Field(
        default="best_effort",
        description="best_effort folds regressing ticks as-is and warns; strict aborts.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="WARNING")
    json_logs: bool = Field(default=False, description="Emit JSON log lines on stderr.")

    model_config = SettingsConfigDict(env_prefix="SIMLOG_")
