"""Event record schema for simulation JSONL logs.

Each non-empty log line is one JSON object. Only ``tick`` and ``kind`` are
required; ``data`` defaults to an empty mapping. The simulation also writes
an event id, a visibility class, the site the event happened at and a
human-readable message. These are decoded when present and ignored when not.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventRecord(BaseModel):
    """Immutable decoded simulation event.

    Attributes:
        tick: Logical simulation time unit. Expected to be non-decreasing
            along the log.
        kind: Dot-namespaced event type, e.g. ``entity.memory.formed``.
        data: Arbitrary keyed payload. ``null`` or absent becomes ``{}``.
        event_id: Simulation-assigned event id, if written.
        visibility: Visibility class of the event, if written.
        site_id: Site the event happened at, if written.
        message: Human-readable event summary, if written.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    tick: int = Field(..., strict=True, description="Logical simulation tick")
    kind: str = Field(..., strict=True, description="Dot-namespaced event kind")
    data: dict[str, Any] = Field(default_factory=dict, description="Event payload")
    event_id: str | None = Field(default=None, alias="id")
    visibility: str | None = Field(default=None)
    site_id: str | None = Field(default=None, alias="siteId")
    message: str | None = Field(default=None)

    @field_validator("data", mode="before")
    @classmethod
    def _non_mapping_data_is_empty(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("event_id", "visibility", "site_id", "message", mode="before")
    @classmethod
    def _stringify_optional(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def attempt(self) -> dict[str, Any]:
        """The embedded ``data.attempt`` payload, or ``{}`` when absent."""
        return as_mapping(self.data.get("attempt"))


def as_mapping(value: Any) -> dict[str, Any]:
    """Return ``value`` if it is a dict, else an empty dict.

    Payload fields are optional and untyped; this keeps nested lookups
    like ``as_mapping(data.get("goal")).get("id")`` from raising.
    """
    return value if isinstance(value, dict) else {}


def as_text(value: Any) -> str | None:
    """Return ``value`` as a string, or None when it is absent or empty."""
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def as_int(value: Any) -> int | None:
    """Return ``value`` as an int when it is integral, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def as_number(value: Any) -> float | None:
    """Return ``value`` when it is a real number (bools excluded), else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value
