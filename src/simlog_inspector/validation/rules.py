"""Snapshot validation rules.

Each SnapshotRule checks one structural invariant of a world snapshot for
one scope: the world object itself, a single entity, or a single site. A
check returns a message detail when the invariant is violated and None
otherwise. Rules never mutate what they inspect.

Built-in rules mirror what the simulation guarantees about a consistent
world: tick and seed are always set, entities carry ids and names with
health in range, dead entities carry a death record, and site unrest stays
within 0–100.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

Severity = Literal["error", "warning"]
Scope = Literal["world", "entity", "site"]


@dataclass(frozen=True)
class SnapshotRule:
    """Immutable snapshot validation rule.

    Attributes:
        rule_id: Unique identifier for this rule (e.g., "entity-negative-hp").
        scope: What the check receives: the world object, one entity, or one site.
        severity: Whether a violation is an error or a warning.
        check: Returns the violation detail, or None if the item passes.
    """

    rule_id: str
    scope: Scope
    severity: Severity
    check: Callable[[dict[str, Any]], str | None]


def is_missing(value: Any) -> bool:
    """True for values treated as absent. Numeric zero is present."""
    return value is None or value == "" or value is False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# World checks
# ---------------------------------------------------------------------------


def _missing_tick(world: dict[str, Any]) -> str | None:
    return "Missing tick" if is_missing(world.get("tick")) else None


def _missing_seed(world: dict[str, Any]) -> str | None:
    return "Missing seed" if is_missing(world.get("seed")) else None


# ---------------------------------------------------------------------------
# Entity checks
# ---------------------------------------------------------------------------


def _entity_missing_id(entity: dict[str, Any]) -> str | None:
    return "missing id" if is_missing(entity.get("id")) else None


def _entity_missing_name(entity: dict[str, Any]) -> str | None:
    return "missing name" if is_missing(entity.get("name")) else None


def _entity_negative_hp(entity: dict[str, Any]) -> str | None:
    hp = entity.get("hp")
    if _is_number(hp) and hp < 0:
        return f"negative HP ({hp})"
    return None


def _entity_hp_over_max(entity: dict[str, Any]) -> str | None:
    hp = entity.get("hp")
    max_hp = entity.get("maxHp")
    if _is_number(hp) and _is_number(max_hp) and hp > max_hp:
        return f"HP exceeds maxHP ({hp}/{max_hp})"
    return None


def _entity_dead_without_record(entity: dict[str, Any]) -> str | None:
    if entity.get("alive") is False and is_missing(entity.get("death")):
        return "dead but no death record"
    return None


# ---------------------------------------------------------------------------
# Site checks
# ---------------------------------------------------------------------------


def _site_missing_identity(site: dict[str, Any]) -> str | None:
    if is_missing(site.get("id")) and is_missing(site.get("name")):
        return "missing id and name"
    return None


def _site_unrest_out_of_range(site: dict[str, Any]) -> str | None:
    unrest = site.get("unrest")
    if _is_number(unrest) and not 0 <= unrest <= 100:
        return f"unrest out of range ({unrest})"
    return None


BUILTIN_RULES: list[SnapshotRule] = [
    SnapshotRule("world-missing-tick", "world", "error", _missing_tick),
    SnapshotRule("world-missing-seed", "world", "error", _missing_seed),
    SnapshotRule("entity-missing-id", "entity", "error", _entity_missing_id),
    SnapshotRule("entity-missing-name", "entity", "warning", _entity_missing_name),
    SnapshotRule("entity-negative-hp", "entity", "error", _entity_negative_hp),
    SnapshotRule("entity-hp-over-max", "entity", "warning", _entity_hp_over_max),
    SnapshotRule("entity-dead-without-record", "entity", "warning", _entity_dead_without_record),
    SnapshotRule("site-missing-identity", "site", "warning", _site_missing_identity),
    SnapshotRule("site-unrest-out-of-range", "site", "warning", _site_unrest_out_of_range),
]


def rules_for_scope(scope: Scope, rules: list[SnapshotRule] | None = None) -> list[SnapshotRule]:
    """Return the rules of ``scope`` in declaration order."""
    return [rule for rule in (rules if rules is not None else BUILTIN_RULES) if rule.scope == scope]
