"""World snapshot validator.

Locates the world object inside a snapshot document, runs every rule
against it and its entities and sites, and collects all findings. Rules
are independent: a failure never stops later rules from running.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from simlog_inspector.observability import get_logger
from simlog_inspector.validation.rules import Severity, SnapshotRule, rules_for_scope

logger = get_logger(__name__)

# Keys that may hold the world object, in priority order
WORLD_KEYS: tuple[str, ...] = ("world", "worldV2")

# Keys that may hold the entity collection, in priority order
ENTITY_KEYS: tuple[str, ...] = ("entities", "npcs")


@dataclass(frozen=True)
class ValidationFinding:
    """One rule violation."""

    severity: Severity
    rule_id: str
    message: str


@dataclass
class ValidationReport:
    """Outcome of validating one snapshot.

    Attributes:
        findings: Every violation, in rule evaluation order.
        entity_count: Number of entities in the world.
        site_count: Number of sites in the world.
        faction_count: Number of factions in the world (not validated).
    """

    findings: list[ValidationFinding] = field(default_factory=list)
    entity_count: int = 0
    site_count: int = 0
    faction_count: int = 0

    @property
    def errors(self) -> list[str]:
        return [f.message for f in self.findings if f.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [f.message for f in self.findings if f.severity == "warning"]

    @property
    def is_valid(self) -> bool:
        """True when no error-severity finding was produced."""
        return not self.errors


def locate_world(document: dict[str, Any]) -> dict[str, Any]:
    """Return the world object nested in ``document``.

    The first of ``world`` / ``worldV2`` holding an object wins; when none
    does, the document itself is the world.
    """
    for key in WORLD_KEYS:
        candidate = document.get(key)
        if isinstance(candidate, dict):
            return candidate
    return document


def _collection(world: dict[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    for key in keys:
        value = world.get(key)
        if value is None:
            continue
        if isinstance(value, dict):
            return value
        if isinstance(value, list):
            return {str(index): item for index, item in enumerate(value)}
        return {}
    return {}


def _items(collection: dict[str, Any]) -> Iterator[tuple[str, dict[str, Any]]]:
    for key, item in collection.items():
        yield str(key), item if isinstance(item, dict) else {}


class SnapshotValidator:
    """Applies snapshot rules to a parsed state document.

    Args:
        rules: Rules to apply. Defaults to the built-in rule set.
    """

    def __init__(self, rules: list[SnapshotRule] | None = None) -> None:
        self._world_rules = rules_for_scope("world", rules)
        self._entity_rules = rules_for_scope("entity", rules)
        self._site_rules = rules_for_scope("site", rules)

    def validate(self, document: dict[str, Any]) -> ValidationReport:
        """Validate a snapshot document without modifying it.

        Args:
            document: The parsed snapshot.

        Returns:
            ValidationReport with every finding and the collection counts.
        """
        world = locate_world(document)
        report = ValidationReport()

        for rule in self._world_rules:
            self._run(report, rule, world, prefix=None)

        entities = _collection(world, ENTITY_KEYS)
        report.entity_count = len(entities)
        for entity_key, entity in _items(entities):
            for rule in self._entity_rules:
                self._run(report, rule, entity, prefix=f"Entity {entity_key}")

        sites = _collection(world, ("sites",))
        report.site_count = len(sites)
        for site_key, site in _items(sites):
            for rule in self._site_rules:
                self._run(report, rule, site, prefix=f"Site {site_key}")

        report.faction_count = len(_collection(world, ("factions",)))

        logger.info(
            "Snapshot validated",
            entities=report.entity_count,
            sites=report.site_count,
            factions=report.faction_count,
            errors=len(report.errors),
            warnings=len(report.warnings),
        )
        return report

    @staticmethod
    def _run(
        report: ValidationReport,
        rule: SnapshotRule,
        item: dict[str, Any],
        prefix: str | None,
    ) -> None:
        detail = rule.check(item)
        if detail is None:
            return
        message = f"{prefix}: {detail}" if prefix else detail
        report.findings.append(
            ValidationFinding(severity=rule.severity, rule_id=rule.rule_id, message=message)
        )
