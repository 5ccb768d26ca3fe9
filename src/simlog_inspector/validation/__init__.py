"""World snapshot validation.

Modules:
- rules: the built-in structural rules, one per invariant
- validator: locates the world object and applies every rule
"""

from __future__ import annotations

from simlog_inspector.validation.rules import BUILTIN_RULES, SnapshotRule
from simlog_inspector.validation.validator import (
    SnapshotValidator,
    ValidationFinding,
    ValidationReport,
)

__all__ = [
    "BUILTIN_RULES",
    "SnapshotRule",
    "SnapshotValidator",
    "ValidationFinding",
    "ValidationReport",
]
