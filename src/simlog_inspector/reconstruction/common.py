"""Helpers shared by the reconstructors."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def tail(items: Sequence[T], limit: int) -> list[T]:
    """Return the last ``limit`` items of ``items`` as a new list.

    The result is always a suffix of ``items`` of length
    ``min(limit, len(items))``; a non-positive limit yields ``[]``.
    """
    if limit <= 0:
        return []
    return list(items[-limit:])
