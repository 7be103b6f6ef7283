from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .row_data import RowData
from .schema import Group

"""Result envelopes for load / save operations.

Every workbook operation is converted into one of these values; callers never
see raw exceptions. `error` is the machine readable code (UPPER_SNAKE), while
`message` is meant for a transient user notification.
"""

__all__ = [
    "LoadedData",
    "LoadResult",
    "SaveResult",
]


@dataclass(frozen=True)
class LoadedData:
    groups: list[Group]
    rows: list[RowData]
    choice_fields: list[str] = field(default_factory=list)
    auxiliary: dict[str, Any] | None = None


@dataclass(frozen=True)
class LoadResult:
    success: bool
    message: str
    data: LoadedData | None = None
    error: str | None = None


@dataclass(frozen=True)
class SaveResult:
    success: bool
    message: str
    path: Path | None = None
    error: str | None = None

    def __bool__(self) -> bool:
        return self.success
