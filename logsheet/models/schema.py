from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Workbook schema models: groups, columns and the column index table.

A schema is derived fresh on every load. Groups own a contiguous column range
of the primary sheet; columns carry a role and an input classification so that
later layers never compare literal header strings again.
"""

__all__ = [
    "ColumnRole",
    "InputKind",
    "ChoiceSource",
    "Column",
    "Group",
    "ColumnIndex",
    "WorkbookSchema",
]


class ColumnRole(Enum):
    """Where a record field lives in the sheet.

    - DATA: scanned column under a group label
    - SHEET_FIELD: fixed cell replicated into every row (read only)
    - ROW_FIELD: fixed column read at each row's index
    """
    DATA = "data"
    SHEET_FIELD = "sheet_field"
    ROW_FIELD = "row_field"


class InputKind(Enum):
    TEXT = "text"
    CHOICE = "select"


class ChoiceSource(Enum):
    FIXED = "fixed"
    REFERENCE_LIST = "reference_list"
    VALIDATION_RANGE = "validation_range"
    VALIDATION_LIST = "validation_list"
    NONE = "none"


@dataclass(frozen=True)
class Column:
    name: str
    index: int | None  # 1-based sheet column; None for sheet scoped fields
    group: str
    role: ColumnRole = ColumnRole.DATA
    kind: InputKind = InputKind.TEXT
    options: tuple[str, ...] = ()
    source: ChoiceSource = ChoiceSource.NONE
    cell: str | None = None  # fixed address for SHEET_FIELD

    @property
    def is_choice(self) -> bool:
        return self.kind is InputKind.CHOICE


@dataclass
class Group:
    """Named cluster of adjacent columns sharing a display color."""
    name: str
    color: str
    columns: list[str] = field(default_factory=list)
    start_column: int = 0
    end_column: int = 0
    synthetic: bool = False


class ColumnIndex:
    """Name -> 1-based column index table, built once per load.

    The first registration of a name wins; later duplicates are reported to the
    caller through the return value of `register`.
    """

    def __init__(self) -> None:
        self._by_name: dict[str, int] = {}

    def register(self, name: str, index: int) -> bool:
        existing = self._by_name.get(name)
        if existing is not None:
            return existing == index
        self._by_name[name] = index
        return True

    def get(self, name: str) -> int | None:
        return self._by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def items(self):
        return self._by_name.items()


@dataclass
class WorkbookSchema:
    groups: list[Group]
    columns: dict[str, Column]
    index: ColumnIndex
    auxiliary_index: ColumnIndex | None = None

    def column(self, name: str) -> Column | None:
        return self.columns.get(name)

    @property
    def choice_fields(self) -> list[str]:
        return [name for name, col in self.columns.items() if col.is_choice]
