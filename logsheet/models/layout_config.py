from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Layout configuration dataclasses for the logsheet editor.

The workbook convention (sheet names, header rows, fixed cell addresses,
choice column name lists, reference list ranges and size ceilings) is carried
by these frozen dataclasses. `config.loader.load_config` builds them from YAML.
"""

__all__ = [
    "ColumnMatcher",
    "SheetLayout",
    "AuxiliaryLayout",
    "WorkbookLimits",
    "SyntheticField",
    "SyntheticGroup",
    "StopRule",
    "ReferenceList",
    "LayoutConfig",
    "collapse_name",
]


def collapse_name(name: str) -> str:
    """Collapse whitespace runs so 'Rock      Strength' matches 'Rock Strength'."""
    return " ".join(str(name).split())


@dataclass(frozen=True)
class ColumnMatcher:
    """Exact / substring column name matcher (whitespace-insensitive)."""
    exact: frozenset[str] = frozenset()
    contains: tuple[str, ...] = ()

    def matches_exact(self, column_name: str) -> bool:
        return collapse_name(column_name) in self.exact

    def matches_contains(self, column_name: str) -> bool:
        key = collapse_name(column_name)
        return any(part in key for part in self.contains)

    def matches(self, column_name: str) -> bool:
        return self.matches_exact(column_name) or self.matches_contains(column_name)


@dataclass(frozen=True)
class SheetLayout:
    """Primary data sheet: group label row, column label row, first data row."""
    name: str
    group_row: int
    column_row: int
    data_start_row: int


@dataclass(frozen=True)
class AuxiliaryLayout:
    """Optional single header/data row sheet (COLLAR)."""
    name: str
    header_row: int = 1
    data_row: int = 2


@dataclass(frozen=True)
class WorkbookLimits:
    max_file_bytes: int = 20 * 1024 * 1024
    max_rows: int = 10000
    max_columns: int = 100
    # extension (".xlsx") -> MIME type
    accepted_types: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SyntheticField:
    """A field read from a fixed address outside the scanned column range.

    Exactly one of `cell` (sheet scoped, e.g. "E1") or `column` (row scoped,
    e.g. "CG") is set.
    """
    name: str
    cell: str | None = None
    column: str | None = None
    default: str | None = None

    @property
    def row_scoped(self) -> bool:
        return self.column is not None


@dataclass(frozen=True)
class SyntheticGroup:
    name: str
    color: str
    fields: tuple[SyntheticField, ...]


class StopRule(Enum):
    """How a reference list run terminates before its last row."""
    BLANK = "blank"
    BOLD = "bold"


@dataclass(frozen=True)
class ReferenceList:
    """Named vertical run on the reference sheet backing some choice columns."""
    name: str
    column: str
    first_row: int
    last_row: int
    stop_at: StopRule
    targets: ColumnMatcher


@dataclass(frozen=True)
class LayoutConfig:
    """Root layout configuration."""
    primary_sheet: SheetLayout
    reference_sheet: str
    limits: WorkbookLimits
    synthetic_groups: tuple[SyntheticGroup, ...] = ()
    choice_columns: ColumnMatcher = ColumnMatcher()
    fixed_choices: dict[str, tuple[str, ...]] = field(default_factory=dict)
    reference_lists: tuple[ReferenceList, ...] = ()
    auxiliary_sheet: AuxiliaryLayout | None = None

    @property
    def synthetic_group_names(self) -> set[str]:
        return {g.name.lower() for g in self.synthetic_groups}

    def synthetic_fields(self) -> list[SyntheticField]:
        return [f for g in self.synthetic_groups for f in g.fields]

    def fixed_choices_for(self, column_name: str) -> tuple[str, ...] | None:
        key = collapse_name(column_name)
        for name, values in self.fixed_choices.items():
            if collapse_name(name) == key:
                return values
        return None

    def reference_list_for(self, column_name: str) -> ReferenceList | None:
        """Exact name targets win over substring targets (so 'Min Zone' beats 'Zone')."""
        for ref in self.reference_lists:
            if ref.targets.matches_exact(column_name):
                return ref
        for ref in self.reference_lists:
            if ref.targets.matches_contains(column_name):
                return ref
        return None

    def is_forced_choice(self, column_name: str) -> bool:
        return self.choice_columns.matches(column_name) or self.fixed_choices_for(column_name) is not None
