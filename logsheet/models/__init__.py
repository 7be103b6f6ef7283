"""Domain models for the logsheet editor.

Layout configuration, workbook schema (groups / columns / index), mapped rows,
result envelopes and error records.
"""

from .error_record import ErrorRecord
from .layout_config import (
    AuxiliaryLayout,
    ColumnMatcher,
    LayoutConfig,
    ReferenceList,
    SheetLayout,
    StopRule,
    SyntheticField,
    SyntheticGroup,
    WorkbookLimits,
)
from .results import LoadedData, LoadResult, SaveResult
from .row_data import RowData
from .schema import ChoiceSource, Column, ColumnIndex, ColumnRole, Group, InputKind, WorkbookSchema
from .values import RICH_KEYS, normalize_value

__all__ = [
    # Layout configuration
    "AuxiliaryLayout",
    "ColumnMatcher",
    "LayoutConfig",
    "ReferenceList",
    "SheetLayout",
    "StopRule",
    "SyntheticField",
    "SyntheticGroup",
    "WorkbookLimits",
    # Schema
    "ChoiceSource",
    "Column",
    "ColumnIndex",
    "ColumnRole",
    "Group",
    "InputKind",
    "WorkbookSchema",
    # Rows & results
    "RowData",
    "LoadedData",
    "LoadResult",
    "SaveResult",
    "ErrorRecord",
    # Values
    "RICH_KEYS",
    "normalize_value",
]
