"""Workbook reading / classification / write-back on top of openpyxl."""

from ..models.values import normalize_value
from .classifier import classify_columns
from .row_mapper import map_rows, read_auxiliary
from .schema_reader import build_column_index, read_groups, scan_header
from .workbook import (
    FileTooLargeError,
    SheetLimitError,
    SheetNotFoundError,
    UnsupportedFileTypeError,
    WorkbookError,
    WorkbookParseError,
    open_workbook,
    serialize_workbook,
)
from .writer import WriteBackError, commit_row, write_back

__all__ = [
    "FileTooLargeError",
    "SheetLimitError",
    "SheetNotFoundError",
    "UnsupportedFileTypeError",
    "WorkbookError",
    "WorkbookParseError",
    "WriteBackError",
    "build_column_index",
    "classify_columns",
    "commit_row",
    "map_rows",
    "normalize_value",
    "open_workbook",
    "read_auxiliary",
    "read_groups",
    "scan_header",
    "serialize_workbook",
    "write_back",
]
