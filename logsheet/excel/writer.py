from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from ..models.layout_config import LayoutConfig
from ..models.schema import WorkbookSchema
from .workbook import serialize_workbook

"""Write-back: commit one edited record into its original cells.

Field names resolve through the column index built at load time. Unknown
names are skipped without failing the save. Writes are applied eagerly, one
field at a time, before serialization; a failure afterwards leaves the
in-memory workbook mutated (there is no rollback).
"""

__all__ = [
    "WriteBackError",
    "to_cell_value",
    "apply_row_edits",
    "apply_auxiliary_edits",
    "commit_row",
    "write_back",
]

logger = logging.getLogger(__name__)


class WriteBackError(Exception):
    error_type = "WRITE_ERROR"


def to_cell_value(value: Any) -> Any:
    """Plain value to store in a cell.

    Rich mappings from the row mapper collapse to their formula first so an
    unchanged formula cell stays a formula; otherwise text / value / result.
    """
    if isinstance(value, Mapping):
        for key in ("formula", "text", "value", "result"):
            candidate = value.get(key)
            if candidate is not None:
                return candidate
        return None
    return value


def apply_row_edits(
    ws: Worksheet,
    schema: WorkbookSchema,
    layout: LayoutConfig,
    row_index: int,
    record: Mapping[str, Any],
    row_count: int | None = None,
) -> int:
    """Write `record` into the data row `row_index` (0-based). Returns the number of cells written."""
    if row_index < 0 or (row_count is not None and row_index >= row_count):
        raise WriteBackError(f"row index {row_index} out of range (rows: {row_count})")
    row_number = row_index + layout.primary_sheet.data_start_row

    written = 0
    for name, value in record.items():
        col = schema.index.get(name)
        if col is None:
            logger.debug(f"write-back: no column named '{name}', skipped")
            continue
        ws.cell(row=row_number, column=col).value = to_cell_value(value)
        written += 1
    return written


def apply_auxiliary_edits(
    workbook: Workbook, schema: WorkbookSchema, layout: LayoutConfig, record: Mapping[str, Any]
) -> int:
    aux = layout.auxiliary_sheet
    if aux is None or schema.auxiliary_index is None or aux.name not in workbook.sheetnames:
        logger.debug("write-back: auxiliary sheet not loaded, auxiliary record ignored")
        return 0
    ws = workbook[aux.name]
    written = 0
    for name, value in record.items():
        col = schema.auxiliary_index.get(name)
        if col is None:
            logger.debug(f"write-back: no auxiliary column named '{name}', skipped")
            continue
        ws.cell(row=aux.data_row, column=col).value = to_cell_value(value)
        written += 1
    return written


def commit_row(
    workbook: Workbook,
    schema: WorkbookSchema,
    layout: LayoutConfig,
    row_index: int,
    record: Mapping[str, Any],
    aux_record: Mapping[str, Any] | None = None,
    row_count: int | None = None,
) -> bytes:
    """Apply the edits and serialize the whole workbook. Raises on failure."""
    ws = workbook[layout.primary_sheet.name]
    written = apply_row_edits(ws, schema, layout, row_index, record, row_count)
    if aux_record:
        written += apply_auxiliary_edits(workbook, schema, layout, aux_record)
    data = serialize_workbook(workbook)
    logger.debug(f"write-back: row {row_index} committed ({written} cells, {len(data)} bytes)")
    return data


def write_back(
    workbook: Workbook,
    schema: WorkbookSchema,
    layout: LayoutConfig,
    row_index: int,
    record: Mapping[str, Any],
    aux_record: Mapping[str, Any] | None = None,
    *,
    sink: Callable[[bytes], Any],
    on_error: Callable[[Exception], Any] | None = None,
    row_count: int | None = None,
) -> bool:
    """Commit one row and hand the serialized bytes to `sink`; True on success.

    Failures (commit or sink) are logged and reported through `on_error`.
    """
    try:
        data = commit_row(workbook, schema, layout, row_index, record, aux_record, row_count)
        sink(data)
    except Exception as e:
        logger.error(f"write-back failed for row {row_index}: {e}")
        if on_error is not None:
            on_error(e)
        return False
    return True
