from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from openpyxl import Workbook
from openpyxl.cell.cell import Cell
from openpyxl.utils.cell import coordinate_from_string, column_index_from_string
from openpyxl.worksheet.worksheet import Worksheet

from ..models.layout_config import LayoutConfig
from ..models.row_data import RowData
from ..models.schema import ColumnIndex, ColumnRole, WorkbookSchema
from ..models.values import normalize_value
from .schema_reader import cell_text

if TYPE_CHECKING:
    from ..services.progress import ProgressTracker

"""Row mapper: data rows -> flat records keyed by column name.

Every sheet row from data_start_row to the sheet's last row becomes one record,
blank rows included. Raw values keep their rich shape (see `models.values`):
formula cells carry their cached result, hyperlink cells their target.
"""

__all__ = [
    "raw_cell_value",
    "read_cell",
    "map_rows",
    "read_auxiliary",
]

logger = logging.getLogger(__name__)


def read_cell(ws: Worksheet | None, row: int, col: int) -> Cell | None:
    """Cell at (row, col) or None outside the used range (avoids growing the sheet)."""
    if ws is None or row > ws.max_row or col > ws.max_column:
        return None
    return ws.cell(row=row, column=col)


def raw_cell_value(cell: Cell | None, results_ws: Worksheet | None = None) -> Any:
    if cell is None:
        return None
    value = cell.value
    if cell.data_type == "f":
        formula = value if isinstance(value, str) else getattr(value, "text", None)
        cached = read_cell(results_ws, cell.row, cell.column)
        return {"formula": formula, "result": cached.value if cached is not None else None}
    if cell.hyperlink is not None:
        return {"text": value, "hyperlink": cell.hyperlink.target or cell.hyperlink.location}
    return value


def _sheet_field_values(ws: Worksheet, results_ws: Worksheet | None, layout: LayoutConfig) -> dict[str, str]:
    values: dict[str, str] = {}
    for f in layout.synthetic_fields():
        if f.row_scoped:
            continue
        letters, row = coordinate_from_string(f.cell)
        cell = read_cell(ws, row, column_index_from_string(letters))
        text = normalize_value(raw_cell_value(cell, results_ws))
        values[f.name] = text or (f.default or "")
    return values


def map_rows(
    ws: Worksheet,
    schema: WorkbookSchema,
    layout: LayoutConfig,
    results_ws: Worksheet | None = None,
    progress: ProgressTracker | None = None,
) -> list[RowData]:
    start = layout.primary_sheet.data_start_row
    sheet_fields = _sheet_field_values(ws, results_ws, layout)

    row_fields = [c for c in schema.columns.values() if c.role is ColumnRole.ROW_FIELD]
    # schema.columns は名前ごとに最初の列だけを保持する
    data_columns = [(c.name, c.index) for c in schema.columns.values() if c.role is ColumnRole.DATA]

    rows: list[RowData] = []
    for row_number in range(start, ws.max_row + 1):
        record: dict[str, Any] = dict(sheet_fields)
        for column in row_fields:
            record[column.name] = raw_cell_value(read_cell(ws, row_number, column.index), results_ws)
        for name, col in data_columns:
            record[name] = raw_cell_value(read_cell(ws, row_number, col), results_ws)
        rows.append(RowData(index=row_number - start, row_number=row_number, values=record))
        if progress is not None:
            progress.advance()

    logger.info(f"mapped {len(rows)} rows from '{ws.title}' (rows {start}..{ws.max_row})")
    return rows


def read_auxiliary(
    workbook: Workbook, results: Workbook | None, layout: LayoutConfig
) -> tuple[dict[str, Any] | None, ColumnIndex | None]:
    """Header/data row pair of the auxiliary sheet, plus its name -> column index.

    (None, None) when no auxiliary sheet is configured or present.
    """
    aux = layout.auxiliary_sheet
    if aux is None or aux.name not in workbook.sheetnames:
        return None, None
    ws = workbook[aux.name]
    results_ws = results[aux.name] if results is not None and aux.name in results.sheetnames else None

    index = ColumnIndex()
    record: dict[str, Any] = {}
    for col in range(1, ws.max_column + 1):
        header = read_cell(ws, aux.header_row, col)
        name = cell_text(header.value if header is not None else None)
        if not name or not index.register(name, col):
            continue
        record[name] = raw_cell_value(read_cell(ws, aux.data_row, col), results_ws)
    logger.debug(f"auxiliary sheet '{aux.name}': {len(record)} fields")
    return record, index
