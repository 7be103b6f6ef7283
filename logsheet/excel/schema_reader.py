from __future__ import annotations

import logging
from typing import Any

from openpyxl.cell.cell import Cell
from openpyxl.utils.cell import column_index_from_string
from openpyxl.worksheet.worksheet import Worksheet

from ..models.layout_config import LayoutConfig
from ..models.schema import Column, ColumnIndex, ColumnRole, Group

"""Schema reader: group / column extraction from the two header rows.

Columns are scanned left to right. A non-empty group label closes the open
group and opens a new one; every non-empty column label below an open group is
appended to it. Labels naming a synthetic group close the open group and the
columns below them are skipped (those groups are assembled from fixed fields).
"""

__all__ = [
    "DEFAULT_COLOR",
    "cell_text",
    "fill_color",
    "scan_header",
    "read_groups",
    "synthetic_columns",
    "build_column_index",
]

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "FFFFFF"


def cell_text(value: Any) -> str:
    """Header label text; whitespace-only counts as empty."""
    if value is None:
        return ""
    text = str(value)
    return text if text.strip() else ""


def fill_color(cell: Cell | None) -> str:
    """RGB hex of a solid cell fill without the alpha byte, DEFAULT_COLOR otherwise.

    Theme / indexed colors cannot be resolved without the theme part, so they
    fall back to the default as well.
    """
    if cell is None:
        return DEFAULT_COLOR
    fill = cell.fill
    if fill is None or not fill.fill_type:
        return DEFAULT_COLOR
    color = fill.fgColor
    if color is None or color.type != "rgb" or not isinstance(color.rgb, str):
        return DEFAULT_COLOR
    rgb = color.rgb.upper()
    return rgb[2:] if len(rgb) == 8 else rgb


def _row_cells(ws: Worksheet, row: int) -> dict[int, Cell]:
    # iter_rows は存在しないセルを生成しない
    cells: dict[int, Cell] = {}
    for row_cells in ws.iter_rows(min_row=row, max_row=row, max_col=ws.max_column):
        for cell in row_cells:
            cells[cell.column] = cell
    return cells


def scan_header(ws: Worksheet, layout: LayoutConfig) -> tuple[list[Group], list[Column]]:
    """Scan the group / column label rows.

    Returns the positional groups (synthetic groups excluded) and one DATA
    column per non-empty column label inside a group, in sheet order.
    """
    sheet = layout.primary_sheet
    group_cells = _row_cells(ws, sheet.group_row)
    column_cells = _row_cells(ws, sheet.column_row)
    excluded = layout.synthetic_group_names

    groups: list[Group] = []
    columns: list[Column] = []
    current: Group | None = None
    max_column = ws.max_column

    for col in range(1, max_column + 1):
        group_cell = group_cells.get(col)
        label = cell_text(group_cell.value if group_cell is not None else None)
        if label:
            if current is not None:
                current.end_column = col - 1
                groups.append(current)
            if label.strip().lower() in excluded:
                logger.debug(f"skipping synthetic group label '{label}' at column {col}")
                current = None
            else:
                current = Group(
                    name=label,
                    color=fill_color(group_cell),
                    start_column=col,
                    end_column=col,
                )

        if current is None:
            continue
        column_cell = column_cells.get(col)
        name = cell_text(column_cell.value if column_cell is not None else None)
        if not name:
            continue
        current.columns.append(name)
        columns.append(Column(name=name, index=col, group=current.name))

    if current is not None:
        current.end_column = max_column
        groups.append(current)

    return groups, columns


def synthetic_columns(layout: LayoutConfig) -> tuple[list[Group], list[Column]]:
    groups: list[Group] = []
    columns: list[Column] = []
    for sg in layout.synthetic_groups:
        names = [f.name for f in sg.fields]
        indexes = [column_index_from_string(f.column) for f in sg.fields if f.row_scoped]
        groups.append(
            Group(
                name=sg.name,
                color=sg.color,
                columns=names,
                start_column=min(indexes) if indexes else 0,
                end_column=max(indexes) if indexes else 0,
                synthetic=True,
            )
        )
        for f in sg.fields:
            if f.row_scoped:
                columns.append(
                    Column(
                        name=f.name,
                        index=column_index_from_string(f.column),
                        group=sg.name,
                        role=ColumnRole.ROW_FIELD,
                    )
                )
            else:
                columns.append(
                    Column(name=f.name, index=None, group=sg.name, role=ColumnRole.SHEET_FIELD, cell=f.cell)
                )
    return groups, columns


def read_groups(ws: Worksheet, layout: LayoutConfig) -> tuple[list[Group], list[Column]]:
    """Synthetic groups (config order) followed by the positional groups, with their columns."""
    synthetic_groups, synthetic_cols = synthetic_columns(layout)
    positional_groups, data_cols = scan_header(ws, layout)
    return synthetic_groups + positional_groups, synthetic_cols + data_cols


def build_column_index(columns: list[Column]) -> ColumnIndex:
    """Build the name -> column table once; first occurrence of a name wins.

    Sheet scoped fields have no column and are not indexed (read only).
    """
    index = ColumnIndex()
    for column in columns:
        if column.index is None:
            continue
        if not index.register(column.name, column.index):
            logger.warning(
                f"duplicate column name '{column.name}' at column {column.index}; "
                f"keeping column {index.get(column.name)}"
            )
    return index
