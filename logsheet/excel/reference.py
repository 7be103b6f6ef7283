from __future__ import annotations

import logging
from dataclasses import dataclass

from openpyxl import Workbook
from openpyxl.utils.cell import column_index_from_string, range_boundaries

from ..models.layout_config import ReferenceList, StopRule

"""Reference sheet readers backing choice lists.

Two shapes are supported:
- a list validation source: literal `"a,b,c"` or a range (`DATA!$A$2:$A$10`,
  `'My Sheet'!A2:A9`, or a workbook defined name)
- a configured reference list: a vertical run on the reference sheet that
  stops at its last row or earlier, at the first blank (or bold) cell
"""

__all__ = [
    "RangeRef",
    "ValidationSource",
    "parse_validation_formula",
    "read_range_values",
    "read_reference_list",
    "split_literal_list",
]

logger = logging.getLogger(__name__)

MAX_ROW = 1048576
MAX_COLUMN = 16384


@dataclass(frozen=True)
class RangeRef:
    sheet: str | None
    min_col: int
    min_row: int
    max_col: int
    max_row: int


@dataclass(frozen=True)
class ValidationSource:
    """Parsed `formula1` of a list validation: either literal values or a range."""
    literal: tuple[str, ...] | None = None
    range: RangeRef | None = None
    name: str | None = None  # defined name, resolved against the workbook


def split_literal_list(text: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in text.split(","))


def _parse_range(text: str) -> RangeRef | None:
    sheet: str | None = None
    ref = text
    if "!" in text:
        sheet, ref = text.rsplit("!", 1)
        sheet = sheet.strip()
        if len(sheet) >= 2 and sheet[0] == sheet[-1] == "'":
            sheet = sheet[1:-1].replace("''", "'")
    ref = ref.replace("$", "").strip()
    try:
        min_col, min_row, max_col, max_row = range_boundaries(ref)
    except (ValueError, TypeError):
        return None
    # "A:A" / "2:2" style references leave one axis open
    return RangeRef(
        sheet=sheet,
        min_col=min_col or 1,
        min_row=min_row or 1,
        max_col=max_col or MAX_COLUMN,
        max_row=max_row or MAX_ROW,
    )


def parse_validation_formula(formula: str | None) -> ValidationSource | None:
    if formula is None:
        return None
    text = str(formula).strip()
    if text.startswith("="):
        text = text[1:].strip()
    if not text:
        return None
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return ValidationSource(literal=split_literal_list(text[1:-1]))
    if "!" in text:
        ref = _parse_range(text)
        return ValidationSource(range=ref) if ref is not None else None
    if "," in text:
        return ValidationSource(literal=split_literal_list(text))
    # 定義名を優先し、解決できなければ範囲として扱う
    return ValidationSource(range=_parse_range(text), name=text)


def _resolve_defined_name(workbook: Workbook, name: str, scope_sheet: str | None = None) -> RangeRef | None:
    """Destination of a defined name; a name scoped to `scope_sheet` shadows a workbook name."""
    defined = None
    if scope_sheet is not None and scope_sheet in workbook.sheetnames:
        defined = workbook[scope_sheet].defined_names.get(name)
    if defined is None:
        defined = workbook.defined_names.get(name)
    if defined is None:
        return None
    for sheet_title, coord in defined.destinations:
        ref = _parse_range(coord)
        if ref is not None:
            return RangeRef(sheet_title, ref.min_col, ref.min_row, ref.max_col, ref.max_row)
    return None


def read_range_values(workbook: Workbook, source: ValidationSource, default_sheet: str) -> list[str] | None:
    """Resolve a range source to its deduplicated, sorted, non-empty trimmed values.

    Returns None when the range (or its sheet) cannot be resolved.
    """
    ref = None
    if source.name is not None:
        ref = _resolve_defined_name(workbook, source.name, default_sheet)
    if ref is None:
        ref = source.range
    if ref is None:
        return None
    sheet_name = ref.sheet or default_sheet
    if sheet_name not in workbook.sheetnames:
        logger.warning(f"sheet '{sheet_name}' not found for list source")
        return None
    ws = workbook[sheet_name]
    # 範囲をシートの使用範囲に切り詰める (iter_rows は空セルを生成するため)
    max_row = min(ref.max_row, ws.max_row)
    max_col = min(ref.max_col, ws.max_column)

    values: set[str] = set()
    if ref.min_row > max_row or ref.min_col > max_col:
        return []
    for row in ws.iter_rows(
        min_row=ref.min_row, max_row=max_row, min_col=ref.min_col, max_col=max_col, values_only=True
    ):
        for value in row:
            if value is None:
                continue
            text = str(value).strip()
            if text:
                values.add(text)
    return sorted(values)


def read_reference_list(workbook: Workbook, sheet_name: str, ref: ReferenceList) -> list[str]:
    """Read a configured vertical run, trimmed and deduplicated in sheet order."""
    if sheet_name not in workbook.sheetnames:
        logger.warning(f"reference sheet '{sheet_name}' not found; list '{ref.name}' is empty")
        return []
    ws = workbook[sheet_name]
    col = column_index_from_string(ref.column)
    last_row = min(ref.last_row, ws.max_row)

    values: list[str] = []
    seen: set[str] = set()
    if col > ws.max_column or ref.first_row > last_row:
        return values
    for (cell,) in ws.iter_rows(min_row=ref.first_row, max_row=last_row, min_col=col, max_col=col):
        value = cell.value
        text = "" if value is None else str(value).strip()
        if not text:
            break
        if ref.stop_at is StopRule.BOLD and cell.font is not None and cell.font.bold:
            break
        if text not in seen:
            seen.add(text)
            values.append(text)
    logger.debug(f"reference list '{ref.name}': {len(values)} values")
    return values
