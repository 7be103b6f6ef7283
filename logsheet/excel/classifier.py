from __future__ import annotations

import logging
from dataclasses import replace

from openpyxl import Workbook
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet

from ..models.layout_config import LayoutConfig
from ..models.schema import ChoiceSource, Column, InputKind
from .reference import parse_validation_formula, read_range_values, read_reference_list

"""Validation classifier: free text vs. choice constrained columns.

Rule precedence per column (first match wins):
1. Name forced (choice_columns matcher or fixed_choices key) -> CHOICE.
   Options: fixed choices > configured reference list > own list validation.
2. The topmost data cell under the column carries a list validation -> CHOICE.
   Range sources resolve to sorted unique values, literal sources keep order.
3. TEXT.
"""

__all__ = [
    "first_list_validations",
    "resolve_validation_options",
    "classify_column",
    "classify_columns",
]

logger = logging.getLogger(__name__)


def _unique(values) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for v in values:
        if v and v not in seen:
            seen[v] = None
    return tuple(seen)


def first_list_validations(ws: Worksheet, data_start_row: int) -> dict[int, DataValidation]:
    """Column index -> list validation covering its topmost data cell.

    Only rows from data_start_row to the sheet's last row count; a column whose
    cells are covered by several list rules takes the one reaching highest.
    """
    found: dict[int, tuple[int, DataValidation]] = {}
    last_row = ws.max_row
    for dv in ws.data_validations.dataValidation:
        if dv.type != "list":
            continue
        for rng in dv.sqref.ranges:
            if rng.max_row < data_start_row or rng.min_row > last_row:
                continue
            first_row = max(rng.min_row, data_start_row)
            for col in range(rng.min_col, rng.max_col + 1):
                previous = found.get(col)
                if previous is None or first_row < previous[0]:
                    found[col] = (first_row, dv)
    return {col: dv for col, (_, dv) in found.items()}


def resolve_validation_options(
    workbook: Workbook, dv: DataValidation, default_sheet: str, column_name: str = ""
) -> tuple[tuple[str, ...], ChoiceSource]:
    source = parse_validation_formula(dv.formula1)
    if source is None:
        return (), ChoiceSource.NONE
    if source.literal is not None:
        return _unique(source.literal), ChoiceSource.VALIDATION_LIST
    values = read_range_values(workbook, source, default_sheet)
    if values is None:
        logger.warning(f"could not resolve list source '{dv.formula1}' for column '{column_name}'")
        return (), ChoiceSource.VALIDATION_RANGE
    logger.debug(f"column '{column_name}': {len(values)} values from {dv.formula1}")
    return tuple(values), ChoiceSource.VALIDATION_RANGE


def classify_column(
    column: Column,
    workbook: Workbook,
    ws: Worksheet,
    layout: LayoutConfig,
    validations: dict[int, DataValidation],
    reference_cache: dict[str, tuple[str, ...]] | None = None,
) -> Column:
    if reference_cache is None:
        reference_cache = {}
    dv = validations.get(column.index) if column.index is not None else None

    if layout.is_forced_choice(column.name):
        fixed = layout.fixed_choices_for(column.name)
        if fixed is not None:
            return replace(column, kind=InputKind.CHOICE, options=_unique(fixed), source=ChoiceSource.FIXED)
        ref = layout.reference_list_for(column.name)
        if ref is not None:
            if ref.name not in reference_cache:
                reference_cache[ref.name] = tuple(read_reference_list(workbook, layout.reference_sheet, ref))
            return replace(
                column, kind=InputKind.CHOICE, options=reference_cache[ref.name], source=ChoiceSource.REFERENCE_LIST
            )
        if dv is not None:
            options, source = resolve_validation_options(workbook, dv, ws.title, column.name)
            return replace(column, kind=InputKind.CHOICE, options=options, source=source)
        return replace(column, kind=InputKind.CHOICE, options=(), source=ChoiceSource.NONE)

    if dv is not None:
        options, source = resolve_validation_options(workbook, dv, ws.title, column.name)
        return replace(column, kind=InputKind.CHOICE, options=options, source=source)

    return replace(column, kind=InputKind.TEXT, options=(), source=ChoiceSource.NONE)


def classify_columns(
    workbook: Workbook, ws: Worksheet, layout: LayoutConfig, columns: list[Column]
) -> dict[str, Column]:
    """Classify every column once; a repeated name keeps its first classification."""
    validations = first_list_validations(ws, layout.primary_sheet.data_start_row)
    reference_cache: dict[str, tuple[str, ...]] = {}
    classified: dict[str, Column] = {}
    for column in columns:
        if column.name in classified:
            continue
        classified[column.name] = classify_column(column, workbook, ws, layout, validations, reference_cache)

    choice = sum(1 for c in classified.values() if c.is_choice)
    logger.info(f"classified {len(classified)} columns ({choice} choice, {len(classified) - choice} text)")
    return classified
