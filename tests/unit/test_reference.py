from __future__ import annotations

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.workbook.defined_name import DefinedName

from logsheet.excel.reference import (
    ValidationSource,
    parse_validation_formula,
    read_range_values,
    read_reference_list,
)
from logsheet.models.layout_config import ColumnMatcher, ReferenceList, StopRule

"""Reference sheet readers (list validation sources and configured lists)."""


def _ref(column="A", first=1, last=10, stop=StopRule.BLANK) -> ReferenceList:
    return ReferenceList(name="t", column=column, first_row=first, last_row=last, stop_at=stop, targets=ColumnMatcher())


class TestParseValidationFormula:
    def test_quoted_literal(self):
        src = parse_validation_formula('"a, b,c"')
        assert src.literal == ("a", "b", "c")

    def test_sheet_range(self):
        src = parse_validation_formula("=DATA!$A$2:$A$10")
        assert src.literal is None
        assert src.range.sheet == "DATA"
        assert (src.range.min_col, src.range.min_row, src.range.max_col, src.range.max_row) == (1, 2, 1, 10)

    def test_quoted_sheet_name(self):
        src = parse_validation_formula("'My Sheet'!B1:B3")
        assert src.range.sheet == "My Sheet"

    def test_open_column_range(self):
        src = parse_validation_formula("DATA!C:C")
        assert src.range.min_row == 1
        assert src.range.max_row == 1048576

    def test_bare_name_kept_for_lookup(self):
        src = parse_validation_formula("LithCodes")
        assert src.name == "LithCodes"

    def test_empty(self):
        assert parse_validation_formula(None) is None
        assert parse_validation_formula("=") is None


def test_range_values_sorted_unique_trimmed():
    wb = Workbook()
    ws = wb.active
    ws.title = "DATA"
    for i, v in enumerate(["b", " a ", "b", None, "  ", "c"], start=1):
        ws.cell(row=i, column=1, value=v)
    values = read_range_values(wb, parse_validation_formula("DATA!A1:A6"), "DATA")
    assert values == ["a", "b", "c"]


def test_range_values_missing_sheet_returns_none():
    wb = Workbook()
    assert read_range_values(wb, parse_validation_formula("NOPE!A1:A3"), "Sheet") is None


def test_range_values_unparseable_returns_none():
    wb = Workbook()
    assert read_range_values(wb, ValidationSource(), "Sheet") is None


def test_range_values_clamped_to_used_range():
    wb = Workbook()
    ws = wb.active
    ws.title = "DATA"
    ws["A1"] = "x"
    read_range_values(wb, parse_validation_formula("DATA!A:A"), "DATA")
    assert ws.max_row == 1


def test_range_values_defined_name():
    wb = Workbook()
    ws = wb.active
    ws.title = "DATA"
    ws["B2"] = "zz"
    ws["B3"] = "aa"
    wb.defined_names["Codes"] = DefinedName("Codes", attr_text="DATA!$B$2:$B$3")
    values = read_range_values(wb, parse_validation_formula("Codes"), "DATA")
    assert values == ["aa", "zz"]


def test_range_values_sheet_scoped_name_shadows_workbook_name():
    wb = Workbook()
    geology = wb.active
    geology.title = "GEOLOGY"
    data = wb.create_sheet("DATA")
    data["B2"] = "zz"
    data["B3"] = "aa"
    data["C2"] = "global"
    geology.defined_names["Codes"] = DefinedName("Codes", attr_text="DATA!$B$2:$B$3")
    assert read_range_values(wb, parse_validation_formula("Codes"), "GEOLOGY") == ["aa", "zz"]

    wb.defined_names["Codes"] = DefinedName("Codes", attr_text="DATA!$C$2")
    assert read_range_values(wb, parse_validation_formula("Codes"), "GEOLOGY") == ["aa", "zz"]
    # other sheets only see the workbook level name
    assert read_range_values(wb, parse_validation_formula("Codes"), "DATA") == ["global"]


def test_reference_list_stops_at_blank():
    wb = Workbook()
    ws = wb.active
    for i, v in enumerate(["x", "y", None, "z"], start=1):
        ws.cell(row=i, column=1, value=v)
    assert read_reference_list(wb, ws.title, _ref()) == ["x", "y"]


def test_reference_list_stops_at_bold():
    wb = Workbook()
    ws = wb.active
    ws["A1"] = "x"
    ws["A2"] = "x"
    ws["A3"] = "HEADING"
    ws["A3"].font = Font(bold=True)
    ws["A4"] = "y"
    assert read_reference_list(wb, ws.title, _ref(stop=StopRule.BOLD)) == ["x"]


def test_reference_list_respects_last_row():
    wb = Workbook()
    ws = wb.active
    for i in range(1, 6):
        ws.cell(row=i, column=1, value=f"v{i}")
    assert read_reference_list(wb, ws.title, _ref(first=2, last=3)) == ["v2", "v3"]


def test_reference_list_missing_sheet():
    assert read_reference_list(Workbook(), "DATA", _ref()) == []
