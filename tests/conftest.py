# Shared pytest fixtures
from __future__ import annotations

import re
import tempfile
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.worksheet.datavalidation import DataValidation

from logsheet.config.loader import load_config
from logsheet.logging.init import reset_logging
from logsheet.models.layout_config import LayoutConfig

# GEOLOGY header layout used by the sample workbook (row 3 groups, row 4 columns)
SAMPLE_GROUPS = {
    "A": ("INTERVAL", "FFC000"),
    "D": ("LITHOLOGY", "92D050"),
    "G": ("INFO", None),  # synthetic group label: G..H skipped
    "I": ("ZONES", "00B0F0"),
}
SAMPLE_COLUMNS = {
    "A": "From",
    "B": "To",
    "C": "Comments",
    "D": "Lith1 Code",
    "E": "Lith2 Code",
    "F": "Colour",
    "G": "skipped 1",
    "H": "skipped 2",
    "I": "Oxide Zone",
    "J": "Rock      Strength",
    "K": "Grain Size",
    "L": "Hardness",
    "M": "From",  # duplicate name; column A wins
    "N": "Serisite",
    "O": "Chlorite",
}


def build_sample_workbook() -> Workbook:
    """GEOLOGY (3 data rows, row 6 blank) + DATA reference sheet + COLLAR."""
    wb = Workbook()
    ws = wb.active
    ws.title = "GEOLOGY"

    ws["E1"] = "Hole A1"
    for letter, (label, color) in SAMPLE_GROUPS.items():
        cell = ws[f"{letter}3"]
        cell.value = label
        if color:
            cell.fill = PatternFill(fill_type="solid", fgColor=color)
    for letter, name in SAMPLE_COLUMNS.items():
        ws[f"{letter}4"] = name

    # row 5
    ws["A5"] = 0
    ws["B5"] = 1.5
    ws["C5"] = "fresh"
    ws["D5"] = "GRN"
    ws["F5"] = "grey"
    ws["K5"] = "Fine"
    ws["CG5"] = "Yes"
    ws["CH5"] = "S001"
    # row 6 left blank
    # row 7
    ws["A7"] = 1.5
    ws["B7"] = "=A7+1.5"
    ws["C7"] = "see log"
    ws["C7"].hyperlink = "http://example.com/log"
    ws["M7"] = "dup"

    literal = DataValidation(type="list", formula1='"Fine,Medium,Coarse,Fine"')
    literal.add("K5:K7")
    ranged = DataValidation(type="list", formula1="DATA!$F$2:$F$10")
    ranged.add("L5:L7")
    own = DataValidation(type="list", formula1='"Y,N"')
    own.add("N5:N7")
    for dv in (literal, ranged, own):
        ws.add_data_validation(dv)

    data = wb.create_sheet("DATA")
    data["A2"] = "GRN"
    data["A3"] = "BAS"
    data["A4"] = "GRN"
    data["A5"] = "SED"
    data["A5"].font = Font(bold=True)
    data["A6"] = "after bold"
    data["A29"] = "OX"
    data["A30"] = "TR"
    data["A32"] = "after blank"
    data["F2"] = "Soft"
    data["F3"] = "Hard"
    data["F4"] = "Soft"
    data["F5"] = " Medium "
    data["W12"] = "R1"
    data["W13"] = "R2"

    collar = wb.create_sheet("COLLAR")
    collar["A1"] = "Hole ID"
    collar["B1"] = "Easting"
    collar["A2"] = "DDH001"
    collar["B2"] = 512345
    return wb


@pytest.fixture(autouse=True)
def _reset_logging_state():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "out").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("LOGSHEET_CONFIG", raising=False)
        monkeypatch.delenv("LOGSHEET_OUTPUT_DIR", raising=False)
        yield p


@pytest.fixture()
def layout() -> LayoutConfig:
    return load_config()


@pytest.fixture()
def make_workbook(temp_workdir: Path) -> Callable[..., Path]:
    """Factory: build the sample workbook, optionally mutate it, save under data/."""

    def _make(name: str = "hole.xlsx", mutate: Callable[[Workbook], None] | None = None) -> Path:
        wb = build_sample_workbook()
        if mutate is not None:
            mutate(wb)
        path = temp_workdir / "data" / name
        wb.save(path)
        return path

    return _make


@pytest.fixture()
def sample_xlsx(make_workbook) -> Path:
    return make_workbook()


@pytest.fixture()
def sample_layout_yaml() -> str:
    return """primary_sheet:
  name: GEOLOGY
  group_row: 3
  column_row: 4
  data_start_row: 5
reference_sheet: DATA
choice_columns:
  exact: [Colour]
fixed_choices:
  Colour: [grey, red]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_layout_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "layout.yml"
    cfg.write_text(sample_layout_yaml, encoding="utf-8")
    return cfg


def inject_cached_result(path: Path, coordinate: str, cached: str, member: str = "xl/worksheets/sheet1.xml") -> None:
    """Give a formula cell the cached `<v>` Excel writes (openpyxl saves formulas without one)."""
    with zipfile.ZipFile(path) as zin:
        items = [(info, zin.read(info.filename)) for info in zin.infolist()]
    pattern = re.compile(rf'(<c r="{coordinate}"[^>]*>\s*<f>[^<]*</f>)\s*(?:<v\s*/>|<v>[^<]*</v>)?')
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zout:
        for info, data in items:
            if info.filename == member:
                text, count = pattern.subn(rf"\g<1><v>{cached}</v>", data.decode("utf-8"), count=1)
                assert count == 1, f"no formula cell {coordinate} in {member}"
                data = text.encode("utf-8")
            zout.writestr(info, data)


@pytest.fixture()
def cached_formula_xlsx(make_workbook) -> Path:
    """Sample workbook where B7 (=A7+1.5) carries a cached result of 3, as saved by Excel."""
    path = make_workbook("cached.xlsx")
    inject_cached_result(path, "B7", "3")
    return path
