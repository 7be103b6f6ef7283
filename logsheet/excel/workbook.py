from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from ..models.layout_config import LayoutConfig, WorkbookLimits

"""Workbook loading, limit checks and serialization.

Load order:
1. Type check (extension / MIME type against the accepted table)
2. Size ceiling on the raw bytes
3. Parse twice with openpyxl: editable workbook + data_only copy (cached formula results)
4. Primary sheet presence
5. Row / column ceilings on the primary sheet

Every failure raises a `WorkbookError` subclass carrying an UPPER_SNAKE
`error_type`; nothing partial is returned.
"""

__all__ = [
    "WorkbookError",
    "UnsupportedFileTypeError",
    "FileTooLargeError",
    "SheetLimitError",
    "SheetNotFoundError",
    "WorkbookParseError",
    "LoadedWorkbook",
    "check_file_type",
    "check_file_size",
    "check_sheet_limits",
    "parse_workbook",
    "open_workbook",
    "serialize_workbook",
]

logger = logging.getLogger(__name__)


class WorkbookError(Exception):
    """Base class for load failures."""
    error_type = "WORKBOOK_ERROR"


class UnsupportedFileTypeError(WorkbookError):
    error_type = "UNSUPPORTED_FILE_TYPE"


class FileTooLargeError(WorkbookError):
    error_type = "FILE_TOO_LARGE"


class SheetLimitError(WorkbookError):
    """Row or column count of the primary sheet exceeds the ceiling."""
    error_type = "SHEET_LIMIT_EXCEEDED"


class SheetNotFoundError(WorkbookError):
    error_type = "SHEET_NOT_FOUND"


class WorkbookParseError(WorkbookError):
    error_type = "PARSE_ERROR"


@dataclass
class LoadedWorkbook:
    """Workbook handle owned by one edit session."""
    workbook: Workbook
    results: Workbook  # data_only 版 (数式のキャッシュ値)
    primary: Worksheet
    filename: str
    mime_type: str

    @property
    def results_primary(self) -> Worksheet | None:
        title = self.primary.title
        if title in self.results.sheetnames:
            return self.results[title]
        return None


def check_file_type(filename: str, mime_type: str | None, limits: WorkbookLimits) -> str:
    """Return the resolved MIME type, raising when the file is not accepted."""
    ext = Path(filename).suffix.lower()
    accepted = limits.accepted_types
    if ext not in accepted:
        raise UnsupportedFileTypeError(
            f"unsupported file type '{ext or filename}' (accepted: {', '.join(sorted(accepted))})"
        )
    expected = accepted[ext]
    if mime_type and mime_type != expected:
        raise UnsupportedFileTypeError(f"unsupported MIME type '{mime_type}' for {ext}")
    return expected


def check_file_size(size: int, limits: WorkbookLimits) -> None:
    if size > limits.max_file_bytes:
        mb = limits.max_file_bytes / (1024 * 1024)
        raise FileTooLargeError(f"file size {size} bytes exceeds limit ({mb:g} MB)")


def check_sheet_limits(ws: Worksheet, limits: WorkbookLimits) -> None:
    if ws.max_row > limits.max_rows or ws.max_column > limits.max_columns:
        raise SheetLimitError(
            f"sheet '{ws.title}' too large: {ws.max_row} rows x {ws.max_column} columns "
            f"(max: {limits.max_rows} rows, {limits.max_columns} columns)"
        )


def parse_workbook(data: bytes, *, keep_vba: bool = False) -> tuple[Workbook, Workbook]:
    """Parse raw bytes into (editable workbook, data_only workbook)."""
    try:
        workbook = load_workbook(BytesIO(data), keep_vba=keep_vba)
        results = load_workbook(BytesIO(data), data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, ValueError, OSError) as e:
        raise WorkbookParseError(f"could not parse workbook: {e}") from e
    return workbook, results


def open_workbook(data: bytes, filename: str, layout: LayoutConfig, mime_type: str | None = None) -> LoadedWorkbook:
    limits = layout.limits
    resolved_mime = check_file_type(filename, mime_type, limits)
    check_file_size(len(data), limits)

    workbook, results = parse_workbook(data, keep_vba=Path(filename).suffix.lower() == ".xlsm")

    sheet_name = layout.primary_sheet.name
    if sheet_name not in workbook.sheetnames:
        raise SheetNotFoundError(f"sheet '{sheet_name}' not found")
    primary = workbook[sheet_name]
    check_sheet_limits(primary, limits)

    logger.debug(
        f"opened {filename}: sheets={workbook.sheetnames} rows={primary.max_row} cols={primary.max_column}"
    )
    return LoadedWorkbook(
        workbook=workbook,
        results=results,
        primary=primary,
        filename=filename,
        mime_type=resolved_mime,
    )


def serialize_workbook(workbook: Workbook) -> bytes:
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
