from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..excel.classifier import classify_columns
from ..excel.row_mapper import map_rows, read_auxiliary
from ..excel.schema_reader import build_column_index, read_groups
from ..excel.workbook import (
    LoadedWorkbook,
    WorkbookError,
    check_file_size,
    check_file_type,
    open_workbook,
)
from ..excel.writer import write_back
from ..logging.error_log import ErrorLogBuffer
from ..models.layout_config import LayoutConfig
from ..models.results import LoadedData, LoadResult, SaveResult
from ..models.row_data import RowData
from ..models.schema import ColumnRole, InputKind, WorkbookSchema
from .delivery import deliver_file
from .progress import ProgressTracker

"""Edit session: one workbook, one load -> edit -> save cycle.

The session exclusively owns the workbook handle. A new load discards the
previous state entirely. Edits touch an in-memory draft of the selected row
until `save` commits that row (and optionally the auxiliary record) back into
the workbook and writes the re-serialized file to the output directory.

Every operation returns a result value (`LoadResult` / `SaveResult`); failures
are logged, appended to the error log buffer when one is attached, and never
raised to the caller.
"""

__all__ = [
    "EditSession",
]

logger = logging.getLogger(__name__)


class EditSession:
    def __init__(
        self,
        layout: LayoutConfig,
        output_dir: Path,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.layout = layout
        self.output_dir = output_dir
        self.error_log = error_log
        self._reset()

    def _reset(self) -> None:
        self._loaded: LoadedWorkbook | None = None
        self.schema: WorkbookSchema | None = None
        self.rows: list[RowData] = []
        self.auxiliary: dict[str, Any] | None = None
        self._current_index = 0
        self._draft: dict[str, Any] = {}

    # ------------------------------------------------------------------ load

    @property
    def loaded(self) -> bool:
        return self._loaded is not None

    @property
    def filename(self) -> str | None:
        return self._loaded.filename if self._loaded is not None else None

    def load_file(self, path: Path, mime_type: str | None = None) -> LoadResult:
        """Read a workbook from disk; type and size are checked before reading."""
        self._reset()
        limits = self.layout.limits
        try:
            check_file_type(path.name, mime_type, limits)
            check_file_size(path.stat().st_size, limits)
            data = path.read_bytes()
        except WorkbookError as e:
            return self._load_failed(path.name, e.error_type, str(e))
        except OSError as e:
            return self._load_failed(path.name, "READ_ERROR", f"could not read {path}: {e}")
        return self.load_bytes(data, path.name, mime_type)

    def load_bytes(self, data: bytes, filename: str, mime_type: str | None = None) -> LoadResult:
        self._reset()
        layout = self.layout
        try:
            loaded = open_workbook(data, filename, layout, mime_type)
            ws = loaded.primary

            groups, all_columns = read_groups(ws, layout)
            index = build_column_index(all_columns)
            # リスト値はキャッシュ値 (data_only) 側から読む
            columns = classify_columns(loaded.results, ws, layout, all_columns)
            aux_record, aux_index = read_auxiliary(loaded.workbook, loaded.results, layout)
            schema = WorkbookSchema(groups=groups, columns=columns, index=index, auxiliary_index=aux_index)

            total = max(0, ws.max_row - layout.primary_sheet.data_start_row + 1)
            with ProgressTracker(total, description=f"Mapping {ws.title}") as progress:
                rows = map_rows(ws, schema, layout, loaded.results_primary, progress)
                progress.set_postfix(rows=len(rows))
        except WorkbookError as e:
            return self._load_failed(filename, e.error_type, str(e))
        except Exception as e:
            return self._load_failed(filename, "PROCESSING_ERROR", f"could not process workbook: {e}")

        self._loaded = loaded
        self.schema = schema
        self.rows = rows
        self.auxiliary = aux_record
        self._select(0)

        logger.info(
            f"loaded {filename}: groups={len(schema.groups)} columns={len(columns)} rows={len(rows)} "
            f"auxiliary={'yes' if aux_record is not None else 'no'}"
        )
        return LoadResult(
            success=True,
            message="workbook loaded",
            data=LoadedData(
                groups=schema.groups,
                rows=rows,
                choice_fields=schema.choice_fields,
                auxiliary=aux_record,
            ),
        )

    def _load_failed(self, filename: str, error_type: str, message: str) -> LoadResult:
        logger.error(f"load {filename}: {message}")
        self._record_error(filename, self.layout.primary_sheet.name, -1, error_type, message)
        self._reset()
        return LoadResult(success=False, message=message, error=error_type)

    def _record_error(self, filename: str, sheet: str, row: int, error_type: str, message: str) -> None:
        if self.error_log is not None:
            self.error_log.record_failure(filename, sheet, row, error_type, message)

    # ---------------------------------------------------------------- cursor

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_row(self) -> RowData | None:
        if not self.rows:
            return None
        return self.rows[self._current_index]

    @property
    def current_record(self) -> dict[str, Any]:
        """Draft of the selected row (edits not yet saved)."""
        return self._draft

    def _select(self, index: int) -> None:
        self._current_index = index
        self._draft = dict(self.rows[index].values) if self.rows else {}

    def select_row(self, index: int) -> bool:
        """Select a row by 0-based index; unsaved edits of the previous row are dropped."""
        if not 0 <= index < len(self.rows):
            return False
        self._select(index)
        return True

    def next_row(self) -> bool:
        return self.select_row(self._current_index + 1)

    def previous_row(self) -> bool:
        return self.select_row(self._current_index - 1)

    def set_field(self, name: str, value: Any) -> bool:
        """Edit the draft. Sheet scoped synthetic fields are read only."""
        column = self.schema.column(name) if self.schema is not None else None
        if column is not None and column.role is ColumnRole.SHEET_FIELD:
            return False
        self._draft[name] = value
        return True

    def column_kind(self, name: str) -> InputKind:
        column = self.schema.column(name) if self.schema is not None else None
        return column.kind if column is not None else InputKind.TEXT

    def choices(self, name: str) -> list[str]:
        column = self.schema.column(name) if self.schema is not None else None
        return list(column.options) if column is not None else []

    # ------------------------------------------------------------------ save

    def save(
        self,
        aux_record: Mapping[str, Any] | None = None,
        *,
        row_index: int | None = None,
        record: Mapping[str, Any] | None = None,
    ) -> SaveResult:
        """Commit one row (default: the selected row's draft) and write the file.

        Without `record`, the selected row commits its draft and any other row
        commits its stored values. On success the stored row is replaced by the
        committed values; saving the selected row moves the cursor to the next
        row when there is one.
        """
        if self._loaded is None or self.schema is None:
            return SaveResult(success=False, message="no workbook loaded", error="NOT_LOADED")

        loaded = self._loaded
        index = self._current_index if row_index is None else row_index
        if record is not None:
            values = dict(record)
        elif index == self._current_index:
            values = dict(self._draft)
        elif 0 <= index < len(self.rows):
            values = dict(self.rows[index].values)
        else:
            # write_back rejects the index
            values = {}
        delivered: list[Path] = []
        failure: list[Exception] = []

        ok = write_back(
            loaded.workbook,
            self.schema,
            self.layout,
            index,
            values,
            aux_record,
            sink=lambda data: delivered.append(deliver_file(data, loaded.filename, self.output_dir)),
            on_error=failure.append,
            row_count=len(self.rows),
        )
        if not ok:
            error = failure[0] if failure else None
            error_type = getattr(error, "error_type", "SAVE_ERROR")
            message = f"could not save changes: {error}"
            row_number = index + self.layout.primary_sheet.data_start_row if index >= 0 else -1
            self._record_error(loaded.filename, loaded.primary.title, row_number, error_type, message)
            return SaveResult(success=False, message=message, error=error_type)

        self._store_committed(index, values, aux_record)
        if index == self._current_index:
            if not self.next_row():
                self._select(index)
        return SaveResult(success=True, message="changes saved", path=delivered[0] if delivered else None)

    def _store_committed(self, index: int, values: Mapping[str, Any], aux_record: Mapping[str, Any] | None) -> None:
        old = self.rows[index]
        # ワークブックに書かれた列だけを反映 (未知のフィールドは捨てる)
        merged = dict(old.values)
        for name, value in values.items():
            if name in self.schema.index:
                merged[name] = value
        self.rows[index] = RowData(index=old.index, row_number=old.row_number, values=merged)

        if aux_record and self.auxiliary is not None and self.schema.auxiliary_index is not None:
            for name, value in aux_record.items():
                if name in self.schema.auxiliary_index:
                    self.auxiliary[name] = value
