from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Error log for failed loads and saves.

Failures are buffered as `ErrorRecord`s and appended as JSON Lines to
`logs/errors-YYYYMMDD-HHMMSS.log` (UTC) on flush. Nothing is created for a run
without failures; a run with failures writes exactly one file.
"""

__all__ = [
    "FILE_LEVEL",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

# sheet 名が無い (ファイル単位の) 失敗
FILE_LEVEL = "<FILE_LEVEL>"


class ErrorLogBuffer:
    """Buffered failures of one editing session. Serial use; no locking."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._path: Path | None = None

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def record_failure(self, file: str, sheet: str | None, row: int, error_type: str, message: str) -> ErrorRecord:
        """Buffer one failure. `row` is the absolute sheet row, -1 when no row applies."""
        record = ErrorRecord.create(file, sheet or FILE_LEVEL, row, error_type, message)
        self._records.append(record)
        return record

    def flush(self) -> Path | None:
        """Append buffered records to the run's log file; None when there was nothing to write."""
        if not self._records:
            return None
        if self._path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._path = self._logs_dir / f"errors-{stamp}.log"
        with self._path.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return self._path
