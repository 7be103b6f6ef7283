from __future__ import annotations

from ..models.results import LoadResult, SaveResult

"""SUMMARY line rendering.

Format:
SUMMARY file={name} status={ok|failed} rows={n} groups={g} choice_columns={c} saved={yes|no|-}
"""

__all__ = [
    "render_summary_line",
]


def render_summary_line(filename: str, load: LoadResult, save: SaveResult | None = None) -> str:
    """Render the SUMMARY line for one CLI run.

    >>> render_summary_line("a.xlsx", LoadResult(success=False, message="x", error="SHEET_NOT_FOUND"))
    'SUMMARY file=a.xlsx status=failed rows=0 groups=0 choice_columns=0 saved=- error=SHEET_NOT_FOUND'
    """
    data = load.data
    rows = len(data.rows) if data is not None else 0
    groups = len(data.groups) if data is not None else 0
    choices = len(data.choice_fields) if data is not None else 0

    status = "ok" if load.success and (save is None or save.success) else "failed"
    if save is None:
        saved = "-"
    else:
        saved = "yes" if save.success else "no"

    line = (
        f"SUMMARY file={filename} status={status} rows={rows} groups={groups} "
        f"choice_columns={choices} saved={saved}"
    )
    error = load.error or (save.error if save is not None else None)
    if error:
        line += f" error={error}"
    return line
