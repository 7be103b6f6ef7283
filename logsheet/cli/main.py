from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd

from ..config.loader import (
    ConfigError,
    load_config,
    load_env_file,
    resolve_config_path,
    resolve_output_dir,
)
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.results import SaveResult
from ..services.session import EditSession
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load `.env` (its values win over the process environment)
- Resolve and load the layout config (flag > LOGSHEET_CONFIG > bundled)
- Load the workbook into an edit session
- `--inspect-data`: print schema + a pandas preview of the first rows
- `--set` / `--aux-set`: edit one row (`--row`, 1 = first data row) and save
- Flush the error log and print the SUMMARY line
"""

__all__ = [
    "EXIT_SUCCESS",
    "EXIT_FATAL",
    "EXIT_SAVE_FAILED",
    "main",
]

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_SAVE_FAILED = 2


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="logsheet", description="Row-by-row editor for logging workbooks")
    p.add_argument("file", type=Path, help="Workbook to load (.xlsx / .xlsm)")
    p.add_argument("--config", help="Layout config YAML (default: LOGSHEET_CONFIG or bundled layout)")
    p.add_argument("--output-dir", help="Where saved workbooks go (default: LOGSHEET_OUTPUT_DIR or ~/Downloads)")
    p.add_argument("--inspect-data", action="store_true", help="Print groups, columns and first rows then exit")
    p.add_argument("--rows", type=int, default=5, help="Rows shown by --inspect-data (default: 5)")
    p.add_argument("--row", type=int, default=1, help="Data row to edit, 1 = first data row (default: 1)")
    p.add_argument("--set", dest="sets", action="append", default=[], metavar="NAME=VALUE", help="Field edit (repeatable)")
    p.add_argument(
        "--aux-set", dest="aux_sets", action="append", default=[], metavar="NAME=VALUE",
        help="Auxiliary sheet field edit (repeatable)",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _parse_assignments(items: list[str]) -> dict[str, str]:
    """`NAME=VALUE` pairs -> dict. The value may be empty or contain '='."""
    out: dict[str, str] = {}
    for item in items:
        name, sep, value = item.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"expected NAME=VALUE, got '{item}'")
        out[name] = value
    return out


def _inspect_data(session: EditSession, rows: int) -> None:
    schema = session.schema
    print(f"FILE: {session.filename}")
    for group in schema.groups:
        label = " (synthetic)" if group.synthetic else ""
        print(f"  GROUP: {group.name}{label} color={group.color} columns={len(group.columns)}")
        for name in group.columns:
            column = schema.column(name)
            if column is None:
                continue
            if column.is_choice:
                print(f"    {name}: choice[{column.source.value}] options={list(column.options)}")
            else:
                print(f"    {name}: text")
    if session.auxiliary is not None:
        print(f"  AUXILIARY: {list(session.auxiliary)}")

    preview = [r.display() for r in session.rows[: max(rows, 0)]]
    if not preview:
        print("  (no data rows)")
        return
    df = pd.DataFrame(preview, index=[r.row_number for r in session.rows[: len(preview)]])
    df.index.name = "row"
    with pd.option_context("display.max_columns", None, "display.width", 200):
        print(df.to_string())


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # NOTE: [] が渡された場合に sys.argv が混入しないよう None のときだけ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)

    try:
        layout = load_config(resolve_config_path(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        edits = _parse_assignments(args.sets)
        aux_edits = _parse_assignments(args.aux_sets)
    except ValueError as e:
        logger.error(f"arguments: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    session = EditSession(layout, resolve_output_dir(args.output_dir), error_log=error_log)
    path: Path = args.file
    logger.info(f"Loading workbook: {path}")

    load = session.load_file(path)
    save: SaveResult | None = None
    code = EXIT_SUCCESS

    if not load.success:
        code = EXIT_FATAL
    elif args.inspect_data:
        _inspect_data(session, args.rows)
    elif edits or aux_edits:
        if not session.select_row(args.row - 1):
            logger.error(f"row {args.row} out of range (rows: {len(session.rows)})")
            code = EXIT_FATAL
        else:
            for name, value in edits.items():
                if not session.set_field(name, value):
                    logger.warning(f"field '{name}' is read only, edit ignored")
            save = session.save(aux_edits or None)
            if save.success:
                logger.info(f"saved row {args.row} -> {save.path}")
            else:
                code = EXIT_SAVE_FAILED

    written = error_log.flush()
    if written is not None:
        logger.info(f"error log written: {written}")

    # log_summary が "SUMMARY " を付けるので除いて渡す
    summary_line = render_summary_line(path.name, load, save)
    log_summary(summary_line[len("SUMMARY "):])
    return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
