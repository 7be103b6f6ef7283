from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import load_dotenv
from jsonschema.exceptions import ValidationError

from ..models.layout_config import (
    AuxiliaryLayout,
    ColumnMatcher,
    LayoutConfig,
    ReferenceList,
    SheetLayout,
    StopRule,
    SyntheticField,
    SyntheticGroup,
    WorkbookLimits,
    collapse_name,
)

"""Layout config loader.

Responsibilities:
- Load the YAML layout (bundled `layout.yml` when no path is given)
- Validate against `layout_schema.json`
- Apply defaults and build frozen `LayoutConfig`
- Resolve environment overrides (`.env` first, then the process environment)
"""

__all__ = [
    "ConfigError",
    "DEFAULT_LAYOUT_PATH",
    "SCHEMA_PATH",
    "load_config",
    "load_env_file",
    "resolve_config_path",
    "resolve_output_dir",
]

_config_dir = Path(__file__).parent
DEFAULT_LAYOUT_PATH = _config_dir / "layout.yml"
SCHEMA_PATH = _config_dir / "layout_schema.json"

ENV_CONFIG = "LOGSHEET_CONFIG"
ENV_OUTPUT_DIR = "LOGSHEET_OUTPUT_DIR"

DEFAULT_ACCEPTED_TYPES = {
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xlsm": "application/vnd.ms-excel.sheet.macroEnabled.12",
}
DEFAULT_GROUP_COLOR = "FFFFFF"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate layout data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not JSON, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _matcher(raw: dict[str, Any] | None) -> ColumnMatcher:
    raw = raw or {}
    return ColumnMatcher(
        exact=frozenset(collapse_name(n) for n in raw.get("exact", [])),
        contains=tuple(collapse_name(n) for n in raw.get("contains", [])),
    )


def _build_layout(data: dict[str, Any]) -> LayoutConfig:
    wb_raw = data.get("workbook", {})
    limits = WorkbookLimits(
        max_file_bytes=wb_raw.get("max_file_bytes", WorkbookLimits.max_file_bytes),
        max_rows=wb_raw.get("max_rows", WorkbookLimits.max_rows),
        max_columns=wb_raw.get("max_columns", WorkbookLimits.max_columns),
        accepted_types={
            ext.lower(): mime
            for ext, mime in wb_raw.get("accepted_types", DEFAULT_ACCEPTED_TYPES).items()
        },
    )

    ps = data["primary_sheet"]
    if ps["data_start_row"] <= ps["column_row"]:
        raise ConfigError("config validation failed: data_start_row must be below column_row")
    primary = SheetLayout(
        name=ps["name"],
        group_row=ps["group_row"],
        column_row=ps["column_row"],
        data_start_row=ps["data_start_row"],
    )

    aux_raw = data.get("auxiliary_sheet")
    auxiliary = None
    if aux_raw:
        auxiliary = AuxiliaryLayout(
            name=aux_raw["name"],
            header_row=aux_raw.get("header_row", 1),
            data_row=aux_raw.get("data_row", 2),
        )

    groups = tuple(
        SyntheticGroup(
            name=g["name"],
            color=g.get("color", DEFAULT_GROUP_COLOR).upper(),
            fields=tuple(
                SyntheticField(
                    name=f["name"],
                    cell=f["cell"].upper() if "cell" in f else None,
                    column=f["column"].upper() if "column" in f else None,
                    default=f.get("default"),
                )
                for f in g["fields"]
            ),
        )
        for g in data.get("synthetic_groups", [])
    )

    references = []
    for r in data.get("reference_lists", []):
        if r["last_row"] < r["first_row"]:
            raise ConfigError(f"config validation failed: reference list '{r['name']}' ends before it starts")
        references.append(
            ReferenceList(
                name=r["name"],
                column=r["column"].upper(),
                first_row=r["first_row"],
                last_row=r["last_row"],
                stop_at=StopRule(r.get("stop_at", "blank")),
                targets=_matcher(r),
            )
        )

    return LayoutConfig(
        primary_sheet=primary,
        reference_sheet=data["reference_sheet"],
        limits=limits,
        synthetic_groups=groups,
        choice_columns=_matcher(data.get("choice_columns")),
        fixed_choices={k: tuple(v) for k, v in data.get("fixed_choices", {}).items()},
        reference_lists=tuple(references),
        auxiliary_sheet=auxiliary,
    )


def load_config(path: Path | None = None) -> LayoutConfig:
    if path is None:
        path = DEFAULT_LAYOUT_PATH
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)
    return _build_layout(data)


def load_env_file(path: Path, override: bool = True) -> bool:
    """Load `.env` using python-dotenv; its values take precedence over the process env."""
    if not path.exists():
        return False
    return load_dotenv(dotenv_path=path, override=override)


def resolve_config_path(cli_value: str | None) -> Path | None:
    """CLI flag > LOGSHEET_CONFIG > bundled layout (None)."""
    if cli_value:
        return Path(cli_value)
    env_value = os.getenv(ENV_CONFIG)
    if env_value:
        return Path(env_value)
    return None


def resolve_output_dir(cli_value: str | None) -> Path:
    """CLI flag > LOGSHEET_OUTPUT_DIR > ~/Downloads."""
    if cli_value:
        return Path(cli_value)
    env_value = os.getenv(ENV_OUTPUT_DIR)
    if env_value:
        return Path(env_value)
    return Path.home() / "Downloads"
