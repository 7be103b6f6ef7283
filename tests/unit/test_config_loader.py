from __future__ import annotations

from pathlib import Path

import pytest

from logsheet.config.loader import (
    ConfigError,
    load_config,
    load_env_file,
    resolve_config_path,
    resolve_output_dir,
)
from logsheet.models.layout_config import StopRule

"""Layout config loader tests."""


def test_bundled_layout_loads():
    cfg = load_config()
    assert cfg.primary_sheet.name == "GEOLOGY"
    assert (cfg.primary_sheet.group_row, cfg.primary_sheet.column_row, cfg.primary_sheet.data_start_row) == (3, 4, 5)
    assert cfg.reference_sheet == "DATA"
    assert cfg.auxiliary_sheet.name == "COLLAR"
    assert cfg.limits.max_rows == 10000
    assert ".xlsm" in cfg.limits.accepted_types
    assert cfg.fixed_choices_for("sample_this") == ("Yes", "No")


def test_reference_list_priority_exact_over_contains():
    cfg = load_config()
    assert cfg.reference_list_for("Min Zone").name == "min_zone"
    assert cfg.reference_list_for("Oxide Zone").name == "zone_codes"
    assert cfg.reference_list_for("Lith1 Code").stop_at is StopRule.BOLD
    assert cfg.reference_list_for("Comments") is None


def test_forced_choice_matching():
    cfg = load_config()
    assert cfg.is_forced_choice("Rock   Strength")
    assert cfg.is_forced_choice("Upper Zone")
    assert not cfg.is_forced_choice("Comments")


def test_minimal_config_defaults(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.auxiliary_sheet is None
    assert cfg.synthetic_groups == ()
    assert cfg.limits.max_file_bytes == 20 * 1024 * 1024
    assert cfg.is_forced_choice("Colour")


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(temp_workdir / "nope.yml")


def test_invalid_yaml(temp_workdir: Path):
    p = temp_workdir / "config" / "bad.yml"
    p.write_text("primary_sheet: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(p)


def test_schema_violation(temp_workdir: Path):
    p = temp_workdir / "config" / "bad.yml"
    p.write_text("reference_sheet: DATA\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(p)


def test_data_row_must_follow_column_row(temp_workdir: Path, sample_layout_yaml: str):
    p = temp_workdir / "config" / "bad.yml"
    p.write_text(sample_layout_yaml.replace("data_start_row: 5", "data_start_row: 4"), encoding="utf-8")
    with pytest.raises(ConfigError, match="data_start_row"):
        load_config(p)


def test_reference_list_range_order(temp_workdir: Path, sample_layout_yaml: str):
    p = temp_workdir / "config" / "bad.yml"
    p.write_text(
        sample_layout_yaml + "reference_lists:\n  - {name: r, column: A, first_row: 9, last_row: 2}\n",
        encoding="utf-8",
    )
    with pytest.raises(ConfigError, match="ends before it starts"):
        load_config(p)


class TestEnvResolution:
    def test_config_path_priority(self, monkeypatch):
        monkeypatch.setenv("LOGSHEET_CONFIG", "/env/layout.yml")
        assert resolve_config_path("cli.yml") == Path("cli.yml")
        assert resolve_config_path(None) == Path("/env/layout.yml")
        monkeypatch.delenv("LOGSHEET_CONFIG")
        assert resolve_config_path(None) is None

    def test_output_dir_priority(self, monkeypatch):
        monkeypatch.setenv("LOGSHEET_OUTPUT_DIR", "/env/out")
        assert resolve_output_dir("cli_out") == Path("cli_out")
        assert resolve_output_dir(None) == Path("/env/out")
        monkeypatch.delenv("LOGSHEET_OUTPUT_DIR")
        assert resolve_output_dir(None) == Path.home() / "Downloads"

    def test_env_file_overrides_process_env(self, temp_workdir: Path, monkeypatch):
        monkeypatch.setenv("LOGSHEET_OUTPUT_DIR", "/from/process")
        env = temp_workdir / ".env"
        env.write_text("LOGSHEET_OUTPUT_DIR=/from/dotenv\n", encoding="utf-8")
        assert load_env_file(env) is True
        assert resolve_output_dir(None) == Path("/from/dotenv")

    def test_missing_env_file(self, temp_workdir: Path):
        assert load_env_file(temp_workdir / ".env") is False
