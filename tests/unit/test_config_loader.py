from __future__ import annotations

from pathlib import Path

import pytest

from sku_import.config.loader import (
    ConfigError,
    DEFAULT_CONFIG_PATH,
    load_config,
    resolve_config_path,
)
from sku_import.models import DivisionCsvType, FormatLocks, ImportLevel


def test_load_config_applies_defaults(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.source_directory == "./data"
    assert cfg.output_directory == "./output"
    assert cfg.organization.import_level is ImportLevel.DIVISION
    assert cfg.organization.division_csv_type is DivisionCsvType.WITHOUT_DIVISION_COLUMN
    assert cfg.division_files == {"north.csv": "North", "south.csv": "South"}
    assert cfg.date_role_threshold == 0.5
    assert cfg.large_file_threshold == 5 * 1024 * 1024
    assert cfg.confirm_replace is False
    assert cfg.locks == FormatLocks()


def test_explicit_formats_are_locked(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text(
        """source_directory: ./data
organization: {}
formats:
  separator: ";"
  number_format: "1.234,56"
date_role_threshold: 0.8
""",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.formats.separator == ";"
    assert cfg.formats.number_format == "1.234,56"
    assert cfg.formats.date_format == "dd/mm/yyyy"
    assert cfg.locks == FormatLocks(separator=True, number_format=True)
    assert cfg.date_role_threshold == 0.8


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "nope.yml")


def test_invalid_yaml(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("source_directory: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(path)


def test_non_mapping_root(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_resolve_config_path(monkeypatch):
    monkeypatch.delenv("SKU_IMPORT_CONFIG", raising=False)
    assert resolve_config_path() == DEFAULT_CONFIG_PATH
    monkeypatch.setenv("SKU_IMPORT_CONFIG", "/etc/sku/import.yml")
    assert resolve_config_path() == Path("/etc/sku/import.yml")
    assert resolve_config_path("local.yml") == Path("local.yml")
