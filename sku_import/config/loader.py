from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.format_settings import FormatLocks, FormatSettings
from ..models.org_capabilities import OrgCapabilities

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/import.yml``; ``SKU_IMPORT_CONFIG`` overrides)
- Validate it against the bundled JSON schema (unknown keys rejected)
- Apply defaults and turn explicit ``formats`` entries into locked settings
"""

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "ImportConfig",
    "resolve_config_path",
    "load_config",
]

CONFIG_ENV_VAR = "SKU_IMPORT_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).with_name("import_schema.json")

DEFAULT_OUTPUT_DIRECTORY = "./output"
DEFAULT_DATE_ROLE_THRESHOLD = 0.5
DEFAULT_LARGE_FILE_THRESHOLD = 5 * 1024 * 1024


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ImportConfig:
    source_directory: str
    organization: OrgCapabilities
    output_directory: str = DEFAULT_OUTPUT_DIRECTORY
    formats: FormatSettings = field(default_factory=FormatSettings)
    locks: FormatLocks = field(default_factory=FormatLocks)
    division_files: dict[str, str] = field(default_factory=dict)  # ファイル名 -> division 名
    date_role_threshold: float = DEFAULT_DATE_ROLE_THRESHOLD
    large_file_threshold: int = DEFAULT_LARGE_FILE_THRESHOLD
    confirm_replace: bool = False


def resolve_config_path(explicit: str | Path | None = None) -> Path:
    """CLI argument, then ``SKU_IMPORT_CONFIG``, then the default path."""
    if explicit:
        return Path(explicit)
    env = os.getenv(CONFIG_ENV_VAR)
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Raise ConfigError if the schema is unusable or ``data`` violates it."""
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        suffix = f" (at {location})" if location else ""
        raise ConfigError(f"config validation failed: {e.message}{suffix}") from e


def _formats(raw: dict[str, Any]) -> tuple[FormatSettings, FormatLocks]:
    settings = FormatSettings()
    locks = FormatLocks()
    for key in ("separator", "date_format", "number_format", "transposed"):
        if key in raw:
            settings = settings.with_changes(**{key: raw[key]})
            locks = locks.lock(key)
    return settings, locks


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    settings, locks = _formats(data.get("formats") or {})
    return ImportConfig(
        source_directory=data["source_directory"],
        organization=OrgCapabilities.from_mapping(data["organization"]),
        output_directory=data.get("output_directory", DEFAULT_OUTPUT_DIRECTORY),
        formats=settings,
        locks=locks,
        division_files=dict(data.get("division_files") or {}),
        date_role_threshold=float(data.get("date_role_threshold", DEFAULT_DATE_ROLE_THRESHOLD)),
        large_file_threshold=int(data.get("large_file_threshold", DEFAULT_LARGE_FILE_THRESHOLD)),
        confirm_replace=bool(data.get("confirm_replace", False)),
    )
