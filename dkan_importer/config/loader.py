from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import DEFAULT_ERRORS_LOG, DEFAULT_SHEET_NAME, ImporterConfig

"""Config loader.

Responsibilities:
- Load the optional YAML config (default ``config/importer.yml``)
- Validate it against the bundled JSON schema (``config_schema.json``)
- Merge CLI overrides > environment (``DKAN_*``) > YAML > defaults
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config_file",
    "resolve_config",
]

DEFAULT_CONFIG_PATH = Path("config/importer.yml")
SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

# 環境変数 -> 設定キー
ENV_KEYS = {
    "DKAN_BASE_URL": "base_url",
    "DKAN_USERNAME": "username",
    "DKAN_PASSWORD": "password",
}


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the data violates it
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


def load_config_file(path: Path) -> dict[str, Any]:
    """Load and validate the YAML layer.

    Raises:
        ConfigError: file missing, invalid YAML, or schema violation
    """
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)
    return data


def resolve_config(
    path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ImporterConfig:
    """Build the effective ImporterConfig.

    ``path`` is optional: when None the default path is used if it exists,
    an explicitly given path must exist. ``overrides`` holds CLI values;
    None entries are ignored.
    """
    if path is None:
        data = load_config_file(DEFAULT_CONFIG_PATH) if DEFAULT_CONFIG_PATH.exists() else {}
    else:
        data = load_config_file(path)

    env = os.environ if environ is None else environ
    merged: dict[str, Any] = dict(data)
    for env_name, key in ENV_KEYS.items():
        value = env.get(env_name)
        if value:
            merged[key] = value
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    base_url = merged.get("base_url")
    if base_url is not None and not str(base_url).startswith("https://"):
        raise ConfigError(f"base url must use https: {base_url}")

    return ImporterConfig(
        base_url=str(base_url).rstrip("/") if base_url else None,
        data_dictionary_id=merged.get("data_dictionary_id"),
        dataset_id=merged.get("dataset_id"),
        sheet_name=merged.get("sheet_name") or DEFAULT_SHEET_NAME,  # 既定 Sheet1
        username=merged.get("username"),
        password=merged.get("password"),
        errors_log=merged.get("errors_log") or DEFAULT_ERRORS_LOG,
        output_directory=merged.get("output_directory") or ".",
        timeout_seconds=merged.get("timeout_seconds", 30),
        keep_csv=bool(merged.get("keep_csv", False)),
    )
