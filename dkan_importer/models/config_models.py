from __future__ import annotations

from dataclasses import dataclass

"""Config dataclasses for the DKAN importer.

These are the resolved settings after merging CLI flags, environment variables,
the YAML config file and defaults (in that order of precedence). The loader in
``dkan_importer.config.loader`` only produces the YAML layer.
"""

__all__ = [
    "ImporterConfig",
    "DEFAULT_SHEET_NAME",
    "DEFAULT_ERRORS_LOG",
]

DEFAULT_SHEET_NAME = "Sheet1"
DEFAULT_ERRORS_LOG = "errors.log"


@dataclass(frozen=True)
class ImporterConfig:
    """Root configuration object for one import run."""
    base_url: str | None = None  # DKAN サイト (https のみ)
    data_dictionary_id: str | None = None
    dataset_id: str | None = None
    sheet_name: str = DEFAULT_SHEET_NAME
    username: str | None = None
    password: str | None = None  # YAML には置かない (env / prompt のみ)
    errors_log: str = DEFAULT_ERRORS_LOG
    output_directory: str = "."
    timeout_seconds: float = 30
    keep_csv: bool = False
