from __future__ import annotations

import argparse
import getpass
import json
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from dkan_importer.config.loader import ConfigError, resolve_config
from dkan_importer.logging.error_log import ErrorLogBuffer
from dkan_importer.logging.init import enable_debug, log_summary, setup_logging
from dkan_importer.models.config_models import ImporterConfig
from dkan_importer.models.error_record import PROCESSING_ERROR, ErrorRecord
from dkan_importer.remote.client import DkanClient, RemoteApiError, generate_unique_filename
from dkan_importer.services.dictionary import DictionaryError
from dkan_importer.services.export import export_rows, write_csv
from dkan_importer.services.orchestrator import ProcessingError, run_validation
from dkan_importer.services.summary import render_summary_body

"""CLI application.

Flow:
- load .env, resolve config (CLI > env > YAML > defaults)
- obtain the data dictionary (DKAN metastore, or a local JSON file)
- validate the sheet; failures go to the errors log
- export CSV; unless validate-only / offline: upload, attach as dataset
  distribution, delete the replaced remote file, remove the local CSV
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_VALIDATION_FAILURE = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (values override the process environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="dkan-importer",
        description="Validate an Excel sheet against a DKAN data dictionary and publish it as CSV",
    )
    p.add_argument("--base-url", help="DKAN site URL (https only)")
    p.add_argument("--excel-file", required=True, type=Path, help="Excel file to validate")
    p.add_argument("--data-dictionary-id", help="Identifier of the DKAN data dictionary")
    p.add_argument("--dictionary-file", type=Path, help="Local data dictionary JSON (offline validation)")
    p.add_argument("--sheet-name", help="Sheet to validate (default: Sheet1)")
    p.add_argument("--username", help="Username for the DKAN API")
    p.add_argument("--password", help="Password for the DKAN API (prompted when omitted)")
    p.add_argument("--dataset-id", help="Dataset receiving the CSV distribution")
    p.add_argument("--config", type=Path, help="YAML config file (default: config/importer.yml)")
    p.add_argument("--validate-only", action="store_true", help="Validate and export, do not upload")
    p.add_argument("--output", type=Path, help="CSV output path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _load_dictionary_file(path: Path) -> dict[str, Any]:
    """Read a local dictionary: either ``{title, fields}`` or a metastore item ``{identifier, data}``."""
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ProcessingError(f"cannot read dictionary file {path}: {e}") from e
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"]
    if not isinstance(payload, dict):
        raise ProcessingError(f"dictionary file {path} must contain a JSON object")
    return payload


def _csv_path(args: argparse.Namespace, cfg: ImporterConfig) -> Path:
    if args.output is not None:
        return args.output
    dictionary_id = cfg.data_dictionary_id or (args.dictionary_file.stem if args.dictionary_file else "dictionary")
    name = generate_unique_filename(cfg.dataset_id or "dataset", dictionary_id)
    return Path(cfg.output_directory) / name


def _publish(client: DkanClient, cfg: ImporterConfig, csv_path: Path, dictionary_url: str) -> None:
    file_url = client.upload_csv(csv_path)
    previous = client.add_distribution(cfg.dataset_id or "", csv_path.name, file_url, dictionary_url)
    if previous is not None:
        client.delete_remote_file(previous)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む (テストで [] を渡すケース)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        enable_debug()

    overrides = {
        "base_url": args.base_url,
        "data_dictionary_id": args.data_dictionary_id,
        "dataset_id": args.dataset_id,
        "sheet_name": args.sheet_name,
        "username": args.username,
        "password": args.password,
    }
    try:
        cfg = resolve_config(args.config, overrides=overrides)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    offline = args.dictionary_file is not None
    publish = not (offline or args.validate_only)
    if not offline and (cfg.base_url is None or cfg.data_dictionary_id is None):
        logger.error("config: base url and data dictionary id are required (or use --dictionary-file)")
        return EXIT_FATAL
    if publish and (cfg.dataset_id is None or cfg.username is None):
        logger.error("config: dataset id and username are required to publish (or use --validate-only)")
        return EXIT_FATAL

    password = cfg.password
    if publish and password is None:
        password = getpass.getpass("Password: ")

    error_log = ErrorLogBuffer(cfg.errors_log)
    client: DkanClient | None = None
    dictionary_url = ""
    try:
        if offline:
            root = _load_dictionary_file(args.dictionary_file)
        else:
            client = DkanClient(
                cfg.base_url or "",
                cfg.username,
                password,
                timeout=cfg.timeout_seconds,
            )
            dictionary = client.fetch_data_dictionary(cfg.data_dictionary_id or "")
            root = dictionary.raw
            dictionary_url = dictionary.url or client.dictionary_url(dictionary.identifier)
        result = run_validation(root, args.excel_file, cfg.sheet_name, error_log)
    except (ProcessingError, RemoteApiError, DictionaryError) as e:
        if not isinstance(e, ProcessingError):
            error_log.append(ErrorRecord.create(PROCESSING_ERROR, str(e)))
        error_log.flush()
        logger.error(f"processing: {e}")
        logger.error(f"Check {cfg.errors_log} for details.")
        return EXIT_FATAL

    summary_content = render_summary_body(result)
    if not result.is_valid:
        error_log.flush()
        logger.error(f"Validation failed with {result.invalid_rows} invalid rows. Check {cfg.errors_log} for details.")
        log_summary(summary_content)
        return EXIT_VALIDATION_FAILURE

    logger.info("Validation completed!")
    csv_path = write_csv(
        export_rows(result.rows, result.headers, result.schema.properties, result.header_mapping),
        _csv_path(args, cfg),
    )
    logger.info(f"CSV file created: {csv_path}")

    if publish and client is not None:
        try:
            _publish(client, cfg, csv_path, dictionary_url)
        except RemoteApiError as e:
            error_log.append(ErrorRecord.create(PROCESSING_ERROR, str(e)))
            error_log.flush()
            logger.error(f"publish: {e}")
            return EXIT_FATAL
        if not cfg.keep_csv and args.output is None:
            csv_path.unlink()

    log_summary(summary_content)
    return EXIT_SUCCESS_ALL
