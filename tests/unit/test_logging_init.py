from __future__ import annotations

import io
import logging

from dkan_importer.logging.init import (
    SUMMARY_LEVEL,
    LabeledFormatter,
    enable_debug,
    get_logger,
    log_summary,
    reset_logging,
    setup_logging,
)


def test_setup_logging_configures_single_handler():
    logger = setup_logging()
    assert logger.name == "dkan_importer"
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1


def test_labeled_output(capsys):
    logger = setup_logging()
    logger.info("Processing started")
    logger.warning("Something odd")
    logger.error("Something failed")
    log_summary("rows=3 invalid_rows=0 errors=0 elapsed_sec=0.5")

    lines = capsys.readouterr().out.strip().splitlines()
    assert lines == [
        "INFO Processing started",
        "WARN Something odd",
        "ERROR Something failed",
        "SUMMARY rows=3 invalid_rows=0 errors=0 elapsed_sec=0.5",
    ]


def test_module_loggers_share_handler(capsys):
    setup_logging()
    logging.getLogger("dkan_importer.services.orchestrator").info("from a module")
    assert "INFO from a module" in capsys.readouterr().out


def test_debug_hidden_until_enabled(capsys):
    logger = setup_logging()
    logger.debug("hidden")
    enable_debug()
    logger.debug("visible")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "DEBUG visible" in out
    assert "DEBUG debug mode enabled" in out


def test_summary_level_value():
    assert SUMMARY_LEVEL == 25
    assert logging.getLevelName(SUMMARY_LEVEL) in ("SUMMARY", "Level 25")


def test_reset_logging_creates_new_configuration():
    setup_logging()
    reset_logging()
    logger = get_logger()
    assert len(logger.handlers) == 1


def test_custom_stream_and_exception_text():
    buffer = io.StringIO()
    logger = setup_logging(stream=buffer)
    try:
        raise ValueError("bad cell")
    except ValueError:
        logger.exception("conversion failed")
    text = buffer.getvalue()
    assert text.startswith("ERROR conversion failed\n")
    assert "ValueError: bad cell" in text
