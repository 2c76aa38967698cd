"""Command line interface (``dkan-importer`` / ``python -m dkan_importer.cli``)."""

from .app import EXIT_FATAL, EXIT_SUCCESS_ALL, EXIT_VALIDATION_FAILURE, main

__all__ = [
    "main",
    "EXIT_SUCCESS_ALL",
    "EXIT_FATAL",
    "EXIT_VALIDATION_FAILURE",
]
