"""Data dictionary driven Excel validator and DKAN importer."""

__version__ = "0.1.0"
