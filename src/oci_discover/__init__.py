"""Discover running OCI instances and write per-filter connection CSVs."""

__version__ = "0.1.0"
