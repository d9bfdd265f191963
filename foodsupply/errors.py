from __future__ import annotations


class InputFileError(OSError):
    """An input file is missing, unreadable or not tabular CSV."""


class SchemaError(ValueError):
    """An input table violates its column contract."""
