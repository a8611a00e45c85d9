from __future__ import annotations

from typing import Any


class SqlExporterError(Exception):
    """Base class for every error raised by the exporter."""


class ConfigError(SqlExporterError):
    """Raised when a query or connection is not usable as configured."""


class ExecutionError(SqlExporterError):
    """Raised when the data source rejects or fails a query."""


class EmptyResultError(SqlExporterError):
    """Raised when discovery cannot infer a schema because no row came back."""


class ZeroRowsError(SqlExporterError):
    """Raised when a scrape ran but no row produced a usable sample."""


# --- Row level: logged, row skipped ---


class RowError(SqlExporterError):
    pass


class DecodeError(RowError):
    """Raised when a result row cannot be read as a column mapping."""


class NoValueColumnsError(RowError):
    """Raised when a row has no ``metric_`` prefixed column."""


class SchemaMismatchError(RowError):
    """Raised when a row's label columns differ from the descriptor's."""

    def __init__(self, expected: tuple[str, ...], actual: tuple[str, ...]):
        super().__init__(f"Row label columns {list(actual)} do not match descriptor label columns {list(expected)}")
        self.expected = expected
        self.actual = actual


# --- Column level: logged, column skipped ---


class ColumnError(SqlExporterError):
    expected: str = "value"

    def __init__(self, column: str, value: Any, reason: str | None = None):
        self.column = column
        self.value = value
        self.type_name = type(value).__name__
        message = f"Column '{column}' must be type {self.expected}, is '{self.type_name}' (val: {value!r})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class TypeCoercionError(ColumnError):
    expected = "float"


class LabelTypeError(ColumnError):
    expected = "text (string)"
