"""Turn one decoded result row into gauge samples.

Every value column (``metric_`` prefix) yields one sample. Label values are
laid out positionally to match ``Descriptor.label_names``:

    static label values, driver, host, database, user, value column name,
    then each label column's value in the descriptor's (sorted) order.

Failures are confined to the smallest unit possible: a column that cannot be
coerced is recorded in ``RowConversion.skipped`` and the remaining columns
are still converted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from sql_exporter.collector.connection import ConnectionIdentity
from sql_exporter.collector.descriptor import split_columns
from sql_exporter.models.metric_models import Descriptor, Sample
from sql_exporter.utils.exceptions import (
    ColumnError,
    DecodeError,
    LabelTypeError,
    NoValueColumnsError,
    SchemaMismatchError,
    TypeCoercionError,
)


class ValueKind(Enum):
    INTEGER = "integer"
    FLOAT = "float"
    BYTES = "bytes"
    TEXT = "text"
    NULL = "null"
    UNSUPPORTED = "unsupported"


def classify(raw: Any) -> ValueKind:
    if raw is None:
        return ValueKind.NULL
    # bool is an int subclass but is not a measurement
    if isinstance(raw, bool):
        return ValueKind.UNSUPPORTED
    if isinstance(raw, int):
        return ValueKind.INTEGER
    if isinstance(raw, (float, Decimal)):
        return ValueKind.FLOAT
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return ValueKind.BYTES
    if isinstance(raw, str):
        return ValueKind.TEXT
    return ValueKind.UNSUPPORTED


def _decode_utf8(column: str, raw: Any, error_cls: type[ColumnError]) -> str:
    try:
        return bytes(raw).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise error_cls(column, raw, "not valid UTF-8") from exc


def coerce_value(column: str, raw: Any) -> float:
    kind = classify(raw)
    try:
        if kind in (ValueKind.INTEGER, ValueKind.FLOAT):
            return float(raw)
        if kind == ValueKind.BYTES:
            return float(_decode_utf8(column, raw, TypeCoercionError))
        if kind == ValueKind.TEXT:
            return float(raw)
    except (ValueError, OverflowError) as exc:
        raise TypeCoercionError(column, raw) from exc
    raise TypeCoercionError(column, raw)


def coerce_label(column: str, raw: Any) -> str:
    kind = classify(raw)
    if kind == ValueKind.TEXT:
        return raw
    if kind == ValueKind.BYTES:
        return _decode_utf8(column, raw, LabelTypeError)
    raise LabelTypeError(column, raw)


def decode_row(raw_row: Any) -> dict[str, Any]:
    """Read a driver row as a plain ``{column: value}`` dict."""
    if not isinstance(raw_row, Mapping):
        raise DecodeError(f"Row of type '{type(raw_row).__name__}' is not a column mapping")
    row = dict(raw_row)
    bad_keys = [k for k in row if not isinstance(k, str)]
    if bad_keys:
        raise DecodeError(f"Row has non-text column names: {bad_keys!r}")
    return row


@dataclass
class ColumnSkip:
    column: str
    error: ColumnError


@dataclass
class RowConversion:
    samples: list[Sample] = field(default_factory=list)
    skipped: list[ColumnSkip] = field(default_factory=list)


def convert_row(
    descriptor: Descriptor,
    static_values: Mapping[str, str],
    identity: ConnectionIdentity,
    row: Mapping[str, Any],
) -> RowConversion:
    """Convert one decoded row into one sample per value column.

    Raises:
        NoValueColumnsError: no column carries the value prefix
        SchemaMismatchError: the row's label columns differ from the descriptor's
    """
    value_columns, label_columns = split_columns(row)
    if not value_columns:
        raise NoValueColumnsError(f"Row has no value columns (columns: {sorted(row)})")
    if label_columns != descriptor.label_columns:
        raise SchemaMismatchError(expected=descriptor.label_columns, actual=label_columns)

    prefix = tuple(static_values.get(name, "") for name in descriptor.static_labels) + identity.label_values()

    label_error: LabelTypeError | None = None
    row_labels: tuple[str, ...] = ()
    try:
        row_labels = tuple(coerce_label(column, row[column]) for column in descriptor.label_columns)
    except LabelTypeError as exc:
        label_error = exc

    result = RowConversion()
    for column in value_columns:
        try:
            value = coerce_value(column, row[column])
        except TypeCoercionError as exc:
            result.skipped.append(ColumnSkip(column=column, error=exc))
            continue
        if label_error is not None:
            result.skipped.append(ColumnSkip(column=column, error=label_error))
            continue

        result.samples.append(
            Sample(
                descriptor=descriptor,
                value=value,
                label_values=prefix + (column,) + row_labels,
            )
        )
    return result
