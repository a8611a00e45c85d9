from __future__ import annotations

import re
from typing import Iterable

from sql_exporter import settings
from sql_exporter.models.metric_models import COLUMN_LABEL, IDENTITY_LABELS, JOB_LABEL, Descriptor
from sql_exporter.utils.exceptions import ConfigError

METRIC_NAME_RE = re.compile(r"[^a-zA-Z0-9_:]")


def metric_name(query_name: str) -> str:
    return METRIC_NAME_RE.sub("", f"{settings.METRIC_PREFIX}{query_name}")


def is_value_column(column: str) -> bool:
    return column.startswith(settings.VALUE_COLUMN_PREFIX)


def split_columns(columns: Iterable[str]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Partition column names into (value columns, label columns).

    Both are returned sorted so the order never depends on how the driver
    iterates the result set.
    """
    value_columns: list[str] = []
    label_columns: list[str] = []
    for column in columns:
        (value_columns if is_value_column(column) else label_columns).append(column)
    return tuple(sorted(value_columns)), tuple(sorted(label_columns))


def build_descriptor(
    query_name: str,
    help: str,
    static_labels: Iterable[str],
    columns: Iterable[str],
    job: str,
) -> Descriptor:
    static_labels = tuple(static_labels)
    _, label_columns = split_columns(columns)

    reserved = set(IDENTITY_LABELS) | {COLUMN_LABEL, JOB_LABEL}
    clashes = sorted(reserved.intersection(static_labels))
    if clashes:
        raise ConfigError(f"Query '{query_name}' declares static labels that shadow reserved labels: {clashes}")

    reserved |= set(static_labels)
    clashes = sorted(reserved.intersection(label_columns))
    if clashes:
        raise ConfigError(f"Query '{query_name}' returns columns that shadow reserved labels: {clashes}")

    return Descriptor(
        name=metric_name(query_name),
        help=help,
        static_labels=static_labels,
        label_columns=label_columns,
        job=job,
    )
