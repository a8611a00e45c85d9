"""Query definition: schema discovery, scraping and the per-connection sample cache."""

from __future__ import annotations

import threading
from typing import Any, Mapping

from loguru import logger

from sql_exporter.collector.connection import ConnectionIdentity, QueryExecutor
from sql_exporter.collector.descriptor import build_descriptor, split_columns
from sql_exporter.collector.row_converter import convert_row, decode_row
from sql_exporter.models.config_models import QueryConfig
from sql_exporter.models.metric_models import Descriptor, Sample
from sql_exporter.utils.exceptions import (
    ConfigError,
    EmptyResultError,
    ExecutionError,
    RowError,
    SqlExporterError,
    ZeroRowsError,
)


class Query:
    """A single SQL query exported as one gauge family.

    The descriptor is built once by ``set_desc`` and shared by every
    connection. Samples are cached per connection and replaced wholesale by
    ``run``; readers go through ``samples()`` which takes the same lock.
    """

    def __init__(self, name: str, query: str, help: str = "", labels: Mapping[str, str] | None = None):
        self.name = name
        self.query = query
        self.help = help
        self.labels: dict[str, str] = dict(labels or {})

        self._desc: Descriptor | None = None
        self._lock = threading.Lock()
        self._samples: dict[ConnectionIdentity, tuple[Sample, ...]] = {}

    @classmethod
    def from_config(cls, config: QueryConfig) -> Query:
        return cls(name=config.name, query=config.query, help=config.help, labels=config.labels)

    @property
    def descriptor(self) -> Descriptor | None:
        return self._desc

    def set_desc(self, conn: QueryExecutor | None, job_name: str) -> Descriptor:
        """Execute the query once and build the descriptor from the first row's columns."""
        rows = self._execute(conn)

        for raw_row in rows:
            try:
                row = decode_row(raw_row)
            except RowError as e:
                logger.warning(f"Failed to scan row for query '{self.name}' on {conn.identity}: {e}")
                continue

            desc = build_descriptor(
                query_name=self.name,
                help=self.help,
                static_labels=self.labels.keys(),
                columns=row.keys(),
                job=job_name,
            )
            value_columns, _ = split_columns(row)
            if not value_columns:
                logger.warning(
                    f"Query '{self.name}' returned no columns prefixed 'metric_', every scrape will be empty"
                )
            self._desc = desc
            logger.debug(f"Built descriptor {desc.name} with labels {list(desc.label_names)}")
            return desc

        raise EmptyResultError(f"Query '{self.name}' returned zero rows, cannot infer its columns")

    def run(self, conn: QueryExecutor | None) -> int:
        """Scrape the query on ``conn`` and replace that connection's cached samples.

        Returns the number of samples now cached for the connection.
        """
        if self._desc is None:
            raise ConfigError(f"Metrics descriptor for query '{self.name}' is not built")
        rows = self._execute(conn)
        identity = conn.identity

        samples: list[Sample] = []
        updated = 0
        for raw_row in rows:
            try:
                row = decode_row(raw_row)
                conversion = convert_row(self._desc, self.labels, identity, row)
            except RowError as e:
                logger.warning(
                    f"Failed to update metrics for query '{self.name}': {e} (host={identity.host}, db={identity.database})"
                )
                continue

            for skip in conversion.skipped:
                logger.warning(
                    f"Failed to update metric for query '{self.name}' value {skip.column}: {skip.error} "
                    f"(host={identity.host}, db={identity.database})"
                )
            if conversion.samples:
                samples.extend(conversion.samples)
                updated += 1

        if updated < 1:
            raise ZeroRowsError(f"Query '{self.name}' produced no usable rows on {identity}")

        with self._lock:
            self._samples[identity] = tuple(samples)
        return len(samples)

    def samples(self, conn: QueryExecutor | ConnectionIdentity | None = None) -> tuple[Sample, ...]:
        """Current cached samples for one connection, or for all of them."""
        with self._lock:
            if conn is None:
                return tuple(s for cached in self._samples.values() for s in cached)
            return self._samples.get(_identity_of(conn), ())

    def cached_connections(self) -> list[ConnectionIdentity]:
        with self._lock:
            return list(self._samples)

    def forget(self, conn: QueryExecutor | ConnectionIdentity) -> None:
        with self._lock:
            self._samples.pop(_identity_of(conn), None)

    def _execute(self, conn: QueryExecutor | None) -> list[Any]:
        if not self.query:
            raise ConfigError(f"Query '{self.name}' is empty")
        if conn is None or getattr(conn, "identity", None) is None:
            raise ConfigError("db connection not initialized")
        try:
            return list(conn.query(self.query))
        except SqlExporterError:
            raise
        except Exception as exc:
            raise ExecutionError(f"Query '{self.name}' failed on {conn.identity}: {exc}") from exc

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


def _identity_of(conn: QueryExecutor | ConnectionIdentity) -> ConnectionIdentity:
    if isinstance(conn, ConnectionIdentity):
        return conn
    return conn.identity
