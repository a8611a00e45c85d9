from __future__ import annotations

from typing import Any

import pytest

from sql_exporter.collector.connection import ConnectionIdentity
from sql_exporter.collector.descriptor import build_descriptor


class FakeConnection:
    """In-memory stand-in for a database connection."""

    def __init__(
        self,
        rows: list[Any] | None = None,
        *,
        driver: str = "postgres",
        host: str = "db-1",
        database: str = "app",
        user: str = "exporter",
        error: Exception | None = None,
    ):
        self.identity = ConnectionIdentity(driver=driver, host=host, database=database, user=user)
        self.rows = rows or []
        self.error = error
        self.calls: list[str] = []

    def query(self, sql: str) -> list[Any]:
        self.calls.append(sql)
        if self.error is not None:
            raise self.error
        return [dict(r) if isinstance(r, dict) else r for r in self.rows]


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def descriptor():
    return build_descriptor(
        query_name="replication_lag",
        help="Replication lag per replica",
        static_labels=["team"],
        columns=["metric_x", "env", "metric_y"],
        job="primary",
    )


@pytest.fixture
def identity():
    return ConnectionIdentity(driver="postgres", host="db-1", database="app", user="exporter")
