"""Tests for exposing cached samples through a prometheus registry."""

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from sql_exporter.collector.query import Query
from sql_exporter.telemetry.collector import QueryCollector


@pytest.fixture
def fresh_registry():
    return CollectorRegistry()


def _scraped_query(conn, name="replication_lag", job="primary", rows=None) -> Query:
    conn.rows = rows or [{"env": "prod", "metric_x": 3.5, "metric_y": "7"}]
    q = Query(name=name, query="SELECT 1", help="Replication lag", labels={"team": "dba"})
    q.set_desc(conn, job)
    q.run(conn)
    return q


def _labels(col, host="db-1", job="primary"):
    return {
        "team": "dba",
        "driver": "postgres",
        "host": host,
        "database": "app",
        "user": "exporter",
        "col": col,
        "env": "prod",
        "sql_job": job,
    }


def test_collect_exposes_cached_samples(fresh_registry, make_connection):
    q = _scraped_query(make_connection())
    fresh_registry.register(QueryCollector([q]))

    assert fresh_registry.get_sample_value("sql_replication_lag", _labels("metric_x")) == 3.5
    assert fresh_registry.get_sample_value("sql_replication_lag", _labels("metric_y")) == 7.0

    text = generate_latest(fresh_registry).decode()
    assert "# HELP sql_replication_lag Replication lag" in text
    assert "# TYPE sql_replication_lag gauge" in text


def test_undiscovered_query_is_left_out(fresh_registry):
    collector = QueryCollector([Query(name="pending", query="SELECT 1")])
    fresh_registry.register(collector)

    assert list(collector.collect()) == []


def test_same_metric_from_two_jobs_is_merged(fresh_registry, make_connection):
    first = _scraped_query(make_connection(host="db-1"), job="primary")
    second = _scraped_query(make_connection(host="db-2"), job="replica")
    collector = QueryCollector([first])
    collector.add_queries([second])
    fresh_registry.register(collector)

    families = list(collector.collect())
    assert len(families) == 1
    assert len(families[0].samples) == 4
    assert fresh_registry.get_sample_value("sql_replication_lag", _labels("metric_x", "db-2", "replica")) == 3.5


def test_conflicting_label_layout_is_skipped(fresh_registry, make_connection):
    first = _scraped_query(make_connection())
    second = _scraped_query(make_connection(), rows=[{"zone": "eu", "metric_x": 1}])
    collector = QueryCollector([first, second])
    fresh_registry.register(collector)

    (family,) = list(collector.collect())
    assert len(family.samples) == 2
    assert all("env" in s.labels for s in family.samples)
