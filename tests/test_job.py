"""Behavioral tests for Job scheduling."""

from __future__ import annotations

import asyncio

import pytest

from sql_exporter.collector.connection import Connection
from sql_exporter.collector.query import Query
from sql_exporter.job import Job
from sql_exporter.models.config_models import JobConfig, QueryConfig
from sql_exporter.telemetry.metric_registry import EXPORTER_REGISTRY

ROWS = [{"env": "prod", "metric_x": 1, "metric_y": 2}]


def _make_job(connections, queries=None, **kwargs) -> Job:
    queries = queries or [Query(name="lag", query="SELECT 1", labels={"team": "dba"})]
    return Job(name=kwargs.pop("name", "primary"), queries=queries, connections=connections, **kwargs)


def _scrapes(job: str, query: str, status: str) -> float:
    value = EXPORTER_REGISTRY.get_sample_value(
        "sql_exporter_scrapes_total", {"job": job, "query": query, "status": status}
    )
    return value or 0.0


class TestJob:
    @pytest.mark.asyncio
    async def test_run_once_scrapes_every_connection(self, make_connection):
        conns = [make_connection(ROWS, host="db-1"), make_connection(ROWS, host="db-2")]
        job = _make_job(conns, name="every-connection")

        result = await job.run_once()

        assert result.succeeded == 2
        assert result.failed == 0
        (query,) = job.queries
        assert query.descriptor is not None
        assert {s.labels["host"] for s in query.samples()} == {"db-1", "db-2"}
        assert _scrapes("every-connection", "lag", "success") == 2.0
        assert (
            EXPORTER_REGISTRY.get_sample_value(
                "sql_exporter_cached_samples", {"job": "every-connection", "query": "lag"}
            )
            == 4.0
        )

    @pytest.mark.asyncio
    async def test_failing_connection_does_not_abort_others(self, make_connection):
        good = make_connection(ROWS, host="db-1")
        bad = make_connection(ROWS, host="db-2")
        job = _make_job([good, bad], name="partial-failure")
        await job.init()

        bad.error = RuntimeError("connection refused")
        result = await job.run_once()

        assert result.succeeded == 1
        assert result.failed == 1
        assert "connection refused" in result.errors[0]
        assert _scrapes("partial-failure", "lag", "error") == 1.0
        assert {s.labels["host"] for s in job.queries[0].samples()} == {"db-1"}

    @pytest.mark.asyncio
    async def test_discovery_falls_back_to_next_connection(self, make_connection):
        down = make_connection(host="db-1", error=RuntimeError("down"))
        up = make_connection(ROWS, host="db-2")
        job = _make_job([down, up])

        await job.init()

        assert job.queries[0].descriptor is not None
        assert len(up.calls) == 1

    @pytest.mark.asyncio
    async def test_undiscovered_query_is_retried_on_next_run(self, make_connection):
        conn = make_connection([])
        job = _make_job([conn])

        result = await job.run_once()
        assert result.succeeded == 0
        assert job.queries[0].descriptor is None

        conn.rows = ROWS
        result = await job.run_once()
        assert result.succeeded == 1

    @pytest.mark.asyncio
    async def test_start_and_stop(self, make_connection):
        conn = make_connection(ROWS)
        job = _make_job([conn], interval=0.05)

        await job.start()
        await asyncio.sleep(0.2)
        await job.stop()

        # discovery plus at least one scrape
        assert len(conn.calls) >= 2
        assert job.queries[0].samples(conn)

    def test_from_config(self):
        config = JobConfig(
            name="primary",
            interval=15,
            connections=["sqlite://"],
            queries=[QueryConfig(name="one", query="SELECT 1 AS metric_one")],
        )

        job = Job.from_config(config, max_concurrency=2)
        try:
            assert job.name == "primary"
            assert job.interval == 15
            assert [q.name for q in job.queries] == ["one"]
            assert isinstance(job.connections[0], Connection)
            assert job.connections[0].identity.driver == "sqlite"
        finally:
            job.close()
