"""A job runs a set of queries against a set of connections on an interval."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Iterable

from loguru import logger

from sql_exporter import settings
from sql_exporter.collector.connection import Connection, QueryExecutor
from sql_exporter.collector.query import Query
from sql_exporter.models.config_models import JobConfig
from sql_exporter.telemetry.metric_registry import CACHED_SAMPLES, SCRAPE_DURATION_SECONDS, SCRAPES_TOTAL
from sql_exporter.utils.exceptions import SqlExporterError


@dataclass
class JobRunResult:
    succeeded: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class Job:
    """Owns the queries and connections of one configured job.

    Scrapes are blocking database calls, so each (connection, query) pair runs
    in a worker thread. Pairs sharing a query only meet at that query's cache
    lock.
    """

    def __init__(
        self,
        name: str,
        queries: Iterable[Query],
        connections: Iterable[QueryExecutor],
        *,
        interval: float = settings.DEFAULT_INTERVAL,
        max_concurrency: int = settings.MAX_CONCURRENCY,
    ):
        self.name = name
        self.queries: list[Query] = list(queries)
        self.connections: list[QueryExecutor] = list(connections)
        self.interval = interval
        self._max_concurrency = max_concurrency

        self._run_task: asyncio.Task | None = None
        self._running = False

    @classmethod
    def from_config(cls, config: JobConfig, *, max_concurrency: int = settings.MAX_CONCURRENCY) -> Job:
        return cls(
            name=config.name,
            queries=[Query.from_config(q) for q in config.queries],
            connections=[Connection(url) for url in config.connections],
            interval=config.interval,
            max_concurrency=max_concurrency,
        )

    async def init(self) -> None:
        """Build descriptors for every query that does not have one yet."""
        for query in self.queries:
            if query.descriptor is None:
                await self._discover(query)

    async def _discover(self, query: Query) -> bool:
        for conn in self.connections:
            try:
                await asyncio.to_thread(query.set_desc, conn, self.name)
                logger.info(f"Job '{self.name}': discovered columns for query '{query.name}' on {conn.identity}")
                return True
            except SqlExporterError as e:
                logger.warning(f"Job '{self.name}': discovery of query '{query.name}' failed on {conn.identity}: {e}")
        return False

    async def run_once(self) -> JobRunResult:
        """Scrape every (connection, query) pair once."""
        result = JobRunResult()
        await self.init()

        sem = asyncio.Semaphore(self._max_concurrency)

        async def scrape(conn: QueryExecutor, query: Query) -> None:
            async with sem:
                await self._scrape(conn, query, result)

        pairs = [(conn, query) for query in self.queries if query.descriptor is not None for conn in self.connections]
        if pairs:
            await asyncio.gather(*[scrape(conn, query) for conn, query in pairs])

        for query in self.queries:
            CACHED_SAMPLES.labels(job=self.name, query=query.name).set(len(query.samples()))

        logger.debug(f"Job '{self.name}' run finished: {result.succeeded} ok, {result.failed} failed")
        return result

    async def _scrape(self, conn: QueryExecutor, query: Query, result: JobRunResult) -> None:
        start = time.perf_counter()
        try:
            count = await asyncio.to_thread(query.run, conn)
        except SqlExporterError as e:
            result.failed += 1
            result.errors.append(f"{query.name}@{conn.identity}: {e}")
            SCRAPES_TOTAL.labels(job=self.name, query=query.name, status="error").inc()
            logger.error(f"Job '{self.name}': query '{query.name}' failed on {conn.identity}: {e}")
            return
        finally:
            SCRAPE_DURATION_SECONDS.labels(job=self.name, query=query.name).observe(time.perf_counter() - start)

        result.succeeded += 1
        SCRAPES_TOTAL.labels(job=self.name, query=query.name, status="success").inc()
        logger.debug(f"Job '{self.name}': query '{query.name}' cached {count} samples for {conn.identity}")

    async def start(self) -> None:
        """Start the background scrape loop."""
        if self._running:
            return
        self._running = True
        self._run_task = asyncio.create_task(self._run_loop(), name=f"sql-job-{self.name}")
        logger.info(
            f"Job '{self.name}' started (interval={self.interval}s, queries={len(self.queries)}, "
            f"connections={len(self.connections)})"
        )

    async def stop(self) -> None:
        self._running = False
        if self._run_task and not self._run_task.done():
            self._run_task.cancel()
            try:
                await self._run_task
            except asyncio.CancelledError:
                pass
        logger.info(f"Job '{self.name}' stopped")

    def close(self) -> None:
        for conn in self.connections:
            close = getattr(conn, "close", None)
            if close is not None:
                close()

    # --- Background loop ---

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception(f"Error in job '{self.name}' run loop")
                await asyncio.sleep(self.interval)
