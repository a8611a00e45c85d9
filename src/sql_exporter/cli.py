"""Command line entry point: load jobs, serve /metrics, scrape forever."""

from __future__ import annotations

import asyncio
import sys

import click
from loguru import logger
from prometheus_client import start_http_server

from sql_exporter import settings
from sql_exporter.job import Job
from sql_exporter.models.config_models import ExporterConfig, load_config
from sql_exporter.telemetry.collector import QueryCollector
from sql_exporter.telemetry.metric_registry import EXPORTER_REGISTRY
from sql_exporter.utils.exceptions import ConfigError


def setup_logging(level: str = settings.LOG_LEVEL, json: bool = settings.LOG_JSON) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), serialize=json)


def build_jobs(config: ExporterConfig) -> list[Job]:
    return [Job.from_config(job_config) for job_config in config.jobs]


async def serve(jobs: list[Job]) -> None:
    for job in jobs:
        await job.init()
    for job in jobs:
        await job.start()
    try:
        await asyncio.Event().wait()
    finally:
        for job in jobs:
            await job.stop()
            job.close()


@click.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    default=settings.CONFIG_FILE,
    show_default=True,
    type=click.Path(dir_okay=False),
    help="Path to the YAML job configuration.",
)
@click.option("--listen-address", default=settings.LISTEN_ADDRESS, show_default=True)
@click.option("--port", default=settings.LISTEN_PORT, show_default=True, type=int)
@click.option("--log-level", default=settings.LOG_LEVEL, show_default=True)
@click.option("--log-json/--no-log-json", default=settings.LOG_JSON, show_default=True)
def cli(config_path: str, listen_address: str, port: int, log_level: str, log_json: bool) -> None:
    """Export SQL query results as Prometheus gauges."""
    setup_logging(level=log_level, json=log_json)

    try:
        config = load_config(config_path)
        jobs = build_jobs(config)
    except ConfigError as e:
        logger.error(f"Failed to load configuration: {e}")
        raise SystemExit(1) from e

    collector = QueryCollector()
    for job in jobs:
        collector.add_queries(job.queries)
    EXPORTER_REGISTRY.register(collector)

    start_http_server(port, addr=listen_address, registry=EXPORTER_REGISTRY)
    logger.info(f"Serving metrics on {listen_address}:{port} for {len(jobs)} job(s)")

    try:
        asyncio.run(serve(jobs))
    except KeyboardInterrupt:
        logger.info("Shutting down")
