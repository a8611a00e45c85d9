"""Connection identity and a thin SQLAlchemy-backed query executor.

Pooling, retries and health checks are left to SQLAlchemy and the caller.
"""

from __future__ import annotations

from typing import Any, Iterable, NamedTuple, Protocol

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sql_exporter.utils.exceptions import ConfigError, ExecutionError


class ConnectionIdentity(NamedTuple):
    """Cache key and trailing label values for every sample of a connection."""

    driver: str
    host: str
    database: str
    user: str

    def label_values(self) -> tuple[str, str, str, str]:
        return (self.driver, self.host, self.database, self.user)

    def __str__(self) -> str:
        return f"{self.driver}://{self.user}@{self.host}/{self.database}"


class QueryExecutor(Protocol):
    identity: ConnectionIdentity

    def query(self, sql: str) -> Iterable[Any]: ...


class Connection:
    def __init__(self, url: str, engine: Engine | None = None):
        try:
            self.engine: Engine = engine or create_engine(url, pool_pre_ping=True)
        except (SQLAlchemyError, ValueError) as exc:
            raise ConfigError(f"Invalid connection url: {exc}") from exc
        except ImportError as exc:
            raise ConfigError(f"Database driver for connection url is not installed: {exc}") from exc

        parsed = self.engine.url
        host = parsed.host or ""
        # targets on one host are told apart by port
        if host and parsed.port:
            host = f"{host}:{parsed.port}"
        self.identity = ConnectionIdentity(
            driver=parsed.get_backend_name(),
            host=host,
            database=parsed.database or "",
            user=parsed.username or "",
        )

    def query(self, sql: str) -> list[Any]:
        """Execute ``sql`` and return its rows as column -> value mappings."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(sql))
                return list(result.mappings())
        except SQLAlchemyError as exc:
            raise ExecutionError(f"Query failed on {self.identity}: {exc}") from exc

    def close(self) -> None:
        logger.debug(f"Disposing engine for {self.identity}")
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.identity})"
