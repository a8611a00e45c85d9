from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from sql_exporter import settings
from sql_exporter.models.metric_models import COLUMN_LABEL, IDENTITY_LABELS, JOB_LABEL
from sql_exporter.utils.exceptions import ConfigError

RESERVED_LABELS = frozenset(IDENTITY_LABELS + (COLUMN_LABEL, JOB_LABEL))


class QueryConfig(BaseModel):
    """One SQL query exported as a gauge family.

    Example::

        QueryConfig(
            name="replication_lag",
            help="Replication lag per replica",
            labels={"team": "dba"},
            query="SELECT client_addr, lag AS metric_lag FROM replicas",
        )
    """

    name: str
    query: str = ""
    help: str = ""
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("labels")
    @classmethod
    def validate_labels(cls, labels: dict[str, str]) -> dict[str, str]:
        clashes = sorted(RESERVED_LABELS.intersection(labels))
        if clashes:
            raise ValueError(f"Static labels may not use reserved names: {clashes}")
        return labels


class JobConfig(BaseModel):
    name: str
    interval: float = Field(default=settings.DEFAULT_INTERVAL, gt=0)
    connections: list[str] = Field(default_factory=list)
    queries: list[QueryConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_queries(self):
        names = [q.name for q in self.queries]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Job '{self.name}' defines duplicate queries: {duplicates}")
        return self


class ExporterConfig(BaseModel):
    jobs: list[JobConfig] = Field(default_factory=list)


def load_config(config_path: str | Path) -> ExporterConfig:
    """Load job definitions from a YAML file.

    Example YAML format::

        jobs:
          - name: primary
            interval: 30
            connections:
              - postgresql://exporter@db-1:5432/app
            queries:
              - name: table_rows
                help: Estimated rows per table
                labels:
                  team: dba
                query: |
                  SELECT relname, n_live_tup AS metric_rows FROM pg_stat_user_tables
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {config_path} is not valid YAML: {exc}") from exc

    try:
        return ExporterConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Config file {config_path} is invalid: {exc}") from exc
