from sql_exporter.collector.connection import Connection, ConnectionIdentity
from sql_exporter.collector.query import Query
from sql_exporter.job import Job
from sql_exporter.models.metric_models import Descriptor, Sample

__all__ = ["Connection", "ConnectionIdentity", "Descriptor", "Job", "Query", "Sample"]
