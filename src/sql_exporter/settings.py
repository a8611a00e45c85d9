import os

CONFIG_FILE = os.getenv("SQL_EXPORTER_CONFIG", "config.yml")
LISTEN_ADDRESS = os.getenv("SQL_EXPORTER_LISTEN_ADDRESS", "0.0.0.0")
LISTEN_PORT = int(os.getenv("SQL_EXPORTER_LISTEN_PORT", "9237"))

LOG_LEVEL = os.getenv("SQL_EXPORTER_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("SQL_EXPORTER_LOG_JSON", "false").lower() in ("1", "true", "yes")

# Upper bound on scrapes running in worker threads at the same time, per job
MAX_CONCURRENCY = int(os.getenv("SQL_EXPORTER_MAX_CONCURRENCY", "8"))
DEFAULT_INTERVAL = float(os.getenv("SQL_EXPORTER_DEFAULT_INTERVAL", "60"))

VALUE_COLUMN_PREFIX = "metric_"
METRIC_PREFIX = "sql_"
