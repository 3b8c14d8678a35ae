# Fixed prefix of every exported metric name
METRIC_NAMESPACE = "resque"

DEFAULT_REDIS_URL = "redis://localhost:6379"
DEFAULT_REDIS_NAMESPACE = "resque"
DEFAULT_REDIS_PORT = 6379

DEFAULT_LISTEN_ADDRESS = ":9447"
DEFAULT_TELEMETRY_PATH = "/metrics"

REDIS_URL_ENV = "REDIS_URL"

# Legacy single failed queue, used when the failed_queues set is empty
LEGACY_FAILED_QUEUE = "failed"
