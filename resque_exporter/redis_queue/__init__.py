from .collector import ResqueCollector
from .queue_metrics import HttpMetrics, MetricKind, Sample, ScrapeOutcome, register_build_info
from .redis_client import ResqueRedis, parse_redis_url
