from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from prometheus_client import CollectorRegistry, Counter, Histogram, Info

from resque_exporter.constants import METRIC_NAMESPACE
from resque_exporter.errors import BackendError


class MetricKind(str, Enum):
    counter = "counter"
    gauge = "gauge"


@dataclass(frozen=True)
class MetricDesc:
    name: str
    kind: MetricKind
    documentation: str
    labels: Tuple[str, ...] = ()

    @property
    def full_name(self) -> str:
        return f"{METRIC_NAMESPACE}_{self.name}"


FAILED_JOB_EXECUTIONS = MetricDesc(
    "failed_job_executions_total", MetricKind.counter, "Total number of failed job executions."
)
JOB_EXECUTIONS = MetricDesc("job_executions_total", MetricKind.counter, "Total number of job executions.")
JOBS_IN_FAILED_QUEUE = MetricDesc(
    "jobs_in_failed_queue", MetricKind.gauge, "Number of jobs in a failed queue.", ("queue",)
)
JOBS_IN_QUEUE = MetricDesc("jobs_in_queue", MetricKind.gauge, "Number of jobs in a queue.", ("queue",))
SCRAPE_DURATION = MetricDesc(
    "scrape_duration_seconds", MetricKind.gauge, "Time this scrape of resque metrics took."
)
UP = MetricDesc("up", MetricKind.gauge, "Whether this scrape of resque metrics was successful.")
WORKERS = MetricDesc("workers", MetricKind.gauge, "Number of workers.")
WORKING_WORKERS = MetricDesc("working_workers", MetricKind.gauge, "Number of working workers.")
FAILED_SCRAPES = MetricDesc("failed_scrapes_total", MetricKind.counter, "Total number of failed scrapes.")
SCRAPES = MetricDesc("scrapes_total", MetricKind.counter, "Total number of scrapes.")

# Exposition order
DESCRIPTORS: Tuple[MetricDesc, ...] = (
    FAILED_JOB_EXECUTIONS,
    JOB_EXECUTIONS,
    JOBS_IN_FAILED_QUEUE,
    JOBS_IN_QUEUE,
    SCRAPE_DURATION,
    UP,
    WORKERS,
    WORKING_WORKERS,
    FAILED_SCRAPES,
    SCRAPES,
)


@dataclass(frozen=True)
class Sample:
    name: str
    kind: MetricKind
    value: float
    labels: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def of(cls, desc: MetricDesc, value: float, *label_values: str) -> "Sample":
        if len(label_values) != len(desc.labels):
            raise ValueError(f"{desc.name} expects labels {desc.labels}, got {label_values}")
        return cls(desc.name, desc.kind, float(value), tuple(zip(desc.labels, label_values)))

    @property
    def label_dict(self) -> Dict[str, str]:
        return dict(self.labels)


@dataclass
class ScrapeOutcome:
    success: bool
    duration: float
    samples: List[Sample] = field(default_factory=list)
    error: Optional[BackendError] = None

    def find(self, name: str) -> List[Sample]:
        return [s for s in self.samples if s.name == name]

    def value(self, name: str, **labels: str) -> Optional[float]:
        """Value of the first sample with this name and labels, None when absent."""
        for s in self.find(name):
            if s.label_dict == labels:
                return s.value
        return None


class HttpMetrics:
    """Instrumentation of the exporter's own HTTP handlers."""

    def __init__(self, registry: CollectorRegistry):
        self.requests_total = Counter(
            "resque_exporter_http_requests_total",
            "Total HTTP requests",
            ["method", "route", "status"],
            registry=registry,
        )
        self.request_duration = Histogram(
            "resque_exporter_http_request_duration_seconds",
            "HTTP request latency (seconds)",
            ["method", "route"],
            registry=registry,
        )

    def observe(self, method: str, route: str, status: int, elapsed: float) -> None:
        self.requests_total.labels(method, route, str(status)).inc()
        self.request_duration.labels(method, route).observe(elapsed)


def register_build_info(registry: CollectorRegistry, version: str, python_version: str) -> Info:
    info = Info("resque_exporter_build", "Build information of resque_exporter.", registry=registry)
    info.info({"version": version, "python_version": python_version})
    return info
