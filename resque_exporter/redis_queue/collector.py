import logging
import threading
import time
from typing import Iterator, List

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from resque_exporter.constants import LEGACY_FAILED_QUEUE
from resque_exporter.errors import BackendError

from .queue_metrics import (
    DESCRIPTORS,
    FAILED_JOB_EXECUTIONS,
    FAILED_SCRAPES,
    JOB_EXECUTIONS,
    JOBS_IN_FAILED_QUEUE,
    JOBS_IN_QUEUE,
    SCRAPE_DURATION,
    SCRAPES,
    UP,
    WORKERS,
    WORKING_WORKERS,
    MetricDesc,
    MetricKind,
    Sample,
    ScrapeOutcome,
)
from .redis_client import ResqueRedis

logger = logging.getLogger("resque_exporter")


def _family(desc: MetricDesc) -> Metric:
    if desc.kind is MetricKind.counter:
        return CounterMetricFamily(desc.full_name, desc.documentation, labels=desc.labels)
    return GaugeMetricFamily(desc.full_name, desc.documentation, labels=desc.labels)


class ResqueCollector(Collector):
    """
    Prometheus collector for one Resque deployment.

    Every collect() runs a full scrape of the Redis keys. A Redis failure
    aborts the rest of the scrape, but up=0, the scrape duration and the
    scrape counters are still exposed.
    """

    def __init__(self, redis: ResqueRedis):
        self.redis = redis
        self._lock = threading.Lock()
        self._scrapes = 0
        self._failed_scrapes = 0

    @property
    def scrapes_total(self) -> int:
        with self._lock:
            return self._scrapes

    @property
    def failed_scrapes_total(self) -> int:
        with self._lock:
            return self._failed_scrapes

    def run_scrape(self) -> ScrapeOutcome:
        with self._lock:
            self._scrapes += 1

        samples: List[Sample] = []
        error = None
        start = time.perf_counter()
        try:
            self._scrape(samples)
        except BackendError as e:
            error = e
            with self._lock:
                self._failed_scrapes += 1
            logger.error("Scrape of %s failed: %s", self.redis.namespace, e)

        duration = time.perf_counter() - start
        samples.append(Sample.of(SCRAPE_DURATION, duration))
        samples.append(Sample.of(UP, 0 if error else 1))

        with self._lock:
            scrapes, failed_scrapes = self._scrapes, self._failed_scrapes
        samples.append(Sample.of(FAILED_SCRAPES, failed_scrapes))
        samples.append(Sample.of(SCRAPES, scrapes))

        return ScrapeOutcome(success=error is None, duration=duration, samples=samples, error=error)

    def _scrape(self, samples: List[Sample]) -> None:
        r = self.redis
        keys = r.keys

        samples.append(Sample.of(JOB_EXECUTIONS, r.get_float(keys.processed_stat)))
        samples.append(Sample.of(FAILED_JOB_EXECUTIONS, r.get_float(keys.failed_stat)))

        for queue in r.smembers(keys.queues_set):
            samples.append(Sample.of(JOBS_IN_QUEUE, r.llen(keys.queue_prefix, queue), queue))

        failed_queues = r.smembers(keys.failed_queues_set)
        if not failed_queues and r.exists(LEGACY_FAILED_QUEUE):
            failed_queues = [LEGACY_FAILED_QUEUE]

        # Failed queue names are full keys under the namespace
        for queue in failed_queues:
            samples.append(Sample.of(JOBS_IN_FAILED_QUEUE, r.llen(queue), queue))

        workers = r.smembers(keys.workers_set)
        samples.append(Sample.of(WORKERS, len(workers)))

        working = sum(1 for worker in workers if r.exists(keys.worker_prefix, worker))
        samples.append(Sample.of(WORKING_WORKERS, working))

    def collect(self) -> Iterator[Metric]:
        outcome = self.run_scrape()
        yield from self.to_families(outcome.samples)

    def describe(self) -> Iterator[Metric]:
        for desc in DESCRIPTORS:
            yield _family(desc)

    @staticmethod
    def to_families(samples: List[Sample]) -> Iterator[Metric]:
        """Group samples into metric families, skipping metrics without samples."""
        by_name = {}
        for s in samples:
            by_name.setdefault(s.name, []).append(s)

        for desc in DESCRIPTORS:
            group = by_name.get(desc.name)
            if not group:
                continue
            family = _family(desc)
            for s in group:
                family.add_metric([v for _, v in s.labels], s.value)
            yield family
