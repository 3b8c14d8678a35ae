from dataclasses import dataclass


@dataclass(frozen=True)
class RedisKeys:
    """
    Resque key layout. Every key lives under the namespace: "<namespace>:<part>:<part>..."
    """

    namespace: str

    # Global keys
    processed_stat: str = "stat:processed"
    failed_stat: str = "stat:failed"
    queues_set: str = "queues"
    failed_queues_set: str = "failed_queues"
    workers_set: str = "workers"

    # Per-name prefixes
    queue_prefix: str = "queue"
    worker_prefix: str = "worker"

    def key(self, *parts: str) -> str:
        return ":".join((self.namespace,) + parts)
