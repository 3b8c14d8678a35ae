from typing import Dict, List, Set, Union

import pytest
from redis import ConnectionError as RedisConnectionError
from redis import ResponseError

from resque_exporter.redis_queue import ResqueCollector, ResqueRedis

WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


class FakeRedis:
    """
    In-memory stand-in for the four read commands the exporter uses.
    Strings, sets and lists only. Records every key touched.
    """

    def __init__(self):
        self.data: Dict[str, Union[str, bytes, Set[str], List[str]]] = {}
        self.calls: List[tuple] = []
        self.down = False
        self.closed = False

    def _check(self, cmd: str, key: str) -> None:
        self.calls.append((cmd, key))
        if self.down:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    def _typed(self, key: str, kind: type):
        value = self.data.get(key)
        if value is not None and not isinstance(value, kind):
            raise ResponseError(WRONGTYPE)
        return value

    def get(self, key):
        self._check("GET", key)
        value = self.data.get(key)
        if isinstance(value, bytes):
            return self._decode(value)
        return self._typed(key, str)

    def smembers(self, key):
        self._check("SMEMBERS", key)
        return {self._decode(m) if isinstance(m, bytes) else m for m in self._typed(key, set) or ()}

    @staticmethod
    def _decode(value: bytes) -> str:
        # Same decoding as redis-py with decode_responses=True
        return value.decode("utf-8", "strict")

    def llen(self, key):
        self._check("LLEN", key)
        return len(self._typed(key, list) or ())

    def exists(self, key):
        self._check("EXISTS", key)
        return 1 if key in self.data else 0

    def close(self):
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def resque_redis(fake_redis) -> ResqueRedis:
    client = ResqueRedis("redis://localhost:6379", "resque")
    client.client = fake_redis
    return client


@pytest.fixture
def collector(resque_redis) -> ResqueCollector:
    return ResqueCollector(resque_redis)


@pytest.fixture
def example_backend(fake_redis) -> FakeRedis:
    fake_redis.data.update(
        {
            "resque:stat:processed": "42",
            "resque:stat:failed": "1",
            "resque:queues": {"default"},
            "resque:queue:default": ["j1", "j2", "j3"],
            "resque:workers": {"w1"},
        }
    )
    return fake_redis
