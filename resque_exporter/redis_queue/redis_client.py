import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import unquote, urlsplit

from redis import Redis, RedisError

from resque_exporter.constants import DEFAULT_REDIS_PORT
from resque_exporter.errors import BackendError, ConfigurationError

from .redis_keys import RedisKeys

logger = logging.getLogger("resque_exporter")

TCP_SCHEMES = ("redis", "tcp")
UNIX_SCHEMES = ("unix",)

# Decimal floats with optional exponent, plus inf and nan
FLOAT_RE = re.compile(r"^[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)\Z", re.IGNORECASE | re.ASCII)


@dataclass(frozen=True)
class ConnectionOptions:
    """Transport resolved from a Redis URL. network is "tcp" or "unix"."""

    network: str
    addr: str
    port: int = DEFAULT_REDIS_PORT
    db: int = 0
    password: Optional[str] = None


def parse_redis_url(redis_url: str) -> ConnectionOptions:
    """
    redis://[:password@]host[:port][/db]  and  tcp://...  -> tcp transport
    unix://[:password@]/path/to/redis.sock                -> unix socket

    A non-numeric db path segment is ignored (db 0).
    """
    try:
        u = urlsplit(redis_url)
        port = u.port
    except ValueError as e:
        raise ConfigurationError(f"invalid Redis URL {redis_url!r}: {e}")

    password = unquote(u.password) if u.password is not None else None

    if u.scheme in TCP_SCHEMES:
        db = 0
        segment = u.path[1:]
        if segment.isascii() and segment.isdigit():
            db = int(segment)
        return ConnectionOptions(
            network="tcp",
            addr=u.hostname or "localhost",
            port=port or DEFAULT_REDIS_PORT,
            db=db,
            password=password,
        )

    if u.scheme in UNIX_SCHEMES:
        if not u.path:
            raise ConfigurationError(f"missing socket path in Redis URL {redis_url!r}")
        return ConnectionOptions(network="unix", addr=u.path, password=password)

    raise ConfigurationError(f"unknown URL scheme: {u.scheme}")


def create_redis(options: ConnectionOptions, *, timeout: Optional[float] = None) -> Redis:
    """Build a client. redis-py connects lazily, on the first command."""
    if options.network == "unix":
        return Redis(
            unix_socket_path=options.addr,
            password=options.password,
            socket_timeout=timeout,
            decode_responses=True,
        )
    return Redis(
        host=options.addr,
        port=options.port,
        db=options.db,
        password=options.password,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        decode_responses=True,
    )


class ResqueRedis:
    """
    Read-only typed accessor over the Resque Redis keys.
    Key parts are joined under the namespace, every Redis failure becomes BackendError.
    """

    def __init__(self, redis_url: str, namespace: str, *, timeout: Optional[float] = None):
        self.redis_url = redis_url
        self.options = parse_redis_url(redis_url)
        self.keys = RedisKeys(namespace)
        self.client: Optional[Redis] = create_redis(self.options, timeout=timeout)
        logger.debug("Redis client for %s (%s, namespace=%s)", self.options.addr, self.options.network, namespace)

    @property
    def namespace(self) -> str:
        return self.keys.namespace

    def _conn(self, key: str) -> Redis:
        if self.client is None:
            raise BackendError("client closed", key=key)
        return self.client

    def get_float(self, *parts: str) -> float:
        key = self.keys.key(*parts)
        try:
            raw = self._conn(key).get(key)
        except (RedisError, UnicodeDecodeError) as e:
            raise BackendError(f"GET failed: {e}", key=key) from e
        if raw is None:
            raise BackendError("key does not exist", key=key)
        # float() also takes padding and underscores, Resque stats never have them
        if not FLOAT_RE.match(raw):
            raise BackendError(f"value {raw!r} is not a number", key=key)
        return float(raw)

    def smembers(self, *parts: str) -> List[str]:
        key = self.keys.key(*parts)
        try:
            return list(self._conn(key).smembers(key))
        except (RedisError, UnicodeDecodeError) as e:
            raise BackendError(f"SMEMBERS failed: {e}", key=key) from e

    def llen(self, *parts: str) -> int:
        key = self.keys.key(*parts)
        try:
            return int(self._conn(key).llen(key))
        except RedisError as e:
            raise BackendError(f"LLEN failed: {e}", key=key) from e

    def exists(self, *parts: str) -> bool:
        key = self.keys.key(*parts)
        try:
            return self._conn(key).exists(key) == 1
        except RedisError as e:
            raise BackendError(f"EXISTS failed: {e}", key=key) from e

    def close(self) -> None:
        if self.client:
            self.client.close()
            self.client = None
