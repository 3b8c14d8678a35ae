import copy
import logging
import logging.config
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from resque_exporter.constants import (
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_REDIS_NAMESPACE,
    DEFAULT_REDIS_URL,
    DEFAULT_TELEMETRY_PATH,
    REDIS_URL_ENV,
)
from resque_exporter.errors import ConfigurationError


LOGGING_CONFIG: Dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(levelname)s:[%(asctime)s] - %(name)s - %(message)s",
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(levelname)s:[%(asctime)s] - %(client_addr)s - "%(request_line)s" %(status_code)s',
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "access": {
            "formatter": "access",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "resque_exporter": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"level": "INFO"},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
    },
}


def set_logging_settings(logging_config: Dict[str, Any], level: int = logging.INFO) -> Dict[str, Any]:
    """
    Apply logging config with the given level for the exporter and uvicorn loggers.
    Returns the applied config, so it can be handed to uvicorn as log_config.
    """
    conf = copy.deepcopy(logging_config)
    for name in ("resque_exporter", "uvicorn", "uvicorn.error"):
        conf["loggers"][name]["level"] = logging.getLevelName(level)
    logging.config.dictConfig(conf)
    return conf


def get_redis_url(default: str = DEFAULT_REDIS_URL) -> str:
    """REDIS_URL from environment wins over any other source."""
    return os.getenv(REDIS_URL_ENV) or default


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    Split "host:port" into parts. Empty host means all interfaces.
    ":9447" -> ("0.0.0.0", 9447)
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigurationError(f"missing port in listen address: {address!r}")
    try:
        port_num = int(port)
    except ValueError:
        raise ConfigurationError(f"invalid port in listen address: {address!r}")
    if not 0 < port_num < 65536:
        raise ConfigurationError(f"port out of range in listen address: {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, port_num


@dataclass
class ExporterConfig:
    """
    Exporter settings. Filled by app.py from command-line flags and environment.
    """

    redis_url: str = DEFAULT_REDIS_URL
    redis_namespace: str = DEFAULT_REDIS_NAMESPACE

    # Socket timeout for Redis commands, seconds. None keeps the redis-py default.
    redis_timeout: Optional[float] = None

    listen_address: str = DEFAULT_LISTEN_ADDRESS
    telemetry_path: str = DEFAULT_TELEMETRY_PATH

    def __post_init__(self):
        if not self.telemetry_path.startswith("/"):
            raise ConfigurationError(f"telemetry path must start with '/', got {self.telemetry_path!r}")
        if self.redis_timeout is not None and self.redis_timeout <= 0:
            raise ConfigurationError(f"redis timeout must be > 0, got {self.redis_timeout}")

    @property
    def host(self) -> str:
        return parse_listen_address(self.listen_address)[0]

    @property
    def port(self) -> int:
        return parse_listen_address(self.listen_address)[1]
