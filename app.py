import argparse
import logging
import platform
import sys
from typing import List, Optional

import uvicorn

from resque_exporter import __version__
from resque_exporter.config import ExporterConfig, LOGGING_CONFIG, get_redis_url, set_logging_settings
from resque_exporter.constants import (
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_REDIS_NAMESPACE,
    DEFAULT_REDIS_URL,
    DEFAULT_TELEMETRY_PATH,
)
from resque_exporter.errors import ConfigurationError
from resque_exporter.web.app import build_app

logger = logging.getLogger("resque_exporter")

LOG_LEVELS = ("debug", "info", "warning", "error")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Prometheus exporter for Resque metrics.")
    parser.add_argument(
        "--redis.namespace",
        dest="redis_namespace",
        default=DEFAULT_REDIS_NAMESPACE,
        help="Namespace used by Resque to prefix all its Redis keys.",
    )
    parser.add_argument(
        "--redis.url",
        dest="redis_url",
        default=DEFAULT_REDIS_URL,
        help="URL to the Redis backing the Resque. REDIS_URL environment variable takes precedence.",
    )
    parser.add_argument(
        "--redis.timeout",
        dest="redis_timeout",
        type=float,
        default=None,
        help="Socket timeout for Redis commands, in seconds.",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=DEFAULT_LISTEN_ADDRESS,
        help="Address to listen on for web interface and telemetry.",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="telemetry_path",
        default=DEFAULT_TELEMETRY_PATH,
        help="Path under which to expose metrics.",
    )
    parser.add_argument("--log.level", dest="log_level", choices=LOG_LEVELS, default="info")
    parser.add_argument("--version", action="store_true", help="Print version information.")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ExporterConfig:
    return ExporterConfig(
        redis_url=get_redis_url(args.redis_url),
        redis_namespace=args.redis_namespace,
        redis_timeout=args.redis_timeout,
        listen_address=args.listen_address,
        telemetry_path=args.telemetry_path,
    )


def version_string() -> str:
    return f"resque_exporter, version {__version__} (python {platform.python_version()})"


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.version:
        print(version_string())
        return 0

    log_config = set_logging_settings(LOGGING_CONFIG, level=logging.getLevelName(args.log_level.upper()))
    logger.info("Starting %s", version_string())

    try:
        conf = build_config(args)
        app = build_app(conf)
        host, port = conf.host, conf.port
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    logger.info("Listening on %s", conf.listen_address)
    uvicorn.run(app, host=host, port=port, log_config=log_config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
