import logging
import platform
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from resque_exporter import __version__
from resque_exporter.config import ExporterConfig
from resque_exporter.redis_queue import HttpMetrics, ResqueCollector, ResqueRedis, register_build_info

logger = logging.getLogger("resque_exporter")

LANDING_PAGE = """<html>
<head><title>Resque Exporter</title></head>
<body>
<h1>Resque Exporter</h1>
<p><a href='{telemetry_path}'>Metrics</a></p>
</body>
</html>
"""


class PrometheusMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, http_metrics: HttpMetrics):
        super().__init__(app)
        self.http_metrics = http_metrics

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)

        self.http_metrics.observe(request.method, route_path, response.status_code, elapsed)
        return response


def build_app(conf: ExporterConfig, redis: Optional[ResqueRedis] = None) -> FastAPI:
    """
    Composition root: Redis client -> collector -> registry -> FastAPI app.
    Raises ConfigurationError for a bad Redis URL.
    """
    if redis is None:
        redis = ResqueRedis(conf.redis_url, conf.redis_namespace, timeout=conf.redis_timeout)

    # One registry per app
    registry = CollectorRegistry(auto_describe=True)
    collector = ResqueCollector(redis)
    registry.register(collector)
    register_build_info(registry, __version__, platform.python_version())
    http_metrics = HttpMetrics(registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        redis.close()
        logger.info("Redis connection closed.")

    app = FastAPI(
        title="Resque Exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.add_middleware(PrometheusMiddleware, http_metrics=http_metrics)

    app.state.conf = conf
    app.state.registry = registry
    app.state.collector = collector

    def metrics():
        """Prometheus scrape endpoint. Runs one scrape of Redis per request."""
        payload = generate_latest(registry)
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    def landing_page():
        return HTMLResponse(LANDING_PAGE.format(telemetry_path=conf.telemetry_path))

    app.add_api_route(conf.telemetry_path, metrics, methods=["GET"])
    app.add_api_route("/", landing_page, methods=["GET"], include_in_schema=False)

    return app
