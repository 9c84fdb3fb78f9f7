"""Prometheus metrics for the scan pipeline."""

import re
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from smells_phishy.config.logging import get_logger

logger = get_logger(__name__)

REQUEST_COUNT = Counter(
    'smells_phishy_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'smells_phishy_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

SCAN_COUNT = Counter(
    'smells_phishy_scans_total',
    'Completed scans by verdict and deciding layer',
    ['verdict', 'provider']
)

SCAN_DURATION = Histogram(
    'smells_phishy_scan_duration_seconds',
    'Scan pipeline duration by stage',
    ['stage']
)

THREAT_INTEL_RESULTS = Counter(
    'smells_phishy_threat_intel_results_total',
    'Threat intelligence provider results',
    ['provider', 'status']
)

AI_QUOTA_REJECTIONS = Counter(
    'smells_phishy_ai_quota_rejections_total',
    'AI classifier calls refused by the local quota',
    ['window']
)

AI_FAILURES = Counter(
    'smells_phishy_ai_failures_total',
    'AI classifier calls that fell back to the conservative verdict'
)

RATE_LIMIT_REJECTIONS = Counter(
    'smells_phishy_rate_limit_rejections_total',
    'Requests rejected by the per-caller rate limiter',
    ['endpoint']
)


class PipelineMetrics:
    """Pipeline-specific metrics collection."""

    @staticmethod
    def record_scan(verdict: str, provider: str, duration: float):
        SCAN_COUNT.labels(verdict=verdict, provider=provider).inc()
        SCAN_DURATION.labels(stage="total").observe(duration)

    @staticmethod
    def record_stage(stage: str, duration: float):
        SCAN_DURATION.labels(stage=stage).observe(duration)

    @staticmethod
    def record_threat_intel_result(provider: str, status: str):
        THREAT_INTEL_RESULTS.labels(provider=provider, status=status).inc()

    @staticmethod
    def record_ai_quota_rejection(window: str):
        AI_QUOTA_REJECTIONS.labels(window=window).inc()

    @staticmethod
    def record_ai_failure():
        AI_FAILURES.inc()

    @staticmethod
    def record_rate_limit_rejection(endpoint: str):
        RATE_LIMIT_REJECTIONS.labels(endpoint=endpoint).inc()


pipeline_metrics = PipelineMetrics()


class MetricsMiddleware:
    """Middleware for collecting HTTP request metrics."""

    def __init__(self, app: FastAPI):
        self.app = app

    async def __call__(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        method = request.method
        endpoint = self._sanitize_path(request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code="500").inc()
            raise

        REQUEST_COUNT.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(response.status_code)
        ).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)
        return response

    @staticmethod
    def _sanitize_path(path: str) -> str:
        """Sanitize path for metrics to avoid high cardinality."""
        return re.sub(r'/\d+(?=/|$)', '/{id}', path)


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def setup_metrics(app: FastAPI):
    """Setup metrics collection for FastAPI app."""
    app.middleware("http")(MetricsMiddleware(app))
    app.add_route("/metrics", metrics_endpoint, methods=["GET"])
    logger.info("Metrics collection initialized")
