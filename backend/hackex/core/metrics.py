"""
Prometheus Metrics Collection for the HackEx Scanner Backend

Every backend pod keeps its own metrics which are scraped independently.
"""

import logging
import re
import time
from importlib.metadata import version as get_version
from typing import Callable

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# =============================================================================
# Application Info Metrics
# =============================================================================

try:
    APP_VERSION = get_version("hackex-scanner")
except Exception:
    APP_VERSION = "unknown"

app_info = Info("hackex_app", "Application information")
app_info.info(
    {
        "version": APP_VERSION,
        "app_name": "HackEx Scanner",
    }
)

# =============================================================================
# HTTP Request Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint and status",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# =============================================================================
# Worker Queue Metrics
# =============================================================================

worker_queue_size = Gauge(
    "worker_queue_size",
    "Current number of jobs in the worker queue",
)

worker_jobs_processed_total = Counter(
    "worker_jobs_processed_total",
    "Total number of scan attempts processed by workers",
    ["status"],
)

worker_job_duration_seconds = Histogram(
    "worker_job_duration_seconds",
    "Scan attempt duration in seconds",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600),
)

# =============================================================================
# Scan Pipeline Metrics
# =============================================================================

scans_submitted_total = Counter(
    "scans_submitted_total",
    "Total scans submitted by input kind",
    ["kind"],
)

scans_finished_total = Counter(
    "scans_finished_total",
    "Total scans reaching a terminal state",
    ["status"],
)

scan_retries_total = Counter(
    "scan_retries_total",
    "Total scan attempts re-queued after a failure",
)

probe_runs_total = Counter(
    "probe_runs_total",
    "Total runtime probe executions by probe",
    ["probe"],
)

probe_failures_total = Counter(
    "probe_failures_total",
    "Total absorbed runtime probe failures by probe",
    ["probe"],
)

probe_duration_seconds = Histogram(
    "probe_duration_seconds",
    "Runtime probe duration in seconds by probe",
    ["probe"],
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30),
)

findings_total = Counter(
    "findings_total",
    "Total findings by finding type and severity",
    ["type", "severity"],
)

archive_extraction_failures_total = Counter(
    "archive_extraction_failures_total",
    "Total archives rejected or unreadable",
)

archive_storage_operations_total = Counter(
    "archive_storage_operations_total",
    "Total GridFS operations for archive storage",
    ["operation", "status"],
)

enrichment_fallbacks_total = Counter(
    "enrichment_fallbacks_total",
    "Total findings explained by a fallback template",
    ["severity"],
)

# =============================================================================
# External API Metrics
# =============================================================================

external_api_requests_total = Counter(
    "external_api_requests_total",
    "Total external API requests by service",
    ["service"],
)

external_api_errors_total = Counter(
    "external_api_errors_total",
    "Total external API errors by service",
    ["service"],
)

external_api_duration_seconds = Histogram(
    "external_api_duration_seconds",
    "External API request duration in seconds",
    ["service"],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

# =============================================================================
# System Metrics
# =============================================================================

uptime_seconds = Gauge(
    "uptime_seconds",
    "Application uptime in seconds",
)

startup_time = time.time()


def update_uptime():
    """Update the uptime metric."""
    uptime_seconds.set(time.time() - startup_time)


# =============================================================================
# Prometheus Metrics Endpoint
# =============================================================================


async def metrics_endpoint(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Only meant to be reachable from inside the cluster.
    """
    update_uptime()
    metrics_output = generate_latest(REGISTRY)
    return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)


# =============================================================================
# Middleware for HTTP Metrics
# =============================================================================


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to automatically collect HTTP request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Skip metrics for the /metrics endpoint itself to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = self._normalize_path(request.url.path)

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()
        status = 500

        try:
            response = await call_next(request)
            status = response.status_code
        except Exception as e:
            logger.error(f"Error in PrometheusMiddleware: {e}")
            raise
        finally:
            duration = time.time() - start_time
            http_request_duration_seconds.labels(
                method=method, endpoint=endpoint
            ).observe(duration)
            http_requests_total.labels(
                method=method, endpoint=endpoint, status=status
            ).inc()
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()

        return response

    def _normalize_path(self, path: str) -> str:
        """
        Normalize URL paths to prevent cardinality explosion.

        Public tokens are UUIDs, so they collapse into a placeholder:
          /api/v1/scans/550e8400-e29b-41d4-a716-446655440000/status
          -> /api/v1/scans/{id}/status
        """
        path = re.sub(
            r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
            "/{id}",
            path,
            flags=re.IGNORECASE,
        )
        path = re.sub(r"/\d+", "/{id}", path)
        return path
