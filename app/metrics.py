"""
Prometheus metrics for the catalog: HTTP requests, repository queries,
query cache lookups, downloads and version creation.
"""
import time
from functools import wraps

from flask import Response, request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Database Metrics
db_query_duration_seconds = Histogram(
    "modrepo_db_query_duration_seconds", "Repository query duration", ["operation"]
)
db_query_total = Counter("modrepo_db_queries_total", "Repository queries", ["operation", "status"])

# Query cache
cache_requests_total = Counter("modrepo_cache_requests_total", "Query cache lookups", ["operation", "result"])

# Downloads
version_downloads_total = Counter("modrepo_version_downloads_total", "Version download requests", ["counted"])
version_download_count_failures_total = Counter(
    "modrepo_version_download_count_failures_total", "Download counter updates that failed", ["stage"]
)

# Version creation
versions_created_total = Counter("modrepo_versions_created_total", "Versions created")
version_creation_rejected_total = Counter(
    "modrepo_version_creation_rejected_total", "Version creations rejected", ["reason"]
)

# API Metrics
api_request_duration_seconds = Histogram(
    "modrepo_api_request_duration_seconds", "API request duration", ["endpoint", "method"]
)
api_requests_total = Counter("modrepo_api_requests_total", "API requests", ["endpoint", "method", "status_code"])


def _endpoint():
    return request.endpoint or "unknown"


def init_metrics(app):
    """Expose /api/metrics and time every request of the app"""

    @app.route("/api/metrics")
    def metrics():
        return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)

    @app.before_request
    def start_timer():
        request.start_time = time.time()

    @app.after_request
    def record_request(response):
        started = getattr(request, "start_time", None)
        if started is not None:
            api_request_duration_seconds.labels(endpoint=_endpoint(), method=request.method).observe(
                time.time() - started
            )
        api_requests_total.labels(endpoint=_endpoint(), method=request.method, status_code=response.status_code).inc()
        return response


def track_db_query(operation):
    """Count and time a repository call under `operation`, re-raising its errors"""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            status = "error"
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                status = "success"
                return result
            finally:
                db_query_total.labels(operation=operation, status=status).inc()
                db_query_duration_seconds.labels(operation=operation).observe(time.time() - start_time)

        return wrapper

    return decorator
