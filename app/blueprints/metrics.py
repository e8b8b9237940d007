"""
Prometheus metrics.

Exposes /metrics with HTTP request metrics and order pipeline counters.
Restrict the endpoint to the monitoring network in production.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share metrics through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

_metric_registry = registry if not MULTIPROCESS_MODE else None

# HTTP
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'Number of HTTP requests currently being processed',
    registry=_metric_registry
)

# Order pipeline
orders_committed_total = Counter(
    'pos_orders_committed_total',
    'Orders durably committed',
    ['status', 'source'],
    registry=_metric_registry
)

order_commit_failures_total = Counter(
    'pos_order_commit_failures_total',
    'Order commits rolled back',
    ['reason'],
    registry=_metric_registry
)

order_commit_duration_seconds = Histogram(
    'pos_order_commit_duration_seconds',
    'Wall-clock time of the order unit of work',
    registry=_metric_registry,
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)


def setup_metrics_instrumentation(app):
    """Register request hooks that feed the HTTP metrics."""

    @app.before_request
    def before_request_metrics():
        g._metrics_start_time = time.time()
        http_requests_in_flight.inc()

    @app.after_request
    def after_request_metrics(response):
        try:
            start = g.pop('_metrics_start_time', None)
            if start is not None:
                endpoint = request.endpoint or 'unknown'
                http_request_duration_seconds.labels(
                    method=request.method,
                    endpoint=endpoint
                ).observe(time.time() - start)
                http_requests_total.labels(
                    method=request.method,
                    endpoint=endpoint,
                    http_status=response.status_code
                ).inc()
                http_requests_in_flight.dec()
        except Exception as e:
            # Metrics must not break the response
            app.logger.warning(f"Failed to record metrics: {e}")
        return response


@metrics_bp.route('/metrics')
def metrics():
    """Prometheus exposition (unauthenticated; firewall it)."""
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
