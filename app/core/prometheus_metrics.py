import logging
from typing import Optional
from prometheus_client import Counter, Histogram, Gauge, Info, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Prometheus Registry
REGISTRY = CollectorRegistry()

# Service Metrics
service_requests_total = Counter(
    'bakery_service_requests_total',
    'Total service method calls',
    ['status', 'service', 'method'],
    registry=REGISTRY
)

service_duration_seconds = Histogram(
    'bakery_service_duration_seconds',
    'Service method duration in seconds',
    ['service', 'method'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
    registry=REGISTRY
)

http_requests_total = Counter(
    'bakery_http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status_code'],
    registry=REGISTRY
)

# Scheduling Metrics
scheduling_drafts_total = Counter(
    'bakery_scheduling_drafts_total',
    'Scheduling drafts by outcome',
    ['outcome'],
    registry=REGISTRY
)

scheduling_confidence = Histogram(
    'bakery_scheduling_confidence_score',
    'Confidence score of generated scheduling drafts',
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
    registry=REGISTRY
)

pending_drafts_gauge = Gauge(
    'bakery_pending_scheduling_drafts',
    'Scheduling drafts waiting for review',
    registry=REGISTRY
)


# Order flow Metrics
order_status_changes_total = Counter(
    'bakery_order_status_changes_total',
    'Order status transitions',
    ['from_status', 'to_status'],
    registry=REGISTRY
)

delivered_revenue_eur_total = Counter(
    'bakery_delivered_revenue_eur_total',
    'Final amount of delivered orders in EUR',
    registry=REGISTRY
)

trips_total = Counter(
    'bakery_distribution_trips_total',
    'Distribution trips by status reached',
    ['status'],
    registry=REGISTRY
)

system_info = Info(
    'bakery_api_info',
    'System information',
    registry=REGISTRY
)


class PrometheusMetricsCollector:
    """Thin facade over the module-level Prometheus instruments"""

    def __init__(self):
        system_info.info({
            'version': '1.0.0',
            'service': 'bakery-distribution-api'
        })

    def record_service_call(self, service_name: str, method_name: str, duration_seconds: float, status: str):
        """status is one of success, rejected, error"""
        service_requests_total.labels(status=status, service=service_name, method=method_name).inc()
        service_duration_seconds.labels(service=service_name, method=method_name).observe(duration_seconds)

    def record_http_request(self, method: str, path: str, status_code: int):
        http_requests_total.labels(method=method, path=path, status_code=str(status_code)).inc()

    def record_draft_created(self, confidence_score: int):
        scheduling_drafts_total.labels(outcome='created').inc()
        scheduling_confidence.observe(confidence_score)

    def record_draft_reviewed(self, outcome: str):
        """outcome is one of approved, modified, rejected"""
        scheduling_drafts_total.labels(outcome=outcome).inc()

    def update_pending_drafts(self, count: int):
        pending_drafts_gauge.set(count)

    def record_order_transition(self, from_status: str, to_status: str, final_amount_eur: Optional[float] = None):
        order_status_changes_total.labels(from_status=from_status, to_status=to_status).inc()
        if to_status == 'delivered' and final_amount_eur:
            delivered_revenue_eur_total.inc(final_amount_eur)

    def record_trip_status(self, status: str):
        trips_total.labels(status=status).inc()

    def get_prometheus_metrics(self) -> bytes:
        """Get Prometheus metrics in text format"""
        return generate_latest(REGISTRY)


# Global instance
prometheus_collector = PrometheusMetricsCollector()
