"""
Prometheus Metrics for the Order Sanitization Pipeline

This module exposes prometheus-client 0.17+ counters and histograms describing how the
order intake layer behaves in production: how many orders pass sanitization, how long the
pipeline takes, which fields accumulate issues, and how often the monitoring collaborator
is asked to raise an alert.

Metric families:
- storefront_order_sanitizations_total: pipeline outcomes (success, failure, rejected, error)
- storefront_order_sanitization_duration_seconds: pipeline latency distribution
- storefront_sanitization_issues_total: issues per field and severity (critical, minor)
- storefront_sanitizer_errors_total: unexpected exceptions caught at a sanitizer boundary
- storefront_business_rules_executed_total: business rule outcomes
- storefront_prevalidation_total: fast-fail gate outcomes
- storefront_monitoring_events_total: diagnostic events sent to monitoring

Metrics are registered against the default REGISTRY unless a dedicated
CollectorRegistry is supplied, which keeps test instances isolated.
"""

import threading
from typing import Optional, Tuple

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Pipeline latency is expected in low single-digit milliseconds
DURATION_BUCKETS = (0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, float('inf'))


class SanitizationMetrics:
    """
    Prometheus metrics collector for the order sanitization pipeline.

    Args:
        registry: Registry to register metrics with, REGISTRY by default
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else REGISTRY

        self.order_sanitizations_total = Counter(
            'storefront_order_sanitizations_total',
            'Total order sanitization pipeline runs',
            ['outcome'],  # success, failure, rejected, error
            registry=self.registry
        )

        self.order_sanitization_duration_seconds = Histogram(
            'storefront_order_sanitization_duration_seconds',
            'Order sanitization pipeline duration in seconds',
            ['grade'],  # excellent, good, slow, error
            buckets=DURATION_BUCKETS,
            registry=self.registry
        )

        self.sanitization_issues_total = Counter(
            'storefront_sanitization_issues_total',
            'Total sanitization issues recorded per field',
            ['field', 'severity'],  # critical, minor
            registry=self.registry
        )

        self.sanitizer_errors_total = Counter(
            'storefront_sanitizer_errors_total',
            'Unexpected exceptions caught at a field sanitizer boundary',
            ['field'],
            registry=self.registry
        )

        self.business_rules_executed_total = Counter(
            'storefront_business_rules_executed_total',
            'Total business rules executed on sanitized orders',
            ['rule', 'result'],  # passed, warning, violation, error
            registry=self.registry
        )

        self.prevalidation_total = Counter(
            'storefront_prevalidation_total',
            'Total pre-validation gate evaluations',
            ['result'],  # passed, blocked
            registry=self.registry
        )

        self.monitoring_events_total = Counter(
            'storefront_monitoring_events_total',
            'Diagnostic events sent to the monitoring collaborator',
            ['level'],
            registry=self.registry
        )

    def record_order_sanitization(self, outcome: str, grade: str, duration_ms: float) -> None:
        self.order_sanitizations_total.labels(outcome=outcome).inc()
        self.order_sanitization_duration_seconds.labels(grade=grade).observe(max(duration_ms, 0.0) / 1000.0)

    def record_field_issues(self, field: str, critical: int, minor: int) -> None:
        if critical:
            self.sanitization_issues_total.labels(field=field, severity='critical').inc(critical)
        if minor:
            self.sanitization_issues_total.labels(field=field, severity='minor').inc(minor)

    def record_sanitizer_error(self, field: str) -> None:
        self.sanitizer_errors_total.labels(field=field).inc()

    def record_business_rule(self, rule: str, result: str) -> None:
        self.business_rules_executed_total.labels(rule=rule, result=result).inc()

    def record_prevalidation(self, passed: bool) -> None:
        self.prevalidation_total.labels(result='passed' if passed else 'blocked').inc()

    def record_monitoring_event(self, level: str) -> None:
        self.monitoring_events_total.labels(level=level).inc()

    def generate_payload(self) -> Tuple[bytes, str]:
        """Render the registry in the Prometheus exposition format."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


_default_metrics: Optional[SanitizationMetrics] = None
_metrics_lock = threading.Lock()


def get_metrics() -> SanitizationMetrics:
    """Return the process-wide collector bound to the default registry."""
    global _default_metrics
    if _default_metrics is None:
        with _metrics_lock:
            if _default_metrics is None:
                _default_metrics = SanitizationMetrics()
    return _default_metrics


__all__ = [
    'DURATION_BUCKETS',
    'SanitizationMetrics',
    'get_metrics',
]
