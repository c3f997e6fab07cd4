"""
Monitoring Package

Observability for the order intake layer:
- logging.py: structlog configuration, correlation ids and PII redaction
- metrics.py: Prometheus counters and histograms for the sanitization pipeline
- events.py: the monitoring collaborator and its fire-and-forget helpers
"""

from storefront.monitoring.events import MonitoringReporter, get_reporter, send_exception, send_message
from storefront.monitoring.logging import (
    configure_logging,
    contains_sensitive_data,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from storefront.monitoring.metrics import SanitizationMetrics, get_metrics

__all__ = [
    'MonitoringReporter',
    'get_reporter',
    'send_exception',
    'send_message',
    'configure_logging',
    'contains_sensitive_data',
    'get_correlation_id',
    'get_logger',
    'set_correlation_id',
    'SanitizationMetrics',
    'get_metrics',
]
