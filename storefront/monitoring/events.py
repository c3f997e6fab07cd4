"""
Monitoring Collaborator for Diagnostic Events

The order sanitization pipeline reports two kinds of diagnostics: a message when an order
carries critical issues, and an exception when a field sanitizer fails unexpectedly. This
module provides ``MonitoringReporter``, which turns those diagnostics into structured
structlog events tagged for alerting, and the fire-and-forget helpers the pipeline uses to
call any reporter without ever letting a monitoring failure reach the caller.

Events never carry raw customer data: extras pass through the same redaction as log lines,
and free-text messages that look sensitive are replaced before emission.
"""

import logging
import threading
from typing import Any, Dict, Optional

import structlog

from storefront.monitoring.logging import (
    FILTERED,
    contains_sensitive_data,
    get_correlation_id,
    redact_sensitive_values,
)
from storefront.monitoring.metrics import SanitizationMetrics, get_metrics

# Emission failures are logged through stdlib so they cannot recurse into structlog
failure_logger = logging.getLogger(__name__)

LEVELS = ('debug', 'info', 'warning', 'error', 'critical')


class MonitoringReporter:
    """
    Structured diagnostic reporter used as the pipeline's monitoring collaborator.

    Any object exposing ``capture_message`` and ``capture_exception`` with the
    same signatures can be injected in its place.
    """

    def __init__(
        self,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        metrics: Optional[SanitizationMetrics] = None,
        enabled: bool = True,
    ):
        self.logger = logger or structlog.get_logger("storefront.monitoring.events")
        self.metrics = metrics
        self.enabled = enabled

    def _build_event(
        self,
        level: str,
        tags: Optional[Dict[str, str]],
        extra: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        return {
            'event_category': 'monitoring',
            'monitoring_level': level,
            'tags': dict(tags or {}),
            'extra': redact_sensitive_values(dict(extra or {})),
            'correlation_id': get_correlation_id(),
        }

    def _record(self, level: str) -> None:
        if self.metrics is not None:
            self.metrics.record_monitoring_event(level)

    def capture_message(
        self,
        message: str,
        level: str = 'info',
        tags: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Emit a diagnostic message.

        Args:
            message: Free-text description; replaced when it looks sensitive
            level: One of debug, info, warning, error, critical
            tags: Low-cardinality labels (component, operation)
            extra: Structured context, redacted before emission

        Returns:
            True when the event was emitted
        """
        if not self.enabled:
            return False

        level = level if level in LEVELS else 'info'
        if contains_sensitive_data(message):
            message = FILTERED

        log_method = getattr(self.logger, level)
        log_method(message, **self._build_event(level, tags, extra))
        self._record(level)
        return True

    def capture_exception(
        self,
        exception: BaseException,
        tags: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Emit a diagnostic for an exception caught at a component boundary.

        Only the exception type is logged verbatim; its message is dropped when
        it looks sensitive.
        """
        if not self.enabled:
            return False

        event = self._build_event('error', tags, extra)
        detail = str(exception)
        event['exception_type'] = type(exception).__name__
        event['exception_message'] = FILTERED if contains_sensitive_data(detail) else detail

        self.logger.error("Exception captured", **event)
        self._record('error')
        return True


_default_reporter: Optional[MonitoringReporter] = None
_reporter_lock = threading.Lock()


def get_reporter() -> MonitoringReporter:
    """Return the process-wide reporter used when none is injected."""
    global _default_reporter
    if _default_reporter is None:
        with _reporter_lock:
            if _default_reporter is None:
                _default_reporter = MonitoringReporter(metrics=get_metrics())
    return _default_reporter


def send_message(reporter: Any, message: str, **kwargs) -> bool:
    """
    Fire-and-forget ``capture_message``: never raises, never blocks on failure.

    Returns:
        True when the reporter accepted the event
    """
    if reporter is None:
        return False
    try:
        return bool(reporter.capture_message(message, **kwargs))
    except Exception:
        failure_logger.debug("Monitoring message could not be delivered", exc_info=True)
        return False


def send_exception(reporter: Any, exception: BaseException, **kwargs) -> bool:
    """Fire-and-forget ``capture_exception``."""
    if reporter is None:
        return False
    try:
        return bool(reporter.capture_exception(exception, **kwargs))
    except Exception:
        failure_logger.debug("Monitoring exception could not be delivered", exc_info=True)
        return False


__all__ = [
    'MonitoringReporter',
    'get_reporter',
    'send_message',
    'send_exception',
]
