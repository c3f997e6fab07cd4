"""
Order Sanitization Aggregator

This module provides ``sanitize_order_data``, the entry point of the order intake
pipeline. It applies every field sanitizer to the matching field of an untrusted order
record, merges the field results into one all-or-nothing verdict, grades the pipeline's
own latency and alerts the monitoring collaborator when critical issues are found.

Processing steps:
1. Guard: anything other than a mapping (or ``RawOrderRecord``) is rejected outright
2. Field sanitizers run independently; they share no state
3. ``success`` is the logical AND of every field result
4. The clean ``SanitizedOrderRecord`` is built only when every field passed
5. Issues are flattened and classified; critical issues mention an error,
   an invalid value or suspicious content
6. Elapsed wall-clock time is graded (excellent, good, slow)
7. Critical issues trigger a fire-and-forget warning to monitoring that carries
   issue texts, counts, duration and field names but never field values

The call is synchronous and side-effect free apart from logs, metrics and the
monitoring emission, so concurrent orders need no locking.
"""

import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import structlog

from storefront.business.models import (
    FieldSanitizationResult,
    OrderSanitizationReport,
    PerformanceInfo,
    RawOrderRecord,
    SanitizationSummary,
    SanitizedOrderRecord,
)
from storefront.business.reporting import create_secure_log_hash
from storefront.business.sanitizers import (
    sanitize_account_info,
    sanitize_application_fee,
    sanitize_email,
    sanitize_name,
    sanitize_phone,
    sanitize_uuid,
)
from storefront.config.settings import SanitizerConfig, get_sanitizer_config
from storefront.monitoring.events import get_reporter, send_exception, send_message
from storefront.monitoring.metrics import SanitizationMetrics, get_metrics

logger = structlog.get_logger("storefront.business.processors")

# Wire name -> (sanitizer, label used in issue texts)
FIELD_SANITIZERS: Dict[str, Tuple[Callable[..., FieldSanitizationResult], str]] = {
    'lastName': (sanitize_name, 'lastName'),
    'firstName': (sanitize_name, 'firstName'),
    'email': (sanitize_email, 'Email'),
    'phone': (sanitize_phone, 'Phone'),
    'paymentMethod': (sanitize_uuid, 'paymentMethod'),
    'accountName': (sanitize_account_info, 'accountName'),
    'accountNumber': (sanitize_account_info, 'accountNumber'),
    'applicationId': (sanitize_uuid, 'applicationId'),
    'applicationFee': (sanitize_application_fee, 'Application fee'),
}

# Wire name -> SanitizedOrderRecord attribute
RECORD_ATTRIBUTES = {
    'lastName': 'last_name',
    'firstName': 'first_name',
    'email': 'email',
    'phone': 'phone',
    'paymentMethod': 'payment_method',
    'accountName': 'account_name',
    'accountNumber': 'account_number',
    'applicationId': 'application_id',
    'applicationFee': 'application_fee',
}

CRITICAL_MARKERS = ('error', 'invalid', 'suspicious')

INVALID_ORDER_ISSUE = 'Order data is empty or invalid'
PIPELINE_ERROR_ISSUE = 'Critical sanitization error occurred'
CRITICAL_ISSUES_MESSAGE = 'Order data sanitization found critical issues'


def is_critical_issue(issue: str) -> bool:
    """Critical issues mention an error, an invalid value or suspicious content."""
    lowered = issue.lower()
    return any(marker in lowered for marker in CRITICAL_MARKERS)


def grade_performance(duration_ms: float, thresholds: Mapping[str, float]) -> str:
    """Grade pipeline latency: excellent below the first threshold, good below the second."""
    if duration_ms < thresholds['excellent']:
        return 'excellent'
    if duration_ms < thresholds['good']:
        return 'good'
    return 'slow'


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _unique(items: List[str]) -> List[str]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _record_metrics(
    metrics: Optional[SanitizationMetrics],
    report: OrderSanitizationReport,
    outcome: str,
) -> None:
    if metrics is None:
        return
    try:
        metrics.record_order_sanitization(outcome, report.performance.grade, report.performance.duration_ms)
        for field_name, result in report.results.items():
            critical = sum(1 for issue in result.issues if is_critical_issue(issue))
            metrics.record_field_issues(field_name, critical, len(result.issues) - critical)
    except Exception:
        # Metrics never change the verdict
        logger.debug("Order sanitization metrics not recorded", outcome=outcome, exc_info=True)


def _rejected_report(start: float) -> OrderSanitizationReport:
    return OrderSanitizationReport(
        success=False,
        sanitized=None,
        results={},
        issues=[INVALID_ORDER_ISSUE],
        critical_issues=[INVALID_ORDER_ISSUE],
        summary=SanitizationSummary(total_fields=0, successful_fields=0, total_issues=1, critical_issues=1),
        performance=PerformanceInfo(duration_ms=_elapsed_ms(start), grade='excellent'),
    )


def _error_report(start: float, error: Exception) -> OrderSanitizationReport:
    return OrderSanitizationReport(
        success=False,
        sanitized=None,
        results={},
        issues=[PIPELINE_ERROR_ISSUE],
        critical_issues=[PIPELINE_ERROR_ISSUE],
        summary=SanitizationSummary(total_fields=0, successful_fields=0, total_issues=1, critical_issues=1),
        performance=PerformanceInfo(duration_ms=_elapsed_ms(start), grade='error'),
        error=f"{type(error).__name__}: {error}"[:200],
    )


def _field_values(order_data: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(order_data, RawOrderRecord):
        return order_data.field_values()
    if isinstance(order_data, Mapping):
        return order_data
    return None


def sanitize_order_data(
    order_data: Any,
    *,
    config: Optional[SanitizerConfig] = None,
    reporter: Any = None,
    metrics: Optional[SanitizationMetrics] = None,
) -> OrderSanitizationReport:
    """
    Sanitize an untrusted order record into an all-or-nothing report.

    Args:
        order_data: Raw order as a camelCase mapping or ``RawOrderRecord``
        config: Sanitizer settings, resolved from the Flask app or environment if None
        reporter: Monitoring collaborator with ``capture_message``/``capture_exception``
        metrics: Prometheus collector, the process-wide one if None

    Returns:
        OrderSanitizationReport whose ``sanitized`` record is set only when every
        field passed. Never raises.
    """
    start = time.perf_counter()
    settings = config if config is not None else get_sanitizer_config()
    if reporter is None and settings.monitoring_enabled:
        reporter = get_reporter()
    if metrics is None and settings.metrics_enabled:
        metrics = get_metrics()

    try:
        values = _field_values(order_data)
        if values is None:
            report = _rejected_report(start)
            logger.warning(
                "Order data rejected before sanitization",
                input_type=type(order_data).__name__,
            )
            _record_metrics(metrics, report, 'rejected')
            return report

        results: Dict[str, FieldSanitizationResult] = {
            field_name: sanitizer(values.get(field_name), label, config=settings, reporter=reporter)
            for field_name, (sanitizer, label) in FIELD_SANITIZERS.items()
        }

        success = all(result.success for result in results.values())
        all_issues = [issue for result in results.values() for issue in result.issues]
        critical_issues = [issue for issue in all_issues if is_critical_issue(issue)]
        suspicious_words = _unique([word for result in results.values() for word in result.suspicious_words])

        sanitized = None
        if success:
            sanitized = SanitizedOrderRecord(**{
                RECORD_ATTRIBUTES[field_name]: result.sanitized
                for field_name, result in results.items()
            })

        duration_ms = _elapsed_ms(start)
        report = OrderSanitizationReport(
            success=success,
            sanitized=sanitized,
            results=results,
            issues=all_issues,
            critical_issues=critical_issues,
            summary=SanitizationSummary(
                total_fields=len(results),
                successful_fields=sum(1 for result in results.values() if result.success),
                total_issues=len(all_issues),
                critical_issues=len(critical_issues),
                suspicious_words=suspicious_words,
            ),
            performance=PerformanceInfo(
                duration_ms=duration_ms,
                grade=grade_performance(duration_ms, settings.performance_thresholds),
            ),
        )

    except Exception as e:
        logger.error(
            "Order sanitization pipeline failed",
            error_type=type(e).__name__,
        )
        send_exception(
            reporter,
            e,
            tags={'component': 'order_sanitizer', 'operation': 'sanitize_order_data'},
            extra={'input_type': type(order_data).__name__},
        )
        report = _error_report(start, e)
        _record_metrics(metrics, report, 'error')
        return report

    if critical_issues:
        send_message(
            reporter,
            CRITICAL_ISSUES_MESSAGE,
            level='warning',
            tags={'component': 'order_sanitizer', 'operation': 'sanitize_order_data'},
            extra={
                'critical_issues': critical_issues[:settings.critical_issue_log_limit],
                'total_issues': len(all_issues),
                'duration_ms': round(duration_ms, 3),
                'fields_with_issues': report.fields_with_issues,
            },
        )

    logger.info(
        "Order data sanitized",
        success=report.success,
        successful_fields=report.summary.successful_fields,
        total_issues=report.summary.total_issues,
        critical_issues=report.summary.critical_issues,
        duration_ms=round(duration_ms, 3),
        performance_grade=report.performance.grade,
        order_log_hash=create_secure_log_hash(values).hash,
    )

    _record_metrics(metrics, report, 'success' if report.success else 'failure')
    return report


__all__ = [
    'FIELD_SANITIZERS',
    'CRITICAL_MARKERS',
    'is_critical_issue',
    'grade_performance',
    'sanitize_order_data',
]
