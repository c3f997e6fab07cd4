"""
Business Exception Classes for Order Intake

This module provides the exception hierarchy raised by the order intake layer when a
caller asks for something the pipeline cannot honour: persisting a record that failed
sanitization, or starting the pipeline with an invalid configuration. Field-level
sanitization problems are never raised; they are recorded as issues on the result
objects in ``storefront.business.models``.

The exception hierarchy provides:
- Error severity and category classification for monitoring dashboards
- Structured audit logging through structlog on construction
- Sensitive context filtering so exceptions never carry raw customer data
- Dictionary serialization for API error payloads

Classes:
    BaseBusinessException: Base class for all order intake exceptions
    DataValidationError: Order data is not fit for the requested operation
    ConfigurationError: Sanitizer configuration is missing or inconsistent
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger("storefront.business.exceptions")

# Context keys that must never reach logs or API payloads
SENSITIVE_CONTEXT_KEYS = {
    'email', 'phone', 'account_number', 'accountNumber', 'account_name',
    'accountName', 'payment_method', 'paymentMethod', 'password', 'token',
    'secret', 'api_key',
}


class ErrorSeverity(Enum):
    """
    Error severity classification for business exceptions.

    Provides standardized severity levels enabling appropriate response
    handling and monitoring alerting thresholds.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error category classification for business exception types."""
    DATA_VALIDATION = "data_validation"
    DATA_PROCESSING = "data_processing"
    CONFIGURATION = "configuration"


class BaseBusinessException(Exception):
    """
    Base exception class for all order intake failures.

    Attributes:
        message (str): Error message with secrets redacted
        error_code (str): Unique error identifier for client handling
        http_status_code (int): HTTP status code suggested to the calling handler
        severity (ErrorSeverity): Error severity level for monitoring
        category (ErrorCategory): Error category for classification
        context (Dict[str, Any]): Additional error context (filtered)
        timestamp (datetime): Error occurrence timestamp

    Example:
        try:
            record = report.require_sanitized()
        except BaseBusinessException as e:
            logger.warning("Order rejected", error=e.to_dict())
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        http_status_code: int = 400,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.DATA_VALIDATION,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)

        self.message = self._sanitize_message(message)
        self.error_code = error_code
        self.http_status_code = http_status_code
        self.severity = severity
        self.category = category
        self.context = self._filter_sensitive_context(context or {})
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        self._log_exception()

    def _sanitize_message(self, message: str) -> str:
        """
        Redact credentials from an error message and cap its length.

        Args:
            message: Raw error message potentially containing secrets

        Returns:
            Message safe for logs and API payloads
        """
        sensitive_patterns = [
            r"password\s*[:=]\s*['\"][^'\"]*['\"]",
            r"token\s*[:=]\s*['\"][^'\"]*['\"]",
            r"secret\s*[:=]\s*['\"][^'\"]*['\"]",
            r"postgres(?:ql)?://[^\s/]*",
        ]

        sanitized = message
        for pattern in sensitive_patterns:
            sanitized = re.sub(pattern, "[REDACTED]", sanitized, flags=re.IGNORECASE)

        max_length = 500
        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length] + "... [TRUNCATED]"

        return sanitized

    def _filter_sensitive_context(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Replace values of sensitive keys with a placeholder."""
        filtered = {}
        for key, value in context.items():
            if key in SENSITIVE_CONTEXT_KEYS:
                filtered[key] = "[FILTERED]"
            elif isinstance(value, dict):
                filtered[key] = self._filter_sensitive_context(value)
            else:
                filtered[key] = value
        return filtered

    def _log_exception(self) -> None:
        """Emit a structured audit entry for the exception."""
        log_data = {
            'error_code': self.error_code,
            'error_category': self.category.value,
            'error_severity': self.severity.value,
            'http_status_code': self.http_status_code,
            'context': self.context,
            'cause_type': type(self.cause).__name__ if self.cause else None,
        }

        if self.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            logger.error(self.message, **log_data)
        else:
            logger.warning(self.message, **log_data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format for JSON responses.

        Returns:
            Dictionary representation of the error
        """
        return {
            'error': True,
            'message': self.message,
            'error_code': self.error_code,
            'category': self.category.value,
            'severity': self.severity.value,
            'context': self.context,
            'timestamp': self.timestamp.isoformat(),
        }


class DataValidationError(BaseBusinessException):
    """
    Exception for order data that is not fit for the requested operation.

    Raised when a caller requests the clean record of a failed sanitization
    report. Carries the names of the failing fields, never their values.

    Example:
        raise DataValidationError(
            message="Order data failed sanitization",
            error_code="ORDER_SANITIZATION_FAILED",
            field_errors={'email': ['Email format is invalid after sanitization']},
        )
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        validation_errors: Optional[List[str]] = None,
        field_errors: Optional[Dict[str, List[str]]] = None,
        **kwargs
    ) -> None:
        kwargs.setdefault('http_status_code', 400)
        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)
        kwargs.setdefault('category', ErrorCategory.DATA_VALIDATION)

        context = kwargs.get('context') or {}
        if validation_errors:
            context['validation_errors'] = validation_errors
        if field_errors:
            context['field_errors'] = field_errors
        kwargs['context'] = context

        super().__init__(message, error_code, **kwargs)

        self.validation_errors = validation_errors or []
        self.field_errors = field_errors or {}


class ConfigurationError(BaseBusinessException):
    """
    Exception for sanitizer configuration failures.

    Example:
        raise ConfigurationError(
            message="Field length limit must be positive",
            error_code="INVALID_FIELD_LIMIT",
            config_key="SANITIZER_NAME_MAX_LENGTH",
        )
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        config_key: Optional[str] = None,
        config_source: Optional[str] = None,
        **kwargs
    ) -> None:
        kwargs.setdefault('http_status_code', 500)
        kwargs.setdefault('severity', ErrorSeverity.CRITICAL)
        kwargs.setdefault('category', ErrorCategory.CONFIGURATION)

        context = kwargs.get('context') or {}
        if config_key:
            context['config_key'] = config_key
        if config_source:
            context['config_source'] = config_source
        kwargs['context'] = context

        super().__init__(message, error_code, **kwargs)

        self.config_key = config_key
        self.config_source = config_source


__all__ = [
    'ErrorSeverity',
    'ErrorCategory',
    'BaseBusinessException',
    'DataValidationError',
    'ConfigurationError',
]
