"""
Structured Logging for the Order Intake Layer

This module configures structlog on top of the Python standard logging package for the
order sanitization pipeline and its Flask host application. Every log event is enriched
with a correlation identifier and, inside a Flask request, with request metadata, and is
scrubbed of customer data before rendering.

Key Features:
- structlog bound loggers rendered as JSON (production) or console text (development)
- Correlation ID tracking through a context variable, mirrored on Flask ``g``
- Flask request context enrichment (method, path, endpoint)
- PII redaction processor for sensitive keys and card/phone/account-like numbers
- ``contains_sensitive_data`` helper for free-text messages bound for monitoring

Usage:
    configure_logging(TestingConfig)
    logger = get_logger(__name__)
    logger.info("Order sanitized", duration_ms=1.2)
"""

import logging
import logging.config
import re
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Any, Callable, Mapping, Optional

import structlog
from flask import Flask, g, has_request_context, request

# Correlation ID context variable for request tracking
correlation_id_context: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

FILTERED = '[FILTERED]'
REDACTED = '[REDACTED]'

# Event keys whose values never reach a log line
SENSITIVE_KEYS = {
    'email', 'phone', 'account_name', 'accountName', 'account_number', 'accountNumber',
    'payment_method', 'paymentMethod', 'last_name', 'lastName', 'first_name', 'firstName',
    'password', 'token', 'secret', 'api_key', 'authorization',
}

# Key names and number shapes that mark free text as sensitive
SENSITIVE_TEXT_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'password',
        r'mot\s*de\s*passe',
        r'account[_-]?number',
        r'payment[_-]?method',
        r'account[_-]?name',
        r'client[_-]?email',
        r'client[_-]?phone',
        r'private[_-]?key',
        r'connection[_-]?string',
    )
]

# Value shapes replaced inside otherwise loggable strings
SENSITIVE_VALUE_PATTERNS = [
    re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'),  # email addresses
    re.compile(r'\b(?:\d{4}[ -]?){3}\d{4}\b'),  # card numbers
    re.compile(r'\b(?:\d{3}[ -]?){2}\d{4}\b'),  # phone numbers
    re.compile(r'\b\d{8,}\b'),  # account numbers
]

# Keys added by processors that must not be scrubbed
PASSTHROUGH_KEYS = {'timestamp', 'level', 'logger', 'correlation_id'}


def contains_sensitive_data(text: Any) -> bool:
    """
    Tell whether free text looks like it carries secrets or customer data.

    Args:
        text: Message to inspect; non-strings are never sensitive

    Returns:
        True when a sensitive key name or number shape is present
    """
    if not text or not isinstance(text, str):
        return False
    patterns = SENSITIVE_TEXT_PATTERNS + SENSITIVE_VALUE_PATTERNS
    return any(pattern.search(text) for pattern in patterns)


def redact_sensitive_values(value: Any) -> Any:
    """Recursively replace sensitive keys and number shapes in a log value."""
    if isinstance(value, str):
        for pattern in SENSITIVE_VALUE_PATTERNS:
            value = pattern.sub(REDACTED, value)
        return value
    if isinstance(value, Mapping):
        return {
            key: FILTERED if key in SENSITIVE_KEYS else redact_sensitive_values(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact_sensitive_values(item) for item in value)
    return value


class CorrelationManager:
    """
    Correlation ID management for request tracking across log lines.

    IDs have the form ``{timestamp}-{instance_id}-{counter}``.
    """

    _counter = count(1)
    _lock = Lock()
    _instance_id = str(uuid.uuid4())[:8]

    def generate_correlation_id(self) -> str:
        with self._lock:
            sequence = next(self._counter)
        timestamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S')
        return f"{timestamp}-{self._instance_id}-{sequence:06d}"

    def set_correlation_id(self, correlation_id: Optional[str] = None) -> str:
        """
        Set correlation ID in context with automatic generation if not provided.

        Args:
            correlation_id: Optional correlation ID, generated if None

        Returns:
            The correlation ID that was set
        """
        if correlation_id is None:
            correlation_id = self.generate_correlation_id()

        correlation_id_context.set(correlation_id)

        if has_request_context():
            g.correlation_id = correlation_id

        return correlation_id

    def get_correlation_id(self) -> Optional[str]:
        correlation_id = correlation_id_context.get()
        if correlation_id:
            return correlation_id

        if has_request_context() and hasattr(g, 'correlation_id'):
            return g.correlation_id

        return None

    def clear_correlation_id(self) -> None:
        correlation_id_context.set(None)

        if has_request_context() and hasattr(g, 'correlation_id'):
            delattr(g, 'correlation_id')


def create_correlation_processor() -> Callable:
    """
    Create structlog processor for correlation ID enrichment.

    Returns:
        Processor function for structlog
    """
    correlation_manager = CorrelationManager()

    def processor(logger, method_name, event_dict):
        correlation_id = correlation_manager.get_correlation_id()
        if correlation_id:
            event_dict['correlation_id'] = correlation_id
        return event_dict

    return processor


def create_request_context_processor() -> Callable:
    """
    Create structlog processor for Flask request context enrichment.

    Returns:
        Processor function for structlog
    """
    def processor(logger, method_name, event_dict):
        if has_request_context():
            event_dict.setdefault('request_method', request.method)
            event_dict.setdefault('request_path', request.path)
            if request.endpoint:
                event_dict.setdefault('request_endpoint', request.endpoint)
        return event_dict

    return processor


def create_redaction_processor(enabled: bool = True) -> Callable:
    """
    Create structlog processor removing customer data from log events.

    Returns:
        Processor function for structlog
    """
    def processor(logger, method_name, event_dict):
        if not enabled:
            return event_dict
        for key in list(event_dict):
            if key in PASSTHROUGH_KEYS:
                continue
            if key in SENSITIVE_KEYS:
                event_dict[key] = FILTERED
            else:
                event_dict[key] = redact_sensitive_values(event_dict[key])
        return event_dict

    return processor


def _setting(config: Any, key: str, default: Any) -> Any:
    if config is None:
        return default
    if isinstance(config, Mapping):
        return config.get(key, default)
    return getattr(config, key, default)


def build_processors(config: Any = None) -> list:
    """Processor chain shared by every renderer."""
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        create_redaction_processor(_setting(config, 'LOG_REDACT_PII', True)),
        structlog.processors.TimeStamper(fmt="ISO"),
        create_correlation_processor(),
        create_request_context_processor(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(config: Any = None, app: Optional[Flask] = None) -> structlog.stdlib.BoundLogger:
    """
    Configure structlog and standard logging for the order intake layer.

    Args:
        config: Configuration class or mapping (``LOG_LEVEL``, ``LOG_FORMAT``,
            ``LOG_REDACT_PII``, ``LOG_CACHE_LOGGERS``); ``app.config`` is used
            when omitted and an app is given
        app: Optional Flask application being configured

    Returns:
        Configured structured logger instance
    """
    if config is None and app is not None:
        config = app.config

    log_level = str(_setting(config, 'LOG_LEVEL', 'INFO')).upper()
    log_format = _setting(config, 'LOG_FORMAT', 'json')

    processors = build_processors(config)
    if log_format == 'console':
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=bool(_setting(config, 'LOG_CACHE_LOGGERS', True)),
    )

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'structured': {
                'format': '%(message)s'
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'structured',
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            '': {
                'handlers': ['console'],
                'level': log_level,
            }
        }
    })

    app_name = _setting(config, 'APP_NAME', 'storefront')
    logger = structlog.get_logger(app_name)
    logger.info(
        "Structured logging initialized",
        log_level=log_level,
        log_format=log_format,
        flask_app=app.name if app is not None else None,
    )

    return logger


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance with optional name.

    Args:
        name: Logger name, defaults to the application name

    Returns:
        Configured structured logger
    """
    return structlog.get_logger(name or 'storefront')


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID for the current context, generating one if None."""
    return CorrelationManager().set_correlation_id(correlation_id)


def get_correlation_id() -> Optional[str]:
    return CorrelationManager().get_correlation_id()


def clear_correlation_id() -> None:
    CorrelationManager().clear_correlation_id()


__all__ = [
    'correlation_id_context',
    'SENSITIVE_KEYS',
    'contains_sensitive_data',
    'redact_sensitive_values',
    'CorrelationManager',
    'create_correlation_processor',
    'create_request_context_processor',
    'create_redaction_processor',
    'build_processors',
    'configure_logging',
    'get_logger',
    'set_correlation_id',
    'get_correlation_id',
    'clear_correlation_id',
]
