"""
Order Intake Configuration Classes

This module implements environment-specific settings (Development, Testing, Production)
for the storefront order intake layer following the Flask configuration-object pattern.
Settings are plain class attributes read from the environment via python-dotenv, so a
Flask application can load them with ``app.config.from_object()`` and the sanitization
pipeline can read the same values outside of an application context.

Key Components:
- Environment-specific configuration classes loaded through python-dotenv
- Field length limits, fee bounds and pre-validation limits for order sanitization
- Performance grading thresholds for the sanitization pipeline
- Structured logging, monitoring and Prometheus metrics switches
- ``SanitizerConfig``: immutable snapshot of the sanitizer knobs used by the pipeline
- ``init_app``: Flask extension-style initialization of configuration and logging

Usage:
    app = Flask(__name__)
    init_app(app, 'production')

    with app.app_context():
        config = get_sanitizer_config()
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Type

from dotenv import load_dotenv
from flask import Flask, current_app, has_app_context

from storefront.business.exceptions import ConfigurationError

# Load environment variables early
load_dotenv()

# Configure module logger
logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class BaseConfig:
    """
    Base configuration class providing common settings for all environments.

    Holds the sanitizer policy shared by every deployment; environment classes
    only override logging and monitoring behaviour.
    """

    # Application Metadata
    APP_NAME = os.getenv('APP_NAME', 'storefront')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')

    # Environment Configuration
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = False
    TESTING = False

    # Field length limits applied after threat filtering
    SANITIZER_FIELD_LIMITS = {
        'name': int(os.getenv('SANITIZER_NAME_MAX_LENGTH', '100')),
        'email': int(os.getenv('SANITIZER_EMAIL_MAX_LENGTH', '150')),
        'phone': int(os.getenv('SANITIZER_PHONE_MAX_LENGTH', '25')),
        'accountName': int(os.getenv('SANITIZER_ACCOUNT_NAME_MAX_LENGTH', '150')),
        'accountNumber': int(os.getenv('SANITIZER_ACCOUNT_NUMBER_MAX_LENGTH', '100')),
    }

    # Application fee bounds (exclusive minimum, inclusive maximum)
    SANITIZER_FEE_MIN = float(os.getenv('SANITIZER_FEE_MIN', '0'))
    SANITIZER_FEE_MAX = float(os.getenv('SANITIZER_FEE_MAX', '1000000'))

    # Pre-validation gate
    SANITIZER_PREVALIDATION_MAX_LENGTH = int(os.getenv('SANITIZER_PREVALIDATION_MAX_LENGTH', '1000'))

    # Performance grading thresholds in milliseconds
    SANITIZER_PERFORMANCE_THRESHOLDS = {
        'excellent': float(os.getenv('SANITIZER_EXCELLENT_MS', '10')),
        'good': float(os.getenv('SANITIZER_GOOD_MS', '50')),
    }

    # Maximum number of critical issues forwarded to monitoring per order
    SANITIZER_CRITICAL_ISSUE_LOG_LIMIT = int(os.getenv('SANITIZER_CRITICAL_ISSUE_LOG_LIMIT', '10'))

    # Locale of the messages shown to end users ('en' or 'fr')
    SANITIZER_USER_MESSAGE_LOCALE = os.getenv('SANITIZER_USER_MESSAGE_LOCALE', 'en')

    # Monitoring and metrics
    MONITORING_ENABLED = _env_bool('MONITORING_ENABLED', 'true')
    METRICS_ENABLED = _env_bool('METRICS_ENABLED', 'true')

    # Structured logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')  # json, console
    LOG_REDACT_PII = _env_bool('LOG_REDACT_PII', 'true')
    LOG_CACHE_LOGGERS = _env_bool('LOG_CACHE_LOGGERS', 'true')


class DevelopmentConfig(BaseConfig):
    """Development configuration with human-readable console logs."""

    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG').upper()
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'console')


class TestingConfig(BaseConfig):
    """
    Testing environment configuration optimized for automated testing.

    Logger caching is disabled so tests can capture structlog output, and
    metrics stay enabled so counters can be asserted on.
    """

    TESTING = True
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    LOG_FORMAT = 'console'
    LOG_CACHE_LOGGERS = False


class ProductionConfig(BaseConfig):
    """Production configuration with JSON logs for log aggregation."""

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING').upper()
    LOG_FORMAT = 'json'
    LOG_REDACT_PII = True


config_map: Dict[str, Type[BaseConfig]] = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,

    # Aliases for convenience
    'dev': DevelopmentConfig,
    'test': TestingConfig,
    'prod': ProductionConfig,
}


def get_config(environment: Optional[str] = None) -> Type[BaseConfig]:
    """
    Get configuration class for the specified environment.

    Args:
        environment: Target environment name (defaults to FLASK_ENV)

    Returns:
        Configuration class for the specified environment

    Raises:
        ConfigurationError: If environment is not supported
    """
    if environment is None:
        environment = os.getenv('FLASK_ENV', 'development')

    environment = environment.lower()

    if environment not in config_map:
        raise ConfigurationError(
            message=(
                f"Unsupported environment '{environment}'. "
                f"Supported environments: {list(config_map.keys())}"
            ),
            error_code="UNSUPPORTED_ENVIRONMENT",
            config_key="FLASK_ENV",
            config_source="environment",
        )

    return config_map[environment]


@dataclass(frozen=True)
class SanitizerConfig:
    """
    Immutable snapshot of the sanitizer policy.

    Built from a configuration class or a Flask ``app.config`` mapping and
    passed down to every sanitizer, validator and reporting helper.
    """

    field_limits: Dict[str, int] = field(default_factory=lambda: dict(BaseConfig.SANITIZER_FIELD_LIMITS))
    fee_min: float = BaseConfig.SANITIZER_FEE_MIN
    fee_max: float = BaseConfig.SANITIZER_FEE_MAX
    prevalidation_max_length: int = BaseConfig.SANITIZER_PREVALIDATION_MAX_LENGTH
    performance_thresholds: Dict[str, float] = field(
        default_factory=lambda: dict(BaseConfig.SANITIZER_PERFORMANCE_THRESHOLDS)
    )
    critical_issue_log_limit: int = BaseConfig.SANITIZER_CRITICAL_ISSUE_LOG_LIMIT
    user_message_locale: str = BaseConfig.SANITIZER_USER_MESSAGE_LOCALE
    monitoring_enabled: bool = BaseConfig.MONITORING_ENABLED
    metrics_enabled: bool = BaseConfig.METRICS_ENABLED

    def __post_init__(self) -> None:
        issues = validate_sanitizer_settings(self)
        if issues:
            raise ConfigurationError(
                message=f"Invalid sanitizer configuration: {'; '.join(issues)}",
                error_code="INVALID_SANITIZER_CONFIG",
                context={'issues': issues},
            )

    def limit_for(self, field_name: str) -> int:
        """Length cap for a field; first and last names share the 'name' cap."""
        if field_name in ('lastName', 'firstName'):
            field_name = 'name'
        return self.field_limits[field_name]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'SanitizerConfig':
        """
        Build a snapshot from a configuration mapping such as ``app.config``.

        Missing keys fall back to ``BaseConfig`` values.
        """
        defaults = BaseConfig
        limits = dict(defaults.SANITIZER_FIELD_LIMITS)
        limits.update(mapping.get('SANITIZER_FIELD_LIMITS') or {})
        thresholds = dict(defaults.SANITIZER_PERFORMANCE_THRESHOLDS)
        thresholds.update(mapping.get('SANITIZER_PERFORMANCE_THRESHOLDS') or {})

        return cls(
            field_limits=limits,
            fee_min=float(mapping.get('SANITIZER_FEE_MIN', defaults.SANITIZER_FEE_MIN)),
            fee_max=float(mapping.get('SANITIZER_FEE_MAX', defaults.SANITIZER_FEE_MAX)),
            prevalidation_max_length=int(mapping.get(
                'SANITIZER_PREVALIDATION_MAX_LENGTH', defaults.SANITIZER_PREVALIDATION_MAX_LENGTH
            )),
            performance_thresholds=thresholds,
            critical_issue_log_limit=int(mapping.get(
                'SANITIZER_CRITICAL_ISSUE_LOG_LIMIT', defaults.SANITIZER_CRITICAL_ISSUE_LOG_LIMIT
            )),
            user_message_locale=mapping.get(
                'SANITIZER_USER_MESSAGE_LOCALE', defaults.SANITIZER_USER_MESSAGE_LOCALE
            ),
            monitoring_enabled=bool(mapping.get('MONITORING_ENABLED', defaults.MONITORING_ENABLED)),
            metrics_enabled=bool(mapping.get('METRICS_ENABLED', defaults.METRICS_ENABLED)),
        )

    @classmethod
    def from_object(cls, config_class: Type[BaseConfig]) -> 'SanitizerConfig':
        """Build a snapshot from a configuration class."""
        mapping = {key: getattr(config_class, key) for key in dir(config_class) if key.isupper()}
        return cls.from_mapping(mapping)


REQUIRED_FIELD_LIMITS = ('name', 'email', 'phone', 'accountName', 'accountNumber')


def validate_sanitizer_settings(config: SanitizerConfig) -> List[str]:
    """
    Validate sanitizer settings and return list of issues.

    Args:
        config: Sanitizer configuration to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []

    for key in REQUIRED_FIELD_LIMITS:
        limit = config.field_limits.get(key)
        if limit is None:
            issues.append(f"Field limit for '{key}' is required")
        elif limit < 2:
            issues.append(f"Field limit for '{key}' must be at least 2")

    if config.fee_min < 0:
        issues.append("SANITIZER_FEE_MIN must not be negative")
    if config.fee_max <= config.fee_min:
        issues.append("SANITIZER_FEE_MAX must be greater than SANITIZER_FEE_MIN")

    if config.prevalidation_max_length <= 0:
        issues.append("SANITIZER_PREVALIDATION_MAX_LENGTH must be positive")

    excellent = config.performance_thresholds.get('excellent')
    good = config.performance_thresholds.get('good')
    if excellent is None or good is None:
        issues.append("Performance thresholds require 'excellent' and 'good' values")
    elif not 0 < excellent < good:
        issues.append("Performance thresholds must satisfy 0 < excellent < good")

    if config.critical_issue_log_limit < 1:
        issues.append("SANITIZER_CRITICAL_ISSUE_LOG_LIMIT must be at least 1")

    if config.user_message_locale not in ('en', 'fr'):
        issues.append(f"Unsupported user message locale '{config.user_message_locale}'")

    return issues


def validate_configuration(config: Type[BaseConfig]) -> List[str]:
    """
    Validate a configuration class and return list of issues.

    Args:
        config: Configuration class to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []

    if config.LOG_FORMAT not in ('json', 'console'):
        issues.append(f"LOG_FORMAT must be 'json' or 'console', got '{config.LOG_FORMAT}'")

    if not config.DEBUG and not config.LOG_REDACT_PII:
        issues.append("LOG_REDACT_PII must be enabled in non-debug environments")

    try:
        SanitizerConfig.from_object(config)
    except ConfigurationError as e:
        issues.extend(e.context.get('issues', [e.message]))

    logger.info(
        "Configuration validation completed",
        extra={
            'config_class': config.__name__,
            'issues_found': len(issues),
        }
    )

    return issues


_default_sanitizer_config: Optional[SanitizerConfig] = None


def get_sanitizer_config() -> SanitizerConfig:
    """
    Resolve the sanitizer configuration for the current context.

    Inside a Flask application context the snapshot stored by ``init_app``
    (or one built from ``current_app.config``) is returned; otherwise the
    configuration class selected by FLASK_ENV is used.
    """
    global _default_sanitizer_config

    if has_app_context():
        extension_state = current_app.extensions.get('storefront')
        if extension_state is not None:
            return extension_state['sanitizer_config']
        return SanitizerConfig.from_mapping(current_app.config)

    if _default_sanitizer_config is None:
        _default_sanitizer_config = SanitizerConfig.from_object(get_config())
    return _default_sanitizer_config


def init_app(app: Flask, environment: Optional[str] = None) -> SanitizerConfig:
    """
    Load order intake configuration into a Flask application.

    Args:
        app: Flask application to configure
        environment: Target environment name (defaults to FLASK_ENV)

    Returns:
        The sanitizer configuration snapshot registered on the application
    """
    from storefront.monitoring.logging import configure_logging

    config_class = get_config(environment)
    app.config.from_object(config_class)

    issues = validate_configuration(config_class)
    if issues and not config_class.DEBUG:
        raise ConfigurationError(
            message=f"Configuration validation failed: {'; '.join(issues)}",
            error_code="CONFIGURATION_VALIDATION_FAILED",
            config_source=config_class.__name__,
        )

    sanitizer_config = SanitizerConfig.from_mapping(app.config)
    app.extensions['storefront'] = {'sanitizer_config': sanitizer_config}

    configure_logging(config_class, app)

    return sanitizer_config


__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'TestingConfig',
    'ProductionConfig',
    'config_map',
    'get_config',
    'SanitizerConfig',
    'validate_sanitizer_settings',
    'validate_configuration',
    'get_sanitizer_config',
    'init_app',
]
