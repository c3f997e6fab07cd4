"""
Order Intake Business Package

Business layer of the storefront order intake: field sanitizers, the order
sanitization aggregator, validation gates and reporting utilities.

Package Components:
    exceptions.py: Business exception hierarchy with structured logging
    models.py: Pydantic models for raw and sanitized orders and every result type
    sanitizers.py: Per-field sanitizers returning ``FieldSanitizationResult``
    processors.py: ``sanitize_order_data`` aggregator
    validators.py: Pre-validation gate, business rules and pre-persistence check
    reporting.py: Developer reports, localized user messages, log correlation hash

Only the exception and model modules are imported here; import the pipeline
modules directly (or from the top-level ``storefront`` package).
"""

from storefront.business.exceptions import (
    BaseBusinessException,
    ConfigurationError,
    DataValidationError,
    ErrorCategory,
    ErrorSeverity,
)
from storefront.business.models import (
    ORDER_FIELDS,
    BusinessRuleResult,
    FieldSanitizationResult,
    OrderSanitizationReport,
    PreValidationResult,
    RawOrderRecord,
    SafetyCheckResult,
    SanitizedOrderRecord,
    SecureLogHash,
)

__all__ = [
    'BaseBusinessException',
    'ConfigurationError',
    'DataValidationError',
    'ErrorCategory',
    'ErrorSeverity',
    'ORDER_FIELDS',
    'BusinessRuleResult',
    'FieldSanitizationResult',
    'OrderSanitizationReport',
    'PreValidationResult',
    'RawOrderRecord',
    'SafetyCheckResult',
    'SanitizedOrderRecord',
    'SecureLogHash',
]
