"""
Storefront Order Intake
=======================

Input-sanitization and validation layer for storefront order records. Untrusted order
fields (names, email, phone, identifiers, account data, fee) are cleaned field by field,
aggregated into an all-or-nothing verdict, checked against business rules and reported
to developers, end users and monitoring without leaking personal data.

Typical flow:
    from storefront import pre_validate_order_data, sanitize_order_data

    gate = pre_validate_order_data(raw_order)
    if gate.can_proceed:
        report = sanitize_order_data(raw_order)
        if report.success:
            repository.save(report.sanitized.to_persistence_dict())
        else:
            return format_sanitization_errors_for_user(report.issues)
"""

from storefront.business.exceptions import BaseBusinessException, ConfigurationError, DataValidationError
from storefront.business.models import OrderSanitizationReport, RawOrderRecord, SanitizedOrderRecord
from storefront.business.processors import sanitize_order_data
from storefront.business.reporting import (
    create_secure_log_hash,
    format_sanitization_errors_for_user,
    generate_sanitization_report,
)
from storefront.business.sanitizers import (
    sanitize_account_info,
    sanitize_application_fee,
    sanitize_email,
    sanitize_name,
    sanitize_phone,
    sanitize_uuid,
)
from storefront.business.validators import (
    pre_validate_order_data,
    validate_business_rules,
    validate_sanitized_data_safety,
)
from storefront.config.settings import SanitizerConfig, get_sanitizer_config, init_app

# Package metadata
__version__ = "1.0.0"
__title__ = "Storefront Order Intake"
__description__ = "Sanitization and validation layer for storefront order records"

__all__ = [
    '__version__',
    'BaseBusinessException',
    'ConfigurationError',
    'DataValidationError',
    'OrderSanitizationReport',
    'RawOrderRecord',
    'SanitizedOrderRecord',
    'sanitize_order_data',
    'create_secure_log_hash',
    'format_sanitization_errors_for_user',
    'generate_sanitization_report',
    'sanitize_account_info',
    'sanitize_application_fee',
    'sanitize_email',
    'sanitize_name',
    'sanitize_phone',
    'sanitize_uuid',
    'pre_validate_order_data',
    'validate_business_rules',
    'validate_sanitized_data_safety',
    'SanitizerConfig',
    'get_sanitizer_config',
    'init_app',
]
