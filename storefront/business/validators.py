"""
Order Validation Gates

This module holds the checks that surround the sanitization pipeline rather than
replace it:

- ``pre_validate_order_data``: a cheap fast-fail gate run on the raw record before
  sanitization. It uses a marshmallow schema for required-field presence and two
  lightweight regexes for obvious script and SQL payloads. Passing it proves nothing
  about safety; the sanitizers remain the correctness boundary.
- ``validate_business_rules``: consistency rules over a sanitized order, executed by
  a ``BusinessRuleEngine`` registry. Rules produce warnings (informational) or
  violations (the order should not be accepted).
- ``validate_sanitized_data_safety``: a last-line check before persistence.

None of these functions mutate their input or raise.
"""

import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import structlog
from email_validator import EmailNotValidError, validate_email
from marshmallow import INCLUDE, Schema, ValidationError, fields

from storefront.business.models import (
    ORDER_FIELDS,
    BusinessRuleResult,
    PreValidationResult,
    PreValidationSummary,
    SafetyCheckResult,
)
from storefront.config.settings import SanitizerConfig, get_sanitizer_config
from storefront.monitoring.metrics import SanitizationMetrics, get_metrics

logger = structlog.get_logger("storefront.business.validators")

# A rule returns None when satisfied, otherwise ('warning' | 'violation', message)
RuleOutcome = Optional[Tuple[str, str]]
RuleFunction = Callable[[Mapping[str, Any]], RuleOutcome]

WARNING = 'warning'
VIOLATION = 'violation'

NO_SANITIZED_DATA = 'No sanitized data provided'
NO_DATA_PROVIDED = 'No data provided'

SCRIPT_PATTERN = re.compile(r'<script|javascript:|onload=|onerror=', re.IGNORECASE)
SQL_PATTERN = re.compile(r'(\bDROP\b|\bDELETE\b|\bUNION\b.*\bSELECT\b)', re.IGNORECASE)
NON_DIGIT = re.compile(r'\D')

MIN_PHONE_HINT_DIGITS = 6
LOCAL_PHONE_DIGITS = 8
MIN_INTERNATIONAL_DIGITS = 11
LOW_FEE = 10
HIGH_FEE = 100000


# ============================================================================
# BUSINESS RULE ENGINE
# ============================================================================

class BusinessRuleEngine:
    """
    Registry of order consistency rules.

    Rules run independently in registration order. A rule that raises is
    counted as a violation so a broken rule can never let an order through
    unnoticed.

    Example:
        engine = BusinessRuleEngine()
        engine.register_rule('no_test_accounts', lambda order: None)
        result = engine.execute(order_values)
    """

    def __init__(self, metrics: Optional[SanitizationMetrics] = None, register_defaults: bool = True):
        self.rules: Dict[str, Dict[str, Any]] = {}
        self.metrics = metrics
        if register_defaults:
            self._register_default_rules()

    def register_rule(self, rule_name: str, rule_function: RuleFunction, description: str = '') -> None:
        """
        Register a rule with the engine.

        Args:
            rule_name: Unique name, also used as the metric label
            rule_function: Callable taking the camelCase order mapping
            description: Human readable summary of the rule
        """
        self.rules[rule_name] = {
            'function': rule_function,
            'description': description,
            'execution_count': 0,
            'failure_count': 0,
        }
        logger.debug("Business rule registered", rule_name=rule_name)

    def _record(self, rule_name: str, result: str) -> None:
        metrics = self.metrics
        if metrics is None and get_sanitizer_config().metrics_enabled:
            metrics = get_metrics()
        if metrics is None:
            return
        try:
            metrics.record_business_rule(rule_name, result)
        except Exception:
            logger.debug("Business rule metric not recorded", rule_name=rule_name, exc_info=True)

    def execute_rule(self, rule_name: str, order: Mapping[str, Any]) -> RuleOutcome:
        rule_config = self.rules[rule_name]
        rule_config['execution_count'] += 1

        try:
            outcome = rule_config['function'](order)
        except Exception as e:
            rule_config['failure_count'] += 1
            logger.warning(
                "Business rule execution failed",
                rule_name=rule_name,
                error_type=type(e).__name__,
            )
            self._record(rule_name, 'error')
            return VIOLATION, f"Business rule {rule_name} could not be evaluated"

        if outcome is not None and outcome[0] == VIOLATION:
            rule_config['failure_count'] += 1
        self._record(rule_name, outcome[0] if outcome is not None else 'passed')
        return outcome

    def execute(self, order: Mapping[str, Any]) -> BusinessRuleResult:
        violations: List[str] = []
        warnings: List[str] = []

        for rule_name in list(self.rules):
            outcome = self.execute_rule(rule_name, order)
            if outcome is None:
                continue
            kind, message = outcome
            if kind == VIOLATION:
                violations.append(message)
            else:
                warnings.append(message)

        result = BusinessRuleResult(
            valid=not violations,
            violations=violations,
            warnings=warnings,
            rules_passed=len(self.rules) - len(violations),
            total_rules=len(self.rules),
        )

        logger.info(
            "Business rules evaluated",
            valid=result.valid,
            violations_count=len(violations),
            warnings_count=len(warnings),
            total_rules=result.total_rules,
        )
        return result

    def get_rule_statistics(self) -> Dict[str, Dict[str, int]]:
        return {
            rule_name: {
                'execution_count': rule_config['execution_count'],
                'failure_count': rule_config['failure_count'],
            }
            for rule_name, rule_config in self.rules.items()
        }

    def _register_default_rules(self) -> None:
        self.register_rule('identical_names', identical_names_rule,
                           'Last name and first name should differ')
        self.register_rule('email_name_consistency', email_name_consistency_rule,
                           'Email local part unrelated to the first name and looking like admin/test')
        self.register_rule('realistic_fee', realistic_fee_rule,
                           'Application fee within a realistic range')
        self.register_rule('phone_digit_count', phone_digit_count_rule,
                           'Phone number long enough for its format')
        self.register_rule('account_name_number_distinct', account_name_number_rule,
                           'Account name and account number should differ')


def _text(order: Mapping[str, Any], field_name: str) -> str:
    value = order.get(field_name)
    return value if isinstance(value, str) else ''


def identical_names_rule(order: Mapping[str, Any]) -> RuleOutcome:
    last_name, first_name = _text(order, 'lastName'), _text(order, 'firstName')
    if last_name and first_name and last_name.lower() == first_name.lower():
        return WARNING, 'Last name and first name are identical'
    return None


def email_name_consistency_rule(order: Mapping[str, Any]) -> RuleOutcome:
    email, first_name = _text(order, 'email'), _text(order, 'firstName')
    if not email or not first_name:
        return None

    local_part = email.split('@')[0].lower()
    first_name = first_name.lower()
    if first_name in local_part or local_part[:3] in first_name:
        return None
    if 'admin' in local_part or 'test' in local_part:
        return WARNING, 'Suspicious email address (admin/test)'
    return None


def realistic_fee_rule(order: Mapping[str, Any]) -> RuleOutcome:
    fee = order.get('applicationFee')
    if isinstance(fee, bool) or not isinstance(fee, (int, float)) or not fee:
        return None
    if fee < LOW_FEE:
        return WARNING, 'Application fee is very low'
    if fee > HIGH_FEE:
        return WARNING, 'Application fee is very high'
    return None


def phone_digit_count_rule(order: Mapping[str, Any]) -> RuleOutcome:
    phone = _text(order, 'phone')
    if not phone:
        return None

    digits = NON_DIGIT.sub('', phone)
    if digits.startswith('00'):
        if len(digits) < MIN_INTERNATIONAL_DIGITS:
            return VIOLATION, 'International phone number is too short'
        return None
    if len(digits) == LOCAL_PHONE_DIGITS:
        return None
    if len(digits) < LOCAL_PHONE_DIGITS:
        return VIOLATION, 'Phone number is too short'
    return None


def account_name_number_rule(order: Mapping[str, Any]) -> RuleOutcome:
    account_name, account_number = _text(order, 'accountName'), _text(order, 'accountNumber')
    if account_name and account_number and account_name.lower() == account_number.lower():
        return VIOLATION, 'Account name and account number are identical'
    return None


business_rule_engine = BusinessRuleEngine()


def _order_values(record: Any) -> Optional[Mapping[str, Any]]:
    if hasattr(record, 'to_persistence_dict'):
        return record.to_persistence_dict()
    if isinstance(record, Mapping):
        return record
    return None


def validate_business_rules(record: Any, engine: Optional[BusinessRuleEngine] = None) -> BusinessRuleResult:
    """
    Run the consistency rules against a sanitized order.

    Args:
        record: ``SanitizedOrderRecord`` or camelCase mapping
        engine: Rule registry, the module-level one by default

    Returns:
        BusinessRuleResult; ``valid`` is False when any rule reports a violation
    """
    engine = engine or business_rule_engine
    order = _order_values(record)
    if order is None:
        return BusinessRuleResult(
            valid=False,
            violations=[NO_SANITIZED_DATA],
            warnings=[],
            rules_passed=0,
            total_rules=len(engine.rules),
        )
    return engine.execute(order)


# ============================================================================
# PRE-VALIDATION GATE
# ============================================================================

def _not_blank(value: Any) -> None:
    if not value or (isinstance(value, str) and not value.strip()):
        raise ValidationError('Field must not be empty.')


def _required(data_key: str) -> fields.Raw:
    return fields.Raw(required=True, allow_none=False, validate=_not_blank, data_key=data_key)


class OrderPreValidationSchema(Schema):
    """Required-field presence for raw orders; unknown fields pass through."""

    class Meta:
        unknown = INCLUDE

    last_name = _required('lastName')
    first_name = _required('firstName')
    email = _required('email')
    phone = _required('phone')
    payment_method = _required('paymentMethod')
    account_name = _required('accountName')
    account_number = _required('accountNumber')
    application_id = _required('applicationId')
    application_fee = _required('applicationFee')


order_pre_validation_schema = OrderPreValidationSchema()


def _email_looks_invalid(email: str) -> bool:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return True
    return False


def pre_validate_order_data(
    raw_data: Any,
    *,
    config: Optional[SanitizerConfig] = None,
    metrics: Optional[SanitizationMetrics] = None,
) -> PreValidationResult:
    """
    Fast-fail gate for raw orders.

    ``critical`` entries (missing fields, oversized strings, obvious script or
    SQL payloads) mean the order should not enter the pipeline; ``issues`` are
    soft format hints for email and phone.
    """
    settings = config if config is not None else get_sanitizer_config()
    if metrics is None and settings.metrics_enabled:
        metrics = get_metrics()

    if not isinstance(raw_data, Mapping):
        result = PreValidationResult(
            passed=False,
            issues=[NO_DATA_PROVIDED],
            critical=[NO_DATA_PROVIDED],
            can_proceed=False,
        )
        _record_prevalidation(metrics, result)
        return result

    critical: List[str] = []
    issues: List[str] = []

    errors = order_pre_validation_schema.validate(dict(raw_data))
    missing = [field_name for field_name in ORDER_FIELDS if field_name in errors]
    critical.extend(f"Missing required field: {field_name}" for field_name in missing)

    for field_name, value in raw_data.items():
        if not isinstance(value, str):
            continue
        if len(value) > settings.prevalidation_max_length:
            critical.append(f"{field_name} is excessively long")
        if SCRIPT_PATTERN.search(value):
            critical.append(f"{field_name} contains dangerous script patterns")
        if SQL_PATTERN.search(value):
            critical.append(f"{field_name} contains SQL injection patterns")

    email = raw_data.get('email')
    if isinstance(email, str) and email and _email_looks_invalid(email):
        issues.append('Email format appears invalid')

    phone = raw_data.get('phone')
    if isinstance(phone, str) and phone and len(NON_DIGIT.sub('', phone)) < MIN_PHONE_HINT_DIGITS:
        issues.append('Phone number appears too short')

    result = PreValidationResult(
        passed=not critical,
        issues=issues,
        critical=critical,
        can_proceed=not critical,
        summary=PreValidationSummary(
            total_fields=len(raw_data),
            required_fields_missing=len(missing),
            critical_issues=len(critical),
            minor_issues=len(issues),
        ),
    )

    if critical:
        logger.warning(
            "Order blocked by pre-validation",
            critical_count=len(critical),
            missing_fields=missing,
        )
    _record_prevalidation(metrics, result)
    return result


def _record_prevalidation(metrics: Optional[SanitizationMetrics], result: PreValidationResult) -> None:
    if metrics is None:
        return
    try:
        metrics.record_prevalidation(result.passed)
    except Exception:
        logger.debug("Pre-validation metric not recorded", exc_info=True)


# ============================================================================
# PRE-PERSISTENCE SAFETY CHECK
# ============================================================================

def validate_sanitized_data_safety(record: Any) -> SafetyCheckResult:
    """Last check on a sanitized order before it is handed to persistence."""
    order = _order_values(record)
    if not order:
        return SafetyCheckResult(
            safe=False,
            issues=[NO_SANITIZED_DATA],
            recommendations=['Perform sanitization first'],
            timestamp=datetime.now(timezone.utc),
        )

    issues: List[str] = []
    recommendations: List[str] = []

    for field_name, value in order.items():
        if not value:
            issues.append(f"{field_name} is empty after sanitization")
            recommendations.append(f"Review {field_name} validation rules")

        if field_name == 'email' and value and '@' not in str(value):
            issues.append('Email format invalid after sanitization')

        if field_name == 'applicationFee' and (
            isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0
        ):
            issues.append('Application fee invalid after sanitization')

    return SafetyCheckResult(
        safe=not issues,
        issues=issues,
        recommendations=recommendations,
        fields_count=len(order),
        timestamp=datetime.now(timezone.utc),
    )


__all__ = [
    'BusinessRuleEngine',
    'business_rule_engine',
    'validate_business_rules',
    'OrderPreValidationSchema',
    'pre_validate_order_data',
    'validate_sanitized_data_safety',
]
