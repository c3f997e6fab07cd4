"""
Order Field Sanitizers

This module provides one sanitizer per semantic order field: person name, email address,
phone number, UUID-like identifier, account name, account number and application fee.
Every sanitizer is a pure function returning a complete ``FieldSanitizationResult``.

Each string sanitizer runs the same stages:
1. Type/emptiness guard
2. Threat filters (control characters, XSS patterns, SQL patterns, whitespace)
3. Field length cap, recording a truncation issue
4. Allowed-character strip, recording an unauthorized-characters issue
5. Field-specific post-processing (title case, lower case, phone compaction)
6. Suspicious word detection (non-blocking)
7. Field-specific success predicate

Stages 2 and 4 repeat until the text stops changing, which makes every sanitizer
idempotent: feeding a sanitized value back in yields the same value.

Blocking problems set ``success`` to False. Soft signals (suspicious words, weak account
patterns, disposable email domains) are listed in ``issues`` and again in ``warnings``.

Any unexpected exception is caught at the sanitizer boundary, reported to the monitoring
collaborator with the field name and a truncated original value, and converted into a
failed result carrying one generic issue.
"""

import math
import numbers
import re
from decimal import Decimal
from functools import wraps
from typing import Any, Callable, List, Optional, Pattern

import structlog

from storefront.business.models import FieldSanitizationResult
from storefront.config.settings import SanitizerConfig, get_sanitizer_config
from storefront.monitoring.events import get_reporter, send_exception
from storefront.monitoring.metrics import get_metrics
from storefront.utils.sanitizers import detect_suspicious_words, filter_threats

logger = structlog.get_logger("storefront.business.sanitizers")

# Letter ranges: Latin-1 Supplement, Latin Extended-A/B, Latin Extended Additional
LETTERS = 'a-zA-Z\u00c0-\u00ff\u0100-\u017f\u0180-\u024f\u1e00-\u1eff'

NAME_CHARACTER = re.compile(rf"[{LETTERS}\s\-'.]")
NAME_DISALLOWED = re.compile(rf"[^{LETTERS}\s\-'.]")
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_DISALLOWED = re.compile(r'[^0-9\s+()\-.]')
PHONE_COMPACT = re.compile(r'[\s()]')
DIGIT = re.compile(r'[0-9]')
UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$',
    re.IGNORECASE,
)
ACCOUNT_NAME_DISALLOWED = re.compile(rf'[^{LETTERS}0-9\s@._-]')
ACCOUNT_NUMBER_DISALLOWED = re.compile(r'[^a-zA-Z0-9@._+-]')
ALPHANUMERIC = re.compile(r'[a-zA-Z0-9]')

DISPOSABLE_EMAIL_DOMAINS = ('tempmail', 'throwaway', '10minutemail', 'guerrillamail')
WEAK_ACCOUNT_PATTERNS = ('123456', '000000', 'aaaaaa', 'test', 'admin')

MIN_TEXT_LENGTH = 2
MIN_EMAIL_LENGTH = 6
MIN_PHONE_DIGITS = 8
MAX_PHONE_DIGITS = 15


def _config(config: Optional[SanitizerConfig]) -> SanitizerConfig:
    return config if config is not None else get_sanitizer_config()


def _empty_input(label: str, value: Any) -> FieldSanitizationResult:
    return FieldSanitizationResult(
        success=False,
        sanitized='',
        issues=[f"{label} is empty or invalid type"],
        original_length=len(value) if isinstance(value, str) else 0,
        sanitized_length=0,
    )


def _fallback_reporter(reporter: Any, config: Optional[SanitizerConfig]) -> Any:
    """Injected reporter, else the process-wide one only while monitoring is enabled."""
    if reporter is not None:
        return reporter
    try:
        if _config(config).monitoring_enabled:
            return get_reporter()
    except Exception:
        logger.debug("Monitoring reporter not resolved", exc_info=True)
    return None


def sanitizer_boundary(operation: str, default_label: str, empty_value: Any = '') -> Callable:
    """
    Decorator converting unexpected sanitizer exceptions into failed results.

    The wrapped sanitizer must accept ``(value, label, *, config, reporter)``.
    The exception is reported through the monitoring collaborator with the
    field label and the first 50 characters of the original value.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(value: Any, label: str = default_label, *, config=None, reporter=None):
            try:
                return func(value, label, config=config, reporter=reporter)
            except Exception as e:
                logger.error(
                    "Field sanitizer failed",
                    operation=operation,
                    field_name=label,
                    error_type=type(e).__name__,
                )
                send_exception(
                    _fallback_reporter(reporter, config),
                    e,
                    tags={'component': 'order_sanitizer', 'operation': operation},
                    extra={
                        'field_name': label,
                        'original_value': str(value)[:50] if value is not None else None,
                    },
                )
                try:
                    if _config(config).metrics_enabled:
                        get_metrics().record_sanitizer_error(label)
                except Exception:
                    logger.debug("Sanitizer error metric not recorded", field_name=label)

                return FieldSanitizationResult(
                    success=False,
                    sanitized=empty_value,
                    issues=[f"{label} sanitization error occurred"],
                    original_length=len(value) if isinstance(value, str) else 0,
                    sanitized_length=0 if empty_value == '' else None,
                )
        return wrapper
    return decorator


class _CleanedText:
    """Outcome of the shared threat filter, cap and strip stages."""

    def __init__(self, text: str, threats_removed: bool, truncated: bool, unauthorized: bool):
        self.text = text
        self.threats_removed = threats_removed
        self.truncated = truncated
        self.unauthorized = unauthorized

    def issues(self, label: str, limit: Optional[int]) -> List[str]:
        issues = []
        if self.threats_removed:
            issues.append(f"{label} contained suspicious content that was removed")
        if self.truncated:
            issues.append(f"{label} truncated to {limit} characters")
        if self.unauthorized:
            issues.append(f"{label} contained unauthorized characters")
        return issues


def _clean_text(
    value: str,
    limit: Optional[int],
    disallowed: Optional[Pattern[str]] = None,
    compact: Optional[Pattern[str]] = None,
) -> _CleanedText:
    filtered = filter_threats(value)
    text = filtered.text
    threats_removed = filtered.threats_removed

    truncated = False
    if limit is not None and len(text) > limit:
        refiltered = filter_threats(text[:limit])
        text = refiltered.text
        threats_removed = threats_removed or refiltered.threats_removed
        truncated = True

    unauthorized = False
    while True:
        stripped = text
        if disallowed is not None:
            stripped = disallowed.sub('', stripped)
            unauthorized = unauthorized or stripped != text
        if compact is not None:
            stripped = compact.sub('', stripped)

        refiltered = filter_threats(stripped)
        threats_removed = threats_removed or refiltered.threats_removed
        if refiltered.text == text:
            break
        text = refiltered.text

    return _CleanedText(text, threats_removed, truncated, unauthorized)


def _title_case(text: str) -> str:
    """Upper-case the first letter of each space-separated token, lower-case the rest."""
    def convert(char: str, upper: bool) -> str:
        converted = char.upper() if upper else char.lower()
        if len(converted) == 1 and NAME_CHARACTER.fullmatch(converted):
            return converted
        return char

    return ' '.join(
        ''.join(convert(char, index == 0) for index, char in enumerate(token))
        for token in text.split(' ')
    )


def _suspicious_word_issue(label: str, words: List[str]) -> List[str]:
    if not words:
        return []
    return [f"{label} contains suspicious words: {', '.join(words)}"]


def _result(
    success: bool,
    text: str,
    issues: List[str],
    warnings: List[str],
    original: str,
    suspicious_words: Optional[List[str]] = None,
    digit_count: Optional[int] = None,
) -> FieldSanitizationResult:
    return FieldSanitizationResult(
        success=success,
        sanitized=text if success else '',
        issues=issues,
        warnings=warnings,
        original_length=len(original),
        sanitized_length=len(text) if success else 0,
        suspicious_words=suspicious_words or [],
        digit_count=digit_count,
    )


@sanitizer_boundary('sanitize_name', 'name')
def sanitize_name(value: Any, label: str = 'name', *, config=None, reporter=None) -> FieldSanitizationResult:
    """
    Sanitize a person's first or last name.

    Allows letters (accented included), spaces, hyphens, apostrophes and
    periods; title-cases each space-separated token. Succeeds when at least
    two characters remain.
    """
    if not isinstance(value, str) or not value:
        return _empty_input(label, value)

    limit = _config(config).limit_for('name')
    cleaned = _clean_text(value, limit, NAME_DISALLOWED)
    text = _title_case(cleaned.text)

    issues = cleaned.issues(label, limit)
    words = detect_suspicious_words(text)
    warnings = _suspicious_word_issue(label, words)
    issues.extend(warnings)

    success = len(text) >= MIN_TEXT_LENGTH
    if not success:
        issues.append(f"{label} is too short after sanitization")

    return _result(success, text, issues, warnings, value, words)


@sanitizer_boundary('sanitize_email', 'Email')
def sanitize_email(value: Any, label: str = 'Email', *, config=None, reporter=None) -> FieldSanitizationResult:
    """
    Sanitize an email address.

    Unauthorized characters are not stripped into validity: a value that does
    not match the email pattern after threat filtering fails. Threat filtering
    itself can still rewrite an address (``exec.office@company.com`` loses its
    ``exec`` keyword); such results keep the removal issue so callers can reject
    them. Disposable domains are flagged without failing the field.
    """
    if not isinstance(value, str) or not value:
        return _empty_input(label, value)

    limit = _config(config).limit_for('email')
    cleaned = _clean_text(value, limit)
    text = cleaned.text.lower()
    issues = cleaned.issues(label, limit)
    warnings: List[str] = []

    if not EMAIL_PATTERN.match(text):
        issues.append(f"{label} format is invalid after sanitization")
        return _result(False, text, issues, warnings, value)

    domain = text.split('@', 1)[1]
    if any(disposable in domain for disposable in DISPOSABLE_EMAIL_DOMAINS):
        warnings.append(f"{label} domain appears to be temporary/disposable")

    words = detect_suspicious_words(text)
    warnings.extend(_suspicious_word_issue(label, words))
    issues.extend(warnings)

    success = len(text) >= MIN_EMAIL_LENGTH and '@' in text and '.' in text
    return _result(success, text, issues, warnings, value, words)


@sanitizer_boundary('sanitize_phone', 'Phone')
def sanitize_phone(value: Any, label: str = 'Phone', *, config=None, reporter=None) -> FieldSanitizationResult:
    """
    Sanitize a phone number.

    Keeps digits, ``+``, ``-`` and ``.``; spaces and parentheses are dropped.
    Succeeds with 8 to 15 digits.
    """
    if not isinstance(value, str) or not value:
        return _empty_input(label, value)

    limit = _config(config).limit_for('phone')
    cleaned = _clean_text(value, limit, PHONE_DISALLOWED, PHONE_COMPACT)
    text = cleaned.text
    issues = cleaned.issues(label, limit)

    digit_count = len(DIGIT.findall(text))
    if digit_count < MIN_PHONE_DIGITS:
        issues.append(f"{label} number has insufficient digits")
    elif digit_count > MAX_PHONE_DIGITS:
        issues.append(f"{label} number has too many digits")

    success = MIN_PHONE_DIGITS <= digit_count <= MAX_PHONE_DIGITS
    return _result(success, text, issues, [], value, digit_count=digit_count)


def _is_sentinel_uuid(text: str) -> bool:
    hex_digits = text.replace('-', '')
    return bool(hex_digits) and (set(hex_digits) == {'0'} or set(hex_digits) == {'f'})


@sanitizer_boundary('sanitize_uuid', 'uuid')
def sanitize_uuid(value: Any, label: str = 'uuid', *, config=None, reporter=None) -> FieldSanitizationResult:
    """
    Sanitize a UUID-like identifier (payment method, application).

    Requires the canonical 8-4-4-4-12 form with version 1-5 and variant
    8/9/a/b, lower-cased. All-zero and all-f sentinel values are rejected.
    """
    if not isinstance(value, str) or not value:
        return _empty_input(label, value)

    cleaned = _clean_text(value, None)
    text = cleaned.text.lower()
    issues = cleaned.issues(label, None)

    if _is_sentinel_uuid(text):
        issues.append(f"{label} is a default/empty UUID")
        return _result(False, text, issues, [], value)

    if not UUID_PATTERN.match(text):
        issues.append(f"{label} format is invalid")
        return _result(False, text, issues, [], value)

    return _result(True, text, issues, [], value)


@sanitizer_boundary('sanitize_account_name', 'accountName')
def sanitize_account_name(value: Any, label: str = 'accountName', *, config=None, reporter=None) -> FieldSanitizationResult:
    """Sanitize an account holder name: letters, digits, spaces and ``@._-``."""
    if not isinstance(value, str) or not value:
        return _empty_input(label, value)

    limit = _config(config).limit_for('accountName')
    cleaned = _clean_text(value, limit, ACCOUNT_NAME_DISALLOWED)
    text = cleaned.text
    issues = cleaned.issues(label, limit)

    words = detect_suspicious_words(text)
    warnings = _suspicious_word_issue(label, words)
    issues.extend(warnings)

    success = len(text) >= MIN_TEXT_LENGTH
    if not success:
        issues.append(f"{label} is too short after sanitization")

    return _result(success, text, issues, warnings, value, words)


@sanitizer_boundary('sanitize_account_number', 'accountNumber')
def sanitize_account_number(value: Any, label: str = 'accountNumber', *, config=None, reporter=None) -> FieldSanitizationResult:
    """
    Sanitize an account number: alphanumerics and ``@._+-``, no spaces.

    Weak sequences (123456, 000000, aaaaaa, test, admin) are flagged without
    failing the field; at least one alphanumeric character is required.
    """
    if not isinstance(value, str) or not value:
        return _empty_input(label, value)

    limit = _config(config).limit_for('accountNumber')
    cleaned = _clean_text(value, limit, ACCOUNT_NUMBER_DISALLOWED)
    text = cleaned.text
    issues = cleaned.issues(label, limit)
    warnings: List[str] = []

    lowered = text.lower()
    if any(pattern in lowered for pattern in WEAK_ACCOUNT_PATTERNS):
        warnings.append(f"{label} contains suspicious patterns")

    words = detect_suspicious_words(text)
    warnings.extend(_suspicious_word_issue(label, words))
    issues.extend(warnings)

    has_alphanumeric = bool(ALPHANUMERIC.search(text))
    if not has_alphanumeric:
        issues.append(f"{label} must contain at least one alphanumeric character")

    long_enough = len(text) >= MIN_TEXT_LENGTH
    if has_alphanumeric and not long_enough:
        issues.append(f"{label} is too short after sanitization")

    return _result(has_alphanumeric and long_enough, text, issues, warnings, value, words)


def sanitize_account_info(value: Any, field_name: str = 'account', *, config=None, reporter=None) -> FieldSanitizationResult:
    """Dispatch to the account name or account number sanitizer by field name."""
    if 'Number' in field_name:
        return sanitize_account_number(value, field_name, config=config, reporter=reporter)
    return sanitize_account_name(value, field_name, config=config, reporter=reporter)


def _parse_fee(value: Any) -> Optional[float]:
    """Parse a fee as float; None when a string is not a plain decimal literal."""
    if isinstance(value, str):
        text = value.strip()
        # float() accepts digit-group underscores, which are not numeric input here
        if '_' in text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    try:
        return float(value)
    except OverflowError:
        return math.inf


@sanitizer_boundary('sanitize_application_fee', 'Application fee', empty_value=0)
def sanitize_application_fee(value: Any, label: str = 'Application fee', *, config=None, reporter=None) -> FieldSanitizationResult:
    """
    Sanitize the application fee into a positive integer.

    Real numbers, Decimals and numeric strings are accepted and floored; the value must lie
    in (fee_min, fee_max] and stay positive once floored. Booleans are not
    numbers here.
    """
    settings = _config(config)

    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal, str)):
        issue = f"{label} is not a valid number"
    else:
        parsed = _parse_fee(value)
        in_range = parsed is not None and settings.fee_min < parsed <= settings.fee_max
        if in_range and math.floor(parsed) > 0:
            return FieldSanitizationResult(success=True, sanitized=math.floor(parsed))

        if isinstance(value, str):
            issue = f"{label} could not be parsed or is invalid"
        else:
            issue = f"{label} out of valid range"

    return FieldSanitizationResult(success=False, sanitized=0, issues=[issue])


__all__ = [
    'sanitizer_boundary',
    'sanitize_name',
    'sanitize_email',
    'sanitize_phone',
    'sanitize_uuid',
    'sanitize_account_name',
    'sanitize_account_number',
    'sanitize_account_info',
    'sanitize_application_fee',
]
