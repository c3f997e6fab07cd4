"""
Sanitization Reporting Utilities

This module turns the pipeline's internal issue lists into output for three audiences:
- Developers: ``generate_sanitization_report`` renders one summary line for logs
- End users: ``format_sanitization_errors_for_user`` maps issues to a single localized,
  non-technical message and never echoes issue text or field values
- Log correlation: ``create_secure_log_hash`` redacts sensitive fields and derives a
  32-bit rolling hash so log lines about one order can be matched without storing PII.
  It is not a security hash.
"""

import json
import time
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from storefront.business.models import OrderSanitizationReport, SecureLogHash
from storefront.config.settings import get_sanitizer_config

DEFAULT_LOCALE = 'en'

# Ordered: the first pattern found in any issue decides the message
USER_MESSAGES: List[Tuple[str, Mapping[str, str]]] = [
    ('contains suspicious words', {
        'en': 'Some of the information you entered looks suspicious.',
        'fr': 'Certaines informations saisies semblent suspectes.',
    }),
    ('format is invalid', {
        'en': 'Some of the information is not in the expected format.',
        'fr': 'Le format de certaines informations est incorrect.',
    }),
    ('truncated to', {
        'en': 'Some of the information is too long.',
        'fr': 'Certaines informations sont trop longues.',
    }),
    ('contained unauthorized characters', {
        'en': 'Some characters are not allowed.',
        'fr': 'Certains caractères ne sont pas autorisés.',
    }),
    ('insufficient digits', {
        'en': 'The phone number is too short.',
        'fr': 'Le numéro de téléphone est trop court.',
    }),
    ('too many digits', {
        'en': 'The phone number is too long.',
        'fr': 'Le numéro de téléphone est trop long.',
    }),
    ('temporary/disposable', {
        'en': 'Temporary email addresses are not accepted.',
        'fr': 'Les adresses email temporaires ne sont pas acceptées.',
    }),
    ('default/empty uuid', {
        'en': 'Please select a valid option.',
        'fr': 'Veuillez sélectionner une option valide.',
    }),
    ('suspicious patterns', {
        'en': 'The account information looks invalid.',
        'fr': 'Les informations de compte semblent invalides.',
    }),
    ('out of valid range', {
        'en': 'The amount specified is not valid.',
        'fr': "Le montant spécifié n'est pas valide.",
    }),
    ('too short after sanitization', {
        'en': 'Some of the information is too short.',
        'fr': 'Certaines informations sont trop courtes.',
    }),
    ('is empty or invalid type', {
        'en': 'Some required information is missing.',
        'fr': 'Certaines informations obligatoires sont manquantes.',
    }),
]

NO_ISSUES_MESSAGE = {
    'en': 'The submitted data contains errors.',
    'fr': 'Les données soumises contiennent des erreurs.',
}

FALLBACK_MESSAGE = {
    'en': 'Please check the information you entered and try again.',
    'fr': 'Veuillez vérifier les informations saisies et réessayer.',
}


def generate_sanitization_report(report: Optional[OrderSanitizationReport]) -> str:
    """
    Render a one-line, developer-facing summary of a sanitization report.

    Example:
        Sanitization FAILED | Fields: 8/9 | Issues: 1 (1 critical) |
        Performance: 0.84ms (excellent) | Top issues: Email format is invalid after sanitization
    """
    if report is None:
        return 'No sanitization result provided'

    summary = report.summary
    parts = [
        f"Sanitization {'SUCCESS' if report.success else 'FAILED'}",
        f"Fields: {summary.successful_fields}/{summary.total_fields}",
        f"Issues: {summary.total_issues} ({summary.critical_issues} critical)",
        f"Performance: {report.performance.duration_ms:.2f}ms ({report.performance.grade})",
    ]

    if summary.suspicious_words:
        parts.append(f"Suspicious words: {', '.join(summary.suspicious_words[:5])}")

    if report.issues:
        parts.append(f"Top issues: {'; '.join(report.issues[:3])}")

    return ' | '.join(parts)


def _resolve_locale(locale: Optional[str]) -> str:
    if locale is None:
        locale = get_sanitizer_config().user_message_locale
    return locale if locale in NO_ISSUES_MESSAGE else DEFAULT_LOCALE


def format_sanitization_errors_for_user(issues: Optional[Sequence[str]], locale: Optional[str] = None) -> str:
    """
    Map technical issues to one safe message for the end user.

    Args:
        issues: Issue texts from a report or field result
        locale: 'en' or 'fr'; the configured locale when None

    Returns:
        A pre-written message; issue texts are never echoed back
    """
    locale = _resolve_locale(locale)

    if not issues or isinstance(issues, str):
        return NO_ISSUES_MESSAGE[locale]

    lowered = [issue.lower() for issue in issues if isinstance(issue, str)]
    for pattern, messages in USER_MESSAGES:
        if any(pattern in issue for issue in lowered):
            return messages[locale]

    return FALLBACK_MESSAGE[locale]


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def rolling_hash(text: str) -> str:
    """32-bit shift-and-subtract hash over UTF-16 code units, as unsigned hex."""
    hash_value = 0
    encoded = text.encode('utf-16-le')
    for index in range(0, len(encoded), 2):
        code_unit = encoded[index] | (encoded[index + 1] << 8)
        hash_value = _to_int32((hash_value << 5) - hash_value + code_unit)
    return format(abs(hash_value), 'x')


def _redact_email(email: Any) -> Optional[str]:
    if not isinstance(email, str) or not email:
        return None
    domain = email.split('@', 1)[1] if '@' in email else ''
    return f"{email[0]}***@{domain}"


def _redact_phone(phone: Any) -> Optional[str]:
    if not isinstance(phone, str) or not phone:
        return None
    return f"{phone[:3]}***{phone[-2:]}"


def _redact_account_number(account_number: Any) -> Optional[str]:
    if not isinstance(account_number, str) or not account_number:
        return None
    return f"***{account_number[-3:]}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def create_secure_log_hash(data: Any) -> SecureLogHash:
    """
    Build a log correlation token from an order without keeping PII.

    Only a redacted view (first email character and domain, phone prefix and
    suffix, last three account number characters, application id and fee)
    enters the hash. Never raises.
    """
    if hasattr(data, 'to_persistence_dict'):
        data = data.to_persistence_dict()
    if not isinstance(data, Mapping):
        return SecureLogHash(hash='invalid-data', timestamp=_now_ms())

    try:
        redacted = {
            'email': _redact_email(data.get('email')),
            'phone': _redact_phone(data.get('phone')),
            'accountNumber': _redact_account_number(data.get('accountNumber')),
            'applicationId': data.get('applicationId') or None,
            'applicationFee': data.get('applicationFee') or None,
        }
        serialized = json.dumps(redacted, separators=(',', ':'), ensure_ascii=False, default=str)
        return SecureLogHash(hash=rolling_hash(serialized), timestamp=_now_ms(), fields_count=len(data))
    except Exception:
        return SecureLogHash(hash='hash-error', timestamp=_now_ms(), fields_count=len(data))


__all__ = [
    'USER_MESSAGES',
    'generate_sanitization_report',
    'format_sanitization_errors_for_user',
    'rolling_hash',
    'create_secure_log_hash',
]
