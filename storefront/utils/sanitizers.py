"""
Threat Filters and Output Encoding Utilities

This module provides the stateless text transforms shared by every order field sanitizer.
Each filter strips or neutralizes one class of dangerous substrings without attempting to
parse the input, and each is a total function: non-string input yields an empty string.

Features:
- Control character removal (ASCII C0 controls except tab, newline, carriage return; DEL)
- XSS pattern removal for script/iframe/object/embed/link/meta markup, script URIs,
  inline event handlers and CSS expression()/url() calls
- SQL injection pattern removal for keyword clusters, comment markers, statement
  terminators and tautologies
- Suspicious word detection against a fixed word list
- Whitespace normalization including non-breaking, Unicode and zero-width spaces
- Output encoding for HTML contexts using bleach 6.0+

Security Boundary:
The XSS and SQL filters are heuristic substring removal applied for storage and display
hygiene. They do not replace parameterized queries at the persistence layer, nor output
encoding at the point of display (``encode_for_html``). Both removals are repeated until
the text stops changing so that deleting one match cannot splice a new trigger together.

Filter order is fixed: control characters, XSS patterns, SQL patterns, whitespace.
"""

import re
from typing import List, NamedTuple, Pattern

import bleach
import structlog

logger = structlog.get_logger("storefront.security.threat_filters")

# ASCII control ranges 0x00-0x08, 0x0B, 0x0C, 0x0E-0x1F and DEL
CONTROL_CHARACTERS_PATTERN = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')

# Whitespace runs, including NBSP and Unicode spaces (\s), zero-width space and BOM
WHITESPACE_PATTERN = re.compile(r'[\s\u200b\ufeff]+')

XSS_PATTERNS: List[Pattern[str]] = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'<script[\s\S]*?>[\s\S]*?</script>',
        r'<iframe[\s\S]*?>[\s\S]*?</iframe>',
        r'<object[\s\S]*?>[\s\S]*?</object>',
        r'<embed[\s\S]*?>',
        r'<link[\s\S]*?>',
        r'<meta[\s\S]*?>',
        r'javascript:',
        r'vbscript:',
        r'onload\s*=',
        r'onerror\s*=',
        r'onclick\s*=',
        r'onmouseover\s*=',
        r'onfocus\s*=',
        r'onblur\s*=',
        r'expression\s*\(',
        r'url\s*\(',
    )
]

SQL_INJECTION_PATTERNS: List[Pattern[str]] = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'(\b(ALTER|CREATE|DELETE|DROP|EXEC(UTE)?|INSERT|MERGE|SELECT|UPDATE|UNION|USE)\b)',
        r'(;|--|/\*|\*/)',
        r'(\b(AND|OR)\b.*\b(=|LIKE)\b)',
        r"(1\s*=\s*1|1\s*=\s*'1'|'.*'.*=.*'.*')",
        r'(\bUNION\b.*\bSELECT\b)',
        r'(\bINSERT\b.*\bINTO\b)',
        r'(\bDELETE\b.*\bFROM\b)',
        r'(\bUPDATE\b.*\bSET\b)',
    )
]

SUSPICIOUS_WORDS = (
    'admin', 'administrator', 'root', 'system', 'test', 'demo', 'null',
    'undefined', 'script', 'eval', 'function', 'alert', 'console',
    'document', 'window', 'location', 'cookie',
)


class ThreatFilterResult(NamedTuple):
    """Filtered text and whether any XSS or SQL pattern was removed."""
    text: str
    threats_removed: bool


def _remove_until_stable(value: str, patterns: List[Pattern[str]]) -> str:
    previous = None
    current = value
    while current != previous:
        previous = current
        for pattern in patterns:
            current = pattern.sub('', current)
    return current


def remove_control_characters(value) -> str:
    """
    Delete ASCII control characters from a string.

    Tab, line feed and carriage return are kept; they are collapsed later by
    ``normalize_whitespace``.

    Args:
        value: Input to clean

    Returns:
        The string without control characters, or '' for non-string input
    """
    if not isinstance(value, str):
        return ''
    return CONTROL_CHARACTERS_PATTERN.sub('', value)


def remove_xss_patterns(value) -> str:
    """
    Remove markup and script injection patterns.

    Heuristic cleanup only: output must still be encoded for its display
    context, see ``encode_for_html``.
    """
    if not isinstance(value, str):
        return ''
    return _remove_until_stable(value, XSS_PATTERNS)


def remove_sql_injection_patterns(value) -> str:
    """
    Remove SQL keyword clusters, comment markers, terminators and tautologies.

    Heuristic cleanup only: persistence must use parameterized queries.
    """
    if not isinstance(value, str):
        return ''
    return _remove_until_stable(value, SQL_INJECTION_PATTERNS)


def normalize_whitespace(value) -> str:
    """Collapse whitespace runs to a single ASCII space and trim both ends."""
    if not isinstance(value, str):
        return ''
    return WHITESPACE_PATTERN.sub(' ', value).strip()


def detect_suspicious_words(value) -> List[str]:
    """
    Return the flagged words contained in ``value``, in word-list order.

    Matching is a case-insensitive substring test; the input is not modified.
    """
    if not isinstance(value, str) or not value:
        return []
    lowered = value.lower()
    return [word for word in SUSPICIOUS_WORDS if word in lowered]


def filter_threats(value) -> ThreatFilterResult:
    """
    Apply the full threat filter sequence and report whether threats were removed.

    Args:
        value: Raw input text

    Returns:
        ThreatFilterResult with the cleaned text and a removal flag
    """
    cleaned = remove_control_characters(value)

    # SQL removal can expose new markup, so both passes repeat together
    previous = None
    without_threats = cleaned
    while without_threats != previous:
        previous = without_threats
        without_threats = remove_sql_injection_patterns(remove_xss_patterns(without_threats))

    threats_removed = without_threats != cleaned

    if threats_removed:
        logger.debug(
            "Threat patterns removed from input",
            original_length=len(cleaned),
            filtered_length=len(without_threats),
        )

    return ThreatFilterResult(normalize_whitespace(without_threats), threats_removed)


def apply_threat_filters(value) -> str:
    """Control characters, XSS patterns, SQL patterns, then whitespace."""
    return filter_threats(value).text


def encode_for_html(value) -> str:
    """
    Encode text for safe insertion into an HTML document.

    This is the output-side defense for sanitized order data: every markup
    character is escaped by bleach rather than removed.
    """
    if value is None:
        return ''
    if not isinstance(value, str):
        value = str(value)
    return bleach.clean(value, tags=set(), attributes={}, strip=False)


__all__ = [
    'SUSPICIOUS_WORDS',
    'XSS_PATTERNS',
    'SQL_INJECTION_PATTERNS',
    'ThreatFilterResult',
    'remove_control_characters',
    'remove_xss_patterns',
    'remove_sql_injection_patterns',
    'normalize_whitespace',
    'detect_suspicious_words',
    'filter_threats',
    'apply_threat_filters',
    'encode_for_html',
]
