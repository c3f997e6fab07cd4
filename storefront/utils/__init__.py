"""Shared text utilities: threat filters and HTML output encoding."""

from storefront.utils.sanitizers import (
    ThreatFilterResult,
    detect_suspicious_words,
    encode_for_html,
    filter_threats,
)

__all__ = [
    'ThreatFilterResult',
    'detect_suspicious_words',
    'encode_for_html',
    'filter_threats',
]
