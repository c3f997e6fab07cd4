"""
Threat filter and output encoding tests.

Covers the stateless text transforms shared by every field sanitizer: control
character removal, XSS and SQL pattern removal, whitespace normalization,
suspicious word detection and bleach-based HTML encoding.
"""

import pytest

from storefront.utils.sanitizers import (
    apply_threat_filters,
    detect_suspicious_words,
    encode_for_html,
    filter_threats,
    normalize_whitespace,
    remove_control_characters,
    remove_sql_injection_patterns,
    remove_xss_patterns,
)


class TestControlCharacters:

    def test_removes_ascii_control_characters(self):
        assert remove_control_characters('a\x00b\x07c\x1f\x7f') == 'abc'

    def test_keeps_tab_and_line_breaks(self):
        assert remove_control_characters('a\tb\nc\r') == 'a\tb\nc\r'

    @pytest.mark.parametrize('value', [None, 42, ['a'], {'a': 1}])
    def test_non_string_yields_empty_string(self, value):
        assert remove_control_characters(value) == ''


class TestXssPatterns:

    def test_removes_script_block_with_content(self):
        assert remove_xss_patterns('<script>alert(1)</script>hello') == 'hello'

    def test_removes_iframe_block(self):
        assert remove_xss_patterns('a<iframe src="x"></iframe>b') == 'ab'

    def test_removes_protocol_and_handler_fragments(self):
        cleaned = remove_xss_patterns('javascript:go() onerror = x ONLOAD=y')
        assert 'javascript:' not in cleaned.lower()
        assert 'onerror' not in cleaned.lower()
        assert 'onload' not in cleaned.lower()

    def test_case_insensitive(self):
        assert remove_xss_patterns('<SCRIPT>x</SCRIPT>ok') == 'ok'

    def test_repeats_until_no_pattern_remains(self):
        assert 'javascript:' not in remove_xss_patterns('javajavascript:script:alert')


class TestSqlPatterns:

    def test_removes_keywords_and_terminators(self):
        cleaned = remove_sql_injection_patterns("'; DROP TABLE orders; --")
        assert 'DROP' not in cleaned
        assert ';' not in cleaned
        assert '--' not in cleaned

    def test_removes_tautology(self):
        assert '1=1' not in remove_sql_injection_patterns('x 1=1 y')

    def test_plain_text_unchanged(self):
        assert remove_sql_injection_patterns('Jean Paul') == 'Jean Paul'


class TestWhitespace:

    def test_collapses_runs_and_trims(self):
        assert normalize_whitespace('  a \t\n b\u200b ') == 'a b'

    def test_non_breaking_space_becomes_space(self):
        assert normalize_whitespace('a\u00a0\u00a0b') == 'a b'


class TestSuspiciousWords:

    def test_reports_words_in_list_order(self):
        assert detect_suspicious_words('test Admin') == ['admin', 'test']

    def test_substring_match(self):
        assert 'cookie' in detect_suspicious_words('document.cookie')

    def test_clean_text_has_no_words(self):
        assert detect_suspicious_words('Jean Paul') == []

    def test_non_string(self):
        assert detect_suspicious_words(None) == []


class TestFilterThreats:

    def test_reports_removed_threats(self):
        result = filter_threats('<script>x</script>  Jean')
        assert result.text == 'Jean'
        assert result.threats_removed is True

    def test_clean_input_reports_nothing(self):
        result = filter_threats('  Jean   Paul ')
        assert result.text == 'Jean Paul'
        assert result.threats_removed is False

    def test_filters_are_stable(self):
        once = apply_threat_filters("<script>a</script>'; DROP TABLE x; -- Jean")
        assert apply_threat_filters(once) == once

    def test_only_control_characters(self):
        assert apply_threat_filters('\x00\x01\x02') == ''


class TestEncodeForHtml:

    def test_escapes_markup(self):
        encoded = encode_for_html('<script>alert(1)</script>')
        assert '<script>' not in encoded
        assert '&lt;script&gt;' in encoded

    def test_plain_text_unchanged(self):
        assert encode_for_html("O'brien") == "O'brien"

    def test_none_and_numbers(self):
        assert encode_for_html(None) == ''
        assert encode_for_html(70000) == '70000'
