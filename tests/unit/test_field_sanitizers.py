"""
Field sanitizer tests.

Each sanitizer is exercised for its normalization rules, its success
predicate and its issue texts, followed by the properties every sanitizer
shares: totality, idempotence, the length cap and monotonic safety against
the fixed XSS/SQL triggers. The sanitizer boundary is tested by injecting a
failing threat filter and asserting the monitoring collaborator is called.
"""

import dataclasses
from decimal import Decimal
from fractions import Fraction
from unittest.mock import Mock, patch

import pytest

from storefront.business.models import FieldSanitizationResult
from storefront.business.processors import sanitize_order_data
from storefront.business.sanitizers import (
    sanitize_account_info,
    sanitize_account_name,
    sanitize_account_number,
    sanitize_application_fee,
    sanitize_email,
    sanitize_name,
    sanitize_phone,
    sanitize_uuid,
)

STRING_SANITIZERS = [
    (sanitize_name, 'lastName'),
    (sanitize_email, 'Email'),
    (sanitize_phone, 'Phone'),
    (sanitize_uuid, 'applicationId'),
    (sanitize_account_name, 'accountName'),
    (sanitize_account_number, 'accountNumber'),
]

TRIGGERS = [
    '<script>alert(1)</script>',
    "'; DROP TABLE orders; --",
    'javascript:alert(1)',
    '<iframe src="https://evil.example"></iframe>',
    "' OR 1=1 --",
]


# ============================================================================
# NAME
# ============================================================================

class TestSanitizeName:

    def test_title_cases_hyphenated_name(self, sanitizer_config):
        result = sanitize_name('jean-paul', 'firstName', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == 'Jean-paul'
        assert result.issues == []
        assert result.sanitized_length == 9
        assert result.original_length == 9

    def test_keeps_apostrophe(self, sanitizer_config):
        result = sanitize_name("O'Brien", 'lastName', config=sanitizer_config)
        assert result.sanitized == "O'brien"

    def test_title_cases_each_word(self, sanitizer_config):
        result = sanitize_name('  MARIE   claire ', 'firstName', config=sanitizer_config)
        assert result.sanitized == 'Marie Claire'

    def test_accented_letters_allowed(self, sanitizer_config):
        result = sanitize_name('éloïse', 'firstName', config=sanitizer_config)
        assert result.success is True
        assert result.sanitized == 'Éloïse'

    def test_digits_are_unauthorized(self, sanitizer_config):
        result = sanitize_name('Jean123', 'firstName', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == 'Jean'
        assert 'firstName contained unauthorized characters' in result.issues

    def test_script_only_name_fails(self, sanitizer_config):
        result = sanitize_name('<script>alert(1)</script>', 'lastName', config=sanitizer_config)

        assert result.success is False
        assert result.sanitized == ''
        assert result.issues == [
            'lastName contained suspicious content that was removed',
            'lastName is too short after sanitization',
        ]

    def test_single_character_fails(self, sanitizer_config):
        result = sanitize_name('J', 'firstName', config=sanitizer_config)
        assert result.success is False
        assert result.issues == ['firstName is too short after sanitization']

    def test_truncates_to_name_limit(self, sanitizer_config):
        result = sanitize_name('a' * 150, 'firstName', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized_length == 100
        assert result.sanitized == 'A' + 'a' * 99
        assert 'firstName truncated to 100 characters' in result.issues

    def test_suspicious_words_are_warnings(self, sanitizer_config):
        result = sanitize_name('Admin', 'lastName', config=sanitizer_config)

        assert result.success is True
        assert result.suspicious_words == ['admin']
        assert result.warnings == ['lastName contains suspicious words: admin']
        assert set(result.warnings) <= set(result.issues)

    def test_empty_input(self, sanitizer_config):
        result = sanitize_name('', 'lastName', config=sanitizer_config)
        assert result.success is False
        assert result.issues == ['lastName is empty or invalid type']


# ============================================================================
# EMAIL
# ============================================================================

class TestSanitizeEmail:

    def test_lower_cases_valid_address(self, sanitizer_config):
        result = sanitize_email('JEAN.PAUL@EXAMPLE.COM', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == 'jean.paul@example.com'

    def test_invalid_address_fails(self, sanitizer_config):
        result = sanitize_email('not-an-email', config=sanitizer_config)

        assert result.success is False
        assert result.sanitized == ''
        assert result.issues == ['Email format is invalid after sanitization']

    def test_disposable_domain_is_non_blocking(self, sanitizer_config):
        result = sanitize_email('jean@tempmail.com', config=sanitizer_config)

        assert result.success is True
        assert result.warnings == ['Email domain appears to be temporary/disposable']

    def test_address_is_not_stripped_into_validity(self, sanitizer_config):
        result = sanitize_email('jean paul@example.com', config=sanitizer_config)
        assert result.success is False

    def test_surrounding_whitespace_is_trimmed(self, sanitizer_config):
        result = sanitize_email('  jean@example.com ', config=sanitizer_config)
        assert result.sanitized == 'jean@example.com'

    def test_threat_removal_is_reported(self, sanitizer_config):
        result = sanitize_email('exec.office@company.com', config=sanitizer_config)

        assert result.sanitized == '.office@company.com'
        assert 'Email contained suspicious content that was removed' in result.issues


# ============================================================================
# PHONE
# ============================================================================

class TestSanitizePhone:

    def test_drops_spaces(self, sanitizer_config):
        result = sanitize_phone('+253 77 86 00 64', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == '+25377860064'
        assert result.digit_count == 11

    def test_drops_parentheses(self, sanitizer_config):
        result = sanitize_phone('(01) 23-45-67-89', config=sanitizer_config)
        assert result.sanitized == '0123-45-67-89'
        assert result.digit_count == 10

    def test_letters_are_unauthorized(self, sanitizer_config):
        result = sanitize_phone('77abc860064', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == '77860064'
        assert 'Phone contained unauthorized characters' in result.issues

    def test_insufficient_digits(self, sanitizer_config):
        result = sanitize_phone('123', config=sanitizer_config)

        assert result.success is False
        assert result.issues == ['Phone number has insufficient digits']
        assert result.digit_count == 3

    def test_too_many_digits(self, sanitizer_config):
        result = sanitize_phone('1234567890123456', config=sanitizer_config)

        assert result.success is False
        assert result.issues == ['Phone number has too many digits']


# ============================================================================
# UUID
# ============================================================================

class TestSanitizeUuid:

    def test_lower_cases_valid_uuid(self, sanitizer_config):
        result = sanitize_uuid('550E8400-E29B-41D4-A716-446655440000', 'paymentMethod', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == '550e8400-e29b-41d4-a716-446655440000'

    @pytest.mark.parametrize('sentinel', [
        '00000000-0000-0000-0000-000000000000',
        'FFFFFFFF-FFFF-FFFF-FFFF-FFFFFFFFFFFF',
    ])
    def test_sentinel_uuid_rejected(self, sentinel, sanitizer_config):
        result = sanitize_uuid(sentinel, 'applicationId', config=sanitizer_config)

        assert result.success is False
        assert result.issues == ['applicationId is a default/empty UUID']

    def test_malformed_uuid_rejected(self, sanitizer_config):
        result = sanitize_uuid('not-a-uuid', 'applicationId', config=sanitizer_config)
        assert result.issues == ['applicationId format is invalid']

    def test_version_digit_checked(self, sanitizer_config):
        result = sanitize_uuid('550e8400-e29b-71d4-a716-446655440000', 'applicationId', config=sanitizer_config)
        assert result.success is False


# ============================================================================
# ACCOUNT INFORMATION
# ============================================================================

class TestSanitizeAccountInfo:

    def test_account_name_keeps_spaces(self, sanitizer_config):
        result = sanitize_account_info('Jean Paul Account', 'accountName', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == 'Jean Paul Account'

    def test_account_name_strips_unauthorized(self, sanitizer_config):
        result = sanitize_account_info('Jean#Paul', 'accountName', config=sanitizer_config)

        assert result.sanitized == 'JeanPaul'
        assert 'accountName contained unauthorized characters' in result.issues

    def test_account_number_drops_spaces(self, sanitizer_config):
        result = sanitize_account_info('ACC 12345', 'accountNumber', config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == 'ACC12345'
        assert result.issues == ['accountNumber contained unauthorized characters']

    def test_weak_account_number_is_non_blocking(self, sanitizer_config):
        result = sanitize_account_info('test123456', 'accountNumber', config=sanitizer_config)

        assert result.success is True
        assert 'accountNumber contains suspicious patterns' in result.warnings
        assert result.suspicious_words == ['test']

    def test_account_number_requires_alphanumeric(self, sanitizer_config):
        result = sanitize_account_info('@@..', 'accountNumber', config=sanitizer_config)

        assert result.success is False
        assert result.issues == ['accountNumber must contain at least one alphanumeric character']

    def test_account_number_too_short(self, sanitizer_config):
        result = sanitize_account_info('A', 'accountNumber', config=sanitizer_config)
        assert result.issues == ['accountNumber is too short after sanitization']


# ============================================================================
# APPLICATION FEE
# ============================================================================

class TestSanitizeApplicationFee:

    @pytest.mark.parametrize('value, expected', [
        ('70000', 70000),
        (' 12.9 ', 12),
        (70000.9, 70000),
        (1, 1),
        (1000000, 1000000),
    ])
    def test_accepts_and_floors(self, value, expected, sanitizer_config):
        result = sanitize_application_fee(value, config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == expected

    @pytest.mark.parametrize('value', [0, -5, 0.5, 1000001, float('nan'), 10 ** 400])
    def test_out_of_range(self, value, sanitizer_config):
        result = sanitize_application_fee(value, config=sanitizer_config)

        assert result.success is False
        assert result.sanitized == 0
        assert result.issues == ['Application fee out of valid range']

    @pytest.mark.parametrize('value, expected', [
        (Decimal('70000'), 70000),
        (Decimal('12.90'), 12),
        (Fraction(301, 2), 150),
    ])
    def test_decimal_and_rational_values(self, value, expected, sanitizer_config):
        result = sanitize_application_fee(value, config=sanitizer_config)

        assert result.success is True
        assert result.sanitized == expected

    @pytest.mark.parametrize('value', ['abc', '', '0', '1e400', '70_000', '1_0'])
    def test_unparseable_or_invalid_string(self, value, sanitizer_config):
        result = sanitize_application_fee(value, config=sanitizer_config)

        assert result.success is False
        assert result.issues == ['Application fee could not be parsed or is invalid']

    @pytest.mark.parametrize('value', [None, True, [], {'fee': 1}])
    def test_not_a_number(self, value, sanitizer_config):
        result = sanitize_application_fee(value, config=sanitizer_config)

        assert result.success is False
        assert result.issues == ['Application fee is not a valid number']


# ============================================================================
# SHARED PROPERTIES
# ============================================================================

class TestSanitizerProperties:

    @pytest.mark.parametrize('sanitizer, label', STRING_SANITIZERS)
    @pytest.mark.parametrize('value', [None, 123, 4.5, {}, [], object(), '', '\x00\x01\x02'])
    def test_totality(self, sanitizer, label, value, sanitizer_config):
        result = sanitizer(value, label, config=sanitizer_config)

        assert isinstance(result, FieldSanitizationResult)
        assert result.success is False
        assert result.sanitized == ''
        assert result.issues

    @pytest.mark.parametrize('sanitizer, label, value', [
        (sanitize_name, 'firstName', 'MARIE   claire'),
        (sanitize_name, 'lastName', "o'brien<b>"),
        (sanitize_name, 'lastName', 'Jean123 Paul'),
        (sanitize_email, 'Email', ' JEAN.PAUL@EXAMPLE.COM '),
        (sanitize_phone, 'Phone', '+253 (77) 86 00 64'),
        (sanitize_uuid, 'paymentMethod', '550E8400-E29B-41D4-A716-446655440000'),
        (sanitize_account_name, 'accountName', 'Jean#Paul Account'),
        (sanitize_account_number, 'accountNumber', 'ACC 12345'),
    ])
    def test_idempotence(self, sanitizer, label, value, sanitizer_config):
        first = sanitizer(value, label, config=sanitizer_config)
        second = sanitizer(first.sanitized, label, config=sanitizer_config)

        assert first.success is True
        assert second.success is True
        assert second.sanitized == first.sanitized
        assert second.sanitized_length == first.sanitized_length

    def test_fee_idempotence(self, sanitizer_config):
        first = sanitize_application_fee('70000.75', config=sanitizer_config)
        second = sanitize_application_fee(first.sanitized, config=sanitizer_config)
        assert second.sanitized == first.sanitized == 70000

    @pytest.mark.parametrize('sanitizer, label, limit_key, value', [
        (sanitize_name, 'lastName', 'name', 'Jean ' * 60),
        (sanitize_email, 'Email', 'email', 'a' * 200 + '@example.com'),
        (sanitize_phone, 'Phone', 'phone', '1' * 40),
        (sanitize_account_name, 'accountName', 'accountName', 'Account ' * 40),
        (sanitize_account_number, 'accountNumber', 'accountNumber', 'X9' * 80),
    ])
    def test_length_cap(self, sanitizer, label, limit_key, value, sanitizer_config):
        result = sanitizer(value, label, config=sanitizer_config)

        assert result.sanitized_length <= sanitizer_config.limit_for(limit_key)
        assert len(result.sanitized) <= sanitizer_config.limit_for(limit_key)

    @pytest.mark.parametrize('sanitizer, label', STRING_SANITIZERS)
    @pytest.mark.parametrize('trigger', TRIGGERS)
    def test_triggers_never_survive(self, sanitizer, label, trigger, sanitizer_config):
        result = sanitizer(f"Jean {trigger} Paul", label, config=sanitizer_config)
        assert trigger not in str(result.sanitized)


# ============================================================================
# SANITIZER BOUNDARY
# ============================================================================

class TestSanitizerBoundary:

    def test_unexpected_error_becomes_failed_result(self, sanitizer_config, mock_reporter):
        with patch('storefront.business.sanitizers.filter_threats', side_effect=RuntimeError('regex fault')):
            result = sanitize_name('Jean', 'lastName', config=sanitizer_config, reporter=mock_reporter)

        assert result.success is False
        assert result.sanitized == ''
        assert result.issues == ['lastName sanitization error occurred']

    def test_error_reported_with_truncated_value(self, sanitizer_config, mock_reporter):
        value = 'J' * 80
        with patch('storefront.business.sanitizers.filter_threats', side_effect=RuntimeError('regex fault')):
            sanitize_name(value, 'lastName', config=sanitizer_config, reporter=mock_reporter)

        mock_reporter.capture_exception.assert_called_once()
        args, kwargs = mock_reporter.capture_exception.call_args
        assert isinstance(args[0], RuntimeError)
        assert kwargs['tags'] == {'component': 'order_sanitizer', 'operation': 'sanitize_name'}
        assert kwargs['extra'] == {'field_name': 'lastName', 'original_value': 'J' * 50}

    def test_failing_reporter_does_not_propagate(self, sanitizer_config, mock_reporter):
        mock_reporter.capture_exception.side_effect = ConnectionError('monitoring down')
        with patch('storefront.business.sanitizers.filter_threats', side_effect=RuntimeError('regex fault')):
            result = sanitize_email('jean@example.com', config=sanitizer_config, reporter=mock_reporter)

        assert result.issues == ['Email sanitization error occurred']

    def test_disabled_monitoring_keeps_default_reporter_silent(self, sanitizer_config):
        default_reporter = Mock(spec=['capture_message', 'capture_exception'])
        with patch('storefront.monitoring.events._default_reporter', default_reporter), \
                patch('storefront.business.sanitizers.get_reporter', return_value=default_reporter) as resolver, \
                patch('storefront.business.sanitizers.filter_threats', side_effect=RuntimeError('regex fault')):
            report = sanitize_order_data({'lastName': 'Doe'}, config=sanitizer_config)

        assert report.results['lastName'].issues == ['lastName sanitization error occurred']
        resolver.assert_not_called()
        assert default_reporter.method_calls == []

    def test_enabled_monitoring_uses_default_reporter(self, sanitizer_config):
        config = dataclasses.replace(sanitizer_config, monitoring_enabled=True)
        default_reporter = Mock(spec=['capture_message', 'capture_exception'])
        with patch('storefront.business.sanitizers.get_reporter', return_value=default_reporter), \
                patch('storefront.business.sanitizers.filter_threats', side_effect=RuntimeError('regex fault')):
            sanitize_name('Jean', 'lastName', config=config)

        default_reporter.capture_exception.assert_called_once()

    def test_fee_error_keeps_numeric_empty_value(self, sanitizer_config, mock_reporter):
        with patch('storefront.business.sanitizers._parse_fee', side_effect=RuntimeError('boom')):
            result = sanitize_application_fee('100', config=sanitizer_config, reporter=mock_reporter)

        assert result.success is False
        assert result.sanitized == 0
        assert result.issues == ['Application fee sanitization error occurred']
