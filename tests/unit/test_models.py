"""
Order model tests: the raw/sanitized record split, result invariants and the
conversion of pydantic errors into ``DataValidationError``.
"""

import pytest

from storefront.business.exceptions import DataValidationError
from storefront.business.models import (
    FieldSanitizationResult,
    OrderSanitizationReport,
    PerformanceInfo,
    RawOrderRecord,
    SanitizationSummary,
    SanitizedOrderRecord,
)


@pytest.fixture
def clean_fields():
    return {
        'last_name': "O'brien",
        'first_name': 'Jean-paul',
        'email': 'jean.paul@example.com',
        'phone': '+25377860064',
        'payment_method': '550e8400-e29b-41d4-a716-446655440000',
        'account_name': 'Jean Paul Account',
        'account_number': 'ACC12345',
        'application_id': '660e8400-e29b-41d4-a716-446655440001',
        'application_fee': 70000,
    }


class TestRawOrderRecord:

    def test_accepts_anything(self):
        record = RawOrderRecord(lastName=42, email=None, extraField='<script>')

        assert record.last_name == 42
        assert record.field_values()['lastName'] == 42
        assert record.field_values()['extraField'] == '<script>'


class TestSanitizedOrderRecord:

    def test_wire_and_python_names(self, clean_fields):
        record = SanitizedOrderRecord(**clean_fields)

        assert record.to_persistence_dict()['firstName'] == 'Jean-paul'
        assert record.to_api_dict()['applicationFee'] == 70000

    def test_display_dict_is_encoded(self, clean_fields):
        record = SanitizedOrderRecord(**dict(clean_fields, account_name='Jean & Paul'))
        assert record.to_display_dict()['accountName'] == 'Jean &amp; Paul'

    @pytest.mark.parametrize('overrides', [
        {'application_fee': '70000'},
        {'application_fee': 0},
        {'last_name': 'J'},
        {'phone': '123'},
    ])
    def test_rejects_unsanitized_shapes(self, clean_fields, overrides):
        with pytest.raises(DataValidationError) as exc_info:
            SanitizedOrderRecord(**dict(clean_fields, **overrides))

        assert exc_info.value.error_code == 'MODEL_VALIDATION_FAILED'

    def test_unknown_fields_forbidden(self, clean_fields):
        with pytest.raises(DataValidationError):
            SanitizedOrderRecord(**dict(clean_fields, notes='x'))

    def test_immutable(self, clean_fields):
        record = SanitizedOrderRecord(**clean_fields)
        with pytest.raises(Exception):
            record.email = 'other@example.com'


class TestResultInvariants:

    def test_failed_result_cannot_expose_value(self):
        with pytest.raises(DataValidationError):
            FieldSanitizationResult(success=False, sanitized='leak', issues=['x'])

    def test_warnings_must_be_issues(self):
        with pytest.raises(DataValidationError):
            FieldSanitizationResult(success=True, sanitized='ok', warnings=['w'])

    def test_report_requires_sanitized_on_success(self):
        with pytest.raises(DataValidationError):
            OrderSanitizationReport(
                success=True,
                sanitized=None,
                results={'email': FieldSanitizationResult(success=True, sanitized='a@b.co')},
                summary=SanitizationSummary(total_fields=1, successful_fields=1, total_issues=0, critical_issues=0),
                performance=PerformanceInfo(duration_ms=0.1, grade='excellent'),
            )

    def test_failed_report_needs_a_reason(self):
        with pytest.raises(DataValidationError):
            OrderSanitizationReport(
                success=False,
                results={'email': FieldSanitizationResult(success=True, sanitized='a@b.co')},
                summary=SanitizationSummary(total_fields=1, successful_fields=1, total_issues=0, critical_issues=0),
                performance=PerformanceInfo(duration_ms=0.1, grade='excellent'),
            )
