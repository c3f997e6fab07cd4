"""
Order Intake Data Models

This module provides the Pydantic data models exchanged by the order sanitization
pipeline. Untrusted input and clean output are distinct types so that an unsanitized
payload cannot be handed to persistence by mistake.

The data models follow these patterns:
- Pydantic 2.3+ models, frozen once created
- camelCase wire names through an alias generator, snake_case attributes in Python
- Validation failures converted into ``DataValidationError`` with input hidden
- All-or-nothing invariant on the order report enforced by a model validator

Model Categories:
    Input Models:
        RawOrderRecord: Untrusted order payload, every field unvalidated

    Sanitization Models:
        FieldSanitizationResult: Outcome of one field sanitizer
        SanitizedOrderRecord: Clean, fully typed order ready for persistence
        OrderSanitizationReport: Aggregate verdict for one order

    Validation Models:
        BusinessRuleResult: Cross-field plausibility verdict
        PreValidationResult: Fast-fail gate verdict
        SafetyCheckResult: Last-line check before persistence
        SecureLogHash: Redacted log correlation token
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
    ValidationError as PydanticValidationError,
)
from pydantic.alias_generators import to_camel

from storefront.business.exceptions import DataValidationError, ErrorSeverity
from storefront.utils.sanitizers import encode_for_html

# Wire names of the order fields, in pipeline order
ORDER_FIELDS = (
    'lastName',
    'firstName',
    'email',
    'phone',
    'paymentMethod',
    'accountName',
    'accountNumber',
    'applicationId',
    'applicationFee',
)

PerformanceGrade = Literal['excellent', 'good', 'slow', 'error']


class BaseOrderModel(BaseModel):
    """
    Base class for all order intake models.

    Provides the shared configuration (frozen instances, camelCase aliases)
    and converts Pydantic validation errors into business exceptions.

    Example:
        class CustomResult(BaseOrderModel):
            total_fields: int = Field(..., ge=0)

        CustomResult(totalFields=3).model_dump(by_alias=True)
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra='forbid',
        hide_input_in_errors=True,  # Never echo customer data in errors
    )

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            error_details = [
                {
                    'field': '.'.join(str(loc) for loc in error['loc']),
                    'message': error['msg'],
                    'type': error['type'],
                }
                for error in e.errors()
            ]
            raise DataValidationError(
                message=f"Order model validation failed for {self.__class__.__name__}",
                error_code="MODEL_VALIDATION_FAILED",
                validation_errors=error_details,
                context={
                    'model_type': self.__class__.__name__,
                    'error_count': len(error_details),
                },
                cause=e,
                severity=ErrorSeverity.MEDIUM,
            )

    def to_api_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for API payloads and monitoring extras."""
        return self.model_dump(by_alias=True, mode='json')


class RawOrderRecord(BaseOrderModel):
    """
    Untrusted order payload as received from the order-intake handler.

    No invariant holds: any field may be missing, wrong-typed or adversarial.
    Unknown keys are kept so pre-validation can inspect them.
    """

    model_config = ConfigDict(extra='allow')

    last_name: Any = None
    first_name: Any = None
    email: Any = None
    phone: Any = None
    payment_method: Any = None
    account_name: Any = None
    account_number: Any = None
    application_id: Any = None
    application_fee: Any = None

    def field_values(self) -> Dict[str, Any]:
        """Order fields keyed by wire name, extra keys included."""
        return self.model_dump(by_alias=True)


class FieldSanitizationResult(BaseOrderModel):
    """
    Outcome of a single field sanitizer.

    ``warnings`` is the non-blocking subset of ``issues`` (suspicious words,
    weak account patterns, disposable email domains). A failed result always
    carries an empty sanitized value.
    """

    success: bool
    sanitized: Any = ''
    issues: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    original_length: Optional[int] = None
    sanitized_length: Optional[int] = None
    suspicious_words: List[str] = Field(default_factory=list)
    digit_count: Optional[int] = None

    @model_validator(mode='after')
    def check_failed_result_is_empty(self) -> 'FieldSanitizationResult':
        if not self.success and self.sanitized not in ('', 0):
            raise ValueError("failed sanitization must not expose a sanitized value")
        if not set(self.warnings).issubset(self.issues):
            raise ValueError("warnings must also be listed as issues")
        return self


class SanitizedOrderRecord(BaseOrderModel):
    """
    Clean order record handed to the persistence collaborator.

    Built only when every field sanitizer succeeded. Persistence must still
    use parameterized queries and display code must still encode output.
    """

    last_name: str = Field(..., min_length=2)
    first_name: str = Field(..., min_length=2)
    email: str = Field(..., min_length=6)
    phone: str = Field(..., min_length=8)
    payment_method: str
    account_name: str = Field(..., min_length=2)
    account_number: str = Field(..., min_length=2)
    application_id: str
    application_fee: int = Field(..., gt=0, strict=True)

    def to_persistence_dict(self) -> Dict[str, Any]:
        """Return the camelCase mapping expected by the persistence layer."""
        return self.model_dump(by_alias=True)

    def to_display_dict(self) -> Dict[str, str]:
        """Return HTML-encoded values for rendering in templates or emails."""
        return {key: encode_for_html(value) for key, value in self.to_persistence_dict().items()}


class SanitizationSummary(BaseOrderModel):
    total_fields: int = Field(..., ge=0)
    successful_fields: int = Field(..., ge=0)
    total_issues: int = Field(..., ge=0)
    critical_issues: int = Field(..., ge=0)
    suspicious_words: List[str] = Field(default_factory=list)


class PerformanceInfo(BaseOrderModel):
    duration_ms: float = Field(..., ge=0)
    grade: PerformanceGrade


class OrderSanitizationReport(BaseOrderModel):
    """
    Aggregate outcome of ``sanitize_order_data``.

    All-or-nothing: ``sanitized`` is set if and only if every field result
    succeeded; there is no partial-success mode for persistence.
    """

    success: bool
    sanitized: Optional[SanitizedOrderRecord] = None
    results: Dict[str, FieldSanitizationResult] = Field(default_factory=dict)
    issues: List[str] = Field(default_factory=list)
    critical_issues: List[str] = Field(default_factory=list)
    summary: SanitizationSummary
    performance: PerformanceInfo
    error: Optional[str] = None

    @model_validator(mode='after')
    def check_all_or_nothing(self) -> 'OrderSanitizationReport':
        all_fields_passed = bool(self.results) and all(r.success for r in self.results.values())

        if self.success != (self.sanitized is not None):
            raise ValueError("sanitized record must be present if and only if sanitization succeeded")
        if self.success and not all_fields_passed:
            raise ValueError("a successful report requires every field result to succeed")
        if not self.success and all_fields_passed and self.error is None:
            raise ValueError("a failed report requires a failed field result or an error")
        return self

    @property
    def fields_with_issues(self) -> List[str]:
        return [name for name, result in self.results.items() if result.issues]

    def require_sanitized(self) -> SanitizedOrderRecord:
        """
        Return the clean record or raise when sanitization failed.

        Raises:
            DataValidationError: If any field failed sanitization
        """
        if self.sanitized is not None:
            return self.sanitized

        field_errors = {
            name: list(result.issues)
            for name, result in self.results.items()
            if not result.success
        }
        raise DataValidationError(
            message="Order data failed sanitization",
            error_code="ORDER_SANITIZATION_FAILED",
            validation_errors=None if field_errors else list(self.issues),
            field_errors=field_errors or None,
            context={'failed_fields': sorted(field_errors)},
        )


class BusinessRuleResult(BaseOrderModel):
    valid: bool
    violations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    rules_passed: int = Field(..., ge=0)
    total_rules: int = Field(..., ge=0)


class PreValidationSummary(BaseOrderModel):
    total_fields: int = Field(..., ge=0)
    required_fields_missing: int = Field(..., ge=0)
    critical_issues: int = Field(..., ge=0)
    minor_issues: int = Field(..., ge=0)


class PreValidationResult(BaseOrderModel):
    """
    Verdict of the fast-fail gate.

    ``critical`` entries block the pipeline; ``issues`` are soft hints.
    Passing this gate does not make a record safe.
    """

    passed: bool
    issues: List[str] = Field(default_factory=list)
    critical: List[str] = Field(default_factory=list)
    can_proceed: bool
    summary: Optional[PreValidationSummary] = None


class SafetyCheckResult(BaseOrderModel):
    safe: bool
    issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    fields_count: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SecureLogHash(BaseOrderModel):
    """Non-cryptographic correlation token for log lines; not a security hash."""

    hash: str
    timestamp: int
    fields_count: int = Field(default=0, ge=0)


__all__ = [
    'ORDER_FIELDS',
    'BaseOrderModel',
    'RawOrderRecord',
    'FieldSanitizationResult',
    'SanitizedOrderRecord',
    'SanitizationSummary',
    'PerformanceInfo',
    'OrderSanitizationReport',
    'BusinessRuleResult',
    'PreValidationSummary',
    'PreValidationResult',
    'SafetyCheckResult',
    'SecureLogHash',
]
