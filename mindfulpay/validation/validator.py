"""
Two-Stage Payment Input Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Payee address format and length
- Amount is a finite number with at most two decimals

STAGE 2 - SEMANTIC VALIDATION:
- Category is a known expense category
- Unusually large amounts are flagged for the user

Stage 2 only runs when stage 1 found no errors.

IMPORTANT: Validation NEVER silently fixes issues. An invalid
payment is rejected before any blocklist or limit check runs.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from mindfulpay.config import get_settings
from mindfulpay.models.finance import EXPENSE_CATEGORIES
from mindfulpay.models.payment import (
    MAX_PAYEE_ID_LENGTH,
    MAX_PAYEE_NAME_LENGTH,
    PaymentRequest,
    ValidationIssue,
    ValidationResult,
    is_valid_payee_id,
)


MAX_NOTE_LENGTH = 200


class PaymentValidationError(ValueError):
    """Raised when payment input fails validation."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        errors = [i.message for i in issues if i.severity == "error"]
        super().__init__("; ".join(errors) or "Invalid payment")


def _parse_amount(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidOperation(value)
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
    return Decimal(value)


class PaymentValidator:
    """
    Validates raw payment input through a two-stage pipeline.

    Amounts may arrive as text from the UI, so everything is
    re-checked here even though PaymentRequest validates types.
    """

    def __init__(self, max_payment_amount: Optional[Decimal] = None):
        self._max_amount = (
            max_payment_amount
            if max_payment_amount is not None
            else get_settings().payments.max_payment_amount
        )

    def _validate_schema(
        self,
        payee_id: Optional[str],
        amount: Any,
        note: Optional[str],
        payee_name: Optional[str] = None,
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 1. Returns (is_valid, list_of_issues)."""
        issues = []

        payee = (payee_id or "").strip()
        if not payee:
            issues.append(ValidationIssue(
                field="payee_id",
                issue_type="missing",
                message="Payee UPI ID is required",
                severity="error",
                suggested_fix="Enter a UPI ID such as name@bank",
            ))
        elif len(payee) > MAX_PAYEE_ID_LENGTH:
            issues.append(ValidationIssue(
                field="payee_id",
                issue_type="too_long",
                message=f"Payee UPI ID cannot exceed {MAX_PAYEE_ID_LENGTH} characters",
                severity="error",
            ))
        elif not is_valid_payee_id(payee):
            issues.append(ValidationIssue(
                field="payee_id",
                issue_type="invalid_format",
                message=f"'{payee}' is not a valid UPI ID",
                severity="error",
                suggested_fix="A UPI ID looks like name@bank",
            ))

        try:
            parsed = _parse_amount(amount)
        except (InvalidOperation, TypeError, ValueError):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount must be a number",
                severity="error",
            ))
        else:
            if parsed is None:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ))
            elif not parsed.is_finite():
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be a finite number",
                    severity="error",
                ))
            elif parsed <= 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be greater than zero",
                    severity="error",
                ))
            elif parsed.as_tuple().exponent < -2:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_format",
                    message="Amount cannot have more than two decimal places",
                    severity="error",
                    suggested_fix="Round the amount to the nearest paisa",
                ))

        if note is not None and len(note.strip()) > MAX_NOTE_LENGTH:
            issues.append(ValidationIssue(
                field="note",
                issue_type="too_long",
                message=f"Note cannot exceed {MAX_NOTE_LENGTH} characters",
                severity="error",
            ))

        if payee_name is not None and len(payee_name.strip()) > MAX_PAYEE_NAME_LENGTH:
            issues.append(ValidationIssue(
                field="payee_name",
                issue_type="too_long",
                message=f"Payee name cannot exceed {MAX_PAYEE_NAME_LENGTH} characters",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        amount: Decimal,
        category: Optional[str],
    ) -> tuple[bool, list[ValidationIssue]]:
        """Stage 2. Returns (is_valid, list_of_issues)."""
        issues = []

        if category is not None and category not in EXPENSE_CATEGORIES:
            issues.append(ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"Unknown expense category: {category}",
                severity="error",
                suggested_fix="Pick one of the listed expense categories",
            ))

        if amount > self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (₹{amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        payee_id: Optional[str],
        amount: Any,
        category: Optional[str] = None,
        note: Optional[str] = None,
        payee_name: Optional[str] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation.

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(
            payee_id, amount, note, payee_name
        )
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                _parse_amount(amount), category
            )
            all_issues.extend(semantic_issues)

        return ValidationResult(
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
        )

    def build_request(
        self,
        payee_id: Optional[str],
        amount: Any,
        category: Optional[str] = None,
        note: Optional[str] = None,
        payee_name: Optional[str] = None,
    ) -> PaymentRequest:
        """
        Validate input and build the request the gate works with.

        Raises:
            PaymentValidationError: If any error-level issue was found
        """
        result = self.validate(payee_id, amount, category, note, payee_name)
        if not result.is_valid:
            raise PaymentValidationError(result.issues)

        return PaymentRequest(
            payee_id=payee_id.strip(),
            amount=_parse_amount(amount),
            category=category,
            note=(note or "").strip(),
            payee_name=payee_name,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Summary of validation results for the payment screen."""
        if result.is_valid and not result.warnings:
            return "✅ Payment details look good."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
