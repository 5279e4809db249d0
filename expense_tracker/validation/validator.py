"""
Expense Validation

DESIGN DECISION: Structural checks (types, non-negative amounts, real
dates) live in the pydantic models. This module adds the checks that need
context the models do not have:

- Does the referenced category exist? (needs category storage)
- Is the date in the future? (needs "today", passed in)
- Is the amount absurd? (needs configured thresholds)
- Is the receipt an accepted type and size? (needs configured limits)

IMPORTANT: Validation NEVER silently fixes issues.
Errors block the operation; warnings are reported back to the user.
"""

import re
from datetime import date
from typing import Optional

from expense_tracker.config import AppSettings
from expense_tracker.models.expense import (
    AttachmentUpload,
    ExpenseFormData,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.services.database import CategoryStorageInterface


CURRENCY_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")


class ExpenseValidationError(Exception):
    """A submission has error-level validation issues."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [issue.message for issue in result.issues if issue.severity == "error"]
        super().__init__("; ".join(messages) or "Validation failed")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


class ExpenseValidator:
    """
    Validates expense submissions and receipt uploads.

    Category existence is only checked when category storage is given.
    """

    def __init__(
        self,
        settings: AppSettings,
        category_storage: Optional[CategoryStorageInterface] = None,
    ):
        self._settings = settings
        self._categories = category_storage

    def _check_fields(
        self,
        form: ExpenseFormData,
        today: date,
    ) -> list[ValidationIssue]:
        issues = []

        if not CURRENCY_CODE_PATTERN.match(form.currency):
            issues.append(ValidationIssue(
                field="currency",
                issue_type="invalid_format",
                message=f"Currency '{form.currency}' is not a three-letter code",
                severity="error",
                suggested_fix="Use a code such as USD or EUR",
            ))

        if form.amount > self._settings.max_expense_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({form.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))
        elif form.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message="Amount is zero",
                severity="warning",
            ))

        if form.date > today:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({form.date.isoformat()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return issues

    async def _check_category(self, form: ExpenseFormData) -> list[ValidationIssue]:
        """The referenced category must exist. Storage errors propagate."""
        if form.category_id is None or self._categories is None:
            return []

        category = await self._categories.get_category(form.category_id)
        if category is None:
            return [ValidationIssue(
                field="category_id",
                issue_type="not_found",
                message=f"Category '{form.category_id}' does not exist",
                severity="error",
                suggested_fix="Pick a category from the list or leave it empty",
            )]
        return []

    async def validate(self, form: ExpenseFormData, today: date) -> ValidationResult:
        """
        Validate one expense submission.

        Args:
            form: The submitted fields
            today: Reference date for the future-date check

        Returns:
            ValidationResult with all issues found
        """
        issues = self._check_fields(form, today)
        issues.extend(await self._check_category(form))
        return ValidationResult(issues=issues)

    def validate_attachment(self, upload: AttachmentUpload) -> ValidationResult:
        """Check a receipt's content type and size before any processing."""
        issues = []
        allowed = self._settings.allowed_attachment_types_list

        if upload.content_type not in allowed:
            issues.append(ValidationIssue(
                field="attachment",
                issue_type="invalid_type",
                message=f"Unsupported file type: {upload.content_type}",
                severity="error",
                suggested_fix="Upload a JPG, PNG, WEBP or PDF file",
            ))

        if upload.size_bytes == 0:
            issues.append(ValidationIssue(
                field="attachment",
                issue_type="empty",
                message="The uploaded file is empty",
                severity="error",
            ))
        elif upload.size_bytes > self._settings.max_upload_size_bytes:
            issues.append(ValidationIssue(
                field="attachment",
                issue_type="too_large",
                message=(
                    f"File size must be less than {self._settings.max_upload_size_mb}MB "
                    f"(got {upload.size_bytes / 1024 / 1024:.2f}MB)"
                ),
                severity="error",
            ))

        return ValidationResult(issues=issues)

    @staticmethod
    def raise_for_errors(result: ValidationResult) -> None:
        """
        Raises:
            ExpenseValidationError: If the result has error-level issues
        """
        if result.has_errors:
            raise ExpenseValidationError(result)

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """Summarise a validation result for display."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
