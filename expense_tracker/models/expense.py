"""
Core Data Models for Expense Tracker

These models define the schemas for all expense data flowing through the system.
They are designed to:
1. Enforce the data invariants at runtime (non-negative amounts, real dates)
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: Dates are real calendar dates, never strings.
ISO "yyyy-MM-dd" is accepted on input and produced on output, so ordering
and range checks compare dates, not text.
"""

import datetime as dt
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


UNCATEGORIZED_LABEL = "Uncategorized"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _normalize_currency(v: str) -> str:
    return v.strip().upper()


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Category(BaseModel):
    """
    A user-visible label for grouping expenses.

    Categories are reference data: expenses point at them by id and the
    storage layer joins them back in when listing.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Unique category ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    icon: Optional[str] = Field(
        default=None,
        max_length=16,
        description="Emoji or short icon identifier"
    )
    color: Optional[str] = Field(
        default=None,
        max_length=32,
        description="Display colour"
    )
    created_at: dt.datetime = Field(
        default_factory=_utcnow
    )


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class Expense(BaseModel):
    """
    A single recorded expense owned by exactly one user.

    `category` is the denormalized join of `category_id`; it is filled in
    by storage when listing and may be absent on freshly built objects.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: str = Field(
        ...,
        min_length=1,
        description="Unique expense ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of this expense"
    )

    amount: float = Field(
        ...,
        ge=0,
        description="Amount in `currency`, never negative"
    )
    currency: str = Field(
        ...,
        min_length=1,
        max_length=10,
        description="Currency code, e.g. USD"
    )
    category_id: Optional[str] = Field(
        default=None,
        description="Category reference; absent means Uncategorized"
    )
    category: Optional[Category] = None
    date: dt.date = Field(
        ...,
        description="Calendar date of the expense"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=1000
    )

    # Receipt
    attachment_url: Optional[str] = None
    attachment_name: Optional[str] = None
    attachment_type: Optional[str] = None

    # Timestamps
    created_at: dt.datetime = Field(
        default_factory=_utcnow
    )
    updated_at: dt.datetime = Field(
        default_factory=_utcnow
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return _normalize_currency(v)

    @field_validator('category_id', 'description', mode='before')
    @classmethod
    def empty_string_is_none(cls, v):
        """Blank optional strings mean 'not set'."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def validate_category_join(self) -> 'Expense':
        """A joined category must be the one referenced by category_id."""
        if self.category is not None and self.category.id != self.category_id:
            raise ValueError("Joined category does not match category_id")
        return self

    @property
    def category_label(self) -> str:
        """Display name of the category, or 'Uncategorized'."""
        if self.category is not None:
            return self.category.name
        return UNCATEGORIZED_LABEL

    @property
    def has_attachment(self) -> bool:
        return bool(self.attachment_url)


class ExpenseFilter(BaseModel):
    """
    User-supplied criteria for narrowing an expense list.

    Every criterion is optional; unset or blank criteria impose no constraint.
    A search term is matched as typed, surrounding spaces included.
    """

    category_id: Optional[str] = None
    currency: Optional[str] = None
    start_date: Optional[dt.date] = Field(
        default=None,
        description="Inclusive lower bound on expense date"
    )
    end_date: Optional[dt.date] = Field(
        default=None,
        description="Inclusive upper bound on expense date"
    )
    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of the description"
    )

    @field_validator('category_id', 'currency', 'search', mode='before')
    @classmethod
    def empty_string_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('category_id')
    @classmethod
    def strip_category_id(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_currency(v) if v is not None else None

    @property
    def active_criteria(self) -> list[str]:
        """Names of the criteria that actually constrain results."""
        return [name for name, value in self.model_dump().items() if value is not None]

    @property
    def is_empty(self) -> bool:
        return not self.active_criteria


class ExpenseFormData(BaseModel):
    """
    Expense fields as submitted by the user on create or update.

    Structural checks happen here; business checks happen in the validator.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: float = Field(
        ...,
        ge=0,
        description="Amount, never negative"
    )
    currency: str = Field(
        ...,
        min_length=1,
        max_length=10
    )
    category_id: Optional[str] = None
    date: dt.date
    description: Optional[str] = Field(
        default=None,
        max_length=1000
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return _normalize_currency(v)

    @field_validator('category_id', 'description', mode='before')
    @classmethod
    def empty_string_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# ATTACHMENT MODELS
# =============================================================================

class AttachmentUpload(BaseModel):
    """A receipt file exactly as the user handed it over."""

    filename: str = Field(
        ...,
        min_length=1
    )
    content_type: str
    data: bytes = Field(
        repr=False
    )

    @field_validator('content_type')
    @classmethod
    def lower_content_type(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class PreparedAttachment(BaseModel):
    """A receipt that passed validation and, for images, compression."""

    filename: str
    original_filename: Optional[str] = Field(
        default=None,
        description="Name the user uploaded; filename may carry a new extension"
    )
    content_type: str
    data: bytes = Field(
        repr=False
    )
    original_size_bytes: int = Field(ge=0)
    compressed: bool = False

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @property
    def display_name(self) -> str:
        return self.original_filename or self.filename

    @property
    def extension(self) -> str:
        """File extension without the dot, lower-cased."""
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[1].lower()


class StoredAttachment(BaseModel):
    """Where a receipt ended up after upload."""

    url: str = Field(
        ...,
        min_length=1,
        description="Public retrieval URL"
    )
    name: str = Field(
        ...,
        description="Original filename shown to the user"
    )
    content_type: str


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'too_large')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one submission."""

    validated_at: dt.datetime = Field(
        default_factory=_utcnow
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
