"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Services receive their settings through their constructors; get_settings()
is only used by the factory that wires the application together.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CloudinarySettings(BaseSettings):
    """Cloudinary receipt storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        extra="ignore"
    )

    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )
    folder: str = Field(
        default="expense_receipts",
        min_length=1,
        description="Folder that holds every uploaded receipt"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets expense storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for expenses"
    )
    categories_sheet_name: str = Field(
        default="Categories",
        description="Name of the sheet for categories"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Attachment limits
    max_upload_size_mb: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum attachment size in MB, before compression"
    )
    allowed_attachment_types: str = Field(
        default="image/jpeg,image/png,image/webp,application/pdf",
        description="Comma-separated list of accepted attachment content types"
    )
    compression_target_kb: int = Field(
        default=300,
        ge=50,
        description="Size compressed images should aim for, in KB"
    )
    compression_max_dimension: int = Field(
        default=1200,
        ge=100,
        description="Longest side of a compressed image, in pixels"
    )
    compressed_size_ceiling_kb: int = Field(
        default=900,
        ge=50,
        description="Compressed images above this size are rejected, in KB"
    )

    # Listing
    default_page_size: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Expenses shown per page"
    )
    pagination_siblings: int = Field(
        default=1,
        ge=0,
        le=5,
        description="Pages shown on each side of the current page"
    )

    # Validation thresholds
    max_expense_amount: float = Field(
        default=10_000_000.0,
        gt=0,
        description="Maximum reasonable expense amount (for sanity checking)"
    )

    @property
    def allowed_attachment_types_list(self) -> list[str]:
        """Get accepted content types as a list."""
        return [
            content_type.strip().lower()
            for content_type in self.allowed_attachment_types.split(",")
            if content_type.strip()
        ]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def compression_target_bytes(self) -> int:
        return self.compression_target_kb * 1024

    @property
    def compressed_size_ceiling_bytes(self) -> int:
        return self.compressed_size_ceiling_kb * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("cloudinary", "google_sheets", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
