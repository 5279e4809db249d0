"""
Receipt preparation: validation and image compression.

Images are shrunk to fit a maximum dimension and re-encoded as JPEG,
stepping the quality down until the file fits the size target. Files that
still exceed the hard ceiling afterwards are rejected. PDFs pass through
untouched once their type and size are accepted.
"""

from io import BytesIO
from pathlib import PurePath

from PIL import Image, ImageOps, UnidentifiedImageError

from expense_tracker.config import AppSettings
from expense_tracker.models.expense import (
    AttachmentUpload,
    PreparedAttachment,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.validation import ExpenseValidationError, ExpenseValidator


JPEG_QUALITY_STEPS = (85, 75, 65, 55, 45, 35)
MIN_DIMENSION = 300
DOWNSCALE_FACTOR = 0.75


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def compress_image(data: bytes, max_dimension: int, target_bytes: int) -> bytes:
    """
    Re-encode an image as JPEG no larger than max_dimension on its long side.

    Tries decreasing JPEG qualities, then smaller sizes, and returns the
    first encoding within target_bytes, or the smallest one produced.

    Raises:
        UnidentifiedImageError: If the bytes are not a readable image
    """
    with Image.open(BytesIO(data)) as original:
        image = ImageOps.exif_transpose(original)
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        image.thumbnail((max_dimension, max_dimension))

        best = None
        while True:
            for quality in JPEG_QUALITY_STEPS:
                encoded = _encode_jpeg(image, quality)
                if best is None or len(encoded) < len(best):
                    best = encoded
                if len(encoded) <= target_bytes:
                    return encoded

            width, height = image.size
            if max(width, height) * DOWNSCALE_FACTOR < MIN_DIMENSION:
                return best
            image = image.resize(
                (max(1, int(width * DOWNSCALE_FACTOR)), max(1, int(height * DOWNSCALE_FACTOR)))
            )


class AttachmentPreparer:
    """Turns a raw upload into something safe to store."""

    def __init__(self, settings: AppSettings, validator: ExpenseValidator):
        self._settings = settings
        self._validator = validator

    def _reject(self, issue_type: str, message: str) -> ExpenseValidationError:
        return ExpenseValidationError(ValidationResult(issues=[ValidationIssue(
            field="attachment",
            issue_type=issue_type,
            message=message,
            severity="error",
        )]))

    def prepare(self, upload: AttachmentUpload) -> PreparedAttachment:
        """
        Validate and, for images, compress an upload.

        Raises:
            ExpenseValidationError: Wrong type, too large, unreadable, or
                                    still too large after compression
        """
        self._validator.raise_for_errors(self._validator.validate_attachment(upload))

        if not upload.content_type.startswith("image/"):
            return PreparedAttachment(
                filename=upload.filename,
                content_type=upload.content_type,
                data=upload.data,
                original_size_bytes=upload.size_bytes,
            )

        try:
            data = compress_image(
                upload.data,
                max_dimension=self._settings.compression_max_dimension,
                target_bytes=self._settings.compression_target_bytes,
            )
        except (UnidentifiedImageError, OSError) as e:
            raise self._reject("unreadable", f"Could not read image: {e}")

        if len(data) > self._settings.compressed_size_ceiling_bytes:
            raise self._reject(
                "too_large",
                f"Compressed file still too large: {len(data) / 1024:.0f}KB. Try a smaller image.",
            )

        return PreparedAttachment(
            filename=f"{PurePath(upload.filename).stem}.jpg",
            original_filename=upload.filename,
            content_type="image/jpeg",
            data=data,
            original_size_bytes=upload.size_bytes,
            compressed=True,
        )
