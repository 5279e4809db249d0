"""Receipt storage services package."""

from expense_tracker.services.storage.interface import AttachmentStorageInterface, StorageError
from expense_tracker.services.storage.cloudinary_service import CloudinaryAttachmentStorage
from expense_tracker.services.storage.compression import AttachmentPreparer, compress_image

__all__ = [
    "AttachmentPreparer",
    "AttachmentStorageInterface",
    "CloudinaryAttachmentStorage",
    "StorageError",
    "compress_image",
]
