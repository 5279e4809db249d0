"""
Abstract Receipt Storage Interface

Receipts are stored as blobs keyed by owner and upload time, and
referenced from expenses by their public URL.
"""

from abc import ABC, abstractmethod

from expense_tracker.models.expense import PreparedAttachment, StoredAttachment


class AttachmentStorageInterface(ABC):
    """Upload and delete receipt files."""

    @abstractmethod
    async def upload(self, user_id: str, attachment: PreparedAttachment) -> StoredAttachment:
        """
        Upload a prepared receipt.

        Args:
            user_id: Owner; objects are named "<user_id>/<timestamp>.<ext>"
            attachment: Validated (and compressed) file

        Returns:
            Public URL plus original name and content type

        Raises:
            StorageError: If the upload fails
        """
        pass

    @abstractmethod
    async def delete(self, url: str) -> None:
        """
        Delete a previously uploaded receipt by its URL.

        URLs that do not belong to this store are ignored.

        Raises:
            StorageError: If the backend refuses the delete
        """
        pass


class StorageError(Exception):
    """Base exception for receipt storage operations."""
    pass
