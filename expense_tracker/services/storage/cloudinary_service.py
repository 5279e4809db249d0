"""
Receipt Storage using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. Reliable hosted storage with public delivery URLs
2. Handles both images and raw files (PDF receipts)
3. Simple API
4. Free tier sufficient for personal use

Credentials are passed on every call instead of through the SDK's global
cloudinary.config(), so several stores with different accounts can
coexist and nothing depends on process-wide state.

Object layout: <folder>/<user_id>/<timestamp>[.<ext>]
- images are uploaded as resource_type "image" (extension not in public_id)
- PDFs are uploaded as resource_type "raw" (extension kept in public_id)
"""

import re
from datetime import datetime, timezone
from io import BytesIO
from typing import Callable, Optional
from urllib.parse import urlparse

import cloudinary.exceptions
import cloudinary.uploader

from expense_tracker.config import CloudinarySettings
from expense_tracker.models.expense import PreparedAttachment, StoredAttachment
from expense_tracker.services.storage.interface import AttachmentStorageInterface, StorageError


VERSION_SEGMENT = re.compile(r"^v\d+$")


def _now_millis() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


class CloudinaryAttachmentStorage(AttachmentStorageInterface):
    """
    Receipt storage on Cloudinary.

    Flow:
    1. Receive a prepared (validated, compressed) attachment
    2. Upload it under the owner's folder
    3. Return the secure delivery URL
    """

    def __init__(
        self,
        settings: CloudinarySettings,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._settings = settings
        self._clock = clock or _now_millis

    def _credentials(self) -> dict:
        return {
            "cloud_name": self._settings.cloud_name,
            "api_key": self._settings.api_key,
            "api_secret": self._settings.api_secret,
        }

    @staticmethod
    def _resource_type(content_type: str) -> str:
        return "image" if content_type.startswith("image/") else "raw"

    def _generate_public_id(self, user_id: str, attachment: PreparedAttachment) -> str:
        """
        Generate the public ID for an upload.

        Format: {folder}/{user_id}/{timestamp}, plus ".{ext}" for raw files
        """
        public_id = f"{self._settings.folder}/{user_id}/{self._clock()}"
        if self._resource_type(attachment.content_type) == "raw" and attachment.extension:
            public_id = f"{public_id}.{attachment.extension}"
        return public_id

    def parse_url(self, url: str) -> Optional[tuple[str, str]]:
        """
        Recover (resource_type, public_id) from a delivery URL.

        Returns None for URLs outside this cloud or folder.
        """
        parts = urlparse(url).path.strip("/").split("/")
        if len(parts) < 5:
            return None
        cloud_name, resource_type, delivery = parts[0], parts[1], parts[2]
        if cloud_name != self._settings.cloud_name or delivery != "upload":
            return None

        rest = parts[3:]
        if rest and VERSION_SEGMENT.match(rest[0]):
            rest = rest[1:]
        if len(rest) < 2 or rest[0] != self._settings.folder:
            return None

        public_id = "/".join(rest)
        if resource_type != "raw" and "." in rest[-1]:
            public_id = public_id.rsplit(".", 1)[0]
        return resource_type, public_id

    async def upload(self, user_id: str, attachment: PreparedAttachment) -> StoredAttachment:
        """Upload a receipt and return its delivery URL."""
        public_id = self._generate_public_id(user_id, attachment)

        try:
            result = cloudinary.uploader.upload(
                BytesIO(attachment.data),
                public_id=public_id,
                resource_type=self._resource_type(attachment.content_type),
                overwrite=False,
                **self._credentials(),
            )
        except cloudinary.exceptions.Error as e:
            raise StorageError(f"Cloudinary error: {e}")
        except Exception as e:
            raise StorageError(f"Failed to upload attachment: {e}")

        url = result.get("secure_url", result.get("url", ""))
        if not url:
            raise StorageError("No URL returned from Cloudinary")

        return StoredAttachment(
            url=url,
            name=attachment.display_name,
            content_type=attachment.content_type,
        )

    async def delete(self, url: str) -> None:
        """Delete a receipt; unknown URLs are ignored."""
        parsed = self.parse_url(url)
        if parsed is None:
            return
        resource_type, public_id = parsed

        try:
            result = cloudinary.uploader.destroy(
                public_id,
                resource_type=resource_type,
                invalidate=True,
                **self._credentials(),
            )
        except cloudinary.exceptions.Error as e:
            raise StorageError(f"Cloudinary error: {e}")
        except Exception as e:
            raise StorageError(f"Failed to delete attachment: {e}")

        # "not found" means it is already gone
        if result.get("result") not in ("ok", "not found"):
            raise StorageError(f"Failed to delete attachment: {result.get('result')}")
