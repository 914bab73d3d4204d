"""
Local object storage for report images

Files are written under ``<storage_dir>/<bucket>/`` and served by the API
at ``/media``. Returned URLs carry a ``?t=<timestamp>`` cache buster.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pathguard.core.config import settings
from pathguard.core.exceptions import UploadError
from pathguard.crowdsource.report_handler import ImageKind

logger = logging.getLogger(__name__)

MEDIA_ROUTE = "/media"

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


@dataclass(frozen=True)
class StoredImage:
    """Metadata returned after saving an image."""
    key: str
    path: Path
    url: str
    content_type: str
    size: int


class ImageStore:
    """
    Filesystem-backed image bucket.

    Usage:
        store = ImageStore("media")
        stored = store.save(data, "image/jpeg", ImageKind.ORIGINAL)
    """

    def __init__(
        self,
        root_dir: Optional[str] = None,
        public_base_url: Optional[str] = None,
        bucket: Optional[str] = None
    ):
        """
        Initialize image store.

        Args:
            root_dir: Directory holding all buckets
            public_base_url: Base URL the API is reachable at
            bucket: Bucket (sub-directory) name
        """
        self.root_dir = Path(root_dir or settings.storage_dir)
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")
        self.bucket = bucket or settings.storage_bucket

        self.bucket_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"ImageStore initialized at {self.bucket_dir}")

    @property
    def bucket_dir(self) -> Path:
        return self.root_dir / self.bucket

    def save(
        self,
        data: bytes,
        content_type: str,
        kind: ImageKind,
        filename: Optional[str] = None
    ) -> StoredImage:
        """
        Write an image to the bucket.

        Args:
            data: Image bytes
            content_type: MIME type of the image
            kind: Original upload or processed derivative
            filename: Client-side filename, used for the extension

        Returns:
            StoredImage with the public URL

        Raises:
            UploadError: if the file cannot be written
        """
        timestamp = int(time.time() * 1000)
        extension = self._extension(content_type, filename)
        key = f"{timestamp}-{secrets.token_hex(6)}-{ImageKind(kind).value}.{extension}"
        path = self.bucket_dir / key

        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to store {key}: {e}")
            raise UploadError(f"Failed to store image: {e}", filename=filename)

        url = f"{self.public_base_url}{MEDIA_ROUTE}/{self.bucket}/{key}?t={timestamp}"
        logger.info(f"{kind.value} image stored: {key} ({len(data)} bytes)")

        return StoredImage(key=key, path=path, url=url, content_type=content_type, size=len(data))

    def _extension(self, content_type: str, filename: Optional[str]) -> str:
        if filename and "." in filename:
            return filename.rsplit(".", 1)[-1].lower()
        return _EXTENSIONS.get(content_type, "bin")
