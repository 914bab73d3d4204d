"""
Client for the image upload endpoint
"""

import logging

from pathguard.core.exceptions import UploadError
from pathguard.crowdsource.report_handler import ImageKind, ImageUpload
from .base import ApiClient

logger = logging.getLogger(__name__)

IMAGES_PATH = "/api/v1/images"


class StorageClient(ApiClient):
    """Uploads report images to the object store."""

    async def upload(self, image: ImageUpload, kind: ImageKind) -> str:
        """
        Upload one image.

        Args:
            image: Image to upload
            kind: Original photo or processed derivative

        Returns:
            Public URL of the stored image

        Raises:
            UploadError: if the upload fails
        """
        try:
            response = await self._request(
                "POST",
                IMAGES_PATH,
                UploadError,
                files={"file": (image.filename, image.data, image.content_type)},
                data={"kind": ImageKind(kind).value},
            )
        except UploadError as e:
            e.filename = image.filename
            raise

        try:
            url = response.json().get("url")
        except (AttributeError, ValueError) as e:
            raise UploadError(f"Malformed upload response: {e}", filename=image.filename)

        if not url:
            raise UploadError("Upload response has no URL", filename=image.filename)

        logger.info(f"Uploaded {image.filename} as {kind.value}")
        return url
