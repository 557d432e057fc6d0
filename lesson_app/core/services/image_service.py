"""Uploading and removing slide images in object storage."""

from __future__ import annotations

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path

from lesson_app.backend.client import BackendClient
from lesson_app.constants.session_constants import IMAGE_BUCKET
from lesson_app.core.errors import BackendError, InvalidInputError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp", "image/svg+xml"})


@dataclass(frozen=True, slots=True)
class UploadedImage:
    url: str
    path: str


class ImageService:
    def __init__(self, backend: BackendClient, bucket: str = IMAGE_BUCKET) -> None:
        self._backend = backend
        self._bucket = bucket

    def upload_image(self, file_name: str, data: bytes, user_id: str) -> UploadedImage:
        """Store an image under ``<user_id>/<uuid>.<ext>`` and return its public URL."""

        content_type = mimetypes.guess_type(file_name)[0] or ""
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise InvalidInputError(f"{Path(file_name).name} is not a supported image file.")
        if not data:
            raise InvalidInputError("The image file is empty.")

        extension = Path(file_name).suffix.lower()
        object_path = f"{user_id}/{uuid.uuid4()}{extension}"
        try:
            stored_path = self._backend.storage.upload(self._bucket, object_path, data, content_type)
        except BackendError:
            logger.exception("Failed to upload image %s", file_name)
            raise
        logger.info("Uploaded image %s as %s", file_name, stored_path)
        return UploadedImage(
            url=self._backend.storage.get_public_url(self._bucket, stored_path),
            path=stored_path,
        )

    def upload_image_file(self, file_path: Path, user_id: str) -> UploadedImage:
        return self.upload_image(file_path.name, file_path.read_bytes(), user_id)

    def delete_image(self, path: str) -> None:
        try:
            self._backend.storage.remove(self._bucket, [path])
        except BackendError:
            logger.exception("Failed to delete image %s", path)
            raise
