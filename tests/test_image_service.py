"""Image uploads."""

import pytest

from lesson_app.constants.session_constants import IMAGE_BUCKET
from lesson_app.core.errors import InvalidInputError, NotFoundError


class TestImageService:
    def test_upload(self, services, teacher):
        uploaded = services.images.upload_image("Diagram.PNG", b"\x89PNG", teacher.id)
        assert uploaded.path.startswith(f"{teacher.id}/")
        assert uploaded.path.endswith(".png")
        assert uploaded.url == f"http://classroom.test/storage/{IMAGE_BUCKET}/{uploaded.path}"
        assert services.backend.storage.download(IMAGE_BUCKET, uploaded.path) == (b"\x89PNG", "image/png")

    def test_upload_file(self, services, teacher, tmp_path):
        path = tmp_path / "photo.jpg"
        path.write_bytes(b"jpeg")
        uploaded = services.images.upload_image_file(path, teacher.id)
        assert uploaded.path.endswith(".jpg")

    def test_rejects_other_files(self, services, teacher):
        with pytest.raises(InvalidInputError):
            services.images.upload_image("notes.txt", b"text", teacher.id)

    def test_rejects_empty_file(self, services, teacher):
        with pytest.raises(InvalidInputError):
            services.images.upload_image("empty.png", b"", teacher.id)

    def test_delete(self, services, teacher):
        uploaded = services.images.upload_image("a.gif", b"GIF", teacher.id)
        services.images.delete_image(uploaded.path)
        with pytest.raises(NotFoundError):
            services.backend.storage.download(IMAGE_BUCKET, uploaded.path)
