"""
tests/test_file_storage.py: Upload Storage Tests
===================================================
"""

from __future__ import annotations

import pytest

from app.config import get_settings
from app.core.exceptions import ValidationException
from app.infrastructure.file_storage import UploadPayload, discard_upload, save_upload, validate_upload


def _payload(name="pic.png", content=b"data", content_type="image/png") -> UploadPayload:
    return UploadPayload(filename=name, content=content, content_type=content_type)


class TestValidate:
    def test_extension_is_case_insensitive(self):
        assert _payload("PIC.PNG").extension == ".png"
        validate_upload(_payload("PIC.PNG"))

    def test_video_rejected_where_only_images_allowed(self):
        with pytest.raises(ValidationException):
            validate_upload(_payload("clip.mp4", content_type="video/mp4"))

    def test_video_allowed_for_posts(self):
        validate_upload(_payload("clip.mp4", content_type="video/mp4"), allow_video=True)

    def test_mismatched_mime_rejected(self):
        with pytest.raises(ValidationException):
            validate_upload(_payload("pic.png", content_type="application/pdf"))

    def test_generic_mime_falls_back_to_extension(self):
        validate_upload(_payload("pic.png", content_type="application/octet-stream"))

    def test_image_size_limit(self):
        limit = get_settings().MAX_IMAGE_SIZE
        validate_upload(_payload(content=b"x" * limit))
        with pytest.raises(ValidationException) as exc:
            validate_upload(_payload(content=b"x" * (limit + 1)))
        assert exc.value.details["max_size"] == limit


class TestSaveAndDiscard:
    def test_saved_under_prefix_with_public_urls(self):
        stored = save_upload(_payload(content=b"hello"), prefix="coverImage")
        try:
            assert stored.path.read_bytes() == b"hello"
            assert stored.name.startswith("coverImage-")
            assert stored.name.endswith(".png")
            assert stored.url_path == f"/uploads/{stored.name}"
            assert stored.public_url == f"http://testserver/uploads/{stored.name}"
        finally:
            discard_upload(stored)

    def test_names_do_not_collide(self):
        first = save_upload(_payload())
        second = save_upload(_payload())
        try:
            assert first.name != second.name
        finally:
            discard_upload(first)
            discard_upload(second)

    def test_discard_removes_file(self):
        stored = save_upload(_payload())
        discard_upload(stored)
        assert not stored.path.exists()

    def test_discard_none_is_noop(self):
        discard_upload(None)
