"""Tests for product image checks."""

import io

from werkzeug.datastructures import FileStorage

from security.uploads import (
    ALLOWED_IMAGE_EXTENSIONS,
    ALLOWED_IMAGE_TYPES,
    validate_file_size,
    validate_file_type,
)

MB = 1024 * 1024


def make_file(size=10, filename="photo.png", content_type="image/png"):
    return FileStorage(stream=io.BytesIO(b"x" * size), filename=filename, content_type=content_type)


class TestValidateFileSize:

    def test_within_limit(self):
        assert validate_file_size(make_file(1024), 5 * MB).is_valid is True

    def test_exactly_at_limit(self):
        assert validate_file_size(make_file(MB), MB).is_valid is True

    def test_too_large(self):
        check = validate_file_size(make_file(MB + 1), MB)
        assert check.is_valid is False
        assert "Maximum allowed: 1.00MB" in check.error

    def test_missing_file(self):
        assert validate_file_size(None, MB).error == "Invalid file"
        assert validate_file_size(make_file(filename=""), MB).error == "Invalid file"

    def test_stream_position_is_restored(self):
        file = make_file(100)
        file.stream.seek(10)
        validate_file_size(file, MB)
        assert file.stream.tell() == 10


class TestValidateFileType:

    def test_allowed(self):
        check = validate_file_type(make_file(), ALLOWED_IMAGE_TYPES, ALLOWED_IMAGE_EXTENSIONS)
        assert check.is_valid is True

    def test_extension_is_case_insensitive(self):
        file = make_file(filename="PHOTO.JPG", content_type="image/jpeg")
        assert validate_file_type(file, ALLOWED_IMAGE_TYPES, ALLOWED_IMAGE_EXTENSIONS).is_valid is True

    def test_wrong_mime(self):
        file = make_file(filename="doc.png", content_type="application/pdf")
        check = validate_file_type(file, ALLOWED_IMAGE_TYPES, ALLOWED_IMAGE_EXTENSIONS)
        assert check.is_valid is False
        assert "application/pdf" in check.error

    def test_wrong_extension(self):
        file = make_file(filename="shell.php", content_type="image/png")
        check = validate_file_type(file, ALLOWED_IMAGE_TYPES, ALLOWED_IMAGE_EXTENSIONS)
        assert check.is_valid is False
        assert ".php" in check.error

    def test_no_restrictions(self):
        assert validate_file_type(make_file(filename="a.bin", content_type="x/y")).is_valid is True
