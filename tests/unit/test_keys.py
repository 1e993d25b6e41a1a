"""
Unit tests for storage key naming and public URLs.
"""

from cloud_gallery.core.gallery.keys import (
    file_name_from_key,
    generate_key,
    normalize_prefix,
    public_url,
)


class TestGenerateKey:
    """Tests for the key naming policy."""

    def test_keys_are_unique_for_identical_names(self):
        """1000 uploads of a.png never share a key."""
        keys = [generate_key("a.png") for _ in range(1000)]

        assert len(set(keys)) == 1000
        assert all(key.startswith("images/") for key in keys)
        assert all(key.endswith(".png") for key in keys)

    def test_keeps_only_the_extension(self):
        """The rest of the original name never reaches the key."""
        key = generate_key("holiday photo.final.JPG")

        assert key.endswith(".JPG")
        assert "holiday" not in key

    def test_name_without_extension(self):
        """No extension means a bare identifier."""
        key = generate_key("README")

        assert key.startswith("images/")
        assert "." not in file_name_from_key(key)

    def test_custom_prefix_gets_trailing_slash(self):
        """Keys always sit one level under the prefix."""
        key = generate_key("a.gif", prefix="albums/summer")

        assert key.startswith("albums/summer/")
        assert key.count("/") == 2


class TestHelpers:
    """Tests for prefix normalization and URL derivation."""

    def test_normalize_prefix(self):
        assert normalize_prefix("images") == "images/"
        assert normalize_prefix("images//") == "images/"
        assert normalize_prefix("") == ""

    def test_public_url_format(self):
        """URLs follow the virtual-hosted S3 pattern."""
        url = public_url("kesseh-galleries", "us-east-1", "images/abc.png")
        assert url == "https://kesseh-galleries.s3.us-east-1.amazonaws.com/images/abc.png"

    def test_file_name_from_key(self):
        assert file_name_from_key("images/abc.png") == "abc.png"
        assert file_name_from_key("abc.png") == "abc.png"
