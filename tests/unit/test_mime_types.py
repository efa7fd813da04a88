"""
Unit tests for MIME type lookup.
"""

import pytest

from dirindex.http.mime_types import (
    MimeResolver,
    extension_of,
    get_content_type,
    get_mime_type,
    is_text_type,
    listing_type,
)


class TestExtensionOf:
    """Tests for extension extraction."""

    @pytest.mark.parametrize("name, expected", [
        ("report.PDF", "pdf"),
        ("archive.tar.gz", "gz"),
        ("Makefile", None),
        ("notes.my-ext", None),
        (".bashrc", "bashrc"),
        ("trailing.", None),
    ])
    def test_extension(self, name, expected):
        assert extension_of(name) == expected


class TestListingType:
    """Tests for the listing "Type" column."""

    def test_known_extension(self):
        assert listing_type("notes.txt") == "text/plain"
        assert listing_type("page.html") == "text/html"

    def test_case_insensitive(self):
        assert listing_type("Photo.PNG") == "image/png"

    def test_no_extension_looked_up_as_txt(self):
        assert listing_type("Makefile") == "text/plain"

    def test_unknown_extension_is_text_plain(self):
        assert listing_type("data.xyz") == "text/plain"


class TestContentType:
    """Tests for Content-Type of served files."""

    def test_binary_type_has_no_charset(self):
        assert get_content_type("image.png") == "image/png"

    def test_text_type_has_charset(self):
        assert get_content_type("page.html") == "text/html; charset=utf-8"

    def test_unknown_is_octet_stream(self):
        assert get_mime_type("blob.xyz") == "application/octet-stream"
        assert get_content_type("blob.xyz") == "application/octet-stream"

    def test_explicit_default(self):
        assert get_mime_type("blob.xyz", default="text/plain") == "text/plain"

    def test_is_text_type(self):
        assert is_text_type("text/css")
        assert is_text_type("application/json")
        assert not is_text_type("image/png")


class TestMimeResolver:
    """Tests for resolvers with extra types."""

    def test_extra_types(self):
        resolver = MimeResolver({".EPUB": "application/epub+zip"})

        assert resolver.type("epub") == "application/epub+zip"
        assert resolver.detect("book.epub") == "application/epub+zip"
        assert resolver.listing_type("book.EPUB") == "application/epub+zip"

    def test_extra_types_do_not_leak(self):
        MimeResolver({"epub": "application/epub+zip"})
        assert get_mime_type("book.epub") == "application/octet-stream"

    def test_type_of_nothing(self):
        assert MimeResolver().type(None) is None
        assert MimeResolver().type("") is None
