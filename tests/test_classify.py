import pytest

from clipdeck.classify import analyze_text_format, classify, format_label, is_text_like, is_url_content
from clipdeck.models import (
    FORMAT_BINARY,
    FORMAT_FILE_LIST,
    FORMAT_FILE_PATH,
    FORMAT_HTML,
    FORMAT_PNG,
    FORMAT_RTF,
    FORMAT_TEXT,
    FORMAT_URI_LIST,
    Category,
)


class TestClassify:
    @pytest.mark.parametrize(
        "format_id, category",
        [
            ("image/png", Category.IMAGE),
            ("image/jpeg", Category.IMAGE),
            ("application/x-file-list", Category.FILES),
            ("application/x-file-path", Category.FILES),
            ("files", Category.FILES),
            ("text/uri-list", Category.URL),
            ("text/html", Category.HTML),
            ("text/plain", Category.TEXT),
            ("text/rtf", Category.TEXT),
            ("text/csv", Category.TEXT),
        ],
    )
    def test_known_formats(self, format_id, category):
        assert classify(format_id) is category

    def test_unknown_format_is_text(self):
        assert classify("application/x-something") is Category.TEXT

    def test_empty_format_is_text(self):
        assert classify("") is Category.TEXT


class TestIsTextLike:
    def test_text_prefix(self):
        assert is_text_like("text/plain")
        assert is_text_like("text")

    def test_non_text(self):
        assert not is_text_like("image/png")
        assert not is_text_like("textual/thing")


class TestIsUrlContent:
    def test_uri_list_always_url(self):
        assert is_url_content("not even a url", FORMAT_URI_LIST)

    def test_plain_text_with_url(self):
        assert is_url_content("  https://example.com/page  ", FORMAT_TEXT)
        assert is_url_content("http://example.com", FORMAT_TEXT)

    def test_plain_text_without_scheme(self):
        assert not is_url_content("example.com", FORMAT_TEXT)
        assert not is_url_content("see https://example.com", FORMAT_TEXT)

    def test_non_text_format_never_url(self):
        assert not is_url_content("https://example.com", FORMAT_PNG)
        assert not is_url_content("https://example.com", FORMAT_FILE_LIST)


class TestFormatLabel:
    def test_labels(self):
        assert format_label(FORMAT_TEXT) == "Text"
        assert format_label(FORMAT_HTML) == "HTML"
        assert format_label(FORMAT_RTF) == "Rich Text"
        assert format_label("image/gif") == "Image"
        assert format_label(FORMAT_FILE_LIST) == "File List"

    def test_unknown_label_falls_back_to_text(self):
        assert format_label("application/x-unknown") == "Text"


class TestAnalyzeTextFormat:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("https://example.com", FORMAT_URI_LIST),
            ("data:image/png;base64,AAAA", FORMAT_PNG),
            ("data:application/pdf;base64,AAAA", FORMAT_BINARY),
            ("<html><body>hi</body></html>", FORMAT_HTML),
            ("{\\rtf1\\ansi hello}", FORMAT_RTF),
            ("/Users/me/notes.txt", FORMAT_FILE_PATH),
            ("C:\\Users\\me", FORMAT_FILE_PATH),
            ("just some words", FORMAT_TEXT),
        ],
    )
    def test_detects_format(self, text, expected):
        assert analyze_text_format(text) == expected
