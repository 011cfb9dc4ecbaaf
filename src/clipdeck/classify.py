"""Map clipboard format identifiers to the coarse categories used for filtering."""

import re

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

IMAGE_PREFIX = "image/"
TEXT_PREFIX = "text/"
FILE_LIST_FORMATS = frozenset({FORMAT_FILE_LIST, FORMAT_FILE_PATH, "files"})

URL_PATTERN = re.compile(r"^https?://")

_FORMAT_LABELS = {
    FORMAT_TEXT: "Text",
    FORMAT_HTML: "HTML",
    FORMAT_RTF: "Rich Text",
    FORMAT_URI_LIST: "URL",
    FORMAT_FILE_LIST: "File List",
    FORMAT_FILE_PATH: "File Path",
}


def classify(format_id: str) -> Category:
    if format_id.startswith(IMAGE_PREFIX):
        return Category.IMAGE
    if format_id in FILE_LIST_FORMATS:
        return Category.FILES
    if format_id == FORMAT_URI_LIST:
        return Category.URL
    if format_id == FORMAT_HTML:
        return Category.HTML
    # text/plain, text/rtf, text/csv and anything the capturer adds later
    return Category.TEXT


def is_text_like(format_id: str) -> bool:
    return format_id.startswith(TEXT_PREFIX) or format_id == "text"


def is_url_content(content: str, format_id: str) -> bool:
    """True for canonical URL lists and for text whose first token is an http(s) URL."""
    if format_id == FORMAT_URI_LIST:
        return True
    if is_text_like(format_id):
        return URL_PATTERN.match(content.strip()) is not None
    return False


def format_label(format_id: str) -> str:
    if format_id.startswith(IMAGE_PREFIX):
        return "Image"
    return _FORMAT_LABELS.get(format_id, "Text")


def analyze_text_format(text: str) -> str:
    """Pick the format a captured plain string most likely represents."""
    if text.startswith(("http://", "https://")):
        return FORMAT_URI_LIST
    if text.startswith("data:image/"):
        return FORMAT_PNG
    if text.startswith("data:"):
        return FORMAT_BINARY
    if "<html" in text or "</html>" in text:
        return FORMAT_HTML
    if text.startswith("{\\rtf"):
        return FORMAT_RTF
    if text.startswith(("/", "C:\\")) or "\\" in text:
        return FORMAT_FILE_PATH
    return FORMAT_TEXT
