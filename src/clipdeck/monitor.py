import logging
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from clipdeck.classify import analyze_text_format
from clipdeck.config import IMAGE_DIR, MAX_IMAGE_SIZE, MAX_TEXT_SIZE
from clipdeck.models import (
    FORMAT_FILE_LIST,
    FORMAT_HTML,
    FORMAT_PNG,
    FORMAT_RTF,
    FORMAT_TEXT,
    FORMAT_TIFF,
    ClipboardEntry,
)
from clipdeck.storage import StorageManager
from clipdeck.utils import compute_hash, ensure_dirs

logger = logging.getLogger(__name__)

# Values of the AppKit pasteboard type constants (NSPasteboardTypeString, ...).
PBOARD_STRING = "public.utf8-plain-text"
PBOARD_HTML = "public.html"
PBOARD_RTF = "public.rtf"
PBOARD_PNG = "public.png"
PBOARD_TIFF = "public.tiff"
PBOARD_FILENAMES = "NSFilenamesPboardType"

# Formats that win over plain text as an entry's main representation, in order.
PRIMARY_ORDER = (FORMAT_FILE_LIST, FORMAT_PNG, FORMAT_TIFF, FORMAT_HTML)


def general_pasteboard():
    from AppKit import NSPasteboard

    return NSPasteboard.generalPasteboard()


def frontmost_app_name() -> str | None:
    try:
        from AppKit import NSWorkspace

        app = NSWorkspace.sharedWorkspace().frontmostApplication()
        return str(app.localizedName()) if app else None
    except Exception:
        return None


class ClipboardMonitor:
    """Turns pasteboard changes into stored multi-format entries."""

    def __init__(
        self,
        storage: StorageManager,
        pasteboard=None,
        source_app: Callable[[], str | None] = frontmost_app_name,
    ):
        self._storage = storage
        self._pasteboard = pasteboard if pasteboard is not None else general_pasteboard()
        self._source_app = source_app
        self._last_change_count = self._pasteboard.changeCount()
        ensure_dirs()

    def check_clipboard(self) -> ClipboardEntry | None:
        """Capture the pasteboard if it changed. Returns the new or refreshed entry."""
        current_count = self._pasteboard.changeCount()
        if current_count == self._last_change_count:
            return None

        self._last_change_count = current_count

        try:
            entry = self._read_clipboard()
            if entry is None:
                return None

            existing = self._storage.find_by_hash(compute_hash(entry.content))
            if existing:
                self._storage.update_timestamp(existing.id, entry.timestamp)
                existing.timestamp = entry.timestamp
                return existing

            self._storage.add_entry(entry)
            self._storage.purge_old()
            return entry
        except Exception:
            logger.exception("Error reading clipboard")
            return None

    def sync_change_count(self) -> None:
        self._last_change_count = self._pasteboard.changeCount()

    def write_text(self, text: str) -> None:
        self._pasteboard.clearContents()
        self._pasteboard.setString_forType_(text, PBOARD_STRING)
        # Our own write is not a new capture.
        self.sync_change_count()

    def _read_clipboard(self) -> ClipboardEntry | None:
        types = self._pasteboard.types()
        if types is None:
            return None

        contents: dict[str, str] = {}

        if PBOARD_FILENAMES in types:
            files = self._read_files()
            if files:
                contents[FORMAT_FILE_LIST] = files

        for img_type, format_id in ((PBOARD_PNG, FORMAT_PNG), (PBOARD_TIFF, FORMAT_TIFF)):
            if img_type in types:
                image_path = self._read_image(img_type)
                if image_path:
                    contents[format_id] = str(image_path)
                    break

        for pb_type, format_id in ((PBOARD_HTML, FORMAT_HTML), (PBOARD_RTF, FORMAT_RTF)):
            if pb_type in types:
                value = self._read_string(pb_type)
                if value:
                    contents[format_id] = value

        text_format = None
        if PBOARD_STRING in types:
            text = self._read_string(PBOARD_STRING)
            if text:
                contents[FORMAT_TEXT] = text
                text_format = analyze_text_format(text)
                contents.setdefault(text_format, text)

        if not contents:
            return None

        primary = next((f for f in PRIMARY_ORDER if f in contents), text_format or next(iter(contents)))
        return ClipboardEntry(
            id=uuid.uuid4().hex,
            primary_format=primary,
            content=contents[primary],
            timestamp=time.time(),
            formats=[primary] + [f for f in contents if f != primary],
            content_by_format=contents,
            source_app=self._source_app(),
        )

    def _read_string(self, pb_type: str) -> str | None:
        value = self._pasteboard.stringForType_(pb_type)
        if not value:
            return None
        value = str(value)
        if len(value.encode("utf-8")) > MAX_TEXT_SIZE:
            logger.warning("Clipboard %s too large, skipping", pb_type)
            return None
        return value

    def _read_image(self, img_type: str) -> Path | None:
        data = self._pasteboard.dataForType_(img_type)
        if data is None:
            return None

        img_bytes = bytes(data)
        if len(img_bytes) > MAX_IMAGE_SIZE:
            logger.warning("Image too large (%d bytes), skipping", len(img_bytes))
            return None

        ext = ".png" if img_type == PBOARD_PNG else ".tiff"
        path = IMAGE_DIR / (compute_hash(img_bytes)[:12] + ext)
        if not path.exists():
            path.write_bytes(img_bytes)
        return path

    def _read_files(self) -> str | None:
        filenames = self._pasteboard.propertyListForType_(PBOARD_FILENAMES)
        if not filenames:
            return None
        return "\n".join(str(f) for f in filenames)
