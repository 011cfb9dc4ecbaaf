from collections.abc import Iterable
from typing import NamedTuple

from clipdeck.models import ClipboardEntry


class FormatView(NamedTuple):
    format: str
    content: str


class FormatSelector:
    """Per-entry choice of which available format is displayed, and whether it is expanded."""

    def __init__(self):
        self._selected: dict[str, str] = {}
        self._expanded: set[str] = set()

    def select(self, entry_id: str, format_id: str) -> None:
        self._selected[entry_id] = format_id

    def selected(self, entry_id: str) -> str | None:
        return self._selected.get(entry_id)

    def resolve(self, entry: ClipboardEntry) -> FormatView:
        format_id = self._selected.get(entry.id)
        # A selection made against an older copy of the entry may no longer exist.
        if format_id is None or (format_id not in entry.formats and format_id != entry.primary_format):
            format_id = entry.primary_format
        content = entry.content_by_format.get(format_id)
        if content is None:
            content = entry.content
        return FormatView(format_id, content)

    def toggle_expanded(self, entry_id: str) -> bool:
        if entry_id in self._expanded:
            self._expanded.discard(entry_id)
            return False
        self._expanded.add(entry_id)
        return True

    def is_expanded(self, entry_id: str) -> bool:
        return entry_id in self._expanded

    def forget(self, entry_id: str) -> None:
        self._selected.pop(entry_id, None)
        self._expanded.discard(entry_id)

    def retain(self, entry_ids: Iterable[str]) -> None:
        """Drop state for entries that left the displayed list."""
        keep = set(entry_ids)
        for entry_id in [e for e in self._selected if e not in keep]:
            del self._selected[entry_id]
        self._expanded &= keep
