import logging

from clipdeck.boundary import HistoryStore
from clipdeck.config import HISTORY_LIMIT
from clipdeck.formats import FormatSelector
from clipdeck.models import ClipboardEntry

logger = logging.getLogger(__name__)


def merge_entry(entry: ClipboardEntry, entries: list[ClipboardEntry]) -> list[ClipboardEntry]:
    """Prepend a pushed entry unless its id or its exact content is already listed.

    Content equality also catches the capture process re-announcing an entry under a
    new id after a restart. Two genuinely separate copies of identical text collapse
    into one entry as a consequence.
    """
    for existing in entries:
        if existing.id == entry.id or existing.content == entry.content:
            return list(entries)
    return [entry, *entries]


class HistoryReconciler:
    """Owns the displayed entry list: pushed entries merge in, reload() replaces it."""

    def __init__(self, store: HistoryStore, limit: int = HISTORY_LIMIT, selector: FormatSelector | None = None):
        self._store = store
        self._limit = limit
        self._selector = selector
        self._entries: list[ClipboardEntry] = []
        self.error: str | None = None
        self.loading = False

    @property
    def entries(self) -> list[ClipboardEntry]:
        return list(self._entries)

    def get(self, entry_id: str) -> ClipboardEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def push(self, entry: ClipboardEntry) -> bool:
        merged = merge_entry(entry, self._entries)
        if len(merged) == len(self._entries):
            logger.debug("Dropped duplicate pushed entry %s", entry.id)
            return False
        self._replace(merged)
        return True

    async def reload(self) -> bool:
        """Replace the list with the store's history. On failure the current list is kept."""
        self.loading = True
        try:
            entries = await self._store.fetch_history(self._limit)
        except Exception as exc:
            self.error = f"Failed to load history: {exc}"
            logger.warning(self.error)
            return False
        finally:
            self.loading = False
        self.error = None
        self._replace(list(entries))
        return True

    def _replace(self, entries: list[ClipboardEntry]) -> None:
        self._entries = entries[: self._limit]
        if self._selector is not None:
            self._selector.retain(e.id for e in self._entries)
