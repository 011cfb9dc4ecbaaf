import itertools
import time
from unittest.mock import AsyncMock

import pytest

from clipdeck.models import FORMAT_TEXT, ClipboardEntry
from clipdeck.storage import StorageManager

_ids = itertools.count(1)


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:")
    yield mgr
    mgr.close()


@pytest.fixture
def make_entry():
    """Factory fixture to create ClipboardEntry instances for testing."""

    def _make_entry(
        content: str = "hello world",
        primary_format: str = FORMAT_TEXT,
        entry_id: str | None = None,
        formats: list[str] | None = None,
        content_by_format: dict[str, str] | None = None,
        timestamp: float | None = None,
        favorite: bool = False,
        source_app: str | None = None,
    ) -> ClipboardEntry:
        n = next(_ids)
        return ClipboardEntry(
            id=entry_id or f"entry-{n}",
            primary_format=primary_format,
            content=content,
            # Strictly increasing so insertion order is also recency order.
            timestamp=timestamp if timestamp is not None else time.time() + n,
            formats=list(formats) if formats else [],
            content_by_format=dict(content_by_format) if content_by_format else {},
            source_app=source_app,
            favorite=favorite,
        )

    return _make_entry


@pytest.fixture
def commands():
    """Capture-process command boundary with every call succeeding."""
    mock = AsyncMock()
    mock.query_active.return_value = True
    return mock
