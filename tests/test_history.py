import asyncio
from unittest.mock import AsyncMock

from clipdeck.formats import FormatSelector
from clipdeck.history import HistoryReconciler, merge_entry
from clipdeck.models import FORMAT_TEXT


class TestMergeEntry:
    def test_prepends_new_entry(self, make_entry):
        old = make_entry("old")
        new = make_entry("new")
        assert merge_entry(new, [old]) == [new, old]

    def test_same_id_is_dropped(self, make_entry):
        old = make_entry("old", entry_id="a")
        assert merge_entry(make_entry("changed", entry_id="a"), [old]) == [old]

    def test_same_content_is_dropped(self, make_entry):
        old = make_entry("same")
        assert merge_entry(make_entry("same"), [old]) == [old]

    def test_returns_copy(self, make_entry):
        entries = [make_entry("a")]
        merged = merge_entry(make_entry("a"), entries)
        assert merged is not entries


def _store(entries=None):
    store = AsyncMock()
    store.fetch_history.return_value = entries or []
    return store


class TestReload:
    def test_replaces_list(self, make_entry):
        entries = [make_entry("a"), make_entry("b")]
        history = HistoryReconciler(_store(entries), limit=10)

        assert asyncio.run(history.reload()) is True
        assert history.entries == entries
        assert history.error is None
        assert history.loading is False

    def test_requests_limit(self):
        store = _store()
        asyncio.run(HistoryReconciler(store, limit=25).reload())
        store.fetch_history.assert_awaited_once_with(25)

    def test_failure_keeps_list(self, make_entry):
        store = _store([make_entry("a")])
        history = HistoryReconciler(store, limit=10)
        asyncio.run(history.reload())

        store.fetch_history.side_effect = RuntimeError("database locked")
        assert asyncio.run(history.reload()) is False
        assert [e.content for e in history.entries] == ["a"]
        assert "database locked" in history.error
        assert history.loading is False

    def test_success_clears_error(self):
        store = _store()
        store.fetch_history.side_effect = [RuntimeError("down"), []]
        history = HistoryReconciler(store, limit=10)
        asyncio.run(history.reload())
        asyncio.run(history.reload())
        assert history.error is None

    def test_reload_overrides_pushed_entries(self, make_entry):
        stored = make_entry("stored")
        history = HistoryReconciler(_store([stored]), limit=10)
        history.push(make_entry("pushed"))
        asyncio.run(history.reload())
        assert history.entries == [stored]


class TestPush:
    def test_push_prepends(self, make_entry):
        history = HistoryReconciler(_store(), limit=10)
        first, second = make_entry("first"), make_entry("second")
        assert history.push(first) is True
        assert history.push(second) is True
        assert history.entries == [second, first]

    def test_duplicate_push_ignored(self, make_entry):
        history = HistoryReconciler(_store(), limit=10)
        entry = make_entry("once")
        history.push(entry)
        assert history.push(entry) is False
        assert len(history.entries) == 1

    def test_truncated_to_limit(self, make_entry):
        history = HistoryReconciler(_store(), limit=2)
        for text in ("a", "b", "c"):
            history.push(make_entry(text))
        assert [e.content for e in history.entries] == ["c", "b"]

    def test_get(self, make_entry):
        history = HistoryReconciler(_store(), limit=10)
        entry = make_entry("x", entry_id="x1")
        history.push(entry)
        assert history.get("x1") is entry
        assert history.get("missing") is None

    def test_entries_is_a_copy(self, make_entry):
        history = HistoryReconciler(_store(), limit=10)
        history.entries.append(make_entry("outside"))
        assert history.entries == []

    def test_selector_state_dropped_for_departed_entries(self, make_entry):
        selector = FormatSelector()
        history = HistoryReconciler(_store(), limit=1, selector=selector)
        old = make_entry("old")
        history.push(old)
        selector.select(old.id, FORMAT_TEXT)

        history.push(make_entry("new"))

        assert selector.selected(old.id) is None
