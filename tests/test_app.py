"""Tests for app.py menu construction.

ClipdeckApp inherits from rumps.App, which needs the macOS GUI stack to run, so the
menu logic is tested on an instance created without running __init__.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

pytest.importorskip("rumps")

from clipdeck.actions import DEFAULT_ACTIONS, ActionResult  # noqa: E402
from clipdeck.app import ClipdeckApp, MenuItemSpec  # noqa: E402
from clipdeck.boundary import EventChannel  # noqa: E402
from clipdeck.engine import ClipboardEngine  # noqa: E402
from clipdeck.models import FORMAT_HTML, FORMAT_TEXT, MonitoringStatus  # noqa: E402


@pytest.fixture
def engine(commands):
    store = AsyncMock()
    store.fetch_history.return_value = []
    source = AsyncMock()
    source.load_actions.return_value = [d for d in DEFAULT_ACTIONS if d.enabled]
    engine = ClipboardEngine(commands, EventChannel(), store, source)
    asyncio.run(engine.reload_actions())
    return engine


@pytest.fixture
def app(engine):
    instance = ClipdeckApp.__new__(ClipdeckApp)
    instance._engine = engine
    instance._queries = {}
    instance._show_all = set()
    instance._dirty = False
    return instance


def _titles(specs):
    return [s.title if isinstance(s, MenuItemSpec) else None for s in specs]


class TestMenuSpecs:
    def test_loading_before_engine_ready(self, app):
        app._engine = None
        assert "Loading..." in _titles(app._compute_menu_specs())

    def test_stopped_offers_start(self, app):
        titles = _titles(app._compute_menu_specs())
        assert "○ Not monitoring" in titles
        assert "Start Monitoring" in titles
        assert "(No clipboard history)" in titles

    def test_active_offers_stop(self, app, engine):
        engine.bridge.state.status = MonitoringStatus.ACTIVE
        titles = _titles(app._compute_menu_specs())
        assert "Stop Monitoring" in titles
        assert "Start Monitoring" not in titles

    def test_error_shown(self, app, engine):
        engine.bridge.state.error = "Capture stopped unexpectedly"
        assert "⚠️ Capture stopped unexpectedly" in _titles(app._compute_menu_specs())

    def test_entries_become_submenus(self, app, engine, make_entry):
        engine.history.push(make_entry("first"))
        engine.history.push(make_entry("second"))
        submenus = [s for s in app._compute_menu_specs() if s and s.is_submenu]
        assert [s.title for s in submenus] == ["second", "first"]


class TestEntrySpec:
    def test_capped_actions_with_more(self, app, engine, make_entry):
        entry = make_entry("hello")
        titles = _titles(app._compute_entry_spec(engine, entry).children)
        assert titles[:3] == ["Copy to Clipboard", "Web Search", "Translate"]
        assert "More actions..." in titles
        assert "Search actions..." in titles

    def test_show_all(self, app, engine, make_entry):
        entry = make_entry("hello")
        app._show_all.add(entry.id)
        titles = _titles(app._compute_entry_spec(engine, entry).children)
        assert "Convert to Uppercase" in titles
        assert "More actions..." not in titles

    def test_query(self, app, engine, make_entry):
        entry = make_entry("hello")
        app._queries[entry.id] = "upper"
        titles = _titles(app._compute_entry_spec(engine, entry).children)
        assert 'Search: "upper"' in titles
        assert "Convert to Uppercase" in titles
        assert "Copy to Clipboard" not in titles
        assert "Clear search" in titles

    def test_format_toggles_for_multi_format_entry(self, app, engine, make_entry):
        entry = make_entry("<b>x</b>", primary_format=FORMAT_HTML, formats=[FORMAT_HTML, FORMAT_TEXT])
        children = app._compute_entry_spec(engine, entry).children
        assert children[0].title == "HTML"
        assert children[0].state == 1
        assert children[1].title == "Text"
        assert children[1].state == 0


class TestNotifications:
    @patch("clipdeck.app.rumps.notification")
    def test_copy_success_notifies(self, mock_notify, app):
        app._notify_result(ActionResult("copy", True))
        mock_notify.assert_called_once()

    @patch("clipdeck.app.rumps.notification")
    def test_refusal_notifies_message(self, mock_notify, app):
        app._notify_result(ActionResult("open-url", False, "Not a web URL"))
        assert mock_notify.call_args[0][2] == "Not a web URL"

    @patch("clipdeck.app.rumps.notification")
    def test_silent_success(self, mock_notify, app):
        app._notify_result(ActionResult("search", True))
        mock_notify.assert_not_called()


class TestActionClick:
    def test_unknown_action_ignored(self, app, engine, make_entry):
        entry = make_entry("x")
        engine.history.push(entry)
        app._submit = MagicMock()
        app._on_action(entry.id, "missing")
        app._submit.assert_not_called()

    def test_action_submitted_and_menu_reset(self, app, engine, make_entry):
        entry = make_entry("x")
        engine.history.push(entry)
        app._show_all.add(entry.id)
        app._submit = MagicMock()

        app._on_action(entry.id, "copy")

        app._submit.assert_called_once()
        app._submit.call_args[0][0].close()
        assert entry.id not in app._show_all
