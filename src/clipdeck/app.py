import asyncio
import logging
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, Callable

import rumps

from clipdeck import __version__
from clipdeck.actions import ActionFile, ActionResult
from clipdeck.boundary import EventChannel
from clipdeck.capture import LocalCapture
from clipdeck.classify import format_label
from clipdeck.config import DB_PATH, MENU_DISPLAY_COUNT, PREVIEW_LENGTH
from clipdeck.engine import ClipboardEngine
from clipdeck.models import ClipboardEntry, MonitoringStatus
from clipdeck.monitor import ClipboardMonitor
from clipdeck.storage import StorageManager
from clipdeck.utils import ensure_dirs, truncate_text

logger = logging.getLogger(__name__)

MENU_REFRESH_INTERVAL = 1.0  # seconds between checks for a changed menu

STATUS_TITLES = {
    MonitoringStatus.ACTIVE: "● Monitoring",
    MonitoringStatus.STARTING: "◐ Starting...",
    MonitoringStatus.STOPPING: "◑ Stopping...",
    MonitoringStatus.STOPPED: "○ Not monitoring",
}


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering."""

    title: str
    callback: Callable | None = None
    state: int | None = None
    is_submenu: bool = False
    children: list["MenuItemSpec | None"] | None = None


class ClipdeckApp(rumps.App):
    def __init__(self):
        super().__init__("Clipdeck", title="📋", quit_button=None)
        self._init_app()

    def _init_app(self) -> None:
        """Start the engine thread. Separated for testability."""
        ensure_dirs()
        self._engine: ClipboardEngine | None = None
        self._storage: StorageManager | None = None
        self._capture: LocalCapture | None = None
        self._queries: dict[str, str] = {}
        self._show_all: set[str] = set()
        self._dirty = True
        self._shown_status: MonitoringStatus | None = None
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name="clipdeck-engine", daemon=True)
        self._thread.start()
        self._submit(self._open_engine())
        self._build_menu()

    async def _open_engine(self) -> None:
        # SQLite and the pasteboard monitor live on the engine thread.
        self._storage = StorageManager(DB_PATH)
        channel = EventChannel()
        self._capture = LocalCapture(ClipboardMonitor(self._storage), channel)
        engine = ClipboardEngine(self._capture, channel, self._storage, ActionFile())
        await engine.open()
        self._engine = engine
        await engine.start_monitoring(on_update=self._on_clipboard_update)

    def _submit(self, coro: Coroutine, on_done: Callable[[Any], None] | None = None):
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)

        def _done(f) -> None:
            self._dirty = True
            try:
                result = f.result()
            except Exception:
                logger.exception("Engine task failed")
                return
            if on_done is not None:
                on_done(result)

        future.add_done_callback(_done)
        return future

    def _on_clipboard_update(self, _content: str) -> None:
        self._dirty = True

    @rumps.timer(MENU_REFRESH_INTERVAL)
    def _refresh_tick(self, _sender) -> None:
        # Reconciliation can change the status without any callback firing.
        status = self._engine.monitoring.status if self._engine else None
        if self._dirty or status is not self._shown_status:
            self._shown_status = status
            self._build_menu()

    def _build_menu(self) -> None:
        self._dirty = False
        self.menu.clear()
        self.menu = [self._render_single_spec(spec) for spec in self._compute_menu_specs()]

    def _compute_menu_specs(self) -> list[MenuItemSpec | None]:
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f"Clipdeck v{__version__} - Clipboard History"),
            None,
        ]
        engine = self._engine
        if engine is None:
            specs.append(MenuItemSpec("Loading..."))
        else:
            state = engine.monitoring
            specs.append(MenuItemSpec(STATUS_TITLES[state.status]))
            if state.error:
                specs.append(MenuItemSpec(f"⚠️ {truncate_text(state.error, PREVIEW_LENGTH)}"))
            if state.status is MonitoringStatus.STOPPED:
                specs.append(MenuItemSpec("Start Monitoring", callback=self._on_start))
            elif state.status is MonitoringStatus.ACTIVE:
                specs.append(MenuItemSpec("Stop Monitoring", callback=self._on_stop))
            specs.append(MenuItemSpec("Reload History", callback=self._on_reload))
            specs.append(None)

            entries = engine.entries[:MENU_DISPLAY_COUNT]
            if not entries:
                specs.append(MenuItemSpec("(No clipboard history)"))
            for entry in entries:
                specs.append(self._compute_entry_spec(engine, entry))

        specs.extend([
            None,
            MenuItemSpec("Quit Clipdeck", callback=self._on_quit),
        ])
        return specs

    def _compute_entry_spec(self, engine: ClipboardEngine, entry: ClipboardEntry) -> MenuItemSpec:
        view = engine.current_view(entry)
        children: list[MenuItemSpec | None] = []

        if len(entry.formats) > 1:
            for format_id in entry.formats:
                children.append(MenuItemSpec(
                    format_label(format_id),
                    callback=lambda _, e=entry.id, f=format_id: self._on_format(e, f),
                    state=1 if format_id == view.format else 0,
                ))
            children.append(None)

        query = self._queries.get(entry.id, "")
        menu = engine.menu_for(entry, query=query, show_all=entry.id in self._show_all)
        if query:
            children.append(MenuItemSpec(f'Search: "{query}"'))
        for action in menu.visible:
            children.append(MenuItemSpec(
                action.label,
                callback=lambda _, e=entry.id, a=action.id: self._on_action(e, a),
            ))
        if not menu.visible:
            children.append(MenuItemSpec("(No matching actions)"))
        if menu.has_more:
            children.append(MenuItemSpec("More actions...", callback=lambda _, e=entry.id: self._on_show_all(e)))
        children.append(None)
        children.append(MenuItemSpec("Search actions...", callback=lambda _, e=entry.id: self._on_search_actions(e)))
        if query:
            children.append(MenuItemSpec("Clear search", callback=lambda _, e=entry.id: self._on_clear_search(e)))

        title = truncate_text(view.content, PREVIEW_LENGTH) or f"[{format_label(view.format)}]"
        return MenuItemSpec(title, is_submenu=True, children=children)

    def _render_single_spec(self, spec: MenuItemSpec | None) -> rumps.MenuItem | None:
        if spec is None:
            return None

        if spec.is_submenu and spec.children:
            submenu = rumps.MenuItem(spec.title)
            for child in spec.children:
                submenu.add(self._render_single_spec(child))
            return submenu

        item = rumps.MenuItem(spec.title, callback=spec.callback)
        if spec.state is not None:
            item.state = spec.state
        return item

    def _on_start(self, _sender) -> None:
        self._submit(self._engine.start_monitoring(on_update=self._on_clipboard_update))

    def _on_stop(self, _sender) -> None:
        self._submit(self._engine.stop_monitoring())

    def _on_reload(self, _sender) -> None:
        self._submit(self._engine.reload_history())

    def _on_format(self, entry_id: str, format_id: str) -> None:
        # The selector is plain state; hop onto the engine thread to keep one writer.
        self._loop.call_soon_threadsafe(self._engine.select_format, entry_id, format_id)
        self._dirty = True

    def _on_show_all(self, entry_id: str) -> None:
        self._show_all.add(entry_id)
        self._dirty = True

    def _on_clear_search(self, entry_id: str) -> None:
        self._queries.pop(entry_id, None)
        self._dirty = True

    def _on_search_actions(self, entry_id: str) -> None:
        response = rumps.Window(
            message="Search actions by name or keyword:",
            title="Clipdeck Actions",
            default_text=self._queries.get(entry_id, ""),
            ok="Search",
            cancel="Cancel",
            dimensions=(300, 24),
        ).run()
        if response.clicked:
            query = response.text.strip()
            if query:
                self._queries[entry_id] = query
            else:
                self._queries.pop(entry_id, None)
            self._dirty = True

    def _on_action(self, entry_id: str, action_id: str) -> None:
        entry = self._engine.history.get(entry_id)
        action = next((a for a in self._engine.actions if a.id == action_id), None)
        if entry is None or action is None:
            return
        self._show_all.discard(entry_id)
        self._queries.pop(entry_id, None)
        self._submit(self._engine.execute(action, entry), on_done=self._notify_result)

    def _notify_result(self, result: ActionResult) -> None:
        if result.executed:
            if result.action_id == "copy":
                rumps.notification("Clipdeck", "", "Copied to clipboard", sound=False)
        elif result.message:
            rumps.notification("Clipdeck", "", result.message, sound=False)

    async def _shutdown(self) -> None:
        if self._engine is not None:
            await self._engine.close()
        if self._capture is not None:
            await self._capture.stop_capture()
        if self._storage is not None:
            self._storage.close()

    def _on_quit(self, _sender) -> None:
        try:
            asyncio.run_coroutine_threadsafe(self._shutdown(), self._loop).result(timeout=5)
        except Exception:
            logger.exception("Error during shutdown")
        self._loop.call_soon_threadsafe(self._loop.stop)
        rumps.quit_application()
