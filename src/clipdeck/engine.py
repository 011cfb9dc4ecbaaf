import logging
from collections.abc import Callable

from clipdeck.actions import ActionResult, ExecutableAction, adapt_action
from clipdeck.boundary import ActionSource, CaptureCommands, EventChannel, HistoryStore
from clipdeck.bridge import MonitoringBridge
from clipdeck.config import DEFAULT_MENU_SIZE, HISTORY_LIMIT, MENU_PADDING, RECONCILE_INTERVAL
from clipdeck.formats import FormatSelector, FormatView
from clipdeck.geometry import open_context_menu, reposition_menu
from clipdeck.history import HistoryReconciler
from clipdeck.models import ClipboardEntry, ContextMenuState, MonitoringState
from clipdeck.resolver import ActionMenu, resolve_actions

logger = logging.getLogger(__name__)


class ClipboardEngine:
    """Everything a host surface needs: monitoring status, entries, menus, actions."""

    def __init__(
        self,
        commands: CaptureCommands,
        channel: EventChannel,
        store: HistoryStore,
        action_source: ActionSource,
        history_limit: int = HISTORY_LIMIT,
        reconcile_interval: float = RECONCILE_INTERVAL,
    ):
        self._commands = commands
        self._action_source = action_source
        self.selector = FormatSelector()
        self.history = HistoryReconciler(store, limit=history_limit, selector=self.selector)
        self.bridge = MonitoringBridge(
            commands, channel, on_entry=self.history.push, reconcile_interval=reconcile_interval
        )
        self.actions: list[ExecutableAction] = []
        self.context_menu = ContextMenuState()

    @property
    def monitoring(self) -> MonitoringState:
        return self.bridge.state

    @property
    def entries(self) -> list[ClipboardEntry]:
        return self.history.entries

    async def open(self) -> None:
        await self.reload_actions()
        await self.history.reload()
        self.bridge.start_reconciler()

    async def close(self) -> None:
        self.context_menu = ContextMenuState()
        await self.bridge.teardown()

    async def start_monitoring(self, on_update: Callable[[str], None] | None = None) -> bool:
        ok = await self.bridge.start(on_update)
        if not ok:
            # The list may have drifted while capture was in doubt.
            await self.history.reload()
        return ok

    async def stop_monitoring(self) -> bool:
        return await self.bridge.stop()

    async def reload_history(self) -> bool:
        return await self.history.reload()

    async def reload_actions(self) -> None:
        try:
            descriptors = await self._action_source.load_actions()
        except Exception as exc:
            logger.warning("Failed to load actions, keeping current set: %s", exc)
            return
        self.actions = [adapt_action(d, self._commands) for d in descriptors if d.enabled]
        logger.info("Loaded %d actions", len(self.actions))

    def select_format(self, entry_id: str, format_id: str) -> bool:
        entry = self.history.get(entry_id)
        if entry is None or format_id not in entry.formats:
            logger.debug("Ignoring format %s for entry %s", format_id, entry_id)
            return False
        self.selector.select(entry_id, format_id)
        return True

    def current_view(self, entry: ClipboardEntry) -> FormatView:
        return self.selector.resolve(entry)

    def menu_for(self, entry: ClipboardEntry, query: str = "", show_all: bool = False) -> ActionMenu:
        return resolve_actions(entry, self.actions, query, show_all, selector=self.selector)

    def open_context_menu(
        self,
        anchor_x: float,
        anchor_y: float,
        entry: ClipboardEntry,
        viewport: tuple[float, float],
        menu_size: tuple[float, float] = DEFAULT_MENU_SIZE,
    ) -> ContextMenuState:
        self.context_menu = open_context_menu(anchor_x, anchor_y, entry, viewport, menu_size, MENU_PADDING)
        return self.context_menu

    def measure_context_menu(self, menu_size: tuple[float, float], viewport: tuple[float, float]) -> ContextMenuState:
        self.context_menu = reposition_menu(self.context_menu, menu_size, viewport, MENU_PADDING)
        return self.context_menu

    def close_context_menu(self) -> None:
        self.context_menu = ContextMenuState()

    async def execute(self, action: ExecutableAction, entry: ClipboardEntry) -> ActionResult:
        result = await action.execute(self.current_view(entry).content)
        if result.executed:
            logger.info("Ran action %s on entry %s", action.id, entry.id)
        self.close_context_menu()
        return result
