import asyncio
import logging
import webbrowser

from clipdeck.boundary import BoundaryError, EventChannel
from clipdeck.config import POLL_INTERVAL
from clipdeck.monitor import ClipboardMonitor

logger = logging.getLogger(__name__)


class LocalCapture:
    """In-process capture service: polls the pasteboard and publishes new entries.

    Implements the command boundary the monitoring bridge talks to.
    """

    def __init__(self, monitor: ClipboardMonitor, channel: EventChannel, poll_interval: float = POLL_INTERVAL):
        self._monitor = monitor
        self._channel = channel
        self._poll_interval = poll_interval
        self._task: asyncio.Task | None = None

    async def start_capture(self) -> None:
        if self._task is not None and not self._task.done():
            return
        # Whatever is on the pasteboard now was there before capture began.
        self._monitor.sync_change_count()
        self._task = asyncio.create_task(self._run())
        logger.info("Clipboard capture started")

    async def stop_capture(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Clipboard capture stopped")

    async def query_active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def write_system_clipboard(self, text: str) -> None:
        try:
            self._monitor.write_text(text)
        except Exception as exc:
            raise BoundaryError(f"Could not write to the clipboard: {exc}") from exc

    async def open_external_url(self, url: str) -> None:
        if not webbrowser.open(url):
            raise BoundaryError(f"No browser available to open {url}")

    async def _run(self) -> None:
        # check_clipboard runs on the engine loop: the SQLite connection is bound to this thread.
        # Capturing a large image blocks the loop until the file is written.
        while True:
            entry = self._monitor.check_clipboard()
            if entry is not None:
                await self._channel.publish(entry)
            await asyncio.sleep(self._poll_interval)
