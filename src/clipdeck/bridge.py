import asyncio
import logging
from collections.abc import Callable

from clipdeck.boundary import CaptureCommands, EventChannel, Subscription
from clipdeck.config import RECONCILE_INTERVAL
from clipdeck.models import ClipboardEntry, MonitoringState, MonitoringStatus

logger = logging.getLogger(__name__)


class MonitoringBridge:
    """Keeps the local view of "is capture running" in step with the capture process.

    Status moves Stopped -> Starting -> Active on start() and Active -> Stopping -> Stopped
    on stop(). A periodic reconcile() overwrites the status with what the capture process
    reports, so a capture process that died or restarted on its own is noticed.

    While a subscription is open every pushed entry is handed to the ``on_update``
    callback given to start() (with the entry's content) and to ``on_entry`` (with the
    entry itself, for history reconciliation).
    """

    def __init__(
        self,
        commands: CaptureCommands,
        channel: EventChannel,
        on_entry: Callable[[ClipboardEntry], None] | None = None,
        reconcile_interval: float = RECONCILE_INTERVAL,
    ):
        self._commands = commands
        self._channel = channel
        self._on_entry = on_entry
        self._on_update: Callable[[str], None] | None = None
        self._reconcile_interval = reconcile_interval
        self._subscription: Subscription | None = None
        self._pump_task: asyncio.Task | None = None
        self._reconcile_task: asyncio.Task | None = None
        # Bumped by every user start/stop so a late acknowledgment cannot undo a newer request.
        self._generation = 0
        self.state = MonitoringState()

    @property
    def status(self) -> MonitoringStatus:
        return self.state.status

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    def _set_status(self, status: MonitoringStatus) -> None:
        if status is not self.state.status:
            logger.info("Monitoring %s -> %s", self.state.status.value, status.value)
            self.state.status = status

    async def start(self, on_update: Callable[[str], None] | None = None) -> bool:
        """Start capture. Returns False when the capture process refused to start."""
        if self.state.status in (MonitoringStatus.ACTIVE, MonitoringStatus.STARTING):
            logger.info("Monitoring already %s", self.state.status.value)
            return True

        self._generation += 1
        generation = self._generation
        self._set_status(MonitoringStatus.STARTING)
        self.state.error = None
        if on_update is not None:
            self._on_update = on_update

        try:
            # Subscribe first so nothing captured right after start is missed.
            await self._ensure_subscribed()
            await self._commands.start_capture()
        except Exception as exc:
            self.state.error = f"Failed to start monitoring: {exc}"
            logger.warning(self.state.error)
            if generation == self._generation:
                await self._release_subscription()
                self._set_status(MonitoringStatus.STOPPED)
            return False

        if generation == self._generation:
            # A stop or reconcile that ran meanwhile may have closed the subscription.
            await self._ensure_subscribed()
            self._set_status(MonitoringStatus.ACTIVE)
        return True

    async def stop(self) -> bool:
        """Stop capture. The local state always ends Stopped; returns False if the request failed."""
        if self.state.status in (MonitoringStatus.STOPPED, MonitoringStatus.STOPPING):
            logger.info("Monitoring already %s", self.state.status.value)
            return True

        self._generation += 1
        generation = self._generation
        self._set_status(MonitoringStatus.STOPPING)
        ok = True
        try:
            await self._commands.stop_capture()
        except Exception as exc:
            self.state.error = f"Failed to stop monitoring: {exc}"
            logger.warning(self.state.error)
            ok = False
        # A start issued while this stop was in flight owns the subscription and status now.
        if generation == self._generation:
            await self._release_subscription()
            self._set_status(MonitoringStatus.STOPPED)
        return ok

    async def reconcile(self) -> bool | None:
        """Align the local status with the capture process. Returns the observed state."""
        try:
            active = await self._commands.query_active()
        except Exception as exc:
            logger.warning("Monitoring status query failed: %s", exc)
            return None

        previous = self.state.status
        if active:
            await self._ensure_subscribed()
            if previous is not MonitoringStatus.ACTIVE:
                logger.info("Capture process reports active while %s, correcting", previous.value)
                self._set_status(MonitoringStatus.ACTIVE)
        elif previous is not MonitoringStatus.STOPPED:
            logger.info("Capture process reports inactive while %s, correcting", previous.value)
            if previous is MonitoringStatus.ACTIVE:
                self.state.error = "Capture stopped unexpectedly"
            await self._release_subscription()
            self._set_status(MonitoringStatus.STOPPED)
        return active

    def start_reconciler(self) -> None:
        if self._reconcile_task is None or self._reconcile_task.done():
            self._reconcile_task = asyncio.create_task(self._reconcile_loop())

    async def stop_reconciler(self) -> None:
        task, self._reconcile_task = self._reconcile_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def teardown(self) -> None:
        """Release everything the bridge holds; failures are logged, never raised."""
        await self.stop_reconciler()
        await self._release_subscription()
        if self.state.status is not MonitoringStatus.STOPPED:
            self._generation += 1
            try:
                await self._commands.stop_capture()
            except Exception as exc:
                logger.warning("Failed to stop capture during teardown: %s", exc)
            self._set_status(MonitoringStatus.STOPPED)

    async def _reconcile_loop(self) -> None:
        while True:
            await asyncio.sleep(self._reconcile_interval)
            await self.reconcile()

    async def _ensure_subscribed(self) -> None:
        if self._subscription is not None and not self._subscription.closed:
            return
        subscription = await self._channel.subscribe()
        if self._subscription is not None and not self._subscription.closed:
            # Lost a race with a concurrent subscribe.
            await subscription.close()
            return
        self._subscription = subscription
        self._pump_task = asyncio.create_task(self._pump(subscription))

    async def _release_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        task, self._pump_task = self._pump_task, None
        if subscription is not None:
            try:
                await subscription.close()
            except Exception as exc:
                logger.warning("Failed to unsubscribe from clipboard events: %s", exc)
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _pump(self, subscription: Subscription) -> None:
        async for entry in subscription:
            self.state.last_content = entry.content
            if self._on_update is not None:
                try:
                    self._on_update(entry.content)
                except Exception:
                    logger.exception("Error in clipboard update callback")
            if self._on_entry is not None:
                try:
                    self._on_entry(entry)
                except Exception:
                    logger.exception("Error recording pushed entry")
