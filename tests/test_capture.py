import asyncio
from unittest.mock import MagicMock, patch

import pytest

from clipdeck.boundary import BoundaryError, EventChannel
from clipdeck.capture import LocalCapture


@pytest.fixture
def monitor():
    mock = MagicMock()
    mock.check_clipboard.return_value = None
    return mock


class TestLifecycle:
    def test_start_and_stop(self, monitor):
        capture = LocalCapture(monitor, EventChannel(), poll_interval=0.01)

        async def scenario():
            await capture.start_capture()
            running = await capture.query_active()
            await capture.stop_capture()
            return running, await capture.query_active()

        assert asyncio.run(scenario()) == (True, False)
        monitor.sync_change_count.assert_called_once()

    def test_start_twice_keeps_one_poller(self, monitor):
        capture = LocalCapture(monitor, EventChannel(), poll_interval=0.01)

        async def scenario():
            await capture.start_capture()
            await capture.start_capture()
            await capture.stop_capture()

        asyncio.run(scenario())
        monitor.sync_change_count.assert_called_once()

    def test_stop_without_start(self, monitor):
        capture = LocalCapture(monitor, EventChannel())
        asyncio.run(capture.stop_capture())


class TestPublishing:
    def test_new_entries_published(self, monitor, make_entry):
        entry = make_entry("copied")
        monitor.check_clipboard.side_effect = [entry] + [None] * 1000
        channel = EventChannel()
        capture = LocalCapture(monitor, channel, poll_interval=0.01)

        async def scenario():
            subscription = await channel.subscribe()
            await capture.start_capture()
            received = await asyncio.wait_for(subscription.__anext__(), timeout=1)
            await capture.stop_capture()
            return received

        assert asyncio.run(scenario()) is entry


class TestCommands:
    def test_write_system_clipboard(self, monitor):
        asyncio.run(LocalCapture(monitor, EventChannel()).write_system_clipboard("text"))
        monitor.write_text.assert_called_once_with("text")

    def test_write_failure_raises_boundary_error(self, monitor):
        monitor.write_text.side_effect = RuntimeError("locked")
        with pytest.raises(BoundaryError):
            asyncio.run(LocalCapture(monitor, EventChannel()).write_system_clipboard("text"))

    @patch("clipdeck.capture.webbrowser.open", return_value=True)
    def test_open_external_url(self, mock_open, monitor):
        asyncio.run(LocalCapture(monitor, EventChannel()).open_external_url("https://example.com"))
        mock_open.assert_called_once_with("https://example.com")

    @patch("clipdeck.capture.webbrowser.open", return_value=False)
    def test_open_without_browser_raises(self, _mock_open, monitor):
        with pytest.raises(BoundaryError):
            asyncio.run(LocalCapture(monitor, EventChannel()).open_external_url("https://example.com"))
