import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPDECK_DATA_DIR", Path.home() / ".local" / "share" / "clipdeck"))
DB_PATH = DATA_DIR / "clipdeck.db"
IMAGE_DIR = DATA_DIR / "images"
LOG_PATH = DATA_DIR / "clipdeck.log"
ACTIONS_PATH = DATA_DIR / "actions.json"

POLL_INTERVAL = 0.5  # seconds between pasteboard checks while capture is active
MAX_ENTRIES = 500  # auto-purge threshold
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
MAX_IMAGE_SIZE = 10_000_000  # 10MB image limit
PREVIEW_LENGTH = 60  # characters shown in menu item

ACTION_DISPLAY_CAP = 3  # actions shown before "More actions..."
MENU_PADDING = 8  # pixels kept between a context menu and the viewport edge
DEFAULT_MENU_SIZE = (200, 300)  # width, height used before the menu is measured


def _parse_int_env(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def _parse_float_env(name: str, default: float, minimum: float, maximum: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value != value:  # NaN
        return default
    return max(minimum, min(maximum, value))


def _parse_menu_display_count() -> int:
    return _parse_int_env("CLIPDECK_MENU_DISPLAY_COUNT", 10, 5, 50)


def _parse_history_limit() -> int:
    return _parse_int_env("CLIPDECK_HISTORY_LIMIT", 100, 10, 1000)


def _parse_reconcile_interval() -> float:
    return _parse_float_env("CLIPDECK_RECONCILE_INTERVAL", 3.0, 0.5, 60.0)


MENU_DISPLAY_COUNT = _parse_menu_display_count()
HISTORY_LIMIT = _parse_history_limit()  # entries kept in the displayed list
RECONCILE_INTERVAL = _parse_reconcile_interval()  # seconds between monitoring status checks
