import sys
from collections.abc import Sequence
from dataclasses import dataclass, field

from clipdeck.actions import ExecutableAction
from clipdeck.config import ACTION_DISPLAY_CAP
from clipdeck.formats import FormatSelector
from clipdeck.models import ClipboardEntry

PRIORITY_SENTINEL = sys.maxsize


@dataclass
class ActionMenu:
    visible: list[ExecutableAction] = field(default_factory=list)
    has_more: bool = False


def search_actions(actions: Sequence[ExecutableAction], query: str) -> list[ExecutableAction]:
    needle = query.strip().lower()
    if not needle:
        return list(actions)
    return [
        a for a in actions
        if needle in a.label.lower() or any(needle in keyword.lower() for keyword in a.keywords)
    ]


def _priority(action: ExecutableAction) -> int:
    return action.priority if action.priority is not None else PRIORITY_SENTINEL


def resolve_actions(
    entry: ClipboardEntry,
    actions: Sequence[ExecutableAction],
    query: str = "",
    show_all: bool = False,
    selector: FormatSelector | None = None,
    cap: int = ACTION_DISPLAY_CAP,
) -> ActionMenu:
    """Build the action list for an entry's context menu.

    Actions are filtered by the category of the entry's displayed format, then by the
    search query, and ordered by priority (input order breaks ties). Without a query
    and without ``show_all`` only the first ``cap`` are returned, with ``has_more`` set
    when some were held back.
    """
    if selector is not None:
        format_id, content = selector.resolve(entry)
    else:
        format_id, content = entry.primary_format, entry.content

    matching = [a for a in actions if a.matches(content, format_id)]
    searching = bool(query.strip())
    if searching:
        matching = search_actions(matching, query)
    ranked = sorted(matching, key=_priority)

    if searching or show_all:
        return ActionMenu(ranked, False)
    return ActionMenu(ranked[:cap], len(ranked) > cap)
