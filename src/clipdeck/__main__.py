import argparse
import asyncio
import logging
import sys

from clipdeck.actions import ActionFile, adapt_action
from clipdeck.classify import format_label
from clipdeck.config import DB_PATH, LOG_PATH, PREVIEW_LENGTH
from clipdeck.formats import FormatSelector
from clipdeck.resolver import resolve_actions
from clipdeck.storage import StorageManager
from clipdeck.utils import ensure_dirs, truncate_text


def show_history(limit: int) -> int:
    """Print the most recent entries, newest first."""
    ensure_dirs()
    with StorageManager(DB_PATH) as storage:
        entries = asyncio.run(storage.fetch_history(limit))

    if not entries:
        print("No clipboard history.")
        return 0

    for entry in entries:
        stamp = entry.created_at.strftime("%Y-%m-%d %H:%M:%S")
        labels = ", ".join(format_label(f) for f in entry.formats)
        print(f"{entry.id}  {stamp}  [{labels}]  {truncate_text(entry.content, PREVIEW_LENGTH)}")
    return 0


def show_actions(entry_id: str, query: str = "", show_all: bool = False, format_id: str | None = None) -> int:
    """Print the actions the context menu would offer for an entry."""
    ensure_dirs()
    with StorageManager(DB_PATH) as storage:
        entry = storage.get_entry(entry_id)
    if entry is None:
        print(f"No entry with id {entry_id}", file=sys.stderr)
        return 1

    selector = FormatSelector()
    if format_id is not None:
        if format_id not in entry.formats:
            print(f"Entry {entry_id} has no {format_id} content. Available: {', '.join(entry.formats)}", file=sys.stderr)
            return 1
        selector.select(entry.id, format_id)

    descriptors = asyncio.run(ActionFile().load_actions())
    actions = [adapt_action(d) for d in descriptors]
    menu = resolve_actions(entry, actions, query=query, show_all=show_all, selector=selector)

    view = selector.resolve(entry)
    print(f"{format_label(view.format)}: {truncate_text(view.content, PREVIEW_LENGTH)}")
    if not menu.visible:
        print("  (no matching actions)")
    for action in menu.visible:
        print(f"  {action.id:<16} {action.label}")
    if menu.has_more:
        print("  ... more actions available (--all)")
    return 0


def run_app():
    """Run the Clipdeck menu bar application."""
    ensure_dirs()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )

    from clipdeck.app import ClipdeckApp

    app = ClipdeckApp()
    app.run()


def main():
    parser = argparse.ArgumentParser(
        description="Clipdeck - Clipboard history with context actions for macOS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  (none), run   Run Clipdeck in the menu bar
  history       List recent clipboard entries
  actions ID    List the actions offered for an entry

Examples:
  clipdeck history --limit 5
  clipdeck actions 3f2a... --query ai
""",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Run Clipdeck in the menu bar")

    history_parser = subparsers.add_parser("history", help="List recent clipboard entries")
    history_parser.add_argument("--limit", type=int, default=10, help="Number of entries to show")

    actions_parser = subparsers.add_parser("actions", help="List the actions offered for an entry")
    actions_parser.add_argument("entry_id", help="Entry id as shown by 'clipdeck history'")
    actions_parser.add_argument("--query", default="", help="Filter actions by name or keyword")
    actions_parser.add_argument("--all", action="store_true", help="Show every matching action")
    actions_parser.add_argument("--format", dest="format_id", help="Resolve against this format instead of the primary one")

    args = parser.parse_args()

    if args.command == "history":
        sys.exit(show_history(args.limit))
    elif args.command == "actions":
        sys.exit(show_actions(args.entry_id, args.query, args.all, args.format_id))
    else:
        run_app()


if __name__ == "__main__":
    main()
