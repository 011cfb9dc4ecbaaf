import base64
import binascii
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from clipdeck.boundary import CaptureCommands
from clipdeck.classify import URL_PATTERN, classify, is_url_content
from clipdeck.config import ACTIONS_PATH
from clipdeck.models import ActionDescriptor, ActionKind, Category

logger = logging.getLogger(__name__)

PLACEHOLDER = "CONTENT"

ALL_CATEGORIES = frozenset(Category)


@dataclass
class ActionResult:
    action_id: str
    executed: bool
    message: str | None = None


BuiltIn = Callable[[CaptureCommands, str], Awaitable[str | None]]


async def _copy(commands: CaptureCommands, content: str) -> str | None:
    await commands.write_system_clipboard(content)
    return None


async def _open_url(commands: CaptureCommands, content: str) -> str | None:
    url = content.strip()
    if not URL_PATTERN.match(url):
        return "Not a web URL"
    await commands.open_external_url(url)
    return None


def _copy_transformed(transform: Callable[[str], str]) -> BuiltIn:
    async def run(commands: CaptureCommands, content: str) -> str | None:
        await commands.write_system_clipboard(transform(content))
        return None

    return run


async def _base64_decode(commands: CaptureCommands, content: str) -> str | None:
    try:
        decoded = base64.b64decode(content.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return "Invalid Base64"
    await commands.write_system_clipboard(decoded)
    return None


BUILT_IN_ACTIONS: dict[str, BuiltIn] = {
    "copy": _copy,
    "open-url": _open_url,
    "uppercase": _copy_transformed(str.upper),
    "lowercase": _copy_transformed(str.lower),
    "reverse-text": _copy_transformed(lambda text: text[::-1]),
    "base64-encode": _copy_transformed(lambda text: base64.b64encode(text.encode("utf-8")).decode("ascii")),
    "base64-decode": _base64_decode,
}


class ExecutableAction:
    """A descriptor bound to the classifier (matches) and the command boundary (execute)."""

    def __init__(self, descriptor: ActionDescriptor, commands: CaptureCommands | None = None):
        self.descriptor = descriptor
        self._commands = commands

    def __repr__(self) -> str:
        return f"ExecutableAction({self.descriptor.id!r})"

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def label(self) -> str:
        return self.descriptor.label

    @property
    def priority(self) -> int | None:
        return self.descriptor.priority

    @property
    def keywords(self) -> list[str]:
        return self.descriptor.keywords

    def matches(self, content: str, format_id: str) -> bool:
        allowed = self.descriptor.allowed_categories
        if classify(format_id) in allowed:
            return True
        return Category.URL in allowed and is_url_content(content, format_id)

    async def execute(self, content: str) -> ActionResult:
        descriptor = self.descriptor
        if not descriptor.enabled:
            return ActionResult(descriptor.id, False, "Action is disabled")

        if descriptor.kind in (ActionKind.SHELL_TEMPLATE, ActionKind.SCRIPT_TEMPLATE):
            logger.warning("Refusing to run %s action %r: template execution is disabled", descriptor.kind.value, descriptor.id)
            return ActionResult(descriptor.id, False, "Template execution is disabled")

        if self._commands is None:
            return ActionResult(descriptor.id, False, "No capture process to run against")

        try:
            if descriptor.kind is ActionKind.URL_TEMPLATE:
                refusal = await self._open_template(content)
            else:
                handler = BUILT_IN_ACTIONS.get(descriptor.id)
                if handler is None:
                    logger.warning("Unknown built-in action %r", descriptor.id)
                    return ActionResult(descriptor.id, False, "Unknown built-in action")
                refusal = await handler(self._commands, content)
        except Exception as exc:
            logger.warning("Action %r failed: %s", descriptor.id, exc)
            return ActionResult(descriptor.id, False, str(exc))

        if refusal is not None:
            logger.info("Action %r not run: %s", descriptor.id, refusal)
            return ActionResult(descriptor.id, False, refusal)
        return ActionResult(descriptor.id, True)

    async def _open_template(self, content: str) -> str | None:
        template = self.descriptor.command_template
        if not template:
            return "No URL template"
        await self._commands.open_external_url(template.replace(PLACEHOLDER, quote(content, safe="")))
        return None


def adapt_action(descriptor: ActionDescriptor, commands: CaptureCommands | None = None) -> ExecutableAction:
    return ExecutableAction(descriptor, commands)


def _action(action_id, label, kind, priority, keywords, categories, icon, command=None, enabled=True, description=None):
    return ActionDescriptor(
        id=action_id,
        label=label,
        kind=kind,
        icon=icon,
        enabled=enabled,
        priority=priority,
        keywords=keywords,
        command_template=command,
        allowed_categories=frozenset(categories),
        description=description,
        is_custom=action_id != "copy",
    )


_TEXT = [Category.TEXT]
_URL = ActionKind.URL_TEMPLATE
_BUILT_IN = ActionKind.BUILT_IN
_SCRIPT = ActionKind.SCRIPT_TEMPLATE

DEFAULT_ACTIONS: list[ActionDescriptor] = [
    _action("copy", "Copy to Clipboard", _BUILT_IN, 1, ["copy", "clipboard"], ALL_CATEGORIES, "Copy"),
    _action("search", "Web Search", _URL, 2, ["search", "google", "web"], [Category.TEXT, Category.URL], "Search",
            command="https://www.google.com/search?q=CONTENT"),
    _action("open-url", "Open URL", _BUILT_IN, 2, ["url", "open", "link"], [Category.URL], "ExternalLink"),
    _action("translate", "Translate", _URL, 3, ["translate", "language"], _TEXT, "Languages",
            command="https://translate.google.com/?text=CONTENT"),
    _action("chatgpt", "Send to ChatGPT", _URL, 4, ["chatgpt", "ai", "gpt", "openai"], _TEXT, "Bot",
            command="https://chat.openai.com/?q=CONTENT"),
    _action("claude", "Send to Claude", _URL, 5, ["claude", "ai", "anthropic"], _TEXT, "Brain",
            command="https://claude.ai/?q=CONTENT"),
    _action("summarize", "AI Summary", _BUILT_IN, 6, ["summarize", "summary", "ai"], _TEXT, "Sparkles",
            enabled=False, description="AI text summary (not implemented)"),
    _action("qr-code", "Generate QR Code", _URL, 8, ["qr", "qrcode", "barcode", "code"], [Category.TEXT, Category.URL],
            "QrCode", command="https://api.qrserver.com/v1/create-qr-code/?size=200x200&data=CONTENT"),
    _action("edit", "Edit", _BUILT_IN, 11, ["edit", "modify"], _TEXT, "Edit3",
            enabled=False, description="Text editing (not implemented)"),
    _action("uppercase", "Convert to Uppercase", _BUILT_IN, 13, ["uppercase", "caps", "upper"], _TEXT, "RotateCcw"),
    _action("lowercase", "Convert to Lowercase", _BUILT_IN, 14, ["lowercase", "lower"], _TEXT, "RefreshCw"),
    _action("send-email", "Send as E-mail", _URL, 21, ["email", "mail", "send"], _TEXT, "Mail",
            command="mailto:?body=CONTENT"),
    _action("calculate", "Calculate", _SCRIPT, 26, ["calculate", "math"], _TEXT, "Calculator",
            command="eval(CONTENT)", enabled=False, description="Script templates are not run"),
    _action("base64-encode", "Base64 Encode", _BUILT_IN, 27, ["base64", "encode"], _TEXT, "Lock"),
    _action("base64-decode", "Base64 Decode", _BUILT_IN, 28, ["base64", "decode"], _TEXT, "Key"),
    _action("save-file", "Save to File", _SCRIPT, 36, ["file", "save"], _TEXT, "Folder",
            command="save(CONTENT, 'clipboard.txt')", enabled=False, description="Script templates are not run"),
    _action("reverse-text", "Reverse Text", _BUILT_IN, 44, ["reverse", "flip"], _TEXT, "Shuffle"),
]


class ActionFile:
    """Read-only access to the user's action settings, stored as a JSON list."""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path else ACTIONS_PATH

    def read(self) -> list[ActionDescriptor]:
        if not self._path.exists():
            return list(DEFAULT_ACTIONS)
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read %s, using default actions: %s", self._path, exc)
            return list(DEFAULT_ACTIONS)
        if not isinstance(raw, list):
            logger.warning("%s does not hold a list of actions, using default actions", self._path)
            return list(DEFAULT_ACTIONS)

        descriptors = []
        for item in raw:
            try:
                descriptors.append(ActionDescriptor.from_dict(item))
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid action %r: %s", item, exc)
        return descriptors

    async def load_actions(self) -> list[ActionDescriptor]:
        return [d for d in self.read() if d.enabled]
