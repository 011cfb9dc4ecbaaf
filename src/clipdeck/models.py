import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

FORMAT_TEXT = "text/plain"
FORMAT_URI_LIST = "text/uri-list"
FORMAT_HTML = "text/html"
FORMAT_RTF = "text/rtf"
FORMAT_PNG = "image/png"
FORMAT_TIFF = "image/tiff"
FORMAT_FILE_LIST = "application/x-file-list"
FORMAT_FILE_PATH = "application/x-file-path"
FORMAT_BINARY = "application/octet-stream"


class Category(str, Enum):
    TEXT = "text"
    URL = "url"
    HTML = "html"
    IMAGE = "image"
    FILES = "files"


class ActionKind(str, Enum):
    URL_TEMPLATE = "url-template"
    SHELL_TEMPLATE = "shell-template"
    SCRIPT_TEMPLATE = "script-template"
    BUILT_IN = "built-in"


# Kind names written by older settings files.
LEGACY_ACTION_KINDS = {
    "url": ActionKind.URL_TEMPLATE,
    "command": ActionKind.SHELL_TEMPLATE,
    "code": ActionKind.SCRIPT_TEMPLATE,
}


class MonitoringStatus(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"


@dataclass
class ClipboardEntry:
    id: str
    primary_format: str
    content: str
    timestamp: float
    formats: list[str] = field(default_factory=list)
    content_by_format: dict[str, str] = field(default_factory=dict)
    source_app: str | None = None
    favorite: bool = False

    def __post_init__(self) -> None:
        if not self.formats:
            self.formats = [self.primary_format]

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ClipboardEntry":
        """Build an entry from a store row or a pushed event payload.

        Accepts both the field names used here and the ones used by the capture
        layer (``content_type``, ``available_formats``, ``format_contents``,
        ``is_favorite``). The two format fields may arrive JSON-encoded; when they
        fail to parse the entry keeps only its default content.
        """
        entry_id = str(record["id"])
        primary = record.get("primary_format") or record.get("content_type") or FORMAT_TEXT
        formats = _decode_formats(record.get("formats", record.get("available_formats")), entry_id)
        contents = _decode_contents(record.get("content_by_format", record.get("format_contents")), entry_id)
        favorite = record.get("favorite", record.get("is_favorite", False))
        return cls(
            id=entry_id,
            primary_format=primary,
            content=record.get("content") or "",
            timestamp=float(record.get("timestamp") or 0),
            formats=formats,
            content_by_format=contents,
            source_app=record.get("source_app"),
            favorite=bool(favorite),
        )


def _maybe_json(raw: Any, entry_id: str, field_name: str) -> Any:
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Entry %s has malformed %s, using default content", entry_id, field_name)
        return None


def _decode_formats(raw: Any, entry_id: str) -> list[str]:
    value = _maybe_json(raw, entry_id, "formats")
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(f, str) for f in value):
        logger.warning("Entry %s has formats of unexpected shape, ignoring them", entry_id)
        return []
    return list(dict.fromkeys(value))


def _decode_contents(raw: Any, entry_id: str) -> dict[str, str]:
    value = _maybe_json(raw, entry_id, "format contents")
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        logger.warning("Entry %s has format contents of unexpected shape, ignoring them", entry_id)
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str)}


@dataclass
class ActionDescriptor:
    id: str
    label: str
    kind: ActionKind
    icon: str | None = None
    enabled: bool = True
    priority: int | None = None
    keywords: list[str] = field(default_factory=list)
    command_template: str | None = None
    allowed_categories: frozenset[Category] = frozenset()
    description: str | None = None
    is_custom: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ActionDescriptor":
        """Parse the persisted settings shape. Raises ValueError on an unknown kind."""
        raw_kind = data.get("kind") or data.get("action_type") or data.get("type")
        kind = LEGACY_ACTION_KINDS.get(raw_kind) or ActionKind(raw_kind)
        raw_categories = data.get("allowed_categories", data.get("allowed_content_types", []))
        known = {c.value for c in Category}
        categories = frozenset(Category(c) for c in raw_categories if c in known)
        priority = data.get("priority")
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", data["id"])),
            kind=kind,
            icon=data.get("icon"),
            enabled=bool(data.get("enabled", True)),
            priority=int(priority) if priority is not None else None,
            keywords=[str(k) for k in data.get("keywords") or []],
            command_template=data.get("command_template", data.get("command")),
            allowed_categories=categories,
            description=data.get("description"),
            is_custom=bool(data.get("is_custom", False)),
        )


@dataclass
class MonitoringState:
    status: MonitoringStatus = MonitoringStatus.STOPPED
    error: str | None = None
    last_content: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is MonitoringStatus.ACTIVE


@dataclass
class ContextMenuState:
    visible: bool = False
    original_x: float = 0
    original_y: float = 0
    x: float = 0
    y: float = 0
    item: ClipboardEntry | None = None
