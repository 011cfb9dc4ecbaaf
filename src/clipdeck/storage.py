import json
import sqlite3
import time
from pathlib import Path

from clipdeck.config import DB_PATH, IMAGE_DIR, MAX_ENTRIES
from clipdeck.models import ClipboardEntry
from clipdeck.utils import compute_hash


SCHEMA = """
CREATE TABLE IF NOT EXISTS clipboard_entries (
    id              TEXT PRIMARY KEY,
    primary_format  TEXT NOT NULL,
    content         TEXT NOT NULL,
    formats         TEXT NOT NULL DEFAULT '[]',
    format_contents TEXT NOT NULL DEFAULT '{}',
    content_hash    TEXT NOT NULL,
    byte_size       INTEGER NOT NULL DEFAULT 0,
    timestamp       REAL NOT NULL,
    favorite        INTEGER NOT NULL DEFAULT 0,
    source_app      TEXT
);

CREATE INDEX IF NOT EXISTS idx_timestamp ON clipboard_entries(timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_content_hash ON clipboard_entries(content_hash);
CREATE INDEX IF NOT EXISTS idx_primary_format ON clipboard_entries(primary_format);

CREATE VIRTUAL TABLE IF NOT EXISTS clipboard_fts USING fts5(
    content,
    source_app,
    content='clipboard_entries',
    content_rowid='rowid'
);

CREATE TRIGGER IF NOT EXISTS clipboard_ai AFTER INSERT ON clipboard_entries BEGIN
    INSERT INTO clipboard_fts(rowid, content, source_app)
    VALUES (new.rowid, new.content, new.source_app);
END;

CREATE TRIGGER IF NOT EXISTS clipboard_ad AFTER DELETE ON clipboard_entries BEGIN
    INSERT INTO clipboard_fts(clipboard_fts, rowid, content, source_app)
    VALUES ('delete', old.rowid, old.content, old.source_app);
END;
"""


class StorageManager:
    """SQLite history store shared by the capture side (writes) and the engine (reads)."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._conn = sqlite3.connect(self._db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    @staticmethod
    def _delete_files(entry: ClipboardEntry) -> None:
        # Only files the capture side wrote into IMAGE_DIR belong to the entry.
        for format_id in entry.formats:
            if not format_id.startswith("image/"):
                continue
            file_path = entry.content_by_format.get(format_id) or entry.content
            p = Path(file_path)
            if p.parent == IMAGE_DIR and p.exists():
                p.unlink()

    def add_entry(self, entry: ClipboardEntry) -> str:
        self._conn.execute(
            """INSERT INTO clipboard_entries
               (id, primary_format, content, formats, format_contents, content_hash, byte_size, timestamp, favorite, source_app)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry.id,
                entry.primary_format,
                entry.content,
                json.dumps(entry.formats),
                json.dumps(entry.content_by_format),
                compute_hash(entry.content),
                len(entry.content.encode("utf-8")),
                entry.timestamp,
                int(entry.favorite),
                entry.source_app,
            ),
        )
        self._conn.commit()
        return entry.id

    def get_recent(self, limit: int = 25) -> list[ClipboardEntry]:
        rows = self._conn.execute(
            "SELECT * FROM clipboard_entries ORDER BY timestamp DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    async def fetch_history(self, limit: int) -> list[ClipboardEntry]:
        return self.get_recent(limit)

    def search(self, query: str, limit: int = 25) -> list[ClipboardEntry]:
        sanitized = self._sanitize_fts_query(query)
        if not sanitized:
            return []
        rows = self._conn.execute(
            """SELECT e.* FROM clipboard_entries e
               JOIN clipboard_fts f ON e.rowid = f.rowid
               WHERE clipboard_fts MATCH ?
               ORDER BY e.timestamp DESC
               LIMIT ?""",
            (sanitized, limit),
        ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def get_entry(self, entry_id: str) -> ClipboardEntry | None:
        row = self._conn.execute(
            "SELECT * FROM clipboard_entries WHERE id = ?", (entry_id,)
        ).fetchone()
        return self._row_to_entry(row) if row else None

    def delete_entry(self, entry_id: str) -> None:
        entry = self.get_entry(entry_id)
        if entry:
            self._delete_files(entry)
        self._conn.execute("DELETE FROM clipboard_entries WHERE id = ?", (entry_id,))
        self._conn.commit()

    def find_by_hash(self, content_hash: str) -> ClipboardEntry | None:
        row = self._conn.execute(
            "SELECT * FROM clipboard_entries WHERE content_hash = ? ORDER BY timestamp DESC LIMIT 1",
            (content_hash,),
        ).fetchone()
        return self._row_to_entry(row) if row else None

    def update_timestamp(self, entry_id: str, timestamp: float | None = None) -> None:
        self._conn.execute(
            "UPDATE clipboard_entries SET timestamp = ? WHERE id = ?",
            (timestamp if timestamp is not None else time.time(), entry_id),
        )
        self._conn.commit()

    def purge_old(self, keep_count: int | None = None) -> int:
        keep = keep_count if keep_count is not None else MAX_ENTRIES
        rows = self._conn.execute(
            """SELECT * FROM clipboard_entries
               WHERE favorite = 0
               ORDER BY timestamp DESC
               LIMIT -1 OFFSET ?""",
            (keep,),
        ).fetchall()

        deleted = 0
        for row in rows:
            self._delete_files(self._row_to_entry(row))
            self._conn.execute("DELETE FROM clipboard_entries WHERE id = ?", (row["id"],))
            deleted += 1

        if deleted:
            self._conn.commit()
        return deleted

    def toggle_favorite(self, entry_id: str) -> bool:
        entry = self.get_entry(entry_id)
        if not entry:
            return False
        new_favorite = not entry.favorite
        self._conn.execute(
            "UPDATE clipboard_entries SET favorite = ? WHERE id = ?",
            (int(new_favorite), entry_id),
        )
        self._conn.commit()
        return new_favorite

    def clear_all(self) -> None:
        rows = self._conn.execute(
            "SELECT * FROM clipboard_entries WHERE formats LIKE '%image/%'"
        ).fetchall()
        for row in rows:
            self._delete_files(self._row_to_entry(row))
        self._conn.execute("DELETE FROM clipboard_entries")
        self._conn.commit()

    def count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM clipboard_entries").fetchone()
        return row["cnt"]

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _sanitize_fts_query(query: str) -> str:
        # Quote each token to prevent FTS5 syntax errors from special chars
        tokens = query.split()
        if not tokens:
            return ""
        quoted = ['"' + token.replace('"', '""') + '"' for token in tokens]
        return " ".join(quoted)

    def _row_to_entry(self, row: sqlite3.Row) -> ClipboardEntry:
        return ClipboardEntry.from_record(dict(row))
