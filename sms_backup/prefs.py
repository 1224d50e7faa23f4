"""
Preference store for SMS Backup.

A small SQLite key/value table holding state that must survive between
runs:

    reference_uid    - random token threading every backed-up conversation
    mark_as_read     - "1"/"0": back messages up as already read
    max_synced_date  - watermark (epoch millis) of the last successful run

The store is per backup identity: one prefs file, one reference token.
"""

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import logging

from sms_backup.convert.batch import DEFAULT_MAX_SYNCED_DATE

logger = logging.getLogger(__name__)

PREFS_DDL = """
CREATE TABLE IF NOT EXISTS prefs (
    key TEXT PRIMARY KEY,
    value TEXT,
    updated_at TEXT NOT NULL
);
"""

REFERENCE_UID = "reference_uid"
MARK_AS_READ = "mark_as_read"
MAX_SYNCED_DATE = "max_synced_date"


def _now_iso() -> str:
    """Get current UTC timestamp in ISO-8601 format."""
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class PreferenceStore:
    """
    SQLite-backed preference store.

    Usable as a context manager. The database file and its parent directory
    are created on first connect.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._connection: Optional[sqlite3.Connection] = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def connect(self) -> sqlite3.Connection:
        """Open (and if needed create) the preference database."""
        if self._connection is not None:
            return self._connection

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.executescript(PREFS_DDL)
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to open preference store {self.db_path}: {e}")
            raise
        self._connection = conn
        return conn

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None

    def get(self, key: str) -> Optional[str]:
        """
        Get a preference value.

        Returns:
            The stored value, or None if not set.
        """
        with closing(self.connect().cursor()) as cursor:
            cursor.execute("SELECT value FROM prefs WHERE key = ?;", (key,))
            result = cursor.fetchone()
            return result[0] if result else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace a preference value."""
        conn = self.connect()
        with closing(conn.cursor()) as cursor:
            cursor.execute(
                "INSERT OR REPLACE INTO prefs (key, value, updated_at) VALUES (?, ?, ?);",
                (key, value, _now_iso()),
            )
            conn.commit()
        logger.debug(f"Updated preference: {key}")

    def get_reference_uid(self) -> Optional[str]:
        return self.get(REFERENCE_UID)

    def set_reference_uid(self, value: str) -> None:
        self.set(REFERENCE_UID, value)

    def get_mark_as_read(self) -> bool:
        return self.get(MARK_AS_READ) == "1"

    def set_mark_as_read(self, value: bool) -> None:
        self.set(MARK_AS_READ, "1" if value else "0")

    def get_max_synced_date(self) -> int:
        """The watermark of the last run, or DEFAULT_MAX_SYNCED_DATE."""
        value = self.get(MAX_SYNCED_DATE)
        if value is None:
            return DEFAULT_MAX_SYNCED_DATE
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Ignoring corrupt {MAX_SYNCED_DATE} value: {value!r}")
            return DEFAULT_MAX_SYNCED_DATE

    def set_max_synced_date(self, value: int) -> None:
        self.set(MAX_SYNCED_DATE, str(value))
