"""
Message store access.

Reads the `sms` table of an Android-style message database, read-only, and
hands rows out as plain dicts of column name to string value - the shape the
converters expect.
"""

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Dict, Iterator, List, Optional
import logging

from sms_backup.convert.batch import DEFAULT_MAX_SYNCED_DATE
from sms_backup.convert.converter import MessageType

logger = logging.getLogger(__name__)

SMS_TABLE = "sms"

# Columns the converter can't do without
REQUIRED_COLUMNS = ("address", "date", "type", "body")

# Rows are fetched from the cursor in chunks of this size
FETCH_SIZE = 200


def _decode_text(value: bytes) -> str:
    # Invalid UTF-8 becomes U+FFFD
    return value.decode("utf-8", errors="replace")


class MessageStore:
    """
    Read-only connection to a message store.

    Usable as a context manager.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to the message store database.

        Raises:
            ValueError: If the file does not exist.
        """
        self.db_path = Path(db_path)
        if not self.db_path.exists():
            raise ValueError(f"Message store not found: {self.db_path}")
        self._connection: Optional[sqlite3.Connection] = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def connect(self) -> sqlite3.Connection:
        """
        Establish read-only connection to the store.

        Raises:
            sqlite3.Error: If connection fails.
        """
        if self._connection is not None:
            return self._connection

        try:
            uri = f"file:{self.db_path}?mode=ro"
            self._connection = sqlite3.connect(uri, uri=True, check_same_thread=False)
            self._connection.text_factory = _decode_text
            logger.info(f"Connected to message store: {self.db_path}")
            return self._connection
        except sqlite3.Error as e:
            logger.error(f"Failed to connect to message store: {e}")
            raise

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.info("Message store connection closed")

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise RuntimeError("Message store connection not established. Call connect() first.")
        return self._connection

    def validate(self) -> bool:
        """Check that the store has an sms table with the required columns."""
        columns = set(self.get_columns())
        missing = [column for column in REQUIRED_COLUMNS if column not in columns]
        if missing:
            logger.warning(f"Message store {self.db_path} lacks {SMS_TABLE} columns: {missing}")
            return False
        return True

    def get_columns(self) -> List[str]:
        """Column names of the sms table."""
        with closing(self.connect().cursor()) as cursor:
            cursor.execute(f"PRAGMA table_info('{SMS_TABLE}');")
            return [row[1] for row in cursor.fetchall()]

    def count(self, since: int = DEFAULT_MAX_SYNCED_DATE, include_drafts: bool = False) -> int:
        """Number of rows iter_rows() would yield."""
        where, params = self._where(since, include_drafts)
        with closing(self.connect().cursor()) as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {SMS_TABLE} {where};", params)
            result = cursor.fetchone()
            return result[0] if result else 0

    def iter_rows(
        self,
        since: int = DEFAULT_MAX_SYNCED_DATE,
        include_drafts: bool = False,
    ) -> Iterator[Dict[str, Optional[str]]]:
        """
        Yield rows newer than a watermark, oldest first.

        Every column of the table is included. Values are converted to str;
        NULL stays None.

        Args:
            since: Only rows with date > since (epoch millis).
            include_drafts: Also yield draft messages.
        """
        where, params = self._where(since, include_drafts)
        query = f"SELECT * FROM {SMS_TABLE} {where} ORDER BY date ASC;"

        with closing(self.connect().cursor()) as cursor:
            cursor.execute(query, params)
            columns = [description[0] for description in cursor.description]
            while True:
                chunk = cursor.fetchmany(FETCH_SIZE)
                if not chunk:
                    break
                for row in chunk:
                    yield {
                        column: None if value is None else str(value)
                        for column, value in zip(columns, row)
                    }

    @staticmethod
    def _where(since: int, include_drafts: bool):
        clauses = ["date > ?"]
        params: list = [since]
        if not include_drafts:
            clauses.append("(type IS NULL OR type <> ?)")
            params.append(int(MessageType.DRAFT))
        return "WHERE " + " AND ".join(clauses), tuple(params)
