"""
Contacts directory lookup.

The converter only needs two questions answered by a directory:

    lookup(address)       -> zero or one DirectoryMatch
    emails_for(person_id) -> that person's email addresses, primary first

`ContactsDirectory` answers them from a read-only SQLite contacts database
with the layout below. `NullDirectory` answers "nobody" and is used when no
contacts database is configured.

    people(_id INTEGER PRIMARY KEY, name TEXT)
    phones(_id INTEGER PRIMARY KEY, person_id INTEGER, number TEXT)
    contact_methods(_id INTEGER PRIMARY KEY, person_id INTEGER,
                    kind TEXT, data TEXT, isprimary INTEGER)

Lookup strategy (same as the message-store identity resolution):
    1. Exact match on the E.164-normalized number
    2. Fuzzy match on the last 10 digits
"""

import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol
import logging

from sms_backup.convert.normalizers import normalize_phone, phones_match_fuzzy

logger = logging.getLogger(__name__)


class DirectoryLookupError(Exception):
    """A directory query failed. Callers treat this as "no match"."""


@dataclass(frozen=True)
class DirectoryMatch:
    """A contact matched by phone number."""

    person_id: int
    name: Optional[str]
    number: Optional[str]


class Directory(Protocol):
    def lookup(self, address: str) -> Optional[DirectoryMatch]:
        ...

    def emails_for(self, person_id: int) -> List[str]:
        ...


class NullDirectory:
    """Directory with no entries."""

    def lookup(self, address: str) -> Optional[DirectoryMatch]:
        return None

    def emails_for(self, person_id: int) -> List[str]:
        return []


class ContactsDirectory:
    """
    Read-only contacts directory backed by SQLite.

    Usable as a context manager; the connection is opened lazily.
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
        """
        Open the contacts database read-only.

        Raises:
            DirectoryLookupError: If the database can't be opened.
        """
        if self._connection is not None:
            return self._connection
        try:
            uri = f"file:{self.db_path}?mode=ro"
            self._connection = sqlite3.connect(uri, uri=True, check_same_thread=False)
        except sqlite3.Error as e:
            raise DirectoryLookupError(f"Cannot open contacts DB {self.db_path}: {e}") from e
        logger.info(f"Connected to contacts DB: {self.db_path}")
        return self._connection

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None

    def lookup(self, address: str) -> Optional[DirectoryMatch]:
        """
        Find the contact owning a phone number.

        Args:
            address: Address as stored in the message store.

        Returns:
            The first matching contact, or None.

        Raises:
            DirectoryLookupError: If the query fails.
        """
        normalized = normalize_phone(address)
        query = """
            SELECT p.person_id, pe.name, p.number
            FROM phones p
            JOIN people pe ON pe._id = p.person_id
            ORDER BY p._id;
        """
        try:
            with closing(self.connect().cursor()) as cursor:
                cursor.execute(query)
                rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise DirectoryLookupError(f"Phone lookup failed for {address!r}: {e}") from e

        # Strategy 1: exact match on the normalized number
        for person_id, name, number in rows:
            if number and normalize_phone(number) == normalized:
                return DirectoryMatch(person_id=int(person_id), name=name, number=number)

        # Strategy 2: last 10 digits
        for person_id, name, number in rows:
            if number and phones_match_fuzzy(number, address):
                logger.debug(f"Fuzzy phone match: {address} → {number}")
                return DirectoryMatch(person_id=int(person_id), name=name, number=number)

        return None

    def emails_for(self, person_id: int) -> List[str]:
        """
        List a contact's email addresses, primary first.

        Raises:
            DirectoryLookupError: If the query fails.
        """
        query = """
            SELECT data
            FROM contact_methods
            WHERE person_id = ? AND kind = 'email' AND data IS NOT NULL
            ORDER BY isprimary DESC, _id;
        """
        try:
            with closing(self.connect().cursor()) as cursor:
                cursor.execute(query, (person_id,))
                return [row[0] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise DirectoryLookupError(f"Email lookup failed for person {person_id}: {e}") from e
