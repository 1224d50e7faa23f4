"""
Pytest fixtures for SMS Backup tests.

Fixture Categories:
    1. Database fixtures (sample message store, contacts directory, prefs)
    2. Conversion fixtures (fake directory, context, fixed clock)
    3. Row fixtures (sample rows as the store hands them out)

Design Notes:
    - Fixtures use tmp_path for isolation between tests
    - The sample message store mimics the Android `sms` table
"""

import logging
import sqlite3
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from sms_backup.convert.converter import ConversionContext, RecordConverter
from sms_backup.convert.directory import DirectoryLookupError, DirectoryMatch
from sms_backup.convert.encoding import EmailAddress
from sms_backup.convert.person import PersonResolver

USER_EMAIL = "me@example.com"
REFERENCE_TOKEN = "abcdefghijklmnopqrstuvwx"
FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

# 2023-11-14T22:13:20Z
BASE_DATE = 1_700_000_000_000

SMS_DDL = """
CREATE TABLE sms (
    _id INTEGER PRIMARY KEY,
    thread_id INTEGER,
    address TEXT,
    person INTEGER,
    date INTEGER,
    protocol INTEGER,
    read INTEGER DEFAULT 0,
    status INTEGER DEFAULT -1,
    type INTEGER,
    reply_path_present INTEGER,
    subject TEXT,
    body TEXT,
    service_center TEXT
);
"""

CONTACTS_DDL = """
CREATE TABLE people (
    _id INTEGER PRIMARY KEY,
    name TEXT
);

CREATE TABLE phones (
    _id INTEGER PRIMARY KEY,
    person_id INTEGER,
    number TEXT
);

CREATE TABLE contact_methods (
    _id INTEGER PRIMARY KEY,
    person_id INTEGER,
    kind TEXT,
    data TEXT,
    isprimary INTEGER DEFAULT 0
);
"""


def pytest_configure(config):
    config.addinivalue_line("markers", "property: property-based tests (hypothesis)")


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging so later tests see the default root logger."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def sample_store(tmp_path: Path) -> Path:
    """
    Create a message store with a mix of convertible and odd rows.

    Rows (ordered by date):
        1: inbox from +14155551234
        2: sent to +14155551234
        3: inbox with blank address (skipped by the converter)
        4: sent to +442071234567
        5: draft (excluded by default)
        6: inbox from 12345 with an unparsable date (sorted last)
    """
    db_path = tmp_path / "mmssms.db"
    conn = sqlite3.connect(str(db_path))
    try:
        conn.executescript(SMS_DDL)
        rows = [
            (1, 1, "+14155551234", BASE_DATE, 0, 1, 1, "Hello!", "+14155550000"),
            (2, 1, "+14155551234", BASE_DATE + 60_000, 0, 1, 2, "Hi back", None),
            (3, 2, "   ", BASE_DATE + 120_000, 0, 0, 1, "Who am I?", None),
            (4, 3, "+442071234567", BASE_DATE + 180_000, 0, 1, 2, "Cheers", None),
            (5, 4, "+15550000000", BASE_DATE + 240_000, None, 1, 3, "draft", None),
            (6, 5, "12345", "not-a-date", 0, 0, 1, "Your code is 0000", None),
        ]
        conn.executemany(
            """INSERT INTO sms
               (_id, thread_id, address, date, protocol, read, type, body, service_center)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            rows,
        )
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def empty_store(tmp_path: Path) -> Path:
    """Create a message store with the sms table but no rows."""
    db_path = tmp_path / "empty_mmssms.db"
    conn = sqlite3.connect(str(db_path))
    try:
        conn.executescript(SMS_DDL)
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def sample_contacts_db(tmp_path: Path) -> Path:
    """
    Create a contacts directory.

    People:
        1 John Doe   (415) 555-1234    work@example.com (primary), john.doe@gmail.com
        2 Jane Smith +44 20 7123 4567  no emails
        3 Bob Stone  555-0199          bob@example.org
    """
    db_path = tmp_path / "contacts.db"
    conn = sqlite3.connect(str(db_path))
    try:
        conn.executescript(CONTACTS_DDL)
        conn.executemany(
            "INSERT INTO people (_id, name) VALUES (?, ?)",
            [(1, "John Doe"), (2, "Jane Smith"), (3, "Bob Stone")],
        )
        conn.executemany(
            "INSERT INTO phones (_id, person_id, number) VALUES (?, ?, ?)",
            [(1, 1, "(415) 555-1234"), (2, 2, "+44 20 7123 4567"), (3, 3, "555-0199")],
        )
        conn.executemany(
            "INSERT INTO contact_methods (_id, person_id, kind, data, isprimary) VALUES (?, ?, ?, ?, ?)",
            [
                (1, 1, "email", "work@example.com", 1),
                (2, 1, "email", "john.doe@gmail.com", 0),
                (3, 1, "postal", "1 Main St", 0),
                (4, 3, "email", "bob@example.org", 1),
            ],
        )
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def prefs_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "prefs.db"


# =============================================================================
# Conversion fixtures
# =============================================================================


class FakeDirectory:
    """In-memory directory that records its calls."""

    def __init__(
        self,
        matches: Optional[Dict[str, DirectoryMatch]] = None,
        emails: Optional[Dict[int, List[str]]] = None,
        fail_lookup: bool = False,
        fail_emails: bool = False,
    ):
        self.matches = matches or {}
        self.emails = emails or {}
        self.fail_lookup = fail_lookup
        self.fail_emails = fail_emails
        self.lookups: List[str] = []
        self.email_queries: List[int] = []

    def lookup(self, address: str) -> Optional[DirectoryMatch]:
        self.lookups.append(address)
        if self.fail_lookup:
            raise DirectoryLookupError("directory unavailable")
        return self.matches.get(address)

    def emails_for(self, person_id: int) -> List[str]:
        self.email_queries.append(person_id)
        if self.fail_emails:
            raise DirectoryLookupError("emails unavailable")
        return list(self.emails.get(person_id, []))


@pytest.fixture
def fake_directory() -> FakeDirectory:
    """Directory knowing John Doe at +14155551234."""
    return FakeDirectory(
        matches={"+14155551234": DirectoryMatch(person_id=7, name="John Doe", number="+14155551234")},
        emails={7: ["john@example.com", "john.doe@gmail.com"]},
    )


@pytest.fixture
def context() -> ConversionContext:
    return ConversionContext(
        user_address=EmailAddress(USER_EMAIL),
        reference_token=REFERENCE_TOKEN,
        mark_as_read=False,
        version="0.1.0",
    )


@pytest.fixture
def converter(context: ConversionContext, fake_directory: FakeDirectory) -> RecordConverter:
    return RecordConverter(context, PersonResolver(fake_directory), clock=lambda: FIXED_NOW)


@pytest.fixture
def make_directory():
    """The FakeDirectory class, for tests that need a custom directory."""
    return FakeDirectory


# =============================================================================
# Row fixtures
# =============================================================================


@pytest.fixture
def inbox_row() -> Dict[str, Optional[str]]:
    return {
        "_id": "1",
        "thread_id": "1",
        "address": "+14155551234",
        "date": str(BASE_DATE),
        "type": "1",
        "read": "1",
        "status": "-1",
        "protocol": "0",
        "service_center": "+14155550000",
        "body": "Hello!",
    }


@pytest.fixture
def sent_row(inbox_row) -> Dict[str, Optional[str]]:
    row = dict(inbox_row)
    row.update({"_id": "2", "type": "2", "date": str(BASE_DATE + 60_000), "body": "Hi back"})
    return row
