"""
Tests for the preference store.
"""

import sqlite3
from pathlib import Path

from sms_backup.convert.identity import get_reference_token
from sms_backup.prefs import MAX_SYNCED_DATE, PreferenceStore


class TestPreferenceStore:
    """Tests for PreferenceStore."""

    def test_creates_file_and_parents(self, prefs_path: Path):
        with PreferenceStore(prefs_path):
            pass

        assert prefs_path.exists()
        conn = sqlite3.connect(str(prefs_path))
        try:
            tables = [row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")]
        finally:
            conn.close()
        assert "prefs" in tables

    def test_get_missing(self, prefs_path: Path):
        with PreferenceStore(prefs_path) as prefs:
            assert prefs.get("nope") is None

    def test_set_and_replace(self, prefs_path: Path):
        with PreferenceStore(prefs_path) as prefs:
            prefs.set("k", "v1")
            prefs.set("k", "v2")
            assert prefs.get("k") == "v2"

    def test_values_persist(self, prefs_path: Path):
        with PreferenceStore(prefs_path) as prefs:
            prefs.set_max_synced_date(1234)
            prefs.set_mark_as_read(True)
            prefs.set_reference_uid("tok")

        with PreferenceStore(prefs_path) as prefs:
            assert prefs.get_max_synced_date() == 1234
            assert prefs.get_mark_as_read() is True
            assert prefs.get_reference_uid() == "tok"


class TestTypedAccessors:
    def test_defaults(self, prefs_path: Path):
        with PreferenceStore(prefs_path) as prefs:
            assert prefs.get_max_synced_date() == -1
            assert prefs.get_mark_as_read() is False
            assert prefs.get_reference_uid() is None

    def test_mark_as_read_round_trip(self, prefs_path: Path):
        with PreferenceStore(prefs_path) as prefs:
            prefs.set_mark_as_read(True)
            prefs.set_mark_as_read(False)
            assert prefs.get_mark_as_read() is False

    def test_corrupt_watermark_is_ignored(self, prefs_path: Path, caplog):
        with PreferenceStore(prefs_path) as prefs:
            prefs.set(MAX_SYNCED_DATE, "garbage")
            assert prefs.get_max_synced_date() == -1
        assert "corrupt" in caplog.text

    def test_reference_token_survives_reopen(self, prefs_path: Path):
        with PreferenceStore(prefs_path) as prefs:
            first = get_reference_token(prefs)

        with PreferenceStore(prefs_path) as prefs:
            assert get_reference_token(prefs) == first
