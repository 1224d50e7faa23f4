"""
Tests for the command-line interface.
"""

import mailbox
from pathlib import Path

import pytest

from main import main
from sms_backup.prefs import PreferenceStore

from conftest import BASE_DATE

pytestmark = pytest.mark.usefixtures("restore_root_logger")


@pytest.fixture
def cli_paths(sample_store: Path, sample_contacts_db: Path, prefs_path: Path, tmp_path: Path):
    return [
        "--store",
        str(sample_store),
        "--prefs",
        str(prefs_path),
        "--mbox",
        str(tmp_path / "backup.mbox"),
    ]


class TestBackupCommand:
    """Tests for `main.py backup`."""

    def test_backup(self, cli_paths, sample_contacts_db: Path, tmp_path: Path, capsys):
        argv = ["backup", *cli_paths, "--contacts", str(sample_contacts_db), "--user-email", "me@example.com"]

        assert main(argv) == 0

        box = mailbox.mbox(str(tmp_path / "backup.mbox"))
        try:
            assert len(box) == 4
        finally:
            box.close()
        assert "SUCCESS" in capsys.readouterr().out

    def test_max_entries(self, cli_paths, prefs_path: Path):
        argv = ["backup", *cli_paths, "--user-email", "me@example.com", "--max-entries", "1"]

        assert main(argv) == 0

        with PreferenceStore(prefs_path) as prefs:
            assert prefs.get_max_synced_date() == BASE_DATE

    def test_mark_as_read_is_remembered(self, cli_paths, prefs_path: Path):
        main(["backup", *cli_paths, "--user-email", "me@example.com", "--mark-as-read"])

        with PreferenceStore(prefs_path) as prefs:
            assert prefs.get_mark_as_read() is True

        main(["backup", *cli_paths, "--user-email", "me@example.com"])

        with PreferenceStore(prefs_path) as prefs:
            assert prefs.get_mark_as_read() is True

    def test_missing_user_email(self, cli_paths, monkeypatch, capsys):
        monkeypatch.delenv("SMS_BACKUP_USER_EMAIL", raising=False)

        assert main(["backup", *cli_paths]) == 1
        assert "no user email" in capsys.readouterr().out

    def test_missing_store(self, tmp_path: Path, capsys):
        argv = ["backup", "--store", str(tmp_path / "missing.db"), "--user-email", "me@example.com"]

        assert main(argv) == 1
        assert "not found" in capsys.readouterr().out

    def test_log_file(self, cli_paths, tmp_path: Path):
        log_file = tmp_path / "backup.log"

        main(["--log-file", str(log_file), "backup", *cli_paths, "--user-email", "me@example.com"])

        assert log_file.exists()


class TestStatusCommand:
    def test_status_before_backup(self, cli_paths, capsys):
        assert main(["status", *cli_paths]) == 0

        out = capsys.readouterr().out
        assert "Backup status" in out
        assert "pending_messages" in out

    def test_status_after_backup(self, cli_paths, capsys):
        main(["backup", *cli_paths, "--user-email", "me@example.com"])
        capsys.readouterr()

        assert main(["status", *cli_paths]) == 0

        out = capsys.readouterr().out
        assert "2023-11-14 22:16:20 UTC" in out


class TestArgumentParsing:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])

    def test_mark_as_read_flags_are_exclusive(self, cli_paths):
        with pytest.raises(SystemExit):
            main(["backup", *cli_paths, "--mark-as-read", "--no-mark-as-read"])
