"""
Configuration module for SMS Backup.

Handles file locations and run settings. Every value can be passed to the
constructor, read from an environment variable, or left at its default.

Files:
    - message store: SQLite database with an Android-style `sms` table (read-only)
    - contacts: SQLite contacts directory (read-only, optional)
    - prefs.db: our preference store (reference token, watermark, flags)
    - backup.mbox: mbox file converted messages are appended to
"""

import os
from pathlib import Path
from typing import Optional

from sms_backup.convert.encoding import EmailAddress


def _env_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    return Path(value) if value else None


class Config:
    """Configuration class for SMS Backup."""

    DEFAULT_HOME = Path.home() / ".sms_backup"
    DEFAULT_PREFS_NAME = "prefs.db"
    DEFAULT_MBOX_NAME = "backup.mbox"

    # Upper bound of messages converted per run
    DEFAULT_MAX_ENTRIES = 100

    def __init__(
        self,
        store_path: Optional[str] = None,
        contacts_path: Optional[str] = None,
        prefs_path: Optional[str] = None,
        mbox_path: Optional[str] = None,
        user_email: Optional[str] = None,
        max_entries: Optional[int] = None,
    ):
        """
        Initialize configuration.

        Args:
            store_path: Path to the message store. Falls back to
                    SMS_BACKUP_STORE_PATH.
            contacts_path: Optional contacts database. Falls back to
                    SMS_BACKUP_CONTACTS_PATH; no directory is used if unset.
            prefs_path: Preference store. Defaults to ~/.sms_backup/prefs.db.
            mbox_path: Output mbox. Defaults to ~/.sms_backup/backup.mbox.
            user_email: The backup owner's address, used on the user's side
                    of every envelope. Falls back to SMS_BACKUP_USER_EMAIL.
            max_entries: Maximum messages per run. Falls back to
                    SMS_BACKUP_MAX_ENTRIES, then DEFAULT_MAX_ENTRIES.
        """
        self._store_path: Optional[Path] = (
            Path(store_path) if store_path else _env_path("SMS_BACKUP_STORE_PATH")
        )
        self._contacts_path: Optional[Path] = (
            Path(contacts_path) if contacts_path else _env_path("SMS_BACKUP_CONTACTS_PATH")
        )
        self._prefs_path: Path = (
            Path(prefs_path)
            if prefs_path
            else _env_path("SMS_BACKUP_PREFS_PATH") or self.DEFAULT_HOME / self.DEFAULT_PREFS_NAME
        )
        self._mbox_path: Path = (
            Path(mbox_path)
            if mbox_path
            else _env_path("SMS_BACKUP_MBOX_PATH") or self.DEFAULT_HOME / self.DEFAULT_MBOX_NAME
        )
        self._user_email: Optional[str] = user_email or os.getenv("SMS_BACKUP_USER_EMAIL")

        if max_entries is None:
            env_max = os.getenv("SMS_BACKUP_MAX_ENTRIES")
            max_entries = int(env_max) if env_max else self.DEFAULT_MAX_ENTRIES
        self._max_entries: int = max_entries

    @property
    def store_path(self) -> Optional[Path]:
        """Get the message store path."""
        return self._store_path

    @property
    def contacts_path(self) -> Optional[Path]:
        """Get the contacts database path (optional)."""
        return self._contacts_path

    @property
    def prefs_path(self) -> Path:
        """Get the preference store path."""
        return self._prefs_path

    @property
    def mbox_path(self) -> Path:
        """Get the output mbox path."""
        return self._mbox_path

    @property
    def user_email(self) -> Optional[str]:
        return self._user_email

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def user_address(self) -> EmailAddress:
        """
        The backup owner's address.

        Raises:
            ValueError: If no user email is configured.
        """
        if not self._user_email:
            raise ValueError("User email not configured (set SMS_BACKUP_USER_EMAIL)")
        return EmailAddress(self._user_email)

    def validate(self) -> bool:
        """
        Validate that the message store exists and is readable.

        Returns:
            True if the store exists and is readable, False otherwise.
        """
        if not self._store_path:
            return False
        return self._store_path.exists() and os.access(self._store_path, os.R_OK)

    def validate_contacts(self) -> bool:
        """
        Validate that the contacts database exists and is readable.

        Returns:
            True if the contacts database exists and is readable, False otherwise.
        """
        if not self._contacts_path:
            return False
        return self._contacts_path.exists() and os.access(self._contacts_path, os.R_OK)

    def ensure_dirs(self) -> None:
        """Create the parent directories of the prefs and mbox files."""
        self._prefs_path.parent.mkdir(parents=True, exist_ok=True)
        self._mbox_path.parent.mkdir(parents=True, exist_ok=True)


# Global configuration instance
_config: Optional[Config] = None


def get_config(store_path: Optional[str] = None) -> Config:
    """
    Get or create the global configuration instance.

    Args:
        store_path: Optional path to the message store.

    Returns:
        Config instance.
    """
    global _config
    if _config is None or store_path is not None:
        _config = Config(store_path)
    return _config


def set_config(config: Optional[Config]) -> None:
    """
    Set (or clear, with None) the global configuration instance.

    Args:
        config: Config instance to use.
    """
    global _config
    _config = config
