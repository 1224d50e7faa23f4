"""
Backup pipeline orchestration.

Wires the message store, the contacts directory and the preference store to
the converters and appends the result to an mbox file.

Pipeline Steps:
    1. Open the preference store; read the watermark and mark-as-read flag
    2. Get or create the reference token
    3. Open the message store (read-only) and the contacts directory
    4. Convert up to max_entries messages newer than the watermark
    5. Append the messages to the mbox
    6. Store the new watermark

The watermark is only written after the mbox was flushed, so a failed run is
repeated in full next time. Message-IDs are deterministic, which makes the
repeated messages recognisable as duplicates.
"""

import mailbox
import threading
from contextlib import closing, ExitStack
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional
import logging

from sms_backup import __version__
from sms_backup.config import Config
from sms_backup.convert.batch import BatchConverter, ConversionResult, DEFAULT_MAX_SYNCED_DATE
from sms_backup.convert.converter import ConversionContext, RecordConverter
from sms_backup.convert.directory import (
    ContactsDirectory,
    Directory,
    DirectoryLookupError,
    NullDirectory,
)
from sms_backup.convert.identity import get_reference_token
from sms_backup.convert.mime import to_mbox_message
from sms_backup.convert.person import PersonResolver
from sms_backup.database import MessageStore
from sms_backup.prefs import PreferenceStore

logger = logging.getLogger(__name__)


@dataclass
class BackupResult:
    """Result of a backup run."""

    success: bool
    rows_visited: int = 0
    messages_converted: int = 0
    messages_written: int = 0
    previous_max_date: Optional[int] = None
    max_date: Optional[int] = None
    mbox_path: Optional[Path] = None
    cancelled: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0

    def __str__(self) -> str:
        status = "SUCCESS" if self.success else f"FAILED: {self.error}"
        if self.cancelled:
            status += " (cancelled)"
        return (
            f"Backup {status}\n"
            f"  Rows: {self.rows_visited} visited, {self.messages_converted} converted\n"
            f"  Written: {self.messages_written} to {self.mbox_path}\n"
            f"  Watermark: {self.previous_max_date} -> {self.max_date}\n"
            f"  Duration: {self.duration_seconds:.2f}s"
        )


def build_context(config: Config, prefs: PreferenceStore) -> ConversionContext:
    """
    Assemble the conversion context for a run.

    Raises:
        ValueError: If no user email is configured.
    """
    return ConversionContext(
        user_address=config.user_address,
        reference_token=get_reference_token(prefs),
        mark_as_read=prefs.get_mark_as_read(),
        version=__version__,
    )


def _open_directory(config: Config, stack: ExitStack) -> Directory:
    if config.contacts_path is None:
        return NullDirectory()
    if not config.validate_contacts():
        logger.warning(f"Contacts DB not accessible: {config.contacts_path}, using no directory")
        return NullDirectory()
    try:
        return stack.enter_context(ContactsDirectory(config.contacts_path))
    except DirectoryLookupError as e:
        logger.warning(f"{e}, using no directory")
        return NullDirectory()


def write_mbox(mbox_path: Path, result: ConversionResult) -> int:
    """
    Append converted messages to an mbox file.

    Returns:
        Number of messages written.
    """
    mbox_path.parent.mkdir(parents=True, exist_ok=True)
    box = mailbox.mbox(str(mbox_path))
    box.lock()
    try:
        for message in result.messages:
            box.add(to_mbox_message(message))
        box.flush()
    finally:
        box.unlock()
        box.close()
    logger.info(f"Wrote {len(result.messages)} messages to {mbox_path}")
    return len(result.messages)


def run_backup(
    config: Config,
    max_entries: Optional[int] = None,
    cancel: Optional[threading.Event] = None,
) -> BackupResult:
    """
    Run one incremental backup.

    Args:
        config: Paths and user settings.
        max_entries: Override of config.max_entries.
        cancel: Optional event checked between rows.

    Returns:
        BackupResult with statistics and success status.
    """
    start_time = datetime.now()
    limit = config.max_entries if max_entries is None else max_entries
    previous_max_date: Optional[int] = None

    try:
        if not config.validate():
            raise ValueError(f"Message store not found or not readable: {config.store_path}")

        with ExitStack() as stack:
            prefs = stack.enter_context(PreferenceStore(config.prefs_path))
            store = stack.enter_context(MessageStore(config.store_path))
            if not store.validate():
                raise ValueError(f"Not an SMS message store: {config.store_path}")
            directory = _open_directory(config, stack)

            previous_max_date = prefs.get_max_synced_date()
            context = build_context(config, prefs)
            logger.info(f"Backing up messages newer than {previous_max_date} (limit {limit})")

            converter = RecordConverter(context, PersonResolver(directory))
            with closing(store.iter_rows(since=previous_max_date)) as rows:
                result = BatchConverter(converter).convert_batch(
                    rows, limit, floor_date=previous_max_date, cancel=cancel
                )

            written = write_mbox(config.mbox_path, result) if result.messages else 0

            if result.max_date > previous_max_date:
                prefs.set_max_synced_date(result.max_date)

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"Backup completed in {duration:.2f}s")
        return BackupResult(
            success=True,
            rows_visited=result.rows_visited,
            messages_converted=len(result.messages),
            messages_written=written,
            previous_max_date=previous_max_date,
            max_date=result.max_date,
            mbox_path=config.mbox_path,
            cancelled=result.cancelled,
            duration_seconds=duration,
        )

    except Exception as e:
        duration = (datetime.now() - start_time).total_seconds()
        logger.error(f"Backup failed: {e}")
        return BackupResult(
            success=False,
            previous_max_date=previous_max_date,
            mbox_path=config.mbox_path,
            error=str(e),
            duration_seconds=duration,
        )


def get_backup_status(config: Config) -> dict:
    """
    Describe the backup state without changing it.

    Returns:
        Dictionary with watermark, token and pending-message information.
    """
    status: dict = {
        "prefs_exists": config.prefs_path.exists(),
        "store_path": str(config.store_path) if config.store_path else None,
        "store_valid": config.validate(),
        "mbox_path": str(config.mbox_path),
    }

    if status["prefs_exists"]:
        with PreferenceStore(config.prefs_path) as prefs:
            status["max_synced_date"] = prefs.get_max_synced_date()
            status["reference_token_set"] = prefs.get_reference_uid() is not None
            status["mark_as_read"] = prefs.get_mark_as_read()

    if status["store_valid"]:
        with MessageStore(config.store_path) as store:
            since = status.get("max_synced_date", DEFAULT_MAX_SYNCED_DATE)
            status["pending_messages"] = store.count(since=since) if store.validate() else None

    return status
