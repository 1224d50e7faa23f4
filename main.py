#!/usr/bin/env python3
"""
Main entry point for SMS Backup.

Provides a command-line interface to run a backup and inspect its state.
"""
from typing import List, Optional
import argparse
import sys
import logging

from sms_backup.config import Config
from sms_backup.logger_config import setup_logging
from sms_backup.pipeline import get_backup_status, run_backup
from sms_backup.prefs import PreferenceStore
from sms_backup.utils import Colors, format_millis


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--store",
        default=None,
        help="Path to the SMS message store (default: $SMS_BACKUP_STORE_PATH).",
    )
    parser.add_argument(
        "--prefs",
        default=None,
        help="Path to the preference store (default: ~/.sms_backup/prefs.db).",
    )
    parser.add_argument(
        "--mbox",
        default=None,
        help="Path to the output mbox (default: ~/.sms_backup/backup.mbox).",
    )


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Back up an SMS message store as email.")
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file (rotated).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    backup = subparsers.add_parser("backup", help="Convert new messages and append them to the mbox.")
    _add_common_args(backup)
    backup.add_argument(
        "--contacts",
        default=None,
        help="Path to the contacts database used to resolve numbers (optional).",
    )
    backup.add_argument(
        "--user-email",
        default=None,
        help="Your own email address (default: $SMS_BACKUP_USER_EMAIL).",
    )
    backup.add_argument(
        "--max-entries",
        type=int,
        default=None,
        help=f"Maximum messages to back up in this run (default: {Config.DEFAULT_MAX_ENTRIES}).",
    )
    read_flag = backup.add_mutually_exclusive_group()
    read_flag.add_argument(
        "--mark-as-read",
        dest="mark_as_read",
        action="store_true",
        default=None,
        help="Store backed-up messages as read (remembered for later runs).",
    )
    read_flag.add_argument(
        "--no-mark-as-read",
        dest="mark_as_read",
        action="store_false",
        help="Store backed-up messages as unread (remembered for later runs).",
    )

    status = subparsers.add_parser("status", help="Show watermark and pending messages.")
    _add_common_args(status)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    setup_logging(log_file=args.log_file)

    config = Config(
        store_path=args.store,
        contacts_path=getattr(args, "contacts", None),
        prefs_path=args.prefs,
        mbox_path=args.mbox,
        user_email=getattr(args, "user_email", None),
        max_entries=getattr(args, "max_entries", None),
    )

    if args.command == "status":
        status = get_backup_status(config)
        if "max_synced_date" in status:
            status["backed_up_until"] = format_millis(status["max_synced_date"])
        print(f"{Colors.BOLD}{Colors.HEADER}Backup status{Colors.ENDC}")
        for key, value in status.items():
            print(f"  {key:22s}: {value}")
        return 0

    if not config.validate():
        print(f"{Colors.FAIL}Error: message store not found or not readable: {config.store_path}{Colors.ENDC}")
        return 1
    if not config.user_email:
        print(f"{Colors.FAIL}Error: no user email (use --user-email or SMS_BACKUP_USER_EMAIL).{Colors.ENDC}")
        return 1

    if args.mark_as_read is not None:
        with PreferenceStore(config.prefs_path) as prefs:
            prefs.set_mark_as_read(args.mark_as_read)

    result = run_backup(config)
    color = Colors.OKGREEN if result.success else Colors.FAIL
    print(f"{color}{result}{Colors.ENDC}")
    if not result.success:
        logging.getLogger(__name__).error("Backup did not complete")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
