"""
SMS Backup - back up a device's SMS message store as email messages.

This package provides functionality to:
- Read rows from an SMS message store (read-only)
- Resolve phone numbers to contacts
- Convert rows into email messages with restore/de-duplication headers
- Append them to an mbox, resuming from the last watermark
"""

__version__ = "0.1.0"

from sms_backup.config import get_config, Config
from sms_backup.database import MessageStore
from sms_backup.prefs import PreferenceStore

__all__ = [
    "get_config",
    "Config",
    "MessageStore",
    "PreferenceStore",
]
