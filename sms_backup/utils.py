"""
Utility functions and classes for SMS Backup.
"""

from datetime import datetime, timezone
from typing import Optional


class Colors:
    """ANSI color codes for terminal output."""

    HEADER = "\033[95m"
    OKGREEN = "\033[92m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"


def format_millis(millis: Optional[int]) -> str:
    """
    Format an epoch-millis watermark for display.

    Args:
        millis: Milliseconds since the Unix epoch; negative or None means
                nothing was backed up yet.

    Returns:
        'YYYY-mm-dd HH:MM:SS UTC', or 'never'.
    """
    if millis is None or millis < 0:
        return "never"
    dt = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")
