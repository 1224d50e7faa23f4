"""
Row-to-message conversion.

A row is one record of the message store as a mapping of column name to
string value. `RecordConverter.convert` turns it into a `ConvertedMessage`:
an envelope, the sent date, a fixed, ordered set of headers and the seen flag.

Failure policy:
    - Missing, blank or unencodable address: the row is skipped (None is returned)
    - Unparsable date: the message is kept, without dates or Message-ID
    - Date outside datetime's range: the message keeps its Message-ID, without dates
    - Unparsable type: the message is kept and treated as sent
    - Any other missing column: the header value is None
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, Dict, Mapping, Optional, Union
import logging

from sms_backup.convert.encoding import EmailAddress
from sms_backup.convert.identity import create_message_id, format_references
from sms_backup.convert.person import PersonResolver

logger = logging.getLogger(__name__)

Row = Mapping[str, Optional[str]]

SUBJECT_TEMPLATE = "SMS with {}"


class SmsColumns:
    """Column names of the message store."""

    ID = "_id"
    THREAD_ID = "thread_id"
    ADDRESS = "address"
    PERSON = "person"
    DATE = "date"
    READ = "read"
    STATUS = "status"
    PROTOCOL = "protocol"
    TYPE = "type"
    SERVICE_CENTER = "service_center"
    BODY = "body"


class Headers:
    """Metadata header names. Restore and de-duplication rely on them."""

    MESSAGE_ID = "Message-ID"
    REFERENCES = "References"
    ID = "X-smssync-id"
    ADDRESS = "X-smssync-address"
    TYPE = "X-smssync-type"
    DATE = "X-smssync-date"
    THREAD_ID = "X-smssync-thread"
    READ = "X-smssync-read"
    STATUS = "X-smssync-status"
    PROTOCOL = "X-smssync-protocol"
    SERVICE_CENTER = "X-smssync-service_center"
    BACKUP_TIME = "X-smssync-backup-time"
    VERSION = "X-smssync-version"


# Headers copied verbatim from row columns
COPIED_HEADERS = (
    (Headers.ID, SmsColumns.ID),
    (Headers.ADDRESS, SmsColumns.ADDRESS),
    (Headers.TYPE, SmsColumns.TYPE),
    (Headers.DATE, SmsColumns.DATE),
    (Headers.THREAD_ID, SmsColumns.THREAD_ID),
    (Headers.READ, SmsColumns.READ),
    (Headers.STATUS, SmsColumns.STATUS),
    (Headers.PROTOCOL, SmsColumns.PROTOCOL),
    (Headers.SERVICE_CENTER, SmsColumns.SERVICE_CENTER),
)


class MessageType(enum.IntEnum):
    """Type codes of the message store."""

    ALL = 0
    INBOX = 1
    SENT = 2
    DRAFT = 3
    OUTBOX = 4
    FAILED = 5
    QUEUED = 6


class Direction(enum.Enum):
    """Which side of the envelope the contact is on."""

    RECEIVED = "received"
    SENT = "sent"

    @classmethod
    def from_type_code(cls, type_code: Optional[int]) -> "Direction":
        """
        Classify a type code.

        Only INBOX is RECEIVED. Every other code, known or not, and a missing
        code are SENT: the user is the sender.
        """
        if type_code == MessageType.INBOX:
            return cls.RECEIVED
        return cls.SENT


@dataclass(frozen=True)
class ConversionContext:
    """Per-backup settings shared by every converted message."""

    user_address: EmailAddress
    reference_token: str
    mark_as_read: bool = False
    version: str = ""


@dataclass
class ConvertedMessage:
    """A message ready to be rendered as MIME."""

    from_address: EmailAddress
    to_address: EmailAddress
    subject: str
    body: str
    sent_date: Optional[datetime] = None
    internal_date: Optional[datetime] = None
    headers: Dict[str, Optional[str]] = field(default_factory=dict)
    seen: bool = False

    @property
    def message_id(self) -> Optional[str]:
        return self.headers.get(Headers.MESSAGE_ID)

    def to_dict(self) -> dict:
        """JSON-friendly representation."""
        return {
            "from": str(self.from_address),
            "to": str(self.to_address),
            "subject": self.subject,
            "body": self.body,
            "sent_date": self.sent_date.isoformat() if self.sent_date else None,
            "headers": dict(self.headers),
            "seen": self.seen,
        }


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse a decimal column value, None if missing or not an integer."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _millis_to_datetime(millis: int) -> Optional[datetime]:
    """Aware UTC datetime, or None when the instant is outside datetime's range."""
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.warning(f"Date {millis} is out of range, leaving it off the message")
        return None


def _is_utf8_encodable(value: str) -> bool:
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


class RecordConverter:
    """Converts message-store rows into ConvertedMessages."""

    def __init__(
        self,
        context: ConversionContext,
        resolver: PersonResolver,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.context = context
        self.resolver = resolver
        self.clock = clock or _utc_now

    def convert(self, row: Row) -> Optional[ConvertedMessage]:
        """
        Convert one row.

        Args:
            row: Column name to string value.

        Returns:
            The message, or None if the row has no usable (present, non-blank,
            encodable) address.

        Raises:
            MessageIdError: If the runtime can't compute Message-IDs.
        """
        address = row.get(SmsColumns.ADDRESS)
        if address is None or not address.strip():
            logger.debug(f"Skipping row {row.get(SmsColumns.ID)}: no address")
            return None
        if not _is_utf8_encodable(address):
            logger.warning(f"Skipping row {row.get(SmsColumns.ID)}: address is not valid text")
            return None

        record = self.resolver.resolve(address)

        raw_type = row.get(SmsColumns.TYPE)
        type_code = parse_int(raw_type)
        if type_code is None:
            logger.warning(f"Row {row.get(SmsColumns.ID)}: unparsable type {raw_type!r}, treating as sent")
        direction = Direction.from_type_code(type_code)

        if direction is Direction.RECEIVED:
            from_address, to_address = record.canonical_address, self.context.user_address
        else:
            from_address, to_address = self.context.user_address, record.canonical_address

        message = ConvertedMessage(
            from_address=from_address,
            to_address=to_address,
            subject=SUBJECT_TEMPLATE.format(record.display_name),
            body=row.get(SmsColumns.BODY) or "",
            seen=self.context.mark_as_read,
        )

        id_type: Union[int, str] = type_code if type_code is not None else (raw_type or "").strip()
        if not _is_utf8_encodable(str(id_type)):
            id_type = ""
        millis = self._parse_date(row.get(SmsColumns.DATE))
        if millis is not None:
            message.headers[Headers.MESSAGE_ID] = create_message_id(millis, address, id_type)
            message.sent_date = message.internal_date = _millis_to_datetime(millis)

        # Thread by person, not by the store's thread id.
        message.headers[Headers.REFERENCES] = format_references(
            self.context.reference_token, record.stable_id
        )
        for header, column in COPIED_HEADERS:
            message.headers[header] = row.get(column)
        message.headers[Headers.BACKUP_TIME] = format_datetime(self.clock(), usegmt=True)
        message.headers[Headers.VERSION] = self.context.version

        return message

    def _parse_date(self, value: Optional[str]) -> Optional[int]:
        """Return the epoch millis, or None (logged) if the value isn't an integer."""
        try:
            return int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            logger.error(f"error parsing date {value!r}", exc_info=True)
            return None
