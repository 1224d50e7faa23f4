"""
Conversion of message-store rows into email messages.

Components, leaf-first:
    cache       - bounded LRU cache of resolved persons
    directory   - contacts directory contract and SQLite implementation
    person      - address -> PersonRecord resolution with unknown fallback
    identity    - reference token and deterministic Message-IDs
    converter   - one row -> ConvertedMessage
    batch       - row stream -> ConversionResult with watermark
    mime        - ConvertedMessage -> email / mbox message

Data flow:
    rows -> BatchConverter -> RecordConverter -> (PersonResolver, identity)
         -> ConvertedMessage list + watermark
"""

from sms_backup.convert.cache import PersonCache, MAX_PEOPLE_CACHE_SIZE
from sms_backup.convert.encoding import EmailAddress, encode_local_part, encode_display_name
from sms_backup.convert.directory import (
    ContactsDirectory,
    Directory,
    DirectoryLookupError,
    DirectoryMatch,
    NullDirectory,
)
from sms_backup.convert.person import (
    PersonRecord,
    PersonResolver,
    resolve_canonical_email,
    unknown_person,
)
from sms_backup.convert.identity import (
    MessageIdError,
    create_message_id,
    generate_reference_token,
    get_reference_token,
)
from sms_backup.convert.converter import (
    ConversionContext,
    ConvertedMessage,
    Direction,
    Headers,
    MessageType,
    RecordConverter,
)
from sms_backup.convert.batch import BatchConverter, ConversionResult, DEFAULT_MAX_SYNCED_DATE
from sms_backup.convert.mime import to_mime, to_mbox_message

__all__ = [
    # Cache
    "PersonCache",
    "MAX_PEOPLE_CACHE_SIZE",
    # Encoding
    "EmailAddress",
    "encode_local_part",
    "encode_display_name",
    # Directory
    "ContactsDirectory",
    "Directory",
    "DirectoryLookupError",
    "DirectoryMatch",
    "NullDirectory",
    # Person resolution
    "PersonRecord",
    "PersonResolver",
    "resolve_canonical_email",
    "unknown_person",
    # Identity
    "MessageIdError",
    "create_message_id",
    "generate_reference_token",
    "get_reference_token",
    # Conversion
    "ConversionContext",
    "ConvertedMessage",
    "Direction",
    "Headers",
    "MessageType",
    "RecordConverter",
    "BatchConverter",
    "ConversionResult",
    "DEFAULT_MAX_SYNCED_DATE",
    # MIME
    "to_mime",
    "to_mbox_message",
]
