"""
Message identity: threading reference token and deterministic Message-IDs.

The Message-ID is a digest of (date, address, type) only, so converting the
same store row twice, in the same run or a later one, always yields the same
id. Mail stores that de-duplicate by Message-ID then ignore re-uploads.

The reference token is random, created once per backup identity, and kept in
the preference store. Combined with a person's stable id it forms the
References header that threads a conversation.
"""

import hashlib
import secrets
import string
from datetime import datetime
from typing import Optional, Protocol, Union
import logging

logger = logging.getLogger(__name__)

MSG_ID_TEMPLATE = "<{}@sms-backup-plus.local>"
REFERENCE_UID_TEMPLATE = "<{}.{}@sms-backup-plus.local>"

REFERENCE_TOKEN_LENGTH = 24
REFERENCE_TOKEN_ALPHABET = string.digits + string.ascii_lowercase


class MessageIdError(RuntimeError):
    """The runtime can't compute Message-IDs (missing digest or codec)."""


class ReferenceStore(Protocol):
    def get_reference_uid(self) -> Optional[str]:
        ...

    def set_reference_uid(self, value: str) -> None:
        ...


def generate_reference_token() -> str:
    """Return 24 random base-36 characters."""
    return "".join(secrets.choice(REFERENCE_TOKEN_ALPHABET) for _ in range(REFERENCE_TOKEN_LENGTH))


def get_reference_token(store: ReferenceStore) -> str:
    """
    Return the persisted reference token, creating it on first use.

    Args:
        store: Preference store of the backup identity.
    """
    token = store.get_reference_uid()
    if not token:
        token = generate_reference_token()
        store.set_reference_uid(token)
        logger.info("Generated new reference token")
    return token


def format_references(reference_token: str, stable_id: str) -> str:
    """Build the References header value for one contact."""
    return REFERENCE_UID_TEMPLATE.format(reference_token, stable_id)


def _epoch_millis(sent: Union[int, datetime]) -> int:
    if isinstance(sent, datetime):
        return int(round(sent.timestamp() * 1000))
    return int(sent)


def create_message_id(sent: Union[int, datetime], address: str, type_code: Union[int, str]) -> str:
    """
    Create a Message-ID from the message date, address and type.

    Args:
        sent: Send time as epoch milliseconds or an aware datetime.
        address: Raw address from the message store.
        type_code: Message type code (or its raw text when it isn't numeric).

    Returns:
        '<md5hex@sms-backup-plus.local>'

    Raises:
        MessageIdError: If MD5 is unavailable or the input can't be UTF-8 encoded.
    """
    try:
        digest = hashlib.md5(usedforsecurity=False)
    except ValueError as e:
        raise MessageIdError(f"MD5 digest unavailable: {e}") from e

    try:
        digest.update(str(_epoch_millis(sent)).encode("utf-8"))
        digest.update(address.encode("utf-8"))
        digest.update(str(type_code).encode("utf-8"))
    except UnicodeEncodeError as e:
        raise MessageIdError(f"Cannot encode message identity: {e}") from e

    return MSG_ID_TEMPLATE.format(digest.hexdigest())
